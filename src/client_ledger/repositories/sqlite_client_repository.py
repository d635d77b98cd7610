import sqlite3
from datetime import datetime
from typing import List, Optional

from client_ledger.database.connection import DatabaseManager
from client_ledger.domain.enums import ClientStatus
from client_ledger.domain.models import Client
from client_ledger.exceptions import DuplicateClientError
from client_ledger.repositories.base import ClientRepository

class SQLiteClientRepository(ClientRepository):
    """SQLite implementation of the ClientRepository using raw SQL."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def add(self, client: Client) -> Client:
        """Save a new client."""
        if self.get_by_code(client.code) is not None:
            raise DuplicateClientError(f"Client code '{client.code}' is already in use")

        client.created_at = client.created_at or datetime.now()

        with self.db.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO clients (
                    client_name, client_code, email, phone, business_name,
                    address, notes, status, created_at, last_transaction_date
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    client.name,
                    client.code,
                    client.email,
                    client.phone,
                    client.business_name,
                    client.address,
                    client.notes,
                    client.status.value,
                    client.created_at,
                    client.last_transaction_date,
                ),
            )
            client.id = cursor.lastrowid

        return client

    def get_by_id(self, client_id: int) -> Optional[Client]:
        conn = self.db.get_connection()
        row = conn.execute("SELECT * FROM clients WHERE id = ?", (client_id,)).fetchone()
        return self._row_to_client(row) if row else None

    def get_by_code(self, code: str) -> Optional[Client]:
        conn = self.db.get_connection()
        row = conn.execute("SELECT * FROM clients WHERE client_code = ?", (code,)).fetchone()
        return self._row_to_client(row) if row else None

    def get_all(self, status: Optional[ClientStatus] = None) -> List[Client]:
        query = "SELECT * FROM clients WHERE 1=1"
        params = []

        if status:
            query += " AND status = ?"
            params.append(status.value)

        query += " ORDER BY client_name COLLATE NOCASE, id"

        conn = self.db.get_connection()
        return [self._row_to_client(row) for row in conn.execute(query, params).fetchall()]

    def update(self, client: Client) -> int:
        """Update an existing client; returns affected row count."""
        if client.id is None:
            raise ValueError("Cannot update client without ID")

        with self.db.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE clients
                SET client_name = ?, email = ?, phone = ?, business_name = ?,
                    address = ?, notes = ?, status = ?
                WHERE id = ?
                """,
                (
                    client.name,
                    client.email,
                    client.phone,
                    client.business_name,
                    client.address,
                    client.notes,
                    client.status.value,
                    client.id,
                ),
            )
            return cursor.rowcount

    def touch_last_transaction(self, client_id: int, when: datetime) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                "UPDATE clients SET last_transaction_date = ? WHERE id = ?",
                (when, client_id),
            )

    def _row_to_client(self, row: sqlite3.Row) -> Client:
        """Convert database row to Client object."""
        return Client(
            id=row["id"],
            name=row["client_name"],
            code=row["client_code"],
            email=row["email"],
            phone=row["phone"],
            business_name=row["business_name"],
            address=row["address"],
            notes=row["notes"],
            status=ClientStatus(row["status"]),
            created_at=row["created_at"],
            last_transaction_date=row["last_transaction_date"],
        )
