import sqlite3
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from client_ledger.database.connection import Connection, DatabaseManager
from client_ledger.domain.enums import Currency
from client_ledger.domain.models import ClientRef, ClientTransaction, Transaction
from client_ledger.repositories.base import LedgerRepository

COLUMNS = (
    "id, client_id, transaction_date, description, debit, credit, "
    "payment_method, reference_number, notes, created_at"
)

class SQLiteLedgerRepository(LedgerRepository):
    """
    SQLite implementation of the LedgerRepository.

    Each currency has its own table; ``Currency.table`` names it.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def add(self, currency: Currency, transaction: Transaction) -> Transaction:
        """Save a single transaction."""
        with self.db.transaction() as conn:
            return self._insert(conn, currency, transaction)

    def add_many(self, currency: Currency, transactions: List[Transaction]) -> List[Transaction]:
        """Save multiple transactions, all or nothing."""
        with self.db.transaction() as conn:
            return [self._insert(conn, currency, txn) for txn in transactions]

    def _insert(self, conn: Connection, currency: Currency, transaction: Transaction) -> Transaction:
        if transaction.client_id is None:
            raise ValueError("Cannot save a transaction without a client")

        created_at = transaction.created_at or datetime.now()
        cursor = conn.execute(
            f"""
            INSERT INTO {currency.table} (
                client_id, transaction_date, description, debit, credit,
                payment_method, reference_number, notes, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                transaction.client_id,
                transaction.date,
                transaction.description or "",
                transaction.debit_amount,
                transaction.credit_amount,
                transaction.payment_method,
                transaction.reference_number,
                transaction.notes,
                created_at,
            ),
        )
        return replace(
            transaction,
            id=cursor.lastrowid,
            currency=currency,
            created_at=created_at,
        )

    def get_by_id(self, currency: Currency, transaction_id: int) -> Optional[Transaction]:
        conn = self.db.get_connection()
        row = conn.execute(
            f"SELECT {COLUMNS} FROM {currency.table} WHERE id = ?",
            (transaction_id,),
        ).fetchone()
        return self._row_to_transaction(row, currency) if row else None

    def list_for_client(
            self,
            currency: Currency,
            client_id: int,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
    ) -> List[Transaction]:
        query = f"SELECT {COLUMNS} FROM {currency.table} WHERE client_id = ?"
        params: list = [client_id]

        if start_date:
            query += " AND transaction_date >= ?"
            params.append(start_date)

        if end_date:
            query += " AND transaction_date <= ?"
            params.append(end_date)

        query += " ORDER BY transaction_date DESC, created_at DESC, id DESC"

        conn = self.db.get_connection()
        rows = conn.execute(query, params).fetchall()
        return [self._row_to_transaction(row, currency) for row in rows]

    def list_in_range(self, currency: Currency, start_date: date, end_date: date) -> List[ClientTransaction]:
        conn = self.db.get_connection()
        rows = conn.execute(
            f"""
            SELECT t.id, t.client_id, t.transaction_date, t.description, t.debit,
                   t.credit, t.payment_method, t.reference_number, t.notes,
                   t.created_at, c.client_name, c.client_code
            FROM {currency.table} t
            INNER JOIN clients c ON c.id = t.client_id
            WHERE t.transaction_date >= ? AND t.transaction_date <= ?
            ORDER BY t.transaction_date DESC, t.created_at DESC, t.id DESC
            """,
            (start_date, end_date),
        ).fetchall()
        return [self._row_to_client_transaction(row, currency) for row in rows]

    def update(self, currency: Currency, transaction: Transaction) -> int:
        """Update the editable fields; returns affected row count."""
        if transaction.id is None:
            raise ValueError("Cannot update transaction without ID")

        with self.db.transaction() as conn:
            cursor = conn.execute(
                f"""
                UPDATE {currency.table}
                SET transaction_date = ?, description = ?, debit = ?, credit = ?,
                    payment_method = ?, reference_number = ?, notes = ?
                WHERE id = ?
                """,
                (
                    transaction.date,
                    transaction.description or "",
                    transaction.debit_amount,
                    transaction.credit_amount,
                    transaction.payment_method,
                    transaction.reference_number,
                    transaction.notes,
                    transaction.id,
                ),
            )
            return cursor.rowcount

    def delete(self, currency: Currency, transaction_id: int) -> bool:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                f"DELETE FROM {currency.table} WHERE id = ?",
                (transaction_id,),
            )
            return cursor.rowcount > 0

    def _row_to_transaction(self, row: sqlite3.Row, currency: Currency) -> Transaction:
        """Convert database row to Transaction object."""
        return Transaction(
            id=row["id"],
            client_id=row["client_id"],
            currency=currency,
            date=row["transaction_date"],
            description=row["description"] or "",
            debit=Decimal(row["debit"] or "0"),
            credit=Decimal(row["credit"] or "0"),
            payment_method=row["payment_method"],
            reference_number=row["reference_number"],
            notes=row["notes"],
            created_at=row["created_at"],
        )

    def _row_to_client_transaction(self, row: sqlite3.Row, currency: Currency) -> ClientTransaction:
        """Joined row -> transaction plus exactly one owning client."""
        return ClientTransaction(
            transaction=self._row_to_transaction(row, currency),
            client=ClientRef(
                id=row["client_id"],
                name=row["client_name"] or "",
                code=row["client_code"] or "",
            ),
        )
