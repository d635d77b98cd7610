from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import List, Optional

from client_ledger.domain.enums import ClientStatus, Currency
from client_ledger.domain.models import Client, ClientTransaction, Transaction

class ClientRepository(ABC):
    """Abstract repository for client persistence."""

    @abstractmethod
    def add(self, client: Client) -> Client:
        """
        Save a new client.

        Returns:
            Client with ID and created_at populated

        Raises:
            DuplicateClientError: If the client code is already taken
        """
        pass

    @abstractmethod
    def get_by_id(self, client_id: int) -> Optional[Client]:
        """Retrieve a client by ID, or None"""
        pass

    @abstractmethod
    def get_by_code(self, code: str) -> Optional[Client]:
        """Retrieve a client by its human-readable code, or None"""
        pass

    @abstractmethod
    def get_all(self, status: Optional[ClientStatus] = None) -> List[Client]:
        """All clients ordered by name, optionally filtered by status"""
        pass

    @abstractmethod
    def update(self, client: Client) -> int:
        """
        Update an existing client.

        Returns:
            Number of rows affected. Zero means nothing was written.
        """
        pass

    @abstractmethod
    def touch_last_transaction(self, client_id: int, when: datetime) -> None:
        """Record when the client's ledgers last changed"""
        pass


class LedgerRepository(ABC):
    """
    Abstract repository for the per-currency transaction ledgers.

    Every operation takes the currency because the KES and USD ledgers
    are stored independently.
    """

    @abstractmethod
    def add(self, currency: Currency, transaction: Transaction) -> Transaction:
        """
        Save a transaction to a client's ledger.

        Returns:
            Transaction with ID, currency and created_at populated
        """
        pass

    @abstractmethod
    def add_many(self, currency: Currency, transactions: List[Transaction]) -> List[Transaction]:
        """Save multiple transactions in a single database transaction."""
        pass

    @abstractmethod
    def get_by_id(self, currency: Currency, transaction_id: int) -> Optional[Transaction]:
        """Retrieve a transaction by ID, or None"""
        pass

    @abstractmethod
    def list_for_client(
        self,
        currency: Currency,
        client_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Transaction]:
        """
        One client's ledger, newest first.

        Args:
            currency: Which ledger
            client_id: Owning client
            start_date: Filter transactions on or after this date
            end_date: Filter transactions on or before this date

        Returns:
            Transactions ordered by date descending, then creation descending
        """
        pass

    @abstractmethod
    def list_in_range(
        self,
        currency: Currency,
        start_date: date,
        end_date: date,
    ) -> List[ClientTransaction]:
        """
        Every client's transactions inside an inclusive date range.

        Each record carries exactly one owning client.
        """
        pass

    @abstractmethod
    def update(self, currency: Currency, transaction: Transaction) -> int:
        """
        Update an existing transaction.

        Returns:
            Number of rows affected. A successful call can affect zero rows;
            callers must treat that as a failure.
        """
        pass

    @abstractmethod
    def delete(self, currency: Currency, transaction_id: int) -> bool:
        """
        Delete a transaction permanently.

        Returns:
            True if deleted, False if not found
        """
        pass
