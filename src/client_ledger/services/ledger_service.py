import logging
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from client_ledger.auth.gate import AllowAll, AuthorizationCheck
from client_ledger.domain.enums import Currency, EntryKind, ReportType
from client_ledger.domain.models import Client, Transaction, ZERO
from client_ledger.exceptions import (
    ClientNotFoundError,
    PersistenceError,
    TransactionNotFoundError,
    ValidationError,
)
from client_ledger.importers.spreadsheet import SpreadsheetLedgerImporter
from client_ledger.reports.document import RenderedDocument
from client_ledger.reports.statement import DocumentCallback, StatementRenderer, StatementRequest
from client_ledger.repositories.base import ClientRepository, LedgerRepository
from client_ledger.services.models import ClientLedger, ImportResult

logger = logging.getLogger(__name__)


def entry_amounts(kind: EntryKind, amount: Decimal) -> Tuple[Decimal, Decimal]:
    """
    Split a form entry into (debit, credit).

    Invoices, charges and expenses are debits; payments, refunds and
    credits are credits.
    """
    if amount < 0:
        raise ValidationError(f"Amount must not be negative, got {amount}")
    return (amount, ZERO) if kind.is_debit else (ZERO, amount)


class ClientLedgerService:
    """
    Client and ledger operations behind the CLI.

    Edits and deletes pass through an AuthorizationCheck first. After an
    edit the ledger is reloaded from the store rather than patched, so a
    write that the store quietly ignored can never look applied.
    """

    def __init__(
        self,
        clients: ClientRepository,
        ledger: LedgerRepository,
        authorization: Optional[AuthorizationCheck] = None,
        renderer: Optional[StatementRenderer] = None,
        importer: Optional[SpreadsheetLedgerImporter] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.clients = clients
        self.ledger = ledger
        self.authorization = authorization or AllowAll()
        self._renderer = renderer
        self._importer = importer
        self.clock = clock

    @property
    def renderer(self) -> StatementRenderer:
        """Lazy-load statement renderer"""
        if self._renderer is None:
            self._renderer = StatementRenderer()
        return self._renderer

    @property
    def importer(self) -> SpreadsheetLedgerImporter:
        """Lazy-load spreadsheet importer"""
        if self._importer is None:
            self._importer = SpreadsheetLedgerImporter()
        return self._importer

    # ─── Clients ──────────────────────────────────────────────────────────

    def create_client(self, client: Client) -> Client:
        """
        Register a new client.

        Raises:
            ValidationError: If name or code is blank
            DuplicateClientError: If the code is taken
        """
        if not client.name.strip() or not client.code.strip():
            raise ValidationError("Client name and code are required")
        saved = self.clients.add(client)
        logger.info("Created client %s (%s)", saved.name, saved.code)
        return saved

    def list_clients(self) -> List[Client]:
        return self.clients.get_all()

    def get_client(self, client_id: int) -> Client:
        """
        Raises:
            ClientNotFoundError: If there is no such client
        """
        client = self.clients.get_by_id(client_id)
        if client is None:
            raise ClientNotFoundError(f"Client {client_id} not found")
        return client

    def update_client_info(self, client_id: int, name: str, phone: Optional[str]) -> Client:
        """Change a client's display name and phone"""
        if not name.strip():
            raise ValidationError("Client name is required")

        updated = replace(self.get_client(client_id), name=name.strip(), phone=phone or None)
        if self.clients.update(updated) == 0:
            logger.error("Client update for %s affected no rows", client_id)
            raise PersistenceError("Error updating client: no rows were changed")
        return updated

    # ─── Ledger ───────────────────────────────────────────────────────────

    def load_ledger(self, client_id: int) -> ClientLedger:
        """
        Load a client and both ledgers, newest first.

        Raises:
            ClientNotFoundError: If there is no such client
        """
        client = self.get_client(client_id)
        return ClientLedger(
            client=client,
            transactions_kes=self.ledger.list_for_client(Currency.KES, client_id),
            transactions_usd=self.ledger.list_for_client(Currency.USD, client_id),
        )

    def add_transaction(
        self,
        client_id: int,
        currency: Currency,
        kind: EntryKind,
        amount: Decimal,
        description: str,
        day: date,
        payment_method: Optional[str] = None,
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Transaction:
        """
        Record a form entry.

        Args:
            client_id: Owning client
            currency: Which ledger
            kind: Entry kind, decides debit vs credit
            amount: Non-negative amount
            description: Free text
            day: Transaction date

        Returns:
            The saved transaction
        """
        self.get_client(client_id)
        debit, credit = entry_amounts(kind, amount)
        return self._save(currency, Transaction(
            client_id=client_id,
            date=day,
            description=description.strip(),
            debit=debit,
            credit=credit,
            payment_method=payment_method,
            reference_number=reference_number,
            notes=notes,
        ))

    def quick_add(
        self,
        client_id: int,
        currency: Currency,
        day: date,
        description: str,
        credit: Optional[Decimal] = None,
        debit: Optional[Decimal] = None,
    ) -> Optional[Transaction]:
        """
        Inline row entry.

        A blank description or an all-zero row is ignored and None returned.
        """
        credit = credit or ZERO
        debit = debit or ZERO
        if not description.strip() or (credit == 0 and debit == 0):
            logger.debug("Ignoring empty quick-add row for client %s", client_id)
            return None

        self.get_client(client_id)
        return self._save(currency, Transaction(
            client_id=client_id,
            date=day,
            description=description.strip(),
            debit=debit,
            credit=credit,
        ))

    def _save(self, currency: Currency, transaction: Transaction) -> Transaction:
        saved = self.ledger.add(currency, transaction)
        self.clients.touch_last_transaction(transaction.client_id, self.clock())
        logger.info("Added %s transaction %s for client %s", currency.value, saved.id, saved.client_id)
        return saved

    def edit_transaction(self, currency: Currency, transaction: Transaction, pin: Optional[str]) -> ClientLedger:
        """
        Save changes to a transaction and reload its client's ledger.

        Raises:
            AuthorizationError: If the PIN challenge fails
            PersistenceError: If the update changed no rows
        """
        self.authorization.authorize("edit", pin)

        if transaction.id is None or transaction.client_id is None:
            raise ValidationError("Only saved transactions can be edited")

        if self.ledger.update(currency, transaction) == 0:
            logger.error(
                "Update of %s transaction %s returned 0 rows; a store policy may be blocking it",
                currency.value, transaction.id,
            )
            raise PersistenceError("Update blocked: no rows were changed")

        logger.info("Updated %s transaction %s", currency.value, transaction.id)
        return self.load_ledger(transaction.client_id)

    def delete_transaction(self, currency: Currency, transaction_id: int, pin: Optional[str]) -> None:
        """
        Permanently delete a transaction.

        Raises:
            AuthorizationError: If the PIN challenge fails
            TransactionNotFoundError: If nothing was deleted
        """
        self.authorization.authorize("delete", pin)

        if not self.ledger.delete(currency, transaction_id):
            logger.error("Failed to delete %s transaction %s", currency.value, transaction_id)
            raise TransactionNotFoundError(f"Failed to delete transaction {transaction_id}")

        logger.info("Deleted %s transaction %s", currency.value, transaction_id)

    def get_transaction(self, currency: Currency, transaction_id: int) -> Transaction:
        transaction = self.ledger.get_by_id(currency, transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    # ─── Statements & import ──────────────────────────────────────────────

    def generate_statement(
        self,
        client_id: int,
        report_type: ReportType = ReportType.FULL,
        on_ready: Optional[DocumentCallback] = None,
        generated_on: Optional[date] = None,
    ) -> RenderedDocument:
        """Render a client's statement; see StatementRenderer.render"""
        ledger = self.load_ledger(client_id)
        request = StatementRequest(
            client=ledger.client.identity(),
            transactions_kes=ledger.transactions_kes,
            transactions_usd=ledger.transactions_usd,
            summary_kes=ledger.summary_kes,
            summary_usd=ledger.summary_usd,
            report_type=report_type,
            generated_on=generated_on or self.clock().date(),
        )
        return self.renderer.render(request, on_ready=on_ready)

    def import_transactions(
        self,
        client_id: int,
        currency: Currency,
        filepath: Path,
        dry_run: bool = False,
    ) -> ImportResult:
        """
        Import a ledger sheet into one of a client's ledgers.

        Args:
            client_id: Owning client
            currency: Target ledger
            filepath: .csv or .xlsx sheet
            dry_run: Parse and report without saving

        Returns:
            An ImportResult.
        """
        self.get_client(client_id)
        parsed = [
            replace(txn, client_id=client_id, currency=currency)
            for txn in self.importer.parse(filepath)
        ]

        imported = parsed
        if not dry_run and parsed:
            imported = self.ledger.add_many(currency, parsed)
            self.clients.touch_last_transaction(client_id, self.clock())

        return ImportResult(
            total_parsed=len(parsed),
            imported=imported,
            filepath=str(filepath),
            currency=currency,
            dry_run=dry_run,
        )
