import pytest
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from client_ledger.auth.gate import PinGate
from client_ledger.domain.enums import Currency, EntryKind, ReportType
from client_ledger.domain.models import Client, Transaction
from client_ledger.exceptions import (
    AuthorizationError,
    ClientNotFoundError,
    PersistenceError,
    TransactionNotFoundError,
    ValidationError,
)
from client_ledger.repositories.base import ClientRepository, LedgerRepository
from client_ledger.services.ledger_service import ClientLedgerService, entry_amounts

NOW = datetime(2024, 6, 1, 10, 0)

@pytest.fixture
def mock_clients(mocker, client) -> ClientRepository:
    """Client repository that knows one client"""
    repo = mocker.Mock()
    repo.get_by_id.side_effect = lambda client_id: client if client_id == client.id else None
    return repo

@pytest.fixture
def mock_ledger(mocker) -> LedgerRepository:
    repo = mocker.Mock()
    repo.add.side_effect = lambda currency, txn: replace(txn, id=10, currency=currency)
    repo.list_for_client.return_value = []
    return repo

@pytest.fixture
def renderer(mocker):
    return mocker.Mock()

@pytest.fixture
def importer(mocker):
    return mocker.Mock()

@pytest.fixture
def service(mock_clients, mock_ledger, renderer, importer) -> ClientLedgerService:
    return ClientLedgerService(
        mock_clients,
        mock_ledger,
        authorization=PinGate("2580"),
        renderer=renderer,
        importer=importer,
        clock=lambda: NOW,
    )

@pytest.fixture
def saved_transaction() -> Transaction:
    return Transaction(
        id=7,
        client_id=1,
        currency=Currency.KES,
        date=date(2024, 5, 1),
        description="Invoice",
        debit=Decimal("100"),
    )

@pytest.mark.unit
class TestEntryAmounts:

    @pytest.mark.parametrize("kind", [EntryKind.INVOICE, EntryKind.CHARGE, EntryKind.EXPENSE])
    def test_debit_kinds(self, kind):
        assert entry_amounts(kind, Decimal("5")) == (Decimal("5"), Decimal("0"))

    @pytest.mark.parametrize("kind", [EntryKind.PAYMENT, EntryKind.REFUND, EntryKind.CREDIT])
    def test_credit_kinds(self, kind):
        assert entry_amounts(kind, Decimal("5")) == (Decimal("0"), Decimal("5"))

    def test_negative_amount(self):
        with pytest.raises(ValidationError):
            entry_amounts(EntryKind.PAYMENT, Decimal("-1"))


@pytest.mark.unit
class TestClients:
    """Test client operations"""

    def test_create_client(self, service, mock_clients):
        new = Client(name="Bob", code="BB01")
        mock_clients.add.return_value = replace(new, id=2)

        saved = service.create_client(new)

        mock_clients.add.assert_called_once_with(new)
        assert saved.id == 2

    def test_create_client_requires_name_and_code(self, service, mock_clients):
        with pytest.raises(ValidationError):
            service.create_client(Client(name=" ", code="X"))
        mock_clients.add.assert_not_called()

    def test_get_missing_client(self, service):
        with pytest.raises(ClientNotFoundError):
            service.get_client(99)

    def test_update_client_info(self, service, mock_clients):
        mock_clients.update.return_value = 1

        updated = service.update_client_info(1, " Jane W. Doe ", "0722")

        assert updated.name == "Jane W. Doe"
        assert updated.phone == "0722"
        mock_clients.update.assert_called_once_with(updated)

    def test_update_client_zero_rows(self, service, mock_clients):
        mock_clients.update.return_value = 0

        with pytest.raises(PersistenceError):
            service.update_client_info(1, "Jane", None)


@pytest.mark.unit
class TestAddTransactions:
    """Test form and quick entries"""

    def test_add_invoice_is_debit(self, service, mock_ledger, mock_clients):
        # Act
        txn = service.add_transaction(
            client_id=1,
            currency=Currency.USD,
            kind=EntryKind.INVOICE,
            amount=Decimal("350"),
            description=" Shipping ",
            day=date(2024, 5, 2),
            reference_number="INV-9",
        )

        # Assert
        currency, saved = mock_ledger.add.call_args.args
        assert currency == Currency.USD
        assert saved.debit == Decimal("350")
        assert saved.credit == Decimal("0")
        assert saved.description == "Shipping"
        assert saved.reference_number == "INV-9"
        assert txn.id == 10
        mock_clients.touch_last_transaction.assert_called_once_with(1, NOW)

    def test_add_payment_is_credit(self, service, mock_ledger):
        service.add_transaction(1, Currency.KES, EntryKind.PAYMENT, Decimal("500"), "M-Pesa", date(2024, 5, 2))

        saved = mock_ledger.add.call_args.args[1]
        assert saved.credit == Decimal("500")
        assert saved.debit == Decimal("0")

    def test_add_for_missing_client(self, service, mock_ledger):
        with pytest.raises(ClientNotFoundError):
            service.add_transaction(99, Currency.KES, EntryKind.PAYMENT, Decimal("1"), "x", date(2024, 5, 2))
        mock_ledger.add.assert_not_called()

    def test_quick_add(self, service, mock_ledger):
        txn = service.quick_add(1, Currency.KES, date(2024, 5, 3), "Fuel MG", debit=Decimal("3500"))

        assert txn is not None
        saved = mock_ledger.add.call_args.args[1]
        assert saved.debit == Decimal("3500")
        assert saved.credit == Decimal("0")

    @pytest.mark.parametrize("description, credit, debit", [
        ("", Decimal("10"), None),
        ("   ", None, Decimal("10")),
        ("Something", None, None),
        ("Something", Decimal("0"), Decimal("0")),
    ])
    def test_quick_add_ignores_empty_rows(self, service, mock_ledger, mock_clients, description, credit, debit):
        result = service.quick_add(1, Currency.KES, date(2024, 5, 3), description, credit=credit, debit=debit)

        assert result is None
        mock_ledger.add.assert_not_called()
        mock_clients.touch_last_transaction.assert_not_called()


@pytest.mark.unit
class TestEditAndDelete:
    """Test PIN-guarded changes"""

    def test_edit_reloads_ledger(self, service, mock_ledger, saved_transaction):
        # Arrange
        edited = replace(saved_transaction, debit=Decimal("80"))
        mock_ledger.update.return_value = 1
        mock_ledger.list_for_client.side_effect = lambda currency, client_id: (
            [edited] if currency == Currency.KES else []
        )

        # Act
        ledger = service.edit_transaction(Currency.KES, edited, "2580")

        # Assert
        mock_ledger.update.assert_called_once_with(Currency.KES, edited)
        assert ledger.transactions_kes == [edited]
        assert ledger.summary_kes.balance == Decimal("-80")

    def test_edit_wrong_pin(self, service, mock_ledger, saved_transaction):
        with pytest.raises(AuthorizationError):
            service.edit_transaction(Currency.KES, saved_transaction, "0000")
        mock_ledger.update.assert_not_called()

    def test_edit_zero_rows_is_failure(self, service, mock_ledger, saved_transaction):
        mock_ledger.update.return_value = 0

        with pytest.raises(PersistenceError, match="Update blocked"):
            service.edit_transaction(Currency.KES, saved_transaction, "2580")
        mock_ledger.list_for_client.assert_not_called()

    def test_edit_unsaved_transaction(self, service, mock_ledger):
        with pytest.raises(ValidationError):
            service.edit_transaction(Currency.KES, Transaction(date=date(2024, 1, 1), description="x"), "2580")
        mock_ledger.update.assert_not_called()

    def test_delete(self, service, mock_ledger):
        mock_ledger.delete.return_value = True

        service.delete_transaction(Currency.USD, 7, "2580")

        mock_ledger.delete.assert_called_once_with(Currency.USD, 7)

    def test_delete_wrong_pin(self, service, mock_ledger):
        with pytest.raises(AuthorizationError):
            service.delete_transaction(Currency.USD, 7, None)
        mock_ledger.delete.assert_not_called()

    def test_delete_missing_row(self, service, mock_ledger):
        mock_ledger.delete.return_value = False

        with pytest.raises(TransactionNotFoundError):
            service.delete_transaction(Currency.KES, 7, "2580")


@pytest.mark.unit
class TestLedgerLoading:

    def test_load_ledger(self, service, mock_ledger, kes_transactions, usd_transactions):
        mock_ledger.list_for_client.side_effect = lambda currency, client_id: (
            kes_transactions if currency == Currency.KES else usd_transactions
        )

        ledger = service.load_ledger(1)

        assert ledger.client.code == "JD001"
        assert ledger.summary_usd.balance == Decimal("-150")
        assert ledger.mileage_count(Currency.KES) == 2
        assert ledger.balance_rows(Currency.KES)[0].balance == ledger.summary_kes.balance

    def test_load_missing_client(self, service):
        with pytest.raises(ClientNotFoundError):
            service.load_ledger(42)


@pytest.mark.unit
class TestStatementAndImport:

    def test_generate_statement(self, service, mock_ledger, renderer, usd_transactions, mocker):
        # Arrange
        mock_ledger.list_for_client.side_effect = lambda currency, client_id: (
            usd_transactions if currency == Currency.USD else []
        )
        callback = mocker.Mock()

        # Act
        service.generate_statement(1, ReportType.USD_ONLY, on_ready=callback)

        # Assert
        request = renderer.render.call_args.args[0]
        assert request.client.name == "Jane Doe"
        assert request.client.phone == "0712345678"
        assert request.report_type == ReportType.USD_ONLY
        assert request.summary_usd.paid == Decimal("200")
        assert request.generated_on == NOW.date()
        assert renderer.render.call_args.kwargs["on_ready"] is callback

    def test_import(self, service, importer, mock_ledger, mock_clients):
        # Arrange
        parsed = [Transaction(date=date(2024, 1, 1), description="Wire", credit=Decimal("5"))]
        importer.parse.return_value = parsed
        mock_ledger.add_many.side_effect = lambda currency, txns: txns

        # Act
        result = service.import_transactions(1, Currency.USD, Path("sheet.csv"))

        # Assert
        saved = mock_ledger.add_many.call_args.args[1]
        assert saved[0].client_id == 1
        assert saved[0].currency == Currency.USD
        assert result.new_transactions == 1
        assert result.total_parsed == 1
        mock_clients.touch_last_transaction.assert_called_once_with(1, NOW)

    def test_import_dry_run_doesnt_save(self, service, importer, mock_ledger):
        importer.parse.return_value = [Transaction(date=date(2024, 1, 1), description="Wire", credit=Decimal("5"))]

        result = service.import_transactions(1, Currency.KES, Path("sheet.csv"), dry_run=True)

        mock_ledger.add_many.assert_not_called()
        assert result.dry_run is True
        assert result.new_transactions == 1
        assert "Would import: 1" in str(result)
