import pytest
from datetime import date, datetime
from decimal import Decimal

from client_ledger.database.connection import DatabaseConfig, DatabaseManager, execute_schema
from client_ledger.domain.enums import ClientStatus, Currency
from client_ledger.domain.models import Client, Transaction
from client_ledger.exceptions import DuplicateClientError, PersistenceError
from client_ledger.repositories.sqlite_client_repository import SQLiteClientRepository
from client_ledger.repositories.sqlite_ledger_repository import SQLiteLedgerRepository

@pytest.fixture
def test_db(tmp_path):
    """
    Create a real test database.

    Use pytest's tmp_path fixture to create a temporary directory.
    """
    db_manager = DatabaseManager(DatabaseConfig(tmp_path / "test.db"))
    execute_schema(db_manager.get_connection())

    yield db_manager

    db_manager.close()

@pytest.fixture
def clients(test_db) -> SQLiteClientRepository:
    return SQLiteClientRepository(test_db)

@pytest.fixture
def ledger(test_db) -> SQLiteLedgerRepository:
    return SQLiteLedgerRepository(test_db)

@pytest.fixture
def jane(clients) -> Client:
    return clients.add(Client(name="Jane Doe", code="JD001", phone="0712345678"))

@pytest.fixture
def bob(clients) -> Client:
    return clients.add(Client(name="bob", code="BB001", status=ClientStatus.INACTIVE))

def txn(client: Client, day: date, description: str, credit="0", debit="0", created_at=None) -> Transaction:
    return Transaction(
        client_id=client.id,
        date=day,
        description=description,
        credit=Decimal(credit),
        debit=Decimal(debit),
        created_at=created_at,
    )

@pytest.mark.integration
class TestSQLiteClientRepository:
    """Client persistence against a real temp db"""

    def test_add_assigns_id(self, jane):
        assert jane.id is not None
        assert jane.created_at is not None

    def test_round_trip(self, clients, jane):
        loaded = clients.get_by_id(jane.id)

        assert loaded.name == "Jane Doe"
        assert loaded.phone == "0712345678"
        assert loaded.status == ClientStatus.ACTIVE
        assert isinstance(loaded.created_at, datetime)

    def test_duplicate_code(self, clients, jane):
        with pytest.raises(DuplicateClientError):
            clients.add(Client(name="Other", code="JD001"))

    def test_get_all_sorted_by_name(self, clients, jane, bob):
        assert [c.code for c in clients.get_all()] == ["BB001", "JD001"]
        assert [c.code for c in clients.get_all(ClientStatus.ACTIVE)] == ["JD001"]

    def test_update_returns_row_count(self, clients, jane):
        jane.name = "Jane W. Doe"

        assert clients.update(jane) == 1
        assert clients.get_by_id(jane.id).name == "Jane W. Doe"

    def test_update_missing_client(self, clients):
        assert clients.update(Client(id=999, name="Ghost", code="GH")) == 0

    def test_touch_last_transaction(self, clients, jane):
        when = datetime(2024, 6, 1, 10, 30)

        clients.touch_last_transaction(jane.id, when)

        assert clients.get_by_id(jane.id).last_transaction_date == when


@pytest.mark.integration
class TestSQLiteLedgerRepository:
    """Ledger persistence against a real temp db"""

    def test_add_returns_saved_copy(self, ledger, jane):
        original = txn(jane, date(2024, 1, 5), "Payment", credit="1000")

        saved = ledger.add(Currency.KES, original)

        assert saved.id is not None
        assert saved.currency == Currency.KES
        assert saved.created_at is not None
        assert original.id is None

    def test_decimal_precision_preserved(self, ledger, jane):
        amounts = [Decimal("0.01"), Decimal("1234567.89"), Decimal("19.95"), Decimal("0.33")]

        for amount in amounts:
            ledger.add(Currency.USD, txn(jane, date(2024, 1, 5), "x", debit=str(amount)))

        loaded = ledger.list_for_client(Currency.USD, jane.id)
        assert sorted(t.debit for t in loaded) == sorted(amounts)

    def test_currencies_are_separate(self, ledger, jane):
        ledger.add(Currency.KES, txn(jane, date(2024, 1, 5), "kes", credit="1"))
        ledger.add(Currency.USD, txn(jane, date(2024, 1, 5), "usd", credit="1"))

        assert [t.description for t in ledger.list_for_client(Currency.KES, jane.id)] == ["kes"]
        assert [t.description for t in ledger.list_for_client(Currency.USD, jane.id)] == ["usd"]

    def test_list_newest_first(self, ledger, jane):
        # Arrange
        ledger.add(Currency.KES, txn(jane, date(2024, 1, 5), "old"))
        ledger.add(Currency.KES, txn(jane, date(2024, 2, 5), "new morning", created_at=datetime(2024, 2, 5, 8)))
        ledger.add(Currency.KES, txn(jane, date(2024, 2, 5), "new evening", created_at=datetime(2024, 2, 5, 20)))

        # Act
        loaded = ledger.list_for_client(Currency.KES, jane.id)

        # Assert
        assert [t.description for t in loaded] == ["new evening", "new morning", "old"]
        assert all(t.date.__class__ is date for t in loaded)

    def test_list_date_filter(self, ledger, jane):
        for day in (date(2024, 1, 1), date(2024, 1, 15), date(2024, 2, 1)):
            ledger.add(Currency.KES, txn(jane, day, str(day)))

        loaded = ledger.list_for_client(Currency.KES, jane.id, date(2024, 1, 10), date(2024, 1, 31))

        assert [t.date for t in loaded] == [date(2024, 1, 15)]

    def test_list_in_range_carries_client(self, ledger, jane, bob):
        # Arrange
        ledger.add(Currency.KES, txn(jane, date(2024, 1, 5), "jane", credit="10"))
        ledger.add(Currency.KES, txn(bob, date(2024, 1, 6), "bob", debit="3"))
        ledger.add(Currency.KES, txn(bob, date(2023, 12, 31), "too old"))

        # Act
        records = ledger.list_in_range(Currency.KES, date(2024, 1, 1), date(2024, 1, 31))

        # Assert
        assert [(r.client.code, r.transaction.description) for r in records] == [
            ("BB001", "bob"),
            ("JD001", "jane"),
        ]
        assert records[1].client.name == "Jane Doe"
        assert records[1].client.id == jane.id

    def test_add_many(self, ledger, jane):
        saved = ledger.add_many(Currency.USD, [
            txn(jane, date(2024, 1, 1), "a"),
            txn(jane, date(2024, 1, 2), "b"),
        ])

        assert len({t.id for t in saved}) == 2
        assert len(ledger.list_for_client(Currency.USD, jane.id)) == 2

    def test_add_many_is_all_or_nothing(self, ledger, jane):
        with pytest.raises(ValueError):
            ledger.add_many(Currency.USD, [
                txn(jane, date(2024, 1, 1), "a"),
                Transaction(date=date(2024, 1, 2), description="no client"),
            ])

        assert ledger.list_for_client(Currency.USD, jane.id) == []

    def test_update(self, ledger, jane):
        saved = ledger.add(Currency.KES, txn(jane, date(2024, 1, 5), "Invoice", debit="100"))
        saved.debit = Decimal("80")
        saved.description = "Invoice (corrected)"

        assert ledger.update(Currency.KES, saved) == 1

        loaded = ledger.get_by_id(Currency.KES, saved.id)
        assert loaded.debit == Decimal("80")
        assert loaded.description == "Invoice (corrected)"

    def test_update_missing_row(self, ledger, jane):
        ghost = txn(jane, date(2024, 1, 5), "ghost")
        ghost.id = 999

        assert ledger.update(Currency.KES, ghost) == 0

    def test_delete(self, ledger, jane):
        saved = ledger.add(Currency.KES, txn(jane, date(2024, 1, 5), "x"))

        assert ledger.delete(Currency.KES, saved.id) is True
        assert ledger.delete(Currency.KES, saved.id) is False
        assert ledger.get_by_id(Currency.KES, saved.id) is None

    def test_unknown_client_is_a_persistence_error(self, ledger):
        orphan = Transaction(client_id=999, date=date(2024, 1, 1), description="orphan")

        with pytest.raises(PersistenceError):
            ledger.add(Currency.KES, orphan)
