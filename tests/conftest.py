import pytest
from datetime import date, datetime
from decimal import Decimal
from typing import List

from client_ledger.config.settings import Settings
from client_ledger.domain.models import Client, ClientIdentity, Transaction

@pytest.fixture
def settings(tmp_path) -> Settings:
    """Default settings writing into a temp directory"""
    return Settings(output_dir=tmp_path / "exports", database_path=tmp_path / "ledger.db")

@pytest.fixture
def identity() -> ClientIdentity:
    """Statement header identity for one client"""
    return ClientIdentity(name="Jane Doe", code="JD001", phone="0712345678")

@pytest.fixture
def client() -> Client:
    """A saved active client"""
    return Client(id=1, name="Jane Doe", code="JD001", phone="0712345678")

@pytest.fixture
def kes_transactions() -> List[Transaction]:
    """KES ledger, deliberately not in date order"""
    return [
        Transaction(
            date=date(2024, 1, 20),
            description="Payment received",
            credit=Decimal("5000"),
            created_at=datetime(2024, 1, 20, 9, 0),
            id=3,
        ),
        Transaction(
            date=date(2024, 1, 5),
            description="Nairobi - Mombasa MG",
            debit=Decimal("12000"),
            created_at=datetime(2024, 1, 5, 8, 0),
            id=1,
        ),
        Transaction(
            date=date(2024, 1, 10),
            description="Fuel top-up mg",
            debit=Decimal("3500.50"),
            created_at=datetime(2024, 1, 10, 8, 0),
            id=2,
        ),
    ]

@pytest.fixture
def usd_transactions() -> List[Transaction]:
    """USD ledger"""
    return [
        Transaction(date=date(2024, 1, 8), description="Wire", credit=Decimal("200")),
        Transaction(date=date(2024, 1, 15), description="Shipping invoice", debit=Decimal("350")),
    ]
