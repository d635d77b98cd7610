from dataclasses import dataclass
from decimal import Decimal
from datetime import date, datetime
from typing import Optional
from client_ledger.domain.enums import ClientStatus, Currency

ZERO = Decimal("0")

@dataclass
class Transaction:
    """One entry in a single currency ledger"""
    date: date
    description: str
    debit: Optional[Decimal] = ZERO # money out, receivable grows
    credit: Optional[Decimal] = ZERO # money in, payment
    payment_method: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    currency: Optional[Currency] = None
    client_id: Optional[int] = None
    created_at: Optional[datetime] = None
    id: Optional[int] = None

    def __post_init__(self):
        for name in ("debit", "credit"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must not be negative, got {value}")

    @property
    def debit_amount(self) -> Decimal:
        """Debit with a missing value read as zero"""
        return Decimal(self.debit) if self.debit is not None else ZERO

    @property
    def credit_amount(self) -> Decimal:
        """Credit with a missing value read as zero"""
        return Decimal(self.credit) if self.credit is not None else ZERO

    @property
    def net(self) -> Decimal:
        """Signed contribution to the balance (credit - debit)"""
        return self.credit_amount - self.debit_amount

    def __repr__(self):
        return (
            f"Transaction({self.date}, {(self.description or '')[:30]}, "
            f"+{self.credit_amount}/-{self.debit_amount})"
        )


@dataclass
class Client:
    """A counterparty with a KES and a USD ledger"""
    name: str
    code: str
    email: Optional[str] = None
    phone: Optional[str] = None
    business_name: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    status: ClientStatus = ClientStatus.ACTIVE
    created_at: Optional[datetime] = None
    last_transaction_date: Optional[datetime] = None
    id: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status == ClientStatus.ACTIVE

    def identity(self) -> "ClientIdentity":
        return ClientIdentity(name=self.name, code=self.code, phone=self.phone)


@dataclass(frozen=True)
class ClientIdentity:
    """What a statement header needs to know about its client"""
    name: str
    code: str
    phone: Optional[str] = None


@dataclass(frozen=True)
class Summary:
    """Aggregate over a transaction set: paid, receivable, balance"""
    paid: Decimal = ZERO
    receivable: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        return self.paid - self.receivable

    def __add__(self, other: "Summary") -> "Summary":
        return Summary(
            paid=self.paid + other.paid,
            receivable=self.receivable + other.receivable,
        )


@dataclass(frozen=True)
class BalanceRow:
    """A transaction together with the running balance after it"""
    transaction: Transaction
    balance: Decimal


@dataclass(frozen=True)
class ClientRef:
    """Owning client of a transaction, as returned by joined queries"""
    id: int
    name: str
    code: str


@dataclass(frozen=True)
class ClientTransaction:
    """Transaction annotated with its owning client"""
    transaction: Transaction
    client: ClientRef


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range"""
    start: date
    end: date

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end

    def __str__(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"
