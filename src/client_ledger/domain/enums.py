from enum import Enum

class Currency(Enum):
    """The two independent ledgers every client owns"""
    KES = "KES"
    USD = "USD"

    @property
    def label(self) -> str:
        return "Kenyan Shillings" if self is Currency.KES else "US Dollars"

    @property
    def table(self) -> str:
        """Backing table for this currency's ledger"""
        return f"client_transactions_{self.value.lower()}"


class ClientStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    OTHER = "other"


class ReportType(Enum):
    """Which currency sections a statement includes"""
    FULL = "full"
    SUMMARY = "summary"
    KES_ONLY = "kes-only"
    USD_ONLY = "usd-only"

    def includes(self, currency: Currency) -> bool:
        if currency is Currency.KES:
            return self in (ReportType.FULL, ReportType.KES_ONLY, ReportType.SUMMARY)
        return self in (ReportType.FULL, ReportType.USD_ONLY)


class ExportFormat(Enum):
    PDF = "pdf"
    CSV = "csv"


class ReportPeriod(Enum):
    CURRENT = "current"
    LAST_3 = "last3"
    LAST_6 = "last6"
    YEAR = "year"
    CUSTOM = "custom"

    @property
    def label(self) -> str:
        return {
            ReportPeriod.CURRENT: "Current Month",
            ReportPeriod.LAST_3: "Last 3 Months",
            ReportPeriod.LAST_6: "Last 6 Months",
            ReportPeriod.YEAR: "This Year",
            ReportPeriod.CUSTOM: "Custom",
        }[self]


class EntryKind(Enum):
    """Form entry kinds; each one lands on the debit or the credit side"""
    INVOICE = "invoice"
    CHARGE = "charge"
    EXPENSE = "expense"
    PAYMENT = "payment"
    REFUND = "refund"
    CREDIT = "credit"

    @property
    def is_debit(self) -> bool:
        return self in (EntryKind.INVOICE, EntryKind.CHARGE, EntryKind.EXPENSE)
