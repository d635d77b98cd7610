"""
Service layer models - DTOs for service operations.

These models represent the results of service operations, not domain entities.
"""
from dataclasses import dataclass, field
from typing import List

from client_ledger.domain.enums import Currency
from client_ledger.domain.models import BalanceRow, Client, Summary, Transaction
from client_ledger.ledger.aggregator import count_mileage, display_balances, summarize

@dataclass
class ClientLedger:
    """
    A client with both currency ledgers as loaded from the store.

    Transaction lists are newest first, the order they are reviewed in.
    The object is a snapshot: edits produce a new one rather than
    patching this in place.
    """
    client: Client
    transactions_kes: List[Transaction] = field(default_factory=list)
    transactions_usd: List[Transaction] = field(default_factory=list)

    def transactions(self, currency: Currency) -> List[Transaction]:
        return self.transactions_kes if currency is Currency.KES else self.transactions_usd

    def summary(self, currency: Currency) -> Summary:
        return summarize(self.transactions(currency))

    @property
    def summary_kes(self) -> Summary:
        return self.summary(Currency.KES)

    @property
    def summary_usd(self) -> Summary:
        return self.summary(Currency.USD)

    def balance_rows(self, currency: Currency) -> List[BalanceRow]:
        """Newest-first rows with the balance as it stood after each one"""
        return display_balances(self.transactions(currency))

    def mileage_count(self, currency: Currency) -> int:
        return count_mileage(self.transactions(currency))


@dataclass
class ImportResult:
    """Result of importing a ledger sheet."""
    total_parsed: int
    imported: List[Transaction] = field(default_factory=list)
    filepath: str = ""
    currency: Currency = Currency.KES
    dry_run: bool = False

    @property
    def new_transactions(self) -> int:
        return len(self.imported)

    def __str__(self) -> str:
        "Human-readable summary"
        verb = "Would import" if self.dry_run else "Imported"
        return "\n".join([
            f"Import summary for {self.currency.value} ledger:",
            f" 📄 File: {self.filepath}",
            f" ✅ {verb}: {self.new_transactions}",
        ])
