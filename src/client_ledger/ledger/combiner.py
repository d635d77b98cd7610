from dataclasses import dataclass, field, replace
from typing import List, Sequence, Tuple

from client_ledger.domain.models import ClientIdentity, Summary, Transaction
from client_ledger.exceptions import ValidationError
from client_ledger.ledger.aggregator import sort_chronologically, summarize

LedgerEntry = Tuple[ClientIdentity, Sequence[Transaction], Sequence[Transaction]]


@dataclass
class CombinedLedger:
    """
    Several clients' ledgers merged into one KES and one USD list.

    Descriptions carry the origin client's name so rows stay attributable
    once they are interleaved by date.
    """
    client: ClientIdentity
    transactions_kes: List[Transaction] = field(default_factory=list)
    transactions_usd: List[Transaction] = field(default_factory=list)
    summary_kes: Summary = field(default_factory=Summary)
    summary_usd: Summary = field(default_factory=Summary)

    @property
    def transaction_count(self) -> int:
        return len(self.transactions_kes) + len(self.transactions_usd)


def combined_display_name(names: Sequence[str]) -> str:
    """
    Example:
        >>> combined_display_name(["A", "B"])
        'A & B'
        >>> combined_display_name(["A", "B", "C", "D"])
        'A & B + 2 more'
    """
    if len(names) <= 2:
        return " & ".join(names)
    return f"{' & '.join(names[:2])} + {len(names) - 2} more"


def _tag(transaction: Transaction, client_name: str) -> Transaction:
    description = transaction.description or ""
    tagged = f"{client_name} - {description}" if description else client_name
    return replace(transaction, description=tagged)


def combine_clients(entries: Sequence[LedgerEntry]) -> CombinedLedger:
    """
    Merge per-client ledgers into a single combined ledger.

    Args:
        entries: (client, KES transactions, USD transactions) per client

    Returns:
        CombinedLedger with tagged copies sorted oldest first

    Raises:
        ValidationError: If no clients were given
    """
    if not entries:
        raise ValidationError("No clients provided for combined statement")

    all_kes: List[Transaction] = []
    all_usd: List[Transaction] = []

    for client, kes, usd in entries:
        all_kes.extend(_tag(t, client.name) for t in kes)
        all_usd.extend(_tag(t, client.name) for t in usd)

    combined_kes = sort_chronologically(all_kes)
    combined_usd = sort_chronologically(all_usd)

    identity = ClientIdentity(
        name=combined_display_name([client.name for client, _, _ in entries]),
        code=" + ".join(client.code for client, _, _ in entries),
    )

    return CombinedLedger(
        client=identity,
        transactions_kes=combined_kes,
        transactions_usd=combined_usd,
        summary_kes=summarize(combined_kes),
        summary_usd=summarize(combined_usd),
    )
