"""
Ledger arithmetic: summaries, running balances and mileage counts.

Two balance views exist and must not be mixed up:

- ``running_balances`` walks oldest -> newest, the printed statement order.
- ``display_balances`` lists newest -> oldest, each row showing the balance
  as it stood after that row, so the top row is the current balance.
"""
import re
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List

from client_ledger.domain.models import BalanceRow, Summary, Transaction, ZERO

MILEAGE_PATTERN = re.compile(r"\bmg\b", re.IGNORECASE)


def _chronological_key(transaction: Transaction):
    # created_at breaks same-day ties; unknown creation keeps input order
    return (transaction.date, transaction.created_at or datetime.min)


def sort_chronologically(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Oldest first, stable on ties"""
    return sorted(transactions, key=_chronological_key)


def summarize(transactions: Iterable[Transaction]) -> Summary:
    """
    Sum credits and debits.

    Order does not matter and missing amounts count as zero.

    Returns:
        Summary with paid = sum(credit), receivable = sum(debit)
    """
    paid = ZERO
    receivable = ZERO
    for txn in transactions:
        paid += txn.credit_amount
        receivable += txn.debit_amount
    return Summary(paid=paid, receivable=receivable)


def running_balances(transactions: Iterable[Transaction]) -> List[BalanceRow]:
    """
    Annotate transactions with their running balance in ascending date order.

    The balance starts at zero and each row applies ``credit - debit``,
    so the last row's balance equals ``summarize(transactions).balance``.
    """
    balance = ZERO
    rows = []
    for txn in sort_chronologically(transactions):
        balance += txn.net
        rows.append(BalanceRow(transaction=txn, balance=balance))
    return rows


def display_balances(transactions: Iterable[Transaction]) -> List[BalanceRow]:
    """
    Newest-first rows for on-screen review.

    Each row's balance is the sum over that row and everything older, so the
    balance falls (or rises) as you scroll back in time.
    """
    newest_first = list(reversed(sort_chronologically(transactions)))

    balances: List[Decimal] = [ZERO] * len(newest_first)
    remaining = ZERO
    for index in range(len(newest_first) - 1, -1, -1):
        remaining += newest_first[index].net
        balances[index] = remaining

    return [
        BalanceRow(transaction=txn, balance=balance)
        for txn, balance in zip(newest_first, balances)
    ]


def count_mileage(transactions: Iterable[Transaction]) -> int:
    """Count descriptions containing the standalone word 'mg'"""
    return sum(
        1 for txn in transactions
        if MILEAGE_PATTERN.search(txn.description or "")
    )
