"""
Analytics over a reporting period: client stats, top clients, monthly trends.

Every function here is pure; fetching the records is the caller's job.
"""
import calendar
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from client_ledger.domain.enums import Currency, ReportPeriod
from client_ledger.domain.models import Client, ClientTransaction, DateRange, ZERO
from client_ledger.exceptions import ValidationError

TOP_CLIENT_LIMIT = 10


@dataclass
class ClientStats:
    total_clients: int = 0
    active_clients: int = 0
    total_transactions: int = 0
    total_balance_kes: Decimal = ZERO
    total_balance_usd: Decimal = ZERO

    @property
    def inactive_clients(self) -> int:
        return self.total_clients - self.active_clients


@dataclass
class TopClient:
    """Per-client rollup over the reporting period"""
    client_id: int
    client_name: str
    client_code: str
    total_balance_kes: Decimal = ZERO
    total_balance_usd: Decimal = ZERO
    transaction_count: int = 0

    def rank_value(self, kes_per_usd: Decimal) -> Decimal:
        """Sort-only composite; never shown to the user"""
        return self.total_balance_kes + self.total_balance_usd * kes_per_usd


@dataclass
class MonthlyTrend:
    month: str # YYYY-MM
    transactions_kes: int = 0
    transactions_usd: int = 0
    balance_kes: Decimal = ZERO
    balance_usd: Decimal = ZERO


@dataclass
class AnalyticsReport:
    date_range: DateRange
    stats: ClientStats
    top_clients: List[TopClient] = field(default_factory=list)
    monthly_trends: List[MonthlyTrend] = field(default_factory=list)


def months_back(day: date, months: int) -> date:
    """Same day ``months`` calendar months earlier, clamped to month length"""
    total = day.year * 12 + (day.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def resolve_period(
    period: ReportPeriod,
    today: date,
    custom_start: Optional[date] = None,
    custom_end: Optional[date] = None,
) -> DateRange:
    """
    Turn a period preset into an inclusive date range ending today.

    Raises:
        ValidationError: If a custom range is missing a bound or is reversed
    """
    if period == ReportPeriod.CURRENT:
        return DateRange(today.replace(day=1), today)
    if period == ReportPeriod.LAST_3:
        return DateRange(months_back(today, 3), today)
    if period == ReportPeriod.LAST_6:
        return DateRange(months_back(today, 6), today)
    if period == ReportPeriod.YEAR:
        return DateRange(date(today.year, 1, 1), today)

    if custom_start is None or custom_end is None:
        raise ValidationError("A custom period needs both a start and an end date")
    if custom_start > custom_end:
        raise ValidationError(
            f"Start date {custom_start} is after end date {custom_end}"
        )
    return DateRange(custom_start, custom_end)


def period_label(period: ReportPeriod, date_range: DateRange) -> str:
    if period == ReportPeriod.CUSTOM:
        return str(date_range)
    return period.label


def bucketize(
    date_range: DateRange,
    clients: Sequence[Client],
    kes: Iterable[ClientTransaction],
    usd: Iterable[ClientTransaction],
    kes_per_usd: Decimal,
) -> AnalyticsReport:
    """
    Roll transactions in ``date_range`` up by client and by month.

    Args:
        date_range: Inclusive reporting range
        clients: Every client of the user, for the active/inactive counts
        kes: KES transactions annotated with their owning client
        usd: USD transactions annotated with their owning client
        kes_per_usd: Weight of USD amounts in the top-client ranking

    Returns:
        AnalyticsReport with top 10 clients and month-ascending trends
    """
    stats = ClientStats(
        total_clients=len(clients),
        active_clients=sum(1 for c in clients if c.is_active),
    )
    by_client: Dict[int, TopClient] = {}
    by_month: Dict[str, MonthlyTrend] = {}

    for currency, records in ((Currency.KES, kes), (Currency.USD, usd)):
        for record in records:
            txn = record.transaction
            if txn.date not in date_range:
                continue

            net = txn.net
            stats.total_transactions += 1

            top = by_client.get(record.client.id)
            if top is None:
                top = by_client[record.client.id] = TopClient(
                    client_id=record.client.id,
                    client_name=record.client.name,
                    client_code=record.client.code,
                )
            top.transaction_count += 1

            month = txn.date.strftime("%Y-%m")
            trend = by_month.get(month)
            if trend is None:
                trend = by_month[month] = MonthlyTrend(month=month)

            if currency is Currency.KES:
                stats.total_balance_kes += net
                top.total_balance_kes += net
                trend.transactions_kes += 1
                trend.balance_kes += net
            else:
                stats.total_balance_usd += net
                top.total_balance_usd += net
                trend.transactions_usd += 1
                trend.balance_usd += net

    top_clients = sorted(
        by_client.values(),
        key=lambda c: c.rank_value(kes_per_usd),
        reverse=True,
    )[:TOP_CLIENT_LIMIT]

    return AnalyticsReport(
        date_range=date_range,
        stats=stats,
        top_clients=top_clients,
        monthly_trends=sorted(by_month.values(), key=lambda t: t.month),
    )


def group_by_client(records: Iterable[ClientTransaction]) -> Dict[int, list]:
    """Transactions per owning client id, input order kept"""
    grouped = defaultdict(list)
    for record in records:
        grouped[record.client.id].append(record.transaction)
    return dict(grouped)


@dataclass(frozen=True)
class ReportSession:
    """
    Result of one analytics load, kept for follow-up exports.

    The raw records travel with the report so a combined statement for
    selected top clients can be built without fetching again.
    """
    period: ReportPeriod
    report: AnalyticsReport
    kes: Sequence[ClientTransaction] = ()
    usd: Sequence[ClientTransaction] = ()

    @property
    def label(self) -> str:
        return period_label(self.period, self.report.date_range)
