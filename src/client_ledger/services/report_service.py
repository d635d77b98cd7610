import logging
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from client_ledger.config.settings import Settings
from client_ledger.delivery.base import Delivery, deliver
from client_ledger.delivery.filesystem import DirectoryDelivery
from client_ledger.domain.enums import Currency, ReportPeriod
from client_ledger.reports.analytics import ReportSession, bucketize, resolve_period
from client_ledger.reports.document import RenderedDocument
from client_ledger.reports.exporter import ReportExporter
from client_ledger.repositories.base import ClientRepository, LedgerRepository

logger = logging.getLogger(__name__)


class ReportService:
    """
    Analytics loads and report exports.

    ``load`` returns a ReportSession; the export methods take that session
    back so a combined statement reuses exactly the records the user saw.
    """

    def __init__(
        self,
        clients: ClientRepository,
        ledger: LedgerRepository,
        settings: Optional[Settings] = None,
        delivery: Optional[Delivery] = None,
        exporter: Optional[ReportExporter] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.clients = clients
        self.ledger = ledger
        self.settings = settings or Settings()
        self.delivery = delivery or DirectoryDelivery(self.settings.output_dir)
        self.exporter = exporter or ReportExporter(self.settings)
        self.clock = clock

    def load(
        self,
        period: ReportPeriod,
        custom_start: Optional[date] = None,
        custom_end: Optional[date] = None,
        today: Optional[date] = None,
    ) -> ReportSession:
        """
        Fetch the period's records and roll them up.

        Raises:
            ValidationError: If a custom period is incomplete. Nothing is
                fetched in that case.
        """
        today = today or self.clock().date()
        date_range = resolve_period(period, today, custom_start, custom_end)

        clients = self.clients.get_all()
        kes = self.ledger.list_in_range(Currency.KES, date_range.start, date_range.end)
        usd = self.ledger.list_in_range(Currency.USD, date_range.start, date_range.end)

        report = bucketize(date_range, clients, kes, usd, self.settings.kes_per_usd)
        logger.info(
            "Loaded report for %s: %d transactions across %d clients",
            date_range, report.stats.total_transactions, len(report.top_clients),
        )
        return ReportSession(period=period, report=report, kes=tuple(kes), usd=tuple(usd))

    def export_pdf(self, session: ReportSession) -> Optional[Path]:
        document = self.exporter.export_pdf(session, generated_on=self.clock().date())
        return self._deliver(document, "Financial Report")

    def export_csv(self, session: ReportSession) -> Optional[Path]:
        document = self.exporter.export_csv(session.report, generated_at=self.clock())
        return self._deliver(document, "Financial Report (CSV)")

    def export_combined(self, session: ReportSession, client_ids: Iterable[int]) -> RenderedDocument:
        """
        Combined statement for selected top clients, shared or downloaded.

        Raises:
            ValidationError: If the selection is empty or matches nothing
            DocumentGenerationError: If the PDF could not be built
        """
        ids = list(client_ids)
        selected = set(ids)
        count = sum(1 for c in session.report.top_clients if c.client_id in selected)

        def hand_over(document: RenderedDocument) -> None:
            self._deliver(
                document,
                "Combined Account Statement",
                f"{count} client{'s' if count > 1 else ''} - {self.settings.company_name}",
            )

        return self.exporter.export_combined(
            session, ids, generated_on=self.clock().date(), on_ready=hand_over,
        )

    def _deliver(self, document: RenderedDocument, title: str, text: str = "") -> Optional[Path]:
        return deliver(self.delivery, document, title, text)
