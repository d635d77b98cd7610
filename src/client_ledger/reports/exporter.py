import io
import logging
from datetime import date, datetime
from typing import Iterable, List, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from client_ledger.config.settings import Settings
from client_ledger.domain.enums import Currency, ReportType
from client_ledger.domain.models import ClientIdentity
from client_ledger.exceptions import DocumentGenerationError, ValidationError
from client_ledger.formatting.currency import format_currency, plain_number
from client_ledger.ledger.combiner import combine_clients
from client_ledger.reports import document as doc
from client_ledger.reports.analytics import AnalyticsReport, ReportSession, group_by_client
from client_ledger.reports.statement import DocumentCallback, StatementRenderer, StatementRequest

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
TITLE_BAND = 40 * mm

HEADING_STYLE = ParagraphStyle(
    "heading", fontName="Helvetica-Bold", fontSize=16, leading=20, spaceAfter=4 * mm,
)


def _csv_quote(text: str) -> str:
    return '"' + (text or "").replace('"', '""') + '"'


def _csv_field(text: str) -> str:
    """Quote only when the value would break the row"""
    text = text or ""
    if any(ch in text for ch in ',"\r\n'):
        return _csv_quote(text)
    return text


class ReportExporter:
    """
    Serializes an analytics report as PDF or CSV, and builds combined
    statements for a selection of its top clients.

    Usage:
        exporter = ReportExporter(settings)
        pdf = exporter.export_pdf(session)
        csv = exporter.export_csv(session.report)
    """

    def __init__(self, settings: Optional[Settings] = None, renderer: Optional[StatementRenderer] = None):
        self.settings = settings or Settings()
        self.renderer = renderer or StatementRenderer(self.settings)

    # ─── CSV ──────────────────────────────────────────────────────────────

    def csv_lines(self, report: AnalyticsReport, generated_at: datetime) -> List[str]:
        """
        Lines of the CSV export, in their fixed block order.

        Blocks: title, SUMMARY STATISTICS, TOP CLIENTS (if any),
        MONTHLY TRENDS (if any).
        """
        stats = report.stats
        lines = [
            f"{self.settings.brand} - Financial Report",
            f"Generated: {generated_at:%Y-%m-%d %H:%M:%S}",
            "",
            "SUMMARY STATISTICS",
            f"Total Clients,{stats.total_clients}",
            f"Active Clients,{stats.active_clients}",
            f"Inactive Clients,{stats.inactive_clients}",
            f"Total Transactions,{stats.total_transactions}",
            f"Total Balance (KES),{plain_number(stats.total_balance_kes)}",
            f"Total Balance (USD),{plain_number(stats.total_balance_usd)}",
            "",
        ]

        if report.top_clients:
            lines.append("TOP CLIENTS")
            lines.append("Client Name,Client Code,Balance (KES),Balance (USD),Transaction Count")
            for client in report.top_clients:
                lines.append(",".join([
                    _csv_quote(client.client_name),
                    _csv_field(client.client_code),
                    plain_number(client.total_balance_kes),
                    plain_number(client.total_balance_usd),
                    str(client.transaction_count),
                ]))
            lines.append("")

        if report.monthly_trends:
            lines.append("MONTHLY TRENDS")
            lines.append("Month,Transactions (KES),Transactions (USD),Balance (KES),Balance (USD)")
            for trend in report.monthly_trends:
                lines.append(",".join([
                    trend.month,
                    str(trend.transactions_kes),
                    str(trend.transactions_usd),
                    plain_number(trend.balance_kes),
                    plain_number(trend.balance_usd),
                ]))

        return lines

    def export_csv(self, report: AnalyticsReport, generated_at: Optional[datetime] = None) -> doc.RenderedDocument:
        generated_at = generated_at or datetime.now()
        try:
            text = "\n".join(self.csv_lines(report, generated_at)) + "\n"
        except Exception as e:
            logger.error("CSV export error: %s", e)
            raise DocumentGenerationError(f"Failed to export CSV: {e}") from e

        return doc.RenderedDocument(
            filename=f"{self.settings.brand}_Report_{generated_at.date().isoformat()}.csv",
            content=text.encode("utf-8"),
            mime_type=doc.CSV_MIME,
        )

    # ─── PDF ──────────────────────────────────────────────────────────────

    def export_pdf(self, session: ReportSession, generated_on: Optional[date] = None) -> doc.RenderedDocument:
        """
        Render the analytics report as a PDF.

        Raises:
            DocumentGenerationError: If the PDF could not be built
        """
        generated_on = generated_on or date.today()
        try:
            content = self._build_pdf(session, generated_on)
        except Exception as e:
            logger.error("Error generating PDF report: %s", e)
            raise DocumentGenerationError(f"Failed to generate PDF report: {e}") from e

        return doc.RenderedDocument(
            filename=f"{self.settings.brand}_Financial_Report_{generated_on.isoformat()}.pdf",
            content=content,
            mime_type=doc.PDF_MIME,
        )

    def _build_pdf(self, session: ReportSession, generated_on: date) -> bytes:
        report = session.report
        stats = report.stats
        buffer = io.BytesIO()
        template = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=14 * mm,
            rightMargin=14 * mm,
            topMargin=TITLE_BAND + 10 * mm,
            bottomMargin=18 * mm,
            title=f"{self.settings.brand} - Financial Report",
            author=self.settings.company_name,
            invariant=1,
        )

        summary_rows = [
            ["Metric", "Value"],
            ["Total Clients", str(stats.total_clients)],
            ["Active Clients", str(stats.active_clients)],
            ["Total Transactions", str(stats.total_transactions)],
            ["Balance (KES)", format_currency(stats.total_balance_kes, Currency.KES)],
            ["Balance (USD)", format_currency(stats.total_balance_usd, Currency.USD)],
        ]
        story = [
            Paragraph("Summary Statistics", HEADING_STYLE),
            self._table(summary_rows, [91 * mm, 91 * mm], striped=False),
        ]

        if report.top_clients:
            client_rows = [["Client Name", "Code", "Balance (KES)", "Balance (USD)", "Transactions"]]
            client_rows.extend(
                [
                    c.client_name,
                    c.client_code,
                    format_currency(c.total_balance_kes, Currency.KES),
                    format_currency(c.total_balance_usd, Currency.USD),
                    str(c.transaction_count),
                ]
                for c in report.top_clients
            )
            story.extend([
                Spacer(1, 10 * mm),
                Paragraph("Top 10 Clients", HEADING_STYLE),
                self._table(client_rows, [50 * mm, 26 * mm, 38 * mm, 38 * mm, 30 * mm], striped=True),
            ])

        title = f"{self.settings.brand} - Financial Report"
        period = f"Period: {session.label}"

        def title_band(canvas, _):
            canvas.saveState()
            canvas.setFillColor(doc.GREEN)
            canvas.rect(0, PAGE_HEIGHT - TITLE_BAND, PAGE_WIDTH, TITLE_BAND, stroke=0, fill=1)
            canvas.setFillColor(colors.white)
            canvas.setFont("Helvetica-Bold", 24)
            canvas.drawCentredString(PAGE_WIDTH / 2, PAGE_HEIGHT - 20 * mm, title)
            canvas.setFont("Helvetica", 10)
            canvas.drawCentredString(PAGE_WIDTH / 2, PAGE_HEIGHT - 30 * mm, period)
            canvas.restoreState()

        stamp = doc.display_date(generated_on)

        def footer(canvas, page: int, total: int):
            canvas.saveState()
            canvas.setFont("Helvetica", 8)
            canvas.setFillColor(colors.Color(128 / 255, 128 / 255, 128 / 255))
            canvas.drawCentredString(PAGE_WIDTH / 2, 10 * mm, f"Generated on {stamp} | Page {page} of {total}")
            canvas.restoreState()

        template.build(story, onFirstPage=title_band, canvasmaker=doc.numbered_canvas(footer))
        return buffer.getvalue()

    @staticmethod
    def _table(rows: list, widths: list, striped: bool) -> Table:
        table = Table(rows, colWidths=widths, repeatRows=1)
        commands = [
            ("FONT", (0, 0), (-1, -1), "Helvetica", 10),
            ("BACKGROUND", (0, 0), (-1, 0), doc.GREEN),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 10),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ]
        if not striped:
            commands.append(("GRID", (0, 0), (-1, -1), 0.3, doc.BORDER))
        for row in range(2, len(rows), 2):
            commands.append(("BACKGROUND", (0, row), (-1, row), doc.MINT))
        table.setStyle(TableStyle(commands))
        return table

    # ─── Combined statement ───────────────────────────────────────────────

    def export_combined(
        self,
        session: ReportSession,
        client_ids: Iterable[int],
        generated_on: Optional[date] = None,
        on_ready: Optional[DocumentCallback] = None,
    ) -> doc.RenderedDocument:
        """
        Combined 'full' statement for selected top clients of a session.

        Args:
            session: The analytics load the selection was made from
            client_ids: Selected top-client ids
            generated_on: Statement date, defaults to today
            on_ready: Passed through to the statement renderer

        Raises:
            ValidationError: If nothing is selected or nothing matches
        """
        selected_ids = set(client_ids)
        if not selected_ids:
            raise ValidationError("Select at least one top client to combine.")

        selected = [c for c in session.report.top_clients if c.client_id in selected_ids]
        if not selected:
            raise ValidationError("No transactions found for the selected clients.")

        kes_by_client = group_by_client(session.kes)
        usd_by_client = group_by_client(session.usd)

        combined = combine_clients([
            (
                ClientIdentity(name=c.client_name, code=c.client_code),
                kes_by_client.get(c.client_id, []),
                usd_by_client.get(c.client_id, []),
            )
            for c in selected
        ])

        request = StatementRequest(
            client=combined.client,
            transactions_kes=combined.transactions_kes,
            transactions_usd=combined.transactions_usd,
            summary_kes=combined.summary_kes,
            summary_usd=combined.summary_usd,
            report_type=ReportType.FULL,
            generated_on=generated_on or date.today(),
        )
        return self.renderer.render(request, on_ready=on_ready)
