import io
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from client_ledger.config.settings import Settings
from client_ledger.delivery.base import Delivery
from client_ledger.delivery.filesystem import DirectoryDelivery
from client_ledger.domain.enums import Currency, ReportType
from client_ledger.domain.models import ClientIdentity, Summary, Transaction
from client_ledger.exceptions import DocumentGenerationError
from client_ledger.formatting.currency import format_currency
from client_ledger.ledger.aggregator import count_mileage, running_balances
from client_ledger.reports import document as doc

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
HEADER_HEIGHT = 26 * mm

# Date, Description, Money IN, Money OUT, Balance -> 190mm on portrait A4
COLUMN_WIDTHS = [26 * mm, 62 * mm, 34 * mm, 34 * mm, 34 * mm]
COLUMNS = ["Date", "Description", "Money IN", "Money OUT", "Balance"]

SECTION_COLORS = {Currency.KES: doc.GREEN, Currency.USD: doc.BLUE}

DESCRIPTION_STYLE = ParagraphStyle(
    "description", fontName="Helvetica", fontSize=8.5, leading=10, textColor=doc.INK,
)
NOTICE_STYLE = ParagraphStyle(
    "notice", fontName="Helvetica-Oblique", fontSize=10, textColor=colors.Color(130 / 255, 130 / 255, 130 / 255),
)

DocumentCallback = Callable[[doc.RenderedDocument], None]


@dataclass
class StatementRequest:
    """Everything a statement needs, for one client or a combined set"""
    client: ClientIdentity
    transactions_kes: Sequence[Transaction] = field(default_factory=list)
    transactions_usd: Sequence[Transaction] = field(default_factory=list)
    summary_kes: Summary = field(default_factory=Summary)
    summary_usd: Summary = field(default_factory=Summary)
    report_type: ReportType = ReportType.FULL
    generated_on: date = field(default_factory=date.today)

    def transactions(self, currency: Currency) -> Sequence[Transaction]:
        return self.transactions_kes if currency is Currency.KES else self.transactions_usd

    def summary(self, currency: Currency) -> Summary:
        return self.summary_kes if currency is Currency.KES else self.summary_usd

    def sections(self) -> List[Currency]:
        """Currencies that are both selected and non-empty, KES first"""
        return [
            currency for currency in (Currency.KES, Currency.USD)
            if self.report_type.includes(currency) and self.transactions(currency)
        ]


def statement_filename(brand: str, client_code: str, generated_on: date) -> str:
    return f"{brand}_Statement_{client_code}_{generated_on.isoformat()}.pdf"


def mileage_label(count: int) -> str:
    return f"Mileage (MG) Count: {count} trip{'' if count == 1 else 's'}"


class StatementRenderer:
    """
    Renders account statements as paginated A4 PDFs.

    Layout:
    - Green header band with company, statement date and client identity
    - One table per included currency with a running balance column
    - BALANCE and mileage rows closing each table
    - Confidentiality line and 'Page X of Y' on every page

    Usage:
        renderer = StatementRenderer(settings)
        document = renderer.render(request)  # saved to settings.output_dir

        # Hand the PDF to someone else instead of saving it
        renderer.render(request, on_ready=lambda d: upload(d.content))
    """

    def __init__(self, settings: Optional[Settings] = None, delivery: Optional[Delivery] = None):
        self.settings = settings or Settings()
        self._delivery = delivery

    @property
    def delivery(self) -> Delivery:
        """Default delivery used when no callback is supplied"""
        if self._delivery is None:
            self._delivery = DirectoryDelivery(self.settings.output_dir)
        return self._delivery

    def render(
        self,
        request: StatementRequest,
        on_ready: Optional[DocumentCallback] = None,
    ) -> doc.RenderedDocument:
        """
        Build the statement and hand it over.

        Args:
            request: Client identity, transactions and summaries
            on_ready: Receives the finished document instead of the
                default download

        Returns:
            The rendered document

        Raises:
            DocumentGenerationError: If the PDF could not be built. Nothing
                is delivered in that case.
        """
        try:
            content = self._build(request)
        except Exception as e:
            logger.error("PDF generation error for %s: %s", request.client.code, e)
            raise DocumentGenerationError(f"PDF generation failed: {e}") from e

        document = doc.RenderedDocument(
            filename=statement_filename(self.settings.brand, request.client.code, request.generated_on),
            content=content,
            mime_type=doc.PDF_MIME,
        )

        if on_ready is not None:
            on_ready(document)
        else:
            self.delivery.download(document)

        return document

    def _build(self, request: StatementRequest) -> bytes:
        buffer = io.BytesIO()
        template = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=doc.MARGIN,
            rightMargin=doc.MARGIN,
            topMargin=HEADER_HEIGHT + 5 * mm,
            bottomMargin=14 * mm,
            title=f"Account Statement - {request.client.name}",
            author=self.settings.company_name,
            invariant=1,
        )

        story = []
        sections = request.sections()
        for currency in sections:
            story.extend(self._section(request, currency))
        if not sections:
            story.append(Spacer(1, 10 * mm))
            story.append(Paragraph("No transactions recorded.", NOTICE_STYLE))

        stamp = doc.display_date(request.generated_on)

        def header(canvas, _):
            self._paint_header(canvas, request.client, stamp)

        template.build(
            story,
            onFirstPage=header,
            canvasmaker=doc.numbered_canvas(self._footer_painter(stamp)),
        )
        return buffer.getvalue()

    def _section(self, request: StatementRequest, currency: Currency) -> list:
        transactions = request.transactions(currency)
        summary = request.summary(currency)
        head_color = SECTION_COLORS[currency]

        label = Paragraph(
            f"TRANSACTION HISTORY - {currency.value} ({currency.label})",
            ParagraphStyle(
                f"label-{currency.value}",
                fontName="Helvetica-Bold",
                fontSize=10,
                textColor=head_color,
                spaceAfter=2 * mm,
            ),
        )

        body = [
            [
                doc.display_date(row.transaction.date),
                Paragraph(escape(row.transaction.description or ""), DESCRIPTION_STYLE),
                format_currency(row.transaction.credit_amount, currency) if row.transaction.credit_amount > 0 else "-",
                format_currency(row.transaction.debit_amount, currency) if row.transaction.debit_amount > 0 else "-",
                format_currency(row.balance, currency),
            ]
            for row in running_balances(transactions)
        ]
        totals = [
            "",
            "BALANCE",
            format_currency(summary.paid, currency),
            format_currency(summary.receivable, currency),
            format_currency(summary.balance, currency),
        ]
        mileage = ["", mileage_label(count_mileage(transactions)), "", "", ""]

        data = [COLUMNS] + body + [totals, mileage]
        table = Table(data, colWidths=COLUMN_WIDTHS, repeatRows=1)
        table.setStyle(self._table_style(len(body), head_color, summary))

        return [label, table, Spacer(1, 6 * mm)]

    def _table_style(self, body_rows: int, head_color, summary: Summary) -> TableStyle:
        first_foot = body_rows + 1
        balance_color = doc.BALANCE_POSITIVE if summary.balance >= 0 else doc.BALANCE_NEGATIVE

        commands = [
            ("FONT", (0, 0), (-1, -1), "Helvetica", 8.5),
            ("TEXTCOLOR", (0, 0), (-1, -1), doc.INK),
            ("GRID", (0, 0), (-1, -1), 0.2, doc.BORDER),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("TOPPADDING", (0, 0), (-1, -1), 2),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
            # head
            ("BACKGROUND", (0, 0), (-1, 0), head_color),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 9),
            # body
            ("FONT", (0, 1), (0, first_foot - 1), "Helvetica-Bold", 8.5),
            ("ALIGN", (2, 1), (4, -1), "RIGHT"),
            ("FONT", (2, 1), (4, first_foot - 1), "Helvetica-Bold", 8.5),
            ("TEXTCOLOR", (2, 1), (2, first_foot - 1), doc.MONEY_IN),
            ("TEXTCOLOR", (3, 1), (3, first_foot - 1), doc.MONEY_OUT),
            ("TEXTCOLOR", (4, 1), (4, first_foot - 1), balance_color),
            # foot
            ("BACKGROUND", (0, first_foot), (-1, -1), doc.FOOT_BG),
            ("FONT", (0, first_foot), (-1, -1), "Helvetica-Bold", 9),
            ("LINEABOVE", (0, first_foot), (-1, first_foot), 0.3, doc.BORDER),
            ("SPAN", (1, -1), (-1, -1)),
        ]
        # alternate row shading
        for row in range(2, first_foot, 2):
            commands.append(("BACKGROUND", (0, row), (-1, row), doc.ZEBRA))

        return TableStyle(commands)

    def _paint_header(self, canvas, client: ClientIdentity, stamp: str) -> None:
        right = PAGE_WIDTH - doc.MARGIN
        top = PAGE_HEIGHT

        canvas.saveState()
        canvas.setFillColor(doc.GREEN)
        canvas.rect(0, top - HEADER_HEIGHT, PAGE_WIDTH, HEADER_HEIGHT, stroke=0, fill=1)

        canvas.setFillColor(colors.white)
        canvas.setFont("Helvetica-Bold", 15)
        canvas.drawString(doc.MARGIN, top - 10 * mm, self.settings.company_name.upper())

        canvas.setFont("Helvetica", 8.5)
        canvas.setFillColor(colors.Color(220 / 255, 1, 240 / 255))
        canvas.drawString(doc.MARGIN, top - 16 * mm, "ACCOUNT STATEMENT")
        canvas.setFont("Helvetica", 8)
        canvas.drawString(doc.MARGIN, top - 22 * mm, f"Date: {stamp}")

        canvas.setFillColor(colors.white)
        canvas.setFont("Helvetica-Bold", 9)
        canvas.drawRightString(right, top - 10 * mm, client.name)
        canvas.setFont("Helvetica", 8)
        canvas.setFillColor(colors.Color(220 / 255, 1, 240 / 255))
        canvas.drawRightString(right, top - 16 * mm, f"Account: {client.code}")
        if client.phone:
            canvas.drawRightString(right, top - 22 * mm, f"Tel: {client.phone}")
        canvas.restoreState()

    def _footer_painter(self, stamp: str) -> doc.FooterPainter:
        company = self.settings.company_name

        def paint(canvas, page: int, total: int) -> None:
            canvas.saveState()
            canvas.setStrokeColor(doc.BORDER)
            canvas.setLineWidth(0.3)
            canvas.line(doc.MARGIN, 8 * mm, PAGE_WIDTH - doc.MARGIN, 8 * mm)
            canvas.setFont("Helvetica", 8.5)
            canvas.setFillColor(doc.MUTED)
            canvas.drawString(doc.MARGIN, 4 * mm, f"{company} - Confidential")
            canvas.drawCentredString(PAGE_WIDTH / 2, 4 * mm, f"Page {page} of {total}")
            canvas.drawRightString(PAGE_WIDTH - doc.MARGIN, 4 * mm, stamp)
            canvas.restoreState()

        return paint
