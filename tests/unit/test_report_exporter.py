import pytest
from datetime import date, datetime
from decimal import Decimal

from client_ledger.domain.enums import ReportPeriod, ReportType
from client_ledger.domain.models import ClientRef, ClientTransaction, DateRange, Transaction
from client_ledger.exceptions import DocumentGenerationError, ValidationError
from client_ledger.reports.analytics import (
    AnalyticsReport,
    ClientStats,
    MonthlyTrend,
    ReportSession,
    TopClient,
)
from client_ledger.reports.exporter import ReportExporter

GENERATED_AT = datetime(2024, 6, 1, 14, 30, 5)

@pytest.fixture
def stats() -> ClientStats:
    return ClientStats(
        total_clients=5,
        active_clients=3,
        total_transactions=12,
        total_balance_kes=Decimal("10000"),
        total_balance_usd=Decimal("250"),
    )

@pytest.fixture
def report(stats) -> AnalyticsReport:
    return AnalyticsReport(
        date_range=DateRange(date(2024, 1, 1), date(2024, 6, 1)),
        stats=stats,
        top_clients=[
            TopClient(1, 'Acme "Best" Ltd', "AC01", Decimal("7500.50"), Decimal("200"), 8),
            TopClient(2, "Jane Doe", "JD01", Decimal("2499.50"), Decimal("50"), 4),
        ],
        monthly_trends=[
            MonthlyTrend("2024-01", 5, 1, Decimal("4000"), Decimal("100")),
            MonthlyTrend("2024-02", 6, 0, Decimal("6000"), Decimal("0")),
        ],
    )

@pytest.fixture
def renderer(mocker):
    return mocker.Mock()

@pytest.fixture
def exporter(settings, renderer) -> ReportExporter:
    return ReportExporter(settings, renderer)

@pytest.mark.unit
class TestCsvExport:
    """Test the flat CSV layout"""

    def test_summary_block(self, exporter: ReportExporter, stats: ClientStats):
        # Arrange
        report = AnalyticsReport(DateRange(date(2024, 1, 1), date(2024, 1, 31)), stats)

        # Act
        lines = exporter.csv_lines(report, GENERATED_AT)

        # Assert
        start = lines.index("SUMMARY STATISTICS")
        assert lines[start + 1:start + 7] == [
            "Total Clients,5",
            "Active Clients,3",
            "Inactive Clients,2",
            "Total Transactions,12",
            "Total Balance (KES),10000",
            "Total Balance (USD),250",
        ]

    def test_full_layout(self, exporter: ReportExporter, report: AnalyticsReport):
        lines = exporter.csv_lines(report, GENERATED_AT)

        assert lines == [
            "Dinix - Financial Report",
            "Generated: 2024-06-01 14:30:05",
            "",
            "SUMMARY STATISTICS",
            "Total Clients,5",
            "Active Clients,3",
            "Inactive Clients,2",
            "Total Transactions,12",
            "Total Balance (KES),10000",
            "Total Balance (USD),250",
            "",
            "TOP CLIENTS",
            "Client Name,Client Code,Balance (KES),Balance (USD),Transaction Count",
            '"Acme ""Best"" Ltd",AC01,7500.5,200,8',
            '"Jane Doe",JD01,2499.5,50,4',
            "",
            "MONTHLY TRENDS",
            "Month,Transactions (KES),Transactions (USD),Balance (KES),Balance (USD)",
            "2024-01,5,1,4000,100",
            "2024-02,6,0,6000,0",
        ]

    def test_client_codes_are_quoted_when_needed(self, exporter: ReportExporter, stats: ClientStats):
        # Arrange
        report = AnalyticsReport(
            DateRange(date(2024, 1, 1), date(2024, 1, 31)),
            stats,
            top_clients=[TopClient(1, "Acme", 'A,"1', Decimal("5"), Decimal("0"), 1)],
        )

        # Act
        lines = exporter.csv_lines(report, GENERATED_AT)

        # Assert
        row = lines[lines.index("TOP CLIENTS") + 2]
        assert row == '"Acme","A,""1",5,0,1'

    def test_empty_blocks_are_left_out(self, exporter: ReportExporter, stats: ClientStats):
        report = AnalyticsReport(DateRange(date(2024, 1, 1), date(2024, 1, 31)), stats)

        lines = exporter.csv_lines(report, GENERATED_AT)

        assert "TOP CLIENTS" not in lines
        assert "MONTHLY TRENDS" not in lines

    def test_document(self, exporter: ReportExporter, report: AnalyticsReport):
        document = exporter.export_csv(report, GENERATED_AT)

        assert document.filename == "Dinix_Report_2024-06-01.csv"
        assert document.mime_type == "text/csv"
        assert document.content.decode("utf-8").startswith("Dinix - Financial Report\nGenerated: ")
        assert document.content.endswith(b"2024-02,6,0,6000,0\n")


@pytest.mark.unit
class TestCombinedExport:
    """Test combined statements for selected top clients"""

    @pytest.fixture
    def session(self, report: AnalyticsReport) -> ReportSession:
        def owned(client_id, name, code, day, credit):
            return ClientTransaction(
                transaction=Transaction(date=day, description="sale", credit=Decimal(credit), client_id=client_id),
                client=ClientRef(client_id, name, code),
            )

        return ReportSession(
            period=ReportPeriod.YEAR,
            report=report,
            kes=(
                owned(1, 'Acme "Best" Ltd', "AC01", date(2024, 2, 1), "100"),
                owned(2, "Jane Doe", "JD01", date(2024, 1, 1), "50"),
            ),
            usd=(owned(2, "Jane Doe", "JD01", date(2024, 3, 1), "5"),),
        )

    def test_selected_clients_are_combined(self, exporter, renderer, session):
        # Act
        exporter.export_combined(session, [1, 2], generated_on=date(2024, 6, 1))

        # Assert
        request = renderer.render.call_args.args[0]
        assert request.report_type == ReportType.FULL
        assert request.client.code == "AC01 + JD01"
        assert request.client.name == 'Acme "Best" Ltd & Jane Doe'
        assert [t.description for t in request.transactions_kes] == ["Jane Doe - sale", 'Acme "Best" Ltd - sale']
        assert len(request.transactions_usd) == 1
        assert request.summary_kes.balance == Decimal("150")
        assert request.generated_on == date(2024, 6, 1)

    def test_only_selected_clients(self, exporter, renderer, session):
        exporter.export_combined(session, [2])

        request = renderer.render.call_args.args[0]
        assert request.client.code == "JD01"
        assert len(request.transactions_kes) == 1

    def test_callback_is_passed_through(self, exporter, renderer, session, mocker):
        callback = mocker.Mock()

        exporter.export_combined(session, [1], on_ready=callback)

        assert renderer.render.call_args.kwargs["on_ready"] is callback

    def test_empty_selection(self, exporter, renderer, session):
        with pytest.raises(ValidationError, match="Select at least one"):
            exporter.export_combined(session, [])
        renderer.render.assert_not_called()

    def test_unknown_selection(self, exporter, renderer, session):
        with pytest.raises(ValidationError, match="No transactions found"):
            exporter.export_combined(session, [99])
        renderer.render.assert_not_called()


@pytest.mark.unit
class TestPdfExportErrors:

    def test_build_failure_is_wrapped(self, exporter, report, mocker):
        # Arrange
        mocker.patch.object(ReportExporter, "_build_pdf", side_effect=RuntimeError("boom"))
        session = ReportSession(ReportPeriod.YEAR, report)

        # Act & Assert
        with pytest.raises(DocumentGenerationError, match="Failed to generate PDF report: boom"):
            exporter.export_pdf(session)
