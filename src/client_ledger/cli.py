import typer
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from client_ledger.auth.gate import PinGate
from client_ledger.config.settings import ConfigLoader, Settings
from client_ledger.database.connection import DatabaseConfig, DatabaseManager, execute_schema
from client_ledger.delivery.filesystem import DirectoryDelivery
from client_ledger.domain.enums import ClientStatus, Currency, EntryKind, ExportFormat, ReportPeriod, ReportType
from client_ledger.domain.models import Client
from client_ledger.exceptions import ValidationError
from client_ledger.formatting.currency import format_currency
from client_ledger.logging_config import configure_logging
from client_ledger.reports.exporter import ReportExporter
from client_ledger.reports.statement import StatementRenderer
from client_ledger.repositories.sqlite_client_repository import SQLiteClientRepository
from client_ledger.repositories.sqlite_ledger_repository import SQLiteLedgerRepository
from client_ledger.services.ledger_service import ClientLedgerService
from client_ledger.services.report_service import ReportService

app = typer.Typer(
    name="client-ledger",
    help="Keep KES and USD ledgers for your clients",
    add_completion=False,
)
client_app = typer.Typer(help="Manage clients")
txn_app = typer.Typer(help="Record and correct transactions")
report_app = typer.Typer(help="Analytics and report exports")
app.add_typer(client_app, name="client")
app.add_typer(txn_app, name="txn")
app.add_typer(report_app, name="report")

console = Console()

DATE_FORMATS = ["%Y-%m-%d"]

class State:
    verbose: bool = False
    settings: Optional[Settings] = None
    db_manager: Optional[DatabaseManager] = None
    ledger_service: Optional[ClientLedgerService] = None
    report_service: Optional[ReportService] = None


state = State()

@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    )
):
    """
    Client Ledger - Track what clients owe and have paid, in KES and USD.
    """

    if state.ledger_service is None:
        settings = ConfigLoader.load_settings()
        configure_logging("DEBUG" if verbose else settings.log_level)

        db_manager = DatabaseManager(DatabaseConfig(settings.database_path))
        execute_schema(db_manager.get_connection())

        clients = SQLiteClientRepository(db_manager)
        ledger = SQLiteLedgerRepository(db_manager)
        delivery = DirectoryDelivery(settings.output_dir)
        renderer = StatementRenderer(settings, delivery)

        state.settings = settings
        state.db_manager = db_manager
        state.ledger_service = ClientLedgerService(
            clients,
            ledger,
            authorization=PinGate(settings.pin),
            renderer=renderer,
        )
        state.report_service = ReportService(
            clients,
            ledger,
            settings=settings,
            delivery=delivery,
            exporter=ReportExporter(settings, renderer),
        )

    state.verbose = verbose


def _fail(e: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {e}")
    if state.verbose:
        console.print_exception()
    raise typer.Exit(code=1)


def _amount(text: Optional[str]) -> Optional[Decimal]:
    if text is None or text.strip() == "":
        return None
    try:
        return Decimal(text.replace(",", "").strip())
    except InvalidOperation as e:
        raise ValidationError(f"Not a valid amount: {text}") from e


def _day(value: Optional[datetime]) -> date:
    return value.date() if value else date.today()


def _money(amount: Decimal, currency: Currency, color: str) -> str:
    if amount == 0:
        return "[dim]-[/dim]"
    return f"[{color}]{format_currency(amount, currency)}[/{color}]"


# ─── init-db ──────────────────────────────────────────────────────────────

@app.command(name="init-db")
def init_db():
    """
    Create the database schema if it is missing.

    Examples:
        client-ledger init-db
    """
    try:
        conn = state.db_manager.get_connection()
        row = conn.execute(
            "SELECT version, description FROM schema_version ORDER BY version DESC LIMIT 1"
        ).fetchone()

        console.print(f"[bold green]✓ Database ready[/bold green] at {state.db_manager.config.db_path}")
        if row:
            console.print(f"  Schema version: {row['version']}")
            console.print(f"  Description: {row['description']}")

    except Exception as e:
        _fail(e)


# ─── client ───────────────────────────────────────────────────────────────

@client_app.command(name="add")
def client_add(
    name: str = typer.Argument(..., help="Client name"),
    code: str = typer.Argument(..., help="Unique short client code"),
    phone: Optional[str] = typer.Option(None, "--phone", help="Phone number"),
    email: Optional[str] = typer.Option(None, "--email", help="Email address"),
    business_name: Optional[str] = typer.Option(None, "--business", help="Business name"),
    status: ClientStatus = typer.Option(ClientStatus.ACTIVE, "--status", help="Client status"),
):
    """
    Register a new client.

    Examples:
        client-ledger client add "Jane Doe" JD001 --phone 0712345678
    """
    try:
        client = state.ledger_service.create_client(Client(
            name=name,
            code=code,
            phone=phone,
            email=email,
            business_name=business_name,
            status=status,
        ))
        console.print(f"[bold green]✓ Added client[/bold green] {client.name} ({client.code}) with id {client.id}")

    except Exception as e:
        _fail(e)


@client_app.command(name="list")
def client_list():
    """
    List all clients.

    Examples:
        client-ledger client list
    """
    try:
        clients = state.ledger_service.list_clients()
        if not clients:
            console.print(Panel(
                "[yellow]No clients yet. Add one with 'client add'.[/yellow]",
                title="Clients",
                border_style="yellow"
            ))
            return

        table = Table(title="Clients")
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Code", style="magenta")
        table.add_column("Phone")
        table.add_column("Status")
        table.add_column("Last Transaction", style="dim")

        for client in clients:
            status_color = "green" if client.is_active else "yellow"
            table.add_row(
                str(client.id),
                client.name,
                client.code,
                client.phone or "",
                f"[{status_color}]{client.status.value}[/{status_color}]",
                client.last_transaction_date.strftime("%Y-%m-%d") if client.last_transaction_date else "",
            )

        console.print(table)

    except Exception as e:
        _fail(e)


@client_app.command(name="show")
def client_show(
    client_id: int = typer.Argument(..., help="Client id"),
    limit: int = typer.Option(20, "--limit", "-n", help="Rows to show per currency"),
):
    """
    Show a client's balances and recent transactions.

    Examples:
        client-ledger client show 3
        client-ledger client show 3 --limit 50
    """
    try:
        ledger = state.ledger_service.load_ledger(client_id)
        client = ledger.client

        summary_text = f"[bold]{client.name}[/bold] ({client.code})\n"
        if client.phone:
            summary_text += f"Phone: {client.phone}\n"
        for currency in Currency:
            summary = ledger.summary(currency)
            color = "green" if summary.balance >= 0 else "red"
            summary_text += (
                f"\n[bold]{currency.value}[/bold]  "
                f"Paid {format_currency(summary.paid, currency)}  "
                f"Receivable {format_currency(summary.receivable, currency)}  "
                f"[{color}]Balance {format_currency(summary.balance, currency)}[/{color}]"
            )

        console.print(Panel(summary_text, title="[bold]Client Summary[/bold]", border_style="cyan", padding=(1, 2)))

        for currency in Currency:
            rows = ledger.balance_rows(currency)
            if not rows:
                continue

            table = Table(title=f"{currency.value} Transactions", padding=(0, 1))
            table.add_column("ID", justify="right", style="dim")
            table.add_column("Date", style="cyan", width=12)
            table.add_column("Description", max_width=40)
            table.add_column("Money IN", justify="right")
            table.add_column("Money OUT", justify="right")
            table.add_column("Balance", justify="right")

            for row in rows[:limit]:
                txn = row.transaction
                balance_color = "green" if row.balance >= 0 else "red"
                table.add_row(
                    str(txn.id),
                    str(txn.date),
                    txn.description,
                    _money(txn.credit_amount, currency, "green"),
                    _money(txn.debit_amount, currency, "red"),
                    f"[{balance_color}]{format_currency(row.balance, currency)}[/{balance_color}]",
                )

            console.print(table)
            console.print(f"[dim]Mileage (MG) trips: {ledger.mileage_count(currency)}[/dim]")
            if len(rows) > limit:
                console.print(f"[dim]Showing {limit} of {len(rows)} transactions[/dim]")

    except Exception as e:
        _fail(e)


@client_app.command(name="edit")
def client_edit(
    client_id: int = typer.Argument(..., help="Client id"),
    name: str = typer.Option(..., "--name", help="New display name"),
    phone: Optional[str] = typer.Option(None, "--phone", help="New phone number"),
):
    """
    Change a client's name and phone.

    Examples:
        client-ledger client edit 3 --name "Jane W. Doe" --phone 0722000000
    """
    try:
        client = state.ledger_service.update_client_info(client_id, name, phone)
        console.print(f"[bold green]✓ Client updated successfully[/bold green]: {client.name}")

    except Exception as e:
        _fail(e)


# ─── txn ──────────────────────────────────────────────────────────────────

@txn_app.command(name="add")
def txn_add(
    client_id: int = typer.Argument(..., help="Client id"),
    kind: EntryKind = typer.Argument(..., help="Entry kind"),
    amount: str = typer.Argument(..., help="Amount, e.g. 1500 or 1,500.50"),
    description: str = typer.Argument(..., help="Description"),
    currency: Currency = typer.Option(Currency.KES, "--currency", "-c", help="Ledger currency"),
    day: Optional[datetime] = typer.Option(None, "--date", "-d", formats=DATE_FORMATS, help="Date (YYYY-MM-DD), defaults to today"),
    payment_method: Optional[str] = typer.Option(None, "--method", help="Payment method"),
    reference: Optional[str] = typer.Option(None, "--ref", help="Reference number"),
    notes: Optional[str] = typer.Option(None, "--notes", help="Notes"),
):
    """
    Record an invoice, charge, expense, payment, refund or credit.

    Examples:
        client-ledger txn add 3 invoice 12000 "Nairobi - Mombasa MG"
        client-ledger txn add 3 payment 500 "Wire" --currency USD --date 2025-03-01
    """
    try:
        txn = state.ledger_service.add_transaction(
            client_id=client_id,
            currency=currency,
            kind=kind,
            amount=_amount(amount),
            description=description,
            day=_day(day),
            payment_method=payment_method,
            reference_number=reference,
            notes=notes,
        )
        side = "debit" if kind.is_debit else "credit"
        console.print(
            f"[bold green]✓ Transaction added successfully![/bold green] "
            f"#{txn.id} {format_currency(txn.debit_amount or txn.credit_amount, currency)} ({side})"
        )

    except Exception as e:
        _fail(e)


@txn_app.command(name="quick-add")
def txn_quick_add(
    client_id: int = typer.Argument(..., help="Client id"),
    description: str = typer.Argument(..., help="Description"),
    money_in: Optional[str] = typer.Option(None, "--in", help="Money IN (credit)"),
    money_out: Optional[str] = typer.Option(None, "--out", help="Money OUT (debit)"),
    currency: Currency = typer.Option(Currency.KES, "--currency", "-c", help="Ledger currency"),
    day: Optional[datetime] = typer.Option(None, "--date", "-d", formats=DATE_FORMATS, help="Date (YYYY-MM-DD), defaults to today"),
):
    """
    Add a statement-style row with Money IN and/or Money OUT.

    Examples:
        client-ledger txn quick-add 3 "Fuel MG" --out 3500
    """
    try:
        txn = state.ledger_service.quick_add(
            client_id=client_id,
            currency=currency,
            day=_day(day),
            description=description,
            credit=_amount(money_in),
            debit=_amount(money_out),
        )
        if txn is None:
            console.print("[yellow]Nothing to add: a description and a non-zero amount are required[/yellow]")
            return
        console.print(f"[bold green]✓ Added[/bold green] #{txn.id} {txn.description}")

    except Exception as e:
        _fail(e)


@txn_app.command(name="edit")
def txn_edit(
    transaction_id: int = typer.Argument(..., help="Transaction id"),
    currency: Currency = typer.Option(Currency.KES, "--currency", "-c", help="Ledger currency"),
    description: Optional[str] = typer.Option(None, "--description", help="New description"),
    money_in: Optional[str] = typer.Option(None, "--in", help="New Money IN"),
    money_out: Optional[str] = typer.Option(None, "--out", help="New Money OUT"),
    day: Optional[datetime] = typer.Option(None, "--date", "-d", formats=DATE_FORMATS, help="New date (YYYY-MM-DD)"),
    pin: str = typer.Option(..., "--pin", prompt=True, hide_input=True, help="Confirmation PIN"),
):
    """
    Correct a saved transaction. Requires the PIN.

    Examples:
        client-ledger txn edit 42 --out 3000 --pin 0000
    """
    try:
        service = state.ledger_service
        txn = service.get_transaction(currency, transaction_id)

        changes = {}
        if description is not None:
            changes["description"] = description
        if money_in is not None:
            changes["credit"] = _amount(money_in) or Decimal("0")
        if money_out is not None:
            changes["debit"] = _amount(money_out) or Decimal("0")
        if day is not None:
            changes["date"] = day.date()

        if not changes:
            console.print("[yellow]No changes given[/yellow]")
            return

        ledger = service.edit_transaction(currency, replace(txn, **changes), pin)

        summary = ledger.summary(currency)
        console.print(f"[bold green]✓ Transaction updated successfully![/bold green]")
        console.print(f"  {ledger.client.name} {currency.value} balance: {format_currency(summary.balance, currency)}")

    except Exception as e:
        _fail(e)


@txn_app.command(name="delete")
def txn_delete(
    transaction_id: int = typer.Argument(..., help="Transaction id"),
    currency: Currency = typer.Option(Currency.KES, "--currency", "-c", help="Ledger currency"),
    pin: str = typer.Option(..., "--pin", prompt=True, hide_input=True, help="Confirmation PIN"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation question"),
):
    """
    Permanently delete a transaction. Requires the PIN.

    Examples:
        client-ledger txn delete 42 --currency USD --pin 0000 --yes
    """
    try:
        if not yes and not typer.confirm(
            "Are you sure you want to delete this transaction? This cannot be undone."
        ):
            console.print("[yellow]Cancelled[/yellow]")
            return

        state.ledger_service.delete_transaction(currency, transaction_id, pin)
        console.print(f"[bold green]✓ Transaction deleted successfully[/bold green]")

    except Exception as e:
        _fail(e)


@txn_app.command(name="import")
def txn_import(
    client_id: int = typer.Argument(..., help="Client id"),
    filepath: Path = typer.Argument(
        ...,
        help="Ledger sheet (.csv or .xlsx)",
        exists=True,
        file_okay=True,
        dir_okay=False
    ),
    currency: Currency = typer.Option(Currency.KES, "--currency", "-c", help="Target ledger"),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Preview without saving to database",
    ),
):
    """
    Import a ledger sheet with Date, Description, Money IN and Money OUT columns.

    Examples:
        client-ledger txn import 3 old_ledger.xlsx
        client-ledger txn import 3 usd.csv --currency USD --dry-run
    """
    try:
        console.print(Panel.fit(
            f"[bold cyan]Import Configuration[/bold cyan]\n"
            f"File: {filepath}\n"
            f"Ledger: {currency.value}\n"
            f"Mode: {'DRY RUN' if dry_run else 'LIVE'}",
            border_style="cyan"
        ))

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Importing transactions...", total=None)

            result = state.ledger_service.import_transactions(
                client_id=client_id,
                currency=currency,
                filepath=filepath,
                dry_run=dry_run,
            )

            progress.update(task, completed=True)

        console.print(f"\n[bold]Found {result.total_parsed} transactions[/bold]")

        if result.imported:
            preview_table = Table(title="Preview (first 5)")
            preview_table.add_column("Date", style="cyan")
            preview_table.add_column("Description", style="white")
            preview_table.add_column("Money IN", justify="right")
            preview_table.add_column("Money OUT", justify="right")

            for txn in result.imported[:5]:
                preview_table.add_row(
                    str(txn.date),
                    txn.description[:40],
                    _money(txn.credit_amount, currency, "green"),
                    _money(txn.debit_amount, currency, "red"),
                )

            console.print("\n")
            console.print(preview_table)

        console.print("")
        if dry_run:
            console.print(f"[yellow]DRY RUN - No changes made[/yellow]")
            console.print(f"[green]✓[/green] Would import: {result.new_transactions}")
        else:
            console.print(f"[bold green]✓ Imported {result.new_transactions} transactions[/bold green]")

    except Exception as e:
        _fail(e)


# ─── statement ────────────────────────────────────────────────────────────

@app.command(name="statement")
def statement(
    client_id: int = typer.Argument(..., help="Client id"),
    report_type: ReportType = typer.Option(ReportType.FULL, "--type", "-t", help="Sections to include"),
):
    """
    Generate a client's PDF statement into the output directory.

    Examples:
        client-ledger statement 3
        client-ledger statement 3 --type usd-only
    """
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Generating statement...", total=None)
            document = state.ledger_service.generate_statement(client_id, report_type)
            progress.update(task, completed=True)

        path = state.settings.output_dir / document.filename
        console.print(f"[bold green]✓ PDF statement generated successfully![/bold green] {path}")

    except Exception as e:
        _fail(e)


# ─── report ───────────────────────────────────────────────────────────────

def _load_session(period: ReportPeriod, start: Optional[datetime], end: Optional[datetime]):
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Loading report...", total=None)
        session = state.report_service.load(
            period,
            custom_start=start.date() if start else None,
            custom_end=end.date() if end else None,
        )
        progress.update(task, completed=True)
    return session


PERIOD_OPTION = typer.Option(ReportPeriod.CURRENT, "--period", "-p", help="Reporting period")
START_OPTION = typer.Option(None, "--start", formats=DATE_FORMATS, help="Custom period start (YYYY-MM-DD)")
END_OPTION = typer.Option(None, "--end", formats=DATE_FORMATS, help="Custom period end (YYYY-MM-DD)")


@report_app.command(name="show")
def report_show(
    period: ReportPeriod = PERIOD_OPTION,
    start: Optional[datetime] = START_OPTION,
    end: Optional[datetime] = END_OPTION,
):
    """
    Show client statistics, top clients and monthly trends.

    Examples:
        client-ledger report show
        client-ledger report show --period custom --start 2025-01-01 --end 2025-03-31
    """
    try:
        session = _load_session(period, start, end)
        report = session.report
        stats = report.stats

        console.print(f"\n[bold cyan]Financial Report: {session.label}[/bold cyan]")

        console.print(Panel(
            f"[bold]Clients:[/bold] {stats.total_clients} "
            f"([green]{stats.active_clients} active[/green], {stats.inactive_clients} inactive)\n"
            f"[bold]Transactions:[/bold] {stats.total_transactions}\n\n"
            f"KES Balance: {format_currency(stats.total_balance_kes, Currency.KES)}\n"
            f"USD Balance: {format_currency(stats.total_balance_usd, Currency.USD)}",
            title=f"[bold]{report.date_range}[/bold]",
            border_style="cyan",
            padding=(1, 2)
        ))

        if report.top_clients:
            console.print(f"\n[bold]Top Clients[/bold]")
            top_table = Table(show_header=True, padding=(0, 1))
            top_table.add_column("#", justify="right", style="dim")
            top_table.add_column("ID", justify="right", style="dim")
            top_table.add_column("Client", style="cyan")
            top_table.add_column("Code", style="magenta")
            top_table.add_column("KES Balance", justify="right")
            top_table.add_column("USD Balance", justify="right")
            top_table.add_column("Txns", justify="right")

            for rank, top in enumerate(report.top_clients, start=1):
                top_table.add_row(
                    str(rank),
                    str(top.client_id),
                    top.client_name,
                    top.client_code,
                    format_currency(top.total_balance_kes, Currency.KES),
                    format_currency(top.total_balance_usd, Currency.USD),
                    str(top.transaction_count),
                )
            console.print(top_table)

        if report.monthly_trends:
            console.print(f"\n[bold]Monthly Trends[/bold]")
            trend_table = Table(show_header=True, box=None, padding=(0, 2))
            trend_table.add_column("Month", style="cyan")
            trend_table.add_column("KES Txns", justify="right")
            trend_table.add_column("KES Balance", justify="right")
            trend_table.add_column("USD Txns", justify="right")
            trend_table.add_column("USD Balance", justify="right")

            for trend in report.monthly_trends:
                trend_table.add_row(
                    trend.month,
                    str(trend.transactions_kes),
                    format_currency(trend.balance_kes, Currency.KES),
                    str(trend.transactions_usd),
                    format_currency(trend.balance_usd, Currency.USD),
                )
            console.print(trend_table)

        if stats.total_transactions == 0:
            console.print(Panel(
                "[yellow]No transactions found for this period[/yellow]",
                title="Empty Report",
                border_style="yellow"
            ))

    except Exception as e:
        _fail(e)


@report_app.command(name="export")
def report_export(
    export_format: ExportFormat = typer.Option(ExportFormat.PDF, "--format", "-f", help="Export format"),
    period: ReportPeriod = PERIOD_OPTION,
    start: Optional[datetime] = START_OPTION,
    end: Optional[datetime] = END_OPTION,
):
    """
    Export the financial report as PDF or CSV.

    Examples:
        client-ledger report export --format csv --period year
    """
    try:
        session = _load_session(period, start, end)
        if export_format is ExportFormat.PDF:
            path = state.report_service.export_pdf(session)
        else:
            path = state.report_service.export_csv(session)

        console.print(f"[bold green]✓ Report exported[/bold green] {path or ''}")

    except Exception as e:
        _fail(e)


@report_app.command(name="combined")
def report_combined(
    client_ids: List[int] = typer.Option(..., "--client", help="Top-client id; repeat to combine several"),
    period: ReportPeriod = PERIOD_OPTION,
    start: Optional[datetime] = START_OPTION,
    end: Optional[datetime] = END_OPTION,
):
    """
    Combined statement for selected top clients of a period.

    Examples:
        client-ledger report combined --client 3 --client 7 --period last3
    """
    try:
        session = _load_session(period, start, end)
        document = state.report_service.export_combined(session, client_ids)
        console.print(
            f"[bold green]✓ Combined statement generated successfully![/bold green] "
            f"{state.settings.output_dir / document.filename}"
        )

    except Exception as e:
        _fail(e)


def cli_main():
    """Entry point for the CLI"""
    app()


if __name__ == "__main__":
    cli_main()
