"""Command-line interface for ``ekstre``.

Commands operate on a JSON state file (``--state``, default from
``EKSTRE_STATE_PATH``) and an inbox directory laid out as described in
:mod:`ekstre.sources`.

- ``parse-sms`` / ``parse-email`` / ``parse-screenshot``: run the parser
  registry on one message and print what it extracted.
- ``sync``: collect from the inbox, reconcile against the stored list, save.
- ``list``, ``loans``, ``calendar``: show the stored list.
- ``import``: replace the stored list with another state file, or merge it in.
- ``mark-paid``, ``set-amount``, ``set-due-date``, ``add``, ``delete``: user actions.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import ledger
from .config import EngineConfig
from .entry_format import calendar_app_id
from .errors import EkstreError
from .logging_setup import configure_logging
from .models import LoanAgreement, ManualEntryType, Obligation, RawMessage
from .normalize import parse_mixed_number
from .processor import StatementProcessor, parse_message
from .reconcile import reconcile
from .sources import DirectorySource, load_email_file, load_screenshot_file
from .store import load_state, save_state

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Extract credit-card statements and loan installments from bank "
        "notifications and keep a reconciled list of payment obligations."
    ),
)
console = Console()

# Module-level option objects keep calls out of parameter defaults (ruff B008).
STATE_OPTION = typer.Option(
    None, "--state", help="State file (defaults to EKSTRE_STATE_PATH or ./.ekstre/state.json)."
)
TODAY_OPTION = typer.Option(None, "--today", help="Reference day as YYYY-MM-DD (default: today).")


# ---- helpers -----------------------------------------------------------------


def _fail(error: Exception) -> typer.Exit:
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    return typer.Exit(1)


def _config() -> EngineConfig:
    try:
        return EngineConfig.from_env()
    except EkstreError as e:
        raise _fail(e) from e


def _state_path(state: Path | None, config: EngineConfig) -> Path:
    return state if state is not None else config.state_path


def _parse_day(value: str | None, *, option: str) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise typer.BadParameter(f"{value!r} is not a YYYY-MM-DD date", param_hint=option) from e


def _parse_amount(value: str, *, option: str) -> Decimal:
    amount = parse_mixed_number(value)
    if amount is None:
        raise typer.BadParameter(f"{value!r} is not an amount", param_hint=option)
    return amount


def _fmt_amount(item: Obligation) -> str:
    amount = item.effective_amount
    if amount is None:
        return "[yellow]?[/yellow]"
    text = f"{amount:,.2f} TL"
    return f"{text} *" if item.user_amount is not None else text


def _render(items: list[Obligation], *, title: str) -> None:
    table = Table(title=title)
    table.add_column("Due")
    table.add_column("Bank / description")
    table.add_column("Card")
    table.add_column("Amount", justify="right")
    table.add_column("Source")
    table.add_column("Paid")
    table.add_column("Id", overflow="fold")
    for item in items:
        table.add_row(
            item.effective_due_date.isoformat(),
            escape(item.description or item.bank_name),
            f"****{item.last4_digits}" if item.last4_digits else "",
            _fmt_amount(item),
            item.source,
            "yes" if item.is_paid else "",
            item.id,
        )
    console.print(table)


def _render_result(result: Obligation | LoanAgreement | None) -> None:
    if result is None:
        console.print("[yellow]No parser recognized the message.[/yellow]")
        raise typer.Exit(1)
    if isinstance(result, Obligation):
        _render([result], title="Parsed statement")
        return
    console.print(f"[cyan]Loan agreement[/cyan] from {result.bank_name}")
    console.print(f"  total: {result.total_amount}")
    console.print(f"  term: {result.term_months} month(s)")
    console.print(f"  installment: {result.installment_amount}")
    console.print(f"  first payment: {result.first_payment_date}")


def _load(path: Path) -> list[Obligation]:
    try:
        return load_state(path)
    except EkstreError as e:
        raise _fail(e) from e


def _apply(
    path: Path, action: Callable[[list[Obligation]], list[Obligation]]
) -> list[Obligation]:
    items = _load(path)
    try:
        updated = action(items)
    except EkstreError as e:
        raise _fail(e) from e
    save_state(path, updated)
    return updated


# ---- parse -------------------------------------------------------------------


@app.command("parse-sms")
def parse_sms_cmd(
    sender: Annotated[str, typer.Option(help="Sender name as shown by the phone (e.g. QNB).")],
    body: Annotated[str, typer.Option(help="Message text.")],
    received_at: Annotated[
        str | None, typer.Option(help="Arrival time, ISO 8601 (default: now).")
    ] = None,
) -> None:
    """Parse a single text message."""

    try:
        arrived = datetime.fromisoformat(received_at) if received_at else datetime.now()
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--received-at") from e
    message = RawMessage(channel="message", sender=sender, body=body, received_at=arrived)
    _render_result(parse_message(message))


@app.command("parse-email")
def parse_email_cmd(
    path: Annotated[Path, typer.Argument(help="Raw .eml file.", exists=True, dir_okay=False)],
) -> None:
    """Decode and parse a single email."""

    _render_result(parse_message(load_email_file(path)))


@app.command("parse-screenshot")
def parse_screenshot_cmd(
    path: Annotated[Path, typer.Argument(help="OCR text file.", exists=True, dir_okay=False)],
) -> None:
    """Parse OCR text of a single screenshot."""

    _render_result(parse_message(load_screenshot_file(path)))


# ---- sync --------------------------------------------------------------------


@app.command("sync")
def sync_cmd(
    inbox: Annotated[
        Path, typer.Option(help="Inbox export directory.", exists=True, file_okay=False)
    ],
    state: Path | None = STATE_OPTION,
    today: str | None = TODAY_OPTION,
) -> None:
    """Collect new notifications and reconcile them with the stored list."""

    config = _config()
    path = _state_path(state, config)
    day = _parse_day(today, option="--today") or date.today()
    previous = _load(path)

    processor = StatementProcessor(DirectorySource.for_inbox(inbox), config=config)
    collected = processor.collect(today=day)
    result = reconcile(
        candidates=collected.obligations,
        loans=collected.loans,
        previous=previous,
        today=day,
        config=config,
    )
    save_state(path, result.obligations)

    _render(result.obligations, title="Obligations")
    console.print(f"[green]{result.fresh_count} item(s) extracted.[/green]")


# ---- read --------------------------------------------------------------------


@app.command("list")
def list_cmd(
    state: Path | None = STATE_OPTION,
    today: str | None = TODAY_OPTION,
    show_all: Annotated[
        bool, typer.Option("--all", help="Include manual installments outside the horizon.")
    ] = False,
) -> None:
    """Show stored obligations and the unpaid total."""

    config = _config()
    items = _load(_state_path(state, config))
    if not show_all:
        items = ledger.visible_obligations(
            items,
            today=_parse_day(today, option="--today") or date.today(),
            manual_horizon_months=config.manual_horizon_months,
        )
    _render(items, title="Obligations")
    console.print(f"Unpaid debt: [bold]{ledger.total_debt(items):,.2f} TL[/bold]")


@app.command("loans")
def loans_cmd(state: Path | None = STATE_OPTION) -> None:
    """Show manually entered loans with their installment progress."""

    config = _config()
    groups = ledger.group_loans(_load(_state_path(state, config)))
    if not groups:
        console.print("No loans.")
        return
    table = Table(title="Loans")
    table.add_column("Loan id")
    table.add_column("Description")
    table.add_column("Paid", justify="right")
    table.add_column("Remaining", justify="right")
    for group in groups:
        table.add_row(
            group.loan_id,
            escape(group.description),
            f"{group.paid_count}/{group.total_installments}",
            f"{group.remaining_amount:,.2f} TL",
        )
    console.print(table)


# ---- write -------------------------------------------------------------------


@app.command("mark-paid")
def mark_paid_cmd(
    entry_id: Annotated[str, typer.Argument(help="Obligation id.")],
    state: Path | None = STATE_OPTION,
) -> None:
    """Toggle the paid flag of an obligation."""

    path = _state_path(state, _config())
    updated = _apply(path, lambda items: ledger.toggle_paid(items, entry_id))
    item = next(i for i in updated if i.id == entry_id)
    console.print(f"{entry_id}: {'paid' if item.is_paid else 'unpaid'}")


@app.command("set-amount")
def set_amount_cmd(
    entry_id: Annotated[str, typer.Argument(help="Obligation id.")],
    amount: Annotated[
        str | None, typer.Argument(help="Amount, e.g. 1.250,50 or 1250.50.")
    ] = None,
    clear: Annotated[bool, typer.Option("--clear", help="Remove the user amount.")] = False,
    state: Path | None = STATE_OPTION,
) -> None:
    """Fill in the amount of a statement whose notification did not state it."""

    path = _state_path(state, _config())
    if clear:
        _apply(path, lambda items: ledger.clear_user_amount(items, entry_id))
        console.print(f"{entry_id}: user amount cleared")
        return
    if amount is None:
        raise typer.BadParameter("give an amount or --clear", param_hint="AMOUNT")
    value = _parse_amount(amount, option="AMOUNT")
    _apply(path, lambda items: ledger.set_user_amount(items, entry_id, value))
    console.print(f"{entry_id}: amount set to {value:,.2f} TL")


@app.command("add")
def add_cmd(
    description: Annotated[str, typer.Option(help='Text, or "<Bank> - ****1234".')],
    amount: Annotated[str, typer.Option(help="Amount (per installment for loans).")],
    due_date: Annotated[str, typer.Option(help="Due date (first installment), YYYY-MM-DD.")],
    entry_type: Annotated[
        str, typer.Option("--type", help="debt, expense or loan.")
    ] = "debt",
    installments: Annotated[
        int | None, typer.Option(help="Number of monthly installments for a loan.")
    ] = None,
    entry_id: Annotated[str | None, typer.Option("--id", help="Entry id (generated if omitted).")] = None,
    state: Path | None = STATE_OPTION,
) -> None:
    """Add a manual obligation; loans expand into monthly installments."""

    if entry_type not in ("debt", "expense", "loan"):
        raise typer.BadParameter("must be debt, expense or loan", param_hint="--type")
    kind: ManualEntryType = entry_type  # type: ignore[assignment]
    due = _parse_day(due_date, option="--due-date") or date.today()
    value = _parse_amount(amount, option="--amount")
    new_id = entry_id or f"manual_{datetime.now():%Y%m%d%H%M%S}"

    path = _state_path(state, _config())
    _apply(
        path,
        lambda items: ledger.add_manual_entry(
            items,
            entry_id=new_id,
            description=description,
            amount=value,
            due_date=due,
            entry_type=kind,
            installment_count=installments,
        ),
    )
    console.print(f"Added {new_id}")


@app.command("delete")
def delete_cmd(
    entry_id: Annotated[str, typer.Argument(help="Manual entry id, or loan id with --loan.")],
    loan: Annotated[bool, typer.Option("--loan", help="Delete every installment of a loan.")] = False,
    state: Path | None = STATE_OPTION,
) -> None:
    """Delete a manual entry or a manual loan."""

    path = _state_path(state, _config())
    if loan:
        _apply(path, lambda items: ledger.delete_loan(items, entry_id))
    else:
        _apply(path, lambda items: ledger.delete_manual_entry(items, entry_id))
    console.print(f"Deleted {entry_id}")


@app.command("set-due-date")
def set_due_date_cmd(
    entry_id: Annotated[str, typer.Argument(help="Obligation id.")],
    due_date: Annotated[str | None, typer.Argument(help="New due date, YYYY-MM-DD.")] = None,
    clear: Annotated[bool, typer.Option("--clear", help="Restore the extracted date.")] = False,
    state: Path | None = STATE_OPTION,
) -> None:
    """Override the displayed due date of an extracted statement."""

    if due_date is None and not clear:
        raise typer.BadParameter("give a date or --clear", param_hint="DUE_DATE")
    day = None if clear else _parse_day(due_date, option="DUE_DATE")
    path = _state_path(state, _config())
    _apply(path, lambda items: ledger.set_user_due_date(items, entry_id, day))
    console.print(f"{entry_id}: due date {day.isoformat() if day else 'restored'}")


@app.command("import")
def import_cmd(
    source: Annotated[
        Path,
        typer.Argument(
            help="State file exported from another install.", exists=True, dir_okay=False
        ),
    ],
    merge: Annotated[
        bool, typer.Option("--merge", help="Keep current entries and add unknown ids only.")
    ] = False,
    state: Path | None = STATE_OPTION,
) -> None:
    """Replace the stored list with another state file, or merge it in."""

    incoming = _load(source)
    updated = _apply(
        _state_path(state, _config()),
        lambda items: ledger.import_items(items, incoming, merge=merge),
    )
    console.print(f"Imported {len(incoming)} item(s); {len(updated)} stored.")


@app.command("calendar")
def calendar_cmd(
    state: Path | None = STATE_OPTION,
    today: str | None = TODAY_OPTION,
) -> None:
    """Print one calendar line per unpaid obligation, tagged with its AppID."""

    config = _config()
    items = ledger.visible_obligations(
        _load(_state_path(state, config)),
        today=_parse_day(today, option="--today") or date.today(),
        manual_horizon_months=config.manual_horizon_months,
    )
    for item in items:
        if item.is_paid:
            continue
        due = item.effective_due_date.isoformat()
        label = escape(item.description or item.bank_name)
        console.print(f"{due}  {label}  {escape(calendar_app_id(item))}", soft_wrap=True)


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    log_level: Annotated[
        str | None, typer.Option(help="Log level (overrides EKSTRE_LOG_LEVEL).")
    ] = None,
) -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
