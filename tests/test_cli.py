import json
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from ekstre import cli
from ekstre.store import load_state

runner = CliRunner()

QNB_DEBT = "9876 ile biten kartinizin borcu 1,800.50 TL, son odeme tarihi 25/05/2026."
QNB_LOAN = (
    "50.000,00 TL tutarli 24 ay vadeli krediniz hesabiniza aktarilmistir. "
    "Ilk taksit tarihi 15.05.2026, aylik taksit tutari 2.604,17 TL."
)


@pytest.fixture(autouse=True)
def _wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    # Wide enough that table cells never wrap in assertions.
    monkeypatch.setattr(cli, "console", Console(width=200))


@pytest.fixture
def state(tmp_path: Path) -> Path:
    return tmp_path / "state" / "state.json"


@pytest.fixture
def inbox(tmp_path: Path) -> Path:
    root = tmp_path / "inbox"
    sms = root / "sms"
    sms.mkdir(parents=True)
    for name, body, received in (
        ("debt.json", QNB_DEBT, "2026-05-01T09:00:00"),
        ("loan.json", QNB_LOAN, "2026-04-10T12:00:00"),
    ):
        (sms / name).write_text(
            json.dumps({"sender": "QNB", "body": body, "received_at": received}), encoding="utf-8"
        )
    return root


def test_parse_sms_prints_the_statement():
    result = runner.invoke(cli.app, ["parse-sms", "--sender", "QNB", "--body", QNB_DEBT])
    assert result.exit_code == 0, result.output
    assert "2026-05-25" in result.output
    assert "****9876" in result.output
    assert "1,800.50 TL" in result.output


def test_parse_sms_reports_loans():
    result = runner.invoke(cli.app, ["parse-sms", "--sender", "QNB", "--body", QNB_LOAN])
    assert result.exit_code == 0, result.output
    assert "Loan agreement" in result.output
    assert "24 month(s)" in result.output


def test_parse_sms_unrecognized_exits_nonzero():
    result = runner.invoke(cli.app, ["parse-sms", "--sender", "ANNEM", "--body", "Merhaba"])
    assert result.exit_code == 1
    assert "No parser recognized" in result.output


def test_parse_email_file(tmp_path: Path):
    path = tmp_path / "qnb.eml"
    path.write_text(
        "From: qnb.com.tr\nSubject: Borc bildirimi\nContent-Type: text/plain; charset=utf-8\n\n"
        + QNB_DEBT
        + "\n",
        encoding="utf-8",
    )
    result = runner.invoke(cli.app, ["parse-email", str(path)])
    assert result.exit_code == 0, result.output
    assert "QNB" in result.output
    assert "1,800.50 TL" in result.output


def test_parse_screenshot_file(tmp_path: Path):
    path = tmp_path / "axess.txt"
    path.write_text("akbank axess\n****1234\nSon gün: 26 Kasım\n1.000,00 TL\n", encoding="utf-8")
    result = runner.invoke(cli.app, ["parse-screenshot", str(path)])
    assert result.exit_code == 0, result.output
    assert "****1234" in result.output
    assert "1,000.00 TL" in result.output


def test_sync_reconciles_and_keeps_paid_flags(inbox: Path, state: Path):
    args = ["sync", "--inbox", str(inbox), "--state", str(state), "--today", "2026-05-10"]

    first = runner.invoke(cli.app, args)
    assert first.exit_code == 0, first.output
    assert "2 item(s) extracted" in first.output

    items = load_state(state)
    assert {o.bank_name for o in items} == {"QNB", "QNB - Taksit 1/24"}
    statement = next(o for o in items if o.last4_digits == "9876")

    paid = runner.invoke(cli.app, ["mark-paid", statement.id, "--state", str(state)])
    assert paid.exit_code == 0, paid.output
    assert "paid" in paid.output

    second = runner.invoke(cli.app, args)
    assert second.exit_code == 0, second.output
    again = next(o for o in load_state(state) if o.last4_digits == "9876")
    assert again.id != statement.id
    assert again.is_paid


def test_sync_uses_state_path_from_environment(inbox: Path, monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    env_state = tmp_path / "env-state.json"
    monkeypatch.setenv("EKSTRE_STATE_PATH", str(env_state))
    result = runner.invoke(cli.app, ["sync", "--inbox", str(inbox), "--today", "2026-05-10"])
    assert result.exit_code == 0, result.output
    assert env_state.exists()


def test_invalid_config_exits_with_error(inbox: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("EKSTRE_LOOKAHEAD_DAYS", "soon")
    result = runner.invoke(cli.app, ["sync", "--inbox", str(inbox)])
    assert result.exit_code == 1
    assert "EKSTRE_LOOKAHEAD_DAYS" in result.output


def test_manual_loan_lifecycle(state: Path):
    add = runner.invoke(
        cli.app,
        [
            "add",
            "--description", "Araba kredisi",
            "--amount", "2.500,00",
            "--due-date", "2026-05-15",
            "--type", "loan",
            "--installments", "3",
            "--id", "car",
            "--state", str(state),
        ],
    )
    assert add.exit_code == 0, add.output
    assert len(load_state(state)) == 3

    loans = runner.invoke(cli.app, ["loans", "--state", str(state)])
    assert loans.exit_code == 0, loans.output
    assert "Araba kredisi" in loans.output
    assert "0/3" in loans.output
    assert "7,500.00 TL" in loans.output

    listing = runner.invoke(cli.app, ["list", "--state", str(state), "--today", "2026-05-10"])
    assert listing.exit_code == 0, listing.output
    assert "Taksit 1/3" in listing.output
    assert "Taksit 3/3" not in listing.output
    assert "Unpaid debt: 2,500.00 TL" in listing.output

    everything = runner.invoke(cli.app, ["list", "--all", "--state", str(state)])
    assert "Taksit 3/3" in everything.output
    assert "Unpaid debt: 7,500.00 TL" in everything.output

    deleted = runner.invoke(cli.app, ["delete", "car", "--loan", "--state", str(state)])
    assert deleted.exit_code == 0, deleted.output
    assert load_state(state) == []


def test_set_amount_and_due_date_on_statement(inbox: Path, state: Path):
    runner.invoke(cli.app, ["sync", "--inbox", str(inbox), "--state", str(state), "--today", "2026-05-10"])
    statement = next(o for o in load_state(state) if o.last4_digits == "9876")

    result = runner.invoke(cli.app, ["set-amount", statement.id, "1.750,25", "--state", str(state)])
    assert result.exit_code == 0, result.output
    result = runner.invoke(
        cli.app, ["set-due-date", statement.id, "2026-05-27", "--state", str(state)]
    )
    assert result.exit_code == 0, result.output

    updated = next(o for o in load_state(state) if o.id == statement.id)
    assert updated.user_amount == Decimal("1750.25")
    assert updated.effective_due_date == date(2026, 5, 27)

    cleared = runner.invoke(cli.app, ["set-amount", statement.id, "--clear", "--state", str(state)])
    assert cleared.exit_code == 0, cleared.output
    assert next(o for o in load_state(state) if o.id == statement.id).user_amount is None


def test_unknown_id_is_reported(state: Path):
    result = runner.invoke(cli.app, ["mark-paid", "nope", "--state", str(state)])
    assert result.exit_code == 1
    assert "no entry with id 'nope'" in result.output


def test_corrupt_state_is_reported(state: Path):
    state.parent.mkdir(parents=True, exist_ok=True)
    state.write_text("garbage", encoding="utf-8")
    result = runner.invoke(cli.app, ["list", "--state", str(state)])
    assert result.exit_code == 1
    assert "invalid" in result.output


def _add_rent(state: Path, entry_id: str, due: str) -> None:
    result = runner.invoke(
        cli.app,
        [
            "add",
            "--description", "Kira",
            "--amount", "15000",
            "--due-date", due,
            "--type", "expense",
            "--id", entry_id,
            "--state", str(state),
        ],
    )
    assert result.exit_code == 0, result.output


def test_import_replaces_or_merges(tmp_path: Path, state: Path):
    other = tmp_path / "other.json"
    _add_rent(other, "rent-june", "2026-06-01")
    _add_rent(state, "rent-may", "2026-05-01")

    merged = runner.invoke(cli.app, ["import", str(other), "--merge", "--state", str(state)])
    assert merged.exit_code == 0, merged.output
    assert [o.id for o in load_state(state)] == ["rent-june", "rent-may"]

    replaced = runner.invoke(cli.app, ["import", str(other), "--state", str(state)])
    assert replaced.exit_code == 0, replaced.output
    assert [o.id for o in load_state(state)] == ["rent-june"]


def test_calendar_lists_unpaid_items_with_app_ids(inbox: Path, state: Path):
    runner.invoke(cli.app, ["sync", "--inbox", str(inbox), "--state", str(state), "--today", "2026-05-10"])
    _add_rent(state, "rent", "2026-05-01")

    result = runner.invoke(cli.app, ["calendar", "--state", str(state), "--today", "2026-05-10"])
    assert result.exit_code == 0, result.output
    assert "[AppID: ekstre_qnb_2026-05-25]" in result.output
    assert "[AppID: manuel_kira]" in result.output

    runner.invoke(cli.app, ["mark-paid", "rent", "--state", str(state)])
    result = runner.invoke(cli.app, ["calendar", "--state", str(state), "--today", "2026-05-10"])
    assert "manuel_kira" not in result.output
