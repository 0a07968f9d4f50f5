from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

from ekstre.config import EngineConfig
from ekstre.models import LoanAgreement, Obligation, RawMessage
from ekstre.reconcile import (
    dedupe_latest_per_card,
    expand_loan,
    loan_id,
    merge_with_prior,
    reconcile,
    sort_by_due_date,
    stable_key,
)

TODAY = date(2026, 5, 10)


def _message(received_at: datetime, channel="message") -> RawMessage:
    return RawMessage(channel=channel, sender="QNB", body="...", received_at=received_at)


def _statement(
    *,
    id: str = "s1",
    bank: str = "QNB",
    last4: str | None = "9876",
    amount: str | None = "1800.50",
    due: date = date(2026, 5, 25),
    arrived: datetime = datetime(2026, 5, 1, 9, 0),
) -> Obligation:
    return Obligation(
        id=id,
        bank_name=bank,
        due_date=due,
        amount=Decimal(amount) if amount is not None else None,
        source="message",
        last4_digits=last4,
        original_message=_message(arrived),
    )


def _loan(**overrides) -> LoanAgreement:
    values = dict(
        bank_name="QNB",
        original_message=_message(datetime(2026, 4, 1, 12, 0)),
        total_amount=Decimal("50000.00"),
        installment_amount=Decimal("2604.17"),
        term_months=24,
        first_payment_date=date(2026, 5, 15),
    )
    values.update(overrides)
    return LoanAgreement(**values)


def _manual(id: str, due: date, *, paid: bool = False) -> Obligation:
    return Obligation(
        id=id,
        bank_name="Ev kirası",
        due_date=due,
        amount=Decimal("15000"),
        source="manual",
        description="Ev kirası",
        is_paid=paid,
    )


# ---- keys ---------------------------------------------------------------------


def test_stable_key_ignores_id_case_and_user_overrides():
    a = _statement(id="a")
    b = replace(
        _statement(id="b", bank=" qnb "),
        is_paid=True,
        user_amount=Decimal("1"),
        user_due_date=date(2026, 6, 1),
    )
    assert stable_key(a) == stable_key(b)


def test_stable_key_rounds_amount_to_cents():
    assert stable_key(_statement(amount="1800.5")) == stable_key(_statement(amount="1800.50"))
    assert stable_key(_statement(amount="1800.504")) == stable_key(_statement(amount="1800.50"))
    assert stable_key(_statement(amount="1800.51")) != stable_key(_statement(amount="1800.50"))


def test_stable_key_distinguishes_due_date_and_card():
    base = stable_key(_statement())
    assert stable_key(_statement(due=date(2026, 6, 25))) != base
    assert stable_key(_statement(last4="1111")) != base
    assert stable_key(_statement(amount=None)) != base


# ---- loans ----------------------------------------------------------------------


def test_expand_loan_emits_installments_inside_horizon():
    installments = expand_loan(_loan(), today=TODAY, lookahead_days=10)
    assert len(installments) == 1
    first = installments[0]
    assert first.due_date == date(2026, 5, 15)
    assert first.bank_name == "QNB - Taksit 1/24"
    assert first.amount == Decimal("2604.17")
    assert first.source == "message"
    assert first.entry_type == "debt"
    assert first.id == f"{loan_id(_loan())}_installment_1"


def test_expand_loan_horizon_is_inclusive_and_skips_past():
    loan = _loan(first_payment_date=date(2026, 4, 20), term_months=3)
    # 2026-04-20 is past; 2026-05-20 is exactly today + 10 days.
    installments = expand_loan(loan, today=TODAY, lookahead_days=10)
    assert [i.due_date for i in installments] == [date(2026, 5, 20)]
    assert installments[0].bank_name == "QNB - Taksit 2/3"


def test_expand_loan_without_plan_yields_nothing():
    assert expand_loan(_loan(first_payment_date=None), today=TODAY, lookahead_days=10) == []
    assert expand_loan(_loan(installment_amount=None), today=TODAY, lookahead_days=10) == []
    assert expand_loan(_loan(term_months=0), today=TODAY, lookahead_days=10) == []


def test_expand_loan_ids_are_stable_across_runs():
    first = expand_loan(_loan(), today=TODAY, lookahead_days=40)
    second = expand_loan(_loan(), today=TODAY, lookahead_days=40)
    assert [o.id for o in first] == [o.id for o in second]
    assert len(first) == 2


# ---- dedup / sort -----------------------------------------------------------------


def test_dedupe_keeps_latest_arrival_per_card():
    older = _statement(id="old", due=date(2026, 6, 25), arrived=datetime(2026, 4, 1))
    newer = _statement(id="new", due=date(2026, 5, 25), arrived=datetime(2026, 5, 1))
    other_card = _statement(id="other", last4="1111")

    kept = dedupe_latest_per_card([older, other_card, newer])

    assert [o.id for o in kept] == ["new", "other"]


def test_dedupe_tie_keeps_first_seen():
    a = _statement(id="a")
    b = _statement(id="b")
    assert [o.id for o in dedupe_latest_per_card([a, b])] == ["a"]


def test_sort_uses_effective_due_date_descending():
    early = _statement(id="early", due=date(2026, 5, 1))
    late = _statement(id="late", due=date(2026, 6, 1), last4="1111")
    moved = replace(_statement(id="moved", last4="2222", due=date(2026, 4, 1)), user_due_date=date(2026, 7, 1))
    assert [o.id for o in sort_by_due_date([early, late, moved])] == ["moved", "late", "early"]


# ---- merge / reconcile --------------------------------------------------------------


def test_merge_carries_paid_flag_and_overrides_by_content():
    previous = [
        replace(
            _statement(id="old-id"),
            is_paid=True,
            user_amount=Decimal("1700"),
        )
    ]
    merged = merge_with_prior([_statement(id="new-id")], previous)
    assert merged[0].id == "new-id"
    assert merged[0].is_paid
    assert merged[0].user_amount == Decimal("1700")


def test_paid_does_not_carry_to_a_new_statement():
    previous = [replace(_statement(id="april", due=date(2026, 4, 25)), is_paid=True)]
    merged = merge_with_prior([_statement(id="may")], previous)
    assert not merged[0].is_paid


def test_reconcile_end_to_end():
    previous = [
        replace(_statement(id="prior"), is_paid=True),
        _manual("rent", date(2026, 6, 1)),
    ]
    candidates = [
        _statement(id="fresh"),
        _statement(id="stale", amount="900", due=date(2026, 4, 25), arrived=datetime(2026, 4, 2)),
        _statement(id="garanti", bank="Garanti BBVA Bonus", last4="0000", due=date(2026, 5, 2)),
    ]

    result = reconcile(
        candidates=candidates,
        loans=[_loan()],
        previous=previous,
        today=TODAY,
        config=EngineConfig(lookahead_days=10),
    )

    ids = [o.id for o in result.obligations]
    assert "stale" not in ids
    assert "prior" not in ids
    assert result.fresh_count == 3
    assert ids[0] == "rent"
    by_id = {o.id: o for o in result.obligations}
    assert by_id["fresh"].is_paid
    assert not by_id["garanti"].is_paid
    due_dates = [o.effective_due_date for o in result.obligations]
    assert due_dates == sorted(due_dates, reverse=True)


def test_paid_flag_survives_a_rerun_with_new_ids():
    previous = [_manual("rent", date(2026, 6, 1))]
    candidates = [_statement(id="x")]
    first = reconcile(candidates=candidates, previous=previous, today=TODAY)
    toggled = [replace(o, is_paid=True) if o.id == "x" else o for o in first.obligations]
    second = reconcile(candidates=[_statement(id="y")], previous=toggled, today=TODAY)

    assert [(o.bank_name, o.due_date, o.is_paid) for o in second.obligations] == [
        (o.bank_name, o.due_date, o.is_paid) for o in toggled
    ]


def test_reconcile_is_idempotent_on_same_input():
    previous = [_manual("rent", date(2026, 6, 1))]
    candidates = [
        _statement(id="older", amount="1500.00", arrived=datetime(2026, 4, 1, 9, 0)),
        _statement(id="newer", arrived=datetime(2026, 5, 1, 9, 0)),
        _statement(id="other", bank="Garanti BBVA", last4="1111", due=date(2026, 5, 20)),
    ]
    kwargs = dict(loans=[_loan()], previous=previous, today=TODAY)

    first = reconcile(candidates=list(candidates), **kwargs)
    second = reconcile(candidates=list(candidates), **kwargs)

    assert first == second
    assert "older" not in [o.id for o in first.obligations]


def test_manual_entries_pass_through_untouched():
    manual = _manual("rent", date(2026, 6, 1), paid=True)
    result = reconcile(candidates=[], previous=[manual], today=TODAY)
    assert result.obligations == [manual]
    assert result.fresh_count == 0
