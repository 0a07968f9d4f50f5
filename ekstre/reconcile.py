"""Reconciliation of a fresh extraction run against the stored list.

One run goes through these steps, in order:

1. expand loan agreements into monthly installments inside the lookahead
   horizon ``[today, today + lookahead_days]``;
2. deduplicate statements per card, keeping the latest-arriving notification;
3. merge with the prior list: a fresh obligation whose stable key matches a
   prior paid one stays paid, and user overrides (amount, due date) follow
   the key as well;
4. carry manual entries over unchanged;
5. sort by due date, newest first.

Extracted obligations get a new id on every run, so the prior list is matched
by content through :func:`stable_key` rather than by id.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from .config import EngineConfig
from .logging_setup import get_logger
from .models import LoanAgreement, Obligation, ReconcileResult
from .normalize import add_months, horizon_end

_logger = get_logger("ekstre.reconcile")

INSTALLMENT_MARKER = "_installment_"


def _amount_2dp(amount: Decimal | None) -> str | None:
    if amount is None:
        return None
    return str(amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def stable_key(obligation: Obligation) -> str:
    """Content fingerprint identifying the same statement across runs.

    SHA-256 over canonical JSON of bank name (trimmed, casefolded), last four
    digits, extracted amount rounded to 2 decimals, and due date (date only).
    User overrides are not part of the key.
    """

    payload = {
        "bank": obligation.bank_name.strip().casefold(),
        "last4": (obligation.last4_digits or "").strip() or None,
        "amount": _amount_2dp(obligation.amount),
        "due": obligation.due_date.isoformat(),
    }
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Loans
# ---------------------------------------------------------------------------


def loan_id(loan: LoanAgreement) -> str:
    """Deterministic id for a loan so its installments keep ids across runs."""

    payload = {
        "bank": loan.bank_name.strip().casefold(),
        "total": _amount_2dp(loan.total_amount),
        "installment": _amount_2dp(loan.installment_amount),
        "term": loan.term_months,
        "first": loan.first_payment_date.isoformat() if loan.first_payment_date else None,
        "account": loan.account_number,
    }
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return "loan-" + hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


def expand_loan(loan: LoanAgreement, *, today: date, lookahead_days: int) -> list[Obligation]:
    """Installments of ``loan`` whose due date falls in the lookahead horizon.

    Installment ``i`` (0-based) is due ``first_payment_date + i`` months and is
    named ``"<bank> - Taksit <i+1>/<term>"``.
    """

    term, first = loan.term_months, loan.first_payment_date
    if not loan.is_expandable or term is None or first is None:
        _logger.info(
            "Loan from %s lacks a payment plan (term=%s, first=%s); not expanded",
            loan.bank_name,
            loan.term_months,
            loan.first_payment_date,
        )
        return []
    end = horizon_end(today, lookahead_days)
    base_id = loan_id(loan)
    out: list[Obligation] = []
    for i in range(term):
        due = add_months(first, i)
        if due < today:
            continue
        if due > end:
            break
        out.append(
            Obligation(
                id=f"{base_id}{INSTALLMENT_MARKER}{i + 1}",
                bank_name=f"{loan.bank_name} - Taksit {i + 1}/{term}",
                due_date=due,
                amount=loan.installment_amount,
                source=loan.original_message.channel,
                entry_type="debt",
                original_message=loan.original_message,
            )
        )
    return out


# ---------------------------------------------------------------------------
# Dedup, merge, sort
# ---------------------------------------------------------------------------


def _arrival(obligation: Obligation) -> datetime | None:
    message = obligation.original_message
    return message.received_at if message is not None else None


def dedupe_latest_per_card(candidates: Iterable[Obligation]) -> list[Obligation]:
    """Keep one obligation per ``(bank_name, last4_digits)``.

    The survivor is the one whose message arrived last; due dates play no
    part. On equal arrival times the first one seen wins, so repeated runs on
    the same input pick the same survivor. Output keeps first-seen group order.
    """

    latest: dict[tuple[str, str | None], Obligation] = {}
    for candidate in candidates:
        key = (candidate.bank_name, candidate.last4_digits)
        current = latest.get(key)
        if current is None:
            latest[key] = candidate
            continue
        arrived, kept = _arrival(candidate), _arrival(current)
        if arrived is not None and (kept is None or arrived > kept):
            latest[key] = candidate
    return list(latest.values())


def sort_by_due_date(items: Iterable[Obligation]) -> list[Obligation]:
    """Newest first by effective due date; stable for ties."""

    return sorted(items, key=lambda o: o.effective_due_date, reverse=True)


def merge_with_prior(
    fresh: Sequence[Obligation], previous: Sequence[Obligation]
) -> list[Obligation]:
    """Apply paid flags and user overrides from ``previous`` onto ``fresh``."""

    prior_by_key: dict[str, Obligation] = {}
    paid_keys: set[str] = set()
    for item in previous:
        if item.is_manual:
            continue
        key = stable_key(item)
        prior_by_key.setdefault(key, item)
        if item.is_paid:
            paid_keys.add(key)

    merged: list[Obligation] = []
    for item in fresh:
        key = stable_key(item)
        prior = prior_by_key.get(key)
        merged.append(
            replace(
                item,
                is_paid=key in paid_keys,
                user_amount=prior.user_amount if prior is not None else None,
                user_due_date=prior.user_due_date if prior is not None else None,
            )
        )
    return merged


def reconcile(
    *,
    candidates: Sequence[Obligation],
    loans: Sequence[LoanAgreement] = (),
    previous: Sequence[Obligation] = (),
    today: date | None = None,
    config: EngineConfig | None = None,
) -> ReconcileResult:
    """Produce the new obligation list from one run's extraction output.

    Parameters
    ----------
    candidates:
        Statement obligations from the parsers.
    loans:
        Loan agreements from the loan parsers.
    previous:
        The list returned by the previous run, including user changes.
    today:
        Reference day for the installment horizon; defaults to the local date.
    config:
        Supplies ``lookahead_days``.

    Returns
    -------
    ReconcileResult
        ``obligations`` sorted newest first and ``fresh_count``, the number of
        extracted items before merging.
    """

    cfg = config or EngineConfig()
    day = today or date.today()

    installments: list[Obligation] = []
    for loan in loans:
        installments.extend(expand_loan(loan, today=day, lookahead_days=cfg.lookahead_days))

    fresh = dedupe_latest_per_card(candidates) + installments
    merged = merge_with_prior(fresh, previous)
    manual = [item for item in previous if item.is_manual]

    result = sort_by_due_date([*manual, *merged])
    _logger.info(
        "Reconciled %d fresh item(s) from %d candidate(s) and %d installment(s); %d manual",
        len(fresh),
        len(candidates),
        len(installments),
        len(manual),
    )
    return ReconcileResult(obligations=result, fresh_count=len(fresh))


__all__ = [
    "INSTALLMENT_MARKER",
    "dedupe_latest_per_card",
    "expand_loan",
    "loan_id",
    "merge_with_prior",
    "reconcile",
    "sort_by_due_date",
    "stable_key",
]
