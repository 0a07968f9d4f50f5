"""User actions and read-side selectors over the reconciled obligation list.

All functions take the current list and return a new one; nothing is
mutated in place. Invalid actions raise :class:`~ekstre.errors.LedgerError`
subclasses.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from .entry_format import parse_bank_entry_description
from .errors import DuplicateEntryError, EntryNotFoundError, LedgerError
from .logging_setup import get_logger
from .models import ManualEntryType, Obligation
from .normalize import add_months
from .reconcile import INSTALLMENT_MARKER, sort_by_due_date

_logger = get_logger("ekstre.ledger")

_INSTALLMENT_ID_RE = re.compile(rf"^(.+){INSTALLMENT_MARKER}\d+$")
_INSTALLMENT_LABEL_RE = re.compile(r"^(.+) - Taksit (\d+)/(\d+)$")


def _update(
    items: Sequence[Obligation],
    entry_id: str,
    change: Callable[[Obligation], Obligation],
) -> list[Obligation]:
    out: list[Obligation] = []
    found = False
    for item in items:
        if item.id == entry_id:
            out.append(change(item))
            found = True
        else:
            out.append(item)
    if not found:
        raise EntryNotFoundError(entry_id)
    return out


def _require_statement(item: Obligation) -> Obligation:
    if item.is_manual:
        raise LedgerError(f"{item.id!r} is a manual entry; edit its amount directly")
    return item


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


def toggle_paid(items: Sequence[Obligation], entry_id: str) -> list[Obligation]:
    return _update(items, entry_id, lambda o: replace(o, is_paid=not o.is_paid))


def set_user_amount(
    items: Sequence[Obligation], entry_id: str, amount: Decimal
) -> list[Obligation]:
    """Fill in or override the amount of an extracted statement."""

    if amount < 0:
        raise LedgerError("amount must not be negative")
    return _update(
        items, entry_id, lambda o: replace(_require_statement(o), user_amount=amount)
    )


def clear_user_amount(items: Sequence[Obligation], entry_id: str) -> list[Obligation]:
    return _update(items, entry_id, lambda o: replace(_require_statement(o), user_amount=None))


def set_user_due_date(
    items: Sequence[Obligation], entry_id: str, due_date: date | None
) -> list[Obligation]:
    """Override (or with ``None`` restore) the displayed due date of a statement."""

    result = _update(
        items, entry_id, lambda o: replace(_require_statement(o), user_due_date=due_date)
    )
    return sort_by_due_date(result)


def add_manual_entry(
    items: Sequence[Obligation],
    *,
    entry_id: str,
    description: str,
    amount: Decimal,
    due_date: date,
    entry_type: ManualEntryType = "debt",
    installment_count: int | None = None,
    is_paid: bool = False,
) -> list[Obligation]:
    """Add a user-typed obligation.

    A ``loan`` with ``installment_count`` becomes that many monthly ``debt``
    rows with ids ``<entry_id>_installment_<n>`` and descriptions
    ``"<description> - Taksit n/N"``. A description in the
    ``"<Bank> - ****1234"`` form fills ``bank_name`` and ``last4_digits``.
    """

    if not description.strip():
        raise LedgerError("description must not be empty")
    if amount is None or amount < 0:
        raise LedgerError("manual entries need a non-negative amount")

    existing = {item.id for item in items}
    entry = parse_bank_entry_description(description)
    bank_name = entry.bank_name if entry else description.strip()
    last4 = entry.last4_digits if entry else None

    new: list[Obligation] = []
    if entry_type == "loan" and installment_count and installment_count > 0:
        for i in range(installment_count):
            new.append(
                Obligation(
                    id=f"{entry_id}{INSTALLMENT_MARKER}{i + 1}",
                    bank_name=bank_name,
                    due_date=add_months(due_date, i),
                    amount=amount,
                    source="manual",
                    entry_type="debt",
                    last4_digits=last4,
                    description=f"{description} - Taksit {i + 1}/{installment_count}",
                )
            )
    else:
        new.append(
            Obligation(
                id=entry_id,
                bank_name=bank_name,
                due_date=due_date,
                amount=amount,
                source="manual",
                entry_type="debt" if entry_type == "loan" else entry_type,
                last4_digits=last4,
                description=description,
                is_paid=is_paid,
            )
        )

    for item in new:
        if item.id in existing:
            raise DuplicateEntryError(item.id)
    _logger.info("Added %d manual item(s) for %s", len(new), entry_id)
    return sort_by_due_date([*items, *new])


def delete_manual_entry(items: Sequence[Obligation], entry_id: str) -> list[Obligation]:
    out = [item for item in items if not (item.is_manual and item.id == entry_id)]
    if len(out) == len(items):
        raise EntryNotFoundError(entry_id)
    return out


def delete_loan(items: Sequence[Obligation], loan_id: str) -> list[Obligation]:
    """Remove every manual installment of ``loan_id``."""

    prefix = f"{loan_id}{INSTALLMENT_MARKER}"
    out = [item for item in items if not (item.is_manual and item.id.startswith(prefix))]
    if len(out) == len(items):
        raise EntryNotFoundError(loan_id)
    _logger.info("Deleted %d installment(s) of %s", len(items) - len(out), loan_id)
    return out


def import_items(
    items: Sequence[Obligation], incoming: Iterable[Obligation], *, merge: bool
) -> list[Obligation]:
    """Replace the list with ``incoming``, or with ``merge`` add unknown ids only."""

    if not merge:
        return sort_by_due_date(incoming)
    known = {item.id for item in items}
    added = [item for item in incoming if item.id not in known]
    return sort_by_due_date([*items, *added])


# ---------------------------------------------------------------------------
# Selectors
# ---------------------------------------------------------------------------


def total_debt(items: Iterable[Obligation]) -> Decimal:
    """Sum of unpaid debts, preferring the user-entered amount."""

    return sum(
        (
            item.effective_amount or Decimal("0")
            for item in items
            if item.entry_type == "debt" and not item.is_paid
        ),
        Decimal("0"),
    )


def visible_obligations(
    items: Iterable[Obligation], *, today: date, manual_horizon_months: int = 1
) -> list[Obligation]:
    """Everything except manual installments outside ``[today, today + N months]``."""

    end = add_months(today, manual_horizon_months)
    out: list[Obligation] = []
    for item in items:
        if item.is_manual and _INSTALLMENT_ID_RE.match(item.id):
            if not today <= item.effective_due_date <= end:
                continue
        out.append(item)
    return out


@dataclass(frozen=True, slots=True)
class LoanGroup:
    loan_id: str
    description: str
    total_installments: int
    paid_count: int
    installments: list[Obligation]

    @property
    def remaining_amount(self) -> Decimal:
        return total_debt(self.installments)


def group_loans(items: Iterable[Obligation]) -> list[LoanGroup]:
    """Group manual installments by loan id, installments in due-date order."""

    groups: dict[str, list[Obligation]] = {}
    labels: dict[str, tuple[str, int]] = {}
    for item in items:
        if not item.is_manual:
            continue
        id_match = _INSTALLMENT_ID_RE.match(item.id)
        label_match = _INSTALLMENT_LABEL_RE.match(item.description or "")
        if id_match is None or label_match is None:
            continue
        loan = id_match.group(1)
        groups.setdefault(loan, []).append(item)
        labels.setdefault(loan, (label_match.group(1), int(label_match.group(3))))

    out: list[LoanGroup] = []
    for loan, installments in groups.items():
        description, total = labels[loan]
        ordered = sorted(installments, key=lambda o: o.due_date)
        out.append(
            LoanGroup(
                loan_id=loan,
                description=description,
                total_installments=total,
                paid_count=sum(1 for o in ordered if o.is_paid),
                installments=ordered,
            )
        )
    return out


__all__ = [
    "LoanGroup",
    "add_manual_entry",
    "clear_user_amount",
    "delete_loan",
    "delete_manual_entry",
    "group_loans",
    "import_items",
    "set_user_amount",
    "set_user_due_date",
    "toggle_paid",
    "total_debt",
    "visible_obligations",
]
