"""Data models for ``ekstre``.

Raw channel input (``RawMessage``) flows through the parsers into either an
``Obligation`` (a dated payment item shown to the user) or a
``LoanAgreement`` (an intermediate value that reconciliation expands into
installment obligations and then drops).

Models are frozen dataclasses; user actions produce new instances through
``dataclasses.replace`` instead of mutating in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Literal

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

type Channel = Literal["message", "email", "screenshot"]
"""Raw input modality a notification arrived through."""

type Source = Literal["message", "email", "screenshot", "manual"]
"""Where an obligation came from. ``manual`` entries are typed in by the user."""

type EntryType = Literal["debt", "expense"]
"""Obligation kind. Loans always decompose into ``debt`` installments."""

type ManualEntryType = Literal["debt", "expense", "loan"]
"""Kinds accepted for manual entry; ``loan`` expands into ``debt`` rows."""

CHANNELS: tuple[Channel, ...] = ("message", "email", "screenshot")


# ---------------------------------------------------------------------------
# Raw input
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Attachment:
    """An email attachment reference.

    ``text`` holds the document text when the retrieval collaborator has
    already extracted it (PDF statements); the engine never decodes documents.
    """

    filename: str
    mime_type: str = "application/octet-stream"
    text: str | None = None


@dataclass(frozen=True, slots=True)
class RawMessage:
    """One notification as delivered by a retrieval collaborator.

    - ``body`` is the plain text (message text, plain email part, or OCR text).
      An undecodable body arrives as ``""``.
    - ``html_body`` is the decoded HTML part of an email, when present.
    - ``received_at`` is the arrival timestamp used to pick the latest of
      several notifications for the same card.
    """

    channel: Channel
    sender: str
    body: str
    received_at: datetime
    subject: str = ""
    html_body: str | None = None
    attachments: tuple[Attachment, ...] = ()
    ref: str | None = None

    @property
    def rich_body(self) -> str:
        """HTML body when present, plain body otherwise."""

        return self.html_body or self.body


# ---------------------------------------------------------------------------
# Extraction output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Obligation:
    """A dated payment item (card statement, loan installment, manual entry).

    ``due_date`` is always a valid calendar date. ``amount`` is ``None`` only
    for automatically extracted statements whose notification did not state
    it; the user may then fill ``user_amount``. ``user_due_date`` likewise
    overrides the extracted due date for display without changing the
    extracted value that identifies the statement across runs.
    """

    id: str
    bank_name: str
    due_date: date
    amount: Decimal | None
    source: Source
    entry_type: EntryType = "debt"
    last4_digits: str | None = None
    original_message: RawMessage | None = None
    is_paid: bool = False
    user_amount: Decimal | None = None
    user_due_date: date | None = None
    description: str | None = None

    @property
    def effective_amount(self) -> Decimal | None:
        return self.user_amount if self.user_amount is not None else self.amount

    @property
    def effective_due_date(self) -> date:
        return self.user_due_date or self.due_date

    @property
    def is_manual(self) -> bool:
        return self.source == "manual"


@dataclass(frozen=True, slots=True)
class LoanAgreement:
    """A one-time loan approval notice.

    Only agreements with a known ``term_months``, ``first_payment_date`` and
    ``installment_amount`` can be expanded into installments.
    """

    bank_name: str
    original_message: RawMessage
    total_amount: Decimal | None = None
    installment_amount: Decimal | None = None
    term_months: int | None = None
    first_payment_date: date | None = None
    account_number: str | None = None

    @property
    def is_expandable(self) -> bool:
        return (
            self.term_months is not None
            and self.term_months > 0
            and self.first_payment_date is not None
            and self.installment_amount is not None
        )


@dataclass(frozen=True, slots=True)
class Candidates:
    """Everything one extraction pass collected, before reconciliation."""

    obligations: list[Obligation] = field(default_factory=list)
    loans: list[LoanAgreement] = field(default_factory=list)

    def extend(self, other: Candidates) -> None:
        self.obligations.extend(other.obligations)
        self.loans.extend(other.loans)


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Output of one reconciliation run.

    ``fresh_count`` counts automatically extracted items (after same-card
    dedup and installment expansion, before merging with the prior list).
    """

    obligations: list[Obligation]
    fresh_count: int


__all__ = [
    "CHANNELS",
    "Attachment",
    "Candidates",
    "Channel",
    "EntryType",
    "LoanAgreement",
    "ManualEntryType",
    "Obligation",
    "RawMessage",
    "ReconcileResult",
    "Source",
]
