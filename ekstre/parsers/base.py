"""Parser contract and the helpers every bank parser shares.

A parser handles one (bank, channel) pair. ``can_parse`` is a cheap,
conservative pre-filter on sender and keywords; ``parse`` runs the
bank-specific regular expressions. Parsers are tried in a fixed registration
order and the first one whose ``can_parse`` accepts a message owns it.

Parser failures never escape: :func:`safe_parse` and :func:`run_first_match`
log the exception and report ``None`` so one malformed message cannot abort
a run.
"""

from __future__ import annotations

import re
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import ClassVar

from ..logging_setup import get_logger
from ..models import Channel, LoanAgreement, Obligation, RawMessage
from ..normalize import fold_turkish

_logger = get_logger("ekstre.parsers")


class MessageParser[T](ABC):
    """Base class for all parsers producing ``T`` from a ``RawMessage``."""

    bank_name: ClassVar[str]
    channel: ClassVar[Channel]

    @abstractmethod
    def can_parse(self, message: RawMessage) -> bool: ...

    @abstractmethod
    def parse(self, message: RawMessage) -> T | None: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class StatementParser(MessageParser[Obligation]):
    """Emits a card-statement ``Obligation``."""

    def make_obligation(
        self,
        message: RawMessage,
        *,
        due_date: date,
        amount: Decimal | None,
        last4_digits: str | None,
    ) -> Obligation:
        return Obligation(
            id=new_obligation_id(),
            bank_name=self.bank_name,
            due_date=due_date,
            amount=amount,
            last4_digits=last4_digits,
            source=message.channel,
            entry_type="debt",
            original_message=message,
        )


class LoanParser(MessageParser[LoanAgreement]):
    """Emits a ``LoanAgreement`` from a loan approval notice."""


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def new_obligation_id() -> str:
    return uuid.uuid4().hex


def search(pattern: re.Pattern[str], text: str | None, group: int = 1) -> str | None:
    """Return ``group`` of the first match of ``pattern`` in ``text``."""

    if not text:
        return None
    m = pattern.search(text)
    if m is None:
        return None
    value = m.group(group)
    return value.strip() if value else None


def first_search(patterns: Iterable[re.Pattern[str]], text: str | None) -> str | None:
    """Try ``patterns`` in order (most specific first) and return the first hit."""

    for pattern in patterns:
        value = search(pattern, text)
        if value is not None:
            return value
    return None


def sender_matches(message: RawMessage, *needles: str) -> bool:
    sender = fold_turkish(message.sender)
    return any(fold_turkish(n) in sender for n in needles)


def contains_all(text: str | None, *keywords: str) -> bool:
    """Case- and diacritic-insensitive check that every keyword occurs."""

    if not text:
        return False
    folded = fold_turkish(text)
    return all(fold_turkish(k) in folded for k in keywords)


def safe_parse[T](parser: MessageParser[T], message: RawMessage) -> T | None:
    """Run ``parser.parse`` and turn any exception into a logged ``None``."""

    try:
        return parser.parse(message)
    except Exception:  # noqa: BLE001
        _logger.warning(
            "Parser %s failed on message from %s", parser, message.sender, exc_info=True
        )
        return None


def run_first_match[T](
    parsers: Iterable[MessageParser[T]], message: RawMessage
) -> tuple[MessageParser[T], T | None] | None:
    """Hand ``message`` to the first parser that accepts it.

    Returns ``None`` when no parser accepts the message, otherwise the owning
    parser and its (possibly ``None``) result. Later parsers are not consulted
    once one has accepted.
    """

    for parser in parsers:
        try:
            accepted = parser.can_parse(message)
        except Exception:  # noqa: BLE001
            _logger.warning("Parser %s failed in can_parse", parser, exc_info=True)
            continue
        if accepted:
            result = safe_parse(parser, message)
            if result is None:
                _logger.info(
                    "%s accepted a message from %s but extracted nothing", parser, message.sender
                )
            return parser, result
    return None


__all__ = [
    "LoanParser",
    "MessageParser",
    "StatementParser",
    "contains_all",
    "first_search",
    "new_obligation_id",
    "run_first_match",
    "safe_parse",
    "search",
    "sender_matches",
]
