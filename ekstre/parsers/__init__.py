"""Bank parser registry.

Order matters: within a channel, the first parser whose ``can_parse``
accepts a message owns it. Statement parsers and loan parsers are separate
families; a message is offered to statement parsers first.
"""

from __future__ import annotations

from ..models import Channel
from .akbank import AkbankEmailParser, AkbankScreenshotParser
from .base import (
    LoanParser,
    MessageParser,
    StatementParser,
    run_first_match,
    safe_parse,
)
from .garanti import GarantiEmailParser, GarantiLoanSmsParser, GarantiSmsParser
from .isbank import IsbankEmailParser
from .kuveytturk import KuveytTurkEmailParser, KuveytTurkSmsParser
from .qnb import QnbEmailParser, QnbLoanSmsParser, QnbSmsParser
from .yapikredi import YapiKrediEmailParser
from .ziraat import ZiraatEmailParser

MESSAGE_PARSERS: tuple[StatementParser, ...] = (
    GarantiSmsParser(),
    KuveytTurkSmsParser(),
    QnbSmsParser(),
)

EMAIL_PARSERS: tuple[StatementParser, ...] = (
    YapiKrediEmailParser(),
    ZiraatEmailParser(),
    GarantiEmailParser(),
    KuveytTurkEmailParser(),
    IsbankEmailParser(),
    AkbankEmailParser(),
    QnbEmailParser(),
)

SCREENSHOT_PARSERS: tuple[StatementParser, ...] = (AkbankScreenshotParser(),)

LOAN_PARSERS: tuple[LoanParser, ...] = (
    GarantiLoanSmsParser(),
    QnbLoanSmsParser(),
)

_BY_CHANNEL: dict[Channel, tuple[StatementParser, ...]] = {
    "message": MESSAGE_PARSERS,
    "email": EMAIL_PARSERS,
    "screenshot": SCREENSHOT_PARSERS,
}


def statement_parsers(channel: Channel) -> tuple[StatementParser, ...]:
    return _BY_CHANNEL[channel]


def loan_parsers(channel: Channel) -> tuple[LoanParser, ...]:
    return tuple(p for p in LOAN_PARSERS if p.channel == channel)


__all__ = [
    "EMAIL_PARSERS",
    "LOAN_PARSERS",
    "MESSAGE_PARSERS",
    "SCREENSHOT_PARSERS",
    "AkbankEmailParser",
    "AkbankScreenshotParser",
    "GarantiEmailParser",
    "GarantiLoanSmsParser",
    "GarantiSmsParser",
    "IsbankEmailParser",
    "KuveytTurkEmailParser",
    "KuveytTurkSmsParser",
    "LoanParser",
    "MessageParser",
    "QnbEmailParser",
    "QnbLoanSmsParser",
    "QnbSmsParser",
    "StatementParser",
    "YapiKrediEmailParser",
    "ZiraatEmailParser",
    "loan_parsers",
    "run_first_match",
    "safe_parse",
    "statement_parsers",
]
