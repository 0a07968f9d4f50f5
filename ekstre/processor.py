"""Statement and loan collection across banks and channels.

The processor owns the static bank table: which channels each bank uses, how
to ask the retrieval collaborator for candidate messages, and which parsers
apply. Retrieval runs concurrently per bank; parsing is synchronous.

A failing retrieval (search or fetch) is logged and skipped, so that bank
contributes nothing to the run while every other bank proceeds.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol

from .banks import AKBANK, GARANTI, ISBANK, KUVEYT_TURK, QNB, YAPI_KREDI, ZIRAAT
from .config import EngineConfig
from .fanout import p_map_settled
from .logging_setup import get_logger
from .models import Candidates, Channel, LoanAgreement, Obligation, RawMessage
from .normalize import add_months
from .parsers import (
    AkbankEmailParser,
    AkbankScreenshotParser,
    GarantiEmailParser,
    GarantiLoanSmsParser,
    GarantiSmsParser,
    IsbankEmailParser,
    KuveytTurkEmailParser,
    KuveytTurkSmsParser,
    LoanParser,
    QnbEmailParser,
    QnbLoanSmsParser,
    QnbSmsParser,
    StatementParser,
    YapiKrediEmailParser,
    ZiraatEmailParser,
    loan_parsers,
    run_first_match,
    statement_parsers,
)

_logger = get_logger("ekstre.processor")


# ---------------------------------------------------------------------------
# Retrieval collaborator contract
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MessageRef:
    channel: Channel
    id: str


@dataclass(frozen=True, slots=True)
class RetrievalFilter:
    """What to ask a message source for.

    ``query`` is a mail search expression for email (``from:(...)
    subject:("...") after:YYYY/MM/DD``) and a sender name for text messages.
    ``keywords`` narrows text messages to those containing any keyword.
    """

    channel: Channel
    query: str
    keywords: tuple[str, ...] = ()
    since: date | None = None
    max_results: int = 10


class MessageSource(Protocol):
    """Transport adapter for one channel (mailbox, message store, gallery)."""

    def search(self, retrieval_filter: RetrievalFilter) -> list[MessageRef]: ...

    def fetch_body(self, ref: MessageRef) -> RawMessage: ...


# ---------------------------------------------------------------------------
# Bank table
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ChannelConfig:
    channel: Channel
    query: str
    keywords: tuple[str, ...] = ()
    parsers: tuple[StatementParser, ...] = ()
    loan_parsers: tuple[LoanParser, ...] = ()

    def retrieval_filter(self, *, since: date, config: EngineConfig) -> RetrievalFilter:
        query = self.query
        if self.channel == "email":
            query = f"{query} after:{since:%Y/%m/%d}".strip()
            max_results = config.email_max_results
        else:
            max_results = config.message_max_results
        return RetrievalFilter(
            channel=self.channel,
            query=query,
            keywords=self.keywords,
            since=since,
            max_results=max_results,
        )


@dataclass(frozen=True, slots=True)
class BankConfig:
    bank_name: str
    channels: tuple[ChannelConfig, ...]


DEFAULT_BANK_CONFIGS: tuple[BankConfig, ...] = (
    BankConfig(
        YAPI_KREDI,
        (
            ChannelConfig(
                "email",
                'from:(ekstre@ekstre.yapikredi.com.tr) subject:("Hesap Özeti")',
                parsers=(YapiKrediEmailParser(),),
            ),
        ),
    ),
    BankConfig(
        ZIRAAT,
        (
            ChannelConfig(
                "email",
                'from:(ziraat@ileti.ziraatbank.com.tr) subject:("e-ekstre")',
                parsers=(ZiraatEmailParser(),),
            ),
        ),
    ),
    BankConfig(
        GARANTI,
        (
            ChannelConfig(
                "email",
                'from:(garantibbva@garantibbva.com.tr) subject:("Bonus Ekstresi")',
                parsers=(GarantiEmailParser(),),
            ),
            ChannelConfig("message", "BONUS", ("ekstresinin",), parsers=(GarantiSmsParser(),)),
            ChannelConfig(
                "message",
                "GARANTIBBVA",
                ("ihtiyac krediniz",),
                loan_parsers=(GarantiLoanSmsParser(),),
            ),
        ),
    ),
    BankConfig(
        KUVEYT_TURK,
        (
            ChannelConfig(
                "email",
                'from:(bilgilendirme@kuveytturk.com.tr) '
                'subject:("Kuveyt Türk Kredi Kartı Hesap Ekstreniz")',
                parsers=(KuveytTurkEmailParser(),),
            ),
            ChannelConfig(
                "message", "KUVEYT TURK", ("ekstresi kesildi",), parsers=(KuveytTurkSmsParser(),)
            ),
        ),
    ),
    BankConfig(
        ISBANK,
        (
            ChannelConfig(
                "email",
                'from:(bilgilendirme@ileti.isbank.com.tr) '
                'subject:("Maximum Kredi Kartı Hesap Özeti")',
                parsers=(IsbankEmailParser(),),
            ),
        ),
    ),
    BankConfig(
        AKBANK,
        (
            ChannelConfig(
                "email",
                'from:(hizmet@bilgi.akbank.com) subject:("Kredi kartı ekstre bilgileri")',
                parsers=(AkbankEmailParser(),),
            ),
            ChannelConfig("screenshot", "", parsers=(AkbankScreenshotParser(),)),
        ),
    ),
    BankConfig(
        QNB,
        (
            ChannelConfig(
                "email", "from:(eekstre@eekstre.qnb.com.tr)", parsers=(QnbEmailParser(),)
            ),
            ChannelConfig("message", "QNB", ("borcu",), parsers=(QnbSmsParser(),)),
            ChannelConfig(
                "message", "QNB", ("krediniz",), loan_parsers=(QnbLoanSmsParser(),)
            ),
        ),
    ),
)


# ---------------------------------------------------------------------------
# Parsing a single message
# ---------------------------------------------------------------------------


def _parse_into(
    message: RawMessage,
    *,
    parsers: Sequence[StatementParser],
    loans: Sequence[LoanParser],
    into: Candidates,
) -> None:
    match = run_first_match(parsers, message)
    if match is not None:
        if match[1] is not None:
            into.obligations.append(match[1])
        return
    loan_match = run_first_match(loans, message)
    if loan_match is not None and loan_match[1] is not None:
        into.loans.append(loan_match[1])


def parse_message(message: RawMessage) -> Obligation | LoanAgreement | None:
    """Offer ``message`` to every registered parser of its channel."""

    found = Candidates()
    _parse_into(
        message,
        parsers=statement_parsers(message.channel),
        loans=loan_parsers(message.channel),
        into=found,
    )
    if found.obligations:
        return found.obligations[0]
    if found.loans:
        return found.loans[0]
    return None


def process_screenshot(text: str | None, *, captured_at: datetime | None = None) -> Obligation | None:
    """Parse OCR text of one screenshot; ``None`` when no parser recognizes it."""

    if not text or not text.strip():
        return None
    message = RawMessage(
        channel="screenshot",
        sender="",
        body=text,
        received_at=captured_at or datetime.now(),
    )
    result = parse_message(message)
    return result if isinstance(result, Obligation) else None


def supported_screenshot_banks() -> list[str]:
    return [p.bank_name for p in statement_parsers("screenshot")]


def has_screenshot_parser(bank_name: str) -> bool:
    return bank_name in supported_screenshot_banks()


# ---------------------------------------------------------------------------
# Collection across banks
# ---------------------------------------------------------------------------


class StatementProcessor:
    """Collects candidate obligations and loan agreements for one run.

    Parameters
    ----------
    sources:
        One retrieval collaborator per channel. Channels without a source are
        skipped.
    banks:
        Bank table; defaults to :data:`DEFAULT_BANK_CONFIGS`.
    config:
        Retrieval window, result caps and concurrency.
    """

    def __init__(
        self,
        sources: Mapping[Channel, MessageSource],
        *,
        banks: Sequence[BankConfig] = DEFAULT_BANK_CONFIGS,
        config: EngineConfig | None = None,
    ) -> None:
        self._sources = dict(sources)
        self._banks = tuple(banks)
        self._config = config or EngineConfig()

    def collect(self, *, today: date | None = None) -> Candidates:
        """Retrieve and parse messages for every bank.

        Returns once every bank's retrieval has finished. A bank whose
        retrieval fails contributes nothing.
        """

        since = add_months(today or date.today(), -self._config.retrieval_window_months)
        outcomes = p_map_settled(
            self._banks,
            lambda bank: self._collect_bank(bank, since=since),
            concurrency=self._config.concurrency,
        )
        collected = Candidates()
        for outcome in outcomes:
            if outcome.ok and outcome.value is not None:
                collected.extend(outcome.value)
            else:
                _logger.warning(
                    "Collection failed for %s", outcome.item.bank_name, exc_info=outcome.error
                )
        _logger.info(
            "Collected %d statement(s) and %d loan(s) from %d bank(s)",
            len(collected.obligations),
            len(collected.loans),
            len(self._banks),
        )
        return collected

    def _collect_bank(self, bank: BankConfig, *, since: date) -> Candidates:
        found = Candidates()
        for channel_config in bank.channels:
            source = self._sources.get(channel_config.channel)
            if source is None:
                continue
            retrieval_filter = channel_config.retrieval_filter(since=since, config=self._config)
            try:
                refs = source.search(retrieval_filter)
            except Exception:  # noqa: BLE001
                _logger.warning(
                    "Search failed for %s (%s)",
                    bank.bank_name,
                    channel_config.channel,
                    exc_info=True,
                )
                continue
            for ref in refs[: retrieval_filter.max_results]:
                try:
                    message = source.fetch_body(ref)
                except Exception:  # noqa: BLE001
                    _logger.warning(
                        "Fetching %s failed for %s", ref.id, bank.bank_name, exc_info=True
                    )
                    continue
                _parse_into(
                    message,
                    parsers=channel_config.parsers,
                    loans=channel_config.loan_parsers,
                    into=found,
                )
        _logger.debug(
            "%s: %d statement(s), %d loan(s)",
            bank.bank_name,
            len(found.obligations),
            len(found.loans),
        )
        return found


__all__ = [
    "DEFAULT_BANK_CONFIGS",
    "BankConfig",
    "ChannelConfig",
    "MessageRef",
    "MessageSource",
    "RetrievalFilter",
    "StatementProcessor",
    "has_screenshot_parser",
    "parse_message",
    "process_screenshot",
    "supported_screenshot_banks",
]
