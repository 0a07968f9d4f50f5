"""Akbank: statement email and screenshots of the mobile app (Axess, Wings).

Screenshot text comes from OCR and is noisy. The masked card prefix
``****`` is often read as letters (``co0e``), and the digits can end up alone
on their own line, so the card number is looked up through fallbacks ordered
from most to least specific. The app shows the due date without a year
("Son gün: 26 Kasım"); the year is taken from the capture time.
"""

from __future__ import annotations

import re

from ..banks import AKBANK
from ..models import Obligation, RawMessage
from ..normalize import parse_dotted_date, parse_turkish_day_month, parse_turkish_number
from .base import StatementParser, contains_all, first_search, search, sender_matches

_EMAIL_CARD_RE = re.compile(r"(\d{4})'(?:l|n)?e biten", re.IGNORECASE)
_EMAIL_DATE_RE = re.compile(r"son ödeme tarihi (\d{2}\.\d{2}\.\d{4})", re.IGNORECASE)
_EMAIL_AMOUNT_RE = re.compile(r"dönem borcunuz ([\d.,]+) TL", re.IGNORECASE)

_SCREEN_CARD_RES = (
    re.compile(r"\*+(\d{4})"),
    re.compile(r"c[o0]+e\s+(\d{4})", re.IGNORECASE),
    # OCR sometimes drops the mask and leaves the digits on a line of their
    # own. Lines that read as a year (19xx/20xx) are not taken as card digits.
    re.compile(r"^\s*(?!(?:19|20)\d{2}\s*$)(\d{4})\s*$", re.MULTILINE),
)
_SCREEN_DATE_RE = re.compile(r"son\s+gün\s*:\s*(\d{1,2}\s+[a-zçğıöşü]+)", re.IGNORECASE)
_SCREEN_AMOUNT_RE = re.compile(
    r"son\s+gün\s*:\s*\d{1,2}\s+[a-zçğıöşü]+\s+([\d.,]+)\s*TL", re.IGNORECASE
)
# OCR reads "aXess" as "aIxess" and "Wings" as "W/NGS".
_SCREEN_BRAND_RE = re.compile(r"akbank|a[iı]?xess|w[i1l/|]ngs", re.IGNORECASE)
_SCREEN_MARKERS = ("son gün", "ekstre", "öde")


class AkbankEmailParser(StatementParser):
    bank_name = AKBANK
    channel = "email"

    def can_parse(self, message: RawMessage) -> bool:
        return sender_matches(message, "hizmet@bilgi.akbank.com") and contains_all(
            message.subject, "kredi kartı ekstre bilgileri"
        )

    def parse(self, message: RawMessage) -> Obligation | None:
        content = message.rich_body
        due_date = parse_dotted_date(search(_EMAIL_DATE_RE, content))
        if due_date is None:
            return None
        return self.make_obligation(
            message,
            due_date=due_date,
            amount=parse_turkish_number(search(_EMAIL_AMOUNT_RE, content)),
            last4_digits=search(_EMAIL_CARD_RE, content),
        )


class AkbankScreenshotParser(StatementParser):
    bank_name = AKBANK
    channel = "screenshot"

    def can_parse(self, message: RawMessage) -> bool:
        text = message.body.lower()
        return bool(_SCREEN_BRAND_RE.search(text)) and any(m in text for m in _SCREEN_MARKERS)

    def parse(self, message: RawMessage) -> Obligation | None:
        text = message.body
        due_date = parse_turkish_day_month(
            search(_SCREEN_DATE_RE, text), reference=message.received_at.date()
        )
        if due_date is None:
            return None
        return self.make_obligation(
            message,
            due_date=due_date,
            amount=parse_turkish_number(search(_SCREEN_AMOUNT_RE, text)),
            last4_digits=first_search(_SCREEN_CARD_RES, text),
        )


__all__ = ["AkbankEmailParser", "AkbankScreenshotParser"]
