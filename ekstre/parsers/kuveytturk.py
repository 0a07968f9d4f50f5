"""Kuveyt Türk notifications: statement-cut text message and statement email."""

from __future__ import annotations

import re

from ..banks import KUVEYT_TURK
from ..models import Obligation, RawMessage
from ..normalize import parse_dotted_date, parse_standard_number, parse_turkish_number
from .base import StatementParser, contains_all, search, sender_matches

# "... 0000 ile biten kartinizin ekstresi kesildi. Son Odeme Tarihi: 10.02.2025
# Toplam Borc: 1.492,42 TL ..."
_SMS_DATE_RE = re.compile(r"Son Odeme Tarihi: (\d{2}\.\d{2}\.\d{4})", re.IGNORECASE)
_SMS_AMOUNT_RE = re.compile(r"Toplam Borc: ([\d.,]+) TL", re.IGNORECASE)
_SMS_CARD_RE = re.compile(r"(\d{4}) ile biten kartinizin", re.IGNORECASE)

# "401234******9876 nolu kartınızın ..." and two-cell table rows.
_EMAIL_CARD_RE = re.compile(r"(\d{6})\*{6}(\d{4})\s+nolu", re.IGNORECASE)
_EMAIL_DATE_RE = re.compile(
    r"Son Ödeme Tarihi\s*</span>\s*</td>\s*<td[^>]*>\s*<span[^>]*>\s*([\d.]{10})\s*</span>",
    re.IGNORECASE,
)
_EMAIL_AMOUNT_RE = re.compile(
    r"Ekstre Dönem Tutarı\s*</span>\s*</td>\s*<td[^>]*>\s*<span[^>]*>\s*([\d.,]+)\s*TL\s*</span>",
    re.IGNORECASE,
)


class KuveytTurkSmsParser(StatementParser):
    bank_name = KUVEYT_TURK
    channel = "message"

    def can_parse(self, message: RawMessage) -> bool:
        return sender_matches(message, "kuveyt turk") and contains_all(
            message.body, "ile biten kartinizin ekstresi kesildi", "son odeme tarihi:"
        )

    def parse(self, message: RawMessage) -> Obligation | None:
        text = message.body
        due_date = parse_dotted_date(search(_SMS_DATE_RE, text))
        if due_date is None:
            return None
        return self.make_obligation(
            message,
            due_date=due_date,
            amount=parse_turkish_number(search(_SMS_AMOUNT_RE, text)),
            last4_digits=search(_SMS_CARD_RE, text),
        )


class KuveytTurkEmailParser(StatementParser):
    bank_name = KUVEYT_TURK
    channel = "email"

    def can_parse(self, message: RawMessage) -> bool:
        return sender_matches(message, "bilgilendirme@kuveytturk.com.tr") and contains_all(
            message.subject, "kuveyt türk kredi kartı hesap ekstreniz"
        )

    def parse(self, message: RawMessage) -> Obligation | None:
        content = message.html_body
        if not content:
            return None
        due_date = parse_dotted_date(search(_EMAIL_DATE_RE, content))
        if due_date is None:
            return None
        return self.make_obligation(
            message,
            due_date=due_date,
            # This template prints amounts as 1,492.42.
            amount=parse_standard_number(search(_EMAIL_AMOUNT_RE, content)),
            last4_digits=search(_EMAIL_CARD_RE, content, group=2),
        )


__all__ = ["KuveytTurkEmailParser", "KuveytTurkSmsParser"]
