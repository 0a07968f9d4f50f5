"""Yapı Kredi statement email.

The notice only announces the statement ("son ödeme tarihi 5 Şubat 2025 olan
hesap özetiniz ..."); it never states an amount, so the obligation is left
for the user to complete.
"""

from __future__ import annotations

import re

from ..banks import YAPI_KREDI
from ..models import Obligation, RawMessage
from ..normalize import parse_turkish_date
from .base import StatementParser, contains_all, search, sender_matches

_DATE_RE = re.compile(r"son [oö]deme tarihi (\d{1,2}\s+\S+\s+\d{4})\s+olan", re.IGNORECASE)
_CARD_RE = re.compile(r"(\d{6})\*{6}(\d{4})\s+numaral[ıi]", re.IGNORECASE)


class YapiKrediEmailParser(StatementParser):
    bank_name = YAPI_KREDI
    channel = "email"

    def can_parse(self, message: RawMessage) -> bool:
        return sender_matches(message, "yapikredi.com.tr") and contains_all(
            message.subject, "hesap özeti"
        )

    def parse(self, message: RawMessage) -> Obligation | None:
        for content in (message.html_body, message.body):
            due_date = parse_turkish_date(search(_DATE_RE, content))
            if due_date is None:
                continue
            return self.make_obligation(
                message,
                due_date=due_date,
                amount=None,
                last4_digits=search(_CARD_RE, content, group=2),
            )
        return None


__all__ = ["YapiKrediEmailParser"]
