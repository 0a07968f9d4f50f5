"""Ziraat Bankası e-ekstre email."""

from __future__ import annotations

import re

from ..banks import ZIRAAT
from ..models import Obligation, RawMessage
from ..normalize import parse_dmy_date, parse_turkish_number
from .base import StatementParser, contains_all, search, sender_matches

_CARD_RE = re.compile(
    r"<p><b>(?:\d{4}-####-####-|\d{4} \*{4} \*{4} )(\d{4})</b>", re.IGNORECASE
)
_DATE_RE = re.compile(
    r"<b>Son(?:&nbsp;|\s)+[ÖO]deme(?:&nbsp;|\s)+Tarihi</b>.*?<center>(\d{2}/\d{2}/\d{4})</center>",
    re.IGNORECASE | re.DOTALL,
)
_AMOUNT_RE = re.compile(r"<center>\s*(?:<b>)?\s*([\d.,]+)\s*(?:</b>)?\s*</center>")


class ZiraatEmailParser(StatementParser):
    bank_name = ZIRAAT
    channel = "email"

    def can_parse(self, message: RawMessage) -> bool:
        return sender_matches(message, "ziraatbank.com.tr") and contains_all(
            message.subject, "e-ekstre"
        )

    def parse(self, message: RawMessage) -> Obligation | None:
        content = message.html_body
        if not content:
            return None
        due_date = parse_dmy_date(search(_DATE_RE, content))
        if due_date is None:
            return None
        # The first <center> cell holding a number is the statement total; the
        # due date cell ("14/04/2025") is skipped by the character class.
        return self.make_obligation(
            message,
            due_date=due_date,
            amount=parse_turkish_number(search(_AMOUNT_RE, content)),
            last4_digits=search(_CARD_RE, content),
        )


__all__ = ["ZiraatEmailParser"]
