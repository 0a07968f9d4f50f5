"""İş Bankası statement email.

The statement itself is a PDF attachment. The retrieval collaborator
extracts its text into ``Attachment.text``; this parser only reads that text.
Amount is mandatory here: the PDF always prints it, so a statement without
one means the extraction went wrong.
"""

from __future__ import annotations

import re

from ..banks import ISBANK
from ..logging_setup import get_logger
from ..models import Attachment, Obligation, RawMessage
from ..normalize import parse_dotted_date, parse_turkish_number
from .base import StatementParser, search, sender_matches

_logger = get_logger("ekstre.parsers.isbank")

# "Maximum 5400 **** **** 0000 - Temmuz 2025 Maximum Kredi Kartı Hesap Özeti"
_SUBJECT_RE = re.compile(
    r"^(.*?)\d{4}\s\*{4}\s\*{4}\s\d{4}\s-\s.*?\d{4}\s(.*?)Kredi\sKartı\sHesap\sÖzeti$",
    re.IGNORECASE,
)
_DATE_RE = re.compile(r"Son Ödeme Tarihi\s*:\s*(\d{2}\.\d{2}\.\d{4})", re.IGNORECASE)
_AMOUNT_RE = re.compile(r"Hesap Özeti Borcu\s*:\s*([\d.,]+)\s*TL", re.IGNORECASE)
_CARD_RE = re.compile(r"\b(\d{4})\s*\*{4}\s*\*{4}\s*(\d{4})\b")


def _statement_pdf(message: RawMessage) -> Attachment | None:
    for attachment in message.attachments:
        if attachment.filename.lower().endswith(".pdf") and attachment.text:
            return attachment
    return None


class IsbankEmailParser(StatementParser):
    bank_name = ISBANK
    channel = "email"

    def can_parse(self, message: RawMessage) -> bool:
        return sender_matches(message, "bilgilendirme@ileti.isbank.com.tr") and bool(
            _SUBJECT_RE.match(message.subject.strip())
        )

    def parse(self, message: RawMessage) -> Obligation | None:
        pdf = _statement_pdf(message)
        if pdf is None:
            _logger.info("İş Bankası statement %s has no extracted PDF text", message.ref)
            return None
        text = pdf.text
        due_date = parse_dotted_date(search(_DATE_RE, text))
        amount = parse_turkish_number(search(_AMOUNT_RE, text))
        if due_date is None or amount is None:
            return None
        return self.make_obligation(
            message,
            due_date=due_date,
            amount=amount,
            last4_digits=search(_CARD_RE, text, group=2),
        )


__all__ = ["IsbankEmailParser"]
