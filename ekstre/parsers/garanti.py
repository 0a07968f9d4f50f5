"""Garanti BBVA notifications.

- Bonus text message offering to defer the minimum payment ("ATLAT"). The
  message states the last day to defer; the statement is due the day after.
- Bonus statement email, in two table layouts depending on the card program.
- Personal loan approval text message.
"""

from __future__ import annotations

import re
from datetime import timedelta

from ..banks import GARANTI
from ..models import LoanAgreement, Obligation, RawMessage
from ..normalize import parse_dotted_date, parse_standard_number, parse_turkish_number
from .base import LoanParser, StatementParser, contains_all, search, sender_matches

_SMS_CARD_RE = re.compile(r"(\d{4}) ile biten", re.IGNORECASE)
_SMS_AMOUNT_RE = re.compile(r"([\d.,]+) TL ekstresinin", re.IGNORECASE)
_SMS_DATE_RE = re.compile(r"(\d{2}\.\d{2}\.\d{4}) tarihine kadar", re.IGNORECASE)

_EMAIL_CARD_RE = re.compile(r"(\d{4})\s*\d{2}\*\*\s*\*\*\*\*\s*(\d{4})")

# <strong>Son Ödeme Tarihi:</strong><br>02.06.2025
_STRONG_DATE_RE = re.compile(r"Son Ödeme Tarihi:</strong><br>(\d{2}\.\d{2}\.\d{4})", re.IGNORECASE)
_STRONG_AMOUNT_RE = re.compile(
    r"Toplam Borç Tutarı:</strong><br>[+]?([\d.,]+) TL", re.IGNORECASE
)

# <td>Son Ödeme Tarihi</td><td ...>02.06.2025</td>
_TABLE_DATE_RE = re.compile(
    r"Son Ödeme Tarihi\s*:?\s*</td>\s*<td[^>]*>\s*(?:<[^>]+>\s*)*(\d{2}\.\d{2}\.\d{4})",
    re.IGNORECASE,
)
_TABLE_AMOUNT_RE = re.compile(
    r"(?:Toplam|Dönem) Borç(?: Tutarı)?\s*:?\s*</td>\s*<td[^>]*>\s*(?:<[^>]+>\s*)*[+]?([\d.,]+)\s*TL",
    re.IGNORECASE,
)

_LAYOUTS = (
    (_STRONG_DATE_RE, _STRONG_AMOUNT_RE),
    (_TABLE_DATE_RE, _TABLE_AMOUNT_RE),
)

_LOAN_AMOUNT_RE = re.compile(r"(?<![\d.,])([\d.]+) TL tutarinda", re.IGNORECASE)
_LOAN_TERM_RE = re.compile(r"(\d+) ay vadeli", re.IGNORECASE)


class GarantiSmsParser(StatementParser):
    bank_name = GARANTI
    channel = "message"

    def can_parse(self, message: RawMessage) -> bool:
        if message.sender.strip().lower() != "bonus":
            return False
        return contains_all(
            message.body,
            "ekstresinin minimum tutarini",
            "kalan kismini aylik",
            "ertelemek icin",
            "tarihine kadar atlat",
        )

    def parse(self, message: RawMessage) -> Obligation | None:
        text = message.body
        last4 = search(_SMS_CARD_RE, text)
        amount = parse_standard_number(search(_SMS_AMOUNT_RE, text))
        deadline = parse_dotted_date(search(_SMS_DATE_RE, text))
        if last4 is None or amount is None or deadline is None:
            return None
        return self.make_obligation(
            message,
            due_date=deadline + timedelta(days=1),
            amount=amount,
            last4_digits=last4,
        )


class GarantiEmailParser(StatementParser):
    bank_name = GARANTI
    channel = "email"

    def can_parse(self, message: RawMessage) -> bool:
        return sender_matches(message, "garantibbva@garantibbva.com.tr") and contains_all(
            message.subject, "bonus ekstresi"
        )

    def parse(self, message: RawMessage) -> Obligation | None:
        content = message.html_body
        if not content:
            return None
        last4 = search(_EMAIL_CARD_RE, content, group=2)
        for date_re, amount_re in _LAYOUTS:
            due_date = parse_dotted_date(search(date_re, content))
            if due_date is None:
                continue
            amount = parse_turkish_number(search(amount_re, content))
            return self.make_obligation(
                message, due_date=due_date, amount=amount, last4_digits=last4
            )
        return None


class GarantiLoanSmsParser(LoanParser):
    """Loan approval notice. States amount and term only, no payment plan."""

    bank_name = GARANTI
    channel = "message"

    def can_parse(self, message: RawMessage) -> bool:
        return sender_matches(message, "garantibbva") and contains_all(
            message.body, "tutarinda", "ay vadeli", "ihtiyac krediniz", "kullaniminiza acilmistir"
        )

    def parse(self, message: RawMessage) -> LoanAgreement | None:
        text = message.body
        raw_amount = search(_LOAN_AMOUNT_RE, text)
        term = search(_LOAN_TERM_RE, text)
        if raw_amount is None or term is None:
            return None
        amount = parse_turkish_number(raw_amount)
        if amount is None:
            return None
        return LoanAgreement(
            bank_name=self.bank_name,
            original_message=message,
            total_amount=amount,
            term_months=int(term),
        )


__all__ = ["GarantiEmailParser", "GarantiLoanSmsParser", "GarantiSmsParser"]
