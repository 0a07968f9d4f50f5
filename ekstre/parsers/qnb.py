"""QNB notifications: card debt text message, statement email, loan approval."""

from __future__ import annotations

import re

from ..banks import QNB
from ..logging_setup import get_logger
from ..models import LoanAgreement, Obligation, RawMessage
from ..normalize import (
    parse_dmy_date,
    parse_dotted_date,
    parse_mixed_number,
    parse_standard_number,
    parse_turkish_number,
)
from .base import LoanParser, StatementParser, contains_all, search, sender_matches

_logger = get_logger("ekstre.parsers.qnb")

_SENDERS = ("qnb", "qnb finans", "qnb finansbank")

# "9876 ile biten kartinizin borcu 1,800.50 TL, ... son odeme tarihi 25/05/2026."
_NOTICE_CARD_RE = re.compile(r"(\d{4}) ile biten kartinizin", re.IGNORECASE)
_NOTICE_AMOUNT_RE = re.compile(r"kartinizin borcu ([\d.,]+)\s*TL", re.IGNORECASE)
_NOTICE_DATE_RE = re.compile(r"son odeme tarihi:? (\d{2}/\d{2}/\d{4})", re.IGNORECASE)

# Statement email: "5234 56** **** 9876", "Son Ödeme Tarihi ... 25/05/2026",
# "Dönem Borcu ... 1.250,50 TL".
_EMAIL_CARD_RE = re.compile(r"(\d{4})\s*\d{2}\*\*\s*\*\*\*\*\s*(\d{4})")
_EMAIL_DATE_RE = re.compile(r"Son Ödeme Tarihi.*?(\d{2}/\d{2}/\d{4})", re.IGNORECASE | re.DOTALL)
_EMAIL_AMOUNT_RE = re.compile(r"Dönem Borcu.*?([\d.,]+)\s*TL", re.IGNORECASE | re.DOTALL)

# "50.000,00 TL tutarli 24 ay vadeli krediniz ... ilk taksit tarihi 15.06.2026,
# aylik taksit tutari 2.604,17 TL"
_LOAN_TOTAL_RE = re.compile(r"([\d.,]+) TL tutar(?:li|inda)", re.IGNORECASE)
_LOAN_TERM_RE = re.compile(r"(\d+) ay vadeli", re.IGNORECASE)
_LOAN_FIRST_DATE_RE = re.compile(
    r"ilk taksit (?:odeme )?tarihi:? (\d{2}[./]\d{2}[./]\d{4})", re.IGNORECASE
)
_LOAN_INSTALLMENT_RE = re.compile(r"taksit tutari:? ([\d.,]+)\s*TL", re.IGNORECASE)
_LOAN_ACCOUNT_RE = re.compile(r"(\d{6,}) (?:no'?lu|numarali) hesab", re.IGNORECASE)


def _parse_notice(parser: StatementParser, message: RawMessage, text: str) -> Obligation | None:
    """Shared by the text message and the plain notification email."""

    due_date = parse_dmy_date(search(_NOTICE_DATE_RE, text))
    if due_date is None:
        return None
    amount = parse_standard_number(search(_NOTICE_AMOUNT_RE, text))
    last4 = search(_NOTICE_CARD_RE, text)
    if amount is None and last4 is None:
        return None
    return parser.make_obligation(message, due_date=due_date, amount=amount, last4_digits=last4)


class QnbSmsParser(StatementParser):
    bank_name = QNB
    channel = "message"

    def can_parse(self, message: RawMessage) -> bool:
        return sender_matches(message, *_SENDERS) and contains_all(
            message.body, "ile biten kartinizin borcu", "son odeme tarihi"
        )

    def parse(self, message: RawMessage) -> Obligation | None:
        return _parse_notice(self, message, message.body)


class QnbEmailParser(StatementParser):
    """Two layouts: the HTML e-statement and the plain debt notice."""

    bank_name = QNB
    channel = "email"

    def can_parse(self, message: RawMessage) -> bool:
        if not sender_matches(message, "eekstre.qnb.com.tr", "qnb.com.tr", "qnb"):
            return False
        return bool(message.html_body or message.body)

    def parse(self, message: RawMessage) -> Obligation | None:
        for layout in (self._parse_statement, self._parse_notice):
            result = layout(message)
            if result is not None:
                return result
        return None

    def _parse_statement(self, message: RawMessage) -> Obligation | None:
        content = message.html_body
        if not content:
            return None
        due_date = parse_dmy_date(search(_EMAIL_DATE_RE, content))
        if due_date is None:
            return None
        amount = parse_mixed_number(search(_EMAIL_AMOUNT_RE, content))
        if amount is None:
            _logger.debug("QNB statement email without a readable amount")
        last4 = search(_EMAIL_CARD_RE, content, group=2)
        return self.make_obligation(message, due_date=due_date, amount=amount, last4_digits=last4)

    def _parse_notice(self, message: RawMessage) -> Obligation | None:
        for text in (message.body, message.html_body):
            if text and contains_all(text, "ile biten kartinizin borcu"):
                result = _parse_notice(self, message, text)
                if result is not None:
                    return result
        return None


class QnbLoanSmsParser(LoanParser):
    bank_name = QNB
    channel = "message"

    def can_parse(self, message: RawMessage) -> bool:
        return sender_matches(message, *_SENDERS) and contains_all(
            message.body, "krediniz", "ay vadeli"
        )

    def parse(self, message: RawMessage) -> LoanAgreement | None:
        text = message.body
        term = search(_LOAN_TERM_RE, text)
        total = parse_turkish_number(search(_LOAN_TOTAL_RE, text))
        if term is None or total is None:
            return None
        first_raw = search(_LOAN_FIRST_DATE_RE, text)
        first_date = parse_dotted_date(first_raw) or parse_dmy_date(first_raw)
        return LoanAgreement(
            bank_name=self.bank_name,
            original_message=message,
            total_amount=total,
            installment_amount=parse_turkish_number(search(_LOAN_INSTALLMENT_RE, text)),
            term_months=int(term),
            first_payment_date=first_date,
            account_number=search(_LOAN_ACCOUNT_RE, text),
        )


__all__ = ["QnbEmailParser", "QnbLoanSmsParser", "QnbSmsParser"]
