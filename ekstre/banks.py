"""Registry of the banks whose notifications ``ekstre`` understands.

Each bank has one canonical display name (what ``Obligation.bank_name``
carries) and a list of lowercase aliases seen in real notifications and
user-typed descriptions.
"""

from __future__ import annotations

from dataclasses import dataclass

from .normalize import fold_turkish


def _lower(text: str) -> str:
    # str.lower() turns "İ" into "i" plus a combining dot; keep it a plain "i".
    return text.replace("İ", "i").lower()


@dataclass(frozen=True, slots=True)
class Bank:
    name: str
    aliases: tuple[str, ...] = ()

    @property
    def patterns(self) -> tuple[str, ...]:
        return (_lower(self.name), *self.aliases)


AKBANK = "Akbank"
YAPI_KREDI = "Yapı Kredi"
ZIRAAT = "Ziraat Bankası"
GARANTI = "Garanti BBVA Bonus"
KUVEYT_TURK = "Kuveyt Türk"
ISBANK = "İş Bankası"
QNB = "QNB"

BANKS: tuple[Bank, ...] = (
    Bank(AKBANK, ("akbank",)),
    Bank(YAPI_KREDI, ("yapı kredi", "yapikredi", "yapi kredi")),
    Bank(ZIRAAT, ("ziraat",)),
    Bank(GARANTI, ("garanti",)),
    Bank(KUVEYT_TURK, ("kuveyt türk", "kuveytturk", "kuveyt turk")),
    Bank(ISBANK, ("iş bankası", "isbank", "is bankasi")),
    Bank(QNB, ("qnb finansbank", "finansbank", "qnb")),
)

BANK_NAMES: tuple[str, ...] = tuple(b.name for b in BANKS)


def match_patterns() -> list[str]:
    """Flattened lowercase list of every canonical name and alias."""

    return [p for bank in BANKS for p in bank.patterns]


def _mentions(haystack: str, bank: Bank) -> bool:
    # Folded on both sides so "IS BANKASI" and "iş bankası" meet.
    return any(fold_turkish(p) in haystack for p in bank.patterns)


def is_known_bank_name(text: str | None) -> bool:
    """True when ``text`` contains any known bank name or alias."""

    if not text:
        return False
    haystack = fold_turkish(text)
    return any(_mentions(haystack, bank) for bank in BANKS)


def canonical_bank_name(text: str | None) -> str | None:
    """Resolve ``text`` to the canonical name of the bank it mentions."""

    if not text:
        return None
    haystack = fold_turkish(text)
    for bank in BANKS:
        if _mentions(haystack, bank):
            return bank.name
    return None


__all__ = [
    "AKBANK",
    "BANKS",
    "BANK_NAMES",
    "GARANTI",
    "ISBANK",
    "KUVEYT_TURK",
    "QNB",
    "YAPI_KREDI",
    "ZIRAAT",
    "Bank",
    "canonical_bank_name",
    "is_known_bank_name",
    "match_patterns",
]
