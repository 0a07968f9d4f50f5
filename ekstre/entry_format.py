"""Text encodings of obligations used outside the engine.

- ``format_bank_entry_description`` / ``parse_bank_entry_description``: the
  ``"<Bank> - ****1234"`` string a user picks or types for a manual entry.
- ``calendar_app_id``: the marker embedded in calendar events so the calendar
  collaborator can find the event it created for an obligation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .banks import canonical_bank_name, is_known_bank_name
from .models import Obligation
from .normalize import fold_turkish

BANK_ENTRY_RE = re.compile(r"^(.+?)\s*-\s*\*+(\d{4})$")


@dataclass(frozen=True, slots=True)
class BankEntry:
    bank_name: str
    last4_digits: str


def format_bank_entry_description(bank_name: str, last4_digits: str | None = None) -> str:
    """``"Akbank - ****1234"``, or just the bank name without card digits."""

    if last4_digits:
        return f"{bank_name} - ****{last4_digits}"
    return bank_name


def parse_bank_entry_description(text: str | None) -> BankEntry | None:
    """Inverse of :func:`format_bank_entry_description`.

    Returns ``None`` unless the text has the ``<Bank> - ****NNNN`` shape and
    names a bank from the registry.
    """

    if not text:
        return None
    m = BANK_ENTRY_RE.match(text.strip())
    if m is None:
        return None
    name = m.group(1).strip()
    if not is_known_bank_name(name):
        return None
    return BankEntry(bank_name=canonical_bank_name(name) or name, last4_digits=m.group(2))


def _sanitize(text: str, *, space: str) -> str:
    s = re.sub(r"\s+", space, fold_turkish(text.strip()))
    return re.sub(r"[^a-z0-9_]", "", s)


def calendar_app_id(obligation: Obligation) -> str:
    """Marker for the calendar event created for ``obligation``.

    ``[AppID: ekstre_<bank>_<YYYY-MM-DD>]`` for extracted statements and
    ``[AppID: manuel_<description>]`` for manual entries.
    """

    if obligation.is_manual:
        desc = _sanitize(obligation.description or obligation.bank_name, space="") or "unknown"
        return f"[AppID: manuel_{desc}]"
    bank = _sanitize(obligation.bank_name, space="_") or "unknown_bank"
    return f"[AppID: ekstre_{bank}_{obligation.due_date.isoformat()}]"


__all__ = [
    "BANK_ENTRY_RE",
    "BankEntry",
    "calendar_app_id",
    "format_bank_entry_description",
    "parse_bank_entry_description",
]
