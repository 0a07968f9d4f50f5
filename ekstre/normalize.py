"""Number and date normalization shared by every bank parser.

Banks mix two number conventions:

- standard: ``1,234.56`` (comma thousands, dot decimal)
- Turkish: ``1.234,56`` (dot thousands, comma decimal)

and several date shapes (``DD.MM.YYYY``, ``DD/MM/YYYY``, ``26 Kasım 2025``,
and on screenshots ``26 Kasım`` with no year).

Every function here is pure and total: unparseable input yields ``None``.
Calendar validity is delegated to :class:`datetime.date`, so ``31.02.2025``
is rejected instead of rolling over into March.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation

_TURKISH_FOLD = str.maketrans(
    {
        "ı": "i",
        "İ": "i",
        "I": "i",
        "ğ": "g",
        "Ğ": "g",
        "ü": "u",
        "Ü": "u",
        "ş": "s",
        "Ş": "s",
        "ö": "o",
        "Ö": "o",
        "ç": "c",
        "Ç": "c",
    }
)

# Keys are ASCII-folded so "Şubat", "SUBAT" and "şubat" all resolve.
_MONTHS: dict[str, int] = {
    "ocak": 1,
    "subat": 2,
    "mart": 3,
    "nisan": 4,
    "mayis": 5,
    "haziran": 6,
    "temmuz": 7,
    "agustos": 8,
    "eylul": 9,
    "ekim": 10,
    "kasim": 11,
    "aralik": 12,
}

_DOTTED_RE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")
_DMY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?$")


def fold_turkish(text: str) -> str:
    """Lowercase ``text`` and map Turkish letters to their ASCII base letter.

    Bank notifications spell the same word both ways ("ödeme" / "odeme"), so
    keyword checks compare folded forms.
    """

    return text.translate(_TURKISH_FOLD).lower()


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


def _to_decimal(text: str) -> Decimal | None:
    if not _NUMBER_RE.fullmatch(text):
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def _clean_number(text: str | None) -> str | None:
    if text is None:
        return None
    s = text.strip().replace(" ", "")
    # Regex captures such as "1.250,50." can carry sentence punctuation.
    s = s.rstrip(".,")
    return s or None


def parse_standard_number(text: str | None) -> Decimal | None:
    """Parse ``1,234.56`` style amounts."""

    s = _clean_number(text)
    if s is None:
        return None
    return _to_decimal(s.replace(",", ""))


def parse_turkish_number(text: str | None) -> Decimal | None:
    """Parse ``1.234,56`` style amounts."""

    s = _clean_number(text)
    if s is None:
        return None
    return _to_decimal(s.replace(".", "").replace(",", "."))


def parse_mixed_number(text: str | None) -> Decimal | None:
    """Parse an amount whose convention is not known in advance.

    - any comma after the last dot, or a comma with no dot: Turkish
    - a comma before the last dot: standard
    - a single dot followed by exactly two digits: decimal point
    - other dot patterns (``1.250``, ``1.250.000``): thousands separators
    """

    s = _clean_number(text)
    if s is None:
        return None
    if "," in s:
        if "." in s and s.rfind(",") < s.rfind("."):
            return parse_standard_number(s)
        return parse_turkish_number(s)
    if s.count(".") == 1 and len(s) - s.index(".") - 1 == 2:
        return _to_decimal(s)
    if "." in s:
        return parse_turkish_number(s)
    return _to_decimal(s)


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def _build_date(year: int, month: int, day: int) -> date | None:
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_numeric_date(pattern: re.Pattern[str], text: str | None) -> date | None:
    if text is None:
        return None
    m = pattern.fullmatch(text.strip())
    if m is None:
        return None
    day, month, year = (int(g) for g in m.groups())
    return _build_date(year, month, day)


def parse_dotted_date(text: str | None) -> date | None:
    """Parse ``DD.MM.YYYY``."""

    return _parse_numeric_date(_DOTTED_RE, text)


def parse_dmy_date(text: str | None) -> date | None:
    """Parse ``DD/MM/YYYY``."""

    return _parse_numeric_date(_DMY_RE, text)


def month_number(name: str) -> int | None:
    """Return 1-12 for a Turkish month name in any case or spelling."""

    return _MONTHS.get(fold_turkish(name.strip()))


def parse_turkish_date(text: str | None) -> date | None:
    """Parse ``"DD <ay> YYYY"`` (e.g. ``"5 Şubat 2025"``)."""

    if text is None:
        return None
    parts = text.split()
    if len(parts) != 3:
        return None
    day_s, month_s, year_s = parts
    month = month_number(month_s)
    if month is None or not day_s.isdigit() or not year_s.isdigit() or len(year_s) != 4:
        return None
    return _build_date(int(year_s), month, int(day_s))


def parse_turkish_day_month(text: str | None, *, reference: date) -> date | None:
    """Parse ``"DD <ay>"`` and infer the year from ``reference``.

    The year chosen is the one that puts the date closest to ``reference``:
    "5 Ocak" read on 28 December is next January, "26 Aralık" read on
    3 January is last December.
    """

    if text is None:
        return None
    parts = text.split()
    if len(parts) != 2 or not parts[0].isdigit():
        return None
    month = month_number(parts[1])
    if month is None:
        return None
    day = int(parts[0])
    candidates = [
        d
        for d in (_build_date(reference.year + offset, month, day) for offset in (-1, 0, 1))
        if d is not None
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda d: (abs((d - reference).days), d < reference))


def add_months(start: date, months: int) -> date:
    """Shift ``start`` by ``months``, clamping to the end of short months.

    ``add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)``.
    """

    index = start.year * 12 + (start.month - 1) + months
    year, month0 = divmod(index, 12)
    last_day = calendar.monthrange(year, month0 + 1)[1]
    return date(year, month0 + 1, min(start.day, last_day))


def at_noon(day: date) -> datetime:
    """Local-noon instant for ``day``.

    Serializing a date as midnight lets a timezone conversion move it to the
    previous day; noon keeps the calendar day intact in every zone.
    """

    return datetime.combine(day, time(12, 0))


def horizon_end(today: date, days: int) -> date:
    return today + timedelta(days=days)


__all__ = [
    "add_months",
    "at_noon",
    "fold_turkish",
    "horizon_end",
    "month_number",
    "parse_dmy_date",
    "parse_dotted_date",
    "parse_mixed_number",
    "parse_standard_number",
    "parse_turkish_date",
    "parse_turkish_day_month",
    "parse_turkish_number",
]
