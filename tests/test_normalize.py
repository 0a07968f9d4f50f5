from datetime import date, datetime
from decimal import Decimal

import pytest

from ekstre.normalize import (
    add_months,
    at_noon,
    fold_turkish,
    horizon_end,
    month_number,
    parse_dmy_date,
    parse_dotted_date,
    parse_mixed_number,
    parse_standard_number,
    parse_turkish_date,
    parse_turkish_day_month,
    parse_turkish_number,
)


def test_fold_turkish_maps_letters_to_ascii():
    assert fold_turkish("Son Ödeme Tarihi") == "son odeme tarihi"
    assert fold_turkish("İŞ BANKASI") == "is bankasi"
    assert fold_turkish("kartınızın borcu") == "kartinizin borcu"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1,234.56", Decimal("1234.56")),
        ("2,120.76", Decimal("2120.76")),
        ("500", Decimal("500")),
        (" 1,800.50 ", Decimal("1800.50")),
    ],
)
def test_parse_standard_number(text, expected):
    assert parse_standard_number(text) == expected


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1.234,56", Decimal("1234.56")),
        ("12.345,67", Decimal("12345.67")),
        ("1.492,42", Decimal("1492.42")),
        ("50.000", Decimal("50000")),
        ("1.250,50.", Decimal("1250.50")),
    ],
)
def test_parse_turkish_number(text, expected):
    assert parse_turkish_number(text) == expected


@pytest.mark.parametrize("text", [None, "", "TL", "abc", "1.2.3,4,5", "--5"])
def test_number_parsers_reject_garbage(text):
    assert parse_standard_number(text) is None
    assert parse_turkish_number(text) is None
    assert parse_mixed_number(text) is None


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1.250,50", Decimal("1250.50")),
        ("1,250.50", Decimal("1250.50")),
        ("250,50", Decimal("250.50")),
        ("1250.50", Decimal("1250.50")),
        ("1.250", Decimal("1250")),
        ("1.250.000", Decimal("1250000")),
        ("75", Decimal("75")),
    ],
)
def test_parse_mixed_number(text, expected):
    assert parse_mixed_number(text) == expected


def test_numeric_dates():
    assert parse_dotted_date("10.02.2025") == date(2025, 2, 10)
    assert parse_dotted_date("1.2.2025") == date(2025, 2, 1)
    assert parse_dmy_date("25/05/2026") == date(2026, 5, 25)
    # Calendar validity is enforced, no rollover.
    assert parse_dotted_date("31.02.2025") is None
    assert parse_dmy_date("00/05/2026") is None
    assert parse_dotted_date("10/02/2025") is None
    assert parse_dmy_date("10.02.2025") is None
    assert parse_dotted_date(None) is None


def test_turkish_month_names():
    assert month_number("Şubat") == 2
    assert month_number("SUBAT") == 2
    assert month_number("ağustos") == 8
    assert month_number("Aralık") == 12
    assert month_number("Smarch") is None


def test_parse_turkish_date():
    assert parse_turkish_date("5 Şubat 2025") == date(2025, 2, 5)
    assert parse_turkish_date("26 KASIM 2025") == date(2025, 11, 26)
    assert parse_turkish_date("30 Şubat 2025") is None
    assert parse_turkish_date("5 Şubat") is None
    assert parse_turkish_date("beş Şubat 2025") is None


def test_parse_turkish_day_month_picks_nearest_year():
    assert parse_turkish_day_month("26 Kasım", reference=date(2025, 11, 14)) == date(2025, 11, 26)
    assert parse_turkish_day_month("5 Ocak", reference=date(2025, 12, 28)) == date(2026, 1, 5)
    assert parse_turkish_day_month("26 Aralık", reference=date(2026, 1, 3)) == date(2025, 12, 26)
    assert parse_turkish_day_month("26 Kasım 2025", reference=date(2025, 11, 1)) is None
    assert parse_turkish_day_month("26 Brumaire", reference=date(2025, 11, 1)) is None


def test_add_months_clamps_to_month_end():
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)
    assert add_months(date(2025, 3, 15), -2) == date(2025, 1, 15)
    assert add_months(date(2025, 1, 15), -1) == date(2024, 12, 15)


def test_at_noon_and_horizon():
    assert at_noon(date(2025, 5, 2)) == datetime(2025, 5, 2, 12, 0)
    assert horizon_end(date(2025, 5, 25), 10) == date(2025, 6, 4)
