import textwrap
from datetime import date, datetime
from decimal import Decimal

from ekstre.banks import AKBANK
from ekstre.models import RawMessage
from ekstre.parsers import AkbankScreenshotParser
from ekstre.processor import has_screenshot_parser, process_screenshot, supported_screenshot_banks


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n").rstrip()


AXESS = _dedent(
    """
    akbank
    Axess
    Kart Borcu
    ****1234
    Son gün: 26 Kasım
    12.345,67 TL
    Ekstre borcunu öde
    """
)

# OCR of the Wings app: "Wings" read as "W/NGS", "****" read as "co0e".
WINGS_OCR = _dedent(
    """
    W/NGS
    co0e 5678
    SON GÜN: 3 Aralık
    2.500,00 TL
    Öde
    """
)

LONE_DIGITS = _dedent(
    """
    akbank axess
    9012
    Son gün: 5 Ocak
    750,00 TL
    """
)


def test_axess_screenshot():
    result = process_screenshot(AXESS, captured_at=datetime(2025, 11, 14, 9, 30))
    assert result is not None
    assert result.bank_name == AKBANK
    assert result.last4_digits == "1234"
    assert result.amount == Decimal("12345.67")
    assert result.due_date == date(2025, 11, 26)
    assert result.source == "screenshot"


def test_wings_ocr_noise():
    message = RawMessage(
        channel="screenshot", sender="", body=WINGS_OCR, received_at=datetime(2025, 11, 28, 20, 0)
    )
    parser = AkbankScreenshotParser()
    assert parser.can_parse(message)

    result = parser.parse(message)
    assert result is not None
    assert result.last4_digits == "5678"
    assert result.amount == Decimal("2500.00")
    assert result.due_date == date(2025, 12, 3)


def test_card_digits_alone_on_a_line_and_year_rollover():
    result = process_screenshot(LONE_DIGITS, captured_at=datetime(2025, 12, 28, 12, 0))
    assert result is not None
    assert result.last4_digits == "9012"
    assert result.amount == Decimal("750.00")
    assert result.due_date == date(2026, 1, 5)


def test_unrelated_or_empty_screenshots():
    assert process_screenshot("Spotify Premium\nSon gün: 3 Aralık") is None
    assert process_screenshot("") is None
    assert process_screenshot("   \n ") is None
    assert process_screenshot(None) is None


def test_screenshot_without_due_date_yields_nothing():
    assert process_screenshot("akbank\nEkstre borcunu öde\n****1234") is None


def test_supported_screenshot_banks():
    assert supported_screenshot_banks() == [AKBANK]
    assert has_screenshot_parser(AKBANK)
    assert not has_screenshot_parser("QNB")


def test_year_on_its_own_line_is_not_card_digits():
    text = "akbank axess\n2025\nSon gün: 26 Kasım\n1.000,00 TL\n"
    result = process_screenshot(text, captured_at=datetime(2025, 11, 14, 9, 30))
    assert result is not None
    assert result.last4_digits is None

    with_card = process_screenshot(
        "akbank axess\n2025\n4321\nSon gün: 26 Kasım\n1.000,00 TL\n",
        captured_at=datetime(2025, 11, 14, 9, 30),
    )
    assert with_card is not None
    assert with_card.last4_digits == "4321"
