"""Tests for money, date and fingerprint helpers."""
import pytest
from src.parse.text_utils import (
    clean_text,
    content_fingerprint,
    extract_first_money,
    normalize_money_text,
    parse_money_to_number,
    parse_quantity,
    pick_date_time,
    split_lines,
)


def test_parse_money_thousands_separator():
    """Test Brazilian money with thousands separator."""
    assert parse_money_to_number("R$ 1.234,56") == pytest.approx(1234.56)


def test_parse_money_without_space():
    """Test money text glued to the currency sign."""
    assert parse_money_to_number("R$29,99") == pytest.approx(29.99)


def test_parse_money_empty():
    """Test empty input returns None."""
    assert parse_money_to_number("") is None
    assert parse_money_to_number(None) is None
    assert parse_money_to_number("R$") is None


def test_normalize_money_text():
    """Test the currency sign is followed by exactly one space."""
    assert normalize_money_text("R$29,99") == "R$ 29,99"
    assert normalize_money_text("  R$ 1.234,56 ") == "R$ 1.234,56"


def test_extract_first_money_ignores_bidi_marks():
    """Test amounts rendered with direction marks are still found."""
    assert extract_first_money("Total R$\u200e 49,90 (2 itens)") == "R$ 49,90"
    assert extract_first_money("sem valor") == ""


def test_clean_text_and_split_lines():
    """Test whitespace collapsing and blank line removal."""
    assert clean_text("  Maria \n  Silva\t") == "Maria Silva"
    assert split_lines("Maria\n\n  São Paulo  \n") == ["Maria", "São Paulo"]


def test_parse_quantity():
    """Test quantity markers are normalized."""
    assert parse_quantity("x2") == "x2"
    assert parse_quantity("× 3") == "x3"
    assert parse_quantity("x0") == ""
    assert parse_quantity("sem quantidade") == ""


def test_pick_date_time_prefers_paid_over_expiry():
    """Test the expiry timestamp never wins over the paid one."""
    text = "Expira em 10/02/2026 09:00\nPago 04/02/2026 13:45"
    assert pick_date_time(text) == "04/02/2026 13:45"


def test_pick_date_time_label_after_date():
    """Test a paid label written after its date keeps that date."""
    text = "04/02/2026 13:45 Pago\nExpira em 10/02/2026 09:00"
    assert pick_date_time(text) == "04/02/2026 13:45"


def test_pick_date_time_same_line_as_expiry():
    """Test the expiry pair on the label's line is skipped."""
    assert pick_date_time("Expira em 10/02/2026 09:00 | Pago 04/02/2026 13:45") == "04/02/2026 13:45"


def test_pick_date_time_label_on_own_line():
    """Test a bare label takes the date on the following line."""
    text = "Expira em\n10/02/2026 09:00\nPago\n04/02/2026 13:45"
    assert pick_date_time(text) == "04/02/2026 13:45"


def test_pick_date_time_first_pair_without_label():
    """Test fallback to the first pair outside expiry lines."""
    assert pick_date_time("Expira em 10/02/2026 09:00\n04/02/2026 13:45") == "04/02/2026 13:45"
    assert pick_date_time("04/02/2026 13:45 | 10/02/2026 09:00") == "04/02/2026 13:45"
    assert pick_date_time("Expira em 10/02/2026 09:00") == "10/02/2026 09:00"


def test_pick_date_time_none():
    """Test no date yields an empty string."""
    assert pick_date_time("Aguardando") == ""


def test_content_fingerprint_is_stable():
    """Test the fingerprint is sha1 over the pipe-joined fields."""
    fingerprint = content_fingerprint("Caneca Branca", "R$ 19,90", "Ana Paula", "")
    assert fingerprint == "0db299daa564c4da9635853ba2d07c5379a4cbba"
    assert content_fingerprint(" Caneca Branca ", "R$ 19,90", "Ana Paula", None) == fingerprint
