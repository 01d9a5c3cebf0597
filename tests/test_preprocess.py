import logging

import pytest

from preprocess import DataPreprocessor


@pytest.mark.parametrize("german, plain", [
    ("1.234,56", "1234.56"),
    ("1234,56", "1234.56"),
    ("-150,00", "-150.00"),
    ("150,00 €", "150.00"),
    ("EUR 12,50", "12.50"),
])
def test_german_and_plain_amounts_parse_equal(preprocessor, german, plain):
    assert preprocessor.parse_amount(german) == preprocessor.parse_amount(plain)


@pytest.mark.parametrize("value, expected", [
    ("1.234,56", 1234.56),
    ("2.500,00", 2500.0),
    ("-800,00", -800.0),
    ("1,234", 1234.0),
    ("19", 19.0),
    (42, 42.0),
    (119.0, 119.0),
])
def test_parse_amount_values(preprocessor, value, expected):
    assert preprocessor.parse_amount(value) == pytest.approx(expected)


@pytest.mark.parametrize("value", ["", "abc", None, "€", True])
def test_parse_amount_unparseable_is_zero(preprocessor, value):
    assert preprocessor.parse_amount(value) == 0.0


def test_parse_amount_both_separators_reads_german(preprocessor):
    # '.' is taken as the thousands separator whenever ',' is present too
    assert preprocessor.parse_amount("1.234,56") == 1234.56
    assert preprocessor.parse_amount("1,234.56") == pytest.approx(1.23456)


def test_parse_amount_logs_failure_at_debug(caplog):
    caplog.set_level(logging.DEBUG, logger="DataPreprocessor")
    DataPreprocessor().parse_amount("abc")
    assert "Could not parse amount" in caplog.text


@pytest.mark.parametrize("value, expected", [
    ("15.01.2024", "15.01.2024"),
    ("5.1.2024", "05.01.2024"),
    ("15/01/24", "15.01.2024"),
    ("15-01-2024", "15.01.2024"),
    ("2024-01-15", "15.01.2024"),
    ("Buchung am 2024/01/15", "15.01.2024"),
    ("15 Januar 2024", "15.01.2024"),
    ("", ""),
    ("kein Datum", ""),
])
def test_normalize_date(preprocessor, value, expected):
    assert preprocessor.normalize_date(value) == expected


@pytest.mark.parametrize("value, valid", [
    ("15.01.2024", True),
    ("15.01.24", True),
    ("2024-01-15", True),
    ("99.99.9999", True),
    ("15.01", False),
    ("Januar", False),
    ("", False),
])
def test_validate_date_checks_shape_only(preprocessor, value, valid):
    assert preprocessor.validate_date(value) is valid


def test_find_date_returns_raw_and_normalized(preprocessor):
    assert preprocessor.find_date("Datum: 3.2.24 Gesamt") == ("3.2.24", "03.02.2024")
    assert preprocessor.find_date("ohne Datum") == ("", "")


def test_find_amounts_skips_dates(preprocessor):
    assert preprocessor.find_amounts("15.01.2024 Summe 1.234,56 EUR, MwSt 19,00") == [1234.56, 19.0]
    assert preprocessor.find_amounts("15.01.2024") == []


def test_clean_text(preprocessor):
    assert preprocessor.clean_text("  Café   Müller:\n #12  ") == "Café Müller 12"


@pytest.mark.parametrize("amount, expected", [
    (1234.5, "1.234,50 €"),
    (-150, "-150,00 €"),
    (0, "0,00 €"),
])
def test_format_amount(amount, expected):
    assert DataPreprocessor.format_amount(amount) == expected
