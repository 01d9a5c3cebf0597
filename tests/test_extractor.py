import logging

import pytest

from schema import DocumentType
from extractor import Extractor, TransactionExtractor
from conftest import BANK_STATEMENT_TEXT, CAFE_RECEIPT_TEXT, RECEIPT_TEXT


def test_single_line_transaction(extractor):
    records = extractor.extract("15.01.2024 -150,00 Überweisung für Büromaterial", DocumentType.BANK_STATEMENT)

    assert len(records) == 1
    record = records[0]
    assert record.date == "15.01.2024"
    assert record.amount == -150.00
    assert record.description == "Überweisung für Büromaterial"
    assert record.transaction_type == "Überweisung"
    assert record.category == "Wareneingang"
    assert record.sub_category == "Rohstoffe"
    assert record.document_type == DocumentType.BANK_STATEMENT


def test_bank_statement_lines(extractor, caplog):
    caplog.set_level(logging.INFO, logger="TransactionExtractor")
    records = extractor.extract(BANK_STATEMENT_TEXT)

    assert [(r.date, r.amount) for r in records] == [
        ("15.01.2024", -150.0),
        ("16.01.2024", -800.0),
        ("20.01.2024", 2500.0),
    ]
    assert records[1].description == "Miete Januar"
    assert records[1].category == "Miete & Pacht"
    assert records[2].category == "Einnahmen"
    assert "Strategy 'line_transactions' extracted 3 records" in caplog.text


def test_balance_lines_are_skipped(extractor):
    text = "Alter Kontostand 01.01.2024 1.000,00\nNeuer Kontostand 31.01.2024 2.550,00"
    assert extractor.extract_line_transactions(text) == []


@pytest.mark.parametrize("line, shape", [
    ("15.01.2024 | Tankstelle Aral | -60,00", "separated_date_description_amount"),
    ("15.01.2024; -60,00; Tankstelle Aral", "separated_date_amount_description"),
    ("15.01.2024 16.01.2024 -60,00 Tankstelle Aral", "date_value_date_amount_description"),
    ("15.01.2024 16.01.2024 Tankstelle Aral -60,00", "date_value_date_description_amount"),
    ("15.01.2024 EUR -60,00 Tankstelle Aral", "date_currency_amount_description"),
    ("15.01.2024 Tankstelle Aral EUR -60,00", "date_description_currency_amount"),
    ("15.01.2024 -60,00 Tankstelle Aral", "date_amount_description"),
    ("15.01.2024 Tankstelle Aral -60,00 940,00", "date_description_amount_balance"),
    ("15.01.2024 Tankstelle Aral -60,00", "date_description_amount"),
    ("2024-01-15 -60,00 Tankstelle Aral", "iso_date_amount_description"),
    ("2024-01-15 Tankstelle Aral -60,00", "iso_date_description_amount"),
    ("Tankstelle Aral 15.01.2024 -60,00", "description_date_amount"),
    ("15.01.2024 -60,00Tankstelle Aral", "compact_date_amount_description"),
    ("Buchung 15.01.2024 Tankstelle -60,00 Karte", "loose_date_amount"),
])
def test_line_shapes(extractor, line, shape):
    name, _ = extractor.match_transaction_line(line)
    assert name == shape

    record = extractor.extract_line_transactions(line)[0]
    assert record.date == "15.01.2024"
    assert record.amount == -60.0
    assert "Tankstelle" in record.description


def test_value_date_is_kept(extractor):
    record = extractor.extract_line_transactions("15.01.2024 16.01.2024 Lastschrift Stadtwerke Strom -85,20")[0]

    assert record.value_date == "16.01.2024"
    assert record.transaction_type == "Lastschrift"
    assert record.category == "Energiekosten"


def test_table_rows(extractor):
    text = "Datum Beschreibung Betrag\n15.01.2024 Büromaterial -150,00\n16.01.2024 Gehalt 2.500,00"
    records = extractor.extract_table(text)

    assert [(r.description, r.amount) for r in records] == [("Büromaterial", -150.0), ("Gehalt", 2500.0)]
    assert records[0].transaction_type == "Lastschrift"
    assert records[1].transaction_type == "Gutschrift"


def test_simple_lines(extractor):
    records = extractor.extract_simple("Zahlung an Stadtwerke 15.01.2024 EUR 85,20 Abschlag")

    assert len(records) == 1
    assert records[0].amount == 85.2
    assert records[0].description == "Zahlung an Stadtwerke Abschlag"
    assert records[0].transaction_type == "Gutschrift"


def test_statement_summary_when_fields_are_on_separate_lines(extractor, caplog):
    caplog.set_level(logging.INFO, logger="TransactionExtractor")
    text = "Rückerstattung Versicherung\nGutschrift\nDatum\n05.03.2024\nBetrag\nEUR 120,00"
    records = extractor.extract(text, DocumentType.BANK_STATEMENT)

    assert len(records) == 1
    record = records[0]
    assert record.date == "05.03.2024"
    assert record.amount == 120.0
    assert record.description == "Rückerstattung Versicherung"
    assert record.transaction_type == "Gutschrift"
    assert record.category == "Versicherungen"
    assert "Strategy 'statement_summary' extracted 1 records" in caplog.text


def test_receipt_line_items(extractor):
    records = extractor.extract(RECEIPT_TEXT)

    assert [(r.description, r.amount) for r in records] == [("Kopierpapier A4", 9.98), ("Toner schwarz", 45.5)]
    item = records[0]
    assert item.date == "15.01.2024"
    assert item.vendor_name == "Muster Bürobedarf GmbH"
    assert item.category == "Bürobedarf"
    assert item.vat_estimated is True
    assert item.vat_rate == 19.0
    assert item.vat_amount == pytest.approx(1.9)
    assert item.net_amount == pytest.approx(8.39)
    assert item.document_type == DocumentType.RECEIPT


def test_receipt_document(extractor):
    record = extractor.extract_receipt_document(RECEIPT_TEXT)[0]

    assert record.amount == 55.48
    assert record.gross_amount == 55.48
    assert record.invoice_number == "RE-2024-001"
    assert record.vendor_name == "Muster Bürobedarf GmbH"
    assert record.description == "Muster Bürobedarf GmbH"
    assert record.vat_amount == 8.86
    assert record.vat_rate == 19.0
    assert record.net_amount == pytest.approx(46.62)
    assert record.vat_estimated is False


def test_receipt_without_items_falls_back_to_document(extractor):
    records = extractor.extract(CAFE_RECEIPT_TEXT, DocumentType.RECEIPT)

    assert len(records) == 1
    record = records[0]
    assert record.date == "03.02.2024"
    assert record.amount == 23.8
    assert record.description == "Café Central"
    assert record.category == "Verpflegung"
    assert record.sub_category == "Café"
    assert record.vat_amount == 3.8
    assert record.net_amount == pytest.approx(20.0)


def test_receipt_without_amount_yields_nothing(extractor):
    assert extractor.extract("Vielen Dank für Ihren Einkauf", DocumentType.RECEIPT) == []


def test_zero_amounts_are_discarded(extractor):
    text = "15.01.2024 0,00 Nullbuchung\n15.01.2024 -10,00 Kontoführungsgebühr"
    records = extractor.extract_line_transactions(text)
    assert [r.description for r in records] == ["Kontoführungsgebühr"]


@pytest.mark.parametrize("text", ["", "   \n  "])
def test_empty_text(extractor, text):
    assert extractor.extract(text) == []


def test_extraction_is_idempotent(extractor):
    for text in (BANK_STATEMENT_TEXT, RECEIPT_TEXT, CAFE_RECEIPT_TEXT):
        assert extractor.extract(text) == extractor.extract(text)


def test_separate_instances_agree():
    assert TransactionExtractor().extract(BANK_STATEMENT_TEXT) == TransactionExtractor().extract(BANK_STATEMENT_TEXT)


def test_run_cascade_stops_at_first_hit(extractor):
    calls = []

    def first(text):
        calls.append('first')
        return []

    def second(text):
        calls.append('second')
        return extractor.extract_simple(text)

    def third(text):
        calls.append('third')
        return []

    strategies = [Extractor('first', first), Extractor('second', second), Extractor('third', third)]
    records = extractor.run_cascade("15.01.2024 Miete -800,00", strategies)

    assert len(records) == 1
    assert calls == ['first', 'second']
