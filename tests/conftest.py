import pytest

from schema import AccountingRecord, DocumentType
from preprocess import DataPreprocessor
from categorizer import TransactionCategorizer
from detector import DocumentTypeDetector
from structured_adapter import StructuredResponseAdapter
from extractor import TransactionExtractor
from aggregator import RecordAggregator
from exporter import RecordExporter


BANK_STATEMENT_TEXT = """Kontoauszug Nr. 1/2024
Sparkasse Musterstadt
Alter Kontostand 01.01.2024 1.000,00
15.01.2024 -150,00 Überweisung für Büromaterial
16.01.2024 Miete Januar -800,00
20.01.2024 2.500,00 Gehalt Januar 2024
Neuer Kontostand 31.01.2024 2.550,00
"""

RECEIPT_TEXT = """Muster Bürobedarf GmbH
Hauptstraße 5
10115 Berlin
Rechnung Nr. RE-2024-001
Datum: 15.01.2024
Kopierpapier A4 2 x 9,98
Toner schwarz 45,50
Summe 55,48
MwSt 19% 8,86
"""

CAFE_RECEIPT_TEXT = """Café Central
Datum: 03.02.2024
Gesamt 23,80 EUR
MwSt 19% 3,80
"""


@pytest.fixture
def preprocessor():
    return DataPreprocessor()


@pytest.fixture
def categorizer():
    return TransactionCategorizer()


@pytest.fixture
def detector():
    return DocumentTypeDetector()


@pytest.fixture
def adapter(preprocessor, categorizer):
    return StructuredResponseAdapter(preprocessor, categorizer)


@pytest.fixture
def extractor(preprocessor, categorizer, detector):
    return TransactionExtractor(preprocessor, categorizer, detector)


@pytest.fixture
def aggregator(preprocessor, categorizer):
    return RecordAggregator(preprocessor, categorizer)


@pytest.fixture
def exporter():
    return RecordExporter()


@pytest.fixture
def make_record():
    def _make(amount=10.0, description="Testbuchung", category="Sonstige", **kwargs):
        kwargs.setdefault('date', "15.01.2024")
        return AccountingRecord(amount=amount, description=description, category=category, **kwargs)
    return _make


@pytest.fixture
def receipt_record(make_record):
    return make_record(
        amount=119.0,
        description="Büromaterial",
        category="Bürobedarf",
        sub_category="Sonstiges",
        invoice_number="RE-2024-001",
        vendor_name="Muster GmbH",
        vat_amount=19.0,
        vat_rate=19,
        gross_amount=119.0,
        net_amount=100.0,
        document_type=DocumentType.RECEIPT,
    )


@pytest.fixture
def bank_record(make_record):
    return make_record(
        amount=-150.0,
        description="Überweisung für Büromaterial",
        category="Wareneingang",
        sub_category="Rohstoffe",
        purpose="Überweisung für Büromaterial",
        transaction_type="Überweisung",
        value_date="16.01.2024",
        document_type=DocumentType.BANK_STATEMENT,
    )
