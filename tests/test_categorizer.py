import pytest

from schema import DocumentType, TransactionType
from categorizer import CATEGORY_KEYWORDS, TransactionCategorizer


@pytest.mark.parametrize("keyword, category", [
    ("wareneingang", "Wareneingang"),
    ("lebensmittel", "Wareneingang 7%"),
    ("computer", "Wareneingang 19%"),
    ("geschäftsausgaben", "Betriebsausgaben"),
    ("steuerberater", "Betriebsausgaben 19%"),
    ("versand", "Betriebsausgaben 7%"),
    ("gehalt", "Personalkosten"),
    ("miete", "Miete & Pacht"),
    ("haftpflicht", "Versicherungen"),
    ("strom", "Energiekosten"),
    ("internet", "Telekommunikation"),
    ("benzin", "Fahrzeugkosten"),
    ("hotel", "Reisekosten"),
    ("restaurant", "Verpflegung"),
    ("toner", "Bürobedarf"),
    ("seminar", "Fortbildung"),
    ("flyer", "Marketing"),
    ("umsatz", "Einnahmen"),
    ("zinsen", "Zinsen"),
    ("finanzamt", "Steuern"),
    ("diverses", "Sonstige"),
])
def test_keyword_classifies_to_its_category(categorizer, keyword, category):
    assert categorizer.categorize(keyword) == category


def test_every_category_has_a_reachable_keyword(categorizer):
    for category, keywords in CATEGORY_KEYWORDS:
        assert any(categorizer.categorize(keyword) == category for keyword in keywords), category


def test_first_match_wins(categorizer):
    # 'material' belongs to the first category, so it shadows 'büromaterial'
    assert categorizer.categorize("Büromaterial") == "Wareneingang"
    assert categorizer.categorize("Überweisung für Büromaterial") == "Wareneingang"
    # 'büro' (Betriebsausgaben) comes before 'miete'
    assert categorizer.categorize("Miete Büro") == "Betriebsausgaben"


def test_fallback_depends_on_document_type(categorizer):
    assert categorizer.categorize("xyz", DocumentType.RECEIPT) == "Betriebsausgaben"
    assert categorizer.categorize("xyz", DocumentType.BANK_STATEMENT) == "Sonstige"
    assert categorizer.categorize("") == "Sonstige"


def test_bank_rules_take_precedence(categorizer):
    assert categorizer.categorize("Gehalt Januar") == "Personalkosten"
    assert categorizer.categorize_bank_transaction("Gehalt Januar") == "Einnahmen"
    assert categorizer.categorize_bank_transaction("Kontoführungsgebühr") == "Betriebsausgaben"
    assert categorizer.categorize_bank_transaction("Rent March") == "Miete & Pacht"
    assert categorizer.categorize_bank_transaction("Hotel Berlin") == "Reisekosten"


def test_sub_category(categorizer):
    assert categorizer.get_sub_category("Kaffee und Kuchen", "Verpflegung") == "Café"
    assert categorizer.get_sub_category("Diesel", "Fahrzeugkosten") == "Kraftstoff"
    assert categorizer.get_sub_category("xyz", "Zinsen", DocumentType.BANK_STATEMENT) == "Banktransaktion"
    assert categorizer.get_sub_category("xyz", "Zinsen", DocumentType.RECEIPT) == "Sonstiges"


def test_tax_category(categorizer):
    assert categorizer.get_tax_category("Miete & Pacht") == "MIETE_PACHT"
    assert categorizer.get_tax_category("Bürobedarf") == "BUERO"
    assert categorizer.get_tax_category("Unbekannt") == "SONSTIGE"


@pytest.mark.parametrize("description, amount, expected", [
    ("SEPA Lastschrift Telekom", None, TransactionType.DIRECT_DEBIT),
    ("Gutschrift Kunde", -5.0, TransactionType.CREDIT),
    ("Bargeldabhebung Automat", None, TransactionType.WITHDRAWAL),
    ("Überweisung an Vermieter", 10.0, TransactionType.TRANSFER),
    ("Kartenzahlung", None, TransactionType.TRANSFER),
    ("Kartenzahlung", 25.0, TransactionType.CREDIT),
    ("Kartenzahlung", -25.0, TransactionType.DIRECT_DEBIT),
])
def test_infer_transaction_type(categorizer, description, amount, expected):
    assert categorizer.infer_transaction_type(description, amount) == expected.value


def test_normalize_category(categorizer):
    assert categorizer.normalize_category("Reisekosten", "") == "Reisekosten"
    assert categorizer.normalize_category("Versicherung", "") == "Versicherungen"
    assert categorizer.normalize_category("Bankgebühren", "") == "Bankgebühren"
    assert categorizer.normalize_category(None, "Monatsmiete") == "Miete & Pacht"
    assert categorizer.normalize_category("  ", "xyz", DocumentType.RECEIPT) == "Betriebsausgaben"


def test_fuzzy_threshold_is_configurable():
    strict = TransactionCategorizer(fuzzy_threshold=100)
    assert strict.normalize_category("Versicherung", "") == "Versicherung"
