import logging
from typing import Dict, List, Optional, Tuple, Union
from rapidfuzz import fuzz, process

from schema import DocumentType, TransactionType

# Ordered: the first category with a keyword hit wins.
CATEGORY_KEYWORDS: List[Tuple[str, List[str]]] = [
    ('Wareneingang', ['wareneingang', 'einkauf', 'beschaffung', 'material', 'rohstoffe', 'waren', 'inventar']),
    ('Wareneingang 7%', ['lebensmittel', 'nahrungsmittel', 'getränke', 'supermarkt', 'bäckerei', 'metzgerei', 'obst', 'gemüse']),
    ('Wareneingang 19%', ['elektronik', 'technik', 'computer', 'software', 'hardware', 'büroausstattung', 'möbel']),
    ('Betriebsausgaben', ['büro', 'geschäftsausgaben', 'betriebskosten', 'geschäftsbedarf', 'dienstleistungen']),
    ('Betriebsausgaben 19%', ['beratung', 'rechtsanwalt', 'steuerberater', 'buchhalter', 'werbung', 'marketing']),
    ('Betriebsausgaben 7%', ['transport', 'lieferung', 'versand', 'logistik']),
    ('Personalkosten', ['gehalt', 'lohn', 'sozialabgaben', 'krankenversicherung', 'rentenversicherung', 'arbeitslosenversicherung']),
    ('Miete & Pacht', ['miete', 'pacht', 'leasing', 'immobilie', 'büroraum', 'lager', 'werkstatt']),
    ('Versicherungen', ['versicherung', 'haftpflicht', 'betriebshaftpflicht', 'sachversicherung', 'rechtschutz']),
    ('Energiekosten', ['strom', 'gas', 'wasser', 'heizung', 'energie', 'versorgung']),
    ('Telekommunikation', ['telefon', 'internet', 'mobilfunk', 'dsl', 'festnetz', 'handy']),
    ('Fahrzeugkosten', ['tankstelle', 'benzin', 'diesel', 'kraftstoff', 'parkplatz', 'maut', 'versicherung']),
    ('Reisekosten', ['hotel', 'übernachtung', 'flug', 'bahn', 'db', 'deutsche bahn', 'ticket', 'reise']),
    ('Verpflegung', ['restaurant', 'café', 'imbiss', 'gastronomie', 'verpflegung', 'mahlzeit']),
    ('Bürobedarf', ['papier', 'drucker', 'toner', 'büromaterial', 'schreibwaren', 'ordner']),
    ('Fortbildung', ['schulung', 'seminar', 'fortbildung', 'weiterbildung', 'kurs', 'training']),
    ('Marketing', ['werbung', 'marketing', 'pr', 'public relations', 'plakat', 'flyer', 'website']),
    ('Einnahmen', ['umsatz', 'einnahmen', 'erlös', 'verkauf', 'rechnung', 'zahlung', 'überweisung']),
    ('Zinsen', ['zinsen', 'habenzinsen', 'sollzinsen', 'kreditzinsen']),
    ('Steuern', ['mwst', 'umsatzsteuer', 'vorsteuer', 'steuer', 'finanzamt', 'steuerbescheid']),
    ('Sonstige', ['diverses', 'sonstiges', 'andere', 'misc', 'various']),
]

SUB_CATEGORY_KEYWORDS: Dict[str, List[Tuple[str, List[str]]]] = {
    'Wareneingang': [
        ('Rohstoffe', ['rohstoffe', 'material', 'grundstoffe']),
        ('Handelswaren', ['handelswaren', 'waren', 'produkte']),
        ('Verpackung', ['verpackung', 'karton', 'folie']),
        ('Hilfsstoffe', ['hilfsstoffe', 'chemikalien', 'zusätze']),
    ],
    'Wareneingang 7%': [
        ('Lebensmittel', ['lebensmittel', 'nahrungsmittel', 'essen', 'trinken']),
        ('Getränke', ['getränke', 'wasser', 'saft', 'kaffee']),
        ('Frische Produkte', ['obst', 'gemüse', 'frisch', 'bio']),
    ],
    'Wareneingang 19%': [
        ('Elektronik', ['elektronik', 'computer', 'laptop', 'tablet', 'smartphone']),
        ('Software', ['software', 'programm', 'app', 'lizenz']),
        ('Büroausstattung', ['büroausstattung', 'möbel', 'stuhl', 'tisch']),
        ('Technik', ['technik', 'hardware', 'gerät', 'maschine']),
    ],
    'Betriebsausgaben': [
        ('Bürobedarf', ['bürobedarf', 'papier', 'drucker', 'toner']),
        ('Dienstleistungen', ['dienstleistungen', 'service', 'wartung']),
        ('Beratung', ['beratung', 'consulting', 'experte']),
        ('Geschäftsbedarf', ['geschäftsbedarf', 'bedarf', 'zubehör']),
    ],
    'Betriebsausgaben 19%': [
        ('Rechtsberatung', ['rechtsanwalt', 'anwalt', 'rechtsberatung']),
        ('Steuerberatung', ['steuerberater', 'buchhalter', 'steuerberatung']),
        ('Werbung', ['werbung', 'marketing', 'pr', 'public relations']),
        ('Beratung', ['beratung', 'consulting', 'experte']),
    ],
    'Betriebsausgaben 7%': [
        ('Transport', ['transport', 'lieferung', 'versand', 'spedition']),
        ('Logistik', ['logistik', 'lager', 'warehouse']),
        ('Kurier', ['kurier', 'express', 'dhl', 'ups']),
    ],
    'Verpflegung': [
        ('Restaurant', ['restaurant', 'gastronomie', 'imbiss']),
        ('Café', ['café', 'kaffee', 'bäckerei']),
        ('Hotel', ['hotel', 'übernachtung', 'frühstück']),
        ('Catering', ['catering', 'verpflegung', 'mahlzeit']),
    ],
    'Fahrzeugkosten': [
        ('Kraftstoff', ['kraftstoff', 'benzin', 'diesel', 'tankstelle']),
        ('Parken', ['parken', 'parkplatz', 'parkhaus']),
        ('Versicherung', ['versicherung', 'kfz', 'auto']),
        ('Wartung', ['wartung', 'reparatur', 'werkstatt']),
    ],
    'Reisekosten': [
        ('Hotel', ['hotel', 'übernachtung', 'unterkunft']),
        ('Transport', ['transport', 'bahn', 'flug', 'bus']),
        ('Verpflegung', ['verpflegung', 'essen', 'mahlzeit']),
        ('Sonstiges', ['sonstiges', 'diverses', 'andere']),
    ],
    'Telekommunikation': [
        ('Internet', ['internet', 'dsl', 'wlan', 'wifi']),
        ('Telefon', ['telefon', 'festnetz', 'handy', 'mobilfunk']),
        ('Software', ['software', 'app', 'programm']),
        ('Hardware', ['hardware', 'router', 'modem']),
    ],
    'Energiekosten': [
        ('Strom', ['strom', 'elektrizität', 'elektro']),
        ('Gas', ['gas', 'heizung', 'wärme']),
        ('Wasser', ['wasser', 'abwasser', 'versorgung']),
        ('Sonstiges', ['sonstiges', 'diverses', 'andere']),
    ],
}

TAX_CATEGORIES: Dict[str, str] = {
    'Wareneingang': 'WARENEINGANG',
    'Wareneingang 7%': 'WARENEINGANG_7',
    'Wareneingang 19%': 'WARENEINGANG_19',
    'Betriebsausgaben': 'BETRIEBSAUSGABEN',
    'Betriebsausgaben 7%': 'BETRIEBSAUSGABEN_7',
    'Betriebsausgaben 19%': 'BETRIEBSAUSGABEN_19',
    'Personalkosten': 'PERSONALKOSTEN',
    'Miete & Pacht': 'MIETE_PACHT',
    'Versicherungen': 'VERSICHERUNGEN',
    'Energiekosten': 'ENERGIEKOSTEN',
    'Telekommunikation': 'TELEKOM',
    'Fahrzeugkosten': 'FAHRZEUGKOSTEN',
    'Reisekosten': 'REISEKOSTEN',
    'Verpflegung': 'VERPFLEGUNG',
    'Bürobedarf': 'BUERO',
    'Fortbildung': 'FORTBILDUNG',
    'Marketing': 'MARKETING',
    'Einnahmen': 'EINNAHMEN',
    'Zinsen': 'ZINSEN',
    'Steuern': 'STEUERN',
    'Sonstige': 'SONSTIGE',
}

# Checked before the general table for lines of a bank statement.
BANK_CATEGORY_RULES: List[Tuple[str, List[str]]] = [
    ('Einnahmen', ['gehalt', 'lohn', 'salary']),
    ('Miete & Pacht', ['miete', 'rent']),
    ('Betriebsausgaben', ['gebühr', 'fee']),
    ('Versicherungen', ['versicherung', 'insurance']),
    ('Steuern', ['steuer', 'tax']),
    ('Energiekosten', ['strom', 'electricity']),
]

TRANSACTION_TYPE_RULES: List[Tuple[TransactionType, List[str]]] = [
    (TransactionType.DIRECT_DEBIT, ['lastschrift', 'debit']),
    (TransactionType.CREDIT, ['gutschrift', 'credit', 'einzahlung']),
    (TransactionType.WITHDRAWAL, ['abhebung', 'auszahlung', 'withdrawal']),
    (TransactionType.TRANSFER, ['überweisung', 'transfer']),
]

RECEIPT_FALLBACK_CATEGORY = 'Betriebsausgaben'
DEFAULT_CATEGORY = 'Sonstige'
RECEIPT_FALLBACK_SUB_CATEGORY = 'Sonstiges'
BANK_FALLBACK_SUB_CATEGORY = 'Banktransaktion'


def _first_match(text: str, table):
    for label, keywords in table:
        if any(keyword in text for keyword in keywords):
            return label
    return None


class TransactionCategorizer:
    """Keyword-based German bookkeeping categorization."""

    def __init__(self, logger: Optional[logging.Logger] = None, fuzzy_threshold: int = 85):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.fuzzy_threshold = fuzzy_threshold
        self.categories = [name for name, _ in CATEGORY_KEYWORDS]

    def categorize(self, description: str, document_type: Optional[Union[DocumentType, str]] = None) -> str:
        """
        Map a description to the first category with a keyword hit.

        Args:
            description: Free text (item, purpose or whole document)
            document_type: Selects the fallback when nothing matches

        Returns:
            Category label
        """
        category = _first_match((description or '').lower(), CATEGORY_KEYWORDS)
        if category:
            return category
        if document_type == DocumentType.RECEIPT:
            return RECEIPT_FALLBACK_CATEGORY
        return DEFAULT_CATEGORY

    def get_sub_category(self, description: str, category: str,
                         document_type: Optional[Union[DocumentType, str]] = None) -> str:
        """Refine an already chosen category using its own keyword table."""
        table = SUB_CATEGORY_KEYWORDS.get(category)
        if table:
            sub_category = _first_match((description or '').lower(), table)
            if sub_category:
                return sub_category

        if document_type == DocumentType.BANK_STATEMENT:
            return BANK_FALLBACK_SUB_CATEGORY
        return RECEIPT_FALLBACK_SUB_CATEGORY

    def get_tax_category(self, category: str) -> str:
        return TAX_CATEGORIES.get(category, 'SONSTIGE')

    def categorize_bank_transaction(self, description: str) -> str:
        """Bank statement specific rules first, then the general table."""
        category = _first_match((description or '').lower(), BANK_CATEGORY_RULES)
        return category or self.categorize(description, DocumentType.BANK_STATEMENT)

    def infer_transaction_type(self, description: str, amount: Optional[float] = None) -> str:
        """
        Infer the transaction type from keywords in the description.

        Without a keyword hit the type is a transfer, or, when an amount is
        given, a credit for incoming and a direct debit for outgoing money.
        """
        transaction_type = _first_match((description or '').lower(), TRANSACTION_TYPE_RULES)
        if transaction_type:
            return transaction_type.value
        if amount is None:
            return TransactionType.TRANSFER.value
        return TransactionType.CREDIT.value if amount > 0 else TransactionType.DIRECT_DEBIT.value

    def normalize_category(self, label: Optional[str], description: str,
                           document_type: Optional[Union[DocumentType, str]] = None) -> str:
        """
        Fit a category label coming from the vision/LLM service to the taxonomy.

        Exact labels are kept, close spellings are snapped to the taxonomy,
        anything else is kept as the service sent it. A missing label is
        inferred from the description.
        """
        if not label or not str(label).strip():
            return self.categorize(description, document_type)

        label = str(label).strip()
        if label in self.categories:
            return label

        best = process.extractOne(label, self.categories, scorer=fuzz.ratio)
        if best and best[1] >= self.fuzzy_threshold:
            self.logger.debug(f"Mapped category {label!r} to {best[0]!r} (score {best[1]:.0f})")
            return best[0]
        return label
