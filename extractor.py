import re
import logging
from typing import Callable, List, NamedTuple, Optional, Tuple, Union

from schema import AccountingRecord, DocumentType
from preprocess import (
    DataPreprocessor,
    AMOUNT_PATTERN,
    DATE_PATTERN,
    DAY_FIRST_DATE_PATTERN,
    ISO_DATE_PATTERN,
    CURRENCY_PATTERN,
)
from categorizer import TransactionCategorizer
from detector import DocumentTypeDetector

A = AMOUNT_PATTERN
C = CURRENCY_PATTERN
D = DAY_FIRST_DATE_PATTERN
ISO = ISO_DATE_PATTERN
DATE = DATE_PATTERN

# Bank statement line shapes, tried in order; the first match wins.
TRANSACTION_LINE_SHAPES = [
    ('separated_date_description_amount',
     rf"^(?P<date>{DATE})\s*[|;]\s*(?P<description>[^|;]+?)\s*[|;]\s*(?P<amount>{A})\s*{C}?\s*[|;]?"),
    ('separated_date_amount_description',
     rf"^(?P<date>{DATE})\s*[|;]\s*(?P<amount>{A})\s*{C}?\s*[|;]\s*(?P<description>[^|;]+)"),
    ('date_value_date_amount_description',
     rf"^(?P<date>{D})\s+(?P<value_date>{D})\s+(?P<amount>{A})\s*{C}?\s+(?P<description>.+)$"),
    ('date_value_date_description_amount',
     rf"^(?P<date>{D})\s+(?P<value_date>{D})\s+(?P<description>.+?)\s+(?P<amount>{A})\s*{C}?$"),
    ('date_currency_amount_description',
     rf"^(?P<date>{D})\s+{C}\s*(?P<amount>{A})\s+(?P<description>.+)$"),
    ('date_description_currency_amount',
     rf"^(?P<date>{D})\s+(?P<description>.+?)\s+{C}\s*(?P<amount>{A})$"),
    ('date_amount_description',
     rf"^(?P<date>{D})\s+(?P<amount>{A})\s*{C}?\s+(?P<description>.+)$"),
    ('date_description_amount_balance',
     rf"^(?P<date>{D})\s+(?P<description>.+?)\s+(?P<amount>{A})\s*{C}?\s+{A}\s*{C}?$"),
    ('date_description_amount',
     rf"^(?P<date>{D})\s+(?P<description>.+?)\s+(?P<amount>{A})\s*{C}?$"),
    ('iso_date_amount_description',
     rf"^(?P<date>{ISO})\s+(?P<amount>{A})\s*{C}?\s+(?P<description>.+)$"),
    ('iso_date_description_amount',
     rf"^(?P<date>{ISO})\s+(?P<description>.+?)\s+(?P<amount>{A})\s*{C}?$"),
    ('description_date_amount',
     rf"^(?P<description>\D.*?)\s+(?P<date>{DATE})\s+(?P<amount>{A})\s*{C}?$"),
    ('compact_date_amount_description',
     rf"^(?P<date>{DATE})\s*(?P<amount>{A})\s*{C}?\s*(?P<description>\S.*)$"),
    ('loose_date_amount',
     rf"(?P<date>{DATE}).*?(?P<amount>{A})"),
]

# Receipt item shapes
LINE_ITEM_SHAPES = [
    ('item_quantity_amount',
     rf"^(?P<description>.+?)\s+(?P<quantity>\d{{1,3}})\s*(?:x|X|\*)?\s*(?P<amount>{A})\s*{C}?\s*(?:[AB]\b)?\s*$"),
    ('item_amount',
     rf"^(?P<description>.+?)\s+(?P<amount>{A})\s*{C}?"),
    ('amount_item',
     rf"^(?P<amount>{A})\s*{C}?\s+(?P<description>.+)$"),
]

TABLE_HEADER_PATTERNS = [
    r"datum|date|buchungsdatum|booking\s*date",
    r"betrag|amount|summe|total",
    r"beschreibung|description|verwendungszweck|purpose",
    r"kategorie|category",
]

TABLE_ROW_PATTERN = rf"(?P<date>{DATE})\s+(?P<description>.+?)\s+(?P<amount>{A})"

# Totals, VAT and payment lines are not items
RECEIPT_SUMMARY_LINE = re.compile(
    r"total|summe|gesamt|mwst|\bust\b|steuer|netto|brutto|zu zahlen|rückgeld|gegeben|\bbar\b|kartenzahlung",
    re.IGNORECASE,
)

BALANCE_LINE = re.compile(
    r"(?:alter|neuer)\s+kontostand|kontostand\s+(?:alt|neu|am)|anfangssaldo|endsaldo|schlusssaldo"
    r"|saldo\s+(?:alt|neu|vortrag)|übertrag|opening balance|closing balance|balance forward",
    re.IGNORECASE,
)

COMPANY_PATTERN = re.compile(
    r"((?:[A-ZÄÖÜ][\wÄÖÜäöüß&.\-]*\s+){1,5}"
    r"(?:GmbH(?:\s*&\s*Co\.?\s*KG)?|AG|KG|OHG|e\.V\.|UG|Co\.|Inc\.|Ltd\.))(?![\wÄÖÜäöüß])"
)

INVOICE_PATTERNS = [
    re.compile(
        r"(?:Rechnungs?-?\s*(?:nummer|nr\.?)|Rechn\.?\s*Nr\.?|Invoice\s*(?:No\.?|Number|#)?"
        r"|Beleg-?\s*(?:nummer|nr\.?)|Bon-?\s*(?:nummer|nr\.?))\s*[:#]?\s*([A-Z0-9][A-Z0-9\-_/]*)",
        re.IGNORECASE,
    ),
    re.compile(r"\b(?:Nr|No|Number)\b\.?\s*[:#]?\s*([A-Z0-9][A-Z0-9\-_/]*)", re.IGNORECASE),
    re.compile(r"\b([A-Z]{2,4}\d{4,8})\b"),
]

VAT_LABEL = r"\b(?:MwSt|MWST|USt|VAT|Steuer)"
VAT_PATTERNS = [
    re.compile(
        rf"{VAT_LABEL}\.?\s*(?:(?P<rate>\d{{1,2}}(?:[.,]\d{{1,2}})?)\s*%)?\s*[:=]?\s*(?P<amount>{A})",
        re.IGNORECASE,
    ),
    re.compile(rf"(?P<amount>{A})\s*{C}?\s*{VAT_LABEL}", re.IGNORECASE),
]
VAT_RATE_PATTERN = re.compile(rf"(?P<rate>\d{{1,2}}(?:[.,]\d{{1,2}})?)\s*%\s*{VAT_LABEL}", re.IGNORECASE)

STANDARD_VAT_RATE = 19.0
DEFAULT_TRANSACTION_DESCRIPTION = 'Transaktion'
DEFAULT_RECEIPT_DESCRIPTION = 'Beleg'


class Extractor(NamedTuple):
    """A named extraction strategy: text in, records out."""
    name: str
    func: Callable[[str], List[AccountingRecord]]


class TransactionExtractor:
    """Extracts accounting records from raw OCR text."""

    def __init__(self, preprocessor: Optional[DataPreprocessor] = None,
                 categorizer: Optional[TransactionCategorizer] = None,
                 detector: Optional[DocumentTypeDetector] = None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.preprocessor = preprocessor or DataPreprocessor()
        self.categorizer = categorizer or TransactionCategorizer()
        self.detector = detector or DocumentTypeDetector()

        self.transaction_shapes = [(name, re.compile(pattern)) for name, pattern in TRANSACTION_LINE_SHAPES]
        self.line_item_shapes = [(name, re.compile(pattern)) for name, pattern in LINE_ITEM_SHAPES]
        self.table_header_patterns = [re.compile(p, re.IGNORECASE) for p in TABLE_HEADER_PATTERNS]
        self.table_row_pattern = re.compile(TABLE_ROW_PATTERN)

        self.receipt_strategies = [
            Extractor('line_items', self.extract_line_items),
            Extractor('receipt_document', self.extract_receipt_document),
        ]
        self.bank_strategies = [
            Extractor('line_transactions', self.extract_line_transactions),
            Extractor('table', self.extract_table),
            Extractor('simple', self.extract_simple),
            Extractor('statement_summary', self.extract_statement_summary),
        ]

    def extract(self, text: str, document_type: Optional[Union[DocumentType, str]] = None) -> List[AccountingRecord]:
        """
        Extract records from raw text.

        Args:
            text: OCR or PDF text
            document_type: Declared type; detected from the text when missing

        Returns:
            Records of the first strategy that found anything
        """
        if not text or not text.strip():
            self.logger.info("Empty text, nothing to extract")
            return []

        if document_type is None:
            document_type = self.detector.detect(text)
        document_type = DocumentType(document_type)
        self.logger.info(f"Extracting {document_type.value} data from {len(text)} characters of text")

        if document_type == DocumentType.RECEIPT:
            return self.run_cascade(text, self.receipt_strategies)
        return self.run_cascade(text, self.bank_strategies)

    def run_cascade(self, text: str, strategies: List[Extractor]) -> List[AccountingRecord]:
        """Try strategies in order until one yields records."""
        for strategy in strategies:
            records = strategy.func(text)
            if records:
                self.logger.info(f"Strategy '{strategy.name}' extracted {len(records)} records")
                return records
            self.logger.debug(f"Strategy '{strategy.name}' found nothing")

        self.logger.info("No strategy extracted any records")
        return []

    # ------------------------------------------------------------------
    # Bank statements
    # ------------------------------------------------------------------

    @staticmethod
    def _lines(text: str) -> List[str]:
        return [line.strip() for line in text.split('\n') if line.strip()]

    def _is_transaction_candidate(self, line: str) -> bool:
        return len(line) >= 10 and not BALANCE_LINE.search(line)

    def _remainder(self, line: str, *tokens: str) -> str:
        for token in tokens:
            if token:
                line = line.replace(token, ' ', 1)
        return re.sub(rf"(?:{C}|\s)+", ' ', line).strip(' |;:')

    def _build_transaction(self, raw_date: str, raw_amount: str, description: str,
                           raw_value_date: str = '', sign_based: bool = False) -> Optional[AccountingRecord]:
        record_date = self.preprocessor.normalize_date(raw_date)
        amount = self.preprocessor.parse_amount(raw_amount)
        if not record_date or amount == 0:
            return None

        description = (description or '').strip(' |;:-')
        if len(description) < 3:
            description = DEFAULT_TRANSACTION_DESCRIPTION

        category = self.categorizer.categorize_bank_transaction(description)
        return AccountingRecord(
            date=record_date,
            amount=amount,
            description=description,
            category=category,
            sub_category=self.categorizer.get_sub_category(description, category, DocumentType.BANK_STATEMENT),
            purpose=description,
            transaction_type=self.categorizer.infer_transaction_type(description, amount if sign_based else None),
            value_date=self.preprocessor.normalize_date(raw_value_date) or None,
            document_type=DocumentType.BANK_STATEMENT,
        )

    def match_transaction_line(self, line: str) -> Optional[Tuple[str, re.Match]]:
        """First transaction shape matching the line, as (shape name, match)."""
        for name, pattern in self.transaction_shapes:
            match = pattern.search(line)
            if match:
                return name, match
        return None

    def extract_line_transactions(self, text: str) -> List[AccountingRecord]:
        """One transaction per line, using the ordered line shapes."""
        records = []
        for line_num, line in enumerate(self._lines(text), start=1):
            if not self._is_transaction_candidate(line):
                continue

            matched = self.match_transaction_line(line)
            if not matched:
                self.logger.debug(f"No shape matched line {line_num}: {line!r}")
                continue

            name, match = matched
            groups = match.groupdict()
            description = groups.get('description')
            if name == 'loose_date_amount':
                description = self._remainder(line, groups['date'], groups['amount'])

            record = self._build_transaction(groups['date'], groups['amount'], description,
                                             raw_value_date=groups.get('value_date') or '')
            if record is None:
                self.logger.debug(f"Discarded line {line_num} ({name}): zero amount or bad date")
                continue

            self.logger.debug(f"Line {line_num} matched {name}: {record.date} {record.amount}")
            records.append(record)

        return records

    def extract_table(self, text: str) -> List[AccountingRecord]:
        """Rows after a recognised table header, parsed with one relaxed pattern."""
        lines = self._lines(text)

        data_start = 0
        for index, line in enumerate(lines):
            if any(pattern.search(line) for pattern in self.table_header_patterns):
                data_start = index + 1
                break

        records = []
        for line in lines[data_start:]:
            if not self._is_transaction_candidate(line) or re.match(r"^[^\W\d_\s]+(?:\s+[^\W\d_\s]+)*$", line):
                continue
            match = self.table_row_pattern.search(line)
            if not match:
                continue
            record = self._build_transaction(match.group('date'), match.group('amount'),
                                             match.group('description'), sign_based=True)
            if record:
                records.append(record)

        return records

    def extract_simple(self, text: str) -> List[AccountingRecord]:
        """Any line holding both a date and an amount."""
        records = []
        for line in self._lines(text):
            if not self._is_transaction_candidate(line):
                continue
            date_match = re.search(DATE, line)
            if not date_match:
                continue
            rest = line[:date_match.start()] + ' ' + line[date_match.end():]
            amount_match = re.search(A, rest)
            if not amount_match:
                continue

            description = self._remainder(line, date_match.group(), amount_match.group())
            record = self._build_transaction(date_match.group(), amount_match.group(), description, sign_based=True)
            if record:
                records.append(record)

        return records

    def extract_statement_summary(self, text: str) -> List[AccountingRecord]:
        """Single record for a document describing one transaction."""
        collapsed = re.sub(r"\s+", " ", text).strip()
        _, record_date = self.preprocessor.find_date(collapsed)
        amounts = [amount for amount in self.preprocessor.find_amounts(collapsed) if amount != 0]
        if not record_date or not amounts:
            return []
        amount = amounts[0]

        purpose = ''
        for line in self._lines(text):
            if (5 < len(line) < 100 and not line[0].isdigit()
                    and not re.search(r"EUR|€|Datum|Betrag|Saldo", line)):
                purpose = line
                break
        if not purpose:
            match = re.search(r"(?:Verwendungszweck|Zweck|Beschreibung)\s*[:=]?\s*([^\n]+)", text, re.IGNORECASE)
            if match:
                purpose = match.group(1).strip()

        transaction_type = self.categorizer.infer_transaction_type(collapsed)
        category = self.categorizer.categorize_bank_transaction(collapsed)
        description = purpose or f"{transaction_type} - {category}"

        return [AccountingRecord(
            date=record_date,
            amount=amount,
            description=description,
            category=category,
            sub_category=self.categorizer.get_sub_category(collapsed, category, DocumentType.BANK_STATEMENT),
            purpose=description,
            transaction_type=transaction_type,
            document_type=DocumentType.BANK_STATEMENT,
        )]

    # ------------------------------------------------------------------
    # Receipts
    # ------------------------------------------------------------------

    def _find_vendor(self, text: str) -> str:
        match = COMPANY_PATTERN.search(text)
        return match.group(1).strip() if match else ''

    def _find_invoice_number(self, text: str) -> str:
        for pattern in INVOICE_PATTERNS:
            for match in pattern.finditer(text):
                candidate = match.group(1).strip('-_/')
                if len(candidate) >= 3 and re.search(r"\d", candidate):
                    return candidate
        return ''

    def _find_vat(self, text: str) -> Tuple[float, Optional[float]]:
        """VAT amount and rate (rate is None when not printed)."""
        vat_amount = 0.0
        rate = None
        for pattern in VAT_PATTERNS:
            match = pattern.search(text)
            if match:
                vat_amount = self.preprocessor.parse_amount(match.group('amount'))
                if 'rate' in match.groupdict() and match.group('rate'):
                    rate = self.preprocessor.parse_amount(match.group('rate'))
                break

        if rate is None:
            rate_match = VAT_RATE_PATTERN.search(text)
            if rate_match:
                rate = self.preprocessor.parse_amount(rate_match.group('rate'))
        return vat_amount, rate

    def _receipt_description(self, text: str, vendor: str) -> str:
        if vendor:
            return vendor
        for line in self._lines(text):
            cleaned = self.preprocessor.clean_text(line)
            if len(cleaned) > 5 and re.search(r"[^\W\d_]", cleaned):
                return cleaned[:50].strip()
        return DEFAULT_RECEIPT_DESCRIPTION

    def extract_line_items(self, text: str) -> List[AccountingRecord]:
        """
        One record per priced item line.

        VAT is estimated at the standard 19 % rate and flagged as estimated.
        """
        collapsed = re.sub(r"\s+", " ", text).strip()
        _, record_date = self.preprocessor.find_date(collapsed)
        vendor = self._find_vendor(collapsed)

        records = []
        for line in self._lines(text):
            if len(line) < 5 or RECEIPT_SUMMARY_LINE.search(line) or re.search(DATE, line):
                continue

            for name, pattern in self.line_item_shapes:
                match = pattern.search(line)
                if not match:
                    continue
                item_name = match.group('description').strip(' .:-*')
                amount = self.preprocessor.parse_amount(match.group('amount'))
                if amount > 0 and len(item_name) > 2 and re.search(r"[^\W\d_]", item_name):
                    category = self.categorizer.categorize(item_name, DocumentType.RECEIPT)
                    records.append(AccountingRecord(
                        date=record_date,
                        amount=amount,
                        description=item_name,
                        category=category,
                        sub_category=self.categorizer.get_sub_category(item_name, category, DocumentType.RECEIPT),
                        vendor_name=vendor or None,
                        vat_amount=amount * 0.19,
                        vat_rate=STANDARD_VAT_RATE,
                        gross_amount=amount,
                        net_amount=amount / 1.19,
                        vat_estimated=True,
                        document_type=DocumentType.RECEIPT,
                    ))
                    self.logger.debug(f"Line item ({name}): {item_name} {amount}")
                break

        return records

    def extract_receipt_document(self, text: str) -> List[AccountingRecord]:
        """One record for the whole receipt; the largest amount is the total."""
        collapsed = re.sub(r"\s+", " ", text).strip()

        _, record_date = self.preprocessor.find_date(collapsed)

        amounts = [amount for amount in self.preprocessor.find_amounts(collapsed) if amount > 0]
        if not amounts:
            amounts = [float(value) for value in re.findall(rf"(?<![\d.,])(\d+)\s*{C}", collapsed) if int(value) > 0]
        amount = max(amounts) if amounts else 0.0
        if amount == 0:
            self.logger.info("No amount found on receipt")
            return []

        vendor = self._find_vendor(collapsed)
        invoice_number = self._find_invoice_number(collapsed)
        vat_amount, vat_rate = self._find_vat(collapsed)
        if vat_rate is None:
            vat_rate = STANDARD_VAT_RATE if vat_amount > 0 else 0.0

        category = self.categorizer.categorize(collapsed, DocumentType.RECEIPT)
        record = AccountingRecord(
            date=record_date,
            amount=amount,
            description=self._receipt_description(text, vendor),
            category=category,
            sub_category=self.categorizer.get_sub_category(collapsed, category, DocumentType.RECEIPT),
            invoice_number=invoice_number or None,
            vendor_name=vendor or None,
            vat_amount=vat_amount,
            vat_rate=vat_rate,
            gross_amount=amount,
            net_amount=amount - vat_amount if vat_amount > 0 else amount,
            document_type=DocumentType.RECEIPT,
        )
        self.logger.debug(f"Receipt record: {record}")
        return [record]
