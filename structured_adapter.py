"""
Adapter for JSON already structured by the vision/LLM service.
"""
import json
import re
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Union

from schema import AccountingRecord, DocumentType
from preprocess import DataPreprocessor
from categorizer import TransactionCategorizer

RECEIPT_ONLY_FIELDS = ('rechnungsnummer', 'betrag_brutto', 'mwst_betrag', 'total_sum', 'vendor_name')
BANK_ONLY_FIELDS = ('verwendungszweck', 'transaktionstyp', 'valuta', 'gegenkonto', 'transactions')

DEFAULT_BANK_DESCRIPTION = 'Banktransaktion'


def extract_json_payload(content: Optional[str]) -> Optional[Union[Dict[str, Any], List[Any]]]:
    """
    Pull the JSON payload out of a model answer.

    A complete JSON answer is taken as is. Otherwise the first JSON array
    embedded in the text wins over a JSON object; text without parseable
    JSON gives None.
    """
    if not content:
        return None

    try:
        payload = json.loads(content)
        if isinstance(payload, (dict, list)):
            return payload
    except json.JSONDecodeError:
        pass

    for pattern in (r"\[[\s\S]*\]", r"\{[\s\S]*\}"):
        match = re.search(pattern, content)
        if not match:
            continue
        try:
            return json.loads(match.group())
        except json.JSONDecodeError:
            continue
    return None


class StructuredResponseAdapter:
    """Turns receipt objects and transaction lists into AccountingRecords."""

    def __init__(self, preprocessor: Optional[DataPreprocessor] = None,
                 categorizer: Optional[TransactionCategorizer] = None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.preprocessor = preprocessor or DataPreprocessor()
        self.categorizer = categorizer or TransactionCategorizer()

        # Accepted spellings per field, first non-empty value wins
        self.receipt_fields = {
            'date': ['datum', 'date'],
            'amount': ['betrag_brutto', 'total_sum', 'betrag', 'total'],
            'net_amount': ['betrag_netto', 'net_amount'],
            'vat_amount': ['mwst_betrag', 'vat_tax', 'vat_amount'],
            'vat_rate': ['mwst_satz', 'vat_rate'],
            'invoice_number': ['rechnungsnummer', 'invoice_number'],
            'vendor_name': ['unternehmen', 'vendor_name'],
            'description': ['beschreibung', 'description', 'vendor_name', 'unternehmen'],
            'category': ['kategorie', 'category'],
        }
        self.bank_fields = {
            'date': ['datum', 'date'],
            'value_date': ['valuta', 'value_date'],
            'description': ['verwendungszweck', 'description', 'booking_text', 'beschreibung'],
            'counter_account': ['gegenkonto', 'account_number', 'iban'],
            'transaction_type': ['transaktionstyp', 'transaction_type'],
            'category': ['kategorie', 'category'],
        }

    @staticmethod
    def _first(data: Dict[str, Any], names: List[str]) -> Any:
        for name in names:
            value = data.get(name)
            if value not in (None, ''):
                return value
        return None

    def _text(self, data: Dict[str, Any], names: List[str]) -> str:
        value = self._first(data, names)
        return str(value).strip() if value is not None else ''

    def _number(self, data: Dict[str, Any], names: List[str]) -> float:
        for name in names:
            value = self.preprocessor.parse_amount(data.get(name))
            if value != 0:
                return value
        return 0.0

    def process(self, data: Any, document_type: Optional[Union[DocumentType, str]] = None) -> List[AccountingRecord]:
        """
        Normalize structured service output into records.

        Args:
            data: JSON object or array returned by the service
            document_type: Declared type; guessed from the fields when missing

        Returns:
            Zero or more accepted records
        """
        if document_type is not None:
            document_type = DocumentType(document_type)
        else:
            document_type = self.guess_document_type(data)
            if document_type is None:
                self.logger.info("No usable structure in service response, nothing extracted")
                return []
            self.logger.info(f"Detected {document_type.value} from response structure")

        if document_type == DocumentType.RECEIPT:
            if isinstance(data, dict):
                return self.process_receipt(data)
            self.logger.info("Receipt response is not a single object, nothing extracted")
            return []

        return self.process_bank_statement(data)

    def guess_document_type(self, data: Any) -> Optional[DocumentType]:
        """Guess the shape of an untyped response from the fields present."""
        if isinstance(data, list):
            return DocumentType.BANK_STATEMENT
        if not isinstance(data, dict):
            return None
        if any(data.get(field) not in (None, '') for field in RECEIPT_ONLY_FIELDS):
            return DocumentType.RECEIPT
        if any(data.get(field) not in (None, '') for field in BANK_ONLY_FIELDS):
            return DocumentType.BANK_STATEMENT
        return None

    def process_receipt(self, data: Dict[str, Any]) -> List[AccountingRecord]:
        """A receipt object yields one record if it has an amount and a description."""
        fields = self.receipt_fields
        description = self._text(data, fields['description'])
        amount = self._number(data, fields['amount'])
        category = self.categorizer.normalize_category(
            self._first(data, fields['category']), description, DocumentType.RECEIPT
        )

        raw_date = self._text(data, fields['date'])
        record_date = self.preprocessor.normalize_date(raw_date) or raw_date
        if not record_date:
            record_date = date.today().strftime('%d.%m.%Y')

        if amount == 0 or not description:
            self.logger.info(f"Receipt has insufficient data, skipping (amount={amount}, description={description!r})")
            return []

        record = AccountingRecord(
            date=record_date,
            amount=amount,
            description=description,
            category=category,
            sub_category=self.categorizer.get_sub_category(description, category, DocumentType.RECEIPT),
            invoice_number=self._text(data, fields['invoice_number']) or None,
            vendor_name=self._text(data, fields['vendor_name']) or None,
            vat_amount=self._number(data, fields['vat_amount']),
            vat_rate=self._number(data, fields['vat_rate']),
            gross_amount=amount,
            net_amount=self._number(data, fields['net_amount']),
            document_type=DocumentType.RECEIPT,
        )
        self.logger.debug(f"Processed receipt record: {record}")
        return [record]

    def process_bank_statement(self, data: Any) -> List[AccountingRecord]:
        """Accepts a list, a {'transactions': [...]} wrapper or one transaction."""
        if isinstance(data, dict) and isinstance(data.get('transactions'), list):
            transactions = data['transactions']
        elif isinstance(data, list):
            transactions = data
        elif isinstance(data, dict):
            transactions = [data]
        else:
            self.logger.info("Bank statement response has no transactions")
            return []

        records = []
        for index, transaction in enumerate(transactions, start=1):
            if not isinstance(transaction, dict):
                self.logger.info(f"Transaction {index} is not an object, skipping")
                continue
            record = self._process_transaction(transaction)
            if record is None:
                self.logger.info(f"Transaction {index} has insufficient data, skipping")
                continue
            records.append(record)

        self.logger.info(f"Processed {len(records)} of {len(transactions)} bank transactions")
        return records

    def _transaction_amount(self, data: Dict[str, Any]) -> float:
        amount = self.preprocessor.parse_amount(data.get('betrag', data.get('amount')))
        if amount != 0:
            return amount
        credit = self.preprocessor.parse_amount(data.get('credit'))
        if credit != 0:
            return abs(credit)
        debit = self.preprocessor.parse_amount(data.get('debit'))
        return -abs(debit)

    def _process_transaction(self, data: Dict[str, Any]) -> Optional[AccountingRecord]:
        fields = self.bank_fields
        raw_date = self._text(data, fields['date'])
        record_date = self.preprocessor.normalize_date(raw_date) or raw_date
        amount = self._transaction_amount(data)

        if not record_date or amount == 0:
            return None

        purpose = self._text(data, fields['description'])
        description = purpose or DEFAULT_BANK_DESCRIPTION
        category = self.categorizer.normalize_category(
            self._first(data, fields['category']), purpose, DocumentType.BANK_STATEMENT
        )
        raw_value_date = self._text(data, fields['value_date'])

        return AccountingRecord(
            date=record_date,
            amount=amount,
            description=description,
            category=category,
            sub_category=self.categorizer.get_sub_category(description, category, DocumentType.BANK_STATEMENT),
            purpose=purpose or None,
            counter_account=self._text(data, fields['counter_account']) or None,
            transaction_type=self._text(data, fields['transaction_type'])
            or self.categorizer.infer_transaction_type(purpose, amount),
            value_date=(self.preprocessor.normalize_date(raw_value_date) or raw_value_date) or None,
            document_type=DocumentType.BANK_STATEMENT,
        )
