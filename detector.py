"""
Document type detection by weighted keyword scoring.
"""
import logging
from typing import Dict, List, Optional, Tuple

from schema import DocumentType

# Each occurrence in a list counts, so a repeated keyword scores twice
BANK_KEYWORDS: List[str] = [
    'kontoauszug', 'kontostand', 'buchung', 'transaktion', 'überweisung',
    'lastschrift', 'gutschrift', 'abhebung', 'bargeldabhebung', 'penny', 'sagt', 'danke',
    'account statement', 'balance', 'transaction', 'transfer', 'withdrawal',
    'booking', 'debit', 'credit', 'withdrawal', 'valuta', 'verwendungszweck',
    'sparkasse', 'deutsche bank', 'commerzbank', 'volksbank', 'raiffeisenbank',
    'konto', 'kontonummer', 'iban', 'bic', 'blz', 'haben', 'soll', 'saldo',
]

RECEIPT_KEYWORDS: List[str] = [
    'rechnung', 'beleg', 'quittung', 'invoice', 'receipt', 'bill',
    'mwst', 'umsatzsteuer', 'vat', 'tax', 'total', 'summe',
    'betrag', 'amount', 'preis', 'price', 'rechnungsnummer', 'hamburgerei',
    'restaurant', 'café', 'imbiss', 'gastronomie', 'hotel', 'bar',
    'trinkgeld', 'tip', 'service', 'zu zahlen', 'netto', 'brutto',
]

# Keywords not listed here weigh 1
BANK_WEIGHTS: Dict[str, int] = {
    'kontoauszug': 3, 'kontostand': 3, 'buchung': 3, 'transaktion': 3,
    'überweisung': 2, 'lastschrift': 2, 'gutschrift': 2,
}

RECEIPT_WEIGHTS: Dict[str, int] = {
    'rechnung': 3, 'rechnungsnummer': 3, 'mwst': 3, 'umsatzsteuer': 3,
    'beleg': 2, 'quittung': 2, 'invoice': 2, 'receipt': 2,
}


class DocumentTypeDetector:
    """Decides between receipt and bank statement for raw OCR text."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @staticmethod
    def _score(text: str, keywords: List[str], weights: Dict[str, int]) -> int:
        return sum(weights.get(keyword, 1) for keyword in keywords if keyword in text)

    def score(self, text: str) -> Tuple[int, int]:
        """Return (bank_score, receipt_score) for the text."""
        lower_text = (text or '').lower()
        return (self._score(lower_text, BANK_KEYWORDS, BANK_WEIGHTS),
                self._score(lower_text, RECEIPT_KEYWORDS, RECEIPT_WEIGHTS))

    def detect(self, text: str) -> DocumentType:
        """
        Pick the document type with the strictly higher score.

        A tie, including no signal at all, resolves to bank statement.
        """
        bank_score, receipt_score = self.score(text)

        if bank_score > receipt_score:
            detected = DocumentType.BANK_STATEMENT
        elif receipt_score > bank_score:
            detected = DocumentType.RECEIPT
        else:
            detected = DocumentType.BANK_STATEMENT

        self.logger.debug(
            f"Document type scores: bank={bank_score} receipt={receipt_score} -> {detected.value}"
            + (" (tie default)" if bank_score == receipt_score else "")
        )
        return detected
