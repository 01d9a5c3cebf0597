"""
Client for the Gemini vision model that reads documents into structured JSON.
"""
import logging
from typing import Optional, Union

from google import genai
from google.genai import errors, types

from schema import DocumentType, OCRResponse, VisionServiceError
from structured_adapter import extract_json_payload

DEFAULT_MODEL = "gemini-2.5-flash"

RECEIPT_FIELDS_DE = """- "rechnungsnummer": Rechnungs- oder Belegnummer
- "datum": Rechnungsdatum im Format DD.MM.YYYY
- "betrag_brutto": Gesamtbetrag inkl. MWST (Zahl)
- "betrag_netto": Betrag ohne MWST (Zahl)
- "mwst_betrag": MWST-Betrag (Zahl)
- "mwst_satz": MWST-Satz in Prozent (Zahl, z.B. 19)
- "unternehmen": Name des ausstellenden Unternehmens
- "beschreibung": Kurze Beschreibung der Leistung oder Ware
- "kategorie": Buchhaltungskategorie (z.B. "Wareneingang", "Betriebsausgaben", "Verpflegung")"""

RECEIPT_FIELDS_EN = """- "rechnungsnummer": invoice or receipt number
- "datum": invoice date in DD.MM.YYYY format
- "betrag_brutto": total amount including VAT (number)
- "betrag_netto": amount without VAT (number)
- "mwst_betrag": VAT amount (number)
- "mwst_satz": VAT rate in percent (number, e.g. 19)
- "unternehmen": name of the issuing company
- "beschreibung": short description of the goods or service
- "kategorie": German bookkeeping category (e.g. "Wareneingang", "Betriebsausgaben", "Verpflegung")"""

BANK_FIELDS_DE = """- "datum": Buchungsdatum im Format DD.MM.YYYY
- "valuta": Wertstellungsdatum im Format DD.MM.YYYY oder null
- "betrag": Betrag als Zahl, negativ für Ausgaben, positiv für Einnahmen
- "verwendungszweck": Buchungstext oder Verwendungszweck
- "gegenkonto": Empfänger oder Zahlungspflichtiger oder null
- "transaktionstyp": "Überweisung", "Lastschrift", "Gutschrift" oder "Abhebung"
- "kategorie": Buchhaltungskategorie (z.B. "Einnahmen", "Miete & Pacht", "Versicherungen")"""

BANK_FIELDS_EN = """- "datum": booking date in DD.MM.YYYY format
- "valuta": value date in DD.MM.YYYY format or null
- "betrag": amount as number, negative for expenses, positive for income
- "verwendungszweck": booking text or purpose
- "gegenkonto": recipient or payer, or null
- "transaktionstyp": "Überweisung", "Lastschrift", "Gutschrift" or "Abhebung"
- "kategorie": German bookkeeping category (e.g. "Einnahmen", "Miete & Pacht", "Versicherungen")"""

PROMPTS = {
    (DocumentType.RECEIPT, 'de'): (
        "Du bist ein Experte für deutsche Buchhaltung und Steuerrecht. "
        "Analysiere diese Rechnung bzw. diesen Beleg und gib NUR ein gültiges JSON-Objekt "
        "mit folgenden Feldern zurück:\n" + RECEIPT_FIELDS_DE +
        "\nFalls ein Feld nicht gefunden werden kann, setze es auf null."
    ),
    (DocumentType.RECEIPT, 'en'): (
        "You are an expert in German accounting and tax law. "
        "Analyze this receipt or invoice and return ONLY a valid JSON object "
        "with the following fields:\n" + RECEIPT_FIELDS_EN +
        "\nIf a field cannot be found, set it to null."
    ),
    (DocumentType.BANK_STATEMENT, 'de'): (
        "Du bist ein Experte für deutsche Kontoauszüge und Buchhaltung. "
        "Extrahiere ALLE Transaktionen dieses Kontoauszugs und gib NUR ein gültiges JSON-Array "
        "zurück, ein Objekt je Transaktion mit folgenden Feldern:\n" + BANK_FIELDS_DE +
        "\nFalls ein Feld nicht gefunden werden kann, setze es auf null."
    ),
    (DocumentType.BANK_STATEMENT, 'en'): (
        "You are an expert in German bank statements and accounting. "
        "Extract ALL transactions of this bank statement and return ONLY a valid JSON array, "
        "one object per transaction with the following fields:\n" + BANK_FIELDS_EN +
        "\nIf a field cannot be found, set it to null."
    ),
    (None, 'de'): (
        "Du bist ein Experte für deutsche Buchhaltung. Erkenne, ob es sich um eine Rechnung "
        "oder einen Kontoauszug handelt, und gib NUR gültiges JSON zurück.\n"
        "Für Rechnungen ein Objekt mit:\n" + RECEIPT_FIELDS_DE +
        "\nFür Kontoauszüge ein Array von Objekten mit:\n" + BANK_FIELDS_DE
    ),
    (None, 'en'): (
        "You are an expert in German accounting. Decide whether this is a receipt or a bank "
        "statement and return ONLY valid JSON.\n"
        "For receipts an object with:\n" + RECEIPT_FIELDS_EN +
        "\nFor bank statements an array of objects with:\n" + BANK_FIELDS_EN
    ),
}


def build_prompt(document_type: Optional[Union[DocumentType, str]], language: str = 'de') -> str:
    """Prompt for the given document type; English for any language other than German."""
    if document_type is not None:
        document_type = DocumentType(document_type)
    return PROMPTS[(document_type, 'de' if language == 'de' else 'en')]


class VisionExtractionClient:
    """Sends a document to Gemini and returns its structured reading."""

    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_MODEL,
                 client: Optional[genai.Client] = None, logger: Optional[logging.Logger] = None):
        self.api_key = api_key
        self.model = model
        self._client = client
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise VisionServiceError(
                    "Gemini API key not configured. Set GEMINI_API_KEY or use the 'ocr' method.",
                    code='MISSING_API_KEY',
                )
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def analyze(self, payload: bytes, mime_type: str,
                document_type: Optional[Union[DocumentType, str]] = None,
                language: str = 'de') -> OCRResponse:
        """
        Read a document with the vision model.

        Args:
            payload: File content (image or PDF)
            mime_type: Mime type of the payload
            document_type: Declared type, selects the prompt
            language: 'de' or 'en'

        Returns:
            OCRResponse with the parsed JSON (if any) and the raw model text
        """
        prompt = build_prompt(document_type, language)
        self.logger.info(f"Sending {len(payload)} bytes ({mime_type}) to {self.model}")

        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=payload, mime_type=mime_type),
                    prompt,
                ],
                config={"response_mime_type": "application/json"},
            )
        except errors.APIError as e:
            self.logger.error(f"Vision service request failed: {e}")
            raise VisionServiceError(str(e), code=self._error_code(e)) from e

        raw_text = response.text or ''
        structured = extract_json_payload(raw_text)
        if structured is None:
            self.logger.warning("Vision service answer contained no JSON, keeping raw text only")

        return OCRResponse(
            structured_data=structured,
            raw_text=raw_text,
            document_type=DocumentType(document_type) if document_type else None,
        )

    @staticmethod
    def _error_code(error: errors.APIError) -> Optional[str]:
        message = (error.message or '').lower()
        if error.code in (401, 403) or 'api key' in message:
            return 'INVALID_API_KEY'
        if error.code == 429:
            return 'QUOTA_EXCEEDED' if 'quota' in message else 'RATE_LIMIT'
        return None
