"""
Normalization primitives: amounts, dates and text cleaning for German and
international document formats.
"""
import re
import logging
from typing import List, Optional, Tuple, Union
from dateutil import parser

# Shared token grammar, also used by the extraction strategies.
# Amounts: 1.234,56 / 1,234.56 / -150,00 / 150.00
AMOUNT_PATTERN = r"(?<![\d.,])[+-]?(?:\d{1,3}(?:[.,']\d{3})+|\d+)[.,]\d{2}(?![.,]?\d)"
DAY_FIRST_DATE_PATTERN = r"(?<!\d)\d{1,2}[.\-/]\d{1,2}[.\-/](?:\d{4}|\d{2})(?!\d)"
ISO_DATE_PATTERN = r"(?<!\d)\d{4}[.\-/]\d{1,2}[.\-/]\d{1,2}(?!\d)"
DATE_PATTERN = f"(?:{ISO_DATE_PATTERN}|{DAY_FIRST_DATE_PATTERN})"
CURRENCY_PATTERN = r"(?:€|\$|£|EUR)"

_DAY_FIRST_PARTS = re.compile(r"(\d{1,2})[.\-/](\d{1,2})[.\-/](\d{4}|\d{2})(?!\d)")
_ISO_PARTS = re.compile(r"(\d{4})[.\-/](\d{1,2})[.\-/](\d{1,2})(?!\d)")


class GermanParserInfo(parser.parserinfo):
    """dateutil parser info that understands German and English month names."""
    MONTHS = [
        ("Jan", "Januar", "January", "Jän", "Jänner"),
        ("Feb", "Februar", "February"),
        ("Mär", "März", "Mar", "March", "Maerz"),
        ("Apr", "April"),
        ("Mai", "May"),
        ("Jun", "Juni", "June"),
        ("Jul", "Juli", "July"),
        ("Aug", "August"),
        ("Sep", "Sept", "September"),
        ("Okt", "Oktober", "Oct", "October"),
        ("Nov", "November"),
        ("Dez", "Dezember", "Dec", "December"),
    ]

    def __init__(self):
        super().__init__(dayfirst=True)


class DataPreprocessor:
    """Converts raw substrings into canonical numbers, dates and strings."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.date_patterns = [
            r'^\d{1,2}\.\d{1,2}\.\d{2,4}$',     # DD.MM.YYYY / DD.MM.YY
            r'^\d{1,2}/\d{1,2}/\d{2,4}$',       # DD/MM/YYYY
            r'^\d{1,2}-\d{1,2}-\d{2,4}$',       # DD-MM-YYYY
            r'^\d{4}-\d{1,2}-\d{1,2}$',         # YYYY-MM-DD
            r'^\d{4}/\d{1,2}/\d{1,2}$',         # YYYY/MM/DD
        ]
        self.parser_info = GermanParserInfo()

    def parse_amount(self, amount_str: Union[str, float, int, None]) -> float:
        """
        Parse a monetary amount, German or international notation.

        Never raises: anything unparseable yields 0.0.

        Args:
            amount_str: Amount as text or number

        Returns:
            Parsed float amount
        """
        if amount_str is None or isinstance(amount_str, bool):
            return 0.0

        if isinstance(amount_str, (int, float)):
            return float(amount_str)

        cleaned = re.sub(r"(?:€|£|\$|EUR|\s|')", "", str(amount_str), flags=re.IGNORECASE)

        if ',' in cleaned and '.' in cleaned:
            # 1.234,56 -> 1234.56
            cleaned = cleaned.replace('.', '').replace(',', '.')
        elif ',' in cleaned:
            parts = cleaned.split(',')
            if len(parts[-1]) <= 2:
                cleaned = ''.join(parts[:-1]) + '.' + parts[-1]
            else:
                cleaned = cleaned.replace(',', '')

        match = re.match(r"^[+-]?(?:\d+\.?\d*|\.\d+)", cleaned)
        if not match:
            self.logger.debug(f"Could not parse amount: {amount_str!r}")
            return 0.0

        try:
            return float(match.group())
        except ValueError:
            self.logger.debug(f"Could not parse amount: {amount_str!r}")
            return 0.0

    def validate_date(self, date_str: str) -> bool:
        """Shape-only check; 99.99.9999 passes."""
        if not date_str:
            return False
        candidate = str(date_str).strip()
        return any(re.match(pattern, candidate) for pattern in self.date_patterns)

    @staticmethod
    def format_date(day: str, month: str, year: str) -> str:
        """Canonical DD.MM.YYYY; two-digit years are taken as 20YY."""
        if len(year) == 2:
            year = f"20{year}"
        return f"{day.zfill(2)}.{month.zfill(2)}.{year}"

    def normalize_date(self, date_str: Optional[str]) -> str:
        """
        Normalize a date string to DD.MM.YYYY.

        Args:
            date_str: Date in numeric or written form

        Returns:
            Normalized date, or "" if nothing could be parsed
        """
        if not date_str:
            return ""

        text = str(date_str).strip()

        iso = _ISO_PARTS.search(text)
        day_first = _DAY_FIRST_PARTS.search(text)
        if iso and (not day_first or iso.start() <= day_first.start()):
            year, month, day = iso.groups()
            return self.format_date(day, month, year)
        if day_first:
            day, month, year = day_first.groups()
            return self.format_date(day, month, year)

        if not re.search(r"\d", text):
            return ""

        try:
            parsed_date = parser.parse(text, parserinfo=self.parser_info, fuzzy=True)
            return parsed_date.strftime('%d.%m.%Y')
        except (ValueError, OverflowError):
            self.logger.debug(f"Could not normalize date: {date_str!r}")
            return ""

    def find_date(self, text: str) -> Tuple[str, str]:
        """
        Locate the first date-shaped token in text.

        Returns:
            Tuple of (raw token, normalized date); ("", "") if none found
        """
        match = re.search(DATE_PATTERN, text or "")
        if not match:
            return "", ""
        return match.group(), self.normalize_date(match.group())

    def find_amounts(self, text: str) -> List[float]:
        """All amount-shaped tokens in text, parsed, in order of appearance."""
        return [self.parse_amount(token) for token in re.findall(AMOUNT_PATTERN, text or "")]

    def clean_text(self, text: str) -> str:
        """Collapse whitespace and drop characters OCR tends to invent."""
        text = re.sub(r"\s+", " ", text or "")
        text = re.sub(r"[^\w\s\-.,$€£äöüßÄÖÜ]", "", text)
        return text.strip()

    @staticmethod
    def format_amount(amount: float) -> str:
        """German currency display, e.g. 1.234,56 €."""
        formatted = f"{abs(amount):,.2f}".replace(',', 'X').replace('.', ',').replace('X', '.')
        sign = "-" if amount < 0 else ""
        return f"{sign}{formatted} €"
