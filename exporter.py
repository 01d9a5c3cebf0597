"""
Table export of accounting records (CSV, Excel and JSON).
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from schema import AccountingRecord

BASE_COLUMNS = ['Datum', 'Betrag', 'Beschreibung', 'Kategorie', 'Subkategorie']

# Export column -> record attribute
OPTIONAL_COLUMNS = {
    'Rechnungsnummer': 'invoice_number',
    'Unternehmen': 'vendor_name',
    'MWST-Betrag': 'vat_amount',
    'MWST-Satz': 'vat_rate',
    'Verwendungszweck': 'purpose',
    'Gegenkonto': 'counter_account',
    'Transaktionstyp': 'transaction_type',
    'Betrag Brutto': 'gross_amount',
    'Betrag Netto': 'net_amount',
}

BASE_ATTRIBUTES = {
    'Datum': 'date',
    'Betrag': 'amount',
    'Beschreibung': 'description',
    'Kategorie': 'category',
    'Subkategorie': 'sub_category',
}


def _has_value(value: Any) -> bool:
    return value not in (None, '', 0, 0.0)


class RecordExporter:
    """Builds export tables with only the columns the records actually use."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def generate_columns(self, records: List[AccountingRecord]) -> List[str]:
        """Base columns, then each optional column in order of first appearance."""
        columns = list(BASE_COLUMNS)
        for record in records:
            for column, attribute in OPTIONAL_COLUMNS.items():
                if column not in columns and _has_value(getattr(record, attribute)):
                    columns.append(column)
        return columns

    def to_rows(self, records: List[AccountingRecord], columns: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        columns = columns or self.generate_columns(records)
        attributes = {**BASE_ATTRIBUTES, **OPTIONAL_COLUMNS}

        rows = []
        for record in records:
            row = {}
            for column in columns:
                value = getattr(record, attributes[column])
                row[column] = '' if value is None else value
            rows.append(row)
        return rows

    def to_dataframe(self, records: List[AccountingRecord]) -> pd.DataFrame:
        columns = self.generate_columns(records)
        return pd.DataFrame(self.to_rows(records, columns), columns=columns)

    def to_csv(self, records: List[AccountingRecord], path: Union[str, Path]) -> Path:
        """CSV with ';' separator and decimal comma, as German spreadsheets expect."""
        path = Path(path)
        self.to_dataframe(records).to_csv(path, sep=';', decimal=',', index=False, encoding='utf-8-sig')
        self.logger.info(f"Wrote {len(records)} records to {path}")
        return path

    def to_excel(self, records: List[AccountingRecord], path: Union[str, Path]) -> Path:
        path = Path(path)
        self.to_dataframe(records).to_excel(path, index=False, sheet_name='Buchungen', engine='openpyxl')
        self.logger.info(f"Wrote {len(records)} records to {path}")
        return path

    def to_json(self, records: List[AccountingRecord], path: Union[str, Path]) -> Path:
        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_rows(records), f, indent=2, ensure_ascii=False)
        self.logger.info(f"Wrote {len(records)} records to {path}")
        return path

    def export(self, records: List[AccountingRecord], path: Union[str, Path]) -> Path:
        """Write records in the format given by the file suffix."""
        suffix = Path(path).suffix.lower()
        if suffix == '.csv':
            return self.to_csv(records, path)
        if suffix == '.xlsx':
            return self.to_excel(records, path)
        if suffix == '.json':
            return self.to_json(records, path)
        raise ValueError(f"Unsupported export format: {suffix}")
