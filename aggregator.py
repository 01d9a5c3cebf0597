"""
Validation, filtering and totals over extracted records.
"""
import logging
from typing import Iterable, List, Optional

import pandas as pd

from schema import AccountingRecord, BatchResult, FileStatus, FileUploadStatus, RecordTotals
from preprocess import DataPreprocessor
from categorizer import TransactionCategorizer


class RecordAggregator:
    """Collects records of a batch and computes the figures shown to the user."""

    def __init__(self, preprocessor: Optional[DataPreprocessor] = None,
                 categorizer: Optional[TransactionCategorizer] = None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.preprocessor = preprocessor or DataPreprocessor()
        self.categorizer = categorizer or TransactionCategorizer()

    def validate_record(self, record: AccountingRecord) -> List[str]:
        """
        Check a record for the fields a bookkeeping entry needs.

        Returns:
            Error messages, empty when the record is valid
        """
        errors = []
        if not record.description or not record.description.strip():
            errors.append('Beschreibung is required')
        if not record.amount:
            errors.append('Betrag is required')
        if record.date and not self.preprocessor.validate_date(record.date):
            errors.append('Date format is invalid')
        return errors

    def filter_valid(self, records: Iterable[AccountingRecord]) -> List[AccountingRecord]:
        """Drop records without amount or description."""
        valid = []
        for record in records:
            if record.amount != 0 and record.description.strip():
                valid.append(record)
            else:
                self.logger.info(f"Dropping record without amount or description: {record.date} {record.amount}")
        return valid

    def calculate_totals(self, records: List[AccountingRecord]) -> RecordTotals:
        if not records:
            return RecordTotals()

        df = pd.DataFrame([{'amount': r.amount, 'category': r.category} for r in records])
        df['tax_category'] = df['category'].map(self.categorizer.get_tax_category)

        by_category = df.groupby('category', sort=True)['amount'].sum().round(2)
        by_tax_category = df.groupby('tax_category', sort=True)['amount'].sum().round(2)

        return RecordTotals(
            total_amount=round(float(df['amount'].sum()), 2),
            income=round(float(df.loc[df['amount'] > 0, 'amount'].sum()), 2),
            expenses=round(float(df.loc[df['amount'] < 0, 'amount'].sum()), 2),
            record_count=len(df),
            by_category={str(k): float(v) for k, v in by_category.items()},
            by_tax_category={str(k): float(v) for k, v in by_tax_category.items()},
        )

    def aggregate(self, file_statuses: List[FileUploadStatus]) -> BatchResult:
        """
        Combine the records of all completed files into one batch result.

        Files in error contribute nothing; records keep the file order.
        """
        records = []
        for status in file_statuses:
            if status.status != FileStatus.COMPLETED:
                continue
            records.extend(self.filter_valid(status.records))

        result = BatchResult(records=records, files=list(file_statuses), totals=self.calculate_totals(records))
        if result.no_data:
            self.logger.warning("No data found in any of the processed files")
        else:
            self.logger.info(f"Aggregated {len(records)} records from {len(result.completed_files)} files")
        return result
