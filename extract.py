"""
Main entry point for the document digitization pipeline.
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Union

from config import Settings, load_settings, configure_logging
from schema import (
    AccountingRecord,
    BatchResult,
    DocumentType,
    FileStatus,
    FileUploadStatus,
    NoDataFoundError,
)
from file_loader import FileLoader, PDF_TEXT_PLACEHOLDER
from ocr_processor import OCRProcessor
from vision_client import VisionExtractionClient
from preprocess import DataPreprocessor
from categorizer import TransactionCategorizer
from detector import DocumentTypeDetector
from structured_adapter import StructuredResponseAdapter
from extractor import TransactionExtractor
from aggregator import RecordAggregator
from exporter import RecordExporter

logger = logging.getLogger(__name__)

NO_DATA_MESSAGES = {
    'de': 'Keine Daten gefunden. Bitte versuchen Sie es mit einem anderen Dokument.',
    'en': 'No data found. Please try with a different document.',
}


class DocumentProcessor:
    """Turns one uploaded file into accounting records."""

    def __init__(self, settings: Optional[Settings] = None,
                 file_loader: Optional[FileLoader] = None,
                 vision_client: Optional[VisionExtractionClient] = None,
                 ocr_processor: Optional[OCRProcessor] = None,
                 adapter: Optional[StructuredResponseAdapter] = None,
                 extractor: Optional[TransactionExtractor] = None,
                 logger: Optional[logging.Logger] = None):
        self.settings = settings or Settings()
        self.logger = logger or logging.getLogger(self.__class__.__name__)

        preprocessor = DataPreprocessor()
        categorizer = TransactionCategorizer()
        self.file_loader = file_loader or FileLoader(max_file_mb=self.settings.max_file_mb)
        self.vision_client = vision_client or VisionExtractionClient(
            api_key=self.settings.gemini_api_key, model=self.settings.gemini_model
        )
        self.ocr_processor = ocr_processor or OCRProcessor()
        self.adapter = adapter or StructuredResponseAdapter(preprocessor, categorizer)
        self.extractor = extractor or TransactionExtractor(preprocessor, categorizer, DocumentTypeDetector())

    def process_file(self, file_path: str,
                     document_type: Optional[Union[DocumentType, str]] = None,
                     method: Optional[str] = None,
                     language: Optional[str] = None) -> List[AccountingRecord]:
        """
        Process a document file end-to-end.

        Args:
            file_path: Path to the receipt or bank statement
            document_type: Declared type; detected when missing
            method: 'llm' (vision service) or 'ocr' (local Tesseract)
            language: 'de' or 'en'

        Returns:
            Extracted records, tagged with the source file name
        """
        method = method or self.settings.method
        language = language or self.settings.language
        self.logger.info(f"Starting processing of file: {file_path} (method={method})")

        payload, mime_type = self.file_loader.read_bytes(file_path)

        if method == 'llm':
            records = self._process_with_vision(payload, mime_type, document_type, language)
        else:
            records = self._process_with_ocr(file_path, payload, mime_type, document_type, language)

        if not records:
            raise NoDataFoundError(f"No data found in {Path(file_path).name}")

        for record in records:
            record.source_file = Path(file_path).name

        self.logger.info(f"Successfully extracted {len(records)} records from {file_path}")
        return records

    def _process_with_vision(self, payload, mime_type, document_type, language) -> List[AccountingRecord]:
        response = self.vision_client.analyze(payload, mime_type, document_type, language)

        if response.structured_data is not None:
            # Records the adapter rejects stay rejected; raw_text is the same JSON
            return self.adapter.process(response.structured_data, document_type)
        if response.raw_text.strip():
            self.logger.info("Answer contained no JSON, falling back to text extraction")
            return self.extractor.extract(response.raw_text, document_type)
        return []

    def _process_with_ocr(self, file_path, payload, mime_type, document_type, language) -> List[AccountingRecord]:
        if mime_type == 'application/pdf':
            text = self.file_loader.extract_pdf_text(file_path)
            if text == PDF_TEXT_PLACEHOLDER:
                text = self.ocr_processor.pdf_to_text(payload, language)
        else:
            text = self.ocr_processor.image_to_text(payload, language)
        return self.extractor.extract(text, document_type)


class BatchProcessor:
    """Processes files one after another; a failing file never stops the batch."""

    def __init__(self, document_processor: DocumentProcessor,
                 aggregator: Optional[RecordAggregator] = None,
                 on_status: Optional[Callable[[FileUploadStatus], None]] = None,
                 logger: Optional[logging.Logger] = None):
        self.document_processor = document_processor
        self.aggregator = aggregator or RecordAggregator()
        self.on_status = on_status
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def _notify(self, status: FileUploadStatus) -> None:
        if self.on_status:
            self.on_status(status)

    def process(self, files: List[str],
                document_type: Optional[Union[DocumentType, str]] = None,
                method: Optional[str] = None,
                language: Optional[str] = None) -> BatchResult:
        statuses = [FileUploadStatus(file_name=Path(f).name) for f in files]
        for status in statuses:
            self._notify(status)

        for file_path, status in zip(files, statuses):
            status.status = FileStatus.PROCESSING
            status.progress = 10
            self._notify(status)

            try:
                status.records = self.document_processor.process_file(file_path, document_type, method, language)
                status.status = FileStatus.COMPLETED
                status.progress = 100
            except Exception as e:
                self.logger.error(f"Error processing file {file_path}: {str(e)}")
                status.status = FileStatus.ERROR
                status.error = str(e)
                status.progress = 0
            self._notify(status)

        return self.aggregator.aggregate(statuses)


def print_summary(result: BatchResult) -> None:
    fmt = DataPreprocessor.format_amount

    print(f"\nSummary:")
    for status in result.files:
        line = f"- {status.file_name}: {status.status.value}"
        if status.status == FileStatus.COMPLETED:
            line += f" ({len(status.records)} records)"
        elif status.error:
            line += f" ({status.error})"
        print(line)

    totals = result.totals
    print(f"- Records: {totals.record_count}")
    print(f"- Total: {fmt(totals.total_amount)}")
    print(f"- Income: {fmt(totals.income)}")
    print(f"- Expenses: {fmt(totals.expenses)}")

    if totals.by_category:
        print(f"\nCategory Breakdown:")
        for category, amount in totals.by_category.items():
            print(f"- {category}: {fmt(amount)}")


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description='Digitize receipts and bank statements into accounting records')
    parser.add_argument('files', nargs='+', help='Receipt or bank statement files (JPEG, PNG, BMP, PDF)')
    parser.add_argument('--type', dest='document_type', choices=[t.value for t in DocumentType],
                        help='Document type; detected automatically when omitted')
    parser.add_argument('--method', choices=['llm', 'ocr'], help='Extraction method')
    parser.add_argument('--language', choices=['de', 'en'], help='Document language')
    parser.add_argument('-o', '--output', help='Output file (.xlsx, .csv or .json)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    args = parser.parse_args(argv)

    settings = load_settings()
    if args.method:
        settings.method = args.method
    if args.language:
        settings.language = args.language
    configure_logging(settings, args.verbose)

    processor = BatchProcessor(DocumentProcessor(settings))
    result = processor.process(args.files, args.document_type, settings.method, settings.language)

    if result.no_data:
        print(NO_DATA_MESSAGES[settings.language])
        for status in result.failed_files:
            print(f"- {status.file_name}: {status.error}")
        sys.exit(1)

    exporter = RecordExporter()
    if args.output:
        try:
            exporter.export(result.records, args.output)
        except (ValueError, OSError) as e:
            logger.error(f"Export failed: {str(e)}")
            print(f"Error: {str(e)}")
            sys.exit(1)
        print(f"Results written to: {args.output}")
    else:
        print(json.dumps(exporter.to_rows(result.records), indent=2, ensure_ascii=False))

    print_summary(result)


if __name__ == "__main__":
    main()
