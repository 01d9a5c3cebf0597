import os
import logging
import mimetypes
from typing import Optional, Tuple
import pdfplumber
from pathlib import Path

from schema import FileTooLargeError, UnsupportedFileError

PDF_TEXT_PLACEHOLDER = "PDF-Inhalt konnte nicht extrahiert werden. Bitte verwenden Sie OCR."

MIME_TYPES = {
    '.jpeg': 'image/jpeg',
    '.jpg': 'image/jpeg',
    '.png': 'image/png',
    '.bmp': 'image/bmp',
    '.pdf': 'application/pdf',
}


class FileLoader:
    """Validates uploads and reads their content."""

    SUPPORTED_EXTENSIONS = set(MIME_TYPES)

    def __init__(self, max_file_mb: float = 10, logger: Optional[logging.Logger] = None):
        self.max_file_bytes = int(max_file_mb * 1024 * 1024)
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def validate(self, file_path: str) -> str:
        """
        Check that a file exists, has a supported type and is small enough.

        Args:
            file_path: Path to the file

        Returns:
            Lower-case file extension
        """
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"File not found: {file_path}")

        file_ext = Path(file_path).suffix.lower()
        if file_ext not in self.SUPPORTED_EXTENSIONS:
            raise UnsupportedFileError(f"Unsupported file type: {file_ext or Path(file_path).name}")

        size = os.path.getsize(file_path)
        if size > self.max_file_bytes:
            raise FileTooLargeError(
                f"File too large: {size / (1024 * 1024):.1f} MB (max {self.max_file_bytes / (1024 * 1024):.0f} MB)"
            )
        return file_ext

    def mime_type(self, file_path: str) -> str:
        file_ext = Path(file_path).suffix.lower()
        return MIME_TYPES.get(file_ext) or mimetypes.guess_type(file_path)[0] or 'application/octet-stream'

    def read_bytes(self, file_path: str) -> Tuple[bytes, str]:
        """Validated file content together with its mime type."""
        self.validate(file_path)
        with open(file_path, 'rb') as f:
            payload = f.read()
        self.logger.info(f"Loaded {len(payload)} bytes from {file_path}")
        return payload, self.mime_type(file_path)

    def extract_pdf_text(self, file_path: str) -> str:
        """
        Extract the text layer of a PDF using pdfplumber.

        A PDF without usable text (or one that cannot be opened) yields
        PDF_TEXT_PLACEHOLDER, telling the user to fall back to OCR.
        """
        pages_text = []

        try:
            with pdfplumber.open(file_path) as pdf:
                for i, page in enumerate(pdf.pages):
                    text = page.extract_text()
                    if text and text.strip():
                        pages_text.append(text)
                        self.logger.debug(f"Extracted text from page {i+1}")
        except Exception as e:
            self.logger.error(f"Error reading PDF file {file_path}: {str(e)}")
            return PDF_TEXT_PLACEHOLDER

        if not pages_text:
            self.logger.warning("No text extracted from PDF - may need OCR")
            return PDF_TEXT_PLACEHOLDER

        return '\n'.join(pages_text)
