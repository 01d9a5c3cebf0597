"""
Local OCR for receipts and scanned statements using Tesseract.
"""
import io
import logging
from typing import List, Optional

import fitz  # PyMuPDF for PDF handling
import pytesseract
from PIL import Image

TESSERACT_LANGUAGES = {
    'de': 'deu+eng',
    'en': 'eng+deu',
}


class OCRProcessor:
    """Handles OCR processing for images and scanned PDFs."""

    def __init__(self, render_zoom: float = 2.0, logger: Optional[logging.Logger] = None):
        self.render_zoom = render_zoom
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @staticmethod
    def tesseract_language(language: str) -> str:
        return TESSERACT_LANGUAGES.get(language, 'eng+deu')

    def image_to_text(self, payload: bytes, language: str = 'de') -> str:
        """Recognize the text of an image (JPEG, PNG or BMP)."""
        with Image.open(io.BytesIO(payload)) as img:
            text = pytesseract.image_to_string(img, lang=self.tesseract_language(language))
        self.logger.info(f"OCR recognized {len(text)} characters")
        return text

    def pdf_to_text(self, payload: bytes, language: str = 'de') -> str:
        """
        Text of every PDF page; pages with a text layer are read directly,
        the others are rendered and run through OCR.

        Args:
            payload: PDF file content
            language: Document language ('de' or 'en')

        Returns:
            Page texts joined by newlines
        """
        self.logger.info("Processing PDF with OCR")

        pages_text: List[str] = []
        with fitz.open(stream=payload, filetype="pdf") as doc:
            for page_num in range(doc.page_count):
                page = doc[page_num]
                text = page.get_text()

                if not text.strip():
                    # Scale factor for better OCR
                    pix = page.get_pixmap(matrix=fitz.Matrix(self.render_zoom, self.render_zoom))
                    text = self.image_to_text(pix.tobytes("png"), language)

                pages_text.append(text)
                self.logger.debug(f"Extracted {len(text)} characters from page {page_num + 1}")

        return '\n'.join(pages_text)
