"""
Pydantic schemas for accounting records, processing status and batch results.
"""
from enum import Enum
from typing import Dict, List, Optional, Union, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator


class DocumentType(str, Enum):
    """Kind of uploaded document. There is no 'unknown' value."""
    RECEIPT = "receipt"
    BANK_STATEMENT = "bank-statement"


class TransactionType(str, Enum):
    """Bank transaction types as printed on German statements."""
    TRANSFER = "Überweisung"
    DIRECT_DEBIT = "Lastschrift"
    CREDIT = "Gutschrift"
    WITHDRAWAL = "Abhebung"


class FileStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class UnsupportedFileError(ValueError):
    """Raised when an upload has a file type we cannot process."""


class FileTooLargeError(ValueError):
    """Raised when an upload exceeds the configured size limit."""


class VisionServiceError(RuntimeError):
    """Raised when the cloud vision/LLM service cannot be used or fails."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class NoDataFoundError(ValueError):
    """Raised when a file yields no records after every extraction strategy."""


class AccountingRecord(BaseModel):
    """One extracted bookkeeping entry (receipt or bank transaction)."""
    model_config = ConfigDict(populate_by_name=True)

    date: str = Field("", alias="datum", description="Date in DD.MM.YYYY format, empty if absent")
    amount: float = Field(0.0, alias="betrag", description="Signed amount in EUR")
    description: str = Field("", alias="beschreibung", description="Free text description")
    category: str = Field("Sonstige", alias="kategorie", description="Bookkeeping category")
    sub_category: Optional[str] = Field(None, alias="subkategorie", description="Refines category")

    # Receipt fields
    invoice_number: Optional[str] = Field(None, alias="rechnungsnummer")
    vendor_name: Optional[str] = Field(None, alias="unternehmen")
    vat_amount: Optional[float] = Field(None, alias="mwst_betrag")
    vat_rate: Optional[float] = Field(None, alias="mwst_satz")
    gross_amount: Optional[float] = Field(None, alias="betrag_brutto")
    net_amount: Optional[float] = Field(None, alias="betrag_netto")
    vat_estimated: bool = Field(False, description="VAT figures are an estimate, not read from the document")

    # Bank statement fields
    purpose: Optional[str] = Field(None, alias="verwendungszweck")
    counter_account: Optional[str] = Field(None, alias="gegenkonto")
    transaction_type: Optional[str] = Field(None, alias="transaktionstyp")
    value_date: Optional[str] = Field(None, alias="valuta")

    # Provenance
    document_type: Optional[DocumentType] = None
    source_file: Optional[str] = None

    @field_validator('amount', 'vat_amount', 'vat_rate', 'gross_amount', 'net_amount', mode='before')
    @classmethod
    def round_money(cls, v):
        """Keep monetary values at cent precision."""
        if v is None:
            return v
        return round(float(v), 2)

    @field_validator('description', mode='before')
    @classmethod
    def strip_description(cls, v):
        return str(v).strip() if v is not None else ""

    @property
    def is_income(self) -> bool:
        return self.amount > 0


class OCRResponse(BaseModel):
    """Answer of the vision/LLM service: structured JSON and/or raw text."""
    structured_data: Optional[Union[Dict[str, Any], List[Any]]] = None
    raw_text: str = ""
    document_type: Optional[DocumentType] = None


class FileUploadStatus(BaseModel):
    """Processing state of one uploaded file."""
    file_name: str
    status: FileStatus = FileStatus.PENDING
    error: Optional[str] = None
    progress: int = Field(0, ge=0, le=100)
    records: List[AccountingRecord] = Field(default_factory=list)


class RecordTotals(BaseModel):
    """Sums over a list of records."""
    total_amount: float = 0.0
    income: float = 0.0
    expenses: float = 0.0
    record_count: int = 0
    by_category: Dict[str, float] = Field(default_factory=dict)
    by_tax_category: Dict[str, float] = Field(default_factory=dict)


class BatchResult(BaseModel):
    """Outcome of processing a batch of files in one session."""
    records: List[AccountingRecord] = Field(default_factory=list)
    files: List[FileUploadStatus] = Field(default_factory=list)
    totals: RecordTotals = Field(default_factory=RecordTotals)

    @property
    def no_data(self) -> bool:
        """True when the whole batch produced no valid record."""
        return len(self.records) == 0

    @property
    def failed_files(self) -> List[FileUploadStatus]:
        return [f for f in self.files if f.status == FileStatus.ERROR]

    @property
    def completed_files(self) -> List[FileUploadStatus]:
        return [f for f in self.files if f.status == FileStatus.COMPLETED]
