"""
Import pipeline schemas.

Covers the three pipeline calls (ingest, preview, commit), the per-row
outcomes they report, and the persisted import job record.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, model_validator

from models.base import BaseSchema
from models.import_records import CellValue


class ImportSessionState(str, Enum):
    """Lifecycle of one uploaded file. Steps only move forward."""
    UPLOADED = "uploaded"
    MAPPED = "mapped"
    PREVIEWED = "previewed"
    COMMITTED = "committed"


class JobStatus(str, Enum):
    """Outcome of a committed batch."""
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"

    @classmethod
    def from_counts(cls, total_rows: int, error_count: int) -> "JobStatus":
        if error_count == 0:
            return cls.SUCCESS
        if error_count < total_rows:
            return cls.PARTIAL
        return cls.ERROR


class FailureKind(str, Enum):
    """Why a row was not imported."""
    VALIDATION = "validation"  # bad data, fix the file
    REFERENCE = "reference"    # referenced client/policy does not exist
    STORAGE = "storage"        # database fault, safe to retry


class ReconcileAction(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"


# ===================
# ROW RESULTS
# ===================

class RowOutcome(BaseModel):
    """Validation verdict for one spreadsheet row."""
    row_number: int = Field(..., description="Row in the file (header is row 1)")
    record: dict[str, CellValue] = Field(default_factory=dict)
    valid: bool
    errors: list[str] = Field(default_factory=list)


class RowFailure(BaseModel):
    """A row that was not imported, with the stage that rejected it."""
    row_number: int
    kind: FailureKind
    messages: list[str]

    @computed_field
    @property
    def message(self) -> str:
        return f"Row {self.row_number}: {', '.join(self.messages)}"


class SampleRow(BaseModel):
    """Uploaded row echoed back for column mapping."""
    row_number: int
    values: dict[str, CellValue]


# ===================
# ENTITY TYPES
# ===================

class EntityTypeInfo(BaseModel):
    """Public description of an importable entity type."""
    key: str
    label: str
    fields: list[str]
    required_fields: list[str]
    natural_key: list[str]
    aliases: list[str]


# ===================
# INGEST
# ===================

class IngestResponse(BaseModel):
    """Parsed upload, ready for column mapping."""
    upload_id: str
    filename: str
    entity_type: str
    headers: list[str]
    total_rows: int
    sample_rows: list[SampleRow]
    suggested_mapping: dict[str, Optional[str]]


# ===================
# PREVIEW / COMMIT
# ===================

class PreviewRequest(BaseModel):
    """
    Rows to validate with the operator's mapping.

    Rows are either sent inline or read back from an earlier upload
    via upload_id.
    """
    entity_type: str
    mapping: dict[str, Optional[str]] = Field(
        default_factory=dict,
        description="Source column -> target field (null or empty to ignore)"
    )
    rows: Optional[list[dict[str, CellValue]]] = None
    upload_id: Optional[str] = None

    @model_validator(mode="after")
    def rows_or_upload(self):
        if self.rows is None and not self.upload_id:
            raise ValueError("Either rows or upload_id is required")
        return self


class CommitRequest(PreviewRequest):
    """Rows to import."""
    filename: Optional[str] = Field(
        None,
        description="Original filename for the import history"
    )


class PreviewSummary(BaseModel):
    total: int
    valid: int
    invalid: int


class PreviewResponse(BaseModel):
    summary: PreviewSummary
    results: list[RowOutcome]
    errors: list[str]
    mapping_warnings: list[str] = Field(default_factory=list)


class CommitSummary(BaseModel):
    total: int
    imported: int
    errors: int
    inserted: int = 0
    updated: int = 0


class CommitResponse(BaseModel):
    summary: CommitSummary
    status: JobStatus
    job_id: Optional[str] = None
    errors: list[str]
    failures: list[RowFailure]
    mapping_warnings: list[str] = Field(default_factory=list)


# ===================
# IMPORT JOBS
# ===================

class ImportJobCreate(BaseSchema):
    """Audit record for one committed batch."""
    entity_type: str
    source_filename: str
    total_rows: int = Field(..., ge=0)
    imported_count: int = Field(..., ge=0)
    error_count: int = Field(..., ge=0)
    status: JobStatus
    error_details: list[str] = Field(default_factory=list)
    user_id: Optional[str] = None


class ImportJobResponse(ImportJobCreate):
    id: str
    created_at: Optional[datetime] = None


class ImportJobListResponse(BaseSchema):
    """List of import jobs with pagination."""
    data: list[ImportJobResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
