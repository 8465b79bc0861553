"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    PaginationParams,
)
from models.import_records import (
    CellValue,
    ImportRecord,
    ClientImportRecord,
    PolicyImportRecord,
    CommissionImportRecord,
)
from models.imports import (
    ImportSessionState,
    JobStatus,
    FailureKind,
    ReconcileAction,
    RowOutcome,
    RowFailure,
    SampleRow,
    EntityTypeInfo,
    IngestResponse,
    PreviewRequest,
    CommitRequest,
    PreviewSummary,
    PreviewResponse,
    CommitSummary,
    CommitResponse,
    ImportJobCreate,
    ImportJobResponse,
    ImportJobListResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "PaginationParams",

    # Import records
    "CellValue",
    "ImportRecord",
    "ClientImportRecord",
    "PolicyImportRecord",
    "CommissionImportRecord",

    # Import pipeline
    "ImportSessionState",
    "JobStatus",
    "FailureKind",
    "ReconcileAction",
    "RowOutcome",
    "RowFailure",
    "SampleRow",
    "EntityTypeInfo",
    "IngestResponse",
    "PreviewRequest",
    "CommitRequest",
    "PreviewSummary",
    "PreviewResponse",
    "CommitSummary",
    "CommitResponse",
    "ImportJobCreate",
    "ImportJobResponse",
    "ImportJobListResponse",
]
