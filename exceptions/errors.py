"""
Custom exception classes for the application.

Every error carries a machine-readable code, a message and the HTTP status
used when it reaches the API layer.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "IMPORT_SESSION_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# UPLOAD / PARSER ERRORS
# ===================

class ExcelParseError(ValidationError):
    """Spreadsheet could not be read, or holds no data rows."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="EXCEL_PARSE_ERROR",
            message=message,
            details=details
        )


class UnsupportedFileTypeError(ValidationError):
    """Upload extension is not accepted."""

    def __init__(self, filename: str, allowed: list[str]):
        super().__init__(
            code="UNSUPPORTED_FILE_TYPE",
            message=f"File type not allowed. Use {', '.join(allowed)}",
            details={"filename": filename, "allowed": allowed}
        )


class FileTooLargeError(AppError):
    """Upload exceeds the configured size limit (413)."""

    def __init__(self, size_bytes: int, max_bytes: int):
        super().__init__(
            code="FILE_TOO_LARGE",
            message=f"File exceeds the {max_bytes // (1024 * 1024)}MB limit",
            status_code=413,
            details={"size_bytes": size_bytes, "max_bytes": max_bytes}
        )


# ===================
# IMPORT ERRORS
# ===================

class UnknownEntityTypeError(ValidationError):
    """Entity type key is not in the registry."""

    def __init__(self, entity_type: Optional[str], valid: list[str]):
        super().__init__(
            code="UNKNOWN_ENTITY_TYPE",
            message=f"Invalid import type: {entity_type}",
            details={"provided": entity_type, "valid": valid}
        )


class InvalidMappingError(ValidationError):
    """Column mapping targets fields the entity type does not have."""

    def __init__(self, entity_type: str, invalid: dict[str, str], valid: list[str]):
        super().__init__(
            code="INVALID_COLUMN_MAPPING",
            message=f"Mapping targets unknown fields for {entity_type}",
            details={"invalid": invalid, "valid": valid}
        )


class ImportSessionNotFoundError(NotFoundError):
    """Upload id unknown or expired."""

    def __init__(self, upload_id: str):
        super().__init__(
            resource="Import session",
            identifier=upload_id,
            code="IMPORT_SESSION_NOT_FOUND"
        )


class ImportSessionStateError(ConflictError):
    """Requested step would move an import session backwards."""

    def __init__(self, upload_id: str, current_state: str, requested_state: str):
        super().__init__(
            code="IMPORT_SESSION_INVALID_TRANSITION",
            message=f"Cannot move import from {current_state} to {requested_state}",
            details={
                "upload_id": upload_id,
                "current_state": current_state,
                "requested_state": requested_state,
                "reason": "Upload the file again to start a new import"
            }
        )


class ImportJobNotFoundError(NotFoundError):
    """Import job not found."""

    def __init__(self, job_id: str):
        super().__init__(
            resource="Import job",
            identifier=job_id,
            code="IMPORT_JOB_NOT_FOUND"
        )


class ReferenceNotFoundError(AppError):
    """
    A structurally valid row points at a record that does not exist.

    Raised by reconciliation (policy -> client, commission -> policy) and
    recorded against the row; it never aborts a batch.
    """

    def __init__(self, resource: str, message: str, identifier: str):
        super().__init__(
            code=f"{resource.upper()}_REFERENCE_NOT_FOUND",
            message=message,
            status_code=422,
            details={"resource": resource, "id": identifier}
        )
