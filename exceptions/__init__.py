"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DatabaseError,

    # Upload / parser
    ExcelParseError,
    UnsupportedFileTypeError,
    FileTooLargeError,

    # Import pipeline
    UnknownEntityTypeError,
    InvalidMappingError,
    ImportSessionNotFoundError,
    ImportSessionStateError,
    ImportJobNotFoundError,
    ReferenceNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DatabaseError",

    # Upload / parser
    "ExcelParseError",
    "UnsupportedFileTypeError",
    "FileTooLargeError",

    # Import pipeline
    "UnknownEntityTypeError",
    "InvalidMappingError",
    "ImportSessionNotFoundError",
    "ImportSessionStateError",
    "ImportJobNotFoundError",
    "ReferenceNotFoundError",
]
