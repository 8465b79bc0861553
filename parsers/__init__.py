"""
Spreadsheet readers and writers for the import pipeline.
"""

from parsers.sheet_parser import (
    parse_sheet,
    file_extension,
    ParsedSheet,
)
from parsers.template_writer import (
    build_template,
    template_filename,
)

__all__ = [
    "parse_sheet",
    "file_extension",
    "ParsedSheet",
    "build_template",
    "template_filename",
]
