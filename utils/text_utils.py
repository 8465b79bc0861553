"""
Text utilities for handling Portuguese text with accents.

Used for spreadsheet header matching and tax ID normalization.
"""

import re
import unicodedata
from typing import Any, Optional

_NON_LETTERS = re.compile(r"[^a-z]")
_NON_DIGITS = re.compile(r"\D")


def strip_accents(text: str) -> str:
    """
    Remove accent marks, keeping the base characters.

    - "Número Apólice" → "Numero Apolice"
    - "Prêmio" → "Premio"
    """
    # NFD decomposition separates base chars from accents
    normalized = unicodedata.normalize("NFD", text)
    return "".join(c for c in normalized if unicodedata.category(c) != "Mn")


def normalize_header(name: Optional[str]) -> str:
    """
    Normalize a column header or field name for fuzzy comparison.

    Folds accents, lowercases and drops everything that is not a letter:
    - "CPF/CNPJ Cliente" → "cpfcnpjcliente"
    - "Data Início" → "datainicio"
    - "numero_apolice" → "numeroapolice"
    """
    if not name:
        return ""
    return _NON_LETTERS.sub("", strip_accents(str(name)).lower())


def only_digits(value: Any) -> str:
    """
    Keep only the digits of a value.

    - "123.456.789-00" → "12345678900"
    - 12345678900 → "12345678900"
    - None → ""
    """
    if value is None:
        return ""
    return _NON_DIGITS.sub("", str(value))


def clean_text(value: Any, max_length: int = 255) -> Optional[str]:
    """
    Clean a cell value for storage.

    - Strips whitespace
    - Truncates to max length
    - Returns None for empty/whitespace-only values
    """
    if value is None:
        return None

    text = str(value).strip()

    if not text:
        return None

    if len(text) > max_length:
        text = text[:max_length]

    return text
