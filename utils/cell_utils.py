"""
Helpers for interpreting raw spreadsheet cells.

Cells arrive as str, int, float, bool, date or None depending on the
source file and on what the client sent back.
"""

import math
import re
from datetime import date, datetime
from typing import Any, Optional

import pandas as pd

DATE_FORMATS = [
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%Y/%m/%d",
    "%d-%m-%Y",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
]

# Parsed text outside this range is a typo or a partial date ("1/2")
MIN_YEAR = 1900
MAX_YEAR = 2100
FOUR_DIGIT_YEAR = re.compile(r"\d{4}")


def is_blank(value: Any) -> bool:
    """True for None, NaN and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip() == ""


def parse_date(value: Any) -> Optional[date]:
    """Parse various date formats to date object. Returns None if unparseable."""
    if is_blank(value):
        return None

    # Already a date/datetime
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None

    value_str = str(value).strip()
    parsed = _parse_date_text(value_str)
    if parsed is None or not MIN_YEAR <= parsed.year <= MAX_YEAR:
        return None
    return parsed


def _parse_date_text(value_str: str) -> Optional[date]:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value_str, fmt).date()
        except ValueError:
            continue

    # Try pandas parsing as fallback (ISO with timezone, "15 Jan 2024", ...);
    # text without a four-digit year is a partial date
    if not FOUR_DIGIT_YEAR.search(value_str):
        return None
    try:
        parsed = pd.to_datetime(value_str, dayfirst=True)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def parse_amount(value: Any) -> Optional[float]:
    """
    Parse a currency amount.

    Accepts numbers and strings in either notation:
    - "2500.00" → 2500.0
    - "2.500,00" → 2500.0
    - "R$ 1.234,5" → 1234.5
    - "1,234.50" → 1234.5

    Returns None if the value is blank or not a number.
    """
    if is_blank(value) or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace("R$", "").replace(" ", "")
        if "," in text and "." in text:
            if text.rfind(",") > text.rfind("."):
                text = text.replace(".", "").replace(",", ".")
            else:
                text = text.replace(",", "")
        elif "," in text:
            text = text.replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number
