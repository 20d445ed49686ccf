"""
Validation and normalization utilities for extracted values.

Handles:
- Type coercion per data type (numbers, dates, booleans, text)
- Confidence clamping
- Flattening list values into one instance per item
- Snippet grounding checks against the transcription
"""

import logging
import math
import re
from datetime import datetime
from typing import Any

from ...models import DataType, ExtractionResult
from ..highlight import is_grounded

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"true", "yes", "y", "1"}
_FALSE_STRINGS = {"false", "no", "n", "0"}

# Defaults differing in year, month and day; see parse_date()
_DATE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def parse_number(value: Any) -> float | None:
    """
    Parse a numeric string to float using price-parser.

    Handles thousand separators and currency symbols:
    - "$1,234.56", "€1.234,56", "1000 USD", "12.5"

    Returns None if no number can be read.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None

    value = value.strip()
    if not value:
        return None

    # Plain numbers first: price-parser drops the sign and exponent of "-3" or "1.5e3"
    try:
        number = float(value)
    except ValueError:
        number = None
    if number is not None and math.isfinite(number):
        return number

    from price_parser import Price

    amount = Price.fromstring(value).amount_float
    if amount is None:
        return None
    if value.startswith(("-", "\u2212")):
        amount = -abs(amount)
    return amount


def parse_date(value: Any) -> str | None:
    """
    Parse various date formats to YYYY-MM-DD.

    Returns None if parsing fails.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)

    value = value.strip()
    if not value:
        return None

    # ISO format (YYYY-MM-DD)
    if re.match(r"^\d{4}-\d{2}-\d{2}$", value):
        return value

    # Slash formats: US (MM/DD/YYYY) first, European (DD/MM/YYYY) when the month is out of range
    match = re.match(r"^(\d{1,2})/(\d{1,2})/(\d{4})$", value)
    if match:
        first, second, year = (int(g) for g in match.groups())
        for month, day in ((first, second), (second, first)):
            try:
                return datetime(year, month, day).strftime("%Y-%m-%d")
            except ValueError:
                continue
        return None

    # Written formats ("January 15, 2024", "15 Jan 2024"). dateutil fills missing
    # parts from its default, so parse against two defaults and accept the result
    # only when both agree: "2020" or "March 2021" stay unparsed.
    from dateutil import parser
    from dateutil.parser import ParserError

    try:
        first = parser.parse(value, default=_DATE_DEFAULTS[0])
        second = parser.parse(value, default=_DATE_DEFAULTS[1])
    except (ParserError, ValueError, OverflowError):
        return None
    if first.date() != second.date():
        return None
    return first.strftime("%Y-%m-%d")


def parse_boolean(value: Any) -> bool | None:
    """Read yes/no style strings and numbers as booleans."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return None


def normalize_value(value: Any, data_type: DataType) -> bool | int | float | str:
    """
    Coerce a raw extracted value to its data type's representation.

    Values that cannot be coerced are kept as text (prefer raw data over no data).
    """
    if data_type == DataType.NUMBER:
        number = parse_number(value)
        if number is not None:
            return int(number) if number.is_integer() and not isinstance(value, float) else number
        return str(value)

    if data_type == DataType.BOOLEAN:
        flag = parse_boolean(value)
        return flag if flag is not None else str(value)

    if data_type == DataType.DATE:
        return parse_date(value) or str(value)

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def clamp_confidence(value: Any) -> float:
    """Clamp a confidence score into [0.0, 1.0]; non-numbers become 0.0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        text = value.strip()
        try:
            value = float(text.rstrip("%"))
        except ValueError:
            return 0.0
        if text.endswith("%"):
            value /= 100
    if not isinstance(value, (int, float)) or math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


def normalize_value_instances(
    raw_values: list[dict[str, Any]],
    data_type: DataType,
) -> list[dict[str, Any]]:
    """
    Clean the raw value objects of one field.

    - Null values are dropped (they are not findings)
    - Array values are flattened into one instance per item
    - Values are coerced to the field's data type
    - Confidence is clamped into [0, 1]
    """
    normalized: list[dict[str, Any]] = []
    for raw in raw_values:
        value = raw.get("value")
        snippet = raw.get("snippet")
        snippet = "" if snippet is None else str(snippet)
        confidence = clamp_confidence(raw.get("confidence"))

        items = value if isinstance(value, list) else [value]
        for item in items:
            if item is None or (isinstance(item, str) and not item.strip()):
                continue
            if isinstance(item, (dict, list)):
                logger.warning("Skipping non-scalar value for %s field: %r", data_type.value, item)
                continue
            normalized.append(
                {
                    "value": normalize_value(item, data_type),
                    "snippet": snippet,
                    "confidence": confidence,
                }
            )
    return normalized


def find_ungrounded_snippets(
    extractions: list[ExtractionResult],
    transcription: str,
) -> list[tuple[str, str]]:
    """
    List (field name, snippet) pairs whose snippet is not in the transcription.

    Ungrounded values are still delivered; they just cannot be highlighted.
    """
    ungrounded: list[tuple[str, str]] = []
    for extraction in extractions:
        for instance in extraction.values:
            if not is_grounded(transcription, instance.snippet):
                ungrounded.append((extraction.field_name, instance.snippet))
    return ungrounded
