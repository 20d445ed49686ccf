"""
Export of extraction results to JSON and CSV.

CSV layout: header ``Field Name,Value,Snippet,Confidence``; one row per
value instance, one empty row for a field with no values. Value and
snippet are always double-quoted with inner quotes doubled; confidence is
a rounded percentage such as ``87%``.
"""

import json
import math
from typing import Any, Iterable

from ..models import ExtractionResult

CSV_HEADERS = ["Field Name", "Value", "Snippet", "Confidence"]


def _as_dicts(extractions: Iterable[ExtractionResult | dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        e.model_dump(by_alias=True) if isinstance(e, ExtractionResult) else e
        for e in extractions
    ]


def export_json(extractions: Iterable[ExtractionResult | dict[str, Any]]) -> str:
    """Serialize the extraction list as indented JSON (camelCase keys)."""
    return json.dumps(_as_dicts(extractions), indent=2, ensure_ascii=False)


def _quote(value: Any) -> str:
    if value is None:
        text = ""
    elif isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    return '"' + text.replace('"', '""') + '"'


def _field_name(name: str) -> str:
    # Plain unless it would break the row
    if any(ch in name for ch in ',"\n\r'):
        return _quote(name)
    return name


def _percent(confidence: Any) -> str:
    try:
        number = float(confidence or 0)
    except (TypeError, ValueError):
        number = 0.0
    # Half-up rounding (0.125 -> 13%), not banker's rounding
    return f"{math.floor(number * 100 + 0.5)}%"


def export_csv(extractions: Iterable[ExtractionResult | dict[str, Any]]) -> str:
    """
    Render the extraction list as CSV text.

    Row count (excluding the header) is the sum of ``max(1, len(values))``
    over all fields.
    """
    rows = [",".join(CSV_HEADERS)]
    for extraction in _as_dicts(extractions):
        field_name = extraction.get("fieldName", "")
        values = extraction.get("values") or [{"value": "", "snippet": "", "confidence": 0}]
        for instance in values:
            rows.append(
                ",".join(
                    [
                        _field_name(field_name),
                        _quote(instance.get("value")),
                        _quote(instance.get("snippet")),
                        _percent(instance.get("confidence")),
                    ]
                )
            )
    return "\n".join(rows)
