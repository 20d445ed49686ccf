"""
Response assembly: raw model output -> client-facing extraction results.

The model answers keyed by sanitized field keys; the client gets one
ExtractionResult per requested field, keyed by the original name and in
request order. No field is ever dropped.
"""

import logging
from typing import Any

from ...models import ExtractionResult, ValueInstance
from ..exceptions import ExtractionError
from .schema import NormalizedFields
from .validation import normalize_value_instances

logger = logging.getLogger(__name__)


def _raw_values_for(raw_output: dict[str, Any], key: str) -> list[dict[str, Any]]:
    """Pull the raw ``values`` list for one key, enforcing the schema shape."""
    data = raw_output.get(key)
    if data is None:
        return []
    if not isinstance(data, dict):
        raise ExtractionError(
            f"Schema violation for '{key}': expected an object, got {type(data).__name__}"
        )

    values = data.get("values")
    if values is None:
        return []
    if not isinstance(values, list):
        raise ExtractionError(
            f"Schema violation for '{key}': 'values' must be an array"
        )
    for item in values:
        if not isinstance(item, dict):
            raise ExtractionError(
                f"Schema violation for '{key}': every value must be an object"
            )
    return values


def assemble_extractions(
    raw_output: Any,
    normalized: NormalizedFields,
) -> list[ExtractionResult]:
    """
    Reshape raw structured output into ordered ExtractionResults.

    Args:
        raw_output: Decoded model JSON keyed by sanitized field keys.
        normalized: The request's normalized fields and key table.

    Returns:
        Exactly one ExtractionResult per field, in request order. Fields
        missing from the output, or with no values, come back not found.

    Raises:
        ExtractionError: If the output does not have the schema's shape.
    """
    if not isinstance(raw_output, dict):
        raise ExtractionError(
            f"Schema violation: expected a JSON object, got {type(raw_output).__name__}"
        )

    unknown_keys = set(raw_output) - set(normalized.keys)
    if unknown_keys:
        logger.warning("Ignoring unrequested keys in model output: %s", sorted(unknown_keys))

    results: list[ExtractionResult] = []
    for key, field in normalized:
        values = [
            ValueInstance(**instance)
            for instance in normalize_value_instances(
                _raw_values_for(raw_output, key), field.data_type
            )
        ]
        results.append(
            ExtractionResult(
                field_name=normalized.name_for(key),
                found=bool(values),
                values=values,
            )
        )

    logger.info(
        "Assembled %d field result(s), %d found",
        len(results),
        sum(1 for r in results if r.found),
    )
    return results
