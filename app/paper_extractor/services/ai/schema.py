"""
Field normalization and output-schema construction.

Turns the user's field list into canonical FieldSpecs, assigns each a
schema-safe key, and builds the strict JSON schema the extraction model
must answer with. The key <-> name table built here is the only way keys
are mapped back to names; keys are never reverse-sanitized.
"""

import logging
import re
from typing import Any, Iterator

from pydantic import ValidationError as PydanticValidationError

from ...models import DataType, FieldSpec
from ..exceptions import ValidationError

logger = logging.getLogger(__name__)


FOCUS_MAIN_STUDY_INSTRUCTION = (
    "IMPORTANT: Extract ONLY from the PRIMARY/MAIN study described in this document. "
    "DO NOT extract from: cited studies, referenced papers, related work, comparison "
    "studies, or prior research mentioned in the text. Focus exclusively on the "
    "current study's own data."
)

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def sanitize_key(name: str) -> str:
    """Replace every character outside [a-zA-Z0-9_] with an underscore."""
    return _UNSAFE_KEY_CHARS.sub("_", name)


class NormalizedFields:
    """
    Ordered, validated fields plus the bidirectional key <-> name table.

    Built once per request by normalize_fields() and read-only afterwards.
    """

    def __init__(self, fields: list[FieldSpec]):
        self.fields = list(fields)
        self.keys: list[str] = []
        self._key_to_name: dict[str, str] = {}
        self._name_to_key: dict[str, str] = {}

        for field in self.fields:
            base = sanitize_key(field.name)
            key = base
            suffix = 2
            while key in self._key_to_name:
                key = f"{base}_{suffix}"
                suffix += 1
            if key != base:
                logger.info(
                    "Sanitized key '%s' already taken, using '%s' for field '%s'",
                    base,
                    key,
                    field.name,
                )
            self.keys.append(key)
            self._key_to_name[key] = field.name
            self._name_to_key[field.name] = key

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> Iterator[tuple[str, FieldSpec]]:
        return iter(zip(self.keys, self.fields))

    def key_for(self, name: str) -> str:
        return self._name_to_key[name]

    def name_for(self, key: str) -> str:
        return self._key_to_name[key]


def _coerce_field(item: Any, index: int) -> FieldSpec:
    """Turn one raw entry (bare name string or object) into a FieldSpec."""
    if isinstance(item, str):
        item = {"name": item}
    if isinstance(item, FieldSpec):
        return item
    if not isinstance(item, dict):
        raise ValidationError(
            f"Field #{index + 1} must be a string or an object, got {type(item).__name__}"
        )
    try:
        return FieldSpec.model_validate(item)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'field'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid field #{index + 1}: {problems}") from e


def normalize_fields(raw_fields: Any) -> NormalizedFields:
    """
    Validate the user's field list and fill in defaults.

    Args:
        raw_fields: Decoded ``fields`` value; each entry is a bare name
            (treated as a text field) or a FieldSpec-like object.

    Returns:
        NormalizedFields in the same order as the input.

    Raises:
        ValidationError: If the list is missing, empty, not a list, has an
            invalid entry, or repeats a name.
    """
    if not isinstance(raw_fields, list) or not raw_fields:
        raise ValidationError("Fields must be a non-empty array")

    fields = [_coerce_field(item, i) for i, item in enumerate(raw_fields)]

    seen: set[str] = set()
    for field in fields:
        if field.name in seen:
            raise ValidationError(f"Duplicate field name: '{field.name}'")
        seen.add(field.name)

    return NormalizedFields(fields)


def field_instruction(field: FieldSpec) -> str:
    """
    Per-field instruction text for the extraction prompt.

    The main-study focus instruction goes ahead of the user's metadata.
    """
    metadata = field.metadata.strip()
    if not field.focus_main_study or metadata.startswith(FOCUS_MAIN_STUDY_INSTRUCTION):
        return metadata
    if metadata:
        return f"{FOCUS_MAIN_STUDY_INSTRUCTION} {metadata}"
    return FOCUS_MAIN_STUDY_INSTRUCTION


# =============================================================================
# Output Schema
# =============================================================================

# One fixed value template per data type. List items are single strings:
# each item becomes its own value instance with its own snippet.
_VALUE_TYPES: dict[DataType, str] = {
    DataType.TEXT: "string",
    DataType.NUMBER: "number",
    DataType.DATE: "string",
    DataType.BOOLEAN: "boolean",
    DataType.LIST: "string",
}


def _value_schema(field: FieldSpec) -> dict[str, Any]:
    if field.data_type == DataType.LIST:
        description = f"A single item from the {field.name} list"
    elif field.data_type == DataType.DATE:
        description = f"The extracted date for {field.name}, as an ISO 8601 string when possible"
    else:
        description = f"The extracted value for {field.name}"
    return {
        "type": [_VALUE_TYPES[field.data_type], "null"],
        "description": description,
    }


def _field_schema(field: FieldSpec) -> dict[str, Any]:
    if field.data_type == DataType.LIST:
        values_description = (
            "Each list item as a separate entry with its own snippet. "
            "Do NOT group items into an array."
        )
    else:
        values_description = "All distinct instances of this field found in the document"

    return {
        "type": "object",
        "properties": {
            "values": {
                "type": "array",
                "description": values_description,
                "items": {
                    "type": "object",
                    "properties": {
                        "value": _value_schema(field),
                        "snippet": {
                            "type": "string",
                            "description": "3-5 words quoted exactly from the text that prove the value",
                        },
                        "confidence": {
                            "type": "number",
                            "description": "Confidence between 0.0 and 1.0",
                        },
                    },
                    "required": ["value", "snippet", "confidence"],
                    "additionalProperties": False,
                },
            },
        },
        "required": ["values"],
        "additionalProperties": False,
    }


def build_output_schema(normalized: NormalizedFields) -> dict[str, Any]:
    """
    Build the strict JSON schema for the extraction response.

    Every field key maps to ``{"values": [{value, snippet, confidence}]}``
    where ``value``'s type follows the field's data type.
    """
    return {
        "type": "object",
        "properties": {key: _field_schema(field) for key, field in normalized},
        "required": list(normalized.keys),
        "additionalProperties": False,
    }
