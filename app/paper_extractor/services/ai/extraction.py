"""
Field extraction from the markdown transcription.

Stage 2 of the pipeline: one text-only call constrained to the strict
output schema, at temperature 0 so snippets stay verbatim and repeatable.
"""

import json
import logging
from typing import Any

from ..exceptions import ExtractionError
from .schema import NormalizedFields, field_instruction

logger = logging.getLogger(__name__)


# =============================================================================
# Extraction Prompt
# =============================================================================

EXTRACTION_SYSTEM_PROMPT = """You are an expert data extractor with exceptional attention to detail.
You receive a Markdown representation of a document and extract specific fields from it with 100% accuracy.
Return data in the EXACT JSON structure required by the response schema."""

EXTRACTION_RULES = """## Rules
- If a value is NOT found in the text, return an empty 'values' array for that field. Never return a placeholder value.
- The 'snippet' field is MANDATORY: quote 3-5 words EXACTLY as they appear in the text to prove you found the value.
- Be EXHAUSTIVE: find ALL instances of the requested fields and return each one as a separate value object. Do not merge them.
- For 'list' type fields: return each list item as a SEPARATE value object with its own snippet. Do NOT combine multiple items into a single value.
  Example: if extracting "Dates (list)" and you find three dates, return THREE separate value objects, each with one date and its own snippet.
- For 'date' type fields: return the date as an ISO 8601 string (YYYY-MM-DD) when the full date is known, otherwise as written.
- 'confidence' is a number between 0.0 and 1.0 reflecting how certain you are of the value.
- When a field includes "IMPORTANT" instructions about focusing on the main study vs cited studies, follow those instructions strictly."""


def build_field_lines(normalized: NormalizedFields) -> str:
    """One instruction line per field: name, data type, key and instructions."""
    lines = []
    for key, field in normalized:
        line = f'- "{field.name}" ({field.data_type.value}) -> key "{key}"'
        instruction = field_instruction(field)
        if instruction:
            line += f": {instruction}"
        lines.append(line)
    return "\n".join(lines)


def build_extraction_prompt(transcription: str, normalized: NormalizedFields) -> str:
    """Build the user prompt for the extraction call."""
    return f"""Below is a Markdown representation of a document.
Your task is to extract specific fields from this text.

## Text Context (Markdown)
```markdown
{transcription}
```

## Fields to Extract
Each field below may include specific instructions (after the colon). Pay careful attention to these per-field instructions.
Answer each field under its key.
{build_field_lines(normalized)}

{EXTRACTION_RULES}"""


# =============================================================================
# Main Extraction Function
# =============================================================================


async def extract_fields(
    client: Any,  # AsyncOpenAI client
    transcription: str,
    normalized: NormalizedFields,
    output_schema: dict[str, Any],
    model: str = "gpt-4.1",
) -> dict[str, Any]:
    """
    Extract every requested field from the transcription.

    Args:
        client: Async OpenAI client.
        transcription: Markdown transcription of the document.
        normalized: Normalized fields with their schema keys.
        output_schema: Strict JSON schema from build_output_schema().
        model: Text model name.

    Returns:
        The decoded model output, keyed by sanitized field keys.

    Raises:
        ExtractionError: On upstream failure, refusal, or malformed JSON.
    """
    prompt = build_extraction_prompt(transcription, normalized)
    logger.info(
        "Stage 2: extracting %d field(s) from %d characters of markdown (%s)",
        len(normalized),
        len(transcription),
        model,
    )
    logger.debug("Extraction prompt preview: %s...", prompt[:500])

    try:
        response = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": "field_extraction",
                    "strict": True,
                    "schema": output_schema,
                },
            },
            temperature=0,
        )
        message = response.choices[0].message
    except Exception as e:
        logger.exception("Extraction call failed")
        raise ExtractionError(f"Extraction failed: {e}") from e

    refusal = getattr(message, "refusal", None)
    if refusal:
        raise ExtractionError(f"Model refused the extraction request: {refusal}")

    content = message.content
    if not content:
        raise ExtractionError("Empty response from extraction model")

    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error("Failed to parse extraction response: %s", content[:500])
        raise ExtractionError(f"Invalid JSON in extraction response: {e}") from e

    if not isinstance(parsed, dict):
        raise ExtractionError("Extraction response is not a JSON object")

    logger.info("Stage 2 complete: %d key(s) returned", len(parsed))
    return parsed
