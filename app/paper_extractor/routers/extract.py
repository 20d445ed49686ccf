"""
Router for the extraction endpoint.

Handles:
- PDF upload with a JSON list of fields to extract
- Running the rasterize -> transcribe -> extract pipeline
"""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, UploadFile

from ..config import Settings, get_settings
from ..models import ErrorResponse, ExtractResponse
from ..services.ai import AIService, NormalizedFields, get_ai_service, normalize_fields
from ..services.exceptions import PipelineError, ValidationError
from ..services.pdf_service import PDFService, get_pdf_service
from ..services.pipeline import run_pipeline_with_deadline, temporary_pdf

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["extract"])

PDF_MIME_TYPE = "application/pdf"


async def _read_pdf_upload(file: UploadFile | None, max_bytes: int) -> bytes:
    """Validate the uploaded file and return its bytes."""
    if file is None:
        raise ValidationError("No PDF file uploaded")

    if file.content_type != PDF_MIME_TYPE:
        raise ValidationError("Only PDF files are allowed")

    content = await file.read()
    if not content:
        raise ValidationError("Empty file provided")
    if len(content) > max_bytes:
        raise ValidationError(
            f"File too large: {len(content) / 1024 / 1024:.1f} MB "
            f"(limit {max_bytes // (1024 * 1024)} MB)"
        )
    if content[:4] != b"%PDF":
        raise ValidationError("Invalid PDF file: does not start with PDF header")
    return content


def _parse_fields(fields: str | None) -> NormalizedFields:
    """Decode and normalize the ``fields`` form value."""
    if fields is None or not fields.strip():
        raise ValidationError("No fields specified for extraction")

    try:
        raw_fields: Any = json.loads(fields)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in fields: {e}") from e

    return normalize_fields(raw_fields)


@router.post(
    "/extract",
    response_model=ExtractResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def extract(
    file: Annotated[UploadFile | None, File(description="PDF file to extract from")] = None,
    fields: Annotated[str | None, Form(description="JSON array of fields to extract")] = None,
    settings: Settings = Depends(get_settings),
    pdf_service: PDFService = Depends(get_pdf_service),
    ai_service: AIService = Depends(get_ai_service),
) -> ExtractResponse:
    """
    Extract the requested fields from an uploaded PDF.

    Returns page images, one extraction result per field (in request order)
    and the markdown transcription the values were read from.
    """
    try:
        content = await _read_pdf_upload(file, settings.max_upload_bytes)
        normalized = _parse_fields(fields)

        logger.info(
            "Processing PDF: %s (%d bytes, %d field(s))",
            file.filename,
            len(content),
            len(normalized),
        )

        async with temporary_pdf(content, settings.upload_dir) as pdf_path:
            result = await run_pipeline_with_deadline(
                pdf_path,
                normalized,
                pdf_service,
                ai_service,
                timeout=settings.request_timeout_seconds,
            )

        logger.info(
            "Extraction complete: %d page(s), %d field(s)",
            len(result.images),
            len(result.extractions),
        )
        return result

    except PipelineError:
        raise
    except Exception as e:
        logger.exception("Unexpected error processing PDF")
        raise PipelineError(f"Failed to process document: {e}") from e
    finally:
        if file is not None:
            await file.close()
