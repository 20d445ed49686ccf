"""
End-to-end extraction pipeline for one uploaded PDF.

rasterize -> upload + transcribe -> extract -> assemble, strictly in
sequence, under one coarse deadline. The local copy of the upload is
removed on every exit path.
"""

import asyncio
import logging
import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from ..models import ExtractResponse
from .ai import AIService, NormalizedFields, find_ungrounded_snippets
from .exceptions import PipelineTimeoutError
from .pdf_service import PDFService

logger = logging.getLogger(__name__)


def _write_temp_pdf(content: bytes, directory: str | Path | None) -> Path:
    if directory is not None:
        Path(directory).mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(suffix=".pdf", prefix="upload-", dir=directory)
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
    except BaseException:
        path.unlink(missing_ok=True)
        raise
    return path


@asynccontextmanager
async def temporary_pdf(
    content: bytes, directory: str | Path | None = None
) -> AsyncIterator[Path]:
    """
    Write PDF bytes to a temp file that lives for the enclosing block.

    Writing and removal run in a worker thread. Removal failures are logged,
    never raised.
    """
    path = await asyncio.to_thread(_write_temp_pdf, content, directory)
    try:
        yield path
    finally:
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError:
            logger.exception("Failed to remove temp file %s", path)


async def run_pipeline(
    pdf_path: str | Path,
    normalized: NormalizedFields,
    pdf_service: PDFService,
    ai_service: AIService,
) -> ExtractResponse:
    """
    Run every stage for one document.

    Args:
        pdf_path: Local path of the uploaded PDF.
        normalized: The request's normalized fields.
        pdf_service: Rasterizer.
        ai_service: Transcription and extraction service.

    Returns:
        Page images, per-field extraction results and the transcription.
    """
    # A deadline cancels this await but not the worker thread; the thread runs
    # to completion on its already-open file and its result is discarded.
    images = await asyncio.to_thread(pdf_service.rasterize_to_base64, pdf_path)

    extractions, transcription = await ai_service.extract_document(pdf_path, normalized)

    for field_name, snippet in find_ungrounded_snippets(extractions, transcription):
        logger.warning(
            "Snippet for '%s' not found in transcription (no highlight): %r",
            field_name,
            snippet,
        )

    return ExtractResponse(images=images, extractions=extractions, ocr_text=transcription)


async def run_pipeline_with_deadline(
    pdf_path: str | Path,
    normalized: NormalizedFields,
    pdf_service: PDFService,
    ai_service: AIService,
    timeout: float,
) -> ExtractResponse:
    """
    run_pipeline() bounded by a single deadline over all stages.

    Raises:
        PipelineTimeoutError: If the deadline passes before the result is ready.
    """
    try:
        return await asyncio.wait_for(
            run_pipeline(pdf_path, normalized, pdf_service, ai_service),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        logger.error("Extraction pipeline exceeded %.0f seconds", timeout)
        raise PipelineTimeoutError(f"Extraction timed out after {timeout:.0f} seconds") from e
