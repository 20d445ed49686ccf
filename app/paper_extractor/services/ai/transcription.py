"""
Document transcription: PDF -> layout-preserving markdown.

Stage 1 of the pipeline. The PDF is uploaded to the model service once,
referenced by file id in a single vision call, and the remote file is
deleted when the request is done, whatever the outcome.
"""

import logging
import re
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

from ..exceptions import TranscriptionError

logger = logging.getLogger(__name__)


TRANSCRIPTION_PROMPT = (
    "You are an advanced Document Intelligence Engine. "
    "Perform a high-accuracy visual-spatial transcription of this entire document. "
    "Reconstruct all tables, headers, and columns into precise Markdown: "
    "tables as Markdown tables, headings as Markdown headings, and multi-column "
    "text linearized in reading order. Transcribe every page. "
    "Output only the markdown."
)

_FENCED_BLOCK = re.compile(r"^```(?:markdown|md)?[ \t]*\n(.*?)\n?```$", re.DOTALL)


def _strip_code_fence(text: str) -> str:
    """Remove a markdown code fence wrapping the whole reply."""
    text = text.strip()
    match = _FENCED_BLOCK.match(text)
    return match.group(1).strip() if match else text


async def upload_document(client: Any, pdf_path: str | Path) -> str:
    """
    Upload a PDF to the model service.

    Returns:
        The remote file id used to reference the document.

    Raises:
        TranscriptionError: If the upload fails.
    """
    path = Path(pdf_path)
    try:
        uploaded = await client.files.create(file=path, purpose="user_data")
    except Exception as e:
        logger.exception("Document upload failed")
        raise TranscriptionError(f"Document upload failed: {e}") from e

    logger.info("Uploaded %s as %s", path.name, uploaded.id)
    return uploaded.id


async def delete_document(client: Any, file_id: str) -> None:
    """Delete a remote file; failures are logged, never raised."""
    try:
        await client.files.delete(file_id)
        logger.info("Deleted remote file %s", file_id)
    except Exception:
        logger.exception("Failed to delete remote file %s", file_id)


@asynccontextmanager
async def uploaded_document(client: Any, pdf_path: str | Path) -> AsyncIterator[str]:
    """
    Scope a remote document reference to a block.

    Usage:
        async with uploaded_document(client, path) as file_id:
            ...

    The reference is released on every exit path. A release failure is
    only logged, so it can never replace an error raised inside the block.
    """
    file_id = await upload_document(client, pdf_path)
    try:
        yield file_id
    finally:
        await delete_document(client, file_id)


async def transcribe_document(
    client: Any,  # AsyncOpenAI client
    file_id: str,
    model: str = "gpt-4.1",
) -> str:
    """
    Transcribe an uploaded document into one markdown string.

    Args:
        client: Async OpenAI client.
        file_id: Remote id returned by upload_document().
        model: Vision-capable model name.

    Returns:
        Markdown transcription of all pages.

    Raises:
        TranscriptionError: On any upstream failure or an empty reply.
    """
    logger.info("Stage 1: transcribing document %s to layout markdown (%s)", file_id, model)

    try:
        response = await client.chat.completions.create(
            model=model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "file", "file": {"file_id": file_id}},
                        {"type": "text", "text": TRANSCRIPTION_PROMPT},
                    ],
                },
            ],
        )
        content = response.choices[0].message.content
    except Exception as e:
        logger.exception("Transcription call failed")
        raise TranscriptionError(f"Transcription failed: {e}") from e

    if not content or not content.strip():
        raise TranscriptionError("Empty transcription returned by model")

    markdown = _strip_code_fence(content)
    logger.info("Stage 1 complete: %d characters of markdown", len(markdown))
    return markdown
