"""
AI service package for document transcription and field extraction.

This package provides modular AI functionality split into:
- schema: Field normalization and strict output-schema construction
- transcription: Document upload and PDF -> markdown transcription
- extraction: Schema-constrained field extraction from the markdown
- assembly: Raw model output -> ordered per-field results
- validation: Value coercion and snippet grounding checks

The AIService class owns the OpenAI client and chains the stages.
"""

import logging
from pathlib import Path

from ...models import ExtractionResult
from ..exceptions import ExtractionError, TranscriptionError
from .assembly import assemble_extractions
from .extraction import build_extraction_prompt, extract_fields
from .schema import (
    FOCUS_MAIN_STUDY_INSTRUCTION,
    NormalizedFields,
    build_output_schema,
    field_instruction,
    normalize_fields,
    sanitize_key,
)
from .transcription import transcribe_document, uploaded_document
from .validation import find_ungrounded_snippets

logger = logging.getLogger(__name__)

# Export public functions and classes
__all__ = [
    "AIService",
    "ExtractionError",
    "FOCUS_MAIN_STUDY_INSTRUCTION",
    "NormalizedFields",
    "TranscriptionError",
    "assemble_extractions",
    "build_extraction_prompt",
    "build_output_schema",
    "extract_fields",
    "field_instruction",
    "find_ungrounded_snippets",
    "get_ai_service",
    "normalize_fields",
    "sanitize_key",
    "transcribe_document",
]

MOCK_TRANSCRIPTION = (
    "# Mock Transcription\n\n"
    "DEVELOPMENT MODE: no OpenAI API key is configured, so the document was not read. "
    "Set OPENAI_API_KEY for real extraction."
)


# =============================================================================
# AIService Class
# =============================================================================


class AIService:
    """
    Service for AI-powered document transcription and field extraction.

    Runs the two-stage pipeline against OpenAI:
    - Stage 1: vision model transcribes the uploaded PDF into markdown
    - Stage 2: text model extracts the requested fields under a strict schema

    Without an API key the service runs in mock mode and never calls OpenAI.
    """

    def __init__(
        self,
        api_key: str | None = None,
        transcription_model: str | None = None,
        extraction_model: str | None = None,
        use_mock: bool = False,
        client=None,
    ):
        """
        Initialize the AI service.

        Args:
            api_key: OpenAI API key. If None, reads from config/environment.
            transcription_model: Vision model for stage 1 (defaults from settings).
            extraction_model: Text model for stage 2 (defaults from settings).
            use_mock: If True, return mock data instead of calling OpenAI.
            client: Pre-built async client (skips lazy construction).
        """
        from ...config import get_settings

        settings = get_settings()
        if api_key is None:
            api_key = settings.openai_api_key

        self.api_key = api_key
        self.transcription_model = transcription_model or settings.transcription_model
        self.extraction_model = extraction_model or settings.extraction_model
        self._client = client
        self.use_mock = use_mock or (client is None and not self.api_key)

        if self.use_mock:
            logger.warning(
                "AI Service running in MOCK MODE. Set OPENAI_API_KEY in .env for real extraction."
            )

    @property
    def client(self):
        """Lazy-load the async OpenAI client; built once, then read-only."""
        if self._client is None:
            if not self.api_key:
                raise TranscriptionError(
                    "OpenAI API key not provided. Set OPENAI_API_KEY environment variable."
                )
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def extract_document(
        self,
        pdf_path: str | Path,
        normalized: NormalizedFields,
    ) -> tuple[list[ExtractionResult], str]:
        """
        Transcribe a PDF and extract the requested fields from it.

        The uploaded document reference is released whether or not either
        stage fails.

        Args:
            pdf_path: Local path of the uploaded PDF.
            normalized: The request's normalized fields.

        Returns:
            Tuple of (ordered extraction results, markdown transcription).

        Raises:
            TranscriptionError: If upload or transcription fails.
            ExtractionError: If field extraction fails.
        """
        if self.use_mock:
            logger.info("Extracting %d field(s) (MOCK MODE)", len(normalized))
            return assemble_extractions({}, normalized), MOCK_TRANSCRIPTION

        client = self.client
        output_schema = build_output_schema(normalized)

        async with uploaded_document(client, pdf_path) as file_id:
            transcription = await transcribe_document(
                client, file_id, model=self.transcription_model
            )
            raw_output = await extract_fields(
                client,
                transcription,
                normalized,
                output_schema,
                model=self.extraction_model,
            )

        return assemble_extractions(raw_output, normalized), transcription


# =============================================================================
# Singleton Factory
# =============================================================================

# The one process-wide shared object: created on first use, read-only afterwards.
_ai_service: AIService | None = None


def get_ai_service() -> AIService:
    """Get or create the AI service singleton."""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service
