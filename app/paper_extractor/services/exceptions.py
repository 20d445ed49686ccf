"""
Shared exceptions for the extraction pipeline.

Every error carries the HTTP status code the API layer answers with.
"""


class PipelineError(Exception):
    """Base class for errors that abort an extraction request."""

    status_code = 500


class ValidationError(PipelineError):
    """Raised when the request input (file or fields) is missing or malformed."""

    status_code = 400


class RasterizationError(PipelineError):
    """Raised when PDF to image conversion fails or yields no pages."""

    pass


class TranscriptionError(PipelineError):
    """Raised when the document cannot be transcribed to markdown."""

    pass


class ExtractionError(PipelineError):
    """Raised when structured field extraction fails."""

    pass


class PipelineTimeoutError(PipelineError):
    """Raised when the whole pipeline exceeds the request deadline."""

    pass
