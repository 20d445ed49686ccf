"""Pytest configuration and fixtures."""

import json
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient

from app.paper_extractor.config import Settings, get_settings
from app.paper_extractor.main import app
from app.paper_extractor.services.ai import AIService, get_ai_service
from app.paper_extractor.services.exceptions import RasterizationError
from app.paper_extractor.services.pdf_service import PDFService, get_pdf_service


# =============================================================================
# Fakes
# =============================================================================


def completion(content: str | None, refusal: str | None = None) -> SimpleNamespace:
    """Build an object shaped like an OpenAI chat completion."""
    message = SimpleNamespace(content=content, refusal=refusal)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeFiles:
    def __init__(self, owner: "FakeAsyncOpenAI"):
        self.owner = owner

    async def create(self, file: Any, purpose: str):
        self.owner.calls.append(("files.create", purpose))
        if self.owner.upload_error is not None:
            raise self.owner.upload_error
        self.owner.uploaded.append(Path(file))
        return SimpleNamespace(id="file-abc123")

    async def delete(self, file_id: str):
        self.owner.calls.append(("files.delete", file_id))
        self.owner.deleted.append(file_id)
        if self.owner.delete_error is not None:
            raise self.owner.delete_error
        return SimpleNamespace(id=file_id, deleted=True)


class FakeCompletions:
    def __init__(self, owner: "FakeAsyncOpenAI"):
        self.owner = owner

    async def create(self, **kwargs):
        self.owner.calls.append(("chat.completions.create", kwargs.get("model")))
        self.owner.requests.append(kwargs)
        reply = self.owner.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return await reply()
        return reply


class FakeAsyncOpenAI:
    """
    Stand-in for openai.AsyncOpenAI.

    Replies are consumed in order by chat.completions.create: the first is
    the transcription, the second the extraction. A reply may be a
    completion, an exception to raise, or an async callable.
    """

    def __init__(self, replies: list[Any] | None = None):
        self.replies = list(replies or [])
        self.calls: list[tuple[str, Any]] = []
        self.requests: list[dict[str, Any]] = []
        self.uploaded: list[Path] = []
        self.deleted: list[str] = []
        self.upload_error: BaseException | None = None
        self.delete_error: BaseException | None = None
        self.files = FakeFiles(self)
        self.chat = SimpleNamespace(completions=FakeCompletions(self))


class FakePDFService(PDFService):
    """Rasterizer that skips poppler and records the paths it was given."""

    def __init__(self, pages: int = 2, error: Exception | None = None):
        super().__init__()
        self.pages = pages
        self.error = error
        self.paths: list[Path] = []

    def rasterize_to_base64(self, pdf_path):
        self.paths.append(Path(pdf_path))
        if self.error is not None:
            raise self.error
        if self.pages == 0:
            raise RasterizationError("PDF conversion resulted in zero images")
        return [f"cGFnZS0{i}" for i in range(1, self.pages + 1)]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_openai() -> FakeAsyncOpenAI:
    """A fake async OpenAI client with no queued replies."""
    return FakeAsyncOpenAI()


@pytest.fixture
def fake_pdf_service() -> FakePDFService:
    """A fake rasterizer returning two pages."""
    return FakePDFService()


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    """Directory receiving the request's temp PDF."""
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def settings_override(upload_dir: Path) -> Settings:
    return Settings(
        openai_api_key=None,
        upload_dir=upload_dir,
        request_timeout_seconds=5,
        max_upload_mb=1,
    )


@pytest.fixture
def client(
    fake_openai: FakeAsyncOpenAI,
    fake_pdf_service: FakePDFService,
    settings_override: Settings,
) -> Generator[TestClient, None, None]:
    """Create a test client with fake OpenAI and rasterizer dependencies."""
    app.dependency_overrides[get_settings] = lambda: settings_override
    app.dependency_overrides[get_pdf_service] = lambda: fake_pdf_service
    app.dependency_overrides[get_ai_service] = lambda: AIService(client=fake_openai)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """
    Create a minimal valid PDF for testing.

    This is a minimal PDF structure that should be recognized as a valid PDF.
    """
    pdf_content = b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R >>
endobj
4 0 obj
<< /Length 44 >>
stream
BT
/F1 12 Tf
100 700 Td
(Test) Tj
ET
endstream
endobj
xref
0 5
0000000000 65535 f
0000000009 00000 n
0000000058 00000 n
0000000115 00000 n
0000000214 00000 n
trailer
<< /Size 5 /Root 1 0 R >>
startxref
306
%%EOF"""
    return pdf_content


@pytest.fixture
def invalid_file_bytes() -> bytes:
    """Create invalid (non-PDF) file bytes for testing."""
    return b"This is not a PDF file"


@pytest.fixture
def invoice_markdown() -> str:
    """Transcription of a one-page invoice."""
    return (
        "# ACME Corp\n\n"
        "Invoice No: 12345\n\n"
        "| Item | Price |\n"
        "|------|-------|\n"
        "| Widget | $10.00 |\n"
    )


@pytest.fixture
def invoice_extraction_json() -> str:
    """Model output for the 'Invoice Number' and 'Total ($)' fields."""
    return json.dumps(
        {
            "Invoice_Number": {
                "values": [
                    {"value": "12345", "snippet": "Invoice No: 12345", "confidence": 0.97}
                ]
            },
            "Total____": {"values": []},
        }
    )
