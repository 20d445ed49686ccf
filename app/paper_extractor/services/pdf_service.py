"""
PDF rasterization service using pdf2image (poppler).

Converts an uploaded PDF into ordered page images for on-screen display.
"""

import base64
import io
import logging
from pathlib import Path

from PIL import Image

from .exceptions import RasterizationError

logger = logging.getLogger(__name__)

# PDF user space is 72 points per inch; scale 1.0 renders at 72 dpi.
POINTS_PER_INCH = 72


class PDFService:
    """
    Service for PDF rasterization.

    Uses pdf2image (backed by poppler) to convert PDF pages to images.
    """

    def __init__(self, scale: float = 2.0, image_format: str = "PNG"):
        """
        Initialize the PDF service.

        Args:
            scale: Render scale factor relative to the PDF's native size.
            image_format: Output image format (PNG keeps pages lossless).
        """
        if scale <= 0:
            raise ValueError("scale must be positive")
        self.scale = scale
        self.image_format = image_format

    @property
    def dpi(self) -> int:
        return round(POINTS_PER_INCH * self.scale)

    def convert_pdf_to_images(self, pdf_path: str | Path) -> list[Image.Image]:
        """
        Convert every PDF page to a PIL Image, in page order.

        Args:
            pdf_path: Path to the PDF file on local storage.

        Returns:
            List of PIL Image objects, one per page (page 1 first).

        Raises:
            RasterizationError: If conversion fails or the PDF has no pages.
        """
        from pdf2image import convert_from_path
        from pdf2image.exceptions import (
            PDFInfoNotInstalledError,
            PDFPageCountError,
            PDFSyntaxError,
        )

        path = Path(pdf_path)
        if not path.is_file():
            raise RasterizationError(f"PDF file not found: {path}")

        with path.open("rb") as f:
            header = f.read(4)
        if header != b"%PDF":
            raise RasterizationError(
                "Invalid PDF file: does not start with PDF header"
            )

        try:
            logger.info("Rasterizing PDF %s (dpi=%d)", path.name, self.dpi)
            images = convert_from_path(
                str(path),
                dpi=self.dpi,
                fmt=self.image_format.lower(),
                thread_count=2,
            )

        except PDFInfoNotInstalledError as e:
            logger.error("Poppler not installed: %s", e)
            raise RasterizationError(
                "Poppler not installed. Install poppler-utils: "
                "brew install poppler (macOS) or apt-get install poppler-utils (Linux)"
            ) from e

        except PDFPageCountError as e:
            logger.error("Could not get PDF page count: %s", e)
            raise RasterizationError(
                f"Could not determine PDF page count: {e}"
            ) from e

        except PDFSyntaxError as e:
            logger.error("PDF syntax error: %s", e)
            raise RasterizationError(f"Invalid or corrupted PDF file: {e}") from e

        except Exception as e:
            logger.exception("Unexpected error during PDF rasterization")
            raise RasterizationError(f"Failed to convert PDF to images: {e}") from e

        if not images:
            raise RasterizationError("PDF conversion resulted in zero images")

        logger.info("Converted PDF to %d page image(s)", len(images))
        return images

    def image_to_bytes(self, image: Image.Image, format: str | None = None) -> bytes:
        """
        Encode a PIL Image to bytes.

        Args:
            image: PIL Image to encode.
            format: Output format; defaults to the service's image format.

        Returns:
            Encoded image bytes.
        """
        buffer = io.BytesIO()
        image.save(buffer, format=format or self.image_format)
        return buffer.getvalue()

    def image_to_base64(self, image: Image.Image) -> str:
        """Encode a PIL Image as a base64 string (no data: prefix)."""
        return base64.b64encode(self.image_to_bytes(image)).decode("ascii")

    def rasterize_to_base64(self, pdf_path: str | Path) -> list[str]:
        """
        Rasterize a PDF and encode every page for the API response.

        Returns:
            Base64 PNG strings, one per page, in page order.
        """
        return [self.image_to_base64(img) for img in self.convert_pdf_to_images(pdf_path)]


# Singleton instance for convenience
_pdf_service: PDFService | None = None


def get_pdf_service() -> PDFService:
    """Get or create the PDF service singleton."""
    global _pdf_service
    if _pdf_service is None:
        from ..config import get_settings

        _pdf_service = PDFService(scale=get_settings().rasterize_scale)
    return _pdf_service
