"""
Services package for the PDF field extraction application.

Contains:
- pdf_service: PDF to page image conversion
- ai: OpenAI transcription and field extraction
- pipeline: End-to-end request pipeline with resource cleanup
- highlight: Snippet location and bounding-box scaling
- export: JSON and CSV export of extraction results
"""

from .ai import AIService
from .export import export_csv, export_json
from .pdf_service import PDFService

__all__ = ["PDFService", "AIService", "export_csv", "export_json"]
