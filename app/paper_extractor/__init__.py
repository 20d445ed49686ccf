"""
PDF Field Extraction Backend Application.

A FastAPI service that transcribes PDFs to layout-preserving markdown and
extracts user-defined fields with supporting snippets, using OpenAI.
"""

__version__ = "1.0.0"
