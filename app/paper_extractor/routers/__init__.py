"""
Routers package for FastAPI endpoints.

Organized by domain:
- extract: PDF upload and field extraction
"""

from . import extract

__all__ = ["extract"]
