"""
PDF backends - page geometry, rasterization and annotation embedding.
"""

from .base import DocumentBackend, PageBackend
from .pymupdf import PyMuPDFBackend

__all__ = ["DocumentBackend", "PageBackend", "PyMuPDFBackend"]
