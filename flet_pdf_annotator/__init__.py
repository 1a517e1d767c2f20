"""
Flet PDF Annotator

Zoom-independent PDF annotations for Flet: draw, move and resize rectangles,
highlights, free text and stamps on top of rendered pages, then export them
to XFDF or embed them into the PDF.

Usage:
    import flet as ft
    from flet_pdf_annotator import AnnotationViewer, PdfDocument, Tool

    def main(page: ft.Page):
        document = PdfDocument("/path/to/file.pdf")
        viewer = AnnotationViewer(document, scale=1.5)
        viewer.set_tool(Tool.SQUARE)
        page.on_keyboard_event = viewer.handle_keyboard_event
        page.add(viewer.control)

    ft.app(main)
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from .backends.pymupdf import PyMuPDFBackend
from .collection import AnnotationCollection
from .config import AnnotatorConfig, InteractionConfig, load_config
from .coordinates import CoordinateMapper, to_doc, to_view
from .errors import (
    AnnotatorError,
    GestureIgnored,
    InvalidViewport,
    MalformedInterchangeDocument,
    ViewportNotReady,
)
from .geometry import hit_test_handles, is_too_small, normalize_rect, resize_rect
from .interactions import HighlightRegistry, InteractionStateMachine
from .stamps import CustomStamp, parse_custom_stamps
from .suffix import SuffixConfig, SuffixPlacement, TextSuffixFormatter
from .types import (
    Annotation,
    AnnotationType,
    Bookmark,
    DocumentPoint,
    GestureMode,
    HandleId,
    HighlightStyle,
    InterchangeImport,
    PageViewport,
    Rect,
    Tool,
    ViewPoint,
)
from .viewer import AnnotationViewer
from .xfdf import InterchangeSerializer, from_document, parse_document, to_document

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


class PdfDocument:
    """
    PDF Document wrapper.

    Can be created from:
    - File path (str or Path)
    - Bytes
    - BytesIO

    Args:
        source: Path to PDF file, bytes, or BytesIO
        password: Password for encrypted PDFs (optional)

    Methods:
    - get_viewport(index, scale, rotation): Viewport for the overlay
    - embed_annotations(annotations): Write annotations into the PDF
    - read_annotations(): Existing Square/Highlight/FreeText annotations
    - bookmarks(): Outline as Bookmark records
    - save(), to_bytes(), close()

    Raises:
        ValueError: If document is encrypted and no password provided,
                   or if password is invalid
    """

    def __init__(
        self,
        source: Union[str, Path, bytes, io.BytesIO],
        password: Optional[str] = None,
        config: Optional[AnnotatorConfig] = None,
    ):
        self._backend = PyMuPDFBackend(source, password=password)
        self.config = config or AnnotatorConfig()

    @property
    def backend(self) -> PyMuPDFBackend:
        return self._backend

    @property
    def page_count(self) -> int:
        """Number of pages."""
        return self._backend.page_count

    def get_page_size(self, index: int = 0) -> Tuple[float, float]:
        """Unrotated (width, height) of a page in points."""
        page = self._backend.get_page(index)
        return (page.width, page.height)

    def get_viewport(self, index: int = 0, scale: float = 1.0, rotation: int = 0) -> PageViewport:
        """Viewport of a page rendered at *scale* with an extra view *rotation*."""
        return self._backend.get_page(index).get_viewport(scale, rotation)

    def embed_annotations(self, annotations: Iterable[Annotation]) -> int:
        """Write annotations into the PDF pages.

        Annotations referencing missing pages are skipped. Returns the number
        embedded.
        """
        embedded = 0
        for annotation in annotations:
            if not 0 <= annotation.page_index < self.page_count:
                logger.warning(
                    "Annotation %s references page %s, but the PDF has %s pages; skipped",
                    annotation.id,
                    annotation.page_index,
                    self.page_count,
                )
                continue
            page = self._backend.get_page(annotation.page_index)
            if page.add_annotation(annotation, self.config):
                embedded += 1
        logger.info("Embedded %s annotations", embedded)
        return embedded

    def read_annotations(self) -> List[Annotation]:
        """Square, Highlight and FreeText annotations already in the PDF."""
        annotations: List[Annotation] = []
        for index in range(self.page_count):
            annotations.extend(self._backend.get_page(index).get_annotations())
        return annotations

    def bookmarks(self) -> List[Bookmark]:
        """Document outline as bookmarks."""
        return self._backend.get_bookmarks()

    def save(self, path: Optional[Union[str, Path]] = None) -> None:
        """Save the document."""
        self._backend.save(path)

    def to_bytes(self) -> bytes:
        return self._backend.to_bytes()

    def close(self):
        """Close and release resources."""
        self._backend.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


__all__ = [
    "PdfDocument",
    "AnnotationViewer",
    "AnnotationCollection",
    "InteractionStateMachine",
    "HighlightRegistry",
    "CoordinateMapper",
    "TextSuffixFormatter",
    "InterchangeSerializer",
    "AnnotatorConfig",
    "InteractionConfig",
    "SuffixConfig",
    "SuffixPlacement",
    "CustomStamp",
    "Annotation",
    "AnnotationType",
    "Bookmark",
    "DocumentPoint",
    "ViewPoint",
    "PageViewport",
    "Rect",
    "Tool",
    "GestureMode",
    "HandleId",
    "HighlightStyle",
    "InterchangeImport",
    "AnnotatorError",
    "InvalidViewport",
    "ViewportNotReady",
    "GestureIgnored",
    "MalformedInterchangeDocument",
    "load_config",
    "parse_custom_stamps",
    "to_doc",
    "to_view",
    "normalize_rect",
    "is_too_small",
    "hit_test_handles",
    "resize_rect",
    "to_document",
    "from_document",
    "parse_document",
    "__version__",
]
