"""
Abstract backend protocol for PDF documents.

Backends supply page geometry (the viewport contract), rasterized pages, and
the ability to embed and read back annotations. Rects crossing this boundary
are always in document space.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

from ..config import AnnotatorConfig
from ..types import Annotation, Bookmark, PageViewport


class PageBackend(ABC):
    """Abstract interface for a PDF page."""

    @property
    @abstractmethod
    def width(self) -> float:
        """Unrotated page width in points."""
        ...

    @property
    @abstractmethod
    def height(self) -> float:
        """Unrotated page height in points."""
        ...

    @property
    @abstractmethod
    def index(self) -> int:
        """Page index (0-based)."""
        ...

    @property
    @abstractmethod
    def rotation(self) -> int:
        """Intrinsic page rotation (clockwise degrees)."""
        ...

    def get_viewport(self, scale: float = 1.0, rotation: int = 0) -> PageViewport:
        """Viewport for rendering this page at *scale* with an extra view *rotation*."""
        return PageViewport.for_page(
            self.width,
            self.height,
            scale=scale,
            rotation=(self.rotation + rotation) % 360,
        )

    @abstractmethod
    def render_png(self, scale: float = 1.0, rotation: int = 0) -> bytes:
        """Rasterize the page to PNG bytes matching ``get_viewport(scale, rotation)``."""
        ...

    @abstractmethod
    def add_annotation(self, annotation: Annotation, config: AnnotatorConfig) -> bool:
        """Embed *annotation* into the page; False if its type cannot be embedded."""
        ...

    @abstractmethod
    def get_annotations(self) -> List[Annotation]:
        """Read the page's Square, Highlight and FreeText annotations."""
        ...


class DocumentBackend(ABC):
    """Abstract interface for a PDF document."""

    @property
    @abstractmethod
    def page_count(self) -> int:
        """Number of pages in the document."""
        ...

    @abstractmethod
    def get_page(self, index: int) -> PageBackend:
        """Get a page by index."""
        ...

    @abstractmethod
    def get_bookmarks(self) -> List[Bookmark]:
        """Flattened document outline."""
        ...

    @abstractmethod
    def save(self, path: Optional[Union[str, Path]] = None) -> None:
        """Save the document."""
        ...

    @abstractmethod
    def to_bytes(self) -> bytes:
        """Serialize the document, including embedded annotations."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close and release resources."""
        ...

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
