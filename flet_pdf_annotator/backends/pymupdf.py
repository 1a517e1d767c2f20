"""
PyMuPDF backend implementation.

MuPDF page space has its origin at the top-left; document space here is PDF
user space with the origin at the bottom-left. ``page.transformation_matrix``
converts from the latter to the former.
"""

from __future__ import annotations

import io
import logging
import uuid
import warnings
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

warnings.filterwarnings("ignore", message="builtin type Swig")

import pymupdf  # noqa: E402

from ..config import AnnotatorConfig  # noqa: E402
from ..types import (  # noqa: E402
    Annotation,
    AnnotationType,
    Bookmark,
    DocumentPoint,
    Rect,
)
from ..xfdf import format_pdf_date, parse_pdf_date  # noqa: E402
from .base import DocumentBackend, PageBackend  # noqa: E402

logger = logging.getLogger(__name__)

Color = Tuple[float, float, float]

_ANNOT_TYPES = {
    "Square": AnnotationType.SQUARE,
    "Highlight": AnnotationType.HIGHLIGHT,
    "FreeText": AnnotationType.FREE_TEXT,
}


def _hex_to_color(value: Optional[str], default: str = "#000000") -> Color:
    """Convert "#RRGGBB" to a PyMuPDF RGB tuple."""
    value = (value or default).lstrip("#")
    if len(value) != 6:
        value = default.lstrip("#")
    try:
        r, g, b = (int(value[i : i + 2], 16) / 255 for i in (0, 2, 4))
    except ValueError:
        return _hex_to_color(default)
    return (r, g, b)


def _color_to_hex(color) -> Optional[str]:
    """Convert a PyMuPDF color to "#RRGGBB"; None when unset."""
    if not color:
        return None

    if isinstance(color, (int, float)):
        color = (color,)

    if len(color) == 1:
        gray = round(color[0] * 255)
        return f"#{gray:02X}{gray:02X}{gray:02X}"
    if len(color) == 3:
        r, g, b = [round(c * 255) for c in color]
        return f"#{r:02X}{g:02X}{b:02X}"
    if len(color) == 4:
        c, m, y, k = color
        r = round(255 * (1 - c) * (1 - k))
        g = round(255 * (1 - m) * (1 - k))
        b = round(255 * (1 - y) * (1 - k))
        return f"#{r:02X}{g:02X}{b:02X}"
    return None


class PyMuPDFPage(PageBackend):
    """PyMuPDF page implementation."""

    def __init__(self, doc: "PyMuPDFBackend", page: pymupdf.Page, index: int):
        self._doc = doc
        self._page = page
        self._index = index

    @property
    def width(self) -> float:
        return self._page.cropbox.width

    @property
    def height(self) -> float:
        return self._page.cropbox.height

    @property
    def index(self) -> int:
        return self._index

    @property
    def rotation(self) -> int:
        return self._page.rotation

    def render_png(self, scale: float = 1.0, rotation: int = 0) -> bytes:
        # get_pixmap applies the page's own rotation; prerotate adds the view's
        matrix = pymupdf.Matrix(scale, scale).prerotate(rotation)
        pix = self._page.get_pixmap(matrix=matrix, alpha=False)
        return pix.tobytes("png")

    # Coordinate conversion

    def to_mupdf_rect(self, rect: Rect) -> pymupdf.Rect:
        """Document-space rect to MuPDF page space."""
        converted = pymupdf.Rect(rect.as_tuple()) * self._page.transformation_matrix
        converted.normalize()
        return converted

    def from_mupdf_rect(self, rect: pymupdf.Rect) -> Rect:
        """MuPDF page-space rect to document space."""
        converted = pymupdf.Rect(rect) * ~self._page.transformation_matrix
        return Rect(converted.x0, converted.y0, converted.x1, converted.y1)

    # Annotations

    def add_annotation(self, annotation: Annotation, config: AnnotatorConfig) -> bool:
        rect = self.to_mupdf_rect(annotation.rect)

        if annotation.type == AnnotationType.SQUARE:
            annot = self._page.add_rect_annot(rect)
            annot.set_colors(
                stroke=_hex_to_color(annotation.color, config.square.border_color),
            )
            annot.set_border(width=1.0)
        elif annotation.type == AnnotationType.HIGHLIGHT:
            style = annotation.style or config.highlight
            annot = self._page.add_highlight_annot(rect)
            annot.set_colors(
                stroke=_hex_to_color(
                    annotation.color or style.background_color, config.highlight.background_color
                )
            )
            opacity = style.background_opacity
            if opacity is not None:
                annot.set_opacity(opacity)
        elif annotation.type == AnnotationType.FREE_TEXT:
            text_style = config.freetext
            annot = self._page.add_freetext_annot(
                rect,
                annotation.contents,
                fontsize=text_style.font_size,
                fontname="helv",
                text_color=_hex_to_color(annotation.color, text_style.text_color),
                fill_color=_hex_to_color(text_style.background_color),
            )
        else:
            logger.warning(
                "Annotation %s of type %s cannot be embedded, skipped",
                annotation.id,
                annotation.type.value,
            )
            return False

        annot.set_info(
            content=annotation.contents,
            title=annotation.author,
            subject=annotation.subject or annotation.type.value,
            creationDate=format_pdf_date(annotation.date),
            modDate=format_pdf_date(annotation.date),
        )
        annot.update()
        return True

    def get_annotations(self) -> List[Annotation]:
        annotations = []

        for annot in self._page.annots() or []:
            type_name = annot.type[1] if annot.type else "Unknown"
            annotation_type = _ANNOT_TYPES.get(type_name)
            if annotation_type is None:
                logger.debug("Skipping %s annotation on page %s", type_name, self._index)
                continue

            info = annot.info or {}
            color = None
            if annotation_type != AnnotationType.FREE_TEXT:
                color = _color_to_hex((annot.colors or {}).get("stroke"))
            subject = info.get("subject") or None
            if subject == annotation_type.value:
                subject = None
            date = info.get("creationDate") or info.get("modDate") or ""

            annotations.append(
                Annotation(
                    id=info.get("id") or str(uuid.uuid4()),
                    type=annotation_type,
                    page_index=self._index,
                    rect=self.from_mupdf_rect(annot.rect),
                    author=info.get("title", ""),
                    date=parse_pdf_date(date) if date else "",
                    contents=info.get("content", ""),
                    color=color,
                    subject=subject,
                )
            )

        return annotations


class PyMuPDFBackend(DocumentBackend):
    """PyMuPDF document backend."""

    def __init__(
        self,
        source: Union[str, Path, bytes, io.BytesIO],
        password: Optional[str] = None,
    ):
        if isinstance(source, (str, Path)):
            self._path = Path(source)
            self._doc = pymupdf.open(str(source))
        elif isinstance(source, bytes):
            self._path = None
            self._doc = pymupdf.open(stream=source, filetype="pdf")
        elif isinstance(source, io.BytesIO):
            self._path = None
            self._doc = pymupdf.open(stream=source.read(), filetype="pdf")
        else:
            raise TypeError(f"Unsupported source type: {type(source)}")

        if self._doc.is_encrypted:
            if password is None:
                raise ValueError("Document is encrypted and requires a password")
            if not self._doc.authenticate(password):
                raise ValueError("Invalid password")

        self._pages: Dict[int, PyMuPDFPage] = {}

    @property
    def page_count(self) -> int:
        return len(self._doc)

    def get_page(self, index: int) -> PyMuPDFPage:
        if index in self._pages:
            return self._pages[index]

        if index < 0 or index >= len(self._doc):
            raise IndexError(f"Page index {index} out of range")

        page = self._doc[index]
        pdf_page = PyMuPDFPage(self, page, index)
        self._pages[index] = pdf_page
        return pdf_page

    def get_bookmarks(self) -> List[Bookmark]:
        bookmarks = []

        for item in self._doc.get_toc(simple=False):
            title = item[1]
            page_number = item[2]
            if page_number < 1:
                continue
            page_index = page_number - 1
            details = item[3] if len(item) > 3 and isinstance(item[3], dict) else {}

            destination = None
            target = details.get("to")
            if target is not None and page_index < len(self._doc):
                # TOC targets are MuPDF page-space points
                point = pymupdf.Point(target) * ~self._doc[page_index].transformation_matrix
                destination = DocumentPoint(point.x, point.y)

            bookmarks.append(
                Bookmark(
                    id=str(uuid.uuid4()),
                    title=title,
                    page_index=page_index,
                    destination=destination,
                )
            )

        return bookmarks

    def save(self, path: Optional[Union[str, Path]] = None) -> None:
        if path is None:
            if self._path is None:
                raise ValueError(
                    "No path specified and document was not loaded from file"
                )
            path = self._path

        if self._path and Path(path) == self._path:
            self._doc.save(str(path), incremental=True, encryption=0)
        else:
            self._doc.save(str(path))

    def to_bytes(self) -> bytes:
        return self._doc.tobytes()

    def close(self) -> None:
        if self._doc:
            self._doc.close()
        self._pages.clear()
