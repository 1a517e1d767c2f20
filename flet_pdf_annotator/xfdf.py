"""
XFDF interchange - exports annotations and bookmarks to XFDF and reads them back.

XFDF rects are in PDF user space: origin bottom-left, Y up. That is the same
convention as document space here, so rects are written without a Y flip.
Pages are 0-based, as in the XFDF standard.
"""

from __future__ import annotations

import logging
import re
import uuid
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from .errors import MalformedInterchangeDocument
from .geometry import quad_points
from .types import (
    Annotation,
    AnnotationType,
    Bookmark,
    DocumentPoint,
    HighlightStyle,
    InterchangeImport,
    Rect,
    SkippedElement,
)

logger = logging.getLogger(__name__)

XFDF_NS = "http://ns.adobe.com/xfdf/"
# Private namespace for attributes XFDF has no slot for
FPA_NS = "urn:flet-pdf-annotator:xfdf"
FORMAT_VERSION = "1"

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'
_XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"

ET.register_namespace("", XFDF_NS)
ET.register_namespace("fpa", FPA_NS)

_TAG_TYPES = {t.value.lower(): t for t in AnnotationType}

# Characters XML 1.0 cannot carry, even escaped
_ILLEGAL_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")

_PDF_DATE = re.compile(
    r"^D:(?P<year>\d{4})(?P<month>\d{2})?(?P<day>\d{2})?"
    r"(?P<hour>\d{2})?(?P<minute>\d{2})?(?P<second>\d{2})?"
    r"(?:(?P<sign>[+\-Z])(?:(?P<tz_hour>\d{2})'?(?P<tz_minute>\d{2})?'?)?)?$"
)


def _xfdf(tag: str) -> str:
    return f"{{{XFDF_NS}}}{tag}"


def _fpa(name: str) -> str:
    return f"{{{FPA_NS}}}{name}"


def _local_name(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


# Text and number formatting


def _safe_text(value: str, where: str) -> str:
    """Replace characters XML cannot represent with a visible escape."""
    if not _ILLEGAL_XML_CHARS.search(value):
        return value
    logger.warning("Unencodable characters in %s replaced with escapes", where)
    return _ILLEGAL_XML_CHARS.sub(lambda m: f"\\u{ord(m.group()):04x}", value)


def _number(value: float) -> str:
    return f"{value:.4f}"


def _rect_string(rect: Rect) -> str:
    return ",".join(_number(v) for v in rect)


def _parse_rect(value: Optional[str]) -> Rect:
    if not value:
        raise ValueError("missing rect")
    parts = [p for p in re.split(r"[,\s]+", value.strip()) if p]
    if len(parts) != 4:
        raise ValueError(f"rect needs 4 numbers, got {value!r}")
    return Rect.of(parts)


def _parse_iso(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def format_pdf_date(value: Union[str, datetime, None]) -> str:
    """Format an ISO-8601 string or datetime as a PDF date ``D:YYYYMMDDHHmmSS+HH'mm'``.

    Invalid input falls back to the current time with a warning. Naive values
    are taken as UTC.
    """
    moment: Optional[datetime] = None
    if isinstance(value, datetime):
        moment = value
    elif value:
        try:
            moment = _parse_iso(value)
        except ValueError:
            logger.warning("Invalid date %r, using current time", value)
    if moment is None:
        moment = datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)

    offset = moment.utcoffset() or timedelta(0)
    total_minutes = int(offset.total_seconds() // 60)
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"D:{moment.strftime('%Y%m%d%H%M%S')}{sign}{hours:02d}'{minutes:02d}'"


def parse_pdf_date(value: str) -> str:
    """Convert a PDF date back to ISO-8601; unparseable values are returned as-is."""
    match = _PDF_DATE.match(value.strip())
    if match is None:
        return value

    def part(name: str, default: int) -> int:
        found = match.group(name)
        return int(found) if found else default

    sign = match.group("sign")
    tz = timezone.utc
    if sign in ("+", "-"):
        offset = timedelta(hours=part("tz_hour", 0), minutes=part("tz_minute", 0))
        tz = timezone(offset if sign == "+" else -offset)
    try:
        moment = datetime(
            part("year", 0),
            part("month", 1),
            part("day", 1),
            part("hour", 0),
            part("minute", 0),
            part("second", 0),
            tzinfo=tz,
        )
    except ValueError:
        return value
    return moment.isoformat()


# Export


def _xfdf_date(annotation: Annotation) -> Optional[str]:
    if not annotation.date:
        return None
    try:
        _parse_iso(annotation.date)
    except ValueError:
        logger.warning("Invalid date %r on %s, date omitted", annotation.date, annotation.id)
        return None
    return format_pdf_date(annotation.date)


def _annotation_element(parent: ET.Element, annotation: Annotation) -> ET.Element:
    tag = annotation.type.value.lower()
    element = ET.SubElement(parent, _xfdf(tag))
    element.set("subject", _safe_text(annotation.subject or annotation.type.value, "subject"))
    element.set("page", str(annotation.page_index))
    element.set("rect", _rect_string(annotation.rect))
    element.set("flags", annotation.flags or "print")
    element.set("name", _safe_text(annotation.id, "name"))
    element.set("title", _safe_text(annotation.author, "title"))
    date = _xfdf_date(annotation)
    if date is not None:
        element.set("date", date)
    if annotation.color:
        element.set("color", annotation.color)

    if annotation.type == AnnotationType.HIGHLIGHT:
        element.set("coords", ",".join(_number(v) for v in quad_points(annotation.rect)))

    style = annotation.style
    if style is not None:
        if style.background_opacity is not None:
            element.set("opacity", _number(style.background_opacity))
        if style.border_width is not None:
            element.set("width", _number(style.border_width))
        if style.border_color:
            element.set(_fpa("border-color"), style.border_color)
        if style.background_color:
            element.set(_fpa("background-color"), style.background_color)

    if annotation.contents:
        contents = ET.SubElement(element, _xfdf("contents"))
        contents.text = _safe_text(annotation.contents, f"contents of {annotation.id}")
    return element


def _bookmark_element(parent: ET.Element, bookmark: Bookmark) -> ET.Element:
    element = ET.SubElement(parent, _xfdf("bookmark"))
    element.set("title", _safe_text(bookmark.title, "bookmark title"))
    element.set("action", bookmark.action or "GoTo")
    element.set("page", str(bookmark.page_index))
    element.set("name", _safe_text(bookmark.id, "bookmark name"))
    if bookmark.destination is not None:
        element.set("x", _number(bookmark.destination.x))
        element.set("y", _number(bookmark.destination.y))
    return element


def to_document(
    annotations: Iterable[Annotation],
    bookmarks: Iterable[Bookmark] = (),
    source_filename: str = "document.pdf",
) -> str:
    """Serialize annotations and bookmarks to an XFDF document string."""
    annotations = list(annotations)
    bookmarks = list(bookmarks)

    root = ET.Element(_xfdf("xfdf"))
    root.set(_XML_SPACE, "preserve")
    root.set(_fpa("format-version"), FORMAT_VERSION)
    ET.SubElement(root, _xfdf("f")).set("href", _safe_text(source_filename, "href"))

    if annotations:
        annots = ET.SubElement(root, _xfdf("annots"))
        for annotation in annotations:
            _annotation_element(annots, annotation)

    if bookmarks:
        outline = ET.SubElement(root, _xfdf("bookmarks"))
        for bookmark in bookmarks:
            _bookmark_element(outline, bookmark)

    ET.indent(root, space="  ")
    logger.info(
        "Exported %s annotations and %s bookmarks to XFDF", len(annotations), len(bookmarks)
    )
    # ElementTree leaves carriage returns in text raw, and parsers fold them into newlines
    return XML_DECLARATION + ET.tostring(root, encoding="unicode").replace("\r", "&#13;")


# Import


def _optional_float(value: Optional[str]) -> Optional[float]:
    return float(value) if value not in (None, "") else None


def _parse_style(element: ET.Element) -> Optional[HighlightStyle]:
    keys = ("opacity", "width", _fpa("border-color"), _fpa("background-color"))
    if not any(element.get(k) is not None for k in keys):
        return None
    return HighlightStyle(
        border_color=element.get(_fpa("border-color")),
        background_color=element.get(_fpa("background-color")),
        background_opacity=_optional_float(element.get("opacity")),
        border_width=_optional_float(element.get("width")),
    )


def _parse_annotation(element: ET.Element) -> Annotation:
    annotation_type = _TAG_TYPES[_local_name(element.tag)]
    page = element.get("page")
    if page is None:
        raise ValueError("missing page")

    contents = ""
    for child in element:
        if _local_name(child.tag) == "contents":
            contents = child.text or ""
            break

    subject = element.get("subject")
    if subject == annotation_type.value:
        subject = None
    date = element.get("date")

    return Annotation(
        id=element.get("name") or str(uuid.uuid4()),
        type=annotation_type,
        page_index=int(page),
        rect=_parse_rect(element.get("rect")),
        author=element.get("title") or "",
        date=parse_pdf_date(date) if date else "",
        contents=contents,
        color=element.get("color"),
        subject=subject,
        flags=element.get("flags"),
        style=_parse_style(element),
    )


def _parse_bookmark(element: ET.Element) -> Bookmark:
    page = element.get("page")
    if page is None:
        raise ValueError("missing page")
    y = _optional_float(element.get("y"))
    destination = None
    if y is not None:
        destination = DocumentPoint(_optional_float(element.get("x")) or 0.0, y)
    return Bookmark(
        id=element.get("name") or str(uuid.uuid4()),
        title=element.get("title") or "",
        page_index=int(page),
        destination=destination,
        action=element.get("action") or "GoTo",
    )


def _skip(result: InterchangeImport, tag: str, reason: str, name: Optional[str] = None) -> None:
    logger.warning("Skipping XFDF element <%s>%s: %s", tag, f" {name}" if name else "", reason)
    result.skipped.append(SkippedElement(tag=tag, reason=reason, name=name))


def parse_document(text: Union[str, bytes]) -> InterchangeImport:
    """Parse an XFDF document.

    Unknown or invalid elements are skipped and listed in ``skipped``.
    Raises MalformedInterchangeDocument when the text is not XFDF at all.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise MalformedInterchangeDocument(f"Not well-formed XML: {exc}") from exc
    if _local_name(root.tag) != "xfdf":
        raise MalformedInterchangeDocument(
            f"Expected an <xfdf> root element, got <{_local_name(root.tag)}>"
        )

    version = root.get(_fpa("format-version"))
    if version is not None and version != FORMAT_VERSION:
        logger.warning("XFDF format version %s, expected %s", version, FORMAT_VERSION)

    result = InterchangeImport()
    for section in root:
        section_name = _local_name(section.tag)
        if section_name == "annots":
            for element in section:
                tag = _local_name(element.tag)
                if tag not in _TAG_TYPES:
                    _skip(result, tag, "unsupported annotation type", element.get("name"))
                    continue
                try:
                    result.annotations.append(_parse_annotation(element))
                except ValueError as exc:
                    _skip(result, tag, str(exc), element.get("name"))
        elif section_name == "bookmarks":
            for element in section:
                tag = _local_name(element.tag)
                if tag != "bookmark":
                    _skip(result, tag, "unsupported outline entry")
                    continue
                try:
                    result.bookmarks.append(_parse_bookmark(element))
                except ValueError as exc:
                    _skip(result, tag, str(exc), element.get("name"))
        elif section_name not in ("f", "ids", "fields"):
            _skip(result, section_name, "unsupported section")

    logger.info(
        "Imported %s annotations and %s bookmarks from XFDF (%s skipped)",
        len(result.annotations),
        len(result.bookmarks),
        len(result.skipped),
    )
    return result


def from_document(text: Union[str, bytes]) -> Tuple[List[Annotation], List[Bookmark]]:
    """Inverse of :func:`to_document`."""
    result = parse_document(text)
    return result.annotations, result.bookmarks


class InterchangeSerializer:
    """XFDF export/import bound to a source file name."""

    def __init__(self, source_filename: str = "document.pdf"):
        self.source_filename = source_filename

    def to_document(
        self, annotations: Iterable[Annotation], bookmarks: Iterable[Bookmark] = ()
    ) -> str:
        return to_document(annotations, bookmarks, self.source_filename)

    def from_document(self, text: Union[str, bytes]) -> Tuple[List[Annotation], List[Bookmark]]:
        return from_document(text)

    def parse(self, text: Union[str, bytes]) -> InterchangeImport:
        return parse_document(text)

    def save(
        self,
        path: Union[str, Path],
        annotations: Iterable[Annotation],
        bookmarks: Iterable[Bookmark] = (),
    ) -> None:
        """Write an XFDF file."""
        Path(path).write_text(self.to_document(annotations, bookmarks), encoding="utf-8")

    def load(self, path: Union[str, Path]) -> InterchangeImport:
        """Read an XFDF file."""
        return parse_document(Path(path).read_bytes())
