from datetime import datetime, timezone

import pymupdf
import pytest

from flet_pdf_annotator.collection import AnnotationCollection
from flet_pdf_annotator.coordinates import CoordinateMapper
from flet_pdf_annotator.types import Annotation, AnnotationType, PageViewport, Rect

FIXED_NOW = datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


class Recorder:
    """Collects host callback invocations."""

    def __init__(self):
        self.created = []
        self.updated = []
        self.deleted = []
        self.clicked = []


@pytest.fixture()
def viewport():
    return PageViewport.for_page(612, 792)


@pytest.fixture()
def mapper(viewport):
    return CoordinateMapper(viewport)


@pytest.fixture()
def recorder():
    return Recorder()


@pytest.fixture()
def collection(recorder):
    return AnnotationCollection(
        on_annotation_create=recorder.created.append,
        on_annotation_update=recorder.updated.append,
        on_annotation_delete=recorder.deleted.append,
    )


@pytest.fixture()
def clock():
    return lambda: FIXED_NOW


@pytest.fixture()
def make_annotation():
    def factory(annotation_id="a1", type=AnnotationType.SQUARE, rect=(100, 642, 300, 692), page_index=0, **fields):
        return Annotation(
            id=annotation_id,
            type=type,
            page_index=page_index,
            rect=Rect.of(rect),
            author=fields.pop("author", "Tester"),
            date=fields.pop("date", "2025-01-15T10:00:00+00:00"),
            **fields,
        )

    return factory


@pytest.fixture()
def pdf_bytes():
    """Two blank US Letter pages with a two-entry outline."""
    doc = pymupdf.open()
    doc.new_page(width=612, height=792)
    doc.new_page(width=612, height=792)
    doc.set_toc([[1, "Intro", 1], [1, "Second", 2]])
    data = doc.tobytes()
    doc.close()
    return data
