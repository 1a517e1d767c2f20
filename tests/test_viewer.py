from types import SimpleNamespace

import pytest

from flet_pdf_annotator import AnnotationViewer, PdfDocument
from flet_pdf_annotator.types import AnnotationType, Rect, Tool


def pointer(x, y):
    return SimpleNamespace(local_x=x, local_y=y)


def key(name, ctrl=False):
    return SimpleNamespace(key=name, ctrl=ctrl)


@pytest.fixture()
def document(pdf_bytes):
    document = PdfDocument(pdf_bytes)
    yield document
    document.close()


@pytest.fixture()
def viewer(document, recorder):
    return AnnotationViewer(
        document,
        on_annotation_create=recorder.created.append,
        on_annotation_update=recorder.updated.append,
        on_annotation_delete=recorder.deleted.append,
        on_annotation_click=recorder.clicked.append,
    )


def drag(viewer, start, end):
    viewer._on_pan_start(pointer(*start))
    viewer._on_pan_update(pointer(*end))
    viewer._on_pan_end(pointer(*end))


def test_empty_shared_collection_is_used(document, collection, recorder):
    viewer = AnnotationViewer(document, collection=collection)

    highlight_id = viewer.highlight_region(0, (50, 700, 300, 750))

    assert viewer.collection is collection
    assert highlight_id in collection
    assert [a.id for a in recorder.created] == [highlight_id]


def test_viewer_installs_viewport(viewer):
    assert viewer.page_count == 2
    assert viewer.machine.has_viewport
    assert viewer.machine.mapper.viewport.pixel_width == 612


def test_pan_draws_annotation(viewer, recorder):
    viewer.set_tool(Tool.SQUARE)

    drag(viewer, (100, 100), (300, 150))

    (created,) = recorder.created
    assert created.rect == Rect(100, 642, 300, 692)
    assert viewer.tool == Tool.SQUARE


def test_tap_selects_or_places_by_tool(viewer, recorder):
    viewer.set_tool(Tool.FREE_TEXT)
    viewer._on_tap_up(pointer(100, 100))

    (created,) = recorder.created
    assert created.type == AnnotationType.FREE_TEXT

    viewer.set_tool(Tool.NONE)
    viewer._on_tap_up(pointer(110, 110))

    assert recorder.clicked == [created.id]


def test_escape_cancels_and_ctrl_z_undoes(viewer, recorder):
    viewer.set_tool(Tool.SQUARE)
    viewer._on_pan_start(pointer(100, 100))
    viewer.handle_keyboard_event(key("Escape"))

    assert not viewer.machine.is_busy

    drag(viewer, (100, 100), (300, 150))
    viewer.handle_keyboard_event(key("Z", ctrl=True))

    assert len(viewer.collection) == 0
    assert recorder.deleted == [recorder.created[0].id]

    viewer.handle_keyboard_event(key("Y", ctrl=True))

    assert len(viewer.collection) == 1


def test_page_navigation_cancels_gesture(document):
    pages = []
    viewer = AnnotationViewer(document, on_page_change=pages.append)
    viewer.set_tool(Tool.SQUARE)
    viewer._on_pan_start(pointer(100, 100))

    assert viewer.next_page()
    assert not viewer.next_page()
    assert pages == [1]
    assert viewer.machine.page_index == 1
    assert viewer.machine.tool == Tool.SQUARE
    assert not viewer._machine_for(0).is_busy
    assert viewer.goto(0)
    assert not viewer.goto(5)


def test_zoom_rebuilds_viewport(viewer):
    viewer.zoom_out(2)

    assert viewer.machine.mapper.viewport.scale == 0.5

    viewer.scale = 0.001

    assert viewer.scale == 0.1


def test_highlight_api(viewer):
    highlight_id = viewer.highlight_region(0, (72, 700, 200, 712))

    assert viewer.collection.get(highlight_id).type == AnnotationType.HIGHLIGHT

    viewer.clear_all_highlights()

    assert len(viewer.collection) == 0


def test_xfdf_export_and_import(viewer, document):
    viewer.set_tool(Tool.SQUARE)
    drag(viewer, (100, 100), (300, 150))

    exported = viewer.export_xfdf(document.bookmarks(), source_filename="report.pdf")

    other = AnnotationViewer(document)
    result = other.import_xfdf(exported)

    assert [a.rect for a in other.collection] == [Rect(100, 642, 300, 692)]
    assert [b.title for b in result.bookmarks] == ["Intro", "Second"]


def test_viewer_without_source():
    viewer = AnnotationViewer()

    assert viewer.page_count == 0
    assert viewer.control is not None
    assert not viewer.machine.has_viewport
