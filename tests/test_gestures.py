import json

import pytest

from flet_pdf_annotator.config import AnnotatorConfig, InteractionConfig
from flet_pdf_annotator.errors import ViewportNotReady
from flet_pdf_annotator.interactions import InteractionStateMachine
from flet_pdf_annotator.stamps import CustomStamp
from flet_pdf_annotator.suffix import SuffixConfig
from flet_pdf_annotator.types import AnnotationType, GestureMode, HandleId, PageViewport, Rect, Tool


def make_machine(collection, viewport, recorder=None, clock=None, config=None):
    machine = InteractionStateMachine(
        0,
        collection,
        config=config,
        on_annotation_click=recorder.clicked.append if recorder else None,
        clock=clock,
    )
    machine.set_viewport(viewport)
    return machine


@pytest.fixture()
def machine(collection, viewport, recorder, clock):
    return make_machine(collection, viewport, recorder, clock)


@pytest.fixture()
def square(collection, make_annotation):
    # View box (100, 100) - (300, 150) at scale 1
    return collection.add(make_annotation("a1"))


# Drawing


def test_draw_square(machine, collection, recorder):
    machine.set_tool(Tool.SQUARE)
    machine.pointer_down((100, 100))
    machine.pointer_move((200, 120))
    annotation = machine.pointer_up((300, 150))

    assert annotation.type == AnnotationType.SQUARE
    assert annotation.rect == Rect(100, 642, 300, 692)
    assert annotation.page_index == 0
    assert annotation.author == "User"
    assert annotation.color == "#FF0000"
    assert annotation.date == "2025-01-15T10:00:00+00:00"
    assert list(collection) == [annotation]
    assert recorder.created == [annotation]
    assert machine.mode == GestureMode.IDLE


def test_tool_stays_selected_after_drawing(machine):
    machine.set_tool(Tool.HIGHLIGHT)
    machine.pointer_down((10, 10))
    created = machine.pointer_up((60, 60))

    assert created.type == AnnotationType.HIGHLIGHT
    assert created.color == "#FFFF00"
    assert machine.tool == Tool.HIGHLIGHT


@pytest.mark.parametrize("end", [(103, 300), (300, 104), (100, 100)])
def test_too_small_drawing_is_discarded(machine, collection, recorder, end):
    machine.set_tool(Tool.SQUARE)
    machine.pointer_down((100, 100))

    assert machine.pointer_up(end) is None
    assert len(collection) == 0
    assert recorder.created == []


def test_drawing_is_clamped_to_page(machine):
    machine.set_tool(Tool.SQUARE)
    machine.pointer_down((-50, -50))

    created = machine.pointer_up((100, 100))

    assert created.rect == Rect(0, 692, 100, 792)


def test_drawing_on_rotated_page(collection, clock):
    machine = make_machine(collection, PageViewport.for_page(612, 792, rotation=90), clock=clock)
    machine.set_tool(Tool.SQUARE)
    machine.pointer_down((100, 100))

    created = machine.pointer_up((300, 150))

    assert created.rect == Rect(100, 100, 150, 300)


def test_preview_follows_pointer(machine):
    assert machine.preview_rect() is None

    machine.set_tool(Tool.SQUARE)
    machine.pointer_down((100, 100))
    machine.pointer_move((300, 150))

    assert machine.preview_rect() == Rect(100, 642, 300, 692)


def test_freetext_contents_get_suffix(collection, viewport, clock):
    config = AnnotatorConfig(
        suffix=SuffixConfig(fixed_text="JD"),
        interaction=InteractionConfig(default_freetext_text="Note"),
    )
    machine = make_machine(collection, viewport, clock=clock, config=config)
    machine.set_tool(Tool.FREE_TEXT)
    machine.pointer_down((100, 100))

    created = machine.pointer_up((300, 150))

    assert created.type == AnnotationType.FREE_TEXT
    assert created.contents == "Note\n[JD]"
    assert created.color == "#000000"


# Gesture lifecycle


def test_pointer_down_without_viewport(collection):
    machine = InteractionStateMachine(0, collection)
    machine.set_tool(Tool.SQUARE)

    with pytest.raises(ViewportNotReady):
        machine.pointer_down((10, 10))


def test_second_pointer_down_is_ignored(machine):
    machine.set_tool(Tool.SQUARE)
    machine.pointer_down((100, 100))
    machine.pointer_down((400, 400))

    assert machine.gesture.anchor == (100, 100)
    assert machine.is_busy


def test_pointer_up_without_gesture(machine, collection):
    assert machine.pointer_up((10, 10)) is None
    assert len(collection) == 0


def test_pointer_down_on_empty_space_does_nothing(machine, square):
    machine.pointer_down((500, 500))

    assert machine.mode == GestureMode.IDLE


def test_cancel_discards_gesture(machine, collection):
    machine.set_tool(Tool.SQUARE)
    machine.pointer_down((100, 100))
    machine.pointer_move((300, 300))
    machine.pointer_cancel()

    assert machine.mode == GestureMode.IDLE
    assert machine.tool == Tool.SQUARE
    assert machine.pointer_up((300, 300)) is None
    assert len(collection) == 0


def test_viewport_change_cancels_gesture(machine, viewport):
    machine.set_tool(Tool.SQUARE)
    machine.pointer_down((100, 100))

    machine.set_viewport(viewport)
    assert machine.is_busy

    machine.set_viewport(PageViewport.for_page(612, 792, scale=2.0))
    assert not machine.is_busy


def test_changing_tool_cancels_gesture(machine):
    machine.set_tool(Tool.SQUARE)
    machine.pointer_down((100, 100))

    machine.set_tool(Tool.HIGHLIGHT)

    assert not machine.is_busy
    assert machine.tool == Tool.HIGHLIGHT


# Dragging and clicking


def test_drag_moves_annotation(machine, square, recorder):
    machine.pointer_down((200, 125))
    assert machine.mode == GestureMode.DRAGGING

    machine.pointer_move((220, 150))
    moved = machine.pointer_up((250, 175))

    assert moved.rect == Rect(150, 592, 350, 642)
    assert recorder.updated == [moved]
    assert recorder.clicked == []


def test_drag_is_clamped_to_page(machine, square):
    machine.pointer_down((200, 125))

    moved = machine.pointer_up((600, 125))

    assert moved.rect == Rect(412, 642, 612, 692)


def test_drag_without_clamping(collection, viewport, square):
    config = AnnotatorConfig(interaction=InteractionConfig(clamp_to_page=False))
    machine = make_machine(collection, viewport, config=config)
    machine.pointer_down((200, 125))

    moved = machine.pointer_up((600, 125))

    assert moved.rect == Rect(500, 642, 700, 692)


def test_small_move_is_a_click(machine, square, recorder):
    machine.pointer_down((200, 125))

    assert machine.pointer_up((201, 126)) is None
    assert recorder.clicked == ["a1"]
    assert recorder.updated == []


def test_highlights_do_not_report_clicks(machine, collection, recorder, make_annotation):
    collection.add(make_annotation("h1", type=AnnotationType.HIGHLIGHT))
    machine.pointer_down((200, 125))
    machine.pointer_up((200, 125))

    assert recorder.clicked == []


def test_topmost_annotation_wins(machine, collection, make_annotation):
    collection.add(make_annotation("below"))
    collection.add(make_annotation("above", rect=(150, 600, 350, 680)))

    machine.pointer_down((200, 130))

    assert machine.gesture.target_id == "above"


def test_annotations_on_other_pages_are_not_hit(machine, collection, make_annotation):
    collection.add(make_annotation("elsewhere", page_index=1))

    machine.pointer_down((200, 125))

    assert machine.mode == GestureMode.IDLE


# Resizing


def test_resize_by_corner(machine, square):
    machine.pointer_down((300, 150))
    assert machine.mode == GestureMode.RESIZING
    assert machine.gesture.handle == HandleId.BOTTOM_RIGHT

    resized = machine.pointer_up((350, 200))

    assert resized.rect == Rect(100, 592, 350, 692)


def test_resize_past_opposite_edge_flips(machine, square):
    machine.pointer_down((300, 125))

    resized = machine.pointer_up((50, 125))

    assert resized.rect == Rect(50, 642, 100, 692)


def test_handles_win_over_bodies(machine, collection, make_annotation):
    collection.add(make_annotation("a1"))
    # Covers a1's bottom-right handle and is on top
    collection.add(make_annotation("a2", rect=(250, 600, 400, 700)))

    machine.pointer_down((300, 150))

    assert machine.mode == GestureMode.RESIZING
    assert machine.gesture.target_id == "a1"


def test_resize_without_movement_changes_nothing(machine, square, recorder):
    machine.pointer_down((300, 150))

    assert machine.pointer_up((300, 150)) is None
    assert recorder.updated == []


# Text placement and editing


@pytest.fixture()
def signed_config():
    return AnnotatorConfig(
        suffix=SuffixConfig(fixed_text="JD"),
        custom_stamps=(
            CustomStamp(name="Approved", text="APPROVED", fixed_text_suffix_enabled=True),
            CustomStamp(name="Plain", text="PLAIN"),
        ),
    )


def test_place_text_uses_placeholder_rect(machine):
    created = machine.place_text((100, 100))

    assert created.type == AnnotationType.FREE_TEXT
    assert created.rect == Rect(100, 662, 200, 692)
    assert created.contents == ""


def test_place_text_near_edge_stays_on_page(machine):
    created = machine.place_text((600, 780))

    assert created.rect.x2 == 612
    assert created.rect.width == 100


def test_edit_text_applies_suffix_once(collection, viewport, clock, signed_config):
    machine = make_machine(collection, viewport, clock=clock, config=signed_config)
    created = machine.place_text((100, 100), "Hello")

    assert created.contents == "Hello\n[JD]"
    assert machine.editable_text(created.id) == "Hello"

    edited = machine.edit_text(created.id, "Bye")
    assert edited.contents == "Bye\n[JD]"

    edited = machine.edit_text(created.id, edited.contents)
    assert edited.contents == "Bye\n[JD]"


def test_edit_text_unknown_id(machine):
    assert machine.edit_text("missing", "x") is None
    assert machine.editable_text("missing") is None


def test_stamp_suffix_follows_stamp(collection, viewport, clock, signed_config):
    machine = make_machine(collection, viewport, clock=clock, config=signed_config)

    approved = machine.place_stamp((100, 100), signed_config.stamp("Approved"))
    plain = machine.place_stamp((100, 300), signed_config.stamp("Plain"))

    assert approved.contents == "APPROVED\n[JD]"
    assert json.loads(approved.subject)["stamp_name"] == "Approved"
    assert plain.contents == "PLAIN"

    # Editing a stamp keeps the stamp's own suffix rules
    assert machine.edit_text(plain.id, "CHANGED").contents == "CHANGED"


def test_unconfigured_stamp_keeps_its_suffix_rules(collection, viewport, clock, signed_config):
    machine = make_machine(collection, viewport, clock=clock, config=signed_config)
    stamp = CustomStamp(name="OK", text="OK", time_stamp_suffix_enabled=True)

    placed = machine.place_stamp((100, 100), stamp)

    assert placed.contents == "OK\n[2025-01-15T10:00:00Z]"
    assert machine.editable_text(placed.id) == "OK"
    assert machine.edit_text(placed.id, placed.contents).contents == "OK\n[2025-01-15T10:00:00Z]"
    assert machine.edit_text(placed.id, "FINE").contents == "FINE\n[2025-01-15T10:00:00Z]"


def test_stamp_tool_draws_freetext(collection, viewport, signed_config):
    machine = make_machine(collection, viewport, config=signed_config)
    machine.set_tool(Tool.STAMP, signed_config.stamp("Approved"))
    machine.pointer_down((100, 100))

    created = machine.pointer_up((300, 150))

    assert created.type == AnnotationType.FREE_TEXT
    assert created.contents == "APPROVED\n[JD]"
    assert machine.stamp.name == "Approved"


def test_stamp_tool_needs_a_stamp(machine):
    with pytest.raises(ValueError):
        machine.set_tool(Tool.STAMP)
