import pytest

from flet_pdf_annotator.collection import AnnotationCollection
from flet_pdf_annotator.config import DEFAULT_HIGHLIGHT_STYLE
from flet_pdf_annotator.interactions import HighlightRegistry
from flet_pdf_annotator.interactions.highlights import REGISTRY_SUBJECT
from flet_pdf_annotator.types import AnnotationType, HighlightStyle, Rect


@pytest.fixture()
def registry(collection, clock):
    return HighlightRegistry(collection, DEFAULT_HIGHLIGHT_STYLE, author="Search", clock=clock)


def test_create_adds_highlight(registry, collection, recorder):
    highlight_id = registry.create(2, [72, 700, 200, 712])

    highlight = collection.get(highlight_id)
    assert highlight.type == AnnotationType.HIGHLIGHT
    assert highlight.page_index == 2
    assert highlight.rect == Rect(72, 700, 200, 712)
    assert highlight.author == "Search"
    assert highlight.subject == REGISTRY_SUBJECT
    assert highlight.date == "2025-01-15T10:00:00+00:00"
    assert highlight.style == DEFAULT_HIGHLIGHT_STYLE
    assert highlight.color == "#FFFF00"
    assert recorder.created == [highlight]
    assert registry.owns(highlight_id)


def test_partial_style_falls_back_to_defaults(registry, collection):
    highlight_id = registry.create(0, (0, 0, 10, 10), HighlightStyle(background_color="#00FF00"))

    style = collection.get(highlight_id).style
    assert style.background_color == "#00FF00"
    assert style.border_color == DEFAULT_HIGHLIGHT_STYLE.border_color
    assert style.background_opacity == DEFAULT_HIGHLIGHT_STYLE.background_opacity
    assert collection.get(highlight_id).color == "#00FF00"


def test_ids_are_unique(registry):
    ids = {registry.create(0, (0, 0, 10, 10)) for _ in range(20)}

    assert len(ids) == 20


def test_remove_only_touches_owned_highlights(registry, collection, make_annotation):
    user_drawn = collection.add(make_annotation("user", type=AnnotationType.HIGHLIGHT))
    highlight_id = registry.create(0, (0, 0, 10, 10))

    assert registry.remove(user_drawn.id) is False
    assert "user" in collection

    assert registry.remove(highlight_id) is True
    assert highlight_id not in collection
    assert registry.remove(highlight_id) is False
    assert registry.remove("never-existed") is False


def test_clear_all_keeps_user_annotations(registry, collection, recorder, make_annotation):
    collection.add(make_annotation("user", type=AnnotationType.HIGHLIGHT))
    created = [registry.create(0, (i, 0, i + 5, 5)) for i in range(3)]

    assert registry.clear_all() == 3
    assert [a.id for a in collection] == ["user"]
    assert sorted(recorder.deleted) == sorted(created)
    assert len(registry) == 0


def test_clear_all_is_a_single_undo_step(registry, collection):
    registry.create(0, (0, 0, 10, 10))
    registry.create(0, (20, 0, 30, 10))
    registry.clear_all()

    collection.undo()

    assert len(collection) == 2
    assert len(registry) == 2


def test_highlight_deleted_elsewhere_is_forgotten(registry, collection):
    highlight_id = registry.create(0, (0, 0, 10, 10))
    collection.remove(highlight_id)

    assert not registry.owns(highlight_id)
    assert registry.clear_all() == 0


def test_host_facing_aliases(registry, collection):
    highlight_id = registry.highlight_region(0, Rect(0, 0, 10, 10))
    other_id = registry.highlight_region(1, Rect(0, 0, 10, 10))

    assert registry.remove_highlight(highlight_id)

    registry.clear_all_highlights()

    assert other_id not in collection
    assert len(collection) == 0


def test_ids_beyond_undo_reach_are_forgotten(clock, make_annotation):
    collection = AnnotationCollection(max_history=3)
    registry = HighlightRegistry(collection, clock=clock)
    first = registry.create(0, (0, 0, 10, 10))
    registry.remove(first)

    assert first in registry._owned

    collection.add(make_annotation("a"))
    collection.add(make_annotation("b"))
    second = registry.create(0, (20, 0, 30, 10))

    assert registry._owned == {second}
