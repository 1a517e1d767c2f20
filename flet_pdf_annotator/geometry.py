"""
Annotation geometry - pure functions on gestures and rectangles.

Nothing here fails on out-of-bounds input: pointer coordinates routinely stray
outside the page during fast drags, so values are normalized or clamped.
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Tuple, Union

from .coordinates import CoordinateMapper
from .types import HandleId, PageViewport, Rect, ViewRect

MapperLike = Union[CoordinateMapper, PageViewport]

# Corners first, clockwise from top-left, then edge midpoints clockwise from top.
HANDLE_PRIORITY: Tuple[HandleId, ...] = (
    HandleId.TOP_LEFT,
    HandleId.TOP_RIGHT,
    HandleId.BOTTOM_RIGHT,
    HandleId.BOTTOM_LEFT,
    HandleId.TOP,
    HandleId.RIGHT,
    HandleId.BOTTOM,
    HandleId.LEFT,
)

# Which box edges each handle moves: (horizontal edge, vertical edge)
_HANDLE_EDGES: Dict[HandleId, Tuple[Optional[str], Optional[str]]] = {
    HandleId.TOP_LEFT: ("left", "top"),
    HandleId.TOP_RIGHT: ("right", "top"),
    HandleId.BOTTOM_RIGHT: ("right", "bottom"),
    HandleId.BOTTOM_LEFT: ("left", "bottom"),
    HandleId.TOP: (None, "top"),
    HandleId.RIGHT: ("right", None),
    HandleId.BOTTOM: (None, "bottom"),
    HandleId.LEFT: ("left", None),
}


def _as_mapper(mapper: MapperLike) -> CoordinateMapper:
    if isinstance(mapper, CoordinateMapper):
        return mapper
    return CoordinateMapper(mapper)


def normalize_rect(p1: Tuple[float, float], p2: Tuple[float, float]) -> Rect:
    """Return the rect spanned by two diagonal points, min corner first."""
    return Rect(
        min(p1[0], p2[0]),
        min(p1[1], p2[1]),
        max(p1[0], p2[0]),
        max(p1[1], p2[1]),
    )


def normalize_view_rect(p1: Tuple[float, float], p2: Tuple[float, float]) -> ViewRect:
    """View-space counterpart of :func:`normalize_rect`."""
    return ViewRect(
        left=min(p1[0], p2[0]),
        top=min(p1[1], p2[1]),
        right=max(p1[0], p2[0]),
        bottom=max(p1[1], p2[1]),
    )


def is_too_small(rect: Rect, min_size_px: float, viewport: MapperLike) -> bool:
    """Whether *rect* renders smaller than *min_size_px* along either axis."""
    box = _as_mapper(viewport).rect_to_view(rect)
    return box.width < min_size_px or box.height < min_size_px


def handle_positions(box: ViewRect) -> Dict[HandleId, Tuple[float, float]]:
    """View-space centre of every resize handle of *box*."""
    mid_x = (box.left + box.right) / 2
    mid_y = (box.top + box.bottom) / 2
    return {
        HandleId.TOP_LEFT: (box.left, box.top),
        HandleId.TOP_RIGHT: (box.right, box.top),
        HandleId.BOTTOM_RIGHT: (box.right, box.bottom),
        HandleId.BOTTOM_LEFT: (box.left, box.bottom),
        HandleId.TOP: (mid_x, box.top),
        HandleId.RIGHT: (box.right, mid_y),
        HandleId.BOTTOM: (mid_x, box.bottom),
        HandleId.LEFT: (box.left, mid_y),
    }


def hit_test_handles(
    rect: Rect,
    point: Tuple[float, float],
    handle_size_px: float,
    viewport: MapperLike,
) -> Optional[HandleId]:
    """Return the handle of *rect* under the view-space *point*, if any.

    A handle is hit when the point lies within *handle_size_px* of the handle
    centre along both axes. Overlapping handles (small rects) resolve by
    ``HANDLE_PRIORITY``.
    """
    box = _as_mapper(viewport).rect_to_view(rect)
    positions = handle_positions(box)
    x, y = point
    for handle in HANDLE_PRIORITY:
        hx, hy = positions[handle]
        if abs(x - hx) <= handle_size_px and abs(y - hy) <= handle_size_px:
            return handle
    return None


def _resize_box(box: Dict[str, float], handle: HandleId, x: float, y: float) -> None:
    horizontal, vertical = _HANDLE_EDGES[handle]
    if horizontal is not None:
        box[horizontal] = x
    if vertical is not None:
        box[vertical] = y


def resize_rect(
    rect: Rect,
    handle: HandleId,
    new_point: Tuple[float, float],
    viewport: Optional[MapperLike] = None,
) -> Rect:
    """Move the edges controlled by *handle* to *new_point* and re-normalize.

    With a viewport, *new_point* is a view point and handles are named as seen
    on screen. Without one, *new_point* is a document point and "top" is the
    edge with the larger Y. Dragging a handle across the opposite edge flips
    the rect instead of producing an inverted one.
    """
    x, y = new_point
    if viewport is None:
        # Document space: top is y2, bottom is y1
        box = {"left": rect.x1, "right": rect.x2, "top": rect.y2, "bottom": rect.y1}
        _resize_box(box, handle, x, y)
        return normalize_rect((box["left"], box["bottom"]), (box["right"], box["top"]))

    mapper = _as_mapper(viewport)
    view = mapper.rect_to_view(rect)
    box = {"left": view.left, "right": view.right, "top": view.top, "bottom": view.bottom}
    _resize_box(box, handle, x, y)
    return mapper.rect_to_doc(
        normalize_view_rect((box["left"], box["top"]), (box["right"], box["bottom"]))
    )


def clamp_rect_to_page(rect: Rect, page_width: float, page_height: float) -> Rect:
    """Shift *rect* so it lies within the page; oversized rects pin to the origin."""
    dx = 0.0
    dy = 0.0
    if rect.x2 > page_width:
        dx = page_width - rect.x2
    if rect.x1 + dx < 0:
        dx = -rect.x1
    if rect.y2 > page_height:
        dy = page_height - rect.y2
    if rect.y1 + dy < 0:
        dy = -rect.y1
    if dx == 0 and dy == 0:
        return rect
    return rect.translated(dx, dy)


def distance(p1: Tuple[float, float], p2: Tuple[float, float]) -> float:
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


def rect_from_point(
    point: Tuple[float, float], width: float, height: float
) -> Rect:
    """Rect of the given size whose top-left corner (document space) is *point*."""
    x, y = point
    return Rect(x, y - height, x + width, y)


def quad_points(rect: Rect) -> List[float]:
    """Quad points of *rect* in PDF order: top-left, top-right, bottom-left, bottom-right."""
    return [
        rect.x1, rect.y2,
        rect.x2, rect.y2,
        rect.x1, rect.y1,
        rect.x2, rect.y1,
    ]
