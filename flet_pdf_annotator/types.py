"""
Shared data types for the PDF annotator.

Two coordinate spaces are in play:

- document space: page units, origin bottom-left, Y grows upward
- view space: rendered pixels, origin top-left, Y grows downward

Points and rectangles of the two spaces are distinct types so they cannot be
mixed by accident.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, NamedTuple, Optional, Sequence, Tuple, Union


class DocumentPoint(NamedTuple):
    """A point in document space."""

    x: float
    y: float


class ViewPoint(NamedTuple):
    """A point in view space (pixels relative to the page surface)."""

    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """Document-space rectangle with x1 <= x2 and y1 <= y2."""

    x1: float
    y1: float
    x2: float
    y2: float

    def __post_init__(self):
        # Producers are expected to normalize; swapping here keeps the
        # invariant even for callers that don't.
        if self.x1 > self.x2:
            x1, x2 = self.x2, self.x1
            object.__setattr__(self, "x1", x1)
            object.__setattr__(self, "x2", x2)
        if self.y1 > self.y2:
            y1, y2 = self.y2, self.y1
            object.__setattr__(self, "y1", y1)
            object.__setattr__(self, "y2", y2)

    @classmethod
    def of(cls, value: RectLike) -> "Rect":
        """Build a Rect from a Rect or a 4-item sequence [x1, y1, x2, y2]."""
        if isinstance(value, Rect):
            return value
        x1, y1, x2, y2 = (float(v) for v in value)
        return cls(x1, y1, x2, y2)

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    def contains(self, point: Tuple[float, float]) -> bool:
        x, y = point
        return self.x1 <= x <= self.x2 and self.y1 <= y <= self.y2

    def translated(self, dx: float, dy: float) -> "Rect":
        return Rect(self.x1 + dx, self.y1 + dy, self.x2 + dx, self.y2 + dy)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x1, self.y1, self.x2, self.y2)

    def __iter__(self) -> Iterator[float]:
        return iter(self.as_tuple())


@dataclass(frozen=True)
class ViewRect:
    """View-space box (left <= right, top <= bottom)."""

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def contains(self, point: Tuple[float, float]) -> bool:
        x, y = point
        return self.left <= x <= self.right and self.top <= y <= self.bottom


RectLike = Union[Rect, Sequence[float]]


@dataclass(frozen=True)
class PageViewport:
    """Per-page, per-scale descriptor supplied by the page renderer."""

    page_width: float  # document units, unrotated
    page_height: float
    scale: float = 1.0
    rotation: int = 0  # 0, 90, 180, 270 (clockwise)
    pixel_width: float = 0.0
    pixel_height: float = 0.0

    @classmethod
    def for_page(
        cls,
        page_width: float,
        page_height: float,
        scale: float = 1.0,
        rotation: int = 0,
    ) -> "PageViewport":
        """Build a viewport, deriving the pixel size from size, scale and rotation."""
        rotation = rotation % 360
        if rotation in (90, 270):
            pixel_width, pixel_height = page_height * scale, page_width * scale
        else:
            pixel_width, pixel_height = page_width * scale, page_height * scale
        return cls(
            page_width=page_width,
            page_height=page_height,
            scale=scale,
            rotation=rotation,
            pixel_width=pixel_width,
            pixel_height=pixel_height,
        )


class AnnotationType(Enum):
    """Closed set of annotation kinds."""

    SQUARE = "Square"
    HIGHLIGHT = "Highlight"
    FREE_TEXT = "FreeText"
    CUSTOM_BOOKMARK = "CustomBookmark"


class Tool(Enum):
    """Active drawing tool of an overlay."""

    NONE = "none"
    SQUARE = "square"
    HIGHLIGHT = "highlight"
    FREE_TEXT = "freetext"
    STAMP = "stamp"


class GestureMode(Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    DRAGGING = "dragging"
    RESIZING = "resizing"


class HandleId(Enum):
    """Resize handles, listed in hit-test priority order."""

    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"
    BOTTOM_RIGHT = "bottom_right"
    BOTTOM_LEFT = "bottom_left"
    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"

    @property
    def is_corner(self) -> bool:
        return self in _CORNERS


_CORNERS = frozenset(
    {HandleId.TOP_LEFT, HandleId.TOP_RIGHT, HandleId.BOTTOM_RIGHT, HandleId.BOTTOM_LEFT}
)


@dataclass(frozen=True)
class HighlightStyle:
    """Visual style of a highlight; unset fields fall back to configured defaults."""

    border_color: Optional[str] = None
    background_color: Optional[str] = None
    background_opacity: Optional[float] = None
    border_width: Optional[float] = None

    def merged_over(self, defaults: "HighlightStyle") -> "HighlightStyle":
        """Return a style where every unset field is taken from *defaults*."""
        return HighlightStyle(
            border_color=self.border_color or defaults.border_color,
            background_color=self.background_color or defaults.background_color,
            background_opacity=(
                self.background_opacity
                if self.background_opacity is not None
                else defaults.background_opacity
            ),
            border_width=(
                self.border_width
                if self.border_width is not None
                else defaults.border_width
            ),
        )


@dataclass(frozen=True)
class Annotation:
    """A single annotation anchored in document space.

    Instances are immutable; changes go through the annotation collection,
    which swaps in a modified copy.
    """

    id: str
    type: AnnotationType
    page_index: int
    rect: Rect
    author: str
    date: str  # ISO-8601
    contents: str = ""
    color: Optional[str] = None  # "#RRGGBB"
    subject: Optional[str] = None
    flags: Optional[str] = None
    style: Optional[HighlightStyle] = None


@dataclass(frozen=True)
class Bookmark:
    """An outline entry pointing at a page, optionally at a point on it."""

    id: str
    title: str
    page_index: int
    destination: Optional[DocumentPoint] = None
    action: str = "GoTo"


@dataclass
class GestureState:
    """Transient state of the single gesture in flight on an overlay."""

    tool: Tool = Tool.NONE
    mode: GestureMode = GestureMode.IDLE
    anchor: Optional[ViewPoint] = None
    current: Optional[ViewPoint] = None
    target_id: Optional[str] = None
    handle: Optional[HandleId] = None
    # Rect of the target when the gesture started, for drag/resize previews
    origin_rect: Optional[Rect] = None

    @property
    def is_idle(self) -> bool:
        return self.mode == GestureMode.IDLE


@dataclass
class InterchangeImport:
    """Result of reading an interchange document."""

    annotations: list = field(default_factory=list)
    bookmarks: list = field(default_factory=list)
    skipped: list = field(default_factory=list)


@dataclass(frozen=True)
class SkippedElement:
    """An element dropped during import, with the reason it was dropped."""

    tag: str
    reason: str
    name: Optional[str] = None
