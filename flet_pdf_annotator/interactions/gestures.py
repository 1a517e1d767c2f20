"""
Interaction state machine - turns pointer events on one page overlay into
annotation changes.

Pointer coordinates are view-space pixels relative to the page surface. The
machine owns exactly one GestureState; a new gesture can only start from Idle.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from ..collection import AnnotationCollection
from ..config import AnnotatorConfig
from ..coordinates import CoordinateMapper
from ..errors import GestureIgnored, ViewportNotReady
from ..geometry import (
    clamp_rect_to_page,
    distance,
    hit_test_handles,
    is_too_small,
    normalize_view_rect,
    rect_from_point,
    resize_rect,
)
from ..stamps import CustomStamp, parse_stamp_styling, stamp_suffix_config, styled_suffix_config
from ..suffix import SuffixConfig, TextSuffixFormatter
from ..types import (
    Annotation,
    AnnotationType,
    GestureMode,
    GestureState,
    PageViewport,
    Rect,
    Tool,
    ViewPoint,
)

logger = logging.getLogger(__name__)

ClickCallback = Callable[[str], None]

# Annotation types that report a click instead of a zero-length drag
CLICKABLE_TYPES = (AnnotationType.FREE_TEXT, AnnotationType.SQUARE)

_TOOL_TYPES = {
    Tool.SQUARE: AnnotationType.SQUARE,
    Tool.HIGHLIGHT: AnnotationType.HIGHLIGHT,
    Tool.FREE_TEXT: AnnotationType.FREE_TEXT,
    Tool.STAMP: AnnotationType.FREE_TEXT,
}


def _timestamp(now: Optional[datetime] = None) -> str:
    if now is None:
        now = datetime.now(timezone.utc)
    return now.replace(microsecond=0).isoformat()


class InteractionStateMachine:
    """Draw, drag and resize annotations on a single page.

    The collection is shared with the rest of the overlay; this class only
    writes to it when a gesture resolves.
    """

    def __init__(
        self,
        page_index: int,
        collection: AnnotationCollection,
        config: Optional[AnnotatorConfig] = None,
        formatter: Optional[TextSuffixFormatter] = None,
        on_annotation_click: Optional[ClickCallback] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.page_index = page_index
        self.collection = collection
        self.config = config or AnnotatorConfig()
        self.formatter = formatter or TextSuffixFormatter(self.config.suffix, clock)
        self.on_annotation_click = on_annotation_click
        self._clock = clock
        self._mapper: Optional[CoordinateMapper] = None
        self._state = GestureState()
        self._stamp: Optional[CustomStamp] = None

    # Viewport

    @property
    def mapper(self) -> CoordinateMapper:
        """Mapper for the current viewport."""
        if self._mapper is None:
            raise ViewportNotReady(f"No viewport set for page {self.page_index}")
        return self._mapper

    @property
    def has_viewport(self) -> bool:
        return self._mapper is not None

    def set_viewport(self, viewport: PageViewport) -> None:
        """Install a new viewport; any gesture in flight is cancelled.

        Raises InvalidViewport for a degenerate viewport, leaving the previous
        mapper in place.
        """
        mapper = CoordinateMapper(viewport)
        if mapper == self._mapper:
            return
        if not self._state.is_idle:
            logger.debug("Viewport changed mid-gesture on page %s, cancelling", self.page_index)
            self._reset()
        self._mapper = mapper

    # Tool

    @property
    def tool(self) -> Tool:
        """Active drawing tool."""
        return self._state.tool

    @property
    def stamp(self) -> Optional[CustomStamp]:
        """Stamp drawn by the STAMP tool."""
        return self._stamp

    def set_tool(self, tool: Tool, stamp: Optional[CustomStamp] = None) -> None:
        """Select the drawing tool; Tool.NONE enables drag and resize."""
        if tool == Tool.STAMP and stamp is None:
            raise ValueError("The stamp tool needs a stamp")
        if not self._state.is_idle:
            self.pointer_cancel()
        self._state.tool = tool
        self._stamp = stamp if tool == Tool.STAMP else None

    # Gesture state

    @property
    def gesture(self) -> GestureState:
        return self._state

    @property
    def mode(self) -> GestureMode:
        return self._state.mode

    @property
    def is_busy(self) -> bool:
        """Whether a gesture is in flight."""
        return not self._state.is_idle

    # Pointer contract

    def pointer_down(self, point: Tuple[float, float]) -> None:
        """Start a gesture at *point*.

        Raises ViewportNotReady if no viewport was set.
        """
        mapper = self.mapper
        try:
            self._begin(ViewPoint(*point), mapper)
        except GestureIgnored as exc:
            logger.debug("pointer_down ignored on page %s: %s", self.page_index, exc)

    def pointer_move(self, point: Tuple[float, float]) -> None:
        try:
            self._require_active("pointer_move")
            self._state.current = self._track(ViewPoint(*point))
        except GestureIgnored as exc:
            logger.debug("pointer_move ignored on page %s: %s", self.page_index, exc)

    def pointer_up(self, point: Optional[Tuple[float, float]] = None) -> Optional[Annotation]:
        """Resolve the gesture in flight.

        Returns the created or updated annotation, or None when the gesture
        produced no change (too small, a click, or nothing in flight).
        """
        try:
            self._require_active("pointer_up")
        except GestureIgnored as exc:
            logger.debug("pointer_up ignored on page %s: %s", self.page_index, exc)
            return None

        if point is not None:
            self._state.current = self._track(ViewPoint(*point))
        try:
            return self._finish()
        finally:
            self._reset()

    def pointer_cancel(self) -> None:
        """Discard the gesture in flight without touching the collection."""
        if self._state.is_idle:
            return
        logger.debug("Gesture %s cancelled on page %s", self._state.mode.value, self.page_index)
        self._reset()

    # Previews

    def preview_rect(self) -> Optional[Rect]:
        """Document rect the gesture in flight would commit, if any."""
        state = self._state
        if state.is_idle or self._mapper is None:
            return None
        if state.mode == GestureMode.DRAWING:
            return self._drawn_rect()
        if state.mode == GestureMode.DRAGGING:
            return self._dragged_rect()
        return self._resized_rect()

    # Click placement and text editing

    def place_text(
        self, point: Tuple[float, float], text: Optional[str] = None
    ) -> Annotation:
        """Create a FreeText annotation with a placeholder rect at *point*."""
        if text is None:
            text = self.config.interaction.default_freetext_text
        contents = self.formatter.compose(text)
        return self.collection.add(
            self._new_annotation(AnnotationType.FREE_TEXT, self._placeholder_rect(point), contents)
        )

    def place_stamp(self, point: Tuple[float, float], stamp: CustomStamp) -> Annotation:
        """Create a stamp annotation with a placeholder rect at *point*."""
        contents = self.formatter.compose(
            stamp.text, stamp_suffix_config(stamp, self.formatter.config)
        )
        return self.collection.add(
            self._new_annotation(
                AnnotationType.FREE_TEXT,
                self._placeholder_rect(point),
                contents,
                subject=stamp.styling_json(),
            )
        )

    def editable_text(self, annotation_id: str) -> Optional[str]:
        """Contents of an annotation without its auto-inserted suffixes."""
        annotation = self.collection.get(annotation_id)
        if annotation is None:
            return None
        return self.formatter.strip(annotation.contents, self._suffix_config_for(annotation))

    def edit_text(self, annotation_id: str, text: str) -> Optional[Annotation]:
        """Replace an annotation's text, re-applying suffixes exactly once.

        Returns None for an unknown id.
        """
        annotation = self.collection.get(annotation_id)
        if annotation is None:
            logger.debug("edit_text on unknown annotation %s", annotation_id)
            return None
        contents = self.formatter.recompose(text, self._suffix_config_for(annotation))
        return self.collection.update(annotation_id, contents=contents, date=self._now())

    # Private methods

    def _begin(self, point: ViewPoint, mapper: CoordinateMapper) -> None:
        state = self._state
        if not state.is_idle:
            raise GestureIgnored(f"{state.mode.value} gesture already in flight")

        if state.tool != Tool.NONE:
            start = mapper.clamp_view(point)
            state.mode = GestureMode.DRAWING
            state.anchor = start
            state.current = start
            logger.debug("Drawing %s started at %s", state.tool.value, start)
            return

        annotations = list(reversed(self.collection.for_page(self.page_index)))
        handle_size = self.config.interaction.handle_size_px
        for annotation in annotations:
            handle = hit_test_handles(annotation.rect, point, handle_size, mapper)
            if handle is not None:
                self._start_edit(GestureMode.RESIZING, annotation, point)
                state.handle = handle
                logger.debug("Resizing %s by %s", annotation.id, handle.value)
                return

        for annotation in annotations:
            if mapper.rect_to_view(annotation.rect).contains(point):
                self._start_edit(GestureMode.DRAGGING, annotation, point)
                logger.debug("Dragging %s", annotation.id)
                return

        raise GestureIgnored(f"nothing to drag at {tuple(point)}")

    def _start_edit(self, mode: GestureMode, annotation: Annotation, point: ViewPoint) -> None:
        self._state.mode = mode
        self._state.anchor = point
        self._state.current = point
        self._state.target_id = annotation.id
        self._state.origin_rect = annotation.rect

    def _require_active(self, event: str) -> None:
        if self._state.is_idle:
            raise GestureIgnored(f"{event} without a gesture in flight")

    def _track(self, point: ViewPoint) -> ViewPoint:
        # Drawn rects stay on the page surface; drags are clamped as a whole later
        if self._state.mode in (GestureMode.DRAWING, GestureMode.RESIZING):
            return self.mapper.clamp_view(point)
        return point

    def _finish(self) -> Optional[Annotation]:
        mode = self._state.mode
        if mode == GestureMode.DRAWING:
            return self._finish_drawing()
        if mode == GestureMode.DRAGGING:
            return self._finish_dragging()
        return self._finish_resizing()

    def _finish_drawing(self) -> Optional[Annotation]:
        rect = self._drawn_rect()
        min_size = self.config.interaction.min_drag_size_px
        if is_too_small(rect, min_size, self.mapper):
            logger.debug("Drawn rect %s below %spx, discarded", rect.as_tuple(), min_size)
            return None

        tool = self._state.tool
        contents = ""
        subject = None
        if tool == Tool.FREE_TEXT:
            contents = self.formatter.compose(self.config.interaction.default_freetext_text)
        elif tool == Tool.STAMP and self._stamp is not None:
            contents = self.formatter.compose(
                self._stamp.text, stamp_suffix_config(self._stamp, self.formatter.config)
            )
            subject = self._stamp.styling_json()

        annotation = self._new_annotation(_TOOL_TYPES[tool], rect, contents, subject=subject)
        logger.debug("Created %s %s", annotation.type.value, annotation.id)
        return self.collection.add(annotation)

    def _finish_dragging(self) -> Optional[Annotation]:
        state = self._state
        target = self.collection.get(state.target_id)
        if target is None:
            logger.debug("Drag target %s vanished", state.target_id)
            return None

        if distance(state.anchor, state.current) < self.config.interaction.click_epsilon_px:
            if target.type in CLICKABLE_TYPES and self.on_annotation_click:
                logger.debug("Click on %s", target.id)
                self.on_annotation_click(target.id)
            return None

        rect = self._dragged_rect()
        if rect == target.rect:
            return None
        return self.collection.update(target.id, rect=rect)

    def _finish_resizing(self) -> Optional[Annotation]:
        state = self._state
        target = self.collection.get(state.target_id)
        if target is None:
            logger.debug("Resize target %s vanished", state.target_id)
            return None
        rect = self._resized_rect()
        if rect == target.rect:
            return None
        return self.collection.update(target.id, rect=rect)

    def _drawn_rect(self) -> Rect:
        state = self._state
        return self.mapper.rect_to_doc(normalize_view_rect(state.anchor, state.current))

    def _dragged_rect(self) -> Rect:
        state = self._state
        mapper = self.mapper
        start = mapper.to_doc(state.anchor)
        end = mapper.to_doc(state.current)
        rect = state.origin_rect.translated(end.x - start.x, end.y - start.y)
        if self.config.interaction.clamp_to_page:
            viewport = mapper.viewport
            rect = clamp_rect_to_page(rect, viewport.page_width, viewport.page_height)
        return rect

    def _resized_rect(self) -> Rect:
        state = self._state
        return resize_rect(state.origin_rect, state.handle, state.current, self.mapper)

    def _placeholder_rect(self, point: Tuple[float, float]) -> Rect:
        mapper = self.mapper
        origin = mapper.to_doc(mapper.clamp_view(point))
        width, height = self.config.interaction.freetext_placeholder_size
        rect = rect_from_point(origin, width, height)
        if self.config.interaction.clamp_to_page:
            viewport = mapper.viewport
            rect = clamp_rect_to_page(rect, viewport.page_width, viewport.page_height)
        return rect

    def _suffix_config_for(self, annotation: Annotation) -> SuffixConfig:
        styling = parse_stamp_styling(annotation.subject)
        if styling is None:
            return self.formatter.config
        # Flags stored at placement win over the configured stamp of the same name
        recorded = styled_suffix_config(styling, self.formatter.config)
        if recorded is not None:
            return recorded
        stamp = self.config.stamp(styling["stamp_name"])
        if stamp is None:
            return self.formatter.config
        return stamp_suffix_config(stamp, self.formatter.config)

    def _color_for(self, annotation_type: AnnotationType) -> Optional[str]:
        if annotation_type == AnnotationType.SQUARE:
            return self.config.square.border_color
        if annotation_type == AnnotationType.HIGHLIGHT:
            return self.config.highlight.background_color
        if annotation_type == AnnotationType.FREE_TEXT:
            return self.config.freetext.text_color
        return None

    def _now(self) -> str:
        return _timestamp(self._clock() if self._clock else None)

    def _new_annotation(
        self,
        annotation_type: AnnotationType,
        rect: Rect,
        contents: str = "",
        subject: Optional[str] = None,
    ) -> Annotation:
        return Annotation(
            id=str(uuid.uuid4()),
            type=annotation_type,
            page_index=self.page_index,
            rect=rect,
            author=self.config.interaction.author,
            date=self._now(),
            contents=contents,
            color=self._color_for(annotation_type),
            subject=subject,
        )

    def _reset(self) -> None:
        tool = self._state.tool
        self._state = GestureState(tool=tool)
