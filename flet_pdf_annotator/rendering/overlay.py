"""
Overlay renderer - converts annotations and the live gesture into Flet canvas shapes.

Everything is drawn in view space through the page's CoordinateMapper, so the
overlay follows zoom and rotation without touching stored rects.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional

import flet as ft
import flet.canvas as cv

from ..config import AnnotatorConfig
from ..coordinates import CoordinateMapper
from ..geometry import handle_positions
from ..interactions.gestures import InteractionStateMachine
from ..stamps import parse_stamp_styling
from ..types import (
    Annotation,
    AnnotationType,
    GestureMode,
    HighlightStyle,
    Tool,
    ViewRect,
)

BOOKMARK_COLOR = "#3366CC"
HANDLE_COLOR = "#1E88E5"

_PREVIEW_COLORS = {
    Tool.SQUARE: "#FF0000",
    Tool.HIGHLIGHT: "#FFD700",
    Tool.FREE_TEXT: "#003366",
    Tool.STAMP: "#003366",
}


def _fill(x: float, y: float, width: float, height: float, color: str, opacity: float) -> cv.Rect:
    return cv.Rect(
        x=x,
        y=y,
        width=width,
        height=height,
        paint=ft.Paint(
            color=ft.Colors.with_opacity(opacity, color),
            style=ft.PaintingStyle.FILL,
        ),
    )


def _stroke(
    box: ViewRect,
    color: str,
    width: float = 1.0,
    dashes: Optional[List[float]] = None,
) -> cv.Rect:
    paint = ft.Paint(
        color=color,
        stroke_width=width,
        style=ft.PaintingStyle.STROKE,
    )
    if dashes:
        paint.stroke_dash_pattern = dashes
    return cv.Rect(x=box.left, y=box.top, width=box.width, height=box.height, paint=paint)


class OverlayRenderer:
    """Builds the canvas shapes for one page overlay."""

    def __init__(self, config: Optional[AnnotatorConfig] = None):
        self.config = config or AnnotatorConfig()
        self._painters = {
            AnnotationType.SQUARE: self._paint_square,
            AnnotationType.HIGHLIGHT: self._paint_highlight,
            AnnotationType.FREE_TEXT: self._paint_free_text,
            AnnotationType.CUSTOM_BOOKMARK: self._paint_bookmark,
        }

    def render(
        self,
        annotations: List[Annotation],
        mapper: CoordinateMapper,
        machine: Optional[InteractionStateMachine] = None,
    ) -> List[Any]:
        """Shapes for *annotations*, with the gesture in flight drawn on top."""
        shapes: List[Any] = []
        target_id = None
        if machine is not None and not machine.gesture.is_idle:
            target_id = machine.gesture.target_id

        for annotation in annotations:
            # The dragged/resized annotation is drawn by the preview instead
            if annotation.id == target_id:
                continue
            self._painters[annotation.type](annotation, mapper, shapes)

        if machine is not None:
            self._render_gesture(machine, mapper, shapes)
        return shapes

    # Annotation painters

    def _paint_square(
        self, annotation: Annotation, mapper: CoordinateMapper, shapes: List[Any]
    ) -> None:
        style = self.config.square
        box = mapper.rect_to_view(annotation.rect)
        shapes.append(
            _fill(box.left, box.top, box.width, box.height, style.fill_color, style.fill_opacity)
        )
        shapes.append(_stroke(box, annotation.color or style.border_color, max(mapper.scale, 1.0)))

    def _paint_highlight(
        self, annotation: Annotation, mapper: CoordinateMapper, shapes: List[Any]
    ) -> None:
        style = (annotation.style or HighlightStyle()).merged_over(self.config.highlight)
        color = style.background_color
        if annotation.style is None and annotation.color:
            color = annotation.color
        box = mapper.rect_to_view(annotation.rect)
        shapes.append(
            _fill(box.left, box.top, box.width, box.height, color, style.background_opacity)
        )
        if style.border_width:
            shapes.append(_stroke(box, style.border_color, style.border_width * mapper.scale))

    def _paint_free_text(
        self, annotation: Annotation, mapper: CoordinateMapper, shapes: List[Any]
    ) -> None:
        style = self.config.freetext
        styling: Dict[str, Any] = parse_stamp_styling(annotation.subject) or {}
        box = mapper.rect_to_view(annotation.rect)
        scale = mapper.scale

        background = styling.get("background_color") or style.background_color
        shapes.append(
            _fill(box.left, box.top, box.width, box.height, background, style.background_opacity)
        )
        border_width = styling.get("border_size")
        if border_width is None:
            border_width = style.border_width
        if border_width:
            shapes.append(_stroke(box, style.border_color, border_width * scale))

        if not annotation.contents:
            return
        text_style = ft.TextStyle(
            size=(styling.get("font_size") or style.font_size) * scale,
            color=styling.get("font_color") or annotation.color or style.text_color,
            font_family=styling.get("font_name") or style.font_family,
        )
        if styling.get("font_weight") == "bold":
            text_style.weight = ft.FontWeight.BOLD
        if styling.get("font_style") == "italic":
            text_style.italic = True
        shapes.append(
            cv.Text(
                x=box.left + style.padding_horizontal * scale,
                y=box.top + style.padding_vertical * scale,
                text=annotation.contents,
                style=text_style,
                max_width=max(box.width - 2 * style.padding_horizontal * scale, 1.0),
            )
        )

    def _paint_bookmark(
        self, annotation: Annotation, mapper: CoordinateMapper, shapes: List[Any]
    ) -> None:
        box = mapper.rect_to_view(annotation.rect)
        shapes.append(_stroke(box, annotation.color or BOOKMARK_COLOR, 1.0, dashes=[4, 3]))

    # Gesture preview

    def _render_gesture(
        self, machine: InteractionStateMachine, mapper: CoordinateMapper, shapes: List[Any]
    ) -> None:
        rect = machine.preview_rect()
        if rect is None:
            return
        box = mapper.rect_to_view(rect)
        state = machine.gesture

        if state.mode == GestureMode.DRAWING:
            color = _PREVIEW_COLORS.get(state.tool, HANDLE_COLOR)
            shapes.append(_fill(box.left, box.top, box.width, box.height, color, 0.15))
            shapes.append(_stroke(box, color, 1.0, dashes=[5, 3]))
            return

        target = machine.collection.get(state.target_id)
        if target is not None:
            self._painters[target.type](replace(target, rect=rect), mapper, shapes)
        shapes.append(_stroke(box, HANDLE_COLOR, 1.0, dashes=[5, 3]))
        self._render_handles(box, machine.config.interaction.handle_size_px, shapes)

    def _render_handles(self, box: ViewRect, handle_size: float, shapes: List[Any]) -> None:
        # Drawn at the full hit zone, handle_size either side of the centre
        for x, y in handle_positions(box).values():
            shapes.append(
                cv.Rect(
                    x=x - handle_size,
                    y=y - handle_size,
                    width=handle_size * 2,
                    height=handle_size * 2,
                    paint=ft.Paint(color=HANDLE_COLOR, style=ft.PaintingStyle.FILL),
                )
            )
