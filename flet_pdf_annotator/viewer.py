"""
Annotation viewer - Flet control composing the page raster, the annotation
overlay and the interaction state machine.

Flet gesture events are mapped onto the pointer contract:
pan start/update/end -> pointer_down/move/up, tap -> a zero-length gesture,
leaving the surface or pressing Escape -> pointer_cancel.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Optional, Tuple

import flet as ft
import flet.canvas as cv

from .backends.base import DocumentBackend
from .collection import AnnotationCollection
from .config import AnnotatorConfig
from .interactions.gestures import InteractionStateMachine
from .interactions.highlights import HighlightRegistry
from .rendering.overlay import OverlayRenderer
from .rendering.renderer import PageRasterizer
from .stamps import CustomStamp
from .suffix import TextSuffixFormatter
from .types import Annotation, Bookmark, HighlightStyle, InterchangeImport, RectLike, Tool
from .xfdf import parse_document, to_document

logger = logging.getLogger(__name__)


class AnnotationViewer:
    """
    Single-page PDF annotation viewer.

    Usage:
        from flet_pdf_annotator import AnnotationViewer, PdfDocument, Tool

        document = PdfDocument("/path/to/file.pdf")
        viewer = AnnotationViewer(document)
        viewer.set_tool(Tool.HIGHLIGHT)
        page.on_keyboard_event = viewer.handle_keyboard_event
        page.add(viewer.control)
    """

    def __init__(
        self,
        source=None,
        collection: Optional[AnnotationCollection] = None,
        config: Optional[AnnotatorConfig] = None,
        current_page: int = 0,
        scale: float = 1.0,
        rotation: int = 0,
        bgcolor: str = "#ffffff",
        on_annotation_create: Optional[Callable[[Annotation], None]] = None,
        on_annotation_update: Optional[Callable[[Annotation], None]] = None,
        on_annotation_delete: Optional[Callable[[str], None]] = None,
        on_annotation_click: Optional[Callable[[str], None]] = None,
        on_page_change: Optional[Callable[[int], None]] = None,
    ):
        # PdfDocument wraps a backend; accept either
        self._source: Optional[DocumentBackend] = getattr(source, "backend", source)
        self._current_page = current_page
        self._scale = scale
        self._rotation = rotation % 360
        self._bgcolor = bgcolor
        self._on_page_change = on_page_change
        self._on_annotation_click = on_annotation_click
        self._host_create = on_annotation_create
        self._host_update = on_annotation_update
        self._host_delete = on_annotation_delete

        self.config = config or AnnotatorConfig()
        self.formatter = TextSuffixFormatter(self.config.suffix)

        self._collection = collection if collection is not None else AnnotationCollection()
        # A shared collection keeps its own callbacks unless the viewer is given new ones
        self._host_create = self._host_create or self._collection.on_annotation_create
        self._host_update = self._host_update or self._collection.on_annotation_update
        self._host_delete = self._host_delete or self._collection.on_annotation_delete
        self._collection.on_annotation_create = self._handle_create
        self._collection.on_annotation_update = self._handle_update
        self._collection.on_annotation_delete = self._handle_delete

        # Components
        self._rasterizer = PageRasterizer(scale, self._rotation)
        self._overlay_renderer = OverlayRenderer(self.config)
        self._machines: Dict[int, InteractionStateMachine] = {}
        self._highlights = HighlightRegistry(
            self._collection, self.config.highlight, author=self.config.interaction.author
        )
        self._tool = Tool.NONE
        self._stamp: Optional[CustomStamp] = None

        # UI state
        self._wrapper: Optional[ft.Container] = None
        self._page_stack: Optional[ft.Stack] = None
        self._overlay: Optional[cv.Canvas] = None

        self._build()

    # Properties

    @property
    def control(self) -> ft.Control:
        """The Flet control to add to a page."""
        return self._wrapper

    @property
    def collection(self) -> AnnotationCollection:
        """All annotations shown by this viewer."""
        return self._collection

    @property
    def highlights(self) -> HighlightRegistry:
        return self._highlights

    @property
    def machine(self) -> InteractionStateMachine:
        """State machine of the current page."""
        return self._machine_for(self._current_page)

    @property
    def current_page(self) -> int:
        """Current page index (0-based)."""
        return self._current_page

    @current_page.setter
    def current_page(self, value: int):
        if self._source and 0 <= value < self._source.page_count:
            self.machine.pointer_cancel()
            self._current_page = value
            self._update_content()
            if self._on_page_change:
                self._on_page_change(value)

    @property
    def scale(self) -> float:
        """Zoom scale."""
        return self._scale

    @scale.setter
    def scale(self, value: float):
        self._scale = max(0.1, min(10.0, value))
        self._rasterizer.scale = self._scale
        self._update_content()

    @property
    def rotation(self) -> int:
        """View rotation added to the page's own rotation."""
        return self._rotation

    @rotation.setter
    def rotation(self, value: int):
        self._rotation = value % 360
        self._rasterizer.rotation = self._rotation
        self._update_content()

    @property
    def page_count(self) -> int:
        """Total number of pages."""
        return self._source.page_count if self._source else 0

    @property
    def tool(self) -> Tool:
        return self._tool

    # Navigation

    def next_page(self) -> bool:
        if self._current_page < self.page_count - 1:
            self.current_page = self._current_page + 1
            return True
        return False

    def previous_page(self) -> bool:
        if self._current_page > 0:
            self.current_page = self._current_page - 1
            return True
        return False

    def goto(self, page_index: int) -> bool:
        if 0 <= page_index < self.page_count:
            self.current_page = page_index
            return True
        return False

    def zoom_in(self, factor: float = 1.25):
        self.scale = self._scale * factor

    def zoom_out(self, factor: float = 1.25):
        self.scale = self._scale / factor

    # Tools and editing

    def set_tool(self, tool: Tool, stamp: Optional[CustomStamp] = None) -> None:
        """Select the drawing tool for every page."""
        if tool == Tool.STAMP and stamp is None:
            raise ValueError("The stamp tool needs a stamp")
        self._tool = tool
        self._stamp = stamp
        for machine in self._machines.values():
            machine.set_tool(tool, stamp)
        self._update_overlay()

    def cancel_gesture(self) -> None:
        self.machine.pointer_cancel()
        self._update_overlay()

    def edit_text(self, annotation_id: str, text: str) -> Optional[Annotation]:
        """Replace an annotation's text, re-applying configured suffixes."""
        annotation = self._collection.get(annotation_id)
        if annotation is None:
            return None
        return self._machine_for(annotation.page_index).edit_text(annotation_id, text)

    def delete_annotation(self, annotation_id: str) -> bool:
        return self._collection.remove(annotation_id)

    def undo(self) -> bool:
        return self._collection.undo()

    def redo(self) -> bool:
        return self._collection.redo()

    # Highlight API

    def highlight_region(
        self,
        page_index: int,
        rect: RectLike,
        style: Optional[HighlightStyle] = None,
    ) -> str:
        return self._highlights.create(page_index, rect, style)

    def remove_highlight(self, annotation_id: str) -> bool:
        return self._highlights.remove(annotation_id)

    def clear_all_highlights(self) -> None:
        self._highlights.clear_all()

    # Interchange

    def export_xfdf(
        self, bookmarks: Iterable[Bookmark] = (), source_filename: str = "document.pdf"
    ) -> str:
        return to_document(self._collection, bookmarks, source_filename)

    def import_xfdf(self, text: str, replace: bool = False) -> InterchangeImport:
        """Load annotations from an XFDF document into the collection."""
        result = parse_document(text)
        if replace:
            self._collection.replace_all(result.annotations)
        else:
            for annotation in result.annotations:
                self._collection.add(annotation)
        return result

    # Keyboard

    def handle_keyboard_event(self, e: ft.KeyboardEvent) -> None:
        """Escape cancels the gesture in flight; Ctrl+Z / Ctrl+Y undo and redo."""
        key = (e.key or "").lower()
        if key == "escape":
            self.cancel_gesture()
        elif e.ctrl and key == "z":
            self.undo()
        elif e.ctrl and key == "y":
            self.redo()

    # Private methods

    def _machine_for(self, page_index: int) -> InteractionStateMachine:
        machine = self._machines.get(page_index)
        if machine is None:
            machine = InteractionStateMachine(
                page_index,
                self._collection,
                self.config,
                formatter=self.formatter,
                on_annotation_click=self._handle_click,
            )
            if self._tool != Tool.NONE:
                machine.set_tool(self._tool, self._stamp)
            self._machines[page_index] = machine
        return machine

    def _build(self):
        """Build the viewer UI."""
        self._overlay = cv.Canvas(shapes=[])
        self._page_stack = ft.Stack(controls=[])

        gesture_detector = ft.GestureDetector(
            content=self._page_stack,
            on_pan_start=self._on_pan_start,
            on_pan_update=self._on_pan_update,
            on_pan_end=self._on_pan_end,
            on_tap_up=self._on_tap_up,
            on_exit=self._on_exit,
            drag_interval=10,
        )

        self._wrapper = ft.Container(content=gesture_detector, bgcolor=self._bgcolor)
        self._update_content()

    def _update_content(self):
        """Rasterize the current page and rebuild the stack."""
        if not self._wrapper or not self._page_stack:
            return

        if not self._source:
            self._page_stack.controls = []
        else:
            page = self._source.get_page(self._current_page)
            rendered = self._rasterizer.render(page)
            self.machine.set_viewport(rendered.viewport)

            self._overlay.width = rendered.viewport.pixel_width
            self._overlay.height = rendered.viewport.pixel_height
            self._page_stack.width = rendered.viewport.pixel_width
            self._page_stack.height = rendered.viewport.pixel_height
            self._page_stack.controls = [rendered.image, self._overlay]
            self._refresh_shapes()

        if self._wrapper.page:
            self._wrapper.update()

    def _refresh_shapes(self):
        machine = self.machine
        if not machine.has_viewport:
            self._overlay.shapes = []
            return
        self._overlay.shapes = self._overlay_renderer.render(
            self._collection.for_page(self._current_page), machine.mapper, machine
        )

    def _update_overlay(self):
        if not self._overlay or not self._source:
            return
        self._refresh_shapes()
        if self._wrapper and self._wrapper.page:
            self._overlay.update()

    # Event handlers

    def _on_pan_start(self, e: ft.DragStartEvent):
        if not self._source:
            return
        self.machine.pointer_down((e.local_x, e.local_y))
        self._update_overlay()

    def _on_pan_update(self, e: ft.DragUpdateEvent):
        if not self._source:
            return
        self.machine.pointer_move((e.local_x, e.local_y))
        self._update_overlay()

    def _on_pan_end(self, e: ft.DragEndEvent):
        if not self._source:
            return
        self.machine.pointer_up()
        self._update_overlay()

    def _on_tap_up(self, e: ft.TapEvent):
        if not self._source:
            return
        point: Tuple[float, float] = (e.local_x, e.local_y)
        machine = self.machine
        if self._tool == Tool.FREE_TEXT:
            machine.place_text(point)
        elif self._tool == Tool.STAMP and self._stamp is not None:
            machine.place_stamp(point, self._stamp)
        elif self._tool == Tool.NONE:
            # A tap is a zero-length gesture: reports a click on FreeText/Square
            machine.pointer_down(point)
            machine.pointer_up(point)

    def _on_exit(self, e):
        if self.machine.is_busy:
            self.cancel_gesture()

    # Collection callbacks

    def _handle_create(self, annotation: Annotation):
        self._update_overlay()
        if self._host_create:
            self._host_create(annotation)

    def _handle_update(self, annotation: Annotation):
        self._update_overlay()
        if self._host_update:
            self._host_update(annotation)

    def _handle_delete(self, annotation_id: str):
        self._update_overlay()
        if self._host_delete:
            self._host_delete(annotation_id)

    def _handle_click(self, annotation_id: str):
        logger.debug("Annotation %s clicked", annotation_id)
        if self._on_annotation_click:
            self._on_annotation_click(annotation_id)
