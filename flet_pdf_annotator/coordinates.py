"""
Coordinate mapper - converts between document space and view space.

Document space has its origin at the bottom-left of the unrotated page with Y
growing upward. View space is the rendered surface: origin top-left, Y growing
downward, scaled and rotated clockwise by the viewport rotation.

The forward transform (document -> view) is

    vx = a * x + c * y + e
    vy = b * x + d * y + f

with one coefficient set per rotation. Mappers are immutable: build a new one
whenever the viewport changes.
"""

from __future__ import annotations

import logging
import math
from typing import Tuple

from .errors import InvalidViewport
from .types import DocumentPoint, PageViewport, Rect, ViewPoint, ViewRect

logger = logging.getLogger(__name__)

# Absolute tolerance used when comparing round-tripped coordinates.
ROUND_TRIP_EPSILON = 1e-6


def _validate(viewport: PageViewport) -> None:
    if not viewport.page_width > 0 or not viewport.page_height > 0:
        raise InvalidViewport(
            f"Page size must be positive, got {viewport.page_width}x{viewport.page_height}"
        )
    if not viewport.scale > 0 or math.isinf(viewport.scale):
        raise InvalidViewport(f"Scale must be positive, got {viewport.scale}")
    if viewport.rotation % 90 != 0:
        raise InvalidViewport(
            f"Rotation must be a multiple of 90 degrees, got {viewport.rotation}"
        )
    if not viewport.pixel_width > 0 or not viewport.pixel_height > 0:
        raise InvalidViewport(
            f"Pixel size must be positive, got {viewport.pixel_width}x{viewport.pixel_height}"
        )


class CoordinateMapper:
    """Affine transform between document and view space for one viewport."""

    __slots__ = ("_viewport", "_forward", "_inverse")

    def __init__(self, viewport: PageViewport):
        _validate(viewport)
        self._viewport = viewport
        self._forward = self._build_forward(viewport)
        self._inverse = self._invert(self._forward)
        logger.debug(
            "Mapper built: %sx%s scale=%s rotation=%s",
            viewport.page_width,
            viewport.page_height,
            viewport.scale,
            viewport.rotation,
        )

    @staticmethod
    def _build_forward(
        viewport: PageViewport,
    ) -> Tuple[float, float, float, float, float, float]:
        s = viewport.scale
        w = viewport.page_width
        h = viewport.page_height
        rotation = viewport.rotation % 360

        if rotation == 0:
            # (x, y) -> (s*x, s*(h - y))
            return (s, 0.0, 0.0, -s, 0.0, s * h)
        if rotation == 90:
            # (x, y) -> (s*y, s*x)
            return (0.0, s, s, 0.0, 0.0, 0.0)
        if rotation == 180:
            # (x, y) -> (s*(w - x), s*y)
            return (-s, 0.0, 0.0, s, s * w, 0.0)
        # 270: (x, y) -> (s*(h - y), s*(w - x))
        return (0.0, -s, -s, 0.0, s * h, s * w)

    @staticmethod
    def _invert(
        m: Tuple[float, float, float, float, float, float],
    ) -> Tuple[float, float, float, float, float, float]:
        a, b, c, d, e, f = m
        det = a * d - b * c
        if det == 0:
            raise InvalidViewport("Degenerate transform")
        ia = d / det
        ib = -b / det
        ic = -c / det
        id_ = a / det
        ie = -(ia * e + ic * f)
        if_ = -(ib * e + id_ * f)
        return (ia, ib, ic, id_, ie, if_)

    @property
    def viewport(self) -> PageViewport:
        """The viewport this mapper was built from."""
        return self._viewport

    @property
    def scale(self) -> float:
        return self._viewport.scale

    def to_view(self, point: Tuple[float, float]) -> ViewPoint:
        """Convert a document-space point to view space."""
        a, b, c, d, e, f = self._forward
        x, y = point
        return ViewPoint(a * x + c * y + e, b * x + d * y + f)

    def to_doc(self, point: Tuple[float, float]) -> DocumentPoint:
        """Convert a view-space point to document space."""
        a, b, c, d, e, f = self._inverse
        x, y = point
        return DocumentPoint(a * x + c * y + e, b * x + d * y + f)

    def rect_to_view(self, rect: Rect) -> ViewRect:
        """Map a document rect to the view box covering it."""
        p1 = self.to_view((rect.x1, rect.y1))
        p2 = self.to_view((rect.x2, rect.y2))
        return ViewRect(
            left=min(p1.x, p2.x),
            top=min(p1.y, p2.y),
            right=max(p1.x, p2.x),
            bottom=max(p1.y, p2.y),
        )

    def rect_to_doc(self, box: ViewRect) -> Rect:
        """Map a view box to the normalized document rect covering it."""
        p1 = self.to_doc((box.left, box.top))
        p2 = self.to_doc((box.right, box.bottom))
        return Rect(
            min(p1.x, p2.x),
            min(p1.y, p2.y),
            max(p1.x, p2.x),
            max(p1.y, p2.y),
        )

    def clamp_view(self, point: Tuple[float, float]) -> ViewPoint:
        """Clamp a view point onto the rendered page surface."""
        x, y = point
        return ViewPoint(
            min(max(x, 0.0), self._viewport.pixel_width),
            min(max(y, 0.0), self._viewport.pixel_height),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CoordinateMapper):
            return NotImplemented
        return self._viewport == other._viewport

    def __hash__(self) -> int:
        return hash(self._viewport)

    def __repr__(self) -> str:
        return f"CoordinateMapper({self._viewport!r})"


def to_doc(point: Tuple[float, float], viewport: PageViewport) -> DocumentPoint:
    """Convert a view point to document space for *viewport*."""
    return CoordinateMapper(viewport).to_doc(point)


def to_view(point: Tuple[float, float], viewport: PageViewport) -> ViewPoint:
    """Convert a document point to view space for *viewport*."""
    return CoordinateMapper(viewport).to_view(point)
