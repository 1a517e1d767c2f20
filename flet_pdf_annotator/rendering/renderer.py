"""
Page rasterizer - renders a PDF page to a Flet image and reports its viewport.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import flet as ft

from ..backends.base import PageBackend
from ..types import PageViewport

logger = logging.getLogger(__name__)


@dataclass
class RasterizedPage:
    """A rendered page and the viewport the overlay must use with it."""

    image: ft.Image
    viewport: PageViewport


class PageRasterizer:
    """Renders pages to PNG images, caching the latest render per page."""

    def __init__(self, scale: float = 1.0, rotation: int = 0):
        self.scale = scale
        self.rotation = rotation
        self._cache: Dict[int, Tuple[Tuple[float, int], str]] = {}

    def render(self, page: PageBackend) -> RasterizedPage:
        """Rasterize *page* at the current scale and rotation."""
        viewport = page.get_viewport(self.scale, self.rotation)
        key = (self.scale, self.rotation)

        cached = self._cache.get(page.index)
        if cached is not None and cached[0] == key:
            encoded = cached[1]
        else:
            png = page.render_png(self.scale, self.rotation)
            encoded = base64.b64encode(png).decode("ascii")
            self._cache[page.index] = (key, encoded)
            logger.debug(
                "Rasterized page %s at scale %s rotation %s", page.index, self.scale, self.rotation
            )

        image = ft.Image(
            src_base64=encoded,
            width=viewport.pixel_width,
            height=viewport.pixel_height,
            fit=ft.ImageFit.FILL,
        )
        return RasterizedPage(image=image, viewport=viewport)

    def invalidate(self, page_index: Optional[int] = None) -> None:
        """Drop cached renders, e.g. after annotations were embedded."""
        if page_index is None:
            self._cache.clear()
        else:
            self._cache.pop(page_index, None)
