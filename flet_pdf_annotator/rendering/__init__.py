"""
Rendering - page rasterization and the annotation overlay.
"""

from .overlay import OverlayRenderer
from .renderer import PageRasterizer, RasterizedPage

__all__ = ["OverlayRenderer", "PageRasterizer", "RasterizedPage"]
