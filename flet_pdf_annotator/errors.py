"""
Exceptions raised by the annotator core.
"""

from __future__ import annotations

from typing import Optional

from .types import InterchangeImport


class AnnotatorError(Exception):
    """Base class for annotator errors."""


class InvalidViewport(AnnotatorError, ValueError):
    """Viewport with zero size, non-positive scale or unsupported rotation."""


class ViewportNotReady(AnnotatorError, RuntimeError):
    """An overlay was used before the renderer supplied a viewport."""


class GestureIgnored(AnnotatorError):
    """Pointer event arrived in a state that cannot accept it.

    Raised by the state machine's guards and swallowed (logged) by the
    public pointer methods; hosts never see it.
    """


class MalformedInterchangeDocument(AnnotatorError, ValueError):
    """An interchange document could not be parsed at all."""

    def __init__(self, message: str, partial: Optional[InterchangeImport] = None):
        super().__init__(message)
        self.partial = partial if partial is not None else InterchangeImport()

    @property
    def skipped(self) -> list:
        return self.partial.skipped
