"""
Highlight registry - programmatic highlights keyed by document coordinates.

Hosts use it to mark regions found elsewhere (e.g. by a text search). Only
highlights created here are ever removed here; user-drawn annotations in the
same collection are left alone.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional, Set

from ..collection import AnnotationCollection
from ..types import Annotation, AnnotationType, HighlightStyle, Rect, RectLike

logger = logging.getLogger(__name__)

REGISTRY_SUBJECT = "highlight_region"


class HighlightRegistry:
    """Creates, removes and clears registry-owned Highlight annotations."""

    def __init__(
        self,
        collection: AnnotationCollection,
        defaults: Optional[HighlightStyle] = None,
        author: str = "User",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.collection = collection
        self.defaults = defaults or HighlightStyle()
        self.author = author
        self._clock = clock
        self._owned: Set[str] = set()

    def __len__(self) -> int:
        return len(self.owned_ids)

    @property
    def owned_ids(self) -> Set[str]:
        """Ids of registry-owned highlights still present in the collection."""
        return {i for i in self._owned if i in self.collection}

    def owns(self, annotation_id: str) -> bool:
        return annotation_id in self._owned and annotation_id in self.collection

    def create(
        self,
        page_index: int,
        rect: RectLike,
        style: Optional[HighlightStyle] = None,
    ) -> str:
        """Add a highlight over *rect* (document space) and return its id."""
        resolved = (style or HighlightStyle()).merged_over(self.defaults)
        now = self._clock() if self._clock else datetime.now(timezone.utc)
        annotation = Annotation(
            id=str(uuid.uuid4()),
            type=AnnotationType.HIGHLIGHT,
            page_index=page_index,
            rect=Rect.of(rect),
            author=self.author,
            date=now.replace(microsecond=0).isoformat(),
            color=resolved.background_color,
            subject=REGISTRY_SUBJECT,
            style=resolved,
        )
        self._owned.add(annotation.id)
        self.collection.add(annotation)
        self._forget_unreachable()
        logger.debug("Highlight %s created on page %s", annotation.id, page_index)
        return annotation.id

    def remove(self, annotation_id: str) -> bool:
        """Remove a registry-owned highlight; False if unknown or user-drawn."""
        if annotation_id not in self._owned:
            return False
        removed = self.collection.remove(annotation_id)
        self._forget_unreachable()
        return removed

    def clear_all(self) -> int:
        """Remove every registry-owned highlight; returns how many were removed."""
        owned = [a.id for a in self.collection if a.id in self._owned]
        removed = self.collection.remove_many(owned)
        self._forget_unreachable()
        if removed:
            logger.debug("Cleared %s highlights", removed)
        return removed

    # Host-facing names

    def highlight_region(
        self,
        page_index: int,
        rect: RectLike,
        style: Optional[HighlightStyle] = None,
    ) -> str:
        return self.create(page_index, rect, style)

    def remove_highlight(self, annotation_id: str) -> bool:
        return self.remove(annotation_id)

    def clear_all_highlights(self) -> None:
        self.clear_all()

    # Private methods

    def _forget_unreachable(self) -> None:
        # Removed ids stay owned while undo can bring them back
        self._owned &= self.collection.restorable_ids()
