"""
Annotation collection - the single source of truth for annotations.

Only the interaction state machine and the highlight registry write to it;
both run on the UI thread, so no locking is done here.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .types import Annotation

logger = logging.getLogger(__name__)

MAX_HISTORY = 50

AnnotationCallback = Callable[[Annotation], None]
DeleteCallback = Callable[[str], None]


class AnnotationCollection:
    """Ordered mapping of annotation id to Annotation.

    Insertion order is display order. Host callbacks fire synchronously after
    each mutation. Every mutation records a snapshot for undo/redo.
    """

    def __init__(
        self,
        annotations: Iterable[Annotation] = (),
        on_annotation_create: Optional[AnnotationCallback] = None,
        on_annotation_update: Optional[AnnotationCallback] = None,
        on_annotation_delete: Optional[DeleteCallback] = None,
        max_history: int = MAX_HISTORY,
    ):
        self._items: Dict[str, Annotation] = {a.id: a for a in annotations}
        self.on_annotation_create = on_annotation_create
        self.on_annotation_update = on_annotation_update
        self.on_annotation_delete = on_annotation_delete
        self._max_history = max(1, max_history)
        self._history: List[Tuple[Annotation, ...]] = [self._snapshot()]
        self._history_index = 0

    # Queries

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Annotation]:
        return iter(list(self._items.values()))

    def __contains__(self, annotation_id: object) -> bool:
        return annotation_id in self._items

    def get(self, annotation_id: str) -> Optional[Annotation]:
        return self._items.get(annotation_id)

    def for_page(self, page_index: int) -> List[Annotation]:
        """Annotations on one page, in display order."""
        return [a for a in self._items.values() if a.page_index == page_index]

    # Mutations

    def add(self, annotation: Annotation) -> Annotation:
        """Append *annotation*; an existing id is replaced in place."""
        existed = annotation.id in self._items
        self._items[annotation.id] = annotation
        self._record()
        if existed:
            self._fire_update(annotation)
        else:
            self._fire_create(annotation)
        return annotation

    def update(self, annotation_id: str, **changes) -> Optional[Annotation]:
        """Replace fields of an annotation; returns None for an unknown id."""
        current = self._items.get(annotation_id)
        if current is None:
            logger.debug("Update of unknown annotation %s ignored", annotation_id)
            return None
        changes.pop("id", None)
        updated = dataclasses.replace(current, **changes)
        self._items[annotation_id] = updated
        self._record()
        self._fire_update(updated)
        return updated

    def remove(self, annotation_id: str) -> bool:
        """Delete an annotation; returns False for an unknown id."""
        if annotation_id not in self._items:
            logger.debug("Removal of unknown annotation %s ignored", annotation_id)
            return False
        del self._items[annotation_id]
        self._record()
        self._fire_delete(annotation_id)
        return True

    def remove_many(self, annotation_ids: Iterable[str]) -> int:
        """Delete several annotations as one history step; returns the count removed."""
        removed = [i for i in annotation_ids if self._items.pop(i, None) is not None]
        if removed:
            self._record()
            for annotation_id in removed:
                self._fire_delete(annotation_id)
        return len(removed)

    def clear(self) -> None:
        """Remove every annotation."""
        self.remove_many(list(self._items))

    def replace_all(self, annotations: Iterable[Annotation]) -> None:
        """Swap the whole content, e.g. after an import."""
        self._apply(tuple(annotations))
        self._record()

    # History

    @property
    def can_undo(self) -> bool:
        return self._history_index > 0

    @property
    def can_redo(self) -> bool:
        return self._history_index < len(self._history) - 1

    def restorable_ids(self) -> Set[str]:
        """Ids present now or in any snapshot undo/redo can still reach."""
        return {a.id for snapshot in self._history for a in snapshot}

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self._history_index -= 1
        self._apply(self._history[self._history_index])
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self._history_index += 1
        self._apply(self._history[self._history_index])
        return True

    # Private methods

    def _snapshot(self) -> Tuple[Annotation, ...]:
        return tuple(self._items.values())

    def _record(self) -> None:
        history = self._history[: self._history_index + 1]
        history.append(self._snapshot())
        if len(history) > self._max_history:
            history = history[-self._max_history :]
        self._history = history
        self._history_index = len(history) - 1

    def _apply(self, snapshot: Tuple[Annotation, ...]) -> None:
        """Make *snapshot* current and notify the host of the difference."""
        before = self._items
        self._items = {a.id: a for a in snapshot}

        for annotation_id in before:
            if annotation_id not in self._items:
                self._fire_delete(annotation_id)
        for annotation in self._items.values():
            previous = before.get(annotation.id)
            if previous is None:
                self._fire_create(annotation)
            elif previous != annotation:
                self._fire_update(annotation)

    def _fire_create(self, annotation: Annotation) -> None:
        if self.on_annotation_create:
            self.on_annotation_create(annotation)

    def _fire_update(self, annotation: Annotation) -> None:
        if self.on_annotation_update:
            self.on_annotation_update(annotation)

    def _fire_delete(self, annotation_id: str) -> None:
        if self.on_annotation_delete:
            self.on_annotation_delete(annotation_id)
