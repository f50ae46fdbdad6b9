"""
Undo stack for catalog-metadata.

Each recorded item carries an opaque payload and a replay function. Items
recorded between :meth:`UndoStack.start_group` and :meth:`UndoStack.end_group`
are undone and redone together.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from catalog_metadata.models import UndoAction, UndoType

logger = logging.getLogger(__name__)

ReplayFn = Callable[[Any, UndoAction], list[int]]
FreeFn = Callable[[], None]


@dataclass
class _UndoItem:
    kind: UndoType
    payload: Any
    replay: ReplayFn
    free: FreeFn | None = None

    def release(self) -> None:
        if self.free is not None:
            self.free()


@dataclass
class _UndoUnit:
    kind: UndoType
    items: list[_UndoItem] = field(default_factory=list)

    def release(self) -> None:
        for item in self.items:
            item.release()


class UndoStack:
    """Bounded undo/redo history of grouped items."""

    def __init__(self, max_depth: int = 100) -> None:
        self.max_depth = max_depth
        self._undo: list[_UndoUnit] = []
        self._redo: list[_UndoUnit] = []
        self._group: _UndoUnit | None = None
        self._group_depth = 0

    def __len__(self) -> int:
        return len(self._undo)

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    def start_group(self, kind: UndoType) -> None:
        self._group_depth += 1
        if self._group_depth == 1:
            self._group = _UndoUnit(kind)

    def end_group(self) -> None:
        if self._group_depth == 0:
            logger.warning("end_group() without start_group()")
            return
        self._group_depth -= 1
        if self._group_depth == 0:
            group, self._group = self._group, None
            if group is not None and group.items:
                self._push(group)

    def record(
        self,
        kind: UndoType,
        payload: Any,
        replay: ReplayFn,
        free: FreeFn | None = None,
    ) -> None:
        """Record one item; outside a group it becomes its own unit."""
        item = _UndoItem(kind, payload, replay, free)
        if self._group is not None:
            self._group.items.append(item)
        else:
            self._push(_UndoUnit(kind, [item]))

    def _push(self, unit: _UndoUnit) -> None:
        for stale in self._redo:
            stale.release()
        self._redo.clear()
        self._undo.append(unit)
        while len(self._undo) > self.max_depth:
            evicted = self._undo.pop(0)
            evicted.release()
            logger.debug(f"Evicted {evicted.kind.value} undo entry")

    def undo(self) -> list[int]:
        """Undo the most recent unit; returns the affected entity ids."""
        if not self._undo:
            return []
        unit = self._undo.pop()
        affected: list[int] = []
        for item in reversed(unit.items):
            affected.extend(item.replay(item.payload, UndoAction.UNDO))
        self._redo.append(unit)
        logger.debug(f"Undid {unit.kind.value} entry for {len(affected)} entities")
        return affected

    def redo(self) -> list[int]:
        """Redo the most recently undone unit; returns the affected entity ids."""
        if not self._redo:
            return []
        unit = self._redo.pop()
        affected: list[int] = []
        for item in unit.items:
            affected.extend(item.replay(item.payload, UndoAction.REDO))
        self._undo.append(unit)
        logger.debug(f"Redid {unit.kind.value} entry for {len(affected)} entities")
        return affected

    def cancel_group(self) -> None:
        """Drop the open group without recording it; the redo side is kept."""
        if self._group_depth == 0:
            logger.warning("cancel_group() without start_group()")
            return
        self._group_depth = 0
        group, self._group = self._group, None
        if group is not None:
            group.release()

    def clear(self) -> None:
        for unit in self._undo + self._redo:
            unit.release()
        self._undo.clear()
        self._redo.clear()
