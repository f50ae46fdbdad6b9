"""Which entities an action applies to when the caller names none."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable

from catalog_metadata import db as _db


class Selection:
    """The current multi-selection plus the entity under the cursor."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self.hovered: int | None = None

    def selected(self) -> list[int]:
        return _db.get_selected(self._conn)

    def select(self, entity_ids: Iterable[int]) -> None:
        with self._conn:
            _db.set_selected(self._conn, entity_ids)

    def deselect(self, entity_ids: Iterable[int]) -> None:
        with self._conn:
            _db.set_selected(self._conn, entity_ids, selected=False)

    def clear(self) -> None:
        with self._conn:
            _db.clear_selection(self._conn)

    def get_entities(self) -> list[int]:
        """Entities to act on.

        A hovered entity outside the selection wins; otherwise the
        selection.
        """
        selected = self.selected()
        if _db.is_valid_entity_id(self.hovered):
            if self.hovered not in selected:
                return [self.hovered]
        return selected
