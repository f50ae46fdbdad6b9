"""Read-only resolution of keys that live outside the attribute tables.

Rating, tags and color labels are exposed under their XMP names but are
stored by other subsystems; they are never written from here.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any

from catalog_metadata.db import is_valid_entity_id

logger = logging.getLogger(__name__)

RATING_KEY = "Xmp.xmp.Rating"
SUBJECT_KEY = "Xmp.dc.subject"
COLORLABELS_KEY = "Xmp.darktable.colorlabels"

VIRTUAL_KEYS = (RATING_KEY, SUBJECT_KEY, COLORLABELS_KEY)

# rating stars occupy the low bits of images.flags
RATING_MASK = 0x7

_SELECTION = "(SELECT imgid FROM selected_images)"


def decode_rating(flags: int) -> int:
    return (flags & RATING_MASK) - 1


class VirtualKeyResolver:
    """Resolves rating, tag and color-label keys for one entity or the selection.

    An invalid entity id (``None``, zero, negative) means "the current
    selection".
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def is_virtual(self, key: str | None) -> bool:
        return bool(key) and key.startswith(VIRTUAL_KEYS)

    def resolve(self, entity_id: int | None, key: str | None) -> tuple[list[Any], int]:
        """Values for ``key`` and their count; ``([], 0)`` for other keys."""
        if not key:
            return [], 0
        if key.startswith(RATING_KEY):
            values = self._ratings(entity_id)
        elif key.startswith(SUBJECT_KEY):
            values = self._tags(entity_id)
        elif key.startswith(COLORLABELS_KEY):
            values = self._color_labels(entity_id)
        else:
            logger.debug(f"Not a virtual key: {key!r}")
            return [], 0
        return values, len(values)

    def _ratings(self, entity_id: int | None) -> list[int]:
        if is_valid_entity_id(entity_id):
            rows = self._conn.execute(
                "SELECT flags FROM images WHERE id = ?", (entity_id,)
            ).fetchall()
        else:
            rows = self._conn.execute(
                f"SELECT flags FROM images WHERE id IN {_SELECTION}"
            ).fetchall()
        return [decode_rating(row[0]) for row in rows]

    def _tags(self, entity_id: int | None) -> list[str]:
        sql = (
            "SELECT t.name FROM tags t "
            "JOIN tagged_images i ON i.tagid = t.id "
        )
        if is_valid_entity_id(entity_id):
            rows = self._conn.execute(
                sql + "WHERE i.imgid = ?", (entity_id,)
            ).fetchall()
        else:
            rows = self._conn.execute(
                sql + f"WHERE i.imgid IN {_SELECTION}"
            ).fetchall()
        return [row[0] for row in rows]

    def _color_labels(self, entity_id: int | None) -> list[int]:
        if is_valid_entity_id(entity_id):
            rows = self._conn.execute(
                "SELECT color FROM color_labels WHERE imgid = ? ORDER BY color",
                (entity_id,),
            ).fetchall()
        else:
            rows = self._conn.execute(
                f"SELECT color FROM color_labels WHERE imgid IN {_SELECTION}"
            ).fetchall()
        return [row[0] for row in rows]
