"""In-memory registry of attribute definitions."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator

from catalog_metadata import db as _db
from catalog_metadata.config import ConfigStore, import_flag_setting
from catalog_metadata.models import AttributeDefinition, MetadataFlag

logger = logging.getLogger(__name__)


class AttributeRegistry:
    """Process-wide cache of attribute definitions, kept in display order.

    ``lock`` serialises the import thread and the interactive thread. It is
    not reentrant: code holding it must not call :meth:`load`, :meth:`add`,
    :meth:`sort` or :meth:`get_tagname_by_subkey`, which take it themselves.
    """

    def __init__(self, conn: sqlite3.Connection, config: ConfigStore) -> None:
        self._conn = conn
        self._config = config
        self._definitions: list[AttributeDefinition] = []
        self.lock = threading.Lock()

    def __iter__(self) -> Iterator[AttributeDefinition]:
        return iter(list(self._definitions))

    def __len__(self) -> int:
        return len(self._definitions)

    def definitions(self) -> list[AttributeDefinition]:
        return list(self._definitions)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Replace the in-memory set with the store's, by display order."""
        definitions = _db.select_definitions(self._conn)
        with self.lock:
            self._definitions = definitions
        for definition in definitions:
            self._set_default_import_flag(definition)
        logger.info(f"Loaded {len(definitions)} attribute definitions")

    def sort(self) -> None:
        with self.lock:
            self._definitions.sort(key=lambda d: d.display_order)

    def add(self, definition: AttributeDefinition) -> bool:
        """Register a new definition.

        Returns False when the store rejects it (duplicate tag name); the
        in-memory list is only touched after the store has confirmed.
        """
        try:
            with self._conn:
                _db.insert_definition(self._conn, definition)
        except sqlite3.IntegrityError as e:
            logger.warning(
                f"Cannot register attribute {definition.tagname!r}: {e}"
            )
            return False

        key = _db.get_definition_key(self._conn, definition.tagname)
        if key is None:
            return False

        definition.id = key
        with self.lock:
            self._definitions.insert(0, definition)
        self._set_default_import_flag(definition)
        logger.debug(f"Registered attribute {definition.tagname!r} as {key}")
        return True

    def _set_default_import_flag(self, definition: AttributeDefinition) -> None:
        setting = import_flag_setting(definition.subkey)
        if not self._config.key_exists(setting):
            # imported by default, ignored unless sidecar writing is off
            self._config.set_int(setting, MetadataFlag.IMPORTED)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_by_id(self, key_id: int) -> AttributeDefinition | None:
        for definition in self._definitions:
            if definition.id == key_id:
                return definition
        return None

    def get_by_tagname(self, tagname: str | None) -> AttributeDefinition | None:
        for definition in self._definitions:
            if definition.tagname == tagname:
                return definition
        return None

    def get_keyid(self, key: str | None) -> int | None:
        """Id of the first definition whose tag name is a prefix of ``key``.

        Registry order breaks ties, so ``"a.b"`` answers a query for
        ``"a.bc"`` when it comes first.
        """
        if not key:
            return None
        for definition in self._definitions:
            if key.startswith(definition.tagname):
                return definition.id
        return None

    def get_tagname(self, key_id: int) -> str | None:
        definition = self.get_by_id(key_id)
        return definition.tagname if definition else None

    def get_tagname_by_subkey(self, subkey: str | None) -> str | None:
        if not subkey:
            return None
        with self.lock:
            for definition in self._definitions:
                if definition.subkey == subkey:
                    return definition.tagname
        return None
