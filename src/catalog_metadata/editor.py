"""MetadataEditor: main entry point for the catalog-metadata library."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Generator, Iterable, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from catalog_metadata import db as _db
from catalog_metadata import history as _hist
from catalog_metadata.config import ConfigStore, import_flag_setting
from catalog_metadata.diff import (
    cleanup_value,
    diff,
    find_key,
    merge_into,
    remove_from,
)
from catalog_metadata.models import (
    AttributeDefinition,
    EditRecord,
    KeyValue,
    MetadataDiff,
    MetadataFlag,
    MutationMode,
    Signal,
    Snapshot,
    UndoAction,
    UndoEntry,
    UndoGroup,
    UndoType,
    WriteSidecarMode,
)
from catalog_metadata.registry import AttributeRegistry
from catalog_metadata.selection import Selection
from catalog_metadata.signals import SignalBus
from catalog_metadata.undo import UndoStack
from catalog_metadata.virtual import VirtualKeyResolver

logger = logging.getLogger(__name__)

# (key id, value) pairs, or a mapping of key id to value
Payload = Iterable[KeyValue] | Iterable[tuple[int, str | None]] | Mapping[int, str | None]


def _as_pairs(payload: Any) -> list[KeyValue]:
    items = payload.items() if isinstance(payload, Mapping) else payload
    pairs: list[KeyValue] = []
    for item in items:
        key, value = (item.key, item.value) if isinstance(item, KeyValue) else item
        pairs.append(KeyValue(int(key), cleanup_value(value)))
    return pairs


def _as_keys(payload: Any) -> list[int]:
    if isinstance(payload, Mapping):
        return [int(k) for k in payload]
    return [p.key if isinstance(p, KeyValue) else int(p) for p in payload]


class MetadataEditor:
    """Bulk, undoable editing of entity attributes."""

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        *,
        config: ConfigStore | None = None,
        undo_stack: UndoStack | None = None,
        signals: SignalBus | None = None,
        selection: Selection | None = None,
    ) -> None:
        self._db_path = str(db_path)
        self._conn = _db.connect(db_path)
        _db.check_schema_version(self._conn)
        _db.init_db(self._conn)
        self._in_batch = False
        self._batch_depth = 0

        self.config = config if config is not None else ConfigStore()
        self.undo_stack = undo_stack if undo_stack is not None else UndoStack()
        self.signals = signals if signals is not None else SignalBus()
        self.selection = (
            selection if selection is not None else Selection(self._conn)
        )
        self.registry = AttributeRegistry(self._conn, self.config)
        self.virtual = VirtualKeyResolver(self._conn)
        self.registry.load()

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> MetadataEditor:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def batch(self) -> Generator[None, None, None]:
        """Group multiple mutations into a single transaction.

        Outside a batch every entity is its own unit of work and a failed
        write is logged and skipped; inside one, it aborts the whole batch.
        """
        self._batch_depth += 1
        if self._batch_depth == 1:
            self._in_batch = True
            self._conn.execute("BEGIN")
        try:
            yield
        except BaseException:
            if self._batch_depth == 1:
                self._conn.rollback()
                self._in_batch = False
            self._batch_depth -= 1
            raise
        else:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self._conn.commit()
                self._in_batch = False

    @contextmanager
    def _unit_of_work(self) -> Generator[None, None, None]:
        if self._in_batch:
            yield
            return
        with self._conn:
            yield

    # ------------------------------------------------------------------
    # Attribute definitions
    # ------------------------------------------------------------------

    def add_definition(
        self,
        tagname: str,
        name: str,
        *,
        internal: bool = False,
        visible: bool = True,
        private: bool = False,
        display_order: int = 0,
    ) -> AttributeDefinition | None:
        """Register a new attribute key; None when the tag name is taken."""
        definition = AttributeDefinition(
            tagname=tagname,
            name=name,
            internal=internal,
            visible=visible,
            private=private,
            display_order=display_order,
        )
        return definition if self.registry.add(definition) else None

    # ------------------------------------------------------------------
    # Mutation engine
    # ------------------------------------------------------------------

    def apply(
        self,
        entities: Iterable[int],
        payload: Payload | Iterable[int],
        mode: MutationMode | str,
        record_undo: bool = True,
    ) -> UndoGroup | None:
        """Apply ``payload`` to every entity under ``mode``.

        ``payload`` holds key ids and values for REPLACE and MERGE_ADD, and
        bare key ids for REMOVE_MATCHING. Entities are processed one by one;
        a failure on one does not undo the others. Returns the recorded
        undo group, or None when nothing was recorded. The stack holds its
        own copy, so eviction never empties the returned group.
        """
        entities = list(entities)
        if not entities:
            return None
        mode = MutationMode(mode)
        if mode == MutationMode.REMOVE_MATCHING:
            prepared: list[Any] = _as_keys(payload)
        else:
            prepared = _as_pairs(payload)

        group = UndoGroup(UndoType.METADATA) if record_undo else None
        if group is not None:
            self.undo_stack.start_group(UndoType.METADATA)
        try:
            for entity_id in entities:
                before = _db.get_snapshot(self._conn, entity_id)
                after = self._compute_after(before, prepared, mode)
                self._write(entity_id, before, after)
                if group is not None:
                    group.entries.append(UndoEntry(entity_id, before, after))
            if group is not None and group.entries:
                stored = UndoGroup(group.kind, list(group.entries))
                self.undo_stack.record(
                    UndoType.METADATA, stored, self._replay, stored.release
                )
        finally:
            if group is not None:
                self.undo_stack.end_group()
        return group

    @staticmethod
    def _compute_after(
        before: Snapshot, payload: list[Any], mode: MutationMode
    ) -> Snapshot:
        if mode == MutationMode.REPLACE:
            return list(payload)
        if mode == MutationMode.MERGE_ADD:
            return merge_into(before, payload)
        return remove_from(before, payload)

    def _write(
        self, entity_id: int, before: Snapshot, after: Snapshot
    ) -> MetadataDiff:
        """Persist the diff between two snapshots of one entity."""
        delta = diff(entity_id, before, after)
        if delta.is_empty:
            return delta
        try:
            with self._unit_of_work():
                _db.delete_values(self._conn, entity_id, delta.removals)
                for key in delta.removals:
                    old = before[find_key(before, key)].value
                    _hist.record_delete(self._conn, entity_id, key, old)
                _db.insert_values(self._conn, delta.insertions)
                _hist.record_insert(self._conn, delta.insertions)
        except sqlite3.Error as e:
            if self._in_batch:
                raise
            logger.error(f"Failed to write metadata of entity {entity_id}: {e}")
        else:
            logger.debug(
                f"Entity {entity_id}: removed keys {delta.removals}, "
                f"inserted {len(delta.insertions)} values"
            )
        return delta

    def _replay(self, group: UndoGroup, action: UndoAction) -> list[int]:
        """Undo or redo one group; returns the touched entity ids."""
        touched: list[int] = []
        for entity_id, before, after in group.pairs(action):
            self._write(entity_id, before, after)
            touched.append(entity_id)
        logger.debug(f"{action.value} of metadata on {len(touched)} entities")
        self.signals.emit(Signal.HOVER_METADATA_CHANGED, entity_ids=touched)
        return touched

    def undo(self) -> list[int]:
        return self.undo_stack.undo()

    def redo(self) -> list[int]:
        return self.undo_stack.redo()

    # ------------------------------------------------------------------
    # Setting values by tag name
    # ------------------------------------------------------------------

    def _target_entities(self, entities: Iterable[int] | None) -> list[int]:
        if entities is None:
            return self.selection.get_entities()
        return list(entities)

    def set(
        self,
        entity_id: int | None,
        key: str,
        value: str | None,
        undo: bool = True,
    ) -> UndoGroup | None:
        """Set one attribute on an entity, or on the selection for ``None``."""
        if not key:
            return None
        key_id = self.registry.get_keyid(key)
        if key_id is None:
            logger.debug(f"Not a registered attribute: {key!r}")
            return None
        if _db.is_valid_entity_id(entity_id):
            entities = [entity_id]
        else:
            entities = self.selection.get_entities()
        return self.apply(
            entities, [(key_id, value)], MutationMode.MERGE_ADD, undo
        )

    def set_list(
        self,
        entities: Iterable[int] | None,
        key_values: Mapping[str, str | None] | Iterable[tuple[str, str | None]],
        undo: bool = True,
    ) -> UndoGroup | None:
        """Merge several attributes, given by tag name, into many entities.

        Unknown keys and ``None`` values are skipped.
        """
        items = key_values.items() if isinstance(key_values, Mapping) else key_values
        payload: list[KeyValue] = []
        with self.registry.lock:
            for key, value in items:
                key_id = self.registry.get_keyid(key)
                if key_id is None:
                    logger.warning(f"Skipping unknown attribute {key!r}")
                    continue
                if value is None:
                    continue
                payload.append(KeyValue(key_id, cleanup_value(value)))

        targets = self._target_entities(entities)
        if not payload or not targets:
            return None
        return self.apply(targets, payload, MutationMode.MERGE_ADD, undo)

    def set_list_id(
        self,
        entities: Iterable[int],
        metadata: Payload,
        clear_on: bool,
        undo: bool = True,
    ) -> UndoGroup | None:
        """Write key-id pairs; ``clear_on`` replaces everything else."""
        mode = MutationMode.REPLACE if clear_on else MutationMode.MERGE_ADD
        return self.apply(entities, metadata, mode, undo)

    def clear(
        self, entities: Iterable[int] | None = None, undo: bool = True
    ) -> UndoGroup | None:
        """Remove every visible, non-internal attribute."""
        keys = [d.id for d in self.registry if not d.internal and d.visible]
        if not keys:
            return None
        return self.apply(
            self._target_entities(entities),
            keys,
            MutationMode.REMOVE_MATCHING,
            undo,
        )

    def set_import(
        self, entity_id: int, key: str, value: str | None
    ) -> bool:
        """Store a value read from an imported file, without undo.

        Only exact tag names are accepted. The value is kept when sidecar
        writing is enabled, or when the attribute is flagged for import.
        """
        if not key or not _db.is_valid_entity_id(entity_id):
            return False
        definition = self.registry.get_by_tagname(key)
        if definition is None:
            return False

        imported = self.config.write_sidecar_mode != WriteSidecarMode.NEVER
        if not imported and not definition.internal:
            flag = self.config.get_int(import_flag_setting(definition.subkey))
            imported = bool(flag & MetadataFlag.IMPORTED)
        if not imported:
            return False

        self.apply(
            [entity_id],
            [(definition.id, value)],
            MutationMode.MERGE_ADD,
            record_undo=False,
        )
        return True

    def set_import_locked(
        self, entity_id: int, key: str, value: str | None
    ) -> bool:
        with self.registry.lock:
            return self.set_import(entity_id, key, value)

    # ------------------------------------------------------------------
    # Reading values
    # ------------------------------------------------------------------

    def get(self, entity_id: int | None, key: str) -> tuple[list[Any], int]:
        """Values of ``key`` and their count.

        ``None`` as entity reads across the selection. Keys missing from the
        registry fall through to rating, tags and color labels.
        """
        if not key:
            return [], 0
        key_id = self.registry.get_keyid(key)
        if key_id is None:
            return self.virtual.resolve(entity_id, key)
        if _db.is_valid_entity_id(entity_id):
            values = _db.get_values(self._conn, entity_id, key_id)
        else:
            values = _db.get_selected_values(self._conn, key_id)
        return values, len(values)

    def get_locked(
        self, entity_id: int | None, key: str
    ) -> tuple[list[Any], int]:
        with self.registry.lock:
            return self.get(entity_id, key)

    def get_list_id(self, entity_id: int) -> Snapshot:
        if not _db.is_valid_entity_id(entity_id):
            return []
        return _db.get_snapshot(self._conn, entity_id)

    def get_attributes(self, entity_id: int) -> dict[str, str]:
        """An entity's attributes keyed by tag name, first value per key."""
        result: dict[str, str] = {}
        for pair in self.get_list_id(entity_id):
            tagname = self.registry.get_tagname(pair.key) or str(pair.key)
            result.setdefault(tagname, pair.value)
        return result

    def already_imported(self, filename: str, datetime: str) -> bool:
        """True when some value records ``filename`` taken at ``datetime``."""
        if not filename or not datetime:
            return False
        return _db.count_values_equal(self._conn, f"{filename}-{datetime}") > 0

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def get_history(
        self,
        *,
        entity_id: int | None = None,
        key: str | None = None,
        since: str | None = None,
        operation: str | None = None,
    ) -> list[EditRecord]:
        key_id = None
        if key is not None:
            key_id = self.registry.get_keyid(key)
            if key_id is None:
                return []
        return _hist.query_history(
            self._conn,
            entity_id=entity_id,
            key=key_id,
            since=since,
            operation=operation,
        )
