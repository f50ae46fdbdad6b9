"""Domain model dataclasses and enums for catalog-metadata."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum, IntFlag

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class MutationMode(str, Enum):
    """How a payload is combined with an entity's current attributes."""

    REPLACE = "replace"
    MERGE_ADD = "merge_add"
    REMOVE_MATCHING = "remove_matching"


class UndoType(str, Enum):
    """Kinds of entries on the undo stack."""

    METADATA = "metadata"


class UndoAction(str, Enum):
    """Direction of an undo-log replay."""

    UNDO = "undo"
    REDO = "redo"


class MetadataFlag(IntFlag):
    """Per-attribute user preferences kept in the configuration store."""

    HIDDEN = 1
    PRIVATE = 2
    IMPORTED = 4


class WriteSidecarMode(str, Enum):
    """When sidecar files are written; also gates metadata import."""

    NEVER = "never"
    ON_IMPORT = "on import"
    AFTER_EDIT = "after edit"


class Signal(str, Enum):
    """Notifications raised by the metadata engine."""

    HOVER_METADATA_CHANGED = "hover_metadata_changed"


# ---------------------------------------------------------------------------
# Attribute definitions and values
# ---------------------------------------------------------------------------

def tag_subkey(tagname: str | None) -> str | None:
    """The part of ``tagname`` after its last dot, or None without a dot."""
    if not tagname:
        return None
    _, dot, tail = tagname.rpartition(".")
    return tail if dot else None


@dataclass
class AttributeDefinition:
    """A registered attribute key.

    ``id`` is assigned by the store on registration and is ``None`` before.
    """

    tagname: str
    name: str
    internal: bool = False
    visible: bool = True
    private: bool = False
    display_order: int = 0
    id: int | None = None

    @property
    def subkey(self) -> str | None:
        return tag_subkey(self.tagname)


@dataclass(frozen=True)
class KeyValue:
    """One (attribute key id, value) pair of a snapshot."""

    key: int
    value: str


Snapshot = list[KeyValue]


@dataclass
class MetadataDiff:
    """Removals and insertions that turn one snapshot into another."""

    removals: list[int] = field(default_factory=list)
    insertions: list[tuple[int, int, str]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.removals and not self.insertions


# ---------------------------------------------------------------------------
# Undo log
# ---------------------------------------------------------------------------

@dataclass
class UndoEntry:
    """Before/after snapshots of one entity touched by one user action."""

    entity_id: int
    before: Snapshot
    after: Snapshot


@dataclass
class UndoGroup:
    """All entries produced by one user action; undone and redone as a unit."""

    kind: UndoType = UndoType.METADATA
    entries: list[UndoEntry] = field(default_factory=list)

    @property
    def entity_ids(self) -> list[int]:
        return [e.entity_id for e in self.entries]

    def pairs(
        self, action: UndoAction
    ) -> Iterator[tuple[int, Snapshot, Snapshot]]:
        """Yield ``(entity_id, before, after)`` in the replay direction.

        Undo swaps the snapshots so the same diff that applied the action
        reverses it.
        """
        for entry in self.entries:
            if action == UndoAction.UNDO:
                yield entry.entity_id, entry.after, entry.before
            else:
                yield entry.entity_id, entry.before, entry.after

    def release(self) -> None:
        self.entries.clear()


# ---------------------------------------------------------------------------
# Edit history
# ---------------------------------------------------------------------------

@dataclass
class EditRecord:
    id: int
    entity_id: int
    key: int
    operation: str
    value: str | None
    timestamp: str
