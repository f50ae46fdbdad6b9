"""catalog-metadata: undoable bulk editing of catalog entity attributes."""

__version__ = "0.1.0"

from catalog_metadata.config import ConfigStore as ConfigStore
from catalog_metadata.editor import MetadataEditor as MetadataEditor
from catalog_metadata.exceptions import (
    CatalogMetadataError as CatalogMetadataError,
    ConfigError as ConfigError,
    DatabaseError as DatabaseError,
    ParseError as ParseError,
)
from catalog_metadata.models import (
    AttributeDefinition as AttributeDefinition,
    EditRecord as EditRecord,
    KeyValue as KeyValue,
    MetadataDiff as MetadataDiff,
    MetadataFlag as MetadataFlag,
    MutationMode as MutationMode,
    Signal as Signal,
    UndoAction as UndoAction,
    UndoEntry as UndoEntry,
    UndoGroup as UndoGroup,
    UndoType as UndoType,
    WriteSidecarMode as WriteSidecarMode,
)
from catalog_metadata.registry import AttributeRegistry as AttributeRegistry
from catalog_metadata.selection import Selection as Selection
from catalog_metadata.signals import SignalBus as SignalBus
from catalog_metadata.undo import UndoStack as UndoStack
from catalog_metadata.virtual import VirtualKeyResolver as VirtualKeyResolver

__all__ = [
    # Editor
    "MetadataEditor",
    # Collaborators
    "AttributeRegistry",
    "ConfigStore",
    "Selection",
    "SignalBus",
    "UndoStack",
    "VirtualKeyResolver",
    # Models
    "AttributeDefinition",
    "EditRecord",
    "KeyValue",
    "MetadataDiff",
    "UndoEntry",
    "UndoGroup",
    # Enums
    "MetadataFlag",
    "MutationMode",
    "Signal",
    "UndoAction",
    "UndoType",
    "WriteSidecarMode",
    # Exceptions
    "CatalogMetadataError",
    "ConfigError",
    "DatabaseError",
    "ParseError",
]
