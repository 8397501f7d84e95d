"""Connection tree package: records, settings and the folder tree built from their DNs."""

from .entries import DirectoryEntry, InvalidEntryError, entry_to_record, load_entries
from .models import ConnectionConfig, ConnectionRecord, coerce_connection_config
from .service import materialize
from .settings import ROOT_IDENTIFIER, TreeSettings, load_settings
from .tree import (
    ConnectionTree,
    ConnectionTreeBuilder,
    DuplicateIdentifierError,
    FolderNode,
    SkippedEntry,
    build_tree,
)

__all__ = [
    "ConnectionConfig",
    "ConnectionRecord",
    "ConnectionTree",
    "ConnectionTreeBuilder",
    "DirectoryEntry",
    "DuplicateIdentifierError",
    "FolderNode",
    "InvalidEntryError",
    "ROOT_IDENTIFIER",
    "SkippedEntry",
    "TreeSettings",
    "build_tree",
    "coerce_connection_config",
    "entry_to_record",
    "load_entries",
    "load_settings",
    "materialize",
]
