"""In-memory folder tree built from the DNs of connection records.

Every component of a record's DN becomes a folder. Folders are shared by all
records below them and keyed by their full DN in case-folded form, so::

    cn=alpha,ou=groupA,dc=example,dc=com
    cn=beta,ou=groupA,dc=example,dc=com

produce the folder chain ``dc=com`` -> ``dc=example,dc=com`` ->
``ou=groupa,dc=example,dc=com`` with ``alpha`` and ``beta`` as records of the
last folder. All folders hang below a synthetic root folder (``ROOT``); the
folder of the configured base DN is the root shown to users.

A :class:`ConnectionTreeBuilder` serves exactly one pass. Each pass gets
fresh directories, nothing is shared between passes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Union

from dn.errors import DirectoryTreeError, MalformedNameError
from dn.names import Dn, NameLike, coerce_dn, is_descendant_of, parse, subtract_common_tail

from .models import ConnectionRecord
from .settings import ROOT_IDENTIFIER, check_root_identifier

logger = logging.getLogger(__name__)


class DuplicateIdentifierError(DirectoryTreeError):
    """A record with an already registered identifier was inserted."""

    def __init__(self, identifier: str, log=False):
        self.identifier = identifier
        super().__init__(f"A record with identifier {identifier!r} is already in the tree", log=log)


@dataclass
class FolderNode:
    """Folder standing for one DN, holding the identifiers of its children."""

    dn: Dn
    identifier: str
    name: str
    parent_identifier: str | None = None
    child_folder_ids: set[str] = field(default_factory=set)
    child_record_ids: set[str] = field(default_factory=set)

    @property
    def is_root(self) -> bool:
        return self.parent_identifier is None


@dataclass(frozen=True)
class SkippedEntry:
    """An input item left out of the tree, and why."""

    identifier: str
    reason: str


@dataclass
class ConnectionTree:
    """Result of one pass: the folder directory, the record directory and skipped items."""

    base_dn: Dn
    root_identifier: str
    folders: dict[str, FolderNode]
    records: dict[str, ConnectionRecord]
    skipped: list[SkippedEntry] = field(default_factory=list)

    def synthetic_root(self) -> FolderNode:
        return self.folders[self.root_identifier]

    def root_folder(self) -> FolderNode:
        """The folder of the configured base DN, shown as the root of the tree."""
        return self.folders[_folder_identifier(self.base_dn, self.root_identifier)]

    def parent_chain(self, identifier: str) -> list[FolderNode]:
        """Folders from the parent of a record or folder up to the synthetic root."""
        node = self.records.get(identifier) or self.folders[identifier]
        chain = []
        parent_id = node.parent_identifier
        while parent_id is not None:
            folder = self.folders[parent_id]
            chain.append(folder)
            parent_id = folder.parent_identifier
        return chain

    def walk(self, start: FolderNode | None = None, depth: int = 0) -> Iterator[tuple[int, FolderNode]]:
        """Yield ``(depth, folder)`` depth-first, children sorted by identifier."""
        folder = start if start is not None else self.root_folder()
        yield depth, folder
        for child_id in sorted(folder.child_folder_ids):
            yield from self.walk(self.folders[child_id], depth + 1)


RecordLike = Union[ConnectionRecord, tuple[str, Any]]


class ConnectionTreeBuilder:
    """Builds the folder and record directories of one pass.

    Args:
        base_dn: The configured base DN; its folder chain exists even when
            no record lives below it.
        root_identifier: Identifier of the synthetic root folder.
    """

    def __init__(self, base_dn: NameLike = "", root_identifier: str = ROOT_IDENTIFIER):
        self.base_dn = coerce_dn(base_dn)
        self.root_identifier = check_root_identifier(root_identifier)
        self.folders: dict[str, FolderNode] = {}
        self.records: dict[str, ConnectionRecord] = {}
        self.skipped: list[SkippedEntry] = []
        self._folders_by_dn: dict[Dn, FolderNode] = {}

        self._root = FolderNode(dn=Dn(), identifier=root_identifier, name=root_identifier)
        self._register(self._root)
        self._anchor: FolderNode | None = None
        self._anchor = self.ensure_folder_path(self.base_dn)

    def synthetic_root(self) -> FolderNode:
        return self._root

    def root_lookup(self) -> FolderNode:
        """The folder of the configured base DN."""
        return self._anchor if self._anchor is not None else self._root

    def ensure_folder_path(self, name: NameLike) -> FolderNode:
        """Return the folder for ``name``, creating the missing folders on its path.

        Idempotent. The path is fully computed before anything is registered.
        Spellings that differ only in case share a folder, whose display name
        is the smallest spelling seen.
        """
        dn = coerce_dn(name)
        start = self._root
        if self._anchor is not None and (dn == self._anchor.dn or is_descendant_of(dn, self._anchor.dn)):
            start = self._anchor
        path = []
        current = start.dn
        for rdn in subtract_common_tail(dn, start.dn).root_first():
            current = current.child(rdn)
            path.append(current)

        folder = start
        for folder_dn in path:
            child = self._folders_by_dn.get(folder_dn)
            if child is None:
                child = self._create_folder(folder, folder_dn)
            else:
                child.name = min(child.name, str(folder_dn.leaf))
            folder = child
        return folder

    def insert_record(self, record: ConnectionRecord) -> ConnectionRecord:
        """Place ``record`` into the folder of its parent DN.

        The stored copy carries the normalized DN as identifier and the folder
        as parent. Raises DuplicateIdentifierError when the identifier is
        already taken and MalformedNameError when it does not parse.
        """
        dn = parse(record.identifier)
        identifier = dn.normalized() or record.identifier
        if identifier in self.records:
            raise DuplicateIdentifierError(identifier)

        folder = self.ensure_folder_path(dn.parent) if dn else self._root
        name = record.name or (dn.leaf.value if dn.leaf is not None else identifier)
        stored = record.with_parent(identifier, folder.identifier, name)
        self.records[identifier] = stored
        folder.child_record_ids.add(identifier)
        return stored

    def build(self, records: Iterable[RecordLike]) -> ConnectionTree:
        """Insert every record; malformed names are skipped and reported."""
        for item in records:
            record = _as_record(item)
            try:
                self.insert_record(record)
            except MalformedNameError as exc:
                logger.warning(f"Record '{record.identifier}' has a malformed DN: {exc.reason} (entry ignored).")
                self.skipped.append(SkippedEntry(record.identifier, exc.reason))
        logger.info(
            f"Built connection tree under '{self.base_dn}': {len(self.folders)} folders, "
            f"{len(self.records)} records, {len(self.skipped)} skipped"
        )
        return self.result()

    def result(self) -> ConnectionTree:
        return ConnectionTree(
            base_dn=self.base_dn,
            root_identifier=self.root_identifier,
            folders=self.folders,
            records=self.records,
            skipped=self.skipped,
        )

    def _create_folder(self, parent: FolderNode, dn: Dn) -> FolderNode:
        folder = FolderNode(
            dn=dn,
            identifier=_folder_identifier(dn, self.root_identifier),
            name=str(dn.leaf),
            parent_identifier=parent.identifier,
        )
        parent.child_folder_ids.add(folder.identifier)
        self._register(folder)
        logger.debug(f"Created folder '{folder.identifier}' under '{parent.identifier}'")
        return folder

    def _register(self, folder: FolderNode) -> None:
        self.folders[folder.identifier] = folder
        self._folders_by_dn[folder.dn] = folder


def build_tree(root_name: NameLike, records: Iterable[RecordLike], root_identifier: str = ROOT_IDENTIFIER) -> ConnectionTree:
    """Build a fresh tree rooted at ``root_name`` from ``records``.

    ``records`` holds ConnectionRecord objects or ``(identifier, payload)``
    pairs, in any order.
    """
    return ConnectionTreeBuilder(root_name, root_identifier=root_identifier).build(records)


# ---------------------------------------------------------------------------
# helpers


def _folder_identifier(dn: Dn, root_identifier: str) -> str:
    return dn.normalized() if dn else root_identifier


def _as_record(item: RecordLike) -> ConnectionRecord:
    if isinstance(item, ConnectionRecord):
        return item
    identifier, payload = item
    return ConnectionRecord(identifier=identifier, payload=payload)


__all__ = [
    "ConnectionTree",
    "ConnectionTreeBuilder",
    "DuplicateIdentifierError",
    "FolderNode",
    "SkippedEntry",
    "build_tree",
]
