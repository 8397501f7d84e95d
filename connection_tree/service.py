"""Turns a batch of directory entries into a connection tree."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from dn.errors import MalformedNameError
from dn.filters import EntryFilter
from dn.names import parse

from .entries import DirectoryEntry, InvalidEntryError, entry_to_record
from .models import ConnectionRecord
from .settings import TreeSettings
from .tree import ConnectionTree, SkippedEntry, build_tree

logger = logging.getLogger(__name__)


def materialize(entries: Iterable[Mapping[str, Any]], settings: TreeSettings) -> ConnectionTree:
    """
    Map ``entries`` onto records, drop the ones outside the configured base DN
    or without the configured prefix, and build a fresh tree from the rest.

    Entries that cannot be used are not fatal: they end up in
    ``ConnectionTree.skipped`` with the reason, in input order, ahead of
    anything the tree builder itself skipped.
    """
    entry_filter = EntryFilter(settings.base_dn, settings.group_prefix)
    records: dict[str, ConnectionRecord] = {}
    skipped: list[SkippedEntry] = []

    def skip(identifier: str, reason: str) -> None:
        logger.warning(f"Entry '{identifier}' {reason} (entry ignored).")
        skipped.append(SkippedEntry(identifier, reason))

    for raw in entries:
        entry = raw if isinstance(raw, DirectoryEntry) else DirectoryEntry(raw)
        try:
            record = entry_to_record(entry, settings)
            dn = parse(record.identifier)
        except InvalidEntryError as exc:
            skip(exc.identifier, exc.reason)
            continue
        except MalformedNameError as exc:
            skip(entry.identifier, f"has a malformed DN: {exc.reason}")
            continue

        reason = entry_filter.rejection_reason(dn)
        if reason is not None:
            skip(entry.identifier, reason)
            continue

        key = dn.normalized()
        if key in records:
            skip(entry.identifier, "duplicates an entry already read")
            continue
        records[key] = record

    tree = build_tree(settings.base_dn, records.values(), root_identifier=settings.root_identifier)
    tree.skipped[:0] = skipped
    logger.info(f"Materialized {len(tree.records)} connections under '{settings.base_dn}', {len(tree.skipped)} entries skipped")
    return tree


__all__ = ["materialize"]
