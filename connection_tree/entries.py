"""Mapping of directory entries onto connection records.

An entry is what a directory search hands back: its DN plus attribute
values. The attributes read here are configured in TreeSettings, by default::

    dn: cn=alpha,ou=groupA,dc=example,dc=com
    cn: alpha
    guacConfigProtocol: rdp
    guacConfigParameter: [hostname=alpha.example.com, port=3389]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable

import yaml
from box import Box

from dn.errors import DirectoryTreeError

from .models import ConnectionRecord, coerce_connection_config
from .settings import TreeSettings

logger = logging.getLogger(__name__)


class InvalidEntryError(DirectoryTreeError):
    """A directory entry lacks what is needed to build a connection."""

    def __init__(self, identifier: str, reason: str, log=False):
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Entry {identifier!r}: {reason}", log=log)


class DirectoryEntry(Box):
    """
    A directory entry as a Box (dot-access dict): ``dn`` plus attributes.
    Attribute values may be a single string or a list of strings.
    Examples:
        entry = DirectoryEntry(dn="cn=a,dc=com", cn="a", guacConfigProtocol="ssh")
        entry.cn                            # 'a'
        entry.get_values("GUACCONFIGPROTOCOL")  # ['ssh']
    """

    @property
    def identifier(self) -> str:
        return self.first_value("dn") or ""

    def get_values(self, attribute: str) -> list[str]:
        """All values of ``attribute``; attribute names compare case-insensitively."""
        wanted = attribute.lower()
        for key, value in self.items():
            if str(key).lower() != wanted:
                continue
            if value is None:
                return []
            if isinstance(value, (list, tuple)):
                return [str(v) for v in value]
            return [str(value)]
        return []

    def first_value(self, attribute: str) -> str | None:
        values = self.get_values(attribute)
        return values[0] if values else None


def parse_parameters(values: Iterable[str]) -> dict[str, str]:
    """Turn ``name=value`` strings into a dict; values without ``=`` are ignored."""
    parameters: dict[str, str] = {}
    for parameter in values:
        name, sep, value = parameter.partition("=")
        if not sep:
            logger.debug(f"Ignoring parameter without '=': {parameter!r}")
            continue
        parameters[name] = value
    return parameters


def entry_to_record(entry: DirectoryEntry, settings: TreeSettings) -> ConnectionRecord:
    """Build the ConnectionRecord of ``entry``; raises InvalidEntryError when it is incomplete."""
    identifier = entry.identifier
    if not identifier.strip():
        raise InvalidEntryError("<unknown>", "entry has no dn")

    name = entry.first_value(settings.name_attribute)
    if not name:
        raise InvalidEntryError(identifier, f"missing the '{settings.name_attribute}' attribute")

    protocol = entry.first_value(settings.protocol_attribute)
    if not protocol:
        raise InvalidEntryError(identifier, f"missing the required '{settings.protocol_attribute}' attribute")

    config = coerce_connection_config({
        "protocol": protocol,
        "parameters": parse_parameters(entry.get_values(settings.parameter_attribute)),
    })
    return ConnectionRecord(identifier=identifier, name=name, payload=config)


def load_entries(path: Path) -> list[DirectoryEntry]:
    """Read entries from a YAML or JSON file: a list, or a mapping with an ``entries`` list."""
    payload: Any = yaml.safe_load(path.read_text()) or []
    if isinstance(payload, dict):
        payload = payload.get("entries", [])
    if not isinstance(payload, list):
        raise ValueError(f"{path}: expected a list of entries")
    entries = []
    for position, raw in enumerate(payload):
        if not isinstance(raw, dict):
            raise ValueError(f"{path}: entry #{position} is not a mapping")
        entries.append(DirectoryEntry(raw))
    return entries


__all__ = [
    "DirectoryEntry",
    "InvalidEntryError",
    "entry_to_record",
    "load_entries",
    "parse_parameters",
]
