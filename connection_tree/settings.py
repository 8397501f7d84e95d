"""Settings for materializing a connection tree."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from dn.errors import MalformedNameError
from dn.names import Dn, parse

ROOT_IDENTIFIER = "ROOT"


class TreeSettings(BaseModel):
    """Where the tree is rooted and how directory entries are read."""

    base_dn: str = Field(..., description="DN under which all connection entries live")
    group_prefix: str = Field(default="", description="Required prefix of each entry's leaf value")
    root_identifier: str = Field(default=ROOT_IDENTIFIER, min_length=1, description="Identifier of the synthetic root folder")
    name_attribute: str = Field(default="cn", description="Attribute holding the display name")
    protocol_attribute: str = Field(default="guacConfigProtocol")
    parameter_attribute: str = Field(default="guacConfigParameter")

    @field_validator("base_dn")
    @classmethod
    def _canonical_base_dn(cls, value: str) -> str:
        return str(parse(value))

    @field_validator("root_identifier")
    @classmethod
    def _root_identifier_is_not_a_dn(cls, value: str) -> str:
        return check_root_identifier(value)

    @property
    def base(self) -> Dn:
        return parse(self.base_dn)


def check_root_identifier(value: str) -> str:
    """Reject root identifiers that read as a DN; those name folders of the tree."""
    try:
        dn = parse(value)
    except MalformedNameError:
        return value
    if dn:
        raise ValueError(f"Root identifier {value!r} is a DN and would collide with a folder")
    return value


def load_settings(source: Any) -> TreeSettings:
    """Build TreeSettings from a mapping, a YAML/JSON string or a file path."""
    if isinstance(source, TreeSettings):
        return source
    payload: Mapping[str, Any]
    if isinstance(source, Mapping):
        payload = source
    elif isinstance(source, Path):
        payload = _load_text_payload(source.read_text())
    elif isinstance(source, (str, bytes)):
        payload = _load_text_payload(source)
    else:
        raise TypeError("Unsupported settings source")
    if not isinstance(payload, Mapping):
        raise ValueError("Settings must be a mapping")
    try:
        return TreeSettings.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings: {exc}") from exc


def _load_text_payload(raw: str | bytes) -> Any:
    """Interpret raw text as YAML first, falling back to JSON."""
    text = raw.decode() if isinstance(raw, bytes) else raw
    try:
        return yaml.safe_load(text) or {}
    except yaml.YAMLError:
        return json.loads(text)


__all__ = ["ROOT_IDENTIFIER", "TreeSettings", "check_root_identifier", "load_settings"]
