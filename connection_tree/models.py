"""Pydantic models for the connection records placed in the tree."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, Field, ValidationError


class ConnectionConfig(BaseModel):
    """Protocol and parameters of a remote desktop connection."""

    protocol: str = Field(..., min_length=1, description="Protocol name, e.g. rdp, ssh or vnc")
    parameters: dict[str, str] = Field(default_factory=dict, description="Protocol parameters")


class ConnectionRecord(BaseModel):
    """A leaf of the tree, identified by its DN.

    ``payload`` is opaque to the tree; entries read from a directory carry a
    :class:`ConnectionConfig`.
    """

    identifier: str = Field(..., description="DN of the record")
    name: str = Field(default="", description="Display name, the leaf value when empty")
    parent_identifier: str | None = Field(default=None, description="Identifier of the containing folder")
    payload: Any = None

    def with_parent(self, identifier: str, parent_identifier: str, name: str) -> ConnectionRecord:
        """Return a copy placed under ``parent_identifier``."""
        return self.model_copy(update={
            "identifier": identifier,
            "parent_identifier": parent_identifier,
            "name": name,
        })


# ---------------------------------------------------------------------------
# helpers


def coerce_connection_config(value: Any) -> ConnectionConfig:
    """Normalize supported inputs into a ConnectionConfig instance."""
    if isinstance(value, ConnectionConfig):
        return value
    if not isinstance(value, Mapping):
        raise TypeError("Unsupported value for a connection configuration")
    try:
        return ConnectionConfig.model_validate(value)
    except ValidationError as exc:
        raise ValueError("Invalid connection configuration") from exc


__all__ = [
    "ConnectionConfig",
    "ConnectionRecord",
    "coerce_connection_config",
]
