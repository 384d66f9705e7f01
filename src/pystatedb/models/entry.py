"""Stored entry and version marker models."""

from __future__ import annotations

from pydantic import Field, field_validator

from pystatedb.models._base import JSONValue, StateDbBaseModel


class Entry(StateDbBaseModel):
    """One stored value, as returned by prefix listings."""

    key: str = Field(..., description="Caller key, without the namespace prefix")
    value: JSONValue = None
    namespace: str = ""


class VersionRecord(StateDbBaseModel):
    """Marker of the application version that last wrote a namespace."""

    version: str

    @field_validator("version")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("version must be non-empty")
        return value
