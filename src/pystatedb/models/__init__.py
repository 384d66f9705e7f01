"""Value models for stored state."""

from pystatedb.models._base import JSONValue, StateDbBaseModel
from pystatedb.models.entry import Entry, VersionRecord

__all__ = [
    "Entry",
    "JSONValue",
    "StateDbBaseModel",
    "VersionRecord",
]
