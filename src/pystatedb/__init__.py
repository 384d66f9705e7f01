"""pystatedb - Persistent, version-gated application state with async layout restoration."""

from pystatedb._constants import package_version

__version__ = package_version()
from pystatedb._media import FileMedium, HttpMedium, Medium, MemoryMedium
from pystatedb.application import StateApplication
from pystatedb.commands import CommandRegistry, register_state_commands
from pystatedb.config import StateDbConfig
from pystatedb.exceptions import (
    RestoreSkipped,
    StateDbConfigError,
    StateDbError,
    StorageFault,
    VersionMismatch,
)
from pystatedb.models import Entry, JSONValue, VersionRecord
from pystatedb.restorer import LayoutRestorer, RestoreResult, RestorerState
from pystatedb.shell import DEFAULT_LAYOUT, Shell
from pystatedb.signals import Signal, Subscription
from pystatedb.store import KeyedStore
from pystatedb.version_gate import GateOutcome, GateResult, VersionGate

__all__ = [
    "__version__",
    "CommandRegistry",
    "DEFAULT_LAYOUT",
    "Entry",
    "FileMedium",
    "GateOutcome",
    "GateResult",
    "HttpMedium",
    "JSONValue",
    "KeyedStore",
    "LayoutRestorer",
    "Medium",
    "MemoryMedium",
    "RestoreResult",
    "RestoreSkipped",
    "RestorerState",
    "Shell",
    "Signal",
    "StateApplication",
    "StateDbConfig",
    "StateDbConfigError",
    "StateDbError",
    "StorageFault",
    "Subscription",
    "VersionGate",
    "VersionMismatch",
    "VersionRecord",
    "register_state_commands",
]
