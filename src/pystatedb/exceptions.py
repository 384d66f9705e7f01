"""Custom exception hierarchy for pystatedb."""

from __future__ import annotations


class StateDbError(Exception):
    """Base exception for all pystatedb errors."""


class StateDbConfigError(StateDbError):
    """Invalid or missing configuration."""


class StorageFault(StateDbError):
    """Persistence medium failure (I/O, HTTP, or JSON serialization).

    The store never retries on its own; callers decide whether to fall
    back, retry, or propagate.
    """

    def __init__(
        self,
        message: str,
        *,
        namespace: str = "",
        key: str = "",
        status_code: int | None = None,
    ) -> None:
        self.namespace = namespace
        self.key = key
        self.status_code = status_code
        super().__init__(message)


class VersionMismatch(StateDbError):
    """Stored version marker does not match the running version.

    Only used inside :class:`~pystatedb.version_gate.VersionGate`; it is
    never raised past the gate.
    """

    def __init__(self, stored: str | None, running: str) -> None:
        self.stored = stored
        self.running = running
        super().__init__(f"Stored state version {stored or 'unknown'} != running version {running}")


class RestoreSkipped(StateDbError):
    """The saved layout was not used and the default layout was applied.

    Informational: recorded on the restore result and logged, never raised.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
