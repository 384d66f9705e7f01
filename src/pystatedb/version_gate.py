"""Boot-time version check for a state namespace.

Stored state is trusted only when it was written by the running
application version. Any other outcome (no marker, a malformed marker,
a different version, or a medium that cannot even be read) discards the
whole namespace, because older documents may have an incompatible shape.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from pydantic import ValidationError

from pystatedb._constants import VERSION_KEY
from pystatedb.exceptions import StorageFault, VersionMismatch
from pystatedb.models import VersionRecord
from pystatedb.store import KeyedStore

_logger = logging.getLogger(__name__)


class GateOutcome(StrEnum):
    KEPT = "kept"
    RESET = "reset"


@dataclass(frozen=True)
class GateResult:
    """Validated store plus what the gate did to it."""

    store: KeyedStore
    outcome: GateOutcome
    previous_version: str | None = None


class VersionGate:
    """Decide keep vs. reset for *store* against *version*.

    Nothing may read application data from the store before
    :meth:`run` returns.
    """

    def __init__(self, store: KeyedStore, version: str, *, key: str = VERSION_KEY) -> None:
        if not version:
            raise ValueError("version must be non-empty")
        self._store = store
        self._version = version
        self._key = key

    @property
    def version(self) -> str:
        return self._version

    @property
    def key(self) -> str:
        return self._key

    async def _check(self) -> VersionMismatch | None:
        """Return ``None`` when stored data is trusted, else the mismatch."""
        try:
            raw = await self._store.fetch(self._key)
        except StorageFault:
            _logger.warning(
                "Could not read version marker of namespace %s; treating state as untrusted",
                self._store.namespace,
                exc_info=True,
            )
            return VersionMismatch(None, self._version)

        if raw is None:
            return VersionMismatch(None, self._version)
        try:
            record = VersionRecord.model_validate(raw)
        except ValidationError:
            _logger.debug("Malformed version marker %r", raw)
            return VersionMismatch(None, self._version)

        if record.version != self._version:
            return VersionMismatch(record.version, self._version)
        return None

    async def _reset(self, mismatch: VersionMismatch) -> None:
        _logger.info(
            "Upgraded: %s to %s; resetting state database (namespace %s).",
            mismatch.stored or "unknown",
            mismatch.running,
            self._store.namespace,
        )
        await self._store.clear()
        await self._store.save(self._key, VersionRecord(version=self._version).model_dump())

    async def run(self) -> GateResult:
        """Validate the namespace, resetting it when untrusted.

        Raises
        ------
        StorageFault
            When the reset itself (clear or marker write) fails.
        """
        mismatch = await self._check()
        if mismatch is None:
            _logger.debug("State namespace %s matches version %s", self._store.namespace, self._version)
            return GateResult(store=self._store, outcome=GateOutcome.KEPT, previous_version=self._version)

        await self._reset(mismatch)
        return GateResult(store=self._store, outcome=GateOutcome.RESET, previous_version=mismatch.stored)
