"""Composing root: medium -> store -> version gate -> layout restorer."""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Any

import aiohttp

from pystatedb._media import FileMedium, HttpMedium, Medium, MemoryMedium
from pystatedb.commands import CommandRegistry, register_state_commands
from pystatedb.config import StateDbConfig
from pystatedb.exceptions import StateDbError, StorageFault
from pystatedb.restorer import LayoutRestorer
from pystatedb.shell import Shell
from pystatedb.store import KeyedStore
from pystatedb.version_gate import GateResult, VersionGate

_logger = logging.getLogger(__name__)


class StateApplication:
    """Owns the state store of one application namespace.

    Usage::

        async with StateApplication(config) as app:
            await app.boot()
            restorer = app.restore(shell, host_started)
            await restorer.restored

    ``boot()`` must complete before anything reads from :attr:`store`.
    """

    def __init__(
        self,
        config: StateDbConfig,
        *,
        medium: Medium | None = None,
        session: aiohttp.ClientSession | None = None,
        commands: CommandRegistry | None = None,
    ) -> None:
        self._config = config
        self._medium = medium
        self._external_session = session is not None
        self._http_session = session
        self._commands = commands if commands is not None else CommandRegistry()
        self._store: KeyedStore | None = None
        self._gate_result: GateResult | None = None
        self._restorer: LayoutRestorer | None = None
        self._degraded = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> StateApplication:
        if self._medium is None:
            self._medium = self._build_medium()
        self._store = KeyedStore(self._medium, namespace=self._config.namespace)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._restorer is not None:
            await self._restorer.close()
            self._restorer = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _build_medium(self) -> Medium:
        backend = self._config.backend
        if backend == "memory":
            return MemoryMedium()
        if backend == "file":
            return FileMedium(self._config.path)
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        return HttpMedium(self._config.base_url, self._http_session)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> StateDbConfig:
        return self._config

    @property
    def commands(self) -> CommandRegistry:
        return self._commands

    @property
    def degraded(self) -> bool:
        """Whether boot fell back to ephemeral in-memory state."""
        return self._degraded

    @property
    def store(self) -> KeyedStore:
        if self._store is None or self._gate_result is None:
            raise StateDbError("State store not booted. Use 'async with' and call boot() first.")
        return self._store

    @property
    def restorer(self) -> LayoutRestorer | None:
        return self._restorer

    # ------------------------------------------------------------------
    # Boot
    # ------------------------------------------------------------------

    async def boot(self) -> GateResult:
        """Validate stored state and register the state commands.

        Raises
        ------
        StorageFault
            When the medium cannot be reset and ``degrade_to_memory`` is off.
        """
        if self._gate_result is not None:
            return self._gate_result
        if self._store is None:
            raise StateDbError("Application not initialized. Use 'async with StateApplication(...) as app:'")

        try:
            result = await VersionGate(self._store, self._config.version, key=self._config.version_key).run()
        except StorageFault:
            if not self._config.degrade_to_memory:
                raise
            _logger.warning(
                "State medium unusable for namespace %s; continuing with in-memory state",
                self._config.namespace,
                exc_info=True,
            )
            self._degraded = True
            self._store = KeyedStore(MemoryMedium(), namespace=self._config.namespace)
            result = await VersionGate(self._store, self._config.version, key=self._config.version_key).run()

        register_state_commands(self._commands, result.store)
        self._gate_result = result
        return result

    def restore(self, shell: Shell, started: Awaitable[Any]) -> LayoutRestorer:
        """Start restoring *shell*'s layout once *started* resolves."""
        if self._restorer is not None:
            return self._restorer
        restorer = LayoutRestorer(self.store, shell, started, key=self._config.layout_key)
        restorer.start()
        self._restorer = restorer
        return restorer
