"""Layout restoration and persistence.

The restorer applies the saved shell layout exactly once at boot and then
keeps the persisted copy current. It must never race the host's own
startup: the saved layout is applied only after both the host's
``started`` signal and the initial fetch have resolved, and layout
changes are only observed after that apply.
"""

from __future__ import annotations

import asyncio
import contextlib
import copy
import inspect
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pystatedb._constants import LAYOUT_KEY
from pystatedb.exceptions import RestoreSkipped, StateDbError, StorageFault
from pystatedb.models import JSONValue
from pystatedb.shell import DEFAULT_LAYOUT, Shell
from pystatedb.signals import Subscription
from pystatedb.store import KeyedStore

_logger = logging.getLogger(__name__)


class RestorerState(StrEnum):
    IDLE = "idle"
    FETCHING = "fetching"
    WAITING = "waiting"
    APPLYING = "applying"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass(frozen=True)
class RestoreResult:
    """Outcome of the one-time initial apply."""

    layout: JSONValue
    from_storage: bool
    skipped: RestoreSkipped | None = None


class LayoutRestorer:
    """Restore the shell layout at boot and persist every later change.

    Usage::

        restorer = LayoutRestorer(store, shell, app_started)
        restorer.start()
        result = await restorer.restored
        ...
        await restorer.close()

    Parameters
    ----------
    store : KeyedStore
        Store that already passed the version gate.
    shell : Shell
        Layout shell; provides ``apply_layout``, ``current_snapshot`` and
        the ``layout_modified`` signal.
    first : Awaitable
        Resolves once the host application finished starting.
    key : str
        Store key of the layout snapshot.
    default_layout : JSONValue
        Applied when no usable snapshot was persisted.
    """

    def __init__(
        self,
        store: KeyedStore,
        shell: Shell,
        first: Awaitable[Any],
        *,
        key: str = LAYOUT_KEY,
        default_layout: JSONValue = None,
    ) -> None:
        self._store = store
        self._shell = shell
        self._first = first
        self._key = key
        self._default_layout = copy.deepcopy(default_layout if default_layout is not None else DEFAULT_LAYOUT)
        self._state = RestorerState.IDLE
        self._task: asyncio.Task[RestoreResult] | None = None
        self._subscription: Subscription | None = None
        self._save_lock = asyncio.Lock()
        self._generation = 0
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> RestorerState:
        return self._state

    @property
    def key(self) -> str:
        return self._key

    @property
    def restored(self) -> asyncio.Task[RestoreResult]:
        """Task resolving once the initial layout has been applied."""
        if self._task is None:
            raise StateDbError("Restorer not started. Call start() first.")
        return self._task

    def start(self) -> asyncio.Task[RestoreResult]:
        """Schedule restoration; calling it again returns the same task."""
        if self._state is RestorerState.CLOSED:
            raise StateDbError("Restorer is closed")
        if self._task is None:
            self._task = asyncio.create_task(self._restore(), name=f"layout-restore:{self._key}")
        return self._task

    # ------------------------------------------------------------------
    # Startup phase
    # ------------------------------------------------------------------

    async def fetch(self) -> JSONValue:
        """Return the persisted snapshot, or ``None`` when there is none."""
        return await self._store.fetch(self._key)

    async def _fetch_saved(self) -> tuple[JSONValue, RestoreSkipped | None]:
        try:
            saved = await self.fetch()
        except Exception as exc:
            _logger.warning("Could not fetch saved layout %s", self._key, exc_info=True)
            result: tuple[JSONValue, RestoreSkipped | None] = (None, RestoreSkipped(f"fetch failed: {exc}"))
        else:
            if saved is None:
                result = (None, RestoreSkipped("no saved layout"))
            else:
                result = (saved, None)
        if self._state is RestorerState.FETCHING:
            self._state = RestorerState.WAITING
        return result

    async def _apply(self, layout: JSONValue) -> None:
        outcome = self._shell.apply_layout(copy.deepcopy(layout))
        if inspect.isawaitable(outcome):
            await outcome

    async def _restore(self) -> RestoreResult:
        self._state = RestorerState.FETCHING
        fetch_task = asyncio.create_task(self._fetch_saved())
        try:
            try:
                # The started future belongs to the host; never cancel it.
                await asyncio.shield(self._first)
            except Exception:
                _logger.warning("Host start signal failed; restoring layout anyway", exc_info=True)
            saved, skipped = await fetch_task
        except asyncio.CancelledError:
            fetch_task.cancel()
            raise

        self._state = RestorerState.APPLYING
        if skipped is None:
            layout, from_storage = saved, True
        else:
            layout, from_storage = self._default_layout, False

        try:
            await self._apply(layout)
        except Exception:
            _logger.warning("Applying layout failed", exc_info=True)
            if from_storage:
                skipped = RestoreSkipped("apply failed")
                layout, from_storage = self._default_layout, False
                try:
                    await self._apply(layout)
                except Exception:
                    _logger.warning("Applying default layout failed", exc_info=True)

        if skipped is not None:
            _logger.info("Layout restore skipped (%s); default layout applied", skipped.reason)
        else:
            _logger.info("Restored saved layout from %s/%s", self._store.namespace, self._key)

        self._state = RestorerState.ACTIVE
        self._subscription = self._shell.layout_modified.connect(self._on_layout_modified)
        return RestoreResult(layout=copy.deepcopy(layout), from_storage=from_storage, skipped=skipped)

    # ------------------------------------------------------------------
    # Active phase
    # ------------------------------------------------------------------

    def _on_layout_modified(self, *_args: Any) -> None:
        if self._state is not RestorerState.ACTIVE:
            return
        snapshot = copy.deepcopy(self._shell.current_snapshot())
        self._generation += 1
        task = asyncio.get_running_loop().create_task(self._save_snapshot(self._generation, snapshot))
        self._pending.add(task)
        task.add_done_callback(self._save_done)

    def _save_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Layout save task failed", exc_info=exc)

    async def _save_snapshot(self, generation: int, snapshot: JSONValue) -> None:
        async with self._save_lock:
            if generation != self._generation:
                _logger.debug("Layout snapshot %d superseded before save", generation)
                return
            try:
                await self._store.save(self._key, snapshot)
            except (StorageFault, ValueError):
                _logger.warning("Saving layout snapshot %d failed; keeping previous copy", generation, exc_info=True)

    async def save(self, snapshot: JSONValue) -> None:
        """Persist *snapshot* now, superseding queued change saves.

        Unlike change-driven saves, failures propagate to the caller.
        """
        self._generation += 1
        async with self._save_lock:
            await self._store.save(self._key, copy.deepcopy(snapshot))

    async def flush(self) -> None:
        """Wait until every scheduled layout save has finished."""
        while self._pending:
            # Failures were already logged by _save_done.
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        """Stop observing the shell and wait for outstanding saves."""
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        await self.flush()
        self._state = RestorerState.CLOSED
