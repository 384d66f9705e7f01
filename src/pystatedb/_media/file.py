"""Single-file JSON medium with atomic replace."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import tempfile
from collections.abc import Callable, Iterable
from pathlib import Path

from pystatedb.exceptions import StorageFault

_logger = logging.getLogger(__name__)

_Stamp = tuple[int, int]


class FileMedium:
    """Medium persisted as one JSON object (``{key: text}``) on disk.

    Every mutation re-reads the file, applies only its own keys and writes
    the result through a temporary sibling file and :func:`os.replace`, so
    a crash leaves either the old or the new document, never a torn one,
    and writers sharing the path do not roll back each other's keys.
    Reads reuse the parsed document until the file's mtime or size change.
    Blocking I/O runs in a worker thread, one operation at a time.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()
        self._data: dict[str, str] | None = None
        self._stamp: _Stamp | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _stat_sync(self) -> _Stamp | None:
        try:
            stat = self._path.stat()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageFault(f"Cannot stat state file {self._path}: {exc}") from exc
        return stat.st_mtime_ns, stat.st_size

    def _load_sync(self) -> dict[str, str]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageFault(f"Cannot read state file {self._path}: {exc}") from exc

        try:
            loaded = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError as exc:
            raise StorageFault(f"State file {self._path} is not valid JSON: {exc}") from exc

        if not isinstance(loaded, dict) or not all(isinstance(v, str) for v in loaded.values()):
            raise StorageFault(f"State file {self._path} has an unexpected layout")
        return loaded

    def _dump_sync(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=self._path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2, sort_keys=True)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self._path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise StorageFault(f"Cannot write state file {self._path}: {exc}") from exc

    def _current_sync(self) -> dict[str, str]:
        stamp = self._stat_sync()
        if self._data is None or stamp != self._stamp:
            self._data = self._load_sync()
            self._stamp = stamp
            _logger.debug("Loaded %d keys from %s", len(self._data), self._path)
        return self._data

    def _update_sync(self, change: Callable[[dict[str, str]], bool]) -> None:
        # Always start from the file, not the cache: another writer may own other keys.
        updated = dict(self._load_sync())
        if change(updated):
            self._dump_sync(updated)
        self._data = updated
        self._stamp = self._stat_sync()

    async def _read_locked(self) -> dict[str, str]:
        async with self._lock:
            return await asyncio.to_thread(self._current_sync)

    async def _update(self, change: Callable[[dict[str, str]], bool]) -> None:
        async with self._lock:
            await asyncio.to_thread(self._update_sync, change)

    async def read(self, key: str) -> str | None:
        data = await self._read_locked()
        return data.get(key)

    async def write(self, key: str, data: str) -> None:
        def _set(current: dict[str, str]) -> bool:
            current[key] = data
            return True

        await self._update(_set)

    async def delete(self, key: str) -> None:
        await self.delete_many([key])

    async def delete_many(self, keys: Iterable[str]) -> None:
        wanted = set(keys)

        def _drop(current: dict[str, str]) -> bool:
            doomed = wanted.intersection(current)
            for key in doomed:
                del current[key]
            return bool(doomed)

        await self._update(_drop)

    async def keys(self, prefix: str = "") -> list[str]:
        data = await self._read_locked()
        return [key for key in data if key.startswith(prefix)]
