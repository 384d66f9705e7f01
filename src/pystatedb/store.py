"""Namespaced, JSON-valued async key-value store.

This is the only component that talks to a persistence medium. Every
key is stored as ``<namespace>:<key>``; a store never reads or deletes
keys outside its own namespace.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pystatedb._constants import NAMESPACE_SEPARATOR
from pystatedb._media.base import Medium
from pystatedb.exceptions import StorageFault
from pystatedb.models import Entry, JSONValue

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class KeyedStore:
    """Async JSON store partitioned by namespace.

    Usage::

        store = KeyedStore(FileMedium(path), namespace="my-app")
        await store.save("layout", {"panes": ["a"]})
        layout = await store.fetch("layout")

    Medium calls are serialized with a lock, so operations complete in
    call order and a save is always a total replacement of the value.
    """

    def __init__(self, medium: Medium, *, namespace: str) -> None:
        if not namespace:
            raise ValueError("namespace must be non-empty")
        if NAMESPACE_SEPARATOR in namespace:
            # A namespace "a:b" would sit inside namespace "a".
            raise ValueError(f"namespace must not contain {NAMESPACE_SEPARATOR!r}")
        self._medium = medium
        self._namespace = namespace
        self._prefix = f"{namespace}{NAMESPACE_SEPARATOR}"
        self._lock = asyncio.Lock()

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def medium(self) -> Medium:
        return self._medium

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _strip(self, full_key: str) -> str:
        return full_key[len(self._prefix) :]

    async def _locked(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        """Run a medium call under the store lock, tagging failures."""
        async with self._lock:
            try:
                return await fn()
            except StorageFault as exc:
                if not exc.namespace:
                    exc.namespace = self._namespace
                if not exc.key:
                    exc.key = key
                raise
            except (OSError, ValueError, TypeError) as exc:
                raise StorageFault(
                    f"Storage operation on {self._namespace!r}/{key!r} failed: {exc}",
                    namespace=self._namespace,
                    key=key,
                ) from exc

    def _decode(self, key: str, text: str) -> JSONValue:
        try:
            value: JSONValue = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StorageFault(
                f"Stored value for {key!r} is not valid JSON",
                namespace=self._namespace,
                key=key,
            ) from exc
        return value

    def _encode(self, key: str, value: Any) -> str:
        try:
            return json.dumps(value, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise StorageFault(
                f"Value for {key!r} is not JSON serializable: {exc}",
                namespace=self._namespace,
                key=key,
            ) from exc

    async def fetch(self, key: str) -> JSONValue:
        """Return the last saved value for *key*, or ``None`` when absent."""
        _logger.debug("fetch %s/%s", self._namespace, key)
        text = await self._locked(key, lambda: self._medium.read(self._full_key(key)))
        if text is None:
            return None
        return self._decode(key, text)

    async def fetch_by_prefix(self, prefix: str) -> list[Entry]:
        """Return every entry whose key starts with *prefix* (unordered)."""
        _logger.debug("fetch_by_prefix %s/%s", self._namespace, prefix)

        async def _read_all() -> list[tuple[str, str]]:
            found: list[tuple[str, str]] = []
            for full_key in await self._medium.keys(self._full_key(prefix)):
                text = await self._medium.read(full_key)
                if text is not None:
                    found.append((self._strip(full_key), text))
            return found

        pairs = await self._locked(prefix, _read_all)
        return [Entry(key=key, value=self._decode(key, text), namespace=self._namespace) for key, text in pairs]

    async def save(self, key: str, value: JSONValue) -> None:
        """Replace the value stored under *key*.

        ``None`` cannot be stored because it is the "absent" result of
        :meth:`fetch`; use :meth:`remove` instead.
        """
        if value is None:
            raise ValueError("Cannot save None; use remove() to delete a key")
        text = self._encode(key, value)
        _logger.debug("save %s/%s (%d bytes)", self._namespace, key, len(text))
        await self._locked(key, lambda: self._medium.write(self._full_key(key), text))

    async def remove(self, key: str) -> None:
        """Delete *key*; succeeds when it is already absent."""
        _logger.debug("remove %s/%s", self._namespace, key)
        await self._locked(key, lambda: self._medium.delete(self._full_key(key)))

    async def clear(self) -> None:
        """Delete every key of this namespace; other namespaces are untouched."""

        async def _clear() -> int:
            doomed = await self._medium.keys(self._prefix)
            await self._medium.delete_many(doomed)
            return len(doomed)

        removed = await self._locked("", _clear)
        _logger.debug("clear %s removed %d keys", self._namespace, removed)

    async def to_json(self) -> list[str]:
        """List the keys currently stored in this namespace."""
        full_keys = await self._locked("", lambda: self._medium.keys(self._prefix))
        return [self._strip(full_key) for full_key in full_keys]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(namespace={self._namespace!r}, medium={type(self._medium).__name__})"
