"""Structural interface of a persistence medium."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol


class Medium(Protocol):
    """Durable key -> JSON text mapping wrapped by :class:`KeyedStore`.

    Keys are full, namespace-prefixed strings. The only obligations are
    atomic single-key replace and crash-consistent reads; failures are
    reported as :class:`~pystatedb.exceptions.StorageFault`.
    """

    async def read(self, key: str) -> str | None:
        ...

    async def write(self, key: str, data: str) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def delete_many(self, keys: Iterable[str]) -> None:
        ...

    async def keys(self, prefix: str = "") -> list[str]:
        ...
