"""Ephemeral in-process medium."""

from __future__ import annotations

from collections.abc import Iterable


class MemoryMedium:
    """Dict-backed medium; state lives as long as the instance."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def read(self, key: str) -> str | None:
        return self._data.get(key)

    async def write(self, key: str, data: str) -> None:
        self._data[key] = data

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    async def keys(self, prefix: str = "") -> list[str]:
        return [key for key in self._data if key.startswith(prefix)]
