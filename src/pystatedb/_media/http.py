"""REST medium backed by a remote state endpoint."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any
from urllib.parse import quote

import aiohttp

from pystatedb._constants import HTTP_STATE_ENDPOINT
from pystatedb.exceptions import StorageFault

_logger = logging.getLogger(__name__)


class HttpMedium:
    """Medium that stores JSON text on a server.

    Wire contract::

        GET    {base}/api/statedb/{key}        -> {"value": "<json text>"} | 404
        PUT    {base}/api/statedb/{key}        <- {"value": "<json text>"}
        DELETE {base}/api/statedb/{key}        -> 2xx | 404
        GET    {base}/api/statedb?prefix=...   -> {"keys": ["...", ...]}
    """

    def __init__(self, base_url: str, http_session: aiohttp.ClientSession) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_session

    def _url(self, key: str | None = None) -> str:
        if key is None:
            return f"{self._base_url}{HTTP_STATE_ENDPOINT}"
        return f"{self._base_url}{HTTP_STATE_ENDPOINT}/{quote(key, safe='')}"

    async def _request(
        self,
        method: str,
        key: str | None = None,
        *,
        body: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        allow_missing: bool = False,
    ) -> dict[str, Any] | None:
        url = self._url(key)
        _logger.debug("%s %s", method, url)

        data = json.dumps(body) if body is not None else None
        headers = {"content-type": "application/json; charset=UTF-8"} if data is not None else None
        try:
            async with self._http.request(method, url, data=data, params=params, headers=headers) as resp:
                text = await resp.text()
                if resp.status == 404 and allow_missing:
                    return None
                if resp.status >= 300:
                    raise StorageFault(
                        f"HTTP {resp.status} from {method} {url}: {text[:200]}",
                        key=key or "",
                        status_code=resp.status,
                    )
        except StorageFault:
            raise
        except aiohttp.ClientError as exc:
            raise StorageFault(f"{method} {url} failed: {exc}", key=key or "") from exc

        if not text.strip():
            return {}
        try:
            result = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StorageFault(f"Invalid JSON from {url}: {text[:200]}", key=key or "") from exc
        if not isinstance(result, dict):
            raise StorageFault(f"Expected a JSON object from {url}", key=key or "")
        return result

    async def read(self, key: str) -> str | None:
        result = await self._request("GET", key, allow_missing=True)
        if result is None:
            return None
        value = result.get("value")
        if not isinstance(value, str):
            raise StorageFault(f"Missing 'value' field for {key}", key=key)
        return value

    async def write(self, key: str, data: str) -> None:
        await self._request("PUT", key, body={"value": data})

    async def delete(self, key: str) -> None:
        await self._request("DELETE", key, allow_missing=True)

    async def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            await self.delete(key)

    async def keys(self, prefix: str = "") -> list[str]:
        result = await self._request("GET", params={"prefix": prefix})
        keys = (result or {}).get("keys")
        if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
            raise StorageFault("Missing 'keys' list in listing response")
        return [k for k in keys if k.startswith(prefix)]
