from __future__ import annotations

import asyncio
import json
from pathlib import Path

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer as _StateTestServer

from pystatedb._media import FileMedium, HttpMedium
from pystatedb.exceptions import StorageFault
from pystatedb.store import KeyedStore

# ---------------------------------------------------------------------------
# FileMedium
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_file_medium_survives_reopen(tmp_path: Path) -> None:
    path = tmp_path / "state" / "state.json"
    store = KeyedStore(FileMedium(path), namespace="app-x")
    await store.save("layout", {"panes": ["a"]})

    reopened = KeyedStore(FileMedium(path), namespace="app-x")

    assert await reopened.fetch("layout") == {"panes": ["a"]}
    assert json.loads(path.read_text(encoding="utf-8")) == {"app-x:layout": '{"panes":["a"]}'}


@pytest.mark.asyncio
async def test_file_medium_missing_file_is_empty(tmp_path: Path) -> None:
    store = KeyedStore(FileMedium(tmp_path / "nope.json"), namespace="app-x")

    assert await store.fetch("anything") is None
    assert await store.to_json() == []


@pytest.mark.asyncio
async def test_file_medium_clear_keeps_other_namespaces(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    medium = FileMedium(path)
    mine = KeyedStore(medium, namespace="mine")
    theirs = KeyedStore(medium, namespace="theirs")
    await mine.save("a", 1)
    await theirs.save("a", 2)

    await mine.clear()

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk == {"theirs:a": "2"}


@pytest.mark.asyncio
async def test_file_medium_concurrent_saves_from_two_namespaces(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    medium = FileMedium(path)
    app_a = KeyedStore(medium, namespace="app-a")
    app_b = KeyedStore(medium, namespace="app-b")

    await asyncio.gather(app_a.save("k", "A"), app_b.save("k", "B"))

    assert await app_a.fetch("k") == "A"
    assert await app_b.fetch("k") == "B"
    assert json.loads(path.read_text(encoding="utf-8")) == {"app-a:k": '"A"', "app-b:k": '"B"'}


@pytest.mark.asyncio
async def test_file_medium_clear_racing_other_namespace_save(tmp_path: Path) -> None:
    medium = FileMedium(tmp_path / "state.json")
    mine = KeyedStore(medium, namespace="mine")
    theirs = KeyedStore(medium, namespace="theirs")
    await mine.save("a", 1)

    await asyncio.gather(mine.clear(), theirs.save("a", 2))

    assert await mine.to_json() == []
    assert await theirs.fetch("a") == 2


@pytest.mark.asyncio
async def test_file_medium_instances_sharing_a_path_keep_each_others_keys(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    app_a = KeyedStore(FileMedium(path), namespace="app-a")
    app_b = KeyedStore(FileMedium(path), namespace="app-b")
    assert await app_a.fetch("k") is None
    assert await app_b.fetch("k") is None

    await app_a.save("k", "A")
    await app_b.save("k", "B")
    await app_b.clear()

    reopened = KeyedStore(FileMedium(path), namespace="app-a")
    assert await reopened.fetch("k") == "A"
    assert await app_b.fetch("k") is None


@pytest.mark.asyncio
async def test_file_medium_reads_see_writes_from_another_instance(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    reader = KeyedStore(FileMedium(path), namespace="app-x")
    writer = KeyedStore(FileMedium(path), namespace="app-x")
    assert await reader.fetch("layout") is None

    await writer.save("layout", {"panes": ["b", "c"]})

    assert await reader.fetch("layout") == {"panes": ["b", "c"]}


@pytest.mark.asyncio
async def test_file_medium_leaves_no_temp_files(tmp_path: Path) -> None:
    store = KeyedStore(FileMedium(tmp_path / "state.json"), namespace="app-x")
    for i in range(3):
        await store.save("k", i)

    assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


@pytest.mark.asyncio
async def test_file_medium_corrupt_file_raises_storage_fault(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{ truncated", encoding="utf-8")
    store = KeyedStore(FileMedium(path), namespace="app-x")

    with pytest.raises(StorageFault):
        await store.fetch("layout")


@pytest.mark.asyncio
async def test_file_medium_unexpected_layout_raises_storage_fault(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"app-x:k": {"not": "text"}}), encoding="utf-8")
    store = KeyedStore(FileMedium(path), namespace="app-x")

    with pytest.raises(StorageFault):
        await store.fetch("k")


# ---------------------------------------------------------------------------
# HttpMedium
# ---------------------------------------------------------------------------


def _state_server(fail_writes: bool = False) -> tuple[web.Application, dict[str, str]]:
    data: dict[str, str] = {}

    async def get_item(request: web.Request) -> web.Response:
        key = request.match_info["key"]
        if key not in data:
            return web.json_response({"message": "not found"}, status=404)
        return web.json_response({"value": data[key]})

    async def put_item(request: web.Request) -> web.Response:
        if fail_writes:
            return web.json_response({"message": "read-only"}, status=503)
        body = await request.json()
        data[request.match_info["key"]] = body["value"]
        return web.Response(status=204)

    async def delete_item(request: web.Request) -> web.Response:
        if data.pop(request.match_info["key"], None) is None:
            return web.json_response({"message": "not found"}, status=404)
        return web.Response(status=204)

    async def list_keys(request: web.Request) -> web.Response:
        prefix = request.query.get("prefix", "")
        return web.json_response({"keys": [k for k in data if k.startswith(prefix)]})

    app = web.Application()
    app.router.add_get("/api/statedb", list_keys)
    app.router.add_get("/api/statedb/{key}", get_item)
    app.router.add_put("/api/statedb/{key}", put_item)
    app.router.add_delete("/api/statedb/{key}", delete_item)
    return app, data


@pytest.mark.asyncio
async def test_http_medium_round_trip_and_clear() -> None:
    app, data = _state_server()
    server = _StateTestServer(app)
    await server.start_server()
    try:
        async with aiohttp.ClientSession() as session:
            base = str(server.make_url("/"))
            store = KeyedStore(HttpMedium(base, session), namespace="app-x")
            other = KeyedStore(HttpMedium(base, session), namespace="app-y")

            await store.save("layout-restorer:data", {"panes": ["a"]})
            await other.save("k", 1)

            assert data["app-x:layout-restorer:data"] == '{"panes":["a"]}'
            assert await store.fetch("layout-restorer:data") == {"panes": ["a"]}
            assert await store.fetch("missing") is None
            assert await store.to_json() == ["layout-restorer:data"]

            await store.remove("missing")
            await store.clear()

            assert await store.fetch("layout-restorer:data") is None
            assert await other.fetch("k") == 1
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_http_medium_error_status_raises_storage_fault() -> None:
    app, _ = _state_server(fail_writes=True)
    server = _StateTestServer(app)
    await server.start_server()
    try:
        async with aiohttp.ClientSession() as session:
            store = KeyedStore(HttpMedium(str(server.make_url("/")), session), namespace="app-x")

            with pytest.raises(StorageFault) as exc_info:
                await store.save("k", 1)

            assert exc_info.value.status_code == 503
            assert exc_info.value.namespace == "app-x"
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_http_medium_connection_error_raises_storage_fault() -> None:
    app, _ = _state_server()
    server = _StateTestServer(app)
    await server.start_server()
    base = str(server.make_url("/"))
    await server.close()

    async with aiohttp.ClientSession() as session:
        store = KeyedStore(HttpMedium(base, session), namespace="app-x")
        with pytest.raises(StorageFault):
            await store.fetch("k")
