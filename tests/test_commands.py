from __future__ import annotations

import pytest

from pystatedb._media import MemoryMedium
from pystatedb.commands import CommandRegistry, register_state_commands
from pystatedb.store import KeyedStore


@pytest.mark.asyncio
async def test_clear_state_command_clears_namespace() -> None:
    medium = MemoryMedium()
    store = KeyedStore(medium, namespace="app-x")
    neighbour = KeyedStore(medium, namespace="app-y")
    await store.save("layout-restorer:data", {"panes": ["a"]})
    await neighbour.save("k", 1)
    registry = CommandRegistry()

    register_state_commands(registry, store)
    result = await registry.execute("apputils:clear-statedb")

    assert result is None
    assert await store.to_json() == []
    assert await neighbour.fetch("k") == 1


def test_clear_state_command_metadata() -> None:
    registry = CommandRegistry()
    register_state_commands(registry, KeyedStore(MemoryMedium(), namespace="app-x"))

    [command] = registry.list_commands()
    assert command.command_id == "apputils:clear-statedb"
    assert command.label == "Clear Application Restore State"
    assert registry.has_command("apputils:clear-statedb")


def test_duplicate_command_rejected() -> None:
    registry = CommandRegistry()
    registry.add_command("a", "A", lambda: None)

    with pytest.raises(ValueError):
        registry.add_command("a", "Again", lambda: None)


@pytest.mark.asyncio
async def test_sync_command_and_unknown_command() -> None:
    registry = CommandRegistry()
    registry.add_command("answer", "Answer", lambda: 42)

    assert await registry.execute("answer") == 42
    with pytest.raises(KeyError):
        await registry.execute("missing")
