"""Administrative commands exposed by the state database."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pystatedb._constants import CLEAR_STATE_COMMAND_ID, CLEAR_STATE_COMMAND_LABEL
from pystatedb.store import KeyedStore

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Command:
    command_id: str
    label: str
    execute: Callable[[], Awaitable[Any] | Any]


class CommandRegistry:
    """In-memory command table.

    A stand-in for the host's command registry; hosts with their own
    registry can call :func:`register_state_commands` with anything that
    has a compatible ``add_command``.
    """

    def __init__(self) -> None:
        self._commands: dict[str, Command] = {}

    def add_command(self, command_id: str, label: str, execute: Callable[[], Awaitable[Any] | Any]) -> Command:
        if command_id in self._commands:
            raise ValueError(f"Command {command_id!r} is already registered")
        command = Command(command_id=command_id, label=label, execute=execute)
        self._commands[command_id] = command
        return command

    def has_command(self, command_id: str) -> bool:
        return command_id in self._commands

    def list_commands(self) -> list[Command]:
        return list(self._commands.values())

    async def execute(self, command_id: str) -> Any:
        command = self._commands.get(command_id)
        if command is None:
            raise KeyError(f"Unknown command {command_id!r}")
        _logger.debug("Executing command %s", command_id)
        result = command.execute()
        if inspect.isawaitable(result):
            result = await result
        return result


def register_state_commands(registry: CommandRegistry, store: KeyedStore) -> None:
    """Register the "clear stored state" command against *store*."""

    async def _clear() -> None:
        _logger.info("Clearing stored state for namespace %s", store.namespace)
        await store.clear()

    registry.add_command(CLEAR_STATE_COMMAND_ID, CLEAR_STATE_COMMAND_LABEL, _clear)
