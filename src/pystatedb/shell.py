"""Contracts of the collaborators the restorer talks to."""

from __future__ import annotations

from collections.abc import Awaitable
from typing import Any, Protocol

from pystatedb.models import JSONValue
from pystatedb.signals import Signal

#: Layout applied when nothing usable was persisted. The shell owns the
#: real layout schema; this is an empty main area in multi-document mode.
DEFAULT_LAYOUT: dict[str, Any] = {
    "mode": "multiple-document",
    "main_area": None,
    "left_area": None,
    "right_area": None,
}


class Shell(Protocol):
    """Layout shell of the host application.

    ``apply_layout`` may be a plain method or a coroutine function.
    """

    layout_modified: Signal

    def apply_layout(self, snapshot: JSONValue) -> Awaitable[None] | None:
        ...

    def current_snapshot(self) -> JSONValue:
        ...
