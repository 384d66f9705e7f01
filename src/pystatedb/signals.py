"""Minimal observer primitive used for shell notifications."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from typing import Any

_logger = logging.getLogger(__name__)


class Subscription:
    """Handle returned by :meth:`Signal.connect`; dispose to disconnect."""

    def __init__(self, signal: Signal, callback: Callable[..., None]) -> None:
        self._signal = signal
        self._callback = callback
        self._disposed = False

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._signal._disconnect(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.dispose()


class Signal:
    """Synchronous fan-out of notifications to connected callbacks.

    Callbacks run in connection order. An exception from one callback is
    logged and does not stop delivery to the others.
    """

    def __init__(self, name: str = "") -> None:
        self._name = name
        self._subscriptions: list[Subscription] = []

    def connect(self, callback: Callable[..., None]) -> Subscription:
        subscription = Subscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    def _disconnect(self, subscription: Subscription) -> None:
        with contextlib.suppress(ValueError):
            self._subscriptions.remove(subscription)

    def __len__(self) -> int:
        return len(self._subscriptions)

    def emit(self, *args: Any) -> None:
        # Copy so callbacks may dispose their own subscription.
        for subscription in list(self._subscriptions):
            if subscription.is_disposed:
                continue
            try:
                subscription._callback(*args)
            except Exception:
                _logger.exception("Callback for signal %s failed", self._name or "<anonymous>")
