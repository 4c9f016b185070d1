"""Lifecycle signals consumed by the janitor.

The browser version listened to ``load`` and ``visibilitychange``. Here the
host application reports those moments through a ``LifecycleSource``:

- start: the application finished loading (fires once);
- foreground: the application became visible/active again (fires often).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)

Listener = Callable[[], None]
Unsubscribe = Callable[[], None]


class LifecycleSource(Protocol):
    """Source of start and foreground signals."""

    def on_start(self, listener: Listener) -> Unsubscribe:
        """Register a listener for the start signal."""
        ...

    def on_foreground(self, listener: Listener) -> Unsubscribe:
        """Register a listener for foreground signals."""
        ...


class ManualLifecycleSource:
    """Lifecycle source driven by explicit calls from the host application.

    A start listener registered after ``start()`` already fired is invoked
    immediately, so late subscribers still get their one start callback.

    Example:
        lifecycle = ManualLifecycleSource()
        lifecycle.on_foreground(lambda: print("visible"))
        lifecycle.foreground()
    """

    def __init__(self) -> None:
        self._start_listeners: list[Listener] = []
        self._foreground_listeners: list[Listener] = []
        self.started = False

    @property
    def start_listener_count(self) -> int:
        return len(self._start_listeners)

    @property
    def foreground_listener_count(self) -> int:
        return len(self._foreground_listeners)

    def on_start(self, listener: Listener) -> Unsubscribe:
        if self.started:
            self._call(listener, "start")
            return lambda: None
        self._start_listeners.append(listener)
        return lambda: self._detach(self._start_listeners, listener)

    def on_foreground(self, listener: Listener) -> Unsubscribe:
        self._foreground_listeners.append(listener)
        return lambda: self._detach(self._foreground_listeners, listener)

    def start(self) -> None:
        """Fire the start signal. Later calls are ignored."""
        if self.started:
            return
        self.started = True
        listeners, self._start_listeners = self._start_listeners, []
        for listener in listeners:
            self._call(listener, "start")

    def foreground(self) -> None:
        """Fire a foreground signal."""
        for listener in list(self._foreground_listeners):
            self._call(listener, "foreground")

    @staticmethod
    def _detach(listeners: list[Listener], listener: Listener) -> None:
        if listener in listeners:
            listeners.remove(listener)

    @staticmethod
    def _call(listener: Listener, signal: str) -> None:
        try:
            listener()
        except Exception as e:
            logger.error(f"Lifecycle {signal} listener failed: {e}")
