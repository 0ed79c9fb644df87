# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Coalesced change notification across the config sources of one pass."""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, Optional

from .logger import Logger
from .logger_factory import create_logger
from .source import WatchFunc

_logger = create_logger(name="copilot_config_sources.watcher")

# Poll interval used to notice an externally owned cancel event.
CANCEL_POLL_SECONDS = 0.1
STOP_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class ChangeEvent:
    """Notification that the resolved configuration is stale.

    Attributes:
        error: None when a watched value changed, otherwise the failure
            reported by the watch
    """

    error: Optional[Exception] = None


class WatcherState(str, Enum):
    """Lifecycle of a ChangeWatcher."""

    IDLE = "idle"
    WATCHING = "watching"
    FIRED = "fired"
    STOPPED = "stopped"


class ChangeWatcher:
    """Runs one watch per touched config source and reports the first signal.

    Each watch runs in its own daemon thread. The first watch to return,
    whether with a change or a failure, delivers exactly one ChangeEvent to
    the callback; every other watch is told to stop through the shared stop
    event. Stopping before any signal delivers nothing.

    Example:
        >>> watcher = ChangeWatcher(touched.watches, on_change=lambda event: reload())
        >>> watcher.start()
        >>> ...
        >>> watcher.stop()
    """

    def __init__(
        self,
        watches: Mapping[str, WatchFunc],
        on_change: Callable[[ChangeEvent], None],
        cancel: Optional[threading.Event] = None,
        logger: Optional[Logger] = None,
    ):
        """Initialize the watcher.

        Args:
            watches: One watch function per config source name
            on_change: Callback receiving the single ChangeEvent
            cancel: Externally owned event; setting it stops the watcher
            logger: Logger instance
        """
        self._watches = dict(watches)
        self._on_change = on_change
        self._cancel = cancel
        self._logger = logger or _logger
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._state = WatcherState.IDLE
        self._threads: list[threading.Thread] = []

    @property
    def state(self) -> WatcherState:
        return self._state

    def start(self) -> None:
        """Start one watch thread per config source."""
        with self._lock:
            if self._state != WatcherState.IDLE:
                return
            self._state = WatcherState.WATCHING

        for name, watch in self._watches.items():
            thread = threading.Thread(
                target=self._run_watch,
                args=(name, watch),
                name=f"config-source-watch-{name}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

        if self._cancel is not None:
            thread = threading.Thread(
                target=self._wait_for_cancel,
                name="config-source-watch-cancel",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

        self._logger.info("Watching config sources for updates", sources=list(self._watches))

    def stop(self, timeout: Optional[float] = STOP_TIMEOUT_SECONDS) -> None:
        """Stop every watch without delivering an event.

        Safe to call at any time and more than once, including from the
        change callback.

        Args:
            timeout: Seconds to wait for each watch thread to exit
        """
        with self._lock:
            if self._state == WatcherState.STOPPED:
                return
            fired = self._state == WatcherState.FIRED
            self._state = WatcherState.STOPPED

        self._stop_event.set()
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current and thread.is_alive():
                thread.join(timeout=timeout)

        if not fired:
            self._logger.info("Stopped watching config sources")

    def _run_watch(self, name: str, watch: WatchFunc) -> None:
        try:
            error = watch(self._stop_event)
        except Exception as e:
            error = e

        if self._stop_event.is_set():
            return
        self._fire(name, ChangeEvent(error=error))

    def _fire(self, name: str, event: ChangeEvent) -> None:
        with self._lock:
            if self._state != WatcherState.WATCHING:
                return
            self._state = WatcherState.FIRED
        self._stop_event.set()

        if event.error is None:
            self._logger.info("Config source reported an update", source=name)
        else:
            self._logger.warning(
                "Config source watch failed",
                source=name,
                error_type=type(event.error).__name__,
                error=str(event.error),
            )

        try:
            self._on_change(event)
        except Exception:
            self._logger.exception("Change callback raised an exception", source=name)
        finally:
            with self._lock:
                self._state = WatcherState.STOPPED

    def _wait_for_cancel(self) -> None:
        while not self._stop_event.is_set():
            if self._cancel.wait(CANCEL_POLL_SECONDS):
                self.stop()
                return
