from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Generic, Iterator, TypeVar

logger = logging.getLogger(__name__)

# Progress is reported (and cancellation polled) once per this many probes.
PROGRESS_INTERVAL = 100


class InteractionCapacityWarning(UserWarning):
    """More interactions than the configured capacity; the excess was dropped."""


class ProgressListener:
    """Receives notifications from long-running builds. Override what you need."""

    def updated(self, message: str, current: int, total: int) -> None:
        pass

    def cancelled(self) -> None:
        pass

    def warning_or_exception(self, exc: BaseException) -> None:
        pass

    def complete(self, tag: str, result: Any) -> None:
        pass


class FilterListener:
    """Receives filter-change notifications from a FilterEngine."""

    def min_distance_changed(self, value: int) -> None:
        pass

    def max_distance_changed(self, value: int) -> None:
        pass

    def min_strength_changed(self, value: float) -> None:
        pass

    def max_significance_changed(self, value: float) -> None:
        pass

    def min_absolute_changed(self, value: int) -> None:
        pass

    def probe_filter_changed(self, probes) -> None:
        pass

    def cluster_changed(self, cluster) -> None:
        pass

    def cluster_r_value_changed(self, value: float) -> None:
        pass


L = TypeVar("L")


class ListenerRegistry(Generic[L]):
    """Per-instance list of listeners; adding twice is a no-op."""

    def __init__(self) -> None:
        self._listeners: list[L] = []
        self._lock = threading.Lock()

    def add(self, listener: L) -> L:
        if listener is None:
            raise ValueError("Listener can't be None")
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)
        return listener

    def remove(self, listener: L) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def __iter__(self) -> Iterator[L]:
        with self._lock:
            snapshot = list(self._listeners)
        return iter(snapshot)

    def __len__(self) -> int:
        return len(self._listeners)

    def notify(self, fn: Callable[[L], None]) -> None:
        for listener in self:
            fn(listener)


class CancellationToken:
    """Cooperative cancellation flag, polled at documented checkpoints."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def reset(self) -> None:
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ProgressReporter:
    """Fans progress events out to a registry of ProgressListeners."""

    def __init__(self, listeners: ListenerRegistry[ProgressListener]) -> None:
        self.listeners = listeners

    def updated(self, message: str, current: int, total: int) -> None:
        logger.debug("%s (%d/%d)", message, current, total)
        self.listeners.notify(lambda l: l.updated(message, current, total))

    def cancelled(self) -> None:
        logger.info("Cancelled")
        self.listeners.notify(lambda l: l.cancelled())

    def warning(self, exc: BaseException) -> None:
        logger.warning("%s", exc)
        self.listeners.notify(lambda l: l.warning_or_exception(exc))

    def exception(self, exc: BaseException) -> None:
        logger.error("Build failed: %s", exc)
        self.listeners.notify(lambda l: l.warning_or_exception(exc))

    def complete(self, tag: str, result: Any) -> None:
        self.listeners.notify(lambda l: l.complete(tag, result))
