from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Sequence

from .interactions import InteractionProbePair
from .probes import Probe
from .progress import FilterListener, ListenerRegistry

logger = logging.getLogger(__name__)

# max_distance value meaning "no ceiling"
NO_MAX_DISTANCE = 0


@dataclass(frozen=True)
class FilterBounds:
    """Filter thresholds for interactions.

    max_distance of 0 means no ceiling (and trans pairs allowed); any finite
    max_distance excludes trans pairs. max_significance >= 1 disables the
    significance filter.
    """

    min_distance: int = 0
    max_distance: int = NO_MAX_DISTANCE
    min_strength: float = 0.0
    max_significance: float = 1.0
    min_absolute: int = 0

    def __post_init__(self) -> None:
        if self.min_distance < 0:
            raise ValueError(f"min_distance must be >= 0; got {self.min_distance}")
        if self.max_distance < 0:
            raise ValueError(f"max_distance must be >= 0; got {self.max_distance}")
        if self.max_significance < 0:
            raise ValueError(f"max_significance must be >= 0; got {self.max_significance}")

    @property
    def cis_only(self) -> bool:
        return self.max_distance > 0


def passes(
    pair: InteractionProbePair,
    bounds: FilterBounds,
    probe_filter: frozenset[Probe] | None = None,
) -> bool:
    if probe_filter is not None:
        if pair.probe1 not in probe_filter and pair.probe2 not in probe_filter:
            return False

    if pair.strength < bounds.min_strength:
        return False

    if pair.same_chromosome():
        d = pair.distance()
        if d < bounds.min_distance:
            return False
        if bounds.max_distance != NO_MAX_DISTANCE and d > bounds.max_distance:
            return False
    elif bounds.max_distance != NO_MAX_DISTANCE:
        return False

    if bounds.max_significance < 1 and pair.significance > bounds.max_significance:
        return False

    if pair.absolute < bounds.min_absolute:
        return False

    return True


class FilterEngine:
    """Mutable filter state over a finished interaction set.

    ``initial`` bounds are fixed: they decided what was computed and corrected
    in the first place, so current bounds may tighten them but never relax
    them. Requests laxer than the initial bound are clamped to it. Every
    change drops the cached filtered view before listeners hear about it.
    """

    def __init__(self, initial: FilterBounds, interactions: Callable[[], Sequence[InteractionProbePair] | None]):
        self.initial = initial
        self._current = initial
        self._interactions = interactions
        self._probe_filter: frozenset[Probe] | None = None
        self._filtered: tuple[InteractionProbePair, ...] | None = None
        self._lock = threading.RLock()
        self.listeners: ListenerRegistry[FilterListener] = ListenerRegistry()

    @property
    def current(self) -> FilterBounds:
        return self._current

    @property
    def probe_filter(self) -> frozenset[Probe] | None:
        return self._probe_filter

    def _update(self, **changes) -> None:
        with self._lock:
            self._current = replace(self._current, **changes)
            self._filtered = None

    def publish(self, swap: Callable[[], None]) -> None:
        """Run ``swap`` (which replaces the interaction set) and drop the
        cached view in one step, so no reader sees the old view afterwards."""
        with self._lock:
            swap()
            self._filtered = None

    def set_min_distance(self, value: int) -> int:
        value = max(int(value), self.initial.min_distance)
        self._update(min_distance=value)
        self.listeners.notify(lambda l: l.min_distance_changed(value))
        return value

    def set_max_distance(self, value: int) -> int:
        value = max(int(value), NO_MAX_DISTANCE)
        if self.initial.max_distance != NO_MAX_DISTANCE:
            if value == NO_MAX_DISTANCE or value > self.initial.max_distance:
                logger.debug("Clamping max distance %d to %d", value, self.initial.max_distance)
                value = self.initial.max_distance
        self._update(max_distance=value)
        self.listeners.notify(lambda l: l.max_distance_changed(value))
        return value

    def set_min_strength(self, value: float) -> float:
        value = max(float(value), self.initial.min_strength)
        self._update(min_strength=value)
        self.listeners.notify(lambda l: l.min_strength_changed(value))
        return value

    def set_max_significance(self, value: float) -> float:
        value = max(min(float(value), self.initial.max_significance), 0.0)
        self._update(max_significance=value)
        self.listeners.notify(lambda l: l.max_significance_changed(value))
        return value

    def set_min_absolute(self, value: int) -> int:
        value = max(int(value), self.initial.min_absolute)
        self._update(min_absolute=value)
        self.listeners.notify(lambda l: l.min_absolute_changed(value))
        return value

    def set_probe_filter(self, probes: Iterable[Probe] | None) -> None:
        with self._lock:
            self._probe_filter = None if probes is None else frozenset(probes)
            self._filtered = None
        self.listeners.notify(lambda l: l.probe_filter_changed(probes))

    def reset(self) -> None:
        """Restore every current bound to its initial value."""
        self.set_min_distance(self.initial.min_distance)
        self.set_max_distance(self.initial.max_distance)
        self.set_min_strength(self.initial.min_strength)
        self.set_max_significance(self.initial.max_significance)
        self.set_min_absolute(self.initial.min_absolute)

    def passes(self, pair: InteractionProbePair) -> bool:
        return passes(pair, self._current, self._probe_filter)

    def filtered(self) -> tuple[InteractionProbePair, ...]:
        with self._lock:
            if self._filtered is None:
                interactions = self._interactions()
                if interactions is None:
                    raise RuntimeError("Interactions have not been calculated yet")
                bounds, probe_filter = self._current, self._probe_filter
                self._filtered = tuple(p for p in interactions if passes(p, bounds, probe_filter))
            return self._filtered
