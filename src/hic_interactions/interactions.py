from __future__ import annotations

from dataclasses import dataclass, field

from .probes import Probe


def pack_key(i: int, j: int, probe_count: int) -> int:
    """Encode an ordered pair of sorted positions as ``i + j * probe_count``."""
    return i + j * probe_count


def unpack_key(key: int, probe_count: int) -> tuple[int, int]:
    return key % probe_count, key // probe_count


@dataclass(eq=False)
class InteractionProbePair:
    """A scored interaction between two probes.

    ``significance`` starts at 0, receives the raw p-value when the pair is
    scored and is overwritten once more with the corrected value.
    """

    probe1: Probe
    index1: int
    probe2: Probe
    index2: int
    strength: float
    absolute: int
    significance: float = 0.0
    _lowest_is_probe1: bool = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._lowest_is_probe1 = not (self.probe2 < self.probe1)

    def same_chromosome(self) -> bool:
        return self.probe1.chromosome == self.probe2.chromosome

    def distance(self) -> int:
        """Gap between the two probes (0 when they overlap).

        Only defined for probes on the same chromosome; check
        same_chromosome() first.
        """
        if not self.same_chromosome():
            raise ValueError("Probes were not on the same chromosome.")
        d = max(self.probe1.start - self.probe2.end, self.probe2.start - self.probe1.end)
        return max(d, 0)

    @property
    def lowest_probe(self) -> Probe:
        return self.probe1 if self._lowest_is_probe1 else self.probe2

    @property
    def highest_probe(self) -> Probe:
        return self.probe2 if self._lowest_is_probe1 else self.probe1

    @property
    def lowest_index(self) -> int:
        return self.index1 if self._lowest_is_probe1 else self.index2

    def sort_key(self) -> tuple:
        # The same probe pair can appear more than once when probes are shared
        # between input lists; the index keeps those apart.
        return (self.lowest_probe.sort_key(), self.highest_probe.sort_key(), self.lowest_index)

    def __lt__(self, other: InteractionProbePair) -> bool:
        return self.sort_key() < other.sort_key()
