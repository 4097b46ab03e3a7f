"""Seeded pseudo-random source — deterministic stream from a string seed.

The seed string is hashed to 32 bits with djb2 (multiply by 33, xor in
each UTF-16 code unit), and the stream advances with mulberry32. All
arithmetic is masked to 32 bits so the sequence is bit-identical to
the reference implementation used by the web client.

Each consumer constructs its own named SeededRandom from a seed derived
for its purpose (see derive_seed). Streams for unrelated purposes are
never shared.

Usage:
    rng = SeededRandom.for_purpose("contract-123", SeedPurpose.SCHEDULE)
    rng.next_float()        # 0 <= x < 1
    rng.next_int(1, 6)      # inclusive
    rng.shuffle(days)       # in place
"""

from __future__ import annotations

import enum
import math
from typing import List, MutableSequence, TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF
_DJB2_INIT = 5381
_MULBERRY_INCREMENT = 0x6D2B79F5
_TWO_POW_32 = 4294967296.0


class SeedPurpose(str, enum.Enum):
    """Independent random streams derived from one contract seed."""
    SCHEDULE = "schedule"
    SIMULATION = "simulation"


# Suffix appended to the base seed for each purpose. The schedule stream
# uses the bare seed so stored schedules stay reproducible.
_PURPOSE_SUFFIX = {
    SeedPurpose.SCHEDULE: "",
    SeedPurpose.SIMULATION: "-simulation",
}


def derive_seed(seed: str, purpose: SeedPurpose) -> str:
    """Return the seed string for a given purpose."""
    return seed + _PURPOSE_SUFFIX[purpose]


def hash_seed(seed: str) -> int:
    """djb2 hash of the seed's UTF-16 code units, as unsigned 32-bit."""
    h = _DJB2_INIT
    data = seed.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        code_unit = data[i] | (data[i + 1] << 8)
        h = ((h * 33) & _MASK32) ^ code_unit
    return h & _MASK32


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


class SeededRandom:
    """Deterministic mulberry32 generator.

    Same seed, same infinite sequence. No I/O; the only side effect is
    the internal 32-bit state.
    """

    def __init__(self, seed: str) -> None:
        self._seed = seed
        self._state = hash_seed(seed)

    @classmethod
    def for_purpose(cls, seed: str, purpose: SeedPurpose) -> SeededRandom:
        return cls(derive_seed(seed, purpose))

    @property
    def seed(self) -> str:
        return self._seed

    def next_float(self) -> float:
        """Return the next float in [0, 1)."""
        self._state = (self._state + _MULBERRY_INCREMENT) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_POW_32

    def next_int(self, min_value: int, max_value: int) -> int:
        """Return an integer in [min_value, max_value], inclusive."""
        return math.floor(self.next_float() * (max_value - min_value + 1)) + min_value

    def shuffle(self, items: MutableSequence[T]) -> MutableSequence[T]:
        """Fisher-Yates shuffle in place; returns the same sequence."""
        for i in range(len(items) - 1, 0, -1):
            j = math.floor(self.next_float() * (i + 1))
            items[i], items[j] = items[j], items[i]
        return items

    def sample_sorted(self, population: List[int], count: int) -> List[int]:
        """Shuffle a copy of population and return the first count, sorted."""
        pool = list(population)
        self.shuffle(pool)
        return sorted(pool[:count])
