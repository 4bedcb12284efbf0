"""
Seeded random streams for the procurement sim.

One process-wide base seed; every system asks for its own stream by tag
("search_scheduler", "discovery_gate", "buyer_profiles", ...). A stream depends
only on the base seed and its tag, so adding draws in one system never shifts
another system's outcomes.

Streams are Mersenne Twister instances: reproducible, not secure.
"""

from __future__ import annotations

import random
import zlib
from typing import Optional

_SEED_MASK = 0xFFFFFFFF

_base_seed: int = 1
_shared: random.Random = random.Random(_base_seed)


def set_sim_seed(seed: int) -> None:
    """Reseed the sim. Streams fetched before this call keep their old sequence."""
    global _base_seed, _shared
    _base_seed = int(seed) & _SEED_MASK
    _shared = random.Random(_base_seed)


def get_sim_seed() -> int:
    return _base_seed


def stream_seed(tag: str) -> int:
    # crc32, not hash(): str hashing is salted per process.
    return (_base_seed ^ zlib.crc32(str(tag).encode("utf-8"))) & _SEED_MASK


def get_rng(tag: Optional[str] = None) -> random.Random:
    """
    Return a new stream for `tag`, or the shared stream when no tag is given.

    Every call with a tag builds a fresh generator from the start of its
    sequence; hold on to it.
    """
    if tag is None:
        return _shared
    return random.Random(stream_seed(tag))
