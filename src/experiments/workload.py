from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional


@dataclass
class Request:
    op: str
    size: int = 0
    # Index into the caller's list of live pointers, for releases.
    victim: int = 0


class SimulatedWorkload:
    """
    Generate allocate/release streams that mix small and large requests.

    Most requests are small, with an occasional large one, so the two placement
    policies leave visibly different fragmentation behind.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        *,
        min_size: int = 1,
        max_size: int = 64,
        large_size: int = 256,
        large_probability: float = 0.1,
        release_probability: float = 0.4,
    ) -> None:
        if min_size < 1 or max_size < min_size:
            raise ValueError("Request sizes must satisfy 1 <= min_size <= max_size")
        self.random = random.Random(seed)
        self.min_size = min_size
        self.max_size = max_size
        self.large_size = max(large_size, max_size)
        self.large_probability = large_probability
        self.release_probability = release_probability

    def next_request(self, live: int) -> Request:
        """Draw the next request given how many allocations are currently live."""
        if live and self.random.random() < self.release_probability:
            return Request(op="release", victim=self.random.randrange(live))
        if self.random.random() < self.large_probability:
            size = self.random.randint(self.max_size, self.large_size)
        else:
            size = self.random.randint(self.min_size, self.max_size)
        return Request(op="allocate", size=size)
