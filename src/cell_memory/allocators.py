from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence, Type

from .layout import iter_free_runs


class Allocator(ABC):
    """
    Placement policy for a memory space.

    An allocator only chooses where a request goes; the memory space owns the
    cells and does the marking. One allocator instance serves one space, since
    a policy may keep scan state between calls.
    """

    name: str

    @abstractmethod
    def select(self, cells: Sequence[int], size: int) -> Optional[int]:
        """Return the start index of the chosen free run, or None if nothing fits."""

    def on_allocate(self, start: int, size: int) -> None:
        """Called after ``size`` cells at ``start`` have been marked occupied."""

    def on_release(self, start: int, size: int) -> None:
        """Called after ``size`` cells at ``start`` have been returned to the free pool."""

    def on_compact(self, used: int) -> None:
        """Called after compaction packed ``used`` cells at the low end of the array."""


class FirstFitAllocator(Allocator):
    """
    First-fit: walk free runs in address order and take the first one that fits.

    ``resume_at`` is a hint every cell below which is occupied, so scans can
    skip the packed prefix without changing which run is chosen.
    """

    def __init__(self) -> None:
        self.name = "first_fit"
        self.resume_at = 0

    def select(self, cells: Sequence[int], size: int) -> Optional[int]:
        for run in iter_free_runs(cells, self.resume_at):
            if run.size >= size:
                return run.start
        return None

    def on_allocate(self, start: int, size: int) -> None:
        if start == self.resume_at:
            self.resume_at = start + size

    def on_release(self, start: int, size: int) -> None:
        if start < self.resume_at:
            self.resume_at = start

    def on_compact(self, used: int) -> None:
        self.resume_at = used


class BestFitAllocator(Allocator):
    """
    Best-fit: choose the smallest free run that can hold the request.

    Always scans the whole array. Equal-sized candidates resolve to the lowest
    address.
    """

    def __init__(self) -> None:
        self.name = "best_fit"

    def select(self, cells: Sequence[int], size: int) -> Optional[int]:
        best_start: Optional[int] = None
        best_size = 0
        for run in iter_free_runs(cells):
            if run.size < size:
                continue
            if best_start is None or run.size < best_size:
                best_start, best_size = run.start, run.size
                if best_size == size:
                    # Exact fit; nothing later can be smaller or earlier.
                    break
        return best_start


ALLOCATORS: Dict[str, Type[Allocator]] = {
    "first_fit": FirstFitAllocator,
    "best_fit": BestFitAllocator,
}


def make_allocator(name: str) -> Allocator:
    try:
        factory = ALLOCATORS[name]
    except KeyError:
        raise ValueError(f"Unknown allocation strategy {name!r}; choose from {sorted(ALLOCATORS)}") from None
    return factory()
