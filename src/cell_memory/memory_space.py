from __future__ import annotations

import itertools
import operator
import threading
from contextlib import nullcontext
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, ContextManager, Dict, List, Optional, Tuple, Union

from .allocators import Allocator, FirstFitAllocator, make_allocator
from .errors import InvalidHandleError, InvalidSizeError, OutOfMemoryError
from .layout import FREE, LayoutRun, describe, iter_free_runs, largest_free_run, render_layout

if TYPE_CHECKING:
    from .instrumentation import MemoryProfiler

_space_ids = itertools.count(1)


def _positive_count(value: object) -> Optional[int]:
    """Return ``value`` as an int if it is integer-like and at least 1, else None."""
    if isinstance(value, bool):
        return None
    try:
        count = operator.index(value)
    except TypeError:
        return None
    return count if count >= 1 else None


@dataclass(frozen=True, order=True)
class Pointer:
    """
    Handle to an allocated range, bound to one memory space.

    ``serial`` identifies the allocation, so a stale pointer never matches a
    later allocation that happens to start at the same cell.
    """

    space_id: int
    start: int
    serial: int


@dataclass(slots=True)
class MemorySegment:
    start: int
    size: int
    owner: int

    @property
    def end(self) -> int:
        return self.start + self.size


class MemorySpace:
    """
    Simulated array of cells handed out in contiguous ranges.

    Placement is delegated to an allocator; the space owns the cells and the
    pointer table and keeps them consistent. Failed operations leave both
    untouched.
    """

    def __init__(
        self,
        capacity: int,
        *,
        allocator: Union[Allocator, str, None] = None,
        profiler: Optional["MemoryProfiler"] = None,
        thread_safe: bool = False,
    ) -> None:
        count = _positive_count(capacity)
        if count is None:
            raise ValueError(f"Capacity must be a positive integer, got {capacity!r}")
        if isinstance(allocator, str):
            allocator = make_allocator(allocator)
        self.capacity = count
        self.allocator = allocator or FirstFitAllocator()
        self.profiler = profiler
        self._lock = threading.RLock() if thread_safe else None
        self._cells: List[int] = [FREE] * count
        self._allocated: Dict[Pointer, MemorySegment] = {}
        self._space_id = next(_space_ids)
        self._serials = itertools.count(1)

    # -- Allocation -----------------------------------------------------------------
    def allocate(self, size: int) -> Pointer:
        """Reserve ``size`` contiguous cells and return a pointer to the first one."""
        count = _positive_count(size)
        if count is None:
            raise InvalidSizeError(size)
        size = count
        with self._guard():
            start = self.allocator.select(self._cells, size)
            if start is None:
                largest = largest_free_run(self._cells)
                self._record("allocate_failed", {"size": size, "largest_free": largest})
                raise OutOfMemoryError(size, largest)
            serial = next(self._serials)
            self._cells[start:start + size] = [serial] * size
            pointer = Pointer(self._space_id, start, serial)
            self._allocated[pointer] = MemorySegment(start, size, serial)
            self.allocator.on_allocate(start, size)
            self._record("allocate", {"start": start, "size": size})
            return pointer

    def release(self, pointer: Pointer) -> None:
        with self._guard():
            segment = self._allocated.pop(pointer, None) if isinstance(pointer, Pointer) else None
            if segment is None:
                self._record("release_invalid", {"pointer": repr(pointer)})
                raise InvalidHandleError(pointer)
            self._cells[segment.start:segment.end] = [FREE] * segment.size
            self.allocator.on_release(segment.start, segment.size)
            self._record("release", {"start": segment.start, "size": segment.size})

    def compact(self) -> Dict[Pointer, Pointer]:
        """
        Slide every live segment, in address order, down to the low end.

        Returns a mapping from each previously live pointer to its current
        pointer. Pointers of moved segments are replaced and stop being valid.
        """
        with self._guard():
            remapped: Dict[Pointer, Pointer] = {}
            relocated: Dict[Pointer, MemorySegment] = {}
            cursor = 0
            moved = 0
            for pointer, segment in sorted(self._allocated.items(), key=lambda item: item[1].start):
                current = pointer
                if segment.start != cursor:
                    self._cells[cursor:cursor + segment.size] = [segment.owner] * segment.size
                    segment.start = cursor
                    current = Pointer(self._space_id, cursor, pointer.serial)
                    moved += 1
                relocated[current] = segment
                remapped[pointer] = current
                cursor += segment.size
            # Cells in [0, cursor) were all rewritten above; anything past is stale.
            self._cells[cursor:] = [FREE] * (self.capacity - cursor)
            self._allocated = relocated
            self.allocator.on_compact(cursor)
            self._record("compact", {"moved": moved})
            return remapped

    # -- Layout ---------------------------------------------------------------------
    def describe_layout(self, merge_allocated: bool = False) -> List[LayoutRun]:
        """
        Return free/allocated runs covering every cell in ascending order.

        Each allocation is reported as its own run. Pass ``merge_allocated=True``
        to get strictly maximal runs, where neighbouring allocations collapse
        into one Allocated run.
        """
        with self._guard():
            return describe(self._cells, merge_allocated)

    def format_layout(self, merge_allocated: bool = False) -> str:
        return "\n".join(render_layout(self.describe_layout(merge_allocated)))

    def print_layout(self, merge_allocated: bool = False) -> None:
        for line in render_layout(self.describe_layout(merge_allocated)):
            print(line)

    # -- Inspection -----------------------------------------------------------------
    def __contains__(self, pointer: object) -> bool:
        with self._guard():
            return isinstance(pointer, Pointer) and pointer in self._allocated

    def __len__(self) -> int:
        with self._guard():
            return len(self._allocated)

    def segment(self, pointer: Pointer) -> MemorySegment:
        """Return a copy of the range recorded for a live pointer."""
        with self._guard():
            segment = self._allocated.get(pointer) if isinstance(pointer, Pointer) else None
            if segment is None:
                raise InvalidHandleError(pointer)
            return replace(segment)

    def live_pointers(self) -> List[Pointer]:
        with self._guard():
            return sorted(self._allocated, key=lambda pointer: pointer.start)

    def cells(self) -> Tuple[int, ...]:
        with self._guard():
            return tuple(self._cells)

    def allocated(self) -> int:
        with self._guard():
            return sum(segment.size for segment in self._allocated.values())

    def available(self) -> int:
        with self._guard():
            return self.capacity - self.allocated()

    def largest_free_run(self) -> int:
        with self._guard():
            return largest_free_run(self._cells)

    def fragmentation(self) -> float:
        with self._guard():
            available = self.available()
            if available == 0:
                return 0.0
            return 1.0 - (self.largest_free_run() / available)

    def stats(self) -> Dict[str, object]:
        with self._guard():
            return {
                "strategy": self.allocator.name,
                "capacity": self.capacity,
                "allocations": len(self._allocated),
                "heap_used": self.allocated(),
                "heap_free": self.available(),
                "largest_free": self.largest_free_run(),
                "fragmentation": self.fragmentation(),
            }

    def snapshot(self) -> Dict[str, List[Tuple[int, int]]]:
        """Expose current allocation map for diagnostics."""
        with self._guard():
            return {
                "allocated": sorted((seg.start, seg.size) for seg in self._allocated.values()),
                "free": [(run.start, run.size) for run in iter_free_runs(self._cells)],
            }

    def _guard(self) -> ContextManager:
        return self._lock if self._lock is not None else nullcontext()

    def _record(self, event_type: str, payload: Dict[str, object]) -> None:
        if not self.profiler:
            return
        self.profiler.record_event(
            event_type,
            {
                "strategy": self.allocator.name,
                **payload,
                "heap_used": self.allocated(),
                "heap_free": self.available(),
                "fragmentation": self.fragmentation(),
            },
        )
