from __future__ import annotations

import argparse
from typing import Optional

from cell_memory import ALLOCATORS, MemoryProfiler, MemorySpace, OutOfMemoryError


def run_simulation(strategy: str, capacity: int, profile_dir: Optional[str] = None) -> MemorySpace:
    if capacity < 4:
        raise ValueError("The demo needs at least 4 cells.")
    profiler = MemoryProfiler(run_id=f"simulation_{strategy}", output_dir=profile_dir)
    space = MemorySpace(capacity, allocator=strategy, profiler=profiler)

    # 111 and 849 cells out of 1024, scaled to the requested capacity.
    first_size = max(1, capacity * 111 // 1024)
    second_size = max(1, capacity * 849 // 1024)
    first = space.allocate(first_size)
    second = space.allocate(second_size)
    print(f"[{strategy}] allocated {first_size} cells at {first.start}, {second_size} cells at {second.start}")
    space.print_layout()

    space.release(first)
    small = space.allocate(max(1, first_size // 3))
    print(f"[{strategy}] released first block, placed {space.segment(small).size} cells at {small.start}")
    space.print_layout()

    try:
        space.allocate(capacity)
    except OutOfMemoryError as exc:
        print(f"[{strategy}] expected failure: {exc}")

    space.compact()
    moved = profiler.events_of("compact")[-1]["moved"]
    print(f"[{strategy}] compacted, {moved} block(s) moved")
    space.print_layout()

    print("Final stats:", space.stats())
    print("Events:", profiler.counts())
    profiler.flush()
    return space


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run a cell memory allocation demo.")
    parser.add_argument("--strategy", choices=sorted(ALLOCATORS), default="first_fit", help="Placement policy.")
    parser.add_argument("--capacity", type=int, default=1024, help="Number of cells in the memory space.")
    parser.add_argument("--profile-dir", type=str, default=None, help="Optional directory for event logs.")
    args = parser.parse_args()
    run_simulation(args.strategy, args.capacity, args.profile_dir)
