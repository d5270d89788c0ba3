from __future__ import annotations

import argparse
import csv
import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from tqdm import tqdm

from cell_memory import MemoryProfiler, MemorySpace, OutOfMemoryError, Pointer
from experiments.workload import SimulatedWorkload


@dataclass
class ExperimentConfig:
    label: str
    capacity: int
    strategy: str
    steps: int = 500
    min_size: int = 1
    max_size: int = 64
    large_size: int = 256
    large_probability: float = 0.1
    release_probability: float = 0.4


def run_single(
    config: ExperimentConfig,
    seed: int,
    *,
    profile_dir: Optional[str] = None,
) -> Dict[str, float]:
    workload = SimulatedWorkload(
        seed=seed,
        min_size=config.min_size,
        max_size=config.max_size,
        large_size=config.large_size,
        large_probability=config.large_probability,
        release_probability=config.release_probability,
    )
    profiler = MemoryProfiler(run_id=f"{config.label}_seed{seed}", output_dir=profile_dir) if profile_dir else None
    space = MemorySpace(config.capacity, allocator=config.strategy, profiler=profiler)

    live: List[Pointer] = []
    allocations = 0
    failures = 0
    releases = 0
    fragmentation_sum = 0.0
    peak_heap_used = 0

    for _ in range(config.steps):
        request = workload.next_request(len(live))
        if request.op == "release":
            space.release(live.pop(request.victim))
            releases += 1
        else:
            allocations += 1
            try:
                live.append(space.allocate(request.size))
            except OutOfMemoryError:
                failures += 1
        fragmentation_sum += space.fragmentation()
        peak_heap_used = max(peak_heap_used, space.allocated())

    if profiler:
        profiler.flush()

    return {
        "config": config.label,
        "seed": seed,
        "strategy": config.strategy,
        "allocations": float(allocations),
        "failures": float(failures),
        "releases": float(releases),
        "failure_rate": failures / allocations if allocations else 0.0,
        "avg_fragmentation": fragmentation_sum / max(1, config.steps),
        "peak_heap_used": float(peak_heap_used),
        "final_heap_used": float(space.allocated()),
        "final_fragmentation": space.fragmentation(),
    }


def build_default_configs(args: argparse.Namespace) -> List[ExperimentConfig]:
    configs = [
        ExperimentConfig(label="first_fit", capacity=4096, strategy="first_fit"),
        ExperimentConfig(label="best_fit", capacity=4096, strategy="best_fit"),
    ]
    for config in configs:
        config.steps = args.steps
        config.release_probability = args.release_probability
        if args.capacity:
            config.capacity = args.capacity
    return configs


def write_summary(path: str, records: Iterable[Dict[str, float]]) -> None:
    records = list(records)
    if not records:
        return
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=list(records[0].keys()))
        writer.writeheader()
        writer.writerows(records)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compare placement strategies under synthetic workloads.")
    parser.add_argument("--steps", type=int, default=500, help="Number of requests per run.")
    parser.add_argument("--seeds", type=int, default=5, help="Number of random seeds to evaluate.")
    parser.add_argument("--seed-offset", type=int, default=0, help="Offset applied to generated seeds.")
    parser.add_argument("--output", type=str, default="results/summary.csv", help="Path to CSV summary output.")
    parser.add_argument("--capacity", type=int, default=None, help="Override cell count for all configs.")
    parser.add_argument(
        "--release-probability",
        type=float,
        default=0.4,
        help="Chance that a step releases a live allocation instead of requesting one.",
    )
    parser.add_argument(
        "--profile-dir",
        type=str,
        default=None,
        help="Optional directory to write per-run event logs.",
    )
    parser.add_argument("--progress-bar", action="store_true", help="Display tqdm progress over runs")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configs = build_default_configs(args)
    seeds = [args.seed_offset + index for index in range(args.seeds)]
    runs = [(config, seed) for config in configs for seed in seeds]

    summaries: List[Dict[str, float]] = []
    for config, seed in tqdm(runs, desc="runs", disable=not args.progress_bar):
        summaries.append(run_single(config, seed, profile_dir=args.profile_dir))

    write_summary(args.output, summaries)

    for summary in summaries:
        print(
            f"[{summary['config']} seed={summary['seed']}] "
            f"failures={int(summary['failures'])}/{int(summary['allocations'])} "
            f"avg_fragmentation={summary['avg_fragmentation']:.3f} "
            f"peak_heap_used={int(summary['peak_heap_used'])}"
        )


if __name__ == "__main__":
    main()
