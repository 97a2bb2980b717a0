"""
Benchmark comparison

Compares an aircraft's maintenance cost per hour with an industry average
and classifies the deviation into a status band.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .dates import format_per_hour, to_optional_number
from .models import Benchmark

ON_TRACK_MAX_PCT = 10.0
WATCH_MAX_PCT = 25.0
EQUALISH_PCT = 0.5

BAND_ON_TRACK = "on track"
BAND_WATCH = "watch"
BAND_HIGH = "high"

DEFAULT_BENCHMARK_TYPES = ("C172", "172", "C172N", "172N")


@dataclass(frozen=True)
class BenchmarkComparison:
    """Observed cost per hour against a benchmark"""

    observed: float
    benchmark: float
    diff: float
    pct: float
    band: str

    @property
    def above(self) -> bool:
        return self.diff > 0

    @property
    def equalish(self) -> bool:
        return abs(self.pct) < EQUALISH_PCT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "observed": self.observed,
            "benchmark": self.benchmark,
            "diff": self.diff,
            "pct": self.pct,
            "band": self.band,
            "above": self.above,
            "equalish": self.equalish,
            "summary": describe(self),
        }


def classify(pct: float) -> str:
    """Band for a percentage deviation (sign ignored)."""
    deviation = abs(pct)
    if deviation <= ON_TRACK_MAX_PCT:
        return BAND_ON_TRACK
    if deviation <= WATCH_MAX_PCT:
        return BAND_WATCH
    return BAND_HIGH


def compare(observed_per_hour: Any, benchmark_per_hour: Any) -> Optional[BenchmarkComparison]:
    """
    Compare observed cost per hour with a benchmark rate

    Args:
        observed_per_hour: Cost per hour, or None when unknown
        benchmark_per_hour: Benchmark hourly cost

    Returns:
        BenchmarkComparison, or None when either side is unusable
    """
    observed = to_optional_number(observed_per_hour)
    benchmark = to_optional_number(benchmark_per_hour)
    if observed is None or benchmark is None or benchmark <= 0:
        return None

    diff = observed - benchmark
    pct = diff / benchmark * 100
    return BenchmarkComparison(
        observed=observed,
        benchmark=benchmark,
        diff=diff,
        pct=pct,
        band=classify(pct),
    )


def describe(comparison: Optional[BenchmarkComparison]) -> str:
    if comparison is None:
        return "Add more entries with amount and tach hours (at least 2 different tach values) to compare."
    if comparison.equalish:
        return "You're basically on the industry average."
    direction = "above" if comparison.above else "below"
    return (
        f"You're {abs(comparison.pct):.1f}% {direction} the industry estimate "
        f"(≈ {format_per_hour(abs(comparison.diff))})"
    )


def latest_benchmark(
    benchmarks: Iterable[Benchmark],
    aircraft_types: Sequence[str] = DEFAULT_BENCHMARK_TYPES,
) -> Optional[Benchmark]:
    """
    Newest benchmark for any of the given aircraft type aliases

    Undated benchmarks only win when no dated one matches.
    """
    wanted = {alias.strip().upper() for alias in aircraft_types if alias and alias.strip()}
    best: Optional[Benchmark] = None
    for benchmark in benchmarks:
        if benchmark.aircraft_type.upper() not in wanted:
            continue
        if best is None:
            best = benchmark
            continue
        if benchmark.effective_date is None:
            continue
        if best.effective_date is None or benchmark.effective_date > best.effective_date:
            best = benchmark
    return best


def group_benchmarks(benchmarks: Iterable[Benchmark]) -> List[Tuple[str, List[Benchmark]]]:
    """Benchmarks grouped by type (sorted), newest first within a type."""
    groups: Dict[str, List[Benchmark]] = {}
    for benchmark in benchmarks:
        groups.setdefault(benchmark.aircraft_type or "Unknown", []).append(benchmark)

    result = []
    for aircraft_type in sorted(groups):
        rows = sorted(
            groups[aircraft_type],
            key=lambda row: (row.effective_date is not None, row.effective_date),
            reverse=True,
        )
        result.append((aircraft_type, rows))
    return result
