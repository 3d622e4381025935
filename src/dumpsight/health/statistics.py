"""Statistical primitives shared by the health detectors."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Callable, Sequence

import numpy as np

from dumpsight.domain.models import TelemetryRecord


@dataclass(frozen=True, slots=True)
class Sample:
    """One filtered reading with its position in the full record sequence."""

    index: int
    timestamp_ms: int
    value: float


def is_finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def valid_samples(
    records: Sequence[TelemetryRecord],
    field_name: str,
    *,
    lower: float | None = None,
    upper: float | None = None,
) -> list[Sample]:
    """Return non-null finite readings strictly inside the optional (lower, upper) window."""
    samples: list[Sample] = []
    for index, record in enumerate(records):
        value = record.value(field_name)
        if not is_finite_number(value):
            continue
        numeric = float(value)  # type: ignore[arg-type]
        if lower is not None and numeric <= lower:
            continue
        if upper is not None and numeric >= upper:
            continue
        samples.append(Sample(index=index, timestamp_ms=record.timestamp_ms, value=numeric))
    return samples


def select_samples(samples: Sequence[Sample], predicate: Callable[[float], bool]) -> list[Sample]:
    return [sample for sample in samples if predicate(sample.value)]


def cluster_events(
    samples: Sequence[Sample],
    *,
    max_gap_ms: int,
    max_gap_samples: int,
) -> list[list[Sample]]:
    """Group time-ordered samples into clusters.

    A sample joins the current cluster when its time gap to the previous sample
    is at most `max_gap_ms` or its index gap is at most `max_gap_samples`.
    """
    if max_gap_ms < 0 or max_gap_samples < 0:
        raise ValueError("cluster gaps must be >= 0")
    clusters: list[list[Sample]] = []
    current: list[Sample] = []
    for sample in samples:
        if current:
            previous = current[-1]
            close_in_time = sample.timestamp_ms - previous.timestamp_ms <= max_gap_ms
            close_in_index = sample.index - previous.index <= max_gap_samples
            if not (close_in_time or close_in_index):
                clusters.append(current)
                current = []
        current.append(sample)
    if current:
        clusters.append(current)
    return clusters


def mean_and_std(values: Sequence[float]) -> tuple[float, float]:
    """Mean and population standard deviation; `(0.0, 0.0)` for an empty series."""
    if len(values) == 0:
        return 0.0, 0.0
    array = np.asarray(values, dtype=np.float64)
    return float(array.mean()), float(array.std())


def dynamic_threshold(values: Sequence[float], *, floor: float, sigma: float = 2.0) -> float:
    """`max(floor, mean + sigma * std)` over a series."""
    mean, std = mean_and_std(values)
    return max(floor, mean + sigma * std)


def coefficient_of_variation(values: Sequence[float]) -> float | None:
    """CV in percent, or `None` when the mean is zero or the series is empty."""
    mean, std = mean_and_std(values)
    if len(values) == 0 or mean == 0.0:
        return None
    return abs(std / mean) * 100.0


def iqr_bounds(values: Sequence[float], *, multiplier: float = 1.5) -> tuple[float, float]:
    """Return `(q1 - k*iqr, q3 + k*iqr)` with quartiles taken at floor(n*0.25) and floor(n*0.75)."""
    if len(values) == 0:
        raise ValueError("values must not be empty")
    ordered = np.sort(np.asarray(values, dtype=np.float64))
    count = ordered.size
    q1 = float(ordered[math.floor(count * 0.25)])
    q3 = float(ordered[min(count - 1, math.floor(count * 0.75))])
    spread = q3 - q1
    return q1 - multiplier * spread, q3 + multiplier * spread


def quartile_degradation(values: Sequence[float]) -> float | None:
    """Percent drop of the last-quartile mean relative to the first-quartile mean.

    Returns `None` when a quartile is empty or the first-quartile mean is zero.
    """
    quarter = math.floor(len(values) * 0.25)
    if quarter == 0:
        return None
    array = np.asarray(values, dtype=np.float64)
    first = float(array[:quarter].mean())
    last = float(array[-quarter:].mean())
    if first == 0.0 or not math.isfinite(first) or not math.isfinite(last):
        return None
    return (first - last) / first * 100.0


def cap_times(samples: Sequence[Sample], limit: int) -> tuple[int, ...]:
    return tuple(sample.timestamp_ms for sample in samples[:limit])
