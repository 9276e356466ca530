"""Reshape probe samples into per-target chart series.

Grouping and series building are pure; down-sampling is applied later by the
chart surface, across the whole series, at a threshold derived from its pixel
width.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from panelmon.models import ProbeSample, ProbeTarget

logger = logging.getLogger(__name__)

Point = tuple[int, float | None]

LOSS_AXIS_RANGE = (0, 100)
LOSS_AXIS_LABEL_FORMAT = "%d%%"


class Axis(Enum):
    LATENCY = 0  # Left axis, milliseconds
    LOSS = 1  # Right axis, fixed 0..100 percent


@dataclass(frozen=True)
class ChartSeries:
    name: str
    axis: Axis
    points: list[Point]
    target_key: str


def group_by_target(results: Iterable[ProbeSample] | None) -> dict[str, list[ProbeSample]]:
    """Partition samples by stringified target id, preserving source order.

    No sorting, deduplication or range clamping is done; samples without a
    target id land under ``"None"``.
    """
    grouped: dict[str, list[ProbeSample]] = {}
    for sample in results or ():
        key = str(getattr(sample, "target_id", None))
        grouped.setdefault(key, []).append(sample)
    return grouped


def target_label(key: str, targets: dict[str, ProbeTarget] | None) -> str:
    """Legend label for a target: its name, else its address, else ``Target <key>``."""
    target = (targets or {}).get(key)
    if target is not None and (target.name or target.ip):
        return target.name or target.ip
    return f"Target {key}"


def build_chart_series(
    grouped: dict[str, list[ProbeSample]],
    targets: dict[str, ProbeTarget] | None,
) -> list[ChartSeries]:
    """Build one latency and one loss series per target, in group order.

    A failed probe is a gap (None) in the latency series, never zero, and a
    hard 100 in the loss series. Samples without a timestamp have no place on
    the time axis and are left out.
    """
    series = []
    for key, samples in grouped.items():
        timed = [s for s in samples if s.time_ms is not None]
        if len(timed) != len(samples):
            logger.warning("Dropped %d untimed samples for target %s", len(samples) - len(timed), key)
        label = target_label(key, targets)
        series.append(
            ChartSeries(
                name=f"{label} RTT",
                axis=Axis.LATENCY,
                points=[(s.time_ms, s.rtt_ms if s.ok else None) for s in timed],
                target_key=key,
            )
        )
        series.append(
            ChartSeries(
                name=f"{label} Loss %",
                axis=Axis.LOSS,
                points=[(s.time_ms, 0 if s.ok else 100) for s in timed],
                target_key=key,
            )
        )
    logger.debug("Built %d series for %d targets", len(series), len(grouped))
    return series


def split_segments(points: list[Point]) -> list[list[tuple[int, float]]]:
    """Split a series into gap-free runs at None values."""
    segments = []
    current: list[tuple[int, float]] = []
    for x, y in points:
        if y is None:
            if current:
                segments.append(current)
                current = []
            continue
        current.append((x, y))
    if current:
        segments.append(current)
    return segments


def _lttb_indices(points: list[tuple[int, float]], threshold: int) -> list[int]:
    n = len(points)
    if threshold >= n or threshold < 3:
        return list(range(n))

    kept = [0]
    bucket_size = (n - 2) / (threshold - 2)
    a = 0

    for i in range(threshold - 2):
        # Average of the next bucket
        next_start = int((i + 1) * bucket_size) + 1
        next_end = min(int((i + 2) * bucket_size) + 1, n)
        next_bucket = points[next_start:next_end] or [points[-1]]
        avg_x = sum(p[0] for p in next_bucket) / len(next_bucket)
        avg_y = sum(p[1] for p in next_bucket) / len(next_bucket)

        start = int(i * bucket_size) + 1
        end = int((i + 1) * bucket_size) + 1
        ax, ay = points[a]
        max_area = -1.0
        chosen = start
        for j in range(start, end):
            px, py = points[j]
            area = abs((ax - avg_x) * (py - ay) - (ax - px) * (avg_y - ay))
            if area > max_area:
                max_area = area
                chosen = j
        kept.append(chosen)
        a = chosen

    kept.append(n - 1)
    return kept


def downsample_lttb(points: list[tuple[int, float]], threshold: int) -> list[tuple[int, float]]:
    """Largest-triangle-three-buckets down-sampling.

    Keeps the first and last point and, for each bucket in between, the point
    forming the largest triangle with the previously kept point and the
    average of the next bucket, so visual extremes survive. Returns the input
    unchanged when it already fits the threshold.
    """
    return [points[i] for i in _lttb_indices(points, threshold)]


def downsample_series(points: list[Point], threshold: int) -> list[list[tuple[int, float]]]:
    """Down-sample a gappy series to at most ``threshold`` points in total.

    LTTB runs over the non-gap points as one sequence; the kept points are
    then split into runs wherever two neighbours came from different
    gap-free segments, so a gap is never bridged.
    """
    segments = split_segments(points)
    total = sum(len(s) for s in segments)
    if total <= threshold or threshold < 3:
        return segments

    flat = [p for segment in segments for p in segment]
    owner = [n for n, segment in enumerate(segments) for _ in segment]

    runs: list[list[tuple[int, float]]] = []
    last_owner = None
    for i in _lttb_indices(flat, threshold):
        if owner[i] != last_owner:
            runs.append([])
            last_owner = owner[i]
        runs[-1].append(flat[i])
    return runs
