"""Quarterly trend scores based on expanding-window z statistics."""

import math
import re
from collections import defaultdict
from typing import Optional, Sequence

from rwe_signals.models import SignalMetric


MIN_TREND_POINTS = 3

VARIANCE_EPSILON = 1e-9

YEAR_PATTERN = re.compile(r"[+-]?[0-9]+")


def parse_quarter(quarter: str) -> Optional[tuple[int, int]]:
    """
    Convert a quarter label like 2024Q1 into a sortable tuple.

    The year may carry a sign ("+024Q1", "-024Q1" parse as 24 and -24).

    Returns:
        (year, quarter) or None if the label is not 6 characters with
        numeric year and quarter positions
    """
    if len(quarter) != 6 or not quarter.isascii():
        return None

    year_part = quarter[0:4]
    q_part = quarter[5:6]
    if not (YEAR_PATTERN.fullmatch(year_part) and q_part.isdigit()):
        return None

    return (int(year_part), int(q_part))


def quarter_order(quarter: str) -> tuple[int, int]:
    """Sort key for a quarter label; malformed labels sort first as (0, 0)."""
    return parse_quarter(quarter) or (0, 0)


def rolling_z(history: Sequence[tuple[int, int, float]]) -> float:
    """
    Z-score of the latest value against all earlier values.

    Args:
        history: (year, quarter, value) observations for one pair

    Returns:
        0.0 with fewer than MIN_TREND_POINTS points or a flat history,
        else (latest - mean) / std of the preceding values
    """
    if len(history) < MIN_TREND_POINTS:
        return 0.0

    ordered = sorted(history, key=lambda item: (item[0], item[1]))
    values = [value for _, _, value in ordered]

    previous = values[:-1]
    mean = sum(previous) / len(previous)
    variance = sum((v - mean) ** 2 for v in previous) / len(previous)

    if variance <= VARIANCE_EPSILON:
        return 0.0

    return (values[-1] - mean) / math.sqrt(variance)


def apply_trend_scores(metrics: list[SignalMetric]) -> list[SignalMetric]:
    """
    Fill trend_z for every metric from its pair's chronological history.

    Each row is scored from the prefix of its group ending at that row,
    so a row's trend_z only depends on the quarters up to its own.

    Args:
        metrics: Metrics with shrunk RORs filled in

    Returns:
        New list in the same order as the input, with trend_z set
    """
    groups: dict[tuple[str, str], list[int]] = defaultdict(list)
    for idx, metric in enumerate(metrics):
        groups[metric.pair].append(idx)

    scored: list[Optional[SignalMetric]] = [None] * len(metrics)

    for indices in groups.values():
        # Stable sort keeps ingestion order for equal quarters
        indices.sort(key=lambda i: quarter_order(metrics[i].year_quarter))

        history: list[tuple[int, int, float]] = []
        for idx in indices:
            metric = metrics[idx]
            year, q = quarter_order(metric.year_quarter)
            history.append((year, q, metric.ror_shrunk))
            scored[idx] = metric.model_copy(update={"trend_z": rolling_z(history)})

    return scored
