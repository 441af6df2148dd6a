"""
Ranking module for safety signals.

Reduces per-quarter metrics to one row per drug/event pair, merges
literature support and orders pairs by a composite score.
"""

import math
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional

from rwe_signals.config import ScoringConfig
from rwe_signals.models import RankedSignal, SignalMetric
from rwe_signals.signals.ror import z_score
from rwe_signals.signals.trend import quarter_order


# -----------------------------------------------------------------------------
# Composite score weights
# -----------------------------------------------------------------------------

LITERATURE_WEIGHT = 0.3
TREND_WEIGHT = 0.2


@dataclass
class ScoreBreakdown:
    """Components of a composite score."""

    z_recent: float
    literature_term: float
    trend_term: float

    @property
    def total(self) -> float:
        return self.z_recent + self.literature_term + self.trend_term

    def __str__(self) -> str:
        return (
            f"Z={self.z_recent:.2f} LIT={self.literature_term:.2f} "
            f"TREND={self.trend_term:.2f} TOTAL={self.total:.2f}"
        )


def select_latest(metrics: Iterable[SignalMetric]) -> dict[tuple[str, str], SignalMetric]:
    """
    Pick the most recent quarter's metric for every drug/event pair.

    Metrics are stable-sorted ascending by quarter and the last one wins,
    so equal quarters resolve to the row ingested last.

    Args:
        metrics: Metric rows in ingestion order

    Returns:
        Dict keyed by (drug_id, event_id) in first-appearance order
    """
    groups: dict[tuple[str, str], list[SignalMetric]] = {}
    for metric in metrics:
        groups.setdefault(metric.pair, []).append(metric)

    latest = {}
    for pair, rows in groups.items():
        ordered = sorted(rows, key=lambda m: quarter_order(m.year_quarter))
        latest[pair] = ordered[-1]

    return latest


def count_literature_support(
    relations: Iterable[tuple[str, str]],
) -> Counter:
    """
    Count literature relation rows per (drug_id, event_id) pair.

    Confidence is not weighted in; each relation row counts once.
    """
    return Counter((drug_id, event_id) for drug_id, event_id in relations)


def score_breakdown(
    log_ror: float,
    variance: float,
    lit_support: int,
    trend_z: float,
    scoring: Optional[ScoringConfig] = None,
) -> ScoreBreakdown:
    """
    Compute the components of the composite score.

    The recency term uses the raw (unshrunk) log ROR and variance.

    Args:
        log_ror: Raw log ROR of the selected quarter
        variance: Raw variance of log_ror
        lit_support: Literature relation count for the pair
        trend_z: Trend z-score of the selected quarter
        scoring: Optional weight overrides

    Returns:
        ScoreBreakdown
    """
    lit_weight = scoring.weight_literature if scoring else LITERATURE_WEIGHT
    trend_weight = scoring.weight_trend if scoring else TREND_WEIGHT

    return ScoreBreakdown(
        z_recent=z_score(log_ror, variance),
        literature_term=lit_weight * math.log(lit_support + 1),
        trend_term=trend_weight * trend_z,
    )


def composite_score(
    log_ror: float,
    variance: float,
    lit_support: int,
    trend_z: float,
    scoring: Optional[ScoringConfig] = None,
) -> float:
    """score = z_recent + 0.3 * ln(lit_support + 1) + 0.2 * trend_z"""
    return score_breakdown(log_ror, variance, lit_support, trend_z, scoring).total


def rank_metric(
    metric: SignalMetric,
    lit_support: int = 0,
    scoring: Optional[ScoringConfig] = None,
) -> RankedSignal:
    """Turn a pair's latest metric into a RankedSignal."""
    score = composite_score(
        log_ror=metric.log_ror,
        variance=metric.variance,
        lit_support=lit_support,
        trend_z=metric.trend_z,
        scoring=scoring,
    )

    return RankedSignal(
        drug_id=metric.drug_id,
        event_id=metric.event_id,
        year_quarter=metric.year_quarter,
        recent_ror=metric.ror_shrunk,
        ci_low=metric.shrunk_ci_low,
        ci_high=metric.shrunk_ci_high,
        lit_support=lit_support,
        trend_z=metric.trend_z,
        score=score,
    )


def rank_signals(
    metrics: Iterable[SignalMetric],
    lit_counts: Optional[dict[tuple[str, str], int]] = None,
    scoring: Optional[ScoringConfig] = None,
) -> list[RankedSignal]:
    """
    Rank all drug/event pairs in a metric snapshot.

    Args:
        metrics: Full metric snapshot
        lit_counts: Literature relation counts per pair
        scoring: Optional weight overrides

    Returns:
        One RankedSignal per distinct pair, sorted descending by score
    """
    lit_counts = lit_counts or {}
    latest = select_latest(metrics)

    results = [
        rank_metric(metric, lit_counts.get(pair, 0), scoring)
        for pair, metric in latest.items()
    ]

    # Stable: equal scores keep first-appearance order
    results.sort(key=lambda s: s.score, reverse=True)

    return results


def get_top_signals(
    signals: list[RankedSignal],
    min_score: float = 0.0,
    min_lit_support: int = 0,
) -> list[RankedSignal]:
    """
    Filter ranked signals by score and literature support.

    Args:
        signals: Ranked signals
        min_score: Minimum composite score to include
        min_lit_support: Minimum literature relation count

    Returns:
        Signals meeting both thresholds, order preserved
    """
    return [
        s for s in signals
        if s.score >= min_score and s.lit_support >= min_lit_support
    ]


def summarize_rankings(signals: list[RankedSignal]) -> dict:
    """
    Produce summary statistics for rankings.

    Args:
        signals: List of ranked signals

    Returns:
        Dict with summary stats
    """
    if not signals:
        return {
            "total": 0,
            "avg_score": 0.0,
            "max_score": 0.0,
            "min_score": 0.0,
            "with_literature": 0,
            "rising": 0,
        }

    scores = [s.score for s in signals]

    return {
        "total": len(signals),
        "avg_score": sum(scores) / len(scores),
        "max_score": max(scores),
        "min_score": min(scores),
        "with_literature": sum(1 for s in signals if s.lit_support > 0),
        "rising": sum(1 for s in signals if s.trend_z > 0),
    }
