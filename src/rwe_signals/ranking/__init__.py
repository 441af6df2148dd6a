"""
Ranking module.

Combines latest-quarter disproportionality with literature support and
trend to produce final rankings.
"""

from rwe_signals.ranking.ranker import (
    LITERATURE_WEIGHT,
    TREND_WEIGHT,
    ScoreBreakdown,
    composite_score,
    count_literature_support,
    get_top_signals,
    rank_metric,
    rank_signals,
    score_breakdown,
    select_latest,
    summarize_rankings,
)

__all__ = [
    "LITERATURE_WEIGHT",
    "TREND_WEIGHT",
    "ScoreBreakdown",
    "composite_score",
    "count_literature_support",
    "get_top_signals",
    "rank_metric",
    "rank_signals",
    "score_breakdown",
    "select_latest",
    "summarize_rankings",
]
