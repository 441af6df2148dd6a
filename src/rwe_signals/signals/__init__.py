"""
Signal computation module.

Disproportionality, empirical Bayes shrinkage and trend scoring.
"""

from rwe_signals.signals.bayes import DEFAULT_PRIOR, estimate_prior, shrink
from rwe_signals.signals.compute import (
    apply_shrinkage,
    compute_metrics,
    compute_raw_metric,
)
from rwe_signals.signals.ror import continuity_correct, ror_with_ci, z_score
from rwe_signals.signals.trend import (
    apply_trend_scores,
    parse_quarter,
    quarter_order,
    rolling_z,
)

__all__ = [
    # ROR
    "continuity_correct",
    "ror_with_ci",
    "z_score",
    # Bayes
    "DEFAULT_PRIOR",
    "estimate_prior",
    "shrink",
    # Trend
    "apply_trend_scores",
    "parse_quarter",
    "quarter_order",
    "rolling_z",
    # Batch
    "apply_shrinkage",
    "compute_metrics",
    "compute_raw_metric",
]
