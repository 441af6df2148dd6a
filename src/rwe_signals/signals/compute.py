"""
Batch computation of signal metrics.

Three full-batch passes over the contingency rows:
1. Raw ROR, confidence interval and log-variance per row
2. Empirical Bayes shrinkage with one prior fitted on the whole batch
3. Expanding-window trend z-scores per drug/event pair
"""

import logging
import math
from typing import Iterable

from rwe_signals.models import ContingencyRow, Prior, SignalMetric
from rwe_signals.signals.bayes import estimate_prior, shrink
from rwe_signals.signals.ror import ror_with_ci
from rwe_signals.signals.trend import apply_trend_scores

logger = logging.getLogger(__name__)


def compute_raw_metric(row: ContingencyRow) -> SignalMetric:
    """Pass 1: raw ROR statistics for a single row."""
    ror, ci_low, ci_high, variance = ror_with_ci(row.a, row.b, row.c, row.d)
    return SignalMetric(
        drug_id=row.drug_id,
        event_id=row.event_id,
        year_quarter=row.year_quarter,
        ror=ror,
        ci_low=ci_low,
        ci_high=ci_high,
        variance=variance,
        log_ror=math.log(ror),
        # Placeholders until the shrinkage pass
        ror_shrunk=ror,
        shrunk_ci_low=ci_low,
        shrunk_ci_high=ci_high,
    )


def apply_shrinkage(metrics: list[SignalMetric], prior: Prior) -> list[SignalMetric]:
    """Pass 2: shrink every metric with the same batch prior."""
    shrunk = []
    for metric in metrics:
        ror_shrunk, low, high = shrink(metric.log_ror, metric.variance, prior)
        shrunk.append(
            metric.model_copy(
                update={
                    "ror_shrunk": ror_shrunk,
                    "shrunk_ci_low": low,
                    "shrunk_ci_high": high,
                }
            )
        )
    return shrunk


def compute_metrics(rows: Iterable[ContingencyRow]) -> tuple[list[SignalMetric], Prior]:
    """
    Run all three passes over a batch of contingency rows.

    The prior is estimated only after every raw log ROR is known.

    Args:
        rows: Contingency rows of one snapshot

    Returns:
        Tuple of (metrics in input order, prior used for shrinkage)
    """
    raw = [compute_raw_metric(row) for row in rows]

    prior = estimate_prior([m.log_ror for m in raw])
    logger.debug(
        "Estimated prior from %d log RORs: mean=%.4f variance=%.4f",
        len(raw), prior.mean, prior.variance,
    )

    shrunk = apply_shrinkage(raw, prior)
    scored = apply_trend_scores(shrunk)

    return scored, prior
