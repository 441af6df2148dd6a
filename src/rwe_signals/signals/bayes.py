"""
Empirical Bayes shrinkage for reporting odds ratios.

Raw per-quarter RORs from sparse tables are noisy. Each log ROR is pulled
toward a Gaussian prior fitted on the whole batch, weighted by its own
sampling variance.
"""

import math
from typing import Sequence

import numpy as np

from rwe_signals.models import Prior
from rwe_signals.signals.ror import CI_Z


DEFAULT_PRIOR = Prior(mean=0.0, variance=0.25)

VARIANCE_FLOOR = 1e-6


def estimate_prior(samples: Sequence[float]) -> Prior:
    """
    Estimate a Gaussian prior from observed log RORs.

    Args:
        samples: Raw log RORs for every row of the batch

    Returns:
        Prior with the batch mean and population variance (floored),
        or DEFAULT_PRIOR when the batch is empty
    """
    if len(samples) == 0:
        return DEFAULT_PRIOR

    values = np.asarray(samples, dtype=float)
    mean = float(values.mean())
    variance = float(values.var())  # ddof=0

    return Prior(mean=mean, variance=max(variance, VARIANCE_FLOOR))


def shrink(log_ror: float, variance: float, prior: Prior) -> tuple[float, float, float]:
    """
    Shrink a single log ROR toward the prior mean.

    A confident observation (small variance) keeps most of its own value;
    a noisy one is pulled toward prior.mean.

    Args:
        log_ror: Raw log ROR
        variance: Sampling variance of log_ror
        prior: Batch prior

    Returns:
        Tuple of (ror_shrunk, ci_low, ci_high) on the ratio scale
    """
    weight = prior.variance / (prior.variance + variance)
    shrunk_log = weight * log_ror + (1.0 - weight) * prior.mean
    shrunk_var = (variance * prior.variance) / (variance + prior.variance)

    se = math.sqrt(shrunk_var)
    ci_low = math.exp(shrunk_log - CI_Z * se)
    ci_high = math.exp(shrunk_log + CI_Z * se)

    return (math.exp(shrunk_log), ci_low, ci_high)
