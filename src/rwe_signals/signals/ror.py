"""
Reporting odds ratio calculations.

All functions are pure and stateless - they take 2x2 counts and return
ratio statistics.
"""

import math


# Added to every cell when any cell is zero
CONTINUITY_CORRECTION = 0.5

# Two-sided 95% normal quantile
CI_Z = 1.96


def continuity_correct(
    a: float, b: float, c: float, d: float
) -> tuple[float, float, float, float]:
    """
    Apply the Haldane continuity correction.

    If any cell is exactly zero, 0.5 is added to all four cells,
    otherwise the counts are returned unchanged.
    """
    if any(x == 0 for x in (a, b, c, d)):
        k = CONTINUITY_CORRECTION
        return (a + k, b + k, c + k, d + k)
    return (float(a), float(b), float(c), float(d))


def ror_with_ci(
    a: float, b: float, c: float, d: float
) -> tuple[float, float, float, float]:
    """
    Compute the reporting odds ratio with its 95% confidence interval.

    Args:
        a: Reports with both drug and event
        b: Reports with the drug but not the event
        c: Reports with the event but not the drug
        d: Reports with neither

    Returns:
        Tuple of (ror, ci_low, ci_high, variance) where variance is the
        variance of ln(ror), computed on corrected counts
    """
    a, b, c, d = continuity_correct(a, b, c, d)

    r1 = a / b
    r2 = c / d
    ror = r1 / r2
    log_ror = math.log(ror)

    variance = 1.0 / a + 1.0 / b + 1.0 / c + 1.0 / d
    se = math.sqrt(variance)

    ci_low = math.exp(log_ror - CI_Z * se)
    ci_high = math.exp(log_ror + CI_Z * se)

    return (ror, ci_low, ci_high, variance)


def z_score(log_ror: float, variance: float) -> float:
    """Convert a log ROR and its variance to a z statistic."""
    if variance <= 0:
        return 0.0
    return log_ror / math.sqrt(variance)
