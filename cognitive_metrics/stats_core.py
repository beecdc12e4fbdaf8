from __future__ import annotations

import math
from collections.abc import Sequence

# Abramowitz & Stegun 7.1.26 coefficients.
_ERF_A1 = 0.254829592
_ERF_A2 = -0.284496736
_ERF_A3 = 1.421413741
_ERF_A4 = -1.453152027
_ERF_A5 = 1.061405429
_ERF_P = 0.3275911

_Z_LIMIT = 4.0


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sequence."""

    if not values:
        return 0.0
    return float(sum(values)) / float(len(values))


def variance(values: Sequence[float]) -> float:
    """Population variance (divide by n); 0.0 for an empty sequence."""

    if not values:
        return 0.0
    m = mean(values)
    return sum((v - m) ** 2 for v in values) / float(len(values))


def stddev(values: Sequence[float]) -> float:
    """Population standard deviation; 0.0 when fewer than two values."""

    if len(values) < 2:
        return 0.0
    return math.sqrt(variance(values))


def median(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 1:
        return float(ordered[mid])
    return float(ordered[mid - 1] + ordered[mid]) / 2.0


def coefficient_of_variation(values: Sequence[float]) -> float:
    """stddev / mean, with 0.0 when the mean is zero."""

    m = mean(values)
    if m == 0:
        return 0.0
    return stddev(values) / m


def trend(values: Sequence[float]) -> float:
    """Bounded percent change between the first and last value.

    ``(last - first) / max(|first|, 100) * 100``. This is not a regression
    slope; with fewer than two values the trend is 0.
    """

    if len(values) < 2:
        return 0.0
    first = float(values[0])
    last = float(values[-1])
    return ((last - first) / max(abs(first), 100.0)) * 100.0


def z_score(value: float, mu: float, sigma: float) -> float:
    if sigma == 0:
        return 0.0
    return (value - mu) / sigma


def erf(x: float) -> float:
    """Rational approximation of the error function (max error ~1.5e-7)."""

    sign = -1.0 if x < 0 else 1.0
    ax = abs(x)
    t = 1.0 / (1.0 + _ERF_P * ax)
    poly = (
        _ERF_A1 * t
        + _ERF_A2 * t * t
        + _ERF_A3 * t * t * t
        + _ERF_A4 * t * t * t * t
        + _ERF_A5 * t * t * t * t * t
    )
    return sign * (1.0 - poly * math.exp(-ax * ax))


def z_to_percentile(z: float) -> float:
    """Map a z-score to a 0-100 percentile of the standard normal CDF."""

    clamped = max(-_Z_LIMIT, min(_Z_LIMIT, float(z)))
    sign = -1.0 if clamped < 0 else 1.0
    return 50.0 * (1.0 + sign * erf(abs(clamped) / math.sqrt(2.0)))
