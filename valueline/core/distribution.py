"""Normal-distribution helpers for over/under line pricing.

All functions are pure and deterministic.  The error function is the
Abramowitz & Stegun 7.1.26 rational approximation (|ε| ≤ 1.5 × 10⁻⁷) rather
than ``math.erf`` or ``scipy.special.erf``: line selection compares
probabilities against a narrow acceptance band, and the band edges were
tuned against this approximation.

Run tests with::

    pytest tests/test_distribution.py -v
"""

from __future__ import annotations

import math
from typing import Final, Iterable

# Abramowitz & Stegun 7.1.26 coefficients
_AS_P: Final[float] = 0.3275911
_AS_A1: Final[float] = 0.254829592
_AS_A2: Final[float] = -0.284496736
_AS_A3: Final[float] = 1.421413741
_AS_A4: Final[float] = -1.453152027
_AS_A5: Final[float] = 1.061405429

_SQRT2: Final[float] = math.sqrt(2.0)

#: Per-match recency discount: the most recent match weighs 1.0, the one
#: before it 0.9, then 0.81, and so on.
DEFAULT_DECAY: Final[float] = 0.9


def erf(x: float) -> float:
    """Error function via Abramowitz & Stegun formula 7.1.26."""
    sign = 1.0 if x >= 0 else -1.0
    x = abs(x)
    t = 1.0 / (1.0 + _AS_P * x)
    poly = ((((_AS_A5 * t + _AS_A4) * t + _AS_A3) * t + _AS_A2) * t + _AS_A1) * t
    return sign * (1.0 - poly * math.exp(-x * x))


def normal_cdf(x: float, mean: float = 0.0, std_dev: float = 1.0) -> float:
    """``P(X ≤ x)`` for ``X ~ Normal(mean, std_dev)``; requires ``std_dev > 0``."""
    z = (x - mean) / std_dev
    return 0.5 * (1.0 + erf(z / _SQRT2))


def probability_over(threshold: float, mean: float, std_dev: float) -> float:
    """``P(X > threshold)`` under ``Normal(mean, std_dev)``.

    With zero spread the outcome is binary: 1 when ``mean > threshold``,
    otherwise 0.  There is no partial credit at ``mean == threshold``.
    """
    if std_dev == 0:
        return 1.0 if mean > threshold else 0.0
    return 1.0 - normal_cdf(threshold, mean, std_dev)


def probability_under(threshold: float, mean: float, std_dev: float) -> float:
    """Complement of :func:`probability_over`."""
    return 1.0 - probability_over(threshold, mean, std_dev)


def decay_weighted_mean(
    aged_values: Iterable[tuple[float, int]],
    decay: float = DEFAULT_DECAY,
) -> float | None:
    """Recency-weighted mean over ``(value, age)`` pairs.

    ``age`` is 0 for the most recent observation and grows by one per older
    match; each observation weighs ``decay ** age``.  Storage order of the
    pairs does not matter.

    Returns:
        The weighted mean, or ``None`` when no pairs are supplied.
    """
    weighted_sum = 0.0
    total_weight = 0.0
    for value, age in aged_values:
        weight = decay ** age
        weighted_sum += value * weight
        total_weight += weight
    if total_weight <= 0:
        return None
    return weighted_sum / total_weight
