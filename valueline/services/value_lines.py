"""
Value-line engine for over/under count-statistic markets.

Models the match total of a statistic (home team's value + away team's value)
as ``Normal(μ, σ)`` and searches the half-point lines around μ for the one
whose over- or under-probability lands closest to a target inside a narrow
acceptance band.  The selected probability is priced at fair decimal odds
(no margin).

    home records ─┐
                  ├─► CombinedFieldDistribution ─► line search ─► LineRecommendation
    away records ─┘

Predicted mean blends a recency-weighted estimate with the long-run average:

    μ = w · (weighted_home + weighted_away) + (1 − w) · (mean_home + mean_away)

with ``w = 0.6`` and a 0.9 per-match decay by default.  The spread assumes the
two teams contribute independently: ``σ = sqrt(σ_home² + σ_away²)`` using
population standard deviations.

Data shortfalls never raise: a field with fewer than three combined values
is skipped and a field with no line inside the band is omitted.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from valueline.core.distribution import decay_weighted_mean, probability_over
from valueline.core.line_config import LineSearchConfig
from valueline.core.odds_math import fair_decimal_odds
from valueline.services.stats_aggregator import NormalizedMatchRecord

logger = logging.getLogger(__name__)

RecordLike = Union[NormalizedMatchRecord, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CombinedFieldDistribution:
    """Predicted match-total distribution for one field."""

    field: str
    predicted_mean: float
    predicted_std_dev: float
    home_mean: float
    away_mean: float
    sample_size: int                  # present home values + present away values


@dataclass(frozen=True)
class LineCandidate:
    line: float
    side: str                         # "over" | "under"
    probability: float

    def distance(self, target: float) -> float:
        return abs(self.probability - target)


@dataclass(frozen=True)
class LineRecommendation:
    """A priced over/under line for one market."""

    field: str
    line: float
    side: str                         # "over" | "under"
    probability: float
    fair_decimal_odds: float
    predicted_total: float
    home_mean: float
    away_mean: float
    sample_size: int
    confidence: str                   # "high" | "medium" | "low"
    std_dev: float = 0.0


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------

def _value_of(record: RecordLike, field: str) -> Optional[float]:
    if isinstance(record, NormalizedMatchRecord):
        raw = record.value(field)
    else:
        raw = record.get(field)
        if raw is None and isinstance(record.get("fields"), Mapping):
            raw = record["fields"].get(field)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    return float(raw) if math.isfinite(raw) else None


def _kickoff(record: RecordLike) -> Optional[datetime]:
    """Kick-off as an aware datetime; naive values are taken as UTC."""
    if isinstance(record, NormalizedMatchRecord):
        raw = record.occurred_at
    else:
        raw = record.get("occurred_at")
    if isinstance(raw, str) and raw:
        try:
            raw = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(raw, datetime):
        return None
    return raw if raw.tzinfo is not None else raw.replace(tzinfo=timezone.utc)


def aged_values(records: Sequence[RecordLike], field: str) -> List[Tuple[float, int]]:
    """
    Present values of ``field`` paired with their age (0 = most recent).

    Ages follow kick-off order when every contributing record carries a parseable
    ``occurred_at`` (ISO string or datetime); otherwise list order is used with the last record taken
    as the most recent.
    """
    present = [
        (value, _kickoff(record), position)
        for position, record in enumerate(records)
        if (value := _value_of(record, field)) is not None
    ]
    if present and all(when is not None for _, when, _ in present):
        present.sort(key=lambda item: (item[1], item[2]))
    newest_first = list(reversed(present))
    return [(value, age) for age, (value, _, _) in enumerate(newest_first)]


def population_std(values: Sequence[float]) -> float:
    """Standard deviation dividing by n; 0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


# ---------------------------------------------------------------------------
# Distribution
# ---------------------------------------------------------------------------

def combine_field_distribution(
    home_records: Sequence[RecordLike],
    away_records: Sequence[RecordLike],
    field: str,
    config: Optional[LineSearchConfig] = None,
) -> Optional[CombinedFieldDistribution]:
    """
    Predicted total of ``field`` for a home-vs-away pairing.

    A side with no present values contributes 0 to both estimators.

    Returns:
        None when neither side has a value for ``field``.
    """
    cfg = config or LineSearchConfig.default()
    home_aged = aged_values(home_records, field)
    away_aged = aged_values(away_records, field)
    if not home_aged and not away_aged:
        return None

    home_values = [v for v, _ in home_aged]
    away_values = [v for v, _ in away_aged]

    home_mean = float(np.mean(home_values)) if home_values else 0.0
    away_mean = float(np.mean(away_values)) if away_values else 0.0
    simple_total = home_mean + away_mean

    home_weighted = decay_weighted_mean(home_aged, cfg.decay) or 0.0
    away_weighted = decay_weighted_mean(away_aged, cfg.decay) or 0.0
    weighted_total = home_weighted + away_weighted

    predicted = cfg.weighted_share * weighted_total + (1.0 - cfg.weighted_share) * simple_total
    home_std = population_std(home_values)
    away_std = population_std(away_values)

    return CombinedFieldDistribution(
        field=field,
        predicted_mean=predicted,
        predicted_std_dev=math.sqrt(home_std ** 2 + away_std ** 2),
        home_mean=home_mean,
        away_mean=away_mean,
        sample_size=len(home_values) + len(away_values),
    )


# ---------------------------------------------------------------------------
# Line search
# ---------------------------------------------------------------------------

def candidate_lines(mean: float, std_dev: float, config: Optional[LineSearchConfig] = None) -> List[float]:
    """Half-point grid from ``max(0, ⌊μ − 2σ⌋)`` to ``⌈μ + 2σ⌉`` (in line steps)."""
    cfg = config or LineSearchConfig.default()
    per_unit = 1.0 / cfg.line_step
    width = cfg.search_width_sd * std_dev
    lo = max(0.0, math.floor((mean - width) * per_unit) / per_unit)
    hi = math.ceil((mean + width) * per_unit) / per_unit
    if hi < lo:
        return []
    n_steps = int(round((hi - lo) / cfg.line_step))
    return [lo + k * cfg.line_step for k in range(n_steps + 1)]


def find_best_line(
    distribution: CombinedFieldDistribution,
    config: Optional[LineSearchConfig] = None,
) -> Optional[LineCandidate]:
    """
    Line/side whose probability is closest to the target inside the band.

    Candidates are enumerated from the lowest line upwards, ``over`` before
    ``under``; on equal distance the earlier candidate wins.
    """
    cfg = config or LineSearchConfig.default()
    mean, std_dev = distribution.predicted_mean, distribution.predicted_std_dev

    best: Optional[LineCandidate] = None
    for line in candidate_lines(mean, std_dev, cfg):
        p_over = probability_over(line, mean, std_dev)
        for side, prob in (("over", p_over), ("under", 1.0 - p_over)):
            if not cfg.min_probability <= prob <= cfg.max_probability:
                continue
            candidate = LineCandidate(line=line, side=side, probability=prob)
            if best is None or candidate.distance(cfg.target_probability) < best.distance(cfg.target_probability):
                best = candidate
    return best


def recommend_line(
    home_records: Sequence[RecordLike],
    away_records: Sequence[RecordLike],
    field: str,
    config: Optional[LineSearchConfig] = None,
) -> Optional[LineRecommendation]:
    """Zero or one priced recommendation for a single field."""
    cfg = config or LineSearchConfig.default()
    dist = combine_field_distribution(home_records, away_records, field, cfg)
    if dist is None or dist.sample_size < cfg.min_sample_size:
        logger.debug("Skipping %s: sample %s below %d", field, dist and dist.sample_size, cfg.min_sample_size)
        return None

    best = find_best_line(dist, cfg)
    if best is None:
        logger.debug(
            "No %s line in band for μ=%.2f σ=%.2f", field, dist.predicted_mean, dist.predicted_std_dev
        )
        return None

    return LineRecommendation(
        field=field,
        line=best.line,
        side=best.side,
        probability=best.probability,
        fair_decimal_odds=fair_decimal_odds(best.probability),
        predicted_total=dist.predicted_mean,
        home_mean=dist.home_mean,
        away_mean=dist.away_mean,
        sample_size=dist.sample_size,
        confidence=cfg.confidence.classify(dist.sample_size, dist.predicted_std_dev),
        std_dev=dist.predicted_std_dev,
    )


def find_value_lines(
    home_records: Sequence[RecordLike],
    away_records: Sequence[RecordLike],
    *,
    target_probability: Optional[float] = None,
    min_probability: Optional[float] = None,
    max_probability: Optional[float] = None,
    fields: Optional[Sequence[str]] = None,
    config: Optional[LineSearchConfig] = None,
) -> List[LineRecommendation]:
    """
    Rank one recommendation per market by closeness to the target probability.

    Args:
        home_records: Home team's recent records (normalized records or
            mappings of field → value).
        away_records: Away team's recent records.
        target_probability / min_probability / max_probability: Optional
            overrides of the acceptance band in ``config``.
        fields: Markets to price; defaults to ``config.fields``.
        config: Base configuration; :meth:`LineSearchConfig.default` if None.

    Returns:
        Recommendations sorted by ``|probability − target|`` ascending,
        market order preserved on ties.  Markets without enough data or
        without a line in band are absent.
    """
    cfg = config or LineSearchConfig.default()
    overrides = {
        key: value
        for key, value in (
            ("target_probability", target_probability),
            ("min_probability", min_probability),
            ("max_probability", max_probability),
            ("fields", tuple(fields) if fields is not None else None),
        )
        if value is not None
    }
    if overrides:
        cfg = replace(cfg, **overrides)

    recommendations = [
        rec
        for field in cfg.fields
        if (rec := recommend_line(home_records, away_records, field, cfg)) is not None
    ]
    recommendations.sort(key=lambda rec: abs(rec.probability - cfg.target_probability))
    logger.info(
        "Value lines: %d of %d markets in band %.2f–%.2f",
        len(recommendations), len(cfg.fields), cfg.min_probability, cfg.max_probability,
    )
    return recommendations
