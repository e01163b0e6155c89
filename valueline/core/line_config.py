"""Line-search configuration — every tunable constant in one place.

This module is the **registry** for the acceptance band, the recency decay,
the mean-blend weights, the minimum sample size and the confidence
thresholds.  Nowhere else in the codebase should those numbers be
hard-coded.

Architecture
------------
:class:`LineSearchConfig` is a frozen dataclass carrying the engine
constants; :class:`AggregatorConfig` carries the fetch fan-out limits.
Named constructors return pre-populated instances and :meth:`from_env`
reads ``VALUELINE_*`` overrides (a ``.env`` file in the working directory
is loaded on that call, never at import).

Typical usage::

    from valueline.core.line_config import LineSearchConfig

    cfg = LineSearchConfig.default()

    # Widen the band for a single scan:
    from dataclasses import replace
    wide = replace(cfg, min_probability=0.55, max_probability=0.65)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Final

from dotenv import load_dotenv

from valueline.core.distribution import DEFAULT_DECAY
from valueline.core.fields import DEFAULT_MARKET_FIELDS, TRACKED_FIELDS

#: Environment-variable prefix for every override read by :meth:`from_env`.
ENV_PREFIX: Final[str] = "VALUELINE_"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(ENV_PREFIX + name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(ENV_PREFIX + name)
    return int(raw) if raw not in (None, "") else default


@dataclass(frozen=True)
class ConfidenceThresholds:
    """Sample-size and spread cut-offs for the three confidence labels.

    These are policy constants, not statistically derived.

    Attributes:
        high_min_sample: Minimum combined sample for ``"high"``.
        high_max_std: ``"high"`` requires the combined SD strictly below this.
        medium_min_sample: Minimum combined sample for ``"medium"``.
        medium_max_std: ``"medium"`` requires the combined SD strictly below this.
    """

    high_min_sample: int = 8
    high_max_std: float = 2.0
    medium_min_sample: int = 5
    medium_max_std: float = 3.0

    def classify(self, sample_size: int, std_dev: float) -> str:
        """Return ``"high"``, ``"medium"`` or ``"low"``."""
        if sample_size >= self.high_min_sample and std_dev < self.high_max_std:
            return "high"
        if sample_size >= self.medium_min_sample and std_dev < self.medium_max_std:
            return "medium"
        return "low"


@dataclass(frozen=True)
class LineSearchConfig:
    """Immutable configuration bundle for the value-line engine.

    Attributes:
        target_probability: Probability the selected line should sit closest to.
        min_probability: Lower edge of the acceptance band (inclusive).
        max_probability: Upper edge of the acceptance band (inclusive).
        decay: Per-match recency discount for the weighted mean.
        weighted_share: Share of the recency-weighted estimate in the
            blended predicted mean; the simple mean gets the remainder.
        min_sample_size: Combined sample below which a field is skipped.
        line_step: Spacing between candidate thresholds.
        search_width_sd: Candidate range half-width in standard deviations.
        fields: Markets priced by :func:`~valueline.services.value_lines.find_value_lines`.
        confidence: Confidence label thresholds.
    """

    target_probability: float = 0.60
    min_probability: float = 0.58
    max_probability: float = 0.62
    decay: float = DEFAULT_DECAY
    weighted_share: float = 0.6
    min_sample_size: int = 3
    line_step: float = 0.5
    search_width_sd: float = 2.0
    fields: tuple[str, ...] = DEFAULT_MARKET_FIELDS
    confidence: ConfidenceThresholds = field(default_factory=ConfidenceThresholds)

    def __post_init__(self) -> None:
        if not 0.0 < self.min_probability <= self.max_probability < 1.0:
            raise ValueError(
                f"Acceptance band [{self.min_probability}, {self.max_probability}] "
                "must satisfy 0 < min ≤ max < 1."
            )
        if not self.min_probability <= self.target_probability <= self.max_probability:
            raise ValueError(
                f"Target probability {self.target_probability} lies outside the "
                f"acceptance band [{self.min_probability}, {self.max_probability}]."
            )
        if not 0.0 < self.decay <= 1.0:
            raise ValueError(f"Decay {self.decay} must be in (0, 1].")
        if not 0.0 <= self.weighted_share <= 1.0:
            raise ValueError(f"Weighted share {self.weighted_share} must be in [0, 1].")
        if self.line_step <= 0:
            raise ValueError(f"Line step {self.line_step} must be positive.")
        unknown = [f for f in self.fields if f not in TRACKED_FIELDS]
        if unknown:
            raise ValueError(f"Unknown market fields: {unknown}")

    # ------------------------------------------------------------------ #
    #  Named constructors                                                  #
    # ------------------------------------------------------------------ #

    @classmethod
    def default(cls) -> LineSearchConfig:
        """Return the standard 58–62 % band centred on 60 %."""
        return cls()

    @classmethod
    def from_env(cls) -> LineSearchConfig:
        """Build a config from ``VALUELINE_*`` environment variables.

        Recognised variables: ``TARGET_PROBABILITY``, ``MIN_PROBABILITY``,
        ``MAX_PROBABILITY``, ``DECAY``, ``WEIGHTED_SHARE``,
        ``MIN_SAMPLE_SIZE``, ``FIELDS`` (comma-separated),
        ``HIGH_MIN_SAMPLE``, ``HIGH_MAX_STD``, ``MEDIUM_MIN_SAMPLE``,
        ``MEDIUM_MAX_STD``.  Unset variables keep their defaults.
        """
        load_dotenv()
        base = cls()
        raw_fields = os.getenv(ENV_PREFIX + "FIELDS", "")
        fields = tuple(f.strip() for f in raw_fields.split(",") if f.strip()) or base.fields
        confidence = ConfidenceThresholds(
            high_min_sample=_env_int("HIGH_MIN_SAMPLE", base.confidence.high_min_sample),
            high_max_std=_env_float("HIGH_MAX_STD", base.confidence.high_max_std),
            medium_min_sample=_env_int("MEDIUM_MIN_SAMPLE", base.confidence.medium_min_sample),
            medium_max_std=_env_float("MEDIUM_MAX_STD", base.confidence.medium_max_std),
        )
        return cls(
            target_probability=_env_float("TARGET_PROBABILITY", base.target_probability),
            min_probability=_env_float("MIN_PROBABILITY", base.min_probability),
            max_probability=_env_float("MAX_PROBABILITY", base.max_probability),
            decay=_env_float("DECAY", base.decay),
            weighted_share=_env_float("WEIGHTED_SHARE", base.weighted_share),
            min_sample_size=_env_int("MIN_SAMPLE_SIZE", base.min_sample_size),
            fields=fields,
            confidence=confidence,
        )

    def __repr__(self) -> str:
        return (
            f"LineSearchConfig(target={self.target_probability}, "
            f"band=[{self.min_probability}, {self.max_probability}], "
            f"decay={self.decay}, fields={list(self.fields)})"
        )


@dataclass(frozen=True)
class AggregatorConfig:
    """Fan-out limits for per-match lookups.

    Attributes:
        detail_concurrency: Concurrent match-detail (trend) fetches.
        view_concurrency: Concurrent match-view (offside) fetches.
    """

    detail_concurrency: int = 4
    view_concurrency: int = 3

    def __post_init__(self) -> None:
        if self.detail_concurrency < 1 or self.view_concurrency < 1:
            raise ValueError("Concurrency limits must be at least 1.")

    @classmethod
    def from_env(cls) -> AggregatorConfig:
        """Read ``VALUELINE_DETAIL_CONCURRENCY`` / ``VALUELINE_VIEW_CONCURRENCY``."""
        load_dotenv()
        base = cls()
        return cls(
            detail_concurrency=_env_int("DETAIL_CONCURRENCY", base.detail_concurrency),
            view_concurrency=_env_int("VIEW_CONCURRENCY", base.view_concurrency),
        )
