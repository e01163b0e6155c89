"""
Pydantic output schemas for value-line results.

Engine dataclasses carry raw floats; these schemas are the display shape
handed to whatever renders or serialises them (2-dp prices, 1-dp means,
American and fractional renderings).
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from valueline.core.fields import FIELD_LABELS, TRACKED_FIELDS
from valueline.core.odds_math import format_odds
from valueline.services.stats_aggregator import TeamHistory
from valueline.services.value_lines import LineRecommendation


# ---------------------------------------------------------------------------
# Value lines
# ---------------------------------------------------------------------------

class ValueLineOut(BaseModel):
    """One ranked market recommendation, formatted for display."""

    market: str = Field(..., description='Human label, e.g. "Corners"')
    field: str = Field(..., description="Canonical statistic key")
    line: float = Field(..., ge=0)
    side: Literal["over", "under"]
    probability: float = Field(..., gt=0.0, le=1.0)
    decimal_odds: str = Field(..., description="Fair decimal price, 2 dp")
    american_odds: str
    fractional_odds: str
    percentage: str = Field(..., description="Probability × 100, 1 dp")
    prediction: str = Field(..., description="Predicted match total, 1 dp")
    home_avg: str
    away_avg: str
    sample_size: int = Field(..., ge=0)
    confidence: Literal["high", "medium", "low"]

    @field_validator("field")
    @classmethod
    def validate_field(cls, v: str) -> str:
        if v not in TRACKED_FIELDS:
            raise ValueError(f"Unknown statistic field {v!r}")
        return v

    @classmethod
    def from_recommendation(cls, rec: LineRecommendation) -> ValueLineOut:
        odds = format_odds(rec.fair_decimal_odds)
        return cls(
            market=FIELD_LABELS.get(rec.field, rec.field),
            field=rec.field,
            line=rec.line,
            side=rec.side,
            probability=rec.probability,
            decimal_odds=odds["decimal"],
            american_odds=odds["american"],
            fractional_odds=odds["fractional"],
            percentage=f"{rec.probability * 100:.1f}",
            prediction=f"{rec.predicted_total:.1f}",
            home_avg=f"{rec.home_mean:.1f}",
            away_avg=f"{rec.away_mean:.1f}",
            sample_size=rec.sample_size,
            confidence=rec.confidence,
        )

    model_config = {
        "json_schema_extra": {
            "example": {
                "market": "Corners",
                "field": "corners",
                "line": 9.5,
                "side": "over",
                "probability": 0.601,
                "decimal_odds": "1.66",
                "american_odds": "-151",
                "fractional_odds": "4/6",
                "percentage": "60.1",
                "prediction": "10.3",
                "home_avg": "5.6",
                "away_avg": "4.5",
                "sample_size": 16,
                "confidence": "medium",
            }
        }
    }


# ---------------------------------------------------------------------------
# Team history
# ---------------------------------------------------------------------------

class FieldSummaryOut(BaseModel):
    mean: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    count: int = 0


class MatchRecordOut(BaseModel):
    match_id: str
    side: Literal["home", "away"]
    occurred_at: Optional[str] = None
    opponent: str
    score: Optional[str] = None
    league_name: Optional[str] = None
    has_stats: bool
    side_resolution: Literal["id", "name", "default"]
    fields: dict[str, Optional[float]]


class TeamHistoryOut(BaseModel):
    """Serialisable view of :class:`~valueline.services.stats_aggregator.TeamHistory`."""

    sample_size: int
    summary: dict[str, FieldSummaryOut]
    records: list[MatchRecordOut]
    failed_match_ids: list[str] = Field(default_factory=list)

    @classmethod
    def from_history(cls, history: TeamHistory) -> TeamHistoryOut:
        return cls(
            sample_size=history.sample_size,
            summary={
                name: FieldSummaryOut(mean=s.mean, min=s.min, max=s.max, count=s.count)
                for name, s in history.summary.fields.items()
            },
            records=[
                MatchRecordOut(
                    match_id=str(r.match_id),
                    side=r.side,
                    occurred_at=r.occurred_at,
                    opponent=r.opponent,
                    score=r.score,
                    league_name=r.league_name,
                    has_stats=r.has_stats,
                    side_resolution=r.side_resolution,
                    fields=dict(r.fields),
                )
                for r in history.records
            ],
            failed_match_ids=[str(m) for m in history.failed_match_ids],
        )
