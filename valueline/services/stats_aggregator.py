"""
Team history aggregation for count-statistic markets.

Turns a team's recent matches into per-field summaries the value-line engine
can price:

    match refs ──► fetch_detail (trend/totals) ──► NormalizedMatchRecord ──┐
              └──► fetch_view (offsides) ─────────────────────────────────┤
                                                                           ▼
                                                   TeamStatSummary (mean/min/max)

Providers disagree on field names and on shape.  Detail payloads arrive
either as time-bucketed trend series (``BucketedTrend``) or as final totals
per team (``TotalsTrend``); each shape has its own normaliser and keys are
resolved through :data:`~valueline.core.fields.FIELD_ALIASES`.

Fetch failures never abort the batch: a match whose detail lookup raises is
dropped (and listed in ``TeamHistory.failed_match_ids``); a failed offside
lookup only loses the offside value for that match.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from valueline.core.fields import (
    FIELD_ALIASES,
    OFFSIDES,
    SHOTS_OFF_TARGET,
    SHOTS_ON_TARGET,
    SHOTS_TOTAL,
    TRACKED_FIELDS,
    Side,
)
from valueline.core.line_config import AggregatorConfig
from valueline.utils.worker_pool import bounded_map, resolve

logger = logging.getLogger(__name__)

FieldValues = Dict[str, Optional[float]]
Fetcher = Callable[[Any], Union[Any, Awaitable[Any]]]

_MATCH_ID_KEYS = ("id", "event_id", "Fid")
_ISO_TIME_KEYS = ("time_start", "time_date")
_EPOCH_TIME_KEYS = ("time", "created_at", "updated_at")
_LEADING_NUMBER = re.compile(r"\s*[-+]?\d+(?:\.\d+)?")


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NormalizedMatchRecord:
    """One historical match seen from the tracked team's side."""

    match_id: Any
    side: Side
    fields: Mapping[str, Optional[float]]
    occurred_at: Optional[str] = None     # ISO-8601, UTC
    opponent: str = "—"
    score: Optional[str] = None           # "home-away"
    league_id: Any = None
    league_name: Optional[str] = None
    has_stats: bool = True                # detail payload was parseable
    side_resolution: str = "name"         # "id" | "name" | "default"

    def value(self, name: str) -> Optional[float]:
        return self.fields.get(name)

    @property
    def has_any_value(self) -> bool:
        return any(v is not None for v in self.fields.values())


@dataclass(frozen=True)
class FieldSummary:
    """Mean/min/max over the present values of one field; all None when empty."""

    mean: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    count: int = 0


@dataclass(frozen=True)
class TeamStatSummary:
    fields: Mapping[str, FieldSummary]
    sample_size: int

    def mean(self, name: str) -> Optional[float]:
        return self.fields[name].mean

    def min(self, name: str) -> Optional[float]:
        return self.fields[name].min

    def max(self, name: str) -> Optional[float]:
        return self.fields[name].max


@dataclass(frozen=True)
class TeamHistory:
    """Result of :func:`aggregate_team_history`."""

    summary: TeamStatSummary
    records: List[NormalizedMatchRecord]
    failed_match_ids: List[Any] = field(default_factory=list)

    @property
    def sample_size(self) -> int:
        return self.summary.sample_size


# ---------------------------------------------------------------------------
# Field normalisation
# ---------------------------------------------------------------------------

def to_number(value: Any) -> Optional[float]:
    """Coerce a provider value to a finite float (``"55%"`` → 55.0), else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        n = float(value)
    elif isinstance(value, str):
        try:
            n = float(value.replace("%", "").strip())
        except ValueError:
            return None
    else:
        return None
    return n if math.isfinite(n) else None


def pick_number(obj: Optional[Mapping[str, Any]], keys: Sequence[str]) -> Optional[float]:
    """First finite number found under ``keys``, in priority order."""
    if not obj:
        return None
    for key in keys:
        if obj.get(key) is not None:
            n = to_number(obj[key])
            if n is not None:
                return n
    return None


def _with_shots_total(values: FieldValues) -> FieldValues:
    # Missing components count as zero only for this derivation.
    if values.get(SHOTS_TOTAL) is None:
        on, off = values.get(SHOTS_ON_TARGET), values.get(SHOTS_OFF_TARGET)
        if on is not None or off is not None:
            values[SHOTS_TOTAL] = (on or 0.0) + (off or 0.0)
    return values


def normalize_team_totals(obj: Optional[Mapping[str, Any]]) -> FieldValues:
    """Map one team's final-totals object onto the canonical field set."""
    values = {name: pick_number(obj, aliases) for name, aliases in FIELD_ALIASES.items()}
    return _with_shots_total(values)


def _sample_time(sample: Mapping[str, Any]) -> Optional[float]:
    raw = sample.get("time_str", sample.get("time"))
    if raw is None:
        return None
    # "90+3" reads as 90
    match = _LEADING_NUMBER.match(str(raw))
    return float(match.group()) if match else None


def latest_sample_value(samples: Any) -> Optional[float]:
    """Value of the sample with the largest time marker; ties go to the later entry.

    Samples without a numeric time marker only win when no sample has one,
    in which case the last sample is used.
    """
    if not isinstance(samples, list) or not samples:
        return None
    best: Optional[Mapping[str, Any]] = None
    best_time: Optional[float] = None
    for sample in samples:
        if not isinstance(sample, Mapping):
            continue
        t = _sample_time(sample)
        if t is not None and (best_time is None or t >= best_time):
            best, best_time = sample, t
    if best is None:
        last = samples[-1]
        best = last if isinstance(last, Mapping) else None
    if best is None:
        return None
    return to_number(best.get("val", best.get("value")))


@dataclass(frozen=True)
class BucketedTrend:
    """Per-field ``{"home": [...], "away": [...]}`` series of timed samples."""

    series: Mapping[str, Any]

    def final_totals(self) -> Tuple[FieldValues, FieldValues]:
        home: FieldValues = {}
        away: FieldValues = {}
        for name, aliases in FIELD_ALIASES.items():
            bucket = next(
                (self.series[k] for k in aliases if isinstance(self.series.get(k), Mapping)),
                None,
            )
            home[name] = latest_sample_value(bucket.get("home")) if bucket else None
            away[name] = latest_sample_value(bucket.get("away")) if bucket else None
        return _with_shots_total(home), _with_shots_total(away)


@dataclass(frozen=True)
class TotalsTrend:
    """Final totals already reduced per team."""

    home: Mapping[str, Any]
    away: Mapping[str, Any]

    def final_totals(self) -> Tuple[FieldValues, FieldValues]:
        return normalize_team_totals(self.home), normalize_team_totals(self.away)


Trend = Union[BucketedTrend, TotalsTrend]


def parse_trend(payload: Any) -> Optional[Trend]:
    """
    Classify a match-detail payload.

    * list of snapshots → :class:`TotalsTrend` from the last snapshot
    * mapping with ``home``/``away`` objects → :class:`TotalsTrend`
    * any other mapping → :class:`BucketedTrend`
    * anything else (None, empty list, scalars) → None
    """
    if isinstance(payload, list):
        if not payload:
            return None
        last = payload[-1] if isinstance(payload[-1], Mapping) else {}
        return TotalsTrend(home=last.get("home") or {}, away=last.get("away") or {})
    if isinstance(payload, Mapping):
        home, away = payload.get("home"), payload.get("away")
        if isinstance(home, Mapping) and isinstance(away, Mapping):
            return TotalsTrend(home=home, away=away)
        return BucketedTrend(series=payload)
    return None


# ---------------------------------------------------------------------------
# Match reference helpers
# ---------------------------------------------------------------------------

def match_id_of(ref: Mapping[str, Any]) -> Any:
    for key in _MATCH_ID_KEYS:
        if ref.get(key) is not None:
            return ref[key]
    return None


def _participant(ref: Mapping[str, Any], side: Side, attr: str) -> Any:
    nested = ref.get(side)
    if isinstance(nested, Mapping) and nested.get(attr):
        return nested[attr]
    return ref.get(f"{side}_{attr}")


def team_name(ref: Mapping[str, Any], side: Side) -> str:
    return str(_participant(ref, side, "name") or "")


def resolve_side(
    ref: Mapping[str, Any],
    target_team_name: str = "",
    target_team_id: Any = None,
) -> Tuple[Side, str]:
    """
    Decide whether the tracked team was home or away in ``ref``.

    Id evidence is checked first, then a case-insensitive equality/substring
    match on the participant names.  With no conclusive evidence the team is
    assumed to be at home.

    Returns:
        ``(side, method)`` with method ``"id"``, ``"name"`` or ``"default"``.
    """
    if target_team_id not in (None, ""):
        target_id = str(target_team_id)
        if target_id == str(_participant(ref, "home", "id") or ""):
            return "home", "id"
        if target_id == str(_participant(ref, "away", "id") or ""):
            return "away", "id"

    target = (target_team_name or "").strip().lower()
    if target:
        if target in team_name(ref, "home").strip().lower():
            return "home", "name"
        if target in team_name(ref, "away").strip().lower():
            return "away", "name"

    logger.debug(
        "Side for match %s defaulted to home (team=%r, id=%r)",
        match_id_of(ref), target_team_name, target_team_id,
    )
    return "home", "default"


def occurred_at_iso(ref: Mapping[str, Any]) -> Optional[str]:
    """Kick-off time as a UTC ISO-8601 string, from ISO or epoch-second fields."""
    for key in _ISO_TIME_KEYS:
        raw = ref.get(key)
        if isinstance(raw, str) and raw:
            try:
                dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            except ValueError:
                continue
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt.astimezone(timezone.utc).isoformat()
    for key in _EPOCH_TIME_KEYS:
        seconds = to_number(ref.get(key))
        if seconds is None:
            continue
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()
        except (ValueError, OverflowError, OSError):
            logger.debug("Ignoring out-of-range %s=%r on match %s", key, ref.get(key), match_id_of(ref))
    return None


def score_of(ref: Mapping[str, Any]) -> Optional[str]:
    home_score = away_score = None
    ss = ref.get("ss")
    if isinstance(ss, str) and "-" in ss:
        home_score, away_score = (part.strip() for part in ss.split("-", 1))
    if home_score is None:
        home_score = next((ref[k] for k in ("home_score", "fs_h", "score_home") if ref.get(k) is not None), None)
    if away_score is None:
        away_score = next((ref[k] for k in ("away_score", "fs_a", "score_away") if ref.get(k) is not None), None)
    if home_score is None or away_score is None:
        return None
    return f"{home_score}-{away_score}"


def extract_offsides(view: Any, side: Side) -> Optional[float]:
    """Offside count for ``side`` from a match-view payload (``stats`` or ``extra.stats``)."""
    if not isinstance(view, Mapping):
        return None
    stats = view.get("stats")
    if not isinstance(stats, Mapping):
        extra = view.get("extra")
        stats = extra.get("stats") if isinstance(extra, Mapping) else None
    if not isinstance(stats, Mapping):
        return None
    side_stats = stats.get(side)
    if not isinstance(side_stats, Mapping):
        return None
    direct = pick_number(side_stats, FIELD_ALIASES[OFFSIDES])
    if direct is not None:
        return direct
    for key, raw in side_stats.items():
        if "offside" in str(key).lower():
            n = to_number(raw)
            if n is not None:
                return n
    return None


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------

def summarize_field(values: Sequence[float]) -> FieldSummary:
    if not values:
        return FieldSummary()
    arr = np.asarray(values, dtype=float)
    return FieldSummary(
        mean=float(arr.mean()),
        min=float(arr.min()),
        max=float(arr.max()),
        count=len(values),
    )


def summarize_records(records: Sequence[NormalizedMatchRecord]) -> TeamStatSummary:
    """
    Fold records into per-field mean/min/max.

    Absent values are excluded from a field's statistics, never read as zero.
    ``sample_size`` counts records with at least one present field.
    """
    summaries = {}
    for name in TRACKED_FIELDS:
        present = [r.value(name) for r in records if r.value(name) is not None]
        summaries[name] = summarize_field(present)
    sample_size = sum(1 for r in records if r.has_any_value)
    return TeamStatSummary(fields=summaries, sample_size=sample_size)


# ---------------------------------------------------------------------------
# Aggregation entry point
# ---------------------------------------------------------------------------

async def aggregate_team_history(
    matches: Sequence[Mapping[str, Any]],
    fetch_detail: Fetcher,
    fetch_view: Optional[Fetcher] = None,
    *,
    target_team_name: str = "",
    target_team_id: Any = None,
    config: Optional[AggregatorConfig] = None,
) -> TeamHistory:
    """
    Build a team's normalized match history and its per-field summary.

    Args:
        matches: Match references, most recent last.  Each carries an id
            (``id`` / ``event_id`` / ``Fid``), participant names/ids and
            optionally kick-off time, score and league.
        fetch_detail: ``fetch_detail(match_id)`` → trend or totals payload.
            May be sync or async; may raise.
        fetch_view: Optional ``fetch_view(match_id)`` → match view carrying
            offside counts.  May be sync or async; may raise.
        target_team_name: Tracked team name (substring match fallback).
        target_team_id: Tracked team id (preferred side evidence).
        config: Fan-out limits; defaults to 4 detail / 3 view workers.

    Returns:
        :class:`TeamHistory`.  Never raises on fetch failures.
    """
    cfg = config or AggregatorConfig()
    sides = [resolve_side(ref, target_team_name, target_team_id) for ref in matches]
    failed: List[Any] = []

    def detail_failed(ref: Mapping[str, Any], idx: int, exc: Exception) -> None:
        failed.append(match_id_of(ref))
        logger.warning("Match detail fetch failed for %s: %s", match_id_of(ref), exc)

    async def load_detail(ref: Mapping[str, Any], idx: int) -> Tuple[bool, FieldValues]:
        trend = parse_trend(await resolve(fetch_detail(match_id_of(ref))))
        if trend is None:
            return False, {}
        home, away = trend.final_totals()
        return True, (home if sides[idx][0] == "home" else away)

    details = await bounded_map(matches, cfg.detail_concurrency, load_detail, detail_failed)

    offsides: List[Optional[float]] = [None] * len(matches)
    if fetch_view is not None:

        def view_failed(ref: Mapping[str, Any], idx: int, exc: Exception) -> None:
            logger.info("Match view fetch failed for %s: %s", match_id_of(ref), exc)

        async def load_offsides(ref: Mapping[str, Any], idx: int) -> Optional[float]:
            view = await resolve(fetch_view(match_id_of(ref)))
            return extract_offsides(view, sides[idx][0])

        offsides = await bounded_map(matches, cfg.view_concurrency, load_offsides, view_failed)

    records: List[NormalizedMatchRecord] = []
    for idx, ref in enumerate(matches):
        if details[idx] is None:
            continue
        has_stats, picked = details[idx]
        values: FieldValues = {name: picked.get(name) for name in TRACKED_FIELDS}
        if offsides[idx] is not None:
            values[OFFSIDES] = offsides[idx]
        side, method = sides[idx]
        opponent_side: Side = "away" if side == "home" else "home"
        league = ref.get("league") if isinstance(ref.get("league"), Mapping) else {}
        records.append(
            NormalizedMatchRecord(
                match_id=match_id_of(ref),
                side=side,
                fields=values,
                occurred_at=occurred_at_iso(ref),
                opponent=team_name(ref, opponent_side) or "—",
                score=score_of(ref),
                league_id=ref.get("league_id", league.get("id")),
                league_name=league.get("name") or ref.get("league_name"),
                has_stats=has_stats,
                side_resolution=method,
            )
        )

    summary = summarize_records(records)
    logger.info(
        "Aggregated %d/%d matches for %s (%d with stats, %d failed)",
        len(records), len(matches), target_team_name or target_team_id,
        summary.sample_size, len(failed),
    )
    return TeamHistory(summary=summary, records=records, failed_match_ids=failed)
