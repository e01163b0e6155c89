"""
Coverage breakdown for a team's normalized match history.

Answers "how much of this sample actually has stats, and where was it
played?" so a caller can decide whether to trust a summary, or re-summarise
a home-only / single-competition slice via
:func:`~valueline.services.stats_aggregator.summarize_records`.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from valueline.core.fields import Side
from valueline.services.stats_aggregator import NormalizedMatchRecord

UNKNOWN_COMPETITION = "Unknown competition"


@dataclass(frozen=True)
class CoverageSummary:
    total_listed: int
    total_with_stats: int
    coverage_pct: float
    home_count: int
    away_count: int
    competitions: List[Tuple[str, int]] = field(default_factory=list)
    records: List[NormalizedMatchRecord] = field(default_factory=list)


def summarize_coverage(
    records: Sequence[NormalizedMatchRecord],
    only_side: Optional[Side] = None,
    only_league_id: Any = None,
) -> CoverageSummary:
    """
    Filter records by side and/or league and report stats coverage.

    ``coverage_pct`` is the share (0–100) of filtered records whose detail
    payload was parseable; 0 for an empty selection.  Competitions are listed
    in first-seen order.
    """
    filtered = [
        r for r in records
        if (only_side is None or r.side == only_side)
        and (only_league_id is None or str(r.league_id or "") == str(only_league_id))
    ]
    with_stats = sum(1 for r in filtered if r.has_stats)
    competitions = Counter(r.league_name or UNKNOWN_COMPETITION for r in filtered)

    return CoverageSummary(
        total_listed=len(filtered),
        total_with_stats=with_stats,
        coverage_pct=(with_stats / len(filtered) * 100.0) if filtered else 0.0,
        home_count=sum(1 for r in filtered if r.side == "home"),
        away_count=sum(1 for r in filtered if r.side == "away"),
        competitions=list(competitions.items()),
        records=filtered,
    )
