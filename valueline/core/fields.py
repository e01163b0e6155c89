"""Canonical statistic fields and the provider alias table.

Upstream providers name the same statistic differently (``sot``,
``on_target``, ``shots_on_target``).  :data:`FIELD_ALIASES` maps each
canonical field to its known source keys, consulted in priority order.
Keys with no alias match are dropped by the normaliser.
"""

from __future__ import annotations

from typing import Final, Literal

Side = Literal["home", "away"]

SHOTS_TOTAL: Final[str] = "shots_total"
SHOTS_ON_TARGET: Final[str] = "shots_on_target"
SHOTS_OFF_TARGET: Final[str] = "shots_off_target"
OFFSIDES: Final[str] = "offsides"
CORNERS: Final[str] = "corners"
YELLOW_CARDS: Final[str] = "yellowcards"
RED_CARDS: Final[str] = "redcards"

#: Every field tracked on a normalized match record, in summary order.
TRACKED_FIELDS: Final[tuple[str, ...]] = (
    SHOTS_TOTAL,
    SHOTS_ON_TARGET,
    SHOTS_OFF_TARGET,
    OFFSIDES,
    CORNERS,
    YELLOW_CARDS,
    RED_CARDS,
)

#: Canonical field → source keys, highest priority first.
FIELD_ALIASES: Final[dict[str, tuple[str, ...]]] = {
    SHOTS_TOTAL: ("shots", "shots_total", "total_shots"),
    SHOTS_ON_TARGET: ("shots_on_target", "sot", "on_target"),
    SHOTS_OFF_TARGET: ("shots_off_target", "soff", "off_target"),
    OFFSIDES: ("offsides", "offside"),
    CORNERS: ("corners", "corner"),
    YELLOW_CARDS: ("yellowcards", "yellow_cards"),
    RED_CARDS: ("redcards", "red_cards"),
}

#: Markets priced by default, in display order.
DEFAULT_MARKET_FIELDS: Final[tuple[str, ...]] = (
    CORNERS,
    YELLOW_CARDS,
    SHOTS_TOTAL,
    SHOTS_ON_TARGET,
)

FIELD_LABELS: Final[dict[str, str]] = {
    SHOTS_TOTAL: "Total Shots",
    SHOTS_ON_TARGET: "Shots on Target",
    SHOTS_OFF_TARGET: "Shots off Target",
    OFFSIDES: "Offsides",
    CORNERS: "Corners",
    YELLOW_CARDS: "Yellow Cards",
    RED_CARDS: "Red Cards",
}
