"""Fundamental odds mathematics: the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services or schemas.

The two pillars exposed are:

1. **Fair pricing**: model probability → decimal price with no margin.
2. **Display conversion**: decimal → American, decimal → nearest common
   fractional price.

Design decisions
----------------
* The engine only ever produces *decimal* fair odds.  American and
  fractional renderings are display conveniences and must never feed back
  into ``probability`` or ``fair_decimal_odds``.
* American conversion uses the conventional split at even money: decimal
  prices ≥ 2.0 render as positive (underdog) values, shorter prices as
  negative (favourite) values.
* Fractional rendering searches a fixed table of common racing fractions
  instead of reducing ``d − 1`` exactly; bookmakers quote 8/13, not 61/100.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

from typing import Final

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: Common racing fractions, shortest to longest, used for nearest-match
#: fractional rendering.  ``4/6`` is kept unreduced because that is how it
#: is quoted.
COMMON_FRACTIONS: Final[tuple[tuple[int, int], ...]] = (
    (1, 10), (1, 9), (1, 8), (1, 7), (1, 6), (1, 5), (2, 9), (1, 4), (2, 7),
    (3, 10), (1, 3), (4, 11), (2, 5), (4, 9), (1, 2), (8, 15), (4, 7), (8, 13),
    (4, 6), (10, 11), (1, 1), (11, 10), (6, 5), (5, 4), (11, 8), (7, 5),
    (6, 4), (13, 8), (7, 4), (15, 8), (2, 1), (9, 4), (5, 2), (11, 4), (3, 1),
    (10, 3), (7, 2), (4, 1), (9, 2), (5, 1), (6, 1), (7, 1), (8, 1), (9, 1),
    (10, 1),
)


# ---------------------------------------------------------------------------
# Fair pricing
# ---------------------------------------------------------------------------


def fair_decimal_odds(probability: float) -> float:
    """Decimal price implied by a model probability, with no bookmaker margin.

    Args:
        probability: Win probability in ``(0, 1]``.

    Returns:
        ``1 / probability``.

    Raises:
        ValueError: If ``probability`` is not in ``(0, 1]``.

    Examples::

        fair_decimal_odds(0.60) → 1.6667
        fair_decimal_odds(0.50) → 2.0000
    """
    if not 0.0 < probability <= 1.0:
        raise ValueError(
            f"Probability {probability!r} must be in (0, 1] to price a line."
        )
    return 1.0 / probability


# ---------------------------------------------------------------------------
# Display conversion
# ---------------------------------------------------------------------------


def decimal_to_american(decimal_odds: float) -> int:
    """Convert decimal odds to the nearest American integer.

    Args:
        decimal_odds: Decimal odds strictly greater than 1.0.

    Returns:
        ``round((d − 1) × 100)`` when ``d ≥ 2.0``, otherwise
        ``round(−100 / (d − 1))``.

    Raises:
        ValueError: If ``decimal_odds ≤ 1.0`` (no American equivalent).
    """
    if decimal_odds <= 1.0:
        raise ValueError(
            f"Decimal odds {decimal_odds!r} must be > 1.0 to convert to American."
        )
    if decimal_odds >= 2.0:
        return round((decimal_odds - 1.0) * 100)
    # Favourite: decimal < 2.0 → negative American
    return round(-100.0 / (decimal_odds - 1.0))


def format_american(decimal_odds: float) -> str:
    """American odds as a display string, with an explicit ``+`` for underdogs."""
    american = decimal_to_american(decimal_odds)
    if decimal_odds >= 2.0:
        return f"+{american}"
    return str(american)


def decimal_to_fractional(decimal_odds: float) -> str:
    """Closest common racing fraction to ``decimal_odds − 1``.

    Ties resolve to the shorter fraction (earlier in :data:`COMMON_FRACTIONS`).

    Examples::

        decimal_to_fractional(1.667) → "4/6"
        decimal_to_fractional(3.0)   → "2/1"
    """
    target = decimal_odds - 1.0
    best_num, best_den = COMMON_FRACTIONS[0]
    best_diff = abs(target - best_num / best_den)
    for num, den in COMMON_FRACTIONS[1:]:
        diff = abs(target - num / den)
        if diff < best_diff:
            best_diff = diff
            best_num, best_den = num, den
    return f"{best_num}/{best_den}"


def format_odds(decimal_odds: float) -> dict[str, str]:
    """Decimal, fractional and American renderings of one price."""
    return {
        "decimal": f"{decimal_odds:.2f}",
        "fractional": decimal_to_fractional(decimal_odds),
        "american": format_american(decimal_odds),
    }
