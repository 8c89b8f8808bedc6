"""Cycle scoring: value spread and confidence.

The confidence score of a cycle combines a base confidence, which only
depends on the cycle length and how evenly participants are paid, with a
small bonus for explicit "prefer" edges along the cycle:

    confidence = clamp01(round(base_confidence(L, spread) + bonus, 4))
    base_confidence(L, spread) = clamp01(0.9 - 0.1 * (L - 2) - 0.5 * spread)
    bonus = min(0.1, 0.02 * sum(explicit_prefer_strength))

Longer rings need more parties to follow through and are scored lower;
lopsided rings are scored lower because someone is overpaying.
"""

from __future__ import annotations

import decimal
from collections.abc import Sequence
from decimal import Decimal

BASE_CONFIDENCE_CEILING = 0.9
LENGTH_PENALTY = 0.1
SPREAD_PENALTY = 0.5

PREFERENCE_BONUS_PER_STRENGTH = 0.02
PREFERENCE_BONUS_CAP = 0.1


def round_half_up(value: float, places: int) -> float:
    """Round to a fixed number of decimals, halves away from zero.

    Goes through the shortest decimal representation of the float so that
    e.g. 1.005 rounds to 1.01 rather than 1.0.
    """
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(repr(value)).quantize(quantum, rounding=decimal.ROUND_HALF_UP)
    return float(rounded)


def clamp01(value: float) -> float:
    """Clamp a value into [0, 1]."""
    return min(1.0, max(0.0, value))


def compute_value_spread(get_values: Sequence[float]) -> float:
    """Relative spread of what participants receive: (max - min) / max.

    0 means every participant receives the same USD value; values approach 1
    as the poorest leg approaches zero. Empty or zero-valued cycles have no
    spread.
    """
    if not get_values:
        return 0.0
    highest = max(get_values)
    if highest <= 0:
        return 0.0
    return (highest - min(get_values)) / highest


def base_confidence(length: int, value_spread: float) -> float:
    """Confidence before preference bonus, non-increasing in both arguments."""
    raw = (
        BASE_CONFIDENCE_CEILING
        - LENGTH_PENALTY * max(0, length - 2)
        - SPREAD_PENALTY * max(0.0, value_spread)
    )
    return clamp01(raw)


def preference_bonus(prefer_strength_total: float) -> float:
    """Bonus for explicit prefer edges, capped at PREFERENCE_BONUS_CAP."""
    return min(PREFERENCE_BONUS_CAP, PREFERENCE_BONUS_PER_STRENGTH * max(0.0, prefer_strength_total))


def score_cycle(length: int, value_spread: float, prefer_strength_total: float = 0.0) -> float:
    """Final confidence score of a cycle, rounded to 4 decimals and clamped."""
    raw = base_confidence(length, value_spread) + preference_bonus(prefer_strength_total)
    return clamp01(round_half_up(raw, 4))


__all__ = [
    "base_confidence",
    "clamp01",
    "compute_value_spread",
    "preference_bonus",
    "round_half_up",
    "score_cycle",
]
