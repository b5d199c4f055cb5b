"""
Card value estimation.

A deterministic heuristic over player/character name, year, rarity list
membership and condition. It never raises: anything it cannot interpret is
treated as "no match".
"""

import math
import re

from gradedesk.models.card import CARD_TYPE_TCG, CardDescriptor, EstimatedValue
from gradedesk.services.rarity_tables import (
    DEFAULT_BASE_VALUE,
    MAGIC_TIER,
    MARQUEE_ATHLETE_VALUE,
    MARQUEE_ATHLETES,
    POKEMON_TIER,
    PRICE_VARIANCE,
    VINTAGE_PRINT_MARKERS,
    VINTAGE_PRINT_MULTIPLIER,
    YUGIOH_TIER,
    condition_multiplier,
    matches_any,
    year_multiplier,
)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_year(year: str | None) -> int | None:
    """
    Parse the leading integer of a year string.

    "1986" and "1986-87" both give 1986; "Base Set" gives None.
    """
    if not year:
        return None
    match = _LEADING_INT.match(year)
    if match is None:
        return None
    return int(match.group(1))


def is_trading_card_game(card_type: str | None) -> bool:
    if not card_type:
        return False
    lowered = card_type.strip().lower()
    return lowered == CARD_TYPE_TCG.lower() or lowered == "tcg" or "trading card game" in lowered


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def base_value(descriptor: CardDescriptor) -> float:
    """Base value before year and condition multipliers."""
    name = descriptor.player_name or ""
    year = descriptor.year or ""
    value: float = DEFAULT_BASE_VALUE

    if is_trading_card_game(descriptor.card_type):
        # Later franchise matches override earlier ones
        if matches_any(name, POKEMON_TIER.names):
            value = POKEMON_TIER.base_value

        if any(marker in year for marker in VINTAGE_PRINT_MARKERS):
            value *= VINTAGE_PRINT_MULTIPLIER

        if matches_any(name, MAGIC_TIER.names):
            value = MAGIC_TIER.base_value

        if matches_any(name, YUGIOH_TIER.names):
            value = YUGIOH_TIER.base_value
    elif matches_any(name, MARQUEE_ATHLETES):
        value = MARQUEE_ATHLETE_VALUE

    return value


def estimate(descriptor: CardDescriptor) -> EstimatedValue | None:
    """
    Estimate a price band for one card.

    Returns None unless player name, year and condition are all present;
    callers must not show a value in that case.
    """
    if not descriptor.player_name or not descriptor.year or not descriptor.estimated_condition:
        return None

    value = base_value(descriptor)

    parsed_year = parse_year(descriptor.year)
    if parsed_year is not None:
        value *= year_multiplier(parsed_year)

    price = value * condition_multiplier(descriptor.estimated_condition)
    variance = price * PRICE_VARIANCE

    return EstimatedValue(
        min=_round_half_up(price - variance),
        max=_round_half_up(price + variance),
        average=_round_half_up(price),
    )
