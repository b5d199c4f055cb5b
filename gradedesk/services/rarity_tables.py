"""
Static rarity and condition tables consulted by the value estimator.

All dollar amounts here are tuning knobs, not business rules: change them
freely, the estimator only cares about their relative order.
"""

from dataclasses import dataclass

DEFAULT_BASE_VALUE = 50

# Sports cards featuring one of these names start at MARQUEE_ATHLETE_VALUE
MARQUEE_ATHLETE_VALUE = 500
MARQUEE_ATHLETES: tuple[str, ...] = (
    "Michael Jordan",
    "LeBron James",
    "Kobe Bryant",
    "Tom Brady",
    "Patrick Mahomes",
    "Wayne Gretzky",
    "Babe Ruth",
    "Mickey Mantle",
    "Mike Trout",
    "Shohei Ohtani",
    "Stephen Curry",
    "Lionel Messi",
    "Cristiano Ronaldo",
)


@dataclass(frozen=True, slots=True)
class FranchiseTier:
    """Valuable names of one trading card game and the base value they set."""

    franchise: str
    base_value: int
    names: tuple[str, ...]


POKEMON_TIER = FranchiseTier(
    franchise="Pokemon",
    base_value=300,
    names=(
        "Charizard",
        "Pikachu",
        "Mewtwo",
        "Blastoise",
        "Venusaur",
        "Lugia",
        "Rayquaza",
        "Gyarados",
    ),
)

MAGIC_TIER = FranchiseTier(
    franchise="Magic: The Gathering",
    base_value=2000,
    names=(
        "Black Lotus",
        "Mox",
        "Ancestral Recall",
        "Time Walk",
        "Timetwister",
        "Underground Sea",
        "Tundra",
    ),
)

YUGIOH_TIER = FranchiseTier(
    franchise="Yu-Gi-Oh!",
    base_value=200,
    names=(
        "Blue-Eyes White Dragon",
        "Dark Magician",
        "Exodia",
        "Red-Eyes Black Dragon",
    ),
)

# A first-print marker in the year field multiplies the Pokemon base value
VINTAGE_PRINT_MARKERS: tuple[str, ...] = ("1999", "Base Set", "1st Edition")
VINTAGE_PRINT_MULTIPLIER = 4

# (exclusive upper bound on year, multiplier), checked in order
YEAR_MULTIPLIERS: tuple[tuple[int, int], ...] = (
    (1970, 3),
    (1990, 2),
)

CONDITION_MULTIPLIERS: dict[str, float] = {
    "Mint": 2.0,
    "Near Mint": 1.5,
    "Excellent": 1.2,
    "Very Good": 1.0,
    "Good": 0.7,
    "Fair": 0.4,
    "Poor": 0.2,
}
DEFAULT_CONDITION_MULTIPLIER = 1.0

# Estimated price band is +/- this fraction around the point estimate
PRICE_VARIANCE = 0.20


def matches_any(name: str, candidates: tuple[str, ...]) -> bool:
    """Case-insensitive substring match of any candidate inside ``name``."""
    lowered = name.lower()
    return any(candidate.lower() in lowered for candidate in candidates)


def condition_multiplier(condition: str | None) -> float:
    """Multiplier for a condition label; unknown labels count as Very Good."""
    if not condition:
        return DEFAULT_CONDITION_MULTIPLIER
    return CONDITION_MULTIPLIERS.get(condition.strip(), DEFAULT_CONDITION_MULTIPLIER)


def year_multiplier(year: int) -> int:
    for upper_bound, multiplier in YEAR_MULTIPLIERS:
        if year < upper_bound:
            return multiplier
    return 1
