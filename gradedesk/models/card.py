from dataclasses import dataclass, field
from typing import Any

CARD_TYPE_SPORTS = "Sports"
CARD_TYPE_TCG = "Trading Card Game (TCG)"
CARD_TYPE_OTHER = "Other"

CARD_TYPES = (CARD_TYPE_SPORTS, CARD_TYPE_TCG, "Non-Sport", "Gaming", CARD_TYPE_OTHER)

CARD_SPORTS = (
    "Baseball",
    "Basketball",
    "Football",
    "Hockey",
    "Soccer",
    "Pokemon",
    "Magic: The Gathering",
    "Yu-Gi-Oh!",
    "Other",
)

CARD_CONDITIONS = ("Mint", "Near Mint", "Excellent", "Very Good", "Good", "Fair", "Poor")

# Vision output keys, in the camelCase the model is prompted to produce
_DESCRIPTOR_KEYS = {
    "player_name": "playerName",
    "year": "year",
    "manufacturer": "manufacturer",
    "card_number": "cardNumber",
    "card_type": "cardType",
    "sport": "sport",
    "estimated_condition": "estimatedCondition",
}


def _clean(value: Any) -> str | None:
    """Coerce an untrusted value to a stripped string, or None if blank."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True, slots=True)
class CardDescriptor:
    """
    Attributes the vision service extracted for one card.

    Untrusted input: every field may be missing. Defaults are applied
    when a descriptor becomes a CardRecord, never here.
    """

    player_name: str | None = None
    year: str | None = None
    manufacturer: str | None = None
    card_number: str | None = None
    card_type: str | None = None
    sport: str | None = None
    estimated_condition: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "CardDescriptor":
        """Build from a vision JSON object (camelCase or snake_case keys)."""
        values: dict[str, str | None] = {}
        for attr, camel in _DESCRIPTOR_KEYS.items():
            raw = payload.get(camel, payload.get(attr))
            values[attr] = _clean(raw)
        return cls(**values)

    def to_payload(self) -> dict[str, str | None]:
        return {camel: getattr(self, attr) for attr, camel in _DESCRIPTOR_KEYS.items()}


@dataclass(frozen=True, slots=True)
class EstimatedValue:
    """Price band for one card, in whole currency units."""

    min: int
    max: int
    average: int


@dataclass(slots=True)
class CardRecord:
    """
    One card within an in-progress submission.

    Several records may share a source image when the photo shows several
    cards; they share the image reference, not a copy of its bytes.
    """

    source_image_ref: str
    player_name: str
    year: str
    manufacturer: str
    card_number: str
    card_type: str
    sport: str
    estimated_condition: str
    position_in_image: int = 1
    total_detected_in_image: int = 1
    declared_value: str = ""
    estimated_value: EstimatedValue | None = None
    image_binary_ref: str | None = None
    analyzed: bool = False
    record_id: str = field(default="")

    def __post_init__(self) -> None:
        if self.position_in_image < 1:
            raise ValueError("position_in_image must be >= 1")
        if self.total_detected_in_image < self.position_in_image:
            raise ValueError("total_detected_in_image must be >= position_in_image")
        if not self.record_id:
            self.record_id = f"{self.source_image_ref}#{self.position_in_image}"

    def descriptor(self) -> CardDescriptor:
        """The record's current card attributes, as the estimator sees them."""
        return CardDescriptor(
            player_name=self.player_name,
            year=self.year,
            manufacturer=self.manufacturer,
            card_number=self.card_number,
            card_type=self.card_type,
            sport=self.sport,
            estimated_condition=self.estimated_condition,
        )
