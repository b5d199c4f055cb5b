"""
Parser for vision model replies.

The model is asked for ``{"cards": [...]}`` but replies are untrusted text:
the JSON may be wrapped in prose or code fences, may be a single card object,
or may be missing entirely. When no JSON can be recovered the reply is mined
line by line for "Field: value" pairs.
"""

import json
import logging
import re
from typing import Any

from gradedesk.models.card import CARD_TYPE_SPORTS, CARD_TYPE_TCG, CardDescriptor

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_AFTER_COLON = re.compile(r"[:：]\s*(.+)")
_YEAR_AFTER_COLON = re.compile(r"[:：]\s*(\d{4})")

# Order matters - first keyword found wins
_FRANCHISE_KEYWORDS: tuple[tuple[tuple[str, ...], str, str], ...] = (
    (("pokemon", "pokémon"), CARD_TYPE_TCG, "Pokemon"),
    (("magic", "mtg"), CARD_TYPE_TCG, "Magic: The Gathering"),
    (("yu-gi-oh", "yugioh"), CARD_TYPE_TCG, "Yu-Gi-Oh!"),
    (("baseball",), CARD_TYPE_SPORTS, "Baseball"),
    (("basketball",), CARD_TYPE_SPORTS, "Basketball"),
    (("football",), CARD_TYPE_SPORTS, "Football"),
)


class VisionResponseError(ValueError):
    """Raised when a reply yields no card information at all."""


def _load_json(text: str) -> Any | None:
    match = _JSON_OBJECT.search(text)
    if match is None:
        return None
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError:
        return None


def _descriptors_from_json(payload: Any) -> list[CardDescriptor] | None:
    if not isinstance(payload, dict):
        return None
    cards = payload.get("cards")
    if isinstance(cards, list):
        return [CardDescriptor.from_payload(card) for card in cards if isinstance(card, dict)]
    # Single-card reply without the envelope
    descriptor = CardDescriptor.from_payload(payload)
    if descriptor == CardDescriptor():
        return None
    return [descriptor]


def parse_text_fallback(text: str) -> CardDescriptor:
    """
    Extract one card from free-form text.

    Looks for lines such as ``Player: Ken Griffey Jr.`` or ``Year: 1989`` and
    infers card type and sport/game from keywords anywhere in the text.
    """
    fields: dict[str, str] = {}

    for line in text.splitlines():
        lower = line.lower()

        if "player" in lower or "name:" in lower:
            match = _AFTER_COLON.search(line)
            if match:
                fields["player_name"] = match.group(1).strip()

        if "year:" in lower:
            match = _YEAR_AFTER_COLON.search(line)
            if match:
                fields["year"] = match.group(1)

        if "manufacturer:" in lower or "brand:" in lower:
            match = _AFTER_COLON.search(line)
            if match:
                fields["manufacturer"] = match.group(1).strip()

        if "card number:" in lower:
            match = _AFTER_COLON.search(line)
            if match:
                fields["card_number"] = match.group(1).strip()

        if "condition:" in lower:
            match = _AFTER_COLON.search(line)
            if match:
                fields["estimated_condition"] = match.group(1).strip()

    lower_text = text.lower()
    for keywords, card_type, sport in _FRANCHISE_KEYWORDS:
        if any(keyword in lower_text for keyword in keywords):
            fields["card_type"] = card_type
            fields["sport"] = sport
            break

    return CardDescriptor(**{k: v or None for k, v in fields.items()})


def parse_vision_response(text: str) -> list[CardDescriptor]:
    """
    Turn a vision model reply into card descriptors.

    Returns an empty list when the model explicitly reported no cards.

    Raises:
        VisionResponseError: If neither JSON nor text extraction finds anything
    """
    payload = _load_json(text)
    descriptors = _descriptors_from_json(payload)
    if descriptors is not None:
        return descriptors

    logger.warning("Vision reply was not valid JSON; falling back to text extraction")
    descriptor = parse_text_fallback(text)
    if descriptor == CardDescriptor():
        raise VisionResponseError("No card information found in vision reply")
    return [descriptor]
