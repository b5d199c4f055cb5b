"""
Vision analysis client.

Sends one card photo to the vision model and returns the card descriptors it
found. The model is a black box: prompt in, (hopefully) JSON out. Anything
that goes wrong for an image surfaces as AnalysisFailure so the caller can
fall back to a placeholder card.
"""

import logging
from dataclasses import dataclass, field
from typing import Protocol

import anthropic
from anthropic.types import MessageParam, TextBlock

from gradedesk.config import MAX_CARDS_PER_IMAGE, settings
from gradedesk.models.card import CARD_TYPE_SPORTS, CardDescriptor
from gradedesk.models.failure import AnalysisFailure
from gradedesk.parsers.vision_response import VisionResponseError, parse_vision_response
from gradedesk.services.images import split_data_uri

logger = logging.getLogger(__name__)

CARD_ANALYSIS_PROMPT = f"""Analyze this photo of trading cards or sports cards.
The photo may show a single card or several cards (up to {MAX_CARDS_PER_IMAGE}).
For EACH card visible, extract the following information and return JSON:

{{
  "cards": [
    {{
      "playerName": "The name of the player, character, or subject on the card",
      "year": "The year the card was produced or the set date",
      "manufacturer": "The brand/company that made the card (e.g., Topps, Fleer, Panini, Upper Deck, Pokemon Company, Wizards of the Coast, Konami)",
      "cardNumber": "The card number if visible",
      "cardType": "The type of card: 'Sports', 'Trading Card Game (TCG)', or 'Other'",
      "sport": "The sport or game (Baseball, Basketball, Football, Hockey, Soccer, Pokemon, Magic: The Gathering, Yu-Gi-Oh!, or Other)",
      "estimatedCondition": "Estimated condition based on visible wear: 'Mint', 'Near Mint', 'Excellent', 'Very Good', 'Good', 'Fair', or 'Poor'"
    }}
  ]
}}

Important:
- List cards left to right, top to bottom
- If this is a Pokemon card, cardType should be "Trading Card Game (TCG)" and sport should be "Pokemon"
- If this is a Magic: The Gathering card, cardType should be "Trading Card Game (TCG)" and sport should be "Magic: The Gathering"
- If this is a Yu-Gi-Oh! card, cardType should be "Trading Card Game (TCG)" and sport should be "Yu-Gi-Oh!"
- If it's a sports card (baseball, basketball, etc.), cardType should be "Sports"
- For year, extract the copyright year or set year visible on the card
- If no card is visible, return {{"cards": []}}
- Return ONLY valid JSON, no additional text or explanation"""

# Returned when no API key is configured, so the UI can be exercised offline
MOCK_CARD = CardDescriptor(
    player_name="Michael Jordan",
    year="1986",
    manufacturer="Fleer",
    card_number="#57",
    card_type=CARD_TYPE_SPORTS,
    sport="Basketball",
    estimated_condition="Near Mint",
)


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Cards detected in one image, in reading order."""

    cards: list[CardDescriptor] = field(default_factory=list)
    mock: bool = False


class CardAnalyzer(Protocol):
    """Anything that can turn one image into card descriptors."""

    async def analyze(self, image: str, image_ref: str = "image") -> AnalysisResult: ...


class MockCardAnalyzer:
    """Returns the fixed sample card for every image."""

    async def analyze(self, image: str, image_ref: str = "image") -> AnalysisResult:
        logger.warning("Vision API key not configured; returning mock card for %s", image_ref)
        return AnalysisResult(cards=[MOCK_CARD], mock=True)


class AnthropicCardAnalyzer:
    """Card analyzer backed by Claude's vision input."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = settings.vision_model,
        max_tokens: int = settings.vision_max_tokens,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self._model = model
        self._max_tokens = max_tokens
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)

    async def analyze(self, image: str, image_ref: str = "image") -> AnalysisResult:
        """
        Analyze one image.

        Args:
            image: Base64 image, optionally prefixed with a data URI
            image_ref: Caller's reference for the image, used in logs and errors

        Raises:
            AnalysisFailure: If the call fails or the reply holds no card data
        """
        if not image or not image.strip():
            raise AnalysisFailure(image_ref, "empty image")

        payload = split_data_uri(image)
        messages: list[MessageParam] = [
            {
                "role": "user",
                "content": [
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": payload.media_type,  # type: ignore[typeddict-item]
                            "data": payload.data,
                        },
                    },
                    {"type": "text", "text": CARD_ANALYSIS_PROMPT},
                ],
            }
        ]

        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                messages=messages,
            )
        except anthropic.APIError as e:
            logger.warning(
                "ANALYSIS_FAILED",
                extra={"image_ref": image_ref, "error_type": type(e).__name__},
            )
            raise AnalysisFailure(image_ref, f"vision API error: {type(e).__name__}") from e

        text = "".join(block.text for block in response.content if isinstance(block, TextBlock))
        logger.debug("Vision raw reply for %s: %s", image_ref, text)

        try:
            cards = parse_vision_response(text)
        except VisionResponseError as e:
            raise AnalysisFailure(image_ref, "unparsable vision reply") from e

        if len(cards) > MAX_CARDS_PER_IMAGE:
            logger.info(
                "Truncating %d detected cards to %d for %s",
                len(cards),
                MAX_CARDS_PER_IMAGE,
                image_ref,
            )
            cards = cards[:MAX_CARDS_PER_IMAGE]

        return AnalysisResult(cards=cards)


def get_card_analyzer() -> CardAnalyzer:
    """
    Dependency that provides the configured card analyzer.

    Falls back to mock mode when no API key is configured.
    """
    if not settings.anthropic_api_key:
        return MockCardAnalyzer()
    return AnthropicCardAnalyzer(settings.anthropic_api_key)
