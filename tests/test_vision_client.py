"""Tests for the vision analysis client."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest
from anthropic.types import TextBlock

from gradedesk.models.failure import AnalysisFailure
from gradedesk.services.vision_client import (
    MOCK_CARD,
    AnthropicCardAnalyzer,
    MockCardAnalyzer,
    get_card_analyzer,
)


def make_client(text: str) -> MagicMock:
    client = MagicMock()
    response = MagicMock()
    response.content = [TextBlock(type="text", text=text)]
    client.messages.create = AsyncMock(return_value=response)
    return client


def cards_reply(count: int) -> str:
    return json.dumps(
        {"cards": [{"playerName": f"Player {i}", "year": "2020"} for i in range(1, count + 1)]}
    )


class TestAnthropicCardAnalyzer:
    async def test_sends_image_block_with_media_type(self, png_image: str) -> None:
        client = make_client(cards_reply(1))
        analyzer = AnthropicCardAnalyzer("key", client=client)

        await analyzer.analyze(png_image, image_ref="img-1")

        kwargs = client.messages.create.call_args.kwargs
        image_block = kwargs["messages"][0]["content"][0]
        assert image_block["type"] == "image"
        assert image_block["source"]["media_type"] == "image/png"
        assert not image_block["source"]["data"].startswith("data:")

    async def test_returns_cards_in_order(self, png_image: str) -> None:
        analyzer = AnthropicCardAnalyzer("key", client=make_client(cards_reply(3)))

        result = await analyzer.analyze(png_image)

        assert [c.player_name for c in result.cards] == ["Player 1", "Player 2", "Player 3"]
        assert result.mock is False

    async def test_truncates_to_ten_cards(self, png_image: str) -> None:
        analyzer = AnthropicCardAnalyzer("key", client=make_client(cards_reply(12)))

        result = await analyzer.analyze(png_image)

        assert len(result.cards) == 10
        assert result.cards[-1].player_name == "Player 10"

    async def test_no_cards_visible(self, png_image: str) -> None:
        analyzer = AnthropicCardAnalyzer("key", client=make_client('{"cards": []}'))

        result = await analyzer.analyze(png_image)

        assert result.cards == []

    async def test_api_error_becomes_analysis_failure(self, png_image: str) -> None:
        client = MagicMock()
        client.messages.create = AsyncMock(
            side_effect=anthropic.APIConnectionError(
                request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
            )
        )
        analyzer = AnthropicCardAnalyzer("key", client=client)

        with pytest.raises(AnalysisFailure) as exc_info:
            await analyzer.analyze(png_image, image_ref="img-9")

        assert exc_info.value.image_ref == "img-9"
        assert "APIConnectionError" in exc_info.value.reason

    async def test_unparsable_reply_becomes_analysis_failure(self, png_image: str) -> None:
        analyzer = AnthropicCardAnalyzer("key", client=make_client("Sorry, no idea."))

        with pytest.raises(AnalysisFailure):
            await analyzer.analyze(png_image)

    async def test_empty_image_fails_without_calling_api(self) -> None:
        client = make_client(cards_reply(1))
        analyzer = AnthropicCardAnalyzer("key", client=client)

        with pytest.raises(AnalysisFailure):
            await analyzer.analyze("   ")

        client.messages.create.assert_not_called()


class TestMockMode:
    async def test_mock_analyzer_returns_sample_card(self, png_image: str) -> None:
        result = await MockCardAnalyzer().analyze(png_image)

        assert result.cards == [MOCK_CARD]
        assert result.mock is True
        assert MOCK_CARD.player_name == "Michael Jordan"

    def test_no_api_key_selects_mock(self) -> None:
        with patch("gradedesk.services.vision_client.settings") as mock_settings:
            mock_settings.anthropic_api_key = ""
            assert isinstance(get_card_analyzer(), MockCardAnalyzer)

    def test_api_key_selects_anthropic(self) -> None:
        with (
            patch("gradedesk.services.vision_client.settings") as mock_settings,
            patch("gradedesk.services.vision_client.anthropic.AsyncAnthropic") as mock_client,
        ):
            mock_settings.anthropic_api_key = "sk-test"
            analyzer = get_card_analyzer()

        assert isinstance(analyzer, AnthropicCardAnalyzer)
        mock_client.assert_called_once_with(api_key="sk-test")
