"""Tests for card analysis API endpoints."""

from httpx import AsyncClient

from gradedesk.main import app
from gradedesk.models.card import CardDescriptor
from gradedesk.models.failure import AnalysisFailure
from gradedesk.services.vision_client import AnalysisResult, get_card_analyzer


class ScriptedAnalyzer:
    def __init__(self, results: dict[str, object]) -> None:
        self.results = results

    async def analyze(self, image: str, image_ref: str = "image") -> AnalysisResult:
        outcome = self.results[image_ref]
        if isinstance(outcome, Exception):
            raise outcome
        return AnalysisResult(cards=list(outcome))  # type: ignore[call-overload]


class TestAnalyzeCard:
    async def test_mock_mode(self, client: AsyncClient, png_image: str) -> None:
        response = await client.post("/analyze-card", json={"image": png_image})

        assert response.status_code == 200
        data = response.json()
        assert data["mock"] is True
        assert data["cards"][0]["player_name"] == "Michael Jordan"
        assert data["cards"][0]["year"] == "1986"

    async def test_failure_returns_envelope(self, client: AsyncClient, png_image: str) -> None:
        app.dependency_overrides[get_card_analyzer] = lambda: ScriptedAnalyzer(
            {"image": AnalysisFailure("image", "vision API error: APITimeoutError")}
        )

        response = await client.post("/analyze-card", json={"image": png_image})

        assert response.status_code == 502
        data = response.json()
        assert data["outcome"] == "known_failure"
        assert data["failure"]["kind"] == "external_api_error"
        assert data["failure"]["detail"] == "vision API error: APITimeoutError"

    async def test_empty_image_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/analyze-card", json={"image": ""})

        assert response.status_code == 422


class TestAnalyzeBatch:
    async def test_multi_card_and_failed_image(self, client: AsyncClient, png_image: str) -> None:
        app.dependency_overrides[get_card_analyzer] = lambda: ScriptedAnalyzer(
            {
                "img-a": [
                    CardDescriptor(
                        player_name="Michael Jordan", year="1986", estimated_condition="Near Mint"
                    ),
                    CardDescriptor(player_name="Scottie Pippen", year="1988"),
                ],
                "img-b": AnalysisFailure("img-b", "unparsable vision reply"),
            }
        )

        response = await client.post(
            "/analyze-batch",
            json={
                "images": [
                    {"image": png_image, "image_ref": "img-a"},
                    {"image": png_image, "image_ref": "img-b"},
                ]
            },
        )

        assert response.status_code == 200
        data = response.json()
        cards = data["cards"]
        assert len(cards) == 3
        assert [c["source_image_ref"] for c in cards] == ["img-a", "img-a", "img-b"]
        assert [c["position_in_image"] for c in cards] == [1, 2, 1]
        assert cards[0]["total_detected_in_image"] == 2
        assert cards[0]["estimated_value"]["average"] == 1500
        assert cards[0]["declared_value"] == "1500"
        assert cards[1]["estimated_condition"] == "Very Good"
        assert cards[2]["analyzed"] is False
        assert cards[2]["player_name"] == "Unknown Player"
        assert cards[2]["estimated_value"] is None
        assert data["failed_images"] == {"img-b": "unparsable vision reply"}
        assert data["failed_count"] == 1
        assert data["analyzed_images"] == ["img-a"]
        assert "1 image(s) failed" in data["message"]

    async def test_generated_refs(self, client: AsyncClient, png_image: str) -> None:
        response = await client.post(
            "/analyze-batch", json={"images": [{"image": png_image}, {"image": png_image}]}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["mock"] is True
        refs = {c["source_image_ref"] for c in data["cards"]}
        assert len(refs) == 2

    async def test_duplicate_refs_rejected(self, client: AsyncClient, png_image: str) -> None:
        response = await client.post(
            "/analyze-batch",
            json={
                "images": [
                    {"image": png_image, "image_ref": "same"},
                    {"image": png_image, "image_ref": "same"},
                ]
            },
        )

        assert response.status_code == 400
        assert response.json()["failure"]["kind"] == "invalid_input"

    async def test_no_images_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/analyze-batch", json={"images": []})

        assert response.status_code == 422


class TestEstimate:
    async def test_estimate(self, client: AsyncClient) -> None:
        response = await client.post(
            "/estimate",
            json={
                "player_name": "Charizard",
                "year": "1999",
                "card_type": "Trading Card Game (TCG)",
                "estimated_condition": "Near Mint",
            },
        )

        assert response.status_code == 200
        assert response.json()["estimated_value"] == {"min": 1440, "max": 2160, "average": 1800}

    async def test_missing_fields_give_null(self, client: AsyncClient) -> None:
        response = await client.post("/estimate", json={"player_name": "Charizard"})

        assert response.status_code == 200
        assert response.json()["estimated_value"] is None
