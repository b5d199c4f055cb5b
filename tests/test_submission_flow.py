"""Photo-to-submission flow across the analysis and submission endpoints."""

from httpx import AsyncClient

from gradedesk.main import app
from gradedesk.models.card import CARD_TYPE_SPORTS, CardDescriptor
from gradedesk.models.failure import AnalysisFailure
from gradedesk.services.vision_client import AnalysisResult, get_card_analyzer


class TwoCardsThenFailure:
    async def analyze(self, image: str, image_ref: str = "image") -> AnalysisResult:
        if image_ref == "front":
            return AnalysisResult(
                cards=[
                    CardDescriptor(
                        player_name="Michael Jordan",
                        year="1986",
                        manufacturer="Fleer",
                        card_number="57",
                        card_type=CARD_TYPE_SPORTS,
                        sport="Basketball",
                        estimated_condition="Near Mint",
                    ),
                    CardDescriptor(
                        player_name="Larry Bird",
                        year="1986",
                        card_type=CARD_TYPE_SPORTS,
                        sport="Basketball",
                        estimated_condition="Excellent",
                    ),
                ]
            )
        raise AnalysisFailure(image_ref, "vision API error: APITimeoutError")


class TestPhotoToSubmission:
    async def test_partial_failure_still_submits_every_card(
        self, client: AsyncClient, png_image: str
    ) -> None:
        app.dependency_overrides[get_card_analyzer] = TwoCardsThenFailure

        analysis = await client.post(
            "/analyze-batch",
            json={
                "images": [
                    {"image": png_image, "image_ref": "front"},
                    {"image": png_image, "image_ref": "binder"},
                ]
            },
        )
        assert analysis.status_code == 200
        records = analysis.json()["cards"]
        assert len(records) == 3
        assert analysis.json()["failed_count"] == 1

        # The user fills in the placeholder by hand
        placeholder = records[2]
        assert placeholder["analyzed"] is False
        placeholder.update(
            player_name="Magic Johnson",
            sport="Basketball",
            card_type="Sports",
            declared_value="120",
        )

        cards = [
            {
                "card_type": r["card_type"],
                "sport": r["sport"],
                "player_name": r["player_name"],
                "year": r["year"],
                "estimated_condition": r["estimated_condition"],
                "manufacturer": r["manufacturer"],
                "card_number": r["card_number"],
                "declared_value": r["declared_value"],
                "position_in_image": r["position_in_image"],
                "total_detected_in_image": r["total_detected_in_image"],
                "image": png_image,
            }
            for r in records
        ]
        response = await client.post(
            "/submissions",
            json={
                "grading_company": "psa",
                "service_tier": "express",
                "submitter_name": "Pat Collector",
                "email": "pat@example.com",
                "cards": cards,
            },
        )

        assert response.status_code == 201
        created = response.json()
        assert created["total_cards"] == 3
        expected_total = sum(float(r["declared_value"]) for r in records)
        assert created["total_declared_value"] == expected_total

        stored = (await client.get(f"/submissions/{created['submission_id']}")).json()
        assert [c["player_name"] for c in stored["cards"]] == [
            "Michael Jordan",
            "Larry Bird",
            "Magic Johnson",
        ]
        assert [c["position_in_image"] for c in stored["cards"]] == [1, 2, 1]
        assert stored["cards"][0]["total_detected_in_image"] == 2
