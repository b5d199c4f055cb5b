"""
Card analysis API endpoints.

Runs uploaded photos through the vision service, expands multi-card photos
into individual card records, and estimates their value.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from gradedesk.models.card import CardDescriptor, CardRecord, EstimatedValue
from gradedesk.models.failure import AnalysisFailure, FailureKind, KnownError
from gradedesk.services.reconciler import CardSession
from gradedesk.services.value_estimator import estimate
from gradedesk.services.vision_client import CardAnalyzer, get_card_analyzer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])


class CardDescriptorModel(BaseModel):
    """Card attributes as extracted by the vision service or typed by a user."""

    player_name: str | None = None
    year: str | None = None
    manufacturer: str | None = None
    card_number: str | None = None
    card_type: str | None = None
    sport: str | None = None
    estimated_condition: str | None = None

    @classmethod
    def from_descriptor(cls, descriptor: CardDescriptor) -> "CardDescriptorModel":
        return cls(
            player_name=descriptor.player_name,
            year=descriptor.year,
            manufacturer=descriptor.manufacturer,
            card_number=descriptor.card_number,
            card_type=descriptor.card_type,
            sport=descriptor.sport,
            estimated_condition=descriptor.estimated_condition,
        )

    def to_descriptor(self) -> CardDescriptor:
        return CardDescriptor.from_payload(self.model_dump())


class EstimatedValueModel(BaseModel):
    """Price band in whole currency units."""

    min: int
    max: int
    average: int

    @classmethod
    def from_value(cls, value: EstimatedValue | None) -> "EstimatedValueModel | None":
        if value is None:
            return None
        return cls(min=value.min, max=value.max, average=value.average)


class CardRecordModel(BaseModel):
    """One editable card of an in-progress submission."""

    record_id: str
    source_image_ref: str
    position_in_image: int
    total_detected_in_image: int
    player_name: str
    year: str
    manufacturer: str
    card_number: str
    card_type: str
    sport: str
    estimated_condition: str
    declared_value: str
    estimated_value: EstimatedValueModel | None = None
    analyzed: bool = Field(
        default=False,
        description="False for placeholders whose fields must be filled in manually",
    )

    @classmethod
    def from_record(cls, record: CardRecord) -> "CardRecordModel":
        return cls(
            record_id=record.record_id,
            source_image_ref=record.source_image_ref,
            position_in_image=record.position_in_image,
            total_detected_in_image=record.total_detected_in_image,
            player_name=record.player_name,
            year=record.year,
            manufacturer=record.manufacturer,
            card_number=record.card_number,
            card_type=record.card_type,
            sport=record.sport,
            estimated_condition=record.estimated_condition,
            declared_value=record.declared_value,
            estimated_value=EstimatedValueModel.from_value(record.estimated_value),
            analyzed=record.analyzed,
        )


class AnalyzeCardRequest(BaseModel):
    """Request model for analyzing one photo."""

    image: str = Field(
        ...,
        min_length=1,
        description="Base64 image, optionally prefixed with a data URI carrying the MIME type",
    )


class AnalyzeCardResponse(BaseModel):
    """Cards the vision service found in one photo."""

    cards: list[CardDescriptorModel] = Field(default_factory=list)
    mock: bool = False


class BatchImage(BaseModel):
    image: str = Field(..., min_length=1)
    image_ref: str | None = Field(
        default=None,
        description="Client reference for the image; generated when omitted",
    )


class AnalyzeBatchRequest(BaseModel):
    """Request model for analyzing several photos at once."""

    images: list[BatchImage] = Field(..., min_length=1)


class AnalyzeBatchResponse(BaseModel):
    """Reconciled card records for a batch of photos."""

    cards: list[CardRecordModel] = Field(default_factory=list)
    analyzed_images: list[str] = Field(default_factory=list)
    failed_images: dict[str, str] = Field(
        default_factory=dict,
        description="Image reference -> failure reason; each became one placeholder card",
    )
    failed_count: int = 0
    message: str = ""
    mock: bool = False


class EstimateResponse(BaseModel):
    estimated_value: EstimatedValueModel | None = Field(
        default=None,
        description="Null when player name, year or condition is missing",
    )


@router.post("/analyze-card", response_model=AnalyzeCardResponse)
async def analyze_card(
    request: AnalyzeCardRequest,
    analyzer: Annotated[CardAnalyzer, Depends(get_card_analyzer)],
) -> AnalyzeCardResponse:
    """
    Analyze one photo.

    Returns every card detected in it (zero to ten), in reading order.
    """
    try:
        result = await analyzer.analyze(request.image)
    except AnalysisFailure as e:
        raise KnownError(
            kind=FailureKind.EXTERNAL_API_ERROR,
            message="Failed to analyze card image",
            detail=e.reason,
            suggestion="Fill in the card details manually or try another photo.",
            status_code=502,
        ) from e

    return AnalyzeCardResponse(
        cards=[CardDescriptorModel.from_descriptor(card) for card in result.cards],
        mock=result.mock,
    )


@router.post("/analyze-batch", response_model=AnalyzeBatchResponse)
async def analyze_batch(
    request: AnalyzeBatchRequest,
    analyzer: Annotated[CardAnalyzer, Depends(get_card_analyzer)],
) -> AnalyzeBatchResponse:
    """
    Analyze several photos concurrently.

    Every photo yields at least one card record: one per detected card, or a
    single placeholder when analysis failed. Failures are reported, never
    raised, so one bad photo cannot sink the batch.
    """
    session = CardSession()
    for item in request.images:
        try:
            session.add_image(item.image, image_ref=item.image_ref)
        except ValueError as e:
            raise KnownError(
                kind=FailureKind.INVALID_INPUT,
                message="Each image reference may appear only once per batch",
                detail=str(e),
            ) from e

    report = await session.analyze(analyzer)

    return AnalyzeBatchResponse(
        cards=[CardRecordModel.from_record(record) for record in session.records],
        analyzed_images=report.analyzed,
        failed_images=report.failed,
        failed_count=report.failed_count,
        message=report.summary(),
        mock=report.mock,
    )


@router.post("/estimate", response_model=EstimateResponse)
async def estimate_value(request: CardDescriptorModel) -> EstimateResponse:
    """Estimate the market value of a card from its attributes."""
    value = estimate(request.to_descriptor())
    return EstimateResponse(estimated_value=EstimatedValueModel.from_value(value))
