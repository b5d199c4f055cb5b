"""
Submission API endpoints.

Accepts finalized cards for a grading company, stores their images, and
persists the assembled submission.
"""

import asyncio
import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gradedesk.api.deps import get_image_store, require_email
from gradedesk.config import MY_SUBMISSIONS_LIMIT
from gradedesk.db import (
    find_submissions_by_email,
    get_submission,
    save_submission,
    submission_to_model,
)
from gradedesk.db.database import get_session
from gradedesk.models.failure import NotFoundError, PersistenceFailure, ValidationError
from gradedesk.models.submission import SubmissionLineItem, SubmissionRecord, SubmitterInfo
from gradedesk.services.images import (
    ImageStore,
    InvalidImageError,
    is_image_payload,
    split_data_uri,
    upload_image,
)
from gradedesk.services.submission_assembler import (
    CardSubmission,
    assemble,
    validate_submission,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["submissions"])


class SubmissionCardModel(BaseModel):
    """One finalized card as approved by the user."""

    card_type: str | None = None
    sport: str | None = None
    player_name: str | None = None
    year: str | None = None
    estimated_condition: str | None = None
    declared_value: str | float | None = Field(
        default=None,
        description="Non-negative amount; '$' and thousands separators are accepted",
    )
    manufacturer: str | None = None
    card_number: str | None = None
    image: str | None = Field(
        default=None,
        description="Data URI to upload, or the URL of an already stored image",
    )
    position_in_image: int = Field(default=1, ge=1)
    total_detected_in_image: int = Field(default=1, ge=1)

    def to_card(self, image_url: str | None = None) -> CardSubmission:
        return CardSubmission(
            card_type=self.card_type,
            sport=self.sport,
            player_name=self.player_name,
            year=self.year,
            estimated_condition=self.estimated_condition,
            declared_value=self.declared_value,
            manufacturer=self.manufacturer,
            card_number=self.card_number,
            image_url=image_url,
            position_in_image=self.position_in_image,
            total_detected_in_image=self.total_detected_in_image,
        )


class SubmissionRequest(BaseModel):
    """Request model for creating a submission."""

    submission_id: str | None = Field(
        default=None,
        max_length=64,
        description="Client-assigned id; resubmitting the same id replaces the stored submission",
    )
    grading_company: str | None = None
    service_tier: str | None = None
    submitter_name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    special_instructions: str | None = None
    cards: list[SubmissionCardModel] = Field(default_factory=list)

    def to_submitter(self) -> SubmitterInfo:
        return SubmitterInfo(
            grading_company=(self.grading_company or "").strip().lower(),
            submitter_name=self.submitter_name or "",
            email=self.email or "",
            service_tier=self.service_tier,
            phone=self.phone,
            address=self.address,
            special_instructions=self.special_instructions,
        )


class SubmissionCreatedResponse(BaseModel):
    submission_id: str
    saved_at: datetime
    total_cards: int
    total_declared_value: float
    message: str


class LineItemModel(BaseModel):
    card_type: str
    sport: str
    player_name: str
    year: str
    estimated_condition: str
    declared_value: float
    manufacturer: str | None = None
    card_number: str | None = None
    image_url: str | None = None
    position_in_image: int = 1
    total_detected_in_image: int = 1

    @classmethod
    def from_item(cls, item: SubmissionLineItem) -> "LineItemModel":
        return cls(
            card_type=item.card_type,
            sport=item.sport,
            player_name=item.player_name,
            year=item.year,
            estimated_condition=item.estimated_condition,
            declared_value=float(item.declared_value),
            manufacturer=item.manufacturer,
            card_number=item.card_number,
            image_url=item.image_url,
            position_in_image=item.position_in_image,
            total_detected_in_image=item.total_detected_in_image,
        )


class SubmissionResponse(BaseModel):
    """A stored submission."""

    submission_id: str
    grading_company: str
    service_tier: str | None = None
    submitter_name: str
    email: str
    phone: str | None = None
    address: str | None = None
    special_instructions: str | None = None
    cards: list[LineItemModel] = Field(default_factory=list)
    total_cards: int
    total_declared_value: float
    submitted_at: datetime
    expires_at: datetime
    status: str

    @classmethod
    def from_record(cls, record: SubmissionRecord) -> "SubmissionResponse":
        submitter = record.submitter
        return cls(
            submission_id=record.submission_id,
            grading_company=submitter.grading_company,
            service_tier=submitter.service_tier,
            submitter_name=submitter.submitter_name,
            email=submitter.email,
            phone=submitter.phone,
            address=submitter.address,
            special_instructions=submitter.special_instructions,
            cards=[LineItemModel.from_item(item) for item in record.cards],
            total_cards=record.total_cards,
            total_declared_value=float(record.total_declared_value),
            submitted_at=record.submitted_at,
            expires_at=record.expires_at,
            status=record.status.value,
        )


class SubmissionListResponse(BaseModel):
    submissions: list[SubmissionResponse] = Field(default_factory=list)
    count: int = 0


async def _discard_images(store: ImageStore, urls: list[str]) -> None:
    """Best-effort removal of images this request stored."""
    for url in urls:
        try:
            await asyncio.to_thread(store.delete, url)
        except OSError as e:
            logger.warning("IMAGE_CLEANUP_FAILED", extra={"url": url, "error": str(e)})


async def _upload_card_images(
    store: ImageStore, cards: list[SubmissionCardModel]
) -> tuple[list[str | None], list[str]]:
    """
    Upload every data-URI image.

    All payloads are decoded before the first write, so a bad image leaves
    nothing behind in the store. A failed write removes the images already
    stored for this request.

    Returns:
        One URL (or None) per card, and the URLs newly written to the store

    Raises:
        ValidationError: If an image is not valid base64
        PersistenceFailure: If the image store rejects a write
    """
    errors: dict[str, str] = {}
    for index, card in enumerate(cards):
        if card.image and is_image_payload(card.image):
            try:
                split_data_uri(card.image).to_bytes()
            except InvalidImageError as e:
                errors[f"cards[{index}].image"] = str(e)
    if errors:
        raise ValidationError(errors)

    urls: list[str | None] = []
    uploaded: list[str] = []
    for index, card in enumerate(cards):
        if not card.image:
            urls.append(None)
            continue
        try:
            url = await asyncio.to_thread(upload_image, store, card.image)
        except OSError as e:
            logger.error("IMAGE_UPLOAD_FAILED", extra={"card_index": index, "error": str(e)})
            await _discard_images(store, uploaded)
            raise PersistenceFailure("upload card images", detail=str(e)) from e
        if is_image_payload(card.image):
            uploaded.append(url)
        urls.append(url)
    return urls, uploaded


@router.post("/submissions", response_model=SubmissionCreatedResponse, status_code=201)
async def create_submission(
    request: SubmissionRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    store: Annotated[ImageStore, Depends(get_image_store)],
) -> SubmissionCreatedResponse:
    """
    Submit finalized cards to a grading company.

    Validation runs before any image is uploaded or anything is stored.
    A storage failure leaves nothing behind and is safe to retry with the
    same submission id.
    """
    submitter = request.to_submitter()
    validate_submission(submitter, [card.to_card() for card in request.cards])

    image_urls, uploaded = await _upload_card_images(store, request.cards)
    cards = [card.to_card(url) for card, url in zip(request.cards, image_urls, strict=True)]
    record = assemble(submitter, cards, submission_id=request.submission_id)

    try:
        await save_submission(session, record)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(
            "SUBMISSION_SAVE_FAILED",
            extra={"submission_id": record.submission_id, "error": str(e)},
        )
        await _discard_images(store, uploaded)
        raise PersistenceFailure("save submission", detail=type(e).__name__) from e

    logger.info(
        "SUBMISSION_SAVED",
        extra={
            "submission_id": record.submission_id,
            "grading_company": record.grading_company,
            "total_cards": record.total_cards,
        },
    )
    return SubmissionCreatedResponse(
        submission_id=record.submission_id,
        saved_at=record.submitted_at,
        total_cards=record.total_cards,
        total_declared_value=float(record.total_declared_value),
        message="Submission saved successfully",
    )


@router.get("/submissions/{submission_id}", response_model=SubmissionResponse)
async def read_submission(
    submission_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SubmissionResponse:
    """Get a submission by id."""
    db_submission = await get_submission(session, submission_id)
    if db_submission is None:
        raise NotFoundError("Submission not found", detail=submission_id)
    return SubmissionResponse.from_record(submission_to_model(db_submission))


@router.get("/my-submissions", response_model=SubmissionListResponse)
async def my_submissions(
    email: Annotated[str, Depends(require_email)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SubmissionListResponse:
    """The caller's most recent submissions, newest first."""
    rows = await find_submissions_by_email(session, email, limit=MY_SUBMISSIONS_LIMIT)
    submissions = [SubmissionResponse.from_record(submission_to_model(row)) for row in rows]
    return SubmissionListResponse(submissions=submissions, count=len(submissions))
