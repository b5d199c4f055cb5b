from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class SubmitterInfo:
    """Contact and routing details shared by every card in a submission."""

    grading_company: str
    submitter_name: str
    email: str
    service_tier: str | None = None
    phone: str | None = None
    address: str | None = None
    special_instructions: str | None = None


@dataclass(frozen=True, slots=True)
class SubmissionLineItem:
    """
    One finalized card in a stored submission.

    Carries an image URL; raw image bytes are never persisted.
    """

    card_type: str
    sport: str
    player_name: str
    year: str
    estimated_condition: str
    declared_value: Decimal
    manufacturer: str | None = None
    card_number: str | None = None
    image_url: str | None = None
    position_in_image: int = 1
    total_detected_in_image: int = 1


@dataclass(frozen=True, slots=True)
class SubmissionRecord:
    """
    A submission handed to a grading company.

    total_declared_value equals the sum of the line items' declared values
    at the moment the record was assembled.
    """

    submission_id: str
    submitter: SubmitterInfo
    cards: tuple[SubmissionLineItem, ...]
    total_cards: int
    total_declared_value: Decimal
    submitted_at: datetime
    expires_at: datetime
    status: SubmissionStatus = SubmissionStatus.PENDING

    @property
    def grading_company(self) -> str:
        return self.submitter.grading_company

    @property
    def service_tier(self) -> str | None:
        return self.submitter.service_tier
