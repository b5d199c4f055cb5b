"""
Submission assembly.

Validates the submitter details and the finalized card list, then folds them
into one SubmissionRecord with its totals and timestamps. Pure aggregation:
no network or storage calls happen here.
"""

import re
import secrets
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from gradedesk.config import settings
from gradedesk.models.auth import GRADING_COMPANIES
from gradedesk.models.card import CardRecord
from gradedesk.models.failure import ValidationError
from gradedesk.models.submission import (
    SubmissionLineItem,
    SubmissionRecord,
    SubmissionStatus,
    SubmitterInfo,
)

_EMAIL = re.compile(r"\S+@\S+\.\S+")

CENTS = Decimal("0.01")

# Largest amount a single card may declare
MAX_DECLARED_VALUE = Decimal("1000000000")

# Card fields that must be non-empty, with the message shown when missing
REQUIRED_CARD_FIELDS: tuple[tuple[str, str], ...] = (
    ("card_type", "Card type is required"),
    ("sport", "Sport/Game is required"),
    ("player_name", "Player/Character name is required"),
    ("year", "Year is required"),
    ("estimated_condition", "Condition is required"),
)


@dataclass(frozen=True, slots=True)
class CardSubmission:
    """
    A finalized card as the user approved it.

    ``image_url`` must already be a reference (uploaded), never raw bytes.
    """

    card_type: str | None
    sport: str | None
    player_name: str | None
    year: str | None
    estimated_condition: str | None
    declared_value: str | int | float | Decimal | None
    manufacturer: str | None = None
    card_number: str | None = None
    image_url: str | None = None
    position_in_image: int = 1
    total_detected_in_image: int = 1


def parse_declared_value(value: str | int | float | Decimal | None) -> Decimal | None:
    """
    Parse a declared value, rounded half-up to cents.

    Returns None if it is missing, not a number, negative, or above
    MAX_DECLARED_VALUE.
    """
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip().lstrip("$").replace(",", "")
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0 or amount > MAX_DECLARED_VALUE:
        return None
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def generate_submission_id(now: datetime | None = None) -> str:
    """
    Time-ordered, collision-resistant id: epoch milliseconds plus random hex.

    Ids sort by creation time; two clients submitting in the same
    millisecond still get distinct ids.
    """
    moment = now or datetime.now(UTC)
    return f"{int(moment.timestamp() * 1000)}-{secrets.token_hex(4)}"


def _blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_submission(submitter: SubmitterInfo, cards: Sequence[CardSubmission]) -> None:
    """
    Check everything a submission needs before any network call.

    Raises:
        ValidationError: With every problem found, keyed by field path
    """
    errors: dict[str, str] = {}

    if _blank(submitter.grading_company):
        errors["grading_company"] = "Please select a grading company"
    elif submitter.grading_company not in GRADING_COMPANIES:
        errors["grading_company"] = f"Unknown grading company: {submitter.grading_company}"
    if _blank(submitter.submitter_name):
        errors["submitter_name"] = "Name is required"
    if _blank(submitter.email):
        errors["email"] = "Email is required"
    elif not _EMAIL.fullmatch(submitter.email.strip()):
        errors["email"] = "Email is invalid"

    if not cards:
        errors["cards"] = "Please upload at least one card image"

    for index, card in enumerate(cards):
        for name, message in REQUIRED_CARD_FIELDS:
            if _blank(getattr(card, name)):
                errors[f"cards[{index}].{name}"] = message
        if _blank(card.declared_value):
            errors[f"cards[{index}].declared_value"] = "Declared value is required"
        elif parse_declared_value(card.declared_value) is None:
            errors[f"cards[{index}].declared_value"] = (
                f"Declared value must be a number between 0 and {MAX_DECLARED_VALUE:,}"
            )

    if errors:
        raise ValidationError(errors)


def _optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def assemble(
    submitter: SubmitterInfo,
    cards: Sequence[CardSubmission],
    submission_id: str | None = None,
    *,
    clock: Callable[[], datetime] = lambda: datetime.now(UTC),
) -> SubmissionRecord:
    """
    Validate and fold a submission into one record.

    Args:
        submitter: Contact and routing details
        cards: Finalized cards, in display order
        submission_id: Caller-assigned id; generated when omitted
        clock: Source of the submission timestamp

    Raises:
        ValidationError: If any required field is missing or malformed
    """
    validate_submission(submitter, cards)

    line_items: list[SubmissionLineItem] = []
    for card in cards:
        declared = parse_declared_value(card.declared_value)
        if declared is None:
            raise ValidationError({"declared_value": "Declared value is invalid"})
        line_items.append(
            SubmissionLineItem(
                card_type=str(card.card_type).strip(),
                sport=str(card.sport).strip(),
                player_name=str(card.player_name).strip(),
                year=str(card.year).strip(),
                estimated_condition=str(card.estimated_condition).strip(),
                declared_value=declared,
                manufacturer=_optional(card.manufacturer),
                card_number=_optional(card.card_number),
                image_url=card.image_url,
                position_in_image=card.position_in_image,
                total_detected_in_image=card.total_detected_in_image,
            )
        )

    submitted_at = clock()
    return SubmissionRecord(
        submission_id=submission_id or generate_submission_id(submitted_at),
        submitter=SubmitterInfo(
            grading_company=submitter.grading_company,
            submitter_name=submitter.submitter_name.strip(),
            email=submitter.email.strip(),
            service_tier=_optional(submitter.service_tier),
            phone=_optional(submitter.phone),
            address=_optional(submitter.address),
            special_instructions=_optional(submitter.special_instructions),
        ),
        cards=tuple(line_items),
        total_cards=len(line_items),
        total_declared_value=sum((item.declared_value for item in line_items), Decimal("0")),
        submitted_at=submitted_at,
        expires_at=submitted_at + timedelta(days=settings.submission_retention_days),
        status=SubmissionStatus.PENDING,
    )


def card_from_record(record: CardRecord, image_url: str | None = None) -> CardSubmission:
    """Finalize a session CardRecord; the image is referenced by URL only."""
    return CardSubmission(
        card_type=record.card_type,
        sport=record.sport,
        player_name=record.player_name,
        year=record.year,
        estimated_condition=record.estimated_condition,
        declared_value=record.declared_value,
        manufacturer=record.manufacturer,
        card_number=record.card_number,
        image_url=image_url,
        position_in_image=record.position_in_image,
        total_detected_in_image=record.total_detected_in_image,
    )
