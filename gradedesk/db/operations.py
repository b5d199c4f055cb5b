"""
Database CRUD operations.

Provides async functions for storing and reading submissions, the service
tier catalog, and the tier audit trail.
"""

import json
import logging
import secrets
from collections.abc import Iterable
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from gradedesk.models.auth import AuthContext
from gradedesk.models.db import ServiceTierAuditDB, ServiceTierDB, SubmissionDB
from gradedesk.models.service_tier import ServiceTier
from gradedesk.models.submission import (
    SubmissionLineItem,
    SubmissionRecord,
    SubmissionStatus,
    SubmitterInfo,
)

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# --- Submission Operations ---


def _line_item_to_json(item: SubmissionLineItem) -> dict[str, Any]:
    return {
        "card_type": item.card_type,
        "sport": item.sport,
        "player_name": item.player_name,
        "year": item.year,
        "manufacturer": item.manufacturer,
        "card_number": item.card_number,
        "estimated_condition": item.estimated_condition,
        "declared_value": str(item.declared_value),
        "image_url": item.image_url,
        "position_in_image": item.position_in_image,
        "total_detected_in_image": item.total_detected_in_image,
    }


def _line_item_from_json(data: dict[str, Any]) -> SubmissionLineItem:
    return SubmissionLineItem(
        card_type=data["card_type"],
        sport=data["sport"],
        player_name=data["player_name"],
        year=data["year"],
        estimated_condition=data["estimated_condition"],
        declared_value=Decimal(data["declared_value"]),
        manufacturer=data.get("manufacturer"),
        card_number=data.get("card_number"),
        image_url=data.get("image_url"),
        position_in_image=data.get("position_in_image", 1),
        total_detected_in_image=data.get("total_detected_in_image", 1),
    )


async def get_submission(session: AsyncSession, submission_id: str) -> SubmissionDB | None:
    """
    Get a submission by id.

    Returns None if no submission exists with this id.
    """
    result = await session.execute(
        select(SubmissionDB).where(SubmissionDB.submission_id == submission_id)
    )
    return result.scalar_one_or_none()


async def save_submission(session: AsyncSession, record: SubmissionRecord) -> SubmissionDB:
    """
    Store a submission.

    Idempotent by submission id: saving the same id again replaces the
    stored row instead of adding a second one.
    """
    db_submission = await get_submission(session, record.submission_id)
    if db_submission is None:
        db_submission = SubmissionDB(submission_id=record.submission_id)
        session.add(db_submission)

    submitter = record.submitter
    db_submission.grading_company = submitter.grading_company
    db_submission.service_tier = submitter.service_tier
    db_submission.submitter_name = submitter.submitter_name
    db_submission.email = submitter.email
    db_submission.phone = submitter.phone
    db_submission.address = submitter.address
    db_submission.special_instructions = submitter.special_instructions
    db_submission.cards = [_line_item_to_json(item) for item in record.cards]
    db_submission.total_cards = record.total_cards
    db_submission.total_declared_value = record.total_declared_value
    db_submission.status = record.status.value
    db_submission.submitted_at = record.submitted_at
    db_submission.expires_at = record.expires_at

    await session.flush()
    return db_submission


def submission_to_model(db_submission: SubmissionDB) -> SubmissionRecord:
    """Convert a database submission to a domain model."""
    return SubmissionRecord(
        submission_id=db_submission.submission_id,
        submitter=SubmitterInfo(
            grading_company=db_submission.grading_company,
            submitter_name=db_submission.submitter_name,
            email=db_submission.email,
            service_tier=db_submission.service_tier,
            phone=db_submission.phone,
            address=db_submission.address,
            special_instructions=db_submission.special_instructions,
        ),
        cards=tuple(_line_item_from_json(card) for card in db_submission.cards),
        total_cards=db_submission.total_cards,
        total_declared_value=Decimal(db_submission.total_declared_value),
        submitted_at=_as_utc(db_submission.submitted_at),
        expires_at=_as_utc(db_submission.expires_at),
        status=SubmissionStatus(db_submission.status),
    )


async def list_submissions(
    session: AsyncSession,
    companies: Iterable[str] | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[SubmissionDB]:
    """
    List submissions, newest first.

    ``companies`` limits the result to those grading companies; None means all.
    """
    query = select(SubmissionDB)
    if companies is not None:
        query = query.where(SubmissionDB.grading_company.in_(list(companies)))
    result = await session.execute(
        query.order_by(SubmissionDB.submitted_at.desc()).offset(offset).limit(limit)
    )
    return list(result.scalars().all())


async def find_submissions_by_email(
    session: AsyncSession,
    email: str,
    companies: Iterable[str] | None = None,
    limit: int | None = None,
) -> list[SubmissionDB]:
    """Get submissions made with an email address, newest first."""
    query = select(SubmissionDB).where(SubmissionDB.email == email)
    if companies is not None:
        query = query.where(SubmissionDB.grading_company.in_(list(companies)))
    query = query.order_by(SubmissionDB.submitted_at.desc())
    if limit is not None:
        query = query.limit(limit)
    result = await session.execute(query)
    return list(result.scalars().all())


# --- Service Tier Operations ---


async def get_service_tier(
    session: AsyncSession, company: str, tier_id: str
) -> ServiceTierDB | None:
    """Get one tier by company and tier id."""
    result = await session.execute(
        select(ServiceTierDB).where(
            ServiceTierDB.company == company,
            ServiceTierDB.tier_id == tier_id,
        )
    )
    return result.scalar_one_or_none()


async def list_service_tiers(
    session: AsyncSession,
    companies: Iterable[str] | None = None,
) -> list[ServiceTierDB]:
    """
    List tiers ordered by company, then catalog order.

    ``companies`` limits the result to those companies; None means all.
    """
    query = select(ServiceTierDB)
    if companies is not None:
        query = query.where(ServiceTierDB.company.in_(list(companies)))
    result = await session.execute(
        query.order_by(ServiceTierDB.company, ServiceTierDB.sort_order, ServiceTierDB.tier_id)
    )
    return list(result.scalars().all())


def service_tier_to_model(db_tier: ServiceTierDB) -> ServiceTier:
    """Convert a database tier to a domain model."""
    return ServiceTier(
        company=db_tier.company,
        tier_id=db_tier.tier_id,
        name=db_tier.name,
        turnaround=db_tier.turnaround,
        price=db_tier.price,
        description=db_tier.description,
        order=db_tier.sort_order,
        updated_at=_as_utc(db_tier.updated_at) if db_tier.updated_at else None,
    )


def group_tiers_by_company(tiers: Iterable[ServiceTier]) -> dict[str, list[ServiceTier]]:
    grouped: dict[str, list[ServiceTier]] = {}
    for tier in tiers:
        grouped.setdefault(tier.company, []).append(tier)
    return grouped


async def upsert_service_tier(
    session: AsyncSession, tier: ServiceTier
) -> tuple[ServiceTierDB, ServiceTier | None]:
    """
    Insert or update a tier.

    Returns:
        Tuple of (stored tier, previous version or None if newly created)
    """
    existing = await get_service_tier(session, tier.company, tier.tier_id)
    previous = service_tier_to_model(existing) if existing else None
    now = datetime.now(UTC)

    if existing:
        existing.name = tier.name
        existing.turnaround = tier.turnaround
        existing.price = tier.price
        existing.description = tier.description
        existing.sort_order = tier.order
        existing.updated_at = now
        await session.flush()
        return existing, previous

    db_tier = ServiceTierDB(
        company=tier.company,
        tier_id=tier.tier_id,
        name=tier.name,
        turnaround=tier.turnaround,
        price=tier.price,
        description=tier.description,
        sort_order=tier.order,
        updated_at=now,
    )
    session.add(db_tier)
    await session.flush()
    return db_tier, None


async def delete_service_tier(
    session: AsyncSession, company: str, tier_id: str
) -> ServiceTier | None:
    """
    Delete a tier.

    Returns the deleted tier, or None if it did not exist.
    """
    existing = await get_service_tier(session, company, tier_id)
    if existing is None:
        return None
    previous = service_tier_to_model(existing)
    await session.execute(
        delete(ServiceTierDB).where(
            ServiceTierDB.company == company,
            ServiceTierDB.tier_id == tier_id,
        )
    )
    return previous


def _tier_snapshot(tier: ServiceTier | None) -> str | None:
    if tier is None:
        return None
    return json.dumps(
        {
            "company": tier.company,
            "tierId": tier.tier_id,
            "name": tier.name,
            "turnaround": tier.turnaround,
            "price": tier.price,
            "description": tier.description,
            "order": tier.order,
            "updatedAt": tier.updated_at.isoformat() if tier.updated_at else None,
        }
    )


async def write_tier_audit(
    session: AsyncSession,
    action: str,
    company: str,
    tier_id: str,
    auth: AuthContext,
    old_value: ServiceTier | None = None,
    new_value: ServiceTier | None = None,
) -> ServiceTierAuditDB:
    """Record one change to the tier catalog."""
    now = datetime.now(UTC)
    audit = ServiceTierAuditDB(
        audit_id=f"{company}-{tier_id}-{int(now.timestamp() * 1000)}-{secrets.token_hex(5)}",
        timestamp=now,
        action=action,
        company=company,
        tier_id=tier_id,
        user_id=auth.subject or "unknown",
        user_email=auth.email or "unknown",
        user_name=auth.username or auth.email or "unknown",
        user_groups=",".join(auth.groups),
        old_value=_tier_snapshot(old_value),
        new_value=_tier_snapshot(new_value),
    )
    session.add(audit)
    await session.flush()
    logger.info("Audit record written: %s", audit.audit_id)
    return audit


async def list_tier_audit(
    session: AsyncSession, company: str | None = None, limit: int = 100
) -> list[ServiceTierAuditDB]:
    """Most recent audit records first."""
    query = select(ServiceTierAuditDB)
    if company is not None:
        query = query.where(ServiceTierAuditDB.company == company)
    result = await session.execute(query.order_by(ServiceTierAuditDB.timestamp.desc()).limit(limit))
    return list(result.scalars().all())
