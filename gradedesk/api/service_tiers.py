"""
Service tier endpoints.

The public catalog is read through the tier cache. Admin writes go straight
to the database, leave an audit record, and invalidate the cache.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gradedesk.api.deps import get_tier_cache, require_admin
from gradedesk.db import (
    delete_service_tier,
    group_tiers_by_company,
    list_service_tiers,
    service_tier_to_model,
    upsert_service_tier,
    write_tier_audit,
)
from gradedesk.db.database import get_session
from gradedesk.models.auth import GRADING_COMPANIES, AuthContext
from gradedesk.models.failure import (
    AuthorizationError,
    FailureKind,
    KnownError,
    NotFoundError,
    PersistenceFailure,
)
from gradedesk.models.service_tier import ServiceTier
from gradedesk.services.tier_cache import TierCache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["service-tiers"])

ALL_COMPANIES_KEY = "all"


class ServiceTierModel(BaseModel):
    company: str
    tier_id: str
    name: str
    turnaround: str
    price: str
    description: str
    order: int = 0

    @classmethod
    def from_tier(cls, tier: ServiceTier) -> "ServiceTierModel":
        return cls(
            company=tier.company,
            tier_id=tier.tier_id,
            name=tier.name,
            turnaround=tier.turnaround,
            price=tier.price,
            description=tier.description,
            order=tier.order,
        )


class ServiceTierCatalog(BaseModel):
    """
    Public catalog.

    ``tiers`` is a list for a single company, or a company -> list map
    when no company was requested.
    """

    company: str
    tiers: list[ServiceTierModel] | dict[str, list[ServiceTierModel]]


class ServiceTierUpsertRequest(BaseModel):
    company: str = Field(..., min_length=1)
    tier_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1)
    turnaround: str = Field(..., min_length=1)
    price: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    order: int = 0


class AdminServiceTierList(BaseModel):
    tiers: list[ServiceTierModel] = Field(default_factory=list)
    count: int = 0
    allowed_companies: list[str] = Field(default_factory=list)


class ServiceTierChangeResponse(BaseModel):
    action: str
    tier: ServiceTierModel
    message: str


def _normalize_company(company: str) -> str:
    value = company.strip().lower()
    if value not in GRADING_COMPANIES:
        raise KnownError(
            kind=FailureKind.INVALID_INPUT,
            message=f"Unknown grading company: {company}",
            suggestion=f"Use one of: {', '.join(GRADING_COMPANIES)}",
        )
    return value


def _check_scope(auth: AuthContext, company: str) -> None:
    if not auth.can_access(company):
        raise AuthorizationError(f"You do not have permission to manage {company.upper()} tiers")


async def _record_audit(
    session: AsyncSession,
    action: str,
    auth: AuthContext,
    company: str,
    tier_id: str,
    old_value: ServiceTier | None,
    new_value: ServiceTier | None,
) -> None:
    # The change is already committed; a lost audit row must not undo it
    try:
        await write_tier_audit(session, action, company, tier_id, auth, old_value, new_value)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(
            "TIER_AUDIT_FAILED",
            extra={"action": action, "company": company, "tier_id": tier_id, "error": str(e)},
        )


@router.get("/service-tiers", response_model=ServiceTierCatalog)
async def get_public_service_tiers(
    session: Annotated[AsyncSession, Depends(get_session)],
    cache: Annotated[TierCache[Any], Depends(get_tier_cache)],
    company: Annotated[str | None, Query()] = None,
) -> ServiceTierCatalog:
    """
    Public service tier catalog.

    Raises:
        NotFoundError: If no tiers are configured for the request
    """
    key = company.strip().lower() if company else ALL_COMPANIES_KEY
    if key != ALL_COMPANIES_KEY and key not in GRADING_COMPANIES:
        raise NotFoundError("No service tiers found", detail=key)

    tiers: list[ServiceTier] | None = cache.get(key)
    if tiers is None:
        companies = None if key == ALL_COMPANIES_KEY else [key]
        tiers = [service_tier_to_model(row) for row in await list_service_tiers(session, companies)]
        cache.put(key, tiers)

    if not tiers:
        raise NotFoundError("No service tiers found", detail=key)

    if key != ALL_COMPANIES_KEY:
        return ServiceTierCatalog(
            company=key, tiers=[ServiceTierModel.from_tier(t) for t in tiers]
        )
    grouped = group_tiers_by_company(tiers)
    return ServiceTierCatalog(
        company=ALL_COMPANIES_KEY,
        tiers={
            name: [ServiceTierModel.from_tier(t) for t in company_tiers]
            for name, company_tiers in grouped.items()
        },
    )


@router.get("/admin/service-tiers", response_model=AdminServiceTierList)
async def get_admin_service_tiers(
    auth: Annotated[AuthContext, Depends(require_admin)],
    session: Annotated[AsyncSession, Depends(get_session)],
    company: Annotated[str | None, Query()] = None,
) -> AdminServiceTierList:
    """Tiers the caller may manage, optionally narrowed to one company."""
    if company:
        company = _normalize_company(company)
        _check_scope(auth, company)
        companies: list[str] | None = [company]
    else:
        companies = None if auth.unrestricted else auth.allowed_companies()

    rows = await list_service_tiers(session, companies)
    tiers = [ServiceTierModel.from_tier(service_tier_to_model(row)) for row in rows]
    return AdminServiceTierList(
        tiers=tiers,
        count=len(tiers),
        allowed_companies=auth.allowed_companies(),
    )


@router.put("/admin/service-tiers", response_model=ServiceTierChangeResponse)
async def put_service_tier(
    request: ServiceTierUpsertRequest,
    auth: Annotated[AuthContext, Depends(require_admin)],
    session: Annotated[AsyncSession, Depends(get_session)],
    cache: Annotated[TierCache[Any], Depends(get_tier_cache)],
) -> ServiceTierChangeResponse:
    """Create or update a tier."""
    company = _normalize_company(request.company)
    _check_scope(auth, company)

    tier = ServiceTier(
        company=company,
        tier_id=request.tier_id.strip(),
        name=request.name.strip(),
        turnaround=request.turnaround.strip(),
        price=request.price.strip(),
        description=request.description.strip(),
        order=request.order,
    )
    try:
        db_tier, previous = await upsert_service_tier(session, tier)
        stored = service_tier_to_model(db_tier)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(
            "TIER_SAVE_FAILED",
            extra={"company": company, "tier_id": tier.tier_id, "error": str(e)},
        )
        raise PersistenceFailure("save service tier", detail=type(e).__name__) from e

    cache.invalidate()
    action = "update" if previous else "create"
    await _record_audit(session, action, auth, company, tier.tier_id, previous, stored)

    logger.info(
        "TIER_SAVED",
        extra={"action": action, "company": company, "tier_id": tier.tier_id, "user": auth.email},
    )
    return ServiceTierChangeResponse(
        action=action,
        tier=ServiceTierModel.from_tier(stored),
        message=f"Service tier {'updated' if previous else 'created'} successfully",
    )


@router.delete("/admin/service-tiers", response_model=ServiceTierChangeResponse)
async def remove_service_tier(
    company: Annotated[str, Query(min_length=1)],
    tier_id: Annotated[str, Query(min_length=1)],
    auth: Annotated[AuthContext, Depends(require_admin)],
    session: Annotated[AsyncSession, Depends(get_session)],
    cache: Annotated[TierCache[Any], Depends(get_tier_cache)],
) -> ServiceTierChangeResponse:
    """
    Delete a tier.

    Raises:
        NotFoundError: If the tier does not exist
    """
    company = _normalize_company(company)
    _check_scope(auth, company)

    try:
        previous = await delete_service_tier(session, company, tier_id)
        if previous is None:
            raise NotFoundError("Service tier not found", detail=f"{company}/{tier_id}")
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(
            "TIER_DELETE_FAILED",
            extra={"company": company, "tier_id": tier_id, "error": str(e)},
        )
        raise PersistenceFailure("delete service tier", detail=type(e).__name__) from e

    cache.invalidate()
    await _record_audit(session, "delete", auth, company, tier_id, previous, None)

    logger.info(
        "TIER_DELETED",
        extra={"company": company, "tier_id": tier_id, "user": auth.email},
    )
    return ServiceTierChangeResponse(
        action="delete",
        tier=ServiceTierModel.from_tier(previous),
        message="Service tier deleted successfully",
    )
