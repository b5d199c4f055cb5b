"""
Admin submission endpoints.

Every route is scoped: company admins only see submissions for the grading
companies their groups map to; super admins see everything.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from gradedesk.api.deps import require_admin
from gradedesk.api.submissions import SubmissionResponse
from gradedesk.db import (
    find_submissions_by_email,
    get_submission,
    list_submissions,
    submission_to_model,
)
from gradedesk.db.database import get_session
from gradedesk.models.auth import AuthContext
from gradedesk.models.failure import AuthorizationError, NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/submissions", tags=["admin"])


class AdminSubmissionList(BaseModel):
    """A page of submissions visible to the calling admin."""

    submissions: list[SubmissionResponse] = Field(default_factory=list)
    count: int = 0
    allowed_companies: list[str] = Field(default_factory=list)
    is_super_admin: bool = False
    next_offset: int | None = Field(
        default=None,
        description="Offset of the next page; null on the last page",
    )


def _company_filter(auth: AuthContext) -> list[str] | None:
    if auth.unrestricted:
        return None
    return auth.allowed_companies()


@router.get("", response_model=AdminSubmissionList)
async def list_admin_submissions(
    auth: Annotated[AuthContext, Depends(require_admin)],
    session: Annotated[AsyncSession, Depends(get_session)],
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> AdminSubmissionList:
    """List submissions in the caller's scope, newest first."""
    rows = await list_submissions(session, _company_filter(auth), limit=limit, offset=offset)
    submissions = [SubmissionResponse.from_record(submission_to_model(row)) for row in rows]
    return AdminSubmissionList(
        submissions=submissions,
        count=len(submissions),
        allowed_companies=auth.allowed_companies(),
        is_super_admin=auth.unrestricted,
        next_offset=offset + limit if len(rows) == limit else None,
    )


@router.get("/search", response_model=AdminSubmissionList)
async def search_admin_submissions(
    email: Annotated[str, Query(min_length=1)],
    auth: Annotated[AuthContext, Depends(require_admin)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AdminSubmissionList:
    """Find submissions by submitter email within the caller's scope."""
    rows = await find_submissions_by_email(session, email.strip(), _company_filter(auth))
    submissions = [SubmissionResponse.from_record(submission_to_model(row)) for row in rows]
    return AdminSubmissionList(
        submissions=submissions,
        count=len(submissions),
        allowed_companies=auth.allowed_companies(),
        is_super_admin=auth.unrestricted,
    )


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_admin_submission(
    submission_id: str,
    auth: Annotated[AuthContext, Depends(require_admin)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SubmissionResponse:
    """
    Get one submission.

    Raises:
        NotFoundError: If no submission has this id
        AuthorizationError: If the submission belongs to a company outside scope
    """
    db_submission = await get_submission(session, submission_id)
    if db_submission is None:
        raise NotFoundError("Submission not found", detail=submission_id)
    if not auth.can_access(db_submission.grading_company):
        logger.warning(
            "ADMIN_SCOPE_DENIED",
            extra={
                "submission_id": submission_id,
                "grading_company": db_submission.grading_company,
                "user": auth.email,
            },
        )
        raise AuthorizationError("Access denied: submission belongs to a different company")
    return SubmissionResponse.from_record(submission_to_model(db_submission))
