"""
Shared request dependencies.

The upstream authorizer verifies the caller and forwards its claims as
headers. They are parsed here, once, into an AuthContext.
"""

from typing import Annotated, Any

from fastapi import Depends, Header, Request

from gradedesk.config import settings
from gradedesk.models.auth import AuthContext
from gradedesk.models.failure import AuthenticationError, AuthorizationError
from gradedesk.services.images import ImageStore, LocalImageStore
from gradedesk.services.tier_cache import TierCache


def get_auth_context(
    x_auth_groups: Annotated[str | None, Header()] = None,
    x_auth_email: Annotated[str | None, Header()] = None,
    x_auth_subject: Annotated[str | None, Header()] = None,
    x_auth_username: Annotated[str | None, Header()] = None,
) -> AuthContext:
    """Build the caller's AuthContext from forwarded identity claims."""
    groups = x_auth_groups.split(",") if x_auth_groups else []
    return AuthContext.from_groups(
        groups,
        subject=x_auth_subject or None,
        email=(x_auth_email or "").strip() or None,
        username=x_auth_username or None,
    )


def require_admin(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> AuthContext:
    """
    Reject callers outside every admin group before any data access.

    Raises:
        AuthorizationError: If the caller has no company scope
    """
    if not auth.is_admin:
        raise AuthorizationError("Admin access required", detail=f"groups={list(auth.groups)}")
    return auth


def require_email(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> str:
    """
    The caller's email claim.

    Raises:
        AuthenticationError: If the caller's token carries no email
    """
    if not auth.email:
        raise AuthenticationError("User email not found in token")
    return auth.email


def get_tier_cache(request: Request) -> TierCache[Any]:
    """The application's service tier cache."""
    cache: TierCache[Any] = request.app.state.tier_cache
    return cache


def get_image_store() -> ImageStore:
    """Dependency that provides the configured image store."""
    return LocalImageStore(settings.media_dir, settings.media_base_url)
