"""
Caller authorization context.

The identity provider hands us a list of group labels. They are mapped to
company scopes exactly once, at the request boundary, and everything past
that point works with the typed AuthContext.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


class CompanyScope(str, Enum):
    """A grading company an administrator may act for."""

    PSA = "psa"
    BGS = "bgs"
    SGC = "sgc"
    CGC = "cgc"


SUPER_ADMIN_GROUP = "Super-Admins"

GROUP_SCOPES: dict[str, CompanyScope] = {
    "PSA-Admins": CompanyScope.PSA,
    "BGS-Admins": CompanyScope.BGS,
    "SGC-Admins": CompanyScope.SGC,
    "CGC-Admins": CompanyScope.CGC,
}

GRADING_COMPANIES = tuple(scope.value for scope in CompanyScope)


@dataclass(frozen=True, slots=True)
class AuthContext:
    """Typed view of the caller's identity and company scopes."""

    scopes: frozenset[CompanyScope] = frozenset()
    unrestricted: bool = False
    subject: str | None = None
    email: str | None = None
    username: str | None = None
    groups: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_groups(
        cls,
        groups: Iterable[str],
        *,
        subject: str | None = None,
        email: str | None = None,
        username: str | None = None,
    ) -> "AuthContext":
        labels = tuple(g.strip() for g in groups if g and g.strip())
        unrestricted = SUPER_ADMIN_GROUP in labels
        scopes = frozenset(GROUP_SCOPES[g] for g in labels if g in GROUP_SCOPES)
        return cls(
            scopes=scopes,
            unrestricted=unrestricted,
            subject=subject,
            email=email,
            username=username,
            groups=labels,
        )

    @property
    def is_admin(self) -> bool:
        return self.unrestricted or bool(self.scopes)

    def can_access(self, company: str) -> bool:
        """Check whether the caller may see or change data for ``company``."""
        if self.unrestricted:
            return True
        return any(scope.value == company for scope in self.scopes)

    def allowed_companies(self) -> list[str]:
        """Companies in scope, or ``["all"]`` for super admins."""
        if self.unrestricted:
            return ["all"]
        return sorted(scope.value for scope in self.scopes)
