from gradedesk.models.auth import AuthContext, CompanyScope
from gradedesk.models.card import CardDescriptor, CardRecord, EstimatedValue
from gradedesk.models.failure import (
    AnalysisFailure,
    ApiResponse,
    AuthenticationError,
    AuthorizationError,
    FailureDetail,
    FailureKind,
    KnownError,
    NotFoundError,
    OutcomeType,
    PersistenceFailure,
    ValidationError,
)
from gradedesk.models.service_tier import ServiceTier
from gradedesk.models.submission import (
    SubmissionLineItem,
    SubmissionRecord,
    SubmissionStatus,
    SubmitterInfo,
)

__all__ = [
    "AnalysisFailure",
    "ApiResponse",
    "AuthContext",
    "AuthenticationError",
    "AuthorizationError",
    "CardDescriptor",
    "CardRecord",
    "CompanyScope",
    "EstimatedValue",
    "FailureDetail",
    "FailureKind",
    "KnownError",
    "NotFoundError",
    "OutcomeType",
    "PersistenceFailure",
    "ServiceTier",
    "SubmissionLineItem",
    "SubmissionRecord",
    "SubmissionStatus",
    "SubmitterInfo",
    "ValidationError",
]
