"""
Failure envelope: classified error responses.

Every user-visible failure is classified and rendered through the same
envelope, so the frontend can tell a missing field from a storage outage
without parsing prose.

Error taxonomy:
- ValidationError: a required submitter or card field is missing or malformed.
  Raised before any network or storage call.
- AnalysisFailure: one image's vision call failed. Never surfaced as an HTTP
  error; the image falls back to a placeholder card and the failure is counted.
- PersistenceFailure: the store rejected a read or write. Retryable; the
  submission is not considered saved.
- AuthorizationError: the caller lacks the required company scope. Raised
  before any data access.
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"
    MISSING_REQUIRED = "missing_required"

    # Resource failures
    NOT_FOUND = "not_found"

    # Access failures
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"

    # Service failures
    PERSISTENCE_ERROR = "persistence_error"
    EXTERNAL_API_ERROR = "external_api_error"

    # Unknown
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )
    field_errors: dict[str, str] = Field(
        default_factory=dict,
        description="Per-field validation messages keyed by field path",
    )
    retryable: bool = Field(
        default=False,
        description="True if the same request may succeed when retried",
    )


class ApiResponse(BaseModel):
    """
    Response envelope for failures.

    Every failure is classified into an outcome type so that no error
    reaches the user unexplained.
    """

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    failure: FailureDetail | None = Field(
        default=None,
        description="Failure details (present on non-success)",
    )

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        field_errors: dict[str, str] | None = None,
        retryable: bool = False,
    ) -> "ApiResponse":
        """
        Create a known failure response.

        Use when the system knows exactly why the operation failed.
        Example: Submission not found, missing card fields.
        """
        return cls(
            outcome=OutcomeType.KNOWN_FAILURE,
            failure=FailureDetail(
                kind=kind,
                message=message,
                detail=detail,
                suggestion=suggestion,
                field_errors=field_errors or {},
                retryable=retryable,
            ),
        )

    @classmethod
    def unknown_failure(
        cls,
        detail: str | None = None,
    ) -> "ApiResponse":
        """
        Create an unknown failure response.

        This is the catch-all for unexpected exceptions.
        """
        return cls(
            outcome=OutcomeType.UNKNOWN_FAILURE,
            failure=FailureDetail(
                kind=FailureKind.UNKNOWN,
                message="Something went wrong and we don't know why. Please try again.",
                detail=detail,
                suggestion="If this persists, please contact support.",
                retryable=True,
            ),
        )


# Standard exception types that map to known failures


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    retryable = False

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def field_errors(self) -> dict[str, str]:
        return {}

    def to_response(self) -> ApiResponse:
        """Convert to an ApiResponse."""
        return ApiResponse.known_failure(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
            field_errors=self.field_errors(),
            retryable=self.retryable,
        )


class ValidationError(KnownError):
    """
    One or more required fields are missing or malformed.

    Collects every problem at once, keyed by field path
    (e.g. ``email`` or ``cards[2].year``), so the user can fix them in one pass.
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        count = len(self.errors)
        super().__init__(
            kind=FailureKind.MISSING_REQUIRED,
            message=(
                "Please fill in all required fields for all cards."
                if count != 1
                else next(iter(self.errors.values()))
            ),
            detail=f"{count} field error(s)",
            suggestion="Correct the highlighted fields and submit again.",
            status_code=400,
        )

    def field_errors(self) -> dict[str, str]:
        return dict(self.errors)


class AuthenticationError(KnownError):
    """The caller carries no identity the endpoint can use."""

    def __init__(self, detail: str | None = None):
        super().__init__(
            kind=FailureKind.UNAUTHENTICATED,
            message="Sign in to continue.",
            detail=detail,
            status_code=401,
        )


class AuthorizationError(KnownError):
    """The caller lacks the company scope the operation requires."""

    def __init__(self, message: str = "Admin access required", detail: str | None = None):
        super().__init__(
            kind=FailureKind.FORBIDDEN,
            message=message,
            detail=detail,
            status_code=403,
        )


class NotFoundError(KnownError):
    """The requested record does not exist."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=message,
            detail=detail,
            status_code=404,
        )


class PersistenceFailure(KnownError):
    """
    The store rejected a read or write.

    The operation had no effect; the caller keeps its in-progress cards and
    may retry the same request.
    """

    retryable = True

    def __init__(self, operation: str, detail: str | None = None):
        self.operation = operation
        super().__init__(
            kind=FailureKind.PERSISTENCE_ERROR,
            message=f"Failed to {operation}. Nothing was saved; please try again.",
            detail=detail,
            suggestion="Your cards are still here. Retry without re-uploading.",
            status_code=503,
        )


class AnalysisFailure(Exception):
    """
    The vision service could not analyze one image.

    Recovered locally: the image becomes a single unanalyzed placeholder card.
    """

    def __init__(self, image_ref: str, reason: str):
        self.image_ref = image_ref
        self.reason = reason
        super().__init__(f"Analysis failed for {image_ref}: {reason}")
