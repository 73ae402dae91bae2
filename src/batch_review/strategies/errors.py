"""Error taxonomy and classification for review jobs."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")

# Message patterns, matched against the lower-cased error message in order
NETWORK_PATTERNS = ("network", "connection", "econnrefused", "enotfound")
PERMISSION_PATTERNS = ("forbidden", "403")
AUTHENTICATION_PATTERNS = ("unauthorized", "authentication", "401")
RATE_LIMIT_PATTERNS = ("rate limit", "429", "too many requests")
NOT_FOUND_PATTERNS = ("not found", "404", "enoent")
TIMEOUT_PATTERNS = ("timeout", "timed out", "etimedout")
SERVICE_UNAVAILABLE_PATTERNS = ("service unavailable", "502", "503", "504")
GIT_PATTERNS = ("git", "repository")


class ErrorKind(str, Enum):
    """Closed taxonomy of review failures."""

    REPOSITORY_NOT_DETECTED = "REPOSITORY_NOT_DETECTED"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    API_RATE_LIMITED = "API_RATE_LIMITED"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    ANALYSIS_FAILED = "ANALYSIS_FAILED"
    COMMENT_POST_FAILED = "COMMENT_POST_FAILED"
    NETWORK_ERROR = "NETWORK_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    GIT_OPERATION_FAILED = "GIT_OPERATION_FAILED"
    LLM_PROVIDER_ERROR = "LLM_PROVIDER_ERROR"

    @property
    def retryable(self) -> bool:
        """Whether failures of this kind may ever be retried."""
        return self not in NON_RETRYABLE_KINDS

    @property
    def guidance(self) -> str:
        """Fixed user guidance for this kind."""
        return ERROR_GUIDANCE[self]


NON_RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.REPOSITORY_NOT_DETECTED,
        ErrorKind.AUTHENTICATION_FAILED,
        ErrorKind.PERMISSION_DENIED,
        ErrorKind.FILE_NOT_FOUND,
        ErrorKind.INVALID_CONFIGURATION,
    }
)

ERROR_GUIDANCE: dict[ErrorKind, str] = {
    ErrorKind.REPOSITORY_NOT_DETECTED: (
        "Ensure you are in a Git repository with a configured remote (GitLab or GitHub). "
        "Run `git remote -v` to check your remotes."
    ),
    ErrorKind.AUTHENTICATION_FAILED: (
        "Check your authentication credentials. For GitLab, verify your access token. "
        "For GitHub, ensure your token has the required permissions."
    ),
    ErrorKind.API_RATE_LIMITED: (
        "API rate limit exceeded. Please wait a few minutes before trying again. "
        "Consider using a personal access token for higher rate limits."
    ),
    ErrorKind.FILE_NOT_FOUND: (
        "The specified file could not be found. "
        "Check the file path and ensure the file exists in the repository."
    ),
    ErrorKind.ANALYSIS_FAILED: (
        "Code analysis failed. This might be due to unsupported file format or LLM provider issues. "
        "Try again or check the file content."
    ),
    ErrorKind.COMMENT_POST_FAILED: (
        "Failed to post review comments. Check your permissions and network connection. "
        "Comments will be displayed locally instead."
    ),
    ErrorKind.NETWORK_ERROR: (
        "Network connection failed. Check your internet connection and try again."
    ),
    ErrorKind.PERMISSION_DENIED: (
        "Insufficient permissions to access the repository or perform the operation. "
        "Check your access token permissions."
    ),
    ErrorKind.SERVICE_UNAVAILABLE: (
        "The service is temporarily unavailable. Please try again later."
    ),
    ErrorKind.TIMEOUT_ERROR: (
        "Operation timed out. Try again with a smaller scope or check your network connection."
    ),
    ErrorKind.INVALID_CONFIGURATION: (
        "Configuration is invalid or missing. "
        "Check your configuration file and ensure all required settings are present."
    ),
    ErrorKind.GIT_OPERATION_FAILED: (
        "Git operation failed. Ensure you are in a valid Git repository "
        "and have the necessary permissions."
    ),
    ErrorKind.LLM_PROVIDER_ERROR: (
        "LLM provider error. Check your API configuration and try again. "
        "The service might be temporarily unavailable."
    ),
}


class ReviewError(Exception):
    """A classified review failure.

    Attributes:
        kind: Taxonomy bucket of the failure
        message: Raw failure message
        details: Context of the failure (target, attempt, original error, ...)
        retryable: Whether the failure may be retried
        occurred_at: UTC timestamp of the failure
        guidance: Fixed user guidance for the kind
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        details: dict[str, Any] | None = None,
        retryable: bool | None = None,
        guidance: str | None = None,
    ):
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.message = message
        self.details = dict(details or {})
        self.retryable = self.kind.retryable if retryable is None else retryable
        self.guidance = self.kind.guidance if guidance is None else guidance
        self.occurred_at = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"ReviewError(kind={self.kind.value}, message={self.message!r})"

    def to_user_message(self) -> str:
        """Raw message followed by the kind's guidance."""
        if not self.guidance:
            return self.message
        return f"{self.message}\n\n💡 {self.guidance}"

    def to_dict(self) -> dict[str, Any]:
        """Serializable view of the error, for logging."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
            "occurred_at": self.occurred_at.isoformat(),
            "retryable": self.retryable,
            "guidance": self.guidance,
        }


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome of an operation."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed outcome of an operation, carrying the classified error."""

    error: ReviewError

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err]


def match_error_kind(message: str) -> ErrorKind:
    """Map a failure message to an error kind using substring heuristics."""
    lowered = message.lower()

    if any(pattern in lowered for pattern in NETWORK_PATTERNS):
        return ErrorKind.NETWORK_ERROR
    if any(pattern in lowered for pattern in PERMISSION_PATTERNS):
        return ErrorKind.PERMISSION_DENIED
    if any(pattern in lowered for pattern in AUTHENTICATION_PATTERNS):
        return ErrorKind.AUTHENTICATION_FAILED
    if any(pattern in lowered for pattern in RATE_LIMIT_PATTERNS):
        return ErrorKind.API_RATE_LIMITED
    if any(pattern in lowered for pattern in NOT_FOUND_PATTERNS):
        return ErrorKind.FILE_NOT_FOUND
    if any(pattern in lowered for pattern in TIMEOUT_PATTERNS):
        return ErrorKind.TIMEOUT_ERROR
    if any(pattern in lowered for pattern in SERVICE_UNAVAILABLE_PATTERNS):
        return ErrorKind.SERVICE_UNAVAILABLE
    if any(pattern in lowered for pattern in GIT_PATTERNS):
        return ErrorKind.GIT_OPERATION_FAILED

    return ErrorKind.ANALYSIS_FAILED


class ErrorClassifier(ABC):
    """Abstract base class for turning raw failures into ReviewErrors."""

    @abstractmethod
    def classify(self, error: Any, context: dict[str, Any] | None = None) -> ReviewError:
        """
        Classify a failure.

        Args:
            error: The raised exception (or any other failure value)
            context: Extra details to attach to the resulting error

        Returns:
            ReviewError with kind, retryability and guidance filled in
        """
        pass


class DefaultErrorClassifier(ErrorClassifier):
    """Classifier using exception types first, then message patterns."""

    # Checked in order; ConnectionError must come before other OSErrors
    TYPE_KINDS: tuple[tuple[type[BaseException], ErrorKind], ...] = (
        (ConnectionError, ErrorKind.NETWORK_ERROR),
        (PermissionError, ErrorKind.PERMISSION_DENIED),
        (FileNotFoundError, ErrorKind.FILE_NOT_FOUND),
        (TimeoutError, ErrorKind.TIMEOUT_ERROR),
    )

    def create_error(
        self, error: Any, kind: ErrorKind, context: dict[str, Any] | None = None
    ) -> ReviewError:
        """Build a ReviewError of ``kind`` from a raw failure."""
        details: dict[str, Any] = dict(context or {})

        if isinstance(error, BaseException):
            message = str(error) or type(error).__name__
            details["original_error"] = {
                "type": type(error).__name__,
                "message": str(error),
            }
        elif isinstance(error, str):
            message = error
        else:
            message = "Unknown error occurred"
            details["original_error"] = repr(error)

        return ReviewError(kind, message, details)

    def classify(self, error: Any, context: dict[str, Any] | None = None) -> ReviewError:
        """Classify with type checks, then message heuristics."""
        if isinstance(error, ReviewError):
            return error

        for exc_type, kind in self.TYPE_KINDS:
            if isinstance(error, exc_type):
                return self.create_error(error, kind, context)

        if isinstance(error, (BaseException, str)):
            kind = match_error_kind(str(error))
        else:
            kind = ErrorKind.ANALYSIS_FAILED

        return self.create_error(error, kind, context)


def is_review_error(error: Any, kind: ErrorKind | None = None) -> bool:
    """Check whether ``error`` is a ReviewError, optionally of a given kind."""
    if not isinstance(error, ReviewError):
        return False
    return kind is None or error.kind == kind


def get_error_message(error: Any) -> str:
    """Extract a user-facing message from any failure value."""
    if isinstance(error, ReviewError):
        return error.to_user_message()
    if isinstance(error, BaseException):
        return str(error)
    if isinstance(error, str):
        return error
    return "An unknown error occurred"
