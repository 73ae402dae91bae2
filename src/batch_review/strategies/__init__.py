"""Error classification and retry strategies."""

from .errors import (
    ERROR_GUIDANCE,
    DefaultErrorClassifier,
    Err,
    ErrorClassifier,
    ErrorKind,
    Ok,
    Result,
    ReviewError,
    get_error_message,
    is_review_error,
    match_error_kind,
)
from .retry import RETRY_POLICIES, RetryEngine

__all__ = [
    "ERROR_GUIDANCE",
    "ErrorClassifier",
    "DefaultErrorClassifier",
    "ErrorKind",
    "ReviewError",
    "Ok",
    "Err",
    "Result",
    "get_error_message",
    "is_review_error",
    "match_error_kind",
    "RETRY_POLICIES",
    "RetryEngine",
]
