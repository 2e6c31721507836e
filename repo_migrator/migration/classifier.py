"""Failure classification into retry classes.

Collaborators raise ``ApiError`` with an HTTP status where they have one.
``failure_from_exception`` turns any exception into a tagged ``Failure``;
only failures tagged ``OTHER`` fall back to matching phrases in the message
text, which is how git and transport errors are classified.
"""

from dataclasses import dataclass
from enum import Enum

import httpx

from ..core.exceptions import ApiError
from ..models.enums import ErrorType

# Checked in this order, first match wins. DNS phrases must come before the
# generic "not found" of the permanent group.
TRANSIENT_PHRASES = (
    "rate limit",
    "timeout",
    "timed out",
    "connection reset",
    "econnreset",
    "enotfound",
    "name or service not known",
    "temporary failure in name resolution",
    "could not resolve host",
    "getaddrinfo",
    "network",
    "502",
    "503",
    "504",
)
RECOVERABLE_PHRASES = ("already exists", "409", "conflict")
PERMANENT_PHRASES = ("not found", "404", "forbidden", "403", "unauthorized", "401")


class FailureKind(Enum):
    RATE_LIMITED = "rate_limited"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    OTHER = "other"


@dataclass(frozen=True)
class Failure:
    """A failure reduced to a kind plus its original message."""

    kind: FailureKind
    message: str


def classify(error: BaseException | str) -> ErrorType:
    """Classify a failure from its message text alone."""
    text = str(error).lower()

    if any(phrase in text for phrase in TRANSIENT_PHRASES):
        return ErrorType.TRANSIENT
    if any(phrase in text for phrase in RECOVERABLE_PHRASES):
        return ErrorType.RECOVERABLE
    if any(phrase in text for phrase in PERMANENT_PHRASES):
        return ErrorType.PERMANENT
    # Unrecognized failures are retried rather than dropped
    return ErrorType.TRANSIENT


def failure_from_exception(error: BaseException) -> Failure:
    """Tag an exception raised by a collaborator."""
    message = str(error) or error.__class__.__name__

    if isinstance(error, httpx.TimeoutException):
        return Failure(FailureKind.OTHER, f"Request timeout: {message}")
    if isinstance(error, httpx.TransportError):
        return Failure(FailureKind.OTHER, f"Network error: {message}")
    if not isinstance(error, ApiError) or error.status_code is None:
        return Failure(FailureKind.OTHER, message)

    status = error.status_code
    if status == 429 or "rate limit" in message.lower():
        return Failure(FailureKind.RATE_LIMITED, message)
    if status == 409:
        return Failure(FailureKind.CONFLICT, message)
    if status == 404:
        return Failure(FailureKind.NOT_FOUND, message)
    if status in (401, 403):
        return Failure(FailureKind.UNAUTHORIZED, message)
    return Failure(FailureKind.OTHER, message)


def classify_failure(failure: Failure) -> ErrorType:
    if failure.kind is FailureKind.RATE_LIMITED:
        return ErrorType.TRANSIENT
    if failure.kind is FailureKind.CONFLICT:
        return ErrorType.RECOVERABLE
    if failure.kind in (FailureKind.NOT_FOUND, FailureKind.UNAUTHORIZED):
        return ErrorType.PERMANENT
    return classify(failure.message)


def classify_exception(error: BaseException) -> ErrorType:
    """Classify an exception, preferring its structured status over its text."""
    return classify_failure(failure_from_exception(error))


def is_conflict(failure: Failure) -> bool:
    """Whether a failure means the target repository already exists."""
    if failure.kind is FailureKind.CONFLICT:
        return True
    text = failure.message.lower()
    return "already exists" in text or "409" in text


def is_transient(error: BaseException) -> bool:
    """Retry predicate for single remote operations."""
    return classify_exception(error) is ErrorType.TRANSIENT
