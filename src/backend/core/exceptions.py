"""
Error taxonomy for the election backend.

Services return a ``Rejection`` for expected business outcomes (already voted,
election closed, ...). Routes turn rejections into ``ElectVoteError``
subclasses, which the application-level handler renders as
``{"detail": <message>, "code": <reason>}`` with the matching HTTP status.
Only unexpected storage or infrastructure failures are raised directly.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NoReturn, Optional


class ErrorCategory(str, Enum):
    """Broad error classes, each with a fixed HTTP status."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    STATE = "state"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    STORAGE = "storage"


CATEGORY_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.STATE: 400,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.FORBIDDEN: 403,
    ErrorCategory.STORAGE: 500,
}


class ReasonCode(str, Enum):
    """Stable machine-checkable reason codes."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_TIME_WINDOW = "INVALID_TIME_WINDOW"

    ELECTION_NOT_FOUND = "ELECTION_NOT_FOUND"
    CANDIDATE_NOT_FOUND = "CANDIDATE_NOT_FOUND"
    VOTE_NOT_FOUND = "VOTE_NOT_FOUND"

    ELECTION_NOT_ACTIVE = "ELECTION_NOT_ACTIVE"
    VOTING_NOT_STARTED = "VOTING_NOT_STARTED"
    VOTING_ENDED = "VOTING_ENDED"
    CANDIDATE_UNAVAILABLE = "CANDIDATE_UNAVAILABLE"
    ELECTION_LOCKED = "ELECTION_LOCKED"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED"

    ALREADY_VOTED = "ALREADY_VOTED"
    DUPLICATE_CANDIDATE = "DUPLICATE_CANDIDATE"

    RESULTS_NOT_AVAILABLE = "RESULTS_NOT_AVAILABLE"

    STORAGE_FAILURE = "STORAGE_FAILURE"


REASON_CATEGORY: dict[ReasonCode, ErrorCategory] = {
    ReasonCode.VALIDATION_FAILED: ErrorCategory.VALIDATION,
    ReasonCode.INVALID_TIME_WINDOW: ErrorCategory.VALIDATION,
    ReasonCode.ELECTION_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ReasonCode.CANDIDATE_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ReasonCode.VOTE_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ReasonCode.ELECTION_NOT_ACTIVE: ErrorCategory.STATE,
    ReasonCode.VOTING_NOT_STARTED: ErrorCategory.STATE,
    ReasonCode.VOTING_ENDED: ErrorCategory.STATE,
    ReasonCode.CANDIDATE_UNAVAILABLE: ErrorCategory.STATE,
    ReasonCode.ELECTION_LOCKED: ErrorCategory.STATE,
    ReasonCode.INVALID_STATUS_TRANSITION: ErrorCategory.STATE,
    ReasonCode.REGISTRATION_CLOSED: ErrorCategory.STATE,
    ReasonCode.ALREADY_VOTED: ErrorCategory.CONFLICT,
    ReasonCode.DUPLICATE_CANDIDATE: ErrorCategory.CONFLICT,
    ReasonCode.RESULTS_NOT_AVAILABLE: ErrorCategory.FORBIDDEN,
    ReasonCode.STORAGE_FAILURE: ErrorCategory.STORAGE,
}


@dataclass(frozen=True)
class Rejection:
    """An expected refusal of a business operation."""

    reason: ReasonCode
    message: str

    @property
    def category(self) -> ErrorCategory:
        return REASON_CATEGORY[self.reason]

    @property
    def status_code(self) -> int:
        return CATEGORY_STATUS[self.category]


class ElectVoteError(Exception):
    """Base class for errors rendered as structured API responses."""

    category: ErrorCategory = ErrorCategory.VALIDATION
    default_reason: ReasonCode = ReasonCode.VALIDATION_FAILED

    def __init__(self, message: str, reason: Optional[ReasonCode] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason or self.default_reason

    @property
    def status_code(self) -> int:
        return CATEGORY_STATUS[self.category]


class ValidationError(ElectVoteError):
    category = ErrorCategory.VALIDATION
    default_reason = ReasonCode.VALIDATION_FAILED


class NotFoundError(ElectVoteError):
    category = ErrorCategory.NOT_FOUND
    default_reason = ReasonCode.ELECTION_NOT_FOUND


class StateError(ElectVoteError):
    category = ErrorCategory.STATE
    default_reason = ReasonCode.ELECTION_NOT_ACTIVE


class ConflictError(ElectVoteError):
    category = ErrorCategory.CONFLICT
    default_reason = ReasonCode.ALREADY_VOTED


class ForbiddenError(ElectVoteError):
    category = ErrorCategory.FORBIDDEN
    default_reason = ReasonCode.RESULTS_NOT_AVAILABLE


class StorageError(ElectVoteError):
    """Connectivity or transaction failure. Never carries driver details to clients."""

    category = ErrorCategory.STORAGE
    default_reason = ReasonCode.STORAGE_FAILURE


_CATEGORY_ERRORS: dict[ErrorCategory, type[ElectVoteError]] = {
    ErrorCategory.VALIDATION: ValidationError,
    ErrorCategory.NOT_FOUND: NotFoundError,
    ErrorCategory.STATE: StateError,
    ErrorCategory.CONFLICT: ConflictError,
    ErrorCategory.FORBIDDEN: ForbiddenError,
    ErrorCategory.STORAGE: StorageError,
}


def error_for_rejection(rejection: Rejection) -> ElectVoteError:
    """Build the exception matching a rejection's category."""
    error_cls = _CATEGORY_ERRORS[rejection.category]
    return error_cls(rejection.message, reason=rejection.reason)


def raise_for_rejection(rejection: Rejection) -> NoReturn:
    """Raise the exception matching a rejection's category."""
    raise error_for_rejection(rejection)
