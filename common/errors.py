"""
Purpose: The failure vocabulary of the dispatch core.
What it does:
Every operation either returns a payload or raises one of these.
The api layer turns them into failure envelopes using `kind` and `status`.

ValidationError   -> malformed / missing input (400)
NotFound          -> order, assignment or shop absent (404)
Forbidden         -> actor not entitled to the resource (403)
InvalidState      -> operation not legal in the current aggregate state (409)
UpstreamCollaboratorError -> a required dependency call failed (502)
InternalError     -> anything unexpected (500)
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "ValidationError"
    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    INVALID_STATE = "InvalidState"
    UPSTREAM = "UpstreamCollaboratorError"
    INTERNAL = "InternalError"


class DispatchError(Exception):
    """Base class for every error the core surfaces to a caller."""

    kind: ErrorKind = ErrorKind.INTERNAL
    status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DispatchError):
    kind = ErrorKind.VALIDATION
    status = 400


class NotFoundError(DispatchError):
    kind = ErrorKind.NOT_FOUND
    status = 404


class ForbiddenError(DispatchError):
    kind = ErrorKind.FORBIDDEN
    status = 403


class InvalidStateError(DispatchError):
    kind = ErrorKind.INVALID_STATE
    status = 409


class NoCandidatesError(InvalidStateError):
    """Raised by the broadcaster when no courier is free near the drop-off."""
    pass


class NothingToRateError(InvalidStateError):
    """Raised when an order has no delivered, unrated items left."""
    pass


class StaleStateError(InvalidStateError):
    """Raised by a repository when a compare-and-set sees a different status."""
    pass


class UpstreamCollaboratorError(DispatchError):
    kind = ErrorKind.UPSTREAM
    status = 502


class InternalError(DispatchError):
    kind = ErrorKind.INTERNAL
    status = 500
