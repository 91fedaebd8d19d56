#Shared building blocks used by every other package:
#error kinds raised by the domain and the keyed lock manager.
#No business logic.

from .errors import (
    ErrorKind,
    DispatchError,
    ValidationError,
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
    NoCandidatesError,
    NothingToRateError,
    StaleStateError,
    UpstreamCollaboratorError,
    InternalError,
)
from .locks import KeyedLockManager, assignment_lock_key, order_lock_key

__all__ = [
    "ErrorKind",
    "DispatchError",
    "ValidationError",
    "NotFoundError",
    "ForbiddenError",
    "InvalidStateError",
    "NoCandidatesError",
    "NothingToRateError",
    "StaleStateError",
    "UpstreamCollaboratorError",
    "InternalError",
    "KeyedLockManager",
    "assignment_lock_key",
    "order_lock_key",
]
