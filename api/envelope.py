"""
Purpose: The success / failure envelope every exposed operation returns.
What it does:
Wraps a handler so it never raises: domain errors become a failure envelope
carrying their ErrorKind and status, anything unexpected becomes an
InternalError envelope (logged with its traceback).
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Optional

from common.errors import DispatchError, ErrorKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Envelope:
    success: bool
    message: str
    data: Any = None
    error_kind: Optional[ErrorKind] = None
    status: int = 200

    def to_dict(self) -> dict:
        body = {"success": self.success, "message": self.message}
        if self.success:
            body["data"] = self.data
        else:
            body["error"] = self.error_kind.value if self.error_kind else None
        return body


def ok(data: Any = None, message: str = "OK", status: int = 200) -> Envelope:
    return Envelope(success=True, message=message, data=data, status=status)


def fail(error: DispatchError) -> Envelope:
    return Envelope(success=False, message=error.message, error_kind=error.kind, status=error.status)


def enveloped(message: str, status: int = 200):
    """
    Decorator for service methods: the wrapped method returns the payload,
    the decorator returns the Envelope.
    """
    def decorator(handler):
        @functools.wraps(handler)
        def wrapper(*args, **kwargs) -> Envelope:
            try:
                data = handler(*args, **kwargs)
            except DispatchError as exc:
                logger.info("%s failed: %s (%s)", handler.__name__, exc.message, exc.kind.value)
                return fail(exc)
            except Exception:
                logger.exception("%s crashed", handler.__name__)
                return Envelope(
                    success=False,
                    message="Internal server error",
                    error_kind=ErrorKind.INTERNAL,
                    status=500,
                )
            return ok(data, message=message, status=status)
        return wrapper
    return decorator
