"""Closed error taxonomy for playfetch.

Every error raised by the package is a :class:`PlayfetchError` tagged with an
:class:`ErrorKind`. Callers can either catch the concrete subclass or match
on ``exc.kind``; the set of kinds is fixed::

    PlayfetchError
    +-- LoginError          kind=login     (exit 3)
    +-- RequestError        kind=request   (exit 5)
    +-- DecodeError         kind=decode    (exit 7)
    +-- ContractViolation   kind=contract  (exit 8)
        +-- ConfigError     kind=contract  (exit 2)

The CLI entry point in :func:`playfetch.app.main` catches
``PlayfetchError`` and exits with ``exc.exit_code``.
"""

from __future__ import annotations

import enum
from typing import Optional

from playfetch.exit_codes import (
    EXIT_CONTRACT_VIOLATION,
    EXIT_DECODE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_LOGIN_FAILURE,
    EXIT_REQUEST_ERROR,
)


class ErrorKind(str, enum.Enum):
    """The fixed set of failure categories."""

    LOGIN = "login"
    REQUEST = "request"
    DECODE = "decode"
    CONTRACT = "contract"


class PlayfetchError(Exception):
    """Base exception for all playfetch errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    kind: ErrorKind
    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class LoginError(PlayfetchError):
    """Raised when the auth endpoint rejects a login or returns no token.

    ``body`` holds the raw response text for diagnostics.
    """

    kind = ErrorKind.LOGIN
    exit_code = EXIT_LOGIN_FAILURE

    def __init__(self, body: str, message: Optional[str] = None):
        super().__init__(message or f"Login failed: {body.strip()[:200]}")
        self.body = body


class RequestError(PlayfetchError):
    """Raised when an API call returns a non-200 status or the network fails.

    ``status_code`` is ``None`` when no HTTP response was received.
    """

    kind = ErrorKind.REQUEST
    exit_code = EXIT_REQUEST_ERROR

    def __init__(
        self,
        body: str,
        status_code: Optional[int] = None,
        message: Optional[str] = None,
    ):
        if message is None:
            prefix = f"HTTP {status_code}" if status_code is not None else "Request failed"
            detail = body.strip()[:200]
            message = f"{prefix}: {detail}" if detail else prefix
        super().__init__(message)
        self.body = body
        self.status_code = status_code


class DecodeError(PlayfetchError):
    """Raised when a response envelope is not valid wire data."""

    kind = ErrorKind.DECODE
    exit_code = EXIT_DECODE_ERROR


class ContractViolation(PlayfetchError):
    """Raised on precondition failures or unexpected response shapes.

    These indicate a caller bug or a server response that does not match
    what the operation requires, and are never swallowed.
    """

    kind = ErrorKind.CONTRACT
    exit_code = EXIT_CONTRACT_VIOLATION


class ConfigError(ContractViolation):
    """Raised for missing credentials, bad config files, or unusable schemas."""

    exit_code = EXIT_INVALID_USAGE
