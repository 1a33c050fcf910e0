"""Project-specific exception types."""

from __future__ import annotations


class VimshError(RuntimeError):
    """Base error for domain-level vimsh failures."""


class UserInputError(VimshError):
    """Raised for malformed arguments before any remote call is made."""


class LookupFailed(VimshError):
    """Base error for paths that do not resolve to usable objects."""


class NotFoundError(LookupFailed):
    """Raised when a path segment does not name any child."""


class AmbiguousError(LookupFailed):
    """Raised when a single-valued lookup matches several objects."""


class WrongTypeError(LookupFailed):
    """Raised when a path resolves to an object of an unexpected kind."""


class RemoteFaultError(VimshError):
    """Raised when the management server rejects a call."""


class TaskFailedError(VimshError):
    """Raised when an asynchronous server task ends in the error state."""


class WaitTimeoutError(VimshError):
    """Raised when a wait expires before its condition is met."""


class NoCredentialsError(VimshError):
    """Raised when a guest operation has no cached credential."""


class AuthenticationError(VimshError):
    """Raised when guest credentials fail validation."""


class GuestProcessError(VimshError):
    """Raised when a guest program exits with a non-zero code."""


class TransferError(VimshError):
    """Raised when a guest file transfer over HTTP fails."""


def fault_message(ex: BaseException) -> str:
    """Best-effort human readable text for a remote fault."""
    for attr in ('msg', 'localizedMessage'):
        text = getattr(ex, attr, None)
        if text:
            return str(text)
    faults = getattr(ex, 'faultMessage', None) or []
    for item in faults:
        text = getattr(item, 'message', None)
        if text:
            return str(text)
    text = str(ex).strip()
    return text or type(ex).__name__
