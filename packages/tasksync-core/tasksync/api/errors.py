"""
Remote failure types and their classification.

The client raises RemoteError with enough detail (status code, offline or
timeout marker) for the sync engine to pick one of three recovery paths:

- PermanentError: the target is gone or the request is malformed (404/400).
  Retrying cannot succeed.
- TransientInfraError: the network or the server is down (offline, timeout,
  status >= 500). Retried indefinitely.
- RetryableClientError: anything else. Retried a bounded number of times.
"""

from typing import Optional


PERMANENT_STATUSES = (400, 404)


class RemoteError(Exception):
    """A failed call to the remote task service."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        offline: bool = False,
        timeout: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.offline = offline
        self.timeout = timeout

    def __repr__(self) -> str:
        return (
            f"RemoteError({self.message!r}, status={self.status}, "
            f"offline={self.offline}, timeout={self.timeout})"
        )


class SyncFailure(Exception):
    """Base class for a classified replay failure."""

    def __init__(self, cause: BaseException):
        super().__init__(str(cause) or type(cause).__name__)
        self.cause = cause


class PermanentError(SyncFailure):
    """Drop the operation; no retry."""


class RetryableClientError(SyncFailure):
    """Count the failure; drop once the retry limit is reached."""


class TransientInfraError(SyncFailure):
    """Halt the drain and retry later; never drop."""


def is_network_error(exc: BaseException) -> bool:
    """Check if a failure looks like an outage rather than a bad request."""
    if not isinstance(exc, RemoteError):
        return False
    if exc.offline or exc.timeout:
        return True
    return exc.status is not None and exc.status >= 500


def classify(exc: BaseException) -> SyncFailure:
    """
    Map any exception raised while replaying an operation to exactly one
    failure class.

    Args:
        exc: The exception raised by the remote call

    Returns:
        PermanentError, TransientInfraError or RetryableClientError wrapping exc
    """
    if isinstance(exc, RemoteError) and exc.status in PERMANENT_STATUSES:
        return PermanentError(exc)
    if is_network_error(exc):
        return TransientInfraError(exc)
    return RetryableClientError(exc)
