"""Error taxonomy shared by every pipeline stage.

ConfigurationError  — static mistakes caught at construction or pre-flight.
AuthenticationError — the login exchange failed; fatal for the run.
PublishError        — the remote rejected (or partially rejected) the batch.
TransportError      — raised by a transport; the client wraps it.

NotAuthenticatedError is a programming error (publish before login), so it
derives from RuntimeError rather than the recoverable base class.
"""

from typing import Any, Optional, Sequence


class SfPublishError(Exception):
    """Base class for errors surfaced to the build tool."""


class ConfigurationError(SfPublishError):
    """Raised when the configuration cannot produce a valid run."""


class TransportError(SfPublishError):
    """Raised by a transport when a remote call fails.

    Carries the HTTP status and SOAP fault code when the server sent one.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        fault_code: Optional[str] = None,
    ):
        self.status_code = status_code
        self.fault_code = fault_code
        super().__init__(message)


class AuthenticationError(SfPublishError):
    """Raised when the login exchange fails. Never retried."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(message)


class PublishError(SfPublishError):
    """Raised when the batch upsert does not fully succeed.

    `detail` holds the raw response object for aggregate failures;
    `failed_items` holds the per-item failures for list responses.
    """

    def __init__(
        self,
        message: str,
        detail: Any = None,
        failed_items: Sequence[Any] = (),
    ):
        self.detail = detail
        self.failed_items = list(failed_items)
        super().__init__(message)


class NotAuthenticatedError(RuntimeError):
    """Raised when publish is attempted before a successful authenticate."""
