"""
Relay errors.

Every failure that ends a request is a RelayError. The API layer turns it
into a plain-text response carrying ``status_code``. Nothing here is retried.
"""

from __future__ import annotations

from typing import Optional


class RelayError(Exception):
    """Base class for request-terminating errors.

    Attributes:
        message: human readable text returned as the response body.
        status_code: HTTP status used for the response.
    """

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ConfigurationError(RelayError):
    """A required secret is absent. Raised before any outbound call."""

    status_code = 500


class UpstreamError(RelayError):
    """The upstream API answered with a non-success status."""

    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        self.upstream_status = upstream_status
        super().__init__(message)


class RunTimeoutError(RelayError):
    """The run did not reach a terminal status within the polling ceiling."""

    status_code = 504

    def __init__(self, message: str = "Timed out waiting for assistant."):
        super().__init__(message)


class RunRequiresActionError(RelayError):
    """The run is waiting on a tool call this relay does not perform."""

    status_code = 501

    def __init__(
        self, message: str = "Assistant requires action not implemented in this API."
    ):
        super().__init__(message)


class RunFailedError(RelayError):
    """The run ended in failed, cancelled or expired."""

    status_code = 500

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Run ended with status: {status}")
