"""
ORI Relay Core
==============

Configuration, errors and the polling policy.
"""

from .config import Settings, get_settings
from .exceptions import (
    ConfigurationError,
    RelayError,
    RunFailedError,
    RunRequiresActionError,
    RunTimeoutError,
    UpstreamError,
)
from .polling import PollPolicy

__all__ = [
    "Settings",
    "get_settings",
    "PollPolicy",
    "RelayError",
    "ConfigurationError",
    "UpstreamError",
    "RunTimeoutError",
    "RunRequiresActionError",
    "RunFailedError",
]
