"""
Run-Status Poller
=================

Watches an Assistants run until it reaches a terminal status.

The poller never drives the run: it sleeps, asks for the status once,
and classifies it. One query per tick, never two in flight.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from ..core.exceptions import RunFailedError, RunRequiresActionError, RunTimeoutError
from ..core.polling import PollPolicy

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    CANCELLING = "cancelling"
    REQUIRES_ACTION = "requires_action"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class PollVerdict(str, Enum):
    CONTINUE = "continue"
    SUCCESS = "success"
    ACTION_REQUIRED = "action_required"
    FATAL = "fatal"


_PENDING = {RunStatus.QUEUED, RunStatus.IN_PROGRESS, RunStatus.CANCELLING}


def classify_status(status: Optional[str]) -> PollVerdict:
    """Map a raw run status onto what the poller should do next."""
    if status in _PENDING:
        return PollVerdict.CONTINUE
    if status == RunStatus.COMPLETED:
        return PollVerdict.SUCCESS
    if status == RunStatus.REQUIRES_ACTION:
        return PollVerdict.ACTION_REQUIRED
    # failed, cancelled, expired and anything we don't recognise
    return PollVerdict.FATAL


def _settle(status: str) -> str:
    verdict = classify_status(status)
    if verdict == PollVerdict.SUCCESS:
        return status
    if verdict == PollVerdict.ACTION_REQUIRED:
        raise RunRequiresActionError()
    raise RunFailedError(str(status))


async def poll_run(
    fetch_status: Callable[[], Awaitable[str]],
    policy: PollPolicy,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    initial_status: Optional[str] = None,
) -> str:
    """
    Poll until the run completes.

    Args:
        fetch_status: coroutine returning the current run status
        policy: interval / attempt ceiling
        sleep: awaitable sleep (tests pass a fake clock)
        initial_status: status returned when the run was created, if any

    Returns:
        The terminal success status ("completed")

    Raises:
        RunRequiresActionError: run is waiting on a tool call
        RunFailedError: run ended failed / cancelled / expired
        RunTimeoutError: no terminal status after ``policy.max_attempts`` queries
    """
    if initial_status is not None and classify_status(initial_status) != PollVerdict.CONTINUE:
        return _settle(initial_status)

    status = initial_status
    attempts = 0
    for delay in policy.delays():
        await sleep(delay)
        attempts += 1
        status = await fetch_status()
        logger.debug("Run status after %d attempt(s): %s", attempts, status)

        if classify_status(status) != PollVerdict.CONTINUE:
            return _settle(status)

    logger.warning(
        "Run still %s after %d attempts (%.1fs)", status, attempts, policy.total_wait
    )
    raise RunTimeoutError()
