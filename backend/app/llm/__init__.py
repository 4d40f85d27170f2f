"""
ORI Relay LLM Components
========================

Run polling, SSE reframing, message extraction and the chat flows
built on top of them.
"""

from .extractor import extract_text, latest_message_text
from .flows import ChatFlow, RunFlow, StreamFlow, Turn, build_flow
from .poller import PollVerdict, RunStatus, classify_status, poll_run
from .reframer import SSEFrameParser, StreamEvent, reframe

__all__ = [
    "ChatFlow",
    "RunFlow",
    "StreamFlow",
    "Turn",
    "build_flow",
    "RunStatus",
    "PollVerdict",
    "classify_status",
    "poll_run",
    "SSEFrameParser",
    "StreamEvent",
    "reframe",
    "extract_text",
    "latest_message_text",
]
