"""
Event-Stream Reframer
=====================

Turns an OpenAI chat-completions SSE body into a plain token stream.

Wire format (one frame per blank-line-terminated block):

    data: {"choices": [{"delta": {"content": "Hel"}}]}

    data: [DONE]

Only ``data:`` frames are kept. Each JSON frame contributes its
``choices[0].delta.content``; ``[DONE]`` ends the stream.
"""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional

logger = logging.getLogger(__name__)

FRAME_DELIMITER = "\n\n"
DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class StreamEvent:
    """A parsed frame: either a text delta or the end of the stream."""

    delta: str = ""
    done: bool = False


def _delta_from_payload(payload: str) -> Optional[str]:
    try:
        data = json.loads(payload)
        content = data["choices"][0]["delta"].get("content")
    except (json.JSONDecodeError, KeyError, IndexError, TypeError, AttributeError) as e:
        logger.debug("Skipping unreadable frame: %s", e)
        return None
    if isinstance(content, str) and content:
        return content
    return None


class SSEFrameParser:
    """Incremental frame splitter with a rolling buffer.

    ``feed`` may be called with text cut at any point; the trailing,
    possibly incomplete segment is held back until the next call.
    """

    def __init__(self):
        self._buffer = ""
        self.finished = False

    def feed(self, text: str) -> list[StreamEvent]:
        if self.finished:
            return []

        self._buffer += text
        # A CR may be waiting for its LF in the next read
        if self._buffer.endswith("\r"):
            head, pending = self._buffer[:-1], "\r"
        else:
            head, pending = self._buffer, ""
        head = head.replace("\r\n", "\n")

        *frames, rest = head.split(FRAME_DELIMITER)
        self._buffer = rest + pending
        return self._parse_frames(frames)

    def flush(self) -> list[StreamEvent]:
        """Parse whatever is left once the upstream has closed."""
        if self.finished:
            return []
        tail = self._buffer.replace("\r\n", "\n").strip()
        self._buffer = ""
        if not tail:
            return []
        return self._parse_frames([tail])

    def _parse_frames(self, frames: list[str]) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        for frame in frames:
            frame = frame.strip()
            if not frame.startswith(DATA_PREFIX):
                # comments, keep-alives, event: lines
                continue

            payload = frame[len(DATA_PREFIX):].strip()
            if payload == DONE_SENTINEL:
                events.append(StreamEvent(done=True))
                self.finished = True
                self._buffer = ""
                break

            delta = _delta_from_payload(payload)
            if delta is not None:
                events.append(StreamEvent(delta=delta))
        return events


async def reframe(
    chunks: AsyncIterator[bytes],
    end_marker: str = DONE_SENTINEL,
) -> AsyncIterator[bytes]:
    """
    Re-emit SSE text deltas as raw UTF-8 bytes, ending with ``end_marker``.

    The upstream iterator is only advanced when the consumer asks for more,
    and is abandoned as soon as the sentinel is seen.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    parser = SSEFrameParser()
    marker = end_marker.encode("utf-8")

    async for chunk in chunks:
        for event in parser.feed(decoder.decode(chunk)):
            if event.done:
                yield marker
                return
            yield event.delta.encode("utf-8")

    for event in parser.feed(decoder.decode(b"", final=True)) + parser.flush():
        if event.done:
            yield marker
            return
        yield event.delta.encode("utf-8")

    logger.warning("Upstream stream closed without %s, ending stream", DONE_SENTINEL)
    yield marker
