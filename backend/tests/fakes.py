"""
Test doubles: a fake OpenAI upstream on httpx.MockTransport and a fake
sleep that records delays instead of waiting.
"""

from __future__ import annotations

import itertools
import json
from typing import Iterable, Optional

import httpx

from app.core.config import Settings


def make_settings(**overrides) -> Settings:
    values = {
        "openai_api_key": "sk-test",
        "assistant_id": "asst_test",
        "poll_interval_ms": 700,
        "poll_max_attempts": 90,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeSleep:
    """Records every delay instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class ChunkStream(httpx.AsyncByteStream):
    """Response body delivered in the given pieces, optionally failing at the end."""

    def __init__(self, chunks: Iterable[bytes], error: Optional[Exception] = None):
        self.chunks = list(chunks)
        self.error = error
        self.consumed = 0
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            self.consumed += 1
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed = True


def sse(*payloads: str) -> bytes:
    """Build an SSE body from raw ``data:`` payloads."""
    return "".join(f"data: {p}\n\n" for p in payloads).encode("utf-8")


def delta(text: str) -> str:
    return json.dumps({"choices": [{"delta": {"content": text}}]}, ensure_ascii=False)


class FakeOpenAI:
    """Minimal Assistants + chat-completions upstream."""

    def __init__(
        self,
        *,
        run_statuses: Iterable[str] = ("completed",),
        initial_status: str = "queued",
        message_parts: Optional[list] = None,
        stream: Optional[ChunkStream] = None,
        failures: Optional[dict[str, int]] = None,
        replies: Optional[dict[str, httpx.Response]] = None,
    ):
        statuses = list(run_statuses)
        self._statuses = itertools.chain(statuses, itertools.repeat(statuses[-1]))
        self.initial_status = initial_status
        self.message_parts = (
            message_parts
            if message_parts is not None
            else [{"type": "text", "text": {"value": "hello"}}]
        )
        self.stream = stream or ChunkStream([sse(delta("hi"), "[DONE]")])
        self.failures = failures or {}
        # Canned answers that replace a step's normal reply
        self.replies = replies or {}
        self.requests: list[httpx.Request] = []

    @property
    def status_checks(self) -> int:
        return sum(
            1 for r in self.requests if r.method == "GET" and "/runs/" in r.url.path
        )

    def _fail(self, step: str) -> Optional[httpx.Response]:
        if step in self.replies:
            return self.replies[step]
        if step in self.failures:
            return httpx.Response(self.failures[step], text=f"{step} exploded")
        return None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        method = request.method

        if method == "POST" and path == "/v1/threads":
            return self._fail("threads") or httpx.Response(200, json={"id": "thread_1"})
        if method == "POST" and path == "/v1/threads/thread_1/messages":
            return self._fail("messages") or httpx.Response(200, json={"id": "msg_1"})
        if method == "POST" and path == "/v1/threads/thread_1/runs":
            return self._fail("runs") or httpx.Response(
                200, json={"id": "run_1", "status": self.initial_status}
            )
        if method == "GET" and path == "/v1/threads/thread_1/runs/run_1":
            return self._fail("run_status") or httpx.Response(
                200, json={"id": "run_1", "status": next(self._statuses)}
            )
        if method == "GET" and path == "/v1/threads/thread_1/messages":
            return self._fail("list") or httpx.Response(
                200, json={"data": [{"role": "assistant", "content": self.message_parts}]}
            )
        if method == "POST" and path == "/v1/chat/completions":
            return self._fail("completions") or httpx.Response(
                200, headers={"content-type": "text/event-stream"}, stream=self.stream
            )
        return httpx.Response(404, json={"error": {"message": f"no route {method} {path}"}})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

