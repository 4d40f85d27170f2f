"""
Chat Flows
==========

One interface, two ways to get a reply out of OpenAI:

  RunFlow     thread -> message -> run -> poll -> latest message  (stateful)
  StreamFlow  chat.completions(stream=True) -> reframed deltas     (stateless)

Both receive Settings and the upstream client explicitly; nothing here
reads the environment.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Optional

import httpx

from ..core.config import Settings
from ..core.exceptions import UpstreamError
from ..core.polling import PollPolicy
from ..services.openai_client import OpenAIRelayClient
from .extractor import latest_message_text
from .poller import poll_run
from .reframer import reframe

logger = logging.getLogger(__name__)


@dataclass
class Turn:
    """Upstream handles for one user message. Discarded after the reply."""

    thread_id: Optional[str] = None
    run_id: Optional[str] = None
    status: Optional[str] = None
    messages: list[dict[str, str]] = field(default_factory=list)


class ChatFlow(ABC):
    name: str = ""
    # Settings fields that must be non-empty before any outbound call
    required_fields: tuple[str, ...] = ()

    def __init__(
        self,
        settings: Settings,
        client: OpenAIRelayClient,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings
        self.client = client
        self.sleep = sleep

    @property
    def end_marker(self) -> bytes:
        return self.settings.end_marker.encode("utf-8")

    def check_configuration(self) -> None:
        self.settings.require(*self.required_fields)

    @abstractmethod
    async def create_conversation_turn(self, message: str) -> Turn:
        """Send the user's message upstream."""

    @abstractmethod
    async def poll_for_completion(self, turn: Turn) -> str:
        """Wait for the turn to finish and return the reply text."""

    @abstractmethod
    def stream_turn(self, message: str) -> AsyncIterator[bytes]:
        """Reply as a byte stream terminated by the end marker."""

    async def reply(self, message: str) -> str:
        turn = await self.create_conversation_turn(message)
        return await self.poll_for_completion(turn)


class RunFlow(ChatFlow):
    """Assistants thread/run flow."""

    name = "run"
    required_fields = ("openai_api_key", "assistant_id")

    def __init__(self, settings: Settings, client: OpenAIRelayClient, **kwargs):
        super().__init__(settings, client, **kwargs)
        self.policy = PollPolicy.from_settings(settings)

    async def create_conversation_turn(self, message: str) -> Turn:
        self.check_configuration()

        thread = await self.client.create_thread()
        thread_id = thread["id"]
        await self.client.add_message(thread_id, message)
        run = await self.client.create_run(
            thread_id, self.settings.assistant_id, self.settings.run_instructions
        )
        logger.info("Started run %s on thread %s", run["id"], thread_id)
        return Turn(thread_id=thread_id, run_id=run["id"], status=run.get("status"))

    async def poll_for_completion(self, turn: Turn) -> str:
        async def fetch_status() -> str:
            run = await self.client.get_run(turn.thread_id, turn.run_id)
            return run.get("status")

        turn.status = await poll_run(
            fetch_status, self.policy, sleep=self.sleep, initial_status=turn.status
        )
        listing = await self.client.list_messages(turn.thread_id, limit=1, order="desc")
        return latest_message_text(listing, self.settings.fallback_reply)

    async def stream_turn(self, message: str) -> AsyncIterator[bytes]:
        # Runs are polled, not streamed: the whole reply goes out as one chunk
        text = await self.reply(message)
        yield text.encode("utf-8")
        yield self.end_marker


class StreamFlow(ChatFlow):
    """Stateless streaming chat-completions flow."""

    name = "stream"
    required_fields = ("openai_api_key",)

    async def create_conversation_turn(self, message: str) -> Turn:
        self.check_configuration()
        return Turn(
            messages=[
                {"role": "system", "content": self.settings.system_prompt},
                {"role": "user", "content": message},
            ]
        )

    async def poll_for_completion(self, turn: Turn) -> str:
        chunks = []
        stream = self._stream(turn.messages)
        try:
            async for chunk in stream:
                chunks.append(chunk)
        finally:
            await stream.aclose()
        # The last chunk is always the end marker
        text = b"".join(chunks[:-1]).decode("utf-8", errors="replace").strip()
        return text or self.settings.fallback_reply

    async def stream_turn(self, message: str) -> AsyncIterator[bytes]:
        turn = await self.create_conversation_turn(message)
        chunks = self._stream(turn.messages)
        try:
            async for chunk in chunks:
                yield chunk
        finally:
            await chunks.aclose()

    async def _stream(self, messages: list[dict[str, str]]) -> AsyncIterator[bytes]:
        async with self.client.stream_chat(messages) as response:
            chunks = reframe(response.aiter_bytes(), self.settings.end_marker)
            try:
                async for chunk in chunks:
                    yield chunk
            except httpx.ReadTimeout:
                logger.warning(
                    "Upstream idle for %.1fs, closing stream", self.settings.stream_idle_timeout
                )
                yield self.end_marker
            except httpx.TransportError as e:
                logger.error("Failed to read stream: %s", e)
                raise UpstreamError(f"Failed to read stream: {e}") from e
            finally:
                await chunks.aclose()


FLOWS = {
    RunFlow.name: RunFlow,
    StreamFlow.name: StreamFlow,
}


def build_flow(
    settings: Settings,
    client: OpenAIRelayClient,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> ChatFlow:
    """Instantiate the flow selected by ``settings.chat_flow``."""
    try:
        flow_cls = FLOWS[settings.chat_flow]
    except KeyError:
        raise ValueError(f"Unknown chat flow: {settings.chat_flow}")
    return flow_cls(settings, client, sleep=sleep)
