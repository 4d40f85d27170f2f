"""
OpenAI REST client used by the relay.

Thin wrapper over ``httpx.AsyncClient`` for the Assistants (threads / runs)
endpoints and the streaming chat-completions endpoint. Every non-2xx answer
becomes an UpstreamError; nothing is retried.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import httpx

from ..core.config import Settings
from ..core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class OpenAIRelayClient:
    """Outbound calls to the OpenAI API with a static bearer key."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.base_url = settings.openai_api_base.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=settings.request_timeout)

    async def __aenter__(self) -> "OpenAIRelayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        # Injected clients belong to the caller
        if self._owns_client:
            await self.client.aclose()

    def _headers(self, *, beta: bool = True) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.settings.openai_api_key}",
            "Content-Type": "application/json",
        }
        if beta:
            headers["OpenAI-Beta"] = self.settings.assistants_beta
        return headers

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _call(
        self,
        step: str,
        method: str,
        path: str,
        *,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        require_id: bool = False,
    ) -> dict[str, Any]:
        try:
            response = await self.client.request(
                method, self._url(path), headers=self._headers(), json=json, params=params
            )
        except httpx.TransportError as e:
            logger.error("Failed to %s: %s", step, e)
            raise UpstreamError(f"Failed to {step}: {e}") from e
        logger.debug("%s %s -> %d", method, path, response.status_code)
        if response.is_error:
            logger.error("Failed to %s: upstream returned %d", step, response.status_code)
            raise UpstreamError(
                f"Failed to {step}: {response.text}", upstream_status=response.status_code
            )
        try:
            data = response.json()
        except ValueError:
            logger.error("Failed to %s: upstream body is not JSON", step)
            raise UpstreamError(
                f"Failed to {step}: invalid JSON", upstream_status=response.status_code
            )
        if not isinstance(data, dict):
            raise UpstreamError(
                f"Failed to {step}: invalid JSON", upstream_status=response.status_code
            )
        if require_id and not data.get("id"):
            logger.error("Failed to %s: upstream answer has no id", step)
            raise UpstreamError(
                f"Failed to {step}: response has no id", upstream_status=response.status_code
            )
        return data

    # ------------------------------------------------------------------
    # Assistants: threads / messages / runs
    # ------------------------------------------------------------------

    async def create_thread(self) -> dict[str, Any]:
        return await self._call(
            "create thread", "POST", "/threads", json={}, require_id=True
        )

    async def add_message(self, thread_id: str, content: str) -> dict[str, Any]:
        return await self._call(
            "add message",
            "POST",
            f"/threads/{thread_id}/messages",
            json={"role": "user", "content": content},
        )

    async def create_run(
        self, thread_id: str, assistant_id: str, instructions: Optional[str] = None
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"assistant_id": assistant_id}
        if instructions:
            body["instructions"] = instructions
        return await self._call(
            "start run", "POST", f"/threads/{thread_id}/runs", json=body, require_id=True
        )

    async def get_run(self, thread_id: str, run_id: str) -> dict[str, Any]:
        return await self._call("check run", "GET", f"/threads/{thread_id}/runs/{run_id}")

    async def list_messages(
        self, thread_id: str, *, limit: int = 1, order: str = "desc"
    ) -> dict[str, Any]:
        return await self._call(
            "read messages",
            "GET",
            f"/threads/{thread_id}/messages",
            params={"limit": limit, "order": order},
        )

    async def forward(
        self, method: str, path: str, *, json: Optional[dict] = None, params: Optional[dict] = None
    ) -> httpx.Response:
        """Raw stateful call; the caller mirrors status and body."""
        try:
            return await self.client.request(
                method, self._url(path), headers=self._headers(), json=json, params=params
            )
        except httpx.TransportError as e:
            logger.error("Failed to forward %s %s: %s", method, path, e)
            raise UpstreamError(f"Failed to forward {method} {path}: {e}") from e

    # ------------------------------------------------------------------
    # Chat completions (stateless, streamed)
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def stream_chat(self, messages: list[dict[str, str]]) -> AsyncIterator[httpx.Response]:
        """Open a streaming completion; the connection closes when the block exits."""
        timeout = httpx.Timeout(
            self.settings.request_timeout, read=self.settings.stream_idle_timeout
        )
        payload = {
            "model": self.settings.chat_model,
            "messages": messages,
            "stream": True,
        }
        request = self.client.build_request(
            "POST",
            self._url("/chat/completions"),
            headers=self._headers(beta=False),
            json=payload,
            timeout=timeout,
        )
        try:
            response = await self.client.send(request, stream=True)
        except httpx.TransportError as e:
            logger.error("Failed to start stream: %s", e)
            raise UpstreamError(f"Failed to start stream: {e}") from e

        try:
            if response.is_error:
                body = (await response.aread()).decode("utf-8", errors="replace")
                logger.error("Failed to start stream: upstream returned %d", response.status_code)
                raise UpstreamError(
                    f"Failed to start stream: {body}", upstream_status=response.status_code
                )
            yield response
        finally:
            await response.aclose()
