"""
ORI Relay API Routes
====================

Endpoints:
  - POST /chat          reply as plain text
  - POST /chat/stream   reply as a chunked plain-text stream ending with the end marker
  - POST /assistant     multi-action Assistants proxy (JSON, upstream status mirrored)
  - GET  /health

OPTIONS on the POST routes is answered by PreflightMiddleware (api/middleware.py).
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from typing import Any, Optional, get_args

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse

from ..core.config import Settings, get_settings
from ..core.exceptions import RelayError
from ..llm.flows import build_flow
from ..schemas.requests import AssistantAction, AssistantActionRequest, ChatRequest
from ..services.openai_client import OpenAIRelayClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])

ASSISTANT_ACTIONS = set(get_args(AssistantAction))

# POST routes that also answer OPTIONS preflights
RELAY_PATHS = ("/chat", "/chat/stream", "/assistant")

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


# ============================================================================
# DEPENDENCIES
# ============================================================================
# Tests override these through app.dependency_overrides.
# ============================================================================


def get_upstream_http_client() -> Optional[httpx.AsyncClient]:
    """Shared upstream HTTP client. None makes each request open its own."""
    return None


def get_sleep():
    """Sleep used between run status checks."""
    return asyncio.sleep


def log_chat_trace(
    *,
    request_id: str,
    route: str,
    user_message: str,
    flow: str,
    status_code: int,
    started: float,
) -> None:
    """One compact JSON line per request (Vercel captures stdout/stderr)."""
    compact_trace = {
        "id": request_id,
        "route": route,
        "q": user_message[:100],  # Truncate for readability
        "flow": flow,
        "status": status_code,
        "ms": round((time.perf_counter() - started) * 1000),
    }
    logger.info("[TRACE] %s", json.dumps(compact_trace, ensure_ascii=False))


async def _read_json(request: Request) -> Any:
    """Decoded body, or an empty dict when the body is not JSON."""
    try:
        return await request.json()
    except ValueError:
        logger.debug("Unreadable JSON body, treating as empty")
        return {}


# ============================================================================
# CHAT
# ============================================================================


@router.post("/chat")
async def chat(
    request: Request,
    settings: Settings = Depends(get_settings),
    http_client: Optional[httpx.AsyncClient] = Depends(get_upstream_http_client),
    sleep=Depends(get_sleep),
):
    request_id = str(uuid.uuid4())[:8]
    started = time.perf_counter()
    chat_request = ChatRequest.from_body(await _read_json(request))

    status_code = status.HTTP_200_OK
    try:
        async with OpenAIRelayClient(settings, http_client) as client:
            flow = build_flow(settings, client, sleep=sleep)
            text = await flow.reply(chat_request.message)
    except RelayError as e:
        status_code = e.status_code
        logger.warning("[%s] chat failed (%d): %s", request_id, e.status_code, e.message)
        raise
    except Exception:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        logger.error("[%s] chat error", request_id, exc_info=True)
        raise
    finally:
        log_chat_trace(
            request_id=request_id,
            route="chat",
            user_message=chat_request.message,
            flow=settings.chat_flow,
            status_code=status_code,
            started=started,
        )

    return PlainTextResponse(text, headers={"Cache-Control": "no-cache"})


@router.post("/chat/stream")
async def chat_stream(
    request: Request,
    settings: Settings = Depends(get_settings),
    http_client: Optional[httpx.AsyncClient] = Depends(get_upstream_http_client),
    sleep=Depends(get_sleep),
):
    request_id = str(uuid.uuid4())[:8]
    started = time.perf_counter()
    chat_request = ChatRequest.from_body(await _read_json(request))

    client = OpenAIRelayClient(settings, http_client)
    flow = build_flow(settings, client, sleep=sleep)
    chunks = flow.stream_turn(chat_request.message)

    # Pull the first chunk before committing to a 200 so that configuration
    # and upstream errors still get their own status code
    try:
        first = await anext(chunks)
    except StopAsyncIteration:
        first = None
    except RelayError as e:
        await client.aclose()
        logger.warning("[%s] stream failed (%d): %s", request_id, e.status_code, e.message)
        log_chat_trace(
            request_id=request_id,
            route="chat/stream",
            user_message=chat_request.message,
            flow=flow.name,
            status_code=e.status_code,
            started=started,
        )
        raise
    except Exception:
        await client.aclose()
        raise

    async def body():
        try:
            if first is None:
                return
            yield first
            async for chunk in chunks:
                yield chunk
        except (RelayError, httpx.HTTPError) as e:
            # Headers are gone already; finish the stream instead of hanging the caller
            logger.error("[%s] upstream stream broke: %s", request_id, e)
            yield flow.end_marker
        finally:
            await chunks.aclose()
            await client.aclose()
            log_chat_trace(
                request_id=request_id,
                route="chat/stream",
                user_message=chat_request.message,
                flow=flow.name,
                status_code=status.HTTP_200_OK,
                started=started,
            )

    return StreamingResponse(
        body(), media_type="text/plain; charset=utf-8", headers=STREAM_HEADERS
    )


# ============================================================================
# MULTI-ACTION ASSISTANT PROXY
# ============================================================================


def _assistant_call(
    body: AssistantActionRequest, settings: Settings
) -> tuple[str, str, Optional[dict], Optional[dict]]:
    """Map an action onto (method, path, json, params)."""
    if body.action not in ASSISTANT_ACTIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown action: {body.action}",
        )

    if body.action == "create_thread":
        return "POST", "/threads", {}, None

    if not body.thread_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"thread_id is required for {body.action}",
        )

    if body.action == "add_message":
        return (
            "POST",
            f"/threads/{body.thread_id}/messages",
            {"role": "user", "content": body.message},
            None,
        )

    if body.action == "create_run":
        settings.require("assistant_id")
        payload = {"assistant_id": settings.assistant_id}
        if settings.run_instructions:
            payload["instructions"] = settings.run_instructions
        return "POST", f"/threads/{body.thread_id}/runs", payload, None

    if body.action == "get_run":
        if not body.run_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="run_id is required for get_run",
            )
        return "GET", f"/threads/{body.thread_id}/runs/{body.run_id}", None, None

    # list_messages
    return "GET", f"/threads/{body.thread_id}/messages", None, {"limit": 1, "order": "desc"}


@router.post("/assistant")
async def assistant_action(
    request: Request,
    settings: Settings = Depends(get_settings),
    http_client: Optional[httpx.AsyncClient] = Depends(get_upstream_http_client),
):
    body = AssistantActionRequest.from_body(await _read_json(request))
    settings.require("openai_api_key")
    method, path, payload, params = _assistant_call(body, settings)

    async with OpenAIRelayClient(settings, http_client) as client:
        upstream = await client.forward(method, path, json=payload, params=params)

    try:
        data = upstream.json()
    except ValueError:
        data = {"error": upstream.text}

    logger.info("assistant %s -> %d", body.action, upstream.status_code)
    return JSONResponse(
        status_code=upstream.status_code,
        content={
            "action": body.action,
            "ok": upstream.is_success,
            "status": upstream.status_code,
            "data": data,
        },
    )


# ============================================================================
# HEALTH
# ============================================================================


@router.get("/health")
async def health(settings: Settings = Depends(get_settings)):
    """Health check endpoint. Reports which secrets are set, never their values."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "flow": settings.chat_flow,
        "configured": {
            "openai_api_key": bool(settings.openai_api_key),
            "assistant_id": bool(settings.assistant_id),
        },
    }
