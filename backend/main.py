"""
ORI Relay API
=============

Main entry point for the Orion HSE assistant relay.

Features:
- Assistants thread/run flow with bounded status polling
- Streaming chat-completions flow reframed to plain text
- Multi-action Assistants proxy for clients that drive the run themselves
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

# Import components
from app.api.middleware import PreflightMiddleware
from app.api.routes import RELAY_PATHS, router as api_router
from app.core.config import get_settings
from app.core.exceptions import RelayError

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Chat flow: {settings.chat_flow}")
    logger.info(f"Assistants API: {settings.assistants_beta}")
    logger.info(
        f"Polling: {settings.poll_max_attempts} x {settings.poll_interval_ms}ms"
    )
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set, chat requests will fail")

    yield

    logger.info("Shutting down ORI Relay.")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Relay between a chat frontend and the OpenAI Assistants / Chat APIs",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url=None,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Runs before CORSMiddleware: preflights get an empty 204
app.add_middleware(
    PreflightMiddleware,
    paths=[settings.api_prefix + path for path in RELAY_PATHS],
)


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    return PlainTextResponse(exc.message, status_code=exc.status_code)


# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
