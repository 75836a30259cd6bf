"""Ideate — FastAPI app for the workspace's AI chat sidebar.

Loads config.yaml on startup. Exposes /api/chat, which routes a request to
the drawing, code or markdown pipeline and streams the result as
Server-Sent Events, plus operational endpoints for health, config viewing,
and hot-reload.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from ideate.agents.cache import invalidate as invalidate_cache
from ideate.agents.gateway import AgentGateway
from ideate.config import get_config, load_config, reload_config
from ideate.errors import InvalidRequestError, UnknownModeError
from ideate.runtime import check_mode, execute_chat
from ideate.schemas import ChatRequest
from ideate.streaming import SSE_DONE, STREAM_HEADERS, encode_sse

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load config on startup."""
    config = load_config()
    logger.info(
        f"Ideate started (origins={config.allowed_origins}, "
        f"auth={'enabled' if config.api_key else 'disabled'}, "
        f"unknown_mode={config.unknown_mode})"
    )
    yield
    logger.info("Ideate shutting down")


# Load config early so we can read allowed_origins for CORS middleware.
_boot_config = load_config()

app = FastAPI(title="Ideate", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_boot_config.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


async def verify_api_key(request: Request) -> None:
    """Validate X-API-Key header against the configured key.
    If no api_key is set in config, auth is disabled (dev mode).
    """
    config = get_config()
    if not config.api_key:
        return  # Auth disabled — no key configured

    key = request.headers.get("X-API-Key")
    if key != config.api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


def get_gateway() -> AgentGateway:
    """Gateway bound to the current config."""
    return AgentGateway(get_config())


# ---------------------------------------------------------------------------
# Chat endpoint
# ---------------------------------------------------------------------------


@app.post("/api/chat", dependencies=[Depends(verify_api_key)])
async def chat(request: ChatRequest, gateway: AgentGateway = Depends(get_gateway)):
    """Run the pipeline for the request's type.

    Streams response as Server-Sent Events (SSE). Generation failures are
    reported inside the stream; the response itself always completes.
    """
    config = get_config()

    try:
        check_mode(request, config)
    except (UnknownModeError, InvalidRequestError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    async def stream():
        async for event in execute_chat(request, gateway, config):
            yield encode_sse(event)
        yield SSE_DONE

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


# ---------------------------------------------------------------------------
# Operational endpoints
# ---------------------------------------------------------------------------


@app.get("/health")
async def health():
    """Liveness check."""
    config = get_config()
    return {
        "status": "healthy",
        "agent_overrides": sorted(config.agents),
    }


@app.get("/config")
async def get_current_config():
    """Return current config as JSON, with the API key redacted."""
    return get_config().public_dump()


@app.post("/reload", dependencies=[Depends(verify_api_key)])
async def reload():
    """Hot-reload config.yaml without restart and drop cached model clients."""
    try:
        new_config = reload_config()
        invalidate_cache()
        return {
            "status": "reloaded",
            "agent_overrides": sorted(new_config.agents),
        }
    except Exception as e:
        logger.error(f"Reload failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Reload failed: {e}")
