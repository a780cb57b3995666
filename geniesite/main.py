"""GenieSite — FastAPI app that streams website generations as SSE.

Loads config.yaml on startup. Exposes /api/generate (and the legacy
/api/generate-website alias) for SSE streaming, plus health and root
informational endpoints.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError

from geniesite import __version__
from geniesite.config import get_config, load_config
from geniesite.events import encode_stream
from geniesite.model import open_part_stream
from geniesite.relay import relay_generation
from geniesite.schemas import GenerationRequest

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the effective config on startup."""
    config = get_config()
    logger.info(
        f"GenieSite started (model={config.model}, port={config.port}, "
        f"origins={config.allowed_origins})"
    )
    yield
    logger.info("GenieSite shutting down")


# Load config early so we can read allowed_origins for CORS middleware.
_boot_config = load_config()

app = FastAPI(title="GenieSite API Server", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_boot_config.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Cache-Control"],
)

# Swapped out in tests for a fake upstream.
app.state.part_source = open_part_stream


# ---------------------------------------------------------------------------
# Generation endpoints
# ---------------------------------------------------------------------------


async def _read_generation_request(request: Request) -> GenerationRequest | None:
    """Parse the JSON body; None when it is not an object with a non-empty prompt."""
    try:
        payload = await request.json()
        return GenerationRequest.model_validate(payload)
    except (ValueError, ValidationError):
        return None


@app.post("/api/generate")
async def generate(request: Request):
    """Generate a website from a prompt.

    Streams response as Server-Sent Events (SSE). Once the stream is open,
    every failure is reported as a terminal `error` event.
    """
    generation = await _read_generation_request(request)
    if generation is None:
        return JSONResponse(status_code=400, content={"error": "Prompt is required"})

    config = get_config()
    events = relay_generation(generation, config, source=request.app.state.part_source)

    return StreamingResponse(
        encode_stream(events),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@app.post("/api/generate-website")
async def generate_website(request: Request):
    """Legacy endpoint, kept for older clients."""
    logger.warning("Legacy endpoint called, delegating to /api/generate")
    return await generate(request)


# ---------------------------------------------------------------------------
# Operational endpoints
# ---------------------------------------------------------------------------


@app.get("/health")
async def health():
    """Liveness check."""
    return {
        "status": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "port": get_config().port,
    }


@app.get("/")
async def root():
    """List the available routes."""
    return {
        "message": "GenieSite API Server",
        "version": __version__,
        "endpoints": {
            "generate": "POST /api/generate",
            "health": "GET /health",
        },
    }
