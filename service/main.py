"""FastAPI server entrypoint for the ABR selection service.

REST API driving per-session quality decisions, queue eviction and
allocation checkpoint planning.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, Literal, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from abr.allocation import get_allocation_checkpoints
from abr.exceptions import ABRError, SessionNotFoundError
from abr.selection import BufferState, PendingChunk
from service.di_container import cleanup_container, get_container
from service.factory import SelectionSession
from service.logging_config import get_logger, setup_logging

# Initialize logging
setup_logging()
logger = get_logger(__name__)

# Global startup timestamp
_startup_time = 0.0


class CheckpointRequest(BaseModel):
    track_bitrates: list[list[int]] = Field(min_length=1)


class SessionRequest(BaseModel):
    """Session to create.

    companion_tracks lists the bitrates (kbps) of track groups played
    alongside the video, such as audio or subtitles.
    """

    video_id: str
    strategy: Optional[Literal["utility", "policy"]] = None
    companion_tracks: list[list[float]] = Field(default_factory=list)


class DecisionRequest(BaseModel):
    """Player state reported before the next chunk request."""

    playback_position_us: int = Field(ge=0)
    buffered_duration_us: int = Field(ge=0)
    available_duration_us: Optional[int] = Field(default=None, ge=0)
    bandwidth_estimate_bps: Optional[float] = Field(default=None, ge=0)
    last_load_duration_ms: Optional[int] = Field(default=None, ge=0)
    last_load_was_media: bool = True
    playback_speed: Optional[float] = Field(default=None, gt=0)


class QueuedChunk(BaseModel):
    start_time_us: int
    index: int = Field(ge=0, description="Selection index of the chunk's variant")


class QueueRequest(BaseModel):
    playback_position_us: int = Field(ge=0)
    chunks: list[QueuedChunk] = Field(default_factory=list)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager (startup/shutdown).

    Args:
        app: FastAPI application instance

    Yields:
        Control during application lifetime
    """
    global _startup_time

    # Startup
    logger.info("=" * 60)
    logger.info("Starting ABR selection service...")
    _startup_time = time.time()

    container = get_container()
    config = container.get_config()

    logger.info(f"Environment: {config.env}")
    logger.info(f"Host: {config.host}:{config.port}")
    logger.info(f"Default strategy: {config.default_strategy}")

    catalog = container.get_catalog()
    logger.info(f"Video catalog: {len(catalog.list_videos())} videos")

    if config.default_strategy == "policy":
        model = container.get_policy_model()
        logger.info(f"Policy model: {config.model_path} on {getattr(model, 'device', 'cpu')}")

    logger.info("ABR selection service ready!")
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info("Shutting down ABR selection service...")
    cleanup_container()
    logger.info("ABR selection service stopped")


# Create FastAPI app
app = FastAPI(
    title="ABR Selector API",
    version="0.1.0",
    description="Per-chunk adaptive bitrate quality selection",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SessionNotFoundError)
async def session_not_found_handler(request: Request, exc: SessionNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ABRError)
async def abr_error_handler(request: Request, exc: ABRError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def _session_status(session: SelectionSession) -> dict[str, Any]:
    return {
        "video_id": session.video_id,
        **session.controller.status(),
        "reserved_bandwidth_bps": session.group.reserved_bandwidth_bps,
    }


# REST API Endpoints


@app.get("/api/videos")
async def get_videos() -> list[dict[str, Any]]:
    """Get the video catalog.

    Returns:
        List of video metadata
    """
    return get_container().get_catalog().list_videos()


@app.post("/api/checkpoints")
async def plan_checkpoints(request: CheckpointRequest) -> dict[str, Any]:
    """Plan allocation checkpoints for concurrent selections.

    Returns:
        Checkpoint table per selection
    """
    for bitrates in request.track_bitrates:
        if not bitrates or any(b <= 0 for b in bitrates):
            raise HTTPException(status_code=422, detail="Bitrates must be non-empty and positive")

    checkpoints = get_allocation_checkpoints(request.track_bitrates)
    return {
        "checkpoints": [[list(pair) for pair in table] for table in checkpoints],
    }


@app.post("/api/sessions", status_code=201)
async def create_session(request: SessionRequest) -> dict[str, Any]:
    """Create a selection session for a catalog video.

    Returns:
        Session status including the initial state
    """
    session = get_container().create_session(
        request.video_id, request.strategy, request.companion_tracks
    )
    session.controller.enable()
    return _session_status(session)


@app.post("/api/sessions/{session_id}/decision")
async def make_decision(session_id: str, request: DecisionRequest) -> dict[str, Any]:
    """Apply the reported player state and run one selection decision.

    Returns:
        Selected index, reason, bitrate, reward and allocated bandwidth
    """
    session = get_container().get_session(session_id)
    controller = session.controller

    if request.bandwidth_estimate_bps is not None:
        session.meter.update(request.bandwidth_estimate_bps)
    if request.last_load_duration_ms is not None:
        session.load_info.record_load(request.last_load_duration_ms, request.last_load_was_media)
    if request.playback_speed is not None:
        controller.on_playback_speed_changed(request.playback_speed)

    result = controller.update_selected_track(
        BufferState(
            playback_position_us=request.playback_position_us,
            buffered_duration_us=request.buffered_duration_us,
            available_duration_us=request.available_duration_us,
        )
    )
    variant = controller.selected_variant()

    return {
        "session_id": session_id,
        "selected_index": result.index,
        "reason": result.reason.value,
        "bitrate_kbps": variant.bitrate_kbps,
        "reward": result.reward,
        "allocated_bandwidth_bps": controller.get_allocated_bandwidth(),
    }


@app.post("/api/sessions/{session_id}/queue")
async def evaluate_queue(session_id: str, request: QueueRequest) -> dict[str, Any]:
    """Decide how many queued chunks to keep.

    Returns:
        Number of chunks to keep and number to discard
    """
    session = get_container().get_session(session_id)
    ladder = session.controller.ladder

    queue = []
    for chunk in request.chunks:
        if chunk.index >= len(ladder):
            raise HTTPException(
                status_code=422,
                detail=f"Chunk index {chunk.index} outside ladder of {len(ladder)} variants",
            )
        queue.append(
            PendingChunk(
                start_time_us=chunk.start_time_us, variant=ladder.variant_for_index(chunk.index)
            )
        )

    queue_size = session.controller.evaluate_queue_size(request.playback_position_us, queue)
    return {
        "session_id": session_id,
        "queue_size": queue_size,
        "discarded": len(queue) - queue_size,
    }


@app.get("/api/sessions/{session_id}")
async def get_session(session_id: str) -> dict[str, Any]:
    """Get session state and QoE tally."""
    return _session_status(get_container().get_session(session_id))


@app.delete("/api/sessions/{session_id}")
async def delete_session(session_id: str) -> dict[str, Any]:
    """Close a session.

    Returns:
        Final QoE tally of the session
    """
    session = get_container().remove_session(session_id)
    return {"session_id": session_id, "qoe": session.controller.qoe_snapshot()}


@app.get("/api/metrics")
async def get_metrics() -> dict[str, Any]:
    """Get decision metrics.

    Returns:
        Dictionary with latency percentiles, counters and memory usage
    """
    container = get_container()
    snapshot = container.get_metrics().get_snapshot()
    snapshot["active_sessions"] = container.session_count()
    return snapshot


# Health check endpoint


@app.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": "abr-selector",
        "uptime_sec": time.time() - _startup_time if _startup_time else 0.0,
    }


def run() -> None:
    """Run the service with uvicorn using the configured host and port."""
    import uvicorn

    config = get_container().get_config()
    uvicorn.run(app, host=config.host, port=config.port, log_config=None)
