import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import (
    CHECKPOINTS,
    CHECKPOINT_INTERVAL_SECONDS,
    CORS_ORIGINS,
    EVICTION_SWEEP_SECONDS,
    JOB_RETENTION_SECONDS,
    LOG_FORMAT,
    LOG_LEVEL,
)
from database import Base, SessionLocal
from registry import JobRegistry
from repository import VideoStore
from routers import generation, videos
from services import GenerationService
from tasks import evict_expired_jobs

# --------------------------------------------------------------------------
# --- Configuration & Setup ---
# --------------------------------------------------------------------------

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)


def create_app(
    session_factory=SessionLocal,
    interval: float = CHECKPOINT_INTERVAL_SECONDS,
    retention_seconds: float = JOB_RETENTION_SECONDS,
    sweep_seconds: float = EVICTION_SWEEP_SECONDS,
    checkpoints=CHECKPOINTS,
) -> FastAPI:
    """Build the API with its own job registry and video store."""
    registry = JobRegistry(retention_seconds=retention_seconds, checkpoints=checkpoints)
    store = VideoStore(session_factory)
    service = GenerationService(registry, store, interval=interval)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        with session_factory() as db:
            Base.metadata.create_all(bind=db.get_bind())
        sweeper = asyncio.create_task(evict_expired_jobs(registry, sweep_seconds))
        logging.info("🚀 Video generation API started")
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
            await service.shutdown()
            logging.info("Video generation API stopped")

    app = FastAPI(
        title="Product Video Generator",
        description="Starts product video generation jobs and tracks their progress.",
        lifespan=lifespan,
    )
    app.state.generation_service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(generation.router)
    app.include_router(videos.router)

    @app.get("/")
    def read_root():
        return {"status": "🚀 Product video generator is running!"}

    return app


app = create_app()
