"""Main FastAPI application."""
from fastapi import FastAPI
from contextlib import asynccontextmanager

from app.core.dependencies import (
    get_content_generator,
    get_media_devices,
    get_session_manager,
    get_teaching_fetcher,
    get_timer_factory,
)
from app.core.logging import setup_logging
from app.db.database import AsyncSessionLocal, init_db
from app.api import health, calls, teaching


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    await init_db()
    yield
    # Shutdown: stop timers and release media of calls still running
    async with AsyncSessionLocal() as db:
        session_manager = get_session_manager(
            db,
            get_teaching_fetcher(get_content_generator()),
            get_media_devices(),
            get_timer_factory(),
        )
        await session_manager.end_all_sessions(reason="shutdown")


app = FastAPI(
    title="Language Exchange Calls",
    description="Session timer and teaching/learning role switching for language exchange video calls",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router, tags=["health"])
app.include_router(calls.router, tags=["video-calls"])
app.include_router(teaching.router, tags=["teaching"])
