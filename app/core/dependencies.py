"""FastAPI dependencies."""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.services.call_session.manager import CallSessionManager, TimerFactory, default_timer_factory
from app.services.call_session.media import MediaDevices, PermissionReportedMediaDevices
from app.services.teaching.fetcher import TeachingAidFetcher
from app.services.teaching.generator import ContentGenerator, OpenAITeachingGenerator


def get_content_generator() -> ContentGenerator:
    """Get teaching question generator instance."""
    return OpenAITeachingGenerator()


def get_teaching_fetcher(
    generator: ContentGenerator = Depends(get_content_generator),
) -> TeachingAidFetcher:
    """Get teaching aid fetcher instance."""
    return TeachingAidFetcher(generator)


def get_media_devices() -> MediaDevices:
    """Get media device provider instance."""
    return PermissionReportedMediaDevices()


def get_timer_factory() -> TimerFactory:
    """Get the factory used to build call timers."""
    return default_timer_factory


def get_session_manager(
    db: AsyncSession = Depends(get_db),
    fetcher: TeachingAidFetcher = Depends(get_teaching_fetcher),
    media_devices: MediaDevices = Depends(get_media_devices),
    timer_factory: TimerFactory = Depends(get_timer_factory),
) -> CallSessionManager:
    """Get call session manager."""
    return CallSessionManager(db, fetcher, media_devices, timer_factory)
