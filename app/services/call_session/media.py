"""Local media device handles."""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional
from pydantic import BaseModel

from app.services.call_session.errors import MediaPermissionDeniedError

logger = logging.getLogger(__name__)


class MediaPermissions(BaseModel):
    """Device permissions reported by the participant's client."""

    camera: bool = True
    microphone: bool = True


class MediaTrack:
    """A single camera or microphone track."""

    def __init__(self, kind: str):
        self.kind = kind  # "video" or "audio"
        self.enabled = True
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True
        self.enabled = False


class LocalMedia:
    """
    Camera/microphone handles owned by one call session.

    ``release()`` stops every track exactly once no matter how many exit
    paths call it. Also usable as ``async with`` for scoped acquisition.
    """

    def __init__(self, owner_id: str, tracks: List[MediaTrack]):
        self.owner_id = owner_id
        self.tracks = tracks
        self.release_count = 0

    @property
    def released(self) -> bool:
        return self.release_count > 0

    def track(self, kind: str) -> Optional[MediaTrack]:
        for track in self.tracks:
            if track.kind == kind:
                return track
        return None

    def toggle(self, kind: str) -> bool:
        """Flip a track on or off; returns the new enabled state."""
        track = self.track(kind)
        if track is None or track.stopped:
            return False
        track.enabled = not track.enabled
        return track.enabled

    def release(self) -> bool:
        """Stop all tracks. Returns False if already released."""
        if self.released:
            return False
        for track in self.tracks:
            track.stop()
        self.release_count += 1
        logger.info(f"[MEDIA] Released {len(self.tracks)} local tracks for user {self.owner_id}")
        return True

    async def __aenter__(self) -> "LocalMedia":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()


class MediaDevices(ABC):
    """Abstract source of local media handles."""

    @abstractmethod
    async def acquire(self, user_id: str, permissions: MediaPermissions) -> LocalMedia:
        """Acquire camera and microphone, or raise MediaPermissionDeniedError."""
        pass


class PermissionReportedMediaDevices(MediaDevices):
    """Builds handles from the permissions the client says it was granted."""

    async def acquire(self, user_id: str, permissions: MediaPermissions) -> LocalMedia:
        missing = []
        if not permissions.camera:
            missing.append("camera")
        if not permissions.microphone:
            missing.append("microphone")
        if missing:
            logger.warning(f"[MEDIA] Permission denied for user {user_id}: {missing}")
            raise MediaPermissionDeniedError(user_id, missing)

        return LocalMedia(user_id, [MediaTrack("video"), MediaTrack("audio")])
