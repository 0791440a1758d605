"""Unit tests for local media handles."""
import pytest

from app.services.call_session.errors import MediaPermissionDeniedError
from app.services.call_session.media import (
    LocalMedia,
    MediaPermissions,
    MediaTrack,
    PermissionReportedMediaDevices,
)


class TestLocalMedia:
    """Test media handle ownership."""

    def test_release_stops_tracks_once(self):
        """Repeated release() calls release exactly once."""
        media = LocalMedia("user-ana", [MediaTrack("video"), MediaTrack("audio")])

        assert media.release() is True
        assert media.release() is False
        assert media.release() is False

        assert media.release_count == 1
        assert all(track.stopped for track in media.tracks)

    def test_toggle_track(self):
        """Toggling flips the enabled flag; a stopped track stays off."""
        media = LocalMedia("user-ana", [MediaTrack("video"), MediaTrack("audio")])

        assert media.toggle("video") is False
        assert media.toggle("video") is True
        assert media.toggle("screen") is False

        media.release()
        assert media.toggle("audio") is False

    @pytest.mark.asyncio
    async def test_scoped_release_on_error(self):
        """Leaving an async with block releases, even on an exception."""
        media = LocalMedia("user-ana", [MediaTrack("audio")])

        with pytest.raises(RuntimeError):
            async with media:
                raise RuntimeError("transport blew up")

        assert media.released is True


class TestPermissionReportedMediaDevices:
    """Test media acquisition from reported permissions."""

    @pytest.mark.asyncio
    async def test_acquire_granted(self):
        """Both permissions granted: camera and microphone tracks."""
        devices = PermissionReportedMediaDevices()
        media = await devices.acquire("user-ana", MediaPermissions())

        assert media.owner_id == "user-ana"
        assert media.track("video") is not None
        assert media.track("audio") is not None

    @pytest.mark.asyncio
    async def test_acquire_denied_has_actionable_message(self):
        """Denial names the device and tells the user what to do."""
        devices = PermissionReportedMediaDevices()

        with pytest.raises(MediaPermissionDeniedError) as exc_info:
            await devices.acquire("user-ana", MediaPermissions(camera=False))

        assert exc_info.value.missing == ["camera"]
        assert "allow camera and microphone access" in str(exc_info.value)
