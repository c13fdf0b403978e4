"""
LiveKit room administration (server API).

Used to delete a media room when its voice session ends, and by the
cleanup script to list and remove stale rooms.
"""

from typing import List

import structlog
from livekit.api import LiveKitAPI, DeleteRoomRequest, ListRoomsRequest

from src.config.settings import LiveKitSettings

logger = structlog.get_logger("livekit")


class LiveKitRoomAdmin:
    """Thin async wrapper over the LiveKit room service."""

    def __init__(self, settings: LiveKitSettings):
        self._settings = settings

    def _api(self) -> LiveKitAPI:
        return LiveKitAPI(
            url=self._settings.url,
            api_key=self._settings.api_key,
            api_secret=self._settings.api_secret,
        )

    async def delete_room(self, room_name: str) -> bool:
        """
        Delete a room. Returns False when the call fails; the room may
        already be gone.
        """
        lk_api = self._api()
        try:
            await lk_api.room.delete_room(DeleteRoomRequest(room=room_name))
            logger.info("room_deleted", room_name=room_name)
            return True
        except Exception as exc:
            logger.warning("room_delete_failed", room_name=room_name, error=str(exc))
            return False
        finally:
            await lk_api.aclose()

    async def list_rooms(self) -> List:
        lk_api = self._api()
        try:
            result = await lk_api.room.list_rooms(ListRoomsRequest())
            return list(result.rooms)
        finally:
            await lk_api.aclose()
