"""
Unit tests for LiveKitRoomConnection outside a live room.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from livekit import rtc

from src.client.room import LiveKitRoomConnection, RoomEvent, RoomEventType
from src.session.exceptions import NetworkError, UpstreamError


class TestLiveKitRoomConnection:

    @pytest.mark.asyncio
    async def test_microphone_requires_room(self):
        conn = LiveKitRoomConnection()
        with pytest.raises(NetworkError):
            await conn.set_microphone_enabled(True)

    @pytest.mark.asyncio
    async def test_disconnect_without_room_is_noop(self):
        conn = LiveKitRoomConnection()
        await conn.disconnect()
        await conn.disconnect()

    @pytest.mark.asyncio
    async def test_emit_queues_events_in_order(self):
        conn = LiveKitRoomConnection()
        conn.emit(RoomEvent(RoomEventType.RECONNECTING))
        conn.emit(RoomEvent(RoomEventType.DISCONNECTED, reason="timeout"))
        first = await conn.events.get()
        second = await conn.events.get()
        assert first.type is RoomEventType.RECONNECTING
        assert second.reason == "timeout"


def _fake_rtc_room(connect_side_effect):
    room = MagicMock()
    room.connect = AsyncMock(side_effect=connect_side_effect)
    room.disconnect = AsyncMock()
    return room


class TestFailedJoin:

    @pytest.mark.asyncio
    async def test_rejected_join_disconnects_room(self):
        rtc_room = _fake_rtc_room(rtc.ConnectError("token rejected"))
        with patch("src.client.room.rtc.Room", return_value=rtc_room):
            conn = LiveKitRoomConnection()
            with pytest.raises(UpstreamError):
                await conn.connect("wss://lk.test", "token")
        rtc_room.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unreachable_server_disconnects_room(self):
        rtc_room = _fake_rtc_room(OSError("connection refused"))
        with patch("src.client.room.rtc.Room", return_value=rtc_room):
            conn = LiveKitRoomConnection()
            with pytest.raises(NetworkError):
                await conn.connect("wss://lk.test", "token")
        rtc_room.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancelled_join_disconnects_room(self):
        async def hang(*args, **kwargs):
            await asyncio.sleep(10)

        rtc_room = _fake_rtc_room(hang)
        with patch("src.client.room.rtc.Room", return_value=rtc_room):
            conn = LiveKitRoomConnection()
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(conn.connect("wss://lk.test", "token"), 0.05)
        rtc_room.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_join_emits_no_events(self):
        rtc_room = _fake_rtc_room(OSError("connection refused"))
        with patch("src.client.room.rtc.Room", return_value=rtc_room):
            conn = LiveKitRoomConnection()
            with pytest.raises(NetworkError):
                await conn.connect("wss://lk.test", "token")
        assert conn.events.empty()
