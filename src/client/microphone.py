"""
Local microphone capture.

Feeds 16-bit mono PCM from the default input device into a LiveKit
AudioSource. Opening the device is where access is refused or found
unavailable; both surface as PermissionDenied.
"""

import asyncio
from typing import Optional

import sounddevice as sd
import structlog
from livekit import rtc

from src.session.exceptions import PermissionDenied

logger = structlog.get_logger("client")

SAMPLE_RATE_HZ = 48000
NUM_CHANNELS = 1
FRAME_MS = 10
SAMPLES_PER_FRAME = SAMPLE_RATE_HZ * FRAME_MS // 1000


class SoundDeviceMicrophone:
    """Captures the default (or given) input device with sounddevice."""

    def __init__(self, device: Optional[str] = None):
        self.device = device
        self._stream: Optional[sd.RawInputStream] = None
        self._pending: set = set()

    async def open(self) -> rtc.AudioSource:
        """
        Start capturing.

        Returns:
            AudioSource receiving captured frames

        Raises:
            PermissionDenied: Device missing, busy or access refused
        """
        loop = asyncio.get_running_loop()
        source = rtc.AudioSource(SAMPLE_RATE_HZ, NUM_CHANNELS)

        def _callback(indata, frames, time_info, status):
            if status:
                logger.debug("microphone_status", status=str(status))
            frame = rtc.AudioFrame(
                bytes(indata), SAMPLE_RATE_HZ, NUM_CHANNELS, frames,
            )
            future = asyncio.run_coroutine_threadsafe(source.capture_frame(frame), loop)
            self._pending.add(future)
            future.add_done_callback(self._pending.discard)

        try:
            self._stream = sd.RawInputStream(
                samplerate=SAMPLE_RATE_HZ,
                channels=NUM_CHANNELS,
                dtype="int16",
                blocksize=SAMPLES_PER_FRAME,
                device=self.device,
                callback=_callback,
            )
            self._stream.start()
        except (sd.PortAudioError, ValueError) as e:
            self._stream = None
            logger.warning("microphone_unavailable", device=self.device, error=str(e))
            raise PermissionDenied(f"Microphone unavailable: {e}") from e

        logger.info("microphone_opened", device=self.device or "default")
        return source

    async def close(self) -> None:
        if self._stream is None:
            return
        self._stream.stop()
        self._stream.close()
        self._stream = None
        for future in list(self._pending):
            future.cancel()
        logger.info("microphone_closed")
