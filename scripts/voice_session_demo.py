#!/usr/bin/env python3
"""
Talk to a persona from the terminal.

Connects through a running voice API server, publishes the default
microphone and prints every client state change.

Usage:
    python scripts/voice_session_demo.py adina
    python scripts/voice_session_demo.py rafa --server http://localhost:4000
"""

import argparse
import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

from src.client import LiveKitRoomConnection, SessionClient, VoiceApiClient
from src.client.microphone import SoundDeviceMicrophone
from src.logging_config import setup_logging
from src.session.exceptions import VoiceSessionError
from src.session.models import ConnectionState

load_dotenv()


def print_snapshot(snapshot):
    line = f"[{snapshot.state.value}] audio={'on' if snapshot.audio_enabled else 'off'}"
    if snapshot.room_name:
        line += f" room={snapshot.room_name}"
    if snapshot.last_error:
        line += f" error={snapshot.last_error}"
    print(line)


async def main():
    parser = argparse.ArgumentParser(description="Voice session demo")
    parser.add_argument("persona", choices=["adina", "rafa"])
    parser.add_argument("--server", default=os.getenv("VOICE_API_URL", "http://localhost:4000"))
    parser.add_argument("--device", default=None, help="Input device name or index")
    parser.add_argument("--timeout", type=float, default=20.0, help="Connect timeout in seconds")
    args = parser.parse_args()

    setup_logging("client", level=os.getenv("LOG_LEVEL", "INFO"))

    async with VoiceApiClient(args.server) as api:
        client = SessionClient(
            api,
            room_factory=lambda: LiveKitRoomConnection(SoundDeviceMicrophone(args.device)),
            connect_timeout=args.timeout,
        )
        client.add_listener(print_snapshot)

        async with client:
            try:
                await client.connect(args.persona)
                await client.toggle_audio()
            except VoiceSessionError as e:
                print(f"Could not start: {e.message}")
                return

            print("Speak now. Press Enter to mute/unmute, Ctrl+C to hang up.")
            loop = asyncio.get_running_loop()
            try:
                while client.state == ConnectionState.CONNECTED:
                    await loop.run_in_executor(None, sys.stdin.readline)
                    if client.state != ConnectionState.CONNECTED:
                        break
                    try:
                        await client.toggle_audio()
                    except VoiceSessionError as e:
                        print(f"Microphone: {e.message}")
            except (KeyboardInterrupt, asyncio.CancelledError):
                pass


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nBye.")
