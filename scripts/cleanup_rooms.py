#!/usr/bin/env python3
"""
Cleanup active LiveKit voice rooms.

Usage:
    python scripts/cleanup_rooms.py          # Interactive (asks confirmation)
    python scripts/cleanup_rooms.py --force  # Delete all without asking
    python scripts/cleanup_rooms.py --list   # Only list, don't delete
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

from src.config.settings import Settings
from src.session.exceptions import ConfigurationError
from src.voice.rooms import LiveKitRoomAdmin

load_dotenv()


async def main():
    try:
        livekit = Settings.from_env().require_livekit()
    except ConfigurationError as e:
        print(f"Error: {e.message}")
        sys.exit(1)

    admin = LiveKitRoomAdmin(livekit)
    rooms = [r for r in await admin.list_rooms() if r.name.startswith("voice-")]

    if not rooms:
        print("No active voice rooms.")
        return

    print(f"\nActive voice rooms: {len(rooms)}\n")
    for r in rooms:
        print(f"  {r.name}  |  participants: {r.num_participants}  |  sid: {r.sid}")

    if "--list" in sys.argv:
        return

    if "--force" not in sys.argv:
        answer = input(f"\nDelete all {len(rooms)} room(s)? [y/N]: ")
        if answer.lower() != "y":
            print("Cancelled.")
            return

    print()
    deleted = 0
    for r in rooms:
        if await admin.delete_room(r.name):
            deleted += 1
            print(f"  Deleted: {r.name}")
        else:
            print(f"  Failed: {r.name}")

    print(f"\nDone. Deleted {deleted} room(s).")


if __name__ == "__main__":
    asyncio.run(main())
