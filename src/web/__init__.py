"""
Web server module for HeavenlyHub voice sessions.

Provides a FastAPI application exposing the voice session lifecycle
(start, token, end) and persona chat.

Usage:
    from src.web.server import app, create_app

    # Run with uvicorn:
    # uvicorn src.web.server:app --host 0.0.0.0 --port 4000
"""

from src.web.server import app, create_app

__all__ = ["app", "create_app"]
