"""Storage module: persistent session registries."""

from src.storage.redis import RedisSessionStore

__all__ = [
    "RedisSessionStore",
]
