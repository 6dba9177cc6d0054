"""Pluggable persistent collections for crawl state."""

from __future__ import annotations

from ..config import RunConfig
from .base import FrontierQueue, MultiMap, StateBackend, StatusMap
from .memory import InMemoryBackend


def create_backend(config: RunConfig) -> StateBackend:
    """Instantiate the backend named by `config.backend`."""

    if config.backend == "memory":
        return InMemoryBackend()

    if config.backend == "redis":
        from .redis import RedisBackend

        return RedisBackend(
            host=config.redis_host,
            port=config.redis_port,
            db=config.redis_db,
            prefix=config.redis_prefix,
        )

    raise ValueError(f"Unsupported backend '{config.backend}'")


__all__ = [
    "FrontierQueue",
    "InMemoryBackend",
    "MultiMap",
    "StateBackend",
    "StatusMap",
    "create_backend",
]
