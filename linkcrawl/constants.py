"""Default values shared by config, fetcher, and orchestrator."""

from __future__ import annotations


DEFAULT_THREADS = 40
DEFAULT_DELAY_MS = 0
DEFAULT_TIMEOUT_SECONDS = 30.0

DEFAULT_USER_AGENT = "linkcrawl/0.1 (+https://pypi.org/project/linkcrawl/)"

DEFAULT_BACKEND = "memory"
SUPPORTED_BACKENDS = ("memory", "redis")

DEFAULT_REDIS_HOST = "localhost"
DEFAULT_REDIS_PORT = 6379
DEFAULT_REDIS_DB = 0
DEFAULT_REDIS_PREFIX = "linkcrawl"

ALLOWED_SCHEMES = ("http", "https")

# Scheduler timings.
MONITOR_INTERVAL_SECONDS = 5.0
DRAIN_POLL_SECONDS = 0.05
CLIENT_ACQUIRE_POLL_SECONDS = 0.5

JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")


__all__ = [
    "ALLOWED_SCHEMES",
    "CLIENT_ACQUIRE_POLL_SECONDS",
    "DEFAULT_BACKEND",
    "DEFAULT_DELAY_MS",
    "DEFAULT_REDIS_DB",
    "DEFAULT_REDIS_HOST",
    "DEFAULT_REDIS_PORT",
    "DEFAULT_REDIS_PREFIX",
    "DEFAULT_THREADS",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_USER_AGENT",
    "DRAIN_POLL_SECONDS",
    "JSON_INDENT",
    "MONITOR_INTERVAL_SECONDS",
    "SUPPORTED_BACKENDS",
    "SUPPORTED_CONFIG_SUFFIXES",
]
