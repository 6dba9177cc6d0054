"""Redis-backed state, so a crawl can be resumed from another process."""

from __future__ import annotations

import logging
from typing import Iterator

from redis import Redis

from ..types import LinkStatus, URI
from .base import FrontierQueue, MultiMap, StateBackend, StatusMap


LOGGER = logging.getLogger(__name__)

_DELETE_CHUNK = 500


class RedisStatusMap(StatusMap):
    """HASH of URI -> integer status (-1 pending, 0 failed, HTTP code)."""

    def __init__(self, client: Redis, key: str) -> None:
        self._client = client
        self._key = key

    def get(self, uri: URI) -> LinkStatus | None:
        value = self._client.hget(self._key, uri)
        if value is None:
            return None
        return LinkStatus.from_int(int(value))

    def put(self, uri: URI, status: LinkStatus) -> None:
        self._client.hset(self._key, uri, status.to_int())

    def remove(self, uri: URI) -> None:
        self._client.hdel(self._key, uri)

    def contains(self, uri: URI) -> bool:
        return bool(self._client.hexists(self._key, uri))

    def claim(self, uri: URI) -> bool:
        return bool(self._client.hsetnx(self._key, uri, LinkStatus.pending().to_int()))

    def __len__(self) -> int:
        return int(self._client.hlen(self._key))

    def items(self) -> list[tuple[URI, LinkStatus]]:
        raw = self._client.hgetall(self._key)
        return [(uri, LinkStatus.from_int(int(value))) for uri, value in raw.items()]

    def clear(self) -> None:
        self._client.delete(self._key)


class RedisQueue(FrontierQueue):
    """Sorted set scored by an insertion counter; ZADD NX keeps members unique."""

    def __init__(self, client: Redis, key: str) -> None:
        self._client = client
        self._key = key
        self._seq_key = f"{key}:seq"

    def add(self, uri: URI) -> bool:
        score = self._client.incr(self._seq_key)
        return bool(self._client.zadd(self._key, {uri: score}, nx=True))

    def pop(self) -> URI | None:
        popped = self._client.zpopmin(self._key, 1)
        if not popped:
            return None
        member, _score = popped[0]
        return member

    def remove(self, uri: URI) -> None:
        self._client.zrem(self._key, uri)

    def contains(self, uri: URI) -> bool:
        return self._client.zscore(self._key, uri) is not None

    def __len__(self) -> int:
        return int(self._client.zcard(self._key))

    def __iter__(self) -> Iterator[URI]:
        return iter(self._client.zrange(self._key, 0, -1))

    def clear(self) -> None:
        self._client.delete(self._key, self._seq_key)


class RedisMultiMap(MultiMap):
    """One SET per key plus an index SET listing the keys that exist."""

    def __init__(self, client: Redis, key: str) -> None:
        self._client = client
        self._index_key = f"{key}:index"
        self._member_prefix = f"{key}:set:"

    def _member_key(self, key: URI) -> str:
        return self._member_prefix + key

    def get(self, key: URI) -> set[str]:
        return set(self._client.smembers(self._member_key(key)))

    def add(self, key: URI, value: str) -> None:
        with self._client.pipeline(transaction=True) as pipe:
            pipe.sadd(self._member_key(key), value)
            pipe.sadd(self._index_key, key)
            pipe.execute()

    def remove(self, key: URI) -> None:
        with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(self._member_key(key))
            pipe.srem(self._index_key, key)
            pipe.execute()

    def contains(self, key: URI) -> bool:
        return bool(self._client.sismember(self._index_key, key))

    def __len__(self) -> int:
        return int(self._client.scard(self._index_key))

    def keys(self) -> list[URI]:
        return list(self._client.smembers(self._index_key))

    def clear(self) -> None:
        keys = [self._member_key(key) for key in self.keys()]
        for start in range(0, len(keys), _DELETE_CHUNK):
            self._client.delete(*keys[start : start + _DELETE_CHUNK])
        self._client.delete(self._index_key)


class RedisBackend(StateBackend):
    """State collections stored under `<prefix>:` keys in one Redis database."""

    def __init__(
        self,
        host: str,
        port: int,
        db: int = 0,
        prefix: str = "linkcrawl",
        client: Redis | None = None,
    ) -> None:
        self.prefix = prefix
        self._owns_client = client is None
        self.client = client or Redis(host=host, port=port, db=db, decode_responses=True)
        # Fail at construction rather than on the first worker write.
        self.client.ping()
        LOGGER.info("Connected to redis at %s:%s db=%s prefix=%s", host, port, db, prefix)

        self.statuses = RedisStatusMap(self.client, f"{prefix}:statuses")
        self.queue = RedisQueue(self.client, f"{prefix}:queue")
        self.reverse_links = RedisMultiMap(self.client, f"{prefix}:reverse_links")
        self.invalid_links = RedisMultiMap(self.client, f"{prefix}:invalid_links")

    def close(self) -> None:
        if self._owns_client:
            self.client.close()


__all__ = [
    "RedisBackend",
    "RedisMultiMap",
    "RedisQueue",
    "RedisStatusMap",
]
