"""redis.asyncio ベースの RolloutStore 実装"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager

import redis.asyncio as redis
from redis.exceptions import RedisError

from .exceptions import RolloutError, RolloutErrorCodes
from .settings import RedisSection
from .store import RolloutStore


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Redis の例外を RolloutError(STORE_ERROR) に変換する。"""
    try:
        yield
    except RedisError as e:
        raise RolloutError(
            code=RolloutErrorCodes.STORE_ERROR,
            message=f"Redis {operation} failed: {e}",
            cause=e,
        ) from e


class RedisRolloutStore(RolloutStore):
    """Redis を使う RolloutStore。"""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_section(cls, section: RedisSection) -> RedisRolloutStore:
        """設定から Redis クライアントを生成する。"""
        client = redis.Redis(
            host=section.host,
            port=section.port,
            db=section.db,
            password=section.password or None,
            max_connections=section.pool_size,
            socket_timeout=section.socket_timeout,
            socket_connect_timeout=section.socket_timeout,
            decode_responses=True,
        )
        return cls(client)

    async def close(self) -> None:
        await self._client.aclose()

    async def get(self, key: str) -> str | None:
        with _store_errors("GET"):
            return await self._client.get(key)

    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        if not keys:
            return []
        with _store_errors("MGET"):
            return list(await self._client.mget(list(keys)))

    async def set(self, key: str, value: str) -> None:
        with _store_errors("SET"):
            await self._client.set(key, value)

    async def delete(self, keys: Sequence[str]) -> int:
        if not keys:
            return 0
        with _store_errors("DEL"):
            return int(await self._client.delete(*keys))

    async def hget(self, key: str, field: str) -> str | None:
        with _store_errors("HGET"):
            return await self._client.hget(key, field)

    async def hmget(self, key: str, fields: Sequence[str]) -> list[str | None]:
        if not fields:
            return []
        with _store_errors("HMGET"):
            return list(await self._client.hmget(key, list(fields)))

    async def hgetall(self, key: str) -> dict[str, str]:
        with _store_errors("HGETALL"):
            return dict(await self._client.hgetall(key))

    async def hkeys(self, key: str) -> list[str]:
        with _store_errors("HKEYS"):
            return list(await self._client.hkeys(key))

    async def hset(self, key: str, field: str, value: str) -> None:
        with _store_errors("HSET"):
            await self._client.hset(key, field, value)

    async def hdel(self, key: str, fields: Sequence[str]) -> int:
        if not fields:
            return 0
        with _store_errors("HDEL"):
            return int(await self._client.hdel(key, *fields))
