"""InMemoryRolloutStore 実装"""

from __future__ import annotations

from collections.abc import Sequence

from .store import RolloutStore


class InMemoryRolloutStore(RolloutStore):
    """テスト用インメモリストア。"""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self._hashes: dict[str, dict[str, str]] = {}

    async def get(self, key: str) -> str | None:
        return self._values.get(key)

    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        return [self._values.get(key) for key in keys]

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value

    async def delete(self, keys: Sequence[str]) -> int:
        deleted = 0
        for key in keys:
            if self._values.pop(key, None) is not None:
                deleted += 1
            elif self._hashes.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def hget(self, key: str, field: str) -> str | None:
        return self._hashes.get(key, {}).get(field)

    async def hmget(self, key: str, fields: Sequence[str]) -> list[str | None]:
        fields_map = self._hashes.get(key, {})
        return [fields_map.get(field) for field in fields]

    async def hgetall(self, key: str) -> dict[str, str]:
        return dict(self._hashes.get(key, {}))

    async def hkeys(self, key: str) -> list[str]:
        return list(self._hashes.get(key, {}))

    async def hset(self, key: str, field: str, value: str) -> None:
        self._hashes.setdefault(key, {})[field] = value

    async def hdel(self, key: str, fields: Sequence[str]) -> int:
        fields_map = self._hashes.get(key)
        if fields_map is None:
            return 0
        deleted = 0
        for field in fields:
            if fields_map.pop(field, None) is not None:
                deleted += 1
        if not fields_map:
            del self._hashes[key]
        return deleted
