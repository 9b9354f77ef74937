"""rollout テスト共通フィクスチャ"""

from __future__ import annotations

import pytest
from k1s0_rollout import InMemoryRolloutStore, Rollouts

HASH_KEY = "REDIS_HASH_KEY"
LEGACY_PREFIX = "REDIS_LEGACY_KEY_PREFIX"


class RecordingStore(InMemoryRolloutStore):
    """書き込みと読み込みの呼び出しを記録するインメモリストア。"""

    def __init__(self) -> None:
        super().__init__()
        self.hset_calls: list[tuple[str, str, str]] = []
        self.hget_calls: list[tuple[str, str]] = []
        self.mget_calls: list[list[str]] = []

    async def hset(self, key: str, field: str, value: str) -> None:
        self.hset_calls.append((key, field, value))
        await super().hset(key, field, value)

    async def hget(self, key: str, field: str) -> str | None:
        self.hget_calls.append((key, field))
        return await super().hget(key, field)

    async def mget(self, keys):  # type: ignore[no-untyped-def]
        self.mget_calls.append(list(keys))
        return await super().mget(keys)


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def rollouts(store: RecordingStore) -> Rollouts:
    return Rollouts(store, hash_key=HASH_KEY, legacy_key_prefix=LEGACY_PREFIX)


def is_company_email(value: object) -> bool:
    return isinstance(value, str) and value.endswith("@company.com")
