"""旧形式（モディファイアごとのキー）の設定読み込み"""

from __future__ import annotations

from collections.abc import Sequence

from .models import Percentage
from .percentage import decode_percentage
from .store import RolloutStore


class LegacyPercentageReader:
    """旧形式のパーセンテージを読み込む。移行元としてのみ使い、書き込まない。"""

    def __init__(self, key_prefix: str | None = None) -> None:
        self.key_prefix = key_prefix

    def key_for(self, handler_name: str, modifier_name: str) -> str:
        """旧形式のキー `{prefix:}{handler}:{modifier}` を返す。"""
        prefix = f"{self.key_prefix}:" if self.key_prefix else ""
        return f"{prefix}{handler_name}:{modifier_name}"

    async def read(
        self,
        store: RolloutStore,
        handler_name: str,
        modifier_names: Sequence[str],
    ) -> dict[str, Percentage]:
        """存在する旧形式の値だけを {モディファイア名: Percentage} で返す。"""
        if not modifier_names:
            return {}
        keys = [self.key_for(handler_name, name) for name in modifier_names]
        values = await store.mget(keys)
        return {
            name: decode_percentage(value)
            for name, value in zip(modifier_names, values)
            if value
        }
