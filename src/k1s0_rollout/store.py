"""RolloutStore 抽象基底クラス"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence


class RolloutStore(ABC):
    """rollout 設定を保存するキーバリューストアの抽象基底クラス。

    現行形式はハッシュ 1 つ（フィールド = ハンドラー名）、
    旧形式はモディファイアごとの文字列キーを使う。
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """キーに対応する値を取得する。存在しなければ None。"""
        ...

    @abstractmethod
    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        """複数キーを一括取得する。順序を保ち、存在しないキーは None。"""
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """キーと値を保存する。"""
        ...

    @abstractmethod
    async def delete(self, keys: Sequence[str]) -> int:
        """キーを削除して削除件数を返す。"""
        ...

    @abstractmethod
    async def hget(self, key: str, field: str) -> str | None:
        """ハッシュのフィールド値を取得する。存在しなければ None。"""
        ...

    @abstractmethod
    async def hmget(self, key: str, fields: Sequence[str]) -> list[str | None]:
        """ハッシュの複数フィールドを一括取得する。順序を保つ。"""
        ...

    @abstractmethod
    async def hgetall(self, key: str) -> dict[str, str]:
        """ハッシュ全体を取得する。"""
        ...

    @abstractmethod
    async def hkeys(self, key: str) -> list[str]:
        """ハッシュのフィールド名一覧を取得する。"""
        ...

    @abstractmethod
    async def hset(self, key: str, field: str, value: str) -> None:
        """ハッシュのフィールドに値を保存する。"""
        ...

    @abstractmethod
    async def hdel(self, key: str, fields: Sequence[str]) -> int:
        """ハッシュのフィールドを削除して削除件数を返す。"""
        ...
