"""Rollouts: ハンドラー登録と評価の窓口"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .adapter import HandlerConfigStore, StoreFactory
from .batch import BatchCoordinator
from .bucketing import likelihood
from .exceptions import RolloutError, RolloutErrorCodes
from .logger import configure_logging
from .models import CheckResult, ModifierSpec, Percentage
from .percentage import is_value_in_percentage_range
from .redis_store import RedisRolloutStore
from .registry import HandlerRegistry
from .resolver import resolve_modifier
from .settings import RolloutSettings
from .store import RolloutStore

DEFAULT_HASH_KEY = "rollouts"


class Rollouts:
    """決定的なハッシュでサブジェクトごとのモディファイアを決めるエンジン。

    宣言済みハンドラーはインスタンスごとに保持し、グローバルな状態は持たない。

    Args:
        store: バックエンドストア
        store_factory: 呼び出しごとにストアを返す関数（store の代わり）
        hash_key: 現行形式の設定を保存するハッシュのキー
        legacy_key_prefix: 旧形式キーのプレフィックス
    """

    def __init__(
        self,
        store: RolloutStore | None = None,
        *,
        store_factory: StoreFactory | None = None,
        hash_key: str = DEFAULT_HASH_KEY,
        legacy_key_prefix: str | None = None,
    ) -> None:
        if store is None and store_factory is None:
            raise RolloutError(
                code=RolloutErrorCodes.CONFIG_ERROR,
                message="`store` or `store_factory` option is required",
            )
        if not hash_key:
            raise RolloutError(
                code=RolloutErrorCodes.CONFIG_ERROR,
                message="`hash_key` must be a non-empty string",
            )
        if store_factory is None:
            store_factory = lambda: store  # noqa: E731
        self.registry = HandlerRegistry()
        self.config_store = HandlerConfigStore(
            self.registry,
            store_factory,
            hash_key,
            legacy_key_prefix,
        )
        self.batch = BatchCoordinator(self.config_store)
        # テストやミドルウェアから差し替えられるよう公開する
        self.likelihood = likelihood
        self.is_value_in_percentage_range = is_value_in_percentage_range

    @classmethod
    def from_settings(cls, settings: RolloutSettings) -> Rollouts:
        """設定から Redis ストアを使うエンジンを生成する。log セクションでロガーも設定する。"""
        if settings.redis is None:
            raise RolloutError(
                code=RolloutErrorCodes.CONFIG_ERROR,
                message="`redis` section is required",
            )
        configure_logging(settings.log)
        return cls(
            RedisRolloutStore.from_section(settings.redis),
            hash_key=settings.hash_key,
            legacy_key_prefix=settings.legacy_key_prefix,
        )

    def get_handler_names(self) -> list[str]:
        return self.registry.names()

    def get_modifier_names(self, name: str) -> list[str]:
        return self.registry.modifier_names(name)

    def is_registered_handler(self, name: str) -> bool:
        return name in self.registry

    def is_registered_modifier(self, name: str, modifier_name: str) -> bool:
        config = self.registry.get(name)
        return config is not None and modifier_name in config

    async def register_handler(
        self,
        name: str,
        modifiers: Mapping[str, Any],
        *,
        reset_cache: bool = False,
    ) -> None:
        await self.config_store.register_handler(name, modifiers, reset_cache=reset_cache)

    async def update_handler(self, name: str, percentages: Mapping[str, Any]) -> None:
        await self.config_store.update_handler(name, percentages)

    async def delete_handler(self, name: str) -> None:
        await self.config_store.delete_handler(name)

    async def prune_obsolete_handlers_from_cache(self) -> list[str]:
        return await self.config_store.prune_obsolete_handlers_from_cache()

    async def lookup_handler(self, name: str) -> dict[str, ModifierSpec]:
        return await self.config_store.lookup_handler(name)

    async def lookup_all_handlers(self) -> dict[str, dict[str, ModifierSpec]]:
        return await self.config_store.lookup_all_handlers()

    async def get_modifier_percentages(self, name: str) -> dict[str, Percentage]:
        return await self.config_store.get_modifier_percentages(name)

    async def check_handler(
        self,
        name: str,
        subject_id: Any,
        inputs: Mapping[str, Any] | None = None,
    ) -> str | None:
        """サブジェクトに適用されるモディファイア名を返す。該当なしは None。

        Raises:
            RolloutError: ハンドラーが見つからない場合 (HANDLER_NOT_FOUND)
                またはストアアクセスに失敗した場合 (STORE_ERROR)
        """
        modifiers = await self.config_store.lookup_handler(name)
        return await resolve_modifier(
            name,
            subject_id,
            modifiers,
            inputs,
            likelihood=self.likelihood,
            is_value_in_range=self.is_value_in_percentage_range,
        )

    async def check_all_handlers(
        self,
        subject_id: Any,
        inputs: Mapping[str, Any] | None = None,
    ) -> dict[str, str | None]:
        return await self.batch.check_all(
            subject_id,
            inputs,
            likelihood=self.likelihood,
            is_value_in_range=self.is_value_in_percentage_range,
        )

    async def check_many(self, requests: Iterable[Any]) -> list[CheckResult]:
        return await self.batch.check_many(
            requests,
            likelihood=self.likelihood,
            is_value_in_range=self.is_value_in_percentage_range,
        )
