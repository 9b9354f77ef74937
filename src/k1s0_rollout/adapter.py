"""宣言済み設定とストアに永続化されたパーセンテージの突き合わせ"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import structlog

from .exceptions import RolloutError, RolloutErrorCodes
from .legacy import LegacyPercentageReader
from .metrics import store_writes_total
from .models import ModifierSpec, Percentage
from .percentage import (
    decode_modifier_percentages,
    encode_modifier_percentages,
    normalize_modifier_percentages,
    normalize_percentage,
)
from .registry import HandlerRegistry, ModifiersConfig, validate_name
from .store import RolloutStore

logger = structlog.stdlib.get_logger(__name__)

StoreFactory = Callable[[], RolloutStore]


def declared_percentages(modifiers: ModifiersConfig) -> dict[str, Percentage]:
    """宣言済みモディファイアの正規化済みパーセンテージ。"""
    return {name: normalize_percentage(spec.percentage) for name, spec in modifiers.items()}


def merge_percentages(
    modifiers: ModifiersConfig,
    percentages: Mapping[str, Percentage],
) -> dict[str, ModifierSpec]:
    """宣言済みモディファイアにパーセンテージを上書きする。条件はそのまま残す。"""
    merged: dict[str, ModifierSpec] = {}
    for name, spec in modifiers.items():
        if name in percentages:
            merged[name] = dataclasses.replace(
                spec, percentage=normalize_percentage(percentages[name])
            )
        else:
            merged[name] = spec
    return merged


class HandlerConfigStore:
    """ハンドラー設定をストアと同期する。

    ストアのハッシュ `hash_key` にハンドラー名をフィールドとして
    {モディファイア名: パーセンテージ} の JSON を保存する。一度保存された
    パーセンテージが正であり、宣言されたパーセンテージは初期値としてだけ使う。
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        store_factory: StoreFactory,
        hash_key: str,
        legacy_key_prefix: str | None = None,
    ) -> None:
        self._registry = registry
        self._store_factory = store_factory
        self.hash_key = hash_key
        self.legacy = LegacyPercentageReader(legacy_key_prefix)

    @property
    def store(self) -> RolloutStore:
        return self._store_factory()

    async def register_handler(
        self,
        name: str,
        modifiers: Mapping[str, Any],
        *,
        reset_cache: bool = False,
    ) -> None:
        """ハンドラーを宣言し、永続化済みの設定と突き合わせて保存する。

        reset_cache=True の場合はストアを読まず、宣言済みのパーセンテージで上書きする。
        変更がない場合は書き込まない。

        Raises:
            RolloutError: 名前または設定が不正な場合 (VALIDATION_ERROR)
        """
        config = self._registry.declare(name, modifiers)
        store = self.store
        merged = declared_percentages(config)

        persisted: dict[str, Percentage] | None = None
        if not reset_cache:
            raw = await store.hget(self.hash_key, name)
            if raw:
                persisted = decode_modifier_percentages(raw)
                cached = persisted
            else:
                cached = await self.legacy.read(store, name, list(config))
                if cached:
                    logger.info(
                        "migrating legacy rollout configuration",
                        handler=name,
                        modifiers=list(cached),
                    )
            for modifier_name in merged:
                if modifier_name in cached:
                    merged[modifier_name] = normalize_percentage(cached[modifier_name])

        if persisted is not None and merged == persisted:
            logger.debug("rollout configuration unchanged", handler=name)
            return
        await store.hset(self.hash_key, name, encode_modifier_percentages(merged))
        store_writes_total.add(1, {"operation": "register"})
        logger.debug("rollout configuration saved", handler=name, reset_cache=reset_cache)

    async def update_handler(self, name: str, percentages: Mapping[str, Any]) -> None:
        """現在の設定にパーセンテージを上書きして常に保存する。"""
        if not isinstance(percentages, Mapping):
            raise RolloutError(
                code=RolloutErrorCodes.VALIDATION,
                message="Modifier percentages must be a mapping",
            )
        for modifier_name in percentages:
            validate_name(modifier_name)
        current = await self.lookup_handler(name)
        updated = declared_percentages(current)
        updated.update(normalize_modifier_percentages(percentages))
        await self.store.hset(self.hash_key, name, encode_modifier_percentages(updated))
        store_writes_total.add(1, {"operation": "update"})
        logger.info("rollout configuration updated", handler=name, modifiers=list(percentages))

    async def delete_handler(self, name: str) -> None:
        """永続化済みの設定と宣言を削除する。"""
        await self.store.hdel(self.hash_key, [name])
        store_writes_total.add(1, {"operation": "delete"})
        self._registry.remove(name)

    async def prune_obsolete_handlers_from_cache(self) -> list[str]:
        """宣言されていないハンドラーの設定をストアから削除し、その名前を返す。"""
        store = self.store
        cached_names = await store.hkeys(self.hash_key)
        obsolete = [name for name in cached_names if name not in self._registry]
        if obsolete:
            await store.hdel(self.hash_key, obsolete)
            store_writes_total.add(1, {"operation": "prune"})
            logger.info("pruned obsolete rollout handlers", handlers=obsolete)
        return obsolete

    async def lookup_handler(self, name: str) -> dict[str, ModifierSpec]:
        """有効なモディファイア設定を返す。

        Raises:
            RolloutError: 永続化も宣言もされていない場合 (HANDLER_NOT_FOUND)
        """
        raw = await self.store.hget(self.hash_key, name)
        return self.effective_config(name, raw)

    async def lookup_all_handlers(self) -> dict[str, dict[str, ModifierSpec]]:
        """宣言済みの全ハンドラーの有効な設定を名前順で返す。"""
        cached = await self.store.hgetall(self.hash_key)
        return {
            name: self.effective_config(name, cached.get(name))
            for name in sorted(self._registry.names())
        }

    async def collect_all_handlers(
        self,
    ) -> dict[str, dict[str, ModifierSpec] | RolloutError]:
        """lookup_all_handlers と同じく 1 回の hgetall で取得する。

        ハンドラーごとのエラーは例外にせず値として返す。
        """
        names = sorted(self._registry.names())
        cached = await self.store.hgetall(self.hash_key)
        return self._configs_by_name(names, [cached.get(name) for name in names])

    async def lookup_many(
        self, names: Sequence[str]
    ) -> dict[str, dict[str, ModifierSpec] | RolloutError]:
        """複数ハンドラーの設定を 1 回のストアアクセスで取得する。

        ハンドラーごとのエラーは例外にせず値として返す。
        """
        unique = list(dict.fromkeys(names))
        raws = await self.store.hmget(self.hash_key, unique)
        return self._configs_by_name(unique, raws)

    def _configs_by_name(
        self, names: Sequence[str], raws: Sequence[str | None]
    ) -> dict[str, dict[str, ModifierSpec] | RolloutError]:
        results: dict[str, dict[str, ModifierSpec] | RolloutError] = {}
        for name, raw in zip(names, raws):
            try:
                results[name] = self.effective_config(name, raw)
            except RolloutError as e:
                results[name] = e
        return results

    async def get_modifier_percentages(self, name: str) -> dict[str, Percentage]:
        return declared_percentages(await self.lookup_handler(name))

    def effective_config(self, name: str, raw: str | None) -> dict[str, ModifierSpec]:
        declared = self._registry.get(name)
        if raw:
            percentages = decode_modifier_percentages(raw)
            if declared is None:
                return {
                    modifier_name: ModifierSpec(percentage=normalize_percentage(p))
                    for modifier_name, p in percentages.items()
                }
            return merge_percentages(declared, percentages)
        if declared is not None:
            # 永続化されていなければ宣言済みの設定を使う
            return dict(declared)
        raise RolloutError(
            code=RolloutErrorCodes.HANDLER_NOT_FOUND,
            message=f"Rollouts handler not found: {name}",
        )
