"""複数のハンドラー評価を 1 回のストアアクセスでまとめて行う"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import structlog

from .adapter import HandlerConfigStore
from .bucketing import likelihood as default_likelihood
from .exceptions import RolloutError, RolloutErrorCodes
from .models import CheckRequest, CheckResult, ModifierSpec, Percentage
from .percentage import is_value_in_percentage_range as default_in_range
from .resolver import resolve_modifier

logger = structlog.stdlib.get_logger(__name__)

Likelihood = Callable[[str], float]
InRange = Callable[[float, Percentage], bool]


def to_check_request(item: Any) -> CheckRequest:
    """CheckRequest または (handler_name, subject_id[, inputs]) を CheckRequest にする。"""
    if isinstance(item, CheckRequest):
        return item
    if isinstance(item, (tuple, list)) and len(item) in (2, 3):
        handler_name, subject_id = item[0], item[1]
        inputs = item[2] if len(item) == 3 and item[2] is not None else {}
        return CheckRequest(handler_name=handler_name, subject_id=subject_id, inputs=inputs)
    raise RolloutError(
        code=RolloutErrorCodes.VALIDATION,
        message=f"Invalid check request: {item!r}",
    )


class BatchCoordinator:
    """バッチ評価。各アイテムの成否は互いに影響しない。"""

    def __init__(self, config_store: HandlerConfigStore) -> None:
        self._config_store = config_store

    async def check_many(
        self,
        requests: Iterable[Any],
        *,
        likelihood: Likelihood = default_likelihood,
        is_value_in_range: InRange = default_in_range,
    ) -> list[CheckResult]:
        """リクエスト順に CheckResult を返す。

        ストアへの一括取得が失敗した場合だけ例外を送出する。
        ハンドラー未登録などのアイテム単位のエラーは CheckResult.error に入る。
        """
        items = [to_check_request(item) for item in requests]
        if not items:
            return []
        configs = await self._config_store.lookup_many([item.handler_name for item in items])
        return list(
            await asyncio.gather(
                *(
                    self._check_one(
                        item, configs[item.handler_name], likelihood, is_value_in_range
                    )
                    for item in items
                )
            )
        )

    async def check_all(
        self,
        subject_id: Any,
        inputs: Mapping[str, Any] | None = None,
        *,
        likelihood: Likelihood = default_likelihood,
        is_value_in_range: InRange = default_in_range,
    ) -> dict[str, str | None]:
        """宣言済みの全ハンドラーを評価して {ハンドラー名: モディファイア名} を返す。

        設定を読めないハンドラーは警告を出して None とし、他のハンドラーは評価を続ける。
        """
        configs = await self._config_store.collect_all_handlers()
        items = [
            CheckRequest(handler_name=name, subject_id=subject_id, inputs=inputs or {})
            for name in configs
        ]
        results = await asyncio.gather(
            *(
                self._check_one(item, configs[item.handler_name], likelihood, is_value_in_range)
                for item in items
            )
        )
        for result in results:
            if result.error is not None:
                logger.warning(
                    "rollout handler skipped",
                    handler=result.handler_name,
                    error=str(result.error),
                )
        return {result.handler_name: result.modifier for result in results}

    async def _check_one(
        self,
        item: CheckRequest,
        config: dict[str, ModifierSpec] | RolloutError,
        likelihood: Likelihood,
        is_value_in_range: InRange,
    ) -> CheckResult:
        result = CheckResult(handler_name=item.handler_name, subject_id=item.subject_id)
        if isinstance(config, RolloutError):
            result.error = config
            return result
        try:
            result.modifier = await resolve_modifier(
                item.handler_name,
                item.subject_id,
                config,
                item.inputs,
                likelihood=likelihood,
                is_value_in_range=is_value_in_range,
            )
        except RolloutError as e:
            result.error = e
        return result
