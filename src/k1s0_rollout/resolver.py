"""モディファイア解決。宣言順で最初に適用可能なモディファイアを選ぶ"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from .bucketing import bucket_key, likelihood as default_likelihood
from .metrics import condition_failures_total, evaluations_total
from .models import ModifierSpec, Percentage
from .percentage import is_value_in_percentage_range as default_in_range
from .percentage import normalize_percentage

logger = structlog.stdlib.get_logger(__name__)


def _always_true(value: Any) -> bool:
    return True


async def resolve_modifier(
    handler_name: str,
    subject_id: Any,
    modifiers: Mapping[str, ModifierSpec],
    inputs: Mapping[str, Any] | None = None,
    *,
    likelihood: Callable[[str], float] = default_likelihood,
    is_value_in_range: Callable[[float, Percentage], bool] = default_in_range,
) -> str | None:
    """サブジェクトに適用されるモディファイア名を返す。該当なしは None。

    範囲に一致したモディファイアの条件は並行に評価し、すべて完了してから
    宣言順で最初に真となったものを選ぶ。完了順は結果に影響しない。
    条件が例外を送出した場合、そのモディファイアは不適用として扱う。

    Args:
        handler_name: ハンドラー名
        subject_id: サブジェクト ID（文字列化してハッシュ入力に使う）
        modifiers: 宣言順のモディファイア定義
        inputs: モディファイア名ごとの条件への入力値
        likelihood: バケット値の計算関数
        is_value_in_range: バケット値がパーセンテージに含まれるかの判定関数
    """
    inputs = inputs or {}
    bucket = likelihood(bucket_key(handler_name, subject_id))

    candidates: list[str] = []
    # bool は確定済みの結果、int は pending 内の位置
    outcomes: list[bool | int] = []
    pending: list[asyncio.Future[Any]] = []

    for name, spec in modifiers.items():
        if not is_value_in_range(bucket, normalize_percentage(spec.percentage)):
            continue
        condition = spec.condition or _always_true
        try:
            result = condition(inputs.get(name))
        except Exception as e:
            _condition_failed(handler_name, name, e)
            continue
        candidates.append(name)
        if inspect.isawaitable(result):
            outcomes.append(len(pending))
            pending.append(asyncio.ensure_future(result))
        else:
            outcomes.append(bool(result))
            if result:
                # 後続のモディファイアはこれに勝てない
                break

    settled: list[Any] = []
    if pending:
        settled = await asyncio.gather(*pending, return_exceptions=True)

    winner: str | None = None
    for name, outcome in zip(candidates, outcomes):
        if isinstance(outcome, bool):
            affirmed = outcome
        else:
            value = settled[outcome]
            if isinstance(value, BaseException):
                _condition_failed(handler_name, name, value)
                continue
            affirmed = bool(value)
        if affirmed and winner is None:
            winner = name

    evaluations_total.add(1, {"handler": handler_name, "matched": winner is not None})
    return winner


def _condition_failed(handler_name: str, modifier_name: str, error: BaseException) -> None:
    condition_failures_total.add(1, {"handler": handler_name, "modifier": modifier_name})
    logger.warning(
        "rollout condition failed",
        handler=handler_name,
        modifier=modifier_name,
        error=repr(error),
    )
