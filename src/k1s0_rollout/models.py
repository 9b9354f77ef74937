"""rollout データモデル"""

from __future__ import annotations

from collections.abc import Awaitable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, Union

from .exceptions import RolloutError


@dataclass(frozen=True)
class PercentageRange:
    """パーセンテージ範囲。min は含まず max は含む。"""

    min: float
    max: float


Percentage = Union[float, PercentageRange]


class Condition(Protocol):
    """モディファイアの適用条件。bool または bool を返す awaitable を返す。"""

    def __call__(self, value: Any) -> bool | Awaitable[bool]: ...


@dataclass(frozen=True)
class ModifierSpec:
    """モディファイア定義。"""

    percentage: Percentage
    condition: Condition | None = None


@dataclass(frozen=True)
class CheckRequest:
    """バッチ評価の 1 件分のリクエスト。"""

    handler_name: str
    subject_id: Any
    inputs: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class CheckResult:
    """バッチ評価の 1 件分の結果。"""

    handler_name: str
    subject_id: Any
    modifier: str | None = None
    error: RolloutError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def matched(self) -> bool:
        return self.ok and self.modifier is not None
