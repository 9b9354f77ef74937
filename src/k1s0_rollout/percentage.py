"""パーセンテージの正規化・範囲判定・JSON 変換"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import Any

from .exceptions import RolloutError, RolloutErrorCodes
from .models import Percentage, PercentageRange


def clamp_percentage(value: Any) -> float:
    """値を [0, 100] に収める。数値として解釈できない値は 0 になる。"""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return max(0.0, min(100.0, number))


def normalize_percentage(percentage: Any) -> Percentage:
    """スカラーまたは範囲を正規形に変換する。"""
    if isinstance(percentage, PercentageRange):
        return PercentageRange(
            min=clamp_percentage(percentage.min),
            max=clamp_percentage(percentage.max),
        )
    if isinstance(percentage, Mapping):
        return PercentageRange(
            min=clamp_percentage(percentage.get("min")),
            max=clamp_percentage(percentage.get("max")),
        )
    return clamp_percentage(percentage)


def normalize_modifier_percentages(
    percentages: Mapping[str, Any],
) -> dict[str, Percentage]:
    return {name: normalize_percentage(p) for name, p in percentages.items()}


def is_value_in_percentage_range(value: float, percentage: Percentage) -> bool:
    """バケット値がパーセンテージに含まれるか判定する。

    範囲は min < value <= max。隣接する範囲 ({0, 25}, {25, 50}) は重ならない。
    スカラーは value < percentage。
    """
    if isinstance(percentage, PercentageRange):
        return percentage.min < value <= percentage.max
    return value < percentage


def parse_percentage(raw: Any) -> Percentage:
    """JSON から読んだ値を Percentage に変換する。

    Raises:
        RolloutError: 数値・数値文字列・{min, max} のいずれでもない場合
    """
    if isinstance(raw, Mapping):
        if "min" not in raw or "max" not in raw:
            raise _invalid_value(raw)
        return PercentageRange(min=_parse_number(raw["min"]), max=_parse_number(raw["max"]))
    return _parse_number(raw)


def decode_percentage(text: str) -> Percentage:
    """JSON 文字列 1 件分を Percentage に変換する。"""
    try:
        raw = json.loads(text)
    except (TypeError, ValueError) as e:
        raise RolloutError(
            code=RolloutErrorCodes.STORE_ERROR,
            message=f"Malformed percentage value: {text!r}",
            cause=e,
        ) from e
    return parse_percentage(raw)


def decode_modifier_percentages(text: str) -> dict[str, Percentage]:
    """永続化された JSON オブジェクトを {モディファイア名: Percentage} に変換する。"""
    try:
        raw = json.loads(text)
    except (TypeError, ValueError) as e:
        raise RolloutError(
            code=RolloutErrorCodes.STORE_ERROR,
            message=f"Malformed persisted configuration: {text!r}",
            cause=e,
        ) from e
    if not isinstance(raw, dict):
        raise RolloutError(
            code=RolloutErrorCodes.STORE_ERROR,
            message=f"Persisted configuration must be a JSON object: {text!r}",
        )
    return {str(name): parse_percentage(value) for name, value in raw.items()}


def encode_percentage(percentage: Percentage) -> Any:
    if isinstance(percentage, PercentageRange):
        return {
            "min": _json_number(percentage.min),
            "max": _json_number(percentage.max),
        }
    return _json_number(percentage)


def encode_modifier_percentages(percentages: Mapping[str, Percentage]) -> str:
    """{モディファイア名: Percentage} をコンパクトな JSON に変換する。"""
    payload = {name: encode_percentage(p) for name, p in percentages.items()}
    return json.dumps(payload, separators=(",", ":"))


def _parse_number(raw: Any) -> float:
    if isinstance(raw, bool) or raw is None:
        raise _invalid_value(raw)
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        try:
            return float(raw)
        except ValueError as e:
            raise _invalid_value(raw, e) from e
    raise _invalid_value(raw)


def _json_number(value: float) -> int | float:
    # 100.0 ではなく 100 と書き出す
    if float(value).is_integer():
        return int(value)
    return float(value)


def _invalid_value(raw: Any, cause: Exception | None = None) -> RolloutError:
    return RolloutError(
        code=RolloutErrorCodes.STORE_ERROR,
        message=f"Invalid percentage value: {raw!r}",
        cause=cause,
    )
