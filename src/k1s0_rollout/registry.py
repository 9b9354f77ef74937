"""プロセス内で宣言されたハンドラー設定の保持と検証"""

from __future__ import annotations

import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from .exceptions import RolloutError, RolloutErrorCodes
from .models import ModifierSpec

# Cookie などの区切り文字として使われる文字は名前に使えない
_RESERVED_CHARACTERS = re.compile(r"[=;,]")

ModifiersConfig = Mapping[str, ModifierSpec]


def validate_name(name: Any) -> None:
    """ハンドラー名・モディファイア名を検証する。

    Raises:
        RolloutError: 空文字列・文字列以外・予約文字を含む場合
    """
    if not name or not isinstance(name, str):
        raise RolloutError(
            code=RolloutErrorCodes.VALIDATION,
            message="Name must be a non-empty string",
        )
    if _RESERVED_CHARACTERS.search(name):
        raise RolloutError(
            code=RolloutErrorCodes.VALIDATION,
            message=f"Name cannot include the following characters: = ; , ({name!r})",
        )


def to_modifier_spec(name: str, value: Any) -> ModifierSpec:
    """ModifierSpec または {"percentage", "condition"} 形式の値を ModifierSpec にする。"""
    if isinstance(value, ModifierSpec):
        spec = value
    elif isinstance(value, Mapping):
        spec = ModifierSpec(
            percentage=value.get("percentage"),  # type: ignore[arg-type]
            condition=value.get("condition"),
        )
    else:
        raise RolloutError(
            code=RolloutErrorCodes.VALIDATION,
            message=f"Modifier {name!r} must be a ModifierSpec or a mapping",
        )
    if spec.condition is not None and not callable(spec.condition):
        raise RolloutError(
            code=RolloutErrorCodes.VALIDATION,
            message=f"Condition of modifier {name!r} must be callable",
        )
    return spec


def validate_modifiers_config(modifiers: Any) -> dict[str, ModifierSpec]:
    """モディファイア設定を検証し、宣言順を保った ModifierSpec の辞書を返す。"""
    if not isinstance(modifiers, Mapping):
        raise RolloutError(
            code=RolloutErrorCodes.VALIDATION,
            message="Modifiers configuration must be a mapping",
        )
    if not modifiers:
        raise RolloutError(
            code=RolloutErrorCodes.VALIDATION,
            message="Modifiers configuration must contain at least one modifier",
        )
    specs: dict[str, ModifierSpec] = {}
    for name, value in modifiers.items():
        validate_name(name)
        specs[name] = to_modifier_spec(name, value)
    return specs


class HandlerRegistry:
    """エンジン 1 つが所有する宣言済みハンドラー設定。

    登録のたびにハンドラーの設定全体を差し替えるため、評価中に取得した
    スナップショットが途中で書き換わることはない。
    """

    def __init__(self) -> None:
        self._handlers: dict[str, ModifiersConfig] = {}

    def declare(self, name: Any, modifiers: Any) -> ModifiersConfig:
        """ハンドラーを検証して宣言する。"""
        validate_name(name)
        specs = validate_modifiers_config(modifiers)
        config: ModifiersConfig = MappingProxyType(specs)
        self._handlers[name] = config
        return config

    def remove(self, name: str) -> None:
        self._handlers.pop(name, None)

    def get(self, name: str) -> ModifiersConfig | None:
        return self._handlers.get(name)

    def names(self) -> list[str]:
        return list(self._handlers)

    def modifier_names(self, name: str) -> list[str]:
        config = self._handlers.get(name)
        if config is None:
            raise RolloutError(
                code=RolloutErrorCodes.HANDLER_NOT_FOUND,
                message=f"Rollouts handler not found: {name}",
            )
        return list(config)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers
