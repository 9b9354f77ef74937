"""rollout 設定ファイル読み込み"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .exceptions import RolloutError, RolloutErrorCodes
from .settings import RolloutSettings


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RolloutError(
            code=RolloutErrorCodes.READ_FILE,
            message=f"Failed to read config file: {path}",
            cause=e,
        ) from e
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise RolloutError(
            code=RolloutErrorCodes.PARSE_YAML,
            message=f"Failed to parse YAML: {path}",
            cause=e,
        ) from e
    if not isinstance(data, dict):
        raise RolloutError(
            code=RolloutErrorCodes.PARSE_YAML,
            message=f"Config root must be a mapping: {path}",
        )
    return data


def overlay_settings(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """環境別設定 overlay を base に重ねた新しい辞書を返す。

    ネストしたセクションは再帰的に重ねる。overlay 側の null はベースの値を残す。
    リストは置換する。
    """
    merged: dict[str, Any] = dict(base)
    for key, value in overlay.items():
        if value is None:
            continue
        section = merged.get(key)
        if isinstance(section, dict) and isinstance(value, dict):
            merged[key] = overlay_settings(section, value)
        else:
            merged[key] = value
    return merged


def load(base_path: Path, env_path: Path | None = None) -> RolloutSettings:
    """設定ファイルを読み込んで RolloutSettings を返す。

    base_path: ベース設定ファイルパス（必須）
    env_path: 環境別設定ファイルパス（オプション）。存在する場合はベースにマージ。
    """
    data = _read_yaml(base_path)
    if env_path is not None and env_path.exists():
        data = overlay_settings(data, _read_yaml(env_path))
    try:
        return RolloutSettings.model_validate(data)
    except ValidationError as e:
        raise RolloutError(
            code=RolloutErrorCodes.VALIDATION,
            message=f"Config validation failed: {e}",
            cause=e,
        ) from e
