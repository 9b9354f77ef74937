"""設定型定義（pydantic BaseModel）"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class RedisSection(BaseModel):
    """Redis 接続設定。"""

    host: str = "localhost"
    port: int = Field(default=6379, ge=1, le=65535)
    password: str = ""
    db: int = Field(default=0, ge=0)
    pool_size: int = Field(default=10, ge=1)
    socket_timeout: float = Field(default=5.0, gt=0)


class LogSection(BaseModel):
    """ログ設定。"""

    level: str = "INFO"
    format: Literal["json", "text"] = "json"


class RolloutSettings(BaseModel):
    """rollout 設定全体。"""

    hash_key: str = Field(default="rollouts", min_length=1)
    legacy_key_prefix: str | None = None
    redis: RedisSection | None = None
    log: LogSection = Field(default_factory=LogSection)
