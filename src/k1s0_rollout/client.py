"""RolloutClient プロトコル"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from .models import CheckResult


class RolloutClientProtocol(Protocol):
    """ロールアウトクライアントプロトコル。"""

    async def register_handler(
        self,
        name: str,
        modifiers: Mapping[str, Any],
        *,
        reset_cache: bool = False,
    ) -> None: ...

    async def update_handler(self, name: str, percentages: Mapping[str, Any]) -> None: ...

    async def delete_handler(self, name: str) -> None: ...

    async def prune_obsolete_handlers_from_cache(self) -> list[str]: ...

    async def check_handler(
        self,
        name: str,
        subject_id: Any,
        inputs: Mapping[str, Any] | None = None,
    ) -> str | None: ...

    async def check_all_handlers(
        self,
        subject_id: Any,
        inputs: Mapping[str, Any] | None = None,
    ) -> dict[str, str | None]: ...

    async def check_many(self, requests: Iterable[Any]) -> list[CheckResult]: ...

    def get_handler_names(self) -> list[str]: ...

    def get_modifier_names(self, name: str) -> list[str]: ...
