"""Rollouts のユニットテスト"""

import asyncio
import logging

import pytest
from conftest import HASH_KEY, RecordingStore, is_company_email
from k1s0_rollout import (
    InMemoryRolloutStore,
    LogSection,
    ModifierSpec,
    PercentageRange,
    RolloutError,
    RolloutErrorCodes,
    Rollouts,
    RolloutSettings,
    RedisRolloutStore,
    RedisSection,
)


def test_store_or_factory_required() -> None:
    with pytest.raises(RolloutError) as exc_info:
        Rollouts()
    assert exc_info.value.code == RolloutErrorCodes.CONFIG_ERROR


def test_empty_hash_key_rejected() -> None:
    with pytest.raises(RolloutError) as exc_info:
        Rollouts(InMemoryRolloutStore(), hash_key="")
    assert exc_info.value.code == RolloutErrorCodes.CONFIG_ERROR


async def test_store_factory_is_used() -> None:
    store = InMemoryRolloutStore()
    calls: list[int] = []

    def factory() -> InMemoryRolloutStore:
        calls.append(1)
        return store

    rollouts = Rollouts(store_factory=factory)
    await rollouts.register_handler(
        "secret_feature", {"employee": {"percentage": 100, "condition": is_company_email}}
    )
    assert calls
    result = await rollouts.check_handler("secret_feature", 123, {"employee": "me@company.com"})
    assert result == "employee"


def test_from_settings_builds_redis_store() -> None:
    settings = RolloutSettings(hash_key="features", redis=RedisSection(host="redis", port=6380))
    rollouts = Rollouts.from_settings(settings)
    assert isinstance(rollouts.config_store.store, RedisRolloutStore)
    assert rollouts.config_store.hash_key == "features"


def test_from_settings_applies_log_section() -> None:
    settings = RolloutSettings(
        redis=RedisSection(),
        log=LogSection(level="ERROR", format="text"),
    )
    Rollouts.from_settings(settings)
    assert logging.getLogger("k1s0_rollout").level == logging.ERROR


def test_from_settings_requires_redis_section() -> None:
    with pytest.raises(RolloutError) as exc_info:
        Rollouts.from_settings(RolloutSettings())
    assert exc_info.value.code == RolloutErrorCodes.CONFIG_ERROR


async def test_applicable_modifier_for_percentage(rollouts: Rollouts) -> None:
    await rollouts.register_handler(
        "secret_feature",
        {
            "everyone": {"percentage": 0},
            "employee": {"percentage": 100, "condition": is_company_email},
        },
    )
    result = await rollouts.check_handler("secret_feature", 123, {"employee": "me@company.com"})
    assert result == "employee"


async def test_applicable_modifier_for_range(rollouts: Rollouts) -> None:
    await rollouts.register_handler(
        "secret_feature",
        {
            "groupA": ModifierSpec(percentage=PercentageRange(0, 25)),
            "groupB": ModifierSpec(percentage=PercentageRange(25, 50)),
            "groupC": ModifierSpec(percentage=PercentageRange(50, 100)),
        },
    )
    rollouts.likelihood = lambda _: 37.0
    assert await rollouts.check_handler("secret_feature", 123) == "groupB"


async def test_async_condition(rollouts: Rollouts) -> None:
    async def beta(value: object) -> bool:
        await asyncio.sleep(0.01)
        return value == "foo"

    await rollouts.register_handler(
        "promise_secret_feature", {"beta_testa": {"percentage": 100, "condition": beta}}
    )
    assert (
        await rollouts.check_handler("promise_secret_feature", 123, {"beta_testa": "foo"})
        == "beta_testa"
    )


async def test_not_in_allowed_percentage(rollouts: Rollouts) -> None:
    rollouts.likelihood = lambda _: 51.001
    await rollouts.register_handler("another_feature", {"id": {"percentage": 51.0}})
    assert await rollouts.check_handler("another_feature", 123) is None


async def test_check_unknown_handler(rollouts: Rollouts) -> None:
    with pytest.raises(RolloutError) as exc_info:
        await rollouts.check_handler("missing", 1)
    assert exc_info.value.code == RolloutErrorCodes.HANDLER_NOT_FOUND


async def test_update_with_percentage(rollouts: Rollouts) -> None:
    rollouts.likelihood = lambda _: 50.0
    await rollouts.register_handler("button_test", {"id": {"percentage": 100}})
    assert await rollouts.check_handler("button_test", 123) == "id"
    await rollouts.update_handler("button_test", {"id": 49})
    assert await rollouts.check_handler("button_test", 123) is None


async def test_update_with_range(rollouts: Rollouts) -> None:
    rollouts.likelihood = lambda _: 50.0
    await rollouts.register_handler(
        "experiment", {"groupA": {"percentage": 100}, "groupB": {"percentage": 0}}
    )
    assert await rollouts.check_handler("experiment", 123) == "groupA"
    await rollouts.update_handler(
        "experiment",
        {"groupA": {"min": 0, "max": 49}, "groupB": {"min": 49, "max": 100}},
    )
    assert await rollouts.check_handler("experiment", 123) == "groupB"


async def test_update_leaves_other_modifiers_alone(rollouts: Rollouts) -> None:
    """1 つのモディファイアを更新しても、他のモディファイアの判定は変わらないこと。"""
    rollouts.likelihood = lambda _: 45.0
    await rollouts.register_handler(
        "split",
        {
            "a": {"percentage": {"min": 0, "max": 30}},
            "b": {"percentage": {"min": 30, "max": 60}},
        },
    )
    assert await rollouts.check_handler("split", 1) == "b"
    await rollouts.update_handler("split", {"a": {"min": 0, "max": 20}})
    assert await rollouts.check_handler("split", 1) == "b"
    assert await rollouts.get_modifier_percentages("split") == {
        "a": PercentageRange(0.0, 20.0),
        "b": PercentageRange(30.0, 60.0),
    }


async def test_update_survives_re_registration(rollouts: Rollouts) -> None:
    """再登録しても更新済みのパーセンテージが維持されること。"""
    await rollouts.register_handler("h", {"m": {"percentage": 100}})
    await rollouts.update_handler("h", {"m": 10})
    await rollouts.register_handler("h", {"m": {"percentage": 100}})
    assert await rollouts.get_modifier_percentages("h") == {"m": 10.0}


async def test_modifier_percentages(rollouts: Rollouts) -> None:
    await rollouts.register_handler(
        "super_secret", {"foo": {"percentage": 12}, "bar": {"percentage": 34}}
    )
    assert await rollouts.get_modifier_percentages("super_secret") == {"foo": 12, "bar": 34}


async def test_handler_and_modifier_names(rollouts: Rollouts) -> None:
    await rollouts.register_handler("youza", {"foo": {"percentage": 100}})
    await rollouts.register_handler("huzzah", {"foo": {"percentage": 100}, "bar": {}})
    assert rollouts.get_handler_names() == ["youza", "huzzah"]
    assert rollouts.get_modifier_names("huzzah") == ["foo", "bar"]
    assert rollouts.is_registered_handler("youza") is True
    assert rollouts.is_registered_handler("nope") is False
    assert rollouts.is_registered_modifier("huzzah", "bar") is True
    assert rollouts.is_registered_modifier("youza", "bar") is False
    assert rollouts.is_registered_modifier("nope", "foo") is False


def test_modifier_names_of_unknown_handler(rollouts: Rollouts) -> None:
    with pytest.raises(RolloutError) as exc_info:
        rollouts.get_modifier_names("nope")
    assert exc_info.value.code == RolloutErrorCodes.HANDLER_NOT_FOUND


async def test_delete_handler(rollouts: Rollouts, store: RecordingStore) -> None:
    await rollouts.register_handler("h", {"m": {"percentage": 100}})
    await rollouts.delete_handler("h")
    assert rollouts.get_handler_names() == []
    assert await store.hget(HASH_KEY, "h") is None
    with pytest.raises(RolloutError):
        await rollouts.check_handler("h", 1)


async def test_prune(rollouts: Rollouts, store: RecordingStore) -> None:
    await store.hset(HASH_KEY, "gone", '{"m":1}')
    await rollouts.register_handler("kept", {"m": {"percentage": 100}})
    assert await rollouts.prune_obsolete_handlers_from_cache() == ["gone"]
    assert await store.hkeys(HASH_KEY) == ["kept"]


async def test_malformed_persisted_value_on_check(
    rollouts: Rollouts, store: RecordingStore
) -> None:
    await rollouts.register_handler("h", {"m": {"percentage": 100}})
    await store.hset(HASH_KEY, "h", "garbage")
    with pytest.raises(RolloutError) as exc_info:
        await rollouts.check_handler("h", 1)
    assert exc_info.value.code == RolloutErrorCodes.STORE_ERROR


async def test_engines_do_not_share_declarations() -> None:
    store = InMemoryRolloutStore()
    first = Rollouts(store)
    second = Rollouts(store)
    await first.register_handler("h", {"m": {"percentage": 100}})
    assert first.get_handler_names() == ["h"]
    assert second.get_handler_names() == []


async def test_overall_timeout_can_be_imposed(rollouts: Rollouts) -> None:
    """呼び出し側で asyncio.wait_for によるタイムアウトを掛けられること。"""

    async def never(value: object) -> bool:
        await asyncio.Event().wait()
        return True

    await rollouts.register_handler("h", {"m": {"percentage": 100, "condition": never}})
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(rollouts.check_handler("h", 1), timeout=0.05)


async def test_replaced_range_check_applies_to_all_checks(rollouts: Rollouts) -> None:
    """is_value_in_percentage_range の差し替えが単体・一括評価の両方に効くこと。"""
    await rollouts.register_handler("feature", {"everyone": {"percentage": 100}})
    rollouts.is_value_in_percentage_range = lambda value, percentage: False
    assert await rollouts.check_handler("feature", 1) is None
    assert await rollouts.check_all_handlers(1) == {"feature": None}
    results = await rollouts.check_many([("feature", 1)])
    assert results[0].modifier is None
    assert results[0].error is None
