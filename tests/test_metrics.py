"""rollout メトリクスのユニットテスト"""

from k1s0_rollout.metrics import (
    condition_failures_total,
    evaluations_total,
    store_writes_total,
)


def test_counters_are_defined() -> None:
    assert evaluations_total is not None
    assert condition_failures_total is not None
    assert store_writes_total is not None


def test_counters_accept_attributes() -> None:
    """SDK 未設定でも add が例外を送出しないこと。"""
    evaluations_total.add(1, {"handler": "h", "matched": True})
    condition_failures_total.add(1, {"handler": "h", "modifier": "m"})
    store_writes_total.add(1, {"operation": "register"})
