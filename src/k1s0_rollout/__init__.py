"""k1s0 rollout library."""

from .adapter import HandlerConfigStore
from .batch import BatchCoordinator
from .bucketing import bucket_key, likelihood
from .client import RolloutClientProtocol
from .engine import Rollouts
from .exceptions import RolloutError, RolloutErrorCodes
from .legacy import LegacyPercentageReader
from .loader import load
from .logger import configure_logging, new_logger
from .memory import InMemoryRolloutStore
from .models import (
    CheckRequest,
    CheckResult,
    Condition,
    ModifierSpec,
    Percentage,
    PercentageRange,
)
from .percentage import (
    is_value_in_percentage_range,
    normalize_modifier_percentages,
    normalize_percentage,
)
from .redis_store import RedisRolloutStore
from .registry import HandlerRegistry
from .resolver import resolve_modifier
from .settings import LogSection, RedisSection, RolloutSettings
from .store import RolloutStore

__all__ = [
    "BatchCoordinator",
    "CheckRequest",
    "CheckResult",
    "Condition",
    "HandlerConfigStore",
    "HandlerRegistry",
    "InMemoryRolloutStore",
    "LegacyPercentageReader",
    "LogSection",
    "ModifierSpec",
    "Percentage",
    "PercentageRange",
    "RedisRolloutStore",
    "RedisSection",
    "RolloutClientProtocol",
    "RolloutError",
    "RolloutErrorCodes",
    "RolloutSettings",
    "RolloutStore",
    "Rollouts",
    "bucket_key",
    "configure_logging",
    "is_value_in_percentage_range",
    "likelihood",
    "load",
    "new_logger",
    "normalize_modifier_percentages",
    "normalize_percentage",
    "resolve_modifier",
]
