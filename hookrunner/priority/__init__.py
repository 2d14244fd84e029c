"""Priority classification and hook definition validation."""

from hookrunner.priority.classifier import (
    EXECUTION_ORDER,
    FAMILIES,
    UNCLASSIFIED_FAMILY,
    KnownHook,
    TaskDescriptor,
    Tier,
    blocking_behavior,
    classify,
    classify_all,
    lookup_known_hook,
    partition,
    registry_statistics,
    sequential_order,
)
from hookrunner.priority.validator import TaskConfigValidator, ValidationReport

__all__ = [
    "EXECUTION_ORDER",
    "FAMILIES",
    "UNCLASSIFIED_FAMILY",
    "KnownHook",
    "TaskConfigValidator",
    "TaskDescriptor",
    "Tier",
    "ValidationReport",
    "blocking_behavior",
    "classify",
    "classify_all",
    "lookup_known_hook",
    "partition",
    "registry_statistics",
    "sequential_order",
]
