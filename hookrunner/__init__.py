"""Priority-tiered concurrent runner for validator hooks."""

from hookrunner.config import EngineOptions, RunnerConfig, load_config
from hookrunner.orchestrator import (
    ExecutionResult,
    HookEngine,
    OrchestrationFault,
    Outcome,
    RunSummary,
    execute,
    execute_sync,
)
from hookrunner.priority import TaskDescriptor, Tier, classify

__version__ = "0.1.0"

__all__ = [
    "EngineOptions",
    "ExecutionResult",
    "HookEngine",
    "OrchestrationFault",
    "Outcome",
    "RunSummary",
    "RunnerConfig",
    "TaskDescriptor",
    "Tier",
    "classify",
    "execute",
    "execute_sync",
    "load_config",
]
