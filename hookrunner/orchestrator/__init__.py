"""Orchestrator module for tiered hook execution.

This module contains the ProcessInvoker that runs a single hook, the
TierScheduler that runs tiers with settle-all joins, the SequentialFallback
used on orchestration faults and the HookEngine entry point.
"""

from hookrunner.orchestrator.engine import HookEngine, execute, execute_sync
from hookrunner.orchestrator.fallback import SequentialFallback
from hookrunner.orchestrator.process_invoker import (
    InvocationTimeout,
    Invoker,
    ProcessInvoker,
    SpawnError,
)
from hookrunner.orchestrator.result_aggregator import (
    ExecutionResult,
    Outcome,
    RunSummary,
    aggregate,
    performance_stats,
)
from hookrunner.orchestrator.scheduler import OrchestrationFault, TierScheduler

__all__ = [
    "ExecutionResult",
    "HookEngine",
    "InvocationTimeout",
    "Invoker",
    "OrchestrationFault",
    "Outcome",
    "ProcessInvoker",
    "RunSummary",
    "SequentialFallback",
    "SpawnError",
    "TierScheduler",
    "aggregate",
    "execute",
    "execute_sync",
    "performance_stats",
]
