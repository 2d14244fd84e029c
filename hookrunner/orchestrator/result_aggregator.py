"""Hook result model and aggregation.

This module holds the per-hook ExecutionResult, the Outcome verdict enum and
the pure aggregation that folds a list of results into a RunSummary with
timing and per-tier diagnostics.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from hookrunner.priority.classifier import EXECUTION_ORDER, Tier

# Constants
EFFICIENCY_PRECISION = 2


class Outcome(str, Enum):
    """Verdict of one hook invocation.

    ``fail`` and ``timeout`` both mean the validator produced no clean
    verdict; they are kept apart so a broken check can be told from a slow one.
    """

    ALLOW = "allow"
    BLOCK = "block"
    FAIL = "fail"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class ExecutionResult:
    """Result of a single hook invocation.

    Attributes:
        task_id: Identifier of the hook that ran
        tier: Tier the hook was scheduled in
        family: Family label of the hook
        duration_ms: Wall-clock time from spawn to settle
        outcome: Decoded verdict
        output: Captured stdout and stderr, informational only
        error: Reason for a fail or timeout outcome
        exit_code: Raw exit status when the process exited
    """

    task_id: str
    tier: Tier
    family: str
    duration_ms: float
    outcome: Outcome
    output: str = ""
    error: str | None = None
    exit_code: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise the result into JSON-compatible primitives."""
        return {
            "task_id": self.task_id,
            "tier": Tier.coerce(self.tier).value,
            "family": self.family,
            "duration_ms": self.duration_ms,
            "outcome": self.outcome.value,
            "output": self.output,
            "error": self.error,
            "exit_code": self.exit_code,
        }


@dataclass
class RunSummary:
    """Aggregated verdict of one engine run.

    Attributes:
        success: True when no hook blocked
        blocked: True when at least one hook blocked
        results: Results in the order the hooks were scheduled
        total_duration_ms: Sum of every hook duration
        max_duration_ms: Longest single hook duration
        parallel_efficiency: total_duration_ms / max_duration_ms
        by_tier: Per-tier outcome counts and durations
        skipped: Ids of hooks never started because a gating tier blocked
    """

    success: bool
    blocked: bool
    results: list[ExecutionResult] = field(default_factory=list)
    total_duration_ms: float = 0.0
    max_duration_ms: float = 0.0
    parallel_efficiency: float = 1.0
    by_tier: dict[str, dict[str, Any]] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def blocks(self) -> list[ExecutionResult]:
        """Results whose hook vetoed the change."""
        return [r for r in self.results if r.outcome == Outcome.BLOCK]

    @property
    def errors(self) -> list[ExecutionResult]:
        """Results whose hook malfunctioned (fail or timeout)."""
        return [r for r in self.results if r.outcome in (Outcome.FAIL, Outcome.TIMEOUT)]

    @property
    def successful(self) -> list[ExecutionResult]:
        """Results whose hook allowed the change."""
        return [r for r in self.results if r.outcome == Outcome.ALLOW]

    @property
    def has_errors(self) -> bool:
        """Whether any hook failed or timed out."""
        return bool(self.errors)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the summary into JSON-compatible primitives."""
        return {
            "success": self.success,
            "blocked": self.blocked,
            "total_hooks": len(self.results),
            "total_duration_ms": self.total_duration_ms,
            "max_duration_ms": self.max_duration_ms,
            "parallel_efficiency": self.parallel_efficiency,
            "by_tier": self.by_tier,
            "skipped": list(self.skipped),
            "results": [r.to_dict() for r in self.results],
        }


def _empty_tier_stats() -> dict[str, Any]:
    stats: dict[str, Any] = {outcome.value: 0 for outcome in Outcome}
    stats["count"] = 0
    stats["duration_ms"] = 0.0
    return stats


def _tier_breakdown(results: Sequence[ExecutionResult]) -> dict[str, dict[str, Any]]:
    breakdown: dict[Tier, dict[str, Any]] = {}
    for result in results:
        stats = breakdown.setdefault(Tier.coerce(result.tier), _empty_tier_stats())
        stats[result.outcome.value] += 1
        stats["count"] += 1
        stats["duration_ms"] += result.duration_ms

    return {tier.value: breakdown[tier] for tier in EXECUTION_ORDER if tier in breakdown}


def aggregate(
    results: Iterable[ExecutionResult],
    skipped: Iterable[str] = (),
) -> RunSummary:
    """Fold execution results into a RunSummary.

    Pure function: no I/O, no logging.

    Args:
        results: Results in scheduling order
        skipped: Ids of hooks that were never started

    Returns:
        RunSummary for the results

    Example:
        >>> summary = aggregate([])
        >>> summary.success, summary.parallel_efficiency
        (True, 1.0)
    """
    results = list(results)
    durations = [r.duration_ms for r in results]
    total_duration = float(sum(durations))
    max_duration = float(max(durations)) if durations else 0.0

    if results and max_duration > 0:
        efficiency = round(total_duration / max_duration, EFFICIENCY_PRECISION)
    else:
        efficiency = 1.0

    blocked = any(r.outcome == Outcome.BLOCK for r in results)

    return RunSummary(
        success=not blocked,
        blocked=blocked,
        results=results,
        total_duration_ms=total_duration,
        max_duration_ms=max_duration,
        parallel_efficiency=efficiency,
        by_tier=_tier_breakdown(results),
        skipped=list(skipped),
    )


def performance_stats(summary: RunSummary) -> dict[str, Any]:
    """Get performance statistics for a run.

    Args:
        summary: RunSummary produced by :func:`aggregate`

    Returns:
        Dictionary with totals, averages, success rate and a per-tier
        breakdown of count, duration, average duration and allowed hooks
    """
    total_hooks = len(summary.results)
    if total_hooks == 0:
        return {
            "total_hooks": 0,
            "total_duration_ms": 0.0,
            "max_duration_ms": 0.0,
            "average_duration_ms": 0.0,
            "parallel_efficiency": summary.parallel_efficiency,
            "success_rate": "0.0%",
            "by_tier": {},
        }

    by_tier = {}
    for tier, stats in summary.by_tier.items():
        by_tier[tier] = {
            "count": stats["count"],
            "duration_ms": stats["duration_ms"],
            "average_duration_ms": stats["duration_ms"] / stats["count"],
            "success": stats[Outcome.ALLOW.value],
        }

    success_rate = len(summary.successful) / total_hooks * 100

    return {
        "total_hooks": total_hooks,
        "total_duration_ms": summary.total_duration_ms,
        "max_duration_ms": summary.max_duration_ms,
        "average_duration_ms": summary.total_duration_ms / total_hooks,
        "parallel_efficiency": summary.parallel_efficiency,
        "success_rate": f"{success_rate:.1f}%",
        "by_tier": by_tier,
    }
