"""Tiered Hook Scheduling with Settle-All Joins.

This module implements the TierScheduler that runs hooks tier by tier in
precedence order. Hooks within a tier are dispatched concurrently with
asyncio.gather and the scheduler waits for all of them before deciding
whether the next tier may start.
"""

import asyncio
from collections.abc import Sequence
from typing import Any

import structlog

from hookrunner.log_config import log_progress
from hookrunner.orchestrator.process_invoker import Invoker
from hookrunner.orchestrator.result_aggregator import (
    ExecutionResult,
    Outcome,
    RunSummary,
    aggregate,
)
from hookrunner.priority.classifier import EXECUTION_ORDER, TaskDescriptor, Tier, partition

# Initialize logger
logger = structlog.get_logger(__name__)


class OrchestrationFault(Exception):
    """Exception raised when the scheduling machinery itself fails.

    Individual hook failures never raise; they are reported as results. This
    exception signals a fault in partitioning, joining or aggregation, which
    no single ExecutionResult can represent.
    """

    def __init__(self, message: str, tier: Tier | None = None):
        """Initialize the exception with a descriptive message.

        Args:
            message: Description of the orchestration fault
            tier: Tier being scheduled when the fault occurred, if any
        """
        super().__init__(message)
        self.message = message
        self.tier = tier


def invocation_error_result(task: TaskDescriptor, error: BaseException) -> ExecutionResult:
    """Build a fail result for an invoker that raised instead of returning."""
    return ExecutionResult(
        task_id=task.id,
        tier=task.tier,
        family=task.family,
        duration_ms=0.0,
        outcome=Outcome.FAIL,
        error=f"{type(error).__name__}: {error}",
    )


class TierScheduler:
    """Runs hooks in priority tiers with fail-fast gating.

    Tiers run strictly one after another (critical, high, medium, low,
    background). Every hook of a tier runs concurrently and the tier settles
    only when all of them have finished; a failing or blocking sibling never
    cancels the others. A block in a gating tier prevents all later tiers from
    starting.

    The scheduler keeps no state between runs, so one instance can serve
    concurrent runs.

    Example:
        >>> scheduler = TierScheduler(ProcessInvoker())
        >>> tasks = classify_all([
        ...     {"command": "guard.sh", "priority": "critical"},
        ...     {"command": "lint.sh", "priority": "low"},
        ... ])
        >>> summary = await scheduler.run(tasks, {"tool_name": "Write"})
        >>> summary.blocked
        False

    Attributes:
        invoker: Runs a single hook and returns its result
        verbose: Whether per-tier progress is logged at INFO level
    """

    def __init__(self, invoker: Invoker, verbose: bool = False):
        """Initialize the tier scheduler.

        Args:
            invoker: Invoker used for every hook
            verbose: Log per-tier progress at INFO instead of DEBUG
        """
        self.invoker = invoker
        self.verbose = verbose

    async def run(self, tasks: Sequence[TaskDescriptor], input_data: Any) -> RunSummary:
        """Execute hooks tier by tier and summarise the verdict.

        Args:
            tasks: Classified hooks in caller order
            input_data: Event payload passed to every hook

        Returns:
            RunSummary of every hook that ran

        Raises:
            OrchestrationFault: If the scheduling machinery fails
        """
        tasks = list(tasks)
        if not tasks:
            log_progress(logger, self.verbose, "scheduler_run_empty")
            return aggregate([])

        current_tier: Tier | None = None
        results: list[ExecutionResult] = []

        try:
            groups = partition(tasks)
            skipped: list[str] = []

            for position, tier in enumerate(EXECUTION_ORDER):
                group = groups[tier]
                if not group:
                    continue

                current_tier = tier
                tier_results = await self._run_tier(tier, group, input_data)
                results.extend(tier_results)

                blocking = [r.task_id for r in tier_results if r.outcome == Outcome.BLOCK]
                if not blocking:
                    continue

                if tier.is_gating:
                    skipped = [
                        task.id
                        for later in EXECUTION_ORDER[position + 1 :]
                        for task in groups[later]
                    ]
                    logger.warning(
                        "gating_tier_blocked",
                        tier=tier.value,
                        blocking_tasks=blocking,
                        skipped_count=len(skipped),
                    )
                    break

                logger.info(
                    "non_gating_tier_blocked",
                    tier=tier.value,
                    blocking_tasks=blocking,
                )

            summary = aggregate(results, skipped)

        except Exception as e:
            logger.exception(
                "orchestration_failed",
                error=str(e),
                tier=current_tier.value if current_tier else None,
                completed_tasks=len(results),
                total_tasks=len(tasks),
            )
            msg = f"Tier orchestration failed: {e}"
            raise OrchestrationFault(msg, tier=current_tier) from e

        log_progress(
            logger,
            self.verbose,
            "scheduler_run_completed",
            total_tasks=len(tasks),
            executed=len(summary.results),
            skipped=len(summary.skipped),
            blocked=summary.blocked,
            parallel_efficiency=summary.parallel_efficiency,
        )
        return summary

    async def _run_tier(
        self,
        tier: Tier,
        group: list[TaskDescriptor],
        input_data: Any,
    ) -> list[ExecutionResult]:
        """Run every hook of one tier concurrently and wait for all of them.

        Args:
            tier: Tier being executed
            group: Hooks of the tier in caller order
            input_data: Event payload

        Returns:
            Results in the same order as ``group``
        """
        log_progress(
            logger,
            self.verbose,
            "tier_execution_started",
            tier=tier.value,
            task_count=len(group),
            task_ids=[task.id for task in group],
        )

        # return_exceptions=True keeps one raising invoker from cancelling its siblings
        completed = await asyncio.gather(
            *(self.invoker.invoke(task, input_data) for task in group),
            return_exceptions=True,
        )

        tier_results: list[ExecutionResult] = []
        for task, outcome in zip(group, completed, strict=True):
            if isinstance(outcome, BaseException):
                logger.error(
                    "task_invocation_raised",
                    task_id=task.id,
                    tier=tier.value,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                tier_results.append(invocation_error_result(task, outcome))
            else:
                tier_results.append(outcome)

        log_progress(
            logger,
            self.verbose,
            "tier_execution_completed",
            tier=tier.value,
            outcomes={r.task_id: r.outcome.value for r in tier_results},
        )
        return tier_results
