"""Sequential fallback execution.

Replays hooks strictly one at a time in tier precedence order. The engine only
uses this path when the concurrent orchestration itself faults; the summary it
produces has exactly the same shape as the concurrent one.
"""

import dataclasses
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
from hookrunner.orchestrator.scheduler import invocation_error_result
from hookrunner.priority.classifier import TaskDescriptor, Tier, sequential_order

logger = structlog.get_logger(__name__)


class SequentialFallback:
    """One-hook-at-a-time executor mirroring the scheduler's gating rule.

    Malformed tiers are normalised to medium instead of failing, so this path
    still produces a verdict for input that broke the concurrent path.

    Attributes:
        invoker: Runs a single hook and returns its result
        verbose: Whether per-hook progress is logged at INFO level
    """

    def __init__(self, invoker: Invoker, verbose: bool = False):
        self.invoker = invoker
        self.verbose = verbose

    async def run_sequential(self, tasks: Sequence[TaskDescriptor], input_data: Any) -> RunSummary:
        """Run hooks sequentially, stopping at the first gating block.

        Args:
            tasks: Classified hooks in caller order
            input_data: Event payload passed to every hook

        Returns:
            RunSummary of every hook that ran
        """
        ordered = [
            dataclasses.replace(task, tier=Tier.coerce(task.tier))
            for task in sequential_order(tasks)
        ]

        logger.info("sequential_fallback_started", total_tasks=len(ordered))

        results: list[ExecutionResult] = []
        skipped: list[str] = []

        for position, task in enumerate(ordered):
            try:
                result = await self.invoker.invoke(task, input_data)
            except Exception as e:
                logger.exception("task_invocation_raised", task_id=task.id, error=str(e))
                result = invocation_error_result(task, e)

            results.append(result)
            log_progress(
                logger,
                self.verbose,
                "sequential_task_completed",
                task_id=task.id,
                tier=task.tier.value,
                outcome=result.outcome.value,
            )

            if result.outcome == Outcome.BLOCK and task.tier.is_gating:
                skipped = [later.id for later in ordered[position + 1 :]]
                logger.warning(
                    "gating_task_blocked",
                    task_id=task.id,
                    tier=task.tier.value,
                    skipped_count=len(skipped),
                )
                break

        summary = aggregate(results, skipped)
        logger.info(
            "sequential_fallback_completed",
            executed=len(summary.results),
            skipped=len(summary.skipped),
            blocked=summary.blocked,
        )
        return summary
