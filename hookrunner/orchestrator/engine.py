"""Hook engine entry point.

Combines classification, tiered concurrent scheduling and the sequential
fallback behind a single ``execute`` call configured by EngineOptions.
"""

import asyncio
import time
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from hookrunner.config import EngineOptions
from hookrunner.log_config import bind_run_id, unbind_run_id
from hookrunner.orchestrator.fallback import SequentialFallback
from hookrunner.orchestrator.process_invoker import Invoker, ProcessInvoker
from hookrunner.orchestrator.result_aggregator import RunSummary
from hookrunner.orchestrator.scheduler import OrchestrationFault, TierScheduler
from hookrunner.priority.classifier import KnownHook, TaskDescriptor, classify_all

# Initialize logger
logger = structlog.get_logger(__name__)

HookDefinition = Mapping[str, Any] | TaskDescriptor


class HookEngine:
    """Decides whether a change is allowed by running its validator hooks.

    Example:
        >>> engine = HookEngine(EngineOptions(verbose=True))
        >>> summary = await engine.run(
        ...     [{"command": "guard.sh", "priority": "critical"}],
        ...     {"tool_name": "Write", "file_path": "src/app.ts"},
        ... )
        >>> summary.success
        True

    Attributes:
        options: Engine options
        invoker: Runs a single hook; a ProcessInvoker unless one is injected
        scheduler: Concurrent tier scheduler
        fallback: Sequential replay used on orchestration faults
        registry: Known hooks whose classification overrides their definition
    """

    def __init__(
        self,
        options: EngineOptions | None = None,
        invoker: Invoker | None = None,
        registry: Mapping[str, KnownHook] | None = None,
    ):
        """Initialize the engine.

        Args:
            options: Engine options (defaults when None)
            invoker: Replacement invoker, e.g. an in-process fake in tests
            registry: Known hooks keyed by command or script name
        """
        self.options = options or EngineOptions()
        self.registry = dict(registry or {})
        self.invoker = invoker or ProcessInvoker(
            grace_period_ms=self.options.grace_period_ms,
            cwd=self.options.cwd,
            verbose=self.options.verbose,
        )
        self.scheduler = TierScheduler(self.invoker, verbose=self.options.verbose)
        self.fallback = SequentialFallback(self.invoker, verbose=self.options.verbose)

    async def run(self, tasks: Iterable[HookDefinition] | None, input_data: Any) -> RunSummary:
        """Classify and execute hooks against one event.

        Args:
            tasks: Raw hook definitions or TaskDescriptors
            input_data: Event payload written to every hook's stdin

        Returns:
            RunSummary of the run

        Raises:
            OrchestrationFault: If orchestration faults and the fallback is
                disabled or fails as well
        """
        bind_run_id(uuid.uuid4().hex[:12])
        start = time.monotonic()

        try:
            descriptors = classify_all(tasks or [], self.options.timeout_ms, self.registry)
            logger.info("engine_run_started", total_tasks=len(descriptors))

            try:
                summary = await self.scheduler.run(descriptors, input_data)
            except OrchestrationFault as fault:
                if not self.options.fallback_to_sequential:
                    logger.error("orchestration_fault_not_recovered", error=fault.message)
                    raise

                logger.warning(
                    "falling_back_to_sequential",
                    error=fault.message,
                    tier=fault.tier.value if fault.tier else None,
                )
                try:
                    summary = await self.fallback.run_sequential(descriptors, input_data)
                except Exception as e:
                    logger.exception("sequential_fallback_failed", error=str(e))
                    msg = f"Sequential fallback failed after orchestration fault: {e}"
                    raise OrchestrationFault(msg) from e

            logger.info(
                "engine_run_completed",
                success=summary.success,
                blocked=summary.blocked,
                errors=len(summary.errors),
                executed=len(summary.results),
                skipped=len(summary.skipped),
                wall_clock_ms=round((time.monotonic() - start) * 1000, 3),
            )
            return summary
        finally:
            unbind_run_id()


async def execute(
    tasks: Iterable[HookDefinition] | None,
    input_data: Any,
    options: EngineOptions | None = None,
    registry: Mapping[str, KnownHook] | None = None,
) -> RunSummary:
    """Run hooks against an event with a one-off engine.

    Args:
        tasks: Raw hook definitions or TaskDescriptors
        input_data: Event payload
        options: Engine options (defaults when None)
        registry: Known hooks keyed by command or script name

    Returns:
        RunSummary of the run
    """
    return await HookEngine(options, registry=registry).run(tasks, input_data)


def execute_sync(
    tasks: Iterable[HookDefinition] | None,
    input_data: Any,
    options: EngineOptions | None = None,
    registry: Mapping[str, KnownHook] | None = None,
) -> RunSummary:
    """Blocking wrapper around :func:`execute` for callers without a loop."""
    return asyncio.run(execute(tasks, input_data, options, registry))
