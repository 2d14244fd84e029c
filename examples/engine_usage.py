"""Example usage of the HookEngine.

This script demonstrates running validator hooks in priority tiers, reading
the run summary and recovering from orchestration faults. The hooks are small
inline Python programs so the example runs anywhere Python does.
"""

import asyncio
import json
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from hookrunner.config import EngineOptions
from hookrunner.log_config import configure_logging, get_logger
from hookrunner.orchestrator import HookEngine, performance_stats
from hookrunner.priority import TaskConfigValidator

EVENT = {
    "tool_name": "Write",
    "file_path": "src/app.ts",
    "content": "export const answer = 42;\n",
}

GUARD_HOOK = """
import json, sys
event = json.load(sys.stdin)
if event["file_path"].startswith("/etc/"):
    print("refusing to touch system files", file=sys.stderr)
    sys.exit(2)
"""

SECRET_HOOK = """
import json, sys
event = json.load(sys.stdin)
sys.exit(2 if "API_KEY=" in event.get("content", "") else 0)
"""


def python_hook(hook_id: str, code: str, priority: str, family: str) -> dict:
    """Build a hook definition that runs inline Python code."""
    return {
        "id": hook_id,
        "invocation": [sys.executable, "-c", code],
        "priority": priority,
        "family": family,
    }


HOOKS = [
    python_hook("protect-system-files", GUARD_HOOK, "critical", "file_hygiene"),
    python_hook("scan-secrets", SECRET_HOOK, "high", "security"),
    python_hook("lint", "import time; time.sleep(0.2)", "medium", "pattern_enforcement"),
    python_hook("format-check", "import time; time.sleep(0.3)", "medium", "code_cleanup"),
    python_hook("metrics", "pass", "background", "performance"),
]


async def example_basic_run() -> None:
    """Run the hooks against an allowed event."""
    print("\n=== Basic Run ===\n")

    engine = HookEngine(EngineOptions(verbose=True))
    summary = await engine.run(HOOKS, EVENT)

    print(f"Allowed: {summary.success}")
    print(f"Hooks run: {len(summary.results)}")
    print(f"Parallel efficiency: {summary.parallel_efficiency}")
    print(json.dumps(performance_stats(summary), indent=2))


async def example_blocked_run() -> None:
    """Run the hooks against an event the critical guard vetoes."""
    print("\n=== Blocked Run ===\n")

    engine = HookEngine()
    summary = await engine.run(HOOKS, {**EVENT, "file_path": "/etc/hosts"})

    for result in summary.blocks:
        print(f"Blocked by {result.task_id} ({result.tier.value}): {result.output}")
    print(f"Skipped: {', '.join(summary.skipped)}")


def example_validation() -> None:
    """Validate hook definitions before running them."""
    print("\n=== Validation ===\n")

    report = TaskConfigValidator().validate_all(
        [*HOOKS, {"priority": "urgent", "timeout": 0.2}],
    )
    print(report.summary())


def main() -> None:
    """Run all examples."""
    configure_logging(level="INFO", json_logs=False)
    logger = get_logger(__name__)

    example_validation()
    asyncio.run(example_basic_run())
    asyncio.run(example_blocked_run())

    logger.info("examples_completed")


if __name__ == "__main__":
    main()
