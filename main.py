#!/usr/bin/env python3
"""Main Entry Point and CLI Integration.

This module provides the command-line interface for the hook runner. It reads a
document of the form ``{"hooks": [...], "data": {...}}`` from a file or stdin,
runs the hooks through the tiered engine and writes the run summary as JSON to
stdout. Logs go to stderr.

Exit codes:
    0: every hook allowed the change
    1: a hook failed or timed out, or the runner itself could not run
    2: a hook blocked the change
"""

import argparse
import asyncio
import json
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from hookrunner.config import EngineOptions, RunnerConfig, load_config
from hookrunner.log_config import configure_logging
from hookrunner.orchestrator.engine import HookEngine
from hookrunner.orchestrator.result_aggregator import RunSummary
from hookrunner.orchestrator.scheduler import OrchestrationFault
from hookrunner.priority.classifier import KnownHook, registry_statistics
from hookrunner.priority.validator import TaskConfigValidator

logger = structlog.get_logger(__name__)

# Constants
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_BLOCKED = 2
DEFAULT_LOG_LEVEL = "WARNING"


def read_document(input_file: str | None) -> dict[str, Any]:
    """Read the hooks document from a file or stdin.

    Args:
        input_file: Path to a JSON file, or None to read stdin

    Returns:
        Dictionary with ``hooks`` (list) and ``data`` keys

    Raises:
        FileNotFoundError: If input_file does not exist
        ValueError: If the document is not valid JSON or has the wrong shape
    """
    if input_file is not None:
        path = Path(input_file)
        if not path.exists():
            msg = f"Input file not found: {path}"
            raise FileNotFoundError(msg)
        text = path.read_text(encoding="utf-8")
    else:
        text = sys.stdin.read()

    text = text.strip()
    document = json.loads(text) if text else {}

    if not isinstance(document, dict):
        msg = "Input document must be a JSON object"
        raise ValueError(msg)

    hooks = document.get("hooks") or []
    if not isinstance(hooks, list):
        msg = "'hooks' must be a list of hook definitions"
        raise ValueError(msg)

    return {"hooks": hooks, "data": document.get("data", {})}


def exit_code_for(summary: RunSummary) -> int:
    """Map a run summary onto the process exit code."""
    if summary.blocked:
        return EXIT_BLOCKED
    if summary.has_errors:
        return EXIT_ERROR
    return EXIT_OK


def build_config(args: argparse.Namespace) -> RunnerConfig:
    """Load the configuration and apply command-line overrides.

    Raises:
        FileNotFoundError: If --config points at a missing file
        ValueError: If the configuration is invalid
    """
    config = load_config(args.config)

    overrides: dict[str, Any] = {}
    if args.timeout_ms is not None:
        overrides["timeout_ms"] = args.timeout_ms
    if args.no_fallback:
        overrides["fallback_to_sequential"] = False
    if args.verbose or args.debug:
        overrides["verbose"] = True

    if overrides:
        engine = EngineOptions.model_validate({**config.engine.model_dump(), **overrides})
        config = config.model_copy(update={"engine": engine})

    return config


def dry_run(hooks: list[Any], registry: Mapping[str, KnownHook] | None = None) -> int:
    """Validate hook definitions without running them.

    The report also summarises the configured known hooks registry.
    """
    report = TaskConfigValidator().validate_all(hooks)
    print(
        json.dumps(
            {
                "valid": report.is_valid,
                "errors": report.errors,
                "warnings": report.warnings,
                "registry": registry_statistics(registry or {}),
            },
            indent=2,
        ),
    )
    return EXIT_OK if report.is_valid else EXIT_ERROR


async def main_async(args: argparse.Namespace) -> int:
    """Main async entry point.

    Args:
        args: Parsed command-line arguments

    Returns:
        Process exit code
    """
    level = args.log_level or DEFAULT_LOG_LEVEL
    configure_logging(level, json_logs=level != "DEBUG")

    try:
        config = build_config(args)
        if args.log_level is None and config.logging_level != level:
            configure_logging(config.logging_level, json_logs=config.logging_level != "DEBUG")

        for warning in config.validate_config():
            logger.warning("configuration_warning", message=warning)

        document = read_document(args.input_file)

        if args.dry_run:
            return dry_run(document["hooks"], config.registry())

        engine = HookEngine(config.engine, registry=config.registry())
        summary = await engine.run(document["hooks"], document["data"])

    except FileNotFoundError as e:
        logger.exception("input_not_found", error=str(e))
        return EXIT_ERROR

    except ValueError as e:
        logger.exception("input_validation_error", error=str(e))
        return EXIT_ERROR

    except OrchestrationFault as e:
        logger.exception("engine_fault", error=e.message)
        return EXIT_ERROR

    print(json.dumps(summary.to_dict(), indent=2))
    return exit_code_for(summary)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Hook runner - priority-tiered concurrent validator execution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run hooks from a file
  hookrunner hooks.json

  # Read the document from stdin
  cat hooks.json | hookrunner

  # Validate hook definitions without running them
  hookrunner hooks.json --dry-run

  # Fail instead of replaying sequentially on orchestration faults
  hookrunner hooks.json --no-fallback
        """,
    )

    parser.add_argument(
        "input_file",
        nargs="?",
        default=None,
        help="JSON document with 'hooks' and 'data' (default: stdin)",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=str,
        default=None,
        help="Path to a YAML engine configuration file",
    )

    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        help="Timeout for hooks that do not declare one, in milliseconds",
    )

    parser.add_argument(
        "--no-fallback",
        action="store_true",
        help="Do not fall back to sequential execution on orchestration faults",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose progress output (INFO level)",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug output (DEBUG level)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate hook definitions without executing them",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set logging level (default: WARNING)",
    )

    args = parser.parse_args(argv)

    if args.debug:
        args.log_level = "DEBUG"
    elif args.verbose and args.log_level is None:
        args.log_level = "INFO"

    return args


def main() -> None:
    """Main entry point for the hook runner.

    Parses arguments, runs the async main function and exits with the
    resulting code.
    """
    args = parse_args()

    try:
        exit_code = asyncio.run(main_async(args))
    except KeyboardInterrupt:
        exit_code = EXIT_ERROR

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
