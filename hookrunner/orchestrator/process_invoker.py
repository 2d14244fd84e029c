"""Process Invoker for validator hooks.

This module runs one hook as an isolated child process: the event payload is
written once to the child's stdin as a JSON document, stdout and stderr are
collected, a wall-clock deadline is enforced, and the exit status is decoded
into an Outcome. Every failure mode is returned as data; ``invoke`` never
raises, so the scheduler's settle-all join always completes.
"""

import asyncio
import contextlib
import json
import os
import signal
import time
from pathlib import Path
from typing import Any, Protocol

import structlog

from hookrunner.log_config import log_progress
from hookrunner.orchestrator.result_aggregator import ExecutionResult, Outcome
from hookrunner.priority.classifier import TaskDescriptor

# Initialize logger
logger = structlog.get_logger(__name__)

# Constants
EXIT_ALLOW = 0
EXIT_BLOCK = 2
DEFAULT_GRACE_PERIOD_MS = 1000
MS_PER_SECOND = 1000
READ_CHUNK_SIZE = 65536

_KILL_SIGNAL = getattr(signal, "SIGKILL", signal.SIGTERM)


class SpawnError(Exception):
    """Raised when a hook process cannot be started."""

    def __init__(self, message: str, task_id: str | None = None):
        """Initialize the exception.

        Args:
            message: Description of the spawn failure
            task_id: Hook that could not be started
        """
        super().__init__(message)
        self.message = message
        self.task_id = task_id


class InvocationTimeout(Exception):
    """Raised when a hook process outlives its deadline."""

    def __init__(self, task_id: str, timeout_ms: int, output: str = ""):
        """Initialize the exception.

        Args:
            task_id: Hook that timed out
            timeout_ms: Deadline that was exceeded
            output: Whatever the hook wrote before the deadline
        """
        super().__init__(f"Hook timed out after {timeout_ms}ms")
        self.task_id = task_id
        self.timeout_ms = timeout_ms
        self.output = output


class Invoker(Protocol):
    """Anything that can run one hook and report its verdict."""

    async def invoke(self, task: TaskDescriptor, input_data: Any) -> ExecutionResult:
        """Run the hook against the input and return its result."""
        ...


def decode_exit_code(code: int | None) -> Outcome:
    """Map a process exit status onto an Outcome.

    ``0`` allows, ``2`` blocks, every other status (including death by signal,
    reported as a negative code) is a failure.
    """
    if code == EXIT_ALLOW:
        return Outcome.ALLOW
    if code == EXIT_BLOCK:
        return Outcome.BLOCK
    return Outcome.FAIL


def encode_input(input_data: Any) -> bytes:
    """Serialise the event payload into the single stdin write.

    Raises:
        TypeError: If the payload is not JSON serialisable
        ValueError: If the payload contains circular references
    """
    if input_data is None:
        return b""
    if isinstance(input_data, bytes):
        return input_data
    return json.dumps(input_data).encode("utf-8")


def format_output(stdout: bytes, stderr: bytes) -> str:
    """Decode both streams and join the non-empty ones, stdout first."""
    parts = (stream.decode("utf-8", errors="replace").strip() for stream in (stdout, stderr))
    return "\n".join(part for part in parts if part)


class ProcessInvoker:
    """Runs hooks as child processes with timeout enforcement.

    On POSIX each hook is started in its own session so that a timeout can
    signal the whole process group, including grandchildren spawned by shell
    wrappers.

    Example:
        >>> invoker = ProcessInvoker(grace_period_ms=500)
        >>> task = classify({"command": "python check.py", "priority": "high"})
        >>> result = await invoker.invoke(task, {"tool_name": "Write"})
        >>> result.outcome
        <Outcome.ALLOW: 'allow'>

    Attributes:
        grace_period_ms: Time between SIGTERM and SIGKILL after a timeout
        cwd: Working directory for hook processes (None inherits)
        verbose: Whether per-hook progress is logged at INFO level
    """

    def __init__(
        self,
        grace_period_ms: int = DEFAULT_GRACE_PERIOD_MS,
        cwd: str | Path | None = None,
        verbose: bool = False,
    ):
        """Initialize the process invoker.

        Args:
            grace_period_ms: Milliseconds to wait after SIGTERM before SIGKILL
            cwd: Working directory for hook processes
            verbose: Log per-hook progress at INFO instead of DEBUG

        Raises:
            ValueError: If grace_period_ms is negative
        """
        if grace_period_ms < 0:
            msg = f"grace_period_ms must be non-negative, got {grace_period_ms}"
            raise ValueError(msg)

        self.grace_period_ms = grace_period_ms
        self.cwd = cwd
        self.verbose = verbose
        self._use_process_group = os.name == "posix"

    async def invoke(self, task: TaskDescriptor, input_data: Any) -> ExecutionResult:
        """Run one hook and return its result.

        Args:
            task: Hook to run
            input_data: Event payload, serialised to JSON on stdin

        Returns:
            ExecutionResult; never raises for hook-level failures
        """
        start = time.monotonic()

        try:
            payload = encode_input(input_data)
        except (TypeError, ValueError) as e:
            logger.exception("task_input_encoding_failed", task_id=task.id, error=str(e))
            return self._result(task, start, Outcome.FAIL, error=f"Input encoding failed: {e}")

        try:
            process = await self._spawn(task)
        except SpawnError as e:
            logger.warning("task_spawn_failed", task_id=task.id, error=e.message)
            return self._result(task, start, Outcome.FAIL, error=e.message)

        log_progress(
            logger,
            self.verbose,
            "task_process_started",
            task_id=task.id,
            pid=process.pid,
            tier=task.tier,
        )

        try:
            output = await self._communicate(process, task, payload)
        except InvocationTimeout as e:
            logger.warning(
                "task_invocation_timeout",
                task_id=task.id,
                timeout_ms=task.timeout_ms,
                pid=process.pid,
            )
            await self._terminate(process, task)
            return self._result(task, start, Outcome.TIMEOUT, output=e.output, error=str(e))
        except asyncio.CancelledError:
            self._send_signal(process, _KILL_SIGNAL)
            # Reap the child even though the caller is going away
            with contextlib.suppress(asyncio.CancelledError):
                await asyncio.shield(process.wait())
            raise
        except OSError as e:
            logger.exception("task_io_failed", task_id=task.id, error=str(e))
            await self._terminate(process, task)
            return self._result(task, start, Outcome.FAIL, error=str(e))

        code = process.returncode
        outcome = decode_exit_code(code)
        error = None
        if outcome == Outcome.FAIL:
            error = f"Hook exited with code {code}"

        result = self._result(task, start, outcome, output=output, error=error, exit_code=code)
        log_progress(
            logger,
            self.verbose,
            "task_process_completed",
            task_id=task.id,
            exit_code=code,
            outcome=outcome.value,
            duration_ms=result.duration_ms,
        )
        return result

    async def _spawn(self, task: TaskDescriptor) -> asyncio.subprocess.Process:
        """Start the hook process with all three standard streams piped.

        Raises:
            SpawnError: If there is no command or the OS refuses to start it
        """
        if not task.invocation:
            msg = "No command specified"
            raise SpawnError(msg, task_id=task.id)

        executable, *args = task.invocation
        try:
            return await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
                start_new_session=self._use_process_group,
            )
        except OSError as e:
            msg = f"Failed to start '{executable}': {e.strerror or e}"
            raise SpawnError(msg, task_id=task.id) from e

    async def _communicate(
        self,
        process: asyncio.subprocess.Process,
        task: TaskDescriptor,
        payload: bytes,
    ) -> str:
        """Write the payload, close stdin and collect output until exit.

        Output is gathered chunk by chunk so that whatever the hook wrote
        before a timeout is still reported.

        Raises:
            InvocationTimeout: If the process is still running at the deadline
        """
        stdout: list[bytes] = []
        stderr: list[bytes] = []
        try:
            await asyncio.wait_for(
                asyncio.gather(
                    self._feed_stdin(process, payload),
                    self._collect(process.stdout, stdout),
                    self._collect(process.stderr, stderr),
                    process.wait(),
                ),
                timeout=task.timeout_ms / MS_PER_SECOND,
            )
        except TimeoutError as e:
            output = format_output(b"".join(stdout), b"".join(stderr))
            raise InvocationTimeout(task.id, task.timeout_ms, output=output) from e

        return format_output(b"".join(stdout), b"".join(stderr))

    @staticmethod
    async def _feed_stdin(process: asyncio.subprocess.Process, payload: bytes) -> None:
        # Hooks that never read stdin may close it early
        with contextlib.suppress(BrokenPipeError, ConnectionResetError):
            if payload:
                process.stdin.write(payload)
                await process.stdin.drain()
            process.stdin.close()

    @staticmethod
    async def _collect(stream: asyncio.StreamReader, chunks: list[bytes]) -> None:
        while chunk := await stream.read(READ_CHUNK_SIZE):
            chunks.append(chunk)

    async def _terminate(self, process: asyncio.subprocess.Process, task: TaskDescriptor) -> None:
        """Stop a hook process and reap it.

        Sends SIGTERM, waits for the grace period, then SIGKILL. The kill is
        sent even when the leader exits in time, since other members of its
        group may have ignored SIGTERM. Always waits for the process so no
        zombie is left behind.
        """
        self._send_signal(process, signal.SIGTERM)
        try:
            await asyncio.wait_for(process.wait(), timeout=self.grace_period_ms / MS_PER_SECOND)
        except TimeoutError:
            logger.warning(
                "task_process_killed",
                task_id=task.id,
                pid=process.pid,
                grace_period_ms=self.grace_period_ms,
            )
        self._send_signal(process, _KILL_SIGNAL)
        await process.wait()

    def _send_signal(self, process: asyncio.subprocess.Process, sig: int) -> None:
        # The process (or its whole group) may already be gone
        with contextlib.suppress(ProcessLookupError, PermissionError):
            if self._use_process_group:
                os.killpg(process.pid, sig)
            elif process.returncode is None:
                process.send_signal(sig)

    @staticmethod
    def _result(
        task: TaskDescriptor,
        start: float,
        outcome: Outcome,
        output: str = "",
        error: str | None = None,
        exit_code: int | None = None,
    ) -> ExecutionResult:
        return ExecutionResult(
            task_id=task.id,
            tier=task.tier,
            family=task.family,
            duration_ms=round((time.monotonic() - start) * MS_PER_SECOND, 3),
            outcome=outcome,
            output=output,
            error=error,
            exit_code=exit_code,
        )
