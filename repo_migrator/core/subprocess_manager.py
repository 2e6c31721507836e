"""Subprocess execution for git commands with timeout and cleanup handling."""

import asyncio
import os
from collections.abc import Iterable
from contextlib import asynccontextmanager
from typing import Any, Optional

import structlog

from repo_migrator.core.exceptions import GitCommandError

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 30  # Default timeout in seconds
KILL_TIMEOUT = 5  # Time to wait after SIGTERM before SIGKILL
REDACTED = "***"


def redact(text: str, secrets: Iterable[str | None]) -> str:
    """Replace every non-empty secret in ``text`` with a placeholder."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


class SubprocessManager:
    """Manages subprocess execution with proper resource cleanup."""

    def __init__(self):
        self._active_processes: set[asyncio.subprocess.Process] = set()
        self._cleanup_lock = asyncio.Lock()

    async def run_command(
        self,
        cmd: list[str],
        *,
        timeout: Optional[float] = None,
        cwd: Optional[str] = None,
        env: Optional[dict[str, str]] = None,
        secrets: Iterable[str | None] = (),
    ) -> "SubprocessResult":
        """
        Run a command asynchronously with proper resource management.

        Args:
            cmd: Command and arguments as a list
            timeout: Timeout in seconds (default: DEFAULT_TIMEOUT)
            cwd: Working directory for the command
            env: Environment variables
            secrets: Values masked in logs, results and error messages

        Returns:
            SubprocessResult with returncode, stdout, and stderr

        Raises:
            GitCommandError: If the command exits non-zero or times out
        """
        if timeout is None:
            timeout = DEFAULT_TIMEOUT
        secrets = list(secrets)
        display_cmd = redact(" ".join(cmd), secrets)

        logger.debug("Executing command", command=display_cmd, timeout=timeout, cwd=cwd)

        kwargs: dict[str, Any] = {
            "cwd": cwd,
            "env": env or {**os.environ, "GIT_TERMINAL_PROMPT": "0"},
            "stdout": asyncio.subprocess.PIPE,
            "stderr": asyncio.subprocess.PIPE,
        }

        process = None
        try:
            process = await asyncio.create_subprocess_exec(*cmd, **kwargs)

            async with self._cleanup_lock:
                self._active_processes.add(process)

            try:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    process.communicate(), timeout=timeout
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Command timed out, terminating process",
                    command=display_cmd,
                    timeout=timeout,
                    pid=process.pid,
                )
                await _terminate(process)
                raise GitCommandError(
                    f"Command timed out after {timeout} seconds: {display_cmd}"
                ) from None

            result = SubprocessResult(
                returncode=process.returncode or 0,
                stdout=redact(stdout_bytes.decode(errors="replace") if stdout_bytes else "", secrets),
                stderr=redact(stderr_bytes.decode(errors="replace") if stderr_bytes else "", secrets),
                cmd=display_cmd,
            )

            result.check_returncode()

            return result

        finally:
            if process is not None:
                async with self._cleanup_lock:
                    self._active_processes.discard(process)

                if process.returncode is None:
                    await _terminate(process)

    async def cleanup_all(self):
        """Terminate every command still running, e.g. when a run is interrupted."""
        async with self._cleanup_lock:
            processes = list(self._active_processes)

        if not processes:
            return

        logger.info("Cleaning up active processes", count=len(processes))
        for process in processes:
            if process.returncode is None:
                await _terminate(process)

        async with self._cleanup_lock:
            self._active_processes.clear()


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Terminate gracefully, then kill if the process does not exit."""
    try:
        process.terminate()
        await asyncio.wait_for(process.wait(), timeout=KILL_TIMEOUT)
    except asyncio.TimeoutError:
        logger.warning("Process did not terminate gracefully, sending SIGKILL", pid=process.pid)
        process.kill()
        await process.wait()
    except ProcessLookupError:
        # Process already terminated
        pass


class SubprocessResult:
    """Result of a subprocess execution."""

    def __init__(self, returncode: int, stdout: str, stderr: str, cmd: str):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.cmd = cmd

    def check_returncode(self):
        """Raise an exception if the command failed."""
        if self.returncode != 0:
            error_msg = self.stderr.strip() or self.stdout.strip() or "Command failed"
            raise GitCommandError(
                f"Command failed with exit code {self.returncode}: {error_msg}"
            )


@asynccontextmanager
async def managed_subprocess():
    """Context manager for subprocess management with automatic cleanup."""
    manager = SubprocessManager()
    try:
        yield manager
    finally:
        await manager.cleanup_all()
