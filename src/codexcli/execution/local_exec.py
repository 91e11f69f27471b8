"""Local execution engine implementation."""

from __future__ import annotations

import os
import subprocess
import sys
import time
from pathlib import Path

from codexcli.errors import ToolFailureError, ToolInvocationError
from codexcli.execution.base import CodeExecutor, ExecutionResult
from codexcli.util.logging import get_logger


class LocalExecutor(CodeExecutor):
    """Execute toolchain commands on the local host."""

    def __init__(
        self,
        default_timeout_s: int | None = None,
        default_env: dict[str, str] | None = None,
    ) -> None:
        self._default_timeout_s = default_timeout_s
        self._default_env = dict(default_env or {})
        self._logger = get_logger(self.__class__.__name__)

    def run(
        self,
        command: list[str],
        cwd: Path | None = None,
        timeout_s: int | None = None,
        env: dict[str, str] | None = None,
    ) -> ExecutionResult:
        """Run a command locally and capture its output.

        Args:
            command: The command to execute.
            cwd: Optional working directory.
            timeout_s: Optional timeout in seconds.
            env: Optional environment variables to include.

        Returns:
            ExecutionResult with stdout, stderr, exit code, and duration.

        Raises:
            ToolInvocationError: If the executable could not be started.
        """

        self._logger.debug("Running captured command: %s", command)
        start = time.monotonic()
        try:
            completed = subprocess.run(
                command,
                cwd=_as_str(cwd),
                env=self._environment(env),
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout_s if timeout_s is not None else self._default_timeout_s,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise ToolFailureError(f"{command[0]} timed out after {exc.timeout}s") from exc
        except OSError as exc:
            raise ToolInvocationError(command, str(exc)) from exc
        duration = time.monotonic() - start
        self._logger.debug(
            "Command finished with exit code %s in %.2fs.", completed.returncode, duration
        )

        return ExecutionResult(
            command=list(command),
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            exit_code=completed.returncode,
            duration_s=duration,
        )

    def run_interactive(
        self,
        command: list[str],
        cwd: Path | None = None,
        *,
        capture_stderr: bool = False,
        env: dict[str, str] | None = None,
    ) -> ExecutionResult:
        """Run a command attached to the caller's terminal."""

        self._logger.debug("Running interactive command: %s", command)
        start = time.monotonic()
        try:
            completed = subprocess.run(
                command,
                cwd=_as_str(cwd),
                env=self._environment(env),
                stderr=subprocess.PIPE if capture_stderr else None,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as exc:
            raise ToolInvocationError(command, str(exc)) from exc
        duration = time.monotonic() - start
        stderr = completed.stderr or ""
        if stderr:
            sys.stderr.write(stderr)
            sys.stderr.flush()

        return ExecutionResult(
            command=list(command),
            stdout="",
            stderr=stderr,
            exit_code=completed.returncode,
            duration_s=duration,
        )

    def spawn_detached(
        self,
        command: list[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> int:
        """Start a background process and return its pid immediately."""

        self._logger.debug("Spawning detached command: %s", command)
        try:
            process = subprocess.Popen(
                command,
                cwd=_as_str(cwd),
                env=self._environment(env),
                stdin=subprocess.DEVNULL,
                start_new_session=os.name != "nt",
            )
        except OSError as exc:
            raise ToolInvocationError(command, str(exc)) from exc
        self._logger.info("Started %s in the background (pid %s).", command[0], process.pid)
        return process.pid

    def _environment(self, env: dict[str, str] | None) -> dict[str, str]:
        return _merge_env({**self._default_env, **(env or {})})


def _as_str(cwd: Path | None) -> str | None:
    return str(cwd) if cwd is not None else None


def _merge_env(env: dict[str, str] | None) -> dict[str, str]:
    merged_env = os.environ.copy()
    if env:
        merged_env.update(env)
    return merged_env
