"""Execution engine base types and interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ExecutionResult:
    """Result of executing a command.

    Attributes:
        command: The command executed as a list of strings.
        stdout: Captured standard output (empty when the stream was inherited).
        stderr: Captured standard error (empty when the stream was inherited).
        exit_code: Exit code returned by the process.
        duration_s: Duration of the execution in seconds.
    """

    command: list[str]
    stdout: str
    stderr: str
    exit_code: int
    duration_s: float

    @property
    def succeeded(self) -> bool:
        """Return True when the process exited with status zero."""

        return self.exit_code == 0


class CodeExecutor(ABC):
    """Abstract base class for toolchain process execution.

    Implementations must raise ``ToolInvocationError`` when the executable
    cannot be spawned, and must never change the process working directory;
    ``cwd`` is handed to the child process instead.
    """

    @abstractmethod
    def run(
        self,
        command: list[str],
        cwd: Path | None = None,
        timeout_s: int | None = None,
        env: dict[str, str] | None = None,
    ) -> ExecutionResult:
        """Run a command non-interactively and capture its output.

        Args:
            command: The command to execute.
            cwd: Optional working directory for the command.
            timeout_s: Optional timeout in seconds.
            env: Optional environment variables to include.

        Returns:
            ExecutionResult containing stdout, stderr, exit code, and duration.
        """

    @abstractmethod
    def run_interactive(
        self,
        command: list[str],
        cwd: Path | None = None,
        *,
        capture_stderr: bool = False,
        env: dict[str, str] | None = None,
    ) -> ExecutionResult:
        """Run a command with the caller's streams and wait for it to exit.

        Args:
            command: The command to execute.
            cwd: Optional working directory for the command.
            capture_stderr: Capture standard error instead of inheriting it.
                Captured text is echoed to the caller's stderr after exit.
            env: Optional environment variables to include.
        """

    @abstractmethod
    def spawn_detached(
        self,
        command: list[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> int:
        """Start a command in the background without waiting for it.

        Returns:
            The process id of the spawned child.
        """
