"""Process execution package."""

from codexcli.execution.base import CodeExecutor, ExecutionResult
from codexcli.execution.local_exec import LocalExecutor

__all__ = ["CodeExecutor", "ExecutionResult", "LocalExecutor"]
