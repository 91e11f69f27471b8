from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Any

import pytest

from codexcli.errors import ToolFailureError, ToolInvocationError
from codexcli.execution.local_exec import LocalExecutor


def test_local_executor_runs_command(monkeypatch: Any) -> None:
    calls: dict[str, Any] = {}

    def fake_run(*args: Any, **kwargs: Any) -> subprocess.CompletedProcess[str]:
        calls["args"] = args
        calls["kwargs"] = kwargs
        return subprocess.CompletedProcess(args[0], 0, stdout="ok", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    executor = LocalExecutor()
    result = executor.run(
        ["echo", "hi"],
        cwd=Path("/tmp"),
        timeout_s=5,
        env={"LOCAL_EXEC_TEST": "1"},
    )

    assert result.exit_code == 0
    assert result.succeeded
    assert result.stdout == "ok"
    assert result.stderr == ""
    assert result.duration_s >= 0

    kwargs = calls["kwargs"]
    assert kwargs["cwd"] == "/tmp"
    assert kwargs["timeout"] == 5
    assert kwargs["stdin"] is subprocess.DEVNULL
    assert kwargs["env"]["LOCAL_EXEC_TEST"] == "1"


def test_local_executor_merges_environment(monkeypatch: Any) -> None:
    calls: dict[str, Any] = {}

    def fake_run(*args: Any, **kwargs: Any) -> subprocess.CompletedProcess[str]:
        calls["kwargs"] = kwargs
        return subprocess.CompletedProcess(args[0], 0, stdout="", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    executor = LocalExecutor()
    executor.run(["true"], env={"EXTRA_ENV": "yes"})

    merged_env = calls["kwargs"]["env"]
    assert merged_env["EXTRA_ENV"] == "yes"
    assert os.environ.items() <= merged_env.items()


def test_local_executor_uses_default_timeout(monkeypatch: Any) -> None:
    calls: dict[str, Any] = {}

    def fake_run(*args: Any, **kwargs: Any) -> subprocess.CompletedProcess[str]:
        calls["kwargs"] = kwargs
        return subprocess.CompletedProcess(args[0], 1, stdout="", stderr="bad")

    monkeypatch.setattr(subprocess, "run", fake_run)

    result = LocalExecutor(default_timeout_s=30).run(["false"])

    assert calls["kwargs"]["timeout"] == 30
    assert calls["kwargs"]["cwd"] is None
    assert not result.succeeded
    assert result.stderr == "bad"


def test_missing_executable_raises_invocation_error(monkeypatch: Any) -> None:
    def fake_run(*args: Any, **kwargs: Any) -> subprocess.CompletedProcess[str]:
        raise FileNotFoundError(2, "No such file or directory")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(ToolInvocationError) as excinfo:
        LocalExecutor().run(["rustc", "temp_code.rs"])

    assert excinfo.value.command == ["rustc", "temp_code.rs"]
    assert "rustc" in str(excinfo.value)


def test_timeout_raises_tool_failure(monkeypatch: Any) -> None:
    def fake_run(*args: Any, **kwargs: Any) -> subprocess.CompletedProcess[str]:
        raise subprocess.TimeoutExpired(args[0], kwargs["timeout"])

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(ToolFailureError, match="timed out"):
        LocalExecutor().run(["sleep", "100"], timeout_s=1)


def test_interactive_run_inherits_streams(monkeypatch: Any) -> None:
    calls: dict[str, Any] = {}

    def fake_run(*args: Any, **kwargs: Any) -> subprocess.CompletedProcess[str]:
        calls["kwargs"] = kwargs
        return subprocess.CompletedProcess(args[0], 3, stdout=None, stderr=None)

    monkeypatch.setattr(subprocess, "run", fake_run)

    result = LocalExecutor().run_interactive(["bash", "temp_code.sh"], cwd=Path("/work"))

    kwargs = calls["kwargs"]
    assert kwargs["cwd"] == "/work"
    assert kwargs["stderr"] is None
    assert "stdin" not in kwargs
    assert "capture_output" not in kwargs
    assert result.exit_code == 3
    assert result.stderr == ""


def test_interactive_run_can_capture_stderr(
    monkeypatch: Any, capsys: pytest.CaptureFixture[str]
) -> None:
    calls: dict[str, Any] = {}
    message = "Error: Cannot find module 'lodash'\n"

    def fake_run(*args: Any, **kwargs: Any) -> subprocess.CompletedProcess[str]:
        calls["kwargs"] = kwargs
        return subprocess.CompletedProcess(args[0], 1, stdout=None, stderr=message)

    monkeypatch.setattr(subprocess, "run", fake_run)

    result = LocalExecutor().run_interactive(["node", "temp_code.js"], capture_stderr=True)

    assert calls["kwargs"]["stderr"] is subprocess.PIPE
    assert result.stderr == message
    assert message in capsys.readouterr().err


def test_spawn_detached_returns_pid(monkeypatch: Any) -> None:
    calls: dict[str, Any] = {}

    class FakeProcess:
        pid = 31337

    def fake_popen(*args: Any, **kwargs: Any) -> FakeProcess:
        calls["args"] = args
        calls["kwargs"] = kwargs
        return FakeProcess()

    monkeypatch.setattr(subprocess, "Popen", fake_popen)

    pid = LocalExecutor().spawn_detached(
        ["python3", "-m", "http.server", "8000"], cwd=Path("/srv")
    )

    assert pid == 31337
    assert calls["args"][0] == ["python3", "-m", "http.server", "8000"]
    assert calls["kwargs"]["cwd"] == "/srv"
    assert calls["kwargs"]["stdin"] is subprocess.DEVNULL


def test_spawn_detached_missing_executable(monkeypatch: Any) -> None:
    def fake_popen(*args: Any, **kwargs: Any) -> None:
        raise FileNotFoundError(2, "No such file or directory")

    monkeypatch.setattr(subprocess, "Popen", fake_popen)

    with pytest.raises(ToolInvocationError):
        LocalExecutor().spawn_detached(["npm", "start"])


def test_default_environment_is_applied_under_call_overrides(monkeypatch: Any) -> None:
    calls: dict[str, Any] = {}

    def fake_run(*args: Any, **kwargs: Any) -> subprocess.CompletedProcess[str]:
        calls["kwargs"] = kwargs
        return subprocess.CompletedProcess(args[0], 0, stdout="", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    executor = LocalExecutor(default_env={"PYTHONUNBUFFERED": "1", "MODE": "default"})
    executor.run(["true"], env={"MODE": "call"})

    env = calls["kwargs"]["env"]
    assert env["PYTHONUNBUFFERED"] == "1"
    assert env["MODE"] == "call"
