from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import pytest

from codexcli.app import RuntimeContext, build_runtime
from codexcli.config import AppConfig, ProvisioningConfig
from codexcli.execution.base import CodeExecutor, ExecutionResult
from codexcli.llm.base import LLMClient
from codexcli.provisioning import VENV_COMPLETE_MARKER
from codexcli.toolchain import Toolchain


@dataclass
class Call:
    mode: str
    command: list[str]
    cwd: Path | None
    capture_stderr: bool = False


Handler = Callable[[Call], ExecutionResult | None]


def make_result(
    command: list[str] | None = None,
    *,
    exit_code: int = 0,
    stdout: str = "",
    stderr: str = "",
) -> ExecutionResult:
    return ExecutionResult(
        command=list(command or []),
        stdout=stdout,
        stderr=stderr,
        exit_code=exit_code,
        duration_s=0.0,
    )


class FakeExecutor(CodeExecutor):
    """Records every invocation and answers with scripted results."""

    def __init__(self, handler: Handler | None = None) -> None:
        self.handler = handler
        self.calls: list[Call] = []

    def run(
        self,
        command: list[str],
        cwd: Path | None = None,
        timeout_s: int | None = None,
        env: dict[str, str] | None = None,
    ) -> ExecutionResult:
        return self._dispatch(Call("run", list(command), cwd))

    def run_interactive(
        self,
        command: list[str],
        cwd: Path | None = None,
        *,
        capture_stderr: bool = False,
        env: dict[str, str] | None = None,
    ) -> ExecutionResult:
        return self._dispatch(Call("interactive", list(command), cwd, capture_stderr))

    def spawn_detached(
        self,
        command: list[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> int:
        self._dispatch(Call("detached", list(command), cwd))
        return 4242

    def commands(self, mode: str | None = None) -> list[list[str]]:
        return [call.command for call in self.calls if mode is None or call.mode == mode]

    def _dispatch(self, call: Call) -> ExecutionResult:
        self.calls.append(call)
        result = self.handler(call) if self.handler is not None else None
        return result or make_result(call.command)


class StaticLLMClient(LLMClient):
    def __init__(self, response: str = "") -> None:
        self.response = response
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.response


@pytest.fixture
def toolchain() -> Toolchain:
    return Toolchain(windows=False, system_python="python3")


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path.resolve()


@pytest.fixture
def runtime_factory(
    toolchain: Toolchain, fake_executor: FakeExecutor, workdir: Path
) -> Callable[..., RuntimeContext]:
    def build(response: str = "", *, with_venv: bool = True) -> RuntimeContext:
        if with_venv:
            (workdir / "venv").mkdir(exist_ok=True)
            (workdir / "venv" / VENV_COMPLETE_MARKER).write_text("", encoding="utf-8")
        config = AppConfig(
            workdir=workdir,
            provisioning=ProvisioningConfig(system_python="python3", retry_delay_s=0.0),
        )
        return build_runtime(
            config,
            llm_client=StaticLLMClient(response),
            executor=fake_executor,
            toolchain=toolchain,
            notifier=lambda _message: None,
        )

    return build
