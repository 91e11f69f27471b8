from __future__ import annotations

import os
from pathlib import Path

import pytest

from codexcli.config import ProvisioningConfig
from codexcli.driver import ExecutionDriver
from codexcli.errors import ToolInvocationError
from codexcli.languages import resolve_language
from codexcli.models import CodeBlock, ExecutionContext
from codexcli.provisioning import EnvironmentProvisioner
from codexcli.toolchain import Toolchain

from conftest import Call, FakeExecutor, make_result


def _driver(executor: FakeExecutor, toolchain: Toolchain) -> ExecutionDriver:
    provisioner = EnvironmentProvisioner(
        executor, toolchain, ProvisioningConfig(system_python="python3")
    )
    return ExecutionDriver(executor, provisioner, toolchain, notifier=lambda _m: None)


def _leftovers(directory: Path) -> list[str]:
    return sorted(path.name for path in directory.iterdir() if path.name.startswith("temp_code"))


def test_source_is_written_byte_for_byte(workdir: Path, toolchain: Toolchain) -> None:
    source = 'fence = "```python"\r\nprint("naïve ✓")\n\n```\ntrailing'
    seen: dict[str, bytes] = {}

    def handler(call: Call) -> None:
        assert call.cwd is not None
        seen["bytes"] = (call.cwd / "temp_code.py").read_bytes()

    executor = FakeExecutor(handler)

    _driver(executor, toolchain).execute(
        CodeBlock("python", source), resolve_language("python"), ExecutionContext(workdir)
    )

    assert seen["bytes"] == source.encode("utf-8")


def test_python_success_returns_captured_stdout(workdir: Path, toolchain: Toolchain) -> None:
    executor = FakeExecutor(lambda call: make_result(call.command, stdout="hello\n"))

    result = _driver(executor, toolchain).execute(
        CodeBlock("py", "print('hello')\n"), resolve_language("py"), ExecutionContext(workdir)
    )

    assert result.succeeded is True
    assert result.output == "hello\n"
    assert executor.calls[0].command == [str(workdir / "venv" / "bin" / "python"), "temp_code.py"]
    assert executor.calls[0].mode == "run"
    assert _leftovers(workdir) == []


def test_python_failure_is_classifiable(workdir: Path, toolchain: Toolchain) -> None:
    diagnostic = "ModuleNotFoundError: No module named 'requests'\n"
    executor = FakeExecutor(lambda call: make_result(call.command, exit_code=1, stderr=diagnostic))

    result = _driver(executor, toolchain).execute(
        CodeBlock("py", "import requests\n"), resolve_language("py"), ExecutionContext(workdir)
    )

    assert result.succeeded is False
    assert result.classifiable is True
    assert result.diagnostic == diagnostic
    assert _leftovers(workdir) == []


def test_blocking_input_switches_to_interactive_mode(workdir: Path, toolchain: Toolchain) -> None:
    def handler(call: Call) -> object:
        if call.mode == "run":
            return make_result(call.command, exit_code=1, stderr="EOFError: EOF when reading a line")
        return make_result(call.command, exit_code=0)

    executor = FakeExecutor(handler)  # type: ignore[arg-type]

    result = _driver(executor, toolchain).execute(
        CodeBlock("python", "input('name? ')\n"), resolve_language("python"), ExecutionContext(workdir)
    )

    assert result.succeeded is True
    assert [call.mode for call in executor.calls] == ["run", "interactive"]
    assert executor.calls[0].command == executor.calls[1].command
    assert executor.calls[1].capture_stderr is False


def test_failed_interactive_rerun_is_terminal(workdir: Path, toolchain: Toolchain) -> None:
    def handler(call: Call) -> object:
        if call.mode == "run":
            return make_result(call.command, exit_code=1, stderr="EOFError")
        return make_result(call.command, exit_code=130)

    executor = FakeExecutor(handler)  # type: ignore[arg-type]

    result = _driver(executor, toolchain).execute(
        CodeBlock("python", "input()\n"), resolve_language("python"), ExecutionContext(workdir)
    )

    assert result.succeeded is False
    assert result.classifiable is False
    assert result.diagnostic == "Python exited with status: 130"


def test_node_captures_stderr_for_classification(workdir: Path, toolchain: Toolchain) -> None:
    executor = FakeExecutor(
        lambda call: make_result(call.command, exit_code=1, stderr="Cannot find module 'lodash'")
    )

    result = _driver(executor, toolchain).execute(
        CodeBlock("js", "require('lodash')\n"), resolve_language("js"), ExecutionContext(workdir)
    )

    assert executor.calls[0].command == ["node", "temp_code.js"]
    assert executor.calls[0].capture_stderr is True
    assert result.classifiable is True
    assert _leftovers(workdir) == []


def test_typescript_reinstalls_tools_and_failures_are_terminal(
    workdir: Path, toolchain: Toolchain
) -> None:
    def handler(call: Call) -> object:
        if call.command[:2] == ["npx", "ts-node"]:
            return make_result(call.command, exit_code=2)
        return None

    executor = FakeExecutor(handler)  # type: ignore[arg-type]
    (workdir / "package.json").write_text("{}", encoding="utf-8")

    result = _driver(executor, toolchain).execute(
        CodeBlock("ts", "const x: number = 1;\n"), resolve_language("ts"), ExecutionContext(workdir)
    )

    assert executor.commands() == [
        ["npm", "install", "typescript"],
        ["npm", "install", "ts-node"],
        ["npx", "ts-node", "temp_code.ts"],
    ]
    assert result.succeeded is False
    assert result.classifiable is False
    assert result.diagnostic == "TypeScript execution failed with status: 2"
    assert _leftovers(workdir) == []


def test_compile_failure_skips_execution(workdir: Path, toolchain: Toolchain) -> None:
    executor = FakeExecutor(
        lambda call: make_result(call.command, exit_code=1, stderr="error[E0425]: cannot find value")
    )

    result = _driver(executor, toolchain).execute(
        CodeBlock("rust", "fn main() { x }\n"), resolve_language("rust"), ExecutionContext(workdir)
    )

    assert executor.commands() == [["rustc", "temp_code.rs"]]
    assert result.diagnostic == "error[E0425]: cannot find value"
    assert result.classifiable is False
    assert _leftovers(workdir) == []


def test_compiled_binary_is_run_and_removed(workdir: Path, toolchain: Toolchain) -> None:
    def handler(call: Call) -> None:
        if call.command[0] == "rustc":
            (workdir / "temp_code").write_bytes(b"\x7fELF")

    executor = FakeExecutor(handler)

    result = _driver(executor, toolchain).execute(
        CodeBlock("rs", 'fn main() { println!("hi"); }\n'),
        resolve_language("rs"),
        ExecutionContext(workdir),
    )

    assert result.succeeded is True
    assert executor.calls[1].command == [str(workdir / "temp_code")]
    assert executor.calls[1].mode == "interactive"
    assert _leftovers(workdir) == []


def test_shell_failure_reports_exit_status(workdir: Path, toolchain: Toolchain) -> None:
    executor = FakeExecutor(lambda call: make_result(call.command, exit_code=3))

    result = _driver(executor, toolchain).execute(
        CodeBlock("sh", "exit 3\n"), resolve_language("sh"), ExecutionContext(workdir)
    )

    assert executor.calls[0].command == ["bash", "temp_code.sh"]
    assert result.diagnostic == "Bash script exited with status: 3"
    assert _leftovers(workdir) == []


def test_markup_file_is_kept_for_the_viewer(workdir: Path, toolchain: Toolchain) -> None:
    executor = FakeExecutor()

    result = _driver(executor, toolchain).execute(
        CodeBlock("html", "<h1>hi</h1>\n"), resolve_language("html"), ExecutionContext(workdir)
    )

    assert result.succeeded is True
    assert executor.calls[0].mode == "detached"
    assert executor.calls[0].command[-1] == str(workdir / "temp_code.html")
    assert _leftovers(workdir) == ["temp_code.html"]


def test_artifacts_are_removed_when_the_toolchain_is_missing(
    workdir: Path, toolchain: Toolchain
) -> None:
    def handler(call: Call) -> None:
        raise ToolInvocationError(call.command, "not found")

    executor = FakeExecutor(handler)

    with pytest.raises(ToolInvocationError):
        _driver(executor, toolchain).execute(
            CodeBlock("sh", "echo hi\n"), resolve_language("sh"), ExecutionContext(workdir)
        )

    assert _leftovers(workdir) == []


def test_working_directory_is_passed_not_changed(tmp_path: Path, toolchain: Toolchain) -> None:
    target = tmp_path / "missing" / "nested"
    executor = FakeExecutor()
    before = os.getcwd()

    _driver(executor, toolchain).execute(
        CodeBlock("sh", "pwd\n"), resolve_language("sh"), ExecutionContext(target)
    )

    assert os.getcwd() == before
    assert target.is_dir()
    assert executor.calls[0].cwd == target.resolve()
