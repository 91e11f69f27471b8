"""Application wiring for the prompt session and the CLI."""

from __future__ import annotations

import json
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from codexcli.commands import MetaCommandHandler, parse_meta_command
from codexcli.config import AppConfig, config_to_dict
from codexcli.driver import ExecutionDriver, Notifier
from codexcli.engine import ExecutionEngine
from codexcli.errors import EngineError
from codexcli.execution.base import CodeExecutor
from codexcli.execution.local_exec import LocalExecutor
from codexcli.llm.base import LLMClient
from codexcli.llm.registry import create_llm_client
from codexcli.models import CodeBlock, ExecutionContext, FragmentReport
from codexcli.parsing import extract_code_blocks
from codexcli.provisioning import EnvironmentProvisioner
from codexcli.remediation import Remediator
from codexcli.toolchain import Toolchain, is_windows
from codexcli.util.logging import get_logger
from codexcli.util.observability import ObservabilityManager, create_observability_manager

CONFIG_FILE_NAME = "codexcli.yaml"


class AppConfigError(RuntimeError):
    """Raised when configuration or runtime setup fails."""


@dataclass(frozen=True)
class RuntimeContext:
    """Container for the services a prompt session uses."""

    config: AppConfig
    engine: ExecutionEngine
    executor: CodeExecutor
    llm_client: LLMClient
    toolchain: Toolchain
    observability: ObservabilityManager

    @property
    def context(self) -> ExecutionContext:
        return ExecutionContext(workdir=self.config.workdir)


@dataclass(frozen=True)
class BackendResponse:
    """AI response text and the code blocks found in it."""

    text: str
    blocks: list[CodeBlock]


@dataclass(frozen=True)
class SystemCommandResult:
    """Outcome of a ``!cmd`` passthrough.

    Attributes:
        command: Command that produced the final outcome.
        success: Whether it exited with status zero.
        output: Captured stdout on success.
        error: Captured stderr (or launch failure) when unsuccessful.
        original_error: Error of the first attempt when a fixed-up command was tried.
    """

    command: str
    success: bool
    output: str = ""
    error: str | None = None
    original_error: str | None = None


_LOGGER = get_logger("codexcli.app")


def initialize_config(directory: Path) -> Path:
    """Create a default configuration file in ``directory``.

    Raises:
        AppConfigError: If the config file already exists.
    """

    directory = directory.resolve()
    config_path = directory / CONFIG_FILE_NAME
    if config_path.exists():
        raise AppConfigError(
            f"Config file already exists at {config_path}. Remove it or choose another "
            "directory."
        )
    directory.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config_to_dict(AppConfig()), indent=2), encoding="utf-8")
    _LOGGER.info("Initialized configuration at %s", config_path)
    return config_path


def build_runtime(
    config: AppConfig,
    *,
    llm_client: LLMClient | None = None,
    executor: CodeExecutor | None = None,
    toolchain: Toolchain | None = None,
    notifier: Notifier | None = None,
) -> RuntimeContext:
    """Build runtime services for a session.

    Args:
        config: Application configuration.
        llm_client: Optional pre-built backend client (for testing).
        executor: Optional pre-built executor (for testing).
        toolchain: Optional toolchain naming (for testing).
        notifier: Callback receiving user-facing status messages.
    """

    observability = create_observability_manager()
    executor_instance = executor or LocalExecutor(
        default_timeout_s=config.executor.timeout_s, default_env=config.executor.env
    )
    toolchain_instance = toolchain or Toolchain(system_python=config.provisioning.system_python)
    provisioner = EnvironmentProvisioner(
        executor_instance,
        toolchain_instance,
        config.provisioning,
        observability=observability,
    )
    driver = ExecutionDriver(
        executor_instance,
        provisioner,
        toolchain_instance,
        temp_stem=config.executor.temp_stem,
        timeout_s=config.executor.timeout_s,
        notifier=notifier,
    )
    meta_handler = MetaCommandHandler(
        executor_instance,
        app_dir_name=config.executor.app_dir_name,
        npx_executable=toolchain_instance.npx,
        npm_executable=toolchain_instance.npm,
        python_executable=toolchain_instance.system_python,
    )
    engine = ExecutionEngine(
        driver,
        provisioner,
        Remediator(provisioner),
        meta_handler,
        observability=observability,
    )
    llm = llm_client or create_llm_client(config.llm, observability=observability)
    return RuntimeContext(
        config=config,
        engine=engine,
        executor=executor_instance,
        llm_client=llm,
        toolchain=toolchain_instance,
        observability=observability,
    )


def handle_directive(prompt: str, runtime: RuntimeContext) -> FragmentReport | None:
    """Run ``prompt`` as a directive if it is one; return None otherwise."""

    if parse_meta_command(prompt) is None:
        return None
    return runtime.engine.run_fragment(CodeBlock("", prompt), runtime.context)


def ask_backend(prompt: str, runtime: RuntimeContext) -> BackendResponse:
    """Send ``prompt`` to the AI backend and extract its code blocks."""

    text = runtime.llm_client.complete(prompt)
    return BackendResponse(text=text, blocks=extract_code_blocks(text))


def execute_blocks(
    blocks: list[CodeBlock],
    runtime: RuntimeContext,
    on_start: Callable[[CodeBlock], None] | None = None,
) -> list[FragmentReport]:
    """Run each block in order; a failing block never stops the rest."""

    reports: list[FragmentReport] = []
    for block in blocks:
        if on_start is not None:
            on_start(block)
        reports.append(runtime.engine.run_fragment(block, runtime.context))
    return reports


def run_code(language: str, source: str, runtime: RuntimeContext) -> FragmentReport:
    """Run a single fragment supplied directly by the user."""

    return runtime.engine.run_fragment(CodeBlock(language, source), runtime.context)


def run_system_command(command: str, runtime: RuntimeContext) -> SystemCommandResult:
    """Run a plain system command, retrying once with a fixed-up spelling."""

    first = _run_split(command, runtime)
    if first.success:
        return first
    fixed = suggest_command_fix(
        command,
        windows=runtime.toolchain.windows,
        npm_available=shutil.which(runtime.toolchain.npm) is not None,
    )
    if fixed is None or fixed == command:
        return first
    _LOGGER.info("Retrying '%s' as '%s'", command, fixed)
    second = _run_split(fixed, runtime)
    return SystemCommandResult(
        command=second.command,
        success=second.success,
        output=second.output,
        error=second.error,
        original_error=first.error,
    )


def suggest_command_fix(
    command: str, *, windows: bool | None = None, npm_available: bool = True
) -> str | None:
    """Return a corrected spelling of ``command`` for common platform slips."""

    parts = command.split()
    if not parts:
        return None
    windows = is_windows() if windows is None else windows
    head = parts[0]
    replacement = head
    if windows and head in {"python", "python3"}:
        replacement = "py"
    elif windows and head == "pip":
        replacement = "py -m pip"
    elif head == "npm" and not npm_available:
        replacement = "npx"
    return " ".join([replacement, *parts[1:]])


def _run_split(command: str, runtime: RuntimeContext) -> SystemCommandResult:
    parts = command.split()
    if not parts:
        return SystemCommandResult(command=command, success=False, error="Empty command")
    try:
        result = runtime.executor.run(parts, cwd=runtime.config.workdir)
    except EngineError as exc:
        return SystemCommandResult(command=command, success=False, error=str(exc))
    if result.succeeded:
        return SystemCommandResult(command=command, success=True, output=result.stdout)
    return SystemCommandResult(command=command, success=False, error=result.stderr)
