"""Execution of a single resolved fragment against its toolchain."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from codexcli.classifier import InteractiveInputRequired, classify_failure
from codexcli.execution.base import CodeExecutor, ExecutionResult
from codexcli.languages import ResolvedLanguage, RuntimeFamily
from codexcli.models import CodeBlock, ExecutionContext
from codexcli.provisioning import EnvironmentProvisioner
from codexcli.toolchain import Toolchain
from codexcli.util.logging import get_logger
from codexcli.workspace.manager import WorkspaceManager

Notifier = Callable[[str], None]


@dataclass(frozen=True)
class DriverResult:
    """Outcome of one execution attempt.

    Attributes:
        language: Language the fragment was run as.
        succeeded: Whether the toolchain reported success.
        output: Captured stdout, or a confirmation message for families
            whose output goes straight to the terminal.
        diagnostic: Raw failure text (stderr or an exit-status line).
        classifiable: Whether the failure may be handed to the classifier.
            False for terminal failures such as compile errors or an
            interactive re-run.
    """

    language: ResolvedLanguage
    succeeded: bool
    output: str = ""
    diagnostic: str = ""
    classifiable: bool = False


class ExecutionDriver:
    """Materialize a fragment as a temp file, run it, and clean up."""

    def __init__(
        self,
        executor: CodeExecutor,
        provisioner: EnvironmentProvisioner,
        toolchain: Toolchain,
        *,
        temp_stem: str = "temp_code",
        timeout_s: int | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._executor = executor
        self._provisioner = provisioner
        self._toolchain = toolchain
        self._temp_stem = temp_stem
        self._timeout_s = timeout_s
        self._logger = get_logger(self.__class__.__name__)
        self._notify = notifier or self._logger.info

    def source_name(self, language: ResolvedLanguage) -> str:
        return f"{self._temp_stem}.{language.file_extension}"

    def artifact_names(self, language: ResolvedLanguage) -> list[str]:
        """Return every file an attempt may create for ``language``."""

        names = [self.source_name(language)]
        if language.runtime_family is RuntimeFamily.COMPILED_NATIVE:
            names.extend(self._toolchain.compiler_byproducts(self._temp_stem))
        return names

    def execute(
        self,
        block: CodeBlock,
        language: ResolvedLanguage,
        context: ExecutionContext,
    ) -> DriverResult:
        """Run ``block`` once and return the attempt's outcome.

        The environment for the language's family must already be
        provisioned. Temporary artifacts are removed on every exit path
        except for markup, which stays on disk for the external viewer.

        Raises:
            ToolInvocationError: If a toolchain executable cannot be spawned.
            ProvisioningError: If TypeScript tooling cannot be installed.
        """

        workspace = WorkspaceManager.for_workdir(context.workdir)
        family = language.runtime_family
        keep = family is RuntimeFamily.MARKUP
        with workspace.scoped_artifacts(self.artifact_names(language), keep=keep):
            path = workspace.write_artifact(self.source_name(language), block.source)
            self._logger.debug("Wrote %s fragment to %s", language.tag, path)
            cwd = workspace.root
            if family is RuntimeFamily.PYTHON:
                return self._run_python(language, path, cwd)
            if family is RuntimeFamily.NODE:
                return self._run_node(language, path, cwd)
            if family is RuntimeFamily.TYPESCRIPT:
                return self._run_typescript(language, path, cwd)
            if family is RuntimeFamily.COMPILED_NATIVE:
                return self._run_native(language, path, cwd)
            if family is RuntimeFamily.SHELL:
                return self._run_shell(language, path, cwd)
            return self._open_markup(language, path, cwd)

    def _run_python(self, language: ResolvedLanguage, path: Path, cwd: Path) -> DriverResult:
        command = [str(self._provisioner.python_executable(cwd)), path.name]
        captured = self._executor.run(command, cwd=cwd, timeout_s=self._timeout_s)
        if captured.succeeded:
            return DriverResult(language, True, output=captured.stdout)

        failure = classify_failure(captured.stderr, RuntimeFamily.PYTHON)
        if not isinstance(failure, InteractiveInputRequired):
            return DriverResult(
                language, False, diagnostic=captured.stderr, classifiable=True
            )

        self._notify("Switching to interactive mode. Press Ctrl+C when done.")
        interactive = self._executor.run_interactive(command, cwd=cwd)
        return self._terminal(language, interactive, "Python exited with status")

    def _run_node(self, language: ResolvedLanguage, path: Path, cwd: Path) -> DriverResult:
        result = self._executor.run_interactive(
            [self._toolchain.node, path.name], cwd=cwd, capture_stderr=True
        )
        if result.succeeded:
            return DriverResult(language, True)
        diagnostic = result.stderr or f"Node.js exited with status: {result.exit_code}"
        return DriverResult(language, False, diagnostic=diagnostic, classifiable=True)

    def _run_typescript(self, language: ResolvedLanguage, path: Path, cwd: Path) -> DriverResult:
        self._provisioner.ensure_typescript_tools(cwd)
        result = self._executor.run_interactive([self._toolchain.npx, "ts-node", path.name], cwd=cwd)
        return self._terminal(language, result, "TypeScript execution failed with status")

    def _run_native(self, language: ResolvedLanguage, path: Path, cwd: Path) -> DriverResult:
        compiled = self._executor.run(
            [self._toolchain.rustc, path.name], cwd=cwd, timeout_s=self._timeout_s
        )
        if not compiled.succeeded:
            return DriverResult(
                language,
                False,
                diagnostic=compiled.stderr or f"rustc exited with status: {compiled.exit_code}",
            )
        binary = cwd / self._toolchain.binary_name(self._temp_stem)
        result = self._executor.run_interactive([str(binary)], cwd=cwd)
        return self._terminal(language, result, "Rust program exited with status")

    def _run_shell(self, language: ResolvedLanguage, path: Path, cwd: Path) -> DriverResult:
        result = self._executor.run_interactive(self._toolchain.shell_command(path.name), cwd=cwd)
        return self._terminal(language, result, "Bash script exited with status")

    def _open_markup(self, language: ResolvedLanguage, path: Path, cwd: Path) -> DriverResult:
        self._notify("Opening HTML in default browser...")
        self._executor.spawn_detached(self._toolchain.open_command(path), cwd=cwd)
        return DriverResult(language, True, output=f"HTML file opened in browser: {path}")

    @staticmethod
    def _terminal(
        language: ResolvedLanguage, result: ExecutionResult, status_label: str
    ) -> DriverResult:
        if result.succeeded:
            return DriverResult(language, True)
        return DriverResult(
            language,
            False,
            diagnostic=result.stderr or f"{status_label}: {result.exit_code}",
        )
