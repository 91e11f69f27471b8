"""Fragment execution with failure classification and one bounded retry."""

from __future__ import annotations

from pathlib import Path

from codexcli.classifier import (
    MissingDependency,
    ToolFailure,
    UnsupportedLanguage,
    classify_failure,
)
from codexcli.commands import CodeExecution, MetaCommandHandler, parse_command
from codexcli.driver import DriverResult, ExecutionDriver
from codexcli.errors import (
    EngineError,
    MissingDependencyError,
    ProvisioningError,
    ToolFailureError,
    UnsupportedLanguageError,
)
from codexcli.languages import ResolvedLanguage, RuntimeFamily, resolve_language
from codexcli.models import CodeBlock, ExecutionContext, FragmentReport
from codexcli.provisioning import EnvironmentProvisioner
from codexcli.remediation import Remediator
from codexcli.util.logging import get_logger
from codexcli.util.observability import ObservabilityManager, create_observability_manager
from codexcli.util.retry import RetryPolicy
from codexcli.workspace.manager import WorkspaceManager

_CLASSIFIED_FAMILIES = (RuntimeFamily.PYTHON, RuntimeFamily.NODE)


class ExecutionEngine:
    """Run fragments: intercept directives, provision, execute, recover once.

    One fragment is in flight at a time; the temp file name is fixed per
    extension, so concurrent executions in one directory would collide.
    """

    def __init__(
        self,
        driver: ExecutionDriver,
        provisioner: EnvironmentProvisioner,
        remediator: Remediator,
        meta_handler: MetaCommandHandler,
        *,
        observability: ObservabilityManager | None = None,
    ) -> None:
        self._driver = driver
        self._provisioner = provisioner
        self._remediator = remediator
        self._meta_handler = meta_handler
        self._observability = observability or create_observability_manager()
        self._logger = get_logger(self.__class__.__name__)

    @property
    def observability(self) -> ObservabilityManager:
        return self._observability

    def execute(self, block: CodeBlock, context: ExecutionContext | None = None) -> str:
        """Execute a fragment and return its output.

        Args:
            block: Fragment to run.
            context: Optional execution settings; defaults to the current directory.

        Returns:
            Captured output, or a confirmation message for directives and
            families whose output streams straight to the terminal.

        Raises:
            EngineError: For any failure local to this fragment.
        """

        context = context or ExecutionContext()
        command = parse_command(block)
        workspace = WorkspaceManager.for_workdir(context.workdir)
        if not isinstance(command, CodeExecution):
            self._logger.info("Handling directive %s", type(command).__name__)
            workspace.ensure_exists()
            return self._meta_handler.handle(command, workspace.root)

        language = resolve_language(block.language_tag)
        workspace.ensure_exists()
        self._provisioner.provision(language.runtime_family, workspace.root)
        return self._execute_with_recovery(block, language, context, workspace.root)

    def run_fragment(
        self, block: CodeBlock, context: ExecutionContext | None = None
    ) -> FragmentReport:
        """Execute a fragment, reporting failure instead of raising it."""

        attempts_before = self._observability.metrics.counter("executions")
        try:
            output = self.execute(block, context)
        except EngineError as exc:
            return FragmentReport(
                block=block,
                success=False,
                error=str(exc),
                diagnostic=exc.diagnostic,
                failure=_failure_for(exc),
                attempts=self._attempts_since(attempts_before),
            )
        return FragmentReport(
            block=block,
            success=True,
            output=output,
            attempts=self._attempts_since(attempts_before),
        )

    def _execute_with_recovery(
        self,
        block: CodeBlock,
        language: ResolvedLanguage,
        context: ExecutionContext,
        cwd: Path,
    ) -> str:
        family = language.runtime_family
        policy = RetryPolicy(
            max_attempts=2,
            retry_on=lambda exc: isinstance(exc, MissingDependencyError),
        )

        def install_missing(exc: Exception, _attempt: int) -> None:
            if not isinstance(exc, MissingDependencyError):
                raise exc
            self._observability.remediation_attempted(language.tag, exc.package)
            try:
                remediated = self._remediator.remediate(
                    MissingDependency(exc.package), family, cwd
                )
            except ProvisioningError as install_error:
                raise ProvisioningError(
                    install_error.detail,
                    f"{exc.diagnostic.rstrip()}\n{install_error.diagnostic}",
                    package=exc.package,
                ) from install_error
            if not remediated:
                raise exc

        return policy.call(
            lambda: self._attempt(block, language, context),
            before_retry=install_missing,
            label=f"{language.tag} fragment",
        )

    def _attempt(
        self, block: CodeBlock, language: ResolvedLanguage, context: ExecutionContext
    ) -> str:
        self._observability.execution_started(language.tag)
        with self._observability.track_duration("execution.duration"):
            result = self._driver.execute(block, language, context)
        self._observability.execution_finished(
            language.tag, succeeded=result.succeeded, diagnostic=result.diagnostic
        )
        if result.succeeded:
            return result.output
        raise self._error_for(result)

    def _error_for(self, result: DriverResult) -> EngineError:
        family = result.language.runtime_family
        if not result.classifiable or family not in _CLASSIFIED_FAMILIES:
            return ToolFailureError(result.diagnostic)
        failure = classify_failure(result.diagnostic, family)
        self._logger.info("Classified %s failure as %s", family.value, type(failure).__name__)
        if isinstance(failure, MissingDependency):
            return MissingDependencyError(failure.package, result.diagnostic)
        return ToolFailureError(result.diagnostic)

    def _attempts_since(self, before: int) -> int:
        return self._observability.metrics.counter("executions") - before


def _failure_for(exc: EngineError) -> UnsupportedLanguage | MissingDependency | ToolFailure:
    if isinstance(exc, UnsupportedLanguageError):
        return UnsupportedLanguage(exc.tag)
    if isinstance(exc, MissingDependencyError):
        return MissingDependency(exc.package)
    return ToolFailure(exc.diagnostic)
