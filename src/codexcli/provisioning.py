"""Idempotent preparation of per-family runtime environments."""

from __future__ import annotations

from pathlib import Path

from codexcli.config import ProvisioningConfig
from codexcli.errors import ProvisioningError, ToolInvocationError
from codexcli.execution.base import CodeExecutor, ExecutionResult
from codexcli.languages import RuntimeFamily
from codexcli.toolchain import Toolchain
from codexcli.util.logging import get_logger
from codexcli.util.observability import ObservabilityManager
from codexcli.util.retry import RetryPolicy

NODE_MANIFEST = "package.json"
VENV_COMPLETE_MARKER = ".codexcli-provisioned"


class EnvironmentProvisioner:
    """Make sure the minimal environment for a runtime family exists.

    Provisioning checks for an on-disk marker (a completion file written
    inside the virtual environment once its baseline packages are upgraded,
    the Node manifest) and is a no-op when it is present. There is
    no locking: two processes provisioning the same directory for the first
    time can race.
    """

    def __init__(
        self,
        executor: CodeExecutor,
        toolchain: Toolchain,
        config: ProvisioningConfig | None = None,
        *,
        observability: ObservabilityManager | None = None,
        upgrade_policy: RetryPolicy | None = None,
    ) -> None:
        self._executor = executor
        self._toolchain = toolchain
        self._config = config or ProvisioningConfig()
        self._observability = observability
        self._upgrade_policy = upgrade_policy or RetryPolicy(
            max_attempts=self._config.max_attempts,
            delay_s=self._config.retry_delay_s,
            retry_on=lambda exc: isinstance(exc, ProvisioningError),
        )
        self._logger = get_logger(self.__class__.__name__)

    def provision(self, family: RuntimeFamily, cwd: Path) -> None:
        """Prepare the environment ``family`` needs inside ``cwd``.

        Raises:
            ProvisioningError: If the environment could not be created.
            ToolInvocationError: If a required toolchain is not installed.
        """

        if family is RuntimeFamily.PYTHON:
            self.ensure_python_environment(cwd)
        elif family in (RuntimeFamily.NODE, RuntimeFamily.TYPESCRIPT):
            self.ensure_node_manifest(cwd)

    def venv_path(self, cwd: Path) -> Path:
        return cwd / self._config.venv_dir

    def python_executable(self, cwd: Path) -> Path:
        """Return the interpreter of the provisioned virtual environment."""

        return self._toolchain.venv_python(self.venv_path(cwd))

    def ensure_python_environment(self, cwd: Path) -> bool:
        """Create the virtual environment unless it was completed earlier.

        A directory left behind by an interrupted or failed run has no
        completion marker and is provisioned again.

        Returns:
            True if the environment was created by this call.
        """

        venv_dir = self.venv_path(cwd)
        marker = venv_dir / VENV_COMPLETE_MARKER
        if marker.exists():
            self._logger.debug("Virtual environment already present at %s", venv_dir)
            return False

        if venv_dir.exists():
            self._logger.warning(
                "Virtual environment at %s is incomplete; provisioning it again", venv_dir
            )
        else:
            self._logger.info("Creating virtual environment at %s", venv_dir)
        create = [self._toolchain.system_python, "-m", "venv", self._config.venv_dir]
        try:
            result = self._executor.run(create, cwd=cwd)
        except ToolInvocationError:
            if not self._config.bootstrap_python:
                raise
            self._bootstrap_python(cwd)
            result = self._executor.run(create, cwd=cwd)
        if not result.succeeded:
            raise ProvisioningError(
                f"Failed to create virtual environment in {venv_dir}", _diagnostic(result)
            )

        for package in self._config.baseline_packages:
            self._upgrade_policy.call(
                lambda package=package: self._upgrade_package(package, cwd),
                label=f"Upgrading {package}",
            )
        _write_marker(marker)
        self._record("provisioning.created", {"family": "python", "path": str(venv_dir)})
        return True

    def ensure_node_manifest(self, cwd: Path) -> bool:
        """Initialise ``package.json`` non-interactively if it is missing.

        Returns:
            True if the manifest was created by this call.
        """

        manifest = cwd / NODE_MANIFEST
        if manifest.exists():
            return False
        self._logger.info("Initialising Node project in %s", cwd)
        result = self._executor.run([self._toolchain.npm, "init", "-y"], cwd=cwd)
        if not result.succeeded:
            raise ProvisioningError("Failed to initialise Node project", _diagnostic(result))
        self._record("provisioning.created", {"family": "node", "path": str(manifest)})
        return True

    def ensure_typescript_tools(self, cwd: Path) -> None:
        """Install the TypeScript toolchain packages; re-run before every execution."""

        self.ensure_node_manifest(cwd)
        for package in self._config.typescript_packages:
            self.install_node_package(package, cwd)

    def install_python_package(self, package: str, cwd: Path) -> None:
        """Install a package into the provisioned virtual environment.

        Raises:
            ProvisioningError: If pip exits non-zero.
        """

        python = str(self.python_executable(cwd))
        result = self._executor.run([python, "-m", "pip", "install", package], cwd=cwd)
        if not result.succeeded:
            raise ProvisioningError(
                f"Failed to install Python package {package}",
                _diagnostic(result),
                package=package,
            )

    def install_node_package(self, package: str, cwd: Path) -> None:
        """Install a package into the local Node project.

        Raises:
            ProvisioningError: If npm exits non-zero.
        """

        result = self._executor.run([self._toolchain.npm, "install", package], cwd=cwd)
        if not result.succeeded:
            raise ProvisioningError(
                f"Failed to install Node package {package}",
                _diagnostic(result),
                package=package,
            )

    def _upgrade_package(self, package: str, cwd: Path) -> None:
        python = str(self.python_executable(cwd))
        result = self._executor.run(
            [python, "-m", "pip", "install", "--upgrade", package], cwd=cwd
        )
        if not result.succeeded:
            raise ProvisioningError(
                f"Failed to upgrade {package}", _diagnostic(result), package=package
            )

    def _bootstrap_python(self, cwd: Path) -> None:
        command = self._toolchain.python_bootstrap_command()
        self._logger.warning("Python not found, attempting to install it with %s", command[0])
        result = self._executor.run(command, cwd=cwd)
        if not result.succeeded:
            raise ProvisioningError("Failed to install Python", _diagnostic(result))

    def _record(self, event: str, payload: dict[str, str]) -> None:
        if self._observability:
            self._observability.log_event(event, payload)


def _write_marker(marker: Path) -> None:
    try:
        marker.parent.mkdir(parents=True, exist_ok=True)
        marker.write_text("", encoding="utf-8")
    except OSError as exc:
        raise ProvisioningError(f"Failed to record provisioning in {marker}", str(exc)) from exc


def _diagnostic(result: ExecutionResult) -> str:
    return result.stderr or result.stdout or f"exit status {result.exit_code}"
