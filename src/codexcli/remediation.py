"""Corrective actions for classified failures."""

from __future__ import annotations

from pathlib import Path

from codexcli.classifier import FailureClass, MissingDependency
from codexcli.languages import RuntimeFamily
from codexcli.provisioning import EnvironmentProvisioner
from codexcli.util.logging import get_logger


class Remediator:
    """Install missing packages so a failed fragment can be retried once."""

    def __init__(self, provisioner: EnvironmentProvisioner) -> None:
        self._provisioner = provisioner
        self._logger = get_logger(self.__class__.__name__)

    def remediate(self, failure: FailureClass, family: RuntimeFamily, cwd: Path) -> bool:
        """Apply the corrective action for ``failure``.

        Args:
            failure: Classified failure of the previous attempt.
            family: Runtime family of the fragment.
            cwd: Working directory the fragment runs in.

        Returns:
            True when a retry is warranted, False when nothing could be done.

        Raises:
            ProvisioningError: If the package manager fails to install the package.
        """

        if not isinstance(failure, MissingDependency):
            return False
        if family is RuntimeFamily.PYTHON:
            self._logger.info("Installing Python package '%s'", failure.package)
            self._provisioner.install_python_package(failure.package, cwd)
            return True
        if family is RuntimeFamily.NODE:
            self._logger.info("Installing Node package '%s'", failure.package)
            self._provisioner.install_node_package(failure.package, cwd)
            return True
        self._logger.debug("No package manager for %s; skipping remediation.", family.value)
        return False

