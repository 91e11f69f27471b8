"""Error taxonomy for fragment execution.

Every error keeps the raw toolchain diagnostic in ``diagnostic`` so a human
can still read what the toolchain said when classification gets it wrong.
"""

from __future__ import annotations


class EngineError(RuntimeError):
    """Base class for failures local to a single fragment."""

    def __init__(self, message: str, diagnostic: str | None = None) -> None:
        super().__init__(message)
        self.diagnostic = diagnostic if diagnostic is not None else message


class UnsupportedLanguageError(EngineError):
    """Raised when a language tag is outside the supported alias table."""

    def __init__(self, tag: str) -> None:
        super().__init__(f"Unsupported language: {tag}")
        self.tag = tag


class ProvisioningError(EngineError):
    """Raised when a runtime environment could not be prepared."""

    def __init__(
        self, detail: str, diagnostic: str | None = None, *, package: str | None = None
    ) -> None:
        super().__init__(detail, diagnostic)
        self.detail = detail
        self.package = package


class ToolInvocationError(EngineError):
    """Raised when a toolchain process could not be spawned at all."""

    def __init__(self, command: list[str], reason: str) -> None:
        executable = command[0] if command else "<empty>"
        super().__init__(f"Failed to launch '{executable}': {reason}")
        self.command = list(command)


class ToolFailureError(EngineError):
    """Raised when a toolchain exits non-zero with no recoverable pattern."""


class MissingDependencyError(EngineError):
    """Raised when a failure was classified as a missing package."""

    def __init__(self, package: str, diagnostic: str) -> None:
        super().__init__(f"Missing dependency: {package}", diagnostic)
        self.package = package


class ScaffoldingError(EngineError):
    """Raised when the web-app generator fails."""


class WorkspaceError(EngineError):
    """Raised when the working directory or a temp artifact cannot be written."""
