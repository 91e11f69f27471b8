"""Workspace manager for fragment artifacts within a working directory."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from codexcli.errors import WorkspaceError
from codexcli.util.logging import get_logger

_LOGGER = get_logger("codexcli.workspace")


class WorkspacePathError(ValueError):
    """Raised when an artifact path escapes the working directory."""


@dataclass(frozen=True)
class WorkspaceManager:
    """Own the temporary files a fragment execution creates.

    Attributes:
        root: Directory fragments run in. Created on demand.
    """

    root: Path

    def __post_init__(self) -> None:
        """Normalize the workspace root path."""

        object.__setattr__(self, "root", self.root.resolve())

    @classmethod
    def for_workdir(cls, workdir: Path | None) -> WorkspaceManager:
        """Build a manager for an optional override, defaulting to the current directory."""

        return cls(workdir if workdir is not None else Path.cwd())

    def ensure_exists(self) -> None:
        """Create the root directory if needed.

        Raises:
            WorkspaceError: If the root cannot be created or is not a directory.
        """

        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WorkspaceError(f"Cannot prepare working directory {self.root}", str(exc)) from exc

    def path_for(self, name: str) -> Path:
        """Resolve an artifact name to an absolute path inside the root.

        Raises:
            WorkspacePathError: If the resolved path escapes the root.
        """

        candidate = (self.root / name).resolve()
        if not candidate.is_relative_to(self.root):
            raise WorkspacePathError(f"Path '{name}' escapes workspace root")
        return candidate

    def write_artifact(self, name: str, content: str) -> Path:
        """Write ``content`` byte for byte; no newline translation happens.

        Raises:
            WorkspaceError: If the file cannot be written.
        """

        self.ensure_exists()
        path = self.path_for(name)
        try:
            path.write_bytes(content.encode("utf-8"))
        except OSError as exc:
            raise WorkspaceError(f"Cannot write temporary file {path}", str(exc)) from exc
        return path

    def remove_artifact(self, name: str) -> None:
        path = self.path_for(name)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            _LOGGER.warning("Could not remove temporary artifact %s: %s", path, exc)

    @contextmanager
    def scoped_artifacts(self, names: list[str], *, keep: bool = False) -> Iterator[None]:
        """Remove the named artifacts on exit, including error exits.

        Args:
            names: Artifact names relative to the root.
            keep: Leave the artifacts in place (used for files handed to a viewer).
        """

        try:
            yield
        finally:
            if not keep:
                for name in names:
                    self.remove_artifact(name)
