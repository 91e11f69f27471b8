"""Working-directory and temporary artifact management."""

from codexcli.workspace.manager import WorkspaceManager, WorkspacePathError

__all__ = ["WorkspaceManager", "WorkspacePathError"]
