"""Platform-conditional toolchain executable names and command lines."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path


def is_windows() -> bool:
    return os.name == "nt"


def default_system_python() -> str:
    return "python" if is_windows() else "python3"


@dataclass(frozen=True)
class Toolchain:
    """Executable names used to drive each runtime family.

    Attributes:
        windows: Whether Windows conventions apply.
        system_python: Interpreter used to create virtual environments.
        node: Node runtime.
        npm: Node package manager.
        npx: Node package runner.
        rustc: Native compiler.
    """

    windows: bool = field(default_factory=is_windows)
    system_python: str = field(default_factory=default_system_python)
    node: str = "node"
    npm: str = ""
    npx: str = ""
    rustc: str = "rustc"

    def __post_init__(self) -> None:
        suffix = ".cmd" if self.windows else ""
        if not self.npm:
            object.__setattr__(self, "npm", f"npm{suffix}")
        if not self.npx:
            object.__setattr__(self, "npx", f"npx{suffix}")

    def venv_python(self, venv_dir: Path) -> Path:
        """Return the interpreter inside a virtual environment directory."""

        if self.windows:
            return venv_dir / "Scripts" / "python.exe"
        return venv_dir / "bin" / "python"

    def binary_name(self, stem: str) -> str:
        """Return the file name rustc produces for a source file stem."""

        return f"{stem}.exe" if self.windows else stem

    def compiler_byproducts(self, stem: str) -> list[str]:
        """Return every file a native compile may leave next to the source."""

        names = [self.binary_name(stem)]
        if self.windows:
            names.append(f"{stem}.pdb")
        return names

    def shell_command(self, script_name: str) -> list[str]:
        if self.windows:
            return ["wsl", "bash", "-c", f"bash {script_name}"]
        return ["bash", script_name]

    def open_command(self, path: Path) -> list[str]:
        """Return the command that opens ``path`` in the default viewer."""

        if self.windows:
            return ["cmd", "/C", "start", "", str(path)]
        if sys.platform == "darwin":
            return ["open", str(path)]
        return ["xdg-open", str(path)]

    def python_bootstrap_command(self) -> list[str]:
        """Return the package-manager command that installs a system Python."""

        if self.windows:
            return ["winget", "install", "Python.Python"]
        return ["sudo", "apt-get", "install", "-y", "python3"]
