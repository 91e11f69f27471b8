"""Fragment commands: meta directives versus code to execute."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final, Union

from codexcli.errors import ScaffoldingError
from codexcli.execution.base import CodeExecutor
from codexcli.models import CodeBlock
from codexcli.util.logging import get_logger

SCAFFOLD_DIRECTIVE: Final[str] = "create-react-app"
DEV_SERVER_DIRECTIVE: Final[str] = "npm start"
STATIC_SERVER_PREFIX: Final[str] = "start-server"
DEFAULT_STATIC_PORT: Final[int] = 8000
_MAX_PORT: Final[int] = 65535


@dataclass(frozen=True)
class CodeExecution:
    """A fragment that should be run by a toolchain."""

    block: CodeBlock


@dataclass(frozen=True)
class ScaffoldWebApp:
    """Generate a new web application in the working directory."""


@dataclass(frozen=True)
class StartDevServer:
    """Start the generated web application's development server."""


@dataclass(frozen=True)
class StartStaticServer:
    """Serve the working directory over HTTP."""

    port: int = DEFAULT_STATIC_PORT


MetaCommand = Union[ScaffoldWebApp, StartDevServer, StartStaticServer]
Command = Union[MetaCommand, CodeExecution]


def parse_meta_command(text: str) -> MetaCommand | None:
    """Recognise a control directive in raw text, ignoring any language tag."""

    stripped = text.strip()
    if stripped == SCAFFOLD_DIRECTIVE:
        return ScaffoldWebApp()
    if stripped == DEV_SERVER_DIRECTIVE:
        return StartDevServer()
    if stripped.split(maxsplit=1)[:1] == [STATIC_SERVER_PREFIX]:
        return StartStaticServer(port=_parse_port(stripped))
    return None


def parse_command(block: CodeBlock) -> Command:
    """Resolve a fragment into a meta command or a code execution."""

    meta = parse_meta_command(block.source)
    if meta is not None:
        return meta
    return CodeExecution(block)


def _parse_port(text: str) -> int:
    parts = text.split()
    if len(parts) < 2:
        return DEFAULT_STATIC_PORT
    token = parts[1]
    if token.isascii() and token.isdigit() and int(token) <= _MAX_PORT:
        return int(token)
    return DEFAULT_STATIC_PORT


class MetaCommandHandler:
    """Run orchestration shortcuts without provisioning or temp files."""

    def __init__(
        self,
        executor: CodeExecutor,
        *,
        app_dir_name: str = "react-app",
        npx_executable: str = "npx",
        npm_executable: str = "npm",
        python_executable: str = "python",
    ) -> None:
        self._executor = executor
        self._app_dir_name = app_dir_name
        self._npx = npx_executable
        self._npm = npm_executable
        self._python = python_executable
        self._logger = get_logger(self.__class__.__name__)

    def handle(self, command: MetaCommand, cwd: Path) -> str:
        """Dispatch a meta command and return a human-readable message.

        Raises:
            ScaffoldingError: If the app generator exits non-zero.
            ToolInvocationError: If the required executable is missing.
        """

        if isinstance(command, ScaffoldWebApp):
            return self.scaffold_web_app(cwd)
        if isinstance(command, StartDevServer):
            return self.start_dev_server(cwd)
        if isinstance(command, StartStaticServer):
            return self.start_static_server(command.port, cwd)
        raise TypeError(f"Unknown meta command: {command!r}")

    def scaffold_web_app(self, cwd: Path) -> str:
        self._logger.info("Scaffolding web application '%s' in %s", self._app_dir_name, cwd)
        result = self._executor.run_interactive(
            [self._npx, "create-react-app", self._app_dir_name], cwd=cwd
        )
        if not result.succeeded:
            raise ScaffoldingError(
                "Failed to create React application",
                f"create-react-app exited with status {result.exit_code}",
            )
        return (
            "React application created successfully. "
            "Use 'npm start' to run the development server."
        )

    def start_dev_server(self, cwd: Path) -> str:
        app_dir = cwd / self._app_dir_name
        self._executor.spawn_detached([self._npm, "start"], cwd=app_dir)
        return "React development server started. Press Ctrl+C to stop."

    def start_static_server(self, port: int, cwd: Path) -> str:
        self._executor.spawn_detached([self._python, "-m", "http.server", str(port)], cwd=cwd)
        return f"Local server started on port {port}. Press Ctrl+C to stop."
