"""Language tag resolution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final

from codexcli.errors import UnsupportedLanguageError


class RuntimeFamily(str, Enum):
    """Groups of languages sharing a provisioning and invocation strategy."""

    PYTHON = "python"
    NODE = "node"
    TYPESCRIPT = "typescript"
    COMPILED_NATIVE = "compiled_native"
    SHELL = "shell"
    MARKUP = "markup"


@dataclass(frozen=True)
class ResolvedLanguage:
    """Canonical runtime identity for a language tag.

    Attributes:
        tag: Canonical language name.
        file_extension: Extension used for the temporary source file.
        runtime_family: Family deciding how the fragment is provisioned and run.
    """

    tag: str
    file_extension: str
    runtime_family: RuntimeFamily


PYTHON: Final = ResolvedLanguage("python", "py", RuntimeFamily.PYTHON)
JAVASCRIPT: Final = ResolvedLanguage("javascript", "js", RuntimeFamily.NODE)
TYPESCRIPT: Final = ResolvedLanguage("typescript", "ts", RuntimeFamily.TYPESCRIPT)
RUST: Final = ResolvedLanguage("rust", "rs", RuntimeFamily.COMPILED_NATIVE)
BASH: Final = ResolvedLanguage("bash", "sh", RuntimeFamily.SHELL)
HTML: Final = ResolvedLanguage("html", "html", RuntimeFamily.MARKUP)

_ALIASES: Final[dict[str, ResolvedLanguage]] = {
    "python": PYTHON,
    "py": PYTHON,
    "javascript": JAVASCRIPT,
    "js": JAVASCRIPT,
    "typescript": TYPESCRIPT,
    "ts": TYPESCRIPT,
    "rust": RUST,
    "rs": RUST,
    "bash": BASH,
    "sh": BASH,
    "html": HTML,
}


def resolve_language(tag: str) -> ResolvedLanguage:
    """Resolve a free-form language tag.

    Args:
        tag: Language tag, matched case-insensitively after trimming.

    Returns:
        The ResolvedLanguage for the tag.

    Raises:
        UnsupportedLanguageError: If the tag is not a known alias.
    """

    resolved = _ALIASES.get(tag.strip().lower())
    if resolved is None:
        raise UnsupportedLanguageError(tag)
    return resolved


def supported_tags() -> list[str]:
    """Return every accepted language alias, sorted."""

    return sorted(_ALIASES)
