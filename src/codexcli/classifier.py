"""Heuristic classification of toolchain failure diagnostics.

Matching is plain substring search against known toolchain phrasing. It is
best-effort: output from an unfamiliar interpreter version falls through to
``ToolFailure`` rather than being guessed at.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Union

from codexcli.languages import RuntimeFamily

PYTHON_MISSING_MODULE_MARKER: Final[str] = "ModuleNotFoundError"
PYTHON_MODULE_NAME_PREFIX: Final[str] = "No module named '"
NODE_MISSING_MODULE_MARKER: Final[str] = "Cannot find module"
NODE_MODULE_NAME_PREFIX: Final[str] = "Cannot find module '"
INTERACTIVE_INPUT_MARKERS: Final[tuple[str, ...]] = ("input(", "EOF", "EOFError")


@dataclass(frozen=True)
class MissingDependency:
    """A package the fragment imports is not installed."""

    package: str


@dataclass(frozen=True)
class InteractiveInputRequired:
    """The fragment tried to read from a terminal that was not attached."""


@dataclass(frozen=True)
class ToolFailure:
    """Terminal failure; the diagnostic is kept verbatim."""

    diagnostic: str


@dataclass(frozen=True)
class UnsupportedLanguage:
    """The fragment's language tag is not supported."""

    tag: str


FailureClass = Union[MissingDependency, InteractiveInputRequired, ToolFailure, UnsupportedLanguage]


def extract_quoted_name(text: str, prefix: str) -> str | None:
    """Return the text between ``prefix`` and the next single quote.

    >>> extract_quoted_name("No module named 'requests'", "No module named '")
    'requests'
    """

    _, found, remainder = text.partition(prefix)
    if not found:
        return None
    name, closed, _ = remainder.partition("'")
    if not closed or not name:
        return None
    return name


def classify_failure(
    diagnostic: str,
    family: RuntimeFamily | None = None,
) -> FailureClass:
    """Classify a failed execution's diagnostic text.

    Rules are checked in order and the first match wins: the Python
    missing-module marker, the Node missing-module marker, then (for Python
    only) signs of a blocking input read. Anything else is a ToolFailure.

    Args:
        diagnostic: Raw stderr (or status text) from the failed run.
        family: Runtime family of the fragment, when known.

    Returns:
        The FailureClass variant for the diagnostic.
    """

    if PYTHON_MISSING_MODULE_MARKER in diagnostic:
        return _missing_dependency(diagnostic, PYTHON_MODULE_NAME_PREFIX)
    if NODE_MISSING_MODULE_MARKER in diagnostic:
        return _missing_dependency(diagnostic, NODE_MODULE_NAME_PREFIX)
    if family in (None, RuntimeFamily.PYTHON) and requires_interactive_input(diagnostic):
        return InteractiveInputRequired()
    return ToolFailure(diagnostic)


def requires_interactive_input(diagnostic: str) -> bool:
    """Return True if the diagnostic points at a read from a closed stdin."""

    return any(marker in diagnostic for marker in INTERACTIVE_INPUT_MARKERS)


def _missing_dependency(diagnostic: str, prefix: str) -> FailureClass:
    package = extract_quoted_name(diagnostic, prefix)
    if package is None:
        return ToolFailure(diagnostic)
    return MissingDependency(package)
