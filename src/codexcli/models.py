"""Data types exchanged between the engine and its callers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from codexcli.classifier import FailureClass


@dataclass(frozen=True)
class CodeBlock:
    """One labeled fragment of source text.

    Attributes:
        language_tag: Tag taken from the opening fence (may be empty).
        source: Fragment text, kept byte for byte.
    """

    language_tag: str
    source: str


@dataclass(frozen=True)
class ExecutionContext:
    """Caller-supplied execution settings.

    Attributes:
        workdir: Directory fragments run in; the process working directory
            when None. Child processes receive it explicitly, so the engine
            never changes the process-wide working directory.
    """

    workdir: Path | None = None


@dataclass(frozen=True)
class FragmentReport:
    """Outcome of running one fragment.

    Attributes:
        block: The fragment that was run.
        success: Whether the fragment completed successfully.
        output: Captured output or confirmation text on success.
        error: Error message when the fragment failed.
        diagnostic: Raw toolchain diagnostic, kept verbatim.
        failure: Structured failure kind when one was determined.
        attempts: Number of executions performed (at most two).
    """

    block: CodeBlock
    success: bool
    output: str = ""
    error: str | None = None
    diagnostic: str | None = None
    failure: FailureClass | None = None
    attempts: int = 0
