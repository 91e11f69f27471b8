"""Extraction of fenced code regions from AI response text."""

from __future__ import annotations

from typing import Final

from codexcli.models import CodeBlock

FENCE: Final[str] = "```"


def extract_code_blocks(response: str) -> list[CodeBlock]:
    """Return the fenced code blocks found in ``response``.

    A region opens at a line whose stripped text starts with a triple
    backtick, optionally followed by a language tag, and closes at the next
    such line. Every body line is kept with a trailing newline. A region
    that is never closed is discarded.
    """

    blocks: list[CodeBlock] = []
    body: list[str] = []
    language = ""
    in_block = False

    for line in response.splitlines():
        stripped = line.strip()
        if stripped.startswith(FENCE):
            if in_block:
                blocks.append(CodeBlock(language_tag=language, source="".join(body)))
                body = []
                language = ""
                in_block = False
            else:
                in_block = True
                language = stripped[len(FENCE):].strip()
        elif in_block:
            body.append(f"{line}\n")

    return blocks
