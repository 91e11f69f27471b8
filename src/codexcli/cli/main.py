"""CLI entrypoints for codexcli."""

from __future__ import annotations

import sys
from pathlib import Path

import typer

from codexcli.app import (
    AppConfigError,
    RuntimeContext,
    ask_backend,
    build_runtime,
    execute_blocks,
    handle_directive,
    initialize_config,
    run_code,
    run_system_command,
)
from codexcli.config import load_config, update_model, update_workdir
from codexcli.llm.base import LLMClientError
from codexcli.models import CodeBlock, FragmentReport
from codexcli.util.logging import configure_logging

app = typer.Typer(help="CodexCLI - ask a local AI model and run the code it answers with.")

RULE = "─────────────────────────────"


@app.callback()
def main(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Logging level (e.g., DEBUG, INFO, WARNING).",
    ),
) -> None:
    """Configure CLI-level options."""

    configure_logging(log_level)


@app.command()
def init(directory: Path = typer.Argument(Path("."))) -> None:
    """Write a default codexcli.yaml into a directory."""

    try:
        config_path = initialize_config(directory)
    except AppConfigError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc
    typer.echo(f"Created configuration at {config_path}")


@app.command("ask")
def ask_command(
    prompt: str = typer.Argument(..., help="Prompt to send to the model."),
    workdir: Path | None = typer.Option(
        None, "--workdir", "-w", help="Working directory for code execution."
    ),
    config_path: Path | None = typer.Option(None, "--config", help="Configuration file."),
    model: str | None = typer.Option(None, "--model", help="Override the model name."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Run code blocks without asking."),
    raw: bool = typer.Option(False, "--raw", help="Print the bare response only."),
) -> None:
    """Send one prompt and optionally run the code blocks in the answer."""

    runtime = _load_runtime(config_path, workdir, model)
    if not process_prompt(prompt, runtime, raw=raw, assume_yes=yes):
        raise typer.Exit(code=1)


@app.command("run")
def run_command(
    language: str = typer.Argument(..., help="Language tag, e.g. python, js, rust."),
    source_file: Path | None = typer.Argument(
        None, help="File holding the fragment; standard input when omitted."
    ),
    workdir: Path | None = typer.Option(
        None, "--workdir", "-w", help="Working directory for code execution."
    ),
    config_path: Path | None = typer.Option(None, "--config", help="Configuration file."),
) -> None:
    """Run a code fragment directly, with provisioning and recovery."""

    if source_file is None:
        source = sys.stdin.read()
    else:
        source = source_file.read_text(encoding="utf-8")
    runtime = _load_runtime(config_path, workdir, None)
    report = run_code(language, source, runtime)
    _echo_report(report)
    if not report.success:
        raise typer.Exit(code=1)


@app.command("repl")
def repl_command(
    workdir: Path | None = typer.Option(
        None, "--workdir", "-w", help="Working directory for code execution."
    ),
    config_path: Path | None = typer.Option(None, "--config", help="Configuration file."),
    model: str | None = typer.Option(None, "--model", help="Override the model name."),
    raw: bool = typer.Option(False, "--raw", help="Disable decorations and confirmations."),
) -> None:
    """Read prompts interactively until end of input."""

    runtime = _load_runtime(config_path, workdir, model)
    if not raw:
        typer.echo("Type your prompt and hit Enter; Ctrl+C to exit.")
        typer.echo("For system commands, prefix with ! (e.g. !ls)")
        typer.echo(RULE)
    while True:
        try:
            prompt = input("> ").rstrip()
        except (EOFError, KeyboardInterrupt):
            typer.echo()
            break
        if not prompt:
            continue
        process_prompt(prompt, runtime, raw=raw, assume_yes=False)


def process_prompt(
    prompt: str, runtime: RuntimeContext, *, raw: bool, assume_yes: bool
) -> bool:
    """Handle one prompt; return False when anything in it failed."""

    if prompt.startswith("!"):
        return _system_command(prompt[1:].strip(), runtime)

    directive = handle_directive(prompt, runtime)
    if directive is not None:
        _echo_report(directive)
        return directive.success

    try:
        response = ask_backend(prompt, runtime)
    except LLMClientError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        return False

    if raw:
        typer.echo(response.text)
        if not assume_yes:
            return True
    else:
        typer.echo(RULE)
        typer.echo(response.text)
        typer.echo(RULE)

    if not response.blocks:
        return True
    if not assume_yes and not typer.confirm("Found code blocks. Execute them?", default=False):
        return True

    reports = execute_blocks(response.blocks, runtime, on_start=_echo_block_start)
    for report in reports:
        _echo_report(report)
    return all(report.success for report in reports)


def _system_command(command: str, runtime: RuntimeContext) -> bool:
    result = run_system_command(command, runtime)
    if result.original_error is not None:
        typer.secho(f"Error: {result.original_error}", fg=typer.colors.RED, err=True)
        typer.secho(f"Trying fixed command: {result.command}", fg=typer.colors.YELLOW)
    if result.success:
        typer.echo(result.output, nl=False)
        return True
    typer.secho(f"Error: {result.error}", fg=typer.colors.RED, err=True)
    return False


def _load_runtime(
    config_path: Path | None, workdir: Path | None, model: str | None
) -> RuntimeContext:
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc
    if workdir is not None:
        config = update_workdir(config, workdir.resolve())
    if model is not None:
        config = update_model(config, model)
    try:
        return build_runtime(config, notifier=_notify)
    except LLMClientError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc


def _notify(message: str) -> None:
    typer.secho(message, fg=typer.colors.YELLOW, bold=True)


def _echo_block_start(block: CodeBlock) -> None:
    typer.secho(f"Executing {block.language_tag or 'untagged'} code block:", fg=typer.colors.GREEN)


def _echo_report(report: FragmentReport) -> None:
    if report.success:
        if report.output:
            typer.echo("Execution result:")
            typer.echo(RULE)
            typer.echo(report.output.rstrip("\n"))
            typer.echo(RULE)
        return
    typer.secho(f"Execution error: {report.error}", fg=typer.colors.RED, err=True)
    if report.diagnostic and report.diagnostic != report.error:
        typer.echo(report.diagnostic.rstrip("\n"), err=True)
