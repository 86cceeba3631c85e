"""CLI interface for Refinery."""

import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path
from typing import Iterator, Optional

from dotenv import load_dotenv
import typer

# Load environment variables from .env file
load_dotenv()
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from src.context import WorkspaceContextProvider
from src.refinement import (
    CancellationToken,
    PipelineState,
    RefinementConfig,
    RefinementHistory,
    RefinementObserver,
    RefinementOutcome,
    RefinementPipeline,
    RefinementResult,
    RefineryError,
    TelemetryRecorder,
    TemplateCategory,
)
from src.refinement.templates import PROMPT_TEMPLATES, get_template, get_templates_by_category, list_categories
from src.refinement.tokens import format_token_count

# Initialize CLI app
app = typer.Typer(
    name="refinery",
    help="Turn vague coding requests into clear, actionable prompts",
    add_completion=False,
)

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Set up logging with rich formatting."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


class ConsoleObserver(RefinementObserver):
    """Renders fragments as they arrive and reports warnings and retries."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.streamed = False

    def on_state(self, state: PipelineState) -> None:
        if self.verbose:
            console.print(f"[dim]· {state.value}[/dim]")

    def on_fragment(self, fragment: str) -> None:
        self.streamed = True
        console.print(fragment, end="", markup=False, highlight=False)

    def on_progress(self, chars_so_far: int) -> None:
        if self.verbose:
            console.print(f"[dim] ({chars_so_far} chars)[/dim]", end="")

    def on_warning(self, message: str) -> None:
        console.print(f"[yellow]⚠ {message}[/yellow]")

    def on_retry(self, attempt: int, error: RefineryError, delay_ms: int) -> None:
        console.print(
            f"[yellow]Attempt {attempt} failed ({error.kind.value}), retrying in {delay_ms}ms...[/yellow]"
        )


@contextlib.contextmanager
def cancel_on_interrupt(token: CancellationToken) -> Iterator[None]:
    """Route Ctrl-C to the cancellation token while a request runs."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        # Signal handlers are unavailable off the main thread and on Windows.
        yield
        return
    try:
        yield
    finally:
        loop.remove_signal_handler(signal.SIGINT)


def build_pipeline(
    workspace: Path,
    active_file: Optional[Path],
    cursor_line: int,
    model: Optional[str],
    stream: bool,
) -> RefinementPipeline:
    config = RefinementConfig(streaming=stream)
    if model:
        config.model = model
    return RefinementPipeline.create(
        config,
        context_provider=WorkspaceContextProvider(workspace, active_file, cursor_line),
        history=RefinementHistory(max_history=config.max_history),
        telemetry=TelemetryRecorder(),
    )


async def run_refinement(
    pipeline: RefinementPipeline,
    text: str,
    model: Optional[str] = None,
    verbose: bool = False,
) -> RefinementResult:
    token = CancellationToken()
    observer = ConsoleObserver(verbose)
    with cancel_on_interrupt(token):
        result = await pipeline.refine(text, model_id=model, cancellation=token, observer=observer)
    if observer.streamed:
        console.print()
    return result


def display_result(result: RefinementResult) -> None:
    """Display the outcome of a refinement."""
    if result.outcome == RefinementOutcome.CANCELLED:
        console.print("\n[yellow]Refinement cancelled[/yellow]")
        return

    if result.outcome == RefinementOutcome.FAILED:
        kind = result.error_kind.value if result.error_kind else "UNKNOWN"
        message = f"[bold]{kind}[/bold]: {result.error_message}"
        if result.suggested_action:
            message += f"\n{result.suggested_action}"
        if result.retryable:
            message += "\n[dim]This error is temporary; retrying may succeed.[/dim]"
        console.print(Panel(message, title="Refinement Failed", border_style="red"))
        return

    if result.vague_warning:
        console.print(f"\n[yellow]{result.vague_warning}[/yellow]")

    console.print(Panel(result.refined_prompt, title="Refined Prompt", border_style="green"))

    details = [f"model: {result.model}"]
    if result.framework:
        details.append(f"context: {result.framework}")
    if result.token_validation:
        details.append(f"tokens: {format_token_count(result.token_validation.estimated_tokens)}")
    if result.outcome == RefinementOutcome.CACHED:
        details.append("cached")
    elif result.outcome == RefinementOutcome.SHARED:
        details.append("shared")
    details.append(f"{result.duration_ms / 1000:.1f}s")
    console.print(f"[dim]{' · '.join(details)}[/dim]")


def display_history(history: RefinementHistory, count: int = 10) -> None:
    entries = history.get_recent(count)
    if not entries:
        console.print("[yellow]No refinements yet.[/yellow]")
        return

    table = Table(title="Recent Refinements")
    table.add_column("ID", style="dim")
    table.add_column("Time")
    table.add_column("Original", style="cyan")
    table.add_column("Model")
    table.add_column("Framework")

    for entry in entries:
        original = entry.original_prompt
        table.add_row(
            entry.id,
            entry.timestamp.strftime("%H:%M:%S"),
            original if len(original) <= 50 else original[:50] + "...",
            entry.model,
            entry.framework or "-",
        )
    console.print(table)


def display_stats(pipeline: RefinementPipeline) -> None:
    table = Table(title="Refinery Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    for key, value in pipeline.cache.stats().to_dict().items():
        table.add_row(f"cache {key.replace('_', ' ')}", str(value))
    if isinstance(pipeline.telemetry, TelemetryRecorder):
        for key, value in pipeline.telemetry.get_stats().items():
            table.add_row(key.replace("_", " "), str(value))
    console.print(table)


def display_templates(category: Optional[str] = None) -> None:
    table = Table(title="Prompt Templates")
    table.add_column("ID", style="cyan")
    table.add_column("Category")
    table.add_column("Name")
    table.add_column("Description")

    labels = dict(list_categories())
    templates = get_templates_by_category(category) if category else PROMPT_TEMPLATES
    for template in templates:
        table.add_row(template.id, labels[template.category], template.name, template.description)
    console.print(table)


@app.command()
def refine(
    text: str = typer.Argument(..., help="The request to refine, or @<template-id>"),
    model: Optional[str] = typer.Option(
        None, "--model", "-m", help="Model to use (default: gemini-2.5-flash)"
    ),
    file: Optional[Path] = typer.Option(
        None, "--file", "-f", help="Active file to include as context"
    ),
    line: int = typer.Option(
        1, "--line", "-l", help="Cursor line in the active file"
    ),
    workspace: Path = typer.Option(
        Path("."), "--workspace", "-w", help="Project root to scan for context"
    ),
    stream: bool = typer.Option(
        True, "--stream/--no-stream", help="Stream the refined prompt as it is generated"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging"
    ),
) -> None:
    """
    Refine a single request.

    Example:
        refinery refine "add dark mode" --workspace ./my-app
    """
    setup_logging(verbose)

    if text.startswith("@"):
        template = get_template(text[1:])
        if template is None:
            console.print(f"[red]Unknown template: {text[1:]}[/red]")
            raise typer.Exit(1)
        text = template.template

    async def run() -> RefinementResult:
        async with build_pipeline(workspace, file, line, model, stream) as pipeline:
            return await run_refinement(pipeline, text, model, verbose)

    try:
        result = asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Refinement cancelled by user[/yellow]")
        sys.exit(1)

    display_result(result)
    if not result.success:
        sys.exit(1)


SESSION_HELP = """[bold]Commands[/bold]
  /history      Show recent refinements
  /stats        Show cache and usage statistics
  /templates    List prompt templates
  /clear        Clear cache and history
  /quit         Exit the session
  @<id>         Refine a template"""


@app.command()
def session(
    model: Optional[str] = typer.Option(
        None, "--model", "-m", help="Model to use (default: gemini-2.5-flash)"
    ),
    workspace: Path = typer.Option(
        Path("."), "--workspace", "-w", help="Project root to scan for context"
    ),
    file: Optional[Path] = typer.Option(
        None, "--file", "-f", help="Active file to include as context"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging"
    ),
) -> None:
    """
    Start an interactive session sharing one cache and history.
    """
    setup_logging(verbose)
    console.print(Panel.fit(
        "[bold blue]Refinery[/bold blue]\n"
        "Transform vague ideas into clear, actionable prompts.",
        title="Interactive Session",
    ))
    console.print(SESSION_HELP)

    async def run_session() -> None:
        async with build_pipeline(workspace, file, 1, model, True) as pipeline:
            while True:
                text = (await asyncio.to_thread(Prompt.ask, "\n[bold cyan]refine[/bold cyan]")).strip()
                if not text:
                    continue

                if text in ("/quit", "/exit"):
                    break
                if text == "/history":
                    display_history(pipeline.history)
                    continue
                if text == "/stats":
                    display_stats(pipeline)
                    continue
                if text == "/templates":
                    display_templates()
                    continue
                if text == "/clear":
                    await pipeline.reset()
                    pipeline.history.clear()
                    console.print("[green]Cache and history cleared[/green]")
                    continue
                if text.startswith("/"):
                    console.print(f"[yellow]Unknown command: {text}[/yellow]")
                    continue
                if text.startswith("@"):
                    template = get_template(text[1:])
                    if template is None:
                        console.print(f"[red]Unknown template: {text[1:]}[/red]")
                        continue
                    text = template.template

                result = await run_refinement(pipeline, text, model, verbose)
                display_result(result)

    try:
        asyncio.run(run_session())
    except (KeyboardInterrupt, EOFError):
        console.print()
    console.print("[dim]Goodbye[/dim]")


@app.command()
def templates(
    category: Optional[TemplateCategory] = typer.Option(
        None, "--category", "-c", help="Only show templates in this category"
    ),
) -> None:
    """List built-in prompt templates."""
    display_templates(category.value if category else None)


@app.callback()
def main():
    """
    Refinery

    Turn short, vague coding requests into clear prompts for AI coding
    agents, using your project's framework and the file you are working in
    as context.
    """
    pass


if __name__ == "__main__":
    app()
