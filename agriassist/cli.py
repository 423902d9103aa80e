"""AgriAssist CLI: Typer + Rich terminal chat.

Commands: chat, ask, questions, config.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from agriassist import __version__
from agriassist.client import ChatClient, SendResult
from agriassist.config import CONFIG_FILE, ChatConfig, load_config, load_env_files
from agriassist.conversation import ConversationStore
from agriassist.display import (
    BRAND,
    ReplyView,
    quick_questions_table,
    render_message,
)
from agriassist.errors import ConfigError
from agriassist.prompts import GREETING, resolve_quick_question

console = Console()

_EXIT_COMMANDS = {"/quit", "/exit", "/q"}

app = typer.Typer(
    name="agriassist",
    help="Ask the AgriAssist farming assistant from your terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"agriassist {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# ── App Callback ────────────────────────────────────────────────


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Enable debug logging.",
    ),
    config_path: Path = typer.Option(
        None, "--config", "-c",
        help="Path to a config.toml (default: ~/.agriassist/config.toml).",
    ),
) -> None:
    """AgriAssist: streaming AI chat assistant for farmers."""
    _configure_logging(verbose)
    load_env_files()
    ctx.obj = {"config_path": config_path}


# ── Helpers ──────────────────────────────────────────────────────


def _load_config(ctx: typer.Context) -> ChatConfig:
    """Load chat config, exit on error."""
    config_path = (ctx.obj or {}).get("config_path")
    try:
        return load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


def _send_turn(
    client: ChatClient, store: ConversationStore, text: str
) -> SendResult | None:
    """Send one message with a live reply panel, then print the result."""
    with ReplyView(console) as view:
        result = asyncio.run(client.send(store, text, on_chunk=view.on_chunk))
    if result is not None:
        render_message(console, result.reply)
    return result


# ── Commands ─────────────────────────────────────────────────────


@app.command()
def chat(ctx: typer.Context) -> None:
    """Start an interactive chat session."""
    client = ChatClient(_load_config(ctx))
    store = ConversationStore(greeting=GREETING)

    for message in store.messages:
        render_message(console, message)
    console.print(quick_questions_table())
    console.print(
        f"[{BRAND['dim']}]Type a question or a quick question number. "
        f"/quit to leave.[/{BRAND['dim']}]"
    )

    while True:
        try:
            entry = console.input("[bold]> [/bold]")
        except (EOFError, KeyboardInterrupt):
            console.print()
            break

        if entry.strip().lower() in _EXIT_COMMANDS:
            break
        text = resolve_quick_question(entry)
        if not text.strip():
            continue

        try:
            _send_turn(client, store, text)
        except KeyboardInterrupt:
            console.print(f"\n[{BRAND['dim']}]Reply interrupted.[/{BRAND['dim']}]")


@app.command()
def ask(
    ctx: typer.Context,
    question: str = typer.Argument(..., help="Question for the assistant"),
    raw: bool = typer.Option(
        False, "--raw",
        help="Print the reply as plain text without panels.",
    ),
) -> None:
    """Ask a single question and print the streamed answer."""
    client = ChatClient(_load_config(ctx))
    store = ConversationStore(greeting=GREETING)
    text = resolve_quick_question(question)

    if raw:
        result = asyncio.run(client.send(store, text))
        if result is not None:
            console.print(result.reply.content, markup=False, highlight=False)
    else:
        result = _send_turn(client, store, text)

    if result is None:
        console.print("[red]Question is empty.[/red]")
        raise typer.Exit(2)
    if result.failed:
        raise typer.Exit(1)


@app.command()
def questions() -> None:
    """List the quick questions available in chat."""
    console.print(quick_questions_table())


@app.command("config")
def show_config(ctx: typer.Context) -> None:
    """Show the effective chat configuration."""
    config = _load_config(ctx)
    config_path = (ctx.obj or {}).get("config_path") or CONFIG_FILE

    table = Table(title="AgriAssist Configuration", title_justify="left", show_edge=False)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("Config file", str(config_path))
    table.add_row("Endpoint", config.endpoint)
    table.add_row("API key", config.masked_api_key() or "[dim](not set)[/dim]")
    table.add_row("Timeout", f"{config.timeout:g}s")
    table.add_row("Fallback message", config.fallback_message)
    console.print(table)
