"""Rich terminal rendering for the chat front end.

Messages are rendered as Markdown inside role-colored panels. While a
reply streams in, ReplyView keeps a transient Live panel updated with
the accumulated text; the caller prints the stored message afterwards.
"""

from __future__ import annotations

from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from agriassist.prompts import QUICK_QUESTIONS
from agriassist.schemas.chat import ChatMessage, ChatRole
from agriassist.schemas.streaming import StreamChunk

# ── Brand Colors ──────────────────────────────────────────────────

BRAND = {
    "leaf": "#4caf50",
    "soil": "#a1887f",
    "sky": "#4fc3f7",
    "dim": "#6a8a6a",
    "red": "#ff4444",
}

_ROLE_STYLE: dict[ChatRole, tuple[str, str]] = {
    ChatRole.ASSISTANT: ("AgriAssist", BRAND["leaf"]),
    ChatRole.USER: ("You", BRAND["sky"]),
}


def _time_label(message: ChatMessage) -> str:
    return message.timestamp.astimezone().strftime("%H:%M")


def message_panel(message: ChatMessage) -> Panel:
    """Build the panel for a single chat message."""
    title, color = _ROLE_STYLE[message.role]
    if message.is_fallback:
        color = BRAND["red"]
    return Panel(
        Markdown(message.content),
        title=f"[bold {color}]{title}[/bold {color}]",
        title_align="left" if message.role is ChatRole.ASSISTANT else "right",
        subtitle=f"[{BRAND['dim']}]{_time_label(message)}[/{BRAND['dim']}]",
        subtitle_align="right",
        border_style=color,
    )


def render_message(console: Console, message: ChatMessage) -> None:
    """Print a finished chat message."""
    console.print(message_panel(message))


def quick_questions_table() -> Table:
    """Numbered table of the canned starter questions."""
    table = Table(title="Quick Questions", title_justify="left", show_edge=False)
    table.add_column("#", style="bold", justify="right")
    table.add_column("Question")
    table.add_column("Category", style=BRAND["dim"])
    for number, question in enumerate(QUICK_QUESTIONS, start=1):
        table.add_row(str(number), question.text, question.category)
    return table


class ReplyView:
    """Live panel for an assistant reply that is still streaming.

    Use as a context manager and pass ``on_chunk`` as the client's sink.
    Shows a spinner until the first delta arrives.
    """

    def __init__(self, console: Console) -> None:
        self._console = console
        self._content = ""
        self._live: Live | None = None

    @property
    def content(self) -> str:
        return self._content

    def __enter__(self) -> ReplyView:
        self._live = Live(
            self._renderable(),
            console=self._console,
            refresh_per_second=8,
            transient=True,
        )
        self._live.__enter__()
        return self

    def __exit__(self, *args: object) -> None:
        if self._live is not None:
            self._live.__exit__(None, None, None)
            self._live = None

    def on_chunk(self, chunk: StreamChunk) -> None:
        """Display sink for StreamChunk updates."""
        self._content = chunk.accumulated
        if self._live is not None:
            self._live.update(self._renderable())

    def _renderable(self) -> Panel:
        title, color = _ROLE_STYLE[ChatRole.ASSISTANT]
        if self._content:
            body = Markdown(self._content)
        else:
            body = Spinner("dots", text=Text("Thinking...", style=BRAND["dim"]))
        return Panel(
            body,
            title=f"[bold {color}]{title}[/bold {color}]",
            title_align="left",
            border_style=color,
        )
