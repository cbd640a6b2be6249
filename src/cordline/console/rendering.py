import threading
from datetime import datetime
from typing import Optional

from prompt_toolkit.application import get_app_or_none, run_in_terminal
from rich.console import Console
from rich.text import Text

from cordline.platform.models import Message

console = Console()


def format_time(ts: datetime) -> str:
    """Local 12-hour clock, e.g. ``3:04PM``."""
    return ts.astimezone().strftime("%I:%M%p").lstrip("0")


def format_message(message: Message, edited: bool = False) -> str:
    """Format a chat message as ``[time] name: content``."""
    if edited:
        ts = message.edited_timestamp or message.timestamp
        return f"[{format_time(ts)}] {message.author_name}: {message.content} (edited)"
    return f"[{format_time(message.timestamp)}] {message.author_name}: {message.content}"


class Terminal:
    """Single gate for every line written to the terminal.

    Lines are written whole while holding a lock. While the prompt is running
    they go through ``run_in_terminal`` so the input line is redrawn below
    them; prompt_toolkit runs those calls in submission order.
    """

    def __init__(self, out: Optional[Console] = None) -> None:
        self._console = out
        self._lock = threading.Lock()

    @property
    def console(self) -> Console:
        return self._console or console

    def write_line(self, text: str, style: str = "") -> None:
        line = Text(text, style=style)

        def _emit() -> None:
            with self._lock:
                self.console.print(line)

        app = get_app_or_none()
        if app is not None and app.is_running:
            run_in_terminal(_emit)
        else:
            _emit()

    def write_error(self, err: object) -> None:
        self.write_line(f"Error: {err}", "bold red")
