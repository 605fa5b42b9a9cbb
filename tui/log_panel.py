"""
TUI Log Panel Module
Scrollable activity log for syncs, deletes and downloads.
"""

import logging
from datetime import datetime

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import ScrollableContainer
from textual.widgets import Static


logger = logging.getLogger("tui.activity")

MAX_MESSAGES = 100


class LogPanel(ScrollableContainer):
    """Scrollable activity log; every entry is also written to the log file."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.messages: list[str] = []

    def compose(self) -> ComposeResult:
        yield Static("", id="log-content")

    def write(self, message: str, level: int = logging.INFO) -> None:
        """Add a log message (Rich markup allowed)."""
        stamp = datetime.now().strftime("%H:%M:%S")
        self.messages.append(f"[dim]{stamp}[/dim] {message}")
        if len(self.messages) > MAX_MESSAGES:
            self.messages = self.messages[-MAX_MESSAGES:]
        self._update_content()
        self.scroll_end(animate=False)

        logger.log(level, Text.from_markup(message).plain)

    def _update_content(self) -> None:
        content = self.query_one("#log-content", Static)
        content.update("\n".join(self.messages))
