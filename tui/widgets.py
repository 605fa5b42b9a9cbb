"""
TUI Widgets Module
Custom styled widgets for the TUI interface.
"""

from textual.app import ComposeResult
from textual.message import Message
from textual.reactive import reactive
from textual.widgets import Static, Button

from rich.text import Text
from rich.console import RenderableType

from core.models import DateFilter


class GradientHeader(Static):
    """Custom header with gradient-like styling."""

    def compose(self) -> ComposeResult:
        yield Static(
            "󰄀  [bold cyan]BucketWatch[/bold cyan] [dim]│[/dim] Access Log Monitor",
            id="header-title"
        )


class StatusPanel(Static):
    """Status panel showing bucket and refresh info."""

    bucket = reactive("-")
    sync_status = reactive("Connecting...")
    last_refresh = reactive("never")
    showing = reactive("0 of 0")

    def render(self) -> RenderableType:
        return Text.from_markup(
            f"[bold]󰅟 Bucket[/bold]\n   {self.bucket}\n"
            f"[bold]󰑓 Status[/bold]\n   {self.sync_status}\n"
            f"[bold]󰥔 Last refresh[/bold]\n   {self.last_refresh}\n"
            f"[bold]󰋩 Showing[/bold]\n   {self.showing}"
        )


class StatTile(Static):
    """Clickable counter that filters the gallery to its time window."""

    count = reactive(0)

    class Selected(Message):
        """Posted when the tile is clicked."""

        def __init__(self, filter_date: DateFilter) -> None:
            super().__init__()
            self.filter_date = filter_date

    def __init__(self, label: str, icon: str, filter_date: DateFilter, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.label = label
        self.icon = icon
        self.filter_date = filter_date

    def render(self) -> RenderableType:
        return Text.from_markup(
            f"[bold cyan]{self.icon} [/bold cyan][dim]{self.label}[/dim]\n"
            f"[bold]{self.count:,}[/bold]"
        )

    def on_click(self) -> None:
        self.post_message(self.Selected(self.filter_date))


class ActionButton(Button):
    """Styled action button with icon."""

    def __init__(self, label: str, icon: str = "", *args, **kwargs):
        full_label = f"{icon} {label}" if icon else label
        super().__init__(full_label, *args, **kwargs)
