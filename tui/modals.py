"""
TUI Modals Module
Modal screens for confirmation, image details and bulk delete progress.
"""

from typing import Optional

from rich.markup import escape
from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Static, Button, ProgressBar

from core.models import ImageRecord
from core.mutations import BulkDeleteProgress


MODAL_CSS = """
{name} {{
    align: center middle;
}}

{name} > Vertical {{
    width: {width};
    height: auto;
    max-height: 80%;
    background: $surface;
    border: round {border};
    padding: 1 2;
}}

{name} .modal-title {{
    text-align: center;
    text-style: bold;
    color: {border};
    padding: 1;
    border-bottom: solid $primary-darken-2;
    margin-bottom: 1;
}}

{name} .modal-buttons {{
    height: 3;
    align: center middle;
    margin-top: 1;
}}

{name} Button {{
    margin: 0 1;
    min-width: 12;
}}
"""


class ConfirmModal(ModalScreen[bool]):
    """Yes/no gate before a destructive action."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    CSS = MODAL_CSS.format(name="ConfirmModal", width=60, border="$primary") + """
    ConfirmModal .modal-message {
        text-align: center;
        margin: 1 0;
    }

    ConfirmModal.-danger > Vertical {
        border: round $error;
    }

    ConfirmModal.-danger .modal-title {
        color: $error;
    }
    """

    def __init__(self, title: str, message: str, confirm_label: str = "Delete", danger: bool = False):
        super().__init__(classes="-danger" if danger else None)
        self.title_text = title
        self.message = message
        self.confirm_label = confirm_label

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static(f"󰀦  {self.title_text}", classes="modal-title")
            yield Static(self.message, classes="modal-message")
            with Horizontal(classes="modal-buttons"):
                yield Button(f"󰆴  {self.confirm_label}", variant="error", id="confirm")
                yield Button("󰜺  Cancel", variant="default", id="cancel")

    def on_mount(self) -> None:
        self.query_one("#cancel", Button).focus()

    def action_cancel(self) -> None:
        self.dismiss(False)

    @on(Button.Pressed, "#confirm")
    def on_confirm(self) -> None:
        self.dismiss(True)

    @on(Button.Pressed, "#cancel")
    def on_cancel(self) -> None:
        self.dismiss(False)


class ImageDetailModal(ModalScreen[Optional[str]]):
    """Detail view for one image; dismisses with the chosen action."""

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("d", "choose('download')", "Download"),
        Binding("x", "choose('delete')", "Delete"),
    ]

    CSS = MODAL_CSS.format(name="ImageDetailModal", width=80, border="$primary") + """
    ImageDetailModal .detail-body {
        margin: 1 0;
    }

    ImageDetailModal .detail-url {
        color: $text-muted;
        margin-bottom: 1;
    }
    """

    def __init__(self, image: ImageRecord):
        super().__init__()
        self.image = image

    def compose(self) -> ComposeResult:
        image = self.image
        with Vertical():
            yield Static(f"󰋩  {escape(image.name)}", classes="modal-title")
            yield Static(
                f"[bold]Key[/bold]       {escape(image.key)}\n"
                f"[bold]Modified[/bold]  {image.timestamp_label()}\n"
                f"[bold]Size[/bold]      {image.size_human()} [dim]({image.size:,} bytes)[/dim]",
                classes="detail-body"
            )
            yield Static(
                "[dim]Signed URL (expires one hour after the last refresh):[/dim]",
                classes="detail-url"
            )
            yield Static(image.url, markup=False, classes="detail-url")
            with Horizontal(classes="modal-buttons"):
                yield Button("󰇚  Download", variant="primary", id="download")
                yield Button("󰆴  Delete", variant="error", id="delete")
                yield Button("󰅖  Close", variant="default", id="close")

    def action_close(self) -> None:
        self.dismiss(None)

    def action_choose(self, action: str) -> None:
        self.dismiss(action)

    @on(Button.Pressed, "#download")
    def on_download(self) -> None:
        self.dismiss("download")

    @on(Button.Pressed, "#delete")
    def on_delete(self) -> None:
        self.dismiss("delete")

    @on(Button.Pressed, "#close")
    def on_close(self) -> None:
        self.dismiss(None)


class DeletingScreen(ModalScreen[None]):
    """Full-screen, input-blocking progress shown during a bulk delete."""

    CSS = MODAL_CSS.format(name="DeletingScreen", width=60, border="$error") + """
    DeletingScreen {
        background: $background 80%;
    }

    DeletingScreen ProgressBar {
        margin: 1 0;
        width: 100%;
    }

    DeletingScreen .deleting-status {
        text-align: center;
    }
    """

    def __init__(self, total: int):
        super().__init__()
        self.total = total
        self.progress: Optional[BulkDeleteProgress] = None

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static("󰆴  Deleting images", classes="modal-title")
            yield ProgressBar(total=self.total, show_eta=False, id="delete-progress")
            yield Static("[dim]Please wait, do not close the application.[/dim]", id="deleting-status",
                         classes="deleting-status")

    def on_mount(self) -> None:
        self._refresh_progress()

    def update_progress(self, progress: BulkDeleteProgress) -> None:
        self.progress = progress
        if self.is_mounted:
            self._refresh_progress()

    def _refresh_progress(self) -> None:
        if self.progress is None:
            return
        bar = self.query_one("#delete-progress", ProgressBar)
        bar.update(total=self.progress.total_files, progress=self.progress.deleted_files + self.progress.failed_files)
        self.query_one("#deleting-status", Static).update(
            f"[cyan]{self.progress.deleted_files:,}[/cyan] of {self.progress.total_files:,} deleted"
        )
