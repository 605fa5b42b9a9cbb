"""
TUI Gallery Module
Table widget listing the displayed images.
"""

from typing import Optional

from rich.markup import escape
from textual.widgets import DataTable
from textual.widgets.data_table import CellDoesNotExist

from core.models import ImageRecord


class ImageTable(DataTable):
    """Row-per-image table; row keys are object keys."""

    COLUMNS = ("Name", "Modified", "Size", "Key")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.image_data: dict[str, ImageRecord] = {}
        self.cursor_type = "row"
        self.zebra_stripes = True

    def on_mount(self) -> None:
        self._ensure_columns()

    def _ensure_columns(self) -> None:
        if not self.columns:
            self.add_columns(*self.COLUMNS)

    def populate(self, images: list[ImageRecord]) -> None:
        """Replace the rows, keeping the cursor on the same image when possible."""
        self._ensure_columns()
        current = self.get_current_image()
        self.clear()
        self.image_data = {image.id: image for image in images}

        for image in images:
            self.add_row(
                f"[bold]{escape(image.name)}[/bold]",
                image.timestamp_label(),
                f"[green]{image.size_human()}[/green]",
                f"[dim]{escape(image.key)}[/dim]",
                key=image.id
            )

        if current is not None and current.id in self.image_data:
            self.move_cursor(row=self.get_row_index(current.id))

    def get_current_image(self) -> Optional[ImageRecord]:
        """Image under the cursor, if any."""
        if self.row_count == 0:
            return None
        try:
            row_key, _ = self.coordinate_to_cell_key(self.cursor_coordinate)
        except CellDoesNotExist:
            return None
        return self.image_data.get(row_key.value)
