"""
TUI Application Module
Textual dashboard for the JPEG images stored in an S3 bucket.
LazyVim-inspired design with a gallery table, stat tiles and action panel.
"""

import logging
from typing import Optional

from rich.markup import escape
from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Footer, Static, Button, DataTable, LoadingIndicator, Rule, Select

from core.config import REFRESH_INTERVALS, ConfigManager, load_settings
from core.models import DashboardSnapshot, DateFilter, ImageRecord, MutationError, SortBy, SyncState
from core.mutations import BulkDeleteProgress, DeleteStatus, MutationManager
from core.projector import ViewState
from core.scheduler import RefreshScheduler
from core.storage import S3Gateway
from core.synchronizer import Synchronizer

from .gallery import ImageTable
from .log_panel import LogPanel
from .modals import ConfirmModal, DeletingScreen, ImageDetailModal
from .widgets import ActionButton, GradientHeader, StatTile, StatusPanel


logger = logging.getLogger(__name__)

SORT_OPTIONS = [
    ("󰒼  Newest first", SortBy.NEWEST.value),
    ("󰒽  Oldest first", SortBy.OLDEST.value),
    ("󰈍  Name", SortBy.NAME.value),
]

FILTER_OPTIONS = [
    ("󰃭  All time", DateFilter.ALL.value),
    ("󰥔  Last hour", DateFilter.LAST_HOUR.value),
    ("󰃶  Today", DateFilter.TODAY.value),
    ("󰸗  Last 7 days", DateFilter.WEEK.value),
    ("󰸘  Last 30 days", DateFilter.MONTH.value),
]


def interval_label(seconds: int) -> str:
    if seconds == 0:
        return "Off"
    if seconds >= 60:
        return f"Every {seconds // 60} min"
    return f"Every {seconds}s"


class BucketWatchTUI(App):
    """BucketWatch TUI Application - LazyVim-inspired design."""

    TITLE = "BucketWatch"

    CSS = """
    Screen {
        background: $surface;
    }

    /* ── Header ───────────────────────────────────────────────── */
    #app-header {
        height: 3;
        background: $primary-background;
        border-bottom: solid $primary;
        padding: 0 2;
    }

    #header-title {
        height: 100%;
        content-align: center middle;
    }

    /* ── Main Layout ──────────────────────────────────────────── */
    #main-container {
        height: 1fr;
        padding: 1;
    }

    #left-panel {
        width: 1fr;
        height: 100%;
        margin-right: 1;
    }

    #right-panel {
        width: 40;
        height: 100%;
    }

    /* ── Stat Tiles ───────────────────────────────────────────── */
    #stat-tiles {
        height: 5;
        margin-bottom: 1;
    }

    StatTile {
        width: 1fr;
        height: 100%;
        background: $panel;
        border: round $primary-darken-2;
        padding: 0 1;
        margin-right: 1;
        content-align: center middle;
        text-align: center;
    }

    StatTile:hover {
        border: round $secondary;
        background: $primary-background;
    }

    StatTile.-active {
        border: round $primary;
    }

    /* ── View Controls ────────────────────────────────────────── */
    #view-controls {
        height: 3;
        margin-bottom: 1;
    }

    #view-controls Select {
        width: 1fr;
        margin-right: 1;
    }

    /* ── Gallery ──────────────────────────────────────────────── */
    #image-table {
        height: 1fr;
        border: round $primary;
        background: $panel;
        scrollbar-gutter: stable;
    }

    #image-table:focus {
        border: round $secondary;
    }

    #empty-message {
        height: 3;
        content-align: center middle;
        color: $text-muted;
        display: none;
    }

    #loading-view, #error-view {
        height: 1fr;
        align: center middle;
        display: none;
    }

    #loading-view LoadingIndicator {
        height: 3;
    }

    #loading-view Static, #error-view Static {
        width: 100%;
        text-align: center;
        margin-bottom: 1;
    }

    #error-view {
        border: round $error;
        background: $panel;
    }

    #error-title {
        text-style: bold;
        color: $error;
    }

    #btn-retry {
        width: 20;
    }

    #log-panel {
        height: 8;
        border: round $primary-darken-2;
        background: $panel;
        padding: 0 1;
        margin-top: 1;
    }

    /* ── Status Cards ─────────────────────────────────────────── */
    .card {
        background: $panel;
        border: round $primary-darken-2;
        padding: 1;
        margin-bottom: 1;
        height: auto;
    }

    .card-title {
        text-style: bold;
        color: $primary;
        margin-bottom: 1;
    }

    /* ── Action Buttons ───────────────────────────────────────── */
    #action-buttons {
        height: auto;
        align: center middle;
        padding: 1;
    }

    #action-buttons Button {
        margin: 0 0 1 0;
        width: 100%;
    }

    /* ── Footer ───────────────────────────────────────────────── */
    Footer {
        background: $primary-background;
    }
    """

    BINDINGS = [
        Binding("r", "refresh", "Refresh"),
        Binding("i", "cycle_interval", "Interval"),
        Binding("o", "cycle_sort", "Sort"),
        Binding("f", "cycle_filter", "Filter"),
        Binding("1", "stat('lastHour')", "Last hour", show=False),
        Binding("2", "stat('today')", "Today", show=False),
        Binding("3", "stat('all')", "Total", show=False),
        Binding("enter", "open_detail", "Details", show=False),
        Binding("d", "download", "Download"),
        Binding("x", "delete", "Delete"),
        Binding("X", "delete_all", "Delete All"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        gateway: Optional[S3Gateway] = None,
        synchronizer: Optional[Synchronizer] = None
    ):
        """
        Args:
            config_manager: Preferences; loaded from the default path if omitted.
            gateway: Storage gateway; built from the environment if omitted.
            synchronizer: Pre-built synchronizer, takes precedence over `gateway`.
        """
        super().__init__()
        self.config_manager = config_manager or ConfigManager()

        if synchronizer is None:
            if gateway is None:
                gateway = S3Gateway.from_settings(load_settings())
            synchronizer = Synchronizer(
                gateway,
                url_ttl=self.config_manager.get("url_ttl", 3600),
                sign_batch_size=self.config_manager.get("sign_batch_size", 16),
            )

        self.synchronizer = synchronizer
        self.gateway = synchronizer.gateway
        self.mutations = MutationManager(synchronizer)
        self.view_state = ViewState()
        self.refresh_scheduler = RefreshScheduler(synchronizer.sync, interval=self.config_manager.refresh_interval)
        self.dashboard: DashboardSnapshot = synchronizer.snapshot()
        self.displayed: list[ImageRecord] = []
        self._unsubscribe = None

    def compose(self) -> ComposeResult:
        with Container(id="app-header"):
            yield GradientHeader()

        with Horizontal(id="main-container"):
            with Vertical(id="left-panel"):
                with Horizontal(id="stat-tiles"):
                    yield StatTile("Last hour", "󰥔", DateFilter.LAST_HOUR, id="tile-last-hour")
                    yield StatTile("Today", "󰃶", DateFilter.TODAY, id="tile-today")
                    yield StatTile("Total", "󰋩", DateFilter.ALL, id="tile-total")

                with Horizontal(id="view-controls"):
                    yield Select(SORT_OPTIONS, value=SortBy.NEWEST.value, allow_blank=False, id="sort-select")
                    yield Select(FILTER_OPTIONS, value=DateFilter.ALL.value, allow_blank=False, id="filter-select")

                yield ImageTable(id="image-table")
                yield Static("󰋩  No images found", id="empty-message")

                with Vertical(id="loading-view"):
                    yield LoadingIndicator()
                    yield Static("Loading images from bucket...")

                with Vertical(id="error-view"):
                    yield Static("󰜺  Storage unavailable", id="error-title")
                    yield Static("", id="error-message")
                    yield Button("󰑓  Retry", variant="primary", id="btn-retry")

                yield LogPanel(id="log-panel")

            with Vertical(id="right-panel"):
                with Container(classes="card", id="status-panel"):
                    yield Static("󰋜  Status", classes="card-title")
                    yield StatusPanel(id="status-content")

                with Container(classes="card", id="interval-panel"):
                    yield Static("󰑓  Auto-refresh", classes="card-title")
                    yield Select(
                        [(interval_label(i), i) for i in REFRESH_INTERVALS],
                        value=self.refresh_scheduler.interval,
                        allow_blank=False,
                        id="interval-select"
                    )

                with Vertical(id="action-buttons"):
                    yield ActionButton("Refresh", "󰑓", id="btn-refresh", variant="primary")
                    yield ActionButton("Details", "󰋩", id="btn-details")
                    yield ActionButton("Download", "󰇚", id="btn-download")
                    yield ActionButton("Delete", "󰆴", id="btn-delete", variant="warning")
                    yield Rule()
                    yield ActionButton("Delete All", "󰩹", id="btn-delete-all", variant="error")

        yield Footer()

    def on_mount(self) -> None:
        """Subscribe to the synchronizer and start auto-refresh."""
        self.query_one("#status-content", StatusPanel).bucket = f"[cyan]{getattr(self.gateway, 'bucket', '-')}[/cyan]"
        self._unsubscribe = self.synchronizer.subscribe(self.handle_snapshot)
        self._update_dashboard()
        self.refresh_scheduler.start()
        self._log(f"[cyan]󰑓[/cyan] Auto-refresh {interval_label(self.refresh_scheduler.interval).lower()}")

    async def on_unmount(self) -> None:
        self.refresh_scheduler.stop()
        if self._unsubscribe is not None:
            self._unsubscribe()
        await self.gateway.aclose()

    # ── Snapshot rendering ───────────────────────────────────────

    def handle_snapshot(self, snapshot: DashboardSnapshot) -> None:
        previous = self.dashboard
        self.dashboard = snapshot

        if previous.state == SyncState.SYNCING and snapshot.state == SyncState.IDLE:
            self._log(f"[green]󰄬[/green] Refreshed: {snapshot.stats.total:,} images")
        elif previous.state != SyncState.ERROR and snapshot.state == SyncState.ERROR:
            self._log(f"[red]󰜺[/red] {snapshot.error}", logging.ERROR)

        self._update_dashboard()

    def _update_dashboard(self) -> None:
        snapshot = self.dashboard
        failed = snapshot.state == SyncState.ERROR
        loading = snapshot.loading

        self.displayed = self.view_state.apply(snapshot.images, self.synchronizer.now())

        table = self.query_one("#image-table", ImageTable)
        table.populate(self.displayed)
        table.display = not failed and not loading
        self.query_one("#empty-message").display = not failed and not loading and not self.displayed
        self.query_one("#loading-view").display = loading and not failed
        self.query_one("#error-view").display = failed
        if failed:
            self.query_one("#error-message", Static).update(snapshot.error or "")

        self.query_one("#tile-last-hour", StatTile).count = snapshot.stats.last_hour
        self.query_one("#tile-today", StatTile).count = snapshot.stats.today
        self.query_one("#tile-total", StatTile).count = snapshot.stats.total
        for tile in self.query(StatTile):
            tile.set_class(tile.filter_date == self.view_state.filter_date, "-active")

        status = self.query_one("#status-content", StatusPanel)
        status.sync_status = self._status_label(snapshot.state)
        if snapshot.last_synced is not None:
            status.last_refresh = snapshot.last_synced.strftime("%H:%M:%S")
        status.showing = f"{len(self.displayed):,} of {snapshot.stats.total:,}"

        idle = snapshot.state == SyncState.IDLE
        has_rows = bool(self.displayed)
        self.query_one("#btn-refresh", Button).disabled = not self.synchronizer.can_sync
        self.query_one("#btn-details", Button).disabled = not has_rows
        self.query_one("#btn-download", Button).disabled = not has_rows
        self.query_one("#btn-delete", Button).disabled = not has_rows or snapshot.state == SyncState.BULK_DELETING
        self.query_one("#btn-delete-all", Button).disabled = not has_rows or not idle

    @staticmethod
    def _status_label(state: SyncState) -> str:
        if state == SyncState.SYNCING:
            return "[yellow]󰑓 Refreshing...[/yellow]"
        if state == SyncState.BULK_DELETING:
            return "[red]󰆴 Deleting...[/red]"
        if state == SyncState.ERROR:
            return "[red]󰜺 Error[/red]"
        return "[green]󰄬 Up to date[/green]"

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.query_one("#log-panel", LogPanel).write(message, level)

    # ── Refresh ──────────────────────────────────────────────────

    def action_refresh(self) -> None:
        """Run a manual sync unless one is already running."""
        if not self.synchronizer.can_sync:
            self.notify("A refresh is already in progress", severity="warning")
            return
        self.run_sync("manual")

    @work(group="sync")
    async def run_sync(self, trigger: str) -> None:
        await self.synchronizer.sync(trigger)

    def action_cycle_interval(self) -> None:
        current = self.refresh_scheduler.interval
        following = REFRESH_INTERVALS[(REFRESH_INTERVALS.index(current) + 1) % len(REFRESH_INTERVALS)]
        self.query_one("#interval-select", Select).value = following

    @on(Select.Changed, "#interval-select")
    def on_interval_changed(self, event: Select.Changed) -> None:
        interval = event.value
        if interval == self.refresh_scheduler.interval:
            return
        self.refresh_scheduler.set_interval(interval)
        self._log(f"[cyan]󰑓[/cyan] Auto-refresh {interval_label(interval).lower()}")
        try:
            self.config_manager.set("refresh_interval", interval)
        except OSError as e:
            logger.warning("Could not save refresh interval: %s", e)

    # ── Sort / filter ────────────────────────────────────────────

    def action_cycle_sort(self) -> None:
        self.view_state.cycle_sort()
        self._sync_view_controls()

    def action_cycle_filter(self) -> None:
        self.view_state.cycle_filter()
        self._sync_view_controls()

    def action_stat(self, filter_value: str) -> None:
        self._select_stat(DateFilter(filter_value))

    def on_stat_tile_selected(self, message: StatTile.Selected) -> None:
        self._select_stat(message.filter_date)

    def _select_stat(self, filter_date: DateFilter) -> None:
        self.view_state.select_stat(filter_date)
        self._sync_view_controls()

    def _sync_view_controls(self) -> None:
        self.query_one("#sort-select", Select).value = self.view_state.sort_by.value
        self.query_one("#filter-select", Select).value = self.view_state.filter_date.value
        self._update_dashboard()

    @on(Select.Changed, "#sort-select")
    def on_sort_changed(self, event: Select.Changed) -> None:
        sort_by = SortBy(event.value)
        if sort_by != self.view_state.sort_by:
            self.view_state.sort_by = sort_by
            self._update_dashboard()

    @on(Select.Changed, "#filter-select")
    def on_filter_changed(self, event: Select.Changed) -> None:
        filter_date = DateFilter(event.value)
        if filter_date != self.view_state.filter_date:
            self.view_state.filter_date = filter_date
            self._update_dashboard()

    # ── Detail view ──────────────────────────────────────────────

    def _current_image(self) -> Optional[ImageRecord]:
        image = self.query_one("#image-table", ImageTable).get_current_image()
        if image is None:
            self.notify("No image selected", severity="warning")
        return image

    def action_open_detail(self) -> None:
        image = self._current_image()
        if image is None:
            return

        self.synchronizer.select(image.id)

        def on_dismiss(action: Optional[str]) -> None:
            self.synchronizer.select(None)
            if action == "download":
                self.run_download(image)
            elif action == "delete":
                self.run_delete(image)

        self.push_screen(ImageDetailModal(image), on_dismiss)

    @on(DataTable.RowSelected, "#image-table")
    def on_row_selected(self) -> None:
        self.action_open_detail()

    # ── Mutations ────────────────────────────────────────────────

    async def _ask(self, title: str, message: str, danger: bool = False) -> bool:
        """Confirmation gate; must be awaited from a worker."""
        return bool(await self.push_screen_wait(ConfirmModal(title, message, danger=danger)))

    def action_download(self) -> None:
        image = self._current_image()
        if image is not None:
            self.run_download(image)

    def action_delete(self) -> None:
        if self.synchronizer.state == SyncState.BULK_DELETING:
            self.notify("A bulk delete is in progress", severity="warning")
            return
        image = self._current_image()
        if image is not None:
            self.run_delete(image)

    def action_delete_all(self) -> None:
        if self.synchronizer.state != SyncState.IDLE:
            self.notify("Wait for the current operation to finish", severity="warning")
            return
        if not self.displayed:
            self.notify("No images to delete", severity="warning")
            return
        self.run_bulk_delete(list(self.displayed))

    @work(group="mutations")
    async def run_download(self, image: ImageRecord) -> None:
        self._log(f"[cyan]󰇚[/cyan] Downloading {escape(image.name)}...")
        try:
            path = await self.mutations.download_image(image, self.config_manager.download_dir)
        except MutationError as e:
            self.notify(str(e), title="Download failed", severity="error")
            self._log(f"[red]󰜺[/red] {escape(str(e))}", logging.WARNING)
            return

        self.notify(f"Saved to {path}", title="Download complete", timeout=3)
        self._log(f"[green]󰄬[/green] Saved {escape(str(path))}")

    @work(group="mutations")
    async def run_delete(self, image: ImageRecord) -> None:
        try:
            deleted = await self.mutations.delete_image(
                image,
                confirm=lambda message: self._ask("Delete image", escape(message))
            )
        except MutationError as e:
            self.notify(str(e), title="Delete failed", severity="error")
            self._log(f"[red]󰜺[/red] {escape(str(e))}", logging.WARNING)
            return

        if deleted:
            self.notify(f"Deleted {image.name}", timeout=3)
            self._log(f"[green]󰆴[/green] Deleted {escape(image.key)}")

    @work(group="mutations")
    async def run_bulk_delete(self, images: list[ImageRecord]) -> None:
        screen: Optional[DeletingScreen] = None

        async def confirm(message: str) -> bool:
            nonlocal screen
            if not await self._ask("Delete all images", f"{escape(message)}\n[bold red]This is irreversible.[/bold red]",
                                   danger=True):
                return False
            screen = DeletingScreen(len(images))
            self.push_screen(screen)
            return True

        def on_progress(progress: BulkDeleteProgress) -> None:
            if screen is not None:
                screen.update_progress(progress)

        try:
            result = await self.mutations.bulk_delete(images, confirm=confirm, progress_callback=on_progress)
        except MutationError as e:
            self.notify(str(e), title="Delete failed", severity="error")
            self._log(f"[red]󰜺[/red] {escape(str(e))}", logging.WARNING)
            return
        finally:
            if screen is not None and self.screen is screen:
                self.pop_screen()

        self._on_bulk_delete_complete(result)

    def _on_bulk_delete_complete(self, result: BulkDeleteProgress) -> None:
        if result.status == DeleteStatus.CANCELLED:
            self._log("[yellow]󰜺[/yellow] Bulk delete cancelled")
            return

        if result.status == DeleteStatus.HALTED:
            self.notify(
                f"Stopped after {result.deleted_files:,} of {result.total_files:,} images",
                title="Delete halted",
                severity="error",
                timeout=8
            )
            self._log("")
            self._log("[bold red]╔═══ Delete Halted ═══╗[/bold red]", logging.WARNING)
            self._log(f"[green]󰄬 Deleted:[/green] {result.deleted_files:,}")
            self._log(f"[red]󰜺 Failed:[/red] {result.failed_files:,}", logging.WARNING)
            self._log(f"[yellow]󰒭 Not attempted:[/yellow] {result.pending_files:,}")
            return

        self.notify(f"Deleted {result.deleted_files:,} images", title="Delete complete", timeout=5)
        self._log(f"[bold green]󰄬 Deleted {result.deleted_files:,} images[/bold green]")

    # ── Buttons ──────────────────────────────────────────────────

    @on(Button.Pressed, "#btn-refresh")
    def on_refresh_button(self) -> None:
        self.action_refresh()

    @on(Button.Pressed, "#btn-retry")
    def on_retry_button(self) -> None:
        self.action_refresh()

    @on(Button.Pressed, "#btn-details")
    def on_details_button(self) -> None:
        self.action_open_detail()

    @on(Button.Pressed, "#btn-download")
    def on_download_button(self) -> None:
        self.action_download()

    @on(Button.Pressed, "#btn-delete")
    def on_delete_button(self) -> None:
        self.action_delete()

    @on(Button.Pressed, "#btn-delete-all")
    def on_delete_all_button(self) -> None:
        self.action_delete_all()
