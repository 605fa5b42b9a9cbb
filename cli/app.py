"""
CLI Application Module
Command-line interface for the bucket image monitor.
"""

import asyncio
import logging
import sys
from typing import Optional

from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.prompt import Confirm
from rich.table import Table

from core.config import ConfigError, ConfigManager, load_settings
from core.models import DashboardSnapshot, DateFilter, ImageRecord, MutationError, SortBy, Stats, SyncState
from core.mutations import BulkDeleteProgress, DeleteStatus, MutationManager
from core.projector import project
from core.scheduler import RefreshScheduler
from core.storage import S3Gateway
from core.synchronizer import Synchronizer


console = Console()
logger = logging.getLogger(__name__)


class Session:
    """Gateway, synchronizer and mutation handlers for one CLI run."""

    def __init__(self, config: ConfigManager, gateway: Optional[S3Gateway] = None):
        if gateway is None:
            gateway = S3Gateway.from_settings(load_settings())
        self.config = config
        self.gateway = gateway
        self.synchronizer = Synchronizer(
            gateway,
            url_ttl=config.get("url_ttl", 3600),
            sign_batch_size=config.get("sign_batch_size", 16),
        )
        self.mutations = MutationManager(self.synchronizer)

    async def load(self) -> bool:
        """Run one sync and report a fatal failure."""
        with console.status("[bold]Loading images from bucket...[/]"):
            ok = await self.synchronizer.sync("cli")
        if not ok:
            console.print(f"[bold red]ERROR:[/] {self.synchronizer.error}", style="red")
        return ok

    def find(self, key: str) -> Optional[ImageRecord]:
        for image in self.synchronizer.images:
            if image.key == key:
                return image
        for image in self.synchronizer.images:
            if image.name == key:
                return image
        return None

    async def close(self) -> None:
        await self.gateway.aclose()


def build_stats_panel(stats: Stats) -> Panel:
    summary = (
        f"[bold cyan]Last hour:[/] {stats.last_hour:,}\n"
        f"[bold cyan]Today:[/] {stats.today:,}\n"
        f"[bold cyan]Total:[/] {stats.total:,}"
    )
    return Panel(summary, title="[bold]Statistics[/]", border_style="cyan")


def build_images_table(images: list[ImageRecord], title: str = "Images") -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=4)
    table.add_column("Name", style="cyan")
    table.add_column("Key", style="dim")
    table.add_column("Modified", justify="right")
    table.add_column("Size", justify="right", style="green")

    for i, image in enumerate(images, 1):
        table.add_row(str(i), escape(image.name), escape(image.key), image.timestamp_label(), image.size_human())

    return table


async def _confirm(message: str) -> bool:
    return Confirm.ask(f"\n[bold]{escape(message)}[/]", default=False)


async def _yes(message: str) -> bool:
    return True


async def cmd_list(session: Session, sort_by: SortBy, filter_date: DateFilter) -> int:
    if not await session.load():
        return 1

    images = project(session.synchronizer.images, sort_by, filter_date, session.synchronizer.now())
    if not images:
        console.print("[yellow]No images found.[/]")
        return 0

    console.print(build_images_table(images, title=f"Images ({filter_date.value}, {sort_by.value})"))
    return 0


async def cmd_stats(session: Session) -> int:
    if not await session.load():
        return 1
    console.print(build_stats_panel(session.synchronizer.stats))
    return 0


async def cmd_download(session: Session, key: str, destination: Optional[str]) -> int:
    if not await session.load():
        return 1

    image = session.find(key)
    if image is None:
        console.print(f"[red]Image not found:[/] {escape(key)}")
        return 1

    destination = destination or session.config.download_dir
    try:
        path = await session.mutations.download_image(image, destination)
    except MutationError as e:
        console.print(f"[bold red]Download failed:[/] {e}")
        return 1

    console.print(f"[green][OK][/] Saved [bold]{escape(image.name)}[/] to {escape(str(path))}")
    return 0


async def cmd_delete(session: Session, key: str, assume_yes: bool) -> int:
    if not await session.load():
        return 1

    image = session.find(key)
    if image is None:
        console.print(f"[red]Image not found:[/] {escape(key)}")
        return 1

    try:
        deleted = await session.mutations.delete_image(image, confirm=_yes if assume_yes else _confirm)
    except MutationError as e:
        console.print(f"[bold red]Delete failed:[/] {e}")
        return 1

    if not deleted:
        console.print("[yellow]Delete cancelled.[/]")
        return 0

    console.print(f"[green][OK][/] Deleted [bold]{escape(image.name)}[/]")
    console.print(build_stats_panel(session.synchronizer.stats))
    return 0


async def cmd_purge(session: Session, filter_date: DateFilter, assume_yes: bool) -> int:
    if not await session.load():
        return 1

    images = project(session.synchronizer.images, SortBy.NEWEST, filter_date, session.synchronizer.now())
    if not images:
        console.print("[yellow]No images to delete.[/]")
        return 0

    console.print(f"[bold red]WARNING:[/] {len(images):,} images will be permanently deleted.")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console
    ) as progress:
        task = progress.add_task("Deleting...", total=len(images), visible=False)

        def on_progress(bp: BulkDeleteProgress):
            progress.update(
                task,
                visible=True,
                completed=bp.deleted_files + bp.failed_files,
                description=f"[cyan]Deleted {bp.deleted_files:,}/{bp.total_files:,}[/]"
            )

        async def confirm(message: str) -> bool:
            if assume_yes:
                return True
            progress.stop()
            answer = await _confirm(message)
            progress.start()
            return answer

        try:
            result = await session.mutations.bulk_delete(images, confirm=confirm, progress_callback=on_progress)
        except MutationError as e:
            console.print(f"[bold red]Delete failed:[/] {e}")
            return 1

    if result.status == DeleteStatus.CANCELLED:
        console.print("[yellow]Delete cancelled.[/]")
        return 0

    if result.status == DeleteStatus.HALTED:
        result_panel = (
            f"[bold green]Deleted:[/] {result.deleted_files:,}\n"
            f"[bold red]Failed:[/] {result.failed_files:,}\n"
            f"[bold yellow]Not attempted:[/] {result.pending_files:,}\n"
            f"[dim]{result.error_message}[/]"
        )
        console.print(Panel(result_panel, title="[bold red]Delete Halted[/]", border_style="red"))
        return 1

    console.print(Panel(
        f"[bold green]Deleted:[/] {result.deleted_files:,} images",
        title="[bold green]Delete Complete[/]",
        border_style="green"
    ))
    return 0


def render_watch(snapshot: DashboardSnapshot, interval: int) -> Group:
    if snapshot.state == SyncState.ERROR:
        status = f"[bold red]{snapshot.error}[/]"
    elif snapshot.state == SyncState.SYNCING:
        status = "[yellow]Refreshing...[/]"
    else:
        synced = snapshot.last_synced.strftime("%H:%M:%S") if snapshot.last_synced else "-"
        status = f"[green]Last refresh {synced}[/] [dim](every {interval}s, Ctrl+C to stop)[/]"

    latest = list(snapshot.images[:10])
    return Group(status, build_stats_panel(snapshot.stats), build_images_table(latest, title="Latest images"))


async def cmd_watch(session: Session, interval: int) -> int:
    synchronizer = session.synchronizer
    scheduler = RefreshScheduler(synchronizer.sync, interval=interval)

    with Live(render_watch(synchronizer.snapshot(), interval), console=console, refresh_per_second=4) as live:
        unsubscribe = synchronizer.subscribe(lambda snap: live.update(render_watch(snap, interval)))
        scheduler.start()
        try:
            await asyncio.Event().wait()
        finally:
            scheduler.stop()
            unsubscribe()
    return 0


async def _dispatch(args, config: ConfigManager) -> int:
    session = Session(config)
    try:
        if args.command == "list":
            return await cmd_list(session, SortBy(args.sort), DateFilter(args.filter))
        if args.command == "stats":
            return await cmd_stats(session)
        if args.command == "download":
            return await cmd_download(session, args.key, args.output)
        if args.command == "delete":
            return await cmd_delete(session, args.key, args.yes)
        if args.command == "purge":
            return await cmd_purge(session, DateFilter(args.filter), args.yes)
        if args.command == "watch":
            return await cmd_watch(session, args.interval)
        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await session.close()


def run_cli(args, config: Optional[ConfigManager] = None) -> None:
    """
    Main CLI entry point.

    Args:
        args: Parsed argparse namespace with a `command` attribute.
        config: Preferences; loaded from the default path if omitted.
    """
    try:
        config = config or ConfigManager()
        exit_code = asyncio.run(_dispatch(args, config))
    except ConfigError as e:
        console.print(f"[bold red]CONFIG ERROR:[/] {e}", style="red")
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)
