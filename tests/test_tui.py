# tests/test_tui.py
"""
Smoke tests for the Textual dashboard using App.run_test().
"""
import pytest

from core.models import DateFilter, SortBy, SyncState
from tui.app import BucketWatchTUI
from tui.gallery import ImageTable
from tui.modals import ConfirmModal, ImageDetailModal
from tui.widgets import StatTile


SIZE = (140, 50)


async def _until(pilot, predicate, attempts: int = 100):
    for _ in range(attempts):
        if predicate():
            return
        await pilot.pause(0.02)
    raise AssertionError("condition not reached")


def _synced(app):
    return lambda: app.dashboard.state == SyncState.IDLE and app.dashboard.last_synced is not None


@pytest.mark.asyncio
async def test_initial_sync_fills_gallery(config_manager, gateway):
    app = BucketWatchTUI(config_manager=config_manager, gateway=gateway)
    async with app.run_test(size=SIZE) as pilot:
        await _until(pilot, _synced(app))

        assert app.query_one("#image-table", ImageTable).row_count == 3
        assert app.query_one("#tile-total", StatTile).count == 3
        assert app.refresh_scheduler.running

    assert gateway.closed


@pytest.mark.asyncio
async def test_error_view_and_retry(config_manager, gateway):
    gateway.fail_list = True
    app = BucketWatchTUI(config_manager=config_manager, gateway=gateway)
    async with app.run_test(size=SIZE) as pilot:
        await _until(pilot, lambda: app.dashboard.state == SyncState.ERROR)
        assert app.query_one("#error-view").display is True

        gateway.fail_list = False
        await pilot.click("#btn-retry")
        await _until(pilot, _synced(app))
        assert app.query_one("#error-view").display is False


@pytest.mark.asyncio
async def test_sort_and_stat_keys(config_manager, gateway):
    app = BucketWatchTUI(config_manager=config_manager, gateway=gateway)
    async with app.run_test(size=SIZE) as pilot:
        await _until(pilot, _synced(app))

        app.action_cycle_sort()
        await pilot.pause()
        assert app.view_state.sort_by == SortBy.OLDEST
        assert app.query_one("#sort-select").value == SortBy.OLDEST.value

        app.action_stat("lastHour")
        await pilot.pause()
        assert app.view_state.filter_date == DateFilter.LAST_HOUR
        assert app.view_state.sort_by == SortBy.NEWEST
        assert app.query_one("#filter-select").value == DateFilter.LAST_HOUR.value


@pytest.mark.asyncio
async def test_interval_change_is_persisted(config_manager, gateway):
    app = BucketWatchTUI(config_manager=config_manager, gateway=gateway)
    async with app.run_test(size=SIZE) as pilot:
        await _until(pilot, _synced(app))

        app.action_cycle_interval()
        await _until(pilot, lambda: app.refresh_scheduler.interval == 60)

    assert config_manager.get("refresh_interval") == 60


@pytest.mark.asyncio
async def test_detail_view(config_manager, gateway):
    app = BucketWatchTUI(config_manager=config_manager, gateway=gateway)
    async with app.run_test(size=SIZE) as pilot:
        await _until(pilot, _synced(app))

        app.action_open_detail()
        await pilot.pause()
        assert isinstance(app.screen, ImageDetailModal)
        assert app.synchronizer.snapshot().selected_id == "cam/0001.jpg"

        await pilot.press("escape")
        await pilot.pause()
        assert not isinstance(app.screen, ImageDetailModal)
        assert app.synchronizer.snapshot().selected_id is None


@pytest.mark.asyncio
async def test_delete_with_confirmation(config_manager, gateway):
    app = BucketWatchTUI(config_manager=config_manager, gateway=gateway)
    async with app.run_test(size=SIZE) as pilot:
        await _until(pilot, _synced(app))

        app.action_delete()
        await _until(pilot, lambda: isinstance(app.screen, ConfirmModal))
        await pilot.click("#confirm")
        await _until(pilot, lambda: gateway.deleted == ["cam/0001.jpg"])

        assert app.query_one("#image-table", ImageTable).row_count == 2
        assert app.query_one("#tile-total", StatTile).count == 2


@pytest.mark.asyncio
async def test_delete_all(config_manager, gateway):
    app = BucketWatchTUI(config_manager=config_manager, gateway=gateway)
    async with app.run_test(size=SIZE) as pilot:
        await _until(pilot, _synced(app))

        app.action_delete_all()
        await _until(pilot, lambda: isinstance(app.screen, ConfirmModal))
        await pilot.click("#confirm")
        await _until(pilot, lambda: len(gateway.deleted) == 3 and app.dashboard.stats.total == 0)

        assert app.query_one("#tile-total", StatTile).count == 0
        assert app.query_one("#empty-message").display is True
