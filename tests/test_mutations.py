# tests/test_mutations.py
"""
Tests for delete, bulk delete and download.
"""
import asyncio
from datetime import timedelta

import pytest

from conftest import FakeGateway, make_object, settle
from core.models import MutationError, Stats, SyncState
from core.mutations import DeleteStatus, MutationManager, unique_path
from core.synchronizer import Synchronizer


async def _loaded(gateway, clock):
    sync = Synchronizer(gateway, clock=clock)
    await sync.sync()
    return sync, MutationManager(sync)


async def _yes(message):
    return True


async def _no(message):
    return False


# ---------------------------------------------------------------------------
# Single delete
# ---------------------------------------------------------------------------

class TestDelete:

    @pytest.mark.asyncio
    async def test_removes_record_without_resync(self, gateway, clock):
        sync, mutations = await _loaded(gateway, clock)
        image = sync.images[0]
        listed = len(gateway.page_calls)

        assert await mutations.delete_image(image, confirm=_yes) is True

        assert gateway.deleted == [image.key]
        assert image.key not in {img.key for img in sync.images}
        assert sync.stats == Stats(last_hour=0, today=1, total=2)
        assert len(gateway.page_calls) == listed

    @pytest.mark.asyncio
    async def test_declined_confirmation(self, gateway, clock):
        sync, mutations = await _loaded(gateway, clock)

        assert await mutations.delete_image(sync.images[0], confirm=_no) is False
        assert gateway.deleted == []
        assert sync.stats.total == 3

    @pytest.mark.asyncio
    async def test_failure_is_transient(self, gateway, clock):
        sync, mutations = await _loaded(gateway, clock)
        image = sync.images[0]
        gateway.fail_delete.add(image.key)

        with pytest.raises(MutationError):
            await mutations.delete_image(image)

        assert sync.state == SyncState.IDLE
        assert sync.error is None
        assert image in sync.images

    @pytest.mark.asyncio
    async def test_rejected_during_bulk_delete(self, gateway, clock):
        sync, mutations = await _loaded(gateway, clock)
        sync.begin_bulk_delete()

        with pytest.raises(MutationError):
            await mutations.delete_image(sync.images[0])
        assert gateway.deleted == []


# ---------------------------------------------------------------------------
# Bulk delete
# ---------------------------------------------------------------------------

def _twelve():
    return FakeGateway([make_object(f"shots/{i:02d}.jpg", timedelta(minutes=i)) for i in range(12)])


class TestBulkDelete:

    @pytest.mark.asyncio
    async def test_batches_of_five(self, clock):
        gw = _twelve()
        sync, mutations = await _loaded(gw, clock)
        listed = len(gw.page_calls)
        updates = []

        result = await mutations.bulk_delete(
            list(sync.images),
            confirm=_yes,
            progress_callback=lambda p: updates.append(p.deleted_files)
        )

        assert result.status == DeleteStatus.COMPLETED
        assert result.batch_sizes == [5, 5, 2]
        assert result.deleted_files == 12
        assert gw.max_deleting == 5
        assert updates == [0, 5, 10, 12]

        # forced sync afterwards
        assert len(gw.page_calls) == listed + 1
        assert sync.images == ()
        assert sync.state == SyncState.IDLE

    @pytest.mark.asyncio
    async def test_halts_on_failed_batch(self, clock):
        gw = _twelve()
        sync, mutations = await _loaded(gw, clock)
        images = list(sync.images)
        gw.fail_delete.add(images[7].key)

        result = await mutations.bulk_delete(images, confirm=_yes)

        assert result.status == DeleteStatus.HALTED
        assert result.batch_sizes == [5, 5]
        assert result.deleted_files == 9
        assert result.failed_files == 1
        assert result.pending_files == 2
        assert images[7].key in result.error_message

        # collection reflects the bucket after the forced sync
        assert sync.stats.total == 3
        assert sync.state == SyncState.IDLE

    @pytest.mark.asyncio
    async def test_cancelled(self, gateway, clock):
        sync, mutations = await _loaded(gateway, clock)
        result = await mutations.bulk_delete(list(sync.images), confirm=_no)

        assert result.status == DeleteStatus.CANCELLED
        assert gateway.deleted == []
        assert sync.state == SyncState.IDLE

    @pytest.mark.asyncio
    async def test_nothing_to_delete(self, gateway, clock):
        sync, mutations = await _loaded(gateway, clock)
        listed = len(gateway.page_calls)

        result = await mutations.bulk_delete([], confirm=_yes)

        assert result.status == DeleteStatus.COMPLETED
        assert result.total_files == 0
        assert len(gateway.page_calls) == listed

    @pytest.mark.asyncio
    async def test_waits_for_sync_started_during_confirmation(self, gateway, clock):
        sync, mutations = await _loaded(gateway, clock)
        gateway.list_gate = asyncio.Event()
        timer_sync = None

        async def confirm_while_timer_fires(message):
            nonlocal timer_sync
            timer_sync = asyncio.create_task(sync.sync("timer"))
            await settle()
            assert sync.state == SyncState.SYNCING
            return True

        bulk = asyncio.create_task(mutations.bulk_delete(list(sync.images), confirm=confirm_while_timer_fires))
        await settle(40)
        assert not bulk.done()
        assert gateway.deleted == []

        gateway.list_gate.set()
        result = await bulk
        assert await timer_sync is True

        assert result.status == DeleteStatus.COMPLETED
        assert len(gateway.deleted) == 3
        assert sync.state == SyncState.IDLE

    @pytest.mark.asyncio
    async def test_requires_idle(self, gateway, clock):
        sync, mutations = await _loaded(gateway, clock)
        sync.begin_bulk_delete()

        with pytest.raises(MutationError):
            await mutations.bulk_delete(list(sync.images))
        assert gateway.deleted == []


# ---------------------------------------------------------------------------
# Download
# ---------------------------------------------------------------------------

class TestDownload:

    @pytest.mark.asyncio
    async def test_writes_without_overwriting(self, gateway, clock, tmp_path):
        sync, mutations = await _loaded(gateway, clock)
        image = sync.images[0]

        first = await mutations.download_image(image, str(tmp_path / "out"))
        second = await mutations.download_image(image, str(tmp_path / "out"))

        assert first.name == "0001.jpg"
        assert second.name == "0001 (1).jpg"
        assert first.read_bytes() == second.read_bytes() == b"\xff\xd8\xff\xe0fake-jpeg"
        assert gateway.fetched == [image.url, image.url]

    @pytest.mark.asyncio
    async def test_fetch_failure(self, gateway, clock, tmp_path):
        sync, mutations = await _loaded(gateway, clock)
        gateway.fail_fetch = True

        with pytest.raises(MutationError):
            await mutations.download_image(sync.images[0], str(tmp_path))

        assert list(tmp_path.iterdir()) == []
        assert sync.state == SyncState.IDLE


def test_unique_path(tmp_path):
    target = tmp_path / "photo.jpg"
    assert unique_path(target) == target

    target.write_bytes(b"x")
    (tmp_path / "photo (1).jpg").write_bytes(b"x")
    assert unique_path(target) == tmp_path / "photo (2).jpg"
