"""
Synchronizer Module
Owns the authoritative image collection and keeps it in step with the bucket.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from .categories import display_name, is_image_key
from .models import DashboardSnapshot, ImageRecord, MutationError, Stats, SyncError, SyncState
from .projector import compute_stats
from .storage import DEFAULT_URL_TTL
from .storage_models import StorageError, StoredObject


logger = logging.getLogger(__name__)

SYNC_ERROR_MESSAGE = "Failed to load images from the bucket. Check the storage configuration."
SIGN_BATCH_SIZE = 16

Listener = Callable[[DashboardSnapshot], None]


class Synchronizer:
    """
    Runs list -> filter -> sign -> sort -> aggregate cycles against a gateway.

    State machine:
    - IDLE -> SYNCING -> IDLE on success, ERROR on failure
    - ERROR -> SYNCING on retry
    - IDLE -> BULK_DELETING -> IDLE, entered only by the bulk delete handler

    Cycles are serialized: a sync requested while SYNCING or BULK_DELETING
    is skipped. Every change is published to subscribers as a snapshot.
    """

    def __init__(
        self,
        gateway,
        url_ttl: int = DEFAULT_URL_TTL,
        sign_batch_size: int = SIGN_BATCH_SIZE,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Args:
            gateway: Storage gateway (see core.storage.S3Gateway).
            url_ttl: Validity of signed URLs in seconds.
            sign_batch_size: Maximum concurrent signing calls.
            clock: Returns the current aware datetime; injectable for tests.
        """
        self.gateway = gateway
        self.url_ttl = url_ttl
        self.sign_batch_size = max(1, sign_batch_size)
        self._clock = clock or (lambda: datetime.now().astimezone())

        self._images: list[ImageRecord] = []
        self._stats = Stats()
        self._state = SyncState.IDLE
        self._error: Optional[str] = None
        self._selected_id: Optional[str] = None
        self._last_synced: Optional[datetime] = None
        self._listeners: list[Listener] = []
        self._sync_done = asyncio.Event()
        self._sync_done.set()

    # ── Read accessors ───────────────────────────────────────────

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def images(self) -> tuple[ImageRecord, ...]:
        return tuple(self._images)

    @property
    def stats(self) -> Stats:
        return self._stats

    @property
    def error(self) -> Optional[str]:
        return self._error

    def now(self) -> datetime:
        return self._clock()

    def snapshot(self) -> DashboardSnapshot:
        return DashboardSnapshot(
            images=tuple(self._images),
            stats=self._stats,
            state=self._state,
            error=self._error,
            selected_id=self._selected_id,
            last_synced=self._last_synced,
        )

    # ── Subscription ─────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with a snapshot after every change.

        Returns:
            Function removing the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener %r failed", listener)

    def _set_state(self, state: SyncState) -> None:
        logger.debug("State %s -> %s", self._state.value, state.value)
        self._state = state
        if state == SyncState.SYNCING:
            self._sync_done.clear()
        else:
            self._sync_done.set()
        self._publish()

    # ── Sync cycle ───────────────────────────────────────────────

    @property
    def can_sync(self) -> bool:
        return self._state not in (SyncState.SYNCING, SyncState.BULK_DELETING)

    async def sync(self, trigger: str = "manual") -> bool:
        """
        Run one full sync cycle and publish the result.

        On failure the previous collection is kept and the synchronizer
        enters the ERROR state until a later cycle succeeds.

        Args:
            trigger: Label for logging ("start", "timer", "manual", ...).

        Returns:
            True if the collection was replaced, False if the cycle failed
            or was skipped.
        """
        if not self.can_sync:
            logger.debug("Skipping %s sync while %s", trigger, self._state.value)
            return False

        previous = self._state
        self._set_state(SyncState.SYNCING)

        try:
            images = await self._load()
        except asyncio.CancelledError:
            self._set_state(previous)
            raise
        except Exception:
            logger.exception("Sync (%s) failed", trigger)
            self._error = SYNC_ERROR_MESSAGE
            self._set_state(SyncState.ERROR)
            return False

        self._images = images
        self._stats = compute_stats(images, self.now())
        self._error = None
        self._last_synced = self.now()
        if self._selected_id is not None and not any(img.id == self._selected_id for img in images):
            self._selected_id = None

        logger.info("Sync (%s) loaded %d images", trigger, len(images))
        self._set_state(SyncState.IDLE)
        return True

    async def _load(self) -> list[ImageRecord]:
        """
        Build the full, sorted collection from one listing snapshot.

        Raises:
            SyncError: If listing or any signing call fails.
        """
        try:
            objects = await self.gateway.list_all()
        except StorageError as e:
            raise SyncError(str(e)) from e

        if not objects:
            return []

        jpegs = [obj for obj in objects if is_image_key(obj.key)]

        try:
            urls = await self._sign_all(jpegs)
        except StorageError as e:
            raise SyncError(str(e)) from e

        images = [
            ImageRecord(
                id=obj.key,
                key=obj.key,
                url=url,
                name=display_name(obj.key),
                timestamp=obj.last_modified,
                size=obj.size,
            )
            for obj, url in zip(jpegs, urls)
        ]
        images.sort(key=lambda img: img.timestamp, reverse=True)
        return images

    async def _sign_all(self, objects: list[StoredObject]) -> list[str]:
        """Sign URLs concurrently, at most sign_batch_size at a time."""
        urls: list[str] = []
        for start in range(0, len(objects), self.sign_batch_size):
            batch = objects[start:start + self.sign_batch_size]
            urls.extend(await asyncio.gather(*(self.gateway.sign(obj.key, self.url_ttl) for obj in batch)))
        return urls

    # ── Local patches ────────────────────────────────────────────

    def select(self, image_id: Optional[str]) -> None:
        """Set the record shown in the detail view."""
        if image_id is not None and not any(img.id == image_id for img in self._images):
            image_id = None
        self._selected_id = image_id
        self._publish()

    def remove_image(self, image_id: str) -> bool:
        """
        Drop a record after a confirmed remote delete and recompute stats.

        Returns:
            True if the record was present.
        """
        remaining = [img for img in self._images if img.id != image_id]
        if len(remaining) == len(self._images):
            return False

        self._images = remaining
        self._stats = compute_stats(remaining, self.now())
        if self._selected_id == image_id:
            self._selected_id = None
        self._publish()
        return True

    async def wait_for_sync(self) -> None:
        """Return once no sync cycle is in flight."""
        await self._sync_done.wait()

    def begin_bulk_delete(self) -> None:
        """
        Enter BULK_DELETING.

        Raises:
            MutationError: If the synchronizer is not idle.
        """
        if self._state != SyncState.IDLE:
            raise MutationError(f"Cannot start bulk delete while {self._state.value}")
        self._set_state(SyncState.BULK_DELETING)

    def end_bulk_delete(self) -> None:
        if self._state == SyncState.BULK_DELETING:
            self._set_state(SyncState.IDLE)
