"""
Mutation Handlers Module
Delete, bulk delete and download operations, reconciled with the synchronizer.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional

from .categories import is_image_key
from .models import ImageRecord, MutationError, SyncState
from .storage_models import StorageError
from .synchronizer import Synchronizer


logger = logging.getLogger(__name__)

BULK_DELETE_BATCH_SIZE = 5

Confirm = Callable[[str], Awaitable[bool]]


class DeleteStatus(Enum):
    """Status of a bulk delete operation."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    HALTED = "halted"


@dataclass
class BulkDeleteProgress:
    """Progress information for a bulk delete."""
    total_files: int
    deleted_files: int = 0
    failed_files: int = 0
    status: DeleteStatus = DeleteStatus.PENDING
    batch_sizes: list[int] = field(default_factory=list)
    error_message: Optional[str] = None

    @property
    def pending_files(self) -> int:
        return self.total_files - self.deleted_files - self.failed_files


def unique_path(path: Path) -> Path:
    """Return `path`, or `name (n).ext` if it already exists."""
    if not path.exists():
        return path
    stem, suffix = path.stem, path.suffix
    n = 1
    while True:
        candidate = path.with_name(f"{stem} ({n}){suffix}")
        if not candidate.exists():
            return candidate
        n += 1


class MutationManager:
    """
    Applies user mutations to the bucket and patches local state.

    Failures here are transient: they raise MutationError and never put the
    synchronizer into its ERROR state.
    """

    def __init__(self, synchronizer: Synchronizer, batch_size: int = BULK_DELETE_BATCH_SIZE):
        self.synchronizer = synchronizer
        self.gateway = synchronizer.gateway
        self.batch_size = batch_size

    async def delete_image(self, image: ImageRecord, confirm: Optional[Confirm] = None) -> bool:
        """
        Delete one image after confirmation.

        Args:
            image: Record to delete.
            confirm: Optional yes/no gate awaited before anything is sent.

        Returns:
            True if deleted, False if the user declined.

        Raises:
            MutationError: If a bulk delete is running or the request fails.
        """
        if self.synchronizer.state == SyncState.BULK_DELETING:
            raise MutationError("A bulk delete is in progress")

        if confirm is not None and not await confirm(f"Delete {image.name}?"):
            return False

        try:
            await self.gateway.delete_one(image.key)
        except StorageError as e:
            logger.warning("Delete of %s failed: %s", image.key, e)
            raise MutationError(f"Could not delete {image.name}") from e

        logger.info("Deleted %s", image.key)
        self.synchronizer.remove_image(image.id)
        return True

    async def bulk_delete(
        self,
        images: list[ImageRecord],
        confirm: Optional[Confirm] = None,
        progress_callback: Optional[Callable[[BulkDeleteProgress], None]] = None
    ) -> BulkDeleteProgress:
        """
        Delete every JPEG in `images`, a fixed-size batch at a time.

        Members of a batch are deleted concurrently; batches run one after
        another. A batch with any failure halts the remaining batches. When
        the run ends a full sync is forced, whatever the outcome.

        Args:
            images: Currently displayed records.
            confirm: Optional gate, shown an irreversibility warning.
            progress_callback: Called after every batch.

        Returns:
            Final BulkDeleteProgress.

        Raises:
            MutationError: If the synchronizer is not idle.
        """
        eligible = [image for image in images if is_image_key(image.key)]
        progress = BulkDeleteProgress(total_files=len(eligible))

        if not eligible:
            progress.status = DeleteStatus.COMPLETED
            return progress

        if confirm is not None and not await confirm(
            f"Delete all {len(eligible)} images? This cannot be undone."
        ):
            progress.status = DeleteStatus.CANCELLED
            return progress

        # A timer sync may have started while the gate was open
        await self.synchronizer.wait_for_sync()
        self.synchronizer.begin_bulk_delete()
        progress.status = DeleteStatus.IN_PROGRESS
        if progress_callback:
            progress_callback(progress)

        try:
            for start in range(0, len(eligible), self.batch_size):
                batch = eligible[start:start + self.batch_size]
                results = await asyncio.gather(
                    *(self.gateway.delete_one(image.key) for image in batch),
                    return_exceptions=True
                )
                progress.batch_sizes.append(len(batch))

                for image, result in zip(batch, results):
                    if isinstance(result, StorageError):
                        progress.failed_files += 1
                        progress.error_message = str(result)
                        logger.warning("Bulk delete of %s failed: %s", image.key, result)
                    elif isinstance(result, BaseException):
                        raise result
                    else:
                        progress.deleted_files += 1

                if progress_callback:
                    progress_callback(progress)

                if progress.failed_files:
                    progress.status = DeleteStatus.HALTED
                    break
            else:
                progress.status = DeleteStatus.COMPLETED
        finally:
            self.synchronizer.end_bulk_delete()

        logger.info(
            "Bulk delete %s: %d deleted, %d failed, %d not attempted",
            progress.status.value, progress.deleted_files, progress.failed_files, progress.pending_files
        )
        await self.synchronizer.sync("bulk_delete")
        return progress

    async def download_image(self, image: ImageRecord, destination: str) -> Path:
        """
        Save an image's content into a local directory.

        Raises:
            MutationError: If fetching or writing fails.
        """
        try:
            data = await self.gateway.fetch(image.url)
        except StorageError as e:
            logger.warning("Download of %s failed: %s", image.key, e)
            raise MutationError(f"Could not download {image.name}") from e

        try:
            os.makedirs(destination, exist_ok=True)
            path = unique_path(Path(destination) / image.name)
            await asyncio.to_thread(path.write_bytes, data)
        except OSError as e:
            raise MutationError(f"File system error: {e}") from e

        logger.info("Downloaded %s to %s", image.key, path)
        return path
