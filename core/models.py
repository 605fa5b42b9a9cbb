"""
Data Models Module
Core dataclasses and enums used throughout the application.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .utils import format_size, format_timestamp


class SortBy(Enum):
    """Ordering applied to the displayed gallery."""
    NEWEST = "newest"
    OLDEST = "oldest"
    NAME = "name"


class DateFilter(Enum):
    """Time window applied to the displayed gallery."""
    ALL = "all"
    LAST_HOUR = "lastHour"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class SyncState(Enum):
    """State of the synchronizer."""
    IDLE = "idle"
    SYNCING = "syncing"
    BULK_DELETING = "bulk_deleting"
    ERROR = "error"


@dataclass(frozen=True)
class ImageRecord:
    """One JPEG object in the bucket, rebuilt on every sync."""
    id: str
    key: str
    url: str
    name: str
    timestamp: datetime
    size: int

    def size_human(self) -> str:
        """Return human-readable size."""
        return format_size(self.size)

    def timestamp_label(self) -> str:
        return format_timestamp(self.timestamp)


@dataclass(frozen=True)
class Stats:
    """Time-bucketed counts over the current collection."""
    last_hour: int = 0
    today: int = 0
    total: int = 0


@dataclass(frozen=True)
class DashboardSnapshot:
    """Read-only view of the synchronizer published to subscribers."""
    images: tuple[ImageRecord, ...]
    stats: Stats
    state: SyncState
    error: Optional[str] = None
    selected_id: Optional[str] = None
    last_synced: Optional[datetime] = None

    @property
    def loading(self) -> bool:
        return self.state == SyncState.SYNCING and not self.images and self.last_synced is None

    @property
    def selected(self) -> Optional[ImageRecord]:
        if self.selected_id is None:
            return None
        for image in self.images:
            if image.id == self.selected_id:
                return image
        return None


class SyncError(Exception):
    """Fatal failure of a sync cycle (listing or signing)."""
    pass


class MutationError(Exception):
    """Transient failure of a delete, bulk delete or download."""
    pass
