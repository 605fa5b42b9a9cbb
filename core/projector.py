"""
View Projector Module
Pure functions deriving the displayed gallery and statistics from the collection.
"""

import locale
import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Iterable, Optional

from .models import DateFilter, ImageRecord, SortBy, Stats


logger = logging.getLogger(__name__)

ONE_HOUR = timedelta(hours=1)

# Extended windows measured back from now
WINDOW_DAYS = {
    DateFilter.WEEK: 7,
    DateFilter.MONTH: 30,
}


def use_system_collation() -> None:
    """Collate names with the user's locale instead of the C default."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.warning("Falling back to code point name ordering: %s", e)


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now().astimezone()


def local_midnight(now: Optional[datetime] = None) -> datetime:
    """
    Return the start of the current local day.

    The offset is resolved at midnight itself, which differs from the
    current one on daylight saving transition days.
    """
    return datetime.combine(_now(now).astimezone().date(), time.min).astimezone()


def matches_filter(image: ImageRecord, filter_date: DateFilter, now: datetime, midnight: datetime) -> bool:
    if filter_date == DateFilter.ALL:
        return True
    if filter_date == DateFilter.LAST_HOUR:
        return now - image.timestamp < ONE_HOUR
    if filter_date == DateFilter.TODAY:
        return image.timestamp >= midnight
    return now - image.timestamp < timedelta(days=WINDOW_DAYS[filter_date])


def filter_images(
    images: Iterable[ImageRecord],
    filter_date: DateFilter,
    now: Optional[datetime] = None
) -> list[ImageRecord]:
    """
    Keep the images inside a time window.

    A single `now` is used for the whole pass.
    """
    now = _now(now)
    midnight = local_midnight(now)
    return [image for image in images if matches_filter(image, filter_date, now, midnight)]


def sort_images(images: Iterable[ImageRecord], sort_by: SortBy) -> list[ImageRecord]:
    """Sort images; stable for equal keys. Names collate case-insensitively."""
    if sort_by == SortBy.NEWEST:
        return sorted(images, key=lambda img: img.timestamp, reverse=True)
    if sort_by == SortBy.OLDEST:
        return sorted(images, key=lambda img: img.timestamp)
    return sorted(images, key=lambda img: (locale.strxfrm(img.name.casefold()), img.name))


def project(
    images: Iterable[ImageRecord],
    sort_by: SortBy = SortBy.NEWEST,
    filter_date: DateFilter = DateFilter.ALL,
    now: Optional[datetime] = None
) -> list[ImageRecord]:
    """
    Derive the sequence to display: filter, then sort.

    Args:
        images: The authoritative collection.
        sort_by: Selected ordering.
        filter_date: Selected time window.
        now: Reference instant; defaults to the current time.

    Returns:
        New list, the input is never modified.
    """
    return sort_images(filter_images(images, filter_date, now), sort_by)


def compute_stats(images: Iterable[ImageRecord], now: Optional[datetime] = None) -> Stats:
    """Count images in the last hour, since local midnight, and in total."""
    now = _now(now)
    midnight = local_midnight(now)
    last_hour = today = total = 0

    for image in images:
        total += 1
        if now - image.timestamp < ONE_HOUR:
            last_hour += 1
        if image.timestamp >= midnight:
            today += 1

    return Stats(last_hour=last_hour, today=today, total=total)


def _next(members: list, current):
    return members[(members.index(current) + 1) % len(members)]


@dataclass
class ViewState:
    """User-selected sort and filter; UI-only, never persisted."""
    sort_by: SortBy = SortBy.NEWEST
    filter_date: DateFilter = DateFilter.ALL

    def select_stat(self, filter_date: DateFilter) -> None:
        """Clicking a statistic tile shows its window, newest first."""
        self.filter_date = filter_date
        self.sort_by = SortBy.NEWEST

    def cycle_sort(self) -> SortBy:
        self.sort_by = _next(list(SortBy), self.sort_by)
        return self.sort_by

    def cycle_filter(self) -> DateFilter:
        self.filter_date = _next(list(DateFilter), self.filter_date)
        return self.filter_date

    def apply(self, images: Iterable[ImageRecord], now: Optional[datetime] = None) -> list[ImageRecord]:
        return project(images, self.sort_by, self.filter_date, now)
