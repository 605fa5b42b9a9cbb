"""
Shared pytest fixtures for BucketWatch tests.
"""
import asyncio
import os
import sys
from datetime import datetime, timedelta

import pytest

# Ensure project root is on path for all tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.models import ImageRecord
from core.storage_models import ListPage, StorageError, StoredObject


# Local, timezone-aware "now" shared by every test
NOW = datetime(2026, 10, 18, 15, 30).astimezone()


def make_object(key: str, age: timedelta = timedelta(0), size: int = 2048) -> StoredObject:
    return StoredObject(key=key, last_modified=NOW - age, size=size)


def make_image(key: str, age: timedelta = timedelta(0), size: int = 2048) -> ImageRecord:
    return ImageRecord(
        id=key,
        key=key,
        url=f"https://signed.example/{key}",
        name=key.rsplit("/", 1)[-1],
        timestamp=NOW - age,
        size=size,
    )


async def settle(rounds: int = 10) -> None:
    """Let pending tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# In-memory gateway
# ---------------------------------------------------------------------------

class FakeGateway:
    """
    Bucket held in memory, exposing the S3Gateway surface.

    Records every call and the peak number of concurrent sign/delete calls.
    `list_gate` can be set to an asyncio.Event to hold listings open.
    """

    def __init__(self, objects=None, page_size: int = 1000):
        self.bucket = "test-bucket"
        self.objects: list[StoredObject] = list(objects or [])
        self.page_size = page_size

        self.page_calls: list = []
        self.sign_calls: list[tuple[str, int]] = []
        self.deleted: list[str] = []
        self.fetched: list[str] = []

        self.fail_list = False
        self.fail_sign: set[str] = set()
        self.fail_delete: set[str] = set()
        self.fail_fetch = False
        self.list_gate = None
        self.closed = False

        self._signing = 0
        self._deleting = 0
        self.max_signing = 0
        self.max_deleting = 0

    async def list_page(self, continuation_token=None) -> ListPage:
        self.page_calls.append(continuation_token)
        if self.list_gate is not None:
            await self.list_gate.wait()
        if self.fail_list:
            raise StorageError("listing failed")

        start = int(continuation_token or 0)
        end = start + self.page_size
        truncated = end < len(self.objects)
        return ListPage(
            items=list(self.objects[start:end]),
            is_truncated=truncated,
            next_continuation_token=str(end) if truncated else None,
        )

    async def list_all(self) -> list[StoredObject]:
        objects = []
        token = None
        while True:
            page = await self.list_page(token)
            objects.extend(page.items)
            if not page.is_truncated or not page.next_continuation_token:
                return objects
            token = page.next_continuation_token

    async def sign(self, key: str, ttl_seconds: int = 3600) -> str:
        self.sign_calls.append((key, ttl_seconds))
        self._signing += 1
        self.max_signing = max(self.max_signing, self._signing)
        try:
            await asyncio.sleep(0)
            if key in self.fail_sign:
                raise StorageError(f"signing {key} failed")
            return f"https://signed.example/{key}?ttl={ttl_seconds}"
        finally:
            self._signing -= 1

    async def delete_one(self, key: str) -> None:
        self._deleting += 1
        self.max_deleting = max(self.max_deleting, self._deleting)
        try:
            await asyncio.sleep(0)
            if key in self.fail_delete:
                raise StorageError(f"deleting {key} failed")
            self.objects = [obj for obj in self.objects if obj.key != key]
            self.deleted.append(key)
        finally:
            self._deleting -= 1

    async def fetch(self, url: str) -> bytes:
        self.fetched.append(url)
        if self.fail_fetch:
            raise StorageError("fetch failed")
        return b"\xff\xd8\xff\xe0fake-jpeg"

    async def aclose(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def gateway():
    return FakeGateway([
        make_object("cam/0001.jpg", timedelta(minutes=5)),
        make_object("cam/0002.JPEG", timedelta(minutes=90)),
        make_object("cam/0003.jpeg", timedelta(days=2)),
        make_object("cam/notes.txt", timedelta(minutes=1)),
        make_object("cam/preview.png", timedelta(minutes=2)),
    ])


@pytest.fixture
def config_manager(tmp_path):
    from core.config import ConfigManager
    return ConfigManager(str(tmp_path / "config.yaml"))
