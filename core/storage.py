"""
Storage Gateway Module
Handles all communication with the object-storage bucket via boto3.
"""

import asyncio
import logging
from typing import Optional

import boto3
import httpx
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .storage_models import ListPage, StorageError, StoredObject


logger = logging.getLogger(__name__)

DEFAULT_URL_TTL = 3600
FETCH_TIMEOUT = 60.0


def create_s3_client(settings: Settings):
    """Create a boto3 S3 client from settings."""
    return boto3.client(
        "s3",
        region_name=settings.region,
        aws_access_key_id=settings.access_key_id,
        aws_secret_access_key=settings.secret_access_key,
        endpoint_url=settings.endpoint_url,
        config=Config(signature_version="s3v4"),
    )


class S3Gateway:
    """
    Thin async wrapper around a bucket.

    The boto3 client is blocking, so every call runs in a worker thread and
    each method is an await point for the caller.
    """

    def __init__(self, bucket: str, client=None, http_client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            bucket: Bucket name.
            client: boto3 S3 client. Created with default credentials if omitted.
            http_client: Optional httpx client used to fetch signed URLs.
        """
        self.bucket = bucket
        self.client = client if client is not None else boto3.client("s3")
        self._http_client = http_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3Gateway":
        return cls(settings.bucket_name, create_s3_client(settings))

    def _list_page_sync(self, continuation_token: Optional[str]) -> ListPage:
        kwargs = {"Bucket": self.bucket}
        if continuation_token:
            kwargs["ContinuationToken"] = continuation_token

        try:
            response = self.client.list_objects_v2(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Listing bucket {self.bucket} failed: {e}") from e

        items = [
            StoredObject(key=obj["Key"], last_modified=obj["LastModified"], size=obj.get("Size", 0))
            for obj in response.get("Contents", [])
        ]
        return ListPage(
            items=items,
            is_truncated=response.get("IsTruncated", False),
            next_continuation_token=response.get("NextContinuationToken"),
        )

    async def list_page(self, continuation_token: Optional[str] = None) -> ListPage:
        """
        Request one page of the bucket listing.

        Raises:
            StorageError: If the request fails.
        """
        return await asyncio.to_thread(self._list_page_sync, continuation_token)

    async def list_all(self) -> list[StoredObject]:
        """
        List every object in the bucket, following continuation tokens.

        Pages are accumulated and returned together once the listing is
        exhausted.

        Raises:
            StorageError: If any page request fails.
        """
        objects: list[StoredObject] = []
        token = None
        pages = 0

        while True:
            page = await self.list_page(token)
            objects.extend(page.items)
            pages += 1

            if not page.is_truncated or not page.next_continuation_token:
                break
            token = page.next_continuation_token

        logger.debug("Listed %d objects in %d page(s) from %s", len(objects), pages, self.bucket)
        return objects

    def _sign_sync(self, key: str, ttl_seconds: int) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Signing {key} failed: {e}") from e

    async def sign(self, key: str, ttl_seconds: int = DEFAULT_URL_TTL) -> str:
        """Generate a time-limited read URL for an object."""
        return await asyncio.to_thread(self._sign_sync, key, ttl_seconds)

    def _delete_one_sync(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Deleting {key} failed: {e}") from e

    async def delete_one(self, key: str) -> None:
        """
        Delete a single object by key.

        Raises:
            StorageError: If the request fails.
        """
        await asyncio.to_thread(self._delete_one_sync, key)

    async def fetch(self, url: str) -> bytes:
        """
        Download the content behind a signed URL into memory.

        Raises:
            StorageError: If the request fails or returns an error status.
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=FETCH_TIMEOUT)

        try:
            response = await self._http_client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"Fetching object failed: {e}") from e

        return response.content

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
