"""
Thumbnail cache with pluggable storage.

Rendering a thumbnail costs a full uProduce Proof job, so the first page
of the default-value preview is cached per product.

Backends:
    S3ThumbnailBackend     - durable; objects at thumbnails/{product_id}.jpg,
                             served through presigned URLs
    MemoryThumbnailBackend - process-local dict, lost on restart

The backend is picked at startup: S3 when THUMBNAIL_BUCKET is configured,
memory otherwise.

Failure policy:
    Storage errors never fail a request. A read error is logged and treated
    as a miss, a write error returns None, a delete error returns False.
"""

from __future__ import annotations

import base64
import binascii
import re
import threading
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from models.job_result import CachedThumbnail
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")
NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def thumbnail_key(product_id: str) -> str:
    """Object key for a product thumbnail."""
    return f"thumbnails/{product_id}.jpg"


def decode_data_url(data_url: str) -> bytes:
    """
    Decode a base64 image data URL.

    Raises:
        ValueError: If the payload is not valid base64
    """
    payload = DATA_URL_PREFIX.sub("", data_url, count=1)
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 image data: {e}")


class MemoryThumbnailBackend:
    """
    In-process thumbnail storage.

    Thread Safety:
        - Uses threading.Lock for all operations
    """

    durable = False

    def __init__(self):
        self._items: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, product_id: str) -> Optional[str]:
        with self._lock:
            return self._items.get(product_id)

    def put(self, product_id: str, data_url: str) -> Optional[str]:
        with self._lock:
            self._items[product_id] = data_url
        return data_url

    def delete(self, product_id: str) -> bool:
        with self._lock:
            self._items.pop(product_id, None)
        return True


class S3ThumbnailBackend:
    """
    Durable thumbnail storage in an S3 bucket.

    Objects are addressed by product id only, so put() overwrites any
    earlier rendering of the same product.
    """

    durable = True

    def __init__(
        self,
        bucket: str,
        client=None,
        url_expiry_seconds: int = 3600,
        public_base_url: Optional[str] = None
    ):
        """
        Args:
            bucket: Bucket name
            client: boto3 S3 client (created if not provided)
            url_expiry_seconds: Lifetime of presigned GET URLs
            public_base_url: Serve plain URLs under this prefix instead of
                presigned ones (for public buckets / CDNs)
        """
        if not bucket:
            raise ValueError("bucket is required")

        self.bucket = bucket
        self.url_expiry_seconds = url_expiry_seconds
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self._client = client or boto3.client("s3")

    def get(self, product_id: str) -> Optional[str]:
        key = thumbnail_key(product_id)
        try:
            self._client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code not in NOT_FOUND_CODES:
                logger.error(f"Error reading thumbnail s3://{self.bucket}/{key}: {e}")
            return None
        except BotoCoreError as e:
            logger.error(f"Error reading thumbnail s3://{self.bucket}/{key}: {e}")
            return None

        return self._object_url(key)

    def put(self, product_id: str, data_url: str) -> Optional[str]:
        key = thumbnail_key(product_id)
        try:
            body = decode_data_url(data_url)
        except ValueError as e:
            logger.error(f"Refusing to store thumbnail for {product_id}: {e}")
            return None

        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType="image/jpeg",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error writing thumbnail s3://{self.bucket}/{key}: {e}")
            return None

        return self._object_url(key)

    def delete(self, product_id: str) -> bool:
        key = thumbnail_key(product_id)
        try:
            # S3 answers 204 for missing keys too
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error deleting thumbnail s3://{self.bucket}/{key}: {e}")
            return False
        return True

    def _object_url(self, key: str) -> Optional[str]:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=self.url_expiry_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to generate presigned URL for {key}: {e}")
            return None


class ThumbnailCache:
    """
    Product id -> thumbnail cache over a storage backend.

    Usage:
        cache = ThumbnailCache(MemoryThumbnailBackend())
        cache.set("brochure-a", "data:image/jpeg;base64,...")
        hit = cache.get("brochure-a")       # CachedThumbnail or None
        cache.invalidate("brochure-a")      # True even if nothing was cached
    """

    def __init__(self, backend):
        self._backend = backend

    def is_durable(self) -> bool:
        """Whether cached thumbnails survive a restart."""
        return self._backend.durable

    def get(self, product_id: str) -> Optional[CachedThumbnail]:
        """Cached thumbnail, or None on a miss."""
        data = self._backend.get(product_id)
        if data is None:
            logger.info(f"Thumbnail cache MISS: {product_id}")
            return None

        logger.info(f"Thumbnail cache HIT: {product_id}")
        return CachedThumbnail(product_id=product_id, data=data, durable=self.is_durable())

    def set(self, product_id: str, data_url: str) -> Optional[str]:
        """
        Store a thumbnail, replacing any existing one.

        Returns:
            Stored reference (object URL or the data URL), None if storing failed
        """
        reference = self._backend.put(product_id, data_url)
        if reference is not None:
            logger.info(f"Thumbnail cached: {product_id}")
        return reference

    def invalidate(self, product_id: str) -> bool:
        """Drop a cached thumbnail. Succeeds when nothing is cached."""
        ok = self._backend.delete(product_id)
        if ok:
            logger.info(f"Thumbnail invalidated: {product_id}")
        return ok


def create_thumbnail_cache(
    bucket: Optional[str] = None,
    url_expiry_seconds: int = 3600,
    public_base_url: Optional[str] = None,
    region_name: Optional[str] = None
) -> ThumbnailCache:
    """
    Build the cache for the configured storage.

    Falls back to the memory backend when no bucket is configured or the
    S3 client cannot be created.
    """
    if not bucket:
        logger.info("Thumbnail cache: no bucket configured, using in-memory cache")
        return ThumbnailCache(MemoryThumbnailBackend())

    try:
        client = boto3.client("s3", region_name=region_name)
    except BotoCoreError as e:
        logger.warning(f"Thumbnail cache: failed to create S3 client ({e}), using in-memory cache")
        return ThumbnailCache(MemoryThumbnailBackend())

    logger.info(f"Thumbnail cache: using S3 bucket {bucket}")
    return ThumbnailCache(
        S3ThumbnailBackend(
            bucket,
            client=client,
            url_expiry_seconds=url_expiry_seconds,
            public_base_url=public_base_url,
        )
    )
