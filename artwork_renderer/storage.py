"""
Blob storage for rendered artwork.

Rendered PNGs and cached show artwork are published through a blob store:
put(key, data, content_type) -> StoredBlob(key, url). A local filesystem
store is used for development; an S3-compatible store (Backblaze B2, MinIO,
AWS) for production.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .constants import (
    logger,
    BLOB_BACKEND,
    BLOB_BASE_URL,
    BLOB_DIR,
    S3_BUCKET,
    S3_ENDPOINT,
    S3_KEY_ID,
    S3_REGION,
    S3_SECRET_KEY,
)
from .errors import ConfigurationError, StorageError


@dataclass(frozen=True)
class StoredBlob:
    """Where a stored object ended up."""

    key: str
    url: str


class BlobStore(Protocol):
    """Minimal protocol implemented by blob stores."""

    def put(self, key: str, data: bytes, content_type: str = 'application/octet-stream') -> StoredBlob:
        ...


def normalize_key(key: str) -> str:
    """Strip leading slashes and reject keys that escape the store root."""
    normalized = key.lstrip('/')
    if not normalized or any(part == '..' for part in normalized.split('/')):
        raise StorageError(f"Invalid storage key: {key!r}")
    return normalized


class LocalBlobStore:
    """Store blobs on the local filesystem."""

    def __init__(self, base_path: Path, base_url: str = ''):
        self.base_path = Path(base_path).resolve()
        self.base_url = base_url.rstrip('/')

    def url_for(self, key: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{key}"
        return (self.base_path / key).as_uri()

    def put(self, key: str, data: bytes, content_type: str = 'application/octet-stream') -> StoredBlob:
        key = normalize_key(key)
        destination = self.base_path / key
        tmp_path = destination.with_name(destination.name + '.part')
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            tmp_path.replace(destination)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to store {key}: {e}") from e

        logger.info(f"BLOB_STORED key={key} bytes={len(data)} type={content_type}")
        return StoredBlob(key=key, url=self.url_for(key))


class S3BlobStore:
    """Store blobs in an S3-compatible bucket with public-read ACLs."""

    def __init__(
        self,
        bucket: str,
        endpoint_url: Optional[str] = None,
        region: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        public_base_url: Optional[str] = None,
        client: object = None
    ):
        if not bucket:
            raise ConfigurationError("ARTWORK_S3_BUCKET is required for the S3 blob store")
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        if client is None:
            client = boto3.client(
                's3',
                endpoint_url=endpoint_url,
                region_name=region,
                aws_access_key_id=access_key_id or None,
                aws_secret_access_key=secret_access_key or None,
            )
        self.client = client
        base = public_base_url or (f"{endpoint_url.rstrip('/')}/{bucket}" if endpoint_url else '')
        self.public_base_url = base.rstrip('/')

    def url_for(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return f"s3://{self.bucket}/{key}"

    def put(self, key: str, data: bytes, content_type: str = 'application/octet-stream') -> StoredBlob:
        key = normalize_key(key)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ACL='public-read',
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to upload {key} to bucket {self.bucket}: {e}") from e

        logger.info(f"BLOB_UPLOADED bucket={self.bucket} key={key} bytes={len(data)}")
        return StoredBlob(key=key, url=self.url_for(key))


def get_blob_store(backend: str = BLOB_BACKEND) -> BlobStore:
    """Return the blob store configured through the environment."""
    if backend == 'local':
        return LocalBlobStore(BLOB_DIR, BLOB_BASE_URL)
    if backend == 's3':
        return S3BlobStore(
            bucket=S3_BUCKET,
            endpoint_url=S3_ENDPOINT,
            region=S3_REGION,
            access_key_id=S3_KEY_ID,
            secret_access_key=S3_SECRET_KEY,
            public_base_url=BLOB_BASE_URL or None,
        )
    raise ConfigurationError(f"Unsupported blob backend: {backend}")
