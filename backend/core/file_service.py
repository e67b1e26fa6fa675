"""
Blob storage for uploaded images.

``BlobStore.put(data, key, content_type)`` stores bytes and returns the
public URL; ``delete(key)`` removes them. Uploads are validated before any
bytes reach a store.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import logging
import os
import uuid

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from .config import Settings
from .exceptions import UploadError

logger = logging.getLogger(__name__)


def format_file_size(size_bytes: int) -> str:
    """Format file size in human readable format."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} TB"


class BlobStoreError(Exception):
    """Storage backend failed to write or delete a blob."""


@dataclass
class ImageUpload:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        _, ext = os.path.splitext(self.filename or "")
        return ext.lower().lstrip(".")


async def read_upload(file: Optional[UploadFile], max_size: int) -> ImageUpload:
    """
    Read a multipart upload into memory.

    Reads at most one byte past ``max_size`` so oversized files are detected
    without buffering them whole.
    """
    if file is None or not file.filename:
        raise UploadError("Please upload a file")
    data = await file.read(max_size + 1)
    return ImageUpload(
        filename=file.filename,
        content_type=file.content_type or "application/octet-stream",
        data=data,
    )


def validate_image_upload(upload: ImageUpload, max_size: int) -> None:
    if not upload.content_type.startswith("image/"):
        raise UploadError("Please upload an image file")
    if upload.size == 0:
        raise UploadError("Uploaded file is empty")
    if upload.size > max_size:
        raise UploadError(
            f"Please upload an image less than {format_file_size(max_size)}"
        )


def build_blob_key(folder: str, upload: ImageUpload) -> str:
    extension = upload.extension or "bin"
    return f"{folder}/{uuid.uuid4().hex}.{extension}"


class BlobStore:
    def put(self, data: bytes, key: str, content_type: str) -> str:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    """Stores blobs on local disk and serves them under ``base_url``."""

    def __init__(self, root: str, base_url: str = "/uploads"):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise BlobStoreError(f"Blob key escapes storage root: {key}")
        return path

    def put(self, data: bytes, key: str, content_type: str) -> str:
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise BlobStoreError(f"Failed to write {key}: {e}") from e
        logger.info(f"Stored {key} ({format_file_size(len(data))}) on local disk")
        return f"{self.base_url}/{key}"

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise BlobStoreError(f"Failed to delete {key}: {e}") from e


class S3BlobStore(BlobStore):
    def __init__(self, bucket_name: str, region: str = "us-east-1", client=None):
        self.bucket_name = bucket_name
        self.s3_client = client or boto3.client("s3", region_name=region)

    def put(self, data: bytes, key: str, content_type: str) -> str:
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type or "application/octet-stream",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 upload error: {e}")
            raise BlobStoreError(f"Failed to upload {key} to S3") from e
        return f"https://{self.bucket_name}.s3.amazonaws.com/{key}"

    def delete(self, key: str) -> None:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 delete error: {e}")
            raise BlobStoreError(f"Failed to delete {key} from S3") from e


def create_blob_store(settings: Settings) -> BlobStore:
    if settings.blob_store_backend == "s3":
        logger.info(f"Using S3 blob store (bucket={settings.s3_bucket_name})")
        return S3BlobStore(settings.s3_bucket_name, region=settings.aws_region)
    return LocalBlobStore(settings.upload_dir, settings.upload_base_url)


def store_blob(blob_store: BlobStore, upload: ImageUpload, key: str) -> str:
    """Put an upload in the store, reporting storage failures as an upload error."""
    try:
        return blob_store.put(upload.data, key, upload.content_type)
    except BlobStoreError as e:
        logger.error(f"Blob store rejected {key}: {e}")
        raise UploadError("Problem with file upload", status_code=500)


def discard_blob(blob_store: BlobStore, key: str) -> None:
    """Best-effort removal of a blob no row points at any more."""
    try:
        blob_store.delete(key)
    except BlobStoreError as e:
        logger.warning(f"Could not remove blob {key}: {e}")
