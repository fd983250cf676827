from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings


class StorageError(Exception):
    """Raised when a backend fails to persist, inspect or remove an object."""


class Storage(ABC):
    @abstractmethod
    def exists(self, key: str) -> bool: ...

    @abstractmethod
    def write_bytes(self, key: str, payload: bytes, *, content_type: str) -> str: ...

    @abstractmethod
    def upload_file(self, key: str, source: Path, *, content_type: str) -> str: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    @abstractmethod
    def url_for(self, key: str) -> str: ...


class LocalStorage(Storage):
    """Filesystem-backed storage; objects are served from ``public_base``."""

    def __init__(self, base_path: Path, public_base: str):
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base = public_base.rstrip("/")

    def _resolve(self, key: str) -> Path:
        root = self.base_path.resolve()
        path = (root / key).resolve()
        if root not in path.parents:
            raise ValueError(f"Key escapes the storage root: {key}")
        return path

    def exists(self, key: str) -> bool:
        return self._resolve(key).exists()

    def write_bytes(self, key: str, payload: bytes, *, content_type: str) -> str:
        path = self._resolve(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload)
        except OSError as exc:
            raise StorageError(f"local write failed for {key}") from exc
        return path.as_uri()

    def upload_file(self, key: str, source: Path, *, content_type: str) -> str:
        path = self._resolve(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, path)
        except OSError as exc:
            raise StorageError(f"local copy failed for {key}") from exc
        return path.as_uri()

    def delete(self, key: str) -> None:
        try:
            self._resolve(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"local delete failed for {key}") from exc

    def url_for(self, key: str) -> str:
        return f"{self.public_base}/{key}"


class S3Storage(Storage):
    """Amazon S3 (or S3-compatible) object storage."""

    def __init__(self, bucket: str, client: Any, public_base: str):
        self.bucket = bucket
        self.client = client
        self.public_base = public_base.rstrip("/")

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in {"404", "NoSuchKey", "NotFound"}:
                return False
            raise StorageError(f"s3 head failed for {key}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"s3 head failed for {key}") from exc
        return True

    def write_bytes(self, key: str, payload: bytes, *, content_type: str) -> str:
        self._put(key, payload, content_type)
        return f"s3://{self.bucket}/{key}"

    def upload_file(self, key: str, source: Path, *, content_type: str) -> str:
        try:
            handle = source.open("rb")
        except OSError as exc:
            raise StorageError(f"cannot open {source} for upload") from exc
        with handle:
            self._put(key, handle, content_type)
        return f"s3://{self.bucket}/{key}"

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"s3 delete failed for {key}") from exc

    def url_for(self, key: str) -> str:
        return f"{self.public_base}/{key}"

    def _put(self, key: str, body: Any, content_type: str) -> None:
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=body, ContentType=content_type)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"s3 put failed for {key}") from exc


def _s3_client(settings: Settings) -> Any:
    config = Config(
        connect_timeout=settings.s3_connect_timeout_s,
        read_timeout=settings.s3_read_timeout_s,
        retries={"max_attempts": 1, "mode": "standard"},
    )
    return boto3.client(
        "s3",
        region_name=settings.s3_region,
        endpoint_url=settings.s3_endpoint_url,
        aws_access_key_id=settings.secrets.aws_access_key_id,
        aws_secret_access_key=settings.secrets.aws_secret_access_key,
        config=config,
    )


def get_storage(settings: Settings) -> Storage:
    """Return the backend that receives uploaded videos."""
    if settings.storage_backend == "local":
        public_base = settings.video_base_url or f"{settings.resolved_public_base_url}/assets/videos"
        return LocalStorage(base_path=Path(settings.video_storage_path), public_base=public_base)
    if settings.storage_backend == "s3":
        bucket = settings.s3_bucket or ""
        public_base = settings.video_base_url or f"https://{bucket}.s3.{settings.s3_region}.amazonaws.com"
        return S3Storage(bucket=bucket, client=_s3_client(settings), public_base=public_base)
    raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")


def get_asset_storage(settings: Settings) -> LocalStorage:
    """Return the local store that holds thumbnails under ``assets_root``."""
    return LocalStorage(
        base_path=Path(settings.assets_root),
        public_base=f"{settings.resolved_public_base_url}/assets",
    )


__all__ = [
    "Storage",
    "StorageError",
    "LocalStorage",
    "S3Storage",
    "get_storage",
    "get_asset_storage",
]
