"""
Storage abstraction for S3-compatible object storage and in-memory testing.
"""

from __future__ import annotations

import re
import secrets
import time
from dataclasses import dataclass
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from roofrix.types import StorageFolder


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        ...

    def presign_put(
        self, path: str, expires_in: int = 3600, content_type: str = "application/octet-stream"
    ) -> str:
        ...

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> None:
        ...

    def get_bytes(self, path: str) -> bytes:
        ...

    def delete(self, path: str) -> None:
        ...

    def list_prefix(self, prefix: str) -> list[str]:
        ...

    def head(self, path: str) -> Optional[dict]:
        ...


def unique_file_name(original_name: str) -> str:
    """
    Build a collision-free object name: ``<stem>_<ms timestamp>_<random>.<ext>``
    with every non-alphanumeric character of the stem replaced by ``_``.
    """
    stem, dot, extension = original_name.rpartition(".")
    if not dot:
        stem, extension = original_name, ""
    sanitized = re.sub(r"[^a-zA-Z0-9]", "_", stem)
    name = f"{sanitized}_{int(time.time() * 1000)}_{secrets.token_hex(6)}"
    return f"{name}.{extension}" if extension else name


def build_storage_path(
    folder: StorageFolder,
    file_name: str,
    *,
    user_id: Optional[str] = None,
    order_id: Optional[str] = None,
) -> str:
    if folder == StorageFolder.SITE_IMAGES:
        if not order_id:
            raise ValueError("order_id is required for site-images")
        return f"orders/{order_id}/site-images/{file_name}"
    if folder == StorageFolder.DESIGN_FILES:
        if not order_id:
            raise ValueError("order_id is required for design-files")
        return f"orders/{order_id}/design-files/{file_name}"
    if folder == StorageFolder.MESSAGE_ATTACHMENTS:
        if not order_id:
            raise ValueError("order_id is required for message-attachments")
        return f"orders/{order_id}/messages/{file_name}"
    if folder == StorageFolder.USER_AVATARS:
        if not user_id:
            raise ValueError("user_id is required for user-avatars")
        return f"users/{user_id}/avatar/{file_name}"
    raise ValueError(f"Unknown storage folder: {folder}")


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return f"{self.base_url}/{path}?op=get&expires={expires_in}"

    def presign_put(
        self, path: str, expires_in: int = 3600, content_type: str = "application/octet-stream"
    ) -> str:
        return f"{self.base_url}/{path}?op=put&expires={expires_in}"

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> None:
        self.stored_objects[path] = {
            "body": bytes(data),
            "content_type": content_type,
            "updated": time.time(),
        }

    def get_bytes(self, path: str) -> bytes:
        stored = self.stored_objects.get(path)
        if stored is None:
            raise FileNotFoundError(path)
        return stored["body"]

    def delete(self, path: str) -> None:
        if self.stored_objects.pop(path, None) is None:
            raise FileNotFoundError(path)

    def list_prefix(self, prefix: str) -> list[str]:
        return sorted(key for key in self.stored_objects if key.startswith(prefix))

    def head(self, path: str) -> Optional[dict]:
        stored = self.stored_objects.get(path)
        if stored is None:
            return None
        return {
            "path": path,
            "size": len(stored["body"]),
            "content_type": stored["content_type"],
            "updated": stored["updated"],
        }


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client (AWS S3, MinIO, Tencent COS, ...).
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": path},
            ExpiresIn=expires_in,
        )

    def presign_put(
        self, path: str, expires_in: int = 3600, content_type: str = "application/octet-stream"
    ) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="put_object",
            Params={"Bucket": self.bucket, "Key": path, "ContentType": content_type},
            ExpiresIn=expires_in,
        )

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> None:
        self._client.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=data,
            ContentType=content_type,
        )

    def get_bytes(self, path: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise FileNotFoundError(path) from exc
            raise
        return response["Body"].read()

    def delete(self, path: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=path)

    def list_prefix(self, prefix: str) -> list[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            keys.extend(item["Key"] for item in page.get("Contents", []))
        return sorted(keys)

    def head(self, path: str) -> Optional[dict]:
        try:
            response = self._client.head_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("NoSuchKey", "404", "NotFound"):
                return None
            raise
        return {
            "path": path,
            "size": response.get("ContentLength", 0),
            "content_type": response.get("ContentType"),
            "updated": response["LastModified"].timestamp()
            if response.get("LastModified")
            else None,
        }
