"""Blob store for user media (avatars, cover images).

The account services only depend on the ``BlobStore`` interface; the
Cloudinary implementation is wired in by ``get_blob_store``.
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path

import cloudinary
import cloudinary.uploader

from src.config import Settings

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".ico"}

# .../upload/v1712345678/folder/name.jpg -> folder/name
_PUBLIC_ID_RE = re.compile(r"/upload/(?:v\d+/)?(?P<public_id>[^?#]+?)(?:\.[A-Za-z0-9]+)?$")


class BlobStoreError(Exception):
    """Upload or delete against the blob store failed."""


class BlobStore(ABC):
    """Remote media storage."""

    @abstractmethod
    def upload(self, local_path: str | Path) -> str:
        """Upload a local file, remove the local copy and return its URL.

        Raises:
            BlobStoreError: the upload failed. The local file is removed anyway.
        """

    @abstractmethod
    def delete(self, url: str) -> None:
        """Delete a previously uploaded file by its URL.

        Raises:
            BlobStoreError: the delete failed.
        """


def remove_local_file(local_path: str | Path) -> None:
    """Remove a temporary upload, ignoring files that are already gone."""
    try:
        os.unlink(local_path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temporary file {local_path}: {e}")


def public_id_from_url(url: str) -> str | None:
    """Recover the Cloudinary public id from a delivery URL."""
    match = _PUBLIC_ID_RE.search(url)
    if not match:
        return None
    return match.group("public_id")


class CloudinaryBlobStore(BlobStore):
    """Blob store backed by Cloudinary."""

    def __init__(
        self,
        cloud_name: str | None,
        api_key: str | None,
        api_secret: str | None,
        folder: str = "vidtube",
        timeout: int = 30,
    ):
        self.folder = folder
        self.timeout = timeout
        self._configured = bool(cloud_name and api_key and api_secret)
        if self._configured:
            cloudinary.config(
                cloud_name=cloud_name,
                api_key=api_key,
                api_secret=api_secret,
                secure=True,  # Always use HTTPS
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> "CloudinaryBlobStore":
        return cls(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            folder=settings.cloudinary_folder,
            timeout=settings.blob_store_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        """Check if Cloudinary credentials are present."""
        return self._configured

    def upload(self, local_path: str | Path) -> str:
        path = Path(local_path)
        try:
            if not self.is_configured:
                raise BlobStoreError("Cloudinary is not configured")

            resource_type = "image" if path.suffix.lower() in IMAGE_EXTENSIONS else "auto"
            try:
                result = cloudinary.uploader.upload(
                    str(path),
                    resource_type=resource_type,
                    folder=self.folder,
                    timeout=self.timeout,
                )
            except Exception as e:  # noqa: BLE001
                logger.error(f"Error uploading {path.name} to Cloudinary: {e}")
                raise BlobStoreError(f"Upload of {path.name} failed") from e

            url = result.get("secure_url") or result.get("url")
            if not url:
                raise BlobStoreError(f"Cloudinary returned no URL for {path.name}")
            return url
        finally:
            remove_local_file(path)

    def delete(self, url: str) -> None:
        if not self.is_configured:
            raise BlobStoreError("Cloudinary is not configured")

        public_id = public_id_from_url(url)
        if not public_id:
            raise BlobStoreError(f"Cannot derive public id from {url}")

        try:
            result = cloudinary.uploader.destroy(public_id, timeout=self.timeout)
        except Exception as e:  # noqa: BLE001
            raise BlobStoreError(f"Delete of {public_id} failed") from e
        if result.get("result") not in ("ok", "not found"):
            raise BlobStoreError(f"Delete of {public_id} failed: {result}")
