"""Image storage service for the Closetlog application.

Outfit photos and garment photos are stored in Azure Blob Storage. The rest
of the application only sees opaque storage keys of the form
``{folder}/{epoch-ms}-{random}.{ext}``; ``public_url`` turns a key into a
browser-reachable URL.
"""

import secrets
import string
import time
from typing import Optional
from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import ContentSettings
from azure.storage.blob.aio import BlobServiceClient

from app.core.config import get_settings
from app.core.exceptions import AppException
from app.core.logging import get_logger
from app.utils.image_helpers import validate_image

logger = get_logger(__name__)

FOLDERS = ("garments", "outfits")
_KEY_ALPHABET = string.ascii_lowercase + string.digits


class ImageStorageService:
    """Upload, delete and resolve stored images."""

    def __init__(
        self,
        connection_string: Optional[str],
        container_name: str,
        max_bytes: int,
        blob_service: Optional[BlobServiceClient] = None
    ):
        self.container_name = container_name
        self.max_bytes = max_bytes
        self.blob_service = blob_service
        if self.blob_service is None and connection_string:
            self.blob_service = BlobServiceClient.from_connection_string(connection_string)
        self._container_ready = False

    @property
    def status(self) -> str:
        return "configured" if self.blob_service is not None else "not_configured"

    def _container(self):
        if self.blob_service is None:
            raise AppException("Image storage is not configured", status_code=503)
        return self.blob_service.get_container_client(self.container_name)

    @staticmethod
    def new_key(folder: str, extension: str) -> str:
        suffix = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(7))
        return f"{folder}/{int(time.time() * 1000)}-{suffix}.{extension}"

    async def upload(self, data: bytes, folder: str) -> str:
        """Validate and store image bytes, returning the storage key."""
        if folder not in FOLDERS:
            raise ValueError(f"Unknown image folder: {folder}")
        extension, content_type = validate_image(data, self.max_bytes)
        key = self.new_key(folder, extension)

        container = self._container()
        if not self._container_ready:
            try:
                await container.create_container()
            except ResourceExistsError:
                pass
            self._container_ready = True

        try:
            await container.upload_blob(
                name=key,
                data=data,
                overwrite=False,
                content_settings=ContentSettings(
                    content_type=content_type,
                    cache_control="max-age=3600"
                )
            )
        except Exception as e:
            logger.error("Image upload failed", error=e, folder=folder)
            raise AppException("Failed to upload image", status_code=502)

        logger.info("Image stored", key=key, size=len(data))
        return key

    async def delete(self, key: str) -> None:
        """Remove a stored image; absolute URLs are not ours and are skipped."""
        if not key or key.startswith("http"):
            return
        try:
            await self._container().delete_blob(key)
        except ResourceNotFoundError:
            logger.warning("Image already deleted", key=key)
        except Exception as e:
            logger.error("Failed to delete image", error=e, key=key)

    def public_url(self, key: str) -> str:
        if not key or key.startswith("http"):
            return key
        return self._container().get_blob_client(key).url

    async def close(self):
        if self.blob_service is not None:
            await self.blob_service.close()


def create_image_service() -> ImageStorageService:
    """Build the image storage service from settings."""
    settings = get_settings()
    return ImageStorageService(
        connection_string=settings.AZURE.AZURE_STORAGE_CONNECTION_STRING,
        container_name=settings.AZURE.BLOB_CONTAINER_NAME,
        max_bytes=settings.MAX_IMAGE_BYTES
    )
