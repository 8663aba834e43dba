"""
Blob store adapter over Django's storage API.

`public_id` is the storage name of the object; `url` is what the storage
reports for it (absolute when MEDIA_URL / the remote backend is absolute).
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable, List, Optional

from django.conf import settings
from django.core.files.storage import Storage, default_storage
from django.db import transaction
from PIL import Image, UnidentifiedImageError

from .errors import BlobStoreError, InputValidationError

logger = logging.getLogger(__name__)

# Векторные форматы Pillow не читает
UNVERIFIED_EXTENSIONS = {"svg"}


@dataclass(frozen=True)
class StoredBlob:
    url: str
    public_id: str


class BlobStore:
    """
    Upload/delete images keyed by an opaque public id.

    Uploads are fatal on failure; deletes are best effort and only logged.
    """

    def __init__(self, storage: Optional[Storage] = None):
        self.storage = storage or default_storage

    @staticmethod
    def _extension(filename: str) -> str:
        return PurePosixPath(filename or "").suffix.lstrip(".").lower()

    def _target_name(self, uploaded, folder: str, prefix: str) -> str:
        original = PurePosixPath(getattr(uploaded, "name", "") or "image")
        stem = original.stem[:50] or "image"
        return f"{folder.strip('/')}/{prefix}_{uuid.uuid4().hex}-{stem}{original.suffix.lower()}"

    @staticmethod
    def _verify_raster(uploaded, filename: str) -> None:
        """Reject files whose content is not a decodable image."""
        try:
            uploaded.seek(0)
            with Image.open(uploaded) as img:
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
            raise InputValidationError(
                f"File {filename!r} is not a valid image",
                kind="INVALID_IMAGE_FILE",
            ) from exc
        finally:
            uploaded.seek(0)

    def upload(self, uploaded, folder: str, *, prefix: str = "variant") -> StoredBlob:
        allowed = getattr(settings, "CATALOG_ALLOWED_IMAGE_EXTENSIONS", ())
        filename = getattr(uploaded, "name", "") or ""
        extension = self._extension(filename)
        if extension not in allowed:
            raise InputValidationError(
                f"File {filename!r} is not an allowed image type ({', '.join(allowed)})",
                kind="INVALID_IMAGE_FILE",
            )
        if extension not in UNVERIFIED_EXTENSIONS:
            self._verify_raster(uploaded, filename)
        try:
            name = self.storage.save(self._target_name(uploaded, folder, prefix), uploaded)
            url = self.storage.url(name)
        except Exception as exc:
            logger.error("Blob upload failed for %s: %s", filename, exc, exc_info=True)
            raise BlobStoreError(f"Failed to upload image {filename!r}") from exc
        logger.debug("Uploaded blob %s", name)
        return StoredBlob(url=url, public_id=name)

    def delete(self, public_id: str) -> bool:
        if not public_id:
            return False
        try:
            self.storage.delete(public_id)
        except Exception as exc:
            logger.warning("Failed to delete blob %s: %s", public_id, exc)
            return False
        return True

    def delete_many(self, public_ids: Iterable[str]) -> int:
        return sum(1 for public_id in public_ids if self.delete(public_id))


class UploadTracker:
    """
    Records blobs uploaded while serving one request.

    Used as a context manager: if the block raises, every blob uploaded
    inside it is deleted again so an aborted request leaves no orphans.
    """

    def __init__(self, store: BlobStore):
        self.store = store
        self.uploaded: List[StoredBlob] = []

    def upload(self, uploaded, folder: str, *, prefix: str = "variant") -> StoredBlob:
        blob = self.store.upload(uploaded, folder, prefix=prefix)
        self.uploaded.append(blob)
        return blob

    def discard(self) -> int:
        if not self.uploaded:
            return 0
        logger.info("Discarding %d blob(s) uploaded by an aborted request", len(self.uploaded))
        removed = self.store.delete_many(blob.public_id for blob in reversed(self.uploaded))
        self.uploaded = []
        return removed

    def __enter__(self) -> "UploadTracker":
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.discard()
        return False


def purge_after_commit(public_ids: Iterable[str], store: Optional[BlobStore] = None) -> None:
    """
    Delete blobs once the surrounding transaction commits.

    Without an explicit store the purge goes to Celery; if the broker is
    unavailable it runs inline against the default storage.
    """
    ids = [public_id for public_id in public_ids if public_id]
    if not ids:
        return

    def _purge():
        if store is not None:
            store.delete_many(ids)
            return
        from storefront.tasks import purge_blobs_task

        try:
            purge_blobs_task.delay(ids)
        except Exception as exc:  # pragma: no cover - Celery not running locally
            logger.warning("Celery broker unavailable, purging %d blob(s) inline: %s", len(ids), exc)
            BlobStore().delete_many(ids)

    transaction.on_commit(_purge)
