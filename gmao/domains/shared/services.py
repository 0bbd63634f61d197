# gmao/domains/shared/services.py

import logging
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
from fastapi import UploadFile

from gmao.core.config import settings
from gmao.domains.shared.tasks import dispatch_notification_task

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads"
ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


class ImageStorageError(Exception):
    """Raised by ImageStorage when a file cannot be stored."""


class ImageStorage:
    """
    Stores image blobs under settings.UPLOAD_DIR and serves them from
    UPLOAD_URL_PREFIX (mounted as static files in main.py).
    """

    async def store(self, upload_file: UploadFile, folder: str) -> str:
        """Writes the file and returns its public URL."""
        extension = Path(upload_file.filename or "").suffix.lower()
        if extension not in ALLOWED_IMAGE_EXTENSIONS:
            raise ImageStorageError(f"Unsupported image type: '{upload_file.filename}'")

        content = await upload_file.read()
        if not content:
            raise ImageStorageError(f"Empty file: '{upload_file.filename}'")

        # UPLOAD_DIR is read at call time so tests can point it elsewhere.
        directory = Path(settings.UPLOAD_DIR) / folder
        directory.mkdir(parents=True, exist_ok=True)
        name = f"{uuid.uuid4().hex}{extension}"

        try:
            async with aiofiles.open(directory / name, "wb") as f:
                await f.write(content)
        except OSError as e:
            raise ImageStorageError(f"Could not write '{upload_file.filename}': {e}") from e

        return f"{UPLOAD_URL_PREFIX}/{folder}/{name}"

    async def delete(self, url: str) -> None:
        """Removes the file behind a URL returned by `store`."""
        if not url.startswith(f"{UPLOAD_URL_PREFIX}/"):
            raise ImageStorageError(f"URL not managed by this storage: '{url}'")
        relative = url[len(UPLOAD_URL_PREFIX) + 1:]
        root = Path(settings.UPLOAD_DIR).resolve()
        path = (root / relative).resolve()
        if root not in path.parents:
            raise ImageStorageError(f"URL escapes the upload directory: '{url}'")
        path.unlink(missing_ok=True)


image_storage = ImageStorage()


async def notify(arq_redis_pool: Optional[Any], event: str, payload: Dict[str, Any]) -> None:
    """
    Enqueues a notification event for the worker. Never raises: a missing
    pool or an enqueue failure is logged and the event is dropped.
    """
    if arq_redis_pool is None:
        logger.info("ARQ Redis pool not available, notification '%s' not sent: %s", event, payload)
        return
    try:
        await arq_redis_pool.enqueue_job(dispatch_notification_task.__name__, event, payload)
        logger.debug("Notification '%s' enqueued", event)
    except Exception:
        logger.exception("Failed to enqueue notification '%s'", event)
