"""Temporary storage for uploaded media."""

import logging
from pathlib import Path
from uuid import uuid4

from fastapi import UploadFile

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


class UploadTooLargeError(ValueError):
    """Raised when an upload exceeds the configured size limit."""


async def store_upload(
    upload: UploadFile, upload_dir: str, max_bytes: int, field_name: str = "file"
) -> Path:
    """Write an upload under a unique name, keeping its lower-cased extension."""
    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    extension = Path(upload.filename or "").suffix.lower()
    path = directory / f"{field_name}-{uuid4().hex}{extension}"
    written = 0
    with path.open("wb") as target:
        while chunk := await upload.read(_CHUNK_SIZE):
            written += len(chunk)
            if written > max_bytes:
                break
            target.write(chunk)
    if written > max_bytes:
        remove_upload(path)
        raise UploadTooLargeError(f"File exceeds the {max_bytes} byte limit.")
    return path


def remove_upload(path: Path) -> None:
    """Delete a stored upload; failures are logged."""
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.exception("Error deleting uploaded file", extra={"path": str(path)})
