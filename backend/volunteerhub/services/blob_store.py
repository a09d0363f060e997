"""Media storage keyed by opaque relative references."""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Protocol
from uuid import UUID, uuid4

from volunteerhub.core.config import settings
from volunteerhub.core.errors import DomainError, ErrorKind

logger = logging.getLogger(__name__)

ALLOWED_FOLDERS = frozenset({"events", "channels", "avatars"})
EXTERNAL_URL_PREFIXES = ("https://", "http://")


class BlobStore(Protocol):
    def store(self, data: bytes, folder: str, content_type: str, owner_id: UUID) -> str: ...

    def delete(self, reference: str) -> bool: ...


class LocalBlobStore:
    """Stores blobs as files below ``<root>/uploads/<folder>/<owner>``."""

    def __init__(self, root: str | Path | None = None):
        self.root = (Path(root or settings.APP_DATA_PATH) / "uploads").resolve()

    def _path_for(self, reference: str) -> Path:
        path = (self.root / reference).resolve()
        if not path.is_relative_to(self.root):
            raise ValueError(f"Reference escapes upload root: {reference}")
        return path

    def store(self, data: bytes, folder: str, content_type: str, owner_id: UUID) -> str:
        if folder not in ALLOWED_FOLDERS:
            raise ValueError(f"Unknown upload folder: {folder}")
        extension = mimetypes.guess_extension(content_type) or ""
        reference = f"{folder}/{owner_id}/{uuid4()}{extension}"
        path = self._path_for(reference)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Stored blob %s (%d bytes)", reference, len(data))
        return reference

    def delete(self, reference: str) -> bool:
        path = self._path_for(reference)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Deleted blob %s", reference)
        return True


def is_owned_by(reference: str, owner_id: UUID) -> bool:
    """True only for a reference ``store`` produced for this owner."""
    parts = reference.split("/")
    return (
        len(parts) == 3
        and parts[0] in ALLOWED_FOLDERS
        and parts[1] == str(owner_id)
        and parts[2] not in ("", ".", "..")
    )


def check_media_reference(reference: str | None, owner_id: UUID) -> None:
    """Accept an external URL or an upload of the caller's own."""
    if reference is None or reference.startswith(EXTERNAL_URL_PREFIXES):
        return
    if not is_owned_by(reference, owner_id):
        raise DomainError(ErrorKind.INVALID_MEDIA_REFERENCE, details={"reference": reference})


def delete_quietly(store: BlobStore, reference: str) -> bool:
    """Best-effort delete; failures are logged, never raised."""
    try:
        return store.delete(reference)
    except Exception:
        logger.exception("Failed to delete blob %s", reference)
        return False


_blob_store: BlobStore | None = None


def get_blob_store() -> BlobStore:
    global _blob_store
    if _blob_store is None:
        _blob_store = LocalBlobStore()
    return _blob_store
