"""Image upload endpoint backed by the blob store."""

from typing import Literal

from fastapi import APIRouter, Depends, File, Form, UploadFile

from volunteerhub.core.auth import get_current_user
from volunteerhub.core.config import settings
from volunteerhub.core.errors import DomainError, ErrorKind
from volunteerhub.models.user import User
from volunteerhub.schemas.upload import UploadResponse
from volunteerhub.services.blob_store import BlobStore, get_blob_store

router = APIRouter()


@router.post(
    "/",
    response_model=UploadResponse,
    status_code=201,
    summary="Upload an image",
    responses={
        400: {"description": "Unsupported file type or file too large"},
        401: {"description": "Not authenticated"},
    },
)
async def upload_image(
    file: UploadFile = File(...),
    folder: Literal["events", "channels", "avatars"] = Form(...),
    user: User = Depends(get_current_user),
    blob_store: BlobStore = Depends(get_blob_store),
) -> UploadResponse:
    """Returns a reference to use as ``image_url`` / ``avatar_url``."""
    content_type = file.content_type or ""
    if content_type not in settings.allowed_upload_types:
        raise DomainError(ErrorKind.INVALID_FILE, details={"content_type": content_type})

    data = await file.read(settings.UPLOAD_MAX_BYTES + 1)
    if len(data) > settings.UPLOAD_MAX_BYTES:
        raise DomainError(
            ErrorKind.FILE_TOO_LARGE, details={"max_bytes": settings.UPLOAD_MAX_BYTES}
        )
    if not data:
        raise DomainError(ErrorKind.INVALID_FILE, details={"file": "empty"})

    reference = blob_store.store(data, folder, content_type, user.id)  # type: ignore[arg-type]
    return UploadResponse(reference=reference, content_type=content_type, size=len(data))
