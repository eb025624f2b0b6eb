"""Attachment upload endpoint."""

from __future__ import annotations

from fastapi import APIRouter, UploadFile, status

from ..dependencies import CurrentUserDep, StorageDep

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.post("/", status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile,
    current_user: CurrentUserDep,
    storage: StorageDep,
) -> dict[str, object]:
    """Store an attachment and return the reference to send with a message."""
    data = await file.read(storage.max_bytes + 1)
    stored = storage.save(file.filename, file.content_type, data)
    return {
        "url": stored.url,
        "kind": stored.kind,
        "size": stored.size,
        "filename": file.filename,
    }
