"""Local-disk storage for uploaded attachments."""
from __future__ import annotations

import re
import time
from dataclasses import dataclass
from pathlib import Path

from spectr.core.errors import ValidationFailure
from spectr.core.settings import settings
from spectr.models.message import MESSAGE_FILE, MESSAGE_IMAGE, MESSAGE_VIDEO

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class StoredFile:
    """Reference to a stored upload."""

    url: str
    kind: str
    size: int


def media_kind(content_type: str | None) -> str:
    """Map a MIME type to the coarse message kind."""
    content_type = (content_type or "").lower()
    if content_type.startswith("image/"):
        return MESSAGE_IMAGE
    if content_type.startswith("video/"):
        return MESSAGE_VIDEO
    return MESSAGE_FILE


def sanitize_filename(filename: str | None) -> str:
    """Reduce a client-supplied name to a safe basename."""
    name = Path(filename or "").name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name[:120] or "upload"


class LocalFileStorage:
    """Writes uploads under a directory that is served as static files."""

    def __init__(self, root: str | Path, *, url_prefix: str, max_bytes: int) -> None:
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def save(self, filename: str | None, content_type: str | None, data: bytes) -> StoredFile:
        """Store ``data`` and return its public URL and media kind."""
        if not data:
            raise ValidationFailure("Uploaded file is empty")
        if len(data) > self.max_bytes:
            raise ValidationFailure(f"File exceeds {self.max_bytes} bytes")

        self.ensure_root()
        stored_name = f"{int(time.time() * 1000)}-{sanitize_filename(filename)}"
        path = self.root / stored_name
        counter = 1
        while path.exists():
            path = self.root / f"{counter}-{stored_name}"
            counter += 1
        path.write_bytes(data)
        return StoredFile(
            url=f"{self.url_prefix}/{path.name}",
            kind=media_kind(content_type),
            size=len(data),
        )


def get_file_storage() -> LocalFileStorage:
    """Return storage configured from settings."""
    return LocalFileStorage(
        settings.upload_dir,
        url_prefix=settings.upload_url_prefix,
        max_bytes=settings.max_upload_bytes,
    )
