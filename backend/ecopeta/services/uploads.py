"""Files served under ``/uploads``. Only user avatars are stored today."""
import re
from pathlib import Path
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException, UploadFile, status

from ecopeta.core.config import UPLOADS_DIR

URL_PREFIX = "/uploads/"
AVATARS = "avatars"
AVATAR_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp"}
MAX_AVATAR_BYTES = 2 * 1024 * 1024
CHUNK_SIZE = 64 * 1024


def upload_dir(kind: str) -> Path:
    target = Path(UPLOADS_DIR) / kind
    target.mkdir(parents=True, exist_ok=True)
    return target


def safe_stem(filename: Optional[str], fallback: str = "avatar") -> str:
    stem = re.sub(r"[^a-zA-Z0-9_-]+", "_", Path(filename or "").stem).strip("_")
    return stem[:60] or fallback


def build_upload_url(relative_path: Optional[str]) -> Optional[str]:
    return f"{URL_PREFIX}{relative_path}" if relative_path else None


def relative_from_url(url: Optional[str]) -> Optional[str]:
    if not url or not url.startswith(URL_PREFIX):
        return None
    return url[len(URL_PREFIX):]


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def validate_avatar(upload: UploadFile) -> str:
    suffix = Path(upload.filename or "").suffix.lower()
    if suffix not in AVATAR_SUFFIXES:
        raise _bad_request("Avatar must be an image (.jpg, .jpeg, .png or .webp)")
    content_type = (upload.content_type or "").lower()
    if content_type and not content_type.startswith("image/"):
        raise _bad_request("Invalid file type for avatar")
    return suffix


def save_avatar(upload: UploadFile, user_id: int) -> str:
    """Store ``upload`` for ``user_id`` and return its path relative to the uploads root."""
    suffix = validate_avatar(upload)
    name = f"user_{user_id}_{uuid4().hex[:12]}_{safe_stem(upload.filename)}{suffix}"
    target = upload_dir(AVATARS) / name

    written = 0
    with target.open("wb") as buffer:
        for chunk in iter(lambda: upload.file.read(CHUNK_SIZE), b""):
            written += len(chunk)
            if written > MAX_AVATAR_BYTES:
                break
            buffer.write(chunk)
    if written > MAX_AVATAR_BYTES:
        target.unlink(missing_ok=True)
        raise _bad_request("Avatar must be 2 MB or smaller")
    return f"{AVATARS}/{name}"


def remove_upload(relative_path: Optional[str]) -> None:
    """Delete a stored avatar. Paths outside the avatars folder are ignored."""
    if not relative_path:
        return
    avatars = upload_dir(AVATARS).resolve()
    target = (Path(UPLOADS_DIR) / relative_path).resolve()
    if target.parent != avatars:
        return
    target.unlink(missing_ok=True)
