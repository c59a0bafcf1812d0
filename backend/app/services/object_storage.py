"""
Upload handling for profile images and resumes.

Incoming files are streamed to a temp file under UPLOAD_DIR/tmp with a hard size
cap, then handed to object storage. When STORAGE_UPLOAD_URL is configured the file
is PUT there over HTTP; otherwise it is kept under UPLOAD_DIR and served by the app
from /uploads. Callers only ever persist the returned URL.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

import httpx
from fastapi import UploadFile

from ..config import (
    PUBLIC_BASE_URL,
    STORAGE_API_KEY,
    STORAGE_PUBLIC_URL,
    STORAGE_TIMEOUT_S,
    STORAGE_UPLOAD_URL,
    UPLOAD_DIR,
)
from ..utils.error_handlers import FileUploadError, UpstreamError, ValidationError, get_error_message
from ..utils.validation import sanitize_filename

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1MB


@dataclass(frozen=True)
class UploadKind:
    field: str
    folder: str
    max_bytes: int
    extensions: frozenset[str] | None = None
    content_type_prefix: str | None = None


PROFILE_IMAGE = UploadKind(
    field="profileImage",
    folder="profile-images",
    max_bytes=3 * 1024 * 1024,
    content_type_prefix="image/",
)
RESUME = UploadKind(
    field="resume",
    folder="resumes",
    max_bytes=5 * 1024 * 1024,
    extensions=frozenset({".pdf", ".doc", ".docx"}),
)


def has_file(file: UploadFile | None) -> bool:
    return file is not None and bool(file.filename)


def validate_upload(file: UploadFile, kind: UploadKind) -> str:
    """Check the declared type before any bytes are read. Returns the file extension."""
    try:
        filename = sanitize_filename(Path(file.filename or "").name)
    except ValidationError:
        raise FileUploadError(get_error_message("invalid_file_type"))

    ext = Path(filename).suffix.lower()
    if kind.extensions is not None and ext not in kind.extensions:
        raise FileUploadError(
            f"{get_error_message('invalid_file_type')} {kind.field} must be one of: "
            f"{', '.join(sorted(kind.extensions))}"
        )
    if kind.content_type_prefix and not (file.content_type or "").startswith(kind.content_type_prefix):
        raise FileUploadError(f"{get_error_message('invalid_file_type')} {kind.field} must be an image")
    return ext


async def _spool(file: UploadFile, kind: UploadKind) -> Path:
    tmp_dir = Path(UPLOAD_DIR) / "tmp"
    tmp_dir.mkdir(parents=True, exist_ok=True)
    dest = tmp_dir / uuid4().hex

    size = 0
    try:
        with open(dest, "wb") as out:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > kind.max_bytes:
                    raise FileUploadError(
                        f"{get_error_message('file_too_large')} Max {kind.max_bytes // (1024 * 1024)}MB.",
                        status_code=413,
                    )
                out.write(chunk)
    except Exception:
        dest.unlink(missing_ok=True)
        raise
    finally:
        await file.close()

    if size == 0:
        dest.unlink(missing_ok=True)
        raise FileUploadError("Uploaded file is empty")
    return dest


async def _put_remote(key: str, path: Path, content_type: str | None) -> str:
    url = f"{STORAGE_UPLOAD_URL}/{key}"
    headers = {"Content-Type": content_type or "application/octet-stream"}
    if STORAGE_API_KEY:
        headers["Authorization"] = f"Bearer {STORAGE_API_KEY}"

    try:
        async with httpx.AsyncClient(timeout=STORAGE_TIMEOUT_S) as client:
            r = await client.put(url, content=path.read_bytes(), headers=headers)
    except httpx.HTTPError as e:
        logger.error("Storage upload of %s failed: %s", key, type(e).__name__)
        raise UpstreamError(get_error_message("upload_failed")) from e

    if r.status_code >= 400:
        logger.error("Storage upload of %s rejected: HTTP %s", key, r.status_code)
        raise UpstreamError(get_error_message("upload_failed"), details={"status_code": r.status_code})
    return f"{STORAGE_PUBLIC_URL}/{key}"


def _keep_local(key: str, path: Path) -> str:
    dest = Path(UPLOAD_DIR) / key
    dest.parent.mkdir(parents=True, exist_ok=True)
    os.replace(path, dest)
    return f"{PUBLIC_BASE_URL}/uploads/{key}"


async def store_upload(file: UploadFile, kind: UploadKind, owner_id: str) -> str:
    """Validate, buffer and store one upload; returns its public URL."""
    ext = validate_upload(file, kind)
    tmp_path = await _spool(file, kind)
    key = f"{kind.folder}/{owner_id}/{uuid4().hex}{ext}"

    try:
        if STORAGE_UPLOAD_URL:
            url = await _put_remote(key, tmp_path, file.content_type)
        else:
            url = _keep_local(key, tmp_path)
    finally:
        tmp_path.unlink(missing_ok=True)

    logger.info("Stored %s upload for %s at %s", kind.field, owner_id, key)
    return url
