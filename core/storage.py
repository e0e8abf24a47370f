"""
Local file storage for resumes, education documents and company logos.

Files land under UPLOAD_DIR/<bucket>/<owner_id>/ and are served back through
/uploads/... by app.routes.uploads.
"""
from __future__ import annotations

import logging
import os
import re
import time
from pathlib import Path
from typing import Optional

from core.config import max_upload_bytes, upload_dir
from core.errors import StorageError

log = logging.getLogger("storage")

BUCKET_EXTENSIONS = {
    "resumes": {"pdf", "doc", "docx"},
    "documents": {"pdf", "doc", "docx", "png", "jpg", "jpeg"},
    "logos": {"png", "jpg", "jpeg", "gif", "webp"},
}
ALLOWED_FOLDERS = {"", "applications/", "education/", "profile/"}
URL_PREFIX = "/uploads"

_SAFE_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


def file_extension(filename: str) -> str:
    _, dot, ext = (filename or "").rpartition(".")
    return ext.lower() if dot else ""


def save_upload(bucket: str, owner_id: int, filename: str, data: bytes, folder: str = "") -> str:
    """
    Store an uploaded file and return its public URL.
    The stored name is <folder><epoch-ms>.<ext>; nothing but the extension comes from the client.
    """
    allowed = BUCKET_EXTENSIONS.get(bucket)
    if allowed is None:
        raise StorageError(f"Unknown storage bucket: {bucket}")
    if folder not in ALLOWED_FOLDERS:
        raise StorageError("Invalid upload folder.")

    ext = file_extension(filename)
    if ext not in allowed:
        raise StorageError(f"Unsupported file type. Allowed: {', '.join(sorted(allowed))}.")
    if not data:
        raise StorageError("The uploaded file is empty.")
    limit = max_upload_bytes()
    if len(data) > limit:
        raise StorageError(f"File is too large (max {limit // (1024 * 1024)} MB).")

    stored_name = f"{folder}{int(time.time() * 1000)}.{ext}"
    target = Path(upload_dir()) / bucket / str(int(owner_id)) / stored_name
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    log.info("Stored upload bucket=%s owner=%s name=%s bytes=%s", bucket, owner_id, stored_name, len(data))

    return f"{URL_PREFIX}/{bucket}/{int(owner_id)}/{stored_name}"


def resolve_upload_path(bucket: str, owner_id: str, name: str) -> Optional[Path]:
    """
    Map URL parts back to a file on disk. Returns None for unknown buckets,
    unsafe names, paths escaping the bucket, or missing files.
    """
    if bucket not in BUCKET_EXTENSIONS:
        return None
    if not str(owner_id).isdigit():
        return None
    parts = name.split("/")
    if len(parts) > 2 or not all(p and _SAFE_NAME.match(p) and p not in (".", "..") for p in parts):
        return None

    root = (Path(upload_dir()) / bucket).resolve()
    candidate = (root / owner_id / name).resolve()
    if root not in candidate.parents:
        return None
    if not candidate.is_file():
        return None
    return candidate


def delete_upload(url: str) -> bool:
    """Remove a stored file given its public URL; unknown URLs are ignored."""
    if not url or not url.startswith(URL_PREFIX + "/"):
        return False
    rest = url[len(URL_PREFIX) + 1:]
    pieces = rest.split("/", 2)
    if len(pieces) != 3:
        return False
    path = resolve_upload_path(*pieces)
    if path is None:
        return False
    os.remove(path)
    return True


__all__ = [
    "BUCKET_EXTENSIONS",
    "URL_PREFIX",
    "file_extension",
    "save_upload",
    "resolve_upload_path",
    "delete_upload",
]
