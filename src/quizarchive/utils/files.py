"""Utility helpers for working with uploaded files."""

from __future__ import annotations

import hashlib
import uuid

UPLOAD_FOLDER = "quizDataFiles"


def blob_extension(content_type: str | None) -> str:
    """Map an upload's MIME type to the extension it is stored under.

    Images keep their type; anything else is treated as a PDF.
    """
    kind = (content_type or "").lower()
    if kind.endswith("png"):
        return ".png"
    if kind.endswith("jpeg") or kind.endswith("jpg"):
        return ".jpg"
    return ".pdf"


def new_blob_path(content_type: str | None) -> str:
    """Return a fresh, collision-free storage path for an upload."""
    return f"{UPLOAD_FOLDER}/{uuid.uuid4()}{blob_extension(content_type)}"


def compute_sha256(data: bytes) -> str:
    """Compute SHA256 hash for an in-memory payload."""
    return hashlib.sha256(data).hexdigest()
