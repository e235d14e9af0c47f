"""Local directory blob storage standing in for the hosted bucket service."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from quizarchive.errors import NotFoundError, StoreError
from quizarchive.utils.files import compute_sha256

LOGGER = logging.getLogger(__name__)


class LocalBlobStorage:
    """Stores uploads as files under ``root/<bucket>/<path>``."""

    def __init__(self, root: Path, *, base_url: str = "/files") -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _target(self, bucket: str, path: str) -> Path:
        bucket_dir = Path(os.path.realpath(self.root / bucket))
        target = Path(os.path.realpath(bucket_dir / path))
        if bucket_dir not in target.parents:
            raise StoreError(f"Invalid blob path: {path}")
        return target

    def upload_blob(self, bucket: str, path: str, data: bytes) -> str:
        """Write ``data`` to ``bucket/path`` and return the stored path.

        Existing blobs are never overwritten.
        """
        target = self._target(bucket, path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("xb") as handle:
                handle.write(data)
        except FileExistsError as exc:
            raise StoreError(f"Blob already exists: {bucket}/{path}") from exc
        except OSError as exc:
            raise StoreError(f"Unable to store blob {bucket}/{path}: {exc}") from exc
        LOGGER.info("Stored %s/%s (%d bytes, sha256 %s)", bucket, path, len(data), compute_sha256(data))
        return path

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/{bucket}/{path.lstrip('/')}"

    def locate(self, bucket: str, path: str) -> Path:
        """Filesystem location of a stored blob; raises NotFoundError if absent."""
        try:
            target = self._target(bucket, path)
        except StoreError as exc:
            raise NotFoundError(str(exc)) from exc
        if not target.is_file():
            raise NotFoundError(f"No blob at {bucket}/{path}")
        return target
