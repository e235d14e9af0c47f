"""Tests for upload file helpers."""

from __future__ import annotations

import hashlib
import re

import pytest

from quizarchive.utils.files import UPLOAD_FOLDER, blob_extension, compute_sha256, new_blob_path


class TestBlobExtension:
    """Tests for blob_extension."""

    @pytest.mark.parametrize(
        ("content_type", "expected"),
        [
            ("image/png", ".png"),
            ("image/jpeg", ".jpg"),
            ("image/jpg", ".jpg"),
            ("application/pdf", ".pdf"),
            ("text/plain", ".pdf"),
            (None, ".pdf"),
            ("", ".pdf"),
        ],
    )
    def test_extension(self, content_type, expected) -> None:
        assert blob_extension(content_type) == expected


class TestNewBlobPath:
    """Tests for new_blob_path."""

    def test_path_layout(self) -> None:
        path = new_blob_path("image/png")
        assert re.fullmatch(rf"{UPLOAD_FOLDER}/[0-9a-f\-]{{36}}\.png", path)

    def test_paths_are_unique(self) -> None:
        assert new_blob_path(None) != new_blob_path(None)


class TestComputeSha256:
    """Tests for compute_sha256."""

    def test_known_payload(self) -> None:
        assert compute_sha256(b"hello") == hashlib.sha256(b"hello").hexdigest()

    def test_empty_payload(self) -> None:
        assert compute_sha256(b"") == hashlib.sha256(b"").hexdigest()
