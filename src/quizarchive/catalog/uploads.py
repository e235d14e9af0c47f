"""Exam upload pipeline and detail lookups."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from quizarchive.catalog.forms import ExamUploadForm, parse_form
from quizarchive.catalog.tags import TagResolver
from quizarchive.errors import ValidationError
from quizarchive.models import ExamDocument, Notice, Predicate, Tag
from quizarchive.store.blobs import LocalBlobStorage
from quizarchive.store.storage import Store
from quizarchive.utils.files import new_blob_path

LOGGER = logging.getLogger(__name__)

EXAM_BUCKET = "quizData"
UPLOAD_SUCCESS = "Your quiz was uploaded successfully."
MISSING_FILE = "You must upload at least one file"


@dataclass(slots=True)
class UploadResult:
    exam: ExamDocument
    notices: List[Notice] = field(default_factory=list)


@dataclass(slots=True)
class ExamDetail:
    exam: ExamDocument
    tags: List[Tag] = field(default_factory=list)
    notices: List[Notice] = field(default_factory=list)


class ExamUploader:
    """Coordinates file storage, exam creation and tagging."""

    def __init__(self, store: Store, blobs: LocalBlobStorage, resolver: TagResolver) -> None:
        self.store = store
        self.blobs = blobs
        self.resolver = resolver

    def upload(
        self,
        data: Mapping[str, Any] | ExamUploadForm,
        content: Optional[bytes],
        content_type: Optional[str] = None,
    ) -> UploadResult:
        """Store the file, create the exam, then tag it.

        Raises ValidationError before touching the store when the form or the
        file is missing, and StoreError when the file or the exam cannot be
        saved. Tagging problems only produce warnings.
        """
        form = data if isinstance(data, ExamUploadForm) else parse_form(ExamUploadForm, data)
        if not content:
            raise ValidationError({"file": MISSING_FILE})

        path = self.blobs.upload_blob(EXAM_BUCKET, new_blob_path(content_type), content)
        file_link = self.blobs.public_url(EXAM_BUCKET, path)

        row = self.store.insert("exams", form.to_record(file_link))
        exam = ExamDocument.from_row(row)
        LOGGER.info("Created exam %s (%s)", exam.id, exam.title)

        notices = [Notice("success", UPLOAD_SUCCESS)]
        if form.tags:
            resolution = self.resolver.resolve_and_link(exam.id, form.tags)
            notices.extend(resolution.notices)
        return UploadResult(exam=exam, notices=notices)


class ExamCatalog:
    """Read access to single exams together with their tags."""

    def __init__(self, store: Store, resolver: TagResolver) -> None:
        self.store = store
        self.resolver = resolver

    def get(self, exam_id: int) -> ExamDetail:
        """Raises NotFoundError for unknown ids and StoreError on failures."""
        row = self.store.select_single("exams", [Predicate("id", "eq", exam_id)])
        lookup = self.resolver.tags_for(exam_id)
        return ExamDetail(exam=ExamDocument.from_row(row), tags=lookup.tags, notices=lookup.notices)
