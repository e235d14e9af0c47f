"""Find-or-create tag labels and bind them to exams."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from quizarchive.errors import MultipleResultsError, NotFoundError, StoreError
from quizarchive.models import Notice, Ordering, Predicate, Tag, TagLink
from quizarchive.query.filters import contains
from quizarchive.store.storage import Store

LOGGER = logging.getLogger(__name__)

TAG_CREATE_FAILED = "There was an error creating one of the quiz tags"
TAG_LINK_FAILED = "Failed to add one of the quiz tags to the quiz."
TAG_LINKS_FETCH_FAILED = "Failed to retrieve tags associated with this quiz."
TAG_FETCH_FAILED = "Failed fetching one of the quiz tags."


def tag_key(label: str) -> str:
    """Normalized form used for case-insensitive tag uniqueness."""
    return label.strip().casefold()


@dataclass(slots=True)
class TagResolution:
    tag_ids: List[int] = field(default_factory=list)
    notices: List[Notice] = field(default_factory=list)


@dataclass(slots=True)
class TagLookup:
    tags: List[Tag] = field(default_factory=list)
    notices: List[Notice] = field(default_factory=list)


class TagResolver:
    """Resolves free-text labels to tag ids and links them to exams.

    Every step is best effort: a failure on one label, link or tag is reported
    as a warning and the remaining ones are still processed. Nothing already
    written is rolled back.
    """

    def __init__(self, store: Store) -> None:
        self.store = store

    def _lookup(self, label: str) -> dict:
        return self.store.select_single("tags", [contains("name", label)])

    def resolve(self, labels: Iterable[str]) -> TagResolution:
        """Return one tag id per label, creating tags that do not exist yet."""
        resolution = TagResolution()
        for label in labels:
            label = label.strip()
            if not label:
                continue
            try:
                row = self._lookup(label)
            except (NotFoundError, MultipleResultsError):
                # zero or several tags contain the label
                try:
                    row = self.store.insert_if_absent(
                        "tags", {"name": label, "name_key": tag_key(label)}, key="name_key"
                    )
                except StoreError as exc:
                    LOGGER.warning("Could not create tag %r: %s", label, exc)
                    resolution.notices.append(Notice("warning", TAG_CREATE_FAILED))
                    continue
                LOGGER.debug("Tag %r stored with id %s", label, row["id"])
            except StoreError as exc:
                LOGGER.warning("Could not look up tag %r: %s", label, exc)
                resolution.notices.append(Notice("warning", TAG_CREATE_FAILED))
                continue
            resolution.tag_ids.append(row["id"])
        return resolution

    def link(self, exam_id: int, tag_ids: Iterable[int]) -> List[Notice]:
        """Create one exam/tag link per distinct tag id."""
        notices: List[Notice] = []
        for tag_id in dict.fromkeys(tag_ids):
            try:
                self.store.insert("exam_tags", {"exam_id": exam_id, "tag_id": tag_id})
            except StoreError as exc:
                LOGGER.warning("Could not link tag %s to exam %s: %s", tag_id, exam_id, exc)
                notices.append(Notice("warning", TAG_LINK_FAILED))
        return notices

    def resolve_and_link(self, exam_id: int, labels: Iterable[str]) -> TagResolution:
        resolution = self.resolve(labels)
        resolution.notices.extend(self.link(exam_id, resolution.tag_ids))
        return resolution

    def tags_for(self, exam_id: int) -> TagLookup:
        """Reverse lookup: every tag linked to ``exam_id``, in link order."""
        lookup = TagLookup()
        try:
            rows = self.store.select(
                "exam_tags",
                [Predicate("exam_id", "eq", exam_id)],
                ordering=Ordering("id", ascending=True),
            )
        except StoreError as exc:
            LOGGER.warning("Could not list tag links for exam %s: %s", exam_id, exc)
            lookup.notices.append(Notice("warning", TAG_LINKS_FETCH_FAILED))
            return lookup

        for link in (TagLink.from_row(row) for row in rows):
            try:
                row = self.store.select_single("tags", [Predicate("id", "eq", link.tag_id)])
            except StoreError as exc:
                LOGGER.warning("Could not fetch tag %s: %s", link.tag_id, exc)
                lookup.notices.append(Notice("warning", TAG_FETCH_FAILED))
                continue
            lookup.tags.append(Tag.from_row(row))
        return lookup
