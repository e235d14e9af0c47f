"""Tests for TagResolver."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from quizarchive.catalog.tags import (
    TAG_CREATE_FAILED,
    TAG_FETCH_FAILED,
    TAG_LINK_FAILED,
    TAG_LINKS_FETCH_FAILED,
    TagResolver,
    tag_key,
)
from quizarchive.errors import MultipleResultsError, NotFoundError, StoreError
from quizarchive.models import Predicate, Tag
from quizarchive.store.storage import SQLiteStore


@pytest.fixture
def store(tmp_path):
    store = SQLiteStore(tmp_path / "tags.db")
    yield store
    store.close()


@pytest.fixture
def exam_id(store) -> int:
    row = store.insert(
        "exams",
        {
            "school": "NYU",
            "subject": "Calculus",
            "title": "Midterm",
            "file_link": "/files/x.pdf",
        },
    )
    return row["id"]


def _tag_count(store) -> int:
    return store.connection.execute("SELECT COUNT(*) FROM tags").fetchone()[0]


def _link_count(store) -> int:
    return store.connection.execute("SELECT COUNT(*) FROM exam_tags").fetchone()[0]


class TestTagKey:
    def test_case_and_whitespace_insensitive(self) -> None:
        assert tag_key("  MidTerm ") == tag_key("midterm")


class TestResolve:
    """Tests for TagResolver.resolve."""

    def test_creates_missing_tags(self, store) -> None:
        resolution = TagResolver(store).resolve(["midterm", "calculus"])

        assert len(resolution.tag_ids) == 2
        assert resolution.notices == []
        assert _tag_count(store) == 2

    def test_reuses_existing_tag_case_insensitively(self, store) -> None:
        existing = store.insert_if_absent(
            "tags", {"name": "Midterm", "name_key": "midterm"}, key="name_key"
        )

        resolution = TagResolver(store).resolve(["MIDTERM"])

        assert resolution.tag_ids == [existing["id"]]
        assert _tag_count(store) == 1

    def test_duplicate_label_in_one_batch_creates_one_tag(self, store) -> None:
        resolution = TagResolver(store).resolve(["midterm", "midterm"])

        assert _tag_count(store) == 1
        assert len(resolution.tag_ids) == 2
        assert resolution.tag_ids[0] == resolution.tag_ids[1]

    def test_matches_existing_tag_by_substring(self, store) -> None:
        existing = store.insert_if_absent(
            "tags", {"name": "Midterm", "name_key": "midterm"}, key="name_key"
        )

        resolution = TagResolver(store).resolve(["mid"])

        assert resolution.tag_ids == [existing["id"]]
        assert _tag_count(store) == 1

    def test_ambiguous_substring_creates_tag(self, store) -> None:
        store.insert_if_absent("tags", {"name": "Midterm", "name_key": "midterm"}, key="name_key")
        store.insert_if_absent("tags", {"name": "Midway", "name_key": "midway"}, key="name_key")

        resolution = TagResolver(store).resolve(["mid"])

        assert _tag_count(store) == 3
        created = store.select_single("tags", [Predicate("name_key", "eq", "mid")])
        assert resolution.tag_ids == [created["id"]]
        assert resolution.notices == []

    def test_ambiguous_substring_reuses_exact_tag(self, store) -> None:
        store.insert_if_absent("tags", {"name": "mid", "name_key": "mid"}, key="name_key")
        exact = store.select_single("tags", [Predicate("name_key", "eq", "mid")])
        store.insert_if_absent("tags", {"name": "Midterm", "name_key": "midterm"}, key="name_key")

        resolution = TagResolver(store).resolve(["MID"])

        assert resolution.tag_ids == [exact["id"]]
        assert _tag_count(store) == 2

    def test_wildcards_are_literal(self, store) -> None:
        store.insert_if_absent("tags", {"name": "midterm", "name_key": "midterm"}, key="name_key")

        TagResolver(store).resolve(["mid%"])

        assert _tag_count(store) == 2

    def test_blank_labels_skipped(self, store) -> None:
        assert TagResolver(store).resolve(["  ", ""]).tag_ids == []

    def test_creation_failure_is_warning_and_continues(self) -> None:
        mock_store = MagicMock()
        mock_store.select_single.side_effect = NotFoundError("none")
        mock_store.insert_if_absent.side_effect = [StoreError("disk full"), {"id": 8, "name": "b"}]

        resolution = TagResolver(mock_store).resolve(["a", "b"])

        assert resolution.tag_ids == [8]
        assert [n.message for n in resolution.notices] == [TAG_CREATE_FAILED]
        assert resolution.notices[0].level == "warning"

    def test_lookup_failure_is_warning(self) -> None:
        mock_store = MagicMock()
        mock_store.select_single.side_effect = [StoreError("boom"), {"id": 3, "name": "b"}]

        resolution = TagResolver(mock_store).resolve(["a", "b"])

        assert resolution.tag_ids == [3]
        mock_store.insert_if_absent.assert_not_called()
        assert len(resolution.notices) == 1

    def test_multiple_matches_fall_through_to_create(self) -> None:
        mock_store = MagicMock()
        mock_store.select_single.side_effect = MultipleResultsError("two rows")
        mock_store.insert_if_absent.return_value = {"id": 5, "name": "a"}

        resolution = TagResolver(mock_store).resolve(["a"])

        assert resolution.tag_ids == [5]
        assert resolution.notices == []

    def test_labels_resolved_sequentially(self) -> None:
        calls = []
        mock_store = MagicMock()

        def lookup(collection, filters):
            calls.append(("lookup", filters[0].value))
            raise NotFoundError("none")

        def create(collection, record, key):
            calls.append(("create", record["name"]))
            return {"id": len(calls), "name": record["name"]}

        mock_store.select_single.side_effect = lookup
        mock_store.insert_if_absent.side_effect = create

        TagResolver(mock_store).resolve(["a", "b"])

        assert calls == [("lookup", "%a%"), ("create", "a"), ("lookup", "%b%"), ("create", "b")]


class TestLink:
    """Tests for TagResolver.link and resolve_and_link."""

    def test_links_each_distinct_tag_once(self, store, exam_id) -> None:
        resolver = TagResolver(store)
        resolution = resolver.resolve_and_link(exam_id, ["midterm", "Midterm", "calculus"])

        assert resolution.notices == []
        assert _link_count(store) == 2

    def test_link_failure_does_not_roll_back(self) -> None:
        mock_store = MagicMock()
        mock_store.insert.side_effect = [{"id": 1}, StoreError("boom"), {"id": 3}]

        notices = TagResolver(mock_store).link(10, [1, 2, 3])

        assert mock_store.insert.call_count == 3
        assert [n.message for n in notices] == [TAG_LINK_FAILED]


class TestTagsFor:
    """Tests for the reverse lookup."""

    def test_returns_linked_tags_in_order(self, store, exam_id) -> None:
        resolver = TagResolver(store)
        resolver.resolve_and_link(exam_id, ["final", "algebra"])

        lookup = resolver.tags_for(exam_id)

        assert [tag.name for tag in lookup.tags] == ["final", "algebra"]
        assert all(isinstance(tag, Tag) for tag in lookup.tags)
        assert lookup.notices == []

    def test_exam_without_tags(self, store, exam_id) -> None:
        lookup = TagResolver(store).tags_for(exam_id)
        assert lookup.tags == []

    def test_failed_link_listing(self) -> None:
        mock_store = MagicMock()
        mock_store.select.side_effect = StoreError("boom")

        lookup = TagResolver(mock_store).tags_for(1)

        assert lookup.tags == []
        assert [n.message for n in lookup.notices] == [TAG_LINKS_FETCH_FAILED]

    def test_failed_tag_fetch_continues(self) -> None:
        mock_store = MagicMock()
        mock_store.select.return_value = [
            {"id": 1, "created_at": "t", "exam_id": 1, "tag_id": 5},
            {"id": 2, "created_at": "t", "exam_id": 1, "tag_id": 6},
            {"id": 3, "created_at": "t", "exam_id": 1, "tag_id": 7},
        ]
        mock_store.select_single.side_effect = [
            {"id": 5, "name": "a"},
            StoreError("boom"),
            {"id": 7, "name": "c"},
        ]

        lookup = TagResolver(mock_store).tags_for(1)

        assert [tag.name for tag in lookup.tags] == ["a", "c"]
        assert [n.message for n in lookup.notices] == [TAG_FETCH_FAILED]
