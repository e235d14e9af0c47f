"""Tests for ResultPageAssembler."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from quizarchive.errors import GENERIC_ERROR, StoreError
from quizarchive.models import ExamDocument, FilterSpec, Ordering, Predicate, RequestRecord
from quizarchive.query.pages import ResultPageAssembler
from quizarchive.store.storage import SQLiteStore


@pytest.fixture
def store(tmp_path):
    store = SQLiteStore(tmp_path / "pages.db")
    yield store
    store.close()


def _add_exam(store, **overrides):
    record = {
        "school": "NYU",
        "subject": "Calculus",
        "professor": "N/A",
        "year": 2021,
        "semester": "Fall",
        "course_code": "MATH-101",
        "title": "Quiz",
        "file_link": "/files/quizData/x.pdf",
        "description": "Not Provided",
        "assessment_type": "Quiz",
    }
    record.update(overrides)
    return store.insert("exams", record)


def _add_request(store, **overrides):
    record = {
        "title": "Need final",
        "school": "NYU",
        "subject": "Physics",
        "course_code": None,
        "professor": None,
        "year": 2020,
        "upvotes": 0,
    }
    record.update(overrides)
    return store.insert("requests", record)


class TestExamPage:
    """Browse-results listing."""

    def test_end_to_end_filter(self, store) -> None:
        _add_exam(store, title="old", year=2019)
        _add_exam(store, title="a", year=2020)
        _add_exam(store, title="b", year=2022, school="nyu Shanghai")
        _add_exam(store, title="c", year=2023)
        _add_exam(store, title="d", year=2021, school="MIT")

        page = ResultPageAssembler(store, page_limit=10).exam_page(
            FilterSpec.from_params({"school": "NYU", "yearStart": "2020", "yearEnd": "2022"})
        )

        assert [exam.title for exam in page.items] == ["b", "a"]
        assert all(isinstance(exam, ExamDocument) for exam in page.items)
        assert page.has_next_page is False
        assert page.notices == []

    def test_oldest_first(self, store) -> None:
        for title in ("first", "second", "third"):
            _add_exam(store, title=title)

        page = ResultPageAssembler(store).exam_page(FilterSpec(sorting="oldest"))

        assert [exam.title for exam in page.items] == ["first", "second", "third"]

    def test_has_next_page_iff_full_page(self, store) -> None:
        for i in range(5):
            _add_exam(store, title=f"q{i}")
        assembler = ResultPageAssembler(store, page_limit=2)

        first = assembler.exam_page(FilterSpec(page_number=1))
        third = assembler.exam_page(FilterSpec(page_number=3))

        assert [exam.title for exam in first.items] == ["q4", "q3"]
        assert first.has_next_page is True
        assert [exam.title for exam in third.items] == ["q0"]
        assert third.has_next_page is False

    def test_exact_multiple_reports_next_page(self, store) -> None:
        for i in range(4):
            _add_exam(store, title=f"q{i}")

        page = ResultPageAssembler(store, page_limit=2).exam_page(FilterSpec(page_number=2))

        assert len(page.items) == 2
        assert page.has_next_page is True

    def test_invalid_page_number_is_clamped(self, store) -> None:
        _add_exam(store, title="only")

        page = ResultPageAssembler(store).exam_page(FilterSpec(page_number=-2))

        assert page.page_number == 1
        assert [exam.title for exam in page.items] == ["only"]

    def test_oversized_page_number_returns_generic_notice(self, store) -> None:
        _add_exam(store, title="only")

        page = ResultPageAssembler(store).exam_page(
            FilterSpec.from_params({"pageNumber": "99999999999999999999"})
        )

        assert page.items == []
        assert page.has_next_page is False
        assert [n.message for n in page.notices] == [GENERIC_ERROR]

    def test_store_error_returns_empty_page(self) -> None:
        failing = MagicMock()
        failing.select.side_effect = StoreError("connection reset by peer")

        page = ResultPageAssembler(failing).exam_page(FilterSpec(school="NYU"))

        assert page.items == []
        assert page.has_next_page is False
        assert [n.message for n in page.notices] == [GENERIC_ERROR]
        assert "connection reset" not in page.notices[0].message

    def test_window_passed_to_store(self) -> None:
        mock_store = MagicMock()
        mock_store.select.return_value = []

        ResultPageAssembler(mock_store, page_limit=10).exam_page(FilterSpec(page_number=3))

        mock_store.select.assert_called_once_with(
            "exams",
            [],
            Ordering("created_at", ascending=False),
            range_start=20,
            range_end=29,
            limit=10,
        )

    def test_overlong_store_result_is_capped(self) -> None:
        mock_store = MagicMock()
        row = _exam_row_stub()
        mock_store.select.return_value = [dict(row, id=i) for i in range(12)]

        page = ResultPageAssembler(mock_store, page_limit=10).exam_page(FilterSpec())

        assert len(page.items) == 10
        assert page.has_next_page is True


def _exam_row_stub():
    return {
        "id": 1,
        "created_at": "2025-01-01T00:00:00.000Z",
        "school": "NYU",
        "subject": "Calculus",
        "professor": "N/A",
        "year": 2021,
        "semester": "Fall",
        "course_code": "MATH-101",
        "title": "Quiz",
        "file_link": "/files/x.pdf",
        "description": "Not Provided",
        "assessment_type": "Quiz",
    }


class TestRequestPage:
    """Request listing."""

    def test_fast_path_issues_no_predicates(self) -> None:
        mock_store = MagicMock()
        mock_store.select.return_value = []

        ResultPageAssembler(mock_store).request_page(FilterSpec(page_number=2, sorting="upvotes"))

        args = mock_store.select.call_args
        assert args[0][0] == "requests"
        assert args[0][1] == []
        assert args[0][2] == Ordering("upvotes", ascending=False)
        assert args[1]["range_start"] == 10

    def test_fuzzy_year_filter(self, store) -> None:
        for year in (2018, 2019, 2020, 2021, 2022):
            _add_request(store, title=str(year), year=year)

        page = ResultPageAssembler(store, current_year=2025).request_page(FilterSpec(year=2020))

        assert sorted(r.title for r in page.items) == ["2019", "2020", "2021"]
        assert all(isinstance(r, RequestRecord) for r in page.items)

    def test_fuzzy_year_predicates(self) -> None:
        mock_store = MagicMock()
        mock_store.select.return_value = []

        ResultPageAssembler(mock_store, current_year=2025).request_page(
            FilterSpec(school="NYU", year=2025)
        )

        assert mock_store.select.call_args[0][1] == [
            Predicate("school", "ilike", "%NYU%"),
            Predicate("year", "gte", 2024),
            Predicate("year", "lte", 2025),
        ]

    def test_sort_by_upvotes(self, store) -> None:
        _add_request(store, title="few", upvotes=1)
        _add_request(store, title="many", upvotes=9)
        _add_request(store, title="some", upvotes=4)

        page = ResultPageAssembler(store).request_page(FilterSpec(sorting="upvotes"))

        assert [r.title for r in page.items] == ["many", "some", "few"]

    def test_oversized_year_returns_generic_notice(self, store) -> None:
        _add_request(store, title="few", upvotes=1)

        page = ResultPageAssembler(store).request_page(
            FilterSpec.from_params({"year": "99999999999999999999"})
        )

        assert page.items == []
        assert [n.message for n in page.notices] == [GENERIC_ERROR]

    def test_store_error_returns_empty_page(self) -> None:
        failing = MagicMock()
        failing.select.side_effect = StoreError("boom")

        page = ResultPageAssembler(failing).request_page(FilterSpec())

        assert page.items == []
        assert page.notices[0].level == "error"
