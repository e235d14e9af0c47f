"""Assemble filtered, sorted and paginated listings."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from quizarchive.errors import GENERIC_ERROR, StoreError
from quizarchive.models import (
    ExamDocument,
    FilterSpec,
    Notice,
    Ordering,
    Predicate,
    RequestRecord,
    ResultPage,
)
from quizarchive.query.filters import (
    YEAR_EPOCH,
    build_exam_predicates,
    build_request_predicates,
    has_search_fields,
)
from quizarchive.query.paging import DEFAULT_PAGE_LIMIT, normalize_page_number, range_window
from quizarchive.query.sorting import select_ordering
from quizarchive.store.storage import Store

LOGGER = logging.getLogger(__name__)


class ResultPageAssembler:
    """Runs one query per page view against the store."""

    def __init__(
        self,
        store: Store,
        *,
        page_limit: int = DEFAULT_PAGE_LIMIT,
        current_year: Optional[int] = None,
        year_epoch: int = YEAR_EPOCH,
    ) -> None:
        self.store = store
        self.page_limit = page_limit
        self.current_year = current_year
        self.year_epoch = year_epoch

    def exam_page(self, spec: FilterSpec) -> ResultPage:
        """Browse results: substring filters plus optional year bounds."""
        return self._run(
            "exams",
            build_exam_predicates(spec),
            select_ordering(spec.sorting),
            spec.page_number,
            ExamDocument.from_row,
        )

    def request_page(self, spec: FilterSpec) -> ResultPage:
        """Request listing; without search fields it is simply the latest requests."""
        if has_search_fields(spec):
            predicates = build_request_predicates(
                spec, self.current_year, epoch=self.year_epoch
            )
        else:
            predicates = []
        return self._run(
            "requests",
            predicates,
            select_ordering(spec.sorting, allow_upvotes=True),
            spec.page_number,
            RequestRecord.from_row,
        )

    def _run(
        self,
        collection: str,
        predicates: Sequence[Predicate],
        ordering: Ordering,
        page_number: int,
        convert: Callable[[dict], object],
    ) -> ResultPage:
        page_number = normalize_page_number(page_number)
        start, end = range_window(page_number, self.page_limit)
        try:
            rows = self.store.select(
                collection,
                predicates,
                ordering,
                range_start=start,
                range_end=end,
                limit=self.page_limit,
            )
        except StoreError as exc:
            LOGGER.error("Listing %s failed: %s", collection, exc)
            return ResultPage(
                items=[],
                has_next_page=False,
                page_number=page_number,
                notices=[Notice("error", GENERIC_ERROR)],
            )

        items: List[object] = [convert(row) for row in rows[: self.page_limit]]
        return ResultPage(
            items=items,
            has_next_page=len(items) == self.page_limit,
            page_number=page_number,
        )
