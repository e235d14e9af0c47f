"""Exam requests: creation and upvoting."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from quizarchive.catalog.forms import RequestForm, parse_form
from quizarchive.models import RequestRecord, ResultPage
from quizarchive.store.storage import Store

LOGGER = logging.getLogger(__name__)

REQUEST_CREATED = "New quiz request created successfully."
UPVOTE_RECORDED = "Upvote recorded successfully."
UPVOTE_FAILED = "Could not record upvote. Please try again later."


@dataclass(slots=True)
class UpvoteResult:
    request_id: int
    upvotes: int


class RequestBoard:
    """Creates requests and records upvotes on them."""

    def __init__(self, store: Store) -> None:
        self.store = store

    def create(self, data: Mapping[str, Any] | RequestForm) -> RequestRecord:
        form = data if isinstance(data, RequestForm) else parse_form(RequestForm, data)
        row = self.store.insert("requests", form.to_record())
        LOGGER.info("Created request %s (%s)", row["id"], row["title"])
        return RequestRecord.from_row(row)

    def upvote(self, request_id: int, page: Optional[ResultPage] = None) -> UpvoteResult:
        """Add one upvote; the store applies the increment atomically.

        When the page currently on display is passed in, its copy of the request
        is updated in place so it can be redrawn without another query.
        """
        upvotes = self.store.increment("requests", request_id, "upvotes")
        if page is not None:
            for item in page.items:
                if isinstance(item, RequestRecord) and item.id == request_id:
                    item.upvotes = upvotes
        LOGGER.debug("Request %s now has %d upvotes", request_id, upvotes)
        return UpvoteResult(request_id=request_id, upvotes=upvotes)
