"""Sort token to ordering instruction mapping."""

from __future__ import annotations

from typing import Optional

from quizarchive.models import Ordering

NEWEST = Ordering(field="created_at", ascending=False)
OLDEST = Ordering(field="created_at", ascending=True)
MOST_UPVOTED = Ordering(field="upvotes", ascending=False)

SORT_TOKENS = ("newest", "oldest", "upvotes")


def select_ordering(token: Optional[str], *, allow_upvotes: bool = False) -> Ordering:
    """Map a sort token to an ordering.

    Unknown or missing tokens fall back to newest first. ``upvotes`` is only
    honoured for collections that carry an upvote counter.
    """
    if token == "oldest":
        return OLDEST
    if token == "upvotes" and allow_upvotes:
        return MOST_UPVOTED
    return NEWEST
