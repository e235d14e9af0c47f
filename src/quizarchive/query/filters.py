"""Translate a FilterSpec into store predicates."""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional

from quizarchive.models import FilterSpec, Predicate

YEAR_EPOCH = 2000

# Fields matched as case-insensitive substrings, in the order predicates are emitted.
SUBSTRING_FIELDS = ("school", "subject", "course_code", "professor")

# Request listings fall back to "most recent" when none of these is set.
REQUEST_SEARCH_FIELDS = SUBSTRING_FIELDS + ("year",)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input is matched literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains(field: str, value: str) -> Predicate:
    return Predicate(field, "ilike", f"%{escape_like(value)}%")


def fuzzy_year_bounds(
    year: int, current_year: Optional[int] = None, *, epoch: int = YEAR_EPOCH
) -> tuple[int, int]:
    """Widen a requested year by one on each side.

    The lower bound is not widened at or below ``epoch`` and the upper bound
    never reaches past ``current_year``.
    """
    if current_year is None:
        current_year = date.today().year
    lower = year - 1 if year > epoch else year
    upper = year + 1 if year < current_year else year
    return lower, upper


def has_search_fields(spec: FilterSpec, fields: Iterable[str] = REQUEST_SEARCH_FIELDS) -> bool:
    return any(getattr(spec, name) not in (None, "") for name in fields)


def _substring_predicates(spec: FilterSpec) -> List[Predicate]:
    predicates: List[Predicate] = []
    for name in SUBSTRING_FIELDS:
        value = getattr(spec, name)
        if value:
            predicates.append(contains(name, value))
    return predicates


def build_exam_predicates(spec: FilterSpec) -> List[Predicate]:
    """Predicates for the browse-results listing (independent year bounds)."""
    predicates = _substring_predicates(spec)
    if spec.year_start is not None:
        predicates.append(Predicate("year", "gte", spec.year_start))
    if spec.year_end is not None:
        predicates.append(Predicate("year", "lte", spec.year_end))
    return predicates


def build_request_predicates(
    spec: FilterSpec, current_year: Optional[int] = None, *, epoch: int = YEAR_EPOCH
) -> List[Predicate]:
    """Predicates for the request listing (single year, fuzzy matched)."""
    predicates = _substring_predicates(spec)
    if spec.year is not None:
        lower, upper = fuzzy_year_bounds(spec.year, current_year, epoch=epoch)
        predicates.append(Predicate("year", "gte", lower))
        predicates.append(Predicate("year", "lte", upper))
    return predicates
