"""Exception hierarchy shared by the store, catalog and web layers."""

from __future__ import annotations

from typing import Dict

GENERIC_ERROR = "An error occurred. Please try again later."


class QuizArchiveError(Exception):
    """Base class for every error raised by QuizArchive."""


class StoreError(QuizArchiveError):
    """A call against the record store or blob storage failed."""


class NotFoundError(StoreError):
    """A single-row lookup matched nothing."""


class MultipleResultsError(StoreError):
    """A single-row lookup matched more than one row."""


class ValidationError(QuizArchiveError):
    """User input was rejected before any store call was made."""

    def __init__(self, errors: Dict[str, str]) -> None:
        self.errors = dict(errors)
        summary = "; ".join(f"{field}: {message}" for field, message in self.errors.items())
        super().__init__(summary or "Invalid input")
