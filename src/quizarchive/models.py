"""Core QuizArchive data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Dict, List, Literal, Mapping, Optional

NoticeLevel = Literal["success", "warning", "error"]

# Wire (query-string) names that differ from attribute names.
_PARAM_ALIASES = {
    "courseCode": "course_code",
    "yearStart": "year_start",
    "yearEnd": "year_end",
    "pageNumber": "page_number",
}


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _clean_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


@dataclass(slots=True)
class ExamDocument:
    """An uploaded quiz or exam."""

    id: int
    created_at: str
    school: str
    subject: str
    professor: str
    year: Optional[int]
    semester: str
    course_code: str
    title: str
    file_link: str
    description: str
    assessment_type: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ExamDocument":
        return cls(
            id=row["id"],
            created_at=row["created_at"],
            school=row["school"],
            subject=row["subject"],
            professor=row["professor"],
            year=row["year"],
            semester=row["semester"],
            course_code=row["course_code"],
            title=row["title"],
            file_link=row["file_link"],
            description=row["description"],
            assessment_type=row["assessment_type"],
        )


@dataclass(slots=True)
class RequestRecord:
    """A community request for an exam nobody has uploaded yet."""

    id: int
    created_at: str
    title: str
    school: str
    subject: str
    course_code: Optional[str]
    professor: Optional[str]
    year: Optional[int]
    semester: Optional[str]
    upvotes: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "RequestRecord":
        return cls(
            id=row["id"],
            created_at=row["created_at"],
            title=row["title"],
            school=row["school"],
            subject=row["subject"],
            course_code=row["course_code"],
            professor=row["professor"],
            year=row["year"],
            semester=row["semester"],
            upvotes=row["upvotes"],
        )


@dataclass(slots=True)
class Tag:
    id: int
    name: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Tag":
        return cls(id=row["id"], name=row["name"])


@dataclass(slots=True)
class TagLink:
    """Join row binding a tag to an exam."""

    id: int
    created_at: str
    exam_id: int
    tag_id: int

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TagLink":
        return cls(
            id=row["id"],
            created_at=row["created_at"],
            exam_id=row["exam_id"],
            tag_id=row["tag_id"],
        )


@dataclass(slots=True)
class FilterSpec:
    """Sparse set of search inputs plus paging and sort tokens.

    Built per request from query-string parameters and thrown away once the
    query has been issued.
    """

    school: Optional[str] = None
    subject: Optional[str] = None
    course_code: Optional[str] = None
    professor: Optional[str] = None
    year: Optional[int] = None
    year_start: Optional[int] = None
    year_end: Optional[int] = None
    page_number: int = 1
    sorting: str = "newest"

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "FilterSpec":
        values = {_PARAM_ALIASES.get(key, key): value for key, value in params.items()}
        page_number = _clean_int(values.get("page_number"))
        return cls(
            school=_clean_text(values.get("school")),
            subject=_clean_text(values.get("subject")),
            course_code=_clean_text(values.get("course_code")),
            professor=_clean_text(values.get("professor")),
            year=_clean_int(values.get("year")),
            year_start=_clean_int(values.get("year_start")),
            year_end=_clean_int(values.get("year_end")),
            page_number=page_number if page_number is not None else 1,
            sorting=_clean_text(values.get("sorting")) or "newest",
        )


@dataclass(frozen=True, slots=True)
class Predicate:
    """A single field-level condition; ``op`` is one of ilike, eq, gte, lte."""

    field: str
    op: str
    value: Any


@dataclass(frozen=True, slots=True)
class Ordering:
    field: str
    ascending: bool


@dataclass(slots=True)
class Notice:
    """User-facing notification."""

    level: NoticeLevel
    message: str


@dataclass(slots=True)
class ResultPage:
    """One page of records plus whether a following page may exist."""

    items: List[Any]
    has_next_page: bool
    page_number: int = 1
    notices: List[Notice] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [asdict(item) if is_dataclass(item) else item for item in self.items],
            "hasNextPage": self.has_next_page,
            "pageNumber": self.page_number,
            "notices": [{"level": n.level, "message": n.message} for n in self.notices],
        }
