"""Validated submission forms for uploads and requests."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from quizarchive.errors import ValidationError

ASSESSMENT_TYPES = ("Quiz", "Midterm", "Final", "Homework", "Practice", "Other")
MAX_TAGS = 3
NOT_APPLICABLE = "N/A"
NOT_PROVIDED = "Not Provided"

FormT = TypeVar("FormT", bound="_Form")


def _min_length(value: str, minimum: int, message: str) -> str:
    if len(value) < minimum:
        raise PydanticCustomError("min_length", message)
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class _Form(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    @field_validator("year", mode="before", check_fields=False)
    @classmethod
    def _blank_year(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("year", check_fields=False)
    @classmethod
    def _year_in_range(cls, value: Optional[int]) -> Optional[int]:
        if value is None:
            return value
        current = date.today().year
        if not 2000 <= value <= current:
            raise PydanticCustomError(
                "year_range", "Year must be between 2000 and {current}.", {"current": current}
            )
        return value


class ExamUploadForm(_Form):
    school: str
    subject: str
    title: str
    professor: Optional[str] = None
    year: Optional[int] = None
    semester: Optional[str] = None
    course_code: Optional[str] = None
    description: Optional[str] = None
    assessment_type: Optional[str] = None
    tags: List[str] = []

    @field_validator("school")
    @classmethod
    def _school(cls, value: str) -> str:
        return _min_length(value, 3, "School must be at least 3 characters long.")

    @field_validator("subject")
    @classmethod
    def _subject(cls, value: str) -> str:
        return _min_length(value, 3, "Subject must be at least 3 characters long.")

    @field_validator("title")
    @classmethod
    def _title(cls, value: str) -> str:
        return _min_length(value, 3, "Please provide a better quiz title.")

    @field_validator("professor", "semester", "course_code", "description", "assessment_type", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("assessment_type")
    @classmethod
    def _known_type(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in ASSESSMENT_TYPES:
            raise PydanticCustomError(
                "assessment_type", "Type must be one of: {types}.", {"types": ", ".join(ASSESSMENT_TYPES)}
            )
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [str(label).strip() for label in value if str(label).strip()]

    @field_validator("tags")
    @classmethod
    def _tag_limit(cls, value: List[str]) -> List[str]:
        if len(value) > MAX_TAGS:
            raise PydanticCustomError(
                "too_many_tags", "You can add at most {limit} tags.", {"limit": MAX_TAGS}
            )
        return value

    def to_record(self, file_link: str) -> Dict[str, Any]:
        """Row for the ``exams`` collection, with display defaults filled in."""
        return {
            "school": self.school,
            "subject": self.subject,
            "professor": self.professor or NOT_APPLICABLE,
            "year": self.year,
            "semester": self.semester or NOT_APPLICABLE,
            "course_code": self.course_code or NOT_APPLICABLE,
            "title": self.title,
            "file_link": file_link,
            "description": self.description or NOT_PROVIDED,
            "assessment_type": self.assessment_type or NOT_APPLICABLE,
        }


class RequestForm(_Form):
    title: str
    school: str
    subject: str
    course_code: Optional[str] = None
    professor: Optional[str] = None
    year: Optional[int] = None

    @field_validator("title")
    @classmethod
    def _title(cls, value: str) -> str:
        return _min_length(value, 3, "Title must be at least 3 characters long.")

    @field_validator("school")
    @classmethod
    def _school(cls, value: str) -> str:
        return _min_length(value, 2, "School must be at least 2 characters long.")

    @field_validator("subject")
    @classmethod
    def _subject(cls, value: str) -> str:
        return _min_length(value, 3, "Subject must be at least 3 characters long.")

    @field_validator("course_code", "professor", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Any:
        return _blank_to_none(value)

    def to_record(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "school": self.school,
            "subject": self.subject,
            "course_code": self.course_code,
            "professor": self.professor,
            "year": self.year,
            "upvotes": 0,
        }


def parse_form(form_class: Type[FormT], data: Mapping[str, Any]) -> FormT:
    """Validate ``data``, raising ValidationError with one message per field."""
    try:
        return form_class.model_validate(dict(data))
    except PydanticValidationError as exc:
        names = {info.alias or name: name for name, info in form_class.model_fields.items()}
        errors: Dict[str, str] = {}
        for error in exc.errors():
            key = str(error["loc"][0]) if error["loc"] else "__root__"
            errors.setdefault(names.get(key, key), error["msg"])
        raise ValidationError(errors) from exc
