from datetime import datetime
from typing import Any, List, Optional

from bson import ObjectId
from fastapi import Query
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from errors import ValidationFailed
from models import (ANNOUNCEMENT_TYPES, AUTHOR_ROLES, PRIORITIES, QUIZ_TYPES,
                    to_utc_naive, utcnow)

SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "title": "title",
    "dueDate": "due_date",
}

# skip is sent to the server as a 64-bit integer
MAX_SKIP = 2 ** 63 - 1


def _text(value: Optional[str], empty_message: str) -> str:
    if value is None or not value.strip():
        raise ValueError(empty_message)
    return value.strip()


def _length(value: str, low: int, high: int, message: str) -> str:
    if not low <= len(value) <= high:
        raise ValueError(message)
    return value


def _one_of(value: Optional[str], choices, label: str) -> str:
    if value not in choices:
        raise ValueError(f"{label} must be one of: {', '.join(choices)}")
    return value


def _optional_text(value: Optional[str], max_length: int, message: str) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if len(value) > max_length:
        raise ValueError(message)
    return value


def parse_due_date(value: Any) -> datetime:
    """ISO-8601 string, strictly after now. Naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValueError("Due date must be a valid date")
    else:
        raise ValueError("Due date must be a valid date")
    parsed = to_utc_naive(parsed)
    if parsed <= utcnow():
        raise ValueError("Due date must be in the future")
    return parsed


def check_object_id(value: str) -> str:
    if not ObjectId.is_valid(value):
        raise ValueError("Invalid id format")
    return value


class RequestBody(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


# Announcements

class AuthorIn(RequestBody):
    name: Optional[str] = Field(default=None, validate_default=True)
    avatar: Optional[str] = None
    role: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("name")
    @classmethod
    def name_present(cls, v):
        return _text(v, "Author name is required")

    @field_validator("role")
    @classmethod
    def role_known(cls, v):
        return _one_of(v, AUTHOR_ROLES, "Author role")


class AnnouncementBase(RequestBody):
    subject: Optional[str] = None
    priority: Optional[str] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")

    @field_validator("subject")
    @classmethod
    def subject_length(cls, v):
        return _optional_text(v, 100, "Subject cannot exceed 100 characters")

    @field_validator("priority")
    @classmethod
    def priority_known(cls, v):
        if v is None:
            return None
        return _one_of(v, PRIORITIES, "Priority")


class AnnouncementCreate(AnnouncementBase):
    title: Optional[str] = Field(default=None, validate_default=True)
    content: Optional[str] = Field(default=None, validate_default=True)
    course: Optional[str] = Field(default=None, validate_default=True)
    type: Optional[str] = Field(default=None, validate_default=True)
    author: Optional[AuthorIn] = Field(default=None, validate_default=True)

    @field_validator("title")
    @classmethod
    def title_valid(cls, v):
        return _length(_text(v, "Title is required"), 3, 100,
                       "Title must be between 3 and 100 characters")

    @field_validator("content")
    @classmethod
    def content_valid(cls, v):
        return _length(_text(v, "Content is required"), 10, 2000,
                       "Content must be between 10 and 2000 characters")

    @field_validator("course")
    @classmethod
    def course_valid(cls, v):
        return _length(_text(v, "Course is required"), 1, 100,
                       "Course cannot exceed 100 characters")

    @field_validator("type")
    @classmethod
    def type_known(cls, v):
        return _one_of(v, ANNOUNCEMENT_TYPES, "Type")

    @field_validator("author")
    @classmethod
    def author_present(cls, v):
        if v is None:
            raise ValueError("Author is required")
        return v


class AnnouncementUpdate(AnnouncementBase):
    title: Optional[str] = None
    content: Optional[str] = None
    course: Optional[str] = None
    type: Optional[str] = None
    author: Optional[AuthorIn] = None

    @field_validator("title")
    @classmethod
    def title_valid(cls, v):
        return _length(_text(v, "Title cannot be empty"), 3, 100,
                       "Title must be between 3 and 100 characters")

    @field_validator("content")
    @classmethod
    def content_valid(cls, v):
        return _length(_text(v, "Content cannot be empty"), 10, 2000,
                       "Content must be between 10 and 2000 characters")

    @field_validator("course")
    @classmethod
    def course_valid(cls, v):
        return _length(_text(v, "Course cannot be empty"), 1, 100,
                       "Course cannot exceed 100 characters")

    @field_validator("type")
    @classmethod
    def type_known(cls, v):
        return _one_of(v, ANNOUNCEMENT_TYPES, "Type")

    @field_validator("author")
    @classmethod
    def author_not_null(cls, v):
        if v is None:
            raise ValueError("Author cannot be empty")
        return v


# Quizzes

class QuestionIn(RequestBody):
    question: Optional[str] = Field(default=None, validate_default=True)
    options: Optional[List[str]] = Field(default=None, validate_default=True)
    correct_answer: Optional[int] = Field(default=None, alias="correctAnswer", validate_default=True)

    @field_validator("question")
    @classmethod
    def question_present(cls, v):
        return _text(v, "Question text is required")

    @field_validator("options")
    @classmethod
    def options_count(cls, v):
        if v is None or not 2 <= len(v) <= 6:
            raise ValueError("Each question must have 2-6 options")
        return [option.strip() for option in v]

    @field_validator("correct_answer")
    @classmethod
    def correct_answer_index(cls, v):
        if v is None or v < 0:
            raise ValueError("Correct answer must be a valid option index")
        return v

    @model_validator(mode="after")
    def correct_answer_in_options(self):
        if self.correct_answer >= len(self.options):
            raise ValueError("Correct answer must be a valid option index")
        return self


class QuizBase(RequestBody):
    duration: Optional[int] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")
    instructions: Optional[str] = None

    @field_validator("duration")
    @classmethod
    def duration_range(cls, v):
        if v is not None and not 1 <= v <= 480:
            raise ValueError("Duration must be between 1 and 480 minutes")
        return v

    @field_validator("instructions")
    @classmethod
    def instructions_length(cls, v):
        return _optional_text(v, 1000, "Instructions cannot exceed 1000 characters")


def _questions(v, message="Quiz must have at least one question"):
    if not v:
        raise ValueError(message)
    return v


def _total_points(v, missing_message):
    if v is None:
        raise ValueError(missing_message)
    if not 1 <= v <= 1000:
        raise ValueError("Total points must be between 1 and 1000")
    return v


class QuizCreate(QuizBase):
    title: Optional[str] = Field(default=None, validate_default=True)
    description: Optional[str] = Field(default=None, validate_default=True)
    course: Optional[str] = Field(default=None, validate_default=True)
    subject: Optional[str] = Field(default=None, validate_default=True)
    topic: Optional[str] = Field(default=None, validate_default=True)
    type: str = "quiz"
    due_date: Any = Field(default=None, alias="dueDate", validate_default=True)
    total_points: Optional[int] = Field(default=None, alias="totalPoints", validate_default=True)
    questions: Optional[List[QuestionIn]] = Field(default=None, validate_default=True)

    @field_validator("title")
    @classmethod
    def title_valid(cls, v):
        return _length(_text(v, "Title is required"), 3, 100,
                       "Title must be between 3 and 100 characters")

    @field_validator("description")
    @classmethod
    def description_valid(cls, v):
        return _length(_text(v, "Description is required"), 1, 500,
                       "Description cannot exceed 500 characters")

    @field_validator("course")
    @classmethod
    def course_valid(cls, v):
        return _length(_text(v, "Course is required"), 1, 100,
                       "Course cannot exceed 100 characters")

    @field_validator("subject")
    @classmethod
    def subject_valid(cls, v):
        return _length(_text(v, "Subject is required"), 1, 100,
                       "Subject cannot exceed 100 characters")

    @field_validator("topic")
    @classmethod
    def topic_valid(cls, v):
        return _length(_text(v, "Topic is required"), 1, 200,
                       "Topic cannot exceed 200 characters")

    @field_validator("type")
    @classmethod
    def type_known(cls, v):
        return _one_of(v, QUIZ_TYPES, "Type")

    @field_validator("due_date")
    @classmethod
    def due_date_future(cls, v):
        if v is None:
            raise ValueError("Due date must be a valid date")
        return parse_due_date(v)

    @field_validator("total_points")
    @classmethod
    def total_points_range(cls, v):
        return _total_points(v, "Total points is required")

    @field_validator("questions")
    @classmethod
    def has_questions(cls, v):
        return _questions(v)


class QuizUpdate(QuizBase):
    title: Optional[str] = None
    description: Optional[str] = None
    course: Optional[str] = None
    subject: Optional[str] = None
    topic: Optional[str] = None
    type: Optional[str] = None
    due_date: Any = Field(default=None, alias="dueDate")
    total_points: Optional[int] = Field(default=None, alias="totalPoints")
    questions: Optional[List[QuestionIn]] = None

    @field_validator("title")
    @classmethod
    def title_valid(cls, v):
        return _length(_text(v, "Title cannot be empty"), 3, 100,
                       "Title must be between 3 and 100 characters")

    @field_validator("description")
    @classmethod
    def description_valid(cls, v):
        return _length(_text(v, "Description cannot be empty"), 1, 500,
                       "Description cannot exceed 500 characters")

    @field_validator("course")
    @classmethod
    def course_valid(cls, v):
        return _length(_text(v, "Course cannot be empty"), 1, 100,
                       "Course cannot exceed 100 characters")

    @field_validator("subject")
    @classmethod
    def subject_valid(cls, v):
        return _length(_text(v, "Subject cannot be empty"), 1, 100,
                       "Subject cannot exceed 100 characters")

    @field_validator("topic")
    @classmethod
    def topic_valid(cls, v):
        return _length(_text(v, "Topic cannot be empty"), 1, 200,
                       "Topic cannot exceed 200 characters")

    @field_validator("type")
    @classmethod
    def type_known(cls, v):
        return _one_of(v, QUIZ_TYPES, "Type")

    @field_validator("due_date")
    @classmethod
    def due_date_future(cls, v):
        return parse_due_date(v)

    @field_validator("total_points")
    @classmethod
    def total_points_range(cls, v):
        return _total_points(v, "Total points cannot be empty")

    @field_validator("questions")
    @classmethod
    def has_questions(cls, v):
        return _questions(v)


# Query strings

class ListParams(BaseModel):
    page: int = 1
    limit: int = 10
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    course: Optional[str] = None

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def ordering(self, default: str) -> str:
        if not self.sort_by:
            return default
        field = SORT_FIELDS[self.sort_by]
        return f"-{field}" if self.sort_order == "desc" else field


def _positive_int(raw: Optional[str]) -> Optional[int]:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def list_params(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    course: Optional[str] = None,
) -> ListParams:
    """Pagination, sorting and course filter shared by the list endpoints."""
    details = []
    params = ListParams()

    if page is not None:
        value = _positive_int(page)
        if value is None or value < 1:
            details.append({"field": "page", "message": "Page must be a positive integer"})
        else:
            params.page = value

    if limit is not None:
        value = _positive_int(limit)
        if value is None or not 1 <= value <= 100:
            details.append({"field": "limit", "message": "Limit must be between 1 and 100"})
        else:
            params.limit = value

    if params.skip > MAX_SKIP:
        details.insert(0, {"field": "page", "message": "Page must be a positive integer"})

    if sort_by is not None:
        if sort_by not in SORT_FIELDS:
            details.append({"field": "sortBy", "message": "Invalid sort field"})
        else:
            params.sort_by = sort_by

    if sort_order is not None:
        if sort_order not in ("asc", "desc"):
            details.append({"field": "sortOrder", "message": "Sort order must be asc or desc"})
        else:
            params.sort_order = sort_order

    if course is not None:
        if not course.strip():
            details.append({"field": "course", "message": "Course filter cannot be empty"})
        else:
            params.course = course.strip()

    if details:
        raise ValidationFailed(details)
    return params
