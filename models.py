from datetime import datetime, timezone

from bson import ObjectId
from mongoengine import Document, ValidationError, fields

USER_ROLES = ("student", "teacher", "admin")
AUTHOR_ROLES = ("teacher", "admin", "management")
ANNOUNCEMENT_TYPES = ("general", "urgent", "academic", "event")
PRIORITIES = ("low", "medium", "high")
QUIZ_TYPES = ("quiz", "assignment")

DEFAULT_AVATAR = "https://picsum.photos/150"


def utcnow() -> datetime:
    """Naive UTC, the form pymongo hands datetimes back in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _jsonable(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return to_utc_naive(value).isoformat(timespec="milliseconds") + "Z"
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


def _strip(doc, *names):
    for name in names:
        value = getattr(doc, name)
        if isinstance(value, str):
            setattr(doc, name, value.strip())


class TimestampedDocument(Document):
    meta = {"abstract": True}

    created_at = fields.DateTimeField(db_field="createdAt")
    updated_at = fields.DateTimeField(db_field="updatedAt")

    def save(self, *args, **kwargs):
        now = utcnow()
        if self.created_at is None:
            self.created_at = now
        self.updated_at = now
        return super().save(*args, **kwargs)

    def to_dict(self) -> dict:
        data = _jsonable(self.to_mongo().to_dict())
        data["id"] = data["_id"]
        return data


class User(TimestampedDocument):
    meta = {"collection": "users"}

    name = fields.StringField(required=True, max_length=50)
    email = fields.EmailField(required=True, unique=True)
    avatar = fields.StringField(default=DEFAULT_AVATAR)
    role = fields.StringField(choices=USER_ROLES, default="student")

    def clean(self):
        _strip(self, "name")
        if self.email:
            self.email = self.email.strip().lower()

    def profile(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "avatar": self.avatar,
            "role": self.role,
        }


class Author(fields.EmbeddedDocument):
    name = fields.StringField(required=True)
    avatar = fields.StringField(default=DEFAULT_AVATAR)
    role = fields.StringField(required=True, choices=AUTHOR_ROLES)

    def clean(self):
        _strip(self, "name")


class Announcement(TimestampedDocument):
    meta = {
        "collection": "announcements",
        "indexes": ["-created_at", "is_active", "priority"],
    }

    title = fields.StringField(required=True, min_length=3, max_length=100)
    content = fields.StringField(required=True, min_length=10, max_length=2000)
    author = fields.EmbeddedDocumentField(Author, required=True)
    subject = fields.StringField(max_length=100)
    course = fields.StringField(max_length=100)
    type = fields.StringField(required=True, choices=ANNOUNCEMENT_TYPES, default="general")
    priority = fields.StringField(choices=PRIORITIES, default="medium")
    is_active = fields.BooleanField(default=True, db_field="isActive")
    created_by = fields.StringField(required=True, db_field="createdBy")

    def clean(self):
        _strip(self, "title", "content", "subject", "course")


class Question(fields.EmbeddedDocument):
    question = fields.StringField(required=True)
    options = fields.ListField(fields.StringField(required=True))
    correct_answer = fields.IntField(required=True, min_value=0, db_field="correctAnswer")

    def clean(self):
        _strip(self, "question")
        self.options = [o.strip() if isinstance(o, str) else o for o in self.options]
        if not 2 <= len(self.options) <= 6:
            raise ValidationError("Each question must have 2-6 options", field_name="options")
        if self.correct_answer is not None and self.correct_answer >= len(self.options):
            raise ValidationError("Correct answer must be a valid option index", field_name="correctAnswer")


class Quiz(TimestampedDocument):
    meta = {
        "collection": "quizzes",
        "indexes": ["due_date", "is_active", "type", "course"],
    }

    title = fields.StringField(required=True, min_length=3, max_length=100)
    description = fields.StringField(required=True, max_length=500)
    course = fields.StringField(required=True, max_length=100)
    subject = fields.StringField(required=True, max_length=100)
    topic = fields.StringField(required=True, max_length=200)
    type = fields.StringField(required=True, choices=QUIZ_TYPES, default="quiz")
    due_date = fields.DateTimeField(required=True, db_field="dueDate")
    duration = fields.IntField(min_value=1, max_value=480)
    total_points = fields.IntField(required=True, min_value=1, max_value=1000, db_field="totalPoints")
    questions = fields.EmbeddedDocumentListField(Question, required=True)
    is_active = fields.BooleanField(default=True, db_field="isActive")
    instructions = fields.StringField(max_length=1000)

    def clean(self):
        _strip(self, "title", "description", "course", "subject", "topic", "instructions")
        if isinstance(self.due_date, datetime):
            self.due_date = to_utc_naive(self.due_date)

    @property
    def is_overdue(self) -> bool:
        return self.due_date < utcnow()

    @property
    def time_remaining(self) -> int:
        """Milliseconds until the due date, never negative."""
        delta = self.due_date - utcnow()
        return max(0, int(delta.total_seconds() * 1000))

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["isOverdue"] = self.is_overdue
        data["timeRemaining"] = self.time_remaining
        return data
