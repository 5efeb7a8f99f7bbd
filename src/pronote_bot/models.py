"""
Data models for Pronote Notification Bot.

Defines Pydantic models for the fetched facts and the persisted snapshot:
- Homework
- Mark / Subject / Marks
- Lesson
- Snapshot
- Notification
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class MarksPeriod(str, Enum):
    """Grading periods marks can be fetched for."""
    TRIMESTER = "trimester"
    SEMESTER = "semester"
    YEAR = "year"


class NotificationType(str, Enum):
    """Types of notifications the bot can send."""
    HOMEWORK = "homework"
    MARK = "mark"
    ABSENCE = "absence"


def id_to_str(v: Any) -> Any:
    """Pronote ids are opaque; numeric ones are kept as text."""
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class PronoteModel(BaseModel):
    """Base model: camelCase on disk, snake_case in code, immutable."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Homework(PronoteModel):
    """
    A homework assignment.

    Attributes:
        description: Homework text, also used as its identity
        subject: Subject name
        due_date: Due date
    """
    description: str
    subject: Optional[str] = None
    due_date: Optional[date] = None


class Mark(PronoteModel):
    """
    A single mark.

    Pronote reports values as text ("15", "Abs", "N.Not"), so value,
    scale and class average are kept as strings.
    """
    id: str
    value: Optional[str] = None
    scale: Optional[str] = None
    average: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return id_to_str(v)


class Subject(PronoteModel):
    """
    Marks of one subject.

    Attributes:
        name: Subject name, unique within a Marks result
        student_average: Student average, None when Pronote has none
        marks: Marks in the order Pronote returned them
    """
    name: str
    student_average: Optional[float] = None
    marks: List[Mark] = Field(default_factory=list)

    def has_mark(self, mark_id: str) -> bool:
        return any(mark.id == mark_id for mark in self.marks)


class Marks(PronoteModel):
    """Marks result for one grading period."""
    subjects: List[Subject] = Field(default_factory=list)

    def get_subject(self, name: str) -> Optional[Subject]:
        for subject in self.subjects:
            if subject.name == name:
                return subject
        return None


class Lesson(PronoteModel):
    """
    A timetable entry.

    Attributes:
        id: Pronote lesson identifier
        is_away: Whether the teacher is reported absent
        teacher: Teacher name
        subject: Subject name
        start: Start of the lesson
    """
    id: str
    is_away: bool = False
    teacher: Optional[str] = None
    subject: Optional[str] = None
    start: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return id_to_str(v)


class Snapshot(PronoteModel):
    """
    Everything seen during the previous cycles.

    homeworks and marks hold the latest fetch; lessons_away accumulates
    the ids of every absence already notified.
    """
    homeworks: List[Homework] = Field(default_factory=list)
    marks: Marks = Field(default_factory=Marks)
    lessons_away: List[str] = Field(default_factory=list)

    @field_validator("marks", mode="before")
    @classmethod
    def legacy_empty_marks(cls, v: Any) -> Any:
        """Old cache files stored an empty list before the first fetch."""
        if isinstance(v, list) and not v:
            return {}
        return v

    @field_validator("lessons_away", mode="before")
    @classmethod
    def coerce_lesson_ids(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [id_to_str(item) for item in v]
        return v

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls()

    def to_json(self) -> str:
        """Serialize to indented JSON with camelCase keys."""
        return self.model_dump_json(by_alias=True, indent=4)


class Notification(PronoteModel):
    """A title and message pair ready to be sent to every channel."""
    notification_type: NotificationType
    title: str
    message: str
