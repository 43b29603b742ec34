"""
Pydantic models for structured LLM outputs used by the learning orchestrators.

Field names are snake_case in Python and camelCase on the wire (the JSON the
model is asked to produce). All models reject unknown keys.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = 1

SchemaVersion = Literal[1]
NonEmptyStr = Annotated[str, Field(min_length=1)]
UnitScore = Annotated[float, Field(ge=0, le=1)]


class LearningModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


TaskStatus = Literal["todo", "in_progress", "done"]


class Task(LearningModel):
    id: NonEmptyStr
    title: NonEmptyStr
    description: NonEmptyStr | None = None
    status: TaskStatus = "todo"


class ReadingItem(LearningModel):
    id: NonEmptyStr
    title: NonEmptyStr
    url: str | None = None
    path: NonEmptyStr | None = None
    description: NonEmptyStr | None = None

    @model_validator(mode="after")
    def require_url_or_path(self) -> ReadingItem:
        if not (self.url or self.path):
            raise ValueError("Reading item requires url or path")
        return self


class ChapterPlan(LearningModel):
    schema_version: SchemaVersion = SCHEMA_VERSION
    id: NonEmptyStr
    title: NonEmptyStr
    summary: NonEmptyStr
    objectives: Annotated[list[NonEmptyStr], Field(min_length=1)]
    estimated_minutes: Annotated[int, Field(gt=0)] | None = None
    reading_items: list[ReadingItem]
    tasks: list[Task]


ChapterPlanList = Annotated[list[ChapterPlan], Field(min_length=1)]


class Chapter(LearningModel):
    schema_version: SchemaVersion = SCHEMA_VERSION
    id: NonEmptyStr
    title: NonEmptyStr
    summary: NonEmptyStr
    content: NonEmptyStr
    objectives: Annotated[list[NonEmptyStr], Field(min_length=1)]
    reading_items: list[ReadingItem]
    tasks: list[Task]


class QuizQuestion(LearningModel):
    id: NonEmptyStr
    prompt: NonEmptyStr
    rubric: NonEmptyStr | None = None


class QuizQuestionSet(LearningModel):
    schema_version: SchemaVersion = SCHEMA_VERSION
    questions: Annotated[list[QuizQuestion], Field(min_length=3, max_length=5)]


class QuizResponse(LearningModel):
    question_id: NonEmptyStr
    answer: NonEmptyStr
    score: UnitScore | None = None
    feedback: NonEmptyStr | None = None


class QuizAttempt(LearningModel):
    schema_version: SchemaVersion = SCHEMA_VERSION
    id: NonEmptyStr
    chapter_id: NonEmptyStr
    status: Literal["in_progress", "completed"]
    questions: Annotated[list[QuizQuestion], Field(min_length=1)]
    responses: list[QuizResponse]
    score: UnitScore | None = None
    feedback: NonEmptyStr | None = None
    created_at: datetime
    updated_at: datetime | None = None


class GradedQuizResponse(LearningModel):
    question_id: NonEmptyStr
    answer: NonEmptyStr
    score: UnitScore
    feedback: NonEmptyStr


class QuizGrading(LearningModel):
    schema_version: SchemaVersion = SCHEMA_VERSION
    responses: Annotated[list[GradedQuizResponse], Field(min_length=1)]
    score: UnitScore
    feedback: NonEmptyStr


class QaAnswer(LearningModel):
    answer: NonEmptyStr
    citations: list[NonEmptyStr] | None = None


class Message(LearningModel):
    """One turn of a learner's chat about a chapter."""

    id: NonEmptyStr
    role: Literal["system", "user", "assistant"]
    content: NonEmptyStr
    created_at: datetime
