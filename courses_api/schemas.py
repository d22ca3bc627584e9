"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
the route handlers and tests. Python attributes are snake_case; JSON
payloads use camelCase aliases (`readingTime`, `hasTests`, ...).
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginIn(BaseModel):
    """Payload for the admin login endpoint."""
    username: str
    password: str


class TextBlockIn(CamelModel):
    name: str
    text: str


class AnswerIn(CamelModel):
    """Representation of a possible answer in requests."""
    text: str
    right: StrictBool


class TestIn(CamelModel):
    """A quiz question with at least one answer."""
    question: str
    answers: List[AnswerIn] = Field(min_length=1)


class CourseIn(CamelModel):
    """Request body for creating a course together with its children.

    Only the shape is checked here; the cross-field rules (tests present
    iff `hasTests`, one right answer per test) are enforced by
    `CourseService.validate` so every violation is reported at once.
    """
    theme: str = Field(min_length=1)
    reading_time: str = Field(min_length=1)
    has_tests: StrictBool
    text_blocks: List[TextBlockIn] = Field(min_length=1)
    tests: Optional[List[TestIn]] = None


class OrmModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class TextBlockOut(OrmModel):
    id: int
    course_id: int
    name: str
    text: str


class AnswerOut(OrmModel):
    id: int
    test_id: int
    text: str
    right: bool


class TestOut(OrmModel):
    id: int
    course_id: int
    question: str
    answers: List[AnswerOut] = []


class CourseOut(OrmModel):
    """A course row without its children."""
    id: int
    theme: str
    reading_time: str
    has_tests: bool


class CourseDetailOut(CourseOut):
    """A fully hydrated course aggregate."""
    text_blocks: List[TextBlockOut] = []
    tests: List[TestOut] = []


class PrincipalOut(BaseModel):
    """The authenticated caller."""
    id: int
    username: str


class MessageOut(BaseModel):
    status: str = "ok"
    message: str
