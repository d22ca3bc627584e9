"""SQLModel data models.

This module defines the application's database tables using SQLModel.
A `Course` owns its `TextBlock` and `Test` rows, and a `Test` owns its
`Answer` rows. Foreign keys are declared for the relationships only;
deletes are cascaded explicitly by the course service.
"""

from typing import List, Optional

from sqlmodel import SQLModel, Field, Relationship


class User(SQLModel, table=True):
    """An admin user.

    Fields:
    - `username`: unique login name
    - `hashed_password`: hashed password string (never store plaintext)
    """
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    hashed_password: str


class Course(SQLModel, table=True):
    """A course made of text blocks and, optionally, tests."""
    __tablename__ = "courses"

    id: Optional[int] = Field(default=None, primary_key=True)
    theme: str
    reading_time: str
    has_tests: bool = False
    text_blocks: List["TextBlock"] = Relationship(
        back_populates="course", sa_relationship_kwargs={"order_by": "TextBlock.id"}
    )
    tests: List["Test"] = Relationship(back_populates="course", sa_relationship_kwargs={"order_by": "Test.id"})


class TextBlock(SQLModel, table=True):
    """A named piece of course text."""
    __tablename__ = "text_blocks"

    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="courses.id", index=True)
    name: str
    text: str
    course: Optional[Course] = Relationship(back_populates="text_blocks")


class Test(SQLModel, table=True):
    """A quiz question attached to a course."""
    __tablename__ = "tests"

    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="courses.id", index=True)
    question: str
    course: Optional[Course] = Relationship(back_populates="tests")
    answers: List["Answer"] = Relationship(back_populates="test", sa_relationship_kwargs={"order_by": "Answer.id"})


class Answer(SQLModel, table=True):
    """Possible answer for a `Test`.

    `right` marks the single correct answer of its test.
    """
    __tablename__ = "answers"

    id: Optional[int] = Field(default=None, primary_key=True)
    test_id: int = Field(foreign_key="tests.id", index=True)
    text: str
    right: bool = False
    test: Optional[Test] = Relationship(back_populates="answers")
