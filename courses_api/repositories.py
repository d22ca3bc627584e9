"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
courses). Repositories only stage and query rows on the session they are
given; committing or rolling back is left to the calling service so a
whole aggregate lands in one transaction.
"""

from typing import List, Optional, Sequence

from sqlalchemy import delete
from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from . import models


def _like_pattern(value: str) -> str:
    """Build a case-insensitive substring pattern with LIKE wildcards escaped."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def add(self, user: models.User) -> models.User:
        """Stage a new user and flush it to obtain its id."""
        self.session.add(user)
        self.session.flush()
        return user

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)


class CourseRepository:
    """Queries and writes for the course aggregate tables."""
    def __init__(self, session: Session):
        self.session = session

    def _hydrated(self):
        return select(models.Course).options(
            selectinload(models.Course.text_blocks),
            selectinload(models.Course.tests).selectinload(models.Test.answers),
        )

    def add_course(self, course: models.Course) -> models.Course:
        self.session.add(course)
        self.session.flush()
        return course

    def add_text_blocks(self, course_id: int, blocks: Sequence[models.TextBlock]) -> None:
        for block in blocks:
            block.course_id = course_id
            self.session.add(block)
        self.session.flush()

    def add_test(self, course_id: int, test: models.Test, answers: Sequence[models.Answer]) -> models.Test:
        """Stage a test, flush to obtain its id, then stage its answers."""
        test.course_id = course_id
        self.session.add(test)
        self.session.flush()
        for answer in answers:
            answer.test_id = test.id
            self.session.add(answer)
        self.session.flush()
        return test

    def get(self, course_id: int) -> Optional[models.Course]:
        """Fetch a course with its text blocks and tests (with answers)."""
        stmt = self._hydrated().where(models.Course.id == course_id)
        return self.session.exec(stmt).first()

    def find(self, theme: Optional[str] = None, reading_time: Optional[str] = None,
             has_tests: Optional[bool] = None) -> List[models.Course]:
        """Return hydrated courses matching all of the given filters.

        `theme` and `reading_time` match case-insensitive substrings,
        `has_tests` matches exactly. Results come back in id order.
        """
        stmt = self._hydrated()
        if theme:
            stmt = stmt.where(models.Course.theme.ilike(_like_pattern(theme), escape="\\"))
        if reading_time:
            stmt = stmt.where(models.Course.reading_time.ilike(_like_pattern(reading_time), escape="\\"))
        if has_tests is not None:
            stmt = stmt.where(models.Course.has_tests == has_tests)
        return list(self.session.exec(stmt.order_by(models.Course.id)).all())

    def list_all(self) -> List[models.Course]:
        """Return course rows only, without loading children."""
        stmt = select(models.Course).order_by(models.Course.id)
        return list(self.session.exec(stmt).all())

    def test_ids_for_course(self, course_id: int) -> List[int]:
        stmt = select(models.Test.id).where(models.Test.course_id == course_id)
        return list(self.session.exec(stmt).all())

    def delete_answers_for_tests(self, test_ids: Sequence[int]) -> int:
        result = self.session.exec(delete(models.Answer).where(models.Answer.test_id.in_(test_ids)))
        return result.rowcount

    def delete_tests_for_course(self, course_id: int) -> int:
        result = self.session.exec(delete(models.Test).where(models.Test.course_id == course_id))
        return result.rowcount

    def delete_text_blocks_for_course(self, course_id: int) -> int:
        result = self.session.exec(delete(models.TextBlock).where(models.TextBlock.course_id == course_id))
        return result.rowcount

    def delete_course(self, course_id: int) -> int:
        result = self.session.exec(delete(models.Course).where(models.Course.id == course_id))
        return result.rowcount
