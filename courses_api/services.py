"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories.
Services are intentionally thin: they validate, execute domain logic and
own the transaction around each multi-table write.
"""

import logging
import re
from typing import Dict, List, Optional, Union

from passlib.context import CryptContext
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import models, repositories, schemas
from .errors import InternalError, InvalidCredentials, InvalidInput, ValidationError

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")
_COURSE_ID_RE = re.compile(r"^[0-9]+$")

logger = logging.getLogger("app.courses")
auth_logger = logging.getLogger("app.auth")


def parse_course_id(raw: Union[str, int, None]) -> int:
    """Parse a course id taken from a query string.

    Only plain non-negative integers are accepted; anything else raises
    `InvalidInput`.
    """
    if isinstance(raw, int) and not isinstance(raw, bool):
        if raw < 0:
            raise InvalidInput("Invalid course ID", details={"id": raw})
        return raw
    if raw is None or not _COURSE_ID_RE.match(str(raw)):
        raise InvalidInput("Invalid course ID", details={"id": raw})
    return int(raw)


def parse_has_tests(raw: Optional[str]) -> Optional[bool]:
    """Interpret the `hasTests` query flag; only the literal `true` is true."""
    if not raw:
        return None
    return raw == "true"


class CourseService:
    """Create, read and cascade-delete course aggregates."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.CourseRepository(session)

    @staticmethod
    def validate(payload: schemas.CourseIn) -> None:
        """Check the cross-field course rules and raise on any violation.

        All issues are collected before raising so the caller sees every
        offending test at once.
        """
        issues: List[Dict] = []
        tests = payload.tests or []
        if payload.has_tests and not tests:
            issues.append({"loc": ["tests"], "msg": "Tests should be provided if hasTests is true"})
        if not payload.has_tests and tests:
            issues.append({"loc": ["tests"], "msg": "Tests should not be provided if hasTests is false"})
        if payload.has_tests:
            for idx, test in enumerate(tests):
                right_count = sum(1 for a in test.answers if a.right)
                if right_count == 0:
                    issues.append({"loc": ["tests", idx, "answers"],
                                   "msg": "At least one answer should be marked as right"})
                elif right_count > 1:
                    issues.append({"loc": ["tests", idx, "answers"],
                                   "msg": "At most one answer should be marked as right"})
        if issues:
            raise ValidationError(issues)

    def create(self, payload: schemas.CourseIn) -> models.Course:
        """Persist a course with its text blocks, tests and answers.

        Everything is written in a single transaction; on any storage
        error the transaction is rolled back and `InternalError` raised.
        Returns the freshly loaded, fully hydrated course.
        """
        self.validate(payload)
        try:
            course = self.repo.add_course(models.Course(
                theme=payload.theme,
                reading_time=payload.reading_time,
                has_tests=payload.has_tests,
            ))
            course_id = course.id
            self.repo.add_text_blocks(course_id, [
                models.TextBlock(name=b.name, text=b.text) for b in payload.text_blocks
            ])
            for t in payload.tests or []:
                self.repo.add_test(
                    course_id,
                    models.Test(question=t.question),
                    [models.Answer(text=a.text, right=a.right) for a in t.answers],
                )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("course create failed")
            raise InternalError(reason=str(e)) from e
        logger.info("course created id=%s text_blocks=%d tests=%d",
                    course_id, len(payload.text_blocks), len(payload.tests or []))
        return self.repo.get(course_id)

    def get(self, course_id: int) -> Optional[models.Course]:
        """Return the hydrated course or `None` when it does not exist."""
        return self.repo.get(course_id)

    def list(self, theme: Optional[str] = None, reading_time: Optional[str] = None,
             has_tests: Optional[bool] = None) -> List[models.Course]:
        """List hydrated courses matching the optional filters."""
        return self.repo.find(theme=theme, reading_time=reading_time, has_tests=has_tests)

    def list_summaries(self) -> List[models.Course]:
        return self.repo.list_all()

    def delete(self, course_id: int) -> int:
        """Delete a course and everything it owns, children first.

        Answers go before their tests, tests and text blocks before the
        course row. Deleting an id that does not exist is a no-op.
        Returns the number of course rows removed (0 or 1).
        """
        try:
            test_ids = self.repo.test_ids_for_course(course_id)
            if test_ids:
                self.repo.delete_answers_for_tests(test_ids)
            self.repo.delete_tests_for_course(course_id)
            self.repo.delete_text_blocks_for_course(course_id)
            removed = self.repo.delete_course(course_id)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("course delete failed id=%s", course_id)
            raise InternalError(reason=str(e)) from e
        logger.info("course delete id=%s removed=%s tests=%d", course_id, removed, len(test_ids))
        return removed


class AuthService:
    """Admin user lookup and password handling."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def create_user(self, username: str, password: str) -> models.User:
        """Create a new user with a hashed password."""
        user = self.user_repo.add(models.User(username=username, hashed_password=PWD_CTX.hash(password)))
        self.session.commit()
        self.session.refresh(user)
        return user

    def set_password(self, user: models.User, password: str) -> models.User:
        user.hashed_password = PWD_CTX.hash(password)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def verify_credentials(self, username: str, password: str) -> models.User:
        """Return the user for valid credentials or raise `InvalidCredentials`.

        An unknown username and a wrong password fail the same way.
        """
        user = self.user_repo.get_by_username(username)
        if not user or not PWD_CTX.verify(password, user.hashed_password):
            auth_logger.info("login failed username=%s", username)
            raise InvalidCredentials()
        return user

    def get_user(self, user_id: int) -> Optional[models.User]:
        return self.user_repo.get(user_id)
