from sqlalchemy import func
from sqlmodel import Session, select

from courses_api import models


def count_rows(engine, model) -> int:
    """Count rows of `model` with a fresh session so nothing is cached."""
    with Session(engine) as s:
        return s.exec(select(func.count()).select_from(model)).one()


def count_all(engine) -> dict:
    return {
        "courses": count_rows(engine, models.Course),
        "text_blocks": count_rows(engine, models.TextBlock),
        "tests": count_rows(engine, models.Test),
        "answers": count_rows(engine, models.Answer),
    }


def course_payload(**overrides):
    body = {
        "theme": "Python basics",
        "readingTime": "10 min",
        "hasTests": True,
        "textBlocks": [{"name": "intro", "text": "hello"}, {"name": "loops", "text": "for x in y"}],
        "tests": [
            {"question": "2 + 2?", "answers": [{"text": "4", "right": True}, {"text": "5", "right": False}]},
            {"question": "Is Python typed?", "answers": [{"text": "dynamically", "right": True}]},
        ],
    }
    body.update(overrides)
    return body
