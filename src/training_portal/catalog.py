"""Course catalog loading and lookup."""
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Iterator, Optional

from training_portal.errors import NotFoundError
from training_portal.models import (
    DEFAULT_PASSING_SCORE, LESSON_TYPES, Course, Lesson, Module, Quiz, QuizQuestion,
)

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent / "content"


def _quiz_from_dict(data: dict) -> Quiz:
    questions = [QuizQuestion(**q) for q in data.get("questions", [])]
    return Quiz(
        questions=questions,
        passing_score=data.get("passing_score", DEFAULT_PASSING_SCORE),
        time_limit=data.get("time_limit"),
    )


def _lesson_from_dict(data: dict) -> Lesson:
    data = dict(data)
    if data.get("type") not in LESSON_TYPES:
        raise ValueError(f"Lesson {data.get('id')} has unknown type: {data.get('type')}")
    quiz = data.pop("quiz", None)
    return Lesson(**data, quiz=_quiz_from_dict(quiz) if quiz else None)


def _module_from_dict(data: dict) -> Module:
    data = dict(data)
    data["lessons"] = [_lesson_from_dict(l) for l in data.get("lessons", [])]
    return Module(**data)


def course_from_dict(data: dict) -> Course:
    data = dict(data)
    data["modules"] = [_module_from_dict(m) for m in data.get("modules", [])]
    return Course(**data)


def load_courses(path: str | Path | None = None) -> list[Course]:
    """Read course definitions from a JSON file (the bundled catalog by default)."""
    path = Path(path) if path else CONTENT_DIR / "courses.json"
    data = json.loads(path.read_text())
    courses = [course_from_dict(c) for c in data["courses"]]
    logger.debug("Loaded %d courses from %s", len(courses), path)
    return courses


class CourseCatalog:
    """Read-only, in-memory set of course definitions, kept in catalog order."""

    def __init__(self, courses: list[Course]):
        self._courses = list(courses)
        self._by_id = {c.id: c for c in self._courses}

    def __len__(self) -> int:
        return len(self._courses)

    def __iter__(self) -> Iterator[Course]:
        return iter(self._courses)

    def __contains__(self, course_id: str) -> bool:
        return course_id in self._by_id

    def get(self, course_id: str) -> Optional[Course]:
        return self._by_id.get(course_id)

    def require(self, course_id: str) -> Course:
        course = self._by_id.get(course_id)
        if course is None:
            raise NotFoundError("Course", course_id)
        return course

    def all(self) -> list[Course]:
        return list(self._courses)

    def by_level(self, level: str) -> list[Course]:
        return [c for c in self._courses if c.skill_level == level]

    def by_category(self, category: str) -> list[Course]:
        return [c for c in self._courses if c.category == category]

    def popular(self, limit: int = 6) -> list[Course]:
        return sorted(self._courses, key=lambda c: c.enrollment_count, reverse=True)[:limit]

    def search(self, query: str) -> list[Course]:
        """Case-insensitive match against title, description and tags."""
        q = query.lower().strip()
        if not q:
            return self.all()
        return [
            c for c in self._courses
            if q in c.title.lower()
            or q in c.short_description.lower()
            or any(q in tag.lower() for tag in c.tags)
        ]


@lru_cache(maxsize=1)
def default_catalog() -> CourseCatalog:
    return CourseCatalog(load_courses())
