from datetime import datetime

import pytest

from training_portal.catalog import CourseCatalog, default_catalog
from training_portal.models import Course, Lesson, Module, Quiz, QuizQuestion
from training_portal.progress import create_profile

NOW = datetime(2026, 3, 10, 9, 30)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_portal.db")
    return db_path


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def small_catalog():
    """Two tiny courses: one with a certificate, one without."""
    quiz = Quiz(
        questions=[
            QuizQuestion(id="q1", question="1 + 1?", options=["1", "2"], correct_answer=1),
            QuizQuestion(id="q2", question="2 + 2?", options=["4", "5"], correct_answer=0),
        ],
        passing_score=80,
    )
    certified = Course(
        id="intro",
        title="Intro Course",
        skill_level="beginner",
        category="web-development",
        certificate_offered=True,
        modules=[
            Module(id="m1", title="Basics", lessons=[
                Lesson(id="l1", title="First", type="theory", duration=10),
                Lesson(id="l2", title="Second", type="quiz", duration=15, quiz=quiz),
            ]),
        ],
    )
    uncertified = Course(
        id="workshop",
        title="Workshop",
        skill_level="beginner",
        category="design",
        certificate_offered=False,
        modules=[
            Module(id="w1", title="Part 1", lessons=[
                Lesson(id="a", title="A", type="theory", duration=5),
            ]),
            Module(id="w2", title="Part 2", lessons=[
                Lesson(id="b", title="B", type="project", duration=5),
            ]),
        ],
    )
    return CourseCatalog([certified, uncertified])


@pytest.fixture
def profile():
    return create_profile(
        "Ada", "beginner", ["web-development"], profile_id="user-1", now=NOW
    )
