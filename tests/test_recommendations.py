# tests/test_recommendations.py
from datetime import datetime

import pytest

from training_portal.catalog import CourseCatalog
from training_portal.models import Course
from training_portal.progress import create_profile, enroll_course
from training_portal.recommendations import (
    POPULARITY_THRESHOLD, TRENDING_THRESHOLD, classify_recommendation_type,
    get_continue_learning_courses, get_next_step_recommendations,
    get_personalized_recommendations, get_similar_courses, get_trending_courses,
    meets_prerequisites, score_course, suggest_skill_level,
)


def _course(**overrides):
    base = dict(
        id="c", title="C", skill_level="advanced", category="design",
        prerequisites=["missing"], enrollment_count=0, rating=0.0,
    )
    base.update(overrides)
    return Course(**base)


def _profile(level="beginner", interests=(), completed=(), enrolled=()):
    p = create_profile("Test", level, list(interests), profile_id="t")
    p.completed_courses = list(completed)
    p.enrolled_courses = list(enrolled)
    return p


# --- score_course ---


def test_web_dev_fundamentals_scores_capped_100(catalog):
    profile = _profile("beginner", ["web-development"])
    score, reason = score_course(catalog.require("web-dev-fundamentals"), profile)
    # 40 + 30 + 20 + 15 + 10 = 115, capped
    assert score == 100
    assert reason == (
        "Perfect match for your beginner skill level. Matches your interests. "
        "No prerequisites required. Popular course. Highly rated."
    )


def test_score_zero_when_nothing_matches():
    score, reason = score_course(_course(), _profile("beginner"))
    assert score == 0
    assert reason == ""


def test_score_next_level_progression():
    score, reason = score_course(_course(skill_level="intermediate"), _profile("beginner"))
    assert score == 20
    assert reason == "Next step in your learning path."


def test_score_two_levels_above_gets_nothing():
    score, _ = score_course(_course(skill_level="advanced"), _profile("beginner"))
    assert score == 0


def test_score_level_below_gets_nothing():
    score, _ = score_course(_course(skill_level="beginner"), _profile("intermediate"))
    assert score == 0


def test_score_prerequisites_met():
    course = _course(prerequisites=["a", "b"])
    score, reason = score_course(course, _profile(completed=["a", "b"]))
    assert score == 20
    assert reason == "Prerequisites met."


def test_score_partial_prerequisites_get_nothing():
    course = _course(prerequisites=["a", "b"])
    score, _ = score_course(course, _profile(completed=["a"]))
    assert score == 0


@pytest.mark.parametrize("count,expected", [
    (POPULARITY_THRESHOLD - 1, 0),
    (POPULARITY_THRESHOLD, 0),
    (POPULARITY_THRESHOLD + 1, 15),
])
def test_score_popularity_boundary(count, expected):
    score, _ = score_course(_course(enrollment_count=count), _profile())
    assert score == expected


@pytest.mark.parametrize("rating,expected", [(4.4, 0), (4.5, 10), (5.0, 10)])
def test_score_rating_boundary(rating, expected):
    score, _ = score_course(_course(rating=rating), _profile())
    assert score == expected


@pytest.mark.parametrize("course_id", [
    "web-dev-fundamentals", "python-basics", "react-intermediate",
    "api-design", "system-design", "ml-production",
])
def test_adding_interest_never_lowers_score(catalog, course_id):
    course = catalog.require(course_id)
    without = _profile("intermediate", [])
    with_interest = _profile("intermediate", [course.category])
    assert score_course(course, with_interest)[0] >= score_course(course, without)[0]


def test_scores_stay_in_range(catalog):
    for level in ("beginner", "intermediate", "advanced"):
        profile = _profile(level, ["web-development", "devops", "ai-ml", "data-science"])
        for course in catalog:
            score, _ = score_course(course, profile)
            assert 0 <= score <= 100


# --- classify ---


def test_classify_types():
    profile = _profile("beginner")
    assert classify_recommendation_type(_course(skill_level="intermediate"), profile) == "next-step"
    assert classify_recommendation_type(_course(skill_level="beginner"), profile) == "similar"
    assert classify_recommendation_type(
        _course(skill_level="advanced", enrollment_count=TRENDING_THRESHOLD + 1), profile
    ) == "trending"
    assert classify_recommendation_type(
        _course(skill_level="advanced", enrollment_count=TRENDING_THRESHOLD), profile
    ) == "personalized"


# --- personalized ---


def test_personalized_excludes_enrolled_and_completed(catalog):
    profile = _profile(
        "beginner", ["web-development"],
        completed=["web-dev-fundamentals"], enrolled=["web-dev-fundamentals", "python-basics"],
    )
    recs = get_personalized_recommendations(profile, catalog, limit=10)
    ids = [r.course.id for r in recs]
    assert "web-dev-fundamentals" not in ids
    assert "python-basics" not in ids
    assert len(ids) == 4


def test_personalized_sorted_and_limited(catalog):
    profile = _profile("beginner", ["web-development"])
    recs = get_personalized_recommendations(profile, catalog, limit=3)
    assert len(recs) == 3
    scores = [r.relevance_score for r in recs]
    assert scores == sorted(scores, reverse=True)
    assert recs[0].course.id == "web-dev-fundamentals"
    assert recs[0].type == "similar"


def test_personalized_ties_keep_catalog_order():
    courses = [_course(id=f"c{i}", title=f"C{i}") for i in range(5)]
    recs = get_personalized_recommendations(_profile(), CourseCatalog(courses), limit=5)
    assert [r.course.id for r in recs] == ["c0", "c1", "c2", "c3", "c4"]


def test_personalized_when_everything_taken(catalog):
    ids = [c.id for c in catalog]
    assert get_personalized_recommendations(_profile(enrolled=ids), catalog) == []


# --- next step ---


def test_next_step_requires_all_prerequisites(catalog):
    profile = _profile("intermediate", completed=["web-dev-fundamentals", "react-intermediate"])
    recs = get_next_step_recommendations(profile, catalog, limit=5)
    ids = [r.course.id for r in recs]
    # api-design is unlocked; system-design still needs api-design
    assert ids == ["api-design"]
    assert recs[0].type == "next-step"
    assert recs[0].reason == "You've completed all prerequisites."


def test_next_step_prefers_higher_rating(catalog):
    profile = _profile(completed=["web-dev-fundamentals"])
    recs = get_next_step_recommendations(profile, catalog, limit=5)
    assert [r.course.id for r in recs] == ["react-intermediate", "api-design"]
    assert all(r.relevance_score <= 100 for r in recs)


def test_next_step_empty_without_completions(catalog):
    assert get_next_step_recommendations(_profile(), catalog) == []


# --- similar ---


def test_similar_courses_excludes_target(catalog):
    similar = get_similar_courses("react-intermediate", catalog, limit=5)
    ids = [c.id for c in similar]
    assert "react-intermediate" not in ids
    # same category + level wins
    assert ids[0] == "api-design"


def test_similar_courses_shared_tags_add_up(catalog):
    # react-intermediate: same category (40) + JavaScript, Frontend tags (10)
    # api-design: same category (40); python-basics: same level (30)
    ids = [c.id for c in get_similar_courses("web-dev-fundamentals", catalog, limit=3)]
    assert ids == ["react-intermediate", "api-design", "python-basics"]


def test_similar_courses_unknown_target(catalog):
    assert get_similar_courses("nope", catalog) == []


# --- prerequisites ---


def test_meets_prerequisites_system_design_empty_profile(catalog):
    meets, missing = meets_prerequisites("system-design", _profile(), catalog)
    assert meets is False
    assert {c.id for c in missing} == {"react-intermediate", "api-design"}


def test_meets_prerequisites_partially_done(catalog):
    meets, missing = meets_prerequisites("system-design", _profile(completed=["api-design"]), catalog)
    assert meets is False
    assert [c.id for c in missing] == ["react-intermediate"]


def test_meets_prerequisites_none_required(catalog):
    assert meets_prerequisites("python-basics", _profile(), catalog) == (True, [])


def test_meets_prerequisites_unknown_course(catalog):
    assert meets_prerequisites("nope", _profile(), catalog) == (False, [])


# --- extras ---


def test_continue_learning_most_recent_first(catalog):
    p = enroll_course(_profile(), catalog, "python-basics", now=datetime(2026, 1, 1))
    p = enroll_course(p, catalog, "api-design", now=datetime(2026, 2, 1))
    ids = [c.id for c in get_continue_learning_courses(p, catalog)]
    assert ids == ["api-design", "python-basics"]


def test_continue_learning_skips_completed(catalog):
    p = enroll_course(_profile(), catalog, "python-basics")
    p.completed_courses = ["python-basics"]
    assert get_continue_learning_courses(p, catalog) == []


@pytest.mark.parametrize("completed,expected", [
    ([], "beginner"),
    (["python-basics"], "intermediate"),
    (["web-dev-fundamentals", "react-intermediate"], "intermediate"),
    (["web-dev-fundamentals", "python-basics", "ml-production"], "advanced"),
])
def test_suggest_skill_level(catalog, completed, expected):
    assert suggest_skill_level(_profile(completed=completed), catalog) == expected


def test_trending_courses_window():
    courses = [
        _course(id="old", enrollment_count=9000, updated_at="2025-01-01"),
        _course(id="fresh", enrollment_count=100, updated_at="2026-02-20"),
        _course(id="hot", enrollment_count=5000, updated_at="2026-03-01"),
        _course(id="undated", enrollment_count=10000),
    ]
    trending = get_trending_courses(CourseCatalog(courses), now=datetime(2026, 3, 10))
    assert [c.id for c in trending] == ["hot", "fresh"]
