"""Rule-based course recommendations.

Relevance is a capped weighted sum. The weights below are the only rubric
used anywhere in the portal:

    same skill level            +40
    one skill level above       +20
    category in interests       +30
    prerequisites met (or none) +20
    enrollment_count > 1000     +15
    rating >= 4.5               +10
"""
from datetime import date, datetime, timedelta
from typing import Optional

from training_portal.catalog import CourseCatalog
from training_portal.models import SKILL_LEVELS, Course, Recommendation, UserProfile, round_half_up

SAME_LEVEL_POINTS = 40
NEXT_LEVEL_POINTS = 20
INTEREST_POINTS = 30
PREREQUISITE_POINTS = 20
POPULARITY_POINTS = 15
RATING_POINTS = 10

POPULARITY_THRESHOLD = 1000
HIGH_RATING_THRESHOLD = 4.5
TRENDING_THRESHOLD = 2000
MAX_SCORE = 100

SIMILAR_CATEGORY_POINTS = 40
SIMILAR_LEVEL_POINTS = 30
SHARED_TAG_POINTS = 5

TRENDING_WINDOW_DAYS = 90


def _level_gap(course: Course, profile: UserProfile) -> Optional[int]:
    """Course level minus learner level, or None if either level is unknown."""
    if course.skill_level not in SKILL_LEVELS or profile.skill_level not in SKILL_LEVELS:
        return None
    return SKILL_LEVELS.index(course.skill_level) - SKILL_LEVELS.index(profile.skill_level)


def score_course(course: Course, profile: UserProfile) -> tuple[int, str]:
    """Return ``(relevance_score, reason)`` for one course and learner."""
    score = 0
    reasons = []

    gap = _level_gap(course, profile)
    if gap == 0:
        score += SAME_LEVEL_POINTS
        reasons.append(f"Perfect match for your {profile.skill_level} skill level.")
    elif gap == 1:
        score += NEXT_LEVEL_POINTS
        reasons.append("Next step in your learning path.")

    if course.category in profile.interests:
        score += INTEREST_POINTS
        reasons.append("Matches your interests.")

    if not course.prerequisites:
        score += PREREQUISITE_POINTS
        reasons.append("No prerequisites required.")
    elif all(p in profile.completed_courses for p in course.prerequisites):
        score += PREREQUISITE_POINTS
        reasons.append("Prerequisites met.")

    if course.enrollment_count > POPULARITY_THRESHOLD:
        score += POPULARITY_POINTS
        reasons.append("Popular course.")

    if course.rating >= HIGH_RATING_THRESHOLD:
        score += RATING_POINTS
        reasons.append("Highly rated.")

    return min(score, MAX_SCORE), " ".join(reasons)


def classify_recommendation_type(course: Course, profile: UserProfile) -> str:
    gap = _level_gap(course, profile)
    if gap == 1:
        return "next-step"
    if gap == 0:
        return "similar"
    if course.enrollment_count > TRENDING_THRESHOLD:
        return "trending"
    return "personalized"


def _available(profile: UserProfile, catalog: CourseCatalog) -> list[Course]:
    taken = set(profile.enrolled_courses) | set(profile.completed_courses)
    return [c for c in catalog if c.id not in taken]


def get_personalized_recommendations(
    profile: UserProfile, catalog: CourseCatalog, limit: int = 6
) -> list[Recommendation]:
    recommendations = []
    for course in _available(profile, catalog):
        score, reason = score_course(course, profile)
        recommendations.append(Recommendation(
            course=course,
            reason=reason,
            relevance_score=score,
            type=classify_recommendation_type(course, profile),
        ))
    # sorted() is stable, so equal scores keep catalog order
    recommendations = sorted(recommendations, key=lambda r: r.relevance_score, reverse=True)
    return recommendations[:limit]


def get_next_step_recommendations(
    profile: UserProfile, catalog: CourseCatalog, limit: int = 3
) -> list[Recommendation]:
    """Courses unlocked by what the learner has completed, best rated first."""
    completed = set(profile.completed_courses)
    recommendations = []
    for course in _available(profile, catalog):
        if not course.prerequisites:
            continue
        if not all(p in completed for p in course.prerequisites):
            continue
        recommendations.append(Recommendation(
            course=course,
            reason="You've completed all prerequisites.",
            relevance_score=min(MAX_SCORE, round_half_up(90 + course.rating * 2)),
            type="next-step",
        ))
    recommendations = sorted(recommendations, key=lambda r: r.relevance_score, reverse=True)
    return recommendations[:limit]


def get_similar_courses(course_id: str, catalog: CourseCatalog, limit: int = 3) -> list[Course]:
    target = catalog.get(course_id)
    if target is None:
        return []
    target_tags = set(target.tags)
    scored = []
    for course in catalog:
        if course.id == course_id:
            continue
        similarity = 0
        if course.category == target.category:
            similarity += SIMILAR_CATEGORY_POINTS
        if course.skill_level == target.skill_level:
            similarity += SIMILAR_LEVEL_POINTS
        similarity += SHARED_TAG_POINTS * sum(1 for tag in course.tags if tag in target_tags)
        scored.append((similarity, course))
    scored = sorted(scored, key=lambda item: item[0], reverse=True)
    return [course for _, course in scored[:limit]]


def meets_prerequisites(
    course_id: str, profile: UserProfile, catalog: CourseCatalog
) -> tuple[bool, list[Course]]:
    """Return ``(meets, missing)`` where ``missing`` lists unfinished prerequisite courses."""
    course = catalog.get(course_id)
    if course is None:
        return False, []
    missing = [
        catalog.get(p)
        for p in course.prerequisites
        if p not in profile.completed_courses and p in catalog
    ]
    return not missing, missing


def get_continue_learning_courses(profile: UserProfile, catalog: CourseCatalog) -> list[Course]:
    """Enrolled, unfinished courses, most recently accessed first."""
    in_progress = [
        cp for cp in profile.course_progress
        if cp.course_id not in profile.completed_courses and cp.course_id in catalog
    ]
    in_progress = sorted(in_progress, key=lambda cp: cp.last_accessed_at, reverse=True)
    return [catalog.get(cp.course_id) for cp in in_progress]


def suggest_skill_level(profile: UserProfile, catalog: CourseCatalog) -> str:
    completed = [catalog.get(c) for c in profile.completed_courses if c in catalog]
    if not profile.completed_courses:
        return "beginner"
    if any(c.skill_level == "advanced" for c in completed) and len(profile.completed_courses) >= 3:
        return "advanced"
    return "intermediate"


def get_trending_courses(
    catalog: CourseCatalog, limit: int = 6, now: Optional[datetime] = None
) -> list[Course]:
    """Most-enrolled courses among those updated in the last 90 days."""
    cutoff = (now or datetime.now()).date() - timedelta(days=TRENDING_WINDOW_DAYS)
    recent = [
        c for c in catalog
        if c.updated_at and date.fromisoformat(c.updated_at[:10]) >= cutoff
    ]
    return sorted(recent, key=lambda c: c.enrollment_count, reverse=True)[:limit]
