"""Enrollment, lesson/quiz progress, streaks and learning statistics.

Every function here takes a UserProfile and returns a new one; the profile
passed in is left untouched. Persisting the result is up to the caller
(see ``training_portal.store``).
"""
import logging
import uuid
from copy import deepcopy
from datetime import datetime, timedelta
from typing import Optional

from training_portal.catalog import CourseCatalog
from training_portal.errors import InvalidScoreError, NotEnrolledError, NotFoundError
from training_portal.models import (
    ACHIEVEMENT_TYPES,
    CATEGORIES,
    DEFAULT_PASSING_SCORE,
    SKILL_LEVELS,
    Achievement,
    Course,
    CourseProgress,
    LearningStats,
    LessonProgress,
    ModuleProgress,
    UserProfile,
    percentage,
    round_half_up,
)

logger = logging.getLogger(__name__)


def _validate_skill_level(level: str) -> None:
    if level not in SKILL_LEVELS:
        raise ValueError(f"Unknown skill level: {level}")


def create_profile(
    name: str,
    skill_level: str = "beginner",
    interests: Optional[list[str]] = None,
    learning_goals: Optional[list[str]] = None,
    profile_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> UserProfile:
    """Onboard a new learner."""
    _validate_skill_level(skill_level)
    interests = list(interests or [])
    unknown = [c for c in interests if c not in CATEGORIES]
    if unknown:
        raise ValueError(f"Unknown interest categories: {', '.join(unknown)}")
    now = now or datetime.now()
    return UserProfile(
        id=profile_id or uuid.uuid4().hex,
        name=name,
        skill_level=skill_level,
        interests=interests,
        learning_goals=[g.strip() for g in learning_goals or [] if g.strip()],
        created_at=now.isoformat(),
    )


def update_skill_level(profile: UserProfile, level: str) -> UserProfile:
    _validate_skill_level(level)
    profile = deepcopy(profile)
    profile.skill_level = level
    return profile


def reset_progress(profile: UserProfile) -> UserProfile:
    """Wipe all learning history, keeping identity and onboarding choices."""
    return UserProfile(
        id=profile.id,
        name=profile.name,
        skill_level=profile.skill_level,
        interests=list(profile.interests),
        learning_goals=list(profile.learning_goals),
        created_at=profile.created_at,
    )


def enroll_course(
    profile: UserProfile, catalog: CourseCatalog, course_id: str, now: Optional[datetime] = None
) -> UserProfile:
    catalog.require(course_id)
    profile = deepcopy(profile)
    if course_id in profile.enrolled_courses:
        return profile
    stamp = (now or datetime.now()).isoformat()
    profile.enrolled_courses.append(course_id)
    profile.course_progress.append(
        CourseProgress(course_id=course_id, enrolled_at=stamp, last_accessed_at=stamp)
    )
    logger.info("Profile %s enrolled in %s", profile.id, course_id)
    return profile


def unenroll_course(profile: UserProfile, course_id: str) -> UserProfile:
    """Drop an enrollment and its progress. Completed courses and achievements are kept."""
    profile = deepcopy(profile)
    profile.enrolled_courses = [c for c in profile.enrolled_courses if c != course_id]
    profile.course_progress = [cp for cp in profile.course_progress if cp.course_id != course_id]
    return profile


def get_course_progress(profile: UserProfile, course_id: str) -> CourseProgress:
    course_progress = profile.find_course_progress(course_id)
    if course_progress is None:
        raise NotEnrolledError(course_id)
    return course_progress


def _require_lesson(course: Course, module_id: str, lesson_id: str):
    if course.find_module(module_id) is None:
        raise NotFoundError("Module", module_id)
    lesson = course.find_lesson(module_id, lesson_id)
    if lesson is None:
        raise NotFoundError("Lesson", lesson_id)
    return lesson


def _get_or_create_module(course_progress: CourseProgress, module_id: str) -> ModuleProgress:
    module_progress = course_progress.find_module(module_id)
    if module_progress is None:
        module_progress = ModuleProgress(module_id=module_id)
        course_progress.module_progress.append(module_progress)
    return module_progress


def _get_or_create_lesson(module_progress: ModuleProgress, lesson_id: str) -> LessonProgress:
    lesson_progress = module_progress.find_lesson(lesson_id)
    if lesson_progress is None:
        lesson_progress = LessonProgress(lesson_id=lesson_id)
        module_progress.lesson_progress.append(lesson_progress)
    return lesson_progress


def recompute_course_progress(
    course_progress: CourseProgress, course: Course, now: Optional[datetime] = None
) -> CourseProgress:
    """Refresh every derived field of ``course_progress`` from its lesson records.

    A module counts as completed once every lesson the course defines for it
    is completed. overall_progress counts completed lessons against all
    lessons in the course definition and stays at 99 or below until every
    one of them is completed, however many lessons the course has.
    Updates ``course_progress`` in place and returns it.
    """
    completed_total = 0
    for module_progress in course_progress.module_progress:
        module = course.find_module(module_progress.module_id)
        if module is None:
            continue
        done = {lp.lesson_id for lp in module_progress.lesson_progress if lp.completed}
        completed_total += sum(1 for lesson in module.lessons if lesson.id in done)
        all_done = bool(module.lessons) and all(lesson.id in done for lesson in module.lessons)
        if all_done and not module_progress.completed:
            module_progress.completed_at = (now or datetime.now()).isoformat()
        module_progress.completed = all_done

    total = course.lesson_count
    progress = percentage(completed_total, total)
    if completed_total < total:
        progress = min(progress, 99)
    course_progress.overall_progress = progress
    return course_progress


def _has_certificate(profile: UserProfile, course_id: str) -> bool:
    return any(a.type == "certificate" and a.course_id == course_id for a in profile.achievements)


def _complete_course(profile: UserProfile, course_progress: CourseProgress, course: Course, now: datetime) -> None:
    if course.id not in profile.completed_courses:
        profile.completed_courses.append(course.id)
        logger.info("Profile %s completed course %s", profile.id, course.id)
    if not course.certificate_offered:
        return
    if not course_progress.certificate_earned:
        course_progress.certificate_earned = True
        course_progress.certificate_earned_at = now.isoformat()
    if not _has_certificate(profile, course.id):
        profile.achievements.append(Achievement(
            id=f"cert-{course.id}-{uuid.uuid4().hex[:8]}",
            type="certificate",
            title=f"{course.title} Certificate",
            description=f'Successfully completed the course "{course.title}"',
            course_id=course.id,
            earned_at=now.isoformat(),
        ))
        logger.info("Issued certificate for %s to profile %s", course.id, profile.id)


def add_achievement(profile: UserProfile, achievement: Achievement) -> UserProfile:
    """Award a badge, milestone or certificate that is not tied to lesson flow."""
    if achievement.type not in ACHIEVEMENT_TYPES:
        raise ValueError(f"Unknown achievement type: {achievement.type}")
    profile = deepcopy(profile)
    profile.achievements.append(deepcopy(achievement))
    logger.info("Profile %s earned %s %s", profile.id, achievement.type, achievement.id)
    return profile


def start_lesson(
    profile: UserProfile,
    catalog: CourseCatalog,
    course_id: str,
    module_id: str,
    lesson_id: str,
    now: Optional[datetime] = None,
) -> UserProfile:
    """Mark a course as accessed without changing completion.

    Opens an empty progress record for the lesson's module, so a quiz at
    the start of a module can be submitted before any lesson is completed.
    """
    if profile.find_course_progress(course_id) is None:
        raise NotEnrolledError(course_id)
    _require_lesson(catalog.require(course_id), module_id, lesson_id)
    profile = deepcopy(profile)
    stamp = (now or datetime.now()).isoformat()
    course_progress = profile.find_course_progress(course_id)
    _get_or_create_module(course_progress, module_id)
    course_progress.last_accessed_at = stamp
    profile.last_active_date = stamp
    return profile


def complete_lesson(
    profile: UserProfile,
    catalog: CourseCatalog,
    course_id: str,
    module_id: str,
    lesson_id: str,
    time_spent: int,
    now: Optional[datetime] = None,
) -> UserProfile:
    """Mark a lesson completed and roll the result up to module and course.

    Completing an already-completed lesson is allowed: the completed flag
    is unchanged but ``time_spent`` is added again, both on the lesson and
    on the profile's total learning time.
    """
    if time_spent < 0:
        raise ValueError("time_spent must not be negative")
    if profile.find_course_progress(course_id) is None:
        raise NotEnrolledError(course_id)
    course = catalog.require(course_id)
    _require_lesson(course, module_id, lesson_id)

    now = now or datetime.now()
    stamp = now.isoformat()
    profile = deepcopy(profile)
    course_progress = profile.find_course_progress(course_id)

    module_progress = _get_or_create_module(course_progress, module_id)
    lesson_progress = _get_or_create_lesson(module_progress, lesson_id)
    lesson_progress.completed = True
    lesson_progress.completed_at = stamp
    lesson_progress.time_spent += time_spent
    course_progress.last_accessed_at = stamp

    recompute_course_progress(course_progress, course, now)
    if course_progress.overall_progress == 100:
        _complete_course(profile, course_progress, course, now)

    profile.total_learning_time += time_spent
    profile.last_active_date = stamp
    logger.debug(
        "Profile %s completed %s/%s/%s (%d%%)",
        profile.id, course_id, module_id, lesson_id, course_progress.overall_progress,
    )
    return profile


def submit_quiz(
    profile: UserProfile,
    catalog: CourseCatalog,
    course_id: str,
    module_id: str,
    lesson_id: str,
    score: int,
    now: Optional[datetime] = None,
) -> UserProfile:
    """Record a quiz attempt.

    The lesson is marked completed when ``score`` reaches the quiz's own
    passing score. Course progress is not recomputed here; follow a passing
    attempt with ``complete_lesson``.
    """
    if not 0 <= score <= 100:
        raise InvalidScoreError(score)
    course_progress = profile.find_course_progress(course_id)
    if course_progress is None:
        raise NotEnrolledError(course_id)
    lesson = _require_lesson(catalog.require(course_id), module_id, lesson_id)
    if course_progress.find_module(module_id) is None:
        raise NotFoundError("Module progress", module_id)

    passing_score = lesson.quiz.passing_score if lesson.quiz else DEFAULT_PASSING_SCORE
    stamp = (now or datetime.now()).isoformat()
    profile = deepcopy(profile)
    course_progress = profile.find_course_progress(course_id)
    lesson_progress = _get_or_create_lesson(course_progress.find_module(module_id), lesson_id)
    lesson_progress.quiz_score = score
    lesson_progress.attempts += 1
    # a failed retake never takes back an earlier pass
    if score >= passing_score and not lesson_progress.completed:
        lesson_progress.completed = True
        lesson_progress.completed_at = stamp
    course_progress.last_accessed_at = stamp
    return profile


def update_streak(profile: UserProfile, now: Optional[datetime] = None) -> UserProfile:
    """Count today toward the consecutive-day streak.

    Call this before recording the day's other activity: lesson completion
    also stamps ``last_active_date``, after which today already counts as
    seen.
    """
    now = now or datetime.now()
    today = now.date()
    last_active = (
        datetime.fromisoformat(profile.last_active_date).date() if profile.last_active_date else None
    )
    if last_active == today:
        return deepcopy(profile)

    profile = deepcopy(profile)
    if last_active == today - timedelta(days=1):
        profile.current_streak += 1
    else:
        profile.current_streak = 1
    profile.longest_streak = max(profile.longest_streak, profile.current_streak)
    profile.last_active_date = now.isoformat()
    return profile


def get_learning_stats(profile: UserProfile) -> LearningStats:
    lessons = [
        lp
        for cp in profile.course_progress
        for mp in cp.module_progress
        for lp in mp.lesson_progress
    ]
    quiz_scores = [lp.quiz_score for lp in lessons if lp.quiz_score is not None]
    total_courses = len(profile.enrolled_courses)
    completed_courses = len(profile.completed_courses)
    in_progress = total_courses - completed_courses
    if in_progress < 0:
        logger.warning(
            "Profile %s has more completed (%d) than enrolled (%d) courses",
            profile.id, completed_courses, total_courses,
        )
    return LearningStats(
        total_courses=total_courses,
        completed_courses=completed_courses,
        in_progress_courses=in_progress,
        total_lessons=len(lessons),
        completed_lessons=sum(1 for lp in lessons if lp.completed),
        total_learning_time=profile.total_learning_time,
        certificates_earned=sum(1 for a in profile.achievements if a.type == "certificate"),
        average_quiz_score=round_half_up(sum(quiz_scores) / len(quiz_scores)) if quiz_scores else 0,
        current_streak=profile.current_streak,
        longest_streak=profile.longest_streak,
    )
