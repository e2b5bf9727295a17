"""Progress labels and per-course breakdown for the dashboard."""
from training_portal.catalog import CourseCatalog
from training_portal.models import UserProfile


def get_progress_label(progress: float) -> str:
    if progress >= 100:
        return "COMPLETED"
    elif progress >= 50:
        return "HALFWAY"
    elif progress > 0:
        return "STARTED"
    return "NOT STARTED"


def get_progress_color(progress: float) -> str:
    if progress >= 100:
        return "green"
    elif progress >= 50:
        return "yellow"
    elif progress > 0:
        return "dark_orange"
    return "red"


def get_course_breakdown(profile: UserProfile, catalog: CourseCatalog) -> list[dict]:
    """One row per enrolled course, in enrollment order."""
    results = []
    for cp in profile.course_progress:
        course = catalog.get(cp.course_id)
        if course is None:
            continue
        results.append({
            "course_id": course.id,
            "title": course.title,
            "progress": cp.overall_progress,
            "completed_lessons": cp.completed_lessons,
            "total_lessons": course.lesson_count,
            "certificate_earned": cp.certificate_earned,
            "label": get_progress_label(cp.overall_progress),
        })
    return results
