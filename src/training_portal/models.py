"""Data classes for the training portal domain model."""
import math
from dataclasses import asdict, dataclass, field
from typing import Optional

SKILL_LEVELS = ("beginner", "intermediate", "advanced")

CATEGORIES = (
    "web-development",
    "mobile-development",
    "data-science",
    "ai-ml",
    "devops",
    "design",
    "cybersecurity",
)

LESSON_TYPES = ("theory", "interactive", "challenge", "project", "quiz")

ACHIEVEMENT_TYPES = ("certificate", "badge", "milestone")

RECOMMENDATION_TYPES = ("next-step", "similar", "trending", "personalized")

DEFAULT_PASSING_SCORE = 70


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (12.5 -> 13, not 12)."""
    return math.floor(value + 0.5)


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage of ``part`` in ``whole``; 0 when ``whole`` is 0."""
    if not whole:
        return 0
    return round_half_up(part * 100 / whole)


@dataclass
class QuizQuestion:
    id: str
    question: str
    options: list[str]
    correct_answer: int
    explanation: str = ""


@dataclass
class Quiz:
    questions: list[QuizQuestion] = field(default_factory=list)
    passing_score: int = DEFAULT_PASSING_SCORE
    time_limit: Optional[int] = None


@dataclass
class Lesson:
    id: str
    title: str
    type: str
    duration: int
    order: int = 0
    quiz: Optional[Quiz] = None


@dataclass
class Module:
    id: str
    title: str
    lessons: list[Lesson] = field(default_factory=list)
    description: str = ""
    order: int = 0

    def find_lesson(self, lesson_id: str) -> Optional[Lesson]:
        for lesson in self.lessons:
            if lesson.id == lesson_id:
                return lesson
        return None


@dataclass
class Course:
    id: str
    title: str
    skill_level: str
    category: str
    modules: list[Module] = field(default_factory=list)
    prerequisites: list[str] = field(default_factory=list)
    certificate_offered: bool = False
    enrollment_count: int = 0
    rating: float = 0.0
    tags: list[str] = field(default_factory=list)
    short_description: str = ""
    instructor: str = ""
    duration: int = 0  # hours
    updated_at: Optional[str] = None

    @property
    def lesson_count(self) -> int:
        return sum(len(m.lessons) for m in self.modules)

    def find_module(self, module_id: str) -> Optional[Module]:
        for module in self.modules:
            if module.id == module_id:
                return module
        return None

    def find_lesson(self, module_id: str, lesson_id: str) -> Optional[Lesson]:
        module = self.find_module(module_id)
        return module.find_lesson(lesson_id) if module else None


@dataclass
class LessonProgress:
    lesson_id: str
    completed: bool = False
    completed_at: Optional[str] = None
    time_spent: int = 0  # minutes, cumulative
    quiz_score: Optional[int] = None
    attempts: int = 0


@dataclass
class ModuleProgress:
    module_id: str
    lesson_progress: list[LessonProgress] = field(default_factory=list)
    completed: bool = False
    completed_at: Optional[str] = None

    def find_lesson(self, lesson_id: str) -> Optional[LessonProgress]:
        for lp in self.lesson_progress:
            if lp.lesson_id == lesson_id:
                return lp
        return None


@dataclass
class CourseProgress:
    course_id: str
    enrolled_at: str
    last_accessed_at: str
    module_progress: list[ModuleProgress] = field(default_factory=list)
    overall_progress: int = 0
    certificate_earned: bool = False
    certificate_earned_at: Optional[str] = None

    def find_module(self, module_id: str) -> Optional[ModuleProgress]:
        for mp in self.module_progress:
            if mp.module_id == module_id:
                return mp
        return None

    @property
    def completed_lessons(self) -> int:
        return sum(
            1 for mp in self.module_progress for lp in mp.lesson_progress if lp.completed
        )


@dataclass
class Achievement:
    id: str
    type: str
    title: str
    earned_at: str
    description: str = ""
    course_id: Optional[str] = None


@dataclass
class UserProfile:
    id: str
    name: str
    skill_level: str = "beginner"
    interests: list[str] = field(default_factory=list)
    learning_goals: list[str] = field(default_factory=list)
    enrolled_courses: list[str] = field(default_factory=list)
    completed_courses: list[str] = field(default_factory=list)
    course_progress: list[CourseProgress] = field(default_factory=list)
    achievements: list[Achievement] = field(default_factory=list)
    total_learning_time: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_active_date: Optional[str] = None
    created_at: Optional[str] = None

    def find_course_progress(self, course_id: str) -> Optional[CourseProgress]:
        for cp in self.course_progress:
            if cp.course_id == course_id:
                return cp
        return None


@dataclass
class LearningStats:
    total_courses: int = 0
    completed_courses: int = 0
    in_progress_courses: int = 0
    total_lessons: int = 0
    completed_lessons: int = 0
    total_learning_time: int = 0
    certificates_earned: int = 0
    average_quiz_score: int = 0
    current_streak: int = 0
    longest_streak: int = 0


@dataclass
class Recommendation:
    course: Course
    reason: str
    relevance_score: int
    type: str = "personalized"


def profile_to_dict(profile: UserProfile) -> dict:
    return asdict(profile)


def _lesson_progress_from_dict(data: dict) -> LessonProgress:
    return LessonProgress(**data)


def _module_progress_from_dict(data: dict) -> ModuleProgress:
    data = dict(data)
    data["lesson_progress"] = [_lesson_progress_from_dict(lp) for lp in data.get("lesson_progress", [])]
    return ModuleProgress(**data)


def _course_progress_from_dict(data: dict) -> CourseProgress:
    data = dict(data)
    data["module_progress"] = [_module_progress_from_dict(mp) for mp in data.get("module_progress", [])]
    return CourseProgress(**data)


def profile_from_dict(data: dict) -> UserProfile:
    """Rebuild a UserProfile (and its nested records) from profile_to_dict output."""
    data = dict(data)
    data["course_progress"] = [_course_progress_from_dict(cp) for cp in data.get("course_progress", [])]
    data["achievements"] = [Achievement(**a) for a in data.get("achievements", [])]
    return UserProfile(**data)
