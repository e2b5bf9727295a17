"""Interactive CLI application."""
import logging
import os
from dataclasses import dataclass

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from training_portal.catalog import CourseCatalog, default_catalog
from training_portal.dashboard import get_course_breakdown, get_progress_color
from training_portal.db import DEFAULT_DB_PATH
from training_portal.errors import PortalError
from training_portal.models import (
    CATEGORIES, RECOMMENDATION_TYPES, SKILL_LEVELS, Course, Lesson, UserProfile,
)
from training_portal.progress import (
    complete_lesson, create_profile, enroll_course, get_course_progress, get_learning_stats,
    reset_progress, start_lesson, submit_quiz, update_streak,
)
from training_portal.quiz import grade_quiz, is_passing
from training_portal.recommendations import (
    get_continue_learning_courses, get_next_step_recommendations,
    get_personalized_recommendations, get_similar_courses, meets_prerequisites,
    suggest_skill_level,
)
from training_portal.store import ProfileStore

console = Console()

EXIT_WORDS = ("q", "menu")

RECOMMENDATION_STYLES = dict(zip(RECOMMENDATION_TYPES, ("green", "cyan", "magenta", "white")))


class SessionExitRequested(Exception):
    """Raised when the user types q/menu in the middle of a lesson or quiz."""


@dataclass
class Session:
    """The active profile and the store version it was last read or written at."""
    store: ProfileStore
    profile: UserProfile
    version: int

    def save(self, profile: UserProfile) -> UserProfile:
        """Write ``profile`` unless another process saved it since we read it."""
        self.version = self.store.save(profile, expected_version=self.version)
        self.profile = profile
        return profile

    def reload(self) -> UserProfile:
        self.profile = self.store.load(self.profile.id)
        self.version = self.store.get_version(self.profile.id)
        return self.profile


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str] | None = None) -> int:
    answer = session_prompt(prompt, choices=choices + list(EXIT_WORDS) if choices else None)
    return int(answer)


def configure_logging() -> None:
    level = os.environ.get("TRAINING_PORTAL_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def show_welcome(profile: UserProfile):
    console.print(Panel(
        f"[bold]Training Portal[/bold]\n[dim]Welcome back, {profile.name}[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("learn", "Continue a course"),
        ("catalog", "Browse courses"),
        ("enroll", "Enroll in a course"),
        ("dashboard", "Progress + learning stats"),
        ("recommend", "Courses picked for you"),
        ("similar", "Courses like one you know"),
        ("reset", "Erase all progress"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def onboard(store: ProfileStore) -> Session:
    console.print(Panel("Let's set up your learning profile.", title="Getting Started", border_style="blue"))
    name = Prompt.ask("Your name", default="Guest")
    level = Prompt.ask("Skill level", choices=list(SKILL_LEVELS), default="beginner")
    console.print("[dim]Categories: " + ", ".join(CATEGORIES) + "[/dim]")
    raw = Prompt.ask("Interests (comma separated)", default="")
    interests = [c.strip() for c in raw.split(",") if c.strip() in CATEGORIES]
    raw_goals = Prompt.ask("Learning goals (comma separated)", default="")
    profile = create_profile(name, level, interests, learning_goals=raw_goals.split(","))
    store.create(profile)
    store.set_active_profile_id(profile.id)
    return Session(store, profile, store.get_version(profile.id))


def run_quiz_session(lesson: Lesson) -> int:
    """Ask every question of a quiz lesson and return the percentage score."""
    quiz = lesson.quiz
    answers = {}
    console.print(f"\n[bold]{lesson.title}[/bold] — {len(quiz.questions)} questions, "
                  f"{quiz.passing_score}% to pass\n")
    for i, q in enumerate(quiz.questions, 1):
        console.print(f"[bold]Q{i}.[/bold] {q.question}\n")
        for n, option in enumerate(q.options, 1):
            console.print(f"  [cyan]{n})[/cyan] {option}")
        choice = session_int_prompt(
            "\nYour answer", choices=[str(n) for n in range(1, len(q.options) + 1)]
        )
        answers[q.id] = choice - 1
        if answers[q.id] == q.correct_answer:
            console.print("[green]Correct![/green]")
        else:
            console.print(f"[red]Incorrect.[/red] Answer: [green]{q.options[q.correct_answer]}[/green]")
        if q.explanation:
            console.print(f"[dim]{q.explanation}[/dim]")
        console.print()
    score = grade_quiz(quiz, answers)
    color = "green" if is_passing(quiz, score) else "red"
    console.print(f"[bold]Score: [{color}]{score}%[/{color}][/bold]\n")
    return score


def next_lesson(profile: UserProfile, course: Course):
    """First lesson of the course, in module order, that isn't completed yet."""
    course_progress = get_course_progress(profile, course.id)
    for module in course.modules:
        module_progress = course_progress.find_module(module.id)
        for lesson in module.lessons:
            lp = module_progress.find_lesson(lesson.id) if module_progress else None
            if lp is None or not lp.completed:
                return module, lesson
    return None, None


def pick_course(courses: list[Course], prompt: str) -> Course | None:
    if not courses:
        return None
    for i, c in enumerate(courses, 1):
        console.print(f"  [cyan]{i}[/cyan]) {c.title} [dim]({c.id})[/dim]")
    choice = Prompt.ask(prompt, choices=[str(i) for i in range(1, len(courses) + 1)])
    return courses[int(choice) - 1]


def run_course(session: Session, catalog: CourseCatalog, course: Course) -> UserProfile:
    """Walk the remaining lessons of one course, saving after each lesson."""
    profile = session.profile
    try:
        while True:
            module, lesson = next_lesson(profile, course)
            if lesson is None:
                console.print(f"[green]You've finished {course.title}![/green]")
                return profile
            profile = start_lesson(profile, catalog, course.id, module.id, lesson.id)
            console.print(Panel(
                f"[bold]{lesson.title}[/bold]\n[dim]{module.title} · {lesson.type} · {lesson.duration} min[/dim]",
                border_style="cyan",
            ))
            if lesson.type == "quiz" and lesson.quiz:
                score = run_quiz_session(lesson)
                profile = submit_quiz(profile, catalog, course.id, module.id, lesson.id, score)
                if not is_passing(lesson.quiz, score):
                    console.print(f"[yellow]You need {lesson.quiz.passing_score}% to pass. Try again![/yellow]")
                    return session.save(profile)
            else:
                session_prompt("[dim]Press Enter when done (q to stop)[/dim]", default="")
            profile = session.save(
                complete_lesson(profile, catalog, course.id, module.id, lesson.id, lesson.duration)
            )
            progress = get_course_progress(profile, course.id)
            color = get_progress_color(progress.overall_progress)
            console.print(f"[{color}]Course progress: {progress.overall_progress}%[/{color}]\n")
            if progress.certificate_earned and progress.overall_progress == 100:
                console.print(f"[bold green]Certificate earned: {course.title}[/bold green]")
    except SessionExitRequested:
        console.print("[dim]Progress saved.[/dim]")
    return profile


def cmd_learn(session: Session, catalog: CourseCatalog) -> UserProfile:
    profile = session.profile
    courses = get_continue_learning_courses(profile, catalog)
    if not courses:
        console.print("[yellow]No courses in progress. Use 'enroll' to start one.[/yellow]")
        return profile
    session.save(update_streak(profile))
    console.print("\n[bold]Continue Learning[/bold]")
    course = pick_course(courses, "Select course")
    return run_course(session, catalog, course)


def cmd_catalog(catalog: CourseCatalog, profile: UserProfile):
    table = Table(title="Course Catalog")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Level")
    table.add_column("Category")
    table.add_column("Rating", justify="right")
    table.add_column("Students", justify="right")
    table.add_column("Status")
    for c in catalog:
        if c.id in profile.completed_courses:
            status = "[green]Completed[/green]"
        elif c.id in profile.enrolled_courses:
            status = "[cyan]Enrolled[/cyan]"
        else:
            status = ""
        table.add_row(c.id, c.title, c.skill_level, c.category, f"{c.rating:.1f}", f"{c.enrollment_count:,}", status)
    console.print(table)


def cmd_enroll(session: Session, catalog: CourseCatalog) -> UserProfile:
    profile = session.profile
    available = [c for c in catalog if c.id not in profile.enrolled_courses]
    if not available:
        console.print("[yellow]You're enrolled in every course![/yellow]")
        return profile
    course = pick_course(available, "Enroll in")
    meets, missing = meets_prerequisites(course.id, profile, catalog)
    if not meets:
        console.print("[yellow]Missing prerequisites: " + ", ".join(c.title for c in missing) + "[/yellow]")
        if not Confirm.ask("Enroll anyway?", default=False):
            return profile
    profile = session.save(enroll_course(profile, catalog, course.id))
    console.print(f"[green]Enrolled in {course.title}![/green]")
    return profile


def cmd_dashboard(catalog: CourseCatalog, profile: UserProfile):
    stats = get_learning_stats(profile)
    console.print(Panel(
        f"[bold]{profile.name}[/bold] · {profile.skill_level}",
        title="Learning Dashboard", border_style="blue",
    ))
    breakdown = get_course_breakdown(profile, catalog)
    if breakdown:
        table = Table(title="Course Progress")
        table.add_column("Course", style="cyan")
        table.add_column("Lessons", justify="right")
        table.add_column("Progress")
        table.add_column("Status")
        for row in breakdown:
            color = get_progress_color(row["progress"])
            filled = int(row["progress"] / 5)
            bar = f"[{color}]{'█' * filled}{'░' * (20 - filled)}[/{color}] {row['progress']}%"
            status = f"[{color}]{row['label']}[/{color}]"
            if row["certificate_earned"]:
                status += " [bold green]+ certificate[/bold green]"
            table.add_row(row["title"], f"{row['completed_lessons']}/{row['total_lessons']}", bar, status)
        console.print(table)
    else:
        console.print("[dim]No enrollments yet.[/dim]")

    console.print(f"\n  Courses: [bold]{stats.completed_courses}/{stats.total_courses}[/bold]  |  "
                  f"Lessons: [bold]{stats.completed_lessons}[/bold]  |  "
                  f"Time: [bold]{stats.total_learning_time} min[/bold]  |  "
                  f"Avg Quiz: [bold]{stats.average_quiz_score}%[/bold]")
    console.print(f"  Streak: [bold]{stats.current_streak}[/bold] days "
                  f"(best {stats.longest_streak})  |  Certificates: [bold]{stats.certificates_earned}[/bold]")

    suggested = suggest_skill_level(profile, catalog)
    if suggested != profile.skill_level:
        console.print(f"\n  [yellow]Your completed courses suggest the {suggested} level.[/yellow]")


def cmd_recommend(catalog: CourseCatalog, profile: UserProfile):
    next_steps = get_next_step_recommendations(profile, catalog)
    if next_steps:
        console.print("\n[bold]Ready for next[/bold]")
        for rec in next_steps:
            console.print(f"  [green]{rec.course.title}[/green] — {rec.reason}")
    recs = get_personalized_recommendations(profile, catalog)
    if not recs:
        console.print("[green]You've taken every course in the catalog![/green]")
        return
    table = Table(title="Recommended for You")
    table.add_column("Course", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Type")
    table.add_column("Why")
    for rec in recs:
        style = RECOMMENDATION_STYLES.get(rec.type, "white")
        table.add_row(rec.course.title, str(rec.relevance_score), f"[{style}]{rec.type}[/{style}]", rec.reason)
    console.print(table)


def cmd_similar(catalog: CourseCatalog):
    course = pick_course(catalog.all(), "Find courses similar to")
    similar = get_similar_courses(course.id, catalog)
    console.print(f"\n[bold]Similar to {course.title}:[/bold]")
    for c in similar:
        console.print(f"  [cyan]{c.title}[/cyan] [dim]{c.skill_level} · {c.category}[/dim]")


def cmd_reset(session: Session) -> UserProfile:
    if not Confirm.ask("[red]Erase all progress, enrollments and achievements?[/red]", default=False):
        return session.profile
    profile = session.save(reset_progress(session.profile))
    console.print("[green]Progress reset.[/green]")
    return profile


def load_or_onboard(store: ProfileStore) -> Session:
    profile_id = store.get_active_profile_id()
    profile = store.get(profile_id) if profile_id else None
    if profile is None:
        return onboard(store)
    return Session(store, profile, store.get_version(profile.id))


def main():
    configure_logging()
    store = ProfileStore(DEFAULT_DB_PATH)
    catalog = default_catalog()
    session = load_or_onboard(store)

    show_welcome(session.profile)

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="learn").strip().lower()
        try:
            if choice == "learn":
                cmd_learn(session, catalog)
            elif choice == "catalog":
                cmd_catalog(catalog, session.profile)
            elif choice == "enroll":
                cmd_enroll(session, catalog)
            elif choice == "dashboard":
                cmd_dashboard(catalog, session.profile)
            elif choice == "recommend":
                cmd_recommend(catalog, session.profile)
            elif choice == "similar":
                cmd_similar(catalog)
            elif choice == "reset":
                cmd_reset(session)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Happy learning![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except PortalError as e:
            console.print(f"[red]Error: {e}[/red]")
            session.reload()


if __name__ == "__main__":
    main()
