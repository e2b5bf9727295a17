"""Quiz grading."""
from training_portal.models import Quiz, percentage


def grade_quiz(quiz: Quiz, answers: dict[str, int]) -> int:
    """Score as a whole percentage. ``answers`` maps question id to chosen option index."""
    correct = sum(1 for q in quiz.questions if answers.get(q.id) == q.correct_answer)
    return percentage(correct, len(quiz.questions))


def is_passing(quiz: Quiz, score: int) -> bool:
    return score >= quiz.passing_score
