# tests/test_quiz.py
from training_portal.models import Quiz, QuizQuestion
from training_portal.quiz import grade_quiz, is_passing


def _quiz(passing_score=70):
    return Quiz(
        questions=[
            QuizQuestion(id="q1", question="?", options=["a", "b", "c"], correct_answer=0),
            QuizQuestion(id="q2", question="?", options=["a", "b", "c"], correct_answer=1),
            QuizQuestion(id="q3", question="?", options=["a", "b", "c"], correct_answer=2),
            QuizQuestion(id="q4", question="?", options=["a", "b", "c"], correct_answer=2),
        ],
        passing_score=passing_score,
    )


def test_grade_all_correct():
    assert grade_quiz(_quiz(), {"q1": 0, "q2": 1, "q3": 2, "q4": 2}) == 100


def test_grade_partial():
    assert grade_quiz(_quiz(), {"q1": 0, "q2": 1, "q3": 2, "q4": 0}) == 75


def test_grade_unanswered_counts_wrong():
    assert grade_quiz(_quiz(), {"q1": 0}) == 25


def test_grade_empty_quiz():
    assert grade_quiz(Quiz(), {}) == 0


def test_catalog_quiz_two_of_three_fails(catalog):
    quiz = catalog.require("web-dev-fundamentals").find_lesson("js-basics", "js-quiz").quiz
    score = grade_quiz(quiz, {"q1": 2, "q2": 1, "q3": 0})
    assert score == 67
    assert not is_passing(quiz, score)


def test_is_passing_uses_quiz_threshold():
    assert is_passing(_quiz(70), 70)
    assert not is_passing(_quiz(80), 75)
    assert is_passing(_quiz(80), 80)


def test_grade_rounds_half_up():
    questions = [
        QuizQuestion(id=f"q{i}", question="?", options=["a", "b"], correct_answer=0) for i in range(8)
    ]
    quiz = Quiz(questions=questions)
    assert grade_quiz(quiz, {"q0": 0}) == 13
    assert grade_quiz(quiz, {f"q{i}": 0 for i in range(5)}) == 63
