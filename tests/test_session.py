"""
Tests for the quiz state machine and rating.
"""
import pytest

from conftest import make_question
from medica_quiz.models import Difficulty
from medica_quiz.session import QuizSession, QuizState, rating_for


@pytest.fixture
def session(sample_questions):
    s = QuizSession()
    s.load_questions(sample_questions)
    return s


def answer_all(session, option_for=lambda q: q.correct_answer):
    for q in session.questions:
        session.select_answer(q.id, option_for(q))


def test_new_session_is_empty():
    s = QuizSession()
    assert s.state is QuizState.EMPTY
    assert s.questions == ()
    assert s.answers == {}
    assert s.score is None
    assert s.is_complete() is False
    assert s.submit() is False


def test_load_questions_starts_in_progress(session, sample_questions):
    assert session.state is QuizState.IN_PROGRESS
    assert session.total == len(sample_questions)
    assert session.answered_count == 0
    assert session.submitted is False


def test_load_only_from_empty(session):
    assert session.load_questions([make_question(1)]) is False
    assert session.total == 5


def test_load_empty_list_stays_empty():
    s = QuizSession()
    s.load_questions([])
    assert s.state is QuizState.EMPTY


def test_submit_rejected_when_incomplete(session):
    for q in session.questions[:4]:
        session.select_answer(q.id, q.correct_answer)

    assert session.is_complete() is False
    assert session.submit() is False
    assert session.submitted is False
    assert session.score is None


def test_scoring_example():
    s = QuizSession()
    s.load_questions([make_question(1, "A"), make_question(2, "B")])
    s.select_answer(1, "A")
    s.select_answer(2, "C")

    assert s.is_complete()
    assert s.submit() is True
    assert s.score == 1
    assert s.state is QuizState.SUBMITTED


def test_reanswer_keeps_latest(session):
    session.select_answer(1, "B")
    session.select_answer(1, "A")
    assert session.answers[1] == "A"
    assert session.answered_count == 1


def test_select_after_submit_is_ignored(session):
    answer_all(session)
    session.submit()
    session.select_answer(1, "D")
    assert session.answers[1] == "A"
    assert session.score == 5


def test_second_submit_does_not_recompute(session):
    answer_all(session)
    assert session.submit() is True
    assert session.submit() is False
    assert session.score == 5


def test_select_answer_is_permissive(session):
    session.select_answer(1, "not an option")
    session.select_answer(99, "A")
    assert session.answers[1] == "not an option"
    assert 99 in session.answers
    assert session.answered_count == 1


def test_scoring_is_exact_match(session):
    answer_all(session, option_for=lambda q: q.correct_answer.lower())
    session.submit()
    assert session.score == 0


@pytest.mark.parametrize("answered", [0, 2, 5])
def test_progress_ratio(session, answered):
    for q in session.questions[:answered]:
        session.select_answer(q.id, "A")
    assert session.progress_ratio == answered / 5


@pytest.mark.parametrize("submit", [False, True])
def test_reset_from_any_state(session, submit):
    answer_all(session)
    if submit:
        session.submit()
    session.reset()
    assert session.state is QuizState.EMPTY
    assert session.questions == ()
    assert session.answers == {}
    assert session.score is None
    assert session.submitted is False


def test_reset_from_empty():
    s = QuizSession()
    s.reset()
    assert s.state is QuizState.EMPTY


def test_reset_then_load_again(session):
    session.reset()
    assert session.load_questions([make_question(1)]) is True
    assert session.total == 1


def test_answers_view_is_a_copy(session):
    session.answers[1] = "B"
    assert session.answer_for(1) is None


def test_difficulty_breakdown(session):
    answer_all(session, option_for=lambda q: "A")
    assert session.difficulty_breakdown() == {}
    session.submit()
    breakdown = session.difficulty_breakdown()
    assert breakdown[Difficulty.HIGH] == {"total": 2, "correct": 1}
    assert breakdown[Difficulty.MEDIUM] == {"total": 3, "correct": 1}


def test_rating_after_submit(session):
    answer_all(session)
    assert session.rating is None
    session.submit()
    assert session.rating == "Medical Genius"


@pytest.mark.parametrize(
    "score,total,expected",
    [
        (9, 10, "Medical Genius"),
        (10, 10, "Medical Genius"),
        (89999, 100000, "Expert"),
        (3, 4, "Expert"),
        (6, 10, "Proficient"),
        (59, 100, "Novice"),
        (0, 5, "Novice"),
        (0, 0, "Novice"),
    ],
)
def test_rating_for(score, total, expected):
    assert rating_for(score, total) == expected
