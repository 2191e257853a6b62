"""
Pytest configuration and fixtures for Medica tests.
"""
import pytest

from medica_quiz.auth import AccessManager
from medica_quiz.models import Difficulty, Question
from medica_quiz.store import MemoryStore

DAY_MS = 24 * 60 * 60 * 1000
SESSION_MS = 28 * DAY_MS
START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def manager(store, clock):
    return AccessManager(
        store=store,
        access_codes=["sad", "happy", "man"],
        session_duration_ms=SESSION_MS,
        clock=clock,
    )


def make_question(qid, correct="A", difficulty=Difficulty.MEDIUM):
    return Question(
        id=qid,
        question=f"Question {qid}?",
        options=("A", "B", "C", "D"),
        correct_answer=correct,
        explanation="Because.",
        difficulty=difficulty,
    )


@pytest.fixture
def sample_questions():
    return [
        make_question(1, "A", Difficulty.HIGH),
        make_question(2, "B"),
        make_question(3, "C"),
        make_question(4, "D", Difficulty.HIGH),
        make_question(5, "A"),
    ]


@pytest.fixture
def raw_quiz():
    """Model output with duplicated ids, as Gemini sometimes returns."""
    return {
        "questions": [
            {
                "id": 7,
                "question": "Which organ produces insulin?",
                "options": ["Liver", "Pancreas", "Kidney", "Spleen"],
                "correctAnswer": "Pancreas",
                "explanation": "Beta cells of the islets of Langerhans secrete insulin.",
                "difficulty": "Medium",
            },
            {
                "id": 7,
                "question": "What does a low serum ferritin most strongly suggest?",
                "options": [
                    "Iron deficiency",
                    "Vitamin B12 deficiency",
                    "Hemolysis",
                    "Chronic inflammation",
                ],
                "correctAnswer": "Iron deficiency",
                "explanation": "Ferritin reflects body iron stores.",
                "difficulty": "High",
            },
            {
                "id": 1,
                "question": "Normal adult resting heart rate range?",
                "options": ["20-40", "60-100", "110-150", "160-200"],
                "correctAnswer": "60-100",
                "explanation": "Resting adult heart rate is 60-100 bpm.",
                "difficulty": "Medium",
            },
        ]
    }
