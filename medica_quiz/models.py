"""
models.py
======================

クイズ問題のデータモデル。

Gemini の出力（camelCase の JSON）と相互変換する:

{
  "id": 1,
  "question": "問題文",
  "options": ["A", "B", "C", "D"],
  "correctAnswer": "A",
  "explanation": "解説",
  "difficulty": "High" | "Medium"
}
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Tuple

OPTION_COUNT = 4


class Difficulty(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"

    @classmethod
    def parse(cls, value: Any) -> "Difficulty":
        """大文字小文字を無視して解釈する。不明な値は MEDIUM 扱い。"""
        if isinstance(value, str):
            for d in cls:
                if d.value.lower() == value.strip().lower():
                    return d
        return cls.MEDIUM

    @property
    def label(self) -> str:
        return "High Complexity" if self is Difficulty.HIGH else "Core Knowledge"


@dataclass(frozen=True)
class Question:
    id: int
    question: str
    options: Tuple[str, ...]
    correct_answer: str
    explanation: str
    difficulty: Difficulty = Difficulty.MEDIUM

    def __post_init__(self) -> None:
        if not self.question.strip():
            raise ValueError("question text is empty")
        if len(self.options) != OPTION_COUNT:
            raise ValueError(f"expected {OPTION_COUNT} options, got {len(self.options)}")
        if len(set(self.options)) != OPTION_COUNT:
            raise ValueError("options must be distinct")
        if self.correct_answer not in self.options:
            raise ValueError("correct answer is not one of the options")
        if not self.explanation.strip():
            raise ValueError("explanation is empty")

    def with_id(self, new_id: int) -> "Question":
        return replace(self, id=new_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        """
        dict から Question を作る。
        correctAnswer / correct_answer のどちらのキーも受け付ける。
        不正な場合は ValueError。
        """
        if not isinstance(data, dict):
            raise ValueError("question must be an object")

        options = data.get("options")
        if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
            raise ValueError("options must be a list of strings")

        correct = data.get("correctAnswer", data.get("correct_answer"))
        text = data.get("question")
        explanation = data.get("explanation")
        if not isinstance(correct, str) or not isinstance(text, str) or not isinstance(explanation, str):
            raise ValueError("question, correctAnswer and explanation must be strings")

        raw_id = data.get("id", 0)
        try:
            qid = int(raw_id)
        except (TypeError, ValueError, OverflowError):
            qid = 0

        return cls(
            id=qid,
            question=text.strip(),
            options=tuple(o.strip() for o in options),
            correct_answer=correct.strip(),
            explanation=explanation.strip(),
            difficulty=Difficulty.parse(data.get("difficulty")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
            "explanation": self.explanation,
            "difficulty": self.difficulty.value,
        }
