"""
session.py
======================

1 回分のクイズ（生成された問題セット + ユーザーの解答）の状態管理。

状態遷移:

    EMPTY --load_questions--> IN_PROGRESS --submit--> SUBMITTED
      ^                                                   |
      +---------------------- reset ----------------------+

- 永続化はしない（Streamlit の st.session_state にのみ保持）
- 提出後は解答の変更を受け付けない
- score は提出時に一度だけ計算する
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from .models import Difficulty, Question


class QuizState(str, Enum):
    EMPTY = "empty"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


# (下限比率, ラベル) を上から順に判定する
RATING_THRESHOLDS: Tuple[Tuple[float, str], ...] = (
    (0.90, "Medical Genius"),
    (0.75, "Expert"),
    (0.60, "Proficient"),
)
DEFAULT_RATING = "Novice"


def rating_for(score: int, total: int) -> str:
    """正答率から評価ラベルを返す。閾値ちょうどは上位側に含める。"""
    if total <= 0:
        return DEFAULT_RATING
    ratio = score / total
    for threshold, label in RATING_THRESHOLDS:
        if ratio >= threshold:
            return label
    return DEFAULT_RATING


class QuizSession:
    """
    クイズの進行状態。

    主な操作:
    - load_questions(): 問題セットを読み込む（EMPTY のときのみ）
    - select_answer(): 解答を記録（提出前のみ、上書き可）
    - submit(): 全問解答済みなら採点して確定
    - reset(): いつでも EMPTY に戻す
    """

    def __init__(self) -> None:
        self._questions: Tuple[Question, ...] = ()
        self._answers: Dict[int, str] = {}
        self._submitted = False
        self._score: Optional[int] = None

    # ------------------------------------------------------------------
    # 参照用プロパティ
    # ------------------------------------------------------------------
    @property
    def questions(self) -> Tuple[Question, ...]:
        return self._questions

    @property
    def answers(self) -> Dict[int, str]:
        return dict(self._answers)

    @property
    def submitted(self) -> bool:
        return self._submitted

    @property
    def score(self) -> Optional[int]:
        return self._score

    @property
    def state(self) -> QuizState:
        if not self._questions:
            return QuizState.EMPTY
        if self._submitted:
            return QuizState.SUBMITTED
        return QuizState.IN_PROGRESS

    @property
    def total(self) -> int:
        return len(self._questions)

    @property
    def answered_count(self) -> int:
        return sum(1 for q in self._questions if q.id in self._answers)

    @property
    def progress_ratio(self) -> float:
        if not self._questions:
            return 0.0
        return self.answered_count / self.total

    @property
    def rating(self) -> Optional[str]:
        if self._score is None:
            return None
        return rating_for(self._score, self.total)

    # ------------------------------------------------------------------
    # 遷移
    # ------------------------------------------------------------------
    def load_questions(self, questions: Iterable[Question]) -> bool:
        """EMPTY 以外から呼ばれた場合は何もせず False を返す。"""
        if self.state is not QuizState.EMPTY:
            return False
        self._questions = tuple(questions)
        self._answers = {}
        self._submitted = False
        self._score = None
        return True

    def select_answer(self, question_id: int, option: str) -> None:
        # 選択肢の妥当性は UI 側が保証する
        if self._submitted:
            return
        self._answers[question_id] = option

    def answer_for(self, question_id: int) -> Optional[str]:
        return self._answers.get(question_id)

    def is_complete(self) -> bool:
        if not self._questions:
            return False
        return all(q.id in self._answers for q in self._questions)

    def submit(self) -> bool:
        """採点して確定する。未解答がある場合・提出済みの場合は False。"""
        if self._submitted or not self.is_complete():
            return False
        self._score = sum(
            1 for q in self._questions if self._answers.get(q.id) == q.correct_answer
        )
        self._submitted = True
        return True

    def reset(self) -> None:
        self._questions = ()
        self._answers = {}
        self._submitted = False
        self._score = None

    # ------------------------------------------------------------------
    # 結果の集計
    # ------------------------------------------------------------------
    def is_correct(self, question: Question) -> bool:
        return self._answers.get(question.id) == question.correct_answer

    def difficulty_breakdown(self) -> Dict[Difficulty, Dict[str, int]]:
        """
        提出後の難易度別集計。提出前は空 dict。

        戻り値の例:
            {Difficulty.HIGH: {"total": 4, "correct": 3}, ...}
        """
        if not self._submitted:
            return {}
        result: Dict[Difficulty, Dict[str, int]] = {}
        for q in self._questions:
            row = result.setdefault(q.difficulty, {"total": 0, "correct": 0})
            row["total"] += 1
            if self.is_correct(q):
                row["correct"] += 1
        return result
