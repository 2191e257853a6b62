"""
generator.py
======================

Google Gemini API で、貼り付けられた本文から四択問題を生成するクライアント。

要件:
- 固定のシステム指示 + 本文 + 出力スキーマで 1 回だけ generate_content を呼ぶ
- 出力 JSON を Question に変換し、id は 1..N に振り直す
  （モデルは id を重複させることがあるため、元の id は信用しない）
- 失敗はすべて GenerationResult の値として返す（例外は外へ出さない）
- 認証情報の問題（キー未設定 / キー不正）は一般エラーと区別する
- リトライはしない。文字数チェックと同時実行の抑止は GenerationGate が受け持つ
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import google.generativeai as genai
from google.api_core.exceptions import (
    GoogleAPIError,
    InvalidArgument,
    PermissionDenied,
    Unauthenticated,
)

from .models import Question

logger = logging.getLogger(__name__)


SYSTEM_INSTRUCTION = """
You are "Medica", an advanced IQ and cognitive assessment expert specializing in medical and scientific education.

TASK:
Exhaustively analyze the provided text and generate the MAXIMUM possible number of high-quality MCQ questions.
The goal is total information density: if a fact exists, a question should exist for it.

CRITICAL RULES:
1. NO SELF-REFERENCES: Do NOT use phrases like "According to the text", "In the article", or "The text states".
   Ask the questions as if they are general knowledge facts derived from the source.
2. EXHAUSTIVE COVERAGE: Extract every single unique data point, logical inference, and factual statement.
3. QUALITY: Ensure 4 distinct options per question. Only one must be correct.
4. DIFFICULTY: Categorize as "High" (deep reasoning/inference) or "Medium" (factual understanding).
5. FORMAT: Return strict JSON.
"""

QUIZ_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "questions": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "id": {"type": "INTEGER"},
                    "question": {"type": "STRING"},
                    "options": {"type": "ARRAY", "items": {"type": "STRING"}},
                    "correctAnswer": {"type": "STRING"},
                    "explanation": {"type": "STRING"},
                    "difficulty": {
                        "type": "STRING",
                        "format": "enum",
                        "enum": ["High", "Medium"],
                    },
                },
                "required": [
                    "id",
                    "question",
                    "options",
                    "correctAnswer",
                    "explanation",
                    "difficulty",
                ],
            },
        },
    },
    "required": ["questions"],
}


# ----------------------------------------------------------------------
#  結果型
# ----------------------------------------------------------------------
class GenerationErrorKind(str, Enum):
    MISSING_CREDENTIALS = "missing_credentials"
    INVALID_CREDENTIALS = "invalid_credentials"
    EMPTY_OR_MALFORMED_OUTPUT = "empty_or_malformed_output"
    TRANSPORT_OR_SERVICE_ERROR = "transport_or_service_error"


@dataclass(frozen=True)
class GenerationError:
    kind: GenerationErrorKind
    message: str

    @property
    def is_credential_error(self) -> bool:
        return self.kind in (
            GenerationErrorKind.MISSING_CREDENTIALS,
            GenerationErrorKind.INVALID_CREDENTIALS,
        )


@dataclass(frozen=True)
class GenerationResult:
    success: bool
    questions: Tuple[Question, ...] = field(default_factory=tuple)
    error: Optional[GenerationError] = None

    @classmethod
    def ok(cls, questions: List[Question]) -> "GenerationResult":
        return cls(success=True, questions=tuple(questions))

    @classmethod
    def fail(cls, kind: GenerationErrorKind, message: str) -> "GenerationResult":
        return cls(success=False, error=GenerationError(kind=kind, message=message))


class MalformedOutput(ValueError):
    """モデル出力が空、または期待した構造でない。"""


# ----------------------------------------------------------------------
#  出力の解釈
# ----------------------------------------------------------------------
def parse_quiz_output(text: str) -> List[Question]:
    """
    モデル出力（JSON 文字列）を Question のリストに変換する。

    - 空文字・JSON でない・questions が配列でない場合は MalformedOutput
    - 個々の問題が不正（選択肢が 4 つでない等）な場合はその問題だけ捨てる
    - 残った問題の id を配列順に 1..N で振り直す
    - 1 問も残らなければ MalformedOutput
    """
    if not text or not text.strip():
        raise MalformedOutput("No content generated")

    try:
        data = json.loads(text)
    except ValueError as e:
        raise MalformedOutput(f"Model returned invalid JSON: {e}") from e

    items = data.get("questions") if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise MalformedOutput("Model output has no question list")

    questions: List[Question] = []
    for pos, item in enumerate(items):
        try:
            questions.append(Question.from_dict(item))
        except (ValueError, OverflowError) as e:
            logger.warning("不正な問題を除外しました (index=%d): %s", pos, e)

    if not questions:
        raise MalformedOutput("Model output contained no usable questions")

    return [q.with_id(i) for i, q in enumerate(questions, start=1)]


def _classify_api_error(exc: GoogleAPIError) -> GenerationErrorKind:
    if isinstance(exc, (Unauthenticated, PermissionDenied)):
        return GenerationErrorKind.INVALID_CREDENTIALS
    # 不正なキーは 400 INVALID_ARGUMENT (API_KEY_INVALID) で返ってくる
    if isinstance(exc, InvalidArgument) and "api key" in str(exc).lower():
        return GenerationErrorKind.INVALID_CREDENTIALS
    return GenerationErrorKind.TRANSPORT_OR_SERVICE_ERROR


# ----------------------------------------------------------------------
#  QuizGenerator
# ----------------------------------------------------------------------
class QuizGenerator:
    """
    Gemini 呼び出しのラッパー。

    1 回の generate_quiz() につき外部呼び出しは最大 1 回。
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-2.5-flash",
        temperature: float = 0.3,
        timeout: float = 180.0,
    ):
        self.api_key = api_key
        self.model_name = model_name
        self.temperature = temperature
        self.timeout = timeout

    def _build_model(self) -> Any:
        genai.configure(api_key=self.api_key)
        return genai.GenerativeModel(
            self.model_name,
            system_instruction=SYSTEM_INSTRUCTION,
        )

    def _generation_config(self) -> Any:
        return genai.GenerationConfig(
            response_mime_type="application/json",
            response_schema=QUIZ_SCHEMA,
            temperature=self.temperature,
        )

    def generate_quiz(self, source_text: str) -> GenerationResult:
        """
        本文から問題を生成する。
        文字数の下限チェックは GenerationGate 側で行う前提で、ここでは再検証しない。
        """
        if not self.api_key:
            return GenerationResult.fail(
                GenerationErrorKind.MISSING_CREDENTIALS,
                "No Gemini API key is configured. Set GEMINI_API_KEY and restart.",
            )

        try:
            model = self._build_model()
            response = model.generate_content(
                f"SOURCE CONTENT:\n{source_text}",
                generation_config=self._generation_config(),
                request_options={"timeout": self.timeout},
            )
        except GoogleAPIError as e:
            kind = _classify_api_error(e)
            logger.error("Gemini API error (%s): %s", kind.value, e)
            return GenerationResult.fail(kind, str(e) or "Failed to generate assessment.")
        except Exception as e:
            logger.exception("Gemini 呼び出しに失敗しました")
            return GenerationResult.fail(
                GenerationErrorKind.TRANSPORT_OR_SERVICE_ERROR,
                str(e) or "Failed to generate assessment.",
            )

        # ブロックされた応答などでは response.text 自体が ValueError を送出する
        try:
            text = response.text
        except ValueError:
            text = ""

        try:
            questions = parse_quiz_output(text)
        except MalformedOutput as e:
            logger.error("Gemini の出力を解釈できません: %s", e)
            return GenerationResult.fail(GenerationErrorKind.EMPTY_OR_MALFORMED_OUTPUT, str(e))

        logger.info("%d 問を生成しました (model=%s)", len(questions), self.model_name)
        return GenerationResult.ok(questions)


# ----------------------------------------------------------------------
#  呼び出し前のチェック
# ----------------------------------------------------------------------
def source_text_error(text: str, min_chars: int) -> Optional[str]:
    """本文が短すぎる場合はエラーメッセージ、十分なら None を返す。"""
    if len((text or "").strip()) < min_chars:
        return f"Please enter sufficient text (at least {min_chars} characters) for analysis."
    return None


class GenerationGate:
    """
    生成リクエストの受付窓口。

    - 本文が min_chars 未満なら外部呼び出しをせずに弾く
    - 生成中（busy）の再送信は無視する
    """

    def __init__(self, min_chars: int):
        self.min_chars = min_chars
        self.busy = False

    def begin(self, text: str) -> Tuple[bool, Optional[str]]:
        """受け付けたら (True, None)。弾いたら (False, エラー文 or None)。"""
        error = source_text_error(text, self.min_chars)
        if error is not None:
            return False, error
        if self.busy:
            logger.info("生成中のため再送信を無視しました")
            return False, None
        self.busy = True
        return True, None

    def finish(self) -> None:
        self.busy = False
