"""
medica_quiz パッケージ
======================

このパッケージは、本文から四択試験を自動生成するアプリ Medica の
内部ロジックを提供する。

主な役割:
- 設定管理（config）
- 端末ローカルのキーバリューストア（store）
- アクセスコードによるゲートと失効管理（auth）
- 問題データモデル（models）
- Gemini API による問題生成（generator）
- 解答・提出・採点の状態管理（session）
- UI コンポーネント（ui）

app.py は Streamlit UI のみを担当し、内部ロジックはすべて本パッケージから呼ぶ。
ui は streamlit に依存するため、ここでは import しない。
"""

from .auth import AccessManager, AuthorizationRecord, SessionCountdown, SessionStatus
from .config import AppConfig, load_config
from .generator import GenerationError, GenerationErrorKind, GenerationResult, QuizGenerator
from .models import Difficulty, Question
from .session import QuizSession, QuizState, rating_for
from .store import JsonFileStore, KeyValueStore, MemoryStore, StoreError

__all__ = [
    "AccessManager",
    "AuthorizationRecord",
    "SessionCountdown",
    "SessionStatus",
    "AppConfig",
    "load_config",
    "GenerationError",
    "GenerationErrorKind",
    "GenerationResult",
    "QuizGenerator",
    "Difficulty",
    "Question",
    "QuizSession",
    "QuizState",
    "rating_for",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "StoreError",
]
