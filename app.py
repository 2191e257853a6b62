"""
app.py
======================

Medica（本文 → 四択試験 自動生成アプリ, Streamlit）エントリーポイント。

特徴:
- 共有アクセスコードによる端末単位のゲート（28 日で失効）
- 貼り付けた本文から Gemini で網羅的な四択問題を生成
- 全問解答後に提出・採点し、評価ラベルと解説を表示
- light / dark テーマ（端末ローカルストアに保存）

前提:
- 環境変数 GEMINI_API_KEY（または API_KEY）が設定されていれば生成が有効
- config.toml があれば設定を上書きする（なくても動く）
"""

from __future__ import annotations

import logging
from typing import Optional

import streamlit as st

from medica_quiz.auth import AccessManager, SessionCountdown, SessionStatus, format_remaining
from medica_quiz.config import AppConfig, configure_logging, load_config
from medica_quiz.generator import GenerationGate, QuizGenerator
from medica_quiz.session import QuizSession, QuizState
from medica_quiz.store import JsonFileStore, KeyValueStore
from medica_quiz.ui import (
    apply_theme,
    load_theme,
    render_access_gate,
    render_footer,
    render_header,
    render_input_section,
    render_quiz_page,
    save_theme,
    system_theme,
)

logger = logging.getLogger("medica_quiz.app")

COUNTDOWN_INTERVAL_SECONDS = 60

CREDENTIAL_HINT = (
    "The Gemini API key is missing or was rejected. "
    "Set GEMINI_API_KEY (environment or .env) and restart the app."
)


# ----------------------------------------------------------------------
#  セッションに保持するオブジェクト
# ----------------------------------------------------------------------
def get_config() -> AppConfig:
    """AppConfig をセッションに保持して返す。"""
    if "app_config" not in st.session_state:
        cfg = load_config()
        configure_logging(cfg.log_level)
        st.session_state["app_config"] = cfg
    return st.session_state["app_config"]  # type: ignore[return-value]


def get_store() -> KeyValueStore:
    if "device_store" not in st.session_state:
        st.session_state["device_store"] = JsonFileStore(get_config().store_path)
    return st.session_state["device_store"]  # type: ignore[return-value]


def get_access_manager() -> AccessManager:
    if "access_manager" not in st.session_state:
        cfg = get_config()
        st.session_state["access_manager"] = AccessManager(
            store=get_store(),
            access_codes=cfg.access_codes,
            session_duration_ms=cfg.session_duration_ms,
        )
    return st.session_state["access_manager"]  # type: ignore[return-value]


def get_generator() -> QuizGenerator:
    if "quiz_generator" not in st.session_state:
        cfg = get_config()
        st.session_state["quiz_generator"] = QuizGenerator(
            api_key=cfg.gemini_api_key,
            model_name=cfg.gemini_model,
            temperature=cfg.temperature,
            timeout=cfg.request_timeout,
        )
    return st.session_state["quiz_generator"]  # type: ignore[return-value]


def get_quiz_session() -> QuizSession:
    """Quiz用の QuizSession をセッションに保持して返す。"""
    if "quiz_session" not in st.session_state:
        st.session_state["quiz_session"] = QuizSession()
    return st.session_state["quiz_session"]  # type: ignore[return-value]


def get_quiz_token() -> int:
    return st.session_state.get("quiz_token", 0)


def reset_quiz() -> None:
    """新しい分析に戻る。token を進めて前の試験の選択状態を引き継がないようにする。"""
    get_quiz_session().reset()
    st.session_state["quiz_token"] = get_quiz_token() + 1
    st.session_state["generation_error"] = None
    st.session_state["mq_source_text"] = ""


# ----------------------------------------------------------------------
#  生成
# ----------------------------------------------------------------------
def get_generation_gate() -> GenerationGate:
    if "generation_gate" not in st.session_state:
        st.session_state["generation_gate"] = GenerationGate(get_config().min_source_chars)
    return st.session_state["generation_gate"]  # type: ignore[return-value]


def handle_generate(text: str) -> None:
    gate = get_generation_gate()
    accepted, error_message = gate.begin(text)
    if not accepted:
        if error_message is not None:
            st.session_state["generation_error"] = error_message
            st.session_state["generation_hint"] = None
        return

    st.session_state["generation_error"] = None
    try:
        with st.spinner("Analyzing Content..."):
            result = get_generator().generate_quiz(text)
    finally:
        gate.finish()

    if result.success:
        get_quiz_session().load_questions(result.questions)
        st.rerun()

    error = result.error
    st.session_state["generation_error"] = (
        error.message if error is not None else "An unexpected error occurred."
    )
    st.session_state["generation_hint"] = (
        CREDENTIAL_HINT if error is not None and error.is_credential_error else None
    )


# ----------------------------------------------------------------------
#  失効カウントダウン
# ----------------------------------------------------------------------
def _expire_now() -> None:
    # 全体を再実行すると check_session が走り、失効レコードが削除される
    st.rerun(scope="app")


@st.fragment(run_every=COUNTDOWN_INTERVAL_SECONDS)
def render_session_countdown(expires_at: int) -> None:
    countdown: Optional[SessionCountdown] = st.session_state.get("session_countdown")
    if countdown is None or countdown.expires_at != expires_at:
        countdown = SessionCountdown(
            expires_at=expires_at,
            on_expire=_expire_now,
            clock=get_access_manager().clock,
        )
        st.session_state["session_countdown"] = countdown

    remaining = countdown.tick()
    render_footer(authorized=True, remaining_text=format_remaining(remaining))


# ----------------------------------------------------------------------
#  ページ
# ----------------------------------------------------------------------
def render_gate_page(manager: AccessManager) -> None:
    ui_result = render_access_gate(error=st.session_state.get("gate_error", False))
    code = ui_result["submitted_code"]
    if code is None:
        return

    st.session_state["gate_error"] = not manager.unlock(code)
    st.rerun()


def render_main_page() -> None:
    session = get_quiz_session()

    if session.state is QuizState.EMPTY:
        ui_result = render_input_section(
            min_chars=get_config().min_source_chars,
            busy=get_generation_gate().busy,
            error=st.session_state.get("generation_error"),
            hint=st.session_state.get("generation_hint"),
        )
        if ui_result["clicked_generate"]:
            handle_generate(ui_result["text"])
            st.rerun()
        return

    ui_result = render_quiz_page(session, quiz_token=get_quiz_token())
    if ui_result["clicked_submit"]:
        session.submit()
        st.rerun()
    elif ui_result["clicked_reset"]:
        reset_quiz()
        st.rerun()


# ----------------------------------------------------------------------
#  メイン
# ----------------------------------------------------------------------
def main() -> None:
    cfg = get_config()
    st.set_page_config(
        page_title=cfg.app_name,
        page_icon="🧠",
        layout="centered",
    )

    store = get_store()
    manager = get_access_manager()

    # 起動時・再実行時に毎回評価する（失効・破損はここで削除される）
    status: SessionStatus = manager.check_session()

    theme_key = load_theme(store, fallback=system_theme())
    apply_theme(theme_key)

    header = render_header(cfg.app_name, theme_key=theme_key, authorized=status.authorized)
    if header["theme"] != theme_key:
        save_theme(store, header["theme"])
        st.rerun()
    if header["clicked_logout"]:
        manager.logout()
        reset_quiz()
        st.rerun()
    if header["clicked_home"]:
        reset_quiz()
        st.rerun()

    if not status.authorized:
        render_gate_page(manager)
        render_footer(authorized=False)
        return

    render_main_page()
    if status.expires_at is not None:
        render_session_countdown(status.expires_at)


if __name__ == "__main__":
    main()
