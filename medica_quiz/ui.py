"""
ui.py
======================

Streamlit ベースの UI コンポーネントをまとめたモジュール。

責務:
- テーマ（light / dark）と CSS
- アクセスゲート画面
- 本文入力画面
- 問題一覧・スコアボード・結果表示

ここでは「見た目」と「ユーザー操作の入力」を扱い、
認可・生成・採点のロジックは medica_quiz の各モジュールと app.py に任せる。

各 render_* は「何が押されたか」を dict で返す。
"""

from __future__ import annotations

import html
import logging
from typing import Any, Dict, Optional

import pandas as pd
import streamlit as st

from .models import Difficulty, Question
from .session import QuizSession
from .store import THEME_KEY, KeyValueStore, StoreError

logger = logging.getLogger(__name__)

# ----------------------------------------------------------------------
#  テーマ定義
# ----------------------------------------------------------------------
THEMES: Dict[str, Dict[str, str]] = {
    "light": {
        "bg": "#f8fafc",
        "text": "#0f172a",
        "muted": "#64748b",
        "surface": "#ffffff",
        "surface_alt": "#f1f5f9",
        "border": "#e2e8f0",
        "primary": "#4f46e5",
        "correct": "#16a34a",
        "incorrect": "#dc2626",
    },
    "dark": {
        "bg": "#020617",
        "text": "#f1f5f9",
        "muted": "#94a3b8",
        "surface": "#1e293b",
        "surface_alt": "#0f172a",
        "border": "#334155",
        "primary": "#818cf8",
        "correct": "#4ade80",
        "incorrect": "#f87171",
    },
}
DEFAULT_THEME = "light"


# ----------------------------------------------------------------------
#  CSS 生成
# ----------------------------------------------------------------------
def _generate_css(theme: Dict[str, str]) -> str:
    """テーマに応じたグローバル CSS を生成する。"""

    return f"""
    <style>
    .stApp {{
        background: {theme['bg']};
        color: {theme['text']};
    }}

    .mq-brand {{
        font-weight: 800;
        font-size: 1.6rem;
        color: {theme['primary']};
    }}

    .mq-badge {{
        display: inline-block;
        padding: 0.1rem 0.6rem;
        border-radius: 999px;
        border: 1px solid {theme['border']};
        font-size: 0.7rem;
        font-weight: 700;
        text-transform: uppercase;
        letter-spacing: 0.05em;
    }}

    .mq-badge-high {{
        color: #a855f7;
        border-color: #a855f7;
    }}

    .mq-badge-medium {{
        color: #3b82f6;
        border-color: #3b82f6;
    }}

    .mq-question-box {{
        background: {theme['surface']};
        padding: 1.2rem;
        border-radius: 16px;
        border: 1px solid {theme['border']};
        font-size: 1.15rem;
        font-weight: 700;
        line-height: 1.5;
        margin: 0.5rem 0 0.75rem 0;
    }}

    .mq-result {{
        padding: 0.4rem 0.8rem;
        border-radius: 10px;
        margin-bottom: 0.3rem;
        border: 1px solid {theme['border']};
    }}

    .mq-result-correct {{
        background: {theme['correct']}22;
        border-color: {theme['correct']};
    }}

    .mq-result-incorrect {{
        background: {theme['incorrect']}22;
        border-color: {theme['incorrect']};
    }}

    .mq-explanation-box {{
        padding: 0.9rem;
        border-radius: 10px;
        background: {theme['primary']}11;
        border: 1px solid {theme['primary']}55;
        font-size: 0.95rem;
        line-height: 1.6;
    }}

    .mq-footer {{
        margin-top: 2rem;
        text-align: center;
        font-size: 0.75rem;
        color: {theme['muted']};
        text-transform: uppercase;
        letter-spacing: 0.1em;
    }}
    </style>
    """


# ----------------------------------------------------------------------
#  テーマ関連
# ----------------------------------------------------------------------
def system_theme() -> str:
    """
    ブラウザの配色設定（st.context.theme）から light / dark を返す。
    取得できない Streamlit のバージョンや実行環境では light。
    """
    context = getattr(st, "context", None)
    theme = getattr(context, "theme", None)
    kind = getattr(theme, "type", None)
    return kind if kind in THEMES else DEFAULT_THEME


def load_theme(store: KeyValueStore, fallback: str = DEFAULT_THEME) -> str:
    """ストアからテーマを読む。未保存・読めない・不正な値なら fallback。"""
    if fallback not in THEMES:
        fallback = DEFAULT_THEME
    try:
        value = store.get(THEME_KEY)
    except (StoreError, OSError) as e:
        logger.warning("テーマ設定を読み込めません: %s", e)
        return fallback
    return value if value in THEMES else fallback


def save_theme(store: KeyValueStore, theme_key: str) -> None:
    try:
        store.set(THEME_KEY, theme_key)
    except (StoreError, OSError) as e:
        logger.warning("テーマ設定を保存できません: %s", e)


def apply_theme(theme_key: str) -> None:
    st.markdown(_generate_css(THEMES.get(theme_key, THEMES[DEFAULT_THEME])), unsafe_allow_html=True)


# ----------------------------------------------------------------------
#  ヘッダー / フッター
# ----------------------------------------------------------------------
def render_header(
    app_name: str,
    *,
    theme_key: str,
    authorized: bool,
) -> Dict[str, Any]:
    """
    ブランド名・テーマ切替・ログアウトボタンを描画する。

    戻り値:
        {
          "theme": str,             # 選択されたテーマキー
          "clicked_logout": bool,
          "clicked_home": bool,
        }
    """
    clicked_logout = False
    clicked_home = False

    col_brand, col_theme, col_logout = st.columns([3, 1.2, 1.3])
    with col_brand:
        if authorized:
            clicked_home = st.button(f"🧠 {app_name}", key="mq_home", type="tertiary")
        else:
            st.markdown(f"<div class='mq-brand'>🧠 {html.escape(app_name)}</div>", unsafe_allow_html=True)

    with col_theme:
        dark = st.toggle("Dark", value=theme_key == "dark", key="mq_theme_toggle")

    with col_logout:
        if authorized:
            clicked_logout = st.button("Exit System", key="mq_logout", use_container_width=True)

    return {
        "theme": "dark" if dark else "light",
        "clicked_logout": clicked_logout,
        "clicked_home": clicked_home,
    }


def render_footer(*, authorized: bool, remaining_text: Optional[str] = None) -> None:
    st.markdown(
        "<div class='mq-footer'>Exhaustive Information Extraction • Powered by Gemini</div>",
        unsafe_allow_html=True,
    )
    if authorized:
        caption = "🛡️ Device Authorized"
        if remaining_text:
            caption += f" · expires in {remaining_text}"
        st.caption(caption)


# ----------------------------------------------------------------------
#  アクセスゲート
# ----------------------------------------------------------------------
def render_access_gate(*, error: bool = False) -> Dict[str, Any]:
    """
    アクセスコード入力フォームを描画する。

    戻り値:
        {"submitted_code": Optional[str]}   # 送信されたときのみ文字列
    """
    st.markdown("## 🔒 Restricted Access")
    st.write("Enter your provider access code to unlock Medica AI.")

    submitted_code: Optional[str] = None
    with st.form("mq_access_gate"):
        code = st.text_input("Access Code", type="password", placeholder="•••••")
        if st.form_submit_button("Unlock System", use_container_width=True):
            submitted_code = code

    if error:
        st.error("Invalid access code provided.")

    st.caption("🛡️ Device authorization will be remembered")
    return {"submitted_code": submitted_code}


# ----------------------------------------------------------------------
#  本文入力
# ----------------------------------------------------------------------
def render_input_section(
    *,
    min_chars: int,
    busy: bool,
    error: Optional[str] = None,
    hint: Optional[str] = None,
) -> Dict[str, Any]:
    """
    本文入力エリアと生成ボタンを描画する。

    戻り値:
        {
          "text": str,
          "clicked_generate": bool,
        }
    """
    st.markdown("## AI-Powered **Full Coverage** Assessment")
    st.write("Transform complex medical notes or articles into an exhaustive MCQ exam.")

    text = st.text_area(
        "Knowledge Base",
        key="mq_source_text",
        height=320,
        disabled=busy,
        placeholder=(
            "Paste your source material here. "
            "The longer the text, the more comprehensive the test..."
        ),
    )
    st.caption(f"{len(text)} chars · Total Extraction Mode")

    too_short = len(text.strip()) < min_chars
    label = "Analyzing Content..." if busy else "✨ Generate Exhaustive Test"
    clicked = st.button(
        label,
        key="mq_generate",
        type="primary",
        disabled=busy or too_short,
        use_container_width=True,
    )

    if error:
        st.error(error)
        if hint:
            st.info(hint)

    return {"text": text, "clicked_generate": clicked}


# ----------------------------------------------------------------------
#  クイズページ
# ----------------------------------------------------------------------
def _render_question(idx: int, q: Question, session: QuizSession, key_prefix: str) -> None:
    badge_class = "mq-badge-high" if q.difficulty is Difficulty.HIGH else "mq-badge-medium"
    st.markdown(
        f"<span class='mq-badge'>Question {idx}</span> "
        f"<span class='mq-badge {badge_class}'>{q.difficulty.label}</span>",
        unsafe_allow_html=True,
    )
    st.markdown(
        f"<div class='mq-question-box'>{html.escape(q.question)}</div>",
        unsafe_allow_html=True,
    )

    selected = session.answer_for(q.id)

    if not session.submitted:
        index = q.options.index(selected) if selected in q.options else None
        choice = st.radio(
            f"Question {idx}",
            list(q.options),
            index=index,
            key=f"{key_prefix}_{q.id}",
            label_visibility="collapsed",
        )
        if choice is not None and choice != selected:
            session.select_answer(q.id, choice)
        return

    for option in q.options:
        classes = ["mq-result"]
        mark = ""
        if option == q.correct_answer:
            classes.append("mq-result-correct")
            mark = " ✅"
        elif option == selected:
            classes.append("mq-result-incorrect")
            mark = " ❌"
        st.markdown(
            f"<div class='{' '.join(classes)}'>{html.escape(option)}{mark}</div>",
            unsafe_allow_html=True,
        )

    st.markdown(
        "<div class='mq-explanation-box'><b>Scientific Rationale</b><br>"
        f"{html.escape(q.explanation)}</div>",
        unsafe_allow_html=True,
    )


def render_quiz_page(session: QuizSession, *, quiz_token: int = 0) -> Dict[str, Any]:
    """
    問題一覧とスコアボードを描画し、ユーザー操作の結果を返す。

    引数:
        session:
            QuizSession のインスタンス。questions が読み込まれている前提。
            ラジオボタンで選ばれた解答はここで session.select_answer() に反映する。
        quiz_token:
            問題セットごとに変わる番号。ウィジェットのキーに含め、
            前回のクイズの選択状態を引き継がないようにする。

    戻り値:
        {
          "clicked_submit": bool,
          "clicked_reset": bool,
        }
    """
    clicked_submit = False
    clicked_reset = False

    col_title, col_reset = st.columns([3, 1])
    with col_title:
        st.markdown("## 🏆 Comprehensive Exam")
        st.caption(f"Generated {session.total} questions from your source")
    with col_reset:
        if st.button("New Analysis", key="mq_reset_top", use_container_width=True):
            clicked_reset = True

    for idx, q in enumerate(session.questions, start=1):
        with st.container(border=True):
            _render_question(idx, q, session, key_prefix=f"mq_q_{quiz_token}")

    st.write("---")

    # ----------------------------------------
    # スコアボード
    # ----------------------------------------
    if not session.submitted:
        st.markdown(f"**Progress** {session.answered_count} / {session.total}")
        st.progress(session.progress_ratio)
        if st.button(
            "Submit Exam",
            key="mq_submit",
            type="primary",
            disabled=not session.is_complete(),
            use_container_width=True,
        ):
            clicked_submit = True
    else:
        col_score, col_rating, col_restart = st.columns(3)
        with col_score:
            st.metric("Score", f"{session.score} / {session.total}")
        with col_rating:
            st.metric("Rating", session.rating or "")
        with col_restart:
            if st.button("Restart", key="mq_restart", use_container_width=True):
                clicked_reset = True

        _render_breakdown(session)

    return {"clicked_submit": clicked_submit, "clicked_reset": clicked_reset}


def _render_breakdown(session: QuizSession) -> None:
    """難易度別の正答数を表で表示する。"""
    breakdown = session.difficulty_breakdown()
    if not breakdown:
        return

    rows = []
    for difficulty, stat in breakdown.items():
        rows.append(
            {
                "Difficulty": difficulty.value,
                "Questions": stat["total"],
                "Correct": stat["correct"],
                "Accuracy": f"{stat['correct'] / stat['total']:.0%}",
            }
        )
    df = pd.DataFrame(rows).sort_values("Difficulty")
    st.dataframe(df, use_container_width=True, hide_index=True)
