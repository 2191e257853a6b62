"""
config.py
=========

アプリ全体で利用する設定値を一元管理する。
Streamlit 画面、Gemini API、アクセスコード、ローカルストアのパスなど
すべてこのクラスを通じて取得する。

本ファイルは app.py と tools/generate_quiz.py の共通設定でもある。

読み込み順:
1. AppConfig のデフォルト値
2. ルートの config.toml（存在すれば上書き）
3. 環境変数 GEMINI_API_KEY / API_KEY、または .env
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import toml


logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# 基本パス定義
# ------------------------------------------------------------

ROOT_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = ROOT_DIR / "data"

API_KEY_ENV_NAMES = ("GEMINI_API_KEY", "API_KEY")

DAY_MS = 24 * 60 * 60 * 1000


# ------------------------------------------------------------
# AppConfig
# ------------------------------------------------------------

@dataclass
class AppConfig:
    """
    アプリ設定クラス。

    - APIキーの読み取り
    - Gemini モデル名・temperature
    - アクセスコード（共有パスフレーズ）とセッション期間
    - ローカルストアのパス
    """

    # ---------- アプリ ----------
    app_name: str = "Medica"
    log_level: str = "INFO"
    min_source_chars: int = 50

    # ---------- API ----------
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    temperature: float = 0.3
    request_timeout: float = 180.0

    # ---------- 認可 ----------
    # 共有の簡易ゲートであり、暗号学的な認証ではない
    access_codes: Tuple[str, ...] = ("sad", "happy", "man")
    session_days: int = 28

    # ---------- ファイルパス ----------
    store_path: Path = field(default_factory=lambda: DATA_DIR / "device_store.json")

    # ============================================================
    # 派生値
    # ============================================================

    @property
    def session_duration_ms(self) -> int:
        return self.session_days * DAY_MS

    @property
    def has_api_key(self) -> bool:
        return bool(self.gemini_api_key)

    # ============================================================
    # config.toml の反映
    # ============================================================

    def apply_toml(self, data: Dict[str, Any]) -> None:
        """
        config.toml を読み込んだ dict を反映する。
        未知のキーや型の合わない値は無視する。
        """
        app = data.get("app")
        if isinstance(app, dict):
            if isinstance(app.get("name"), str):
                self.app_name = app["name"]
            if isinstance(app.get("log_level"), str):
                self.log_level = app["log_level"].upper()
            if isinstance(app.get("min_source_chars"), int):
                self.min_source_chars = app["min_source_chars"]
            if isinstance(app.get("store_path"), str):
                path = Path(app["store_path"])
                self.store_path = path if path.is_absolute() else ROOT_DIR / path

        auth = data.get("auth")
        if isinstance(auth, dict):
            days = auth.get("session_days")
            if isinstance(days, int) and days > 0:
                self.session_days = days
            codes = auth.get("access_codes")
            if isinstance(codes, list) and codes:
                self.access_codes = tuple(
                    str(c).strip().lower() for c in codes if str(c).strip()
                )

        gem = data.get("gemini")
        if isinstance(gem, dict):
            if isinstance(gem.get("model"), str) and gem["model"]:
                self.gemini_model = gem["model"]
            temp = gem.get("temperature")
            if isinstance(temp, (int, float)):
                self.temperature = float(temp)
            timeout = gem.get("timeout")
            if isinstance(timeout, (int, float)) and timeout > 0:
                self.request_timeout = float(timeout)


# ============================================================
# 読み込み
# ============================================================

def load_api_key(root: Path = ROOT_DIR) -> str:
    """
    Streamlit Cloud / ローカルすべてで GEMINI_API_KEY が使えるようにする。
    見つからなければ空文字（生成時に MISSING_CREDENTIALS になる）。
    """
    for name in API_KEY_ENV_NAMES:
        key = os.environ.get(name)
        if key:
            return key.strip()

    # ローカル開発などで .env を使いたい場合にも対応
    env_path = root / ".env"
    if env_path.exists():
        for line in env_path.read_text(encoding="utf-8").splitlines():
            for name in API_KEY_ENV_NAMES:
                if line.startswith(f"{name}="):
                    return line.split("=", 1)[1].strip().strip('"')

    return ""


def load_config(path: Optional[Path] = None, root: Path = ROOT_DIR) -> AppConfig:
    """
    AppConfig を組み立てて返す。
    config.toml の読み込みに失敗してもデフォルト値で続行する。
    """
    cfg = AppConfig()
    toml_path = path if path is not None else root / "config.toml"

    if toml_path.exists():
        try:
            cfg.apply_toml(toml.load(str(toml_path)))
        except (toml.TomlDecodeError, OSError) as e:
            logger.warning("config.toml を読み込めませんでした: %s", e)

    cfg.gemini_api_key = load_api_key(root)
    return cfg


def configure_logging(level: str = "INFO") -> None:
    """ルートロガーを一度だけ設定する。"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
