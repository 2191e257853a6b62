"""
store.py
======================

端末ローカルのキーバリューストア。

ブラウザの localStorage 相当を、JSON ファイル 1 つで表現する。
値はすべて文字列で、キーは次の 2 つだけを使う。

- "medica_device_auth": 認可レコード（JSON 文字列, auth.py が専有）
- "theme":              テーマ設定（"light" / "dark", ui.py が利用）

data/device_store.json の想定構造:

{
  "medica_device_auth": "{\"status\": \"granted\", \"timestamp\": 1700000000000}",
  "theme": "dark"
}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)

AUTH_KEY = "medica_device_auth"
THEME_KEY = "theme"


class StoreError(Exception):
    """ストアの読み書きに失敗したときの例外。"""


class KeyValueStore(Protocol):
    """auth.py / ui.py から見たストアのインターフェース。"""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryStore:
    """プロセス内だけで保持するストア（テスト・CLI 用）。"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._data


class JsonFileStore:
    """
    JSON ファイル 1 つをバックエンドにしたストア。

    - 呼び出しのたびにファイルを読み直す（別タブからの更新も拾う）
    - 書き込みは一時ファイル経由で置き換える
    - ファイルが壊れている場合は StoreError を送出する
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    # ------------------------------------------------------------------
    # ロード / セーブ
    # ------------------------------------------------------------------
    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StoreError(f"ストアを読み込めません: {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StoreError(f"ストアの形式が不正です: {self.path}")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save(self, data: Dict[str, str]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            tmp.replace(self.path)
        except OSError as e:
            raise StoreError(f"ストアを書き込めません: {self.path}: {e}") from e

    # ------------------------------------------------------------------
    # 公開 API
    # ------------------------------------------------------------------
    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        try:
            data = self._load()
        except StoreError:
            # 壊れたファイルは書き込みで作り直す
            logger.warning("壊れたストアを初期化します: %s", self.path)
            data = {}
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        try:
            data = self._load()
        except StoreError:
            logger.warning("壊れたストアを初期化します: %s", self.path)
            self._save({})
            return
        if key in data:
            del data[key]
            self._save(data)
