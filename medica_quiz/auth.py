"""
auth.py
======================

端末単位の簡易アクセスゲートを管理するモジュール。

- 共有アクセスコード（config の access_codes）で解錠する
- 解錠結果は store の "medica_device_auth" に JSON で保存する
- 保存から session_days 日（既定 28 日）で失効する
- 壊れた・失効したレコードは黙って削除し「未認可」として扱う

保存形式:

{"status": "granted", "timestamp": 1700000000000}   # timestamp は epoch ミリ秒

※ これはユーザー認証ではなく、低リスク用途の共有パスフレーズによるゲート。
"""

from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .store import AUTH_KEY, KeyValueStore, StoreError

logger = logging.getLogger(__name__)

GRANTED = "granted"

Clock = Callable[[], int]


def now_ms() -> int:
    """現在時刻（epoch ミリ秒）。"""
    return int(time.time() * 1000)


# ----------------------------------------------------------------------
#  データ型
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class AuthorizationRecord:
    status: str
    issued_at: int

    def expires_at(self, duration_ms: int) -> int:
        return self.issued_at + duration_ms

    def is_valid(self, now: int, duration_ms: int) -> bool:
        return self.status == GRANTED and now < self.expires_at(duration_ms)

    def to_json(self) -> str:
        return json.dumps({"status": self.status, "timestamp": self.issued_at})

    @classmethod
    def from_json(cls, raw: str) -> "AuthorizationRecord":
        """
        保存された文字列からレコードを復元する。
        形式が不正な場合は ValueError。
        """
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("authorization record must be an object")

        status = data.get("status")
        ts = data.get("timestamp")
        # bool は int のサブクラスなので明示的に弾く
        if not isinstance(status, str):
            raise ValueError("status must be a string")
        if isinstance(ts, bool) or not isinstance(ts, (int, float)):
            raise ValueError("timestamp must be a number")
        if not math.isfinite(ts):
            raise ValueError("timestamp must be finite")
        return cls(status=status, issued_at=int(ts))


@dataclass(frozen=True)
class SessionStatus:
    authorized: bool
    expires_at: Optional[int] = None


# ----------------------------------------------------------------------
#  AccessManager
# ----------------------------------------------------------------------
class AccessManager:
    """
    認可レコードの唯一の所有者。

    主な機能:
    - check_session(): 起動時・再評価時の状態確認（不正レコードは削除）
    - unlock(): アクセスコードでの解錠
    - logout(): 解錠状態の破棄
    """

    def __init__(
        self,
        store: KeyValueStore,
        access_codes: Iterable[str],
        session_duration_ms: int,
        clock: Clock = now_ms,
    ):
        self.store = store
        self.access_codes = frozenset(c.strip().lower() for c in access_codes)
        self.session_duration_ms = session_duration_ms
        self.clock = clock

    # ------------------------------------------------------------
    # 状態確認
    # ------------------------------------------------------------
    def check_session(self) -> SessionStatus:
        """
        保存済みレコードを読み、有効なら authorized=True と失効時刻を返す。
        読み込み失敗・不正形式・status 不一致・期限切れはすべて未認可扱いで、
        レコードは削除する。例外は呼び出し元へ伝播させない。
        """
        try:
            raw = self.store.get(AUTH_KEY)
        except (StoreError, OSError) as e:
            logger.warning("認可レコードを読み込めません: %s", e)
            self._purge()
            return SessionStatus(authorized=False)

        if raw is None:
            return SessionStatus(authorized=False)

        try:
            record = AuthorizationRecord.from_json(raw)
        except (ValueError, OverflowError):
            logger.info("不正な認可レコードを削除します")
            self._purge()
            return SessionStatus(authorized=False)

        now = self.clock()
        if not record.is_valid(now, self.session_duration_ms):
            logger.info("失効した認可レコードを削除します (status=%s)", record.status)
            self._purge()
            return SessionStatus(authorized=False)

        return SessionStatus(
            authorized=True,
            expires_at=record.expires_at(self.session_duration_ms),
        )

    # ------------------------------------------------------------
    # 解錠 / 破棄
    # ------------------------------------------------------------
    def normalize(self, code: str) -> str:
        return code.strip().lower()

    def unlock(self, submitted_code: str) -> bool:
        """
        前後の空白を除き小文字化したコードが許可リストにあれば解錠する。
        失敗時は状態を一切変更しない。ストアに書けない場合も False。
        """
        if self.normalize(submitted_code) not in self.access_codes:
            logger.info("アクセスコードが一致しませんでした")
            return False

        record = AuthorizationRecord(status=GRANTED, issued_at=self.clock())
        try:
            self.store.set(AUTH_KEY, record.to_json())
        except (StoreError, OSError) as e:
            logger.warning("認可レコードを保存できません: %s", e)
            return False
        logger.info("端末を認可しました")
        return True

    def logout(self) -> None:
        self._purge()
        logger.info("認可を破棄しました")

    def _purge(self) -> None:
        try:
            self.store.remove(AUTH_KEY)
        except (StoreError, OSError) as e:
            logger.warning("認可レコードを削除できません: %s", e)

    # ------------------------------------------------------------
    # 残り時間
    # ------------------------------------------------------------
    def remaining_ms(self, status: SessionStatus) -> int:
        if not status.authorized or status.expires_at is None:
            return 0
        return max(status.expires_at - self.clock(), 0)


def format_remaining(ms: int) -> str:
    """残り時間を "12d 3h 45m" 形式にする。"""
    minutes = max(ms, 0) // 60_000
    days, rest = divmod(minutes, 24 * 60)
    hours, mins = divmod(rest, 60)
    return f"{days}d {hours}h {mins}m"


# ----------------------------------------------------------------------
#  カウントダウン
# ----------------------------------------------------------------------
class SessionCountdown:
    """
    失効時刻までの残り時間を再計算するタイマー。

    UI 側で 60 秒ごとに tick() を呼ぶ。残りが 0 になったら on_expire を
    一度だけ呼ぶ（通常は check_session を強制するための再実行）。
    ストアには触れない。
    """

    def __init__(
        self,
        expires_at: int,
        on_expire: Callable[[], None],
        clock: Clock = now_ms,
    ):
        self.expires_at = expires_at
        self.on_expire = on_expire
        self.clock = clock
        self.fired = False

    def tick(self) -> int:
        remaining = max(self.expires_at - self.clock(), 0)
        if remaining == 0 and not self.fired:
            self.fired = True
            self.on_expire()
        return remaining
