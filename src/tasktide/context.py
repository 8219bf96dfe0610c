"""
認証コンテキスト

サインイン中のユーザーを保持する明示的なコンテキストオブジェクト。
モジュールレベルのシングルトンにはせず、ViewStateCoordinator に
コンストラクタ経由で渡す。

関連クラス:
  - coordinator.ViewStateCoordinator: サインアウト時に teardown される
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from .exceptions import AuthMissing

DEFAULT_GREETING_NAME = "Student"


@dataclass(frozen=True)
class AuthUser:
    """認証プロバイダから受け取るユーザー"""

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def first_name(self) -> str:
        """表示名の先頭語。表示名がなければ汎用の呼びかけを返す"""
        if self.display_name and self.display_name.strip():
            return self.display_name.split()[0]
        return DEFAULT_GREETING_NAME


class AppContext:
    """サインイン状態と、サインアウト時のクリーンアップを管理"""

    def __init__(self, user: Optional[AuthUser] = None):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._user: Optional[AuthUser] = None
        self._sign_out_hooks: List[Callable[[], None]] = []
        if user is not None:
            self.sign_in(user)

    @property
    def user(self) -> Optional[AuthUser]:
        with self._lock:
            return self._user

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def sign_in(self, user: AuthUser) -> None:
        """サインイン（uid は空であってはならない）"""
        if not user.uid:
            raise AuthMissing("A signed-in user must have an identifier.")
        with self._lock:
            self._user = user
        self.logger.info("User signed in: %s", user.uid)

    def sign_out(self) -> None:
        """サインアウトし、登録済みフックを一度だけ実行"""
        with self._lock:
            user = self._user
            self._user = None
            hooks = list(self._sign_out_hooks)
            self._sign_out_hooks.clear()
        for hook in hooks:
            try:
                hook()
            except Exception as exc:
                self.logger.error("Sign-out hook failed: %s", exc, exc_info=True)
        if user is not None:
            self.logger.info("User signed out: %s", user.uid)

    def on_sign_out(self, hook: Callable[[], None]) -> Callable[[], None]:
        """サインアウト時のフックを登録し、登録解除用の関数を返す"""
        with self._lock:
            self._sign_out_hooks.append(hook)

        def remove() -> None:
            with self._lock:
                if hook in self._sign_out_hooks:
                    self._sign_out_hooks.remove(hook)

        return remove

    def require_user(self) -> AuthUser:
        """サインイン中のユーザーを返す。未サインインなら AuthMissing"""
        user = self.user
        if user is None:
            raise AuthMissing()
        return user
