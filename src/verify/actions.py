"""
メールアクションリンクの処理

認証メールのリンク（?mode=...&oobCode=...&continueUrl=...）を解釈し、
メール確認のみを実行する。パスワードリセット・メール復旧のリンクは
コードを適用せず、誤ったページであることを伝える。

関連クラス:
  - identity.IdentityToolkitVerifier: コードの確認・適用
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol
from urllib.parse import parse_qs, urlsplit

from src.tasktide.exceptions import ActionCodeError, TaskTideError

logger = logging.getLogger(__name__)

DEFAULT_CONTINUE_URL = "https://tasktide.rocks/dashboard"
LOGIN_URL = "https://tasktide.rocks/login"
SUPPORT_EMAIL = "support@tasktide.rocks"

VERIFY_EMAIL = "verifyEmail"
RESET_PASSWORD = "resetPassword"
RECOVER_EMAIL = "recoverEmail"

# エラーコード -> 表示メッセージ
ACTION_ERROR_MESSAGES = {
    "auth/expired-action-code": (
        "This verification link has expired. "
        "Please request a new verification email from TaskTide."
    ),
    "auth/invalid-action-code": (
        "This verification link is invalid. The link may have been corrupted or already used. "
        "Please request a new verification email from TaskTide."
    ),
    "auth/user-disabled": (
        f"Account access has been disabled. Please contact TaskTide support at {SUPPORT_EMAIL}."
    ),
}
GENERIC_ACTION_ERROR = (
    "The verification link is invalid or has expired. "
    "Please try requesting a new verification email from the TaskTide app."
)


class ActionOutcome(str, Enum):
    VERIFIED = "verified"
    WRONG_LINK_TYPE = "wrong_link_type"
    INVALID_LINK = "invalid_link"
    FAILED = "failed"


@dataclass(frozen=True)
class ActionLink:
    mode: Optional[str]
    oob_code: Optional[str]
    continue_url: Optional[str]


@dataclass(frozen=True)
class ActionResult:
    """リンク処理の結果

    redirect_url は成功時は続行先、失敗時は再試行用のログインページ。
    """

    outcome: ActionOutcome
    message: str
    redirect_url: Optional[str] = None
    error_code: Optional[str] = None
    email: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is ActionOutcome.VERIFIED


class ActionCodeVerifier(Protocol):
    """アクションコードの確認・適用"""

    def check(self, oob_code: str) -> Optional[str]:
        """コードを確認し、対象のメールアドレスを返す"""
        ...

    def apply(self, oob_code: str) -> None: ...


def parse_action_link(url: str) -> ActionLink:
    """リンクURLからパラメータを取り出す。値のないパラメータは空文字"""
    query = parse_qs(urlsplit(url).query, keep_blank_values=True)

    def first(name: str) -> Optional[str]:
        values = query.get(name)
        return values[0] if values else None

    return ActionLink(first("mode"), first("oobCode"), first("continueUrl"))


class EmailActionHandler:
    """メールアクションリンクのハンドラー"""

    def __init__(self, verifier: ActionCodeVerifier, default_continue_url: str = DEFAULT_CONTINUE_URL):
        self.verifier = verifier
        self.default_continue_url = default_continue_url

    def handle(self, url: str) -> ActionResult:
        """リンクを処理する。例外は送出しない"""
        link = parse_action_link(url)
        logger.info(
            "Email action link received: mode=%s, code=%s",
            link.mode,
            "present" if link.oob_code else "missing",
        )

        if link.mode == VERIFY_EMAIL and link.oob_code:
            return self._verify_email(link)
        if link.mode == RESET_PASSWORD:
            return ActionResult(
                ActionOutcome.WRONG_LINK_TYPE,
                "This appears to be a password reset link, not an email verification link. "
                "Please use this link in the TaskTide login page.",
            )
        if link.mode == RECOVER_EMAIL:
            return ActionResult(
                ActionOutcome.WRONG_LINK_TYPE,
                "This appears to be an email recovery link, not an email verification link. "
                "Please use this link in the TaskTide account settings.",
            )
        return ActionResult(
            ActionOutcome.INVALID_LINK,
            "This link appears to be malformed or missing required parameters. "
            "Please request a new verification email from TaskTide.",
        )

    def _verify_email(self, link: ActionLink) -> ActionResult:
        try:
            email = self.verifier.check(link.oob_code)
            self.verifier.apply(link.oob_code)
        except ActionCodeError as exc:
            logger.warning("Email verification failed: %s", exc.code)
            return ActionResult(
                ActionOutcome.FAILED,
                ACTION_ERROR_MESSAGES.get(exc.code, GENERIC_ACTION_ERROR),
                redirect_url=LOGIN_URL,
                error_code=exc.code,
            )
        except TaskTideError as exc:
            logger.error("Email verification error: %s", exc)
            return ActionResult(ActionOutcome.FAILED, GENERIC_ACTION_ERROR, redirect_url=LOGIN_URL)

        logger.info("Email address verified")
        return ActionResult(
            ActionOutcome.VERIFIED,
            "Your email address has been successfully verified! "
            "Welcome to TaskTide! Your account is now fully activated.",
            redirect_url=link.continue_url or self.default_continue_url,
            email=email,
        )
