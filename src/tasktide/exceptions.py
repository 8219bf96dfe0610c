"""TaskTide のカスタム例外定義

同期レイヤー・チャット・AI補完で発生するエラーを分類します。
各例外は画面表示用の `user_message` を持ち、境界（購読コールバック、
書き込み、補完呼び出し）でUI状態に変換されます。

関連モジュール:
  - sync.subscription: SubscriptionFailure / AuthMissing を送出
  - chat_history.assistant: Completion系エラーをアシスタントメッセージに変換
"""

from typing import Optional


class TaskTideError(Exception):
    """TaskTide 基底例外"""

    user_message = "An error occurred. Please try again."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)
        if message:
            self.user_message = message


class AuthMissing(TaskTideError):
    """サインイン済みユーザーが存在しない"""

    user_message = "Please sign in to continue."


class ConfigurationMissing(TaskTideError):
    """必須設定（APIキー等）が未設定"""

    user_message = "AI service is not configured. Please check your API key."


class SubscriptionFailure(TaskTideError):
    """リモートリスナーのエラー"""

    user_message = "Live updates were interrupted. Reload to try again."


class WriteFailure(TaskTideError):
    """作成・更新がコミットされなかった"""

    user_message = "Your change could not be saved. Please try again."


class RecordValidationError(TaskTideError):
    """リモートドキュメントがレコード型として不正"""

    user_message = "Received an invalid record."


class ImmutableRecordError(TaskTideError):
    """完了済みセッション等、変更不可のレコードへの更新"""

    user_message = "This record can no longer be changed."


class CompletionError(TaskTideError):
    """AI補完呼び出しの基底エラー"""

    user_message = "Failed to get AI response. Please try again."


class CompletionTimeout(CompletionError):
    """AI補完のタイムアウト"""

    user_message = "Request timed out. Please try again."


class CompletionAuthError(CompletionError):
    """APIキーが不正"""

    user_message = "Invalid API key. Please check your OpenAI configuration."


class CompletionHTTPError(CompletionError):
    """2xx以外のレスポンス"""

    def __init__(self, status_code: int, message: Optional[str] = None):
        if message is None:
            if status_code >= 500:
                message = "AI service is temporarily unavailable. Please try again later."
            else:
                message = f"AI service error: {status_code}"
        super().__init__(message)
        self.status_code = status_code


class CompletionRateLimited(CompletionHTTPError):
    """レート制限（429）"""

    def __init__(self, status_code: int = 429, message: Optional[str] = None):
        super().__init__(
            status_code, message or "Rate limit exceeded. Please try again in a moment."
        )


# ストア側エラーコード -> 表示メッセージ
STORE_ERROR_MESSAGES = {
    "permission-denied": "You do not have permission to perform this action.",
    "unavailable": "Service is temporarily unavailable. Please try again.",
    "deadline-exceeded": "Request timed out. Please check your connection and try again.",
}


def describe_store_error(code: Optional[str]) -> str:
    """ストアのエラーコードを表示用メッセージに変換"""
    return STORE_ERROR_MESSAGES.get(code or "", "An error occurred. Please try again.")


class ActionCodeError(TaskTideError):
    """メールアクションコードの検証・適用に失敗"""

    user_message = "The verification link is invalid or has expired."

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(message)
        self.code = code
