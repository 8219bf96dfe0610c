"""Identity Toolkit REST client for email action codes."""

import logging
from typing import Any, Dict, Optional

import requests

from src.tasktide.config import VerifyConfig
from src.tasktide.exceptions import ActionCodeError, ConfigurationMissing, TaskTideError

logger = logging.getLogger(__name__)

# REST error message -> action code error code
ERROR_CODES = {
    "EXPIRED_OOB_CODE": "auth/expired-action-code",
    "INVALID_OOB_CODE": "auth/invalid-action-code",
    "USER_DISABLED": "auth/user-disabled",
}


class IdentityToolkitVerifier:
    """Checks and applies oob codes through the Identity Toolkit v1 API."""

    def __init__(self, config: Optional[VerifyConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or VerifyConfig()
        if not self.config.api_key:
            raise ConfigurationMissing("Identity API key is not configured.")
        self.session = session or requests.Session()

    def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.config.identity_url}/{endpoint}"
        try:
            response = self.session.post(
                url,
                params={"key": self.config.api_key},
                json=payload,
                timeout=self.config.timeout_seconds,
            )
        except requests.exceptions.RequestException as exc:
            logger.error("Identity Toolkit request failed: %s", exc)
            raise TaskTideError("Could not reach the verification service.") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if not response.ok:
            error = body.get("error")
            if isinstance(error, dict):
                message = str(error.get("message", ""))
            else:
                message = str(error or "")
            # may carry detail, e.g. "INVALID_OOB_CODE : ..."
            reason = message.split(":", 1)[0].strip()
            code = ERROR_CODES.get(reason, "auth/internal-error")
            raise ActionCodeError(code)
        return body

    def check(self, oob_code: str) -> Optional[str]:
        body = self._post("accounts:resetPassword", {"oobCode": oob_code})
        return body.get("email")

    def apply(self, oob_code: str) -> None:
        self._post("accounts:update", {"oobCode": oob_code})
