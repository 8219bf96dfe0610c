"""Email action link handling."""

from .actions import (
    DEFAULT_CONTINUE_URL,
    ActionCodeVerifier,
    ActionLink,
    ActionOutcome,
    ActionResult,
    EmailActionHandler,
    parse_action_link,
)
from .identity import IdentityToolkitVerifier

__all__ = [
    "DEFAULT_CONTINUE_URL",
    "ActionCodeVerifier",
    "ActionLink",
    "ActionOutcome",
    "ActionResult",
    "EmailActionHandler",
    "IdentityToolkitVerifier",
    "parse_action_link",
]
