from __future__ import annotations

import hmac
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS = 8


class AuthFailure(Exception):
    """Wrong PIN, or a management call made without a valid token."""


@dataclass(frozen=True)
class AccessToken:
    value: str

    def __repr__(self) -> str:
        return "AccessToken(***)"


class AccessGate:
    """Exchanges the shared management PIN for capability tokens.

    Tokens live as long as the process, until revoked on logout, or until
    ``max_sessions`` newer logins push them out (oldest first).
    """

    def __init__(self, pin: str, max_sessions: int = DEFAULT_MAX_SESSIONS):
        if not pin:
            raise ValueError("Management PIN must not be empty")
        if max_sessions < 1:
            raise ValueError("max_sessions must be >= 1")
        self._pin = pin
        self._max_sessions = max_sessions
        # dict keeps issue order, so the first key is the oldest session.
        self._tokens: dict[str, None] = {}

    def verify(self, pin: str) -> AccessToken:
        if not hmac.compare_digest(str(pin or "").encode(), self._pin.encode()):
            logger.warning("Rejected management PIN")
            raise AuthFailure("Incorrect PIN")
        token = AccessToken(secrets.token_urlsafe(32))
        self._tokens[token.value] = None
        while len(self._tokens) > self._max_sessions:
            del self._tokens[next(iter(self._tokens))]
        logger.info("Management session opened (%d active)", len(self._tokens))
        return token

    def is_valid(self, token: Optional[AccessToken]) -> bool:
        return token is not None and token.value in self._tokens

    def require(self, token: Optional[AccessToken]) -> AccessToken:
        if not self.is_valid(token):
            raise AuthFailure("Management access required")
        return token

    def revoke(self, token: Optional[AccessToken]) -> None:
        if token is not None and token.value in self._tokens:
            del self._tokens[token.value]
            logger.info("Management session closed (%d active)", len(self._tokens))
