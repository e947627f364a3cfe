"""
Token storage: access to the authentication state of the current session.
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Protocol, runtime_checkable

from .models import Token, token_from_dict
from .security import TOKEN_SESSION_PREFIX

logger = logging.getLogger(__name__)


@runtime_checkable
class TokenStorage(Protocol):
    """Holds the token of the current session."""

    def get_token(self) -> Token | None: ...

    def set_token(self, token: Token | None) -> None: ...


class InMemoryTokenStorage:
    """Token storage for a single client, kept in memory."""

    def __init__(self, token: Token | None = None) -> None:
        self._token = token

    def get_token(self) -> Token | None:
        return self._token

    def set_token(self, token: Token | None) -> None:
        self._token = token


class SessionTokenStorage:
    """
    Token storage backed by a session mapping.

    Tokens are stored as plain dicts under `_security_<provider_key>`, so
    cookie-based sessions can hold them. Credentials are never stored.

    Args:
        session: Session of the client
        provider_key: Name of the authentication area
    """

    def __init__(self, session: MutableMapping[str, Any], provider_key: str) -> None:
        self.session = session
        self.session_key = f"{TOKEN_SESSION_PREFIX}{provider_key}"

    def get_token(self) -> Token | None:
        data = self.session.get(self.session_key)
        if not data:
            return None

        try:
            return token_from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError):
            # Stale or tampered entry, treat as logged out
            logger.warning("Discarding unreadable token in session key %s", self.session_key)
            self.session.pop(self.session_key, None)
            return None

    def set_token(self, token: Token | None) -> None:
        if token is None:
            self.session.pop(self.session_key, None)
            return
        self.session[self.session_key] = token.to_dict()
