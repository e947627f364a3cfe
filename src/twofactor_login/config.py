"""
Listener settings, with optional loading from environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .security import MAX_USERNAME_LENGTH

# Default verification service URL (local development)
DEFAULT_VERIFIER_URL = "http://localhost:8081/authenticate"


@dataclass
class ListenerSettings:
    """
    Settings for a login listener and its verification service.

    Attributes:
        provider_key: Name of the authentication area (e.g. "contao_frontend")
        max_username_length: Longest username accepted, in UTF-8 bytes
        verifier_url: URL of the verification service
        timeout_s: Verification request timeout in seconds
    """
    provider_key: str = "frontend"
    max_username_length: int = MAX_USERNAME_LENGTH
    verifier_url: str = DEFAULT_VERIFIER_URL
    timeout_s: float = 5.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ListenerSettings:
        """
        Load settings from environment variables.

        Environment variables:
            LOGIN_PROVIDER_KEY - Authentication area name
            LOGIN_MAX_USERNAME_LENGTH - Longest username accepted
            LOGIN_VERIFIER_URL - Verification service URL
            LOGIN_VERIFIER_TIMEOUT - Verification timeout in seconds

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        return cls(
            provider_key=env.get("LOGIN_PROVIDER_KEY", defaults.provider_key),
            max_username_length=int(
                env.get("LOGIN_MAX_USERNAME_LENGTH", defaults.max_username_length)
            ),
            verifier_url=env.get("LOGIN_VERIFIER_URL", defaults.verifier_url),
            timeout_s=float(env.get("LOGIN_VERIFIER_TIMEOUT", defaults.timeout_s)),
        )
