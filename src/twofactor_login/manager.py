"""
Authentication verification service: provider manager and remote provider.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Protocol, runtime_checkable

import httpx

from .config import DEFAULT_VERIFIER_URL, ListenerSettings
from .exceptions import (
    AuthenticationServiceError,
    BadCredentialsError,
    ProviderNotFoundError,
)
from .models import Token, TwoFactorToken, UsernamePasswordToken

logger = logging.getLogger(__name__)


@runtime_checkable
class AuthenticationManager(Protocol):
    """Verifies tokens and returns the resulting authentication state."""

    def authenticate(self, token: Token) -> Token: ...


@runtime_checkable
class AuthenticationProvider(Protocol):
    """Verifies the tokens it supports."""

    def supports(self, token: Token) -> bool: ...

    def authenticate(self, token: Token) -> Token: ...


class AuthenticationProviderManager:
    """
    Authentication manager delegating to the first provider supporting a token.

    Credentials of the submitted token are erased once a provider has
    handled it, whether or not verification succeeded.

    Args:
        providers: Providers, in order of preference
        erase_credentials: Erase credentials after use. Default: True
    """

    def __init__(
        self,
        providers: Iterable[AuthenticationProvider],
        erase_credentials: bool = True,
    ):
        self.providers = list(providers)
        self.erase_credentials = erase_credentials

    def authenticate(self, token: Token) -> Token:
        """
        Authenticate a token with the first provider that supports it.

        Raises:
            ProviderNotFoundError: If no provider supports the token
            AuthenticationError: As raised by the provider
        """
        for provider in self.providers:
            if not provider.supports(token):
                continue

            try:
                result = provider.authenticate(token)
            finally:
                if self.erase_credentials:
                    token.erase_credentials()

            if self.erase_credentials:
                result.erase_credentials()
            return result

        raise ProviderNotFoundError(
            f"No authentication provider found for token of class {type(token).__name__}."
        )


class RemoteAuthenticationProvider:
    """
    Provider that checks credentials with a remote verification service.

    Posts password and one-time code submissions as JSON to the service.
    A password step answered with eligible second-factor providers yields
    a pending TwoFactorToken.

    Args:
        verifier_url: URL of the verification service
        provider_key: Only tokens of this authentication area are supported.
            None supports every area.
        timeout_s: Request timeout in seconds. Default: 5.0

    Example:
        >>> provider = RemoteAuthenticationProvider("http://localhost:8081/authenticate")
        >>> manager = AuthenticationProviderManager([provider])
        >>> token = manager.authenticate(UsernamePasswordToken("alice", "s3cret", "frontend"))
    """

    def __init__(
        self,
        verifier_url: str = DEFAULT_VERIFIER_URL,
        provider_key: str | None = None,
        timeout_s: float = 5.0,
    ):
        self.verifier_url = verifier_url
        self.provider_key = provider_key
        self.timeout_s = timeout_s

    @classmethod
    def from_settings(cls, settings: ListenerSettings) -> RemoteAuthenticationProvider:
        return cls(
            verifier_url=settings.verifier_url,
            provider_key=settings.provider_key,
            timeout_s=settings.timeout_s,
        )

    def supports(self, token: Token) -> bool:
        if not isinstance(token, (UsernamePasswordToken, TwoFactorToken)):
            return False
        return self.provider_key is None or token.provider_key == self.provider_key

    def authenticate(self, token: Token) -> Token:
        """
        Verify a token with the remote service.

        Returns:
            An authenticated UsernamePasswordToken, or a TwoFactorToken if a
            second factor is still required

        Raises:
            BadCredentialsError: If the service rejected the credentials
            AuthenticationServiceError: On network errors or invalid responses
        """
        payload = self._build_payload(token)

        try:
            with httpx.Client(timeout=self.timeout_s) as client:
                response = client.post(
                    self.verifier_url,
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error("Verification service unreachable: %s", e)
            raise AuthenticationServiceError() from e

        data = self._parse_response(response)
        return self._build_token(token, data)

    def _build_payload(self, token: Token) -> dict[str, Any]:
        if isinstance(token, TwoFactorToken):
            return {
                "type": "two_factor",
                "username": token.username,
                "code": token.credentials or "",
                "provider_key": token.provider_key,
                "two_factor_providers": list(token.two_factor_providers),
            }

        return {
            "type": "password",
            "username": token.username,
            "password": token.credentials or "",
            "provider_key": token.provider_key,
        }

    def _parse_response(self, response: httpx.Response) -> dict[str, Any]:
        """Parse verification service response, raising on failures."""
        try:
            data = response.json()
        except ValueError:
            raise AuthenticationServiceError(
                f"Invalid verifier response: {response.status_code}"
            ) from None

        if not isinstance(data, dict):
            raise AuthenticationServiceError(
                f"Invalid verifier response: {response.status_code}"
            )

        if response.status_code >= 500:
            logger.error(
                "Verification service error %s: %s",
                response.status_code,
                data.get("error", "unknown"),
            )
            raise AuthenticationServiceError()

        if not data.get("authenticated", False):
            # The service's reason stays out of the user-facing message
            logger.debug("Credentials rejected: %s", data.get("error"))
            raise BadCredentialsError()

        return data

    def _build_token(self, token: Token, data: dict[str, Any]) -> Token:
        roles = list(data.get("roles") or [])

        if isinstance(token, TwoFactorToken):
            return UsernamePasswordToken(
                username=token.username,
                credentials=None,
                provider_key=token.provider_key,
                roles=roles or list(token.authenticated_token.roles),
                attributes=dict(token.attributes),
                authenticated=True,
            )

        authenticated = UsernamePasswordToken(
            username=token.username,
            credentials=None,
            provider_key=token.provider_key,
            roles=roles,
            attributes=dict(token.attributes),
            authenticated=True,
        )

        providers = list(data.get("two_factor_providers") or [])
        if not providers:
            return authenticated

        return TwoFactorToken(
            authenticated_token=authenticated,
            credentials=None,
            provider_key=token.provider_key,
            two_factor_providers=providers,
            attributes=dict(token.attributes),
        )
