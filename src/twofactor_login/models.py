"""
Data models for login requests and authentication tokens.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, MutableMapping, Union


@dataclass
class LoginRequest:
    """
    Request data relevant to form login.

    Attributes:
        method: HTTP method (GET, POST, etc.)
        form: Submitted form fields. Values are strings, lists of strings
            for repeated fields, or arbitrary objects in programmatic use.
        session: Session of the client, or None if the request has none
    """
    method: str
    form: dict[str, Any] = field(default_factory=dict)
    session: MutableMapping[str, Any] | None = None

    def is_method(self, method: str) -> bool:
        return self.method.upper() == method.upper()


@dataclass
class UsernamePasswordToken:
    """
    Primary credential token.

    Before verification it carries the submitted password in `credentials`;
    the verification service erases it once checked.

    Attributes:
        username: Trimmed username
        credentials: Password, or None once erased
        provider_key: Name of the authentication area
        roles: Roles granted on successful authentication
        attributes: Arbitrary context (e.g. remember-me flags)
        authenticated: Whether the credentials were verified
    """
    username: str
    credentials: str | None
    provider_key: str
    roles: list[str] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)
    authenticated: bool = False

    def erase_credentials(self) -> None:
        self.credentials = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "username_password",
            "username": self.username,
            "provider_key": self.provider_key,
            "roles": list(self.roles),
            "attributes": dict(self.attributes),
            "authenticated": self.authenticated,
        }


@dataclass
class TwoFactorToken:
    """
    Second-factor token, wrapping an already verified primary token.

    Stored as the authentication state while a second factor is pending,
    and built again from each code submission.

    Attributes:
        authenticated_token: Primary token that passed verification
        credentials: Submitted one-time code, or None once erased
        provider_key: Name of the authentication area
        two_factor_providers: Identifiers of the eligible second-factor providers
        attributes: Context carried over from the pending state
    """
    authenticated_token: UsernamePasswordToken
    credentials: str | None
    provider_key: str
    two_factor_providers: list[str] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def username(self) -> str:
        return self.authenticated_token.username

    @property
    def authenticated(self) -> bool:
        return False

    def set_attributes(self, attributes: dict[str, Any]) -> None:
        self.attributes = dict(attributes)

    def erase_credentials(self) -> None:
        self.credentials = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "two_factor",
            "authenticated_token": self.authenticated_token.to_dict(),
            "provider_key": self.provider_key,
            "two_factor_providers": list(self.two_factor_providers),
            "attributes": dict(self.attributes),
        }


Token = Union[UsernamePasswordToken, TwoFactorToken]


def token_from_dict(data: dict[str, Any]) -> Token:
    """
    Rebuild a token stored with `to_dict()`.

    Credentials are never serialized, so restored tokens carry none.

    Raises:
        ValueError: If the token type is unknown
    """
    token_type = data.get("type")

    if token_type == "username_password":
        return UsernamePasswordToken(
            username=data["username"],
            credentials=None,
            provider_key=data["provider_key"],
            roles=list(data.get("roles", [])),
            attributes=dict(data.get("attributes", {})),
            authenticated=bool(data.get("authenticated", False)),
        )

    if token_type == "two_factor":
        inner = token_from_dict(data["authenticated_token"])
        if not isinstance(inner, UsernamePasswordToken):
            raise ValueError("Nested two-factor tokens are not supported")
        return TwoFactorToken(
            authenticated_token=inner,
            credentials=None,
            provider_key=data["provider_key"],
            two_factor_providers=list(data.get("two_factor_providers", [])),
            attributes=dict(data.get("attributes", {})),
        )

    raise ValueError(f"Unknown token type: {token_type!r}")


@dataclass
class InteractiveLoginEvent:
    """
    Dispatched once a login form submission fully authenticated a user.

    Attributes:
        request: The login request
        token: The authenticated token
    """
    request: LoginRequest
    token: Token
