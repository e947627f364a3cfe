"""
Login listener: recognizes login form submissions and builds authentication attempts.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .config import ListenerSettings
from .exceptions import BadCredentialsError, BadRequestError, SessionUnavailableError
from .form import (
    PASSWORD_FIELD,
    USERNAME_FIELD,
    VERIFY_FIELD,
    is_login_form,
    is_string_like,
)
from .manager import AuthenticationManager
from .models import LoginRequest, Token, TwoFactorToken, UsernamePasswordToken
from .security import LAST_USERNAME, MAX_USERNAME_LENGTH

default_logger = logging.getLogger(__name__)

EventDispatcher = Callable[[Any], None]


def _noop_dispatcher(event: Any) -> None:
    pass


class TwoFactorTokenFactory:
    """Creates second-factor tokens from a verified primary token."""

    def create(
        self,
        authenticated_token: UsernamePasswordToken,
        auth_code: str,
        provider_key: str,
        two_factor_providers: list[str],
    ) -> TwoFactorToken:
        return TwoFactorToken(
            authenticated_token=authenticated_token,
            credentials=auth_code,
            provider_key=provider_key,
            two_factor_providers=list(two_factor_providers),
        )


class LoginAuthenticationListener:
    """
    Classifies login form submissions and turns them into authentication attempts.

    The upstream request pipeline first asks `requires_authentication()`,
    then calls `attempt_authentication()` with the session's current token.
    Verification itself is delegated to the authentication manager. The
    listener holds no state between calls.

    Args:
        authentication_manager: Service verifying the built tokens
        provider_key: Name of the authentication area
        two_factor_token_factory: Builds second-factor tokens.
            Default: TwoFactorTokenFactory()
        max_username_length: Longest username accepted, in UTF-8 bytes. Default: 4096
        logger: Logger to use. Default: module logger (silent unless configured)
        dispatcher: Callable receiving events. Default: no-op

    Example:
        >>> listener = LoginAuthenticationListener(manager, "frontend")
        >>> request = LoginRequest("POST", {"FORM_SUBMIT": "tl_login", ...}, session)
        >>> if listener.requires_authentication(request):
        ...     token = listener.attempt_authentication(request, storage.get_token())
    """

    def __init__(
        self,
        authentication_manager: AuthenticationManager,
        provider_key: str,
        two_factor_token_factory: TwoFactorTokenFactory | None = None,
        max_username_length: int = MAX_USERNAME_LENGTH,
        logger: logging.Logger | None = None,
        dispatcher: EventDispatcher | None = None,
    ):
        if not provider_key:
            raise ValueError("provider_key must not be empty")

        self.authentication_manager = authentication_manager
        self.provider_key = provider_key
        self.two_factor_token_factory = two_factor_token_factory or TwoFactorTokenFactory()
        self.max_username_length = max_username_length
        self.logger = logger if logger is not None else default_logger
        self.dispatcher = dispatcher or _noop_dispatcher

    @classmethod
    def from_settings(
        cls,
        settings: ListenerSettings,
        authentication_manager: AuthenticationManager,
        **kwargs: Any,
    ) -> LoginAuthenticationListener:
        return cls(
            authentication_manager,
            settings.provider_key,
            max_username_length=settings.max_username_length,
            **kwargs,
        )

    def requires_authentication(self, request: LoginRequest) -> bool:
        """
        Check whether a request is a login form submission.

        True only for POST requests whose FORM_SUBMIT field starts with
        "tl_login". Never raises.
        """
        if not request.is_method("POST"):
            return False

        if not is_login_form(request.form):
            self.logger.debug("POST request is not a login form submission")
            return False

        return True

    def attempt_authentication(
        self,
        request: LoginRequest,
        current_token: Token | None,
    ) -> Token:
        """
        Build an authentication attempt from a login request and verify it.

        A pending TwoFactorToken as current token means the submission
        carries a one-time code; anything else is a username/password login.

        Args:
            request: The login request
            current_token: Authentication state of the session

        Returns:
            Whatever the authentication manager returns

        Raises:
            BadRequestError: If the username is not string-like
            BadCredentialsError: If the username is too long
            SessionUnavailableError: If the request has no session
            AuthenticationError: As raised by the authentication manager
        """
        if isinstance(current_token, TwoFactorToken):
            return self._attempt_two_factor(request, current_token)

        return self._attempt_username_password(request)

    def _attempt_two_factor(
        self,
        request: LoginRequest,
        current_token: TwoFactorToken,
    ) -> Token:
        # A missing code is left for the verification service to reject
        auth_code = request.form.get(VERIFY_FIELD, "")

        token = self.two_factor_token_factory.create(
            current_token.authenticated_token,
            auth_code,
            self.provider_key,
            current_token.two_factor_providers,
        )
        token.set_attributes(current_token.attributes)

        self.logger.info(
            "Verifying second factor for user %s (provider key %s)",
            current_token.username,
            self.provider_key,
        )

        return self.authentication_manager.authenticate(token)

    def _attempt_username_password(self, request: LoginRequest) -> Token:
        username = request.form.get(USERNAME_FIELD)

        if not is_string_like(username):
            raise BadRequestError(
                f'The key "{USERNAME_FIELD}" must be a string, "{type(username).__name__}" given.'
            )

        username = str(username).strip()

        # Bounded in UTF-8 bytes, not characters
        if len(username.encode("utf-8")) > self.max_username_length:
            raise BadCredentialsError("Invalid username.")

        if request.session is None:
            raise SessionUnavailableError("This authentication method requires a session.")

        request.session[LAST_USERNAME] = username

        password = request.form.get(PASSWORD_FIELD, "")

        self.logger.info(
            "Verifying credentials for user %s (provider key %s)",
            username,
            self.provider_key,
        )

        return self.authentication_manager.authenticate(
            UsernamePasswordToken(username, password, self.provider_key)
        )
