"""
Exceptions raised while classifying and authenticating login requests.
"""


class AuthenticationError(Exception):
    """
    Base class for failed authentication attempts.

    The message is safe to show to the user; it never contains the
    submitted credentials.
    """

    message_key = "An authentication exception occurred."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message_key)


class BadCredentialsError(AuthenticationError):
    """Username, password or one-time code was rejected."""

    message_key = "Invalid credentials."


class ProviderNotFoundError(AuthenticationError):
    """No authentication provider supports the given token."""

    message_key = "No authentication provider found to support the authentication token."


class AuthenticationServiceError(AuthenticationError):
    """The verification service could not process the request."""

    message_key = "Authentication request could not be processed due to a system problem."


class BadRequestError(ValueError):
    """Malformed client input, answered with a client error rather than a login failure."""


class SessionUnavailableError(RuntimeError):
    """The request carries no session, which form login requires."""
