"""
Form login with a second authentication factor.

Recognizes login form submissions and turns them into username/password
or one-time code authentication attempts.
"""

import logging

from .config import ListenerSettings
from .exceptions import (
    AuthenticationError,
    AuthenticationServiceError,
    BadCredentialsError,
    BadRequestError,
    ProviderNotFoundError,
    SessionUnavailableError,
)
from .listener import LoginAuthenticationListener, TwoFactorTokenFactory
from .manager import AuthenticationProviderManager, RemoteAuthenticationProvider
from .models import (
    InteractiveLoginEvent,
    LoginRequest,
    TwoFactorToken,
    UsernamePasswordToken,
    token_from_dict,
)
from .storage import InMemoryTokenStorage, SessionTokenStorage

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ListenerSettings",
    "AuthenticationError",
    "AuthenticationServiceError",
    "BadCredentialsError",
    "BadRequestError",
    "ProviderNotFoundError",
    "SessionUnavailableError",
    "LoginAuthenticationListener",
    "TwoFactorTokenFactory",
    "AuthenticationProviderManager",
    "RemoteAuthenticationProvider",
    "InteractiveLoginEvent",
    "LoginRequest",
    "TwoFactorToken",
    "UsernamePasswordToken",
    "token_from_dict",
    "InMemoryTokenStorage",
    "SessionTokenStorage",
]

# Middleware imports - optional, require framework dependencies
try:
    from .middleware.asgi import LoginAuthenticationMiddleware
    __all__.append("LoginAuthenticationMiddleware")
except ImportError:
    pass
