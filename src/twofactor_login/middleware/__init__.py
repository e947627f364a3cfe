"""
Form login middleware for ASGI frameworks.

Re-exports middleware classes for convenient imports:
    from twofactor_login.middleware import LoginAuthenticationMiddleware
"""

__all__: list[str] = []

# ASGI middleware (FastAPI, Starlette)
try:
    from .asgi import LoginAuthenticationMiddleware
    __all__.append("LoginAuthenticationMiddleware")
except ImportError:
    pass
