"""
ASGI middleware running form login for Starlette/FastAPI applications.
"""

import logging
from typing import Any, Awaitable, Callable

from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from ..exceptions import AuthenticationError, BadRequestError, SessionUnavailableError
from ..form import collect_fields
from ..listener import LoginAuthenticationListener
from ..models import InteractiveLoginEvent, LoginRequest, Token, TwoFactorToken
from ..security import AUTHENTICATION_ERROR, LAST_USERNAME
from ..storage import SessionTokenStorage

logger = logging.getLogger(__name__)

SuccessHandler = Callable[[Request, Token], Awaitable[Response]]
FailureHandler = Callable[[Request, AuthenticationError], Awaitable[Response]]


async def redirect_to_login(request: Request, *args: Any) -> Response:
    """Default handler: redirect back to the submitted page (POST/redirect/GET)."""
    return RedirectResponse(url=str(request.url), status_code=303)


class LoginAuthenticationMiddleware(BaseHTTPMiddleware):
    """
    ASGI middleware authenticating login form submissions.

    Requests the listener does not handle pass through untouched. Login
    submissions are answered by the success or failure handler; the
    resulting token is stored in the session.

    Requires Starlette's SessionMiddleware to run outside this middleware.

    Args:
        app: ASGI application
        listener: Listener classifying and authenticating login requests
        success_handler: Async callable (request, token) -> Response.
            Default: 303 redirect to the request URL
        failure_handler: Async callable (request, error) -> Response.
            Default: 303 redirect to the request URL

    Example (FastAPI):
        >>> from fastapi import FastAPI
        >>> from starlette.middleware.sessions import SessionMiddleware
        >>>
        >>> app = FastAPI()
        >>> app.add_middleware(LoginAuthenticationMiddleware, listener=listener)
        >>> app.add_middleware(SessionMiddleware, secret_key="change-me")
    """

    def __init__(
        self,
        app: Any,
        listener: LoginAuthenticationListener,
        success_handler: SuccessHandler | None = None,
        failure_handler: FailureHandler | None = None,
    ):
        super().__init__(app)
        self.listener = listener
        self.success_handler = success_handler or redirect_to_login
        self.failure_handler = failure_handler or redirect_to_login

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        # Only POST bodies can carry a login form
        form: dict[str, Any] = {}
        if request.method == "POST":
            # Cache the raw body first so the application can still read it
            await request.body()
            try:
                form_data = await request.form()
            except HTTPException as e:
                return JSONResponse(status_code=e.status_code, content={"error": e.detail})
            form = collect_fields(form_data.multi_items())

        session = request.session if "session" in request.scope else None
        login_request = LoginRequest(method=request.method, form=form, session=session)

        if not self.listener.requires_authentication(login_request):
            return await call_next(request)

        if session is None:
            raise SessionUnavailableError("This authentication method requires a session.")

        storage = SessionTokenStorage(session, self.listener.provider_key)
        current_token = storage.get_token()

        try:
            token = await run_in_threadpool(
                self.listener.attempt_authentication,
                login_request,
                current_token,
            )
        except BadRequestError as e:
            return JSONResponse(status_code=400, content={"error": str(e)})
        except AuthenticationError as e:
            return await self._on_failure(request, storage, current_token, e)

        return await self._on_success(request, login_request, storage, token)

    async def _on_success(
        self,
        request: Request,
        login_request: LoginRequest,
        storage: SessionTokenStorage,
        token: Token,
    ) -> Response:
        logger.info(
            "User %s authenticated (second factor pending: %s)",
            token.username,
            isinstance(token, TwoFactorToken),
        )

        storage.set_token(token)
        storage.session.pop(AUTHENTICATION_ERROR, None)
        storage.session.pop(LAST_USERNAME, None)

        if token.authenticated:
            self.listener.dispatcher(InteractiveLoginEvent(request=login_request, token=token))

        return await self.success_handler(request, token)

    async def _on_failure(
        self,
        request: Request,
        storage: SessionTokenStorage,
        current_token: Token | None,
        error: AuthenticationError,
    ) -> Response:
        logger.info("Authentication request failed: %s", error)

        # A pending second factor survives a wrong code, so the user can retry
        if not isinstance(current_token, TwoFactorToken):
            storage.set_token(None)

        storage.session[AUTHENTICATION_ERROR] = str(error)

        return await self.failure_handler(request, error)
