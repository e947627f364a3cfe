"""
FastAPI demo with form login and a second factor.

Usage:
    # Install dependencies
    pip install -e ".[fastapi]"

    # Start the demo verification service (port 8081)
    python examples/verifier_server.py

    # Run the application
    uvicorn examples.fastapi_demo:app --port 8009 --reload

    # Or directly
    python examples/fastapi_demo.py

Then open http://localhost:8009/login and sign in as alice / secret,
followed by the one-time code 123456.

Environment variables:
    LOGIN_PROVIDER_KEY - Authentication area name (default: frontend)
    LOGIN_VERIFIER_URL - Verification service URL (default: http://localhost:8081/authenticate)
    LOGIN_SECRET_KEY - Session cookie signing key
"""

import html
import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.middleware.sessions import SessionMiddleware

# Import from installed package
from twofactor_login import (
    AuthenticationProviderManager,
    ListenerSettings,
    LoginAuthenticationListener,
    LoginAuthenticationMiddleware,
    RemoteAuthenticationProvider,
    SessionTokenStorage,
    TwoFactorToken,
)
from twofactor_login.security import AUTHENTICATION_ERROR, LAST_USERNAME

logging.basicConfig(level=logging.INFO)

# Configuration from environment
SETTINGS = ListenerSettings.from_env()
SECRET_KEY = os.getenv("LOGIN_SECRET_KEY", "change-me")

manager = AuthenticationProviderManager([RemoteAuthenticationProvider.from_settings(SETTINGS)])
listener = LoginAuthenticationListener.from_settings(
    SETTINGS,
    manager,
    dispatcher=lambda event: logging.getLogger("demo").info("Interactive login: %s", event.token.username),
)

app = FastAPI(
    title="Form Login Demo",
    description="Demo application with two-factor form login",
    version="0.1.0",
)

# Session middleware must wrap the login middleware, so it is added last
app.add_middleware(LoginAuthenticationMiddleware, listener=listener)
app.add_middleware(SessionMiddleware, secret_key=SECRET_KEY)


def _current_token(request: Request):
    return SessionTokenStorage(request.session, SETTINGS.provider_key).get_token()


@app.get("/login", response_class=HTMLResponse)
async def login(request: Request):
    """Login page: username/password form, or the one-time code form."""
    token = _current_token(request)
    error = request.session.get(AUTHENTICATION_ERROR)
    error_html = f"<p class='error'>{html.escape(error)}</p>" if error else ""

    if isinstance(token, TwoFactorToken):
        providers = ", ".join(token.two_factor_providers)
        return f"""
        <h1>Two-factor authentication ({html.escape(providers)})</h1>
        {error_html}
        <form method="post" action="/login">
            <input type="hidden" name="FORM_SUBMIT" value="tl_login_2fa">
            <input name="verify" autocomplete="one-time-code">
            <button>Verify</button>
        </form>
        """

    if token is not None and token.authenticated:
        return f"<p>Signed in as {html.escape(token.username)}. <a href='/protected'>Continue</a></p>"

    last_username = html.escape(request.session.get(LAST_USERNAME, ""))
    return f"""
    <h1>Sign in</h1>
    {error_html}
    <form method="post" action="/login">
        <input type="hidden" name="FORM_SUBMIT" value="tl_login">
        <input name="username" value="{last_username}">
        <input name="password" type="password">
        <button>Login</button>
    </form>
    """


@app.get("/protected")
async def protected(request: Request):
    """Protected endpoint - requires a fully authenticated session."""
    token = _current_token(request)

    if token is None or not token.authenticated:
        return JSONResponse(status_code=401, content={"error": "Login required"})

    return {
        "message": "Access granted",
        "username": token.username,
        "roles": token.roles,
    }


@app.get("/logout")
async def logout(request: Request):
    request.session.clear()
    return {"message": "Signed out"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8009)
