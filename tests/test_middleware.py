"""Tests for the ASGI login middleware."""

import httpx
import pytest
from starlette.applications import Starlette
from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from twofactor_login import (
    BadCredentialsError,
    InteractiveLoginEvent,
    LoginAuthenticationListener,
    TwoFactorToken,
    UsernamePasswordToken,
)
from twofactor_login.middleware.asgi import LoginAuthenticationMiddleware, redirect_to_login


class DemoManager:
    """
    Authentication manager double.

    alice/secret requires the code 123456; bob/hunter2 has no second factor.
    """

    passwords = {"alice": "secret", "bob": "hunter2"}

    def authenticate(self, token):
        if isinstance(token, TwoFactorToken):
            if token.credentials != "123456":
                raise BadCredentialsError("Invalid code.")
            return UsernamePasswordToken(
                token.username, None, token.provider_key,
                roles=["ROLE_MEMBER"], attributes=token.attributes, authenticated=True,
            )

        if self.passwords.get(token.username) != token.credentials:
            raise BadCredentialsError()

        verified = UsernamePasswordToken(
            token.username, None, token.provider_key, roles=["ROLE_MEMBER"], authenticated=True,
        )
        if token.username == "alice":
            return TwoFactorToken(verified, None, token.provider_key, ["totp"])
        return verified


# Test ASGI app
async def session_endpoint(request):
    body = await request.body()
    return JSONResponse({
        "token": request.session.get("_security_frontend"),
        "last_username": request.session.get("_security.last_username"),
        "error": request.session.get("_security.last_error"),
        "body": body.decode(),
    })


def create_asgi_app(listener, with_session: bool = True, **kwargs):
    """Create test ASGI app with middleware."""
    app = Starlette(routes=[Route("/login", session_endpoint, methods=["GET", "POST"])])
    app.add_middleware(LoginAuthenticationMiddleware, listener=listener, **kwargs)
    if with_session:
        app.add_middleware(SessionMiddleware, secret_key="test-secret")
    return app


@pytest.fixture
def events():
    return []


@pytest.fixture
def listener(events):
    return LoginAuthenticationListener(DemoManager(), "frontend", dispatcher=events.append)


@pytest.fixture
def client(listener):
    return TestClient(create_asgi_app(listener))


def login(client, **fields):
    return client.post("/login", data={"FORM_SUBMIT": "tl_login", **fields}, follow_redirects=False)


def multipart_login(client, **fields):
    """Submit the login form as multipart/form-data."""
    files = {name: (None, value) for name, value in {"FORM_SUBMIT": "tl_login", **fields}.items()}
    return client.post("/login", files=files, follow_redirects=False)


class TestPassThrough:
    """Requests that are not login submissions."""

    def test_get_request(self, client):
        response = client.get("/login")

        assert response.status_code == 200
        assert response.json()["token"] is None

    def test_other_form_keeps_body(self, client):
        """Non-login POST bodies still reach the application."""
        response = client.post("/login", data={"FORM_SUBMIT": "newsletter", "email": "a@example.com"})

        assert response.status_code == 200
        assert "FORM_SUBMIT=newsletter" in response.json()["body"]

    def test_json_post(self, client):
        response = client.post("/login", json={"FORM_SUBMIT": "tl_login"})

        assert response.status_code == 200
        assert response.json()["token"] is None


class TestPasswordLogin:
    """Username/password submissions."""

    def test_success_without_second_factor(self, client, events):
        response = login(client, username="  bob ", password="hunter2")

        assert response.status_code == 303
        assert response.headers["location"] == "http://testserver/login"

        data = client.get("/login").json()
        assert data["token"]["type"] == "username_password"
        assert data["token"]["authenticated"] is True
        assert data["last_username"] is None
        assert data["error"] is None

        assert len(events) == 1
        assert isinstance(events[0], InteractiveLoginEvent)
        assert events[0].token.username == "bob"

    def test_second_factor_pending(self, client, events):
        response = login(client, username="alice", password="secret")

        assert response.status_code == 303
        data = client.get("/login").json()
        assert data["token"]["type"] == "two_factor"
        assert data["token"]["two_factor_providers"] == ["totp"]
        assert events == []

    def test_wrong_password(self, client, events):
        response = login(client, username="bob", password="wrong")

        assert response.status_code == 303
        data = client.get("/login").json()
        assert data["token"] is None
        assert data["error"] == "Invalid credentials."
        assert data["last_username"] == "bob"
        assert events == []

    def test_oversized_username(self, client):
        response = login(client, username="a" * 5000, password="secret")

        assert response.status_code == 303
        data = client.get("/login").json()
        assert data["error"] == "Invalid username."
        assert data["last_username"] is None

    def test_array_username(self, client):
        """Array usernames are a client error."""
        response = login(client, username=["alice", "bob"], password="secret")

        assert response.status_code == 400
        assert 'The key "username" must be a string' in response.json()["error"]
        assert client.get("/login").json()["last_username"] is None


class TestSecondFactor:
    """One-time code submissions while a second factor is pending."""

    def test_valid_code(self, client, events):
        login(client, username="alice", password="secret")

        response = login(client, verify="123456")

        assert response.status_code == 303
        data = client.get("/login").json()
        assert data["token"]["type"] == "username_password"
        assert data["token"]["authenticated"] is True
        assert len(events) == 1
        assert events[0].token.username == "alice"

    def test_wrong_code_keeps_pending_state(self, client, events):
        login(client, username="alice", password="secret")

        response = login(client, verify="000000")

        assert response.status_code == 303
        data = client.get("/login").json()
        assert data["token"]["type"] == "two_factor"
        assert data["error"] == "Invalid code."
        assert events == []

    def test_retry_after_wrong_code(self, client):
        login(client, username="alice", password="secret")
        login(client, verify="000000")

        login(client, verify="123456")

        data = client.get("/login").json()
        assert data["token"]["authenticated"] is True
        assert data["error"] is None


class TestHandlers:
    """Custom success and failure handlers."""

    def test_custom_handlers(self, listener):
        async def on_success(request, token):
            return JSONResponse({"username": token.username, "pending": not token.authenticated})

        async def on_failure(request, error):
            return JSONResponse({"error": str(error)}, status_code=401)

        client = TestClient(create_asgi_app(
            listener, success_handler=on_success, failure_handler=on_failure,
        ))

        response = login(client, username="alice", password="secret")
        assert response.json() == {"username": "alice", "pending": True}

        response = login(client, verify="bad")
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid code."}

    def test_missing_session_middleware(self, listener):
        client = TestClient(create_asgi_app(listener, with_session=False), raise_server_exceptions=False)

        response = login(client, username="bob", password="hunter2")

        assert response.status_code == 500



class TestMultipartLogin:
    """Login forms submitted as multipart/form-data."""

    def test_password_login(self, client, events):
        response = multipart_login(client, username="bob", password="hunter2")

        assert response.status_code == 303
        data = client.get("/login").json()
        assert data["token"]["type"] == "username_password"
        assert data["token"]["authenticated"] is True
        assert len(events) == 1

    def test_two_factor_login(self, client):
        multipart_login(client, username="alice", password="secret")

        response = multipart_login(client, verify="123456")

        assert response.status_code == 303
        assert client.get("/login").json()["token"]["authenticated"] is True

    def test_wrong_password(self, client):
        response = multipart_login(client, username="bob", password="wrong")

        assert response.status_code == 303
        data = client.get("/login").json()
        assert data["error"] == "Invalid credentials."
        assert data["last_username"] == "bob"

    def test_other_form_keeps_body(self, client):
        """Non-login multipart bodies still reach the application."""
        response = client.post("/login", files={"FORM_SUBMIT": (None, "upload"), "note": (None, "hello")})

        assert response.status_code == 200
        assert "hello" in response.json()["body"]


class TestAsyncClient:
    """The middleware driven through httpx's ASGI transport."""

    @pytest.mark.asyncio
    async def test_two_step_login(self, listener, events):
        transport = httpx.ASGITransport(app=create_asgi_app(listener))

        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.post(
                "/login",
                data={"FORM_SUBMIT": "tl_login", "username": "alice", "password": "secret"},
            )
            assert response.status_code == 303

            pending = (await client.get("/login")).json()
            assert pending["token"]["type"] == "two_factor"

            response = await client.post("/login", data={"FORM_SUBMIT": "tl_login", "verify": "123456"})
            assert response.status_code == 303

            data = (await client.get("/login")).json()
            assert data["token"]["authenticated"] is True
            assert [event.token.username for event in events] == ["alice"]

    @pytest.mark.asyncio
    async def test_default_handler_redirects_to_request_url(self):
        request = Request({
            "type": "http",
            "method": "POST",
            "scheme": "http",
            "server": ("testserver", 80),
            "path": "/members/login",
            "query_string": b"next=%2Fprofile",
            "headers": [(b"host", b"testserver")],
        })

        response = await redirect_to_login(request, BadCredentialsError())

        assert response.status_code == 303
        assert response.headers["location"] == "http://testserver/members/login?next=%2Fprofile"
