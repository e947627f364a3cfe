"""
Demo verification service (FastAPI).

Answers the requests of RemoteAuthenticationProvider for a fixed set of
demo users. Not for production use: passwords and codes are plain text.

Usage:
    python examples/verifier_server.py

    # Or with uvicorn
    uvicorn examples.verifier_server:app --port 8081 --reload

Environment variables:
    PORT - Override port (default: 8081)
"""

import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

PORT = int(os.getenv("PORT", "8081"))

# username -> password, roles, second-factor providers and their code
USERS = {
    "alice": {
        "password": "secret",
        "roles": ["ROLE_MEMBER"],
        "two_factor_providers": ["totp"],
        "code": "123456",
    },
    "bob": {
        "password": "hunter2",
        "roles": ["ROLE_MEMBER"],
        "two_factor_providers": [],
        "code": None,
    },
}

app = FastAPI(
    title="Demo Verification Service",
    description="Checks passwords and one-time codes for the form login demo",
    version="0.1.0",
)


def _reject(error: str) -> JSONResponse:
    return JSONResponse(status_code=401, content={"authenticated": False, "error": error})


@app.post("/authenticate")
async def authenticate(request: Request):
    payload = await request.json()
    user = USERS.get(payload.get("username", ""))

    if user is None:
        return _reject("Unknown user")

    if payload.get("type") == "two_factor":
        if not user["code"] or payload.get("code") != user["code"]:
            return _reject("Invalid code")
        return {"authenticated": True, "roles": user["roles"]}

    if payload.get("password") != user["password"]:
        return _reject("Invalid password")

    return {
        "authenticated": True,
        "roles": user["roles"],
        "two_factor_providers": user["two_factor_providers"],
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "demo-verifier"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
