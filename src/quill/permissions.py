# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import RedirectResponse

from quill.auth.session import COOKIE_NAME, SessionClaim, SessionTokenService
from quill.errors import AuthenticationError

PROTECTED_PREFIX = "/admin"
LOGIN_PATH = "/login"
ADMIN_HOME = "/admin"


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def gate_redirect(path: str, claim: Optional[SessionClaim]) -> Optional[str]:
    """Where the Access Gate sends this request, or None to let it through.

    - protected + no valid session -> login
    - login + valid session -> admin home
    - anything else passes
    """
    if _under(path, PROTECTED_PREFIX):
        return None if claim else LOGIN_PATH
    if _under(path, LOGIN_PATH):
        return ADMIN_HOME if claim else None
    return None


def session_from_request(request: Request, tokens: SessionTokenService) -> Optional[SessionClaim]:
    token = request.cookies.get(COOKIE_NAME, "")
    if not token:
        return None
    return tokens.verify(token)


def install_access_gate(app: FastAPI, tokens: SessionTokenService) -> None:
    @app.middleware("http")
    async def _access_gate(request: Request, call_next):
        claim = session_from_request(request, tokens)
        request.state.session = claim
        target = gate_redirect(request.url.path, claim)
        if target:
            return RedirectResponse(url=target, status_code=303)
        return await call_next(request)


def require_session(request: Request) -> SessionClaim:
    """API dependency: re-verify the cookie, independent of the gate."""
    claim = session_from_request(request, request.app.state.tokens)
    if not claim:
        raise AuthenticationError("Unauthorized")
    return claim


def require_page_session(request: Request) -> SessionClaim:
    """Page dependency: like require_session but redirects browsers to the login page."""
    claim = session_from_request(request, request.app.state.tokens)
    if claim:
        return claim
    raise HTTPException(status_code=303, headers={"Location": LOGIN_PATH})


def cookie_settings(request: Request) -> dict:
    tokens: SessionTokenService = request.app.state.tokens
    return tokens.cookie_kwargs(secure=request.app.state.settings.cookie_secure)
