# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass
from typing import Optional

from itsdangerous import BadData, URLSafeTimedSerializer
from itsdangerous.encoding import base64_decode, base64_encode

from quill.settings import SEVEN_DAYS

COOKIE_NAME = "session"
DEFAULT_SALT = "quill.session.v1"


@dataclass(frozen=True)
class SessionClaim:
    user_id: str
    username: str


class SessionTokenService:
    """Issue and verify signed, expiring session tokens.

    Tokens are ``payload.timestamp.signature`` (HMAC-SHA256). The payload
    carries the claim plus ``iat``/``exp``; both the signer timestamp and the
    embedded expiry must be within the TTL for a token to verify.
    """

    def __init__(self, secret: str, *, ttl_seconds: int = SEVEN_DAYS, salt: str = DEFAULT_SALT) -> None:
        if not secret:
            raise RuntimeError("Session secret must not be empty")
        self.ttl_seconds = int(ttl_seconds)
        self._serializer = URLSafeTimedSerializer(
            secret_key=secret,
            salt=salt,
            signer_kwargs={"digest_method": hashlib.sha256},
        )

    def issue(self, claim: SessionClaim) -> str:
        now = int(time.time())
        return self._serializer.dumps(
            {
                "uid": claim.user_id,
                "u": claim.username,
                "iat": now,
                "exp": now + self.ttl_seconds,
            }
        )

    def verify(self, token: str) -> Optional[SessionClaim]:
        if not token:
            return None
        try:
            data = self._serializer.loads(token, max_age=self.ttl_seconds)
        except BadData:
            return None
        if not _canonical_signature(token):
            return None
        if not isinstance(data, dict):
            return None

        exp = data.get("exp")
        if not isinstance(exp, int) or exp <= time.time():
            return None
        uid = str(data.get("uid") or "").strip()
        username = str(data.get("u") or "").strip()
        if not uid or not username:
            return None
        return SessionClaim(user_id=uid, username=username)

    def cookie_kwargs(self, *, secure: bool) -> dict:
        return {
            "max_age": self.ttl_seconds,
            "httponly": True,
            "samesite": "lax",
            "secure": secure,
            "path": "/",
        }


def _canonical_signature(token: str) -> bool:
    # base64 ignores trailing bits, so a tampered last character can decode
    # to the same signature bytes. Only the canonical encoding is accepted.
    sig = token.rsplit(".", 1)[-1]
    try:
        return base64_encode(base64_decode(sig)) == sig.encode("utf-8")
    except (BadData, UnicodeEncodeError):
        return False
