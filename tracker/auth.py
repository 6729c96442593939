"""Token service: signed bearer token (HMAC) with expiry, no user identity."""

from __future__ import annotations

import base64
import dataclasses
import hashlib
import hmac
import json
import time
from typing import Optional

from server.config import AuthConfig
from server.errors import InvalidTokenError, MissingTokenError, WrongPasswordError

AUTHORIZED_CLAIM = "authorized"


def _b64_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64_decode(s: str) -> bytes:
    pad = 4 - (len(s) % 4)
    if pad != 4:
        s += "=" * pad
    return base64.urlsafe_b64decode(s)


@dataclasses.dataclass(frozen=True)
class AuthorizedContext:
    """What a verified token grants: the fixed claim and its expiry."""

    claim: str
    expires_at: int


class TokenService:
    """Issue and verify tokens from one shared password and one signing secret."""

    def __init__(self, auth: AuthConfig, clock=time.time) -> None:
        self._secret = auth.secret_key.encode("utf-8")
        self._password = auth.password
        self._ttl = auth.token_ttl_seconds
        self._clock = clock

    def _sign(self, payload_bytes: bytes) -> str:
        return _b64_encode(hmac.new(self._secret, payload_bytes, hashlib.sha256).digest())

    def issue(self, password: Optional[str]) -> str:
        """Build signed token value: base64(payload).base64(hmac)."""
        if not self._password or not password:
            raise WrongPasswordError()
        if not hmac.compare_digest(password.encode("utf-8"), self._password.encode("utf-8")):
            raise WrongPasswordError()
        expiry = int(self._clock()) + self._ttl
        payload = {"user": AUTHORIZED_CLAIM, "exp": expiry}
        payload_bytes = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
        return f"{_b64_encode(payload_bytes)}.{self._sign(payload_bytes)}"

    def verify(self, token: Optional[str]) -> AuthorizedContext:
        """Check signature, claim and expiry; raise AuthError subclasses on failure."""
        if not token:
            raise MissingTokenError()
        parts = token.split(".")
        if len(parts) != 2:
            raise InvalidTokenError()
        try:
            payload_bytes = _b64_decode(parts[0])
        except ValueError:
            raise InvalidTokenError()
        expected = self._sign(payload_bytes).encode("ascii")
        if not hmac.compare_digest(expected, parts[1].encode("utf-8")):
            raise InvalidTokenError()
        try:
            payload = json.loads(payload_bytes.decode("utf-8"))
            claim = payload["user"]
            expiry = int(payload["exp"])
        except (ValueError, KeyError, TypeError):
            raise InvalidTokenError()
        if claim != AUTHORIZED_CLAIM:
            raise InvalidTokenError()
        if int(self._clock()) >= expiry:
            raise InvalidTokenError("Token expired")
        return AuthorizedContext(claim=claim, expires_at=expiry)
