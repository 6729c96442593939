"""Request gate: every route except token issuance depends on require_token."""

from __future__ import annotations

import json
from typing import Optional

from fastapi import Request

from server.errors import InvalidTokenError

from .auth import AuthorizedContext, TokenService


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


async def _token_from_request(request: Request) -> Optional[str]:
    """Token from the JSON body's `token` field, else from a Bearer header."""
    body = await request.body()
    if body:
        try:
            payload = json.loads(body)
        except ValueError:
            payload = None
        token = payload.get("token") if isinstance(payload, dict) else None
        if isinstance(token, str):
            return token
        if token:
            # present but not a string: never a valid token
            raise InvalidTokenError()

    header = request.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


async def require_token(request: Request) -> AuthorizedContext:
    """Reject the request with 401/403 unless it carries a valid token.

    Tokens carry no identity: passing the gate authorizes access to every
    user's record.
    """
    token = await _token_from_request(request)
    return get_token_service(request).verify(token)
