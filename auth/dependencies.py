"""
auth/dependencies.py -- FastAPI Depends() helper that gates protected routes.

get_current_principal() runs four checks strictly in order and stops at the
first failure:

  1. ConfigCheck     SECRET_KEY configured             else 500 ServerConfigError
  2. PresenceCheck   Authorization: Bearer <token>     else 401
  3. LedgerCheck     token recorded and not expired    else 401
  4. SignatureCheck  signature + exp verify, and the
                     payload's user id owns the row    else 401

Later checks assume earlier ones passed (signature verification needs the
secret), so the order is fixed. The ledger check lets the server end a
session early; the signature check lets a token expire on its own even when
the TTL sweep has not removed its row yet. Neither alone is sufficient.

On success the Principal is stored on request.state.principal and returned.
FastAPI caches dependency results per request, so a router-level
Depends(get_current_principal) plus a handler parameter runs the gate once.

Layer rule: no imports from api/ or media/. This module may import from
fastapi because it is part of the dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.ledger import TokenLedger
from auth.models import Principal
from core.config import Settings
from core.errors import AuthenticationError, ServerConfigError

logger = logging.getLogger("mediavault.auth")


def bearer_token(request: Request) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' header, or None."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


def require_auth_config(request: Request) -> Settings:
    """ConfigCheck. Also used on its own by /register and /login."""
    settings: Settings = request.app.state.settings
    if not settings.auth_configured:
        logger.error("SECRET_KEY not defined -- refusing %s %s", request.method, request.url.path)
        raise ServerConfigError("SECRET_KEY is not configured.")
    return settings


def get_current_principal(request: Request) -> Principal:
    """Require a valid session. Raises AuthenticationError (401) or ServerConfigError (500).

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_current_principal)): ...
    """
    require_auth_config(request)

    token = bearer_token(request)
    if token is None:
        raise AuthenticationError("Auth token required.")

    ledger: TokenLedger = request.app.state.ledger
    row = ledger.lookup(token)
    if row is None:
        raise AuthenticationError("Auth token is not valid.")

    payload = ledger.codec.verify(token)
    if payload is None:
        raise AuthenticationError("Auth token is not valid.")

    identity = payload["user"]
    if identity["id"] != row.owner:
        logger.warning("Token payload user_id=%s does not own ledger row (owner=%s)", identity["id"], row.owner)
        raise AuthenticationError("Auth token is not valid.")

    principal = Principal(user_id=identity["id"], username=identity["user"])
    request.state.principal = principal
    return principal
