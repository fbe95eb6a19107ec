"""
api/routes/v1/auth.py -- Registration, login and logout endpoints.

Routes:
  POST /api/v1/register   -- create account; 201 {token}
  POST /api/v1/login      -- username-or-email + password; 200 {token}
  POST /api/v1/logout     -- 501, not implemented

Security:
  [H2] POST /register and /login are rate-limited per IP (LOGIN_RATE_LIMIT).
  [C1] authenticate_user() provides timing equalization -- use it, never inline.
  [M5] Cache-Control: no-store on every response that carries a token.

Both credential routes run the auth gate's ConfigCheck first: without a
SECRET_KEY no token can be signed, so they answer 500 before doing any work.

Registration issues the token only after the user row is committed. A
duplicate username or email is reported as 403, whether it is caught by the
exists() fast path or by the UNIQUE constraint when two registrations race.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter, login_rate_limit
from api.models import LoginRequest, RegisterRequest, TokenResponse
from auth.dependencies import require_auth_config
from auth.ledger import TokenLedger
from auth.models import User
from auth.store import UserStore
from auth.tokens import authenticate_user, hash_password
from core.errors import AuthenticationError, DuplicateError, InternalError

logger = logging.getLogger("mediavault.api")

# Auth policy:
# - POST /api/v1/register: public (SECRET_KEY required)
# - POST /api/v1/login:    public (SECRET_KEY required)
# - POST /api/v1/logout:   public, not implemented
router = APIRouter()


def _token_response(token: str, status_code: int) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=TokenResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@limiter.limit(login_rate_limit)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.post("/register", response_model=TokenResponse, status_code=201, dependencies=[Depends(require_auth_config)])
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and open its first session."""
    user_store: UserStore = request.app.state.user_store
    ledger: TokenLedger = request.app.state.ledger

    if user_store.exists(body.user, body.email):
        raise DuplicateError("User already exists.")

    new_user = User(
        username=body.user,
        email=body.email,
        hashed_password=hash_password(body.password),
    )
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        raise DuplicateError("User already exists.") from exc

    created = user_store.get_by_id(user_id)
    if created is None:
        raise InternalError("User not found after write.")
    logger.info("Registered user_id=%s", created.id)

    token = ledger.issue(created)
    return _token_response(token, 201)


@limiter.limit(login_rate_limit)  # [H2]
@router.post("/login", response_model=TokenResponse, dependencies=[Depends(require_auth_config)])
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate and return a fresh token; any previous token stops working.

    Wrong login and wrong password produce the same error so the response
    does not reveal which usernames exist.
    """
    user_store: UserStore = request.app.state.user_store
    ledger: TokenLedger = request.app.state.ledger

    user = authenticate_user(user_store, body.user, body.password)
    if user is None:
        raise AuthenticationError("Invalid username or password.")

    token = ledger.login_or_refresh(user)
    return _token_response(token, 200)


@router.post("/logout", status_code=501)
async def logout() -> JSONResponse:
    """Not implemented. Sessions end when they expire or a new login supersedes them."""
    return JSONResponse(
        status_code=501,
        content={"error": {"code": "not_implemented", "message": "Logout is not implemented.", "detail": None}},
    )
