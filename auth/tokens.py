"""
auth/tokens.py -- Password hashing, credential checks, and the signed-token codec.

Security design decisions:
  Tokens: python-jose with HS256. TokenCodec is built once at startup with
       the configured SECRET_KEY (no module-level settings read) and carries
       {user: {user, id}}, iat, exp and a random jti. The jti makes every
       issued token value unique even when two are signed for the same user
       within the same second. Verification returns None on any failure --
       the auth gate turns that into a 401.

  Passwords: bcrypt used directly. The _DUMMY_HASH constant enables timing
       equalization in authenticate_user() so response time does not reveal
       whether a username exists [C1].

Layer rule: no imports from api/ or media/.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("mediavault.auth")

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes. The API layer caps passwords at
    72 characters of input; multi-byte characters may still be truncated,
    which is a known bcrypt limitation.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization dummy hash [C1].
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("mediavault_timing_dummy")


# ---------------------------------------------------------------------------
# User authentication (constant-time) [C1]
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, login: str, password: str) -> User | None:
    """Authenticate a username-or-email / password pair.

    Always runs bcrypt whether or not the user exists:
    - Unknown login: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success, None on any failure.
    """
    user = store.get_by_login(login)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


# ---------------------------------------------------------------------------
# Signed session tokens
# ---------------------------------------------------------------------------


def session_claims(user_id: int, username: str) -> dict:
    """Build the identity part of a session token payload."""
    return {"user": {"user": username, "id": user_id}}


class TokenCodec:
    """Sign and verify compact HS256 tokens against one secret.

    Usage:
        codec = TokenCodec(settings.secret_key)
        token = codec.sign(session_claims(7, "ana"), timedelta(hours=24))
        claims = codec.verify(token)     # dict, or None if invalid/expired
    """

    def __init__(self, secret_key: str, algorithm: str = _ALGORITHM) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm

    def sign(self, claims: dict, ttl: timedelta, now: datetime | None = None) -> str:
        """Return a signed token carrying claims plus iat, exp and jti.

        now is injectable so tests can mint tokens that are already expired.
        """
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            **claims,
            "iat": issued_at,
            "exp": issued_at + ttl,
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> dict | None:
        """Decode and verify a token. Returns the payload dict or None on any failure.

        Checks the signature, the exp claim, and that the payload has the
        {user: {user, id}} shape the rest of the service relies on.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError as exc:
            logger.debug("Token rejected: %s", exc)
            return None
        identity = payload.get("user")
        if not isinstance(identity, dict) or "id" not in identity or "user" not in identity:
            return None
        return payload
