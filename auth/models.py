"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in media/models.py -- dataclasses own domain shape; stores and routes do
the work.

Layer rule: no imports from api/ or media/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass
class User:
    """A registered account.

    username and email are each globally unique (UNIQUE columns in
    auth/store.py). Records are never deleted by the application.
    """

    username: str
    email: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None


@dataclass
class SessionToken:
    """A ledger row for an issued session token.

    At most one row exists per owner: the session_tokens table has a UNIQUE
    index on owner and writes go through an upsert, so issuing a new token
    atomically supersedes the previous one.

    expires_at is an aware UTC datetime. Rows past expires_at may still be
    present until the TTL sweep removes them; readers must call is_expired().
    """

    owner: int
    token: str
    expires_at: datetime
    created_at: datetime | None = None
    id: int | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now


@dataclass(frozen=True)
class Principal:
    """The authenticated identity attached to a request by the auth gate."""

    user_id: int
    username: str
