"""
auth/ledger.py -- Session token ledger: issue, look up, revoke, sweep.

The ledger owns the single-active-session policy. Every token the service
hands out is signed by TokenCodec AND recorded in UserStore; the auth gate
requires both, which lets the server end a session before the token's own
exp claim (revocation, supersession by a newer login) while still letting a
token die on schedule if the TTL sweep lags behind.

Supersession is atomic. UserStore.save_token() is an upsert on the owner
column, so login_or_refresh() never runs a separate "is there a session?"
check before writing. Two simultaneous logins for the same user both succeed
and exactly one token survives (the later write).

Layer rule: no imports from api/ or media/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from auth.models import SessionToken, User
from auth.store import UserStore
from auth.tokens import TokenCodec, session_claims

logger = logging.getLogger("mediavault.auth")

DEFAULT_TTL_HOURS = 24


class TokenLedger:
    """Issue and track session tokens, one live token per user.

    Usage:
        ledger = TokenLedger(store, TokenCodec(secret), ttl_hours=24)
        token = ledger.login_or_refresh(user)
        row = ledger.lookup(token)        # SessionToken, or None if unknown/expired
        ledger.revoke_all(user.id)
    """

    def __init__(self, store: UserStore, codec: TokenCodec, ttl_hours: int = DEFAULT_TTL_HOURS) -> None:
        self.store = store
        self.codec = codec
        self.ttl_hours = ttl_hours

    def issue(self, user: User, ttl_hours: int | None = None) -> str:
        """Sign a token for user, record it as the user's only session, return it.

        Any previous token of the same user is replaced in the same write.
        """
        hours = ttl_hours if ttl_hours is not None else self.ttl_hours
        now = datetime.now(timezone.utc)
        ttl = timedelta(hours=hours)
        token = self.codec.sign(session_claims(user.id, user.username), ttl, now=now)
        self.store.save_token(
            SessionToken(
                owner=user.id,
                token=token,
                created_at=now,
                expires_at=now + ttl,
            )
        )
        return token

    def has_active(self, user_id: int) -> bool:
        return self.store.has_live_token(user_id)

    def revoke_all(self, user_id: int) -> int:
        """Delete every token owned by user_id. Returns the number revoked."""
        revoked = self.store.delete_tokens_by_owner(user_id)
        if revoked:
            logger.info("Revoked %d session token(s) for user_id=%s", revoked, user_id)
        return revoked

    def login_or_refresh(self, user: User) -> str:
        """Start a fresh session for user, superseding any live one."""
        if self.has_active(user.id):
            logger.info("Superseding active session for user_id=%s", user.id)
        return self.issue(user)

    def lookup(self, token: str) -> SessionToken | None:
        """Return the ledger row for token if it exists and has not expired.

        Expiry is re-checked here because the TTL sweep runs on a timer and
        an expired row can still be read until it does.
        """
        row = self.store.get_token(token)
        if row is None or row.is_expired():
            return None
        return row

    def purge_expired(self) -> int:
        """Run the TTL sweep once. Returns the number of rows removed."""
        removed = self.store.purge_expired_tokens()
        if removed:
            logger.info("Purged %d expired session token(s)", removed)
        return removed
