"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper (same as media/store.py).
UserStore is the repository; _row_to_user / _row_to_token are the mappers.
Route, ledger and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Contracts the rest of the service relies on:
  users.username and users.email are UNIQUE. create_user() surfaces a
  violation as sqlalchemy.exc.IntegrityError.

  session_tokens.owner is UNIQUE and save_token() is an upsert keyed on it,
  so "at most one token per user" is a storage guarantee: two concurrent
  logins both write, the last write wins, and no interleaving can leave two
  rows behind. session_tokens.token is UNIQUE as well.

  Token expiry is a TTL contract: purge_expired_tokens() removes rows whose
  expires_at has passed. It runs on a timer, so rows may linger after expiry;
  get_token() callers re-check expiry themselves.

Timestamps are stored as ISO 8601 UTC strings with second precision. A
fixed format keeps lexicographic comparison in SQL equal to chronological
comparison.

Layer rule: no imports from api/ or media/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, or_, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine

from auth.models import SessionToken, User

_DEFAULT_DB_URL = "sqlite:///mediavault.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_tokens = Table(
    "session_tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner", Integer, nullable=False, unique=True),  # one live session per user
    Column("token", Text, nullable=False, unique=True),
    Column("created_at", String(32), nullable=False),
    Column("expires_at", String(32), nullable=False, index=True),
)

# Dialects with INSERT ... ON CONFLICT support.
_UPSERT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": pg_insert,
}


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="seconds")


def _now_iso() -> str:
    return _to_iso(datetime.now(timezone.utc))


def _from_iso(value: str) -> datetime:
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and SessionToken entities.

    Usage:
        store = UserStore()
        user_id = store.create_user(User(username="ana", email="ana@x.com", hashed_password=...))
        user = store.get_by_login("ana@x.com")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the username or email already
        exists. The register route catches it as the authoritative duplicate
        signal -- exists() is only a fast path.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    username=user.username,
                    email=user.email,
                    hashed_password=user.hashed_password,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def exists(self, username: str, email: str) -> bool:
        """Return True if a user already holds this username or this email."""
        with self.engine.connect() as conn:
            row = conn.execute(
                select(_users.c.id).where(or_(_users.c.username == username, _users.c.email == email)).limit(1)
            ).fetchone()
        return row is not None

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_login(self, login: str) -> User | None:
        """Look up a user by email first, then by username.

        Login accepts either identifier. Emails are stored lowercase, so the
        email comparison ignores case; usernames stay case-sensitive. Email
        wins when both match different records, which can only happen if a
        username looks like someone else's email address.
        """
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == login.lower())).fetchone()
            if row is None:
                row = conn.execute(_users.select().where(_users.c.username == login)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Session token queries
    # ------------------------------------------------------------------

    def save_token(self, token: SessionToken) -> None:
        """Store token as its owner's only session, replacing any previous row.

        Runs as a single statement (INSERT ... ON CONFLICT (owner) DO UPDATE)
        on SQLite and PostgreSQL. Other dialects fall back to delete + insert
        inside one transaction; the UNIQUE(owner) index still rejects a
        concurrent duplicate there.
        """
        created_at = _to_iso(token.created_at or datetime.now(timezone.utc))
        values = {
            "owner": token.owner,
            "token": token.token,
            "created_at": created_at,
            "expires_at": _to_iso(token.expires_at),
        }
        insert = _UPSERT_INSERTS.get(self.engine.dialect.name)
        with self.engine.begin() as conn:
            if insert is not None:
                stmt = insert(_tokens).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[_tokens.c.owner],
                    set_={
                        "token": stmt.excluded.token,
                        "created_at": stmt.excluded.created_at,
                        "expires_at": stmt.excluded.expires_at,
                    },
                )
                conn.execute(stmt)
            else:
                conn.execute(_tokens.delete().where(_tokens.c.owner == token.owner))
                conn.execute(_tokens.insert().values(**values))

    def get_token(self, token: str) -> SessionToken | None:
        """Return the ledger row for a raw token value, expired or not."""
        with self.engine.connect() as conn:
            row = conn.execute(_tokens.select().where(_tokens.c.token == token)).fetchone()
        return _row_to_token(row) if row is not None else None

    def list_tokens_by_owner(self, owner: int) -> list[SessionToken]:
        with self.engine.connect() as conn:
            rows = conn.execute(_tokens.select().where(_tokens.c.owner == owner)).fetchall()
        return [_row_to_token(r) for r in rows]

    def has_live_token(self, owner: int) -> bool:
        """Return True if owner has a token whose expires_at is still in the future."""
        with self.engine.connect() as conn:
            row = conn.execute(
                select(_tokens.c.id).where((_tokens.c.owner == owner) & (_tokens.c.expires_at > _now_iso())).limit(1)
            ).fetchone()
        return row is not None

    def delete_tokens_by_owner(self, owner: int) -> int:
        """Delete every token owned by owner. Returns the number of rows removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_tokens.delete().where(_tokens.c.owner == owner))
            conn.commit()
        return result.rowcount

    def purge_expired_tokens(self) -> int:
        """TTL sweep: delete every token past its expires_at. Returns rows removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_tokens.delete().where(_tokens.c.expires_at <= _now_iso()))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
    )


def _row_to_token(row) -> SessionToken:
    return SessionToken(
        id=row.id,
        owner=row.owner,
        token=row.token,
        created_at=_from_iso(row.created_at),
        expires_at=_from_iso(row.expires_at),
    )
