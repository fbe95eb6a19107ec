"""
media/store.py -- SQLAlchemy-backed persistence layer for media items.

Uses SQLAlchemy Core (not ORM) so the dataclasses in media/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is
a CONNECTION_STRING change, not a rewrite.

Pattern: Repository + Data Mapper. MediaStore is the repository;
_row_to_item is the mapper. Route handlers never touch SQL directly.

Ownership: every read and delete takes the owner id and filters on it, so a
user can never see or remove another user's items, even by guessing ids.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = MediaStore()                                 # SQLite default
    store = MediaStore("postgresql://user:pw@host/db")   # PostgreSQL
    item_id = store.insert(item)
    items = store.list_by_owner(owner_id)
    store.close()
"""

from datetime import date
from typing import Optional

from sqlalchemy import Column, Date, Float, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from media.models import Language, MediaItem, MediaType

_DEFAULT_DB_URL = "sqlite:///mediavault.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_media = Table(
    "media",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner", Integer, nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("completed_date", Date, nullable=False),
    Column("score", Float, nullable=False),
    Column("poster", Text, nullable=False),
    Column("media_type", String(20), nullable=False),
    Column("language", String(20), nullable=False),
    Column("comment", Text),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _item_values(item: MediaItem) -> dict:
    return {
        "owner": item.owner,
        "name": item.name,
        "completed_date": item.completed_date,
        "score": float(item.score),
        "poster": item.poster,
        "media_type": MediaType(item.media_type).value,
        "language": Language(item.language).value,
        "comment": item.comment,
    }


class MediaStore:
    """Repository for MediaItem entities."""

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, item: MediaItem) -> int:
        """Insert one item and return its assigned database ID."""
        with self.engine.connect() as conn:
            result = conn.execute(_media.insert().values(**_item_values(item)))
            conn.commit()
            return result.inserted_primary_key[0]

    def insert_many(self, items: list[MediaItem]) -> list[int]:
        """Insert items in one transaction. Either all rows are written or none.

        Returns the new IDs in input order.
        """
        ids: list[int] = []
        with self.engine.begin() as conn:
            for item in items:
                result = conn.execute(_media.insert().values(**_item_values(item)))
                ids.append(result.inserted_primary_key[0])
        return ids

    def delete_by_id(self, item_id: int, owner: int) -> Optional[MediaItem]:
        """Delete one of owner's items. Returns the deleted item, or None if absent."""
        with self.engine.begin() as conn:
            row = conn.execute(
                _media.select().where((_media.c.id == item_id) & (_media.c.owner == owner))
            ).fetchone()
            if row is None:
                return None
            conn.execute(_media.delete().where(_media.c.id == item_id))
        return _row_to_item(row)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, item_id: int, owner: int) -> Optional[MediaItem]:
        with self.engine.connect() as conn:
            row = conn.execute(
                _media.select().where((_media.c.id == item_id) & (_media.c.owner == owner))
            ).fetchone()
        return _row_to_item(row) if row is not None else None

    def list_by_owner(self, owner: int) -> list[MediaItem]:
        """Return all of owner's items, most recently completed first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _media.select()
                .where(_media.c.owner == owner)
                .order_by(_media.c.completed_date.desc(), _media.c.id.desc())
            ).fetchall()
        return [_row_to_item(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_item(row) -> MediaItem:
    completed = row.completed_date
    if isinstance(completed, str):
        completed = date.fromisoformat(completed)
    return MediaItem(
        id=row.id,
        owner=row.owner,
        name=row.name,
        completed_date=completed,
        score=row.score,
        poster=row.poster,
        media_type=MediaType(row.media_type),
        language=Language(row.language),
        comment=row.comment,
    )
