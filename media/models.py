"""
media/models.py -- Domain types for tracked media items.

These are pure data containers. Filtering lives in media/filters.py,
pagination in media/pagination.py, persistence in media/store.py.

MediaType and Language are the single source of truth for the allowed
values. Both the API input model (api/models.py) and the filter engine
resolve user-supplied strings through ChoiceEnum.lookup(), so the
case-insensitive matching rule exists in exactly one place.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from enum import Enum
from typing import Any, Optional


class ChoiceEnum(str, Enum):
    """str Enum with a case-insensitive lookup. Subclasses declare members only."""

    @classmethod
    def lookup(cls, value: str) -> Optional["ChoiceEnum"]:
        """Return the member whose value equals value (ignoring case and outer spaces), or None."""
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return None

    @classmethod
    def parse(cls, value: Any) -> "ChoiceEnum":
        """Like lookup(), but raise ValueError for non-strings and unknown values."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError("must be a string")
        member = cls.lookup(value)
        if member is None:
            allowed = ", ".join(m.value for m in cls)
            raise ValueError(f"must be one of: {allowed}")
        return member


class MediaType(ChoiceEnum):
    movie = "movie"
    serie = "serie"
    anime = "anime"
    videogame = "videogame"
    book = "book"


class Language(ChoiceEnum):
    spanish = "spanish"
    english = "english"
    sub_spanish = "sub-spanish"


@dataclass
class MediaItem:
    """A watched/read item recorded by its owner.

    owner is the user id of the creator; items are never shared.
    id is None before the record is written to the database.
    """

    owner: int
    name: str
    completed_date: date
    score: float  # 0..10 inclusive
    poster: str
    media_type: MediaType
    language: Language
    comment: Optional[str] = None
    id: Optional[int] = None


@dataclass
class FilterSpec:
    """Per-request filter criteria for GET /media. Never persisted.

    Values are kept as received (query strings are str); media/filters.py
    validates every present field before filtering. None and "" mean the
    field is absent.
    """

    language: Any = None
    media_type: Any = None
    score: Any = None
    score_min: Any = None
    score_max: Any = None
    date_from: Any = None
    date_to: Any = None

    def present(self) -> dict[str, Any]:
        """Return the fields that carry a value, by name."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None and getattr(self, f.name) != ""
        }

    def is_empty(self) -> bool:
        return not self.present()
