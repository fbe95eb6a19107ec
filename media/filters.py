"""
media/filters.py -- Pure filtering over one owner's media items.

filter_media() takes the already-fetched, owner-scoped list from MediaStore
and a FilterSpec. It never touches the database and never suspends.

Return contract:
  None         -- no filter field was present ("no filtering requested").
                  The caller shows the unfiltered collection.
  list (maybe empty) -- the items that satisfy every present filter.

Filters form an AND conjunction applied in a fixed order:
  language -> media_type -> score / score_min / score_max -> date_from..date_to

Validation runs over every present field before any item is examined, so a
bad value raises InvalidFilterValue without partial filtering. Cost is
O(n * k) for n items and k active filters; the owner scoping done by the
store keeps n small enough that no index is needed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from core.errors import InvalidFilterValue
from media.models import ChoiceEnum, FilterSpec, Language, MediaItem, MediaType

SCORE_MIN = 0.0
SCORE_MAX = 10.0

# Field names as clients send them in the query string.
QUERY_NAMES = {
    "language": "language",
    "media_type": "mediaType",
    "score": "score",
    "score_min": "scoreG",
    "score_max": "scoreL",
    "date_from": "from",
    "date_to": "to",
}


@dataclass
class _Criteria:
    """Validated, typed form of a FilterSpec.

    A text filter that names no known enum member is kept as the lowercased
    raw string: the request is well-formed, it just cannot match any stored
    item.
    """

    language: Optional[ChoiceEnum | str] = None
    media_type: Optional[ChoiceEnum | str] = None
    score: Optional[float] = None
    score_min: Optional[float] = None
    score_max: Optional[float] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


def filter_media(items: list[MediaItem], spec: FilterSpec) -> list[MediaItem] | None:
    """Apply spec to items. See the module docstring for the return contract."""
    if spec.is_empty():
        return None

    criteria = _validate(spec)

    results = list(items)
    results = _by_choice(results, criteria.language, "language")
    results = _by_choice(results, criteria.media_type, "media_type")
    results = _by_score(results, criteria.score, criteria.score_min, criteria.score_max)
    results = _by_date_range(results, criteria.date_from, criteria.date_to)
    return results


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _validate(spec: FilterSpec) -> _Criteria:
    present = spec.present()
    criteria = _Criteria()
    if "language" in present:
        criteria.language = _parse_choice(Language, present["language"], "language")
    if "media_type" in present:
        criteria.media_type = _parse_choice(MediaType, present["media_type"], "media_type")
    for name in ("score", "score_min", "score_max"):
        if name in present:
            setattr(criteria, name, _parse_score(present[name], name))
    for name in ("date_from", "date_to"):
        if name in present:
            setattr(criteria, name, _parse_date(present[name], name))
    return criteria


def _parse_choice(enum_cls: type[ChoiceEnum], value: Any, name: str) -> ChoiceEnum | str:
    if not isinstance(value, str):
        raise InvalidFilterValue(QUERY_NAMES[name], "Expected a string.")
    member = enum_cls.lookup(value)
    # Unknown values are valid requests that match nothing.
    return member if member is not None else value.strip().lower()


def _parse_score(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise InvalidFilterValue(QUERY_NAMES[name], "Expected a number.")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidFilterValue(QUERY_NAMES[name], "Expected a number.") from None
    if math.isnan(number) or not SCORE_MIN <= number <= SCORE_MAX:
        raise InvalidFilterValue(QUERY_NAMES[name], "Score must be between 0 and 10.")
    return number


def _parse_date(value: Any, name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidFilterValue(QUERY_NAMES[name], "Expected a date (YYYY-MM-DD).")
    raw = value.strip()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw).date()
    except ValueError:
        raise InvalidFilterValue(QUERY_NAMES[name], "Expected a date (YYYY-MM-DD).") from None


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def _by_choice(items: list[MediaItem], wanted: ChoiceEnum | str | None, attr: str) -> list[MediaItem]:
    if wanted is None:
        return items
    if not isinstance(wanted, ChoiceEnum):
        return []
    return [item for item in items if getattr(item, attr) == wanted]


def _by_score(
    items: list[MediaItem],
    score: float | None,
    score_min: float | None,
    score_max: float | None,
) -> list[MediaItem]:
    if score is not None:
        items = [item for item in items if item.score == score]
    if score_min is not None:
        items = [item for item in items if item.score >= score_min]
    if score_max is not None:
        items = [item for item in items if item.score <= score_max]
    return items


def _by_date_range(items: list[MediaItem], date_from: date | None, date_to: date | None) -> list[MediaItem]:
    # A range needs both bounds; a single bound is ignored, not half-applied.
    if date_from is None or date_to is None:
        return items
    return [item for item in items if date_from <= item.completed_date <= date_to]
