"""
api/routes/v1/media.py -- Media item routes for the MediaVault REST API.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /media              -- filtered, paginated list of the caller's items
  POST   /media/addMedia     -- create one item, or many with ?many=true
  GET    /media/{media_id}   -- one item
  DELETE /media/{media_id}   -- delete one item, returns it

Every route requires a session (router-level auth gate) and only ever sees
the caller's own items: the owner id comes from the verified token, never
from the request body.

Listing flow:
  MediaStore.list_by_owner() -> filter_media() -> paginate()
  filter_media() returns None when no filter was requested; the handler then
  paginates the unfiltered list. An empty list means the filters matched
  nothing and is paginated as-is.

Ids that are not plain positive integers in the 64-bit row id range cannot
name a stored row, so they are reported as 404, not as a validation error.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from api.models import MediaCreate, MediaPage, MediaResponse, describe_validation_errors
from auth.dependencies import get_current_principal
from auth.models import Principal
from core.errors import NotFoundError, ValidationError
from media.filters import filter_media
from media.models import FilterSpec
from media.pagination import paginate, parse_page
from media.store import MediaStore

logger = logging.getLogger("mediavault.media")

# All media routes require authentication.
# Router-level dependency applies to every route registered on this router;
# handlers that need the identity declare the same dependency and FastAPI
# reuses the cached result.
router = APIRouter(dependencies=[Depends(get_current_principal)])

_one_item = TypeAdapter(MediaCreate)
_many_items = TypeAdapter(list[MediaCreate])


# Largest value a signed 64-bit INTEGER column can hold.
_MAX_ID = 2**63 - 1


def _parse_id(media_id: str) -> int:
    """Return media_id as a storable row id, or raise NotFoundError.

    Only plain ASCII digits are accepted; int() alone would also take " 7 " and "1_0".
    """
    if not (media_id.isascii() and media_id.isdigit()):
        raise NotFoundError(f"Media {media_id[:50]} not found.")
    value = int(media_id)
    if not 0 < value <= _MAX_ID:
        raise NotFoundError(f"Media {media_id[:50]} not found.")
    return value


# ---------------------------------------------------------------------------
# GET /media -- filtered, paginated list
# ---------------------------------------------------------------------------


@router.get("/media", response_model=MediaPage)
def list_media(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    page: Optional[str] = Query(default=None),
    language: Optional[str] = Query(default=None),
    media_type: Optional[str] = Query(default=None, alias="mediaType"),
    score: Optional[str] = Query(default=None),
    score_min: Optional[str] = Query(default=None, alias="scoreG"),
    score_max: Optional[str] = Query(default=None, alias="scoreL"),
    date_from: Optional[str] = Query(default=None, alias="from"),
    date_to: Optional[str] = Query(default=None, alias="to"),
) -> MediaPage:
    """Return one page (10 items) of the caller's media, optionally filtered.

    Query params:
      page            -- 1-based page number (values <= 0 read as 1)
      language        -- spanish | english | sub-spanish (any case)
      mediaType       -- movie | serie | anime | videogame | book (any case)
      score           -- exact score
      scoreG / scoreL -- inclusive lower / upper score bound
      from / to       -- inclusive completion-date range; both are required
    """
    page_number = parse_page(page)
    spec = FilterSpec(
        language=language,
        media_type=media_type,
        score=score,
        score_min=score_min,
        score_max=score_max,
        date_from=date_from,
        date_to=date_to,
    )

    store: MediaStore = request.app.state.media_store
    items = store.list_by_owner(principal.user_id)
    filtered = filter_media(items, spec)
    if filtered is None:
        filtered = items

    return MediaPage.from_page(paginate(filtered, page_number))


# ---------------------------------------------------------------------------
# POST /media/addMedia -- create (must be before /media/{media_id})
# ---------------------------------------------------------------------------


@router.post("/media/addMedia", response_model=MediaResponse | list[MediaResponse], status_code=201)
def add_media(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    many: bool = False,
    payload: Any = Body(default=None),
) -> MediaResponse | list[MediaResponse]:
    """Create one media item, or a list of them when ?many=true.

    With many=true the whole list is validated before anything is written
    and then stored in a single transaction: one bad entry rejects the batch.
    """
    if payload is None:
        raise ValidationError("Request body is required.", field="body")

    try:
        if many:
            if not isinstance(payload, list):
                raise ValidationError("Expected a JSON array of media items when many=true.", field="body")
            incoming = _many_items.validate_python(payload)
        else:
            incoming = [_one_item.validate_python(payload)]
    except PydanticValidationError as exc:
        field, message = describe_validation_errors(exc.errors())
        raise ValidationError(message, field=field or None) from exc

    store: MediaStore = request.app.state.media_store
    items = [body.to_item(principal.user_id) for body in incoming]
    ids = store.insert_many(items)
    for item, item_id in zip(items, ids):
        item.id = item_id
    logger.info("user_id=%s added %d media item(s)", principal.user_id, len(items))

    created = [MediaResponse.from_item(item) for item in items]
    return created if many else created[0]


# ---------------------------------------------------------------------------
# GET /media/{media_id}
# ---------------------------------------------------------------------------


@router.get("/media/{media_id}", response_model=MediaResponse)
def get_media(
    request: Request,
    media_id: str,
    principal: Principal = Depends(get_current_principal),
) -> MediaResponse:
    store: MediaStore = request.app.state.media_store
    item = store.get_by_id(_parse_id(media_id), principal.user_id)
    if item is None:
        raise NotFoundError(f"Media {media_id} not found.")
    return MediaResponse.from_item(item)


# ---------------------------------------------------------------------------
# DELETE /media/{media_id}
# ---------------------------------------------------------------------------


@router.delete("/media/{media_id}", response_model=MediaResponse)
def delete_media(
    request: Request,
    media_id: str,
    principal: Principal = Depends(get_current_principal),
) -> MediaResponse:
    """Delete one of the caller's items and return it as it was."""
    store: MediaStore = request.app.state.media_store
    item = store.delete_by_id(_parse_id(media_id), principal.user_id)
    if item is None:
        raise NotFoundError(f"Media {media_id} not found.")
    logger.info("user_id=%s deleted media id=%s", principal.user_id, item.id)
    return MediaResponse.from_item(item)
