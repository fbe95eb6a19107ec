"""
API request and response models for MediaVault REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
media/models.py, which own the internal domain representation. Route
handlers map between the two.

JSON keys are camelCase (completedDate, mediaType, totalPages) to match the
published API; Python attributes stay snake_case via an alias generator.
"""

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from media.models import Language, MediaItem, MediaType
from media.pagination import Page

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Pragmatic address check: something@domain.tld, no spaces.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$"

# bcrypt ignores everything after 72 bytes.
_PASSWORD_MAX = 72

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/register."""

    model_config = ConfigDict(str_strip_whitespace=True)

    user: str = Field(min_length=1, max_length=255)
    email: str = Field(max_length=320, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/login. user may be a username or an email."""

    model_config = ConfigDict(str_strip_whitespace=True)

    user: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)


class TokenResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str


# ---------------------------------------------------------------------------
# Media -- request models
# ---------------------------------------------------------------------------


class MediaCreate(BaseModel):
    """One media item in the body of POST /api/v1/media/addMedia.

    mediaType and language are matched case-insensitively through the same
    ChoiceEnum.parse() the filter engine uses, then stored lowercase.
    """

    model_config = ConfigDict(str_strip_whitespace=True, alias_generator=to_camel, populate_by_name=True)

    name: str = Field(min_length=1, max_length=255)
    completed_date: date
    score: float = Field(ge=0, le=10)
    poster: str = Field(min_length=1, max_length=2048)
    media_type: MediaType
    language: Language
    comment: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("media_type", mode="before")
    @classmethod
    def parse_media_type(cls, value: Any) -> MediaType:
        return MediaType.parse(value)

    @field_validator("language", mode="before")
    @classmethod
    def parse_language(cls, value: Any) -> Language:
        return Language.parse(value)

    def to_item(self, owner: int) -> MediaItem:
        return MediaItem(
            owner=owner,
            name=self.name,
            completed_date=self.completed_date,
            score=self.score,
            poster=self.poster,
            media_type=self.media_type,
            language=self.language,
            comment=self.comment,
        )


# ---------------------------------------------------------------------------
# Media -- response models
# ---------------------------------------------------------------------------


class MediaResponse(BaseModel):
    """A stored media item as returned to its owner."""

    model_config = ConfigDict(frozen=True, **_CAMEL)

    id: int
    owner: int
    name: str
    completed_date: date
    score: float
    poster: str
    media_type: MediaType
    language: Language
    comment: Optional[str] = None

    @classmethod
    def from_item(cls, item: MediaItem) -> "MediaResponse":
        """Factory Method: the domain -> API mapping lives next to the output model."""
        return cls(
            id=item.id,
            owner=item.owner,
            name=item.name,
            completed_date=item.completed_date,
            score=item.score,
            poster=item.poster,
            media_type=item.media_type,
            language=item.language,
            comment=item.comment,
        )


class PageInfo(BaseModel):
    """Navigation metadata for GET /api/v1/media."""

    model_config = ConfigDict(frozen=True, **_CAMEL)

    total_pages: int
    current_page: int
    next_page: int
    prev_page: int
    total_items: int


class MediaPage(BaseModel):
    """Response body for GET /api/v1/media."""

    model_config = ConfigDict(frozen=True)

    page: PageInfo
    data: list[MediaResponse]

    @classmethod
    def from_page(cls, page: Page[MediaItem]) -> "MediaPage":
        meta = page.meta
        return cls(
            page=PageInfo(
                total_pages=meta.total_pages,
                current_page=meta.current_page,
                next_page=meta.next_page,
                prev_page=meta.prev_page,
                total_items=meta.total_items,
            ),
            data=[MediaResponse.from_item(item) for item in page.window],
        )


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


def describe_validation_errors(errors: list[dict]) -> tuple[str, str]:
    """Return (field, message) for the first pydantic error in errors.

    loc entries such as "body" and "query" and list indexes are transport
    noise; the remaining parts name the field the client must fix.
    """
    if not errors:
        return "", "Request validation failed."
    first = errors[0]
    parts = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path") and not isinstance(p, int)]
    field = ".".join(parts)
    reason = first.get("msg", "invalid value")
    if not field:
        return "", f"Invalid request: {reason}."
    return field, f"Invalid or missing field '{field}': {reason}."
