from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class _UpstreamModel(BaseModel):
    """Upstream JSON uses camelCase keys; attributes stay snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# --- User ---

class Geo(_UpstreamModel):
    lat: str
    lng: str


class Address(_UpstreamModel):
    street: str
    suite: str | None = None
    city: str
    zipcode: str
    geo: Geo | None = None


class Company(_UpstreamModel):
    name: str
    catch_phrase: str | None = None
    bs: str | None = None


class User(_UpstreamModel):
    id: int
    name: str
    username: str
    email: str
    address: Address | None = None
    phone: str | None = None
    website: str | None = None
    company: Company | None = None


# --- Comment ---

class Comment(_UpstreamModel):
    id: int
    post_id: int
    name: str
    email: str
    body: str


# --- Post ---

class Enrichment(str, Enum):
    """Outcome of resolving a post's user and comments."""

    COMPLETE = "complete"
    USER_MISSING = "user_missing"
    COMMENTS_MISSING = "comments_missing"
    BOTH_MISSING = "both_missing"

    @classmethod
    def from_parts(cls, has_user: bool, has_comments: bool) -> "Enrichment":
        if has_user and has_comments:
            return cls.COMPLETE
        if has_comments:
            return cls.USER_MISSING
        if has_user:
            return cls.COMMENTS_MISSING
        return cls.BOTH_MISSING


class Post(_UpstreamModel):
    id: int = Field(gt=0)
    title: str
    body: str
    user_id: int
    user: User | None = None
    comments: list[Comment] | None = None
    enrichment: Enrichment | None = None


# --- Envelope ---

class ApiResponse(BaseModel, Generic[T]):
    """Standard envelope returned by every endpoint, success or error."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    message: str
    data: T | None = None
    status_code: int = 200

    @classmethod
    def ok(cls, message: str, data: T | None = None) -> "ApiResponse[T]":
        return cls(success=True, message=message, data=data, status_code=200)

    @classmethod
    def error(cls, message: str, status_code: int = 500) -> "ApiResponse[T]":
        return cls(success=False, message=message, data=None, status_code=status_code)


# --- Metrics ---

class MetricsResponse(BaseModel):
    cache_backend: str
    fetch_concurrency: int
    cache_info: dict = {}
