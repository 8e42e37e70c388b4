"""Pydantic schemas for gateway payloads and HTTP request/response bodies.

This module defines the shapes exchanged with the messaging gateway and the
HTTP layer, ensuring type safety and automatic OpenAPI documentation.

Schema Hierarchy
=================
::
    Gateway requests (Input)
    ├─ FindByIdRequest
    │  └─ id: int (strict, >= 0)
    └─ SaveRequest
       └─ url: str (non-empty)

    Gateway replies (Output)
    ├─ ShortLinkPayload
    │  ├─ id: int
    │  └─ url: str
    └─ SaveReply
       └─ ShortLinkPayload + created: bool

    HTTP
    ├─ ShortenRequest  ─ url: str (http/https, validated)
    ├─ ShortenResponse ─ id, token, original, shortened, created
    └─ HealthResponse  ─ status, database

Key Behaviours
===============
- Gateway payloads are validated before the store is touched; any
  validation error becomes failure code 2.
- Gateway ids are strict integers; strings and booleans are rejected.
- HTTP URLs are validated with the validators library and must use the
  http or https scheme.

Classes:
    FindByIdRequest:  Gateway payload for lookup-by-id.
    SaveRequest:  Gateway payload for get-or-create-by-url.
    ShortLinkPayload:  Gateway reply for a stored link.
    SaveReply:  Gateway reply for get-or-create-by-url.
    ShortenRequest:  Input schema for the shorten endpoint.
    ShortenResponse:  Output schema for the shorten endpoint.
    HealthResponse:  Output schema for health checks.
"""

from urllib.parse import urlsplit

import validators
from pydantic import BaseModel, Field, StrictInt, field_validator

from shortlinks.enums import HealthStatus

__all__ = [
    "FindByIdRequest",
    "HealthResponse",
    "SaveReply",
    "SaveRequest",
    "ShortenRequest",
    "ShortenResponse",
    "ShortLinkPayload",
]

ALLOWED_SCHEMES = ("http", "https")


class FindByIdRequest(BaseModel):
    id: StrictInt = Field(..., ge=0)


class SaveRequest(BaseModel):
    url: str = Field(..., min_length=1)


class ShortLinkPayload(BaseModel):
    id: int
    url: str

    model_config = {"from_attributes": True}


class SaveReply(ShortLinkPayload):
    created: bool


class ShortenRequest(BaseModel):
    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if urlsplit(v).scheme not in ALLOWED_SCHEMES or not validators.url(v):
            raise ValueError("Invalid URL provided")
        return v


class ShortenResponse(BaseModel):
    id: int
    token: str
    original: str
    shortened: str
    created: bool


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
