"""FastAPI route definitions for the link shortener REST API.

This module provides the HTTP endpoints that present the core to the outside
world: shortening a URL into a token, redirecting a token to its URL, and a
health check.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /api/shorten
        ├─ ShortenRequest (request body)
        └─ ShortenResponse (200) or 422/500/503

    GET  /:token
        └─ 302 Redirect or 404/500/503

Failure Code Mapping
====================
::
    gateway code              HTTP status
    ─────────────────────     ───────────
    1 RESOURCE_UNAVAILABLE    503
    3 INTERNAL_ERROR          500
    4 NOT_FOUND               404
    bad token                 404

Key Behaviours
===============
- URL syntax is validated here, before the gateway is involved.
- A token that does not reverse under the configured salt is a 404, the same
  as a token whose id was never created.
- Redirects use 302 with the stored URL as Location.

Endpoints:
    /health:  Health check for monitoring.
    /api/shorten:  Get or create the token for a URL.
    /:token:  Redirect to the original URL.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from shortlinks.dependencies import RequestContext, get_request_context, get_url_service
from shortlinks.enums import FailureCode, HealthStatus
from shortlinks.exceptions import ReplyFailure, StoreUnavailableError
from shortlinks.schemas import HealthResponse, ShortenRequest, ShortenResponse
from shortlinks.url_service import URLShorteningService

__all__ = ["router"]

router = APIRouter()


def _http_error(failure: ReplyFailure) -> HTTPException:
    if failure.code is FailureCode.RESOURCE_UNAVAILABLE:
        return HTTPException(status_code=503, detail=failure.message)
    if failure.code is FailureCode.NOT_FOUND:
        return HTTPException(status_code=404, detail="Short URL not found")
    return HTTPException(status_code=500, detail=failure.message)


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    try:
        async with ctx.gateway.connection() as conn:
            await conn.execute(text("SELECT 1"))
    except (StoreUnavailableError, SQLAlchemyError) as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    return HealthResponse(status=db_status, database=db_status)


@router.post("/api/shorten", response_model=ShortenResponse, tags=["urls"])
async def shorten_url(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
) -> ShortenResponse:
    try:
        shortened = await service.shorten(payload.url)
    except ReplyFailure as failure:
        ctx.logger.error(f"Unable to save url {payload.url}: {failure}")
        raise _http_error(failure) from failure

    ctx.logger.info(f"Shortened {payload.url} -> {shortened.token} in {ctx.get_duration():.1f}ms")
    return shortened


@router.get("/{token}", tags=["redirect"])
async def redirect_to_url(
    token: str,
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
) -> RedirectResponse:
    ctx.logger.info(f"Redirecting request for {token}")
    try:
        url = await service.resolve(token)
    except ReplyFailure as failure:
        ctx.logger.error(f"Unable to obtain url for token {token}: {failure}")
        raise _http_error(failure) from failure

    if url is None:
        raise HTTPException(status_code=404, detail="Short URL not found")
    return RedirectResponse(url=url, status_code=302)
