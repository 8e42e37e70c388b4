"""Link Shortening Service - Presentation Logic

This module turns gateway replies into tokens and tokens back into gateway
requests. It is the only place that calls both the messaging gateway and the
token codec.

Architecture Overview
==================
::
    ┌─────────────────────────────────────────────────────────────┐
    │                 URLShorteningService                        │
    │  ┌─────────────────┐                 ┌───────────────────┐  │
    │  │   shorten()     │                 │   resolve()       │  │
    │  │ • save request  │                 │ • reverse token   │  │
    │  │ • encode id     │                 │ • lookup request  │  │
    │  └────────┬────────┘                 └─────────┬─────────┘  │
    └───────────┼────────────────────────────────────┼────────────┘
                ▼                                    ▼
    ┌─────────────────────┐              ┌─────────────────────┐
    │   MessageGateway    │              │      HashCodec      │
    │ (store, pool)       │              │ (salted alphabet)   │
    └─────────────────────┘              └─────────────────────┘

Request Flow Diagrams
=====================

Shorten Flow
------------
::
    url ──► gateway SAVE ──► {id, url, created} ──► codec.generate(id) ──► token

Resolve Flow
------------
::
    token ──► codec.reverse(token) ── None ──► not found
                      │
                      ▼ id
              gateway FIND_BY_ID ──► {id, url} ──► url
                      │
                      └── ReplyFailure(4) ──► not found

Usage Examples
=============

```python
service = URLShorteningService(gateway, codec, settings)
shortened = await service.shorten("https://example.com/some/long/path")
url = await service.resolve(shortened.token)
```
"""

import logging

from shortlinks.codec import HashCodec
from shortlinks.config import Settings
from shortlinks.enums import Address, FailureCode
from shortlinks.exceptions import ReplyFailure
from shortlinks.gateway import MessageGateway
from shortlinks.schemas import SaveReply, ShortenResponse, ShortLinkPayload

__all__ = ["URLShorteningService"]


class URLShorteningService:
    """Shortens URLs into tokens and resolves tokens back into URLs.

    Example:
        >>> service = URLShorteningService(gateway, codec, settings)
        >>> shortened = await service.shorten("https://example.com")
        >>> await service.resolve(shortened.token)
        'https://example.com'
    """

    def __init__(
        self,
        gateway: MessageGateway,
        codec: HashCodec,
        settings: Settings,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._gateway = gateway
        self._codec = codec
        self._settings = settings
        self._logger = logger or logging.getLogger(__name__)

    @property
    def settings(self) -> Settings:
        return self._settings

    async def shorten(self, url: str) -> ShortenResponse:
        """Get or create the link for ``url`` and return its token.

        Args:
            url: An already validated http/https URL.

        Returns:
            ShortenResponse: The id, token and shortened URL.

        Raises:
            ReplyFailure: With code 1 or 3 when the store cannot answer.
        """
        self._logger.info(f"Shorten request for {url}")
        reply = SaveReply.model_validate(await self._gateway.request(Address.SAVE, {"url": url}))
        token = self._codec.generate(reply.id)
        self._logger.debug(f"{url} -> {reply.id} -> {token}")
        return ShortenResponse(
            id=reply.id,
            token=token,
            original=reply.url,
            shortened=f"{self._settings.BASE_URL.rstrip('/')}/{token}",
            created=reply.created,
        )

    async def resolve(self, token: str) -> str | None:
        """Return the URL behind ``token`` or ``None`` if there is none.

        Raises:
            ReplyFailure: With code 1 or 3 when the store cannot answer.
        """
        link_id = self._codec.reverse(token)
        if link_id is None:
            return None

        self._logger.debug(f"Sending url lookup for {token} ({link_id})")
        try:
            reply = await self._gateway.request(Address.FIND_BY_ID, {"id": link_id})
        except ReplyFailure as failure:
            if failure.code is FailureCode.NOT_FOUND:
                return None
            raise
        return ShortLinkPayload.model_validate(reply).url
