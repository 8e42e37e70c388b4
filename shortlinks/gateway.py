"""Asynchronous request/reply gateway in front of the link store.

The gateway is the only way to reach the store. Callers send a payload to an
address and get back a future that completes exactly once, either with a
reply body or with a ``ReplyFailure`` carrying a typed failure code. The
gateway also owns the engine whose pool bounds how many store operations run
at once.

Request Lifecycle
=================
::
    ┌──────────┐  payload shape ok   ┌───────────┐  connection   ┌───────────┐
    │ received │ ──────────────────► │ validated │ ────────────► │ executing │
    └────┬─────┘                     └───────────┘   acquired    └─────┬─────┘
         │ invalid payload                                             │
         │ (code 2, pool untouched)                 ┌──────────────────┼──────────────┐
         ▼                                          ▼                  ▼              ▼
    ┌──────────┐                              ┌──────────┐      ┌──────────┐   ┌──────────┐
    │  failed  │ ◄─────────────────────────── │  failed  │      │ replied  │   │  failed  │
    └──────────┘                              │ code 1/3 │      └──────────┘   │  code 4  │
                                              └──────────┘                     └──────────┘

Failure Codes
=============
::
    1  RESOURCE_UNAVAILABLE  pool exhausted or backend down, retry later
    2  INVALID_REQUEST       payload missing or malformed, store never touched
    3  INTERNAL_ERROR        unexpected store fault, logged
    4  NOT_FOUND             lookup-by-id miss

How to Use
===========
**Step 1 — Build on startup**::
    gateway = MessageGateway(engine, request_timeout=settings.REQUEST_TIMEOUT_SECONDS)

**Step 2 — Send requests**::
    link = await gateway.request(Address.SAVE, {"url": "https://example.com"})
    found = await gateway.request(Address.FIND_BY_ID, {"id": link["id"]})

**Step 3 — Handle failures**::
    try:
        await gateway.request(Address.FIND_BY_ID, {"id": 12345})
    except ReplyFailure as failure:
        if failure.code is FailureCode.NOT_FOUND:
            ...

**Step 4 — Drain on shutdown**::
    await gateway.close()

Key Behaviours
===============
- Each request runs as its own asyncio task; the pool bounds concurrency.
- A pooled connection is held for exactly one store operation and is
  returned on every exit path.
- A caller that stops waiting (timeout or cancellation) does not cancel the
  store work already in flight; the request still completes.
- Replying or failing a request a second time raises RuntimeError.

Classes:
    GatewayRequest:  One request with its state and single-fire future.
    MessageGateway:  Dispatches requests to store operations.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from prometheus_client import Counter, Histogram
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from shortlinks.enums import Address, FailureCode, RequestState, RequestStatus
from shortlinks.exceptions import ReplyFailure, StoreUnavailableError
from shortlinks.schemas import FindByIdRequest, SaveReply, SaveRequest
from shortlinks.store import ShortLinkStore

__all__ = ["GatewayRequest", "MessageGateway"]

logger = logging.getLogger(__name__)

GATEWAY_REQUESTS_TOTAL = Counter(
    "shortlinks_gateway_requests_total",
    "Gateway requests by address and outcome",
    ["address", "status"],
)
GATEWAY_REQUEST_DURATION = Histogram(
    "shortlinks_gateway_request_duration_seconds",
    "Time from accepting a gateway request to answering it",
    ["address"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

_TRANSITIONS: dict[RequestState, tuple[RequestState, ...]] = {
    RequestState.RECEIVED: (RequestState.VALIDATED, RequestState.FAILED),
    RequestState.VALIDATED: (RequestState.EXECUTING,),
    RequestState.EXECUTING: (RequestState.REPLIED, RequestState.FAILED),
    RequestState.REPLIED: (),
    RequestState.FAILED: (),
}

_UNSET: Any = object()

Handler = Callable[[AsyncConnection, Any], Awaitable[dict[str, Any]]]


def _discard_outcome(future: asyncio.Future) -> None:
    # Marks an abandoned reply as retrieved so the loop does not report it.
    if not future.cancelled():
        future.exception()


class GatewayRequest:
    """A single request travelling through the gateway."""

    def __init__(self, address: Address, payload: Any) -> None:
        self.address = address
        self.payload = payload
        self.request_id = str(uuid.uuid4())
        self.state = RequestState.RECEIVED
        self.future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()

    def advance(self, state: RequestState) -> None:
        if state not in _TRANSITIONS[self.state]:
            if self.state.is_terminal:
                raise RuntimeError(f"request {self.request_id} already answered ({self.state})")
            raise RuntimeError(f"illegal transition {self.state} -> {state}")
        self.state = state

    def reply(self, body: dict[str, Any]) -> None:
        self.advance(RequestState.REPLIED)
        if not self.future.done():
            self.future.set_result(body)

    def fail(self, code: FailureCode, message: str) -> None:
        self.advance(RequestState.FAILED)
        if not self.future.done():
            self.future.set_exception(ReplyFailure(code, message))


class MessageGateway:
    """Routes lookup-by-id and get-or-create-by-url requests to the store."""

    def __init__(
        self,
        engine: AsyncEngine,
        store: ShortLinkStore | None = None,
        request_timeout: float | None = None,
    ) -> None:
        self._engine = engine
        self._store = store or ShortLinkStore()
        self._request_timeout = request_timeout
        self._routes: dict[Address, tuple[type[BaseModel], Handler]] = {
            Address.FIND_BY_ID: (FindByIdRequest, self._find_by_id),
            Address.SAVE: (SaveRequest, self._save),
        }
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Number of accepted requests not yet answered."""
        return len(self._tasks)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """Borrow one pooled connection, returning it on every exit path.

        Raises:
            StoreUnavailableError: If the pool is exhausted past its timeout
                or the backend refuses the connection.
        """
        try:
            conn = await self._engine.connect()
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Unable to obtain a database connection: {exc}")
            raise StoreUnavailableError("unable to obtain a database connection") from exc
        try:
            yield conn
        finally:
            await conn.close()

    def send(self, address: Address | str, payload: Any) -> asyncio.Future[dict[str, Any]]:
        """Accept a request and return the future its answer will complete.

        Raises:
            ValueError: If ``address`` is not a known gateway address.
        """
        request = GatewayRequest(Address(address), payload)
        task = asyncio.create_task(self._dispatch(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return request.future

    async def request(
        self,
        address: Address | str,
        payload: Any,
        timeout: float | None = _UNSET,
    ) -> dict[str, Any]:
        """Send a request and wait for its reply.

        Args:
            address: Gateway address to send to.
            payload: Request body, usually a dict.
            timeout: Seconds to wait for the reply. Defaults to the gateway's
                configured timeout; ``None`` waits until the store answers.

        Returns:
            dict: The reply body.

        Raises:
            ReplyFailure: If the request failed.
            asyncio.TimeoutError: If the caller gave up waiting. The store
                work keeps running.
        """
        if timeout is _UNSET:
            timeout = self._request_timeout
        future = self.send(address, payload)
        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            future.add_done_callback(_discard_outcome)
            raise

    async def close(self) -> None:
        """Wait for every accepted request to be answered."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _dispatch(self, request: GatewayRequest) -> None:
        log = logging.LoggerAdapter(logger, {"request_id": request.request_id, "address": request.address})
        schema, handler = self._routes[request.address]
        start_time = time.perf_counter()
        log.info(f"Incoming {request.address} request: {request.payload}")

        try:
            body = schema.model_validate(request.payload)
        except ValidationError as exc:
            log.info(f"Rejected {request.address} request: {exc.error_count()} validation error(s)")
            request.fail(FailureCode.INVALID_REQUEST, "invalid request payload")
            self._record(request, FailureCode.INVALID_REQUEST, start_time)
            return

        request.advance(RequestState.VALIDATED)
        request.advance(RequestState.EXECUTING)
        try:
            async with self.connection() as conn:
                reply = await handler(conn, body)
        except ReplyFailure as failure:
            log.info(f"{request.address} answered with failure: {failure}")
            request.fail(failure.code, failure.message)
            self._record(request, failure.code, start_time)
        except StoreUnavailableError as exc:
            log.warning(f"{request.address} failed, resources unavailable: {exc}")
            request.fail(FailureCode.RESOURCE_UNAVAILABLE, "unavailable resources")
            self._record(request, FailureCode.RESOURCE_UNAVAILABLE, start_time)
        except asyncio.CancelledError:
            request.fail(FailureCode.INTERNAL_ERROR, "request cancelled")
            self._record(request, FailureCode.INTERNAL_ERROR, start_time)
            raise
        except Exception:
            log.exception(f"{request.address} failed with an internal error")
            request.fail(FailureCode.INTERNAL_ERROR, "internal database error")
            self._record(request, FailureCode.INTERNAL_ERROR, start_time)
        else:
            log.debug(f"{request.address} replied: {reply}")
            request.reply(reply)
            self._record(request, None, start_time)

    def _record(self, request: GatewayRequest, code: FailureCode | None, start_time: float) -> None:
        status = RequestStatus.SUCCESS if code is None else RequestStatus.from_code(code)
        GATEWAY_REQUESTS_TOTAL.labels(address=request.address, status=status).inc()
        GATEWAY_REQUEST_DURATION.labels(address=request.address).observe(time.perf_counter() - start_time)

    # ========================================================================
    # STORE OPERATIONS
    # ========================================================================

    async def _find_by_id(self, conn: AsyncConnection, body: FindByIdRequest) -> dict[str, Any]:
        link = await self._store.find_by_id(conn, body.id)
        if link is None:
            raise ReplyFailure(FailureCode.NOT_FOUND, "url not found")
        return link.model_dump()

    async def _save(self, conn: AsyncConnection, body: SaveRequest) -> dict[str, Any]:
        link, created = await self._store.find_or_create(conn, body.url)
        return SaveReply(id=link.id, url=link.url, created=created).model_dump()
