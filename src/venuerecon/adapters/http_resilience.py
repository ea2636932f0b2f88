from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from logging import getLogger
from typing import TYPE_CHECKING, TypedDict, Unpack

import httpx
from aiolimiter import AsyncLimiter
from httpx_retries import RetryTransport

from venuerecon.config.http_resilience import (
    RETRYABLE_STATUSES,
    RateLimit,
    ResilienceConfig,
    RetryablePayloadError,
    RetryPolicy,
)
from venuerecon.domain.errors import HttpError, InvalidResponseError, NetworkError

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._client import UseClientDefault
    from httpx._types import (
        HeaderTypes,
        QueryParamTypes,
        RequestContent,
        RequestData,
        TimeoutTypes,
        URLTypes,
    )

log = getLogger(__name__)


class RequestOptions(TypedDict, total=False):
    content: RequestContent | None
    data: RequestData | None
    json: object
    params: QueryParamTypes | None
    headers: HeaderTypes | None
    timeout: TimeoutTypes | UseClientDefault


class AsyncClientOptions(TypedDict, total=False):
    base_url: str
    timeout: TimeoutTypes
    headers: HeaderTypes
    event_hooks: dict[str, list[Callable[[httpx.Response], Awaitable[None] | None]]]
    transport: httpx.AsyncBaseTransport


class ResilientClient:
    """``httpx.AsyncClient`` with retries, a rate limit and a concurrency cap.

    ``transport`` replaces the network transport underneath the retry layer,
    which lets tests feed canned responses through the real retry policy.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._limiter: AsyncLimiter | None = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )
        self._semaphore: asyncio.Semaphore | None = (
            asyncio.Semaphore(config.max_concurrency) if config.max_concurrency else None
        )

        if transport is not None:
            retry_transport = RetryTransport(transport=transport, retry=config.retry.build())
        else:
            retry_transport = RetryTransport(retry=config.retry.build())

        headers = dict(config.default_headers) if config.default_headers else None
        event_hooks = {"response": list(config.response_hooks)} if config.response_hooks else None

        client_kwargs: AsyncClientOptions = {
            "timeout": config.timeout_seconds,
            "transport": retry_transport,
        }
        if config.base_url is not None:
            client_kwargs["base_url"] = config.base_url
        if headers is not None:
            client_kwargs["headers"] = headers
        if event_hooks is not None:
            client_kwargs["event_hooks"] = event_hooks

        self._client = httpx.AsyncClient(**client_kwargs)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        async def do_request() -> httpx.Response:
            return await self._client.request(method, url, **kwargs)

        return await self._send(do_request)

    async def _send(self, func: Callable[[], Awaitable[httpx.Response]]) -> httpx.Response:
        if self._semaphore is None:
            return await self._limited(func)
        async with self._semaphore:
            return await self._limited(func)

    async def _limited(self, func: Callable[[], Awaitable[httpx.Response]]) -> httpx.Response:
        if self._limiter is None:
            return await func()
        async with self._limiter:
            return await func()


async def fetch_json(
    client: ResilientClient,
    method: str,
    url: URLTypes,
    **kwargs: Unpack[RequestOptions],
) -> object:
    """Send one request and return the decoded JSON body.

    Failures that survive the retry policy are mapped onto
    :class:`~venuerecon.domain.errors.FetchError` subclasses; callers never see
    raw ``httpx`` errors.
    """

    source = client.config.name
    try:
        response = await client.request(method, url, **kwargs)
    except RetryablePayloadError as exc:
        raise HttpError(
            f"{source}: retryable payload error: {exc}",
            source=source,
            status=exc.response.status_code,
            retryable=True,
        ) from exc
    except httpx.TransportError as exc:
        raise NetworkError(f"{source}: {type(exc).__name__}: {exc}", source=source) from exc

    status = response.status_code
    if not response.is_success:
        log.debug("%s answered %d after retries", source, status)
        raise HttpError(
            f"{source}: HTTP {status} for {response.request.url}",
            source=source,
            status=status,
            retryable=status in RETRYABLE_STATUSES,
        )

    try:
        return response.json()
    except ValueError as exc:
        raise InvalidResponseError(f"{source}: response body is not JSON", source=source) from exc


__all__ = [
    "RateLimit",
    "ResilienceConfig",
    "ResilientClient",
    "RetryPolicy",
    "RetryablePayloadError",
    "fetch_json",
]
