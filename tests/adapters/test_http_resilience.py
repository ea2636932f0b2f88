from __future__ import annotations

import asyncio

import httpx
import pytest

from tests.support.venues import Handler, json_response, recording_handler
from venuerecon.adapters.http_resilience import (
    ResilienceConfig,
    ResilientClient,
    RetryPolicy,
    fetch_json,
)
from venuerecon.domain.errors import HttpError, InvalidResponseError, NetworkError

FAST_RETRY = RetryPolicy(total=2, backoff_factor=0.0)


def _config(**overrides: object) -> ResilienceConfig:
    values: dict[str, object] = {
        "name": "test",
        "base_url": "https://api.test",
        "retry": FAST_RETRY,
    }
    values.update(overrides)
    return ResilienceConfig(**values)  # type: ignore[arg-type]


def _fetch(handler: Handler, config: ResilienceConfig | None = None) -> object:
    async def run() -> object:
        transport = httpx.MockTransport(handler)
        async with ResilientClient(config or _config(), transport=transport) as client:
            return await fetch_json(client, "GET", "/items", params={"q": "bar"})

    return asyncio.run(run())


def test_fetch_json_returns_decoded_body() -> None:
    handler, requests = recording_handler(lambda request: json_response({"ok": True}))

    assert _fetch(handler) == {"ok": True}
    [request] = requests
    assert str(request.url) == "https://api.test/items?q=bar"


def test_retryable_status_is_retried_until_success() -> None:
    answers = iter([json_response({}, 503), json_response({}, 429), json_response([1])])
    handler, requests = recording_handler(lambda request: next(answers))

    assert _fetch(handler) == [1]
    assert len(requests) == 3


def test_retryable_status_after_exhausted_budget() -> None:
    handler, requests = recording_handler(lambda request: json_response({}, 503))

    with pytest.raises(HttpError) as excinfo:
        _fetch(handler)

    assert excinfo.value.status == 503
    assert excinfo.value.retryable
    assert excinfo.value.source == "test"
    assert len(requests) == FAST_RETRY.attempts


def test_client_error_is_not_retried() -> None:
    handler, requests = recording_handler(lambda request: json_response({}, 404))

    with pytest.raises(HttpError) as excinfo:
        _fetch(handler)

    assert excinfo.value.status == 404
    assert not excinfo.value.retryable
    assert len(requests) == 1


def test_non_json_body_is_invalid_response() -> None:
    handler, _ = recording_handler(lambda request: httpx.Response(200, text="<html></html>"))

    with pytest.raises(InvalidResponseError):
        _fetch(handler)


def test_connection_failure_becomes_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError) as excinfo:
        _fetch(handler)

    assert "ConnectError" in str(excinfo.value)


def test_default_headers_are_sent() -> None:
    handler, requests = recording_handler(lambda request: json_response({}))

    _fetch(handler, _config(default_headers={"User-Agent": "venuerecon-tests"}))

    assert requests[0].headers["User-Agent"] == "venuerecon-tests"


def test_retry_policy_counts_attempts() -> None:
    assert RetryPolicy().attempts == 3
    assert RetryPolicy(total=0).attempts == 1
