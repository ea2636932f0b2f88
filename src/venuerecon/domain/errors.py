"""Failure taxonomy shared by the fetch clients, the store and the pipelines."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class FetchError(RuntimeError):
    """Raised when an external lookup cannot produce a usable answer."""

    def __init__(self, message: str, *, source: str) -> None:
        super().__init__(message)
        self.source = source


class NetworkError(FetchError):
    """Timeout or connection failure that outlived the retry budget."""


class HttpError(FetchError):
    """Non-2xx response. ``retryable`` marks 429/5xx statuses whose retries ran out."""

    def __init__(self, message: str, *, source: str, status: int, retryable: bool) -> None:
        super().__init__(message, source=source)
        self.status = status
        self.retryable = retryable


class InvalidResponseError(FetchError):
    """The response body does not have the expected shape."""


class RecordValidationError(ValueError):
    """An input record lacks mandatory fields. Never retried."""

    def __init__(self, missing_fields: Sequence[str]) -> None:
        super().__init__(f"Missing mandatory fields: {', '.join(missing_fields)}")
        self.missing_fields = tuple(missing_fields)


class StoreError(RuntimeError):
    """The venue store failed to read or write a row."""
