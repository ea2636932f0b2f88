"""Append-only JSON-lines cache of lookup responses, keyed by request."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

log = getLogger(__name__)

type _Pending = tuple[str, object, asyncio.Future[None]]


def geocode_cache_key(address: str, city: str, postcode: str | None = None) -> str:
    return f"{address.strip()}|{city.strip()}|{(postcode or '').strip()}"


def params_cache_key(params: dict[str, object]) -> str:
    return json.dumps(params, sort_keys=True, ensure_ascii=False)


class LookupCache:
    """Key to response map backed by a ``{key, value, timestamp}`` JSONL file.

    Reads are served from memory. Writes are serialized through one writer
    task that owns the file; :meth:`put` returns once its line is on
    disk. Use as an async context manager so the writer is started and drained.
    """

    def __init__(self, path: Path, *, fresh: bool = False) -> None:
        self.path = path
        self._entries: dict[str, object] = {}
        self._queue: asyncio.Queue[_Pending | None] | None = None
        self._writer: asyncio.Task[None] | None = None
        if fresh:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("", encoding="utf-8")
        else:
            self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        skipped = 0
        with self.path.open(encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    entry = json.loads(line)
                    self._entries[str(entry["key"])] = entry["value"]
                except (json.JSONDecodeError, KeyError, TypeError):
                    skipped += 1
                    log.warning("Skipping malformed cache line %d in %s", line_number, self.path)
        log.debug("Loaded %d cache entries from %s (skipped=%d)", len(self), self.path, skipped)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> object | None:
        return self._entries.get(key)

    async def put(self, key: str, value: object) -> None:
        self._entries[key] = value
        if self._queue is None:
            self._append(key, value)
            return
        done: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        await self._queue.put((key, value, done))
        await done

    async def __aenter__(self) -> LookupCache:
        self._queue = asyncio.Queue()
        self._writer = asyncio.create_task(self._drain(self._queue))
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._queue is None or self._writer is None:
            return
        await self._queue.put(None)
        await self._writer
        self._queue = None
        self._writer = None

    async def _drain(self, queue: asyncio.Queue[_Pending | None]) -> None:
        while True:
            item = await queue.get()
            if item is None:
                return
            key, value, done = item
            try:
                self._append(key, value)
            except OSError as exc:
                done.set_exception(exc)
            else:
                done.set_result(None)

    def _append(self, key: str, value: object) -> None:
        record = {"key": key, "value": value, "timestamp": datetime.now(UTC).isoformat()}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, ensure_ascii=False) + "\n")
