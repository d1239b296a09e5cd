"""Fixed-interval polling of hub queries, exposed as {loading, error, data}."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from instrukt_ai_logging import get_logger

from deckhub.cli.api_client import APIError

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class QueryState(Generic[T]):
    loading: bool = True
    error: str | None = None
    data: T | None = None


class PollingQuery(Generic[T]):
    """Re-run `fetch` every `interval` seconds until stopped.

    A failed poll keeps the last good data and records the error; the next
    successful poll clears it.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[T]],
        *,
        interval: float,
        on_update: Callable[[QueryState[T]], None],
        name: str = "query",
    ) -> None:
        self._fetch = fetch
        self._interval = interval
        self._on_update = on_update
        self._name = name
        self._task: asyncio.Task[None] | None = None
        self.state: QueryState[T] = QueryState()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"poll:{self._name}")

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def poll_once(self) -> QueryState[T]:
        try:
            data = await self._fetch()
        except APIError as e:
            logger.debug("Poll failed", query=self._name, error=e.detail)
            self.state = QueryState(loading=False, error=e.detail, data=self.state.data)
        else:
            self.state = QueryState(loading=False, error=None, data=data)
        try:
            self._on_update(self.state)
        except Exception:
            logger.exception("Poll update handler failed")
        return self.state

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self._interval)
