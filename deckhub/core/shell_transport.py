"""Duplex WebSocket transport for remote agent shells.

One instance owns one connection to `/shell?agent=<id>` and goes through
CONNECTING -> OPEN -> {CLOSED | ERRORED}. Both end states are final: to try
again, construct a new instance.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from instrukt_ai_logging import get_logger
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException

from deckhub.constants import DEFAULT_CONNECT_TIMEOUT_S, DEFAULT_HUB_HOST, SHELL_AGENT_PARAM, SHELL_PATH

if TYPE_CHECKING:
    from deckhub.config.schema import HubConfig

logger = get_logger(__name__)

DataHandler = Callable[[bytes], None]
CloseHandler = Callable[[], None]
OpenHandler = Callable[[], None]
ErrorHandler = Callable[[Exception], None]
Connector = Callable[[str], Awaitable[ClientConnection]]


class TransportState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    ERRORED = "errored"


_TERMINAL_STATES = frozenset({TransportState.CLOSED, TransportState.ERRORED})


class TransportError(Exception):
    """Shell transport used outside its lifecycle."""


@dataclass(frozen=True)
class ShellEndpoint:
    """Where an agent's shell lives.

    `api_host` replaces `host` when the hub API is served from elsewhere.
    """

    agent_id: str
    secure: bool = False
    host: str = DEFAULT_HUB_HOST
    api_host: str | None = None

    @property
    def url(self) -> str:
        scheme = "wss" if self.secure else "ws"
        query = urlencode({SHELL_AGENT_PARAM: self.agent_id})
        return f"{scheme}://{self.api_host or self.host}{SHELL_PATH}?{query}"

    @classmethod
    def for_hub(cls, agent_id: str, hub: HubConfig) -> ShellEndpoint:
        return cls(agent_id=agent_id, secure=hub.secure, host=hub.host, api_host=hub.api_host)


async def _default_connector(url: str) -> ClientConnection:
    # Terminal output has no natural message size bound
    return await connect(url, max_size=None, open_timeout=None)


class ShellTransport:
    """Single-use duplex byte stream to one agent shell.

    Events (data received, closed, errored) are delivered through handlers on
    the event loop, in receipt order. `close()` is local and silent: handlers
    only fire for transitions caused by the remote side or the network.
    """

    def __init__(
        self,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT_S,
        connector: Connector | None = None,
    ) -> None:
        self._connect_timeout = connect_timeout
        self._connector: Connector = connector or _default_connector
        self._state = TransportState.CONNECTING
        self._task: asyncio.Task[None] | None = None
        self._writer: asyncio.Task[None] | None = None
        self._ws: ClientConnection | None = None
        self._outbox: asyncio.Queue[bytes] = asyncio.Queue()
        self._on_data: DataHandler | None = None
        self._on_open: OpenHandler | None = None
        self._on_close: CloseHandler | None = None
        self._on_error: ErrorHandler | None = None
        self.endpoint: ShellEndpoint | None = None

    @property
    def state(self) -> TransportState:
        return self._state

    def set_data_handler(self, handler: DataHandler | None) -> None:
        """Route received bytes to `handler` (None detaches)."""
        self._on_data = handler

    def set_handlers(
        self,
        *,
        on_open: OpenHandler | None = None,
        on_close: CloseHandler | None = None,
        on_error: ErrorHandler | None = None,
    ) -> None:
        self._on_open = on_open
        self._on_close = on_close
        self._on_error = on_error

    def open(self, endpoint: ShellEndpoint) -> None:
        """Start connecting; returns immediately.

        Failures surface later through the error handler, never from here.

        Raises:
            TransportError: If this instance was already opened or finished
        """
        if self._task is not None or self._state in _TERMINAL_STATES:
            raise TransportError("Shell transports are single-use; create a new one to reconnect")
        self.endpoint = endpoint
        self._task = asyncio.get_running_loop().create_task(
            self._run(endpoint.url),
            name=f"shell-transport:{endpoint.agent_id}",
        )

    def send(self, data: bytes) -> bool:
        """Queue bytes for transmission.

        Returns:
            False (and nothing is queued) when the transport is not OPEN
        """
        if self._state is not TransportState.OPEN:
            logger.debug("Dropping shell input", size=len(data), state=self._state.value)
            return False
        self._outbox.put_nowait(data)
        return True

    def close(self) -> None:
        """Close the connection. Idempotent."""
        if self._state in _TERMINAL_STATES:
            return
        self._state = TransportState.CLOSED
        logger.info("Shell transport closed locally", agent=self._agent_id)
        if self._task is not None and not self._task.done():
            self._task.cancel()

    @property
    def _agent_id(self) -> str | None:
        return self.endpoint.agent_id if self.endpoint else None

    async def _run(self, url: str) -> None:
        logger.debug("Connecting shell transport", url=url)
        try:
            ws = await asyncio.wait_for(self._connector(url), timeout=self._connect_timeout)
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            self._fail(e)
            return

        if self._state is not TransportState.CONNECTING:
            # Closed while the handshake was in flight
            await ws.close()
            return

        self._ws = ws
        self._state = TransportState.OPEN
        self._writer = asyncio.get_running_loop().create_task(self._write_loop(ws))
        logger.info("Shell transport open", agent=self._agent_id)
        if self._on_open is not None:
            try:
                self._on_open()
            except Exception:
                logger.exception("Shell open handler failed")

        try:
            async for message in ws:
                if self._state is not TransportState.OPEN:
                    break
                self._deliver(message)
        except (ConnectionClosedError, OSError, WebSocketException) as e:
            # Abnormal closure; a clean close ends the iteration instead
            self._fail(e)
        else:
            self._finish()
        finally:
            if self._writer is not None and not self._writer.done():
                self._writer.cancel()
            self._ws = None
            await ws.close()

    async def _write_loop(self, ws: ClientConnection) -> None:
        """Drain the outbox in order. The hub's shell endpoint reads text frames."""
        while True:
            data = await self._outbox.get()
            try:
                await ws.send(data.decode("utf-8", errors="replace"))
            except ConnectionClosed:
                return
            except (OSError, WebSocketException) as e:
                self._fail(e)
                return

    def _deliver(self, message: str | bytes) -> None:
        data = message.encode("utf-8") if isinstance(message, str) else bytes(message)
        handler = self._on_data
        if handler is None:
            return
        try:
            handler(data)
        except Exception:
            logger.exception("Shell data handler failed")

    def _finish(self) -> None:
        if self._state in _TERMINAL_STATES:
            return
        self._state = TransportState.CLOSED
        logger.info("Shell transport closed by remote", agent=self._agent_id)
        if self._on_close is not None:
            try:
                self._on_close()
            except Exception:
                logger.exception("Shell close handler failed")

    def _fail(self, error: Exception) -> None:
        if self._state in _TERMINAL_STATES:
            return
        self._state = TransportState.ERRORED
        logger.warning("Shell transport errored", agent=self._agent_id, error=str(error))
        if self._on_error is not None:
            try:
                self._on_error(error)
            except Exception:
                logger.exception("Shell error handler failed")
