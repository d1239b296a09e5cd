"""Shell session lifecycle: one terminal surface plus one transport per mounted view."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from instrukt_ai_logging import get_logger

from deckhub.constants import (
    DEFAULT_RECONNECT_INITIAL_BACKOFF_S,
    DEFAULT_RECONNECT_MAX_BACKOFF_S,
    DEFAULT_RECONNECT_MULTIPLIER,
)
from deckhub.core.shell_transport import ShellEndpoint, ShellTransport, TransportState
from deckhub.core.terminal_surface import CellSize, SurfaceContainer, TerminalSurface

logger = get_logger(__name__)

ResizeListener = Callable[[CellSize], None]
StateListener = Callable[[TransportState], None]


class ShellSessionError(Exception):
    """Shell session controller used outside its lifecycle."""


class ResizeSource(Protocol):
    """Publishes viewport resize notifications."""

    def add_resize_listener(self, listener: ResizeListener) -> None: ...

    def remove_resize_listener(self, listener: ResizeListener) -> None: ...


class ShellContainer(SurfaceContainer, Protocol):
    """A surface container that also knows its current size in cells."""

    @property
    def content_size(self) -> CellSize: ...


@dataclass(frozen=True)
class ReconnectPolicy:
    """Opt-in replacement of an errored transport.

    `max_attempts=0` (the default) keeps sessions dead after an error; the
    operator reopens the shell view to retry. Otherwise up to `max_attempts`
    fresh transports are tried per outage; a successful open resets the count.
    """

    max_attempts: int = 0
    initial_backoff: float = DEFAULT_RECONNECT_INITIAL_BACKOFF_S
    max_backoff: float = DEFAULT_RECONNECT_MAX_BACKOFF_S
    multiplier: float = DEFAULT_RECONNECT_MULTIPLIER

    @property
    def enabled(self) -> bool:
        return self.max_attempts > 0

    def delay(self, attempt: int) -> float:
        """Backoff before reconnect `attempt` (1-based)."""
        return min(self.initial_backoff * self.multiplier ** (attempt - 1), self.max_backoff)


class ShellSessionController:
    """Ties a terminal surface and a shell transport to a view's lifetime.

    mount:   surface -> mount into container -> transport -> bind -> open -> fit
             -> listen for resizes
    resize:  fit from the container's current size
    unmount: stop listening -> dispose surface (drops the binding) -> close transport
    """

    def __init__(
        self,
        endpoint: ShellEndpoint,
        *,
        surface_factory: Callable[[], TerminalSurface] = TerminalSurface,
        transport_factory: Callable[[], ShellTransport] = ShellTransport,
        reconnect: ReconnectPolicy | None = None,
        on_state_change: StateListener | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._surface_factory = surface_factory
        self._transport_factory = transport_factory
        self._reconnect = reconnect or ReconnectPolicy()
        self._on_state_change = on_state_change
        self._surface: TerminalSurface | None = None
        self._transport: ShellTransport | None = None
        self._container: ShellContainer | None = None
        self._resize_source: ResizeSource | None = None
        self._reconnect_attempts = 0
        self._reconnect_handle: asyncio.TimerHandle | None = None

    @property
    def agent_id(self) -> str:
        return self.endpoint.agent_id

    @property
    def is_mounted(self) -> bool:
        return self._surface is not None

    @property
    def surface(self) -> TerminalSurface | None:
        return self._surface

    @property
    def transport(self) -> ShellTransport | None:
        return self._transport

    @property
    def state(self) -> TransportState | None:
        return self._transport.state if self._transport else None

    def set_state_listener(self, listener: StateListener | None) -> None:
        self._on_state_change = listener

    def mount(self, container: ShellContainer, resize_source: ResizeSource) -> None:
        """Start the session inside `container`. Must run on the event loop."""
        if self.is_mounted:
            raise ShellSessionError(f"Shell session for {self.agent_id} is already mounted")

        surface = self._surface_factory()
        surface.mount(container)
        self._surface = surface
        self._container = container

        self._start_transport()
        self.fit()

        resize_source.add_resize_listener(self._on_resize)
        self._resize_source = resize_source
        logger.info("Shell session mounted", agent=self.agent_id)

    def fit(self) -> None:
        """Resize the surface to the container's current size.

        Skipped while the container has no size yet (not laid out).
        """
        if self._surface is None or self._container is None:
            return
        size = self._container.content_size
        if size.width <= 0 or size.height <= 0:
            return
        self._surface.fit(size)

    def send_input(self, text: str) -> bool:
        if self._surface is None:
            return False
        return self._surface.send_input(text)

    def unmount(self) -> None:
        """Tear the session down. Idempotent."""
        if not self.is_mounted:
            return

        if self._resize_source is not None:
            self._resize_source.remove_resize_listener(self._on_resize)
            self._resize_source = None
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

        # The surface lets go of the transport before the transport goes away
        if self._surface is not None:
            self._surface.dispose()
        if self._transport is not None:
            self._transport.close()
            self._emit_state(self._transport.state)

        self._surface = None
        self._transport = None
        self._container = None
        self._reconnect_attempts = 0
        logger.info("Shell session unmounted", agent=self.agent_id)

    # --- internals ---

    def _on_resize(self, _size: CellSize) -> None:
        self.fit()

    def _start_transport(self) -> None:
        assert self._surface is not None
        transport = self._transport_factory()
        transport.set_handlers(
            on_open=self._on_transport_opened,
            on_close=self._on_transport_closed,
            on_error=self._on_transport_errored,
        )
        self._surface.bind_transport(transport)
        self._transport = transport
        transport.open(self.endpoint)
        self._emit_state(transport.state)

    def _on_transport_opened(self) -> None:
        self._reconnect_attempts = 0
        self._emit_state(TransportState.OPEN)

    def _on_transport_closed(self) -> None:
        self._emit_state(TransportState.CLOSED)

    def _on_transport_errored(self, error: Exception) -> None:
        # The surface keeps its scrollback; nothing more arrives from this transport
        self._emit_state(TransportState.ERRORED)
        if not self.is_mounted or not self._reconnect.enabled:
            return
        if self._reconnect_attempts >= self._reconnect.max_attempts:
            logger.info("Shell reconnect attempts exhausted", agent=self.agent_id, attempts=self._reconnect_attempts)
            return
        self._reconnect_attempts += 1
        delay = self._reconnect.delay(self._reconnect_attempts)
        logger.info(
            "Reconnecting shell session",
            agent=self.agent_id,
            attempt=self._reconnect_attempts,
            delay=delay,
            error=str(error),
        )
        self._reconnect_handle = asyncio.get_running_loop().call_later(delay, self._replace_transport)

    def _replace_transport(self) -> None:
        self._reconnect_handle = None
        if self._surface is None:
            return
        self._surface.unbind_transport()
        self._start_transport()

    def _emit_state(self, state: TransportState) -> None:
        if self._on_state_change is None:
            return
        try:
            self._on_state_change(state)
        except Exception:
            logger.exception("Shell state listener failed")
