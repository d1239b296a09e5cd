"""Unit tests for ShellSessionController and ReconnectPolicy."""

from __future__ import annotations

import asyncio
from typing import NamedTuple

import pytest

from deckhub.core.shell_session import ReconnectPolicy, ShellSessionController, ShellSessionError
from deckhub.core.shell_transport import ShellEndpoint, TransportState
from deckhub.core.terminal_surface import Geometry


class Size(NamedTuple):
    width: int
    height: int


class FakeView:
    """Container and resize source in one, like the Textual terminal widget."""

    def __init__(self, width: int = 100, height: int = 30) -> None:
        self.content_size = Size(width, height)
        self.listeners: list = []
        self.updates = 0

    def surface_updated(self) -> None:
        self.updates += 1

    def add_resize_listener(self, listener) -> None:  # type: ignore[no-untyped-def]
        self.listeners.append(listener)

    def remove_resize_listener(self, listener) -> None:  # type: ignore[no-untyped-def]
        self.listeners.remove(listener)

    def resize(self, width: int, height: int) -> None:
        self.content_size = Size(width, height)
        for listener in list(self.listeners):
            listener(self.content_size)


class FakeTransport:
    def __init__(self, events: list[str]) -> None:
        self.events = events
        self.state = TransportState.CONNECTING
        self.endpoint: ShellEndpoint | None = None
        self.data_handler = None
        self.on_open = None
        self.on_close = None
        self.on_error = None
        self.sent: list[bytes] = []

    def set_handlers(self, *, on_open=None, on_close=None, on_error=None) -> None:  # type: ignore[no-untyped-def]
        self.on_open = on_open
        self.on_close = on_close
        self.on_error = on_error

    def set_data_handler(self, handler) -> None:  # type: ignore[no-untyped-def]
        self.data_handler = handler
        self.events.append("bind" if handler is not None else "unbind")

    def open(self, endpoint: ShellEndpoint) -> None:
        self.endpoint = endpoint
        self.events.append("open")

    def send(self, data: bytes) -> bool:
        if self.state is not TransportState.OPEN:
            return False
        self.sent.append(data)
        return True

    def close(self) -> None:
        self.events.append("close")
        if self.state not in (TransportState.CLOSED, TransportState.ERRORED):
            self.state = TransportState.CLOSED

    # remote-side events
    def remote_open(self) -> None:
        self.state = TransportState.OPEN
        self.on_open()

    def remote_error(self) -> None:
        self.state = TransportState.ERRORED
        self.on_error(OSError("network unreachable"))


class Harness:
    def __init__(self, reconnect: ReconnectPolicy | None = None) -> None:
        self.events: list[str] = []
        self.transports: list[FakeTransport] = []
        self.states: list[TransportState] = []
        self.endpoint = ShellEndpoint("agent-7")
        self.controller = ShellSessionController(
            self.endpoint,
            transport_factory=self._make_transport,  # type: ignore[arg-type]
            reconnect=reconnect,
            on_state_change=self.states.append,
        )

    def _make_transport(self) -> FakeTransport:
        transport = FakeTransport(self.events)
        self.transports.append(transport)
        return transport


@pytest.mark.unit
def test_mount_builds_binds_opens_and_fits():
    harness = Harness()
    view = FakeView(100, 30)

    harness.controller.mount(view, view)

    transport = harness.transports[0]
    assert harness.events == ["bind", "open"]
    assert transport.endpoint == harness.endpoint
    assert harness.controller.surface is not None
    assert harness.controller.surface.geometry == Geometry(100, 30)
    assert harness.controller.surface.is_bound
    assert len(view.listeners) == 1
    assert harness.states == [TransportState.CONNECTING]


@pytest.mark.unit
def test_remote_output_and_operator_input_flow_through_the_surface():
    harness = Harness()
    view = FakeView()
    harness.controller.mount(view, view)
    transport = harness.transports[0]
    transport.remote_open()

    transport.data_handler(b"$ ls\r\nREADME\r\n")
    sent = harness.controller.send_input("pwd\r")

    assert harness.controller.surface.lines() == ["$ ls", "README"]
    assert sent is True
    assert transport.sent == [b"pwd\r"]
    assert harness.states[-1] is TransportState.OPEN


@pytest.mark.unit
def test_resize_refits_surface_from_container_size():
    harness = Harness()
    view = FakeView(100, 30)
    harness.controller.mount(view, view)

    view.resize(120, 40)

    assert harness.controller.surface.geometry == Geometry(120, 40)


@pytest.mark.unit
def test_fit_waits_until_container_is_laid_out():
    harness = Harness()
    view = FakeView(0, 0)
    harness.controller.mount(view, view)

    assert harness.controller.surface.geometry == Geometry(80, 24)

    view.resize(100, 30)
    assert harness.controller.surface.geometry == Geometry(100, 30)


@pytest.mark.unit
def test_mount_twice_raises():
    harness = Harness()
    view = FakeView()
    harness.controller.mount(view, view)

    with pytest.raises(ShellSessionError):
        harness.controller.mount(view, view)


@pytest.mark.unit
def test_unmount_releases_surface_before_closing_transport():
    harness = Harness()
    view = FakeView()
    harness.controller.mount(view, view)
    transport = harness.transports[0]
    surface = harness.controller.surface

    harness.controller.unmount()

    assert harness.events == ["bind", "open", "unbind", "close"]
    assert view.listeners == []
    assert surface.is_disposed
    assert transport.data_handler is None
    assert transport.state is TransportState.CLOSED
    assert harness.controller.is_mounted is False
    assert harness.controller.send_input("x") is False


@pytest.mark.unit
def test_unmount_is_idempotent():
    harness = Harness()
    view = FakeView()
    harness.controller.mount(view, view)

    harness.controller.unmount()
    harness.controller.unmount()

    assert harness.events.count("close") == 1


@pytest.mark.unit
def test_repeated_mount_cycles_leave_no_listeners_or_live_transports():
    harness = Harness()
    view = FakeView()

    for cycle in range(1, 6):
        harness.controller.mount(view, view)
        assert len(view.listeners) == 1
        harness.controller.unmount()
        assert view.listeners == []
        assert len(harness.transports) == cycle

    assert all(t.state is TransportState.CLOSED for t in harness.transports)
    assert all(t.data_handler is None for t in harness.transports)


@pytest.mark.unit
def test_resize_after_unmount_is_not_observed():
    harness = Harness()
    view = FakeView(100, 30)
    harness.controller.mount(view, view)
    surface = harness.controller.surface
    harness.controller.unmount()

    view.resize(50, 10)

    assert surface.geometry == Geometry(100, 30)


@pytest.mark.unit
def test_errored_session_stays_dead_by_default():
    harness = Harness()
    view = FakeView()
    harness.controller.mount(view, view)
    transport = harness.transports[0]
    transport.remote_open()
    transport.data_handler(b"before the outage\r\n")

    transport.remote_error()

    assert harness.states[-1] is TransportState.ERRORED
    assert len(harness.transports) == 1
    assert harness.controller.surface.lines() == ["before the outage"]
    assert harness.controller.send_input("x") is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_reconnect_policy_replaces_errored_transport():
    policy = ReconnectPolicy(max_attempts=2, initial_backoff=0.01, max_backoff=0.01)
    harness = Harness(reconnect=policy)
    view = FakeView()
    harness.controller.mount(view, view)
    first = harness.transports[0]
    first.data_handler(b"kept\r\n")

    first.remote_error()
    await asyncio.sleep(0.05)

    assert len(harness.transports) == 2
    second = harness.transports[1]
    assert first.data_handler is None
    assert second.data_handler is not None
    assert second.endpoint == harness.endpoint
    assert harness.controller.transport is second
    assert harness.controller.surface.lines() == ["kept"]

    second.remote_error()
    await asyncio.sleep(0.05)
    harness.transports[2].remote_error()
    await asyncio.sleep(0.05)

    assert len(harness.transports) == 3


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unmount_cancels_pending_reconnect():
    policy = ReconnectPolicy(max_attempts=3, initial_backoff=0.02, max_backoff=0.02)
    harness = Harness(reconnect=policy)
    view = FakeView()
    harness.controller.mount(view, view)

    harness.transports[0].remote_error()
    harness.controller.unmount()
    await asyncio.sleep(0.06)

    assert len(harness.transports) == 1


@pytest.mark.unit
def test_reconnect_policy_backoff_grows_to_cap():
    policy = ReconnectPolicy(max_attempts=5, initial_backoff=1.0, max_backoff=5.0, multiplier=2.0)

    assert [policy.delay(attempt) for attempt in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]
    assert policy.enabled
    assert not ReconnectPolicy().enabled


@pytest.mark.unit
def test_state_listener_failure_does_not_break_lifecycle():
    def explode(_state: TransportState) -> None:
        raise RuntimeError("listener bug")

    harness = Harness()
    harness.controller.set_state_listener(explode)
    view = FakeView()

    harness.controller.mount(view, view)
    harness.controller.unmount()

    assert harness.events[-1] == "close"
