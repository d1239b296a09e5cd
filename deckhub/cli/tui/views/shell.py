"""Shell view - interactive terminal on one agent."""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING

from textual.app import ComposeResult
from textual.binding import Binding
from textual.screen import Screen
from textual.widgets import Label

from deckhub.cli.tui.widgets.terminal_view import TerminalView
from deckhub.core.shell_session import ReconnectPolicy, ShellSessionController
from deckhub.core.shell_transport import ShellEndpoint, ShellTransport, TransportState
from deckhub.core.terminal_surface import TerminalSurface

if TYPE_CHECKING:
    from deckhub.config.schema import ShellConfig

_STATE_LABELS = {
    TransportState.CONNECTING: "connecting",
    TransportState.OPEN: "connected",
    TransportState.CLOSED: "closed",
    TransportState.ERRORED: "connection lost",
}


def session_for(endpoint: ShellEndpoint, shell: ShellConfig) -> ShellSessionController:
    """Build a session controller configured from the `shell` config section."""
    return ShellSessionController(
        endpoint,
        surface_factory=partial(
            TerminalSurface,
            scrollback=shell.scrollback_lines,
            replay_log_bytes=shell.replay_log_bytes,
        ),
        transport_factory=partial(ShellTransport, connect_timeout=shell.connect_timeout),
        reconnect=ReconnectPolicy(**shell.reconnect.model_dump()),
    )


class ShellScreen(Screen[None]):
    """Owns one shell session for as long as the screen is mounted.

    Leaving the screen (F10) unmounts the session; reopening starts a new one.
    """

    BINDINGS = [
        Binding("f10", "close_shell", "Back", priority=True),
    ]

    def __init__(self, session: ShellSessionController, **kwargs: object) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self.session = session
        self._terminal = TerminalView(id="terminal")
        self._title_label = Label(self._title(None), id="shell-title")

    def compose(self) -> ComposeResult:
        yield self._title_label
        yield self._terminal

    def on_mount(self) -> None:
        self.session.set_state_listener(self._on_state_change)
        self._terminal.attach_session(self.session)
        self.session.mount(self._terminal, self._terminal)
        # The terminal has no size until the first layout
        self.call_after_refresh(self.session.fit)
        self._terminal.focus()

    def on_unmount(self) -> None:
        self.session.set_state_listener(None)
        self.session.unmount()
        self._terminal.attach_session(None)

    def action_close_shell(self) -> None:
        self.app.pop_screen()

    def _title(self, state: TransportState | None) -> str:
        label = _STATE_LABELS.get(state, "starting") if state is not None else "starting"
        return f" Shell: {self.session.agent_id} [{label}]   F10 back   Shift+PgUp/PgDn scroll"

    def _on_state_change(self, state: TransportState) -> None:
        self._title_label.update(self._title(state))
