"""Textual widget hosting a shell session's terminal surface."""

from __future__ import annotations

from typing import TYPE_CHECKING

from instrukt_ai_logging import get_logger
from rich.style import Style
from rich.text import Text
from textual import events
from textual.binding import Binding
from textual.reactive import reactive
from textual.widget import Widget

from deckhub.cli.tui.base import DeckhubMixin
from deckhub.cli.tui.keys import key_to_input
from deckhub.core.shell_session import ResizeListener

if TYPE_CHECKING:
    from textual.timer import Timer

    from deckhub.core.shell_session import ShellSessionController

logger = get_logger(__name__)

_CURSOR_STYLE = Style(reverse=True)

# Resizes arriving closer together than this are applied once, to the last size
RESIZE_SETTLE_S = 0.05


class TerminalView(DeckhubMixin, Widget, can_focus=True):
    """Renders the surface viewport and forwards keystrokes to the shell.

    Acts as both the surface container (size, redraw) and the resize source
    for its session. Shift+PageUp/PageDown scroll through history locally.
    """

    DEFAULT_CSS = """
    TerminalView {
        width: 1fr;
        height: 1fr;
        background: black;
        color: white;
    }
    """

    BINDINGS = [
        Binding("shift+pageup", "history_back", "Scroll up", show=False, priority=True),
        Binding("shift+pagedown", "history_forward", "Scroll down", show=False, priority=True),
    ]

    history_offset = reactive(0)

    def __init__(self, **kwargs: object) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self._session: ShellSessionController | None = None
        self._resize_listeners: list[ResizeListener] = []
        self._resize_timer: Timer | None = None

    def attach_session(self, session: ShellSessionController | None) -> None:
        self._session = session
        self.history_offset = 0
        self.refresh()

    # --- ResizeSource ---

    def add_resize_listener(self, listener: ResizeListener) -> None:
        self._resize_listeners.append(listener)

    def remove_resize_listener(self, listener: ResizeListener) -> None:
        if listener in self._resize_listeners:
            self._resize_listeners.remove(listener)

    @property
    def resize_listener_count(self) -> int:
        return len(self._resize_listeners)

    def on_resize(self, event: events.Resize) -> None:
        if self._resize_timer is not None:
            self._resize_timer.stop()
        self._resize_timer = self.set_timer(RESIZE_SETTLE_S, self._notify_resize)

    def _notify_resize(self) -> None:
        self._resize_timer = None
        for listener in list(self._resize_listeners):
            listener(self.content_size)

    # --- SurfaceContainer ---

    def surface_updated(self) -> None:
        self.refresh()

    # --- rendering ---

    def render(self) -> Text:
        surface = self._session.surface if self._session is not None else None
        if surface is None:
            return Text("")
        rows = surface.viewport(self.history_offset)
        show_cursor = self.history_offset == 0 and self.has_focus
        cursor_x, cursor_y = surface.cursor

        text = Text(no_wrap=True, overflow="crop")
        for y, row in enumerate(rows):
            if y:
                text.append("\n")
            if show_cursor and y == cursor_y:
                text.append(row[:cursor_x])
                text.append(row[cursor_x : cursor_x + 1] or " ", style=_CURSOR_STYLE)
                text.append(row[cursor_x + 1 :])
            else:
                text.append(row)
        return text

    def watch_history_offset(self, _value: int) -> None:
        self.refresh()

    def action_history_back(self) -> None:
        surface = self._session.surface if self._session is not None else None
        if surface is None:
            return
        page = max(1, surface.geometry.rows - 1)
        self.history_offset = min(self.history_offset + page, surface.history_size)

    def action_history_forward(self) -> None:
        surface = self._session.surface if self._session is not None else None
        if surface is None:
            return
        page = max(1, surface.geometry.rows - 1)
        self.history_offset = max(0, self.history_offset - page)

    # --- input ---

    def on_key(self, event: events.Key) -> None:
        if self._session is None:
            return
        data = key_to_input(event.key, event.character)
        if data is None:
            return
        event.stop()
        event.prevent_default()
        self.history_offset = 0
        if not self._session.send_input(data):
            logger.debug("Dropped shell input", agent=self._session.agent_id, key=event.key)

    def on_paste(self, event: events.Paste) -> None:
        if self._session is None or not event.text:
            return
        event.stop()
        self.history_offset = 0
        self._session.send_input(event.text)

    def on_focus(self, _event: events.Focus) -> None:
        self.refresh()

    def on_blur(self, _event: events.Blur) -> None:
        self.refresh()
