"""Character-grid terminal surface bound to one shell transport.

Bytes from the transport are fed to a `pyte` history screen. Operator input
goes back out through the bound transport. The surface knows nothing about
Textual: it renders into any `SurfaceContainer` and takes its geometry from
any object with `width`/`height` in cells.
"""

from __future__ import annotations

from typing import NamedTuple, Protocol

import pyte
from instrukt_ai_logging import get_logger

from deckhub.constants import (
    DEFAULT_REPLAY_LOG_BYTES,
    DEFAULT_SCROLLBACK_LINES,
    DEFAULT_TERMINAL_COLUMNS,
    DEFAULT_TERMINAL_ROWS,
    MIN_TERMINAL_COLUMNS,
    MIN_TERMINAL_ROWS,
)
from deckhub.core.shell_transport import DataHandler

logger = get_logger(__name__)


class SurfaceError(Exception):
    """Terminal surface used outside its lifecycle."""


class Geometry(NamedTuple):
    columns: int
    rows: int


class CellSize(Protocol):
    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...


class SurfaceContainer(Protocol):
    """Whatever displays the surface; told when the grid changed."""

    def surface_updated(self) -> None: ...


class ByteTransport(Protocol):
    def send(self, data: bytes) -> bool: ...

    def set_data_handler(self, handler: DataHandler | None) -> None: ...


def _render_line(line: dict[int, "pyte.screens.Char"], columns: int) -> str:
    return "".join(line[x].data for x in range(columns))


class TerminalSurface:
    """Scrollback-buffered terminal emulator with a fixed cell geometry.

    A width change rebuilds the screen at the new geometry and replays the
    retained byte log into it, so already-received output is reflowed rather
    than truncated. The log is bounded by `replay_log_bytes`; with a limit of 0
    the surface falls back to pyte's in-place resize. A height-only change is
    applied in place: rows pushed off the top go to history.
    """

    def __init__(
        self,
        columns: int = DEFAULT_TERMINAL_COLUMNS,
        rows: int = DEFAULT_TERMINAL_ROWS,
        *,
        scrollback: int = DEFAULT_SCROLLBACK_LINES,
        replay_log_bytes: int = DEFAULT_REPLAY_LOG_BYTES,
    ) -> None:
        self._geometry = Geometry(max(MIN_TERMINAL_COLUMNS, columns), max(MIN_TERMINAL_ROWS, rows))
        self._scrollback = scrollback
        self._replay_limit = replay_log_bytes
        self._log = bytearray()
        self._convert_eol = False
        self._container: SurfaceContainer | None = None
        self._transport: ByteTransport | None = None
        self._disposed = False
        self._screen, self._stream = self._new_screen(self._geometry)

    # --- lifecycle ---

    def mount(self, container: SurfaceContainer) -> None:
        """Attach to a display container and enable EOL conversion.

        A bare LF from the remote side also returns the carriage; no other
        terminal negotiation happens.
        """
        if self._disposed:
            raise SurfaceError("Cannot mount a disposed terminal surface")
        if self._container is not None and self._container is not container:
            raise SurfaceError("Terminal surface is already mounted")
        self._container = container
        if not self._convert_eol:
            self._convert_eol = True
            # Anything written before mount is re-rendered with EOL conversion
            self._rebuild(self._geometry)
        self._notify()

    def bind_transport(self, transport: ByteTransport) -> None:
        """Wire transport bytes to the screen and operator input to the transport."""
        if self._disposed:
            raise SurfaceError("Cannot bind a disposed terminal surface")
        if self._transport is not None:
            raise SurfaceError("Terminal surface is already bound; unbind it first")
        transport.set_data_handler(self.write)
        self._transport = transport

    def unbind_transport(self) -> None:
        if self._transport is None:
            return
        self._transport.set_data_handler(None)
        self._transport = None

    def dispose(self) -> None:
        """Release the transport binding and the container. Idempotent."""
        if self._disposed:
            return
        self.unbind_transport()
        self._container = None
        self._disposed = True
        self._log.clear()

    # --- data flow ---

    def write(self, data: bytes) -> None:
        """Render bytes received from the remote side, in order."""
        if self._disposed or not data:
            return
        self._append_log(data)
        self._stream.feed(data)
        self._notify()

    def send_input(self, text: str) -> bool:
        """Send operator keystrokes to the bound transport."""
        if self._disposed or self._transport is None or not text:
            return False
        return self._transport.send(text.encode("utf-8"))

    def fit(self, size: CellSize) -> Geometry:
        """Match the grid to the container's size in cells and reflow."""
        if self._disposed:
            return self._geometry
        geometry = Geometry(max(MIN_TERMINAL_COLUMNS, int(size.width)), max(MIN_TERMINAL_ROWS, int(size.height)))
        if geometry == self._geometry:
            return geometry

        in_place = geometry.columns == self._geometry.columns and self._resize_rows(geometry.rows)
        if not in_place:
            if self._replay_limit > 0:
                self._rebuild(geometry)
            else:
                self._screen.resize(geometry.rows, geometry.columns)
        logger.debug("Terminal surface resized", columns=geometry.columns, rows=geometry.rows)
        self._geometry = geometry
        self._notify()
        return geometry

    # --- read side ---

    @property
    def geometry(self) -> Geometry:
        return self._geometry

    @property
    def is_mounted(self) -> bool:
        return self._container is not None

    @property
    def is_bound(self) -> bool:
        return self._transport is not None

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def cursor(self) -> tuple[int, int]:
        return self._screen.cursor.x, self._screen.cursor.y

    @property
    def history_size(self) -> int:
        return len(self._screen.history.top)

    def lines(self) -> list[str]:
        """Scrollback followed by the visible rows, right-trimmed, trailing blanks dropped."""
        columns = self._geometry.columns
        rendered = [_render_line(line, columns).rstrip() for line in self._screen.history.top]
        rendered.extend(row.rstrip() for row in self._screen.display)
        while rendered and not rendered[-1]:
            rendered.pop()
        return rendered

    def viewport(self, offset: int = 0) -> list[str]:
        """Rows visible when scrolled `offset` lines back into history."""
        columns = self._geometry.columns
        history = [_render_line(line, columns) for line in self._screen.history.top]
        offset = max(0, min(offset, len(history)))
        combined = history + list(self._screen.display)
        start = len(history) - offset
        return combined[start : start + self._geometry.rows]

    # --- internals ---

    def _new_screen(self, geometry: Geometry) -> tuple[pyte.HistoryScreen, pyte.ByteStream]:
        screen = pyte.HistoryScreen(geometry.columns, geometry.rows, history=self._scrollback)
        if self._convert_eol:
            screen.set_mode(pyte.modes.LNM)
        return screen, pyte.ByteStream(screen)

    def _rebuild(self, geometry: Geometry) -> None:
        self._screen, self._stream = self._new_screen(geometry)
        if self._log:
            self._stream.feed(bytes(self._log))

    def _resize_rows(self, rows: int) -> bool:
        """Change the row count in place, keeping the cursor row on screen.

        pyte clips the top rows when shrinking; instead only as many rows as
        needed to keep the cursor visible scroll into history and the blank
        rows below the cursor are dropped. Returns False while a scroll region
        is set, in which case the screen has to be rebuilt.
        """
        screen = self._screen
        if screen.margins is not None:
            return False
        if rows < screen.lines:
            clipped = screen.lines - rows
            shift = max(0, screen.cursor.y - (rows - 1))
            screen.history.top.extend(screen.buffer[y] for y in range(shift))
            kept = [screen.buffer[y] for y in range(shift, shift + rows)]
            # Park the kept rows at the bottom; resize() deletes the top `clipped`
            for y, line in enumerate(kept, start=clipped):
                screen.buffer[y] = line
            cursor_y = screen.cursor.y - shift
            screen.resize(rows, screen.columns)
            screen.cursor.y = cursor_y
        else:
            screen.resize(rows, screen.columns)
        return True

    def _append_log(self, data: bytes) -> None:
        if self._replay_limit <= 0:
            return
        self._log.extend(data)
        overflow = len(self._log) - self._replay_limit
        if overflow <= 0:
            return
        # Replay must start on a line or an escape sequence, never inside one
        # or inside a multi-byte character
        cut = self._log.find(b"\n", overflow)
        if cut != -1:
            cut += 1
        else:
            cut = self._log.find(b"\x1b", overflow)
        if cut == -1:
            self._log.clear()
        else:
            del self._log[:cut]

    def _notify(self) -> None:
        if self._container is not None:
            self._container.surface_updated()
