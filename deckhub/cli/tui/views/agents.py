"""Agents view - list the agents registered with the hub."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Header, Label

from deckhub.cli.models import AgentInfo
from deckhub.cli.tui.polling import PollingQuery, QueryState

if TYPE_CHECKING:
    from deckhub.cli.tui.app import DeckhubApp


class AgentsScreen(Screen[None]):
    """Polled agent list; Enter or `o` opens an agent, `s` opens its shell."""

    BINDINGS = [
        Binding("o", "open_agent", "Open"),
        Binding("s", "open_shell", "Shell"),
    ]

    def __init__(self, **kwargs: object) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self._query: PollingQuery[list[AgentInfo]] | None = None
        self.status_text = "Loading..."

    @property
    def deckhub(self) -> DeckhubApp:
        return self.app  # type: ignore[return-value]

    def compose(self) -> ComposeResult:
        yield Header()
        yield Label("Agents", classes="section-title")
        yield DataTable(id="agents-table", cursor_type="row")
        yield Label("Loading...", id="query-status")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#agents-table", DataTable)
        table.add_columns("Agent")
        self._query = PollingQuery(
            self.deckhub.api.list_agents,
            interval=self.deckhub.console_config.polling.interval,
            on_update=self._apply,
            name="agents",
        )
        self._query.start()

    def on_unmount(self) -> None:
        if self._query is not None:
            self._query.stop()

    def _apply(self, state: QueryState[list[AgentInfo]]) -> None:
        if state.error:
            self.status_text = f"Error: {state.error}"
        elif state.loading:
            self.status_text = "Loading..."
        else:
            self.status_text = f"{len(state.data or [])} agent(s)"
        self.query_one("#query-status", Label).update(Text(self.status_text))
        if state.data is None:
            return

        table = self.query_one("#agents-table", DataTable)
        selected = self.selected_agent_id()
        table.clear()
        for agent in state.data:
            table.add_row(agent.id, key=agent.id)
        if selected is not None and selected in {agent.id for agent in state.data}:
            table.move_cursor(row=table.get_row_index(selected))

    def selected_agent_id(self) -> str | None:
        table = self.query_one("#agents-table", DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return row_key.value

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        if event.row_key.value is not None:
            self.deckhub.open_agent(event.row_key.value)

    def action_open_agent(self) -> None:
        agent_id = self.selected_agent_id()
        if agent_id is not None:
            self.deckhub.open_agent(agent_id)

    def action_open_shell(self) -> None:
        agent_id = self.selected_agent_id()
        if agent_id is not None:
            self.deckhub.open_shell(agent_id)
