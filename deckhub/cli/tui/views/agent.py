"""Agent view - network and capture devices seen by one agent."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Header, Label

from deckhub.cli.models import AgentDetail, HyperDeckDetails, NetworkDevice
from deckhub.cli.tui.polling import PollingQuery, QueryState
from deckhub.cli.tui.state import DeviceListState

if TYPE_CHECKING:
    from deckhub.cli.tui.app import DeckhubApp


def _device_row(device: NetworkDevice) -> tuple[str, str, str, str]:
    details = device.details
    if isinstance(details, HyperDeckDetails):
        return (details.model_name, device.ip_address, device.mac_address, details.description)
    return ("", device.ip_address, device.mac_address, "")


class AgentScreen(Screen[None]):
    """One agent's devices, refreshed on the polling interval.

    Network devices without details are hidden until `a` toggles them on.
    `c` is only offered while a commandable device row is highlighted.
    """

    BINDINGS = [
        Binding("escape", "back", "Back"),
        Binding("s", "open_shell", "Shell"),
        Binding("c", "send_command", "Command"),
        Binding("a", "toggle_all", "Show all"),
    ]

    def __init__(self, agent_id: str, **kwargs: object) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self.agent_id = agent_id
        self.devices = DeviceListState()
        self._agent: AgentDetail | None = None
        self._query: PollingQuery[AgentDetail | None] | None = None
        self.status_text = "Loading..."

    @property
    def deckhub(self) -> DeckhubApp:
        return self.app  # type: ignore[return-value]

    def compose(self) -> ComposeResult:
        yield Header()
        yield Label(f"Agent {self.agent_id}", id="agent-title", classes="section-title")
        yield Label("Network devices", classes="section-title")
        yield DataTable(id="network-devices", cursor_type="row")
        yield Label("Capture devices", classes="section-title")
        yield DataTable(id="capture-devices", cursor_type="row")
        yield Label("Loading...", id="query-status")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#network-devices", DataTable).add_columns("Model", "IP address", "MAC address", "Details")
        self.query_one("#capture-devices", DataTable).add_columns("Model", "Display name", "Vendor")
        self._query = PollingQuery(
            lambda: self.deckhub.api.get_agent(self.agent_id),
            interval=self.deckhub.console_config.polling.interval,
            on_update=self._apply,
            name=f"agent:{self.agent_id}",
        )
        self._query.start()

    def on_unmount(self) -> None:
        if self._query is not None:
            self._query.stop()

    def _apply(self, state: QueryState[AgentDetail | None]) -> None:
        if state.error:
            self.status_text = f"Error: {state.error}"
        elif state.loading:
            self.status_text = "Loading..."
        elif state.data is None:
            self.status_text = f"Agent {self.agent_id} is not registered with the hub"
        else:
            self.status_text = ""
        self.query_one("#query-status", Label).update(Text(self.status_text))
        if state.data is not None:
            self._agent = state.data
            self._render_devices()

    @property
    def network_devices(self) -> list[NetworkDevice]:
        if self._agent is None:
            return []
        return self._agent.state.network_devices

    def _render_devices(self) -> None:
        network = self.query_one("#network-devices", DataTable)
        network.clear()
        visible = self.devices.visible(self.network_devices)
        for device in visible:
            network.add_row(*_device_row(device), key=device.mac_address)
        selected = self.devices.selected(self.network_devices)
        if selected is not None:
            network.move_cursor(row=network.get_row_index(selected.mac_address))
        elif visible:
            # clear() put the cursor back on the first row
            self.devices.selected_mac = visible[0].mac_address

        capture = self.query_one("#capture-devices", DataTable)
        capture.clear()
        if self._agent is not None:
            for deck in self._agent.state.decklink_devices:
                attributes = deck.attributes
                capture.add_row(deck.model_name, attributes.display_name or "", attributes.vendor_name or "")
        self.refresh_bindings()

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.data_table.id != "network-devices":
            return
        self.devices.selected_mac = event.row_key.value
        self.refresh_bindings()

    def selected_device(self) -> NetworkDevice | None:
        return self.devices.selected(self.network_devices)

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        if action == "send_command":
            device = self.selected_device()
            return device is not None and device.is_commandable
        return True

    def action_back(self) -> None:
        self.app.pop_screen()

    def action_open_shell(self) -> None:
        self.deckhub.open_shell(self.agent_id)

    def action_send_command(self) -> None:
        device = self.selected_device()
        if device is None or not device.is_commandable:
            return
        self.deckhub.open_device_command(self.agent_id, device)

    def action_toggle_all(self) -> None:
        self.devices.show_all = not self.devices.show_all
        self.notify("Showing all devices" if self.devices.show_all else "Showing identified devices")
        self._render_devices()
