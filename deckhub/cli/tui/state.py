"""Explicit view-state values for the console screens.

Screens own one of these each and pass it to rendering; nothing here touches
shell sessions or the network.
"""

from __future__ import annotations

from dataclasses import dataclass

from deckhub.cli.models import CommandResult, NetworkDevice
from deckhub.core.command_relay import CommandInvocation, format_command_result


@dataclass
class DeviceListState:
    """State for the network device table on the agent screen."""

    show_all: bool = False
    selected_mac: str | None = None

    def visible(self, devices: list[NetworkDevice]) -> list[NetworkDevice]:
        """Devices without a detail payload are hidden unless `show_all` is set."""
        if self.show_all:
            return list(devices)
        return [device for device in devices if device.details is not None]

    def selected(self, devices: list[NetworkDevice]) -> NetworkDevice | None:
        if self.selected_mac is None:
            return None
        for device in self.visible(devices):
            if device.mac_address == self.selected_mac:
                return device
        return None


@dataclass
class CommandDialogState:
    """State for one device command dialog.

    Results are applied in completion order, so the response shown is always
    the last one to arrive, whichever command it belongs to.
    """

    agent_id: str
    ip_address: str
    command_input: str = ""
    pending: int = 0
    result: CommandResult | None = None
    error: str | None = None

    def submit(self) -> CommandInvocation | None:
        """Build the invocation for the current input (None when blank)."""
        if not self.command_input.strip():
            return None
        self.pending += 1
        return CommandInvocation(agent_id=self.agent_id, ip_address=self.ip_address, command=self.command_input)

    def resolve(self, result: CommandResult) -> None:
        self.pending = max(0, self.pending - 1)
        self.result = result
        self.error = None

    def reject(self, message: str) -> None:
        self.pending = max(0, self.pending - 1)
        self.result = None
        self.error = message

    @property
    def display_text(self) -> str:
        if self.error is not None:
            return f"Error: {self.error}"
        if self.result is not None:
            return format_command_result(self.result)
        return ""
