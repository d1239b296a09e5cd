"""Main TUI application: agents, agent devices, shells and device commands."""

from __future__ import annotations

from instrukt_ai_logging import get_logger
from textual.app import App
from textual.binding import Binding

from deckhub.cli.api_client import HubAPIClient
from deckhub.cli.models import NetworkDevice
from deckhub.cli.tui.views.agent import AgentScreen
from deckhub.cli.tui.views.agents import AgentsScreen
from deckhub.cli.tui.views.shell import ShellScreen, session_for
from deckhub.cli.tui.widgets.modals import DeviceCommandModal
from deckhub.config.schema import ConsoleConfig
from deckhub.core.command_relay import CommandRelay
from deckhub.core.shell_transport import ShellEndpoint

logger = get_logger(__name__)


class DeckhubApp(App[None]):
    """Operator console for one hub.

    Screens are stacked: agents -> agent -> shell, with the device command
    dialog as a modal over the agent screen.
    """

    TITLE = "deckhub"

    CSS = """
    .section-title {
        text-style: bold;
        padding: 1 1 0 1;
    }
    #query-status {
        color: $text-muted;
        padding: 0 1;
    }
    #shell-title {
        background: $primary;
        width: 100%;
    }
    DeviceCommandModal {
        align: center middle;
    }
    #modal-box {
        width: 80;
        height: auto;
        max-height: 90%;
        border: solid $primary;
        padding: 0 1;
    }
    #command-group, #response-group {
        border: solid $secondary;
        height: auto;
    }
    #response-group {
        max-height: 20;
    }
    #modal-actions {
        height: auto;
        align: right middle;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", priority=True),
    ]

    def __init__(
        self,
        api: HubAPIClient,
        console_config: ConsoleConfig,
        *,
        start_agent: str | None = None,
        start_shell: bool = False,
    ) -> None:
        super().__init__()
        self.api = api
        self.console_config = console_config
        self.relay = CommandRelay(api, timeout=console_config.relay.timeout)
        self._start_agent = start_agent
        self._start_shell = start_shell

    async def on_mount(self) -> None:
        if not self.api.is_connected:
            await self.api.connect()
        self.sub_title = self.console_config.hub.effective_host
        self.push_screen(AgentsScreen())
        if self._start_agent:
            self.open_agent(self._start_agent)
            if self._start_shell:
                self.open_shell(self._start_agent)

    async def on_unmount(self) -> None:
        await self.api.close()

    def open_agent(self, agent_id: str) -> None:
        logger.debug("Opening agent", agent=agent_id)
        self.push_screen(AgentScreen(agent_id))

    def open_shell(self, agent_id: str) -> None:
        endpoint = ShellEndpoint.for_hub(agent_id, self.console_config.hub)
        logger.info("Opening shell", agent=agent_id, url=endpoint.url)
        self.push_screen(ShellScreen(session_for(endpoint, self.console_config.shell)))

    def open_device_command(self, agent_id: str, device: NetworkDevice) -> None:
        self.push_screen(DeviceCommandModal(agent_id, device, self.relay))
