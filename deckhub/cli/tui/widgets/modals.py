"""Modal dialogs built on Textual ModalScreen.

Visual design:
- Single thin border with title on top border
- Labeled field groups with thin borders
"""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Static

from deckhub.cli.models import NetworkDevice
from deckhub.cli.tui.state import CommandDialogState
from deckhub.core.command_relay import CommandInvocation, CommandRelay, CommandRelayError


class DeviceCommandModal(ModalScreen[None]):
    """Send free-form commands to one HyperDeck and show the last response.

    Every submission is its own relay call. Calls run as app workers, so
    closing the dialog neither cancels them nor lets them touch it afterwards.
    """

    BINDINGS = [
        ("escape", "dismiss_modal", "Close"),
    ]

    def __init__(self, agent_id: str, device: NetworkDevice, relay: CommandRelay, **kwargs: object) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self._device = device
        self._relay = relay
        self.dialog = CommandDialogState(agent_id=agent_id, ip_address=device.ip_address)

    def compose(self) -> ComposeResult:
        details = self._device.details
        model = getattr(details, "model_name", None) or "HyperDeck"
        with Vertical(id="modal-box") as box:
            box.border_title = f"{model} ({self._device.ip_address})"
            with Vertical(id="command-group") as cg:
                cg.border_title = "Command"
                yield Input(placeholder="e.g. device info", id="command-input")
            with Horizontal(id="modal-actions"):
                yield Button("[Enter] Send", variant="primary", id="send-btn")
                yield Button("[Esc] Close", id="close-btn")
            yield Label("", id="command-status")
            with VerticalScroll(id="response-group") as rg:
                rg.border_title = "Response"
                yield Static("", id="command-response")

    def on_mount(self) -> None:
        self.query_one("#command-input", Input).focus()

    def action_dismiss_modal(self) -> None:
        self.dismiss(None)

    def on_input_changed(self, event: Input.Changed) -> None:
        self.dialog.command_input = event.value

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._do_send()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "close-btn":
            self.dismiss(None)
            return
        if event.button.id == "send-btn":
            self._do_send()

    def _do_send(self) -> None:
        invocation = self.dialog.submit()
        if invocation is None:
            return
        self._render_dialog()
        self.app.run_worker(
            self._relay_command(invocation),
            name=f"hyperdeck:{invocation.ip_address}",
            group="device-commands",
            exit_on_error=False,
        )

    async def _relay_command(self, invocation: CommandInvocation) -> None:
        try:
            result = await self._relay.invoke(invocation)
        except CommandRelayError as e:
            self.dialog.reject(e.message)
        else:
            self.dialog.resolve(result)
        if self.is_attached:
            self._render_dialog()

    def _render_dialog(self) -> None:
        status = f"{self.dialog.pending} pending" if self.dialog.pending else ""
        self.query_one("#command-status", Label).update(status)
        self.query_one("#command-response", Static).update(Text(self.dialog.display_text))
