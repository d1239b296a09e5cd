"""Unit tests for CommandRelay."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from deckhub.cli.api_client import APIError
from deckhub.cli.models import CommandResult
from deckhub.cli.tui.state import CommandDialogState
from deckhub.core.command_relay import CommandInvocation, CommandRelay, CommandRelayError, format_command_result

INVOCATION = CommandInvocation(agent_id="agent-1", ip_address="10.0.0.5", command="transport info")


@pytest.mark.unit
def test_format_result_with_payload():
    result = CommandResult(code=200, text="OK", payload="idle")

    assert format_command_result(result) == "200 OK:\nidle"


@pytest.mark.unit
def test_format_result_without_payload():
    assert format_command_result(CommandResult(code=500, text="ERR")) == "500 ERR"
    assert format_command_result(CommandResult(code=200, text="ok", payload="")) == "200 ok"


@pytest.mark.unit
def test_format_result_keeps_multiline_payload_verbatim():
    payload = "status: stopped\r\nspeed: 0\r\n"
    result = CommandResult(code=208, text="transport info", payload=payload)

    assert format_command_result(result) == f"208 transport info:\n{payload}"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_invoke_forwards_addressing_and_timeout():
    result = CommandResult(code=200, text="OK")
    backend = MagicMock()
    backend.hyperdeck_command = AsyncMock(return_value=result)
    relay = CommandRelay(backend, timeout=3.0)

    assert await relay.invoke(INVOCATION) is result
    backend.hyperdeck_command.assert_awaited_once_with(
        agent_id="agent-1",
        ip_address="10.0.0.5",
        command="transport info",
        timeout=3.0,
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_invoke_maps_api_errors_to_displayable_message():
    backend = MagicMock()
    backend.hyperdeck_command = AsyncMock(
        side_effect=APIError("HyperDeckCommand failed: device offline", status_code=200, detail="device offline")
    )
    relay = CommandRelay(backend)

    with pytest.raises(CommandRelayError) as exc_info:
        await relay.invoke(INVOCATION)

    assert exc_info.value.message == "device offline"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_identical_commands_are_each_sent():
    backend = MagicMock()
    backend.hyperdeck_command = AsyncMock(return_value=CommandResult(code=200, text="OK"))
    relay = CommandRelay(backend)

    await asyncio.gather(relay.invoke(INVOCATION), relay.invoke(INVOCATION))

    assert backend.hyperdeck_command.await_count == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_last_completed_response_wins_in_dialog():
    release_first = asyncio.Event()

    async def command(*, agent_id, ip_address, command, timeout=None):  # type: ignore[no-untyped-def]
        if command == "slow":
            await release_first.wait()
        return CommandResult(code=200, text=command)

    backend = MagicMock()
    backend.hyperdeck_command = command
    relay = CommandRelay(backend)
    dialog = CommandDialogState(agent_id="agent-1", ip_address="10.0.0.5")

    async def submit(text: str) -> None:
        dialog.command_input = text
        invocation = dialog.submit()
        try:
            dialog.resolve(await relay.invoke(invocation))
        except CommandRelayError as e:
            dialog.reject(e.message)

    slow = asyncio.create_task(submit("slow"))
    await asyncio.sleep(0)
    await submit("fast")

    assert dialog.display_text == "200 fast"
    assert dialog.pending == 1

    release_first.set()
    await slow

    assert dialog.display_text == "200 slow"
    assert dialog.pending == 0
