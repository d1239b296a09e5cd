"""One-shot relay of opaque device commands through the hub."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from instrukt_ai_logging import get_logger

from deckhub.cli.api_client import APIError
from deckhub.cli.models import CommandResult

logger = get_logger(__name__)


class CommandRelayError(Exception):
    """A relayed command failed; `message` is fit for display."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class CommandInvocation:
    agent_id: str
    ip_address: str
    command: str


class CommandBackend(Protocol):
    async def hyperdeck_command(
        self,
        *,
        agent_id: str,
        ip_address: str,
        command: str,
        timeout: float | None = None,
    ) -> CommandResult: ...


def format_command_result(result: CommandResult) -> str:
    """Render a result as `<code> <text>`, plus `:\\n<payload>` when there is one."""
    text = f"{result.code} {result.text}"
    if result.payload:
        text += f":\n{result.payload}"
    return text


class CommandRelay:
    """Stateless: every call carries its own addressing and stands alone.

    No retries, no deduplication of repeated commands, no cancellation of
    earlier calls. Commands may change the device's state.
    """

    def __init__(self, backend: CommandBackend, *, timeout: float | None = None) -> None:
        self._backend = backend
        self._timeout = timeout

    async def invoke(self, invocation: CommandInvocation) -> CommandResult:
        """Send one command and return the device's response untouched.

        Raises:
            CommandRelayError: If the hub, the agent or the network fails
        """
        logger.debug(
            "Relaying device command",
            agent=invocation.agent_id,
            ip_address=invocation.ip_address,
            command=invocation.command,
        )
        try:
            result = await self._backend.hyperdeck_command(
                agent_id=invocation.agent_id,
                ip_address=invocation.ip_address,
                command=invocation.command,
                timeout=self._timeout,
            )
        except APIError as e:
            logger.warning(
                "Device command failed",
                agent=invocation.agent_id,
                ip_address=invocation.ip_address,
                error=e.detail,
            )
            raise CommandRelayError(e.detail) from e
        logger.info(
            "Device command completed",
            agent=invocation.agent_id,
            ip_address=invocation.ip_address,
            code=result.code,
        )
        return result
