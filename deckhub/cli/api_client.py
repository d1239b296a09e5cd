"""GraphQL client for the hub API used by the deckhub console."""

import asyncio
import json
import time
from typing import TypeAlias

import httpx
from instrukt_ai_logging import get_logger
from pydantic import TypeAdapter, ValidationError

from deckhub.cli.models import AgentDetail, AgentInfo, CommandResult
from deckhub.constants import GRAPHQL_PATH

logger = get_logger(__name__)

DEFAULT_TIMEOUT_S = 5.0
# Connect retries only apply to read-only queries; mutations are sent once.
API_CONNECT_RETRY_DELAYS_S = (0.1, 0.3, 0.6)
CONNECT_ERROR_LOG_INTERVAL_S = 10.0

__all__ = ["HubAPIClient", "APIError"]

GraphQLVariables: TypeAlias = dict[str, str]
GraphQLData: TypeAlias = dict[str, object]

AGENTS_QUERY = """
query Agents {
    agents {
        id
    }
}
"""

AGENT_QUERY = """
query Agent($id: String!) {
    agent(id: $id) {
        id
        state {
            networkDevices {
                ipAddress
                macAddress
                details {
                    __typename
                    ... on HyperDeckDetails {
                        modelName
                        uniqueId
                        protocolVersion
                    }
                }
            }
            decklinkDevices {
                modelName
                attributes {
                    displayName
                    vendorName
                }
            }
        }
    }
}
"""

HYPERDECK_COMMAND_MUTATION = """
mutation HyperDeckCommand($agentId: String!, $ipAddress: String!, $command: String!) {
    hyperdeckCommand(agentId: $agentId, ipAddress: $ipAddress, command: $command) {
        code
        text
        payload
    }
}
"""


class APIError(Exception):
    """API request failed with structured error info."""

    def __init__(self, message: str, status_code: int | None = None, detail: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail or message  # Fallback to full message if no detail


def _graphql_error_messages(body: object) -> list[str]:
    """Extract `errors[].message` strings from a GraphQL response body."""
    if not isinstance(body, dict):
        return []
    errors = body.get("errors")
    if not isinstance(errors, list):
        return []
    messages: list[str] = []
    for error in errors:
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            messages.append(error["message"])
        else:
            messages.append(str(error))
    return messages


class HubAPIClient:
    """Async GraphQL client for the hub (agent telemetry and device commands)."""

    def __init__(
        self,
        host: str,
        *,
        secure: bool = False,
        timeout: float = DEFAULT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize client.

        Args:
            host: Hub `host[:port]` (the API host when one is configured)
            secure: Use https instead of http
            timeout: Default request timeout in seconds
            transport: Optional httpx transport (tests use `httpx.MockTransport`)
        """
        self.host = host
        self.base_url = f"{'https' if secure else 'http'}://{host}"
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._last_connect_error_log: float | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            transport=self._transport,
            base_url=self.base_url,
            timeout=self.timeout,
        )

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def close(self) -> None:
        """Close connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _execute(
        self,
        query: str,
        variables: GraphQLVariables | None = None,
        *,
        operation: str,
        timeout: float | None = None,
        retry_connect: bool = True,
    ) -> GraphQLData:
        """Run one GraphQL operation and return its `data` object.

        Args:
            query: GraphQL document
            variables: Operation variables
            operation: Operation name (used in logs and error messages)
            timeout: Optional request timeout override
            retry_connect: Retry on connect errors (never for mutations)

        Returns:
            The response `data` mapping

        Raises:
            APIError: If the request fails or the response carries GraphQL errors
        """
        if not self._client:
            raise APIError("Client not connected. Call connect() first.")

        request_timeout = timeout if timeout is not None else self.timeout
        delays = (0.0, *API_CONNECT_RETRY_DELAYS_S) if retry_connect else (0.0,)
        payload = {"query": query, "variables": variables or {}, "operationName": operation}
        logged_connect_error = False
        resp: httpx.Response | None = None

        try:
            for attempt, delay in enumerate(delays, start=1):
                if delay:
                    await asyncio.sleep(delay)
                try:
                    resp = await self._client.post(GRAPHQL_PATH, json=payload, timeout=request_timeout)
                    resp.raise_for_status()
                    break
                except httpx.ConnectError as e:
                    if not logged_connect_error:
                        now = self._now_monotonic()
                        if (
                            self._last_connect_error_log is None
                            or (now - self._last_connect_error_log) >= CONNECT_ERROR_LOG_INTERVAL_S
                        ):
                            self._last_connect_error_log = now
                            logger.debug(
                                "Hub connect failed",
                                operation=operation,
                                base_url=self.base_url,
                                timeout=request_timeout,
                                error=str(e),
                            )
                        logged_connect_error = True
                    if attempt >= len(delays):
                        raise APIError(f"Cannot connect to hub at {self.base_url}.") from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            try:
                detail = "; ".join(_graphql_error_messages(e.response.json())) or None
            except (json.JSONDecodeError, ValueError):
                detail = None
            raise APIError(
                f"Hub request failed: {status_code} {detail or e.response.text}",
                status_code=status_code,
                detail=detail,
            ) from e
        except httpx.TimeoutException as e:
            raise APIError("Hub request timed out. The agent may be unreachable.") from e
        except APIError:
            raise
        except Exception as e:
            raise APIError(f"Unexpected error: {e}") from e

        if resp is None:
            raise APIError(f"Cannot connect to hub at {self.base_url}.")
        return self._unwrap(resp, operation)

    @staticmethod
    def _unwrap(resp: httpx.Response, operation: str) -> GraphQLData:
        """Return `data` from a GraphQL response, raising on `errors`."""
        try:
            body = resp.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise APIError(f"{operation}: invalid JSON response from hub", status_code=resp.status_code) from e

        messages = _graphql_error_messages(body)
        if messages:
            detail = "; ".join(messages)
            raise APIError(f"{operation} failed: {detail}", status_code=resp.status_code, detail=detail)

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise APIError(f"{operation}: response has no data", status_code=resp.status_code)
        return data

    def _now_monotonic(self) -> float:
        """Return a monotonic timestamp for debounce logic."""
        return time.monotonic()

    async def list_agents(self) -> list[AgentInfo]:
        """List agents connected to the hub.

        Raises:
            APIError: If request fails
        """
        data = await self._execute(AGENTS_QUERY, operation="Agents")
        try:
            return TypeAdapter(list[AgentInfo]).validate_python(data.get("agents") or [])
        except ValidationError as e:
            raise APIError(f"Agents: malformed response: {e}") from e

    async def get_agent(self, agent_id: str) -> AgentDetail | None:
        """Fetch one agent with its network and capture devices.

        Returns:
            The agent, or None when the hub does not know the id

        Raises:
            APIError: If request fails
        """
        data = await self._execute(AGENT_QUERY, {"id": agent_id}, operation="Agent")
        agent = data.get("agent")
        if agent is None:
            return None
        try:
            return TypeAdapter(AgentDetail).validate_python(agent)
        except ValidationError as e:
            raise APIError(f"Agent: malformed response: {e}") from e

    async def hyperdeck_command(
        self,
        *,
        agent_id: str,
        ip_address: str,
        command: str,
        timeout: float | None = None,
    ) -> CommandResult:
        """Send one opaque command to a HyperDeck-class device via its agent.

        Sent exactly once: commands may have side effects on the device.

        Raises:
            APIError: If the request fails or the hub rejects the command
        """
        data = await self._execute(
            HYPERDECK_COMMAND_MUTATION,
            {"agentId": agent_id, "ipAddress": ip_address, "command": command},
            operation="HyperDeckCommand",
            timeout=timeout,
            retry_connect=False,
        )
        response = data.get("hyperdeckCommand")
        if response is None:
            raise APIError("HyperDeckCommand: hub returned no response")
        try:
            return TypeAdapter(CommandResult).validate_python(response)
        except ValidationError as e:
            raise APIError(f"HyperDeckCommand: malformed response: {e}") from e
