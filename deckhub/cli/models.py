"""Typed models for the hub GraphQL API and the console.

Wire payloads use camelCase; models expose snake_case attributes and accept
either form.
"""

from __future__ import annotations

from typing import Annotated, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from deckhub.constants import HYPERDECK_DETAILS_TYPENAME


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore")


class AgentInfo(WireModel):
    id: str


class HyperDeckDetails(WireModel):
    typename: str = Field(default=HYPERDECK_DETAILS_TYPENAME, alias="__typename")
    model_name: str
    unique_id: str
    protocol_version: str

    @property
    def description(self) -> str:
        return f"Protocol Version: {self.protocol_version}, Unique Id: {self.unique_id}"


class DeviceDetails(WireModel):
    """Detail payload of a device class the console has no view for."""

    typename: str = Field(default="", alias="__typename")


class NetworkDevice(WireModel):
    ip_address: str
    mac_address: str
    details: Annotated[Union[HyperDeckDetails, DeviceDetails, None], Field(union_mode="left_to_right")] = None

    @property
    def is_commandable(self) -> bool:
        """Only devices that report HyperDeck details accept relayed commands."""
        return isinstance(self.details, HyperDeckDetails) and self.details.typename == HYPERDECK_DETAILS_TYPENAME


class DeckLinkAttributes(WireModel):
    display_name: Optional[str] = None
    vendor_name: Optional[str] = None


class DeckLinkDevice(WireModel):
    model_name: str
    attributes: DeckLinkAttributes = DeckLinkAttributes()


class AgentState(WireModel):
    network_devices: list[NetworkDevice] = []
    decklink_devices: list[DeckLinkDevice] = []


class AgentDetail(WireModel):
    id: str
    state: AgentState = AgentState()


class CommandResult(WireModel):
    """Structured device response: status code, status text, optional payload.

    The console never interprets these; they are shown as reported.
    """

    code: int
    text: str
    payload: Optional[str] = None
