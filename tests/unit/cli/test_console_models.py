"""Unit tests for hub API models."""

import pytest
from pydantic import ValidationError

from deckhub.cli.models import AgentDetail, CommandResult, HyperDeckDetails, NetworkDevice


@pytest.mark.unit
def test_hyperdeck_details_accept_snake_or_camel_case():
    by_alias = HyperDeckDetails.model_validate(
        {"__typename": "HyperDeckDetails", "modelName": "HyperDeck Studio", "uniqueId": "u1", "protocolVersion": "1.9"}
    )
    by_name = HyperDeckDetails(model_name="HyperDeck Studio", unique_id="u1", protocol_version="1.9")

    assert by_alias == by_name
    assert by_name.description == "Protocol Version: 1.9, Unique Id: u1"


@pytest.mark.unit
def test_hyperdeck_shaped_details_with_other_typename_are_not_commandable():
    device = NetworkDevice.model_validate(
        {
            "ipAddress": "10.0.0.9",
            "macAddress": "aa:bb",
            "details": {"__typename": "FutureDeck", "modelName": "X", "uniqueId": "u", "protocolVersion": "2"},
        }
    )

    assert not device.is_commandable


@pytest.mark.unit
def test_agent_detail_defaults_to_empty_state():
    agent = AgentDetail.model_validate({"id": "a1"})

    assert agent.state.network_devices == []
    assert agent.state.decklink_devices == []


@pytest.mark.unit
def test_models_are_frozen():
    result = CommandResult(code=200, text="OK")

    with pytest.raises(ValidationError):
        result.code = 500  # type: ignore[misc]


@pytest.mark.unit
def test_command_result_payload_is_optional():
    result = CommandResult.model_validate({"code": 500, "text": "invalid command", "payload": None})

    assert result.payload is None
