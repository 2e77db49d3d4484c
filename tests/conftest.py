"""Shared fixtures for Capability Bridge tests."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from custom_components.capability_bridge.climate_adapter import ClimateAdapter
from custom_components.capability_bridge.const import DEFAULT_CAPABILITIES
from custom_components.capability_bridge.device import CapabilityDevice
from custom_components.capability_bridge.media_adapter import MediaAdapter


@pytest.fixture
def client():
    """Command client recording every service call."""
    mock = MagicMock()
    mock.async_call_service = AsyncMock()
    mock.async_reconnect = AsyncMock()
    mock.get_config = MagicMock(return_value={"unit_system": {"temperature": "°C"}})
    return mock


@pytest.fixture
def climate_device():
    """Climate device carrying the default climate capabilities."""
    return CapabilityDevice(
        entity_id="climate.living_room",
        name="Living Room",
        capabilities=list(DEFAULT_CAPABILITIES["climate"]),
    )


@pytest.fixture
def media_device():
    """Media device carrying the default media capabilities."""
    return CapabilityDevice(
        entity_id="media_player.kitchen",
        name="Kitchen Speaker",
        capabilities=list(DEFAULT_CAPABILITIES["media_player"]),
    )


@pytest.fixture
def climate_adapter(climate_device, client):
    """Climate adapter with its write handlers registered."""
    adapter = ClimateAdapter(climate_device, client)
    adapter._register_capability_listeners()
    return adapter


@pytest.fixture
def media_adapter(media_device, client):
    """Media adapter with its write handlers registered."""
    adapter = MediaAdapter(media_device, client)
    adapter._register_capability_listeners()
    return adapter
