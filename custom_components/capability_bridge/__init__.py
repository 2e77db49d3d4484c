"""Capability Bridge integration for Home Assistant.

Exposes climate and media player entities as capability-based devices and
translates capability writes back into Home Assistant service calls.
"""
from __future__ import annotations

import logging

import voluptuous as vol

from homeassistant.components.media_player.const import (
    ATTR_INPUT_SOURCE,
    ATTR_SOUND_MODE,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import ATTR_ENTITY_ID
from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.typing import ConfigType

from .adapter import DeviceAdapter
from .const import (
    ATTR_CAPABILITIES,
    ATTR_CAPABILITY,
    ATTR_NAME,
    ATTR_VALUE,
    DOMAIN,
    SERVICE_ADD_DEVICE,
    SERVICE_RECONNECT,
    SERVICE_RELOAD,
    SERVICE_REMOVE_DEVICE,
    SERVICE_SELECT_SOUND_MODE,
    SERVICE_SELECT_SOURCE,
    SERVICE_SET_CAPABILITY,
)
from .manager import CapabilityDeviceManager
from .media_adapter import MediaAdapter

_LOGGER = logging.getLogger(__name__)

SERVICES = (
    SERVICE_RELOAD,
    SERVICE_ADD_DEVICE,
    SERVICE_REMOVE_DEVICE,
    SERVICE_SET_CAPABILITY,
    SERVICE_SELECT_SOURCE,
    SERVICE_SELECT_SOUND_MODE,
    SERVICE_RECONNECT,
)

ADD_DEVICE_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_ENTITY_ID): cv.entity_id,
        vol.Optional(ATTR_NAME): cv.string,
        vol.Optional(ATTR_CAPABILITIES): vol.All(cv.ensure_list, [cv.string]),
    }
)
REMOVE_DEVICE_SCHEMA = vol.Schema({vol.Required(ATTR_ENTITY_ID): cv.entity_id})
SET_CAPABILITY_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_ENTITY_ID): cv.entity_id,
        vol.Required(ATTR_CAPABILITY): cv.string,
        vol.Required(ATTR_VALUE): object,
    }
)
SELECT_SOURCE_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_ENTITY_ID): cv.entity_id,
        vol.Required(ATTR_INPUT_SOURCE): cv.string,
    }
)
SELECT_SOUND_MODE_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_ENTITY_ID): cv.entity_id,
        vol.Required(ATTR_SOUND_MODE): cv.string,
    }
)


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """Set up the Capability Bridge component."""
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Capability Bridge from a config entry."""
    _LOGGER.info("Setting up Capability Bridge integration")

    device_manager = CapabilityDeviceManager(hass, entry)
    await device_manager.async_setup()

    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN][entry.entry_id] = {
        "device_manager": device_manager,
    }

    if not hass.services.has_service(DOMAIN, SERVICE_RELOAD):
        _async_register_services(hass, device_manager)

    _LOGGER.info("Capability Bridge setup complete")
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    _LOGGER.info("Unloading Capability Bridge integration")

    if DOMAIN in hass.data and entry.entry_id in hass.data[DOMAIN]:
        device_manager = hass.data[DOMAIN][entry.entry_id]["device_manager"]
        await device_manager.async_cleanup()

    if DOMAIN in hass.data:
        hass.data[DOMAIN].pop(entry.entry_id, None)

        # Remove services if this was the last entry
        if not hass.data[DOMAIN]:
            for service in SERVICES:
                if hass.services.has_service(DOMAIN, service):
                    hass.services.async_remove(DOMAIN, service)

    return True


def _get_adapter(
    device_manager: CapabilityDeviceManager, entity_id: str
) -> DeviceAdapter:
    adapter = device_manager.get_adapter(entity_id)
    if adapter is None:
        raise HomeAssistantError(f"No capability device is bound to {entity_id}")
    return adapter


def _get_media_adapter(
    device_manager: CapabilityDeviceManager, entity_id: str
) -> MediaAdapter:
    adapter = _get_adapter(device_manager, entity_id)
    if not isinstance(adapter, MediaAdapter):
        raise HomeAssistantError(f"{entity_id} is not a media player device")
    return adapter


def _async_register_services(
    hass: HomeAssistant, device_manager: CapabilityDeviceManager
) -> None:
    """Register the integration services."""

    async def reload_service(call: ServiceCall) -> None:
        """Reload the integration."""
        _LOGGER.info("Reloading Capability Bridge integration")
        await device_manager.async_reload()

    async def add_device_service(call: ServiceCall) -> None:
        """Bind a new capability device to an entity."""
        try:
            device = await device_manager.async_create_device(
                call.data[ATTR_ENTITY_ID],
                call.data.get(ATTR_NAME),
                call.data.get(ATTR_CAPABILITIES),
            )
        except ValueError as err:
            raise HomeAssistantError(str(err)) from err
        _LOGGER.info("Added device: %s (Entity: %s)", device.name, device.entity_id)

    async def remove_device_service(call: ServiceCall) -> None:
        """Remove the capability device bound to an entity."""
        await device_manager.async_delete_device(call.data[ATTR_ENTITY_ID])

    async def set_capability_service(call: ServiceCall) -> None:
        """Write a capability, running its handler."""
        adapter = _get_adapter(device_manager, call.data[ATTR_ENTITY_ID])
        await adapter.device.async_trigger_capability_listener(
            call.data[ATTR_CAPABILITY], call.data[ATTR_VALUE]
        )

    async def select_source_service(call: ServiceCall) -> None:
        """Select the input source of a media player device."""
        adapter = _get_media_adapter(device_manager, call.data[ATTR_ENTITY_ID])
        await adapter.async_set_source(call.data[ATTR_INPUT_SOURCE])

    async def select_sound_mode_service(call: ServiceCall) -> None:
        """Select the sound mode of a media player device."""
        adapter = _get_media_adapter(device_manager, call.data[ATTR_ENTITY_ID])
        await adapter.async_set_sound_mode(call.data[ATTR_SOUND_MODE])

    async def reconnect_service(call: ServiceCall) -> None:
        """Re-subscribe to entity updates."""
        await device_manager.async_reconnect()

    hass.services.async_register(DOMAIN, SERVICE_RELOAD, reload_service)
    hass.services.async_register(
        DOMAIN, SERVICE_ADD_DEVICE, add_device_service, schema=ADD_DEVICE_SCHEMA
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_REMOVE_DEVICE,
        remove_device_service,
        schema=REMOVE_DEVICE_SCHEMA,
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_SET_CAPABILITY,
        set_capability_service,
        schema=SET_CAPABILITY_SCHEMA,
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_SELECT_SOURCE,
        select_source_service,
        schema=SELECT_SOURCE_SCHEMA,
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_SELECT_SOUND_MODE,
        select_sound_mode_service,
        schema=SELECT_SOUND_MODE_SCHEMA,
    )
    hass.services.async_register(DOMAIN, SERVICE_RECONNECT, reconnect_service)
