"""Manages capability devices and their adapters for Capability Bridge."""
from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import (
    CALLBACK_TYPE,
    Event,
    EventStateChangedData,
    HomeAssistant,
    callback,
    split_entity_id,
)
from homeassistant.helpers.event import async_track_state_change_event
from homeassistant.helpers.storage import Store

from .adapter import DeviceAdapter, EntityUpdateEvent
from .climate_adapter import ClimateAdapter
from .client import HassServiceClient
from .const import (
    DEFAULT_CAPABILITIES,
    STORAGE_KEY,
    STORAGE_SAVE_DELAY,
    STORAGE_VERSION,
    SUPPORTED_DOMAINS,
)
from .device import CapabilityDevice
from .media_adapter import MediaAdapter

_LOGGER = logging.getLogger(__name__)

ADAPTER_TYPES: dict[str, Callable[..., DeviceAdapter]] = {
    "climate": ClimateAdapter,
    "media_player": MediaAdapter,
}


class CapabilityDeviceManager:
    """Manages capability devices, their adapters and the update subscription."""

    def __init__(self, hass: HomeAssistant, config_entry: ConfigEntry) -> None:
        """Initialize the device manager."""
        self.hass = hass
        self.config_entry = config_entry
        self._store: Store[dict[str, Any]] = Store(hass, STORAGE_VERSION, STORAGE_KEY)
        self.client = HassServiceClient(hass, self.async_reconnect)

        self._devices: dict[str, CapabilityDevice] = {}
        self._adapters: dict[str, DeviceAdapter] = {}
        self._unsub_state_changes: CALLBACK_TYPE | None = None

    async def async_setup(self) -> None:
        """Set up the device manager."""
        _LOGGER.info("Setting up capability device manager")
        await self._load_data()
        for device in self._devices.values():
            await self._async_start_adapter(device)
        self._subscribe()
        await self._async_push_current_states()

    async def async_cleanup(self) -> None:
        """Clean up the device manager."""
        _LOGGER.info("Cleaning up capability device manager")
        self._unsubscribe()
        await self._save_data()

    async def async_reload(self) -> None:
        """Reload the device manager."""
        _LOGGER.info("Reloading capability device manager")
        self._unsubscribe()
        await self._save_data()
        self._devices.clear()
        self._adapters.clear()
        await self.async_setup()

    async def async_reconnect(self) -> None:
        """Re-subscribe to entity updates and replay the current states."""
        self._unsubscribe()
        self._subscribe()
        await self._async_push_current_states()

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    async def _load_data(self) -> None:
        """Load device data from storage."""
        try:
            data = await self._store.async_load()
            if not data:
                _LOGGER.info("No existing device data found, starting fresh")
                return

            for entity_id, device_data in data.get("devices", {}).items():
                self._devices[entity_id] = CapabilityDevice.from_dict(device_data)

            _LOGGER.info("Loaded %d devices", len(self._devices))

        except Exception as err:
            _LOGGER.error("Failed to load device data: %s", err)

    def _data_to_save(self) -> dict[str, Any]:
        return {
            "devices": {
                entity_id: device.to_dict()
                for entity_id, device in self._devices.items()
            },
        }

    async def _save_data(self) -> None:
        """Save device data to storage."""
        try:
            await self._store.async_save(self._data_to_save())
            _LOGGER.debug("Saved device data successfully")

        except Exception as err:
            _LOGGER.error("Failed to save device data: %s", err)

    @callback
    def _schedule_save(self) -> None:
        """Persist store-value changes after a short delay."""
        self._store.async_delay_save(self._data_to_save, STORAGE_SAVE_DELAY)

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    async def async_create_device(
        self,
        entity_id: str,
        name: str | None = None,
        capabilities: list[str] | None = None,
        settings: dict[str, Any] | None = None,
    ) -> CapabilityDevice:
        """Create a capability device bound to a hub entity."""
        if not self._is_valid_entity(entity_id):
            raise ValueError(f"Entity {entity_id} is not valid or not supported")
        if entity_id in self._devices:
            raise ValueError(f"Entity {entity_id} is already linked to a device")

        domain = split_entity_id(entity_id)[0]
        if capabilities is None:
            capabilities = DEFAULT_CAPABILITIES[domain]
        device = CapabilityDevice(
            entity_id=entity_id,
            name=name or entity_id,
            capabilities=list(capabilities),
            settings=dict(settings or {}),
        )
        self._devices[entity_id] = device
        await self._async_start_adapter(device)
        await self._save_data()

        self._resubscribe()
        if (state := self.hass.states.get(entity_id)) is not None:
            await self._adapters[entity_id].async_on_entity_update(
                EntityUpdateEvent.from_state(state)
            )

        _LOGGER.info("Created device: %s (Entity: %s)", device.name, entity_id)
        return device

    async def async_delete_device(self, entity_id: str) -> bool:
        """Delete the device bound to an entity."""
        if entity_id not in self._devices:
            return False

        device = self._devices.pop(entity_id)
        self._adapters.pop(entity_id, None)
        device.set_store_listener(None)
        await self._save_data()
        self._resubscribe()

        _LOGGER.info("Deleted device: %s (Entity: %s)", device.name, entity_id)
        return True

    async def async_update_device_settings(
        self, entity_id: str, settings: dict[str, Any]
    ) -> bool:
        """Replace the settings of a device."""
        adapter = self._adapters.get(entity_id)
        if adapter is None:
            return False

        if isinstance(adapter, ClimateAdapter):
            await adapter.async_on_settings(settings)
        else:
            adapter.device.update_settings(settings)
        await self._save_data()
        return True

    def get_device(self, entity_id: str) -> CapabilityDevice | None:
        """Get a device by its bound entity id."""
        return self._devices.get(entity_id)

    def get_adapter(self, entity_id: str) -> DeviceAdapter | None:
        """Get the adapter of a device by its bound entity id."""
        return self._adapters.get(entity_id)

    def get_all_devices(self) -> list[CapabilityDevice]:
        """Get all devices."""
        return list(self._devices.values())

    def _is_valid_entity(self, entity_id: str) -> bool:
        """Check if entity exists and is supported."""
        if self.hass.states.get(entity_id) is None:
            return False
        return split_entity_id(entity_id)[0] in SUPPORTED_DOMAINS

    async def _async_start_adapter(self, device: CapabilityDevice) -> None:
        adapter_type = ADAPTER_TYPES.get(device.domain)
        if adapter_type is None:
            _LOGGER.warning(
                "Skipping device %s: unsupported domain %s",
                device.entity_id,
                device.domain,
            )
            return
        adapter = adapter_type(device, self.client)
        await adapter.async_init()
        device.set_store_listener(self._schedule_save)
        self._adapters[device.entity_id] = adapter

    # ------------------------------------------------------------------
    # Entity updates
    # ------------------------------------------------------------------

    def _subscribe(self) -> None:
        if not self._adapters:
            return
        self._unsub_state_changes = async_track_state_change_event(
            self.hass, list(self._adapters), self._async_state_changed
        )

    def _unsubscribe(self) -> None:
        if self._unsub_state_changes is not None:
            self._unsub_state_changes()
            self._unsub_state_changes = None

    def _resubscribe(self) -> None:
        self._unsubscribe()
        self._subscribe()

    @callback
    def _async_state_changed(self, event: Event[EventStateChangedData]) -> None:
        """Route a state change to the adapter of its entity."""
        new_state = event.data["new_state"]
        if new_state is None:
            return
        adapter = self._adapters.get(new_state.entity_id)
        if adapter is None:
            return
        self.hass.async_create_task(
            adapter.async_on_entity_update(EntityUpdateEvent.from_state(new_state))
        )

    async def _async_push_current_states(self) -> None:
        for entity_id, adapter in self._adapters.items():
            state = self.hass.states.get(entity_id)
            if state is None:
                continue
            await adapter.async_on_entity_update(EntityUpdateEvent.from_state(state))
