"""Climate adapter for Capability Bridge."""
from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

from homeassistant.components.climate.const import (
    ATTR_CURRENT_HUMIDITY,
    ATTR_CURRENT_TEMPERATURE,
    ATTR_FAN_MODE,
    ATTR_FAN_MODES,
    ATTR_HVAC_ACTION,
    ATTR_HVAC_MODE,
    ATTR_HVAC_MODES,
    ATTR_PRESET_MODE,
    ATTR_PRESET_MODES,
    ATTR_SWING_MODE,
    ATTR_SWING_MODES,
    DOMAIN as CLIMATE_DOMAIN,
    SERVICE_SET_FAN_MODE,
    SERVICE_SET_HVAC_MODE,
    SERVICE_SET_PRESET_MODE,
    SERVICE_SET_SWING_MODE,
    SERVICE_SET_TEMPERATURE,
)
from homeassistant.const import (
    ATTR_TEMPERATURE,
    STATE_OFF,
    STATE_UNAVAILABLE,
    UnitOfTemperature,
)

from .adapter import (
    CommandClient,
    DeviceAdapter,
    EntityUpdateEvent,
    build_option_list,
)
from .const import (
    CAP_CLIMATE_ACTION,
    CAP_CLIMATE_MODE,
    CAP_CLIMATE_MODE_FAN,
    CAP_CLIMATE_MODE_PRESET,
    CAP_CLIMATE_MODE_SWING,
    CAP_CLIMATE_ON,
    CAP_MEASURE_HUMIDITY,
    CAP_MEASURE_TEMPERATURE,
    CAP_RECONNECT,
    CAP_TARGET_TEMPERATURE,
    CONF_ADD_POWER_ENTITY,
    CONF_POWER_ENTITY,
    CONF_SWING_MODE_ATTRIBUTE,
    DEFAULT_SWING_MODE_ATTRIBUTE,
)
from .device import CapabilityDevice, CapabilityListener

_LOGGER = logging.getLogger(__name__)

# Entity attribute holding each mode list -> capability whose options it sets
MODE_LIST_ATTRIBUTES: dict[str, str] = {
    ATTR_HVAC_MODES: CAP_CLIMATE_MODE,
    ATTR_FAN_MODES: CAP_CLIMATE_MODE_FAN,
    ATTR_PRESET_MODES: CAP_CLIMATE_MODE_PRESET,
    ATTR_SWING_MODES: CAP_CLIMATE_MODE_SWING,
}


def hub_temperature_to_celsius(value: Any, unit: str | None) -> Any:
    """Convert a hub temperature to Celsius when the hub reports Fahrenheit."""
    if unit == UnitOfTemperature.FAHRENHEIT:
        return (float(value) - 32) * 5 / 9
    return value


def _is_reported(value: Any) -> bool:
    return value is not None and value != STATE_UNAVAILABLE


class ClimateAdapter(DeviceAdapter):
    """Project a climate entity onto climate capabilities and back."""

    domain = CLIMATE_DOMAIN
    required_capabilities = (CAP_RECONNECT, CAP_CLIMATE_ON)

    def __init__(self, device: CapabilityDevice, client: CommandClient) -> None:
        """Initialize the adapter with empty mode lists."""
        super().__init__(device, client)
        # In-memory only; rebuilt from the next update after a restart
        self._mode_lists: dict[str, list[str]] = {
            capability: [] for capability in MODE_LIST_ATTRIBUTES.values()
        }

    @property
    def modes_hvac(self) -> list[str]:
        """Return the cached hvac modes."""
        return self._mode_lists[CAP_CLIMATE_MODE]

    @property
    def modes_fan(self) -> list[str]:
        """Return the cached fan modes."""
        return self._mode_lists[CAP_CLIMATE_MODE_FAN]

    @property
    def modes_preset(self) -> list[str]:
        """Return the cached preset modes."""
        return self._mode_lists[CAP_CLIMATE_MODE_PRESET]

    @property
    def modes_swing(self) -> list[str]:
        """Return the cached swing modes."""
        return self._mode_lists[CAP_CLIMATE_MODE_SWING]

    def _capability_listeners(self) -> dict[str, CapabilityListener]:
        return {
            **super()._capability_listeners(),
            CAP_TARGET_TEMPERATURE: self._async_on_target_temperature,
            CAP_CLIMATE_MODE: self._async_on_climate_mode,
            CAP_CLIMATE_MODE_FAN: self._async_on_climate_mode_fan,
            CAP_CLIMATE_MODE_PRESET: self._async_on_climate_mode_preset,
            CAP_CLIMATE_MODE_SWING: self._async_on_climate_mode_swing,
        }

    def get_power_entity_id(self) -> str | None:
        """Return the entity id used for the power companion of this device."""
        try:
            power_entity = self.device.get_setting(CONF_POWER_ENTITY)
            if self.device.get_setting(CONF_ADD_POWER_ENTITY) and power_entity:
                return power_entity
            return f"{CLIMATE_DOMAIN}.{self.device.object_id}_power"
        except Exception as err:
            _LOGGER.error(
                "Error getting power entity ID for device %s: %s", self.entity_id, err
            )
            return None

    async def async_on_settings(self, new_settings: dict[str, Any]) -> None:
        """Apply new device settings."""
        try:
            self.device.update_settings(new_settings)
            _LOGGER.info(
                "Updated settings of %s (power entity: %s)",
                self.entity_id,
                self.get_power_entity_id(),
            )
        except Exception as err:
            _LOGGER.error("Error applying settings to %s: %s", self.entity_id, err)

    # ------------------------------------------------------------------
    # Entity update
    # ------------------------------------------------------------------

    async def _async_project(
        self, event: EntityUpdateEvent, config: Mapping[str, Any] | None
    ) -> None:
        attributes = event.attributes
        unit = self._unit_system(config).get("temperature")

        if event.state is not None:
            await self._async_step(
                "availability",
                self._async_set_value,
                CAP_CLIMATE_ON,
                event.state not in (STATE_UNAVAILABLE, STATE_OFF),
            )
        await self._async_step(
            ATTR_CURRENT_TEMPERATURE,
            self._async_project_temperature,
            CAP_MEASURE_TEMPERATURE,
            attributes.get(ATTR_CURRENT_TEMPERATURE),
            unit,
        )
        await self._async_step(
            ATTR_TEMPERATURE,
            self._async_project_temperature,
            CAP_TARGET_TEMPERATURE,
            attributes.get(ATTR_TEMPERATURE),
            unit,
        )
        await self._async_step(
            ATTR_CURRENT_HUMIDITY,
            self._async_project_humidity,
            attributes.get(ATTR_CURRENT_HUMIDITY),
        )
        if attributes.get(ATTR_HVAC_ACTION) is not None:
            await self._async_step(
                ATTR_HVAC_ACTION,
                self._async_set_value,
                CAP_CLIMATE_ACTION,
                attributes[ATTR_HVAC_ACTION],
            )

        for attribute, capability in MODE_LIST_ATTRIBUTES.items():
            await self._async_step(
                attribute,
                self._async_project_mode_list,
                capability,
                attributes.get(attribute),
            )

        if _is_reported(event.state):
            await self._async_step(
                "state", self._async_set_value, CAP_CLIMATE_MODE, event.state
            )
        if _is_reported(attributes.get(ATTR_FAN_MODE)):
            await self._async_step(
                ATTR_FAN_MODE,
                self._async_set_value,
                CAP_CLIMATE_MODE_FAN,
                attributes[ATTR_FAN_MODE],
            )
        if _is_reported(attributes.get(ATTR_PRESET_MODE)):
            await self._async_step(
                ATTR_PRESET_MODE,
                self._async_set_value,
                CAP_CLIMATE_MODE_PRESET,
                attributes[ATTR_PRESET_MODE],
            )
        if _is_reported(attributes.get(ATTR_SWING_MODE)):
            swing_attribute = self.device.get_setting(
                CONF_SWING_MODE_ATTRIBUTE, DEFAULT_SWING_MODE_ATTRIBUTE
            )
            await self._async_step(
                ATTR_SWING_MODE,
                self._async_set_value,
                CAP_CLIMATE_MODE_SWING,
                attributes.get(swing_attribute),
            )

    async def _async_project_temperature(
        self, capability: str, value: Any, unit: str | None
    ) -> None:
        if not _is_reported(value):
            return
        await self._async_set_value(
            capability, hub_temperature_to_celsius(value, unit)
        )

    async def _async_project_humidity(self, value: Any) -> None:
        if value is None or value in (STATE_OFF, STATE_UNAVAILABLE):
            return
        await self._async_set_value(CAP_MEASURE_HUMIDITY, value)

    async def _async_project_mode_list(self, capability: str, modes: Any) -> None:
        """Replace a cached mode list and push it when its content changed."""
        if modes is None:
            return
        if not isinstance(modes, (list, tuple)):
            _LOGGER.warning(
                "Ignoring %s options for %s: expected a list, got %r",
                capability,
                self.entity_id,
                modes,
            )
            return
        modes = list(modes)
        if modes == self._mode_lists[capability]:
            return
        if self.device.has_capability(capability):
            await self.device.async_set_capability_enum_list(capability, modes)
        self._mode_lists[capability] = modes

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    async def _async_on_target_temperature(
        self, value: Any, opts: dict[str, Any]
    ) -> None:
        await self._async_call_service(
            SERVICE_SET_TEMPERATURE, **{ATTR_TEMPERATURE: value}
        )

    async def _async_on_climate_mode(self, value: Any, opts: dict[str, Any]) -> None:
        await self._async_call_service(
            SERVICE_SET_HVAC_MODE, **{ATTR_HVAC_MODE: value}
        )

    async def _async_on_climate_mode_fan(
        self, value: Any, opts: dict[str, Any]
    ) -> None:
        await self._async_call_service(
            SERVICE_SET_FAN_MODE, **{ATTR_FAN_MODE: value}
        )

    async def _async_on_climate_mode_preset(
        self, value: Any, opts: dict[str, Any]
    ) -> None:
        await self._async_call_service(
            SERVICE_SET_PRESET_MODE, **{ATTR_PRESET_MODE: value}
        )

    async def _async_on_climate_mode_swing(
        self, value: Any, opts: dict[str, Any]
    ) -> None:
        await self._async_call_service(
            SERVICE_SET_SWING_MODE, **{ATTR_SWING_MODE: value}
        )

    # ------------------------------------------------------------------
    # Option lists & flow actions
    # ------------------------------------------------------------------

    async def async_set_mode(self, mode: str) -> None:
        """Set the hvac mode."""
        await self._async_on_climate_mode(mode, {})

    async def async_set_mode_fan(self, mode: str) -> None:
        """Set the fan mode."""
        await self._async_on_climate_mode_fan(mode, {})

    async def async_set_mode_preset(self, mode: str) -> None:
        """Set the preset mode."""
        await self._async_on_climate_mode_preset(mode, {})

    async def async_set_mode_swing(self, mode: str) -> None:
        """Set the swing mode."""
        await self._async_on_climate_mode_swing(mode, {})

    def get_modes_fan_list(self) -> list[dict[str, Any]]:
        """Return the fan modes as option pairs."""
        return self._get_option_list(CAP_CLIMATE_MODE_FAN, "fan")

    def get_modes_preset_list(self) -> list[dict[str, Any]]:
        """Return the preset modes as option pairs."""
        return self._get_option_list(CAP_CLIMATE_MODE_PRESET, "preset")

    def get_modes_swing_list(self) -> list[dict[str, Any]]:
        """Return the swing modes as option pairs."""
        return self._get_option_list(CAP_CLIMATE_MODE_SWING, "swing")

    def _get_option_list(self, capability: str, label: str) -> list[dict[str, Any]]:
        try:
            return build_option_list(self._mode_lists[capability])
        except Exception as err:
            _LOGGER.error(
                "Error reading %s list for %s: %s", label, self.entity_id, err
            )
            return []
