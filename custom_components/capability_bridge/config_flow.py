"""Config flow for Capability Bridge integration."""
import logging
from typing import Any

import voluptuous as vol

from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.core import callback
from homeassistant.helpers import selector

from .const import (
    CONF_ADD_POWER_ENTITY,
    CONF_POWER_ENTITY,
    CONF_REPEAT_PAYLOAD_KEY,
    CONF_SWING_MODE_ATTRIBUTE,
    DEFAULT_REPEAT_PAYLOAD_KEY,
    DEFAULT_SWING_MODE_ATTRIBUTE,
    DOMAIN,
    SUPPORTED_DOMAINS,
)

_LOGGER = logging.getLogger(__name__)


class CapabilityBridgeConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Capability Bridge."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle the initial step."""
        # Only allow a single instance of the integration
        await self.async_set_unique_id(DOMAIN)
        self._abort_if_unique_id_configured()

        if user_input is not None:
            return self.async_create_entry(title="Capability Bridge", data={})

        return self.async_show_form(step_id="user", data_schema=vol.Schema({}))

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: ConfigEntry,
    ) -> OptionsFlow:
        """Get the options flow for this handler."""
        return CapabilityBridgeOptionsFlow()


class CapabilityBridgeOptionsFlow(OptionsFlow):
    """Handle options flow for Capability Bridge."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Show the main options menu with device overview."""
        devices = self._get_device_manager().get_all_devices()

        if devices:
            device_list = "\n".join(
                f"{device.name} > {device.entity_id}"
                for device in sorted(devices, key=lambda d: d.entity_id)
            )
        else:
            device_list = "No devices configured yet."

        return self.async_show_menu(
            step_id="init",
            menu_options=["add_device", "delete_device", "device_settings"],
            description_placeholders={"device_list": device_list},
        )

    # ------------------------------------------------------------------
    # Add device
    # ------------------------------------------------------------------

    async def async_step_add_device(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Bind a new capability device to an entity."""
        errors: dict[str, str] = {}

        if user_input is not None:
            try:
                await self._get_device_manager().async_create_device(
                    user_input["entity_id"], user_input.get("name")
                )
                return self.async_create_entry(
                    title="", data=self.config_entry.options
                )

            except ValueError as err:
                _LOGGER.warning(
                    "Could not add device for %s: %s", user_input["entity_id"], err
                )
                error_msg = str(err)
                if "already linked" in error_msg:
                    errors["base"] = "entity_already_linked"
                elif "not valid" in error_msg:
                    errors["base"] = "entity_invalid"
                else:
                    errors["base"] = "create_failed"

        data_schema = vol.Schema(
            {
                vol.Required("entity_id"): selector.EntitySelector(
                    selector.EntitySelectorConfig(domain=SUPPORTED_DOMAINS)
                ),
                vol.Optional("name"): str,
            }
        )

        return self.async_show_form(
            step_id="add_device",
            data_schema=data_schema,
            errors=errors,
        )

    # ------------------------------------------------------------------
    # Delete device
    # ------------------------------------------------------------------

    async def async_step_delete_device(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Remove a device."""
        device_manager = self._get_device_manager()

        if not device_manager.get_all_devices():
            return self.async_abort(reason="no_devices")

        if user_input is not None:
            if await device_manager.async_delete_device(user_input["entity_id"]):
                return self.async_create_entry(
                    title="", data=self.config_entry.options
                )
            return self.async_abort(reason="device_not_found")

        return self.async_show_form(
            step_id="delete_device",
            data_schema=self._device_select_schema(),
        )

    # ------------------------------------------------------------------
    # Device settings
    # ------------------------------------------------------------------

    async def async_step_device_settings(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Step 1: select which device to configure."""
        if not self._get_device_manager().get_all_devices():
            return self.async_abort(reason="no_devices")

        if user_input is not None:
            self._editing_entity_id = user_input["entity_id"]
            return await self.async_step_device_settings_details()

        return self.async_show_form(
            step_id="device_settings",
            data_schema=self._device_select_schema(),
        )

    async def async_step_device_settings_details(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Step 2: edit the selected device's settings."""
        device_manager = self._get_device_manager()

        entity_id: str | None = getattr(self, "_editing_entity_id", None)
        device = device_manager.get_device(entity_id) if entity_id else None
        if device is None:
            return self.async_abort(reason="device_not_found")

        if user_input is not None:
            settings = {
                key: val
                for key, val in user_input.items()
                if val is not None and val != ""
            }
            await device_manager.async_update_device_settings(entity_id, settings)
            return self.async_create_entry(title="", data=self.config_entry.options)

        schema_dict: dict[vol.Marker, Any] = {}
        if device.domain == "climate":
            schema_dict[
                vol.Optional(
                    CONF_ADD_POWER_ENTITY,
                    default=device.get_setting(CONF_ADD_POWER_ENTITY, False),
                )
            ] = bool
            power_entity = device.get_setting(CONF_POWER_ENTITY)
            power_selector = selector.EntitySelector(
                selector.EntitySelectorConfig(domain="climate")
            )
            if power_entity:
                schema_dict[
                    vol.Optional(CONF_POWER_ENTITY, default=power_entity)
                ] = power_selector
            else:
                schema_dict[vol.Optional(CONF_POWER_ENTITY)] = power_selector
            schema_dict[
                vol.Optional(
                    CONF_SWING_MODE_ATTRIBUTE,
                    default=device.get_setting(
                        CONF_SWING_MODE_ATTRIBUTE, DEFAULT_SWING_MODE_ATTRIBUTE
                    ),
                )
            ] = str
        else:
            schema_dict[
                vol.Optional(
                    CONF_REPEAT_PAYLOAD_KEY,
                    default=device.get_setting(
                        CONF_REPEAT_PAYLOAD_KEY, DEFAULT_REPEAT_PAYLOAD_KEY
                    ),
                )
            ] = str

        return self.async_show_form(
            step_id="device_settings_details",
            data_schema=vol.Schema(schema_dict),
            description_placeholders={
                "entity_id": device.entity_id,
                "device_name": device.name,
            },
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _device_select_schema(self) -> vol.Schema:
        devices = self._get_device_manager().get_all_devices()
        device_options = [
            {"value": d.entity_id, "label": f"{d.name} ({d.entity_id})"}
            for d in sorted(devices, key=lambda d: d.entity_id)
        ]
        return vol.Schema(
            {
                vol.Required("entity_id"): selector.SelectSelector(
                    selector.SelectSelectorConfig(
                        options=device_options,
                        mode=selector.SelectSelectorMode.DROPDOWN,
                    )
                ),
            }
        )

    def _get_device_manager(self):
        """Get the device manager for this config entry."""
        return self.hass.data[DOMAIN][self.config_entry.entry_id]["device_manager"]
