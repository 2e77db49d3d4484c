"""Command client issuing hub service calls for Capability Bridge."""
from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging
from typing import Any

from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)


class HassServiceClient:
    """Issue service calls against Home Assistant and expose its configuration."""

    def __init__(
        self,
        hass: HomeAssistant,
        reconnect: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize the client."""
        self.hass = hass
        self._reconnect = reconnect

    async def async_call_service(
        self, domain: str, service: str, data: dict[str, Any]
    ) -> None:
        """Call a hub service; errors propagate to the caller."""
        _LOGGER.debug("Calling %s.%s with %s", domain, service, data)
        await self.hass.services.async_call(domain, service, data, blocking=True)

    def get_config(self) -> dict[str, Any]:
        """Return the hub configuration, including ``unit_system``."""
        return self.hass.config.as_dict()

    async def async_reconnect(self) -> None:
        """Re-establish the entity update subscription."""
        if self._reconnect is None:
            _LOGGER.warning("Reconnect requested but no reconnect handler is set")
            return
        _LOGGER.info("Reconnecting to hub entity updates")
        await self._reconnect()
