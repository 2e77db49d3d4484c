"""Shared device adapter plumbing for Capability Bridge.

A device adapter binds one hub entity to one ``CapabilityDevice``. Inbound
entity updates are projected onto capability values, and capability writes
are projected into hub service calls.
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
import logging
from typing import Any, Protocol

from homeassistant.const import ATTR_ENTITY_ID
from homeassistant.core import State

from .const import CAP_RECONNECT
from .device import CapabilityDevice, CapabilityListener

_LOGGER = logging.getLogger(__name__)


class CommandClient(Protocol):
    """Interface of the client adapters issue commands through."""

    async def async_call_service(
        self, domain: str, service: str, data: dict[str, Any]
    ) -> None:
        """Call a hub service."""

    def get_config(self) -> dict[str, Any]:
        """Return the hub configuration."""

    async def async_reconnect(self) -> None:
        """Re-establish the hub connection."""


@dataclass(frozen=True)
class EntityUpdateEvent:
    """An entity state update pushed by the hub."""

    entity_id: str
    state: str | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_state(cls, state: State) -> EntityUpdateEvent:
        """Create from a Home Assistant state object."""
        return cls(
            entity_id=state.entity_id,
            state=state.state,
            attributes=dict(state.attributes),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EntityUpdateEvent:
        """Create from a raw ``{entity_id, state, attributes}`` mapping."""
        return cls(
            entity_id=data["entity_id"],
            state=data.get("state"),
            attributes=dict(data.get("attributes") or {}),
        )


def build_option_list(values: Iterable[Any]) -> list[dict[str, Any]]:
    """Project option values onto ``{id, name}`` pairs for option pickers."""
    return [{"id": value, "name": value} for value in values]


class DeviceAdapter:
    """Base class for the per-domain adapters."""

    domain: str = ""
    # Capabilities ensured by async_update_capabilities
    required_capabilities: tuple[str, ...] = (CAP_RECONNECT,)
    # Register write handlers only for capabilities the device carries
    gate_listeners: bool = False

    def __init__(self, device: CapabilityDevice, client: CommandClient) -> None:
        """Initialize the adapter."""
        self.device = device
        self.client = client

    @property
    def entity_id(self) -> str:
        """Return the bound entity id."""
        return self.device.entity_id

    async def async_init(self) -> None:
        """Register capability listeners and ensure required capabilities."""
        self._register_capability_listeners()
        await self.async_update_capabilities()

    def _capability_listeners(self) -> dict[str, CapabilityListener]:
        """Return the write handler of each capability."""
        return {CAP_RECONNECT: self._async_on_reconnect}

    def _register_capability_listeners(self) -> None:
        for capability, listener in self._capability_listeners().items():
            if (
                self.gate_listeners
                and capability != CAP_RECONNECT
                and not self.device.has_capability(capability)
            ):
                continue
            self.device.register_capability_listener(capability, listener)

    async def async_update_capabilities(self) -> None:
        """Add required capabilities that are missing. Safe to call repeatedly."""
        try:
            for capability in self.required_capabilities:
                if not self.device.has_capability(capability):
                    await self.device.async_add_capability(capability)
        except Exception as err:
            _LOGGER.error(
                "Error adding capability to %s: %s", self.entity_id, err
            )

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def async_on_entity_update(
        self,
        event: EntityUpdateEvent | None,
        config: Mapping[str, Any] | None = None,
    ) -> None:
        """Project an entity update onto the device capabilities.

        ``config`` is the hub configuration; it is read from the client when
        not given. Events for other entities are ignored.
        """
        if event is None or event.entity_id != self.entity_id:
            return
        await self._async_project(event, config)

    async def _async_project(
        self, event: EntityUpdateEvent, config: Mapping[str, Any] | None
    ) -> None:
        raise NotImplementedError

    async def _async_step(
        self, step: str, func: Callable[..., Awaitable[Any]], *args: Any
    ) -> None:
        """Run one projection step, logging and swallowing its failure."""
        try:
            await func(*args)
        except Exception as err:
            _LOGGER.error(
                "Error projecting %s for %s: %s", step, self.entity_id, err
            )

    async def _async_set_value(self, capability: str, value: Any) -> None:
        """Write a capability value if the device carries the capability."""
        if self.device.has_capability(capability):
            await self.device.async_set_capability_value(capability, value)

    def _unit_system(self, config: Mapping[str, Any] | None) -> Mapping[str, Any]:
        if config is None:
            try:
                config = self.client.get_config()
            except Exception as err:
                _LOGGER.debug("Hub configuration unavailable: %s", err)
                return {}
        return (config or {}).get("unit_system") or {}

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def _async_call_service(self, service: str, **fields: Any) -> None:
        """Call a service of the adapter's domain against the bound entity."""
        await self.client.async_call_service(
            self.domain, service, {ATTR_ENTITY_ID: self.entity_id, **fields}
        )

    async def _async_on_reconnect(self, value: Any, opts: dict[str, Any]) -> None:
        await self.client.async_reconnect()
