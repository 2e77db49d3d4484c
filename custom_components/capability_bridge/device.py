"""Capability device representation for Capability Bridge."""
from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from homeassistant.core import split_entity_id
from homeassistant.util import dt as dt_util

Converter = Callable[[Any], Any]
CapabilityListener = Callable[[Any, dict[str, Any]], Awaitable[Any]]


class UnknownCapabilityError(KeyError):
    """Raised when a device is asked to use a capability it does not carry."""


def _identity(value: Any) -> Any:
    return value


@dataclass
class CapabilityDevice:
    """A local device built from typed capabilities, bound to one hub entity.

    Capability existence is dynamic: the ``capabilities`` list is the set of
    tags the device currently carries and every write is checked against it.
    ``store`` holds persisted side-channel values that survive restarts, while
    capability values and option lists live only in memory.
    """

    entity_id: str
    name: str
    capabilities: list[str] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)
    store: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    modified_at: str = ""

    def __post_init__(self) -> None:
        """Set timestamps and runtime state."""
        now = dt_util.utcnow().isoformat()
        if not self.created_at:
            self.created_at = now
        if not self.modified_at:
            self.modified_at = now

        self._values: dict[str, Any] = {}
        self._enum_lists: dict[str, list[str]] = {}
        self._listeners: dict[str, CapabilityListener] = {}
        self._input_converters: dict[str, Converter] = {}
        self._output_converters: dict[str, Converter] = {}
        self._on_store_changed: Callable[[], None] | None = None

    @property
    def domain(self) -> str:
        """Return the hub domain of the bound entity."""
        return split_entity_id(self.entity_id)[0]

    @property
    def object_id(self) -> str:
        """Return the object id of the bound entity."""
        return split_entity_id(self.entity_id)[1]

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Return a device setting."""
        return self.settings.get(key, default)

    def update_settings(self, settings: dict[str, Any]) -> None:
        """Replace the device settings."""
        self.settings = dict(settings)
        self.modified_at = dt_util.utcnow().isoformat()

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    def has_capability(self, capability: str) -> bool:
        """Check if the device carries a capability."""
        return capability in self.capabilities

    async def async_add_capability(self, capability: str) -> None:
        """Add a capability to the device."""
        if capability in self.capabilities:
            return
        self.capabilities.append(capability)
        self.modified_at = dt_util.utcnow().isoformat()
        self._notify_store_changed()

    def get_capability_value(self, capability: str) -> Any:
        """Return the last value written to a capability."""
        return self._values.get(capability)

    async def async_set_capability_value(self, capability: str, value: Any) -> None:
        """Write a capability value."""
        if not self.has_capability(capability):
            raise UnknownCapabilityError(capability)
        self._values[capability] = value

    def get_capability_enum_list(self, capability: str) -> list[str]:
        """Return the enumerated options currently set for a capability."""
        return list(self._enum_lists.get(capability, []))

    async def async_set_capability_enum_list(
        self, capability: str, values: Iterable[str]
    ) -> None:
        """Replace the enumerated options of a capability."""
        if not self.has_capability(capability):
            raise UnknownCapabilityError(capability)
        self._enum_lists[capability] = list(values)

    # ------------------------------------------------------------------
    # Unit conversion
    # ------------------------------------------------------------------

    def set_unit_converters(
        self,
        capability: str,
        input_converter: Converter | None = None,
        output_converter: Converter | None = None,
    ) -> None:
        """Install conversion hooks for a capability."""
        if input_converter is not None:
            self._input_converters[capability] = input_converter
        if output_converter is not None:
            self._output_converters[capability] = output_converter

    def input_converter(self, capability: str) -> Converter:
        """Return the hub-to-capability conversion for a capability."""
        return self._input_converters.get(capability, _identity)

    def output_converter(self, capability: str) -> Converter:
        """Return the capability-to-hub conversion for a capability."""
        return self._output_converters.get(capability, _identity)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def register_capability_listener(
        self, capability: str, listener: CapabilityListener
    ) -> None:
        """Register the write handler of a capability."""
        self._listeners[capability] = listener

    def has_capability_listener(self, capability: str) -> bool:
        """Check if a write handler is registered for a capability."""
        return capability in self._listeners

    async def async_trigger_capability_listener(
        self, capability: str, value: Any, opts: dict[str, Any] | None = None
    ) -> Any:
        """Run the write handler of a capability.

        Failures of the handler propagate to the caller unchanged.
        """
        listener = self._listeners.get(capability)
        if listener is None:
            raise UnknownCapabilityError(capability)
        return await listener(value, opts or {})

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def get_store_value(self, key: str) -> Any:
        """Return a persisted store value."""
        return self.store.get(key)

    async def async_set_store_value(self, key: str, value: Any) -> None:
        """Write a persisted store value."""
        self.store[key] = value
        self._notify_store_changed()

    def set_store_listener(self, listener: Callable[[], None] | None) -> None:
        """Set the callback invoked whenever persisted data changes."""
        self._on_store_changed = listener

    def _notify_store_changed(self) -> None:
        if self._on_store_changed is not None:
            self._on_store_changed()

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "entity_id": self.entity_id,
            "name": self.name,
            "capabilities": list(self.capabilities),
            "settings": dict(self.settings),
            "store": dict(self.store),
            "created_at": self.created_at,
            "modified_at": self.modified_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CapabilityDevice:
        """Create from dictionary data."""
        return cls(
            entity_id=data["entity_id"],
            name=data.get("name", data["entity_id"]),
            capabilities=list(data.get("capabilities", [])),
            settings=dict(data.get("settings", {})),
            store=dict(data.get("store", {})),
            created_at=data.get("created_at", ""),
            modified_at=data.get("modified_at", ""),
        )
