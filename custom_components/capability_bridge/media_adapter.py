"""Media player adapter for Capability Bridge."""
from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

from homeassistant.components.media_player.const import (
    ATTR_APP_NAME,
    ATTR_INPUT_SOURCE,
    ATTR_INPUT_SOURCE_LIST,
    ATTR_MEDIA_ALBUM_NAME,
    ATTR_MEDIA_ARTIST,
    ATTR_MEDIA_DURATION,
    ATTR_MEDIA_POSITION,
    ATTR_MEDIA_REPEAT,
    ATTR_MEDIA_SHUFFLE,
    ATTR_MEDIA_TITLE,
    ATTR_MEDIA_VOLUME_LEVEL,
    ATTR_MEDIA_VOLUME_MUTED,
    ATTR_SOUND_MODE,
    ATTR_SOUND_MODE_LIST,
    DOMAIN as MEDIA_PLAYER_DOMAIN,
    SERVICE_SELECT_SOUND_MODE,
    SERVICE_SELECT_SOURCE,
    MediaPlayerState,
    RepeatMode,
)
from homeassistant.const import (
    SERVICE_MEDIA_NEXT_TRACK,
    SERVICE_MEDIA_PAUSE,
    SERVICE_MEDIA_PLAY,
    SERVICE_MEDIA_PREVIOUS_TRACK,
    SERVICE_REPEAT_SET,
    SERVICE_SHUFFLE_SET,
    SERVICE_TURN_OFF,
    SERVICE_TURN_ON,
    SERVICE_VOLUME_MUTE,
    SERVICE_VOLUME_SET,
)
from homeassistant.helpers.json import json_dumps
from homeassistant.util.json import json_loads

from .adapter import DeviceAdapter, EntityUpdateEvent, build_option_list
from .const import (
    CAP_ONOFF,
    CAP_SPEAKER_ALBUM,
    CAP_SPEAKER_ARTIST,
    CAP_SPEAKER_DURATION,
    CAP_SPEAKER_NEXT,
    CAP_SPEAKER_PLAYING,
    CAP_SPEAKER_POSITION,
    CAP_SPEAKER_PREV,
    CAP_SPEAKER_REPEAT,
    CAP_SPEAKER_SHUFFLE,
    CAP_SPEAKER_TRACK,
    CAP_VOLUME_DOWN,
    CAP_VOLUME_MUTE,
    CAP_VOLUME_SET,
    CAP_VOLUME_UP,
    CONF_REPEAT_PAYLOAD_KEY,
    DEFAULT_REPEAT_PAYLOAD_KEY,
    STORE_CAN_SELECT_SOUND_MODE,
    STORE_CAN_SELECT_SOURCE,
    STORE_SOUND_MODE_LIST,
    STORE_SOURCE_LIST,
    VOLUME_STEP,
)
from .device import CapabilityListener

_LOGGER = logging.getLogger(__name__)

# speaker_repeat capability values
REPEAT_NONE = "none"
REPEAT_TRACK = "track"
REPEAT_PLAYLIST = "playlist"

HUB_TO_CAPABILITY_REPEAT: dict[str, str] = {
    RepeatMode.OFF: REPEAT_NONE,
    RepeatMode.ONE: REPEAT_TRACK,
    RepeatMode.ALL: REPEAT_PLAYLIST,
}
CAPABILITY_TO_HUB_REPEAT: dict[str, str] = {
    REPEAT_NONE: RepeatMode.OFF,
    REPEAT_TRACK: RepeatMode.ONE,
    REPEAT_PLAYLIST: RepeatMode.ALL,
}

# Hub states reported as powered on; anything else is off
ON_STATES = frozenset(
    {
        MediaPlayerState.ON,
        MediaPlayerState.IDLE,
        MediaPlayerState.PLAYING,
        MediaPlayerState.PAUSED,
        MediaPlayerState.BUFFERING,
    }
)


def hub_repeat_to_capability(repeat: Any) -> str:
    """Map a hub repeat mode to a speaker_repeat value."""
    return HUB_TO_CAPABILITY_REPEAT.get(repeat, REPEAT_NONE)


def capability_repeat_to_hub(repeat: Any) -> str:
    """Map a speaker_repeat value to a hub repeat mode."""
    return CAPABILITY_TO_HUB_REPEAT.get(repeat, RepeatMode.OFF)


def hub_state_to_onoff(state: str | None) -> bool:
    """Map a hub media player state to the onoff capability."""
    return state in ON_STATES


def decode_option_list(raw: Any) -> list[Any]:
    """Decode a stored option list: JSON first, then a comma separated string."""
    if isinstance(raw, list):
        values: Any = raw
    else:
        try:
            values = json_loads(raw)
        except (ValueError, TypeError):
            values = None
        if not isinstance(values, list):
            values = raw.split(",") if isinstance(raw, str) else []
    return [value for value in values if value not in (None, "")]


class MediaAdapter(DeviceAdapter):
    """Project a media player entity onto media capabilities and back.

    Media devices carry a variable capability subset, so write handlers are
    only registered for capabilities present when the adapter starts. The
    source and sound mode lists are kept in the device store so the option
    accessors work right after a restart, before any update has arrived.
    """

    domain = MEDIA_PLAYER_DOMAIN
    gate_listeners = True

    def _capability_listeners(self) -> dict[str, CapabilityListener]:
        return {
            **super()._capability_listeners(),
            CAP_ONOFF: self._async_on_onoff,
            CAP_VOLUME_SET: self._async_on_volume_set,
            CAP_VOLUME_UP: self._async_on_volume_up,
            CAP_VOLUME_DOWN: self._async_on_volume_down,
            CAP_VOLUME_MUTE: self._async_on_volume_mute,
            CAP_SPEAKER_PLAYING: self._async_on_speaker_playing,
            CAP_SPEAKER_NEXT: self._async_on_speaker_next,
            CAP_SPEAKER_PREV: self._async_on_speaker_prev,
            CAP_SPEAKER_SHUFFLE: self._async_on_speaker_shuffle,
            CAP_SPEAKER_REPEAT: self._async_on_speaker_repeat,
        }

    # ------------------------------------------------------------------
    # Entity update
    # ------------------------------------------------------------------

    async def _async_project(
        self, event: EntityUpdateEvent, config: Mapping[str, Any] | None
    ) -> None:
        attributes = event.attributes

        await self._async_step(
            ATTR_MEDIA_VOLUME_LEVEL,
            self._async_project_volume,
            attributes.get(ATTR_MEDIA_VOLUME_LEVEL),
        )
        if attributes.get(ATTR_MEDIA_VOLUME_MUTED) is not None:
            await self._async_step(
                ATTR_MEDIA_VOLUME_MUTED,
                self._async_set_value,
                CAP_VOLUME_MUTE,
                attributes[ATTR_MEDIA_VOLUME_MUTED],
            )
        if event.state is not None:
            await self._async_step(
                "playing",
                self._async_set_value,
                CAP_SPEAKER_PLAYING,
                event.state == MediaPlayerState.PLAYING,
            )

        shuffle = attributes.get(ATTR_MEDIA_SHUFFLE)
        await self._async_step(
            ATTR_MEDIA_SHUFFLE,
            self._async_set_value,
            CAP_SPEAKER_SHUFFLE,
            shuffle if shuffle is not None else False,
        )
        await self._async_step(
            ATTR_MEDIA_REPEAT,
            self._async_set_value,
            CAP_SPEAKER_REPEAT,
            hub_repeat_to_capability(attributes.get(ATTR_MEDIA_REPEAT)),
        )

        artist = attributes.get(ATTR_MEDIA_ARTIST)
        await self._async_step(
            ATTR_MEDIA_ARTIST,
            self._async_set_value,
            CAP_SPEAKER_ARTIST,
            artist if artist is not None else "",
        )
        album = attributes.get(ATTR_MEDIA_ALBUM_NAME)
        if album is None:
            album = attributes.get(ATTR_APP_NAME)
        if album is not None:
            await self._async_step(
                ATTR_MEDIA_ALBUM_NAME, self._async_set_value, CAP_SPEAKER_ALBUM, album
            )
        title = attributes.get(ATTR_MEDIA_TITLE)
        await self._async_step(
            ATTR_MEDIA_TITLE,
            self._async_set_value,
            CAP_SPEAKER_TRACK,
            title if title is not None else "",
        )
        for attribute, capability in (
            (ATTR_MEDIA_DURATION, CAP_SPEAKER_DURATION),
            (ATTR_MEDIA_POSITION, CAP_SPEAKER_POSITION),
        ):
            if attributes.get(attribute) is not None:
                await self._async_step(
                    attribute, self._async_set_value, capability, attributes[attribute]
                )

        if event.state is not None:
            await self._async_step(
                "state",
                self._async_set_value,
                CAP_ONOFF,
                hub_state_to_onoff(event.state),
            )

        await self._async_step(
            ATTR_INPUT_SOURCE_LIST,
            self._async_store_option_list,
            STORE_SOURCE_LIST,
            STORE_CAN_SELECT_SOURCE,
            attributes.get(ATTR_INPUT_SOURCE_LIST),
        )
        await self._async_step(
            ATTR_SOUND_MODE_LIST,
            self._async_store_option_list,
            STORE_SOUND_MODE_LIST,
            STORE_CAN_SELECT_SOUND_MODE,
            attributes.get(ATTR_SOUND_MODE_LIST),
        )

    async def _async_project_volume(self, level: Any) -> None:
        if level is None or not self.device.has_capability(CAP_VOLUME_SET):
            return
        convert = self.device.input_converter(CAP_VOLUME_SET)
        await self.device.async_set_capability_value(
            CAP_VOLUME_SET, round(convert(level), 2)
        )

    async def _async_store_option_list(
        self, list_key: str, flag_key: str, values: Any
    ) -> None:
        if values is None:
            await self.device.async_set_store_value(list_key, "")
            await self.device.async_set_store_value(flag_key, False)
        elif not isinstance(values, (list, tuple)):
            _LOGGER.warning(
                "Ignoring %s for %s: expected a list, got %r",
                list_key,
                self.entity_id,
                values,
            )
        else:
            await self.device.async_set_store_value(list_key, json_dumps(list(values)))
            await self.device.async_set_store_value(flag_key, True)

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    async def _async_on_onoff(self, value: Any, opts: dict[str, Any]) -> None:
        await self._async_call_service(SERVICE_TURN_ON if value else SERVICE_TURN_OFF)

    async def _async_on_volume_set(self, value: Any, opts: dict[str, Any]) -> None:
        volume = round(self.device.output_converter(CAP_VOLUME_SET)(value), 2)
        await self._async_call_service(
            SERVICE_VOLUME_SET, **{ATTR_MEDIA_VOLUME_LEVEL: volume}
        )

    async def _async_on_volume_up(self, value: Any, opts: dict[str, Any]) -> None:
        # Baseline is the last reported volume, not any in-flight command
        volume = self.device.get_capability_value(CAP_VOLUME_SET) or 0.0
        await self._async_on_volume_set(min(1.0, volume + VOLUME_STEP), opts)

    async def _async_on_volume_down(self, value: Any, opts: dict[str, Any]) -> None:
        volume = self.device.get_capability_value(CAP_VOLUME_SET) or 0.0
        await self._async_on_volume_set(max(0.0, volume - VOLUME_STEP), opts)

    async def _async_on_volume_mute(self, value: Any, opts: dict[str, Any]) -> None:
        await self._async_call_service(
            SERVICE_VOLUME_MUTE, **{ATTR_MEDIA_VOLUME_MUTED: value}
        )

    async def _async_on_speaker_playing(
        self, value: Any, opts: dict[str, Any]
    ) -> None:
        await self._async_call_service(
            SERVICE_MEDIA_PLAY if value else SERVICE_MEDIA_PAUSE
        )

    async def _async_on_speaker_next(self, value: Any, opts: dict[str, Any]) -> None:
        await self._async_call_service(SERVICE_MEDIA_NEXT_TRACK)

    async def _async_on_speaker_prev(self, value: Any, opts: dict[str, Any]) -> None:
        await self._async_call_service(SERVICE_MEDIA_PREVIOUS_TRACK)

    async def _async_on_speaker_shuffle(
        self, value: Any, opts: dict[str, Any]
    ) -> None:
        await self._async_call_service(
            SERVICE_SHUFFLE_SET, **{ATTR_MEDIA_SHUFFLE: value}
        )

    async def _async_on_speaker_repeat(
        self, value: Any, opts: dict[str, Any]
    ) -> None:
        payload_key = self.device.get_setting(
            CONF_REPEAT_PAYLOAD_KEY, DEFAULT_REPEAT_PAYLOAD_KEY
        )
        await self._async_call_service(
            SERVICE_REPEAT_SET, **{payload_key: capability_repeat_to_hub(value)}
        )

    # ------------------------------------------------------------------
    # Option lists & flow actions
    # ------------------------------------------------------------------

    def get_source_list(self) -> list[dict[str, Any]]:
        """Return the selectable sources as option pairs."""
        return self._get_stored_option_list(STORE_CAN_SELECT_SOURCE, STORE_SOURCE_LIST)

    def get_sound_mode_list(self) -> list[dict[str, Any]]:
        """Return the selectable sound modes as option pairs."""
        return self._get_stored_option_list(
            STORE_CAN_SELECT_SOUND_MODE, STORE_SOUND_MODE_LIST
        )

    def _get_stored_option_list(
        self, flag_key: str, list_key: str
    ) -> list[dict[str, Any]]:
        try:
            if self.device.get_store_value(flag_key) is not True:
                return []
            raw = self.device.get_store_value(list_key)
            if raw is None:
                return []
            return build_option_list(decode_option_list(raw))
        except Exception as err:
            _LOGGER.error(
                "Error reading %s for %s: %s", list_key, self.entity_id, err
            )
            return []

    async def async_set_source(self, source: str) -> None:
        """Select an input source; failures propagate to the caller."""
        await self._async_call_service(
            SERVICE_SELECT_SOURCE, **{ATTR_INPUT_SOURCE: source}
        )

    async def async_set_sound_mode(self, mode: str) -> None:
        """Select a sound mode; failures propagate to the caller."""
        await self._async_call_service(
            SERVICE_SELECT_SOUND_MODE, **{ATTR_SOUND_MODE: mode}
        )
