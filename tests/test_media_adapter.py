"""Tests for the media player adapter."""
import json
import logging
from unittest.mock import AsyncMock

import pytest

from custom_components.capability_bridge.adapter import EntityUpdateEvent
from custom_components.capability_bridge.device import (
    CapabilityDevice,
    UnknownCapabilityError,
)
from custom_components.capability_bridge.media_adapter import (
    MediaAdapter,
    capability_repeat_to_hub,
    decode_option_list,
    hub_repeat_to_capability,
    hub_state_to_onoff,
)

ENTITY_ID = "media_player.kitchen"


def update(state="playing", entity_id=ENTITY_ID, **attributes):
    return EntityUpdateEvent(entity_id=entity_id, state=state, attributes=attributes)


def calls(client):
    return [call.args for call in client.async_call_service.await_args_list]


class TestMappings:
    """Pure state and repeat mappings."""

    @pytest.mark.parametrize(
        ("state", "expected"),
        [
            ("on", True),
            ("idle", True),
            ("playing", True),
            ("paused", True),
            ("buffering", True),
            ("off", False),
            ("standby", False),
            ("unavailable", False),
            ("unknown", False),
            (None, False),
        ],
    )
    def test_state_to_onoff(self, state, expected):
        assert hub_state_to_onoff(state) is expected

    @pytest.mark.parametrize(
        ("hub", "capability"),
        [
            ("off", "none"),
            ("one", "track"),
            ("all", "playlist"),
            (None, "none"),
            ("shuffle", "none"),
        ],
    )
    def test_hub_repeat(self, hub, capability):
        assert hub_repeat_to_capability(hub) == capability

    @pytest.mark.parametrize(
        ("capability", "hub"),
        [("none", "off"), ("track", "one"), ("playlist", "all"), ("bogus", "off")],
    )
    def test_capability_repeat(self, capability, hub):
        assert capability_repeat_to_hub(capability) == hub

    def test_decode_json_list(self):
        assert decode_option_list('["HDMI1", "HDMI2"]') == ["HDMI1", "HDMI2"]

    def test_decode_comma_separated(self):
        assert decode_option_list("HDMI1,HDMI2") == ["HDMI1", "HDMI2"]

    def test_decode_drops_empty_entries(self):
        assert decode_option_list("") == []
        assert decode_option_list(["TV", "", None]) == ["TV"]


class TestEntityUpdate:
    """Projection of media player entity updates."""

    @pytest.mark.asyncio
    async def test_full_update(self, media_adapter, media_device):
        await media_adapter.async_on_entity_update(
            update(
                "playing",
                volume_level=0.456,
                is_volume_muted=False,
                shuffle=True,
                repeat="all",
                media_artist="Nina Simone",
                media_album_name="Pastel Blues",
                media_title="Sinnerman",
                media_duration=622,
                media_position=31,
            )
        )

        values = {
            capability: media_device.get_capability_value(capability)
            for capability in (
                "volume_set",
                "volume_mute",
                "speaker_playing",
                "speaker_shuffle",
                "speaker_repeat",
                "speaker_artist",
                "speaker_album",
                "speaker_track",
                "speaker_duration",
                "speaker_position",
                "onoff",
            )
        }
        assert values == {
            "volume_set": 0.46,
            "volume_mute": False,
            "speaker_playing": True,
            "speaker_shuffle": True,
            "speaker_repeat": "playlist",
            "speaker_artist": "Nina Simone",
            "speaker_album": "Pastel Blues",
            "speaker_track": "Sinnerman",
            "speaker_duration": 622,
            "speaker_position": 31,
            "onoff": True,
        }

    @pytest.mark.asyncio
    async def test_absent_attributes_use_defaults(self, media_adapter, media_device):
        await media_adapter.async_on_entity_update(update("paused"))

        assert media_device.get_capability_value("speaker_playing") is False
        assert media_device.get_capability_value("onoff") is True
        assert media_device.get_capability_value("speaker_shuffle") is False
        assert media_device.get_capability_value("speaker_repeat") == "none"
        assert media_device.get_capability_value("speaker_artist") == ""
        assert media_device.get_capability_value("speaker_track") == ""
        assert media_device.get_capability_value("speaker_album") is None
        assert media_device.get_capability_value("volume_set") is None
        assert media_device.get_capability_value("speaker_duration") is None

    @pytest.mark.asyncio
    async def test_album_falls_back_to_app_name(self, media_adapter, media_device):
        await media_adapter.async_on_entity_update(update(app_name="Spotify"))
        assert media_device.get_capability_value("speaker_album") == "Spotify"

    @pytest.mark.asyncio
    async def test_volume_input_converter(self, media_adapter, media_device):
        media_device.set_unit_converters(
            "volume_set", input_converter=lambda v: v * 100
        )

        await media_adapter.async_on_entity_update(update(volume_level=0.3333))

        assert media_device.get_capability_value("volume_set") == 33.33

    @pytest.mark.asyncio
    async def test_missing_state_leaves_power(self, media_adapter, media_device):
        await media_adapter.async_on_entity_update(update(None, volume_level=0.5))

        assert media_device.get_capability_value("onoff") is None
        assert media_device.get_capability_value("speaker_playing") is None
        assert media_device.get_capability_value("volume_set") == 0.5

    @pytest.mark.asyncio
    async def test_missing_capabilities_are_not_written(self, client):
        device = CapabilityDevice(
            entity_id=ENTITY_ID, name="Radio", capabilities=["onoff", "volume_set"]
        )
        adapter = MediaAdapter(device, client)

        await adapter.async_on_entity_update(
            update("playing", volume_level=0.2, media_artist="Anyone")
        )

        assert device.get_capability_value("onoff") is True
        assert device.get_capability_value("volume_set") == 0.2
        assert device.get_capability_value("speaker_artist") is None

    @pytest.mark.asyncio
    async def test_other_entity_is_ignored(self, media_adapter, media_device):
        media_device.async_set_capability_value = AsyncMock()
        media_device.async_set_store_value = AsyncMock()

        await media_adapter.async_on_entity_update(
            update(entity_id="media_player.den", source_list=["TV"])
        )

        media_device.async_set_capability_value.assert_not_awaited()
        media_device.async_set_store_value.assert_not_awaited()


class TestOptionLists:
    """Source and sound mode lists kept in the device store."""

    @pytest.mark.asyncio
    async def test_lists_are_stored(self, media_adapter, media_device):
        await media_adapter.async_on_entity_update(
            update(source_list=["HDMI1", "HDMI2"])
        )

        assert json.loads(media_device.get_store_value("sourceList")) == [
            "HDMI1",
            "HDMI2",
        ]
        assert media_device.get_store_value("canSelectSource") is True
        assert media_device.get_store_value("soundModeList") == ""
        assert media_device.get_store_value("canSelectSoundMode") is False

    @pytest.mark.asyncio
    async def test_accessors_follow_updates(self, media_adapter):
        await media_adapter.async_on_entity_update(
            update(source_list=["HDMI1", "HDMI2"], sound_mode_list=["Movie"])
        )

        assert media_adapter.get_source_list() == [
            {"id": "HDMI1", "name": "HDMI1"},
            {"id": "HDMI2", "name": "HDMI2"},
        ]
        assert media_adapter.get_sound_mode_list() == [
            {"id": "Movie", "name": "Movie"}
        ]

        await media_adapter.async_on_entity_update(update())

        assert media_adapter.get_source_list() == []
        assert media_adapter.get_sound_mode_list() == []

    @pytest.mark.asyncio
    async def test_string_list_keeps_previous(self, media_adapter, caplog):
        await media_adapter.async_on_entity_update(
            update(source_list=["HDMI1", "HDMI2"])
        )

        with caplog.at_level(logging.WARNING):
            await media_adapter.async_on_entity_update(update(source_list="HDMI1"))

        assert media_adapter.get_source_list() == [
            {"id": "HDMI1", "name": "HDMI1"},
            {"id": "HDMI2", "name": "HDMI2"},
        ]
        assert "expected a list" in caplog.text

    def test_flag_must_be_set(self, client):
        device = CapabilityDevice(
            entity_id=ENTITY_ID,
            name="Kitchen",
            store={"sourceList": '["HDMI1"]', "canSelectSource": False},
        )
        assert MediaAdapter(device, client).get_source_list() == []

    def test_stored_lists_survive_restart(self, client):
        device = CapabilityDevice.from_dict(
            {
                "entity_id": ENTITY_ID,
                "store": {
                    "sourceList": '["HDMI1","Radio"]',
                    "canSelectSource": True,
                    "soundModeList": "Stereo,Surround",
                    "canSelectSoundMode": True,
                },
            }
        )
        adapter = MediaAdapter(device, client)

        assert adapter.get_source_list() == [
            {"id": "HDMI1", "name": "HDMI1"},
            {"id": "Radio", "name": "Radio"},
        ]
        assert adapter.get_sound_mode_list() == [
            {"id": "Stereo", "name": "Stereo"},
            {"id": "Surround", "name": "Surround"},
        ]

    def test_empty_store(self, media_adapter):
        assert media_adapter.get_source_list() == []
        assert media_adapter.get_sound_mode_list() == []

    @pytest.mark.asyncio
    async def test_store_changes_notify_listener(self, media_adapter, media_device):
        saves = []
        media_device.set_store_listener(lambda: saves.append(True))

        await media_adapter.async_on_entity_update(update(source_list=["TV"]))

        assert saves

    @pytest.mark.asyncio
    async def test_set_source(self, media_adapter, client):
        await media_adapter.async_set_source("HDMI2")

        client.async_call_service.assert_awaited_once_with(
            "media_player", "select_source", {"entity_id": ENTITY_ID, "source": "HDMI2"}
        )

    @pytest.mark.asyncio
    async def test_set_sound_mode(self, media_adapter, client):
        await media_adapter.async_set_sound_mode("Movie")

        client.async_call_service.assert_awaited_once_with(
            "media_player",
            "select_sound_mode",
            {"entity_id": ENTITY_ID, "sound_mode": "Movie"},
        )

    @pytest.mark.asyncio
    async def test_set_source_failure_propagates(self, media_adapter, client):
        client.async_call_service.side_effect = RuntimeError("no such source")

        with pytest.raises(RuntimeError, match="no such source"):
            await media_adapter.async_set_source("VCR")


class TestCapabilityWrites:
    """Capability writes become media player service calls."""

    @pytest.mark.parametrize(
        ("capability", "value", "service", "data"),
        [
            ("onoff", True, "turn_on", {}),
            ("onoff", False, "turn_off", {}),
            ("volume_set", 0.456, "volume_set", {"volume_level": 0.46}),
            ("volume_mute", True, "volume_mute", {"is_volume_muted": True}),
            ("speaker_playing", True, "media_play", {}),
            ("speaker_playing", False, "media_pause", {}),
            ("speaker_next", True, "media_next_track", {}),
            ("speaker_prev", True, "media_previous_track", {}),
            ("speaker_shuffle", True, "shuffle_set", {"shuffle": True}),
        ],
    )
    @pytest.mark.asyncio
    async def test_write_calls_service(
        self, media_adapter, media_device, client, capability, value, service, data
    ):
        await media_device.async_trigger_capability_listener(capability, value)

        client.async_call_service.assert_awaited_once_with(
            "media_player", service, {"entity_id": ENTITY_ID, **data}
        )

    @pytest.mark.parametrize(
        ("value", "hub"),
        [("none", "off"), ("track", "one"), ("playlist", "all")],
    )
    @pytest.mark.asyncio
    async def test_repeat_uses_legacy_payload_key(
        self, media_adapter, media_device, client, value, hub
    ):
        await media_device.async_trigger_capability_listener("speaker_repeat", value)

        client.async_call_service.assert_awaited_once_with(
            "media_player",
            "repeat_set",
            {"entity_id": ENTITY_ID, "is_volume_muted": hub},
        )

    @pytest.mark.asyncio
    async def test_repeat_payload_key_setting(
        self, media_adapter, media_device, client
    ):
        media_device.update_settings({"repeat_payload_key": "repeat"})

        await media_device.async_trigger_capability_listener("speaker_repeat", "track")

        client.async_call_service.assert_awaited_once_with(
            "media_player", "repeat_set", {"entity_id": ENTITY_ID, "repeat": "one"}
        )

    @pytest.mark.asyncio
    async def test_volume_output_converter(self, media_adapter, media_device, client):
        media_device.set_unit_converters(
            "volume_set", output_converter=lambda v: v / 100
        )

        await media_device.async_trigger_capability_listener("volume_set", 45)

        assert calls(client) == [
            (
                "media_player",
                "volume_set",
                {"entity_id": ENTITY_ID, "volume_level": 0.45},
            )
        ]


class TestRelativeVolume:
    """volume_up and volume_down step from the last reported volume."""

    @pytest.mark.parametrize(
        ("current", "capability", "expected"),
        [
            (0.5, "volume_up", 0.55),
            (0.98, "volume_up", 1.0),
            (1.0, "volume_up", 1.0),
            (0.5, "volume_down", 0.45),
            (0.02, "volume_down", 0.0),
            (None, "volume_up", 0.05),
            (None, "volume_down", 0.0),
        ],
    )
    @pytest.mark.asyncio
    async def test_step_is_clamped(
        self, media_adapter, media_device, client, current, capability, expected
    ):
        if current is not None:
            await media_device.async_set_capability_value("volume_set", current)

        await media_device.async_trigger_capability_listener(capability, True)

        (domain, service, data), = calls(client)
        assert (domain, service) == ("media_player", "volume_set")
        assert data["volume_level"] == pytest.approx(expected)

    @pytest.mark.asyncio
    async def test_repeated_steps_share_stale_baseline(
        self, media_adapter, media_device, client
    ):
        await media_device.async_set_capability_value("volume_set", 0.4)

        await media_device.async_trigger_capability_listener("volume_up", True)
        await media_device.async_trigger_capability_listener("volume_up", True)

        levels = [data["volume_level"] for _, _, data in calls(client)]
        assert levels == [pytest.approx(0.45), pytest.approx(0.45)]


class TestListenerGating:
    """Write handlers exist only for capabilities present at start-up."""

    @pytest.mark.asyncio
    async def test_only_present_capabilities_get_listeners(self, client):
        device = CapabilityDevice(
            entity_id=ENTITY_ID, name="Radio", capabilities=["onoff", "volume_set"]
        )
        await MediaAdapter(device, client).async_init()

        assert device.has_capability_listener("onoff")
        assert device.has_capability_listener("volume_set")
        assert device.has_capability_listener("button.reconnect")
        assert not device.has_capability_listener("speaker_next")
        assert "button.reconnect" in device.capabilities

        with pytest.raises(UnknownCapabilityError):
            await device.async_trigger_capability_listener("speaker_next", True)
        client.async_call_service.assert_not_awaited()
