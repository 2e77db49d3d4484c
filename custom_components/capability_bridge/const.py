"""Constants for Capability Bridge."""

from homeassistant.components.media_player.const import ATTR_MEDIA_VOLUME_MUTED

DOMAIN = "capability_bridge"

# Storage keys
STORAGE_KEY = f"{DOMAIN}_storage"
STORAGE_VERSION = 1
# Delay before flushing store-value churn to disk (seconds)
STORAGE_SAVE_DELAY = 10

# Service names
SERVICE_RELOAD = "reload"
SERVICE_ADD_DEVICE = "add_device"
SERVICE_REMOVE_DEVICE = "remove_device"
SERVICE_SET_CAPABILITY = "set_capability"
SERVICE_SELECT_SOURCE = "select_source"
SERVICE_SELECT_SOUND_MODE = "select_sound_mode"
SERVICE_RECONNECT = "reconnect"

ATTR_CAPABILITY = "capability"
ATTR_CAPABILITIES = "capabilities"
ATTR_NAME = "name"
ATTR_VALUE = "value"

# Device types supported
SUPPORTED_DOMAINS = [
    "climate",
    "media_player",
]

# Capabilities (shared)
CAP_ONOFF = "onoff"
CAP_RECONNECT = "button.reconnect"

# Capabilities (climate)
CAP_CLIMATE_ON = "climate_on"
CAP_MEASURE_TEMPERATURE = "measure_temperature"
CAP_TARGET_TEMPERATURE = "target_temperature"
CAP_MEASURE_HUMIDITY = "measure_humidity"
CAP_CLIMATE_ACTION = "climate_action"
CAP_CLIMATE_MODE = "climate_mode"
CAP_CLIMATE_MODE_FAN = "climate_mode_fan"
CAP_CLIMATE_MODE_PRESET = "climate_mode_preset"
CAP_CLIMATE_MODE_SWING = "climate_mode_swing"

# Capabilities (media player)
CAP_VOLUME_SET = "volume_set"
CAP_VOLUME_UP = "volume_up"
CAP_VOLUME_DOWN = "volume_down"
CAP_VOLUME_MUTE = "volume_mute"
CAP_SPEAKER_PLAYING = "speaker_playing"
CAP_SPEAKER_NEXT = "speaker_next"
CAP_SPEAKER_PREV = "speaker_prev"
CAP_SPEAKER_SHUFFLE = "speaker_shuffle"
CAP_SPEAKER_REPEAT = "speaker_repeat"
CAP_SPEAKER_ARTIST = "speaker_artist"
CAP_SPEAKER_ALBUM = "speaker_album"
CAP_SPEAKER_TRACK = "speaker_track"
CAP_SPEAKER_DURATION = "speaker_duration"
CAP_SPEAKER_POSITION = "speaker_position"

# Capability sets given to newly added devices
DEFAULT_CAPABILITIES: dict[str, list[str]] = {
    "climate": [
        CAP_CLIMATE_ON,
        CAP_MEASURE_TEMPERATURE,
        CAP_TARGET_TEMPERATURE,
        CAP_MEASURE_HUMIDITY,
        CAP_CLIMATE_ACTION,
        CAP_CLIMATE_MODE,
        CAP_CLIMATE_MODE_FAN,
        CAP_CLIMATE_MODE_PRESET,
        CAP_CLIMATE_MODE_SWING,
        CAP_RECONNECT,
    ],
    "media_player": [
        CAP_ONOFF,
        CAP_VOLUME_SET,
        CAP_VOLUME_UP,
        CAP_VOLUME_DOWN,
        CAP_VOLUME_MUTE,
        CAP_SPEAKER_PLAYING,
        CAP_SPEAKER_NEXT,
        CAP_SPEAKER_PREV,
        CAP_SPEAKER_SHUFFLE,
        CAP_SPEAKER_REPEAT,
        CAP_SPEAKER_ARTIST,
        CAP_SPEAKER_ALBUM,
        CAP_SPEAKER_TRACK,
        CAP_SPEAKER_DURATION,
        CAP_SPEAKER_POSITION,
        CAP_RECONNECT,
    ],
}

# Per-device store keys (media player option lists)
STORE_SOURCE_LIST = "sourceList"
STORE_CAN_SELECT_SOURCE = "canSelectSource"
STORE_SOUND_MODE_LIST = "soundModeList"
STORE_CAN_SELECT_SOUND_MODE = "canSelectSoundMode"

# Per-device settings
CONF_POWER_ENTITY = "power_entity"
CONF_ADD_POWER_ENTITY = "add_power_entity"
CONF_REPEAT_PAYLOAD_KEY = "repeat_payload_key"
CONF_SWING_MODE_ATTRIBUTE = "swing_mode_attribute"

# Legacy payload key carrying the repeat mode in repeat_set
DEFAULT_REPEAT_PAYLOAD_KEY = ATTR_MEDIA_VOLUME_MUTED
# Legacy attribute read for the swing mode value
DEFAULT_SWING_MODE_ATTRIBUTE = "preset_swing"

# Relative step for volume_up / volume_down
VOLUME_STEP = 0.05
