"""Worker configuration for pyhmi."""

from __future__ import annotations

import dataclasses
import enum
import os
from collections.abc import Callable
from typing import Any, TypeVar

from pyhmi.exceptions import HmiConfigError

T = TypeVar("T")


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(name: str, value: str, kind: Callable[[str], T]) -> T:
    try:
        return kind(value.strip())
    except ValueError as exc:
        raise HmiConfigError(f"Invalid value for {name}: {value!r}") from exc


class ProfileSwitchFailurePolicy(enum.StrEnum):
    """What to do when the vehicle-profile switch reports failure."""

    FATAL = "fatal"
    RECOVERABLE = "recoverable"


@dataclasses.dataclass(frozen=True)
class HmiTopics:
    """Message channel names used by the worker."""

    status: str = "hmi/status"
    pad: str = "control/pad"
    drive_event: str = "hmi/drive_event"
    system_status: str = "monitor/system_status"
    chassis: str = "canbus/chassis"


@dataclasses.dataclass(frozen=True)
class HmiConfig:
    """Worker configuration.

    Parameters
    ----------
    modes_config_path : str
        Directory holding one mode descriptor file per mode.
    maps_data_path : str
        Directory whose immediate subdirectories are the available maps.
    vehicles_config_path : str
        Directory whose immediate subdirectories are the vehicle profiles.
    mode_file_extension : str
        Extension of mode descriptor files (stripped to form the mode title).
    status_publish_interval : float
        Heartbeat interval in seconds: status is republished at least this
        often even when nothing changed.
    status_tick_interval : float
        Polling tick of the status update loop in seconds.
    current_mode_db_key : str
        Key remembering the last selected mode in the key-value store.
    default_hmi_mode : str
        Mode selected at startup when nothing is cached.
    use_navigation_mode : bool
        Prefer the ``Navigation`` mode at startup when it is available.
    utm_zone_id : int
        UTM zone surfaced in status.
    status_lifetime_seconds : float
        Inbound system-status / chassis messages older than this are not
        treated as realtime.
    use_sim_time : bool
        Trust ``is_realtime_in_simulation`` instead of header age.
    kv_db_path : str
        JSON file backing the default key-value store.
    flagfile_path : str
        Flagfile receiving runtime overrides (``--name=value`` lines).
    calibration_path : str
        Directory the active vehicle profile is copied into.
    profile_switch_failure : ProfileSwitchFailurePolicy
        ``fatal`` aborts the process, ``recoverable`` logs and keeps the
        previous vehicle.
    mqtt_host : str
        MQTT broker host.
    mqtt_port : int
        MQTT broker port.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_client_id : str
        MQTT client id.
    topics : HmiTopics
        Message channel names.
    api_host : str
        Bind address of the HTTP/WebSocket API.
    api_port : int
        Port of the HTTP/WebSocket API.
    """

    modes_config_path: str = "/opt/pyhmi/conf/hmi_modes"
    maps_data_path: str = "/opt/pyhmi/data/maps"
    vehicles_config_path: str = "/opt/pyhmi/data/vehicles"
    mode_file_extension: str = ".json"
    status_publish_interval: float = 5.0
    status_tick_interval: float = 0.2
    current_mode_db_key: str = "/hmi/status:current_mode"
    default_hmi_mode: str = "Standard Debug"
    use_navigation_mode: bool = False
    utm_zone_id: int = 10
    status_lifetime_seconds: float = 30.0
    use_sim_time: bool = False
    kv_db_path: str = "/var/lib/pyhmi/kv_db.json"
    flagfile_path: str = "/var/lib/pyhmi/global_flagfile.txt"
    calibration_path: str = "/var/lib/pyhmi/calibration"
    profile_switch_failure: ProfileSwitchFailurePolicy = ProfileSwitchFailurePolicy.FATAL
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_keepalive: int = 60
    mqtt_client_id: str = "pyhmi"
    topics: HmiTopics = dataclasses.field(default_factory=HmiTopics)
    api_host: str = "127.0.0.1"
    api_port: int = 8888

    def __post_init__(self) -> None:
        if self.status_publish_interval <= 0:
            raise HmiConfigError("status_publish_interval must be positive")
        if self.status_tick_interval <= 0:
            raise HmiConfigError("status_tick_interval must be positive")
        if not isinstance(self.profile_switch_failure, ProfileSwitchFailurePolicy):
            try:
                policy = ProfileSwitchFailurePolicy(str(self.profile_switch_failure).strip().lower())
            except ValueError as exc:
                raise HmiConfigError(f"Unknown profile_switch_failure policy: {self.profile_switch_failure!r}") from exc
            object.__setattr__(self, "profile_switch_failure", policy)

    @classmethod
    def from_env(cls, **overrides: Any) -> HmiConfig:
        """Create configuration from environment variables.

        Reads optional ``HMI_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        HmiConfig
            Populated configuration.
        """
        env = os.environ

        topic_kwargs: dict[str, str] = {}
        _ENV_TOPIC_MAP = {
            "HMI_STATUS_TOPIC": "status",
            "HMI_PAD_TOPIC": "pad",
            "HMI_DRIVE_EVENT_TOPIC": "drive_event",
            "HMI_SYSTEM_STATUS_TOPIC": "system_status",
            "HMI_CHASSIS_TOPIC": "chassis",
        }
        for env_key, field_name in _ENV_TOPIC_MAP.items():
            val = env.get(env_key)
            if val is not None:
                topic_kwargs[field_name] = val

        topic_overrides = overrides.pop("topics", None)
        if isinstance(topic_overrides, dict):
            topic_kwargs.update(topic_overrides)
        elif isinstance(topic_overrides, HmiTopics):
            topic_kwargs = dataclasses.asdict(topic_overrides)

        config_kwargs: dict[str, Any] = {"topics": HmiTopics(**topic_kwargs)}

        _ENV_CONFIG_MAP = {
            "HMI_MODES_CONFIG_PATH": "modes_config_path",
            "HMI_MAPS_DATA_PATH": "maps_data_path",
            "HMI_VEHICLES_CONFIG_PATH": "vehicles_config_path",
            "HMI_MODE_FILE_EXTENSION": "mode_file_extension",
            "HMI_CURRENT_MODE_DB_KEY": "current_mode_db_key",
            "HMI_DEFAULT_MODE": "default_hmi_mode",
            "HMI_KV_DB_PATH": "kv_db_path",
            "HMI_FLAGFILE_PATH": "flagfile_path",
            "HMI_CALIBRATION_PATH": "calibration_path",
            "HMI_PROFILE_SWITCH_FAILURE": "profile_switch_failure",
            "HMI_MQTT_HOST": "mqtt_host",
            "HMI_MQTT_CLIENT_ID": "mqtt_client_id",
            "HMI_API_HOST": "api_host",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # Numeric fields, handled separately
        _ENV_FLOAT_MAP = {
            "HMI_STATUS_PUBLISH_INTERVAL": "status_publish_interval",
            "HMI_STATUS_TICK_INTERVAL": "status_tick_interval",
            "HMI_STATUS_LIFETIME_SECONDS": "status_lifetime_seconds",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, float)

        _ENV_INT_MAP = {
            "HMI_UTM_ZONE_ID": "utm_zone_id",
            "HMI_MQTT_PORT": "mqtt_port",
            "HMI_MQTT_KEEPALIVE": "mqtt_keepalive",
            "HMI_API_PORT": "api_port",
        }
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, int)

        if "use_navigation_mode" not in overrides:
            config_kwargs["use_navigation_mode"] = _env_bool(env.get("HMI_USE_NAVIGATION_MODE"), False)
        if "use_sim_time" not in overrides:
            config_kwargs["use_sim_time"] = _env_bool(env.get("HMI_USE_SIM_TIME"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
