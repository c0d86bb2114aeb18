"""Client configuration for speedwatch."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from speedwatch._constants import DEFAULT_SPEED_LIMIT_KPH, WARNING_MULTIPLIER
from speedwatch.exceptions import SpeedwatchConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class SpeedwatchConfig:
    """Client configuration.

    Parameters
    ----------
    database_url : str
        Base URL of the realtime database (e.g.
        ``"https://example-default-rtdb.firebaseio.com"``).
    operator_id : str
        Id of the operator whose samples are monitored. Violations are
        written under ``<violations_path>/<operator_id>``.
    auth_token : str or None
        Already issued database auth token, sent as the ``auth`` query
        parameter. Sign-in is outside the scope of this library.
    default_speed_limit_kph : float
        Speed limit in effect until the remote configuration delivers
        its first value.
    warning_multiplier : float
        Factor applied to the speed limit to derive the warning threshold.
    speed_limit_path : str
        Database path holding the remote speed limit.
    violations_path : str
        Database path under which per-operator violations live.
    mqtt_enabled : bool
        Start the MQTT sample source when monitoring begins.
    mqtt_host : str
        MQTT broker host publishing location samples.
    mqtt_port : int
        MQTT broker port.
    mqtt_tls : bool
        Use TLS for the broker connection.
    mqtt_username : str or None
        Broker username.
    mqtt_password : str or None
        Broker password.
    mqtt_sample_topic : str
        Topic carrying JSON location samples and provider events.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    api_trace_enabled : bool
        Enable transport-level request/response tracing callback.
    """

    database_url: str
    operator_id: str = ""
    auth_token: str | None = None
    default_speed_limit_kph: float = DEFAULT_SPEED_LIMIT_KPH
    warning_multiplier: float = WARNING_MULTIPLIER
    speed_limit_path: str = "configuration/speed_limit"
    violations_path: str = "violations"
    mqtt_enabled: bool = False
    mqtt_host: str = "localhost"
    mqtt_port: int = 8883
    mqtt_tls: bool = True
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_sample_topic: str = "speedwatch/samples"
    mqtt_keepalive: int = 60
    api_trace_enabled: bool = False

    def validate(self) -> None:
        """Raise :class:`SpeedwatchConfigError` for unusable settings."""
        if not self.database_url.strip():
            raise SpeedwatchConfigError("database_url must be set")
        if self.warning_multiplier < 0:
            raise SpeedwatchConfigError(f"warning_multiplier must be non-negative, got {self.warning_multiplier}")
        if self.default_speed_limit_kph < 0:
            raise SpeedwatchConfigError(
                f"default_speed_limit_kph must be non-negative, got {self.default_speed_limit_kph}"
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> SpeedwatchConfig:
        """Create configuration from environment variables.

        Reads ``SPEEDWATCH_DATABASE_URL`` and optional ``SPEEDWATCH_*``
        variables. Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        SpeedwatchConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "SPEEDWATCH_DATABASE_URL": "database_url",
            "SPEEDWATCH_OPERATOR_ID": "operator_id",
            "SPEEDWATCH_AUTH_TOKEN": "auth_token",
            "SPEEDWATCH_SPEED_LIMIT_PATH": "speed_limit_path",
            "SPEEDWATCH_VIOLATIONS_PATH": "violations_path",
            "SPEEDWATCH_MQTT_HOST": "mqtt_host",
            "SPEEDWATCH_MQTT_USERNAME": "mqtt_username",
            "SPEEDWATCH_MQTT_PASSWORD": "mqtt_password",
            "SPEEDWATCH_MQTT_SAMPLE_TOPIC": "mqtt_sample_topic",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # Numeric fields, handled separately
        _ENV_FLOAT_MAP = {
            "SPEEDWATCH_DEFAULT_SPEED_LIMIT_KPH": "default_speed_limit_kph",
            "SPEEDWATCH_WARNING_MULTIPLIER": "warning_multiplier",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = float(val)

        _ENV_INT_MAP = {
            "SPEEDWATCH_MQTT_PORT": "mqtt_port",
            "SPEEDWATCH_MQTT_KEEPALIVE": "mqtt_keepalive",
        }
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = int(val)

        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("SPEEDWATCH_MQTT_ENABLED"), False)

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("SPEEDWATCH_MQTT_TLS"), True)

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(
                env.get("SPEEDWATCH_API_TRACE_ENABLED"),
                False,
            )

        config_kwargs.update(overrides)

        if "database_url" not in config_kwargs:
            raise SpeedwatchConfigError("SPEEDWATCH_DATABASE_URL is not set")

        return cls(**config_kwargs)
