"""Configuration system for the rcon-scheduler application.

This module implements the configuration schema using Pydantic for
validation, with support for environment variable resolution and fail-fast
validation with actionable error messages.

The file format is a ``config.json`` document with camelCase keys,
loaded with PyYAML so that YAML files are accepted as well::

    {
      "discordWebhook": "https://discord.com/api/webhooks/...",
      "servers": [
        {
          "name": "Main",
          "host": "127.0.0.1",
          "port": 28016,
          "password": "${MAIN_RCON_PASSWORD}",
          "dailyRestartTimesUTC": ["06:00", "18:00"]
        }
      ]
    }
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final, Self
from urllib.parse import urlparse

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

# Regular expression pattern for environment variable references
# Matches ${VARIABLE_NAME} syntax where VARIABLE_NAME can contain letters, digits, and underscores
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")

# Zero-padded 24h time of day, e.g. "06:00" or "23:30"
TIME_OF_DAY_PATTERN: Final[re.Pattern[str]] = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

DEFAULT_CLIENT_NAME: Final[str] = "NodeRcon"
DEFAULT_RECONNECT_MESSAGE: Final[str] = "Reconnect in 5 minutes"


class _CamelModel(BaseModel):
    """Base model accepting both the camelCase file keys and snake_case names."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")


class ServerConfig(_CamelModel):
    """Identity and schedule of one game server.

    The RCON password is embedded in the connection URL path; there is no
    separate authentication handshake.
    """

    name: Annotated[str, Field(min_length=1, description="Display label used in logs and notifications")]
    host: Annotated[str, Field(min_length=1, description="RCON host name or address")]
    port: Annotated[int, Field(ge=1, le=65535, description="RCON WebSocket port")]
    password: Annotated[str, Field(description="RCON password")]
    daily_restart_times_utc: Annotated[
        list[str],
        Field(
            alias="dailyRestartTimesUTC",
            description="Times of day (HH:MM, UTC) at which the server restarts",
        ),
    ] = []

    @field_validator("daily_restart_times_utc", mode="after")
    @classmethod
    def validate_restart_times(cls, v: list[str]) -> list[str]:
        """Validate that every restart time is a zero-padded ``HH:MM`` value.

        Raises:
            ValueError: If any entry is not a valid 24h time of day
        """
        for value in v:
            if not TIME_OF_DAY_PATTERN.match(value):
                msg = f"Restart time must be zero-padded HH:MM (24h), got: {value!r}"
                raise ValueError(msg)
        return v

    @property
    def url(self) -> str:
        """Connection address with the password as the path component."""
        return f"ws://{self.host}:{self.port}/{self.password}"


class ClientConfig(_CamelModel):
    """Settings of the RCON command client shared by all servers."""

    name: Annotated[
        str,
        Field(min_length=1, description="Client name sent in every command frame"),
    ] = DEFAULT_CLIENT_NAME
    reply_timeout_seconds: Annotated[
        float | None,
        Field(
            alias="replyTimeoutSeconds",
            gt=0,
            description="Drop pending reply callbacks after this many seconds (unset keeps them forever)",
        ),
    ] = None


class LoggingConfig(_CamelModel):
    """Log level and file rotation settings."""

    level: Annotated[
        str,
        Field(
            description="Logging level",
            pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        ),
    ] = "INFO"
    directory: Annotated[
        Path | None,
        Field(description="Directory for rotated log files (null disables file logging)"),
    ] = Path("logs")
    max_bytes: Annotated[
        int,
        Field(alias="maxBytes", ge=0, description="Size cap that triggers an extra rotation"),
    ] = 20 * 1024 * 1024
    retention_days: Annotated[
        int,
        Field(alias="retentionDays", gt=0, description="Days to keep rotated log files"),
    ] = 14


class MainConfig(_CamelModel):
    """Top-level configuration schema.

    Provides fail-fast validation at application startup with field-level
    validation and actionable error messages.
    """

    discord_webhook: Annotated[
        str | None,
        Field(
            alias="discordWebhook",
            description="Webhook URL notified when a restart executes",
        ),
    ] = None
    reconnect_message: Annotated[
        str,
        Field(
            alias="reconnectMessage",
            min_length=1,
            description="Description of the restart notification embed",
        ),
    ] = DEFAULT_RECONNECT_MESSAGE
    rearm_daily: Annotated[
        bool,
        Field(
            alias="rearmDaily",
            description="Schedule the next day's restart once a restart has executed",
        ),
    ] = False
    servers: Annotated[
        list[ServerConfig],
        Field(min_length=1, description="Game servers to manage"),
    ]
    client: Annotated[ClientConfig, Field(description="RCON client settings")] = ClientConfig()
    logging: Annotated[LoggingConfig, Field(description="Logging settings")] = LoggingConfig()

    @field_validator("discord_webhook", mode="after")
    @classmethod
    def validate_webhook_url(cls, v: str | None) -> str | None:
        """Validate the webhook URL uses HTTP(S); empty strings disable it."""
        if v is None or not v.strip():
            return None
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            msg = "Webhook URL must be an absolute http(s) URL"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_unique_server_names(self) -> Self:
        """Validate that server names are unique (they label every log line)."""
        seen: set[str] = set()
        for server in self.servers:
            if server.name in seen:
                msg = f"Duplicate server name: {server.name!r}"
                raise ValueError(msg)
            seen.add(server.name)
        return self


class EnvironmentVariableError(Exception):
    """Exception raised when environment variable resolution fails.

    Provides clear error messages without exposing secret values.
    """


def resolve_env_var(value: str) -> str:
    """Resolve environment variable references in a string value.

    Parses ${VARIABLE_NAME} syntax and replaces with environment variable values.
    Supports multiple environment variable references in a single string.

    Args:
        value: String potentially containing environment variable references

    Returns:
        String with environment variables resolved

    Raises:
        EnvironmentVariableError: If a required environment variable is missing

    Examples:
        >>> os.environ["RCON_PASSWORD"] = "secret_value"
        >>> resolve_env_var("${RCON_PASSWORD}")
        'secret_value'
        >>> resolve_env_var("no variables here")
        'no variables here'
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)

        if env_value is None:
            msg = (
                f"Required environment variable '{var_name}' is not set. "
                f"Please set this variable before starting the application."
            )
            raise EnvironmentVariableError(msg)

        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def _resolve_env_vars_in_item(item: object) -> object:
    if isinstance(item, str):
        return resolve_env_var(item)
    if isinstance(item, dict):
        # YAML data is untyped at load time; validated by Pydantic after resolution
        return resolve_env_vars_in_dict(item)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    if isinstance(item, list):
        return [_resolve_env_vars_in_item(sub) for sub in item]  # pyright: ignore[reportUnknownVariableType]  # YAML list items
    return item


def resolve_env_vars_in_dict(data: Mapping[str, object]) -> dict[str, object]:
    """Recursively resolve environment variables in a dictionary.

    Traverses nested dictionaries and lists, resolving environment variable
    references in string values. Non-string values are preserved as-is.

    Raises:
        EnvironmentVariableError: If a required environment variable is missing

    Examples:
        >>> os.environ["SECRET"] = "my_secret"
        >>> resolve_env_vars_in_dict({"servers": [{"password": "${SECRET}"}]})
        {'servers': [{'password': 'my_secret'}]}
    """
    return {key: _resolve_env_vars_in_item(value) for key, value in data.items()}


class ConfigurationError(Exception):
    """Exception raised when configuration loading or validation fails.

    Provides detailed, actionable error messages for configuration issues
    including file not found, parsing errors, and validation failures.
    """


def load_main_config(config_path: Path) -> MainConfig:
    """Load and validate the application configuration.

    Args:
        config_path: Path to the JSON or YAML configuration file

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If configuration file cannot be loaded or is invalid
    """
    if not config_path.exists():
        msg = (
            f"Configuration file not found: {config_path}\n"
            f"Please create a configuration file at this location.\n"
            f"See documentation for configuration file format."
        )
        raise ConfigurationError(msg)

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_data: object = yaml.safe_load(f)  # pyright: ignore[reportAny]  # YAML boundary
    except yaml.YAMLError as e:
        msg = (
            f"Failed to parse configuration file: {config_path}\n"
            f"Parsing error: {e}\n"
            f"Please check the file for syntax errors."
        )
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Failed to read configuration file: {config_path}\nError: {e}\nPlease check file permissions."
        raise ConfigurationError(msg) from e

    if not isinstance(raw_data, dict):
        msg = (
            f"Invalid configuration file format: {config_path}\n"
            f"Expected a mapping at root level, got: {type(raw_data).__name__}\n"
            f"Configuration file must contain key-value pairs."
        )
        raise ConfigurationError(msg)

    try:
        resolved_data = resolve_env_vars_in_dict(raw_data)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    except EnvironmentVariableError as e:
        msg = (
            f"Environment variable resolution failed in: {config_path}\n"
            f"{e}\n"
            f"Set the required environment variable before starting the application."
        )
        raise ConfigurationError(msg) from e

    try:
        config = MainConfig.model_validate(resolved_data)
    except ValidationError as e:
        error_lines = ["Configuration validation failed:", ""]
        for error in e.errors():
            field_path = " → ".join(str(loc) for loc in error["loc"])
            error_lines.append(f"  Field: {field_path}")
            error_lines.append(f"  Error: {error['msg']}")
            error_lines.append(f"  Type: {error['type']}")
            error_lines.append("")

        error_lines.append(f"Configuration file: {config_path}")
        error_lines.append("Please fix the above errors and try again.")

        raise ConfigurationError("\n".join(error_lines)) from e

    return config
