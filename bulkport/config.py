"""
Server settings loaded from the environment.

Values come from ``BULKPORT_*`` environment variables, after an optional
``.env`` file in the working directory has been loaded with python-dotenv.
Variables already set in the environment win over the file.

Variables:
    BULKPORT_HOST       Interface to bind (default "0.0.0.0")
    BULKPORT_PORT       Port to listen on (default 8000)
    BULKPORT_RELOAD     Auto-reload, true/false (default false)
    BULKPORT_LOG_LEVEL  Logging level name (default "INFO")
"""

import logging
import os
from collections.abc import Mapping

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from bulkport.exceptions import ConfigurationError

ENV_PREFIX = "BULKPORT_"

_BOOLEAN_STRINGS = {
    "1": True,
    "true": True,
    "yes": True,
    "on": True,
    "0": False,
    "false": False,
    "no": False,
    "off": False,
}


class Settings(BaseModel):
    """
    Process-level settings for the HTTP server.

    Attributes:
        host: Interface to bind.
        port: TCP port.
        reload: Whether uvicorn reloads on code changes.
        log_level: Level name for the ``bulkport`` logger.
    """

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    reload: bool = False
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept standard logging level names, case-insensitively."""
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level '{v}'")
        return level

    @field_validator("reload", mode="before")
    @classmethod
    def parse_reload(cls, v: object) -> object:
        if isinstance(v, str):
            key = v.strip().lower()
            if key not in _BOOLEAN_STRINGS:
                raise ValueError(f"expected a boolean, got '{v}'")
            return _BOOLEAN_STRINGS[key]
        return v

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """
        Build settings from ``BULKPORT_*`` variables.

        Args:
            environ: Variables to read; defaults to ``os.environ``.

        Raises:
            ConfigurationError: If a variable holds an invalid value.
        """
        environ = os.environ if environ is None else environ
        values = {
            name: environ[ENV_PREFIX + name.upper()]
            for name in cls.model_fields
            if ENV_PREFIX + name.upper() in environ
        }
        try:
            return cls(**values)
        except ValidationError as e:
            first = e.errors()[0]
            variable = ENV_PREFIX + str(first["loc"][0]).upper() if first["loc"] else ENV_PREFIX
            raise ConfigurationError(
                f"Invalid value for {variable}: {first['msg']}",
                details={"variable": variable, "value": first.get("input")},
            ) from e


def load_settings(env_file: str | None = ".env") -> Settings:
    """
    Load an optional .env file, then read settings from the environment.

    Raises:
        ConfigurationError: If a variable holds an invalid value.
    """
    if env_file:
        load_dotenv(env_file, override=False)
    return Settings.from_env()
