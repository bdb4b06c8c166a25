"""Service configuration utilities."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, ClassVar, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    MAX_MIHOMO_CONFIG_SIZE_BYTES,
    MIHOMO_CONFIG_FILE_PATH,
    REMOTE_FETCH_TIMEOUT_SECONDS,
    REMOTE_FETCH_USER_AGENT,
)

# Room for JSON escaping and the envelope around a maximal config payload.
_MIN_REQUEST_BODY_BYTES = MAX_MIHOMO_CONFIG_SIZE_BYTES + 64 * 1024


class ServiceSettings(BaseModel):
    """Runtime configuration for the FastAPI services."""

    ENV_PREFIX: ClassVar[str] = "METACUBEXD_"
    ENV_FILE: ClassVar[str | None] = ".env"
    ENV_FILE_ENCODING: ClassVar[str] = "utf-8"

    model_config: ClassVar[ConfigDict] = cast(
        ConfigDict,
        {
            "extra": "ignore",
            "env_prefix": ENV_PREFIX,
        },
    )

    mihomo_config_path: Path = Field(
        default=MIHOMO_CONFIG_FILE_PATH,
        description="Absolute path of the Mihomo YAML configuration file.",
    )
    max_request_body_bytes: int = Field(
        default=3 * MAX_MIHOMO_CONFIG_SIZE_BYTES,
        ge=_MIN_REQUEST_BODY_BYTES,
        description="Maximum allowed size in bytes for incoming request bodies.",
    )
    durable_writes: bool = Field(
        default=True,
        description="Fsync staged config writes before renaming them into place.",
    )
    remote_fetch_timeout_seconds: float = Field(
        default=REMOTE_FETCH_TIMEOUT_SECONDS,
        gt=0.0,
        description="Timeout in seconds for remote config downloads.",
    )
    remote_fetch_user_agent: str = Field(
        default=REMOTE_FETCH_USER_AGENT,
        min_length=1,
        description="User-Agent header sent with remote config downloads.",
    )
    cors_origin_regex: str = Field(
        default=r"^https?://(?:127\.0\.0\.1|localhost)(?::\d+)?$",
        description="Origins allowed to call the API from a browser.",
    )

    @field_validator("mihomo_config_path")
    @classmethod
    def _ensure_absolute_config_path(cls, value: Path) -> Path:
        """Reject relative config paths so the target does not depend on the cwd."""

        if not value.is_absolute():
            raise ValueError(f"Mihomo config path must be absolute: {value}")
        return value

    @staticmethod
    def _parse_env_file(path: Path, encoding: str) -> dict[str, str]:
        """Parse an environment file supporting `export` and quoted values."""

        parsed: dict[str, str] = {}

        for raw_line in path.read_text(encoding=encoding).splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :].strip()

            if "=" not in line:
                continue

            key, raw_value = line.split("=", 1)
            key = key.strip()
            value = raw_value.strip()

            if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
                value = value[1:-1]

            parsed[key] = value

        return parsed

    @classmethod
    def from_environment(cls) -> "ServiceSettings":
        """Load settings from environment variables or a `.env` file."""

        env_prefix = cls.ENV_PREFIX
        env_file_name = cls.ENV_FILE
        env_encoding = cls.ENV_FILE_ENCODING

        file_values: dict[str, str] = {}
        if env_file_name:
            env_file_path = Path(env_file_name)
            if not env_file_path.is_absolute():
                env_file_path = Path.cwd() / env_file_path
            if env_file_path.exists():
                file_values = cls._parse_env_file(env_file_path, env_encoding)

        overrides: dict[str, str] = {}
        for field_name in cls.model_fields:
            env_key = f"{env_prefix}{field_name.upper()}"
            if env_key in os.environ:
                overrides[field_name] = os.environ[env_key]
            elif env_key in file_values:
                overrides[field_name] = file_values[env_key]

        typed_overrides = cast(dict[str, Any], overrides)
        return cls(**typed_overrides)


__all__: list[str] = ["ServiceSettings"]
