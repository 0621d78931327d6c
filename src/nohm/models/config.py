"""Library configuration model."""

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from nohm.exceptions import wrap_pydantic_error

logger = logging.getLogger(__name__)


class NohmSettings(BaseModel):
    """Connection and key layout settings for a Registry."""

    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="URL passed to redis.asyncio.Redis.from_url()",
    )
    prefix: str = Field(
        default="nohm",
        min_length=1,
        description="Prefix of every key written by the library",
    )
    publish: bool = Field(
        default=False,
        description="Publish model events on <prefix>:channel:<model>:<action>",
    )
    id_generator: str = Field(
        default="default",
        description="Default id generator for models that don't set one ('default' or 'increment')",
    )

    @field_validator("prefix")
    @classmethod
    def _strip_delimiter(cls, value: str) -> str:
        return value.rstrip(":")

    @classmethod
    def from_env(cls) -> "NohmSettings":
        """
        Build settings from NOHM_* environment variables.

        Recognized variables: NOHM_REDIS_URL, NOHM_PREFIX, NOHM_PUBLISH,
        NOHM_ID_GENERATOR. Unset variables keep their defaults.
        """
        values: dict[str, str] = {}
        for field_name in cls.model_fields:
            env_value = os.environ.get(f"NOHM_{field_name.upper()}")
            if env_value is not None:
                values[field_name] = env_value
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise wrap_pydantic_error(e, "NOHM_* environment variables") from e

    @classmethod
    def load_or_default(cls, path: Path | None) -> "NohmSettings":
        """
        Load settings from a JSON file, or return defaults if it doesn't exist.

        Args:
            path: Path to the settings file (None for defaults)

        Returns:
            Loaded settings

        Raises:
            ConfigurationError: If the file exists but is invalid
        """
        if path is None or not path.exists():
            logger.debug(f"No settings file at {path}, using defaults")
            return cls()
        try:
            settings = cls.model_validate_json(path.read_text())
        except ValidationError as e:
            raise wrap_pydantic_error(e, str(path)) from e
        logger.info(f"Loaded settings from {path}")
        return settings
