"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hashbatch.services.ipfs.config import IPFSConfig

logger = logging.getLogger(__name__)


class DatabaseConfig(BaseModel):
    """Claim store connection."""

    backend: Literal["mongodb", "memory"] = "mongodb"
    url: str = "mongodb://localhost:27017"
    name: str = "hashbatch"


class TransportConfig(BaseModel):
    """Event transport connection and consumer parameters."""

    backend: Literal["redis", "memory"] = "redis"
    url: str = "redis://localhost:6379/0"
    stream_prefix: str = "hashbatch"
    consumer_group: str = "hashbatch"
    consumer_name: str = "hashbatch-1"
    read_count: int = Field(default=10, gt=0)
    block_ms: int = Field(default=5000, gt=0)
    # Approximate cap on entries kept per stream, acknowledged or not.
    max_stream_length: int = Field(default=10000, gt=0)


class SchedulerConfig(BaseModel):
    """Batch creation interval in seconds."""

    create_next_batch_interval_seconds: int = Field(default=30, gt=0)


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    log_level: str = "INFO"
    logfire_token: str = ""

    # Nested configuration sections
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    ipfs: IPFSConfig = Field(default_factory=IPFSConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    def load_yaml_config(self) -> None:
        """Merge data_dir/config.yaml under values already set from the environment.

        YAML only fills fields the environment left at their defaults, so an
        exported ``TRANSPORT__URL`` still wins over the file.
        """
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.warning(
                f"Config file not found: {config_path}. "
                "Using defaults. Run 'python -m hashbatch init' to create it."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["database", "transport", "ipfs", "scheduler"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name] or {}

                    section_dict = section.model_dump()
                    explicit = section.model_fields_set
                    section_dict.update(
                        {k: v for k, v in yaml_section.items() if k not in explicit}
                    )

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to load config: {e}")
            raise


def sanitize_url(url: str) -> str:
    """Hide the password in a connection URL for safe logging."""
    if "@" not in url or "://" not in url:
        return url

    protocol, rest = url.split("://", 1)
    credentials, host = rest.rsplit("@", 1)
    if ":" in credentials:
        user = credentials.split(":", 1)[0]
        return f"{protocol}://{user}:***@{host}"
    return f"{protocol}://***@{host}"


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
