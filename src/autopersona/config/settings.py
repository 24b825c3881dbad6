"""Central settings: loads from ~/.autopersona/config.json + environment variables."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from autopersona.config.constants import (
    AUTOPERSONA_HOME,
    CONFIG_FILE,
    DB_DIR,
    DEFAULT_DB_FILE,
    MEDIA_DIR,
)
from autopersona.config.models import (
    SECRET_FIELD_ENV_MAP,
    GenerationConfig,
    OpenAIConfig,
    PublishingConfig,
    QueueConfig,
    SegmindConfig,
    ServerConfig,
)


class Settings(BaseSettings):
    """All autopersona configuration in one place.

    Priority (highest → lowest):
      1. Environment variables (AUTOPERSONA_ prefix)
      2. .env file
      3. ~/.autopersona/config.json
      4. Defaults defined here
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTOPERSONA_",
        env_nested_delimiter="__",
        env_file=(".env", str(AUTOPERSONA_HOME / ".env")),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Sub-configs ---
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    segmind: SegmindConfig = Field(default_factory=SegmindConfig)
    publishing: PublishingConfig = Field(default_factory=PublishingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    # --- Top-level settings ---
    db_url: str = ""  # empty = use SQLite at default path
    log_level: str = "INFO"

    @model_validator(mode="before")
    @classmethod
    def load_config_file(cls, values: dict) -> dict:
        """Merge config.json values as defaults (env vars still override)."""
        if CONFIG_FILE.exists():
            try:
                file_data = json.loads(CONFIG_FILE.read_text(encoding="utf-8"))
                merged = {**file_data, **{k: v for k, v in values.items() if v is not None}}
                values = merged
            except (json.JSONDecodeError, OSError):
                pass

        cls._apply_env_to_secrets(values)
        return values

    @classmethod
    def _apply_env_to_secrets(cls, values: dict) -> None:
        """Populate secret fields from environment variables and .env file."""
        from autopersona.config.env_utils import read_env_file

        env_file_vals = read_env_file()

        for key_path, env_var in SECRET_FIELD_ENV_MAP.items():
            val = os.environ.get(env_var) or env_file_vals.get(env_var)
            if not val:
                continue

            node = values
            for part in key_path[:-1]:
                if part not in node or not isinstance(node[part], dict):
                    node[part] = {}
                node = node[part]

            node[key_path[-1]] = val

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL; falls back to the local SQLite file."""
        if self.db_url:
            return self.db_url
        DB_DIR.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{DEFAULT_DB_FILE}"

    @property
    def media_path(self) -> Path:
        return Path(self.generation.media_dir) if self.generation.media_dir else MEDIA_DIR

    @property
    def is_postgres(self) -> bool:
        return self.db_url.startswith("postgresql")

    def save(self) -> None:
        """Persist current settings (minus secrets) to config.json."""
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json")
        CONFIG_FILE.write_text(json.dumps(data, indent=2), encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance for process entry points."""
    return Settings()
