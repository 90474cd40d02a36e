"""
Configuration management for textweaver.

Handles loading configuration from YAML files and environment variables.
"""

from __future__ import annotations

import os
import re
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from textweaver.database import TranslationStyle
from textweaver.llm.providers import ProviderConfig, ProviderId

# Load .env file if present (before Settings initialization)
load_dotenv()


# Environment variables consulted when no API key is set in the config file
PROVIDER_KEY_ENV = {
    ProviderId.GEMINI: "GEMINI_API_KEY",
    ProviderId.OPENAI: "OPENAI_API_KEY",
    ProviderId.CHUTES: "CHUTES_API_KEY",
    ProviderId.CUSTOM: "CUSTOM_API_KEY",
}


class ExportFormat(str, Enum):
    """Export file formats."""

    TXT = "txt"
    MARKDOWN = "md"
    HTML = "html"
    DOCX = "docx"


class PathsConfig(BaseModel):
    """Configuration for file paths."""

    model_config = ConfigDict(validate_default=True)

    input_dir: Path = Field(default=Path("./documents"))
    output_dir: Path = Field(default=Path("./translated"))
    database_path: Path = Field(default=Path("./data/textweaver.duckdb"))
    logs: Path = Field(default=Path("./logs"))

    @field_validator("input_dir", "output_dir", "database_path", "logs")
    @classmethod
    def expand_path(cls, v: Path) -> Path:
        """Expand user home directory and make path absolute."""
        return Path(v).expanduser().resolve()


class ProviderSettings(BaseModel):
    """Configuration for the active translation provider."""

    provider: ProviderId = Field(default=ProviderId.GEMINI)
    api_key: str = Field(default="")
    base_url: str | None = Field(default=None)
    model: str | None = Field(default=None)
    # Overrides the provider catalog budget when set
    requests_per_minute: int | None = Field(default=None, ge=1, le=10000)
    timeout_seconds: float = Field(default=120.0, ge=5.0, le=600.0)
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)

    def to_provider_config(self) -> ProviderConfig:
        """Build the gateway configuration record."""
        return ProviderConfig(
            provider=self.provider.value,
            api_key=self.api_key,
            base_url=self.base_url,
            model=self.model,
            requests_per_minute=self.requests_per_minute,
        )


class TranslationConfig(BaseModel):
    """Default settings applied to newly created projects."""

    source_language: str = Field(default="auto")
    target_languages: list[str] = Field(default_factory=lambda: ["es"])
    chunk_size: int = Field(default=2000, ge=100, le=20000)
    max_retries: int = Field(default=3, ge=1, le=10)
    translation_style: TranslationStyle = Field(default=TranslationStyle.FORMAL)
    preserve_formatting: bool = Field(default=True)
    context_aware: bool = Field(default=True)


class ProcessingConfig(BaseModel):
    """Configuration for the orchestration loop."""

    # Fixed pause between consecutive provider calls
    unit_delay: float = Field(default=0.1, ge=0.0, le=10.0)
    # Base delay of the in-pass exponential backoff
    retry_backoff: float = Field(default=1.0, ge=0.0, le=60.0)
    rate_limit_backoff: float = Field(default=10.0, ge=0.0, le=300.0)
    quality_check: bool = Field(default=False)


class ExportConfig(BaseModel):
    """Configuration for export formats."""

    formats: list[ExportFormat] = Field(default_factory=lambda: [ExportFormat.TXT])
    # Zip the files together when more than one is produced
    bundle: bool = Field(default=False)
    # Languages to export (if empty, exports every project target language)
    languages: list[str] = Field(default_factory=list)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO")
    file: Path | None = Field(default=Path("./logs/textweaver.log"))
    format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    max_file_size_mb: int = Field(default=10, ge=1, le=100)
    backup_count: int = Field(default=5, ge=1, le=20)


class ProjectConfig(BaseModel):
    """Project metadata configuration."""

    name: str = Field(default="textweaver")
    description: str = Field(default="")


class Settings(BaseSettings):
    """Main settings class that combines all configurations."""

    model_config = SettingsConfigDict(
        env_prefix="TEXTWEAVER_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    translation: TranslationConfig = Field(default_factory=TranslationConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable fallbacks for the API key."""
        super().__init__(**data)
        if not self.provider.api_key:
            self.provider.api_key = os.getenv("TEXTWEAVER_API_KEY", "") or os.getenv(
                PROVIDER_KEY_ENV[self.provider.provider], ""
            )

    @classmethod
    def from_yaml(cls, path: Path | str) -> Settings:
        """
        Build settings from a YAML file.

        ``${VAR}`` and ``${VAR:-default}`` references in string values are
        expanded from the environment. A missing file yields the defaults.
        """
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        return cls(**_expand_env(raw))


_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def _expand_env(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    if isinstance(value, str):
        return _ENV_REF.sub(lambda m: os.getenv(m.group(1)) or m.group(2) or "", value)
    return value


CONFIG_SEARCH_PATHS = (Path("config.yaml"), Path("config.yml"), Path(".textweaver.yaml"))


def load_config(path: Path | str | None = None) -> Settings:
    """
    Load settings.

    Args:
        path: YAML file to read. When None, the first existing entry of
            ``CONFIG_SEARCH_PATHS`` is used, or the defaults if none exists.

    Returns:
        Settings from YAML, environment variables and defaults.
    """
    if path is None:
        path = next((p for p in CONFIG_SEARCH_PATHS if p.exists()), None)
    if path is None:
        return Settings()
    return Settings.from_yaml(path)


DEFAULT_CONFIG = """# textweaver configuration
project:
  name: "my-translation-project"
  description: "Document translation project"

paths:
  input_dir: "./documents"
  output_dir: "./translated"
  database_path: "./data/textweaver.duckdb"
  logs: "./logs"

provider:
  # gemini, openai, chutes or custom (any OpenAI-compatible endpoint)
  provider: "gemini"
  api_key: "${GEMINI_API_KEY}"
  # base_url and model default to the provider catalog; required for custom
  # base_url: "https://example.com/v1"
  # model: "my-model"
  # requests_per_minute: 15
  timeout_seconds: 120
  temperature: 0.2

translation:
  # Source language code, or "auto" to detect it on import
  source_language: "auto"
  target_languages:
    - "es"
    - "fr"
  # Characters per chunk (sentence boundaries are kept)
  chunk_size: 2000
  max_retries: 3
  # formal, casual, literary or technical
  translation_style: "formal"
  preserve_formatting: true
  context_aware: true

processing:
  # Seconds between consecutive provider calls
  unit_delay: 0.1
  # Base seconds of the backoff between attempts of a failed chunk
  retry_backoff: 1.0
  # Seconds to wait after the provider answers 429
  rate_limit_backoff: 10.0
  # Score every translated chunk (one extra request per chunk)
  quality_check: false

export:
  # txt, md, html, docx
  formats:
    - "txt"
  bundle: false
  languages: []

logging:
  level: "INFO"
  file: "./logs/textweaver.log"
  max_file_size_mb: 10
  backup_count: 5
"""


def create_default_config(path: Path | str = "config.yaml") -> None:
    """Create a default configuration file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(DEFAULT_CONFIG)
