"""
Shared configuration management for the Tekton Hub proxy.

Values are resolved from (lowest to highest priority) field defaults, a YAML
config file, ``THP_`` prefixed environment variables and finally explicit
overrides applied by the CLI.
"""

import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, Union

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


DEFAULT_CONFIG_LOCATIONS = (Path("configs") / "config.yaml", Path("config.yaml"))

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Union[str, int, float, timedelta]) -> timedelta:
    """Parse seconds or a Go-style duration string ("30s", "5m", "1h30m")."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)

    text = str(value).strip()
    if not text:
        raise ValueError("empty duration")

    try:
        return timedelta(seconds=float(text))
    except ValueError:
        pass

    position = 0
    seconds = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()

    if position == 0 or position != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return timedelta(seconds=seconds)


def format_duration(value: timedelta) -> str:
    """Render a duration the way operators write it in config ("5m0s")."""
    total = value.total_seconds()
    hours, remainder = divmod(int(total), 3600)
    minutes, seconds = divmod(remainder, 60)
    fraction = total - int(total)
    seconds_text = f"{seconds + fraction:g}s"
    if hours:
        return f"{hours}h{minutes}m{seconds_text}"
    if minutes:
        return f"{minutes}m{seconds_text}"
    return seconds_text


class ServerSettings(BaseModel):
    """HTTP listener settings."""

    host: str = "0.0.0.0"
    port: int = Field(default=8080, gt=0, lt=65536)


class CacheSettings(BaseModel):
    """In-memory response cache settings."""

    enabled: bool = True
    ttl: timedelta = timedelta(minutes=5)
    max_size: int = Field(default=1000, gt=0)

    @field_validator("ttl", mode="before")
    @classmethod
    def _parse_ttl(cls, value: Any) -> timedelta:
        ttl = parse_duration(value)
        if ttl.total_seconds() <= 0:
            raise ValueError("cache ttl must be positive")
        return ttl


class ArtifactHubSettings(BaseModel):
    """Upstream Artifact Hub client settings."""

    base_url: str = "https://artifacthub.io"
    timeout: timedelta = timedelta(seconds=30)
    max_retries: int = Field(default=3, ge=0)
    retry_backoff: timedelta = timedelta(seconds=1)
    cache: CacheSettings = Field(default_factory=CacheSettings)

    @field_validator("timeout", "retry_backoff", mode="before")
    @classmethod
    def _parse_durations(cls, value: Any) -> timedelta:
        return parse_duration(value)


class CatalogMappingSettings(BaseModel):
    """One (Tekton Hub catalog, Artifact Hub repository) pair."""

    tekton_hub: str
    artifact_hub: str


class LoggingSettings(BaseModel):
    """Log level and renderer."""

    level: str = "info"
    format: str = "json"


class LandingPageSettings(BaseModel):
    enabled: bool = True


def _default_catalog_mappings() -> List[CatalogMappingSettings]:
    return [CatalogMappingSettings(tekton_hub="tekton", artifact_hub="tekton-catalog-tasks")]


class ProxyConfig(BaseSettings):
    """Top-level configuration for the proxy service."""

    model_config = SettingsConfigDict(
        env_prefix="THP_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    server: ServerSettings = Field(default_factory=ServerSettings)
    artifacthub: ArtifactHubSettings = Field(default_factory=ArtifactHubSettings)
    catalog_mappings: List[CatalogMappingSettings] = Field(default_factory=_default_catalog_mappings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    landing_page: LandingPageSettings = Field(default_factory=LandingPageSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # File values arrive through init kwargs; environment must win over them.
        return env_settings, init_settings, dotenv_settings, file_secret_settings


class ConfigError(Exception):
    """Raised when the configuration file cannot be read."""


def _resolve_config_path(config_path: Optional[Union[str, Path]]) -> Optional[Path]:
    if config_path:
        return Path(config_path)
    for candidate in DEFAULT_CONFIG_LOCATIONS:
        if candidate.is_file():
            return candidate
    return None


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise ConfigError(f"failed to read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse config file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    return data


def load_config(config_path: Optional[Union[str, Path]] = None) -> ProxyConfig:
    """Load configuration from an optional YAML file plus the environment.

    An explicit ``config_path`` must exist. Without one, the default
    locations are probed and defaults are used when none is present.
    """
    path = _resolve_config_path(config_path)
    file_values = _read_config_file(path) if path else {}
    return ProxyConfig(**file_values)
