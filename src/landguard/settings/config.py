"""Configuration loader for landguard services using Pydantic settings."""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

ENV_VAR_NAME = "LANDGUARD_ENV"
DEFAULT_ENV = "local"
PROJECT_ROOT = Path(__file__).resolve().parents[3]
CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_CONFIG_FILE = CONFIG_DIR / "settings.default.toml"
LOCAL_CONFIG_FILE = CONFIG_DIR / "settings.local.toml"
SETTINGS_FILE_ENV_VAR = "LANDGUARD_SETTINGS_FILE"


def _resolve_env(explicit_env: str | None = None) -> str:
    """Return the active environment name.

    Args:
        explicit_env: Environment value supplied directly by the caller.

    Returns:
        A stripped environment name, falling back to ``DEFAULT_ENV``.
    """

    env = explicit_env or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV
    return env.strip()


def _env_file_candidates(env: str) -> list[Path]:
    """List candidate ``.env`` files used during settings resolution."""

    return [
        PROJECT_ROOT / ".env",
        PROJECT_ROOT / f".env.{env}",
        PROJECT_ROOT / ".env.local",
    ]


def _resolve_config_path(raw_path: str | None) -> Path | None:
    """Return an absolute config path from user input."""

    if not raw_path:
        return None
    candidate = Path(raw_path).expanduser()
    if not candidate.is_absolute():
        candidate = (PROJECT_ROOT / candidate).resolve()
    return candidate


def _config_file_priority(include_missing: bool = False) -> tuple[Path, ...]:
    """Return config files in descending precedence order."""

    ordered: list[Path] = []
    env_override = _resolve_config_path(os.getenv(SETTINGS_FILE_ENV_VAR))
    if env_override:
        ordered.append(env_override)
    ordered.append(LOCAL_CONFIG_FILE)
    ordered.append(DEFAULT_CONFIG_FILE)
    if include_missing:
        return tuple(ordered)
    return tuple(path for path in ordered if path.exists())


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Pydantic settings source that loads values from a TOML file."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path) -> None:
        super().__init__(settings_cls)
        self.path = path
        self._data: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        if not self.path.exists():
            self._data = {}
            return self._data
        try:
            with self.path.open("rb") as handle:
                self._data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:  # pragma: no cover - invalid files surface immediately
            raise ValueError(f"Invalid TOML syntax in {self.path}") from exc
        return self._data

    def __call__(self) -> dict[str, Any]:  # pragma: no cover - trivial wrapper
        return self._load()

    def get_field_value(self, field_name: str, field):  # pragma: no cover - passthrough helper
        data = self._load()
        return data.get(field_name), field_name in data


def _read_env_value(*keys: str) -> str | None:
    """Return the first present environment variable from ``keys``."""

    for key in keys:
        value = os.getenv(key)
        if value is not None:
            return value
    return None


class RuntimeSettings(BaseSettings):
    """Process-level runtime controls."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "RUNTIME__LOG_LEVEL"),
    )


class APISettings(BaseSettings):
    """Shared API token configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    key: str = Field(
        default="dev-client-token",
        validation_alias=AliasChoices("API_KEY", "API__KEY"),
    )


class StorageSettings(BaseSettings):
    """Key-value repository configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    backend: Literal["sql", "memory"] = Field(
        default="sql",
        validation_alias=AliasChoices("STORAGE_BACKEND", "STORAGE__BACKEND"),
    )
    database_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "STORAGE__DATABASE_URL"),
    )
    sqlite_path: Path = Field(
        default=PROJECT_ROOT / "data" / "landguard_store.db",
        validation_alias=AliasChoices("SQLITE_PATH", "STORAGE__SQLITE_PATH"),
    )
    fallback_to_memory: bool = Field(
        default=True,
        validation_alias=AliasChoices("STORAGE_FALLBACK_TO_MEMORY", "STORAGE__FALLBACK_TO_MEMORY"),
    )
    cas_max_attempts: int = Field(
        default=50,
        ge=1,
        validation_alias=AliasChoices("STORAGE_CAS_MAX_ATTEMPTS", "STORAGE__CAS_MAX_ATTEMPTS"),
    )

    @field_validator("backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class ScoringSettings(BaseSettings):
    """Scan endpoint limits."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    max_bulk_listings: int = Field(
        default=100,
        validation_alias=AliasChoices("SCORING_MAX_BULK_LISTINGS", "SCORING__MAX_BULK_LISTINGS"),
    )
    top_flags: int = Field(
        default=5,
        validation_alias=AliasChoices("SCORING_TOP_FLAGS", "SCORING__TOP_FLAGS"),
    )


class ObservabilitySettings(BaseSettings):
    """Logging and metrics configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    structured_logging: bool = Field(
        default=True,
        validation_alias=AliasChoices("OBS_STRUCTURED_LOGGING", "OBSERVABILITY__STRUCTURED_LOGGING"),
    )
    statsd_host: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OBS_STATSD_HOST", "OBSERVABILITY__STATSD_HOST"),
    )
    statsd_port: int = Field(
        default=8125,
        validation_alias=AliasChoices("OBS_STATSD_PORT", "OBSERVABILITY__STATSD_PORT"),
    )
    statsd_prefix: str = Field(
        default="landguard",
        validation_alias=AliasChoices("OBS_STATSD_PREFIX", "OBSERVABILITY__STATSD_PREFIX"),
    )
    service_name: str = Field(
        default="landguard-api",
        validation_alias=AliasChoices("OBS_SERVICE_NAME", "OBSERVABILITY__SERVICE_NAME"),
    )


class Settings(BaseSettings):
    """Top-level configuration model with nested sections for each subsystem."""

    env: str = Field(
        default_factory=lambda: _resolve_env(),
        validation_alias=AliasChoices("ENV", "ENVIRONMENT", "RUNTIME__ENV"),
    )
    project_root: Path = Field(default=PROJECT_ROOT)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)
    api: APISettings = Field(default_factory=APISettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    env_files: tuple[Path, ...] = Field(default_factory=tuple, exclude=True)
    config_files: tuple[Path, ...] = Field(default_factory=tuple, exclude=True)

    model_config = SettingsConfigDict(
        env_prefix="LANDGUARD_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Extend settings sources with TOML-based config files."""

        config_sources = [TomlConfigSettingsSource(settings_cls, path) for path in _config_file_priority()]
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            *config_sources,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Normalize relative paths once the model is initialised."""

        if not self.storage.sqlite_path.is_absolute():
            storage_update = {"sqlite_path": (self.project_root / self.storage.sqlite_path).resolve()}
            object.__setattr__(self, "storage", self.storage.model_copy(update=storage_update))
        return self

    @model_validator(mode="after")
    def _apply_environment_overrides(self) -> "Settings":
        """Force environment-specific defaults after basic resolution."""

        if self.env.lower() == "local":
            observability_update = {"structured_logging": False}
            object.__setattr__(self, "observability", self.observability.model_copy(update=observability_update))

        storage_updates: dict[str, object] = {}
        url_override = _read_env_value(
            "LANDGUARD_STORAGE__DATABASE_URL",
            "LANDGUARD_DATABASE_URL",
            "STORAGE__DATABASE_URL",
        )
        if url_override:
            storage_updates["database_url"] = url_override.strip()

        fallback_override = _read_env_value(
            "LANDGUARD_STORAGE__FALLBACK_TO_MEMORY",
            "LANDGUARD_STORAGE_FALLBACK_TO_MEMORY",
        )
        if fallback_override is not None:
            storage_updates["fallback_to_memory"] = fallback_override.strip().lower() not in {"false", "0", "off", "no"}

        if storage_updates:
            object.__setattr__(self, "storage", self.storage.model_copy(update=storage_updates))

        return self

    @property
    def log_level(self) -> str:
        """str: Effective logging level for the running process."""

        return self.runtime.log_level

    @property
    def api_key(self) -> str:
        """str: Shared API token for simple authenticated endpoints."""

        return self.api.key

    @property
    def sqlite_path(self) -> Path:
        """Path: Filesystem path for the local SQLite database."""

        return self.storage.sqlite_path


def _load_settings(env: str | None = None) -> Settings:
    """Load settings with optional environment override.

    Args:
        env: Environment name supplied programmatically.

    Returns:
        Fully parsed :class:`Settings` instance with env files applied.
    """

    resolved_env = _resolve_env(env)
    candidate_files = [path for path in _env_file_candidates(resolved_env) if path.exists()]
    config_files = _config_file_priority()
    return Settings(
        _env_file=[str(path) for path in candidate_files],
        _env_file_encoding="utf-8",
        env=resolved_env,
        env_files=tuple(candidate_files),
        config_files=config_files,
    )


@lru_cache(maxsize=1)
def get_settings(env: str | None = None) -> Settings:
    """Return cached settings for the requested environment."""

    return _load_settings(env)


def reload_settings(env: str | None = None) -> Settings:
    """Clear the cached settings and reload from disk."""

    get_settings.cache_clear()
    return get_settings(env)


__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
    "PROJECT_ROOT",
    "ENV_VAR_NAME",
]
