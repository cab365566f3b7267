"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]
ProviderName = Literal["tmdb", "imdb", "omdb"]
CacheBackend = Literal["memory", "diskcache"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


def _split_names(value: Any) -> Any:
    """Accept ``"tmdb, imdb"`` (env var style) as well as a list."""
    if isinstance(value, str):
        return [part.strip().lower() for part in value.split(",") if part.strip()]
    return value


class SearchConfig(BaseModel):
    """Search pipeline tuning (YAML section: search.*)."""

    debounce_ms: int = Field(
        default=300,
        description="Quiet period after the last keystroke before searching.",
    )
    provider_chain: list[ProviderName] = Field(
        default_factory=lambda: ["tmdb", "imdb"],
        description="Providers tried in strict priority order.",
    )
    max_results: int = Field(
        default=20,
        description="Maximum number of movies returned per search.",
    )
    cache_ttl_seconds: float = Field(
        default=300.0,
        description="How long a cached result set is served without a fetch.",
    )
    cache_max_entries: int = Field(
        default=256,
        description="Result cache size bound (least recently used evicted).",
    )

    @field_validator("provider_chain", mode="before")
    @classmethod
    def _parse_chain(cls, v: Any) -> Any:
        return _split_names(v)

    @field_validator("provider_chain")
    @classmethod
    def _validate_chain(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("provider_chain must name at least one provider")
        if len(set(v)) != len(v):
            raise ValueError("provider_chain must not repeat a provider")
        return v

    @field_validator("debounce_ms")
    @classmethod
    def _validate_debounce(cls, v: int) -> int:
        if v < 0:
            raise ValueError("debounce_ms must be >= 0")
        return v

    @field_validator("max_results", "cache_max_entries")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("cache_ttl_seconds")
    @classmethod
    def _validate_ttl(cls, v: float) -> float:
        if v < 0:
            raise ValueError("cache_ttl_seconds must be >= 0")
        return v

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


class MetadataCacheConfig(BaseModel):
    """Details/trending cache used inside provider adapters."""

    backend: CacheBackend = Field(
        default="memory",
        description="Cache backend: 'memory' (in-process) or 'diskcache' (SQLite)",
    )
    directory: Path = Field(
        default=Path("./.cache/cinesift"),
        validation_alias=AliasChoices("dir", "directory"),
        description="Diskcache SQLite DB path (backend=diskcache only)",
    )
    ttl_seconds: int = Field(
        default=3600,
        description="Default TTL for cache entries (seconds)",
    )
    max_entries: int = Field(
        default=2048,
        ge=1,
        description="Entry cap for the memory backend (diskcache is size-bounded)",
    )

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_dir(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("ttl_seconds")
    @classmethod
    def _validate_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("ttl_seconds must be >= 0")
        return v


class BreakerConfig(BaseModel):
    """Per-provider circuit breaker (YAML section: breaker.*)."""

    failure_threshold: int = Field(
        default=3,
        description="Consecutive failures before a provider is skipped.",
    )
    cooldown_seconds: float = Field(
        default=60.0,
        description="Seconds a tripped provider is skipped before a trial call.",
    )

    @field_validator("failure_threshold")
    @classmethod
    def _validate_threshold(cls, v: int) -> int:
        if v < 1:
            raise ValueError("failure_threshold must be >= 1")
        return v


class TmdbConfig(BaseModel):
    """TMDB credentials. Either key works; the read access token wins."""

    api_key: str | None = None
    read_access_token: str | None = None
    language: str = "en-US"

    @property
    def configured(self) -> bool:
        return bool(self.api_key or self.read_access_token)


class ImdbConfig(BaseModel):
    """IMDb via RapidAPI."""

    rapidapi_key: str | None = None
    host: str = "imdb-com.p.rapidapi.com"

    @property
    def configured(self) -> bool:
        return bool(self.rapidapi_key)


class OmdbConfig(BaseModel):
    api_key: str | None = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/logging/search/...).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="cinesift", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=8.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Per-request timeout for catalog providers.",
    )
    http_user_agent: str = Field(
        default="cinesift/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )
    http_max_retries: int = Field(
        default=2,
        validation_alias=AliasChoices(
            "http_max_retries",
            AliasPath("http", "max_retries"),
        ),
        description="Retries for 429/503 responses (0 disables).",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    search: SearchConfig = Field(default_factory=SearchConfig)
    metadata_cache: MetadataCacheConfig = Field(default_factory=MetadataCacheConfig)
    breaker: BreakerConfig = Field(default_factory=BreakerConfig)

    tmdb: TmdbConfig = Field(default_factory=TmdbConfig)
    imdb: ImdbConfig = Field(default_factory=ImdbConfig)
    omdb: OmdbConfig = Field(default_factory=OmdbConfig)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @field_validator("http_max_retries")
    @classmethod
    def _validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("http_max_retries must be >= 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.

        Credentials are masked.
        """

        def _mask(value: str | None) -> str | None:
            return "***" if value else None

        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "user_agent": self.http_user_agent,
                "max_retries": self.http_max_retries,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "search": self.search.model_dump(),
            "metadata_cache": {
                "backend": self.metadata_cache.backend,
                "dir": str(self.metadata_cache.directory),
                "ttl_seconds": self.metadata_cache.ttl_seconds,
                "max_entries": self.metadata_cache.max_entries,
            },
            "breaker": self.breaker.model_dump(),
            "tmdb": {
                "api_key": _mask(self.tmdb.api_key),
                "read_access_token": _mask(self.tmdb.read_access_token),
                "language": self.tmdb.language,
            },
            "imdb": {
                "rapidapi_key": _mask(self.imdb.rapidapi_key),
                "host": self.imdb.host,
            },
            "omdb": {"api_key": _mask(self.omdb.api_key)},
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read CINESIFT_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - CINESIFT_TMDB_API_KEY
    - CINESIFT_SEARCH_PROVIDER_CHAIN=tmdb,omdb
    - CINESIFT_HTTP_TIMEOUT_SECONDS
    - CINESIFT_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="CINESIFT_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_user_agent: Optional[str] = None
    http_max_retries: Optional[int] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    search_debounce_ms: Optional[int] = None
    # Kept as a plain string so "tmdb,imdb" works without JSON quoting.
    search_provider_chain: Optional[str] = None
    search_max_results: Optional[int] = None
    search_cache_ttl_seconds: Optional[float] = None
    search_cache_max_entries: Optional[int] = None

    metadata_cache_backend: Optional[CacheBackend] = None
    metadata_cache_dir: Optional[Path] = None
    metadata_cache_ttl_seconds: Optional[int] = None
    metadata_cache_max_entries: Optional[int] = None

    breaker_failure_threshold: Optional[int] = None
    breaker_cooldown_seconds: Optional[float] = None

    tmdb_api_key: Optional[str] = None
    tmdb_read_access_token: Optional[str] = None
    tmdb_language: Optional[str] = None
    imdb_rapidapi_key: Optional[str] = None
    imdb_host: Optional[str] = None
    omdb_api_key: Optional[str] = None

    @field_validator("metadata_cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
