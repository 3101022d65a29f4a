"""
Configuration data models for boardsync.

These models define the structure of .boardsync.json and
~/.config/boardsync/config.json files, with validation and type safety via
Pydantic.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DataSourceType(str, Enum):
    """Available board backends."""

    LOCAL = "local"
    REST = "rest"
    GRAPHQL = "graphql"


class EndpointsConfig(BaseModel):
    """Paths appended to ``api.base_url``."""
    graphql: str = Field(
        default="/graphql",
        description="GraphQL endpoint path"
    )


class ApiConfig(BaseModel):
    """
    Remote API settings for the REST and GraphQL data sources.
    """
    base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the board API"
    )
    timeout: float = Field(
        default=10.0,
        gt=0.0,
        description="Request timeout in seconds"
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries for idempotent reads on transient failures"
    )
    endpoints: EndpointsConfig = Field(default_factory=EndpointsConfig)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop the trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")


class StorageConfig(BaseModel):
    """
    Local data source storage.

    The storage file defaults to
    $XDG_DATA_HOME/boardsync/{prefix}{version}_data.json.
    """
    path: Optional[Path] = Field(
        default=None,
        description="Explicit path to the storage file"
    )
    prefix: str = Field(
        default="app_",
        description="Storage file name prefix"
    )
    version: str = Field(
        default="1.0",
        description="Storage format version, part of the file name"
    )
    latency_ms: tuple[int, int] = Field(
        default=(0, 0),
        description="Simulated latency range (min, max) in milliseconds"
    )

    @field_validator("latency_ms")
    @classmethod
    def validate_latency(cls, v: tuple[int, int]) -> tuple[int, int]:
        low, high = v
        if low < 0 or high < low:
            raise ValueError("latency_ms must be (min, max) with 0 <= min <= max")
        return v


class StoreConfig(BaseModel):
    """
    Board store behavior.
    """
    serialize_mutations: bool = Field(
        default=True,
        description="Dispatch optimistic mutations one at a time per dashboard"
    )


class LoggingConfig(BaseModel):
    """
    Structured sync event logging.
    """
    events: bool = Field(
        default=False,
        description="Write mutation events to a JSONL log"
    )


class BoardSyncConfig(BaseModel):
    """
    Complete boardsync configuration.

    Merged from defaults, user config, project config and environment
    variables, in that order.
    """
    data_source: DataSourceType = Field(
        default=DataSourceType.LOCAL,
        description="Which backend the board store talks to"
    )
    api: ApiConfig = Field(default_factory=ApiConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(
        extra="ignore",
    )

    @field_validator("data_source", mode="before")
    @classmethod
    def normalize_data_source(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().lower()
        return v
