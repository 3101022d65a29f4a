"""
Configuration models and loading.

This module provides Pydantic models for boardsync configuration
with multi-layer merging: defaults < user < project < env vars.
"""

from .loader import (
    clear_cache,
    get_project_config_path,
    get_storage_path,
    get_user_config_path,
    get_xdg_config_home,
    get_xdg_data_home,
    load_config,
)
from .models import (
    ApiConfig,
    BoardSyncConfig,
    DataSourceType,
    EndpointsConfig,
    LoggingConfig,
    StorageConfig,
    StoreConfig,
)

__all__ = [
    # Models
    "ApiConfig",
    "BoardSyncConfig",
    "DataSourceType",
    "EndpointsConfig",
    "LoggingConfig",
    "StorageConfig",
    "StoreConfig",
    # Loader functions
    "clear_cache",
    "get_project_config_path",
    "get_storage_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "get_xdg_data_home",
    "load_config",
]
