"""
Board backends.

Importing this package registers the built-in data sources (``local``,
``rest`` and ``graphql``) with the registry in ``backend``.
"""

from .backend import (
    DataSource,
    get_data_source,
    is_data_source_available,
    list_data_sources,
    register_data_source,
)
from .models import ApiError, ApiResponse, ErrorCode

# Register built-in implementations
from . import graphql, local, rest  # noqa: E402,F401

__all__ = [
    "ApiError",
    "ApiResponse",
    "DataSource",
    "ErrorCode",
    "get_data_source",
    "is_data_source_available",
    "list_data_sources",
    "register_data_source",
]
