"""
Tests for the data source registry.
"""

import pytest

from boardsync.core.config.models import BoardSyncConfig
from boardsync.core.datasource import (
    DataSource,
    get_data_source,
    is_data_source_available,
    list_data_sources,
)
from boardsync.core.datasource.graphql import GraphQLDataSource
from boardsync.core.datasource.local import LocalDataSource
from boardsync.core.datasource.rest import RestDataSource


class TestRegistry:
    """Tests for registration and lookup."""

    def test_builtin_sources_registered(self) -> None:
        """Test that importing the package registers every backend."""
        assert {"local", "rest", "graphql"} <= set(list_data_sources())
        assert is_data_source_available("rest")
        assert not is_data_source_available("carrier-pigeon")

    def test_unknown_name(self) -> None:
        """Test that an unknown name lists the available sources."""
        with pytest.raises(ValueError, match="not registered"):
            get_data_source("carrier-pigeon", config=BoardSyncConfig())

    def test_default_is_local(self, tmp_path) -> None:
        """Test that the default configuration picks the local source."""
        source = get_data_source(config=BoardSyncConfig(storage={"path": str(tmp_path / "b.json")}))
        assert isinstance(source, LocalDataSource)
        assert isinstance(source, DataSource)

    @pytest.mark.asyncio
    async def test_rest_from_config(self) -> None:
        """Test REST configuration."""
        config = BoardSyncConfig(
            data_source="rest", api={"base_url": "https://boards.example.com/api/"}
        )
        source = get_data_source(config=config)

        assert isinstance(source, RestDataSource)
        assert source.base_url == "https://boards.example.com/api"
        assert source.source_name == "rest"
        await source.aclose()

    @pytest.mark.asyncio
    async def test_graphql_from_config(self) -> None:
        """Test GraphQL configuration including the endpoint path."""
        config = BoardSyncConfig(
            data_source="GraphQL",
            api={"base_url": "https://boards.example.com", "endpoints": {"graphql": "/gql"}},
        )
        source = get_data_source(config=config)

        assert isinstance(source, GraphQLDataSource)
        assert source.url == "https://boards.example.com/gql"
        await source.aclose()

    def test_loads_config_when_missing(self, monkeypatch, tmp_path) -> None:
        """Test that the configuration chain is used when no config is passed."""
        monkeypatch.setenv("BOARDSYNC_STORAGE_PATH", str(tmp_path / "env.json"))

        source = get_data_source()

        assert isinstance(source, LocalDataSource)
        assert source.storage_path == tmp_path / "env.json"
