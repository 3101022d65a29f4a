"""
DataSource protocol and registry.

This module defines the DataSource protocol that every board backend must
implement (local file storage, REST, GraphQL), and a small registry used to
pick one implementation from configuration at startup.

All operations are coroutines returning ``ApiResponse``. Implementations must
never raise for backend failures (not found, auth, transport, timeouts); they
report them as ``ApiResponse.error`` so the board store can roll back
deterministically.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from boardsync.core.board.models import AuthResponse, Card, Column, Dashboard, Invitation
from boardsync.core.datasource.models import ApiResponse

if TYPE_CHECKING:
    from boardsync.core.config.models import BoardSyncConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class DataSource(Protocol):
    """
    Protocol for board backend implementations.

    Backends are responsible for:
    - Authenticating the user and holding whatever session state they need
    - Persisting dashboards, columns, cards and invitations
    - Applying position-based reorders (final index, never a delta)
    - Being safe to call twice with the same arguments
    """

    @property
    def source_name(self) -> str:
        """Registry name of this data source (e.g. 'local', 'rest')."""
        ...

    # Auth

    async def login(self, email: str, password: str) -> ApiResponse[AuthResponse]:
        """
        Authenticate a user.

        Args:
            email: Account email
            password: Plain-text password

        Returns:
            The user and issued tokens, or AUTH_ERROR / NOT_FOUND
        """
        ...

    async def register(
        self, email: str, password: str, full_name: str
    ) -> ApiResponse[AuthResponse]:
        """Create an account and log it in. CONFLICT if the email is taken."""
        ...

    async def logout(self) -> ApiResponse[None]:
        """End the current session."""
        ...

    async def change_password(
        self, user_id: str, old_password: str, new_password: str
    ) -> ApiResponse[dict[str, Any]]:
        """Replace a password after checking the old one (INVALID_PASSWORD on mismatch)."""
        ...

    # Dashboards

    async def get_dashboards(self) -> ApiResponse[list[Dashboard]]:
        """List the dashboards visible to the current user."""
        ...

    async def get_dashboard(self, dashboard_id: str) -> ApiResponse[Dashboard]:
        """Fetch one dashboard with its columns and cards."""
        ...

    async def create_dashboard(self, title: str, user_id: str) -> ApiResponse[Dashboard]:
        """Create a dashboard owned by ``user_id``."""
        ...

    async def update_dashboard(
        self, dashboard_id: str, updates: dict[str, Any]
    ) -> ApiResponse[Dashboard]:
        """
        Apply a partial update to a dashboard.

        Args:
            dashboard_id: Dashboard to update
            updates: camelCase or snake_case field values to replace

        Returns:
            The canonical updated dashboard
        """
        ...

    async def delete_dashboard(self, dashboard_id: str) -> ApiResponse[None]:
        ...

    # Invitations

    async def invite_to_dashboard(
        self, dashboard_id: str, email: str
    ) -> ApiResponse[Invitation]:
        """
        Invite ``email`` to a dashboard.

        Must not create a second pending invitation for the same
        (dashboard, email) pair; returning the existing one is acceptable.
        """
        ...

    async def accept_invitation(self, invitation_id: str) -> ApiResponse[None]:
        ...

    async def reject_invitation(self, invitation_id: str) -> ApiResponse[None]:
        ...

    # Columns

    async def create_column(self, dashboard_id: str, title: str) -> ApiResponse[Column]:
        ...

    async def update_column(
        self, dashboard_id: str, column_id: str, updates: dict[str, Any]
    ) -> ApiResponse[Column]:
        ...

    async def delete_column(self, dashboard_id: str, column_id: str) -> ApiResponse[None]:
        ...

    async def update_column_order(
        self, dashboard_id: str, column_ids: list[str]
    ) -> ApiResponse[None]:
        """
        Reorder columns.

        Args:
            dashboard_id: Dashboard owning the columns
            column_ids: Every column id of the dashboard in its new order

        Returns:
            Empty success, or VALIDATION_ERROR when ids are missing or unknown
        """
        ...

    # Cards

    async def create_card(
        self, dashboard_id: str, column_id: str, title: str
    ) -> ApiResponse[Card]:
        ...

    async def update_card(
        self, dashboard_id: str, column_id: str, card_id: str, updates: dict[str, Any]
    ) -> ApiResponse[Card]:
        ...

    async def delete_card(
        self, dashboard_id: str, column_id: str, card_id: str
    ) -> ApiResponse[None]:
        ...

    async def move_card(
        self,
        dashboard_id: str,
        from_column_id: str,
        to_column_id: str,
        card_id: str,
        new_index: int,
    ) -> ApiResponse[None]:
        """
        Move a card to ``new_index`` of ``to_column_id``.

        ``new_index`` is the card's final position in the destination column.
        """
        ...

    def restore_session(self, auth: AuthResponse) -> None:
        """Reuse a token issued by an earlier login (e.g. a previous CLI run)."""
        ...

    async def aclose(self) -> None:
        """Release transport resources (HTTP clients, file handles)."""
        ...


# Data source registry
_data_sources: dict[str, type[Any]] = {}


def register_data_source(name: str) -> Callable[[type[Any]], type[Any]]:
    """
    Decorator to register a DataSource implementation.

    Registered classes must provide a ``from_config(config)`` classmethod.

    Usage:
        @register_data_source("rest")
        class RestDataSource:
            ...

    Args:
        name: Data source name (e.g., 'local', 'rest', 'graphql')

    Returns:
        Decorator function
    """

    def decorator(source_class: type[Any]) -> type[Any]:
        _data_sources[name] = source_class
        return source_class

    return decorator


def get_data_source(
    name: str | None = None,
    config: BoardSyncConfig | None = None,
) -> DataSource:
    """
    Instantiate a data source by name or from configuration.

    Called once at startup; the returned object is then handed to the board
    store. Call sites never branch on the concrete type.

    Args:
        name: Data source name; defaults to ``config.data_source``
        config: Loaded configuration (loads the default chain if None)

    Returns:
        DataSource instance

    Raises:
        ValueError: If the name is not registered
    """
    if config is None:
        from boardsync.core.config.loader import load_config

        config = load_config()

    if name is None:
        name = config.data_source.value

    source_class = _data_sources.get(name)
    if source_class is None:
        raise ValueError(
            f"Data source '{name}' not registered. "
            f"Available data sources: {', '.join(sorted(_data_sources.keys()))}"
        )

    logger.debug("Using data source %s", name)
    source: DataSource = source_class.from_config(config)
    return source


def list_data_sources() -> list[str]:
    """List all registered data source names."""
    return list(_data_sources.keys())


def is_data_source_available(name: str) -> bool:
    """Check if a data source is registered."""
    return name in _data_sources
