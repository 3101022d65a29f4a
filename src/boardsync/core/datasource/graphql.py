"""
GraphQL data source.

Every operation is a single POST of ``{"query": ..., "variables": ...}`` to
``base_url + endpoints.graphql``. The result of operation ``op`` is read from
``data.op`` and validated into the matching model.

Error mapping:
    - Transport failure: TIMEOUT / NETWORK_ERROR (see ``http.py``)
    - Non-2xx status: API_ERROR with the HTTP status
    - ``errors`` in the body: first error's message, ``extensions.code``
      (default GRAPHQL_ERROR) and ``extensions.status`` (default 400)
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from boardsync.core.board.models import (
    AuthResponse,
    Card,
    Column,
    Dashboard,
    Invitation,
    WireModel,
)
from boardsync.core.config.models import BoardSyncConfig
from boardsync.core.datasource.backend import register_data_source
from boardsync.core.datasource.http import error_from_exception
from boardsync.core.datasource.models import ApiError, ApiResponse, ErrorCode

logger = logging.getLogger(__name__)

_DASHBOARD_LIST = TypeAdapter(list[Dashboard])

# ==============================================================================
# Documents
# ==============================================================================

USER_FIELDS = "id email fullName avatar createdAt updatedAt"

AUTH_FIELDS = f"{USER_FIELDS} token refreshToken"

CARD_FIELDS = """
  id number title description columnId dueDate createdAt updatedAt images
  members { id email }
  labels { id text color }
  checklists { id title items { id text completed } }
  comments { id text userId userEmail createdAt }
  attachments { id name url type size createdAt }
"""

COLUMN_FIELDS = f"id title order isArchive cards {{ {CARD_FIELDS} }}"

INVITATION_FIELDS = "id dashboardId inviterId inviterEmail inviteeEmail status createdAt"

DASHBOARD_FIELDS = f"""
  id title createdAt updatedAt ownerIds background description isPublic
  members {{ {USER_FIELDS} }}
  columns {{ {COLUMN_FIELDS} }}
  invitations {{ {INVITATION_FIELDS} }}
"""

LOGIN = f"""
mutation Login($email: String!, $password: String!) {{
  login(email: $email, password: $password) {{ {AUTH_FIELDS} }}
}}
"""

REGISTER = f"""
mutation Register($email: String!, $password: String!, $fullName: String!) {{
  register(email: $email, password: $password, fullName: $fullName) {{ {AUTH_FIELDS} }}
}}
"""

LOGOUT = """
mutation Logout {
  logout
}
"""

CHANGE_PASSWORD = """
mutation ChangePassword($userId: ID!, $oldPassword: String!, $newPassword: String!) {
  changePassword(userId: $userId, oldPassword: $oldPassword, newPassword: $newPassword) {
    success
  }
}
"""

GET_DASHBOARDS = f"""
query GetDashboards {{
  dashboards {{ {DASHBOARD_FIELDS} }}
}}
"""

GET_DASHBOARD = f"""
query GetDashboard($id: ID!) {{
  dashboard(id: $id) {{ {DASHBOARD_FIELDS} }}
}}
"""

CREATE_DASHBOARD = f"""
mutation CreateDashboard($input: CreateDashboardInput!) {{
  createDashboard(input: $input) {{ {DASHBOARD_FIELDS} }}
}}
"""

UPDATE_DASHBOARD = f"""
mutation UpdateDashboard($id: ID!, $input: UpdateDashboardInput!) {{
  updateDashboard(id: $id, input: $input) {{ {DASHBOARD_FIELDS} }}
}}
"""

DELETE_DASHBOARD = """
mutation DeleteDashboard($id: ID!) {
  deleteDashboard(id: $id)
}
"""

INVITE_TO_DASHBOARD = f"""
mutation InviteToDashboard($dashboardId: ID!, $email: String!) {{
  inviteToDashboard(dashboardId: $dashboardId, email: $email) {{ {INVITATION_FIELDS} }}
}}
"""

ACCEPT_INVITATION = """
mutation AcceptInvitation($invitationId: ID!) {
  acceptInvitation(invitationId: $invitationId)
}
"""

REJECT_INVITATION = """
mutation RejectInvitation($invitationId: ID!) {
  rejectInvitation(invitationId: $invitationId)
}
"""

CREATE_COLUMN = f"""
mutation CreateColumn($input: CreateColumnInput!) {{
  createColumn(input: $input) {{ {COLUMN_FIELDS} }}
}}
"""

UPDATE_COLUMN = f"""
mutation UpdateColumn($dashboardId: ID!, $columnId: ID!, $input: UpdateColumnInput!) {{
  updateColumn(dashboardId: $dashboardId, columnId: $columnId, input: $input) {{
    {COLUMN_FIELDS}
  }}
}}
"""

DELETE_COLUMN = """
mutation DeleteColumn($dashboardId: ID!, $columnId: ID!) {
  deleteColumn(dashboardId: $dashboardId, columnId: $columnId)
}
"""

UPDATE_COLUMN_ORDER = """
mutation UpdateColumnOrder($dashboardId: ID!, $columnIds: [ID!]!) {
  updateColumnOrder(dashboardId: $dashboardId, columnIds: $columnIds)
}
"""

CREATE_CARD = f"""
mutation CreateCard($input: CreateCardInput!) {{
  createCard(input: $input) {{ {CARD_FIELDS} }}
}}
"""

UPDATE_CARD = f"""
mutation UpdateCard(
  $dashboardId: ID!, $columnId: ID!, $cardId: ID!, $input: UpdateCardInput!
) {{
  updateCard(dashboardId: $dashboardId, columnId: $columnId, cardId: $cardId, input: $input) {{
    {CARD_FIELDS}
  }}
}}
"""

DELETE_CARD = """
mutation DeleteCard($dashboardId: ID!, $columnId: ID!, $cardId: ID!) {
  deleteCard(dashboardId: $dashboardId, columnId: $columnId, cardId: $cardId)
}
"""

MOVE_CARD = """
mutation MoveCard($input: MoveCardInput!) {
  moveCard(input: $input)
}
"""


def column_input(updates: dict[str, Any]) -> dict[str, Any]:
    """Column update input, spelled the way COLUMN_FIELDS selects the archived flag."""
    result = Column.wire_updates(updates)
    if "is_archive" in result:
        result["isArchive"] = result.pop("is_archive")
    return result


@register_data_source("graphql")
class GraphQLDataSource:
    """Data source for a GraphQL board API."""

    def __init__(
        self,
        base_url: str,
        endpoint: str = "/graphql",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the GraphQL data source.

        Args:
            base_url: API root, e.g. ``https://host/api``
            endpoint: Path of the GraphQL endpoint below ``base_url``
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.url = f"{base_url.rstrip('/')}{endpoint}"
        self.token: str | None = None
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: BoardSyncConfig) -> GraphQLDataSource:
        return cls(
            config.api.base_url,
            config.api.endpoints.graphql,
            config.api.timeout,
        )

    @property
    def source_name(self) -> str:
        return "graphql"

    def restore_session(self, auth: AuthResponse) -> None:
        self.token = auth.token

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _execute(
        self,
        operation: str,
        document: str,
        variables: dict[str, Any] | None = None,
    ) -> tuple[Any, ApiError | None]:
        """
        Run a document and unwrap ``data.<operation>``.

        Returns:
            Tuple of (operation result or None, error or None)
        """
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            response = await self._client.post(
                self.url,
                json={"query": document, "variables": variables or {}},
                headers=headers,
            )
        except httpx.HTTPError as e:
            error = error_from_exception(e)
            logger.warning("GraphQL %s failed: %s", operation, error.message)
            return None, error

        if not response.is_success:
            logger.warning("GraphQL %s returned HTTP %d", operation, response.status_code)
            return None, ApiError(
                message=f"HTTP error! status: {response.status_code}",
                code=ErrorCode.API_ERROR.value,
                status=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            return None, ApiError(
                message="Response body is not valid JSON",
                code=ErrorCode.API_ERROR.value,
                status=response.status_code,
            )

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            first = errors[0] if isinstance(errors[0], dict) else {}
            extensions = first.get("extensions") or {}
            error = ApiError(
                message=str(first.get("message") or "GraphQL error"),
                code=str(extensions.get("code") or ErrorCode.GRAPHQL_ERROR.value),
                status=int(extensions.get("status") or 400),
            )
            logger.warning("GraphQL %s returned error %s: %s", operation, error.code, error.message)
            return None, error

        data = body.get("data") if isinstance(body, dict) else None
        return (data or {}).get(operation), None

    async def _call(
        self,
        model: type[WireModel] | TypeAdapter[Any] | None,
        operation: str,
        document: str,
        variables: dict[str, Any] | None = None,
    ) -> ApiResponse[Any]:
        result, error = await self._execute(operation, document, variables)
        if error is not None:
            return ApiResponse.from_error(error)
        if model is None:
            return ApiResponse.success(None)
        if result is None:
            return ApiResponse.failure(f"{operation} returned no data", ErrorCode.NOT_FOUND, 404)
        try:
            if isinstance(model, TypeAdapter):
                data = model.validate_python(result)
            else:
                data = model.model_validate(result)
        except ValidationError as e:
            logger.warning("GraphQL %s returned an unexpected payload: %s", operation, e)
            return ApiResponse.failure(
                f"Unexpected response payload: {e.error_count()} validation error(s)",
                ErrorCode.GRAPHQL_ERROR,
                400,
            )
        return ApiResponse.success(data)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> ApiResponse[AuthResponse]:
        response = await self._call(
            AuthResponse, "login", LOGIN, {"email": email, "password": password}
        )
        if response.ok and response.data is not None:
            self.token = response.data.token
        return response

    async def register(
        self, email: str, password: str, full_name: str
    ) -> ApiResponse[AuthResponse]:
        response = await self._call(
            AuthResponse,
            "register",
            REGISTER,
            {"email": email, "password": password, "fullName": full_name},
        )
        if response.ok and response.data is not None:
            self.token = response.data.token
        return response

    async def logout(self) -> ApiResponse[None]:
        response = await self._call(None, "logout", LOGOUT)
        self.token = None
        return response

    async def change_password(
        self, user_id: str, old_password: str, new_password: str
    ) -> ApiResponse[dict[str, Any]]:
        result, error = await self._execute(
            "changePassword",
            CHANGE_PASSWORD,
            {"userId": user_id, "oldPassword": old_password, "newPassword": new_password},
        )
        if error is not None:
            return ApiResponse.from_error(error)
        return ApiResponse.success(result if isinstance(result, dict) else {"success": True})

    # ------------------------------------------------------------------
    # Dashboards
    # ------------------------------------------------------------------

    async def get_dashboards(self) -> ApiResponse[list[Dashboard]]:
        return await self._call(_DASHBOARD_LIST, "dashboards", GET_DASHBOARDS)

    async def get_dashboard(self, dashboard_id: str) -> ApiResponse[Dashboard]:
        return await self._call(Dashboard, "dashboard", GET_DASHBOARD, {"id": dashboard_id})

    async def create_dashboard(self, title: str, user_id: str) -> ApiResponse[Dashboard]:
        return await self._call(
            Dashboard,
            "createDashboard",
            CREATE_DASHBOARD,
            {"input": {"title": title, "userId": user_id}},
        )

    async def update_dashboard(
        self, dashboard_id: str, updates: dict[str, Any]
    ) -> ApiResponse[Dashboard]:
        return await self._call(
            Dashboard,
            "updateDashboard",
            UPDATE_DASHBOARD,
            {"id": dashboard_id, "input": Dashboard.wire_updates(updates)},
        )

    async def delete_dashboard(self, dashboard_id: str) -> ApiResponse[None]:
        return await self._call(None, "deleteDashboard", DELETE_DASHBOARD, {"id": dashboard_id})

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    async def invite_to_dashboard(
        self, dashboard_id: str, email: str
    ) -> ApiResponse[Invitation]:
        return await self._call(
            Invitation,
            "inviteToDashboard",
            INVITE_TO_DASHBOARD,
            {"dashboardId": dashboard_id, "email": email},
        )

    async def accept_invitation(self, invitation_id: str) -> ApiResponse[None]:
        return await self._call(
            None, "acceptInvitation", ACCEPT_INVITATION, {"invitationId": invitation_id}
        )

    async def reject_invitation(self, invitation_id: str) -> ApiResponse[None]:
        return await self._call(
            None, "rejectInvitation", REJECT_INVITATION, {"invitationId": invitation_id}
        )

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    async def create_column(self, dashboard_id: str, title: str) -> ApiResponse[Column]:
        return await self._call(
            Column,
            "createColumn",
            CREATE_COLUMN,
            {"input": {"dashboardId": dashboard_id, "title": title}},
        )

    async def update_column(
        self, dashboard_id: str, column_id: str, updates: dict[str, Any]
    ) -> ApiResponse[Column]:
        return await self._call(
            Column,
            "updateColumn",
            UPDATE_COLUMN,
            {
                "dashboardId": dashboard_id,
                "columnId": column_id,
                "input": column_input(updates),
            },
        )

    async def delete_column(self, dashboard_id: str, column_id: str) -> ApiResponse[None]:
        return await self._call(
            None,
            "deleteColumn",
            DELETE_COLUMN,
            {"dashboardId": dashboard_id, "columnId": column_id},
        )

    async def update_column_order(
        self, dashboard_id: str, column_ids: list[str]
    ) -> ApiResponse[None]:
        return await self._call(
            None,
            "updateColumnOrder",
            UPDATE_COLUMN_ORDER,
            {"dashboardId": dashboard_id, "columnIds": list(column_ids)},
        )

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    async def create_card(
        self, dashboard_id: str, column_id: str, title: str
    ) -> ApiResponse[Card]:
        return await self._call(
            Card,
            "createCard",
            CREATE_CARD,
            {"input": {"dashboardId": dashboard_id, "columnId": column_id, "title": title}},
        )

    async def update_card(
        self, dashboard_id: str, column_id: str, card_id: str, updates: dict[str, Any]
    ) -> ApiResponse[Card]:
        return await self._call(
            Card,
            "updateCard",
            UPDATE_CARD,
            {
                "dashboardId": dashboard_id,
                "columnId": column_id,
                "cardId": card_id,
                "input": Card.wire_updates(updates),
            },
        )

    async def delete_card(
        self, dashboard_id: str, column_id: str, card_id: str
    ) -> ApiResponse[None]:
        return await self._call(
            None,
            "deleteCard",
            DELETE_CARD,
            {"dashboardId": dashboard_id, "columnId": column_id, "cardId": card_id},
        )

    async def move_card(
        self,
        dashboard_id: str,
        from_column_id: str,
        to_column_id: str,
        card_id: str,
        new_index: int,
    ) -> ApiResponse[None]:
        return await self._call(
            None,
            "moveCard",
            MOVE_CARD,
            {
                "input": {
                    "dashboardId": dashboard_id,
                    "fromColumnId": from_column_id,
                    "toColumnId": to_column_id,
                    "cardId": card_id,
                    "newIndex": new_index,
                }
            },
        )
