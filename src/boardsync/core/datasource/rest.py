"""
REST data source.

Talks JSON over HTTP to a board API server through ``httpx.AsyncClient``.
After a successful login or registration the issued token is sent as
``Authorization: Bearer <token>``; a 401 from any route drops it.

Only GET requests are retried; every write is sent exactly once so that a
timeout can never apply a mutation twice on the server.
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
from boardsync.core.datasource.http import (
    NO_RETRY,
    RetryConfig,
    error_from_exception,
    error_from_response,
    send_with_retry,
)
from boardsync.core.datasource.models import ApiError, ApiResponse, ErrorCode

logger = logging.getLogger(__name__)

_DASHBOARD_LIST = TypeAdapter(list[Dashboard])


@register_data_source("rest")
class RestDataSource:
    """
    Data source for a REST board API.

    Example:
        >>> source = RestDataSource("https://boards.example.com/api")
        >>> response = await source.login("ada@example.com", "S3cret!pass")
        >>> response.data.token
        'eyJ...'
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the REST data source.

        Args:
            base_url: API root, e.g. ``https://host/api``
            timeout: Per-request timeout in seconds
            max_retries: Retry attempts for GET requests
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.token: str | None = None
        self._read_retry = RetryConfig(max_retries=max_retries) if max_retries else NO_RETRY
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: BoardSyncConfig) -> RestDataSource:
        return cls(config.api.base_url, config.api.timeout, config.api.max_retries)

    @property
    def source_name(self) -> str:
        return "rest"

    def restore_session(self, auth: AuthResponse) -> None:
        self.token = auth.token

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> tuple[Any, ApiError | None, int | None]:
        """
        Send one request and decode the JSON body.

        Returns:
            Tuple of (decoded body or None, error or None, status code)
        """
        retry = self._read_retry if method == "GET" else NO_RETRY
        try:
            response = await send_with_retry(
                self._client,
                method,
                path,
                retry=retry,
                json=payload,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            error = error_from_exception(e)
            logger.warning("%s %s failed: %s", method, path, error.message)
            return None, error, error.status

        if response.status_code == 401:
            self.token = None

        if not response.is_success:
            error = error_from_response(response)
            logger.warning(
                "%s %s returned %d: %s", method, path, response.status_code, error.message
            )
            return None, error, response.status_code

        if not response.content:
            return None, None, response.status_code
        try:
            return response.json(), None, response.status_code
        except ValueError:
            return (
                None,
                ApiError(
                    message="Response body is not valid JSON",
                    code=ErrorCode.API_ERROR.value,
                    status=response.status_code,
                ),
                response.status_code,
            )

    async def _call(
        self,
        model: type[WireModel] | TypeAdapter[Any] | None,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> ApiResponse[Any]:
        body, error, status = await self._request(method, path, payload)
        if error is not None:
            return ApiResponse.from_error(error)
        if model is None:
            return ApiResponse.success(None, status=status or 200)
        try:
            if isinstance(model, TypeAdapter):
                data = model.validate_python(body)
            else:
                data = model.model_validate(body)
        except ValidationError as e:
            logger.warning("%s %s returned an unexpected payload: %s", method, path, e)
            return ApiResponse.failure(
                f"Unexpected response payload: {e.error_count()} validation error(s)",
                ErrorCode.API_ERROR,
                status,
            )
        return ApiResponse.success(data, status=status or 200)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def _authenticate(self, path: str, payload: dict[str, Any]) -> ApiResponse[AuthResponse]:
        response = await self._call(AuthResponse, "POST", path, payload)
        if response.ok and response.data is not None:
            self.token = response.data.token
        return response

    async def login(self, email: str, password: str) -> ApiResponse[AuthResponse]:
        return await self._authenticate("/auth/login", {"email": email, "password": password})

    async def register(
        self, email: str, password: str, full_name: str
    ) -> ApiResponse[AuthResponse]:
        return await self._authenticate(
            "/auth/register",
            {"email": email, "password": password, "fullName": full_name},
        )

    async def logout(self) -> ApiResponse[None]:
        response = await self._call(None, "POST", "/auth/logout")
        self.token = None
        return response

    async def change_password(
        self, user_id: str, old_password: str, new_password: str
    ) -> ApiResponse[dict[str, Any]]:
        body, error, status = await self._request(
            "PUT",
            "/users/changePassword",
            {"userId": user_id, "oldPassword": old_password, "newPassword": new_password},
        )
        if error is not None:
            return ApiResponse.from_error(error)
        result = body if isinstance(body, dict) else {"success": True}
        return ApiResponse.success(result, status=status or 200)

    # ------------------------------------------------------------------
    # Dashboards
    # ------------------------------------------------------------------

    async def get_dashboards(self) -> ApiResponse[list[Dashboard]]:
        return await self._call(_DASHBOARD_LIST, "GET", "/dashboards")

    async def get_dashboard(self, dashboard_id: str) -> ApiResponse[Dashboard]:
        return await self._call(Dashboard, "GET", f"/dashboards/{dashboard_id}")

    async def create_dashboard(self, title: str, user_id: str) -> ApiResponse[Dashboard]:
        return await self._call(
            Dashboard, "POST", "/dashboards", {"title": title, "userId": user_id}
        )

    async def update_dashboard(
        self, dashboard_id: str, updates: dict[str, Any]
    ) -> ApiResponse[Dashboard]:
        return await self._call(
            Dashboard,
            "PUT",
            f"/dashboards/{dashboard_id}",
            Dashboard.wire_updates(updates),
        )

    async def delete_dashboard(self, dashboard_id: str) -> ApiResponse[None]:
        return await self._call(None, "DELETE", f"/dashboards/{dashboard_id}")

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    async def invite_to_dashboard(
        self, dashboard_id: str, email: str
    ) -> ApiResponse[Invitation]:
        return await self._call(
            Invitation, "POST", f"/dashboards/{dashboard_id}/invitations", {"email": email}
        )

    async def accept_invitation(self, invitation_id: str) -> ApiResponse[None]:
        return await self._call(None, "POST", f"/invitations/{invitation_id}/accept")

    async def reject_invitation(self, invitation_id: str) -> ApiResponse[None]:
        return await self._call(None, "POST", f"/invitations/{invitation_id}/reject")

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    async def create_column(self, dashboard_id: str, title: str) -> ApiResponse[Column]:
        return await self._call(
            Column, "POST", f"/dashboards/{dashboard_id}/columns", {"title": title}
        )

    async def update_column(
        self, dashboard_id: str, column_id: str, updates: dict[str, Any]
    ) -> ApiResponse[Column]:
        return await self._call(
            Column,
            "PUT",
            f"/dashboards/{dashboard_id}/columns/{column_id}",
            Column.wire_updates(updates),
        )

    async def delete_column(self, dashboard_id: str, column_id: str) -> ApiResponse[None]:
        return await self._call(None, "DELETE", f"/dashboards/{dashboard_id}/columns/{column_id}")

    async def update_column_order(
        self, dashboard_id: str, column_ids: list[str]
    ) -> ApiResponse[None]:
        return await self._call(
            None,
            "PUT",
            f"/dashboards/{dashboard_id}/columns/order",
            {"columnIds": list(column_ids)},
        )

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    async def create_card(
        self, dashboard_id: str, column_id: str, title: str
    ) -> ApiResponse[Card]:
        return await self._call(
            Card,
            "POST",
            f"/dashboards/{dashboard_id}/columns/{column_id}/cards",
            {"title": title},
        )

    async def update_card(
        self, dashboard_id: str, column_id: str, card_id: str, updates: dict[str, Any]
    ) -> ApiResponse[Card]:
        return await self._call(
            Card,
            "PUT",
            f"/dashboards/{dashboard_id}/columns/{column_id}/cards/{card_id}",
            Card.wire_updates(updates),
        )

    async def delete_card(
        self, dashboard_id: str, column_id: str, card_id: str
    ) -> ApiResponse[None]:
        return await self._call(
            None, "DELETE", f"/dashboards/{dashboard_id}/columns/{column_id}/cards/{card_id}"
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
            "PUT",
            f"/dashboards/{dashboard_id}/cards/{card_id}/move",
            {"fromColumnId": from_column_id, "toColumnId": to_column_id, "newIndex": new_index},
        )
