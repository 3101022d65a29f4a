"""
Local file data source.

Keeps users, the current session and all dashboards in a single JSON file,
written atomically on every change. Intended for offline use, demos and
tests; it behaves like a real backend (same validation, same error codes,
optional simulated latency) so the board store cannot tell the difference.

File format:
    {
      "users": [{"id": "user_...", "email": "...", ...}],
      "passwords": {"user_...": "<salt>$<sha256 hex>"},
      "session": {"id": "user_...", ...} | null,
      "dashboards": [{"id": "dashboard_...", "columns": [...], ...}]
    }
"""

from __future__ import annotations

import asyncio
import base64
import functools
import hashlib
import json
import logging
import os
import random
import secrets
import tempfile
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from pydantic import ValidationError

from boardsync.core.board.models import (
    AuthResponse,
    Card,
    Column,
    Dashboard,
    Invitation,
    InvitationStatus,
    User,
)
from boardsync.core.config.loader import get_storage_path
from boardsync.core.config.models import BoardSyncConfig
from boardsync.core.datasource.backend import register_data_source
from boardsync.core.datasource.models import ApiResponse, ErrorCode

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_COLUMNS = ("To Do", "In Progress", "Done")
ACCESS_TOKEN_TTL = 3600
REFRESH_TOKEN_TTL = 7 * 24 * 3600


class StorageCorruptedError(Exception):
    """Raised when the storage file cannot be read as board storage."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Storage file {path} is corrupted: {reason}")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id(prefix: str) -> str:
    return f"{prefix}_{secrets.token_hex(6)}"


def hash_password(password: str, salt: str | None = None) -> str:
    salt = salt or secrets.token_hex(8)
    digest = hashlib.sha256(f"{salt}:{password}".encode()).hexdigest()
    return f"{salt}${digest}"


def check_password(password: str, stored: str | None) -> bool:
    if not stored or "$" not in stored:
        return False
    salt, _ = stored.split("$", 1)
    return secrets.compare_digest(hash_password(password, salt), stored)


def _not_found(entity: str) -> ApiResponse[Any]:
    return ApiResponse.failure(f"{entity} not found", ErrorCode.NOT_FOUND, 404)


def _not_authenticated() -> ApiResponse[Any]:
    return ApiResponse.failure("User not authenticated", ErrorCode.AUTH_ERROR, 401)


def _storage_guarded(
    func: Callable[..., Awaitable[ApiResponse[T]]],
) -> Callable[..., Awaitable[ApiResponse[T]]]:
    """Turn storage I/O failures and malformed storage contents into error responses."""

    @functools.wraps(func)
    async def wrapper(self: LocalDataSource, *args: Any, **kwargs: Any) -> ApiResponse[T]:
        try:
            return await func(self, *args, **kwargs)
        except (ValidationError, KeyError, TypeError, AttributeError) as e:
            corrupted = StorageCorruptedError(
                self.storage_path, f"unexpected contents ({type(e).__name__}: {e})"
            )
            logger.error("Local storage failure in %s: %s", func.__name__, corrupted)
            return ApiResponse.failure(str(corrupted), ErrorCode.UNKNOWN_ERROR, 500)
        except (OSError, StorageCorruptedError) as e:
            logger.error("Local storage failure in %s: %s", func.__name__, e)
            return ApiResponse.failure(str(e), ErrorCode.UNKNOWN_ERROR, 500)

    return wrapper


@register_data_source("local")
class LocalDataSource:
    """
    Data source backed by a JSON file.

    Example:
        >>> source = LocalDataSource(Path("/tmp/board.json"))
        >>> await source.register("ada@example.com", "S3cret!pass", "Ada")
        >>> response = await source.create_dashboard("Roadmap", user_id)
        >>> [c.title for c in response.data.columns]
        ['To Do', 'In Progress', 'Done']
    """

    def __init__(self, storage_path: Path, latency_ms: tuple[int, int] = (0, 0)):
        """
        Initialize the local data source.

        Args:
            storage_path: JSON file holding all data (created on first write)
            latency_ms: Simulated latency range (min, max) in milliseconds
        """
        self.storage_path = Path(storage_path)
        self.latency_ms = latency_ms

    @classmethod
    def from_config(cls, config: BoardSyncConfig) -> LocalDataSource:
        return cls(get_storage_path(config), config.storage.latency_ms)

    @property
    def source_name(self) -> str:
        return "local"

    def restore_session(self, auth: AuthResponse) -> None:
        """Sessions live in the storage file, so there is nothing to restore."""
        return None

    async def aclose(self) -> None:
        return None

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def _empty(self) -> dict[str, Any]:
        return {"users": [], "passwords": {}, "session": None, "dashboards": []}

    def _read(self) -> dict[str, Any]:
        """
        Load the storage file.

        Raises:
            StorageCorruptedError: If the file is not a JSON object
        """
        if not self.storage_path.exists():
            return self._empty()
        try:
            with open(self.storage_path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StorageCorruptedError(self.storage_path, str(e)) from e
        if not isinstance(data, dict):
            raise StorageCorruptedError(self.storage_path, "expected a JSON object")
        return {**self._empty(), **data}

    def _write(self, data: dict[str, Any]) -> None:
        """Atomically replace the storage file."""
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.storage_path.parent, prefix=".boardsync-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.storage_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _dashboards(self, data: dict[str, Any]) -> list[Dashboard]:
        return [Dashboard.model_validate(d) for d in data["dashboards"]]

    def _save_dashboards(self, data: dict[str, Any], dashboards: list[Dashboard]) -> None:
        data["dashboards"] = [d.to_wire() for d in dashboards]
        self._write(data)

    def _session_user(self, data: dict[str, Any]) -> User | None:
        session = data.get("session")
        if not session:
            return None
        return User.model_validate(session)

    async def _simulate_latency(self) -> None:
        low, high = self.latency_ms
        if high > 0:
            await asyncio.sleep(random.uniform(low, high) / 1000)

    def _issue_auth(self, user: User) -> AuthResponse:
        return AuthResponse(
            **user.model_dump(),
            token=self.generate_token(user, ACCESS_TOKEN_TTL),
            refresh_token=self.generate_token(user, REFRESH_TOKEN_TTL),
        )

    @staticmethod
    def generate_token(user: User, expires_in: int) -> str:
        """
        Build an unsigned JWT-shaped token for the local session.

        Args:
            user: Token subject
            expires_in: Lifetime in seconds

        Returns:
            ``header.payload.signature`` with base64url-encoded JSON parts
        """
        now = int(time.time())
        header = {"alg": "HS256", "typ": "JWT"}
        payload = {
            "sub": user.id,
            "email": user.email,
            "iat": now,
            "exp": now + expires_in,
            "user": user.to_wire(),
        }

        def encode(part: dict[str, Any]) -> str:
            raw = json.dumps(part, separators=(",", ":")).encode()
            return base64.urlsafe_b64encode(raw).decode().rstrip("=")

        return f"{encode(header)}.{encode(payload)}.local-signature"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    @_storage_guarded
    async def login(self, email: str, password: str) -> ApiResponse[AuthResponse]:
        await self._simulate_latency()
        data = self._read()
        wanted = email.strip().lower()
        user_data = next(
            (u for u in data["users"] if str(u.get("email", "")).lower() == wanted), None
        )
        if user_data is None:
            return ApiResponse.failure("User not found", ErrorCode.NOT_FOUND, 404)
        user = User.model_validate(user_data)
        if not check_password(password, data["passwords"].get(user.id)):
            return ApiResponse.failure("Invalid credentials", ErrorCode.AUTH_ERROR, 401)

        data["session"] = user.to_wire()
        self._write(data)
        return ApiResponse.success(self._issue_auth(user), status=201)

    @_storage_guarded
    async def register(
        self, email: str, password: str, full_name: str
    ) -> ApiResponse[AuthResponse]:
        await self._simulate_latency()
        data = self._read()
        email = email.strip()
        if any(str(u.get("email", "")).lower() == email.lower() for u in data["users"]):
            return ApiResponse.failure("User already exists", ErrorCode.CONFLICT, 409)

        user = User(
            id=_new_id("user"),
            email=email,
            full_name=full_name,
            created_at=datetime.now(timezone.utc),
        )
        data["users"].append(user.to_wire())
        data["passwords"][user.id] = hash_password(password)
        data["session"] = user.to_wire()
        self._write(data)
        return ApiResponse.success(self._issue_auth(user), status=201)

    @_storage_guarded
    async def logout(self) -> ApiResponse[None]:
        await self._simulate_latency()
        data = self._read()
        data["session"] = None
        self._write(data)
        return ApiResponse.success(None)

    @_storage_guarded
    async def change_password(
        self, user_id: str, old_password: str, new_password: str
    ) -> ApiResponse[dict[str, Any]]:
        await self._simulate_latency()
        data = self._read()
        if not any(u.get("id") == user_id for u in data["users"]):
            return ApiResponse.failure("User not found", ErrorCode.NOT_FOUND, 404)
        if not check_password(old_password, data["passwords"].get(user_id)):
            return ApiResponse.failure(
                "Old password does not match", ErrorCode.INVALID_PASSWORD, 400
            )
        data["passwords"][user_id] = hash_password(new_password)
        self._write(data)
        return ApiResponse.success({"success": True})

    # ------------------------------------------------------------------
    # Dashboards
    # ------------------------------------------------------------------

    @_storage_guarded
    async def get_dashboards(self) -> ApiResponse[list[Dashboard]]:
        await self._simulate_latency()
        data = self._read()
        user = self._session_user(data)
        if user is None:
            return _not_authenticated()
        visible = [
            d
            for d in self._dashboards(data)
            if user.id in d.owner_ids or any(m.id == user.id for m in d.members)
        ]
        return ApiResponse.success(visible)

    @_storage_guarded
    async def get_dashboard(self, dashboard_id: str) -> ApiResponse[Dashboard]:
        await self._simulate_latency()
        for dashboard in self._dashboards(self._read()):
            if dashboard.id == dashboard_id:
                return ApiResponse.success(dashboard)
        return _not_found("Dashboard")

    @_storage_guarded
    async def create_dashboard(self, title: str, user_id: str) -> ApiResponse[Dashboard]:
        await self._simulate_latency()
        if not title or not title.strip():
            return ApiResponse.failure(
                "Dashboard title is required", ErrorCode.VALIDATION_ERROR, 400
            )
        data = self._read()
        user = self._session_user(data)
        if user is None:
            return _not_authenticated()

        owner_ids = [user_id] if user_id == user.id else [user.id]
        dashboard = Dashboard(
            id=_new_id("dashboard"),
            title=title.strip(),
            created_at=datetime.now(timezone.utc),
            owner_ids=owner_ids,
            members=[user],
            columns=[
                Column(id=_new_id("column"), title=column_title, order=order)
                for order, column_title in enumerate(DEFAULT_COLUMNS)
            ],
        )
        dashboards = self._dashboards(data)
        dashboards.append(dashboard)
        self._save_dashboards(data, dashboards)
        return ApiResponse.success(dashboard, status=201)

    @_storage_guarded
    async def update_dashboard(
        self, dashboard_id: str, updates: dict[str, Any]
    ) -> ApiResponse[Dashboard]:
        await self._simulate_latency()
        data = self._read()
        dashboards = self._dashboards(data)
        for index, dashboard in enumerate(dashboards):
            if dashboard.id == dashboard_id:
                try:
                    updated = dashboard.merged(
                        {**updates, "updated_at": _now()}
                    )
                except ValueError as e:
                    return ApiResponse.failure(str(e), ErrorCode.VALIDATION_ERROR, 400)
                dashboards[index] = updated
                self._save_dashboards(data, dashboards)
                return ApiResponse.success(updated)
        return _not_found("Dashboard")

    @_storage_guarded
    async def delete_dashboard(self, dashboard_id: str) -> ApiResponse[None]:
        await self._simulate_latency()
        data = self._read()
        dashboards = self._dashboards(data)
        remaining = [d for d in dashboards if d.id != dashboard_id]
        if len(remaining) == len(dashboards):
            return _not_found("Dashboard")
        self._save_dashboards(data, remaining)
        return ApiResponse.success(None)

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    @_storage_guarded
    async def invite_to_dashboard(
        self, dashboard_id: str, email: str
    ) -> ApiResponse[Invitation]:
        await self._simulate_latency()
        data = self._read()
        user = self._session_user(data)
        if user is None:
            return _not_authenticated()
        dashboards = self._dashboards(data)
        dashboard = next((d for d in dashboards if d.id == dashboard_id), None)
        if dashboard is None:
            return _not_found("Dashboard")

        # Retrying an invite returns the pending one instead of duplicating it
        existing = dashboard.pending_invitation_for(email)
        if existing is not None:
            return ApiResponse.success(existing)

        invitation = Invitation(
            id=_new_id("invitation"),
            dashboard_id=dashboard_id,
            inviter_id=user.id,
            inviter_email=user.email,
            invitee_email=email.strip(),
            status=InvitationStatus.PENDING,
            created_at=datetime.now(timezone.utc),
        )
        dashboard.invitations.append(invitation)
        self._save_dashboards(data, dashboards)
        return ApiResponse.success(invitation, status=201)

    async def _resolve_invitation(
        self, invitation_id: str, status: InvitationStatus
    ) -> ApiResponse[None]:
        await self._simulate_latency()
        data = self._read()
        user = self._session_user(data)
        if user is None:
            return _not_authenticated()
        dashboards = self._dashboards(data)
        for dashboard in dashboards:
            for invitation in dashboard.invitations:
                if invitation.id != invitation_id:
                    continue
                if invitation.invitee_email.lower() != user.email.lower():
                    break
                invitation.status = status
                if status == InvitationStatus.ACCEPTED and not any(
                    m.id == user.id for m in dashboard.members
                ):
                    dashboard.members.append(user)
                self._save_dashboards(data, dashboards)
                return ApiResponse.success(None)
        return _not_found("Invitation")

    @_storage_guarded
    async def accept_invitation(self, invitation_id: str) -> ApiResponse[None]:
        return await self._resolve_invitation(invitation_id, InvitationStatus.ACCEPTED)

    @_storage_guarded
    async def reject_invitation(self, invitation_id: str) -> ApiResponse[None]:
        return await self._resolve_invitation(invitation_id, InvitationStatus.REJECTED)

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    @_storage_guarded
    async def create_column(self, dashboard_id: str, title: str) -> ApiResponse[Column]:
        await self._simulate_latency()
        if not title or not title.strip():
            return ApiResponse.failure(
                "Column title is required", ErrorCode.VALIDATION_ERROR, 400
            )
        data = self._read()
        dashboards = self._dashboards(data)
        dashboard = next((d for d in dashboards if d.id == dashboard_id), None)
        if dashboard is None:
            return _not_found("Dashboard")

        next_order = max((c.order for c in dashboard.columns), default=-1) + 1
        column = Column(id=_new_id("column"), title=title.strip(), order=next_order)
        dashboard.columns.append(column)
        self._save_dashboards(data, dashboards)
        return ApiResponse.success(column, status=201)

    @_storage_guarded
    async def update_column(
        self, dashboard_id: str, column_id: str, updates: dict[str, Any]
    ) -> ApiResponse[Column]:
        await self._simulate_latency()
        data = self._read()
        dashboards = self._dashboards(data)
        dashboard = next((d for d in dashboards if d.id == dashboard_id), None)
        if dashboard is None:
            return _not_found("Dashboard")
        for index, column in enumerate(dashboard.columns):
            if column.id == column_id:
                try:
                    updated = column.merged(updates)
                except ValueError as e:
                    return ApiResponse.failure(str(e), ErrorCode.VALIDATION_ERROR, 400)
                dashboard.columns[index] = updated
                self._save_dashboards(data, dashboards)
                return ApiResponse.success(updated)
        return _not_found("Column")

    @_storage_guarded
    async def delete_column(self, dashboard_id: str, column_id: str) -> ApiResponse[None]:
        await self._simulate_latency()
        data = self._read()
        dashboards = self._dashboards(data)
        dashboard = next((d for d in dashboards if d.id == dashboard_id), None)
        if dashboard is None:
            return _not_found("Dashboard")
        remaining = [c for c in dashboard.columns if c.id != column_id]
        if len(remaining) == len(dashboard.columns):
            return _not_found("Column")
        dashboard.columns = remaining
        self._save_dashboards(data, dashboards)
        return ApiResponse.success(None)

    @_storage_guarded
    async def update_column_order(
        self, dashboard_id: str, column_ids: list[str]
    ) -> ApiResponse[None]:
        await self._simulate_latency()
        data = self._read()
        dashboards = self._dashboards(data)
        dashboard = next((d for d in dashboards if d.id == dashboard_id), None)
        if dashboard is None:
            return _not_found("Dashboard")

        by_id = {c.id: c for c in dashboard.columns}
        active = {c.id for c in dashboard.columns if not c.is_archived}
        listed = set(column_ids)
        if len(listed) != len(column_ids) or not active <= listed <= set(by_id):
            return ApiResponse.failure(
                "Column order must list every column of the dashboard exactly once",
                ErrorCode.VALIDATION_ERROR,
                400,
            )
        # Archived columns may be omitted; they keep their relative order after the rest
        archived = [c.id for c in dashboard.sorted_columns() if c.id not in listed]
        dashboard.columns = [
            by_id[column_id].model_copy(update={"order": index})
            for index, column_id in enumerate([*column_ids, *archived])
        ]
        self._save_dashboards(data, dashboards)
        return ApiResponse.success(None)

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    @_storage_guarded
    async def create_card(
        self, dashboard_id: str, column_id: str, title: str
    ) -> ApiResponse[Card]:
        await self._simulate_latency()
        if not title or not title.strip():
            return ApiResponse.failure("Card title is required", ErrorCode.VALIDATION_ERROR, 400)
        data = self._read()
        dashboards = self._dashboards(data)
        dashboard = next((d for d in dashboards if d.id == dashboard_id), None)
        if dashboard is None:
            return _not_found("Dashboard")
        column = dashboard.find_column(column_id)
        if column is None:
            return _not_found("Column")

        highest = max((card.number for c in dashboard.columns for card in c.cards), default=0)
        card = Card(
            id=_new_id("card"),
            number=highest + 1,
            title=title.strip(),
            column_id=column_id,
            created_at=datetime.now(timezone.utc),
        )
        column.cards.append(card)
        self._save_dashboards(data, dashboards)
        return ApiResponse.success(card, status=201)

    @_storage_guarded
    async def update_card(
        self, dashboard_id: str, column_id: str, card_id: str, updates: dict[str, Any]
    ) -> ApiResponse[Card]:
        await self._simulate_latency()
        data = self._read()
        dashboards = self._dashboards(data)
        dashboard = next((d for d in dashboards if d.id == dashboard_id), None)
        if dashboard is None:
            return _not_found("Dashboard")
        column = dashboard.find_column(column_id)
        if column is None:
            return _not_found("Column")
        for index, card in enumerate(column.cards):
            if card.id == card_id:
                # The containing column decides column_id, not the update
                changes = {**updates, "updated_at": _now()}
                changes.pop("column_id", None)
                changes.pop("columnId", None)
                try:
                    updated = card.merged(changes)
                except ValueError as e:
                    return ApiResponse.failure(str(e), ErrorCode.VALIDATION_ERROR, 400)
                column.cards[index] = updated
                self._save_dashboards(data, dashboards)
                return ApiResponse.success(updated)
        return _not_found("Card")

    @_storage_guarded
    async def delete_card(
        self, dashboard_id: str, column_id: str, card_id: str
    ) -> ApiResponse[None]:
        await self._simulate_latency()
        data = self._read()
        dashboards = self._dashboards(data)
        dashboard = next((d for d in dashboards if d.id == dashboard_id), None)
        if dashboard is None:
            return _not_found("Dashboard")
        column = dashboard.find_column(column_id)
        if column is None:
            return _not_found("Column")
        remaining = [c for c in column.cards if c.id != card_id]
        if len(remaining) == len(column.cards):
            return _not_found("Card")
        column.cards = remaining
        self._save_dashboards(data, dashboards)
        return ApiResponse.success(None)

    @_storage_guarded
    async def move_card(
        self,
        dashboard_id: str,
        from_column_id: str,
        to_column_id: str,
        card_id: str,
        new_index: int,
    ) -> ApiResponse[None]:
        await self._simulate_latency()
        data = self._read()
        dashboards = self._dashboards(data)
        dashboard = next((d for d in dashboards if d.id == dashboard_id), None)
        if dashboard is None:
            return _not_found("Dashboard")
        from_column = dashboard.find_column(from_column_id)
        to_column = dashboard.find_column(to_column_id)
        if from_column is None or to_column is None:
            return _not_found("Column")

        # A repeated move finds the card already in the destination and only
        # repositions it there.
        source = from_column
        card_index = next((i for i, c in enumerate(source.cards) if c.id == card_id), None)
        if card_index is None:
            source = to_column
            card_index = next((i for i, c in enumerate(source.cards) if c.id == card_id), None)
        if card_index is None:
            return _not_found("Card")

        card = source.cards.pop(card_index)
        index = max(0, min(new_index, len(to_column.cards)))
        to_column.cards.insert(index, card.model_copy(update={"column_id": to_column_id}))
        self._save_dashboards(data, dashboards)
        return ApiResponse.success(None)
