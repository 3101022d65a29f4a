"""
Tests for the local file data source.
"""

import base64
import json

import pytest
from conftest import ADA, BOB, PASSWORD

from boardsync.core.config.models import BoardSyncConfig
from boardsync.core.datasource.backend import DataSource
from boardsync.core.datasource.local import (
    LocalDataSource,
    check_password,
    hash_password,
)
from boardsync.core.datasource.models import ErrorCode


def decode_segment(segment: str) -> dict:
    padded = segment + "=" * (-len(segment) % 4)
    return json.loads(base64.urlsafe_b64decode(padded))


class TestPasswords:
    """Tests for password hashing helpers."""

    def test_hash_is_salted(self) -> None:
        """Test that two hashes of the same password differ."""
        first = hash_password(PASSWORD)
        second = hash_password(PASSWORD)
        assert first != second
        assert PASSWORD not in first

    def test_check_password(self) -> None:
        """Test verification against a stored hash."""
        stored = hash_password(PASSWORD)
        assert check_password(PASSWORD, stored)
        assert not check_password("other", stored)
        assert not check_password(PASSWORD, None)
        assert not check_password(PASSWORD, "no-separator")


class TestLocalDataSourceBasics:
    """Tests for construction and storage handling."""

    def test_satisfies_protocol(self, storage_path) -> None:
        """Test that the local source implements DataSource."""
        assert isinstance(LocalDataSource(storage_path), DataSource)

    def test_from_config(self, tmp_path) -> None:
        """Test that the storage path and latency come from config."""
        config = BoardSyncConfig(
            storage={"path": str(tmp_path / "custom.json"), "latency_ms": (5, 10)}
        )
        source = LocalDataSource.from_config(config)
        assert source.storage_path == tmp_path / "custom.json"
        assert source.latency_ms == (5, 10)

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, storage_path) -> None:
        """Test that a fresh source behaves like an empty backend."""
        source = LocalDataSource(storage_path)

        response = await source.login(ADA.email, PASSWORD)

        assert response.error.code == ErrorCode.NOT_FOUND.value
        assert response.error.message == "User not found"

    @pytest.mark.asyncio
    async def test_corrupted_file(self, storage_path) -> None:
        """Test that an unreadable file becomes an error response."""
        storage_path.write_text("{not json")
        source = LocalDataSource(storage_path)

        response = await source.get_dashboards()

        assert response.error.code == ErrorCode.UNKNOWN_ERROR.value
        assert response.error.status == 500
        assert "corrupted" in response.error.message

    @pytest.mark.asyncio
    async def test_malformed_dashboard_is_error(self, storage_path) -> None:
        """Test that valid JSON with a broken dashboard becomes an error response."""
        storage_path.write_text(
            json.dumps({"session": ADA.to_wire(), "dashboards": [{"id": "d1"}]})
        )
        source = LocalDataSource(storage_path)

        response = await source.get_dashboards()

        assert response.data is None
        assert response.error.code == ErrorCode.UNKNOWN_ERROR.value
        assert response.error.status == 500
        assert "corrupted" in response.error.message

    @pytest.mark.asyncio
    async def test_user_without_email(self, storage_path) -> None:
        """Test that a user entry without an email is skipped, not raised on."""
        storage_path.write_text(json.dumps({"users": [{"id": "u1"}]}))
        source = LocalDataSource(storage_path)

        login = await source.login(ADA.email, PASSWORD)
        registered = await source.register(ADA.email, PASSWORD, "Ada Lovelace")

        assert login.error.code == ErrorCode.NOT_FOUND.value
        assert registered.ok

    @pytest.mark.asyncio
    async def test_wrong_top_level_types(self, storage_path) -> None:
        """Test that a document with the wrong section types becomes an error response."""
        storage_path.write_text(json.dumps({"users": "nobody", "dashboards": 3}))
        source = LocalDataSource(storage_path)

        response = await source.login(ADA.email, PASSWORD)

        assert response.error.status == 500
        assert "corrupted" in response.error.message

    @pytest.mark.asyncio
    async def test_writes_are_atomic_json(self, storage_path) -> None:
        """Test that registration writes a complete JSON document."""
        source = LocalDataSource(storage_path)

        await source.register(ADA.email, PASSWORD, "Ada Lovelace")

        data = json.loads(storage_path.read_text())
        assert [u["email"] for u in data["users"]] == [ADA.email]
        assert data["session"]["email"] == ADA.email
        assert list(storage_path.parent.glob(".boardsync-*.tmp")) == []


class TestLocalAuth:
    """Tests for local authentication."""

    @pytest.mark.asyncio
    async def test_login_issues_token(self, local_source) -> None:
        """Test that login returns a JWT-shaped token for the user."""
        response = await local_source.login("ADA@example.com", PASSWORD)

        assert response.ok
        assert response.status == 201
        header, payload, _ = response.data.token.split(".")
        assert decode_segment(header)["typ"] == "JWT"
        claims = decode_segment(payload)
        assert claims["sub"] == ADA.id
        assert claims["exp"] > claims["iat"]
        assert response.data.refresh_token

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, local_source) -> None:
        """Test that a wrong password is an auth error."""
        response = await local_source.login(ADA.email, "nope")

        assert response.error.code == ErrorCode.AUTH_ERROR.value
        assert response.error.message == "Invalid credentials"
        assert response.status == 401

    @pytest.mark.asyncio
    async def test_register_conflict(self, local_source) -> None:
        """Test that registering an existing email is a conflict."""
        response = await local_source.register(BOB.email, PASSWORD, "Bob")

        assert response.error.code == ErrorCode.CONFLICT.value
        assert response.status == 409

    @pytest.mark.asyncio
    async def test_logout_ends_session(self, local_source) -> None:
        """Test that operations needing a session fail after logout."""
        await local_source.logout()

        response = await local_source.get_dashboards()

        assert response.error.code == ErrorCode.AUTH_ERROR.value
        assert response.error.message == "User not authenticated"

    @pytest.mark.asyncio
    async def test_change_password(self, local_source) -> None:
        """Test changing a password checks the old one."""
        wrong = await local_source.change_password(ADA.id, "nope", "N3w!password")
        assert wrong.error.code == ErrorCode.INVALID_PASSWORD.value

        changed = await local_source.change_password(ADA.id, PASSWORD, "N3w!password")
        assert changed.data == {"success": True}
        assert (await local_source.login(ADA.email, "N3w!password")).ok
        assert not (await local_source.login(ADA.email, PASSWORD)).ok


class TestLocalDashboards:
    """Tests for dashboards, columns and cards in local storage."""

    @pytest.mark.asyncio
    async def test_dashboards_filtered_by_membership(self, local_source) -> None:
        """Test that only dashboards the session user belongs to are listed."""
        assert [d.id for d in (await local_source.get_dashboards()).data] == ["dash-1", "dash-2"]

        await local_source.login(BOB.email, PASSWORD)
        assert (await local_source.get_dashboards()).data == []

    @pytest.mark.asyncio
    async def test_create_dashboard_defaults(self, local_source) -> None:
        """Test default columns on a new dashboard."""
        response = await local_source.create_dashboard("Launch", ADA.id)

        assert response.status == 201
        dashboard = response.data
        assert [(c.title, c.order) for c in dashboard.sorted_columns()] == [
            ("To Do", 0),
            ("In Progress", 1),
            ("Done", 2),
        ]
        assert dashboard.owner_ids == [ADA.id]

    @pytest.mark.asyncio
    async def test_create_dashboard_requires_title(self, local_source) -> None:
        """Test that a blank title is a validation error."""
        response = await local_source.create_dashboard(" ", ADA.id)
        assert response.error.code == ErrorCode.VALIDATION_ERROR.value

    @pytest.mark.asyncio
    async def test_update_dashboard_validation(self, local_source) -> None:
        """Test that an update breaking the owner invariant is refused."""
        response = await local_source.update_dashboard("dash-1", {"owner_ids": [BOB.id]})
        assert response.error.code == ErrorCode.VALIDATION_ERROR.value

    @pytest.mark.asyncio
    async def test_unknown_dashboard(self, local_source) -> None:
        """Test NOT_FOUND for unknown dashboards."""
        response = await local_source.get_dashboard("dash-9")
        assert response.error.code == ErrorCode.NOT_FOUND.value
        assert response.error.message == "Dashboard not found"

    @pytest.mark.asyncio
    async def test_column_order_validation(self, local_source) -> None:
        """Test that incomplete or duplicated orders are refused."""
        missing = await local_source.update_column_order("dash-1", ["col-a", "col-b"])
        duplicate = await local_source.update_column_order(
            "dash-1", ["col-a", "col-a", "col-b", "col-c"]
        )
        assert missing.error.code == ErrorCode.VALIDATION_ERROR.value
        assert duplicate.error.code == ErrorCode.VALIDATION_ERROR.value

    @pytest.mark.asyncio
    async def test_column_order_keeps_archived_last(self, local_source) -> None:
        """Test that omitted archived columns are placed after the listed ones."""
        await local_source.update_column("dash-1", "col-a", {"is_archived": True})

        response = await local_source.update_column_order("dash-1", ["col-c", "col-b"])

        assert response.ok
        dashboard = (await local_source.get_dashboard("dash-1")).data
        assert [(c.id, c.order) for c in dashboard.sorted_columns()] == [
            ("col-c", 0),
            ("col-b", 1),
            ("col-a", 2),
        ]

    @pytest.mark.asyncio
    async def test_create_card_numbers(self, local_source) -> None:
        """Test that card numbers continue across the dashboard."""
        first = await local_source.create_card("dash-1", "col-b", "One")
        second = await local_source.create_card("dash-1", "col-a", "Two")

        assert first.data.number == 4
        assert second.data.number == 5
        assert first.data.column_id == "col-b"

    @pytest.mark.asyncio
    async def test_update_card_keeps_column(self, local_source) -> None:
        """Test that an update cannot reassign a card to another column."""
        response = await local_source.update_card(
            "dash-1", "col-a", "c1", {"title": "Renamed", "column_id": "col-c"}
        )

        assert response.data.title == "Renamed"
        assert response.data.column_id == "col-a"
        assert response.data.updated_at is not None

    @pytest.mark.asyncio
    async def test_move_card_rewrites_column_id(self, local_source) -> None:
        """Test a move between columns."""
        response = await local_source.move_card("dash-1", "col-a", "col-c", "c1", 0)

        assert response.ok
        dashboard = (await local_source.get_dashboard("dash-1")).data
        assert dashboard.find_column("col-c").card_ids() == ["c1", "c3"]
        assert dashboard.find_column("col-c").cards[0].column_id == "col-c"

    @pytest.mark.asyncio
    async def test_move_card_is_idempotent(self, local_source) -> None:
        """Test that repeating a move leaves the same result."""
        await local_source.move_card("dash-1", "col-a", "col-b", "c1", 0)
        repeated = await local_source.move_card("dash-1", "col-a", "col-b", "c1", 0)

        assert repeated.ok
        dashboard = (await local_source.get_dashboard("dash-1")).data
        assert dashboard.find_column("col-a").card_ids() == ["c2"]
        assert dashboard.find_column("col-b").card_ids() == ["c1"]

    @pytest.mark.asyncio
    async def test_move_card_clamps_index(self, local_source) -> None:
        """Test that an index past the end appends."""
        await local_source.move_card("dash-1", "col-a", "col-c", "c2", 50)

        dashboard = (await local_source.get_dashboard("dash-1")).data
        assert dashboard.find_column("col-c").card_ids() == ["c3", "c2"]

    @pytest.mark.asyncio
    async def test_delete_card_not_found(self, local_source) -> None:
        """Test deleting a card that does not exist."""
        response = await local_source.delete_card("dash-1", "col-a", "c9")
        assert response.error.message == "Card not found"


class TestLocalInvitations:
    """Tests for invitations in local storage."""

    @pytest.mark.asyncio
    async def test_invite_returns_existing_pending(self, local_source) -> None:
        """Test that a repeated invite does not duplicate the invitation."""
        first = await local_source.invite_to_dashboard("dash-1", BOB.email)
        second = await local_source.invite_to_dashboard("dash-1", BOB.email.upper())

        assert first.status == 201
        assert second.status == 200
        assert second.data.id == first.data.id
        dashboard = (await local_source.get_dashboard("dash-1")).data
        assert len(dashboard.invitations) == 1
        assert dashboard.invitations[0].inviter_id == ADA.id

    @pytest.mark.asyncio
    async def test_only_invitee_can_accept(self, local_source) -> None:
        """Test that another user cannot accept an invitation."""
        invitation = (await local_source.invite_to_dashboard("dash-1", BOB.email)).data

        response = await local_source.accept_invitation(invitation.id)

        assert response.error.code == ErrorCode.NOT_FOUND.value

    @pytest.mark.asyncio
    async def test_accept_adds_member(self, local_source) -> None:
        """Test that accepting makes the invitee a member."""
        invitation = (await local_source.invite_to_dashboard("dash-1", BOB.email)).data
        await local_source.login(BOB.email, PASSWORD)

        response = await local_source.accept_invitation(invitation.id)

        assert response.ok
        dashboard = (await local_source.get_dashboard("dash-1")).data
        assert BOB.id in [m.id for m in dashboard.members]
        assert dashboard.invitations[0].status == "accepted"
