"""
Pytest configuration and shared fixtures.

Provides an isolated XDG/config environment, a seeded local storage file, and
a ControlledDataSource proxy that records calls, injects failures and can hold
requests in flight so tests can observe optimistic state before resolution.
"""

import asyncio
import inspect
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from boardsync.core.board.models import Card, Column, Dashboard, User
from boardsync.core.board.store import BoardStore
from boardsync.core.config.loader import clear_cache
from boardsync.core.datasource.local import LocalDataSource, hash_password
from boardsync.core.datasource.models import ApiError, ApiResponse, ErrorCode

PASSWORD = "S3cret!pass"

ADA = User(
    id="user-ada",
    email="ada@example.com",
    full_name="Ada Lovelace",
    created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
)
BOB = User(
    id="user-bob",
    email="bob@example.com",
    full_name="Bob Smith",
    created_at=datetime(2024, 1, 2, tzinfo=timezone.utc),
)


def make_card(card_id: str, column_id: str, number: int, **extra: Any) -> Card:
    return Card(id=card_id, number=number, title=f"Card {card_id}", column_id=column_id, **extra)


def make_board() -> Dashboard:
    """
    Roadmap dashboard used across tests.

    Columns (by order): A [c1, c2], B [], C [c3]
    """
    return Dashboard(
        id="dash-1",
        title="Roadmap",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        owner_ids=[ADA.id],
        members=[ADA],
        columns=[
            Column(
                id="col-a",
                title="A",
                order=0,
                cards=[make_card("c1", "col-a", 1), make_card("c2", "col-a", 2)],
            ),
            Column(id="col-b", title="B", order=1, cards=[]),
            Column(id="col-c", title="C", order=2, cards=[make_card("c3", "col-c", 3)]),
        ],
    )


def make_other_board() -> Dashboard:
    return Dashboard(
        id="dash-2",
        title="Other",
        created_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
        owner_ids=[ADA.id],
        members=[ADA],
        columns=[Column(id="col-x", title="To Do", order=0, cards=[make_card("x1", "col-x", 1)])],
    )


# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point XDG dirs at tmp_path, drop BOARDSYNC_* vars and reset the config cache."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    for key in (
        "BOARDSYNC_DATA_SOURCE",
        "BOARDSYNC_API_URL",
        "BOARDSYNC_API_TIMEOUT",
        "BOARDSYNC_STORAGE_PATH",
        "BOARDSYNC_SERIALIZE_MUTATIONS",
        "BOARDSYNC_ENV_FILE",
        "BOARDSYNC_API_MAX_RETRIES",
        "BOARDSYNC_LOG_EVENTS",
    ):
        monkeypatch.delenv(key, raising=False)
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def storage_path(tmp_path) -> Path:
    return tmp_path / "board.json"


@pytest.fixture
def seeded_storage(storage_path) -> Path:
    """
    Write a storage file with two users (Ada logged in) and two dashboards.
    """
    data = {
        "users": [ADA.to_wire(), BOB.to_wire()],
        "passwords": {ADA.id: hash_password(PASSWORD), BOB.id: hash_password(PASSWORD)},
        "session": ADA.to_wire(),
        "dashboards": [make_board().to_wire(), make_other_board().to_wire()],
    }
    storage_path.write_text(json.dumps(data, indent=2))
    return storage_path


@pytest.fixture
def local_source(seeded_storage) -> LocalDataSource:
    return LocalDataSource(seeded_storage)


# ==============================================================================
# Controlled data source
# ==============================================================================


class ControlledDataSource:
    """
    Proxy around a real data source for store tests.

    - ``calls`` records every coroutine call as ``(name, args)``
    - ``fail_next(name)`` makes the next call to ``name`` return an error
      without reaching the inner source
    - ``hold(name)`` blocks calls to ``name`` until the returned event is set
    - ``raise_next(name)`` makes the next call raise instead of returning
    """

    def __init__(self, inner: Any):
        self.inner = inner
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self._failures: dict[str, list[ApiError]] = {}
        self._exceptions: dict[str, list[Exception]] = {}
        self._gates: dict[str, asyncio.Event] = {}

    @property
    def source_name(self) -> str:
        return self.inner.source_name

    def restore_session(self, auth: Any) -> None:
        self.inner.restore_session(auth)

    async def aclose(self) -> None:
        await self.inner.aclose()

    def fail_next(
        self,
        name: str,
        message: str = "Server error",
        code: ErrorCode = ErrorCode.API_ERROR,
        status: int = 500,
    ) -> None:
        error = ApiError(message=message, code=code.value, status=status)
        self._failures.setdefault(name, []).append(error)

    def raise_next(self, name: str, exc: Exception) -> None:
        self._exceptions.setdefault(name, []).append(exc)

    def hold(self, name: str) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[name] = gate
        return gate

    def calls_to(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]

    def __getattr__(self, name: str) -> Any:
        target = getattr(self.inner, name)
        if not inspect.iscoroutinefunction(target):
            return target

        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            self.calls.append((name, args))
            gate = self._gates.get(name)
            if gate is not None:
                await gate.wait()
            exceptions = self._exceptions.get(name)
            if exceptions:
                raise exceptions.pop(0)
            failures = self._failures.get(name)
            if failures:
                return ApiResponse.from_error(failures.pop(0))
            return await target(*args, **kwargs)

        return wrapper


@pytest.fixture
def controlled(local_source) -> ControlledDataSource:
    return ControlledDataSource(local_source)


@pytest.fixture
def store(controlled) -> BoardStore:
    """Store over the seeded local source, with Ada as current user."""
    board_store = BoardStore(controlled)
    board_store.current_user = ADA
    return board_store


def column_cards(store: BoardStore) -> dict[str, list[str]]:
    """Map column id to card ids for compact assertions."""
    return {column.id: column.card_ids() for column in store.columns}
