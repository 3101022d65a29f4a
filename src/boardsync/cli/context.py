"""
Shared plumbing for CLI commands.

Each command runs one coroutine against a freshly built store. The session
issued by ``login``/``register`` is persisted between invocations in
$XDG_DATA_HOME/boardsync/session.json so later commands act as that user.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from boardsync.core.board.models import AuthResponse
from boardsync.core.board.mutations import MutationOutcome
from boardsync.core.board.store import BoardStore
from boardsync.core.config.loader import get_xdg_data_home, load_config

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


def get_session_path() -> Path:
    return get_xdg_data_home() / "boardsync" / "session.json"


def load_session() -> AuthResponse | None:
    """Read the persisted session, ignoring a missing or unreadable file."""
    path = get_session_path()
    if not path.exists():
        return None
    try:
        return AuthResponse.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, ValueError, ValidationError) as e:
        logger.warning("Ignoring unreadable session file %s: %s", path, e)
        return None


def save_session(auth: AuthResponse | None) -> None:
    """Persist ``auth``, or remove the session file when it is None."""
    path = get_session_path()
    if auth is None:
        path.unlink(missing_ok=True)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(auth.to_wire(), indent=2), encoding="utf-8")


@asynccontextmanager
async def open_store() -> AsyncIterator[BoardStore]:
    """
    Build a store from configuration with the persisted session restored.

    Raises:
        typer.Exit: If the configuration is invalid
    """
    try:
        store = BoardStore.from_config(load_config())
    except (ValueError, ValidationError) as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from e

    auth = load_session()
    if auth is not None:
        store.restore_session(auth)
    try:
        yield store
    finally:
        await store.aclose()


def ensure(store: BoardStore, outcome: MutationOutcome) -> None:
    """
    Exit with status 1 unless ``outcome`` succeeded.

    Raises:
        typer.Exit: If the operation failed, rolled back, was rejected or superseded
    """
    if outcome.succeeded:
        return
    err_console.print(f"[red]Error:[/red] {store.error or outcome.value}")
    raise typer.Exit(1)
