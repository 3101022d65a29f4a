"""
Mutation classification and the per-dashboard dispatch queue.

The store only knows two kinds of mutation:

- ``OptimisticMutation``: applied to the local view first, then sent to the
  data source. It carries a pure ``apply`` function so the store can take a
  snapshot, apply, and restore that snapshot if the request fails.
- ``ConfirmedMutation``: sent first; the canonical entity returned by the
  data source is committed afterwards. There is no rollback path because
  nothing changes locally before success.

``DashboardMutationQueue`` serializes optimistic dispatches per dashboard and
tracks an epoch per dashboard. A rollback bumps the epoch, which supersedes
every mutation applied under the old epoch that has not been dispatched yet.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from boardsync.core.board.models import Column
from boardsync.core.datasource.models import ApiResponse


class MutationOutcome(str, Enum):
    """Result of a store operation."""

    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"
    REJECTED = "rejected"
    NOOP = "noop"
    SUPERSEDED = "superseded"

    @property
    def succeeded(self) -> bool:
        return self in (MutationOutcome.COMMITTED, MutationOutcome.NOOP)


@dataclass
class OptimisticMutation:
    """
    A mutation applied locally before the data source confirms it.

    Attributes:
        name: Operation name used in logs and events
        dashboard_id: Dashboard whose queue the dispatch goes through
        apply: Pure function from the current columns to the new columns
        dispatch: Coroutine factory sending the mutation to the data source
        details: Extra values recorded with sync events
    """

    name: str
    dashboard_id: str
    apply: Callable[[list[Column]], list[Column]]
    dispatch: Callable[[], Awaitable[ApiResponse[Any]]]
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class ConfirmedMutation:
    """A mutation committed only after the data source returns success."""

    name: str
    dispatch: Callable[[], Awaitable[ApiResponse[Any]]]
    commit: Callable[[Any], None] = lambda data: None
    details: dict[str, Any] = field(default_factory=dict)


class CommitRejected(Exception):
    """Raised by a commit callback when a successful response cannot be applied."""


def snapshot_columns(columns: list[Column]) -> list[Column]:
    """Deep copy of the column list, including every card payload."""
    return [column.model_copy(deep=True) for column in columns]


class DashboardMutationQueue:
    """
    FIFO dispatch lock plus rollback epoch, one of each per dashboard.

    ``asyncio.Lock`` wakes waiters in the order they called ``acquire``, so
    mutations reach the data source in the order they were applied locally.
    A dashboard's lock and epoch are dropped once no mutation holds or
    awaits its slot. Callers read the epoch and enter the slot without
    awaiting in between, so no captured epoch outlives its entry.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._epochs: dict[str, int] = {}
        self._entrants: dict[str, int] = {}

    def epoch(self, dashboard_id: str) -> int:
        return self._epochs.get(dashboard_id, 0)

    def invalidate(self, dashboard_id: str) -> None:
        """Supersede every mutation of ``dashboard_id`` not yet dispatched."""
        self._epochs[dashboard_id] = self.epoch(dashboard_id) + 1

    @asynccontextmanager
    async def slot(self, dashboard_id: str) -> AsyncIterator[None]:
        """Hold the dispatch slot for ``dashboard_id``."""
        lock = self._locks.setdefault(dashboard_id, asyncio.Lock())
        self._entrants[dashboard_id] = self._entrants.get(dashboard_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._entrants[dashboard_id] -= 1
            if not self._entrants[dashboard_id]:
                del self._entrants[dashboard_id]
                del self._locks[dashboard_id]
                self._epochs.pop(dashboard_id, None)
