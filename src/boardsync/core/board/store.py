"""
Board store: the in-memory board state and its synchronization engine.

The store owns the current view (``dashboards``, ``current_dashboard`` and the
working ``columns``) and a single data source. Mutations come in two kinds
(see ``mutations.py``):

- Optimistic (``move_card``, ``update_column_order``): the local view changes
  synchronously, observers are notified, then the request is dispatched. On
  failure the pre-mutation snapshot is restored wholesale and ``error`` is set.
- Confirmed (everything else): ``loading`` is set, the request is awaited and
  the canonical entity returned by the data source is applied on success.

Public coroutines never raise. They return a ``MutationOutcome`` and report
problems through ``error``.

Concurrency:
    With ``serialize_mutations`` (the default) optimistic dispatches for one
    dashboard go through a FIFO lock. A rollback supersedes every mutation of
    that dashboard still waiting for the lock, since the restored snapshot
    already erased their local effect. Without it, requests overlap and each
    failure restores its own snapshot over whatever state exists then.

    In both modes a rollback is skipped when ``set_current_dashboard`` (or a
    logout / delete of the current dashboard) replaced the view after the
    mutation was applied.

Example:
    >>> store = BoardStore(LocalDataSource(path))
    >>> await store.login("ada@example.com", "S3cret!pass")
    <MutationOutcome.COMMITTED: 'committed'>
    >>> await store.set_current_dashboard(dashboard_id)
    >>> await store.move_card(todo_id, done_id, 0, 0)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from boardsync.core.auth.validation import (
    validate_email,
    validate_password,
    validate_registration,
)
from boardsync.core.board.models import (
    AuthResponse,
    Card,
    Column,
    Dashboard,
    Invitation,
    User,
)
from boardsync.core.board.mutations import (
    CommitRejected,
    ConfirmedMutation,
    DashboardMutationQueue,
    MutationOutcome,
    OptimisticMutation,
    snapshot_columns,
)
from boardsync.core.datasource.models import ApiResponse, ErrorCode
from boardsync.utils.logging import EventType, SyncLogger

if TYPE_CHECKING:
    from boardsync.core.config.models import BoardSyncConfig
    from boardsync.core.datasource.backend import DataSource

logger = logging.getLogger(__name__)

Listener = Callable[["BoardStore"], None]


class BoardStore:
    """
    Observable board state bound to one data source.

    Attributes:
        dashboards: Dashboards visible to the current user
        current_dashboard: Dashboard being viewed (columns kept in sync)
        columns: Working copy of the current dashboard's columns, by order
        loading: True while a confirmed mutation is in flight
        error: Message of the last failure, cleared by the next operation
        current_user: Authenticated user, if any
        auth: Tokens issued with the current session, if any
    """

    def __init__(
        self,
        data_source: DataSource,
        *,
        serialize_mutations: bool = True,
        events: SyncLogger | None = None,
    ) -> None:
        self.data_source = data_source
        self.serialize_mutations = serialize_mutations
        self.events = events

        self.dashboards: list[Dashboard] = []
        self.current_dashboard: Dashboard | None = None
        self.columns: list[Column] = []
        self.loading = False
        self.error: str | None = None
        self.current_user: User | None = None
        self.auth: AuthResponse | None = None

        self._listeners: list[Listener] = []
        self._loading_count = 0
        self._queue = DashboardMutationQueue()
        self._view_generation = 0
        self._inflight_invites: set[tuple[str, str]] = set()

    @classmethod
    def from_config(cls, config: BoardSyncConfig | None = None) -> BoardStore:
        """
        Build a store wired to the configured data source.

        Raises:
            ValueError: If the configured data source is not registered
        """
        from boardsync.core.config.loader import load_config
        from boardsync.core.datasource import get_data_source

        if config is None:
            config = load_config()
        events = None
        if config.logging.events:
            from datetime import datetime, timezone

            events = SyncLogger.init(datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S"))
        return cls(
            get_data_source(config=config),
            serialize_mutations=config.store.serialize_mutations,
            events=events,
        )

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called after every state change.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Store listener %r failed", listener)

    def _emit(
        self, event_type: EventType, mutation: str, dashboard_id: str | None, **details: Any
    ) -> None:
        if self.events is not None:
            self.events.log_mutation(event_type, mutation, dashboard_id, **details)

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    def _set_columns(self, columns: list[Column]) -> None:
        """Replace the working columns and mirror them into the current dashboard."""
        self.columns = sorted(columns, key=lambda column: column.order)
        if self.current_dashboard is not None:
            self.current_dashboard = self.current_dashboard.model_copy(
                update={"columns": self.columns}
            )
            self._replace_dashboard(self.current_dashboard)

    def _replace_dashboard(self, dashboard: Dashboard) -> None:
        self.dashboards = [dashboard if d.id == dashboard.id else d for d in self.dashboards]

    def _replace_view(self, dashboard: Dashboard | None) -> None:
        """Swap the whole view; pending rollbacks for the old view become moot."""
        self._view_generation += 1
        self.current_dashboard = dashboard
        if dashboard is None:
            self.columns = []
            return
        self._set_columns([c for c in dashboard.sorted_columns() if not c.is_archived])

    def _update_column(self, column_id: str, change: Callable[[Column], Column]) -> None:
        self._set_columns([change(c) if c.id == column_id else c for c in self.columns])

    def find_column(self, column_id: str) -> Column | None:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def _reject(
        self, name: str, message: str, dashboard_id: str | None = None
    ) -> MutationOutcome:
        logger.warning("Rejected %s: %s", name, message)
        self.error = message
        self._emit(EventType.MUTATION_REJECTED, name, dashboard_id, reason=message)
        self._notify()
        return MutationOutcome.REJECTED

    def _require_dashboard(self, name: str) -> Dashboard | None:
        if self.current_dashboard is None:
            self._reject(name, "No active dashboard")
        return self.current_dashboard

    async def _safe_dispatch(
        self, name: str, mutation: OptimisticMutation | ConfirmedMutation
    ) -> ApiResponse[Any]:
        logger.debug("Dispatching %s %s", name, mutation.details)
        try:
            return await mutation.dispatch()
        except Exception as e:
            logger.exception("Data source raised during %s", name)
            return ApiResponse.failure(
                str(e) or "Unknown error occurred", ErrorCode.UNKNOWN_ERROR, 500
            )

    # ------------------------------------------------------------------
    # Mutation engine
    # ------------------------------------------------------------------

    async def _run_optimistic(self, mutation: OptimisticMutation) -> MutationOutcome:
        snapshot = snapshot_columns(self.columns)
        self._set_columns(mutation.apply(self.columns))
        self.error = None
        generation = self._view_generation
        epoch = self._queue.epoch(mutation.dashboard_id)
        self._emit(
            EventType.MUTATION_APPLIED, mutation.name, mutation.dashboard_id, **mutation.details
        )
        self._notify()

        if not self.serialize_mutations:
            response = await self._safe_dispatch(mutation.name, mutation)
            return self._settle(mutation, response, snapshot, generation)

        async with self._queue.slot(mutation.dashboard_id):
            if self._queue.epoch(mutation.dashboard_id) != epoch:
                logger.info("Dropping %s: superseded by an earlier rollback", mutation.name)
                self._emit(
                    EventType.MUTATION_SUPERSEDED,
                    mutation.name,
                    mutation.dashboard_id,
                    **mutation.details,
                )
                return MutationOutcome.SUPERSEDED
            response = await self._safe_dispatch(mutation.name, mutation)
            return self._settle(mutation, response, snapshot, generation)

    def _settle(
        self,
        mutation: OptimisticMutation,
        response: ApiResponse[Any],
        snapshot: list[Column],
        generation: int,
    ) -> MutationOutcome:
        if response.error is None:
            logger.info("Committed %s on %s", mutation.name, mutation.dashboard_id)
            self._emit(
                EventType.MUTATION_COMMITTED,
                mutation.name,
                mutation.dashboard_id,
                **mutation.details,
            )
            return MutationOutcome.COMMITTED

        error = response.error
        self.error = error.message
        if self.events is not None:
            self.events.log_request_failed(mutation.name, error.code, error.message)

        if generation != self._view_generation:
            logger.warning(
                "%s failed after the view was replaced; not rolling back: %s",
                mutation.name,
                error.message,
            )
            self._notify()
            return MutationOutcome.FAILED

        self._set_columns(snapshot)
        if self.serialize_mutations:
            self._queue.invalidate(mutation.dashboard_id)
        logger.info("Rolled back %s on %s: %s", mutation.name, mutation.dashboard_id, error.message)
        self._emit(
            EventType.MUTATION_ROLLED_BACK,
            mutation.name,
            mutation.dashboard_id,
            code=error.code,
            message=error.message,
        )
        self._notify()
        return MutationOutcome.ROLLED_BACK

    async def _run_confirmed(self, mutation: ConfirmedMutation) -> MutationOutcome:
        self._loading_count += 1
        self.loading = True
        self.error = None
        self._notify()
        try:
            response = await self._safe_dispatch(mutation.name, mutation)
            if response.error is not None:
                self.error = response.error.message
                logger.warning("%s failed: %s", mutation.name, response.error.message)
                if self.events is not None:
                    self.events.log_request_failed(
                        mutation.name, response.error.code, response.error.message
                    )
                return MutationOutcome.FAILED
            try:
                mutation.commit(response.data)
            except CommitRejected as e:
                logger.warning("%s rejected: %s", mutation.name, e)
                self.error = str(e)
                return MutationOutcome.FAILED
            except Exception as e:
                logger.exception("Committing %s failed", mutation.name)
                self.error = str(e) or f"Failed to apply {mutation.name}"
                return MutationOutcome.FAILED
            logger.debug("Committed %s", mutation.name)
            return MutationOutcome.COMMITTED
        finally:
            self._loading_count -= 1
            self.loading = self._loading_count > 0
            self._notify()

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _set_user(self, auth: AuthResponse) -> None:
        self.auth = auth
        self.current_user = auth.to_user()

    async def login(self, email: str, password: str) -> MutationOutcome:
        if not email.strip() or not password:
            return self._reject("login", "Email and password are required")
        return await self._run_confirmed(
            ConfirmedMutation(
                "login",
                lambda: self.data_source.login(email.strip(), password),
                self._set_user,
            )
        )

    async def register(self, email: str, password: str, full_name: str) -> MutationOutcome:
        problems = validate_registration(email, password, full_name)
        if problems:
            return self._reject("register", "; ".join(problems))
        return await self._run_confirmed(
            ConfirmedMutation(
                "register",
                lambda: self.data_source.register(email.strip(), password, full_name.strip()),
                self._set_user,
            )
        )

    def restore_session(self, auth: AuthResponse) -> None:
        """Adopt a session persisted by an earlier login."""
        self._set_user(auth)
        self.data_source.restore_session(auth)
        self._notify()

    async def logout(self) -> MutationOutcome:
        def commit(_: Any) -> None:
            self.current_user = None
            self.auth = None
            self.dashboards = []
            self._replace_view(None)

        return await self._run_confirmed(
            ConfirmedMutation("logout", self.data_source.logout, commit)
        )

    async def change_password(self, old_password: str, new_password: str) -> MutationOutcome:
        if self.current_user is None:
            return self._reject("change_password", "User not authenticated")
        problems = validate_password(new_password)
        if problems:
            return self._reject("change_password", "; ".join(problems))
        user_id = self.current_user.id
        return await self._run_confirmed(
            ConfirmedMutation(
                "change_password",
                lambda: self.data_source.change_password(user_id, old_password, new_password),
            )
        )

    # ------------------------------------------------------------------
    # Dashboards
    # ------------------------------------------------------------------

    async def load_dashboards(self) -> MutationOutcome:
        def commit(dashboards: list[Dashboard]) -> None:
            self.dashboards = list(dashboards)

        return await self._run_confirmed(
            ConfirmedMutation("load_dashboards", self.data_source.get_dashboards, commit)
        )

    async def add_dashboard(self, title: str) -> MutationOutcome:
        if self.current_user is None:
            return self._reject("add_dashboard", "User not authenticated")
        if not title.strip():
            return self._reject("add_dashboard", "Dashboard title is required")
        user_id = self.current_user.id

        def commit(dashboard: Dashboard) -> None:
            self.dashboards = [*self.dashboards, dashboard]

        return await self._run_confirmed(
            ConfirmedMutation(
                "add_dashboard",
                lambda: self.data_source.create_dashboard(title.strip(), user_id),
                commit,
            )
        )

    async def set_current_dashboard(self, dashboard_id: str) -> MutationOutcome:
        """
        Make ``dashboard_id`` the current view, fetched fresh from the backend.

        Unpersisted local state for the previous view is discarded.
        """

        def commit(dashboards: list[Dashboard]) -> None:
            self.dashboards = list(dashboards)
            found = next((d for d in dashboards if d.id == dashboard_id), None)
            if found is None:
                raise CommitRejected("Dashboard not found")
            self._replace_view(found)

        return await self._run_confirmed(
            ConfirmedMutation(
                "set_current_dashboard",
                self.data_source.get_dashboards,
                commit,
                {"dashboard_id": dashboard_id},
            )
        )

    async def update_dashboard(
        self, dashboard_id: str, updates: dict[str, Any]
    ) -> MutationOutcome:
        def commit(dashboard: Dashboard) -> None:
            self._replace_dashboard(dashboard)
            if self.current_dashboard is not None and self.current_dashboard.id == dashboard.id:
                # Keep the working columns: they may hold unconfirmed moves
                self.current_dashboard = dashboard.model_copy(update={"columns": self.columns})
                self._replace_dashboard(self.current_dashboard)

        return await self._run_confirmed(
            ConfirmedMutation(
                "update_dashboard",
                lambda: self.data_source.update_dashboard(dashboard_id, updates),
                commit,
            )
        )

    async def delete_dashboard(self, dashboard_id: str) -> MutationOutcome:
        def commit(_: Any) -> None:
            self.dashboards = [d for d in self.dashboards if d.id != dashboard_id]
            if self.current_dashboard is not None and self.current_dashboard.id == dashboard_id:
                self._replace_view(None)

        return await self._run_confirmed(
            ConfirmedMutation(
                "delete_dashboard",
                lambda: self.data_source.delete_dashboard(dashboard_id),
                commit,
            )
        )

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    async def add_column(self, title: str) -> MutationOutcome:
        dashboard = self._require_dashboard("add_column")
        if dashboard is None:
            return MutationOutcome.REJECTED
        if not title.strip():
            return self._reject("add_column", "Column title is required", dashboard.id)

        def commit(column: Column) -> None:
            self._set_columns([*self.columns, column])

        return await self._run_confirmed(
            ConfirmedMutation(
                "add_column",
                lambda: self.data_source.create_column(dashboard.id, title.strip()),
                commit,
            )
        )

    async def update_column(self, column_id: str, updates: dict[str, Any]) -> MutationOutcome:
        dashboard = self._require_dashboard("update_column")
        if dashboard is None:
            return MutationOutcome.REJECTED
        if self.find_column(column_id) is None:
            return self._reject("update_column", "Column not found", dashboard.id)
        if "title" in updates and not str(updates["title"]).strip():
            return self._reject("update_column", "Column title is required", dashboard.id)

        def commit(column: Column) -> None:
            self._update_column(column_id, lambda _: column)

        return await self._run_confirmed(
            ConfirmedMutation(
                "update_column",
                lambda: self.data_source.update_column(dashboard.id, column_id, updates),
                commit,
            )
        )

    async def archive_column(self, column_id: str) -> MutationOutcome:
        """Mark a column archived on the backend and drop it from the view."""
        dashboard = self._require_dashboard("archive_column")
        if dashboard is None:
            return MutationOutcome.REJECTED
        if self.find_column(column_id) is None:
            return self._reject("archive_column", "Column not found", dashboard.id)

        def commit(_: Any) -> None:
            self._set_columns([c for c in self.columns if c.id != column_id])

        return await self._run_confirmed(
            ConfirmedMutation(
                "archive_column",
                lambda: self.data_source.update_column(
                    dashboard.id, column_id, {"is_archived": True}
                ),
                commit,
            )
        )

    async def delete_column(self, column_id: str) -> MutationOutcome:
        dashboard = self._require_dashboard("delete_column")
        if dashboard is None:
            return MutationOutcome.REJECTED

        def commit(_: Any) -> None:
            self._set_columns([c for c in self.columns if c.id != column_id])

        return await self._run_confirmed(
            ConfirmedMutation(
                "delete_column",
                lambda: self.data_source.delete_column(dashboard.id, column_id),
                commit,
            )
        )

    async def update_column_order(
        self, dashboard_id: str, column_ids: list[str]
    ) -> MutationOutcome:
        """
        Reorder columns optimistically.

        ``column_ids`` must list every column of the current dashboard exactly
        once; each column's ``order`` becomes its 0-based position.
        """
        name = "update_column_order"
        dashboard = self._require_dashboard(name)
        if dashboard is None:
            return MutationOutcome.REJECTED
        if dashboard.id != dashboard_id:
            return self._reject(name, "Dashboard is not the active dashboard", dashboard_id)

        current_ids = [c.id for c in self.columns]
        if len(set(column_ids)) != len(column_ids):
            return self._reject(name, "Column order contains duplicate ids", dashboard_id)
        unknown = [cid for cid in column_ids if cid not in current_ids]
        if unknown:
            return self._reject(name, f"Column not found: {', '.join(unknown)}", dashboard_id)
        missing = [cid for cid in current_ids if cid not in column_ids]
        if missing:
            return self._reject(
                name, f"Column order is missing columns: {', '.join(missing)}", dashboard_id
            )
        if list(column_ids) == current_ids:
            return MutationOutcome.NOOP

        ordered_ids = list(column_ids)

        def apply(columns: list[Column]) -> list[Column]:
            by_id = {c.id: c for c in columns}
            return [
                by_id[cid].model_copy(update={"order": index})
                for index, cid in enumerate(ordered_ids)
            ]

        return await self._run_optimistic(
            OptimisticMutation(
                name,
                dashboard_id,
                apply,
                lambda: self.data_source.update_column_order(dashboard_id, ordered_ids),
                {"column_ids": ordered_ids},
            )
        )

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    async def add_card(self, column_id: str, title: str) -> MutationOutcome:
        dashboard = self._require_dashboard("add_card")
        if dashboard is None:
            return MutationOutcome.REJECTED
        if not title.strip():
            return self._reject("add_card", "Card title is required", dashboard.id)
        if self.find_column(column_id) is None:
            return self._reject("add_card", "Column not found", dashboard.id)

        def commit(card: Card) -> None:
            self._update_column(
                column_id, lambda c: c.model_copy(update={"cards": [*c.cards, card]})
            )

        return await self._run_confirmed(
            ConfirmedMutation(
                "add_card",
                lambda: self.data_source.create_card(dashboard.id, column_id, title.strip()),
                commit,
            )
        )

    async def update_card(
        self, column_id: str, card_id: str, updates: dict[str, Any]
    ) -> MutationOutcome:
        dashboard = self._require_dashboard("update_card")
        if dashboard is None:
            return MutationOutcome.REJECTED
        if "title" in updates and not str(updates["title"]).strip():
            return self._reject("update_card", "Card title is required", dashboard.id)

        def commit(card: Card) -> None:
            self._update_column(
                column_id,
                lambda c: c.model_copy(
                    update={"cards": [card if x.id == card_id else x for x in c.cards]}
                ),
            )

        return await self._run_confirmed(
            ConfirmedMutation(
                "update_card",
                lambda: self.data_source.update_card(dashboard.id, column_id, card_id, updates),
                commit,
            )
        )

    async def delete_card(self, column_id: str, card_id: str) -> MutationOutcome:
        dashboard = self._require_dashboard("delete_card")
        if dashboard is None:
            return MutationOutcome.REJECTED

        def commit(_: Any) -> None:
            self._update_column(
                column_id,
                lambda c: c.model_copy(update={"cards": [x for x in c.cards if x.id != card_id]}),
            )

        return await self._run_confirmed(
            ConfirmedMutation(
                "delete_card",
                lambda: self.data_source.delete_card(dashboard.id, column_id, card_id),
                commit,
            )
        )

    async def move_card(
        self, from_column_id: str, to_column_id: str, from_index: int, to_index: int
    ) -> MutationOutcome:
        """
        Move a card optimistically.

        The destination index is clamped to the destination column and the
        clamped value is what the data source receives.
        """
        name = "move_card"
        if from_column_id == to_column_id and from_index == to_index:
            return MutationOutcome.NOOP
        dashboard = self._require_dashboard(name)
        if dashboard is None:
            return MutationOutcome.REJECTED

        source = self.find_column(from_column_id)
        destination = self.find_column(to_column_id)
        if source is None or destination is None:
            return self._reject(name, "Column not found", dashboard.id)
        if not 0 <= from_index < len(source.cards):
            return self._reject(name, f"No card at index {from_index}", dashboard.id)

        card_id = source.cards[from_index].id
        room = len(destination.cards) - (1 if source.id == destination.id else 0)
        index = max(0, min(to_index, room))
        if source.id == destination.id and index == from_index:
            return MutationOutcome.NOOP

        def apply(columns: list[Column]) -> list[Column]:
            result = [c.model_copy(update={"cards": list(c.cards)}) for c in columns]
            by_id = {c.id: c for c in result}
            card = by_id[from_column_id].cards.pop(from_index)
            by_id[to_column_id].cards.insert(
                index, card.model_copy(update={"column_id": to_column_id})
            )
            return result

        return await self._run_optimistic(
            OptimisticMutation(
                name,
                dashboard.id,
                apply,
                lambda: self.data_source.move_card(
                    dashboard.id, from_column_id, to_column_id, card_id, index
                ),
                {
                    "card_id": card_id,
                    "from_column_id": from_column_id,
                    "to_column_id": to_column_id,
                    "new_index": index,
                },
            )
        )

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    async def invite_to_dashboard(self, dashboard_id: str, email: str) -> MutationOutcome:
        """
        Invite ``email`` to a dashboard.

        A pending invitation for the same address on the current dashboard,
        or an identical invite still in flight, makes this a no-op.
        """
        problems = validate_email(email)
        if problems:
            return self._reject("invite_to_dashboard", problems[0], dashboard_id)
        email = email.strip()
        key = (dashboard_id, email.lower())
        if key in self._inflight_invites:
            return MutationOutcome.NOOP
        current = self.current_dashboard
        if (
            current is not None
            and current.id == dashboard_id
            and current.pending_invitation_for(email) is not None
        ):
            return MutationOutcome.NOOP

        def commit(invitation: Invitation) -> None:
            dashboard = self.current_dashboard
            if dashboard is None or dashboard.id != dashboard_id:
                return
            if any(i.id == invitation.id for i in dashboard.invitations):
                return
            self.current_dashboard = dashboard.model_copy(
                update={"invitations": [*dashboard.invitations, invitation]}
            )
            self._replace_dashboard(self.current_dashboard)

        self._inflight_invites.add(key)
        try:
            return await self._run_confirmed(
                ConfirmedMutation(
                    "invite_to_dashboard",
                    lambda: self.data_source.invite_to_dashboard(dashboard_id, email),
                    commit,
                )
            )
        finally:
            self._inflight_invites.discard(key)

    async def accept_invitation(self, invitation_id: str) -> MutationOutcome:
        outcome = await self._run_confirmed(
            ConfirmedMutation(
                "accept_invitation",
                lambda: self.data_source.accept_invitation(invitation_id),
            )
        )
        if outcome is not MutationOutcome.COMMITTED:
            return outcome
        return await self.load_dashboards()

    async def reject_invitation(self, invitation_id: str) -> MutationOutcome:
        def commit(_: Any) -> None:
            dashboard = self.current_dashboard
            if dashboard is None:
                return
            self.current_dashboard = dashboard.model_copy(
                update={"invitations": [i for i in dashboard.invitations if i.id != invitation_id]}
            )
            self._replace_dashboard(self.current_dashboard)

        return await self._run_confirmed(
            ConfirmedMutation(
                "reject_invitation",
                lambda: self.data_source.reject_invitation(invitation_id),
                commit,
            )
        )

    async def aclose(self) -> None:
        await self.data_source.aclose()
