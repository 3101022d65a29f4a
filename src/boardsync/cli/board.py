"""
boardsync CLI - dashboard, column, card and invitation commands.

Card moves and column reorders go through the same drag reconciliation the
interactive board uses, so ``card move`` behaves exactly like a drop.
"""

import asyncio

import typer
from rich.table import Table

from boardsync.cli.context import console, ensure, open_store
from boardsync.core.board.reconcile import (
    DraggableLocation,
    DragType,
    DropResult,
    handle_drag_end,
)
from boardsync.core.board.stats import DateRange, StatFilter, compute_dashboard_stats
from boardsync.core.board.store import BoardStore

dashboard_app = typer.Typer(name="dashboard", help="Manage dashboards", no_args_is_help=True)
column_app = typer.Typer(name="column", help="Manage columns", no_args_is_help=True)
card_app = typer.Typer(name="card", help="Manage cards", no_args_is_help=True)
invitation_app = typer.Typer(
    name="invitation", help="Answer dashboard invitations", no_args_is_help=True
)


async def _open_dashboard(store: BoardStore, dashboard_id: str) -> None:
    ensure(store, await store.set_current_dashboard(dashboard_id))


def _print_board(store: BoardStore) -> None:
    dashboard = store.current_dashboard
    if dashboard is None:
        return
    console.print(f"[bold]{dashboard.title}[/bold] [dim]({dashboard.id})[/dim]")
    table = Table(show_header=True, header_style="bold")
    table.add_column("Column")
    table.add_column("#", justify="right")
    table.add_column("Card")
    table.add_column("ID", style="dim")
    for column in store.columns:
        if not column.cards:
            table.add_row(f"{column.title} [dim]({column.id})[/dim]", "", "[dim]empty[/dim]", "")
        for index, card in enumerate(column.cards):
            label = f"{column.title} [dim]({column.id})[/dim]" if index == 0 else ""
            table.add_row(label, str(card.number), card.title, card.id)
    console.print(table)


def list_dashboards() -> None:
    """List the dashboards you can access."""

    async def run() -> None:
        async with open_store() as store:
            ensure(store, await store.load_dashboards())
            if not store.dashboards:
                console.print("[dim]No dashboards yet[/dim]")
                return
            table = Table(show_header=True, header_style="bold")
            table.add_column("ID", style="dim")
            table.add_column("Title")
            table.add_column("Columns", justify="right")
            table.add_column("Members", justify="right")
            for dashboard in store.dashboards:
                table.add_row(
                    dashboard.id,
                    dashboard.title,
                    str(len(dashboard.columns)),
                    str(len(dashboard.members)),
                )
            console.print(table)

    asyncio.run(run())


# ==============================================================================
# dashboard
# ==============================================================================


@dashboard_app.command("create")
def dashboard_create(title: str = typer.Argument(..., help="Dashboard title")) -> None:
    """Create a dashboard with the default columns."""

    async def run() -> None:
        async with open_store() as store:
            ensure(store, await store.add_dashboard(title))
            created = store.dashboards[-1]
            console.print(f"[green]Created[/green] {created.title} [dim]({created.id})[/dim]")

    asyncio.run(run())


@dashboard_app.command("show")
def dashboard_show(dashboard_id: str = typer.Argument(..., help="Dashboard ID")) -> None:
    """Show a dashboard's columns and cards."""

    async def run() -> None:
        async with open_store() as store:
            await _open_dashboard(store, dashboard_id)
            _print_board(store)

    asyncio.run(run())


@dashboard_app.command("stats")
def dashboard_stats(
    dashboard_id: str = typer.Argument(..., help="Dashboard ID"),
    date_range: DateRange = typer.Option(DateRange.ALL, "--range", "-r", help="Date range"),
) -> None:
    """Show card statistics for a dashboard."""

    async def run() -> None:
        async with open_store() as store:
            await _open_dashboard(store, dashboard_id)
            dashboard = store.current_dashboard
            if dashboard is None:
                return
            stats = compute_dashboard_stats(dashboard, StatFilter(date_range=date_range))

        table = Table(show_header=False)
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")
        table.add_row("Cards", str(stats.total_cards))
        table.add_row("Completed", f"{stats.completed_cards} ({stats.completion_rate:.0f}%)")
        table.add_row("Members", str(stats.total_members))
        table.add_row("Comments", str(stats.total_comments))
        table.add_row("Attachments", str(stats.total_attachments))
        table.add_row(
            "Checklists", f"{stats.completed_checklists}/{stats.total_checklists} complete"
        )
        for title, count in stats.cards_by_column.items():
            table.add_row(f"  {title}", str(count))
        console.print(table)

    asyncio.run(run())


@dashboard_app.command("delete")
def dashboard_delete(
    dashboard_id: str = typer.Argument(..., help="Dashboard ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a dashboard."""
    if not yes:
        typer.confirm(f"Delete dashboard {dashboard_id}?", abort=True)

    async def run() -> None:
        async with open_store() as store:
            ensure(store, await store.delete_dashboard(dashboard_id))
            console.print(f"[green]Deleted[/green] {dashboard_id}")

    asyncio.run(run())


# ==============================================================================
# column
# ==============================================================================


@column_app.command("add")
def column_add(
    dashboard_id: str = typer.Argument(..., help="Dashboard ID"),
    title: str = typer.Argument(..., help="Column title"),
) -> None:
    """Add a column at the end of a dashboard."""

    async def run() -> None:
        async with open_store() as store:
            await _open_dashboard(store, dashboard_id)
            ensure(store, await store.add_column(title))
            column = store.columns[-1]
            console.print(f"[green]Added column[/green] {column.title} [dim]({column.id})[/dim]")

    asyncio.run(run())


@column_app.command("reorder")
def column_reorder(
    dashboard_id: str = typer.Argument(..., help="Dashboard ID"),
    from_index: int = typer.Argument(..., min=0, help="Current position of the column"),
    to_index: int = typer.Argument(..., min=0, help="New position of the column"),
) -> None:
    """Move a column to another position."""

    async def run() -> None:
        async with open_store() as store:
            await _open_dashboard(store, dashboard_id)
            drop = DropResult(
                type=DragType.COLUMN,
                source=DraggableLocation(droppable_id=dashboard_id, index=from_index),
                destination=DraggableLocation(droppable_id=dashboard_id, index=to_index),
            )
            ensure(store, await handle_drag_end(store, drop))
            _print_board(store)

    asyncio.run(run())


@column_app.command("archive")
def column_archive(
    dashboard_id: str = typer.Argument(..., help="Dashboard ID"),
    column_id: str = typer.Argument(..., help="Column ID"),
) -> None:
    """Archive a column."""

    async def run() -> None:
        async with open_store() as store:
            await _open_dashboard(store, dashboard_id)
            ensure(store, await store.archive_column(column_id))
            console.print(f"[green]Archived[/green] {column_id}")

    asyncio.run(run())


# ==============================================================================
# card
# ==============================================================================


@card_app.command("add")
def card_add(
    dashboard_id: str = typer.Argument(..., help="Dashboard ID"),
    column_id: str = typer.Argument(..., help="Column ID"),
    title: str = typer.Argument(..., help="Card title"),
) -> None:
    """Add a card at the bottom of a column."""

    async def run() -> None:
        async with open_store() as store:
            await _open_dashboard(store, dashboard_id)
            ensure(store, await store.add_card(column_id, title))
            column = store.find_column(column_id)
            card = column.cards[-1] if column is not None and column.cards else None
            if card is not None:
                console.print(
                    f"[green]Added card[/green] #{card.number} {card.title} [dim]({card.id})[/dim]"
                )

    asyncio.run(run())


@card_app.command("move")
def card_move(
    dashboard_id: str = typer.Argument(..., help="Dashboard ID"),
    from_column_id: str = typer.Argument(..., help="Column the card is in"),
    from_index: int = typer.Argument(..., min=0, help="Position of the card in that column"),
    to_column_id: str = typer.Argument(..., help="Destination column"),
    to_index: int = typer.Argument(..., min=0, help="Position in the destination column"),
) -> None:
    """Move a card, as if it were dragged and dropped."""

    async def run() -> None:
        async with open_store() as store:
            await _open_dashboard(store, dashboard_id)
            drop = DropResult(
                type=DragType.CARD,
                source=DraggableLocation(droppable_id=from_column_id, index=from_index),
                destination=DraggableLocation(droppable_id=to_column_id, index=to_index),
            )
            ensure(store, await handle_drag_end(store, drop))
            _print_board(store)

    asyncio.run(run())


# ==============================================================================
# invitations
# ==============================================================================


def invite(
    dashboard_id: str = typer.Argument(..., help="Dashboard ID"),
    email: str = typer.Argument(..., help="Email address to invite"),
) -> None:
    """Invite someone to a dashboard."""

    async def run() -> None:
        async with open_store() as store:
            await _open_dashboard(store, dashboard_id)
            ensure(store, await store.invite_to_dashboard(dashboard_id, email))
            console.print(f"[green]Invited[/green] {email}")

    asyncio.run(run())


@invitation_app.command("accept")
def invitation_accept(invitation_id: str = typer.Argument(..., help="Invitation ID")) -> None:
    """Accept an invitation and join its dashboard."""

    async def run() -> None:
        async with open_store() as store:
            ensure(store, await store.accept_invitation(invitation_id))
            console.print(f"[green]Accepted[/green] {invitation_id}")

    asyncio.run(run())


@invitation_app.command("reject")
def invitation_reject(invitation_id: str = typer.Argument(..., help="Invitation ID")) -> None:
    """Decline an invitation."""

    async def run() -> None:
        async with open_store() as store:
            ensure(store, await store.reject_invitation(invitation_id))
            console.print(f"Rejected {invitation_id}")

    asyncio.run(run())
