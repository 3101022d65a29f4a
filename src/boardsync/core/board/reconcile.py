"""
Drag reconciliation.

Translates a finished drag gesture into at most one store mutation. This
layer never touches store state itself; it only decides which optimistic
operation to call and with which arguments.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from boardsync.core.board.mutations import MutationOutcome
from boardsync.core.board.store import BoardStore


class DragType(str, Enum):
    COLUMN = "column"
    CARD = "card"


class DraggableLocation(BaseModel):
    """Where a dragged item was picked up or dropped."""

    droppable_id: str = Field(..., description="Container id (a column id for cards)")
    index: int = Field(..., ge=0)


class DropResult(BaseModel):
    """A completed drag gesture; ``destination`` is None when dropped outside."""

    draggable_id: str | None = None
    type: DragType
    source: DraggableLocation
    destination: DraggableLocation | None = None


def reordered_column_ids(store: BoardStore, from_index: int, to_index: int) -> list[str]:
    """
    Full column id sequence after moving one column.

    Args:
        store: Store holding the current columns
        from_index: Position of the dragged column in the order-sorted list
        to_index: Position it was dropped at

    Returns:
        Every column id in its new order
    """
    ids = [column.id for column in sorted(store.columns, key=lambda c: c.order)]
    if not 0 <= from_index < len(ids):
        return ids
    moved = ids.pop(from_index)
    ids.insert(max(0, min(to_index, len(ids))), moved)
    return ids


async def handle_drag_end(store: BoardStore, result: DropResult) -> MutationOutcome:
    """
    Apply a finished drag to the store.

    Args:
        store: Board store to mutate
        result: The drop to reconcile

    Returns:
        Outcome of the store mutation, NOOP when nothing has to change
    """
    destination = result.destination
    if destination is None or store.current_dashboard is None:
        return MutationOutcome.NOOP

    if result.type == DragType.COLUMN:
        if destination.index == result.source.index:
            return MutationOutcome.NOOP
        column_ids = reordered_column_ids(store, result.source.index, destination.index)
        return await store.update_column_order(store.current_dashboard.id, column_ids)

    if (
        destination.droppable_id == result.source.droppable_id
        and destination.index == result.source.index
    ):
        return MutationOutcome.NOOP
    return await store.move_card(
        result.source.droppable_id,
        destination.droppable_id,
        result.source.index,
        destination.index,
    )
