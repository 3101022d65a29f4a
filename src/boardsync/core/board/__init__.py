"""
Board domain: entities, the board store and drag reconciliation.

Only the models are re-exported here; import the store from
``boardsync.core.board.store`` so the data source layer can depend on the
models without importing the store.
"""

from .models import (
    Attachment,
    AuthResponse,
    Card,
    CardMember,
    Checklist,
    ChecklistItem,
    Column,
    Comment,
    Dashboard,
    DashboardSettings,
    Invitation,
    InvitationStatus,
    Label,
    User,
)

__all__ = [
    "Attachment",
    "AuthResponse",
    "Card",
    "CardMember",
    "Checklist",
    "ChecklistItem",
    "Column",
    "Comment",
    "Dashboard",
    "DashboardSettings",
    "Invitation",
    "InvitationStatus",
    "Label",
    "User",
]
