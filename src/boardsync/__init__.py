"""
boardsync - Collaborative Kanban boards with optimistic state synchronization.

A board store that applies drags immediately, forwards them to a pluggable
backend (local file, REST or GraphQL) and rolls back when the backend refuses.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from boardsync.core.board.models import Card, Column, Dashboard
from boardsync.core.config.models import BoardSyncConfig

__all__ = ["BoardSyncConfig", "Card", "Column", "Dashboard", "__version__"]
