"""
Sync event trail in JSON Lines.

The board store reports what happened to each optimistic mutation
(applied, committed, rolled back, superseded, rejected) and every failed
backend request. One session writes one file under
$XDG_DATA_HOME/boardsync/logs, one JSON object per line:

    {"seq": 3, "timestamp": "2026-01-15T12:34:56.789000Z",
     "event_type": "mutation_rolled_back",
     "data": {"mutation": "move_card", "dashboard_id": "dash-1"}}

``seq`` restarts at 1 for every SyncLogger instance.
"""

from __future__ import annotations

import itertools
import logging
from collections import Counter
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from boardsync.core.config.loader import APP_DIR, get_xdg_data_home

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    MUTATION_APPLIED = "mutation_applied"
    MUTATION_COMMITTED = "mutation_committed"
    MUTATION_ROLLED_BACK = "mutation_rolled_back"
    MUTATION_SUPERSEDED = "mutation_superseded"
    MUTATION_REJECTED = "mutation_rejected"
    REQUEST_FAILED = "request_failed"


class LogEntry(BaseModel):
    """One line of the event trail."""

    model_config = ConfigDict(use_enum_values=True)

    seq: int = Field(default=0, ge=0)
    timestamp: datetime
    event_type: EventType
    data: dict[str, Any] = Field(default_factory=dict)


class SyncLogger:
    """
    Appends sync events to a JSONL file.

    Writing never raises: an unwritable trail is reported once per failure
    through the module logger and the board keeps working.
    """

    def __init__(self, log_file: Path):
        self.log_file = Path(log_file)
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        self._seq = itertools.count(1)

    @classmethod
    def init(cls, session_id: str) -> SyncLogger:
        """
        Open the trail for ``session_id``.

        Raises:
            ValueError: If session_id is empty
        """
        if not session_id:
            raise ValueError("session_id cannot be empty")
        return cls(get_xdg_data_home() / APP_DIR / "logs" / f"{session_id}.jsonl")

    def log_event(self, event_type: EventType, data: dict[str, Any] | None = None) -> None:
        entry = LogEntry(
            seq=next(self._seq),
            timestamp=datetime.now(timezone.utc),
            event_type=event_type,
            data=data or {},
        )
        try:
            with self.log_file.open("a", encoding="utf-8") as f:
                f.write(entry.model_dump_json() + "\n")
        except OSError as e:
            logger.warning("Failed to write to event log %s: %s", self.log_file, e)

    def log_mutation(
        self, event_type: EventType, mutation: str, dashboard_id: str | None, **details: Any
    ) -> None:
        """Record a mutation lifecycle step with the mutation's own details."""
        self.log_event(event_type, {"mutation": mutation, "dashboard_id": dashboard_id, **details})

    def log_request_failed(self, operation: str, code: str, message: str) -> None:
        self.log_event(
            EventType.REQUEST_FAILED, {"operation": operation, "code": code, "message": message}
        )

    def read_events(self, event_types: Iterable[EventType] | None = None) -> list[LogEntry]:
        """
        Load the trail back.

        Args:
            event_types: Keep only these event types (all when None)

        Returns:
            Entries in file order. Lines that fail to parse are skipped with
            a warning.
        """
        if not self.log_file.exists():
            return []
        wanted = {EventType(t).value for t in event_types} if event_types is not None else None
        entries: list[LogEntry] = []
        with self.log_file.open(encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    entry = LogEntry.model_validate_json(line)
                except ValidationError as e:
                    logger.warning("Skipping %s line %d: %s", self.log_file, lineno, e)
                    continue
                if wanted is None or entry.event_type in wanted:
                    entries.append(entry)
        return entries

    def summary(self) -> dict[str, int]:
        """Count of events per event type."""
        return dict(Counter(entry.event_type for entry in self.read_events()))
