"""
Dashboard statistics.

Aggregates card counts over a dashboard, optionally filtered by creation
date, member, label and column. Cards without ``created_at`` are dated by the
dashboard's creation time.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, Field

from boardsync.core.board.models import Dashboard

DONE_MARKERS = ("done", "completed")


class DateRange(str, Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class StatFilter(BaseModel):
    """Filter applied before counting; empty lists mean no filtering."""

    date_range: DateRange = DateRange.ALL
    members: list[str] = Field(default_factory=list, description="Card member ids")
    labels: list[str] = Field(default_factory=list, description="Label ids")
    columns: list[str] = Field(default_factory=list, description="Column ids")


class DashboardStats(BaseModel):
    total_cards: int = 0
    completed_cards: int = 0
    total_members: int = 0
    total_comments: int = 0
    total_attachments: int = 0
    total_checklists: int = 0
    completed_checklists: int = 0
    cards_by_label: dict[str, int] = Field(default_factory=dict)
    cards_by_member: dict[str, int] = Field(default_factory=dict)
    cards_by_column: dict[str, int] = Field(default_factory=dict)
    activity_by_day: dict[str, int] = Field(default_factory=dict)
    completion_rate: float = 0.0


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _months_ago(now: datetime, months: int) -> datetime:
    year, month = divmod(now.year * 12 + now.month - 1 - months, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def range_start(date_range: DateRange, now: datetime) -> datetime | None:
    """
    First instant included by ``date_range``.

    Args:
        date_range: Range to resolve
        now: Reference time

    Returns:
        Start of the range, or None for ``all``
    """
    if date_range == DateRange.TODAY:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if date_range == DateRange.WEEK:
        return now - timedelta(days=7)
    if date_range == DateRange.MONTH:
        return _months_ago(now, 1)
    if date_range == DateRange.YEAR:
        return _months_ago(now, 12)
    return None


def find_done_column_index(dashboard: Dashboard) -> int | None:
    for index, column in enumerate(dashboard.columns):
        title = column.title.lower()
        if any(marker in title for marker in DONE_MARKERS):
            return index
    return None


def compute_dashboard_stats(
    dashboard: Dashboard,
    stat_filter: StatFilter | None = None,
    now: datetime | None = None,
) -> DashboardStats:
    """
    Count cards, collaborators and activity on a dashboard.

    The completion rate compares the card count of the first column whose
    title contains "done" or "completed" against the filtered total.

    Args:
        dashboard: Dashboard to analyse
        stat_filter: Optional filter (defaults to everything)
        now: Reference time for date ranges (defaults to the current time)

    Returns:
        Aggregated statistics
    """
    stat_filter = stat_filter or StatFilter()
    now = _aware(now or datetime.now(timezone.utc))
    start = range_start(stat_filter.date_range, now)
    stats = DashboardStats(total_members=len(dashboard.members))

    for column in dashboard.columns:
        if stat_filter.columns and column.id not in stat_filter.columns:
            continue
        stats.cards_by_column[column.title] = 0

        for card in column.cards:
            card_date = _aware(card.created_at or dashboard.created_at)
            if start is not None and card_date < start:
                continue
            if stat_filter.members and not any(
                m.id in stat_filter.members for m in card.members
            ):
                continue
            if stat_filter.labels and not any(
                label.id in stat_filter.labels for label in card.labels
            ):
                continue

            stats.total_cards += 1
            stats.cards_by_column[column.title] += 1
            stats.total_comments += len(card.comments)
            stats.total_attachments += len(card.attachments)
            stats.total_checklists += len(card.checklists)
            stats.completed_checklists += sum(1 for c in card.checklists if c.is_complete)
            for label in card.labels:
                stats.cards_by_label[label.text] = stats.cards_by_label.get(label.text, 0) + 1
            for member in card.members:
                stats.cards_by_member[member.email] = stats.cards_by_member.get(member.email, 0) + 1
            day = card_date.date().isoformat()
            stats.activity_by_day[day] = stats.activity_by_day.get(day, 0) + 1

    done_index = find_done_column_index(dashboard)
    if done_index is not None:
        stats.completed_cards = len(dashboard.columns[done_index].cards)
        if stats.total_cards > 0:
            stats.completion_rate = stats.completed_cards / stats.total_cards * 100

    return stats
