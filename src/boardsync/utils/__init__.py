"""Shared utilities."""

from .logging import EventType, LogEntry, SyncLogger

__all__ = ["EventType", "LogEntry", "SyncLogger"]
