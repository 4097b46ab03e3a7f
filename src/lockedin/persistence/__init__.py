"""Persistence — append-only audit log of cycle events."""

from lockedin.persistence.event_log import EventKind, EventLog, EventRecord

__all__ = ["EventKind", "EventLog", "EventRecord"]
