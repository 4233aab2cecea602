"""Event log persistence and election restoration."""

from ballotbox.persistence.event_log import EventKind, EventLog, EventRecord

__all__ = ["EventKind", "EventLog", "EventRecord"]
