"""Append-only event log — the ordered record of every election notification.

Every successful state change produces one or more event records appended
to the log. Records are immutable once written. The log serves as:
1. The notification feed for external monitoring.
2. The audit trail checked by ballotbox.audit.
3. The source of truth for restoring an election (ballotbox.persistence.replay).
"""

from __future__ import annotations

import enum
import fcntl
import hashlib
import json
import os
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional


class EventKind(str, enum.Enum):
    """Classification of election notifications."""
    ADMINISTRATOR_ASSIGNED = "administrator_assigned"
    VOTER_REGISTERED = "voter_registered"
    PROPOSAL_REGISTERED = "proposal_registered"
    VOTED = "voted"
    WORKFLOW_STATUS_CHANGE = "workflow_status_change"


def _canonical_hash(
    event_id: str,
    event_kind: str,
    timestamp_utc: str,
    actor_id: str,
    payload: dict[str, Any],
) -> str:
    canonical = json.dumps(
        {
            "event_id": event_id,
            "event_kind": event_kind,
            "timestamp_utc": timestamp_utc,
            "actor_id": actor_id,
            "payload": payload,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class EventRecord:
    """A single immutable event.

    event_hash is the SHA-256 of the canonical JSON of every other field,
    computed at creation time and re-checked on load.
    """
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]
    event_hash: str

    @staticmethod
    def create(
        event_id: str,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        """Create a new event record with computed hash."""
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y-%m-%dT%H:%M:%SZ")
        return EventRecord(
            event_id=event_id,
            event_kind=event_kind,
            timestamp_utc=ts_str,
            actor_id=actor_id,
            payload=payload,
            event_hash=_canonical_hash(
                event_id, event_kind.value, ts_str, actor_id, payload,
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_kind": self.event_kind.value,
            "timestamp_utc": self.timestamp_utc,
            "actor_id": self.actor_id,
            "payload": self.payload,
            "event_hash": self.event_hash,
        }


class EventLog:
    """Ordered election record, in memory or backed by a JSONL file.

    Records are only ever appended. A file-backed log may be shared by
    several processes (the CLI opens one per invocation), so the log keeps
    the byte offset it has read up to:

    - ``refresh()`` pulls in whatever other writers appended since.
    - ``append()`` refuses to write while the file holds unread records,
      so a writer acting on stale state can never add to the log.
    - ``locked()`` holds an exclusive lock on ``<file>.lock`` and
      refreshes; a writer that checks and appends inside it is serialised
      against every other writer of the same file.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._storage_path = storage_path
        self._records: list[EventRecord] = []
        self._ids: set[str] = set()
        self._offset = 0
        self._lines_read = 0

        if storage_path is not None:
            self.refresh()

    @property
    def storage_path(self) -> Optional[Path]:
        return self._storage_path

    @property
    def count(self) -> int:
        return len(self._records)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return a copy of the records, optionally only those of *kind*."""
        if kind is None:
            return list(self._records)
        return [r for r in self._records if r.event_kind == kind]

    def append(self, event: EventRecord) -> None:
        """Write *event* to the file (if any), then to memory.

        Raises ValueError on a duplicate event id, or if the file has
        records this log has not read yet.
        """
        if event.event_id in self._ids:
            raise ValueError(f"Duplicate event ID: {event.event_id}")
        if self._storage_path is not None:
            self._write(event)
        self._records.append(event)
        self._ids.add(event.event_id)

    def refresh(self) -> int:
        """Read records appended to the file since the last read.

        Returns the number of records added. A trailing partial line is
        left for a later read.
        """
        if self._storage_path is None or not self._storage_path.exists():
            return 0
        with self._storage_path.open("rb") as f:
            f.seek(self._offset)
            chunk = f.read()
        complete = chunk[: chunk.rfind(b"\n") + 1]

        added = 0
        for raw in complete.splitlines():
            self._lines_read += 1
            line = raw.decode("utf-8").strip()
            if not line:
                continue
            record = self._parse(line, self._lines_read)
            self._records.append(record)
            self._ids.add(record.event_id)
            added += 1
        self._offset += len(complete)
        return added

    @contextmanager
    def locked(self) -> Iterator[int]:
        """Hold the writer lock for the duration of the block.

        Yields the number of records other writers appended since the last
        read. In-memory logs have no lock and always yield 0. The lock is
        not re-entrant: do not nest ``locked()`` blocks on one file.
        """
        if self._storage_path is None:
            yield 0
            return
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        lock_path = self._storage_path.with_name(self._storage_path.name + ".lock")
        with lock_path.open("a") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield self.refresh()
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _write(self, event: EventRecord) -> None:
        line = json.dumps(event.to_dict(), sort_keys=True, ensure_ascii=False) + "\n"
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        with self._storage_path.open("ab") as f:
            f.seek(0, os.SEEK_END)
            if f.tell() != self._offset:
                raise ValueError(
                    f"Event log {self._storage_path} changed on disk; "
                    f"refresh before appending {event.event_id}"
                )
            f.write(line.encode("utf-8"))
            self._offset = f.tell()
        self._lines_read += 1

    def _parse(self, line: str, line_num: int) -> EventRecord:
        """Decode one stored record; fail closed on tampering or replay."""
        data = json.loads(line)
        event_id = data["event_id"]
        if event_id in self._ids:
            raise ValueError(f"Duplicate event ID on recovery (line {line_num}): {event_id}")

        expected = _canonical_hash(
            event_id,
            data["event_kind"],
            data["timestamp_utc"],
            data["actor_id"],
            data["payload"],
        )
        if data["event_hash"] != expected:
            raise ValueError(
                f"Integrity check failed (line {line_num}): event {event_id} "
                f"stored hash {data['event_hash']} != computed {expected}"
            )
        return EventRecord(
            event_id=event_id,
            event_kind=EventKind(data["event_kind"]),
            timestamp_utc=data["timestamp_utc"],
            actor_id=data["actor_id"],
            payload=data["payload"],
            event_hash=data["event_hash"],
        )
