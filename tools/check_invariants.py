#!/usr/bin/env python3
"""Audit a persisted election against its event log.

Replays <data-dir>/events.jsonl (hash-verified on load) and checks the
rebuilt state with ballotbox.audit.

Usage:
    python3 tools/check_invariants.py
    python3 tools/check_invariants.py path/to/data
"""

import sys
from pathlib import Path

# Add src to path for ballotbox imports
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from ballotbox.audit import check_invariants
from ballotbox.config import ElectionConfig
from ballotbox.persistence.event_log import EventLog
from ballotbox.persistence.replay import restore_election


def check(data_dir: Path | None = None) -> int:
    config = ElectionConfig.from_env(ROOT / ".env")
    events_path = (data_dir or config.data_dir) / "events.jsonl"
    if not events_path.exists():
        print(f"ERROR: Event log not found: {events_path}")
        return 1

    log = EventLog(storage_path=events_path)
    with log.locked():
        election = restore_election(log.events())
        errors = check_invariants(election.state, log.events())

    if errors:
        print("Election invariant checks FAILED:")
        for error in errors:
            print(f"- {error}")
        return 1

    print(f"Election invariant checks passed ({log.count} events).")
    return 0


if __name__ == "__main__":
    raise SystemExit(check(Path(sys.argv[1]) if len(sys.argv) > 1 else None))
