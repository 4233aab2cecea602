"""Runtime configuration loaded from the environment.

Values come from process environment variables, optionally seeded from a
.env file (python-dotenv). Variables already set in the environment win
over the file.

    BALLOTBOX_ADMIN       administrator identity for a fresh election
    BALLOTBOX_CALLER      identity of the acting caller
    BALLOTBOX_DATA_DIR    directory holding events.jsonl (default: data)
    BALLOTBOX_LOG_LEVEL   logging level name (default: WARNING)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


EVENTS_FILENAME = "events.jsonl"


@dataclass(frozen=True)
class ElectionConfig:
    administrator: Optional[str] = None
    caller: Optional[str] = None
    data_dir: Path = Path("data")
    log_level: str = "WARNING"

    @property
    def events_path(self) -> Path:
        return self.data_dir / EVENTS_FILENAME

    @property
    def logging_level(self) -> int:
        """Numeric logging level. Raises ValueError for an unknown name."""
        level = logging.getLevelName(self.log_level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {self.log_level}")
        return level

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> ElectionConfig:
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()
        return cls(
            administrator=os.getenv("BALLOTBOX_ADMIN") or None,
            caller=os.getenv("BALLOTBOX_CALLER") or None,
            data_dir=Path(os.getenv("BALLOTBOX_DATA_DIR") or "data"),
            log_level=os.getenv("BALLOTBOX_LOG_LEVEL") or "WARNING",
        )
