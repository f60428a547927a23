"""
Configuration management for the Cricket Scoring Engine.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


class MatchFormat(Enum):
    T10 = "t10"
    T20 = "t20"
    ODI = "odi"


class StoreBackend(Enum):
    JSON = "json"
    MEMORY = "memory"


@dataclass(frozen=True)
class StoreConfig:
    """Where match snapshots are pushed after every scoring event."""
    backend: StoreBackend = StoreBackend.JSON
    data_dir: Path = field(default_factory=lambda: Path("data/matches"))


@dataclass(frozen=True)
class SessionConfig:
    """Live session behaviour."""
    save_retries: int = 3
    retry_delay_seconds: float = 0.25


@dataclass
class ScorerConfig:
    """Top-level scorer configuration."""
    store: StoreConfig = field(default_factory=StoreConfig)
    session: SessionConfig = field(default_factory=SessionConfig)

    default_format: MatchFormat = MatchFormat.T20
    commentary_window: int = 12  # Balls shown in the live commentary strip
    log_level: str = "INFO"

    @property
    def default_overs(self) -> int:
        return FORMAT_OVERS[self.default_format]

    @classmethod
    def from_env(cls) -> "ScorerConfig":
        """Load configuration from environment variables."""
        return cls(
            store=StoreConfig(
                backend=StoreBackend(os.getenv("SCORER_STORE_BACKEND", "json").lower()),
                data_dir=Path(os.getenv("SCORER_DATA_DIR", "data/matches")),
            ),
            session=SessionConfig(
                save_retries=int(os.getenv("SCORER_SAVE_RETRIES", "3")),
                retry_delay_seconds=float(os.getenv("SCORER_RETRY_DELAY", "0.25")),
            ),
            default_format=MatchFormat(os.getenv("SCORER_FORMAT", "t20").lower()),
            commentary_window=int(os.getenv("SCORER_COMMENTARY_WINDOW", "12")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


# Format-specific constants
FORMAT_OVERS: dict[MatchFormat, int] = {
    MatchFormat.T10: 10,
    MatchFormat.T20: 20,
    MatchFormat.ODI: 50,
}

BALLS_PER_OVER = 6
MAX_WICKETS = 10
