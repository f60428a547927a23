"""
Match snapshot persistence.

The engine treats persistence as an opaque key-value store: a snapshot
dict per match id. Includes an in-memory store for tests and demos and a
JSON file store with one file per match.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from cricket_scorer.config import StoreBackend, StoreConfig
from cricket_scorer.errors import PersistenceFailure

logger = logging.getLogger(__name__)


class MatchStore(ABC):
    """Abstract base class for match snapshot storage."""

    @abstractmethod
    def load_match(self, match_id: str) -> dict[str, Any]:
        """Return the stored snapshot for ``match_id``.

        Raises:
            PersistenceFailure: if the match is unknown or unreadable.
        """

    @abstractmethod
    def save_match(self, match_id: str, snapshot: dict[str, Any]) -> None:
        """Store ``snapshot`` for ``match_id``, replacing any previous one.

        Raises:
            PersistenceFailure: if the snapshot could not be written.
        """

    @abstractmethod
    def list_matches(self) -> list[str]:
        """Ids of every stored match."""


class InMemoryMatchStore(MatchStore):
    """Dict-backed store. Snapshots are copied in and out."""

    def __init__(self):
        self._matches: dict[str, dict[str, Any]] = {}

    def load_match(self, match_id: str) -> dict[str, Any]:
        if match_id not in self._matches:
            raise PersistenceFailure(f"No stored match {match_id}", match_id=match_id)
        return copy.deepcopy(self._matches[match_id])

    def save_match(self, match_id: str, snapshot: dict[str, Any]) -> None:
        self._matches[match_id] = copy.deepcopy(snapshot)

    def list_matches(self) -> list[str]:
        return sorted(self._matches)


class JsonFileMatchStore(MatchStore):
    """One ``<match_id>.json`` file per match under ``data_dir``."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def _path(self, match_id: str) -> Path:
        if not match_id or "/" in match_id or "\\" in match_id or match_id.startswith("."):
            raise PersistenceFailure(f"Invalid match id: {match_id!r}", match_id=match_id)
        return self.data_dir / f"{match_id}.json"

    def load_match(self, match_id: str) -> dict[str, Any]:
        path = self._path(match_id)
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise PersistenceFailure(f"No stored match {match_id}", match_id=match_id) from None
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceFailure(
                f"Failed to load match {match_id}: {e}", match_id=match_id
            ) from e
        try:
            return document["snapshot"]
        except (KeyError, TypeError):
            raise PersistenceFailure(
                f"Failed to load match {match_id}: no snapshot in {path.name}",
                match_id=match_id,
            ) from None

    def save_match(self, match_id: str, snapshot: dict[str, Any]) -> None:
        path = self._path(match_id)
        document = {
            "match_id": match_id,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "snapshot": snapshot,
        }
        tmp = path.with_suffix(".json.tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(document, indent=2, default=str), encoding="utf-8")
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceFailure(
                f"Failed to save match {match_id}: {e}", match_id=match_id
            ) from e
        logger.debug("Saved match %s to %s", match_id, path)

    def list_matches(self) -> list[str]:
        if not self.data_dir.exists():
            return []
        return sorted(p.stem for p in self.data_dir.glob("*.json"))


def create_store(config: StoreConfig) -> MatchStore:
    """Build the store selected in configuration."""
    if config.backend == StoreBackend.MEMORY:
        return InMemoryMatchStore()
    return JsonFileMatchStore(config.data_dir)
