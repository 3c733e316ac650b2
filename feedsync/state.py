"""
Catalog Feed Sync - Sync State Store
JSON-file persistence for the catalog, the last-sync state and the
bounded history log.
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

from pydantic import TypeAdapter, ValidationError

from .models import (
    CanonicalProduct,
    Delta,
    DeltaCounts,
    DeltaSummary,
    HistoryEntry,
    SyncState,
)
from .exceptions import StateError

logger = logging.getLogger(__name__)

_history_adapter = TypeAdapter(List[HistoryEntry])


class SyncStateStore:
    """
    File-backed store for everything that survives between runs.

    Three documents are managed together:
    - catalog:  list of canonical products (replaced wholesale)
    - state:    last sync timestamp, counts, id -> hash table, sampled ids
    - history:  newest-first audit log of runs that had changes (capped)

    persist() writes all three or none: every document is serialized and
    written to a temporary sibling file before any of them is moved into
    place.
    """

    HISTORY_LIMIT = 90
    STATE_SAMPLE_SIZE = 50
    HISTORY_SAMPLE_SIZE = 10

    def __init__(
        self,
        state_path: Path,
        history_path: Path,
        catalog_path: Path,
        history_limit: int = HISTORY_LIMIT,
        state_sample_size: int = STATE_SAMPLE_SIZE,
        history_sample_size: int = HISTORY_SAMPLE_SIZE,
    ):
        self.state_path = Path(state_path)
        self.history_path = Path(history_path)
        self.catalog_path = Path(catalog_path)
        self.history_limit = history_limit
        self.state_sample_size = state_sample_size
        self.history_sample_size = history_sample_size

    # =========================================================================
    # LOADING
    # =========================================================================

    def load_state(self) -> SyncState:
        """Load the previous state; a missing file is an empty baseline."""
        raw = self._read_json(self.state_path)
        if raw is None:
            logger.info("No previous sync state found, starting from empty baseline")
            return SyncState.empty()
        try:
            state = SyncState.model_validate(raw)
        except ValidationError as e:
            raise StateError(f"Invalid sync state: {e}", path=str(self.state_path)) from e
        logger.info(
            f"Loaded sync state: {len(state.product_hash)} hashed products "
            f"(last sync {state.last_sync.isoformat() if state.last_sync else 'never'})"
        )
        return state

    def load_history(self) -> List[HistoryEntry]:
        raw = self._read_json(self.history_path)
        if raw is None:
            return []
        try:
            return _history_adapter.validate_python(raw)
        except ValidationError as e:
            raise StateError(f"Invalid sync history: {e}", path=str(self.history_path)) from e

    def _read_json(self, path: Path) -> Optional[Any]:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StateError(f"Cannot read {path.name}: {e}", path=str(path)) from e

    # =========================================================================
    # BUILDING NEW DOCUMENTS
    # =========================================================================

    def build_state(
        self,
        products: List[CanonicalProduct],
        delta: Delta,
        new_hashes: dict,
        now: datetime,
    ) -> SyncState:
        """New state document with up to STATE_SAMPLE_SIZE ids per category."""
        n = self.state_sample_size
        counts = DeltaCounts.from_delta(delta)
        return SyncState(
            last_sync=now,
            product_count=len(products),
            product_hash=dict(new_hashes),
            delta=DeltaSummary(
                **counts.model_dump(),
                new_ids=delta.new[:n],
                removed_ids=delta.removed[:n],
                changed_ids=delta.changed[:n],
            ),
        )

    def build_history_entry(
        self, product_count: int, delta: Delta, now: datetime
    ) -> HistoryEntry:
        n = self.history_sample_size
        return HistoryEntry(
            timestamp=now,
            product_count=product_count,
            delta=DeltaCounts.from_delta(delta),
            sample_new_ids=delta.new[:n],
            sample_removed_ids=delta.removed[:n],
            sample_changed_ids=delta.changed[:n],
        )

    def prepend_history(
        self, history: List[HistoryEntry], entry: HistoryEntry
    ) -> List[HistoryEntry]:
        """Newest first; entries beyond the limit are dropped."""
        return ([entry] + list(history))[: self.history_limit]

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def persist(
        self,
        products: List[CanonicalProduct],
        state: SyncState,
        history: List[HistoryEntry],
    ) -> List[Path]:
        """
        Write catalog, state and history.

        Returns:
            Paths written, in write order

        Raises:
            StateError: If any document cannot be written; files already in
                place are left untouched
        """
        # Catalog is renamed before state: if a later rename fails, the old
        # hash table makes the next run detect the changes and rewrite it.
        documents = [
            (self.catalog_path, [p.to_catalog_dict() for p in products]),
            (self.state_path, state.model_dump(mode="json", by_alias=True)),
            (self.history_path, [e.model_dump(mode="json", by_alias=True) for e in history]),
        ]

        staged = []
        try:
            for path, payload in documents:
                content = json.dumps(payload, indent=2, ensure_ascii=False, allow_nan=False)
                staged.append((self._stage(path, content), path))

            for temp_path, path in staged:
                os.replace(temp_path, path)
        except (OSError, TypeError, ValueError) as e:
            for temp_path, _ in staged:
                if temp_path.exists():
                    temp_path.unlink()
            raise StateError(f"Failed to persist sync output: {e}") from e

        written = [path for path, _ in documents]
        for path in written:
            logger.info(f"Wrote {path}")
        return written

    @staticmethod
    def _stage(path: Path, content: str) -> Path:
        """Write content to a temp file next to ``path`` and return its path."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.write("\n")
        return Path(temp_name)
