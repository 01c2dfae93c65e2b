# ──────────────────────────────────────────────────────────────────────────────
# File: core/document_index.py
# Purpose: Derived, periodically rebuilt table of (name, link, category)
#          records. Readers take an immutable snapshot; the synchronizer
#          publishes a whole new snapshot in one reference swap.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

__all__ = ["DocumentRecord", "IndexSnapshot", "DocumentIndex"]


@dataclass(frozen=True)
class DocumentRecord:
    """Read-only projection of one item enumerated under one category."""

    name: str
    link: str
    category: str
    id: Optional[str] = None
    size: Optional[int] = None

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring test against the name. ``needle`` is pre-lowered."""
        return needle in self.name.lower()


@dataclass(frozen=True)
class IndexSnapshot:
    records: Tuple[DocumentRecord, ...] = ()
    version: int = 0
    synced_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.version == 0

    def __len__(self) -> int:
        return len(self.records)

    def search(self, query: str) -> List[DocumentRecord]:
        """Records whose name contains ``query`` (case-insensitive), in index order."""
        needle = (query or "").strip().lower()
        if not needle:
            return []
        return [r for r in self.records if r.matches(needle)]

    def by_category(self, category: str) -> List[DocumentRecord]:
        key = (category or "").strip().lower()
        return [r for r in self.records if r.category == key]


@dataclass
class DocumentIndex:
    """
    Holder of the current snapshot.

    State is ``empty`` until the first publish, ``populated`` afterwards. There
    is no partial mutation: ``publish`` replaces everything at once and a reader
    holding an older snapshot keeps seeing it unchanged.
    """

    _snapshot: IndexSnapshot = field(default_factory=IndexSnapshot)

    def snapshot(self) -> IndexSnapshot:
        return self._snapshot

    @property
    def state(self) -> str:
        return "empty" if self._snapshot.is_empty else "populated"

    def publish(self, records: Iterable[DocumentRecord]) -> IndexSnapshot:
        current = self._snapshot
        new = IndexSnapshot(
            records=tuple(records),
            version=current.version + 1,
            synced_at=datetime.now(timezone.utc),
        )
        # Single attribute rebind; readers see old or new, never a mix.
        self._snapshot = new
        return new
