# ──────────────────────────────────────────────────────────────────────────────
# File: services/synchronizer.py
# Purpose: Rebuild the Document Index from every registered category folder,
#          once at startup and then on a fixed interval.
#
# Guarantees
#   • Sole writer of the DocumentIndex; publishes via one snapshot swap.
#   • All-or-nothing: a pass where any category fails is discarded and the
#     previous snapshot stays (failure is logged, never raised to readers).
#   • At most one pass in flight; an overlapping trigger is skipped.
#   • Fixed schedule: ticks at start + n*interval, no jitter or backoff.
#     A pass that overruns a tick skips it rather than queueing.
#   • Category fan-out is bounded by SYNC_CONCURRENCY.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from core.categories import CategoryRegistry
from core.document_index import DocumentIndex, DocumentRecord
from core.logging import log_event
from services.graph_client import RemoteDocumentService, RemoteItem
from utils.async_helpers import gather_bounded

logger = logging.getLogger("intranet.sync")


@dataclass(frozen=True)
class SyncReport:
    started_at: datetime
    finished_at: Optional[datetime] = None
    committed: bool = False
    skipped: bool = False
    record_count: int = 0
    per_category: Dict[str, int] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)
    index_version: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "committed": self.committed,
            "skipped": self.skipped,
            "record_count": self.record_count,
            "per_category": dict(self.per_category),
            "failed": dict(self.failed),
            "index_version": self.index_version,
        }


def project(item: RemoteItem, category: str) -> DocumentRecord:
    return DocumentRecord(
        name=item.name,
        link=item.link or item.download_url or "",
        category=category,
        id=item.id or None,
        size=item.size,
    )


class DocumentSynchronizer:
    def __init__(
        self,
        registry: CategoryRegistry,
        client: RemoteDocumentService,
        index: DocumentIndex,
        *,
        interval_s: float = 3600.0,
        concurrency: int = 4,
    ):
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._registry = registry
        self._client = client
        self._index = index
        self._interval = interval_s
        self._concurrency = concurrency
        self._running = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self.last_report: Optional[SyncReport] = None

    @property
    def in_flight(self) -> bool:
        return self._running.locked()

    async def run_once(self) -> SyncReport:
        """One full pass. Never raises for upstream failures; returns the report."""
        if self._running.locked():
            report = SyncReport(started_at=_now(), finished_at=_now(), skipped=True,
                                index_version=self._index.snapshot().version)
            logger.info("sync skipped: previous pass still in flight")
            log_event("sync_skipped", {"reason": "in_flight"})
            return report

        async with self._running:
            report = await self._pass()
            self.last_report = report
            return report

    async def _pass(self) -> SyncReport:
        started = _now()
        t0 = time.perf_counter()
        categories: List[Tuple[str, str]] = list(self._registry)

        async def _enumerate(pair: Tuple[str, str]) -> List[RemoteItem]:
            return await self._client.list_children(pair[1])

        outcomes = await gather_bounded(categories, _enumerate, limit=self._concurrency)

        records: List[DocumentRecord] = []
        per_category: Dict[str, int] = {}
        failed: Dict[str, str] = {}
        for outcome in outcomes:
            name = outcome.key[0]
            if not outcome.ok:
                failed[name] = outcome.error.__class__.__name__
                logger.warning("sync category=%s failed: %s", name, outcome.error)
                continue
            items = outcome.value or []
            per_category[name] = len(items)
            records.extend(project(item, name) for item in items)

        dur_ms = int((time.perf_counter() - t0) * 1000)
        if failed:
            current = self._index.snapshot()
            logger.warning(
                "sync discarded failed=%s kept_version=%s kept_records=%s dur_ms=%s",
                sorted(failed), current.version, len(current), dur_ms,
            )
            log_event("sync_discarded", {"failed": failed, "kept_version": current.version, "dur_ms": dur_ms})
            return SyncReport(
                started_at=started, finished_at=_now(), committed=False,
                record_count=len(current), per_category=per_category, failed=failed,
                index_version=current.version,
            )

        snap = self._index.publish(records)
        logger.info("sync committed version=%s records=%s dur_ms=%s", snap.version, len(snap), dur_ms)
        log_event("sync_committed", {"version": snap.version, "records": len(snap),
                                     "per_category": per_category, "dur_ms": dur_ms})
        return SyncReport(
            started_at=started, finished_at=_now(), committed=True,
            record_count=len(snap), per_category=per_category, index_version=snap.version,
        )

    # ── background loop ──────────────────────────────────────────────────────
    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        origin = loop.time()
        tick = 0
        while True:
            try:
                await self.run_once()
            except Exception:
                # a bug in a pass must not kill the schedule
                logger.exception("sync pass crashed")
            # next tick strictly after now; overrun ticks are skipped
            elapsed = loop.time() - origin
            tick = max(tick + 1, math.floor(elapsed / self._interval) + 1)
            await asyncio.sleep(max(0.0, origin + tick * self._interval - loop.time()))

    def start(self) -> asyncio.Task:
        """Spawn the periodic loop (first pass runs immediately)."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._loop(), name="document-sync")
            logger.info("sync loop started interval_s=%s concurrency=%s", self._interval, self._concurrency)
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("sync loop stopped")


def _now() -> datetime:
    return datetime.now(timezone.utc)
