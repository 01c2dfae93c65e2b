# File: test_synchronizer.py
# Directory: tests
# Purpose: One sync pass (all-or-nothing commit), no overlapping passes,
#          bounded fan-out, readers never see a half-built index, and the
#          periodic loop keeps going after failures.

import asyncio

import pytest

from core.categories import CategoryRegistry
from core.document_index import DocumentIndex
from services.errors import UpstreamUnavailable
from services.synchronizer import DocumentSynchronizer

FOLDERS = {"personale": "folder-personale", "medarbejdere": "folder-medarbejdere"}


def _sync(fake_docs, index=None, **kw):
    return DocumentSynchronizer(CategoryRegistry(FOLDERS), fake_docs, index or DocumentIndex(), **kw)


@pytest.mark.asyncio
async def test_full_pass_indexes_every_child_tagged_with_its_category(fake_docs):
    index = DocumentIndex()
    report = await _sync(fake_docs, index).run_once()

    snap = index.snapshot()
    expected = sum(len(fake_docs.folders[f]) for f in FOLDERS.values())
    assert report.committed and not report.failed
    assert len(snap) == expected == report.record_count
    assert report.per_category == {"personale": 2, "medarbejdere": 1}
    by_cat = {(r.category, r.name) for r in snap.records}
    assert by_cat == {
        ("personale", "Q1 Report.pdf"),
        ("personale", "Handbook.docx"),
        ("medarbejdere", "budget.xlsx"),
    }
    rec = snap.by_category("personale")[0]
    assert rec.link.startswith("https://sp.example.test/") and rec.id and rec.size == 100


@pytest.mark.asyncio
async def test_one_failing_category_leaves_previous_snapshot(fake_docs):
    index = DocumentIndex()
    sync = _sync(fake_docs, index)
    await sync.run_once()
    before = index.snapshot()

    fake_docs.add("folder-personale", "New.pdf")
    fake_docs.failing["folder-medarbejdere"] = UpstreamUnavailable("boom")
    report = await sync.run_once()

    assert not report.committed
    assert report.failed == {"medarbejdere": "UpstreamUnavailable"}
    assert index.snapshot() is before
    assert sync.last_report is report
    # the other category was still enumerated
    assert ("list_children", "folder-personale") in fake_docs.calls[-2:]


@pytest.mark.asyncio
async def test_failure_before_first_success_keeps_index_empty(fake_docs):
    index = DocumentIndex()
    fake_docs.failing["folder-personale"] = RuntimeError("unexpected")
    report = await _sync(fake_docs, index).run_once()
    assert not report.committed
    assert index.state == "empty"


@pytest.mark.asyncio
async def test_overlapping_trigger_is_skipped(fake_docs):
    fake_docs.delay = 0.05
    index = DocumentIndex()
    sync = _sync(fake_docs, index)

    first = asyncio.create_task(sync.run_once())
    await asyncio.sleep(0.01)
    assert sync.in_flight
    second = await sync.run_once()
    done = await first

    assert second.skipped and not second.committed
    assert done.committed
    assert index.snapshot().version == 1
    assert len([c for c in fake_docs.calls if c[0] == "list_children"]) == len(FOLDERS)


@pytest.mark.asyncio
async def test_fan_out_respects_concurrency_limit(fake_docs):
    folders = {f"cat{i}": f"folder-{i}" for i in range(6)}
    for f in folders.values():
        fake_docs.add(f, "x.pdf")

    active = {"now": 0, "peak": 0}
    original = fake_docs.list_children

    async def tracking(folder_id):
        active["now"] += 1
        active["peak"] = max(active["peak"], active["now"])
        try:
            await asyncio.sleep(0.01)
            return await original(folder_id)
        finally:
            active["now"] -= 1

    fake_docs.list_children = tracking
    sync = DocumentSynchronizer(CategoryRegistry(folders), fake_docs, DocumentIndex(), concurrency=2)
    report = await sync.run_once()

    assert report.committed and report.record_count == 6
    assert active["peak"] == 2


@pytest.mark.asyncio
async def test_readers_never_observe_a_partial_index(fake_docs):
    index = DocumentIndex()
    sync = _sync(fake_docs, index)
    await sync.run_once()
    old_total = len(index.snapshot())

    for i in range(20):
        fake_docs.add("folder-personale", f"extra-{i}.pdf")
    new_total = old_total + 20
    fake_docs.delay = 0.01

    seen = set()

    async def reader():
        while sync.in_flight or not seen:
            seen.add(len(index.snapshot()))
            await asyncio.sleep(0)

    task = asyncio.create_task(sync.run_once())
    await asyncio.sleep(0)
    await asyncio.gather(reader(), task)
    seen.add(len(index.snapshot()))

    assert seen <= {old_total, new_total}
    assert new_total in seen


@pytest.mark.asyncio
async def test_loop_runs_immediately_and_keeps_schedule_after_failure(fake_docs):
    fake_docs.failing["folder-personale"] = UpstreamUnavailable("down")
    index = DocumentIndex()
    sync = _sync(fake_docs, index, interval_s=0.05)

    sync.start()
    await asyncio.sleep(0.01)
    assert sync.last_report is not None and not sync.last_report.committed

    fake_docs.failing.clear()
    await asyncio.sleep(0.08)
    await sync.stop()

    assert index.state == "populated"
    assert sync.last_report.committed


def test_interval_must_be_positive(fake_docs):
    with pytest.raises(ValueError):
        _sync(fake_docs, interval_s=0)
