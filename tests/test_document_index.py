# File: test_document_index.py
# Directory: tests
# Purpose: Snapshot semantics of the document index (empty → populated,
#          wholesale replace, old snapshots stay intact, substring search).

from core.document_index import DocumentIndex, DocumentRecord


def _rec(name, category="personale"):
    return DocumentRecord(name=name, link=f"https://x/{name}", category=category)


def test_index_starts_empty():
    idx = DocumentIndex()
    snap = idx.snapshot()
    assert idx.state == "empty"
    assert snap.is_empty and len(snap) == 0 and snap.synced_at is None


def test_publish_replaces_everything_and_bumps_version():
    idx = DocumentIndex()
    first = idx.publish([_rec("a.pdf"), _rec("b.pdf")])
    second = idx.publish([_rec("c.pdf")])

    assert idx.state == "populated"
    assert (first.version, second.version) == (1, 2)
    assert [r.name for r in idx.snapshot().records] == ["c.pdf"]
    # a reader still holding the first snapshot sees it unchanged
    assert [r.name for r in first.records] == ["a.pdf", "b.pdf"]


def test_publishing_an_empty_listing_is_still_populated():
    idx = DocumentIndex()
    idx.publish([])
    assert idx.state == "populated"
    assert len(idx.snapshot()) == 0


def test_search_substring_case_insensitive():
    idx = DocumentIndex()
    idx.publish([_rec("Q1 Report.pdf"), _rec("budget.xlsx")])
    hits = idx.snapshot().search("report")
    assert [r.name for r in hits] == ["Q1 Report.pdf"]
    assert idx.snapshot().search("REPORT") == hits
    assert idx.snapshot().search("   ") == []


def test_same_document_under_two_categories_is_kept_twice():
    idx = DocumentIndex()
    idx.publish([_rec("Policy.pdf", "personale"), _rec("Policy.pdf", "medarbejdere")])
    hits = idx.snapshot().search("policy")
    assert [r.category for r in hits] == ["personale", "medarbejdere"]
    assert [r.name for r in idx.snapshot().by_category("MEDARBEJDERE")] == ["Policy.pdf"]
