"""
Tests for the book index tracker.
"""

import json

from jyotish_agent.rag.tracker import IndexTracker, TrackedDocument, compute_file_hash


def _doc(name: str, file_hash: str) -> TrackedDocument:
    return TrackedDocument(file_name=name, file_hash=file_hash, indexed_at="2025-01-31T10:00:00+00:00", size=10)


def test_missing_file_is_empty(tracker):
    state = tracker.read()

    assert state.store_handle is None
    assert state.documents == []


def test_corrupt_file_starts_empty_and_recovers(tracker):
    tracker.path.write_text("{ not json")

    assert tracker.read().documents == []

    tracker.record(_doc("bphs.txt", "abc"))
    assert tracker.is_indexed("bphs.txt", "abc")


def test_record_replaces_same_file_name(tracker):
    tracker.record(_doc("bphs.txt", "old"))
    tracker.record(_doc("jaimini.md", "j1"))
    tracker.record(_doc("bphs.txt", "new"))

    documents = tracker.documents()
    assert [d.file_name for d in documents] == ["jaimini.md", "bphs.txt"]
    assert tracker.is_indexed("bphs.txt", "new")
    assert not tracker.is_indexed("bphs.txt", "old")


def test_handle_survives_a_new_tracker_instance(tracker):
    tracker.set_store_handle("vs_123")
    tracker.record(_doc("bphs.txt", "abc"))

    reopened = IndexTracker(tracker.path)

    assert reopened.store_handle() == "vs_123"
    assert reopened.is_indexed("bphs.txt", "abc")
    assert not tracker.path.with_name(tracker.path.name + ".tmp").exists()


def test_legacy_tracker_keys_are_read(tracker):
    tracker.path.write_text(json.dumps({
        "storeName": "fileSearchStores/books-1",
        "books": [{"fileName": "bphs.txt", "fileHash": "abc", "fileSize": 42}],
    }))

    state = tracker.read()

    assert state.store_handle == "fileSearchStores/books-1"
    assert state.documents[0].size == 42
    assert tracker.is_indexed("bphs.txt", "abc")


def test_clear_forgets_everything(tracker):
    tracker.set_store_handle("vs_123")
    tracker.clear()

    assert tracker.store_handle() is None


def test_hash_changes_with_one_byte(tmp_path):
    path = tmp_path / "book.txt"
    path.write_bytes(b"Saravali")
    before = compute_file_hash(path)

    path.write_bytes(b"saravali")

    assert compute_file_hash(path) != before
    assert len(before) == 32
