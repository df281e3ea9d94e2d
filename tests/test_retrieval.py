"""
Tests for incremental indexing and book search.
"""

import asyncio

import pytest

from jyotish_agent.deadline import Deadline
from jyotish_agent.errors import IndexingError, RetrievalError, UploadTimeoutError
from jyotish_agent.rag.backend import UPLOAD_IN_PROGRESS

from tests.fakes import DASHA


@pytest.mark.asyncio
async def test_first_pass_uploads_supported_books(store, index_backend):
    report = await store.index_books()

    assert report.uploaded == ["bphs.txt", "jaimini.md", "saravali.pdf"]
    assert report.skipped == []
    assert report.total_tracked == 3
    assert index_backend.created == ["Vedic-Astrology-Books-Store"]


@pytest.mark.asyncio
async def test_second_pass_uploads_nothing(store, index_backend):
    await store.index_books()
    report = await store.index_books()

    assert report.uploaded == []
    assert sorted(report.skipped) == ["bphs.txt", "jaimini.md", "saravali.pdf"]
    assert len(index_backend.uploads) == 3
    assert len(index_backend.created) == 1


@pytest.mark.asyncio
async def test_changed_book_is_uploaded_again(store, index_backend, books_dir, tracker):
    await store.index_books()
    (books_dir / "jaimini.md").write_text("Jaimini Sutras, adhyaya 2")

    report = await store.index_books()

    assert report.uploaded == ["jaimini.md"]
    assert index_backend.uploads == ["bphs.txt", "jaimini.md", "saravali.pdf", "jaimini.md"]
    assert len(tracker.documents()) == 3


@pytest.mark.asyncio
async def test_upload_timeout_leaves_book_unrecorded(make_store, index_backend, tracker):
    store = make_store(upload_timeout_seconds=0.05, poll_interval_seconds=0.01)
    index_backend.statuses["jaimini.md"] = UPLOAD_IN_PROGRESS

    with pytest.raises(UploadTimeoutError, match="jaimini.md"):
        await store.index_books()

    assert [d.file_name for d in tracker.documents()] == ["bphs.txt"]

    del index_backend.statuses["jaimini.md"]
    report = await store.index_books()

    assert report.uploaded == ["jaimini.md", "saravali.pdf"]
    assert report.skipped == ["bphs.txt"]


@pytest.mark.asyncio
async def test_rejected_upload_fails_the_pass(store, index_backend, tracker):
    index_backend.statuses["bphs.txt"] = "failed"

    with pytest.raises(IndexingError, match="rejected bphs.txt"):
        await store.index_books()

    assert tracker.documents() == []


@pytest.mark.asyncio
async def test_concurrent_callers_create_one_index(store, index_backend):
    index_backend.create_delay = 0.01

    handles = await asyncio.gather(*(store.ensure_store_handle() for _ in range(5)))

    assert len(set(handles)) == 1
    assert len(index_backend.created) == 1


@pytest.mark.asyncio
async def test_concurrent_passes_upload_each_book_once(store, index_backend):
    await asyncio.gather(store.index_books(), store.index_books(), store.index_books())

    assert sorted(index_backend.uploads) == ["bphs.txt", "jaimini.md", "saravali.pdf"]


@pytest.mark.asyncio
async def test_search_indexes_first_when_no_index_exists(store, index_backend):
    answer = await store.search("What is Gajakesari yoga?", user_name="Asha")

    assert answer.store_handle == "vs_1"
    assert len(index_backend.uploads) == 3
    assert answer.to_dict() == {
        "answer": index_backend.answer,
        "storeName": "vs_1",
        "source": "indexed_books",
    }


@pytest.mark.asyncio
async def test_search_reuses_existing_index(store, index_backend, tracker):
    tracker.set_store_handle("vs_existing")

    answer = await store.search("Rahu in the 7th house")

    assert answer.store_handle == "vs_existing"
    assert index_backend.uploads == []
    assert index_backend.created == []


@pytest.mark.asyncio
async def test_search_adds_calculation_digest(store, index_backend, tracker):
    tracker.set_store_handle("vs_existing")

    await store.search("remedies for this period", tool_name="getDasha", tool_data=DASHA)

    _, query, _ = index_backend.queries[0]
    assert query.endswith("Astrological Context: Current Mahadasha: Jupiter, Current Antardasha: Saturn")


@pytest.mark.asyncio
async def test_query_failure_is_a_retrieval_error(store, index_backend, tracker):
    tracker.set_store_handle("vs_existing")
    index_backend.query_error = RuntimeError("rate limited")

    with pytest.raises(RetrievalError, match="rate limited"):
        await store.search("Mangal dosha")


def test_status_reports_tracked_books(store, tracker):
    tracker.set_store_handle("vs_existing")

    status = store.status()

    assert status == {"hasStore": True, "storeHandle": "vs_existing", "indexedBooks": []}


@pytest.mark.asyncio
async def test_force_index_reuploads_an_unchanged_book(store, index_backend, books_dir, tracker):
    await store.index_books()
    before = tracker.read().find("bphs.txt")

    document = await store.force_index(books_dir / "bphs.txt")

    assert index_backend.uploads == ["bphs.txt", "jaimini.md", "saravali.pdf", "bphs.txt"]
    assert document.file_hash == before.file_hash
    assert len(tracker.documents()) == 3
    assert len(index_backend.created) == 1


@pytest.mark.asyncio
async def test_force_index_waits_for_a_running_pass(make_store, index_backend, books_dir):
    store = make_store(poll_interval_seconds=0.01)
    index_backend.create_delay = 0.05

    await asyncio.gather(store.index_books(), store.force_index(books_dir / "jaimini.md"))

    assert index_backend.created == ["Vedic-Astrology-Books-Store"]
    assert sorted(index_backend.uploads) == ["bphs.txt", "jaimini.md", "jaimini.md", "saravali.pdf"]


@pytest.mark.asyncio
async def test_search_stops_indexing_at_the_deadline(make_store, index_backend, tracker):
    store = make_store(upload_timeout_seconds=3.0, poll_interval_seconds=0.01)
    index_backend.statuses["bphs.txt"] = UPLOAD_IN_PROGRESS

    started = asyncio.get_running_loop().time()
    with pytest.raises(RetrievalError, match="still being built"):
        await store.search("Gajakesari yoga", deadline=Deadline.after(0.2))

    assert asyncio.get_running_loop().time() - started < 1.0
    assert index_backend.queries == []
    assert tracker.documents() == []

    del index_backend.statuses["bphs.txt"]
    report = await store.index_books()
    assert report.uploaded == ["bphs.txt", "jaimini.md", "saravali.pdf"]


@pytest.mark.asyncio
async def test_expired_deadline_skips_the_query(store, index_backend, tracker):
    tracker.set_store_handle("vs_existing")

    with pytest.raises(RetrievalError, match="No time left"):
        await store.search("Mangal dosha", deadline=Deadline.after(0))

    assert index_backend.queries == []
