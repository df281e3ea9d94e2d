"""
Book Indexer
============

Uploads the local book corpus to the remote index, incrementally.

Indexing Strategy:
- Scan the books directory for supported files (.pdf, .txt, .docx, .md)
- Hash each file; skip it if (file name, hash) is already tracked
- Upload the rest one by one and poll each upload until it completes
- Record a book only after its upload completed, so a book that failed
  or timed out is picked up again on the next pass

A pass therefore costs O(changed books), not O(all books).

Failures:
    An upload that fails or does not finish within the hard timeout
    stops the pass with IndexingError. Books uploaded earlier in the same
    pass stay recorded.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from jyotish_agent.errors import IndexingError, UploadTimeoutError
from jyotish_agent.rag.backend import UPLOAD_COMPLETED, UPLOAD_FAILED, IndexBackend
from jyotish_agent.rag.tracker import IndexTracker, TrackedDocument, compute_file_hash
from jyotish_agent.utils.logger import Logger

logger = Logger("Indexer")

DEFAULT_EXTENSIONS = (".pdf", ".txt", ".docx", ".md")


@dataclass
class IndexReport:
    """
    Outcome of one indexing pass.

    Attributes:
        store_handle: The index the books were uploaded to
        uploaded: File names uploaded in this pass
        skipped: File names already indexed with the same hash
        total_tracked: Number of books tracked after the pass
    """
    store_handle: str
    uploaded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    total_tracked: int = 0

    def to_dict(self) -> dict:
        return {
            "storeHandle": self.store_handle,
            "uploaded": self.uploaded,
            "skipped": self.skipped,
            "newBooksIndexed": len(self.uploaded),
            "totalBooks": self.total_tracked,
        }


class BookIndexer:
    """
    Incremental uploader for the books directory.

    Example:
        indexer = BookIndexer(
            backend=backend,
            tracker=IndexTracker(Path(".book-index-tracker.json")),
            books_dir=Path("books"),
        )

        report = await indexer.index_pending("vs_abc123")
        print(f"Uploaded {len(report.uploaded)} book(s)")
    """

    def __init__(
        self,
        backend: IndexBackend,
        tracker: IndexTracker,
        books_dir: Path,
        extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
        upload_timeout_seconds: float = 600.0,
        poll_interval_seconds: float = 2.0
    ):
        """
        Initialize the indexer.

        Args:
            backend: Remote index operations
            tracker: Record of indexed books
            books_dir: Directory holding the corpus
            extensions: File suffixes to index (lowercase, with dot)
            upload_timeout_seconds: Hard limit for one upload to complete
            poll_interval_seconds: Delay between upload status checks
        """
        self.backend = backend
        self.tracker = tracker
        self.books_dir = Path(books_dir)
        self.extensions = tuple(ext.lower() for ext in extensions)
        self.upload_timeout_seconds = upload_timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds

    def list_books(self) -> list[Path]:
        """All supported files in the books directory, sorted by name."""
        if not self.books_dir.is_dir():
            logger.debug(f"Books directory {self.books_dir} does not exist")
            return []
        return sorted(
            path for path in self.books_dir.iterdir()
            if path.is_file() and path.suffix.lower() in self.extensions
        )

    def find_books_to_index(self) -> list[Path]:
        """Books whose (file name, hash) pair is not tracked yet."""
        state = self.tracker.read()
        pending = []
        for path in self.list_books():
            tracked = state.find(path.name)
            if tracked is None or tracked.file_hash != compute_file_hash(path):
                pending.append(path)
        return pending

    async def index_pending(self, handle: str) -> IndexReport:
        """
        Upload every new or changed book.

        Args:
            handle: Remote index to upload into

        Returns:
            IndexReport for the pass

        Raises:
            IndexingError: If an upload fails or times out
        """
        books = self.list_books()
        pending = set(self.find_books_to_index())
        report = IndexReport(store_handle=handle)

        logger.info(f"Found {len(pending)} new or changed book(s) out of {len(books)}")

        for path in books:
            if path not in pending:
                report.skipped.append(path.name)
                continue

            document = await self.upload(path, handle)
            self.tracker.record(document)
            report.uploaded.append(path.name)

        report.total_tracked = len(self.tracker.documents())
        return report

    async def force_index(self, path: Path, handle: str) -> TrackedDocument:
        """
        Upload one book even if its hash is already tracked.

        Writes to the tracker, so callers go through RetrievalStore.force_index.
        """
        document = await self.upload(Path(path), handle)
        self.tracker.record(document)
        return document

    async def upload(self, path: Path, handle: str) -> TrackedDocument:
        """
        Upload a book and wait for the remote index to finish processing it.

        The book is not recorded here; the caller records it on success.

        Raises:
            IndexingError: Remote failure
            UploadTimeoutError: Processing did not finish in time
        """
        file_hash = compute_file_hash(path)
        size = path.stat().st_size

        logger.info(f"Uploading: {path.name} ({size} bytes)")
        try:
            operation_id = await self.backend.upload_document(handle, path, path.name)
        except Exception as e:
            logger.error(f"Upload request failed for {path.name}", e)
            raise IndexingError(f"Upload failed for {path.name}: {e}") from e

        await self._wait_for_upload(handle, operation_id, path.name)

        logger.info(f"Upload complete: {path.name}")
        return TrackedDocument(
            file_name=path.name,
            file_hash=file_hash,
            indexed_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
            size=size,
            file_path=str(path),
        )

    async def _wait_for_upload(self, handle: str, operation_id: str, display_name: str) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()

        while True:
            try:
                status = await self.backend.get_upload_status(handle, operation_id)
            except Exception as e:
                logger.error(f"Status check failed for {display_name}", e)
                raise IndexingError(f"Status check failed for {display_name}: {e}") from e

            if status == UPLOAD_COMPLETED:
                return
            if status == UPLOAD_FAILED:
                raise IndexingError(f"Remote index rejected {display_name}")

            elapsed = loop.time() - started
            if elapsed >= self.upload_timeout_seconds:
                logger.error(f"Upload of {display_name} timed out after {elapsed:.0f}s")
                raise UploadTimeoutError(
                    f"Upload timed out after {self.upload_timeout_seconds:g}s for: {display_name}"
                )

            await asyncio.sleep(self.poll_interval_seconds)
