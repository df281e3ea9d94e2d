"""
Book Retrieval (RAG)
====================

Grounded answers from a corpus of classical astrology books.

Rather than loading book text into the model's context, the books are
uploaded once to a remote document index, and questions are answered by
a separate grounded-answer call that may only draw on that index.

Components:
- tracker.py: which books are indexed, and under which index handle
- indexer.py: incremental, hash-deduplicated uploads
- backend.py: the remote index operations (OpenAI vector stores)
- query.py: composite query construction and the grounded-answer prompt

Lifecycle:
1. The first query (or an explicit `index` run) creates the remote index
   once and persists its handle
2. Each indexing pass uploads only new or changed books
3. Queries combine the question with a digest of the latest calculation
   result and return the grounded answer plus the index handle used

Concurrency:
    Handle creation and indexing passes run under one asyncio lock, so
    concurrent callers never create two indexes or upload the same book
    twice. Queries against an existing handle do not take the lock.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from openai import AsyncOpenAI

from jyotish_agent.deadline import Deadline, bound_timeout
from jyotish_agent.errors import IndexingError, RetrievalError
from jyotish_agent.rag.backend import IndexBackend, OpenAIIndexBackend
from jyotish_agent.rag.indexer import BookIndexer, IndexReport
from jyotish_agent.rag.query import (
    DEFAULT_DIGEST_MAX_CHARS,
    QueryContext,
    build_query,
    build_retrieval_system_prompt,
)
from jyotish_agent.rag.tracker import IndexTracker, TrackedDocument, compute_file_hash
from jyotish_agent.utils.logger import Logger

logger = Logger("RAG")


@dataclass(frozen=True)
class RetrievalAnswer:
    """
    A grounded answer from the books.

    Attributes:
        answer: Answer text
        store_handle: The index that was queried
    """
    answer: str
    store_handle: str

    def to_dict(self) -> dict:
        return {
            "answer": self.answer,
            "storeName": self.store_handle,
            "source": "indexed_books",
        }


class RetrievalStore:
    """
    Main interface to the book corpus.

    Example:
        store = RetrievalStore.from_config(get_config(), AsyncOpenAI())

        # Index new or changed books
        report = await store.index_books()

        # Ask the books
        result = await store.search(
            "What does Parashara say about Gajakesari yoga?",
            user_name="Asha",
        )
        print(result.answer)
    """

    def __init__(
        self,
        backend: IndexBackend,
        tracker: IndexTracker,
        indexer: BookIndexer,
        display_name: str = "Vedic-Astrology-Books-Store",
        digest_max_chars: int = DEFAULT_DIGEST_MAX_CHARS
    ):
        """
        Initialize the store.

        Args:
            backend: Remote index operations
            tracker: Persistent record of the handle and indexed books
            indexer: Incremental uploader sharing the same tracker
            display_name: Name given to the remote index when created
            digest_max_chars: Cap on calculation context added to queries
        """
        self.backend = backend
        self.tracker = tracker
        self.indexer = indexer
        self.display_name = display_name
        self.digest_max_chars = digest_max_chars
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config, client: AsyncOpenAI) -> "RetrievalStore":
        """Wire the production store from configuration."""
        settings = config.retrieval
        backend = OpenAIIndexBackend(client, model=config.openai.retrieval_model)
        tracker = IndexTracker(settings.tracker_file)
        indexer = BookIndexer(
            backend=backend,
            tracker=tracker,
            books_dir=settings.books_dir,
            extensions=settings.extensions,
            upload_timeout_seconds=settings.upload_timeout_seconds,
            poll_interval_seconds=settings.poll_interval_seconds,
        )
        return cls(
            backend=backend,
            tracker=tracker,
            indexer=indexer,
            display_name=settings.store_display_name,
            digest_max_chars=settings.digest_max_chars,
        )

    async def ensure_store_handle(self) -> str:
        """
        Return the index handle, creating the remote index if needed.

        Creation happens at most once, however many callers race here.
        """
        handle = self.tracker.store_handle()
        if handle:
            return handle
        async with self._lock:
            return await self._ensure_store_handle_locked()

    async def _ensure_store_handle_locked(self) -> str:
        handle = self.tracker.store_handle()
        if handle:
            return handle

        logger.info("Creating new book index...")
        handle = await self.backend.create_index(self.display_name)
        if not handle:
            raise IndexingError("Failed to create book index")
        self.tracker.set_store_handle(handle)
        logger.info(f"Book index created: {handle}")
        return handle

    async def _open_index_locked(self) -> str:
        try:
            return await self._ensure_store_handle_locked()
        except IndexingError:
            raise
        except Exception as e:
            logger.error("Could not create book index", e)
            raise IndexingError(f"Could not create book index: {e}") from e

    async def index_books(self) -> IndexReport:
        """
        Run one indexing pass. Passes are serialized.

        Raises:
            IndexingError: If index creation or an upload fails
        """
        async with self._lock:
            handle = await self._open_index_locked()
            report = await self.indexer.index_pending(handle)

        logger.info(
            f"Indexing complete. New: {len(report.uploaded)}, Total: {report.total_tracked}"
        )
        return report

    async def force_index(self, path: Path) -> TrackedDocument:
        """
        Re-upload one book even if its hash is already tracked.

        Runs under the same lock as indexing passes.

        Raises:
            IndexingError: If index creation or the upload fails
        """
        async with self._lock:
            handle = await self._open_index_locked()
            logger.info(f"Re-indexing {Path(path).name}")
            return await self.indexer.force_index(path, handle)

    async def search(
        self,
        query: str,
        topic: str | None = None,
        user_name: str | None = None,
        tool_name: str | None = None,
        tool_data: dict[str, Any] | None = None,
        timeout: float | None = None,
        deadline: Deadline | None = None
    ) -> RetrievalAnswer:
        """
        Ask the books a question.

        If no index exists yet, one indexing pass runs first. The deadline
        bounds that pass as well as the grounded-answer call.

        Args:
            query: The question, verbatim
            topic: Optional focus (remedies, yogas, ...)
            user_name: The user's name, added to the query and prompt
            tool_name: Tool that produced tool_data
            tool_data: Latest calculation result, digested into the query
            timeout: Limit for the grounded-answer call
            deadline: Optional request deadline

        Returns:
            RetrievalAnswer with the answer and the handle used

        Raises:
            RetrievalError: If the index is unavailable, the query fails or
                the deadline passes first
        """
        handle = self.tracker.store_handle()
        if not handle:
            logger.warning("No book index found, initializing...")
            try:
                if deadline is None:
                    report = await self.index_books()
                else:
                    report = await asyncio.wait_for(self.index_books(), deadline.remaining())
            except IndexingError as e:
                raise RetrievalError(f"The book index is not available: {e}") from e
            except asyncio.TimeoutError as e:
                logger.warning("Deadline reached while building the book index")
                raise RetrievalError("The book index is still being built") from e
            handle = report.store_handle

        if deadline is not None and deadline.expired:
            raise RetrievalError("No time left to search the books")

        composite = build_query(
            QueryContext(
                question=query,
                user_name=user_name,
                topic=topic,
                tool_name=tool_name,
                tool_data=tool_data,
            ),
            digest_max_chars=self.digest_max_chars,
        )
        system_prompt = build_retrieval_system_prompt(user_name)

        logger.info(f"Querying book index {handle}", {"query_chars": len(composite)})
        try:
            answer = await self.backend.grounded_query(
                handle, composite, system_prompt, timeout=bound_timeout(deadline, timeout)
            )
        except Exception as e:
            logger.error("Book query failed", e)
            raise RetrievalError(f"Book search failed: {e}") from e

        return RetrievalAnswer(answer=answer or "No response generated", store_handle=handle)

    def status(self) -> dict:
        """Current handle and indexed books."""
        state = self.tracker.read()
        return {
            "hasStore": bool(state.store_handle),
            "storeHandle": state.store_handle,
            "indexedBooks": [doc.to_dict() for doc in state.documents],
        }


__all__ = [
    "RetrievalStore",
    "RetrievalAnswer",
    "IndexBackend",
    "OpenAIIndexBackend",
    "BookIndexer",
    "IndexReport",
    "IndexTracker",
    "TrackedDocument",
    "QueryContext",
    "build_query",
    "compute_file_hash",
]
