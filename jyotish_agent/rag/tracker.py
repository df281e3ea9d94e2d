"""
Book Index Tracker
==================

Remembers which books have been uploaded to the remote index, so that
each indexing pass only uploads what changed.

The tracker is a JSON file:

    {
      "storeHandle": "vs_abc123",
      "createdAt": "2025-01-31T10:30:00+00:00",
      "updatedAt": "2025-01-31T11:02:10+00:00",
      "documents": [
        {"fileName": "bphs.pdf", "filePath": "books/bphs.pdf",
         "hash": "9e107d9d372bb6826bd81d3542a419d6",
         "indexedAt": "2025-01-31T11:02:10+00:00", "size": 1843221}
      ]
    }

Document identity is (fileName, hash): an edited file gets a new hash and
is uploaded again, replacing its entry. Entries are never deleted by an
indexing pass.

Every change is a read-modify-write under a lock, and the file is
replaced atomically. A missing or unreadable file reads as empty state.
"""

import hashlib
import json
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from jyotish_agent.utils.logger import Logger

logger = Logger("BookTracker")

_HASH_CHUNK_SIZE = 1024 * 1024


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def compute_file_hash(path: Path) -> str:
    """MD5 of a file's content, read in chunks."""
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


@dataclass
class TrackedDocument:
    """
    A book that has been uploaded to the remote index.

    Attributes:
        file_name: Base name of the file, used as the display name
        file_hash: Content hash at upload time
        indexed_at: ISO timestamp of the completed upload
        size: File size in bytes
        file_path: Where the file was read from
    """
    file_name: str
    file_hash: str
    indexed_at: str
    size: int
    file_path: str | None = None

    def to_dict(self) -> dict:
        return {
            "fileName": self.file_name,
            "filePath": self.file_path,
            "hash": self.file_hash,
            "indexedAt": self.indexed_at,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TrackedDocument":
        return cls(
            file_name=data["fileName"],
            file_hash=data.get("hash") or data["fileHash"],
            indexed_at=data.get("indexedAt", ""),
            size=int(data.get("size", data.get("fileSize", 0)) or 0),
            file_path=data.get("filePath"),
        )


@dataclass
class TrackerState:
    """Contents of the tracker file."""
    store_handle: str | None = None
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)
    documents: list[TrackedDocument] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "storeHandle": self.store_handle,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "documents": [doc.to_dict() for doc in self.documents],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TrackerState":
        # Older tracker files used storeName/books
        documents = data.get("documents", data.get("books", []))
        return cls(
            store_handle=data.get("storeHandle", data.get("storeName")),
            created_at=data.get("createdAt") or _now(),
            updated_at=data.get("updatedAt") or _now(),
            documents=[TrackedDocument.from_dict(d) for d in documents],
        )

    def find(self, file_name: str) -> TrackedDocument | None:
        for doc in self.documents:
            if doc.file_name == file_name:
                return doc
        return None


class IndexTracker:
    """
    File-backed record of the index handle and the indexed books.

    Example:
        tracker = IndexTracker(Path(".book-index-tracker.json"))

        if not tracker.is_indexed("bphs.pdf", file_hash):
            ...upload...
            tracker.record(TrackedDocument("bphs.pdf", file_hash, now, size))
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.RLock()

    def read(self) -> TrackerState:
        """
        Read the tracker file.

        Returns:
            The stored state, or a fresh empty state if the file is
            missing or cannot be parsed
        """
        if not self.path.exists():
            return TrackerState()

        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ValueError("tracker root is not an object")
            return TrackerState.from_dict(raw)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Tracker file {self.path} is unreadable, starting empty: {e}")
            return TrackerState()

    def _write(self, state: TrackerState) -> None:
        state.updated_at = _now()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2)
        os.replace(tmp_path, self.path)

    def store_handle(self) -> str | None:
        return self.read().store_handle

    def set_store_handle(self, handle: str) -> None:
        with self._lock:
            state = self.read()
            state.store_handle = handle
            self._write(state)
        logger.debug(f"Stored index handle {handle}")

    def is_indexed(self, file_name: str, file_hash: str) -> bool:
        doc = self.read().find(file_name)
        return doc is not None and doc.file_hash == file_hash

    def record(self, document: TrackedDocument) -> None:
        """Add a document, replacing any entry with the same file name."""
        with self._lock:
            state = self.read()
            state.documents = [d for d in state.documents if d.file_name != document.file_name]
            state.documents.append(document)
            self._write(state)

    def documents(self) -> list[TrackedDocument]:
        return self.read().documents

    def clear(self) -> None:
        """Forget everything, including the index handle."""
        with self._lock:
            if self.path.exists():
                self.path.unlink()
        logger.info("Tracker cleared")
