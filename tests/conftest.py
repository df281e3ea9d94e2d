"""
Pytest configuration and fixtures for the Jyotish agent tests.
"""

import pytest

from jyotish_agent.models import UserContext
from jyotish_agent.rag import BookIndexer, IndexTracker, RetrievalStore
from jyotish_agent.utils.config import reset_config

from tests.fakes import FakeCalculationService, FakeIndexBackend, make_calculation_client


@pytest.fixture
def profile() -> dict:
    return {
        "name": "Asha",
        "date": "1990-08-15",
        "time": "10:30",
        "location": {"lat": 28.6139, "lon": 77.2090, "name": "New Delhi"},
        "timezone": "Asia/Kolkata",
    }


@pytest.fixture
def user(profile) -> UserContext:
    return UserContext.from_dict(profile)


@pytest.fixture
def service() -> FakeCalculationService:
    return FakeCalculationService()


@pytest.fixture
def calculation_client(service):
    return make_calculation_client(service)


@pytest.fixture
def books_dir(tmp_path):
    directory = tmp_path / "books"
    directory.mkdir()
    (directory / "bphs.txt").write_text("Brihat Parashara Hora Shastra, chapter 1")
    (directory / "jaimini.md").write_text("Jaimini Sutras, adhyaya 1")
    (directory / "saravali.pdf").write_bytes(b"%PDF-1.4 saravali")
    (directory / "notes.json").write_text("{}")
    return directory


@pytest.fixture
def index_backend() -> FakeIndexBackend:
    return FakeIndexBackend()


@pytest.fixture
def tracker(tmp_path) -> IndexTracker:
    return IndexTracker(tmp_path / "tracker.json")


@pytest.fixture
def make_store(index_backend, tracker, books_dir):
    """Build a RetrievalStore over the fake backend; keyword arguments go to BookIndexer."""

    def _make(**indexer_options) -> RetrievalStore:
        indexer = BookIndexer(
            backend=index_backend,
            tracker=tracker,
            books_dir=books_dir,
            **indexer_options,
        )
        return RetrievalStore(index_backend, tracker, indexer)

    return _make


@pytest.fixture
def store(make_store) -> RetrievalStore:
    return make_store()


@pytest.fixture(autouse=True)
def clean_config():
    """Keep the cached configuration from leaking between tests."""
    reset_config()
    yield
    reset_config()
