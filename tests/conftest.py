"""Shared test fixtures and configuration."""

from datetime import datetime, timezone
import os

import pytest

from zettel_search.config import Settings
from zettel_search.domain.model import Note
from zettel_search.service_layer.search_service import NoteSearchEngine


# Pin every setting so a developer's .env or shell cannot leak into tests
TEST_ENV = {
    "ZETTEL_SEARCH_DEFAULT_MAX_RESULTS": "50",
    "ZETTEL_SEARCH_CASE_SENSITIVE": "false",
    "ZETTEL_SEARCH_BODY_EXCERPT_LENGTH": "100",
    "ZETTEL_SEARCH_SUGGESTION_LIMIT": "10",
    "ZETTEL_SEARCH_ENGINE_NAME": "test",
    "ZETTEL_SEARCH_LOG_LEVEL": "info",
    "ZETTEL_SEARCH_LOG_JSON": "true",
}

for key, value in TEST_ENV.items():
    os.environ[key] = value


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset engine environment variables before each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)


def make_note(note_id: str, title: str = "", body: str = "", tags: tuple[str, ...] | list[str] = ()) -> Note:
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return Note(id=note_id, title=title, body=body, tags=tuple(tags), created_at=stamp, updated_at=stamp)


@pytest.fixture
def sample_notes() -> list[Note]:
    """Small corpus that distinguishes AND/OR precedence and grouping."""
    return [
        make_note("a", title="Urgent: ship release", body="Deploy the build tonight.", tags=["work", "release"]),
        make_note("b", title="Weekly meeting", body="Agenda and minutes.", tags=["meeting", "work"]),
        make_note("c", title="Grocery list", body="Milk, eggs, bread.", tags=["personal"]),
        make_note("d", title="Urgent dentist call", body="Reschedule the appointment.", tags=["personal", "health"]),
        make_note("e", title="Old project notes", body="Nothing urgent here any more.", tags=["archived", "work"]),
    ]


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def engine(settings: Settings, sample_notes: list[Note]) -> NoteSearchEngine:
    search_engine = NoteSearchEngine(settings)
    search_engine.initialize(sample_notes)
    return search_engine
