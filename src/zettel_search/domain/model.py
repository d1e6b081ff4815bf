"""Domain model for notes and the searchable corpus snapshot.

- Notes are owned by the external note store; the engine only reads them
- A snapshot is immutable and replaced wholesale, never patched in place
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Note(BaseModel):
    """Value object for a single note as seen by the search engine.

    Tags keep their first-seen order with duplicates dropped; a set input is
    sorted so the stored order is reproducible.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    title: str = ""
    body: str = ""
    tags: tuple[str, ...] = ()
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        if isinstance(value, (set, frozenset)):
            value = sorted(value)
        return tuple(dict.fromkeys(value))


def _tag_sort_key(tag: str) -> tuple[str, str]:
    return (tag.casefold(), tag)


@dataclass(frozen=True, slots=True)
class CorpusSnapshot:
    """Read-only view of the notes currently searchable."""

    notes: tuple[Note, ...] = ()
    tag_vocabulary: tuple[str, ...] = ()
    version: int = 0
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def build(cls, notes: Iterable[Note], version: int) -> CorpusSnapshot:
        """Freeze ``notes`` into a snapshot with its distinct tag vocabulary."""
        frozen_notes = tuple(notes)
        vocabulary = {tag for note in frozen_notes for tag in note.tags}
        return cls(
            notes=frozen_notes,
            tag_vocabulary=tuple(sorted(vocabulary, key=_tag_sort_key)),
            version=version,
        )

    def __len__(self) -> int:
        return len(self.notes)
