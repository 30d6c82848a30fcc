"""Domain models describing projects, outlines, and chapter results."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..enums import ChapterStatus, SourceType
from ..utils.validators import ensure_dense_numbering

PROTECTED_PROJECT_FIELDS = frozenset({"id", "chapters", "last_modified"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Source(BaseModel):
    """Raw material supplied by the author."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    type: SourceType
    name: str = Field(..., min_length=1, max_length=300)
    content: str = Field("", description="Note text, or base64 data for audio/image sources")
    mime_type: Optional[str] = None
    transcription: Optional[str] = Field(None, description="Transcript for audio sources")
    is_processing: bool = False


class ChapterSpec(BaseModel):
    """One outline entry; immutable for the duration of a run."""

    model_config = ConfigDict(frozen=True)

    number: int = Field(..., ge=1)
    title: str = Field(..., min_length=1, max_length=300)
    summary: str = Field("", max_length=5000)


class BookOutline(BaseModel):
    """Book title, synopsis and the ordered chapter list."""

    title: str = Field(..., min_length=1, max_length=300)
    description: str = ""
    chapters: list[ChapterSpec] = Field(default_factory=list)
    cover_image: Optional[str] = None
    back_cover_image: Optional[str] = None

    @field_validator("chapters")
    @classmethod
    def validate_numbering(cls, chapters: list[ChapterSpec]) -> list[ChapterSpec]:
        ensure_dense_numbering((chapter.number for chapter in chapters), field_name="Chapter numbers")
        return sorted(chapters, key=lambda chapter: chapter.number)


class ChapterResult(BaseModel):
    """Generated manuscript for a single outline chapter."""

    number: int = Field(..., ge=1)
    title: str
    content: str = ""
    status: ChapterStatus = ChapterStatus.PENDING

    @property
    def is_complete(self) -> bool:
        return self.status == ChapterStatus.DONE and bool(self.content.strip())


class BookProject(BaseModel):
    """A single book being authored."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str = "Untitled Book"
    last_modified: datetime = Field(default_factory=_utcnow)
    sources: list[Source] = Field(default_factory=list)
    outline: Optional[BookOutline] = None
    chapters: list[ChapterResult] = Field(default_factory=list)
    current_step: int = Field(0, ge=0, le=3, description="0 sources, 1 outline, 2 writing, 3 read")
    series_id: Optional[str] = None
    series_index: Optional[int] = Field(None, ge=1)
    audio_voice: Optional[str] = None

    def chapter(self, number: int) -> ChapterResult | None:
        for result in self.chapters:
            if result.number == number:
                return result
        return None


class ProjectPatch(BaseModel):
    """Partial update merged into the latest stored project.

    ``updates`` sets top-level fields, ``chapters`` replaces the whole chapter
    list and ``chapter_updates`` replaces individual chapters by number.
    Anything not named is left untouched.
    """

    updates: dict[str, Any] = Field(default_factory=dict)
    chapters: Optional[list[ChapterResult]] = None
    chapter_updates: list[ChapterResult] = Field(default_factory=list)

    @field_validator("updates")
    @classmethod
    def reject_protected_fields(cls, value: dict[str, Any]) -> dict[str, Any]:
        blocked = PROTECTED_PROJECT_FIELDS.intersection(value)
        if blocked:
            raise ValueError(f"Fields cannot be patched directly: {', '.join(sorted(blocked))}")
        return value

    def apply(self, project: BookProject) -> BookProject:
        data = project.model_dump()
        data.update(self.updates)

        chapters = data["chapters"]
        if self.chapters is not None:
            chapters = [chapter.model_dump() for chapter in self.chapters]
        for update in self.chapter_updates:
            # Chapters outside the reconciled set are ignored until the next run.
            chapters = [
                update.model_dump() if existing["number"] == update.number else existing
                for existing in chapters
            ]
        data["chapters"] = chapters
        data["last_modified"] = _utcnow()
        return BookProject.model_validate(data)
