"""Pydantic models for the generation API."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Literal, Optional

from pydantic import BaseModel, Field

from manuscript_schemas import BookOutline, ProjectPatch, RunState, Source, WritingStyle

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from .pipeline import GenerationRun


class ProviderOverride(BaseModel):
    name: Optional[str] = Field(None, description="Provider identifier: gemini, openai, mock")
    model: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0, le=2)
    max_output_tokens: Optional[int] = Field(None, ge=16)


class GenerationRequest(BaseModel):
    style: WritingStyle = WritingStyle.STANDARD


class RunStatus(BaseModel):
    run_id: str
    project_id: str
    style: WritingStyle
    state: RunState
    cursor: int
    aborted: bool
    abort_reason: Optional[str] = None
    completed: List[int] = Field(default_factory=list)
    failed: List[int] = Field(default_factory=list)
    skipped: List[int] = Field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    fatal_reason: Optional[str] = None

    @classmethod
    def from_run(cls, run: "GenerationRun", fatal_reason: str | None = None) -> "RunStatus":
        return cls(
            run_id=run.run_id,
            project_id=run.project_id,
            style=run.style,
            state=run.state,
            cursor=run.cursor,
            aborted=run.aborted,
            abort_reason=run.abort_reason,
            completed=list(run.completed),
            failed=list(run.failed),
            skipped=list(run.skipped),
            started_at=run.started_at,
            finished_at=run.finished_at,
            fatal_reason=fatal_reason,
        )


class ProjectUpdateRequest(BaseModel):
    """Fields the editor may change at any time, including during a run."""

    title: Optional[str] = Field(None, min_length=1, max_length=300)
    outline: Optional[BookOutline] = None
    sources: Optional[List[Source]] = None
    current_step: Optional[int] = Field(None, ge=0, le=3)
    series_id: Optional[str] = None
    series_index: Optional[int] = Field(None, ge=1)
    audio_voice: Optional[str] = None

    def to_patch(self) -> ProjectPatch:
        return ProjectPatch(updates=self.model_dump(exclude_unset=True))


class OutlineRequest(BaseModel):
    provider: ProviderOverride | None = None


class RefineRequest(BaseModel):
    instruction: str = Field(..., min_length=1, max_length=2000)
    provider: ProviderOverride | None = None


class StyleOption(BaseModel):
    style: WritingStyle
    instruction: str


class ProjectCreateRequest(BaseModel):
    title: str = Field("Untitled Book", min_length=1, max_length=300)
    sources: List[Source] = Field(default_factory=list)
    outline: Optional[BookOutline] = None
    series_id: Optional[str] = None
    series_index: Optional[int] = Field(None, ge=1)


class CoverRequest(BaseModel):
    side: Literal["front", "back"] = "front"
    aspect_ratio: Literal["1:1", "3:4", "4:3", "16:9", "9:16"] = "1:1"
    provider: ProviderOverride | None = None


class SpeechRequest(BaseModel):
    voice: Optional[str] = Field(None, min_length=1, max_length=64, description="Defaults to the project voice")
    provider: ProviderOverride | None = None


class SpeechResponse(BaseModel):
    number: int
    voice: str
    mime_type: str
    audio: str = Field(..., description="Base64 encoded audio")
    truncated: bool = False
