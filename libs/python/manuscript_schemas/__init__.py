"""Shared domain schemas for Manuscript Studio."""

from .enums import ChapterStatus, ErrorKind, RunState, SourceType, WritingStyle
from .models.project import (
    BookOutline,
    BookProject,
    ChapterResult,
    ChapterSpec,
    ProjectPatch,
    Source,
)

__all__ = [
    "ChapterStatus",
    "ErrorKind",
    "RunState",
    "SourceType",
    "WritingStyle",
    "BookOutline",
    "BookProject",
    "ChapterResult",
    "ChapterSpec",
    "ProjectPatch",
    "Source",
]
