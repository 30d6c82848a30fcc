"""Enum definitions shared across the generation workflow."""

from __future__ import annotations

from enum import Enum


class SourceType(str, Enum):
    AUDIO = "AUDIO"
    TEXT = "TEXT"
    IMAGE = "IMAGE"


class WritingStyle(str, Enum):
    STANDARD = "standard"
    LITERARY = "literary"
    HUMOROUS = "humorous"
    TECHNICAL = "technical"
    SIMPLE = "simple"
    SARCASTIC = "sarcastic"


class ChapterStatus(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class ErrorKind(str, Enum):
    FATAL = "fatal"
    TRANSIENT = "transient"
