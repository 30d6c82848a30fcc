"""Exceptions raised by the generation service."""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base error for generation pipeline failures."""


class GenerationInProgressError(PipelineError):
    """Raised when a run is requested for a project that already has one."""

    def __init__(self, project_id: str) -> None:
        super().__init__(f"Generation already in progress for project {project_id}")
        self.project_id = project_id


class OutlineMissingError(PipelineError):
    """Raised when a run is requested for a project without an outline."""

    def __init__(self, project_id: str) -> None:
        super().__init__(f"Project {project_id} has no outline to generate from")
        self.project_id = project_id


class ProjectNotFoundError(PipelineError, KeyError):
    """Raised by stores when a project id is unknown."""

    def __init__(self, project_id: str) -> None:
        super().__init__(f"Project {project_id} not found")
        self.project_id = project_id

    def __str__(self) -> str:
        return self.args[0]


class FatalGenerationError(PipelineError):
    """The backend credential or permission is unusable for the rest of the run."""

    def __init__(self, chapter_number: int, cause: BaseException) -> None:
        super().__init__(_describe(cause))
        self.chapter_number = chapter_number
        self.cause = cause

    @property
    def reason(self) -> str:
        return self.args[0]


class ChapterGenerationFailed(PipelineError):
    """Transient failures exhausted the retry budget for one chapter."""

    def __init__(self, chapter_number: int, attempts: int, last_error: BaseException | None) -> None:
        super().__init__(
            f"Chapter {chapter_number} generation failed after {attempts} attempts"
        )
        self.chapter_number = chapter_number
        self.attempts = attempts
        self.last_error = last_error


def _describe(error: BaseException) -> str:
    message = getattr(error, "message", None) or str(error)
    return message or error.__class__.__name__
