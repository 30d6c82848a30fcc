"""FastAPI entrypoint for the manuscript generation service."""

from __future__ import annotations

import logging
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Request, status

from manuscript_observability import log_context, setup_fastapi_metrics, setup_logging
from manuscript_providers import (
    GenerationError,
    ProviderConfigError,
    ProviderError,
    ProviderResponseError,
    UnsupportedOperationError,
)
from manuscript_schemas import BookProject, ChapterResult, ChapterStatus, ProjectPatch, WritingStyle

from .container import ServiceContainer
from .errors import GenerationInProgressError, ProjectNotFoundError
from .media import generate_cover_image, synthesize_chapter_speech
from .models import (
    CoverRequest,
    GenerationRequest,
    OutlineRequest,
    ProjectCreateRequest,
    ProjectUpdateRequest,
    RefineRequest,
    RunStatus,
    SpeechRequest,
    SpeechResponse,
    StyleOption,
)
from .runs import RunRegistry
from .structure import generate_outline
from .writing import refine_chapter_text
from .writing.prompts import style_instruction

SERVICE_NAME = "generation"
setup_logging(SERVICE_NAME)
logger = logging.getLogger(__name__)


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_registry(container: ServiceContainer = Depends(get_container)) -> RunRegistry:
    try:
        return container.registry
    except ProviderConfigError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


async def _load_project(container: ServiceContainer, project_id: str) -> BookProject:
    try:
        return await container.store.load(project_id)
    except ProjectNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found") from exc


def _provider_error(exc: Exception) -> HTTPException:
    if isinstance(exc, ProviderConfigError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    if isinstance(exc, UnsupportedOperationError):
        return HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail=str(exc))
    if isinstance(exc, GenerationError) and exc.fatal:
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Stopped due to API error: {exc}")
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc) or "Provider request failed")


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    app = FastAPI(title="Manuscript Studio Generation", version="0.1.0")
    app.state.container = container or ServiceContainer()
    setup_fastapi_metrics(app, service_name=SERVICE_NAME)

    @app.on_event("shutdown")
    async def shutdown() -> None:
        await app.state.container.close()

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/styles", response_model=List[StyleOption], tags=["generation"])
    async def styles() -> List[StyleOption]:
        return [StyleOption(style=style, instruction=style_instruction(style)) for style in WritingStyle]

    @app.get("/projects", response_model=List[BookProject], tags=["projects"])
    async def list_projects(container: ServiceContainer = Depends(get_container)) -> List[BookProject]:
        return await container.store.list_projects()

    @app.post("/projects", response_model=BookProject, status_code=status.HTTP_201_CREATED, tags=["projects"])
    async def create_project(
        payload: ProjectCreateRequest,
        container: ServiceContainer = Depends(get_container),
    ) -> BookProject:
        project = BookProject(
            title=payload.title,
            sources=payload.sources,
            outline=payload.outline,
            series_id=payload.series_id,
            series_index=payload.series_index,
            current_step=1 if payload.outline else 0,
        )
        await container.store.save(project)
        logger.info("Created project", extra={"project_id": project.id, "source_count": len(project.sources)})
        return project

    @app.get("/projects/{project_id}", response_model=BookProject, tags=["projects"])
    async def get_project(project_id: str, container: ServiceContainer = Depends(get_container)) -> BookProject:
        return await _load_project(container, project_id)

    @app.patch("/projects/{project_id}", response_model=BookProject, tags=["projects"])
    async def update_project(
        project_id: str,
        payload: ProjectUpdateRequest,
        container: ServiceContainer = Depends(get_container),
    ) -> BookProject:
        try:
            return await container.store.merge(project_id, payload.to_patch())
        except ProjectNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found") from exc

    @app.post("/projects/{project_id}/outline", response_model=BookProject, tags=["projects"])
    async def create_outline(
        project_id: str,
        payload: OutlineRequest | None = None,
        container: ServiceContainer = Depends(get_container),
    ) -> BookProject:
        project = await _load_project(container, project_id)
        if not project.sources:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Project has no sources")

        with log_context(project_id=project_id, stage="outline"):
            try:
                provider = container.provider(payload.provider if payload else None)
                outline = await generate_outline(provider, project.sources)
            except (ProviderConfigError, ProviderResponseError, GenerationError) as exc:
                logger.warning("Outline generation failed: %s", exc)
                raise _provider_error(exc) from exc

            logger.info("Outline generated", extra={"chapter_count": len(outline.chapters)})
        patch = ProjectPatch(updates={"outline": outline, "title": outline.title, "current_step": 1})
        return await container.store.merge(project_id, patch)

    @app.post(
        "/projects/{project_id}/generation",
        response_model=RunStatus,
        status_code=status.HTTP_202_ACCEPTED,
        tags=["generation"],
    )
    async def start_generation(
        project_id: str,
        payload: GenerationRequest | None = None,
        container: ServiceContainer = Depends(get_container),
        registry: RunRegistry = Depends(get_registry),
    ) -> RunStatus:
        project = await _load_project(container, project_id)
        if project.outline is None or not project.outline.chapters:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Project has no outline")

        style = payload.style if payload else WritingStyle.STANDARD
        try:
            run = registry.start(project_id, style)
        except GenerationInProgressError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

        if project.current_step < 2:
            await container.store.merge(project_id, ProjectPatch(updates={"current_step": 2}))
        return RunStatus.from_run(run)

    @app.get("/projects/{project_id}/generation", response_model=RunStatus, tags=["generation"])
    async def generation_status(project_id: str, registry: RunRegistry = Depends(get_registry)) -> RunStatus:
        run = registry.status(project_id)
        if run is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No generation run for project")
        return RunStatus.from_run(run, registry.fatal_reason(project_id))

    @app.delete(
        "/projects/{project_id}/generation",
        response_model=RunStatus,
        status_code=status.HTTP_202_ACCEPTED,
        tags=["generation"],
    )
    async def cancel_generation(project_id: str, registry: RunRegistry = Depends(get_registry)) -> RunStatus:
        if not registry.cancel(project_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active generation run")
        run = registry.status(project_id)
        return RunStatus.from_run(run, registry.fatal_reason(project_id))

    @app.post(
        "/projects/{project_id}/chapters/{number}/refine",
        response_model=ChapterResult,
        tags=["generation"],
    )
    async def refine_chapter(
        project_id: str,
        number: int,
        payload: RefineRequest,
        container: ServiceContainer = Depends(get_container),
    ) -> ChapterResult:
        project = await _load_project(container, project_id)
        chapter = project.chapter(number)
        if chapter is None or not chapter.is_complete:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Chapter has no content to refine")

        with log_context(project_id=project_id, chapter=number, stage="refine"):
            try:
                provider = container.provider(payload.provider)
                content = await refine_chapter_text(provider, chapter.content, payload.instruction)
            except (ProviderConfigError, GenerationError) as exc:
                logger.warning("Chapter refinement failed: %s", exc)
                raise _provider_error(exc) from exc

        refined = ChapterResult(number=number, title=chapter.title, content=content, status=ChapterStatus.DONE)
        await container.store.merge(project_id, ProjectPatch(chapter_updates=[refined]))
        return refined

    @app.post("/projects/{project_id}/cover", response_model=BookProject, tags=["projects"])
    async def create_cover(
        project_id: str,
        payload: CoverRequest | None = None,
        container: ServiceContainer = Depends(get_container),
    ) -> BookProject:
        payload = payload or CoverRequest()
        project = await _load_project(container, project_id)
        if project.outline is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Project has no outline")

        with log_context(project_id=project_id, stage="cover"):
            try:
                provider = container.provider(payload.provider)
                image = await generate_cover_image(
                    provider, project.outline, side=payload.side, aspect_ratio=payload.aspect_ratio
                )
            except ProviderError as exc:
                logger.warning("Cover generation failed: %s", exc)
                raise _provider_error(exc) from exc

        # Attach to the latest outline so edits made while the image rendered survive.
        latest = await _load_project(container, project_id)
        outline = latest.outline or project.outline
        field_name = "cover_image" if payload.side == "front" else "back_cover_image"
        patch = ProjectPatch(updates={"outline": outline.model_copy(update={field_name: image})})
        return await container.store.merge(project_id, patch)

    @app.post(
        "/projects/{project_id}/chapters/{number}/speech",
        response_model=SpeechResponse,
        tags=["generation"],
    )
    async def narrate_chapter(
        project_id: str,
        number: int,
        payload: SpeechRequest | None = None,
        container: ServiceContainer = Depends(get_container),
    ) -> SpeechResponse:
        payload = payload or SpeechRequest()
        project = await _load_project(container, project_id)
        chapter = project.chapter(number)
        if chapter is None or not chapter.is_complete:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Chapter has no content to read")

        with log_context(project_id=project_id, chapter=number, stage="speech"):
            try:
                provider = container.provider(payload.provider)
                clip = await synthesize_chapter_speech(
                    provider, chapter.content, payload.voice or project.audio_voice
                )
            except ProviderError as exc:
                logger.warning("Chapter narration failed: %s", exc)
                raise _provider_error(exc) from exc

        return SpeechResponse(
            number=number,
            voice=clip.voice,
            mime_type=clip.mime_type,
            audio=clip.audio,
            truncated=clip.truncated,
        )

    return app


app = create_app()
