"""Outline generation from author sources."""

from __future__ import annotations

import json
import logging
from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from manuscript_observability import observe_provider_response
from manuscript_providers import LLMProvider, ProviderRequest
from manuscript_providers.exceptions import ProviderResponseError
from manuscript_schemas import BookOutline, ChapterSpec, Source

from ..context import attachments_for, build_source_context
from .prompts import OUTLINE_PROMPT, OUTLINE_SCHEMA, OUTLINE_SYSTEM_PROMPT

logger = logging.getLogger(__name__)
SERVICE_NAME = "generation"


class OutlineChapterPayload(BaseModel):
    """Chapter entry as emitted by the model."""

    model_config = ConfigDict(populate_by_name=True)

    chapter_number: int = Field(..., alias="chapterNumber")
    title: str = Field(..., min_length=1)
    summary: str = ""


class OutlinePayload(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    chapters: list[OutlineChapterPayload] = Field(..., min_length=1)


async def generate_outline(provider: LLMProvider, sources: Sequence[Source]) -> BookOutline:
    """Ask the provider for a book outline built from ``sources``.

    Raises:
        ProviderResponseError: If the response is not a valid outline.
    """

    source_context = build_source_context(
        sources,
        char_limit=None,
        text_template="\n\n--- Source: {name} ---\n{body}",
        image_template="\n\n--- Source: {name} (Visual Reference) ---",
    )
    request = ProviderRequest(
        prompt=OUTLINE_PROMPT.format(sources=source_context.as_text() or "None provided."),
        system_prompt=OUTLINE_SYSTEM_PROMPT,
        attachments=attachments_for(provider, source_context),
        json_schema=OUTLINE_SCHEMA if provider.capabilities().supports_json_mode else None,
        metadata={"operation": "outline"},
    )
    response = await provider.generate(request)
    observe_provider_response(
        operation="outline",
        provider=provider.name,
        service_name=SERVICE_NAME,
        response=response,
    )
    return parse_outline(response.text)


def parse_outline(payload: str) -> BookOutline:
    """Validate the model's JSON and renumber chapters densely from 1."""

    if not payload or not payload.strip():
        raise ProviderResponseError("No outline generated")
    try:
        data = OutlinePayload.model_validate(json.loads(payload))
    except json.JSONDecodeError as exc:
        raise ProviderResponseError("Outline response was not valid JSON") from exc
    except ValidationError as exc:
        raise ProviderResponseError(f"Outline response did not match the schema: {exc}") from exc

    ordered = sorted(data.chapters, key=lambda chapter: chapter.chapter_number)
    try:
        chapters = [
            ChapterSpec(number=index, title=chapter.title, summary=chapter.summary)
            for index, chapter in enumerate(ordered, start=1)
        ]
        outline = BookOutline(title=data.title, description=data.description, chapters=chapters)
    except ValidationError as exc:
        raise ProviderResponseError(f"Outline response exceeded field limits: {exc}") from exc

    if [chapter.chapter_number for chapter in ordered] != [chapter.number for chapter in chapters]:
        logger.info("Renumbered outline chapters", extra={"chapter_count": len(chapters)})
    return outline
