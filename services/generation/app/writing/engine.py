"""Chapter drafting and refinement against a generative provider."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Sequence

from manuscript_observability import observe_provider_response
from manuscript_providers import GenerationError, LLMProvider, ProviderRequest
from manuscript_schemas import BookOutline, ChapterSpec, Source, WritingStyle

from ..context import DEFAULT_SOURCE_CHAR_LIMIT, attachments_for, build_source_context
from .prompts import CHAPTER_PROMPT, CHAPTER_SYSTEM_PROMPT, REFINE_PROMPT, style_instruction

logger = logging.getLogger(__name__)
SERVICE_NAME = "generation"


class ChapterGenerator(ABC):
    """Produces the manuscript text for one outline chapter."""

    @abstractmethod
    async def generate(
        self,
        chapter: ChapterSpec,
        outline: BookOutline,
        sources: Sequence[Source],
        style: WritingStyle,
    ) -> str:
        """Return chapter text or raise ``GenerationError``."""


class ProviderChapterGenerator(ChapterGenerator):
    """Drafts chapters through an :class:`LLMProvider`.

    Text notes and transcripts are truncated to ``char_limit`` characters each;
    image sources travel as inline attachments when the provider reads images.
    An empty completion is raised as a (transient) ``GenerationError`` so the
    retry policy gets another go.
    """

    def __init__(
        self,
        provider: LLMProvider,
        *,
        char_limit: int | None = DEFAULT_SOURCE_CHAR_LIMIT,
        temperature: float | None = None,
    ) -> None:
        self._provider = provider
        self._char_limit = char_limit
        self._temperature = temperature

    def build_request(
        self,
        chapter: ChapterSpec,
        outline: BookOutline,
        sources: Sequence[Source],
        style: WritingStyle,
    ) -> ProviderRequest:
        source_context = build_source_context(sources, char_limit=self._char_limit)
        prompt = CHAPTER_PROMPT.format(
            number=chapter.number,
            chapter_title=chapter.title,
            book_title=outline.title,
            book_description=outline.description,
            chapter_summary=chapter.summary,
            style_instruction=style_instruction(style),
            sources=source_context.as_text() or "None provided.",
        )
        return ProviderRequest(
            prompt=prompt,
            system_prompt=CHAPTER_SYSTEM_PROMPT,
            attachments=attachments_for(self._provider, source_context),
            temperature=self._temperature,
            metadata={
                "operation": "chapter",
                "chapter": chapter.number,
                "style": WritingStyle(style).value,
                "trimmed_sources": source_context.trimmed,
            },
        )

    async def generate(
        self,
        chapter: ChapterSpec,
        outline: BookOutline,
        sources: Sequence[Source],
        style: WritingStyle,
    ) -> str:
        request = self.build_request(chapter, outline, sources, style)
        response = await self._provider.generate(request)
        observe_provider_response(
            operation="chapter",
            provider=self._provider.name,
            service_name=SERVICE_NAME,
            response=response,
        )
        text = (response.text or "").strip()
        if not text:
            raise GenerationError(f"Empty response for chapter {chapter.number}")
        logger.info(
            "Chapter drafted",
            extra={
                "chapter": chapter.number,
                "output_chars": len(text),
                "prompt_tokens": response.prompt_tokens,
                "completion_tokens": response.completion_tokens,
            },
        )
        return text


async def refine_chapter_text(provider: LLMProvider, content: str, instruction: str) -> str:
    """Rewrite ``content`` following an editor ``instruction``.

    Backend errors propagate; an empty completion keeps the original text.
    """

    request = ProviderRequest(
        prompt=REFINE_PROMPT.format(instruction=instruction.strip(), content=content),
        metadata={"operation": "refine"},
    )
    response = await provider.generate(request)
    observe_provider_response(
        operation="refine",
        provider=provider.name,
        service_name=SERVICE_NAME,
        response=response,
    )
    return (response.text or "").strip() or content
