"""Turn author sources into prompt text blocks and inline attachments."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Iterable

from manuscript_providers import LLMProvider, ProviderAttachment
from manuscript_schemas import Source, SourceType

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_CHAR_LIMIT = 5000
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"


@dataclass
class SourceContext:
    """Prompt-ready rendering of a project's sources."""

    text_blocks: list[str] = field(default_factory=list)
    attachments: list[ProviderAttachment] = field(default_factory=list)
    trimmed: list[str] = field(default_factory=list)

    def as_text(self) -> str:
        return "\n".join(self.text_blocks)


def excerpt(text: str, char_limit: int | None) -> tuple[str, bool]:
    """Keep the first ``char_limit`` characters of ``text``.

    Returns:
        A tuple of ``(possibly_trimmed_text, was_trimmed)``.
    """

    if char_limit is None or len(text) <= char_limit:
        return text, False
    return text[:char_limit], True


def build_source_context(
    sources: Iterable[Source],
    *,
    char_limit: int | None = DEFAULT_SOURCE_CHAR_LIMIT,
    text_template: str = "\n[Source: {name}]: {body}",
    image_template: str = "\n[Source: {name} (Image Reference)]",
) -> SourceContext:
    """Render notes and transcripts as text and images as attachments.

    Audio sources without a transcript and sources still being processed
    contribute nothing.
    """

    context = SourceContext()
    for source in sources:
        if source.is_processing:
            continue

        if source.type == SourceType.IMAGE:
            try:
                data = base64.b64decode(source.content, validate=True)
            except (binascii.Error, ValueError):
                logger.warning("Skipping image source with invalid base64", extra={"source": source.name})
                continue
            context.attachments.append(
                ProviderAttachment(
                    data=data,
                    mime_type=source.mime_type or DEFAULT_IMAGE_MIME_TYPE,
                    label=image_template.format(name=source.name),
                )
            )
            continue

        body = source.content if source.type == SourceType.TEXT else source.transcription
        if not body:
            continue
        body, was_trimmed = excerpt(body, char_limit)
        if was_trimmed:
            context.trimmed.append(source.name)
        context.text_blocks.append(text_template.format(name=source.name, body=body))
    return context


def attachments_for(provider: LLMProvider, context: SourceContext) -> list[ProviderAttachment]:
    """Image attachments ``provider`` can read; text-only backends get none."""

    if not context.attachments or provider.capabilities().supports_images:
        return context.attachments
    logger.info(
        "Provider does not accept images; sending text sources only",
        extra={"provider": provider.name, "skipped_images": len(context.attachments)},
    )
    return []


__all__ = ["SourceContext", "attachments_for", "build_source_context", "excerpt"]
