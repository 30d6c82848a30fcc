"""Prompt templates for outline generation."""

from __future__ import annotations

OUTLINE_SYSTEM_PROMPT = """
You are a professional book editor. Analyze the provided source materials to create a
comprehensive book outline. The material may include text notes, audio transcripts, and
visual references (images). Find the narrative arc, themes, and key events to structure a
cohesive non-fiction or fiction book. If images are provided, incorporate their visual
details (settings, characters, mood) into the descriptions and summaries.
Return the outline strictly in the JSON schema provided.
""".strip()


OUTLINE_PROMPT = """
Source material:
{sources}

Draft the book outline: a creative title, a synopsis, and numbered chapters starting at 1,
each with detailed plot points to cover.
""".strip()


OUTLINE_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "description": "A creative and engaging title for the book."},
        "description": {"type": "string", "description": "A synopsis of the book."},
        "chapters": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "chapterNumber": {"type": "integer"},
                    "title": {"type": "string"},
                    "summary": {
                        "type": "string",
                        "description": "Detailed plot points to cover in this chapter.",
                    },
                },
                "required": ["chapterNumber", "title", "summary"],
            },
        },
    },
    "required": ["title", "description", "chapters"],
}
