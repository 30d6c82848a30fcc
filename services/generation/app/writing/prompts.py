"""Prompt templates for chapter drafting and refinement."""

from __future__ import annotations

from manuscript_schemas import WritingStyle

STYLE_INSTRUCTIONS: dict[WritingStyle, str] = {
    WritingStyle.STANDARD: "Write in a clear, engaging, and professional manner.",
    WritingStyle.LITERARY: "Use rich descriptions, metaphors, and elevated prose.",
    WritingStyle.HUMOROUS: "Be witty, light-hearted, and entertaining.",
    WritingStyle.TECHNICAL: "Be precise, factual, and educational.",
    WritingStyle.SIMPLE: "Use simple vocabulary and direct sentence structures for high readability.",
    WritingStyle.SARCASTIC: (
        "Write in a highly sarcastic, witty manner with adult humor and a cynical, sharp tone. "
        "Do not be afraid to be edgy."
    ),
}


CHAPTER_SYSTEM_PROMPT = """
You are a best-selling author drafting one chapter of a book at a time. Stay consistent
with the book's title, synopsis, and the chapter goals you are given. Return only the
chapter text formatted as Markdown.
""".strip()


CHAPTER_PROMPT = """
Write the full content for Chapter {number}: "{chapter_title}".

Book Title: {book_title}
Book Description: {book_description}

Chapter Summary/Goals: {chapter_summary}

Writing Style: {style_instruction}

Instructions:
- Write in an engaging, high-quality style matching the requested tone.
- Ensure continuity with the overall book theme.
- Use the source material as the factual/narrative basis but expand creatively.
- Format with Markdown (headers, paragraphs).
- If images are provided in the source material, use them to vividly describe scenes, characters, or items.

Source material:
{sources}
""".strip()


REFINE_PROMPT = """
You are an expert book editor.

Task: {instruction}

Current Text:
{content}

Return ONLY the rewritten text in Markdown format. Do not add conversational filler.
""".strip()


def style_instruction(style: WritingStyle | str) -> str:
    try:
        return STYLE_INSTRUCTIONS[WritingStyle(style)]
    except ValueError:
        return STYLE_INSTRUCTIONS[WritingStyle.STANDARD]
