"""Prompt templates for cover art."""

from __future__ import annotations

FRONT_COVER_PROMPT = """
A professional, high-quality book cover for a book titled "{title}".
Description: {description}.
Style: Minimalist, modern, striking typography, best-selling aesthetic.
""".strip()

BACK_COVER_PROMPT = """
The back cover of a book titled "{title}", matching its front cover artwork.
Description: {description}.
Style: Minimalist and modern, with a calm area of negative space for the synopsis text.
""".strip()

COVER_PROMPTS = {"front": FRONT_COVER_PROMPT, "back": BACK_COVER_PROMPT}
