from .engine import ChapterGenerator, ProviderChapterGenerator, refine_chapter_text

__all__ = ["ChapterGenerator", "ProviderChapterGenerator", "refine_chapter_text"]
