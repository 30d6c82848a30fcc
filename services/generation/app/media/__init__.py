from .engine import SpeechClip, generate_cover_image, synthesize_chapter_speech

__all__ = ["SpeechClip", "generate_cover_image", "synthesize_chapter_speech"]
