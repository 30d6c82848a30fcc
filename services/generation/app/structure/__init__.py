from .engine import generate_outline, parse_outline

__all__ = ["generate_outline", "parse_outline"]
