"""Generation backends."""

from .gemini import GeminiGenerator, classify_generation_error

__all__ = ["GeminiGenerator", "classify_generation_error"]
