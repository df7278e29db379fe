"""
PURPOSE: OpenAI-compatible chat completions client.
"""

from .client import LLMClient

__all__ = ["LLMClient"]
