"""
LLM Provider implementations.
"""

from .base import GenerationContext, GenerationResult, TextGenerator
from .bedrock import BedrockProvider
from .openai_provider import OpenAIProvider

__all__ = [
    "GenerationContext",
    "GenerationResult",
    "TextGenerator",
    "BedrockProvider",
    "OpenAIProvider",
]
