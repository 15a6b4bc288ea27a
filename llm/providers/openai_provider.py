"""
OpenAI LLM Provider.
"""

import asyncio
import logging
from typing import Optional

from ..prompt_templates import PromptTemplates
from .base import GenerationContext, GenerationResult

logger = logging.getLogger(__name__)


class OpenAIProvider:
    """
    OpenAI LLM provider.

    Uses chat completions; the blocking client call runs in a worker thread.
    """

    DEFAULT_MODEL = "gpt-4.1-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_id: str = DEFAULT_MODEL,
        max_tokens: int = 400,
        temperature: float = 0.3
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model_id: Model ID
            max_tokens: Maximum tokens
            temperature: Generation temperature
        """
        from openai import OpenAI
        self._client = OpenAI(api_key=api_key) if api_key else OpenAI()

        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature

        logger.info(f"OpenAI provider initialized: {model_id}")

    async def generate(
        self,
        instructions: str,
        message: str,
        context: GenerationContext,
    ) -> GenerationResult:
        """
        Generate a candidate reply.

        Args:
            instructions: System prompt
            message: Raw customer message
            context: Turn context; retrieved knowledge is placed in the user prompt

        Returns:
            GenerationResult
        """
        prompt = PromptTemplates.build_user_prompt(message, context.retrieved_context or None)
        text = await asyncio.to_thread(self._complete, instructions, prompt)
        return GenerationResult(final_output=text)

    def _complete(self, system: str, prompt: str) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self.model_id,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature
            )

            return (response.choices[0].message.content or "").strip()

        except Exception as e:
            logger.error(f"OpenAI generation failed: {e}")
            raise
