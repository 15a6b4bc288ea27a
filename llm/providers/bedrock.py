"""
Claude on AWS Bedrock as the reply generator.
"""

import asyncio
import json
import logging
from typing import Any, Dict

import boto3
from botocore.exceptions import ClientError

from ..prompt_templates import PromptTemplates
from .base import GenerationContext, GenerationResult

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "bedrock-2023-05-31"


class BedrockProvider:
    """Anthropic messages API through `bedrock-runtime.invoke_model`."""

    DEFAULT_MODEL = "us.anthropic.claude-sonnet-4-20250514-v1:0"

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL,
        region: str = "us-east-1",
        max_tokens: int = 400,
        temperature: float = 0.3
    ):
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = boto3.client("bedrock-runtime", region_name=region)
        logger.info(f"Bedrock generator ready: {model_id} in {region}")

    async def generate(
        self,
        instructions: str,
        message: str,
        context: GenerationContext,
    ) -> GenerationResult:
        prompt = PromptTemplates.build_user_prompt(message, context.retrieved_context or None)
        body = self._request_body(instructions, prompt)
        text = await asyncio.to_thread(self._invoke, body)
        if not text:
            logger.warning(f"Bedrock returned no text for user {context.user_id}")
        return GenerationResult(final_output=text)

    def _request_body(self, system: str, prompt: str) -> Dict[str, Any]:
        return {
            "anthropic_version": ANTHROPIC_VERSION,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "system": system,
            "messages": [{"role": "user", "content": [{"type": "text", "text": prompt}]}],
        }

    def _invoke(self, body: Dict[str, Any]) -> str:
        try:
            response = self._client.invoke_model(
                modelId=self.model_id,
                body=json.dumps(body),
                contentType="application/json",
                accept="application/json",
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "unknown")
            logger.error(f"Bedrock rejected the request ({code}): {e}")
            raise

        payload = json.loads(response["body"].read())
        blocks = [b.get("text", "") for b in payload.get("content") or [] if b.get("type") == "text"]
        return "\n".join(blocks).strip()
