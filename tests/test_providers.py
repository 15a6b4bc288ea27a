"""Tests for generation providers with stubbed SDK clients."""

import io
import json
from types import SimpleNamespace

import pytest

from config.settings import Settings
from llm.providers import BedrockProvider, GenerationContext, OpenAIProvider, TextGenerator


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeBedrockRuntime:
    def __init__(self, text):
        self.text = text
        self.request = None

    def invoke_model(self, **kwargs):
        self.request = kwargs
        body = json.dumps({"content": [{"type": "text", "text": self.text}]}).encode()
        return {"body": io.BytesIO(body)}


@pytest.fixture
def context():
    return GenerationContext(user_id="u1", retrieved_context="[chunk:policies] Policies: Refunds in 7 days.")


async def test_openai_generate(context):
    provider = OpenAIProvider(api_key="test-key", model_id="gpt-4.1-mini")
    completions = FakeCompletions("  Refunds take 7 days. [chunk:policies]  ")
    provider._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))

    result = await provider.generate("SYSTEM", "refund?", context)

    assert result.final_output == "Refunds take 7 days. [chunk:policies]"
    messages = completions.kwargs["messages"]
    assert messages[0] == {"role": "system", "content": "SYSTEM"}
    assert "KNOWLEDGE:" in messages[1]["content"]
    assert "Customer message: refund?" in messages[1]["content"]
    assert isinstance(provider, TextGenerator)


async def test_openai_error_propagates():
    provider = OpenAIProvider(api_key="test-key")

    def _fail(**kwargs):
        raise RuntimeError("rate limited")

    provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=_fail)))

    with pytest.raises(RuntimeError):
        await provider.generate("SYSTEM", "hi", GenerationContext(user_id="u1"))


async def test_bedrock_generate():
    provider = BedrockProvider(region="us-east-1")
    runtime = FakeBedrockRuntime("Salam!")
    provider._client = runtime

    result = await provider.generate("SYSTEM", "hi", GenerationContext(user_id="u1"))

    assert result.final_output == "Salam!"
    body = json.loads(runtime.request["body"])
    assert body["system"] == "SYSTEM"
    assert body["messages"][0]["content"][0]["text"] == "Customer message: hi"


@pytest.mark.parametrize("provider,embed_model,llm_model", [
    ("openai", "text-embedding-3-small", "gpt-4.1-mini"),
    ("BEDROCK", "amazon.titan-embed-text-v2:0", "us.anthropic.claude-sonnet-4-20250514-v1:0"),
])
def test_settings_select_models_for_provider(provider, embed_model, llm_model):
    settings = Settings(llm_provider=provider)
    assert settings.embed_model_id == embed_model
    assert settings.llm_model_id == llm_model
