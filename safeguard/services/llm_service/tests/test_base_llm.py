"""Tests for LLM implementations with a mocked OpenAI client."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from safeguard.services.llm_service import (
    HuggingFaceLLM,
    LLMConfig,
    LLMProvider,
    OpenAILLM,
    create_llm,
)


def _openai_config(**overrides):
    values = dict(provider=LLMProvider.OPENAI, model_name="gpt-4o-mini", api_key="sk-test")
    values.update(overrides)
    return LLMConfig(**values)


def _mock_client(text="Rewritten post", total_tokens=42):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(total_tokens=total_tokens),
    ))
    return client


class TestOpenAILLM:
    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            OpenAILLM(_openai_config(api_key=None))

    @pytest.mark.asyncio
    async def test_generate(self):
        client = _mock_client()
        llm = OpenAILLM(_openai_config(), client=client)

        response = await llm.generate("Rewrite this", system_prompt="Be kind")

        assert response.text == "Rewritten post"
        assert response.tokens_used == 42
        assert response.provider == "openai"
        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "Be kind"}
        assert messages[1] == {"role": "user", "content": "Rewrite this"}

    @pytest.mark.asyncio
    async def test_empty_prompt_rejected(self):
        llm = OpenAILLM(_openai_config(), client=_mock_client())

        with pytest.raises(ValueError):
            await llm.generate("   ")

    @pytest.mark.asyncio
    async def test_client_error_propagates(self):
        client = _mock_client()
        client.chat.completions.create.side_effect = RuntimeError("rate limited")
        llm = OpenAILLM(_openai_config(), client=client)

        with pytest.raises(RuntimeError):
            await llm.generate("Rewrite this")


class TestFactory:
    def test_huggingface_requires_endpoint(self):
        with pytest.raises(ValueError):
            create_llm(LLMConfig(provider=LLMProvider.HUGGINGFACE, model_name="mistral"))

    def test_creates_huggingface(self):
        llm = create_llm(LLMConfig(
            provider=LLMProvider.HUGGINGFACE,
            model_name="mistral",
            endpoint="https://example.invalid/models/mistral",
            api_key="hf_test",
        ))

        assert isinstance(llm, HuggingFaceLLM)
        assert llm.headers == {"Authorization": "Bearer hf_test"}

    def test_config_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")
        monkeypatch.delenv("LLM_PROVIDER", raising=False)

        config = LLMConfig.from_env()

        assert config.provider == LLMProvider.OPENAI
        assert config.model_name == "gpt-4o"
        assert config.api_key == "sk-env"
