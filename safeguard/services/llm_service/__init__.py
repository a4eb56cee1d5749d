"""LLM Service: text-generation collaborator for safe content rewrites."""

from .base_llm import (
    BaseLLM,
    OpenAILLM,
    HuggingFaceLLM,
    LLMConfig,
    LLMProvider,
    LLMResponse,
    create_llm,
)

__all__ = [
    "BaseLLM",
    "OpenAILLM",
    "HuggingFaceLLM",
    "LLMConfig",
    "LLMProvider",
    "LLMResponse",
    "create_llm",
]
