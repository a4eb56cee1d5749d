"""Base LLM interface and implementations.

Text-generation collaborator for caller-requested safe alternatives.
Provides an abstract base class and concrete implementations for the
OpenAI API and HuggingFace inference endpoints.
"""
import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import aiohttp
import openai

logger = logging.getLogger(__name__)

# Prompts carry one post plus its analysis summary
MAX_PROMPT_LENGTH = 10000


class LLMProvider(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    HUGGINGFACE = "huggingface"


@dataclass
class LLMConfig:
    """Configuration for LLM inference."""
    provider: LLMProvider
    model_name: str
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    max_tokens: int = 400      # rewritten posts stay short
    temperature: float = 0.3
    top_p: float = 0.9
    timeout_seconds: int = 30

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """Create config from environment variables.

        Environment variables:
            LLM_PROVIDER: openai or huggingface (default openai)
            OPENAI_MODEL: Model name (default gpt-4o-mini)
            OPENAI_API_KEY: API key
            LLM_ENDPOINT: Inference endpoint (HuggingFace only)
        """
        return cls(
            provider=LLMProvider(os.getenv("LLM_PROVIDER", "openai")),
            model_name=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            endpoint=os.getenv("LLM_ENDPOINT"),
            api_key=os.getenv("OPENAI_API_KEY"),
        )


@dataclass
class LLMResponse:
    """Response from LLM inference."""
    text: str
    model: str
    provider: str
    tokens_used: Optional[int] = None
    latency_ms: Optional[float] = None
    metadata: Optional[Dict] = None


class BaseLLM(ABC):
    """Abstract base class for LLM implementations."""

    def __init__(self, config: LLMConfig):
        self.config = config
        logger.info(
            "LLM_INITIALIZED",
            extra={
                "provider": config.provider.value,
                "model": config.model_name,
            }
        )

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> LLMResponse:
        """Generate response from LLM.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt for context
            **kwargs: Additional provider-specific parameters

        Returns:
            LLMResponse object

        Raises:
            ValueError: If prompt is invalid
        """
        pass

    def validate_prompt(self, prompt: str) -> bool:
        """Validate prompt before sending to LLM."""
        if not prompt or not prompt.strip():
            logger.warning("LLM_PROMPT_EMPTY")
            return False

        if len(prompt) > MAX_PROMPT_LENGTH:
            logger.warning(
                "LLM_PROMPT_TOO_LONG",
                extra={"length": len(prompt), "max_length": MAX_PROMPT_LENGTH}
            )
            return False

        return True


class OpenAILLM(BaseLLM):
    """OpenAI chat completions implementation."""

    def __init__(self, config: LLMConfig, client: Optional[openai.AsyncOpenAI] = None):
        """Initialize OpenAI LLM.

        Args:
            config: LLM configuration with API key
            client: Pre-built client (tests)

        Raises:
            ValueError: If no API key is configured and no client is given
        """
        super().__init__(config)

        if client is None and not config.api_key:
            raise ValueError("OpenAI API key required")

        self.client = client or openai.AsyncOpenAI(api_key=config.api_key)

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> LLMResponse:
        if not self.validate_prompt(prompt):
            raise ValueError("Invalid prompt")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        start_time = time.time()

        try:
            response = await self.client.chat.completions.create(
                model=self.config.model_name,
                messages=messages,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                top_p=self.config.top_p,
                timeout=self.config.timeout_seconds,
            )
        except Exception as e:
            logger.error(
                "OPENAI_GENERATION_FAILED",
                extra={
                    "model": self.config.model_name,
                    "error": str(e),
                }
            )
            raise

        latency_ms = (time.time() - start_time) * 1000
        tokens_used = response.usage.total_tokens if response.usage else None

        logger.info(
            "OPENAI_GENERATION_COMPLETED",
            extra={
                "model": self.config.model_name,
                "latency_ms": latency_ms,
                "tokens_used": tokens_used,
            }
        )

        return LLMResponse(
            text=response.choices[0].message.content,
            model=self.config.model_name,
            provider=self.config.provider.value,
            tokens_used=tokens_used,
            latency_ms=latency_ms,
        )


class HuggingFaceLLM(BaseLLM):
    """HuggingFace inference endpoint implementation."""

    def __init__(self, config: LLMConfig):
        super().__init__(config)

        if not config.endpoint:
            raise ValueError("HuggingFace endpoint required")

        self.endpoint = config.endpoint
        self.headers = {}
        if config.api_key:
            self.headers["Authorization"] = f"Bearer {config.api_key}"

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> LLMResponse:
        if not self.validate_prompt(prompt):
            raise ValueError("Invalid prompt")

        full_prompt = f"{system_prompt}\n\n{prompt}" if system_prompt else prompt
        payload = {
            "inputs": full_prompt,
            "parameters": {
                "max_new_tokens": self.config.max_tokens,
                "temperature": self.config.temperature,
                "top_p": self.config.top_p,
                "return_full_text": False,
            }
        }

        start_time = time.time()

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.endpoint,
                    headers=self.headers,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
                ) as response:
                    response.raise_for_status()
                    result = await response.json()
        except Exception as e:
            logger.error(
                "HUGGINGFACE_GENERATION_FAILED",
                extra={
                    "model": self.config.model_name,
                    "error": str(e),
                }
            )
            raise

        latency_ms = (time.time() - start_time) * 1000

        if isinstance(result, list) and result:
            generated_text = result[0].get("generated_text", "")
        else:
            generated_text = result.get("generated_text", "")

        logger.info(
            "HUGGINGFACE_GENERATION_COMPLETED",
            extra={"model": self.config.model_name, "latency_ms": latency_ms}
        )

        return LLMResponse(
            text=generated_text,
            model=self.config.model_name,
            provider=self.config.provider.value,
            latency_ms=latency_ms,
            metadata={"endpoint": self.endpoint},
        )


def create_llm(config: LLMConfig) -> BaseLLM:
    """Factory function to create LLM instance.

    Raises:
        ValueError: If provider not supported
    """
    if config.provider == LLMProvider.OPENAI:
        return OpenAILLM(config)
    if config.provider == LLMProvider.HUGGINGFACE:
        return HuggingFaceLLM(config)
    raise ValueError(f"Unsupported provider: {config.provider}")
