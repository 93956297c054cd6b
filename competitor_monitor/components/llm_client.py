"""
LLM provider clients.

This module provides completion clients for a locally hosted Ollama model
and for external API services, plus a router that tries a primary provider
and falls back to a secondary one.
"""

import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

import anthropic
import openai
import requests

from ..errors import LLMUnavailableError
from ..models.config import LLMProviderConfig

logger = logging.getLogger(__name__)


class LLMProviderType(Enum):
    """Supported LLM provider types."""

    LOCAL = "local"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


@dataclass
class LLMResponse:
    """Raw response from LLM provider."""

    content: str
    provider: str
    model: str
    response_time: float
    tokens_used: Optional[int] = None


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.timeout = config.get("timeout", 30)

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.1,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Run a completion and return the raw response."""
        pass

    @abstractmethod
    def test_connection(self) -> bool:
        """Test connection to the LLM provider."""
        pass


class LocalLLMClient(LLMProvider):
    """Client for a locally hosted Ollama model."""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        # Use config first, then environment variable, then localhost fallback
        self.base_url = config.get("base_url") or os.getenv(
            "OLLAMA_BASE_URL", "http://localhost:11434"
        )
        self.model = config["model"]
        # Local models are slower to answer
        self.timeout = config.get("timeout", 120)

    async def complete(
        self,
        prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.1,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Run a completion against the Ollama generate endpoint."""
        start_time = time.time()

        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens,
            },
        }
        if system_prompt:
            payload["system"] = system_prompt

        try:
            response = requests.post(
                f"{self.base_url}/api/generate",
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            result = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Local LLM request failed: {e}")
            raise RuntimeError(f"Local LLM request failed: {e}") from e

        return LLMResponse(
            content=result.get("response", ""),
            provider="local",
            model=self.model,
            response_time=time.time() - start_time,
            tokens_used=result.get("eval_count"),
        )

    def test_connection(self) -> bool:
        """Test connection to local Ollama instance."""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
            response.raise_for_status()

            models = response.json().get("models", [])
            model_names = [model["name"] for model in models]

            if self.model not in model_names:
                logger.warning(
                    f"Model {self.model} not found in available models: "
                    f"{model_names}"
                )
                return False

            return True

        except Exception as e:
            logger.error(f"Local LLM connection test failed: {e}")
            return False


class APILLMClient(LLMProvider):
    """Client for external API-based LLM services."""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.provider = config["provider"]
        self.model = config["model"]
        self.api_key = config.get("api_key")

        self.client: Union[openai.OpenAI, anthropic.Anthropic]
        if self.provider == LLMProviderType.OPENAI.value:
            self.client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout)
        elif self.provider == LLMProviderType.ANTHROPIC.value:
            self.client = anthropic.Anthropic(api_key=self.api_key, timeout=self.timeout)
        else:
            raise ValueError(f"Unsupported API provider: {self.provider}")

    async def complete(
        self,
        prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.1,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Run a completion against the configured API service."""
        start_time = time.time()

        try:
            if self.provider == LLMProviderType.OPENAI.value:
                return self._complete_openai(
                    prompt, max_tokens, temperature, system_prompt, start_time
                )
            return self._complete_anthropic(
                prompt, max_tokens, temperature, system_prompt, start_time
            )
        except (openai.OpenAIError, anthropic.AnthropicError) as e:
            logger.error(f"API LLM request failed: {e}")
            raise RuntimeError(f"API LLM request failed: {e}") from e

    def _complete_openai(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        system_prompt: Optional[str],
        start_time: float,
    ) -> LLMResponse:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        content = response.choices[0].message.content or ""
        tokens_used = response.usage.total_tokens if response.usage else None

        return LLMResponse(
            content=content,
            provider="openai",
            model=self.model,
            response_time=time.time() - start_time,
            tokens_used=tokens_used,
        )

    def _complete_anthropic(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        system_prompt: Optional[str],
        start_time: float,
    ) -> LLMResponse:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        response = self.client.messages.create(**kwargs)

        return LLMResponse(
            content=response.content[0].text,
            provider="anthropic",
            model=self.model,
            response_time=time.time() - start_time,
            tokens_used=response.usage.input_tokens + response.usage.output_tokens,
        )

    def test_connection(self) -> bool:
        """Test connection to API service."""
        try:
            if self.provider == LLMProviderType.OPENAI.value:
                self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": "Test"}],
                    max_tokens=1,
                )
            else:
                self.client.messages.create(
                    model=self.model,
                    max_tokens=1,
                    messages=[{"role": "user", "content": "Test"}],
                )
            return True

        except Exception as e:
            logger.error(f"API LLM connection test failed: {e}")
            return False


class LLMRouter:
    """Primary/fallback provider selection for completions."""

    def __init__(self, config: LLMProviderConfig):
        self.config = config
        self.primary_provider: Optional[LLMProvider] = None
        self.fallback_provider: Optional[LLMProvider] = None
        self._setup_providers()

    def _setup_providers(self) -> None:
        """Setup primary and fallback LLM providers."""
        try:
            if self.config.type == "local" and self.config.local:
                self.primary_provider = LocalLLMClient(self.config.local)
                logger.info(f"Configured local LLM provider: {self.config.local['model']}")

                if self.config.api and self.config.api.get("api_key"):
                    self.fallback_provider = APILLMClient(self.config.api)
                    logger.info(
                        f"Configured API fallback provider: {self.config.api['provider']}"
                    )

            elif self.config.type == "api" and self.config.api:
                self.primary_provider = APILLMClient(self.config.api)
                logger.info(f"Configured API LLM provider: {self.config.api['provider']}")

                if self.config.local:
                    self.fallback_provider = LocalLLMClient(self.config.local)
                    logger.info(
                        f"Configured local fallback provider: {self.config.local['model']}"
                    )

        except Exception as e:
            logger.error(f"Failed to setup LLM providers: {e}")
            raise RuntimeError(f"LLM provider setup failed: {e}") from e

    async def complete(
        self,
        prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.1,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """
        Run a completion on the primary provider, then the fallback.

        Raises:
            LLMUnavailableError: If no provider produced a response
        """
        errors = []
        for label, provider in (
            ("primary", self.primary_provider),
            ("fallback", self.fallback_provider),
        ):
            if provider is None:
                continue
            try:
                return await provider.complete(
                    prompt,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system_prompt=system_prompt,
                )
            except Exception as e:
                logger.warning(f"{label.capitalize()} LLM provider failed: {e}")
                errors.append(f"{label}: {e}")

        raise LLMUnavailableError(
            "All LLM providers failed" + (f" ({'; '.join(errors)})" if errors else "")
        )

    def test_connection(self) -> bool:
        """True if at least one provider is reachable."""
        return any(
            provider.test_connection()
            for provider in (self.primary_provider, self.fallback_provider)
            if provider is not None
        )
