"""LLM client abstraction for multiple providers."""
from typing import List, Dict, Any, Optional, Sequence
from abc import ABC, abstractmethod

import openai
import anthropic
from loguru import logger

from webpilot.errors import MissingCredentialError, ModelError
from webpilot.models import ConversationMessage


OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
TOGETHER_BASE_URL = "https://api.together.xyz/v1"


class LLMClient(ABC):
    """Abstract base class for LLM providers."""

    model: str = "unknown"
    temperature: float = 0.2
    max_tokens: int = 2048

    def __init__(self):
        self.usage = {"input": 0, "output": 0}

    @abstractmethod
    def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.2,
        max_tokens: int = 2048,
        **kwargs
    ) -> tuple[str, Dict[str, int]]:
        """
        Generate completion from messages.

        Returns:
            (response_text, token_usage)

        Raises:
            ModelError: on transport, decoding or API errors
        """
        pass

    def chat(self, system: str, history: Sequence[ConversationMessage]) -> str:
        """
        Return the model's next turn for a system instruction and history.

        The system instruction is sent first unless the history already opens
        with a system message. Token usage is added to ``self.usage``.
        """
        messages: List[Dict[str, str]] = []
        if system and not (history and history[0].role == "system"):
            messages.append({"role": "system", "content": system})
        for msg in history:
            messages.append({"role": msg.role or "user", "content": msg.content})

        text, tokens = self.complete(
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        self.usage["input"] += tokens.get("input", 0)
        self.usage["output"] += tokens.get("output", 0)
        return text


def _require_key(api_key: Optional[str], provider: str) -> str:
    if not api_key:
        raise MissingCredentialError(
            f"No API key configured for provider '{provider}'. "
            f"Set it in the environment (see .env.example)."
        )
    return api_key


class OpenAIClient(LLMClient):
    """OpenAI API client. Also serves OpenAI-compatible endpoints."""

    provider = "openai"

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 2048,
        timeout: float = 30.0,
    ):
        super().__init__()
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = openai.OpenAI(
            api_key=_require_key(api_key, self.provider),
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.2,
        max_tokens: int = 2048,
        **kwargs
    ) -> tuple[str, Dict[str, int]]:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs
            )
        except openai.OpenAIError as e:
            raise ModelError(f"{self.provider} request failed: {e}") from e

        # OpenRouter reports some upstream failures inside a 200 body.
        error = getattr(response, "error", None)
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ModelError(f"api error: {message}")

        if not response.choices:
            raise ModelError("no choices in response")

        text = response.choices[0].message.content or ""
        usage = response.usage
        tokens = {
            "input": getattr(usage, "prompt_tokens", 0) or 0,
            "output": getattr(usage, "completion_tokens", 0) or 0,
        }
        return text, tokens


class OpenRouterClient(OpenAIClient):
    """OpenRouter client (OpenAI-compatible)."""

    provider = "openrouter"

    def __init__(self, model: str = "tngtech/deepseek-r1t2-chimera:free", base_url: Optional[str] = None, **kwargs):
        super().__init__(model=model, base_url=base_url or OPENROUTER_BASE_URL, **kwargs)


class TogetherAIClient(OpenAIClient):
    """TogetherAI API client (OpenAI-compatible)."""

    provider = "together"

    def __init__(self, model: str = "Qwen/Qwen2.5-72B-Instruct-Turbo", base_url: Optional[str] = None, **kwargs):
        super().__init__(model=model, base_url=base_url or TOGETHER_BASE_URL, **kwargs)


class AnthropicClient(LLMClient):
    """Anthropic (Claude) API client."""

    provider = "anthropic"

    def __init__(
        self,
        model: str = "claude-3-5-sonnet-20241022",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 2048,
        timeout: float = 30.0,
    ):
        super().__init__()
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = anthropic.Anthropic(
            api_key=_require_key(api_key, self.provider),
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.2,
        max_tokens: int = 2048,
        **kwargs
    ) -> tuple[str, Dict[str, int]]:
        # Anthropic takes the system prompt separately
        system_msg = None
        formatted_messages = []

        for msg in messages:
            if msg["role"] == "system":
                system_msg = msg["content"]
            else:
                formatted_messages.append({
                    "role": msg["role"],
                    "content": msg["content"]
                })

        request: Dict[str, Any] = dict(
            model=self.model,
            messages=formatted_messages,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs
        )
        if system_msg:
            request["system"] = system_msg

        try:
            response = self.client.messages.create(**request)
        except anthropic.AnthropicError as e:
            raise ModelError(f"anthropic request failed: {e}") from e

        if not response.content:
            raise ModelError("no content in response")

        text = "".join(getattr(block, "text", "") for block in response.content)
        tokens = {
            "input": response.usage.input_tokens,
            "output": response.usage.output_tokens
        }
        return text, tokens


def create_llm_client(
    provider: str,
    model: str,
    api_key: Optional[str],
    base_url: Optional[str] = None,
    temperature: float = 0.2,
    max_tokens: int = 2048,
    timeout: float = 30.0,
) -> LLMClient:
    """
    Factory function to create LLM client.

    Args:
        provider: LLM provider (openrouter, openai, together, anthropic)
        model: Model name
        api_key: Provider API key; MissingCredentialError if empty
        base_url: Optional endpoint override
        timeout: Per-call timeout in seconds
    """

    clients = {
        "openrouter": OpenRouterClient,
        "openai": OpenAIClient,
        "together": TogetherAIClient,
        "anthropic": AnthropicClient,
    }

    if provider not in clients:
        raise ValueError(f"Unknown provider: {provider}. Choose from {list(clients.keys())}")

    logger.info(f"Using LLM: {provider}/{model}")
    return clients[provider](
        model=model,
        api_key=api_key,
        base_url=base_url,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=timeout,
    )
