"""Structured-output providers for the enrichment steps.

Both supported vendors expose an OpenAI-compatible chat completions API, so
one ``ChatCompletionProvider`` class serves both. Only the base URL, model
and sampling temperature differ.

``ProviderChain`` tries providers in order and moves on only after a
transport failure. A response that arrives but violates the schema is not a
transport failure and is never retried against another provider.

Example:
    >>> chain = ProviderChain([grok_provider, openai_provider])
    >>> body = chain.submit(payload, INGREDIENTS_PROMPT)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from openai import OpenAI, OpenAIError

from .exceptions import ProviderError
from .prompt_library import NormalizationPrompt

logger = logging.getLogger(__name__)

# USD per 1M tokens as (input, output)
OPENAI_PRICING: dict[str, tuple[float, float]] = {
    "gpt-4o-mini": (0.15, 0.60),
    "gpt-4o": (2.50, 10.00),
    "gpt-4-turbo": (10.00, 30.00),
    "gpt-4": (30.00, 60.00),
}


def estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float | None:
    """Estimated USD cost of one call, None for models without a price entry.

    Example:
        >>> estimate_cost("gpt-4o-mini", 1_000_000, 1_000_000)
        0.75
    """
    if model not in OPENAI_PRICING:
        return None
    input_price, output_price = OPENAI_PRICING[model]
    cost = input_tokens / 1_000_000 * input_price + output_tokens / 1_000_000 * output_price
    return round(cost, 6)


class ChatCompletionProvider:
    """One vendor endpoint producing schema-constrained JSON.

    Attributes:
        name: Label used in logs ("openai", "grok")
        client: OpenAI SDK client pointed at the vendor
        model: Model identifier
        timeout: Per-call timeout in seconds
        temperature: Sampling temperature, omitted from the request when None
    """

    def __init__(
        self,
        name: str,
        client: OpenAI,
        model: str,
        timeout: float,
        temperature: float | None = None,
    ) -> None:
        self.name = name
        self.client = client
        self.model = model
        self.timeout = timeout
        self.temperature = temperature

    def submit(self, payload: Any, prompt: NormalizationPrompt) -> str:
        """Send one request and return the raw message content.

        Args:
            payload: JSON-serializable user content
            prompt: System prompt and response schema

        Returns:
            Response body as returned by the model

        Raises:
            ProviderError: On SDK errors or a response without content
        """
        request: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": prompt.system_prompt},
                {"role": "user", "content": json.dumps(payload, ensure_ascii=False)},
            ],
            "response_format": prompt.response_format(),
            "timeout": self.timeout,
        }
        if self.temperature is not None:
            request["temperature"] = self.temperature

        try:
            response = self.client.chat.completions.create(**request)
        except OpenAIError as e:
            logger.error(f"{self.name} API call failed for {prompt.name}: {e}")
            raise ProviderError(
                "Provider call failed", provider=self.name, model=self.model, error=str(e)
            ) from e

        if not response.choices or response.choices[0].message.content is None:
            raise ProviderError("Response has no content", provider=self.name, model=self.model)

        self._log_usage(response, prompt)
        return response.choices[0].message.content

    def _log_usage(self, response: Any, prompt: NormalizationPrompt) -> None:
        usage = getattr(response, "usage", None)
        if usage is None:
            return
        input_tokens = getattr(usage, "prompt_tokens", 0) or 0
        output_tokens = getattr(usage, "completion_tokens", 0) or 0
        total_tokens = getattr(usage, "total_tokens", 0) or 0

        message = (
            f"{self.name} API usage ({prompt.name}): model={self.model}, "
            f"input={input_tokens}, output={output_tokens}, total={total_tokens}"
        )
        cost = estimate_cost(self.model, input_tokens, output_tokens) if self.name == "openai" else None
        if cost is not None:
            message += f", cost=${cost:.6f}"
        logger.info(message)


class ProviderChain:
    """Ordered providers with fallback on transport errors."""

    def __init__(self, providers: Sequence[ChatCompletionProvider]) -> None:
        if not providers:
            raise ValueError("ProviderChain needs at least one provider")
        self.providers = list(providers)

    @property
    def name(self) -> str:
        return "+".join(p.name for p in self.providers)

    def submit(self, payload: Any, prompt: NormalizationPrompt) -> str:
        """Submit to each provider in turn until one answers.

        Raises:
            ProviderError: The last provider's error when all of them fail
        """
        last_error: ProviderError | None = None
        for index, provider in enumerate(self.providers):
            try:
                return provider.submit(payload, prompt)
            except ProviderError as e:
                last_error = e
                if index < len(self.providers) - 1:
                    logger.info(f"Falling back from {provider.name} to {self.providers[index + 1].name}")

        assert last_error is not None
        raise last_error
