"""Service factory for centralized dependency injection.

``ServiceFactory`` is the single place where configuration turns into
collaborators. Expensive resources (the HTTP session, API clients) are
created lazily and shared by everything the factory builds.

Example:
    >>> from recipe_harvest.config import HarvestConfig
    >>> factory = ServiceFactory(HarvestConfig.load())
    >>> discovery = factory.create_discovery()
    >>> handler = factory.create_ingredient_normalization()
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING, Any

from openai import OpenAI

from ..exceptions import ConfigurationError

if TYPE_CHECKING:
    from ..config import HarvestConfig
    from ..discovery import CategoryDiscovery
    from ..fetcher import PageFetcher
    from ..pipeline import (
        IngredientNormalization,
        PolitenessDelay,
        RecipeAcquisition,
        StepNormalization,
    )
    from ..providers import ChatCompletionProvider, ProviderChain
    from ..registry import ExtractorRegistry
    from ..repository import SqliteRecipeRepository


@dataclass
class ServiceFactory:
    """Factory for creating service instances with shared dependencies.

    Attributes:
        config: Harvest configuration for all services

    Note:
        API clients are only built when a provider is first requested, so
        scraping commands work without any API key set.
    """

    config: HarvestConfig

    # ========================================================================
    # Shared resources
    # ========================================================================

    @cached_property
    def fetcher(self) -> PageFetcher:
        from ..fetcher import PageFetcher

        return PageFetcher(timeout=self.config.request_timeout, verify_tls=self.config.verify_tls)

    @cached_property
    def registry(self) -> ExtractorRegistry:
        from ..registry import ExtractorRegistry

        return ExtractorRegistry(self.fetcher)

    @cached_property
    def repository(self) -> SqliteRecipeRepository:
        from ..repository import SqliteRecipeRepository

        return SqliteRecipeRepository(self.config.database_path)

    @cached_property
    def openai_client(self) -> OpenAI:
        """Shared OpenAI client. Reads ``OPENAI_API_KEY``."""
        return OpenAI(
            api_key=self._api_key("OPENAI_API_KEY"),
            base_url=self.config.openai_base_url,
        )

    @cached_property
    def grok_client(self) -> OpenAI:
        """OpenAI-compatible client for the xAI endpoint. Reads ``GROK_API_KEY``."""
        return OpenAI(api_key=self._api_key("GROK_API_KEY"), base_url=self.config.grok_base_url)

    @staticmethod
    def _api_key(variable: str) -> str:
        key = os.environ.get(variable)
        if not key:
            raise ConfigurationError("API key is not set", variable=variable)
        return key

    # ========================================================================
    # Providers
    # ========================================================================

    def create_openai_provider(self, timeout: float) -> ChatCompletionProvider:
        from ..providers import ChatCompletionProvider

        return ChatCompletionProvider(
            name="openai",
            client=self.openai_client,
            model=self.config.openai_model,
            timeout=timeout,
        )

    def create_grok_provider(self, timeout: float) -> ChatCompletionProvider:
        from ..providers import ChatCompletionProvider

        return ChatCompletionProvider(
            name="grok",
            client=self.grok_client,
            model=self.config.grok_model,
            timeout=timeout,
            temperature=self.config.grok_temperature,
        )

    def create_ingredient_provider(self) -> ProviderChain:
        """Provider chain for ingredients: grok falls back to openai."""
        from ..providers import ProviderChain

        timeout = self.config.ingredients_timeout
        if self.config.ingredient_provider == "grok":
            return ProviderChain(
                [self.create_grok_provider(timeout), self.create_openai_provider(timeout)]
            )
        return ProviderChain([self.create_openai_provider(timeout)])

    def create_step_provider(self) -> ProviderChain:
        from ..providers import ProviderChain

        return ProviderChain([self.create_openai_provider(self.config.steps_timeout)])

    # ========================================================================
    # Pipeline
    # ========================================================================

    def create_delay(self) -> PolitenessDelay:
        from ..pipeline import PolitenessDelay

        return PolitenessDelay(delay_range=self.config.delay_range)

    def create_discovery(self) -> CategoryDiscovery:
        from ..discovery import CategoryDiscovery

        return CategoryDiscovery(self.registry, self.repository, delay=self.create_delay())

    def create_acquisition(self, enqueue_ingredients: Callable[[int], Any]) -> RecipeAcquisition:
        from ..pipeline import RecipeAcquisition

        return RecipeAcquisition(
            self.registry,
            self.repository,
            enqueue_ingredients=enqueue_ingredients,
            delay=self.create_delay(),
        )

    def create_ingredient_normalization(self) -> IngredientNormalization:
        from ..normalization import IngredientNormalizer
        from ..pipeline import IngredientNormalization

        return IngredientNormalization(
            self.repository, IngredientNormalizer(self.create_ingredient_provider())
        )

    def create_step_normalization(self) -> StepNormalization:
        from ..normalization import StepNormalizer
        from ..pipeline import StepNormalization

        return StepNormalization(self.repository, StepNormalizer(self.create_step_provider()))
