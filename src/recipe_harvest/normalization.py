"""Build normalization requests and validate their responses.

The normalizers are provider-agnostic: they turn a stored recipe into the
request payload, hand it to a ``StructuredCompletionProvider`` and check
that the answer has the documented shape before anything is persisted.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ValidationError

from .exceptions import SchemaViolationError
from .models import IngredientSection, PreparedIngredients, PreparedSteps, Recipe
from .prompt_library import (
    INGREDIENTS_PROMPT,
    SECTION_DENYLIST,
    SECTION_NAME_ARTEFACTS,
    STEPS_PROMPT,
    NormalizationPrompt,
)
from .protocols import StructuredCompletionProvider

logger = logging.getLogger(__name__)


def clean_section_name(section: str | None) -> str | None:
    """Strip site artefacts from a section heading. Empty names become None.

    Example:
        >>> clean_section_name("Ciasto [ więcej ]")
        'Ciasto'
    """
    if not section:
        return None
    for artefact in SECTION_NAME_ARTEFACTS:
        section = section.replace(artefact, "")
    return section.strip() or None


def build_ingredient_payload(
    sections: Iterable[IngredientSection],
    denylist: Iterable[str] = SECTION_DENYLIST,
) -> list[dict[str, Any]]:
    """Convert raw ingredient sections into the normalization request body.

    Sections named in ``denylist`` and sections left without items are
    dropped.
    """
    excluded = set(denylist)
    payload: list[dict[str, Any]] = []
    for section in sections:
        name = clean_section_name(section.section)
        if name in excluded:
            continue
        items = [{"name": item.name, "quantity": item.quantity} for item in section.items if item.name]
        if items:
            payload.append({"section": name, "items": items})
    return payload


def parse_structured_response(
    body: str,
    prompt: NormalizationPrompt,
    model: type[BaseModel],
    **context: str | int | None,
) -> dict[str, Any]:
    """Decode a provider response and validate it against ``model``.

    Args:
        body: Raw response content
        prompt: Prompt whose ``root_key`` the document must contain
        model: Pydantic model mirroring the response schema
        **context: Extra fields for the error message (e.g. recipe_id)

    Returns:
        The decoded document, unchanged

    Raises:
        SchemaViolationError: On invalid JSON, a missing root key or a
            document that fails model validation
    """
    try:
        document = json.loads(body)
    except json.JSONDecodeError as e:
        raise SchemaViolationError(
            "Response is not valid JSON", schema=prompt.name, error=str(e), **context
        ) from e

    if not isinstance(document, dict) or prompt.root_key not in document:
        raise SchemaViolationError(
            f"Response lacks '{prompt.root_key}'", schema=prompt.name, **context
        )

    try:
        model.model_validate(document)
    except ValidationError as e:
        raise SchemaViolationError(
            "Response does not match schema",
            schema=prompt.name,
            errors=e.error_count(),
            **context,
        ) from e

    return document


class IngredientNormalizer:
    """Normalize a recipe's raw ingredient sections.

    Attributes:
        provider: Structured-output provider (or chain)
        prompt: System prompt and schema, replaceable in tests
        denylist: Section names never sent for normalization
    """

    def __init__(
        self,
        provider: StructuredCompletionProvider,
        prompt: NormalizationPrompt = INGREDIENTS_PROMPT,
        denylist: Iterable[str] = SECTION_DENYLIST,
    ) -> None:
        self.provider = provider
        self.prompt = prompt
        self.denylist = frozenset(denylist)

    def normalize(self, recipe: Recipe) -> dict[str, Any]:
        """Return the validated ``{"ingredients": [...]}`` document."""
        payload = build_ingredient_payload(recipe.ingredients, self.denylist)
        logger.info(
            f"Recipe {recipe.id}: normalizing {len(payload)} ingredient sections "
            f"via {self.provider.name}"
        )
        body = self.provider.submit(payload, self.prompt)
        return parse_structured_response(
            body, self.prompt, PreparedIngredients, recipe_id=recipe.id
        )


class StepNormalizer:
    """Rewrite a recipe's steps into complete instructions."""

    def __init__(
        self, provider: StructuredCompletionProvider, prompt: NormalizationPrompt = STEPS_PROMPT
    ) -> None:
        self.provider = provider
        self.prompt = prompt

    def normalize(self, recipe: Recipe) -> list[dict[str, Any]]:
        """Return the validated list of ``{"text": ...}`` steps."""
        payload = {
            "name": recipe.name,
            "steps": [step.model_dump() for step in recipe.steps],
        }
        logger.info(f"Recipe {recipe.id}: normalizing {len(recipe.steps)} steps")
        body = self.provider.submit(payload, self.prompt)
        document = parse_structured_response(body, self.prompt, PreparedSteps, recipe_id=recipe.id)
        return document["steps"]
