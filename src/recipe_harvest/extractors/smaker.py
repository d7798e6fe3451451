"""Extractor for smaker.pl.

Recipe pages carry a JSON-LD ``Recipe`` document. Its ``recipeIngredient``
list is flat, so sectioned ingredients are read from the page's embedded
application state instead: the object whose ``"id"`` equals the numeric
recipe id in the URL holds an ``"ingredients"`` array of named groups.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from ..models import IngredientItem, IngredientSection, RecipeRecord, RecipeStep, SourceType
from .base import SourceExtractor, attr_of, make_soup, text_of
from .text import clean_text, iso_duration_to_phrase, parse_datetime, to_float, to_int, unique

logger = logging.getLogger(__name__)

RECIPE_PATH_RE = re.compile(r"/przepisy-[\w-]+/przepis-[\w-]+,\d+,\w+\.html$")
RECIPE_ID_RE = re.compile(r",(\d+),\w+\.html")
PAGE_PARAM_RE = re.compile(r"[?&]page=(\d+)")
CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
INGREDIENTS_KEY_RE = re.compile(r'"ingredients"\s*:\s*(?=\[)')


def _as_text(value: Any) -> str | None:
    """Flatten a JSON-LD scalar or list into one string."""
    if value is None:
        return None
    if isinstance(value, list):
        return clean_text(", ".join(str(v) for v in value if v)) if value else None
    return clean_text(str(value))


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


class SmakerExtractor(SourceExtractor):
    source_type = SourceType.SMAKER
    base_url = "https://smaker.pl"

    def parse_category_page(self, html: str) -> list[str]:
        soup = make_soup(html)
        urls: list[str] = []
        for link in soup.select('a[href*=",smaker.html"]'):
            href = attr_of(link, "href")
            if not href or "#" in href or not RECIPE_PATH_RE.search(href):
                continue
            urls.append(href if href.startswith("http") else self.base_url + href)
        return unique(urls)

    def get_last_page_number(self, html: str) -> int:
        soup = make_soup(html)
        pages = [1]
        for link in soup.select('div[class*="pagination--component"] a[href*="page="]'):
            match = PAGE_PARAM_RE.search(attr_of(link, "href") or "")
            if match:
                pages.append(int(match.group(1)))

        last = to_int(text_of(soup.select_one('span[class*="pagination--item"][class*="-last"] a')))
        if last:
            pages.append(last)
        return max(pages)

    def _paginate(self, category_url: str, page: int) -> str:
        parts = urlsplit(category_url)
        query = parse_qs(parts.query, keep_blank_values=True)
        query["page"] = [str(page)]
        return urlunsplit(parts._replace(query=urlencode(query, doseq=True)))

    def parse_recipe(self, html: str, url: str) -> RecipeRecord:
        soup = make_soup(html)
        data = self._recipe_json_ld(soup)

        author = data.get("author")
        if isinstance(author, list):
            author = author[0] if author else None
        if isinstance(author, dict):
            author = author.get("name")

        keywords = data.get("keywords")
        if isinstance(keywords, str):
            keywords = keywords.split(",")
        elif not isinstance(keywords, list):
            keywords = []

        rating = data.get("aggregateRating") or {}

        return RecipeRecord(
            url=url,
            name=_as_text(data.get("name")) or text_of(soup.select_one('h1[class*="title"]')),
            author=_as_text(author),
            published_at=parse_datetime(_as_text(data.get("datePublished"))),
            category=_as_text(data.get("recipeCategory")),
            cuisine=_as_text(data.get("recipeCuisine")),
            description=_as_text(data.get("description")),
            prep_time=iso_duration_to_phrase(_as_text(data.get("prepTime"))),
            cook_time=iso_duration_to_phrase(_as_text(data.get("cookTime"))),
            total_time=iso_duration_to_phrase(_as_text(data.get("totalTime"))),
            servings=_as_text(data.get("recipeYield")),
            ingredients=self._embedded_ingredients(html, url) or self._json_ld_ingredients(data),
            steps=self._steps(data),
            images=self._images(data.get("image")),
            rating_value=to_float(rating.get("ratingValue")) if isinstance(rating, dict) else None,
            rating_count=to_int(rating.get("ratingCount")) if isinstance(rating, dict) else None,
            keywords=unique(_as_text(k) for k in keywords) or None,
        )

    @staticmethod
    def _recipe_json_ld(soup: BeautifulSoup) -> dict[str, Any]:
        for script in soup.select('script[type="application/ld+json"]'):
            raw = CONTROL_CHARS_RE.sub(" ", script.string or script.get_text())
            try:
                data = json.loads(re.sub(r"\s+", " ", raw))
            except json.JSONDecodeError:
                continue
            if isinstance(data, dict):
                candidates = data.get("@graph", [data])
                if not isinstance(candidates, list):
                    candidates = [candidates]
            elif isinstance(data, list):
                candidates = data
            else:
                continue
            for candidate in candidates:
                if isinstance(candidate, dict) and candidate.get("@type") == "Recipe":
                    return candidate
        return {}

    @staticmethod
    def _embedded_ingredients(html: str, url: str) -> list[IngredientSection]:
        match = RECIPE_ID_RE.search(url)
        if not match:
            return []

        id_match = re.search(rf'"id"\s*:\s*{match.group(1)}\b', html)
        if not id_match:
            return []
        key_match = INGREDIENTS_KEY_RE.search(html, id_match.end())
        if not key_match:
            return []

        try:
            groups, _ = json.JSONDecoder().raw_decode(html, key_match.end())
        except json.JSONDecodeError:
            logger.debug(f"Embedded ingredients are not valid JSON: {url}")
            return []

        sections: list[IngredientSection] = []
        for group in groups if isinstance(groups, list) else []:
            if not isinstance(group, dict):
                continue
            items = [
                IngredientItem(name=name)
                for name in (
                    _as_text(item.get("name")) if isinstance(item, dict) else None
                    for item in _as_list(group.get("items"))
                )
                if name
            ]
            if items:
                sections.append(IngredientSection(section=_as_text(group.get("name")), items=items))
        return sections

    @staticmethod
    def _json_ld_ingredients(data: dict[str, Any]) -> list[IngredientSection]:
        raw = data.get("recipeIngredient")
        if not isinstance(raw, list):
            return []
        items = [IngredientItem(name=name) for name in (clean_text(str(i)) for i in raw) if name]
        return [IngredientSection(section=None, items=items)] if items else []

    @staticmethod
    def _steps(data: dict[str, Any]) -> list[RecipeStep]:
        instructions = data.get("recipeInstructions")
        if not isinstance(instructions, list):
            return []

        steps: list[RecipeStep] = []
        for instruction in instructions:
            if not isinstance(instruction, dict) or instruction.get("@type") != "HowToStep":
                continue
            image = instruction.get("image")
            if isinstance(image, dict):
                image = image.get("url")
            steps.append(
                RecipeStep(
                    ordinal=len(steps) + 1,
                    name=_as_text(instruction.get("name")),
                    text=_as_text(instruction.get("text")) or "",
                    image=image if isinstance(image, str) else None,
                )
            )
        return steps

    @staticmethod
    def _images(value: Any) -> list[str] | None:
        if isinstance(value, str):
            candidates: list[Any] = [value]
        elif isinstance(value, dict):
            candidates = [value.get("url")]
        elif isinstance(value, list):
            candidates = [v.get("url") if isinstance(v, dict) else v for v in value]
        else:
            candidates = []
        return unique(c for c in candidates if isinstance(c, str)) or None
