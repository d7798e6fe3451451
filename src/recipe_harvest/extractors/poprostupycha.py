"""Extractor for poprostupycha.com.pl.

Partial microdata: name, times, yield, rating and steps carry ``itemprop``
attributes, the rest is theme markup. Minutes are written in the short
``min`` form the site itself uses, and the total time is the sum of the
preparation and cooking times.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Tag

from ..models import IngredientItem, IngredientSection, RecipeRecord, RecipeStep, SourceType
from .base import SourceExtractor, attr_of, make_soup, text_of
from .text import (
    duration_minutes,
    iso_duration_to_phrase,
    minutes_to_phrase,
    parse_datetime,
    to_float,
    to_int,
    unique,
)

PAGE_RE = re.compile(r"/page/(\d+)/?")
GENERIC_SECTION = "Składniki"
DIFFICULTY_LABEL = "Poziom trudności"


def _items(nodes: list[Tag]) -> list[IngredientItem]:
    return [IngredientItem(name=name) for name in (text_of(node) for node in nodes) if name]


def _image_source(img: Tag) -> str | None:
    """First real image URL of a lazily loaded ``img``, skipping data: placeholders."""
    for attribute in ("src", "data-lazy-src"):
        value = attr_of(img, attribute)
        if value and not value.startswith("data:"):
            return value
    return None


class PoprostuPychaExtractor(SourceExtractor):
    source_type = SourceType.POPROSTUPYCHA
    base_url = "https://poprostupycha.com.pl"
    author = "Po Prostu Pycha"

    def parse_category_page(self, html: str) -> list[str]:
        soup = make_soup(html)
        urls: list[str] = []
        for link in soup.select('article[class*="article-blog"] a[itemprop="url"]'):
            href = attr_of(link, "href")
            if not href or "#" in href:
                continue
            if "/przepis/" in href:
                urls.append(href.rstrip("/"))
        return unique(urls)

    def get_last_page_number(self, html: str) -> int:
        soup = make_soup(html)
        pages = [1]
        for link in soup.select('a[href*="/page/"]'):
            match = PAGE_RE.search(attr_of(link, "href") or "")
            if match:
                pages.append(int(match.group(1)))
        return max(pages)

    def _paginate(self, category_url: str, page: int) -> str:
        return f"{category_url.rstrip('/')}/page/{page}/"

    def parse_recipe(self, html: str, url: str) -> RecipeRecord:
        soup = make_soup(html)

        def meta(prop: str) -> str | None:
            return attr_of(soup.select_one(f'meta[itemprop="{prop}"]'), "content")

        prep, cook = meta("prepTime"), meta("cookTime")
        category = soup.select_one('a[rel="category tag"]')

        return RecipeRecord(
            url=url,
            name=text_of(soup.select_one('h1[itemprop="name"], h1[class*="entry-title"]')),
            author=self.author,
            published_at=parse_datetime(
                attr_of(soup.select_one('meta[property="article:published_time"]'), "content")
            ),
            modified_at=parse_datetime(
                attr_of(soup.select_one('meta[property="article:modified_time"]'), "content")
            ),
            category=text_of(category),
            description=(
                attr_of(soup.select_one('meta[property="og:description"]'), "content")
                or text_of(soup.select_one('div[class*="recipe-desc"] p'))
            ),
            prep_time=iso_duration_to_phrase(prep, short_minutes=True),
            cook_time=iso_duration_to_phrase(cook, short_minutes=True),
            total_time=minutes_to_phrase(
                duration_minutes(prep) + duration_minutes(cook), short_minutes=True
            ),
            servings=text_of(soup.select_one('[itemprop="recipeYield"]')),
            ingredients=self._ingredients(soup),
            steps=self._steps(soup),
            images=self._images(soup),
            rating_value=to_float(text_of(soup.select_one('[itemprop="ratingValue"]'))),
            rating_count=to_int(text_of(soup.select_one('[itemprop="ratingCount"]'))),
            keywords=unique(
                text_of(tag) for tag in soup.select('a[rel="category tag"], a[rel="tag"]')
            )
            or None,
            difficulty=self._difficulty(soup),
        )

    @staticmethod
    def _difficulty(soup: BeautifulSoup) -> str | None:
        icon = soup.select_one('div[class*="prep-more-info"] i[class*="icon-easy"]')
        if icon is not None:
            value = text_of(icon.find_next("p"))
            if value:
                return value

        for label in soup.select('div[class*="prep-more-info-p"] > p'):
            if DIFFICULTY_LABEL in label.get_text():
                return text_of(label.find_next_sibling("p"))
        return None

    @staticmethod
    def _ingredients(soup: BeautifulSoup) -> list[IngredientSection]:
        container = soup.select_one("div#ingredients")
        if container is None:
            items = _items(soup.select('li[itemprop="recipeIngredient"]'))
            return [IngredientSection(section=None, items=items)] if items else []

        headers = container.select('p[class*="ingredients-p"]')
        if len(headers) <= 1:
            items = _items(container.select('li[class*="ingredient"]'))
            return [IngredientSection(section=None, items=items)] if items else []

        lists = container.select("ul")
        sections: list[IngredientSection] = []
        for index, header in enumerate(headers):
            if index >= len(lists):
                break
            items = _items(lists[index].select("li"))
            if not items:
                continue
            name = (text_of(header) or "").rstrip(":").strip()
            sections.append(
                IngredientSection(
                    section=name if name and name != GENERIC_SECTION else None,
                    items=items,
                )
            )
        return sections

    @staticmethod
    def _steps(soup: BeautifulSoup) -> list[RecipeStep]:
        steps: list[RecipeStep] = []
        blocks = soup.select('div[class*="step"][itemprop="recipeInstructions"]')
        for index, block in enumerate(blocks, start=1):
            text = text_of(block.select_one('[itemprop="text"]'))
            if not text:
                continue
            number = to_int(text_of(block.select_one('div[class*="step-numb"]')))
            img = block.find("img")
            steps.append(
                RecipeStep(
                    ordinal=number or index,
                    text=text,
                    image=_image_source(img) if img is not None else None,
                )
            )
        return steps

    @staticmethod
    def _images(soup: BeautifulSoup) -> list[str] | None:
        images = unique(
            src
            for src in (attr_of(img, "src") for img in soup.select('picture[itemprop="image"] img'))
            if src and not src.startswith("data:")
        )
        if not images:
            images = unique(
                attr_of(node, "content") for node in soup.select('meta[property="og:image"]')
            )
        return images or None
