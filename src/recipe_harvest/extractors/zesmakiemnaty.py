"""Extractor for zesmakiemnaty.pl.

A WordPress blog without recipe microdata. Most fields come from the
``info-bar`` block and OpenGraph tags; steps are the paragraphs that follow
the "Przygotowanie" heading inside the post body.
"""

from __future__ import annotations

import re
from datetime import datetime

from bs4 import BeautifulSoup

from ..models import IngredientItem, IngredientSection, RecipeRecord, RecipeStep, SourceType
from .base import SourceExtractor, attr_of, make_soup, text_of
from .text import parse_datetime, unique

PAGE_RE = re.compile(r"/page/(\d+)/?")
DATE_RE = re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4})")
EXCLUDED_PATHS = ("/category/", "/tag/", "/page/")

PREPARATION_HEADER_RE = re.compile(r"^Przygotowanie\s*:?\s*$", re.IGNORECASE)
PREPARATION_INLINE_RE = re.compile(r"^Przygotowanie\s*:\s*(.+)$", re.IGNORECASE | re.DOTALL)
INGREDIENTS_RE = re.compile(r"^Składniki", re.IGNORECASE)
CLOSING_RE = re.compile(r"^(Ciesz się smakiem|Smacznego)", re.IGNORECASE)
MIN_STEP_LENGTH = 5

DEFAULT_AUTHOR = "Sylwia"


class ZeSmakiemNaTyExtractor(SourceExtractor):
    source_type = SourceType.ZE_SMAKIEM_NA_TY
    base_url = "https://zesmakiemnaty.pl"

    def parse_category_page(self, html: str) -> list[str]:
        soup = make_soup(html)
        urls: list[str] = []
        for link in soup.select('div[class*="post-card"] div[class*="thumbnail-box"] > a'):
            href = attr_of(link, "href")
            if not href or "#" in href:
                continue
            if any(part in href for part in EXCLUDED_PATHS):
                continue
            if href.startswith(self.base_url):
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
        prep_time = text_of(soup.select_one('div[class*="info-bar"] div[class*="time"] strong'))

        return RecipeRecord(
            url=url,
            name=text_of(soup.select_one("article h1, main h1")),
            author=attr_of(soup.select_one('meta[name="author"]'), "content") or DEFAULT_AUTHOR,
            published_at=self._published_at(soup),
            modified_at=parse_datetime(
                attr_of(soup.select_one('meta[property="article:modified_time"]'), "content")
            ),
            category=self._category(soup),
            description=attr_of(soup.select_one('meta[property="og:description"]'), "content"),
            prep_time=prep_time,
            total_time=prep_time,
            ingredients=self._ingredients(soup),
            steps=self._steps(soup),
            images=self._images(soup),
            keywords=unique(
                text_of(tag) for tag in soup.select('div[class*="tags"] a[rel="tag"]')
            )
            or None,
            difficulty=text_of(soup.select_one('div[class*="info-bar"] div[class*="rank"] strong')),
        )

    @staticmethod
    def _published_at(soup: BeautifulSoup) -> datetime | None:
        text = text_of(soup.select_one('div[class*="info-bar"] div[class*="date"]'))
        if text:
            match = DATE_RE.search(text)
            if match:
                day, month, year = match.groups()
                return parse_datetime(f"{day}.{month}.{year}", formats=("%d.%m.%Y",))
        return parse_datetime(
            attr_of(soup.select_one('meta[property="article:published_time"]'), "content")
        )

    @staticmethod
    def _category(soup: BeautifulSoup) -> str | None:
        crumbs = soup.select("p#breadcrumbs a")
        if len(crumbs) >= 2:
            return text_of(crumbs[-1])
        return None

    @staticmethod
    def _ingredients(soup: BeautifulSoup) -> list[IngredientSection]:
        items = [
            IngredientItem(name=name)
            for name in (
                text_of(li)
                for li in soup.select('div[class*="wp-block-group"] ul[class*="wp-block-list"] > li')
            )
            if name
        ]
        return [IngredientSection(section=None, items=items)] if items else []

    @staticmethod
    def _steps(soup: BeautifulSoup) -> list[RecipeStep]:
        steps: list[RecipeStep] = []
        in_preparation = False

        for paragraph in soup.select('div[class*="gutenberg-wrapper"] p'):
            text = text_of(paragraph)
            if not text or len(text) < MIN_STEP_LENGTH:
                continue

            if PREPARATION_HEADER_RE.match(text):
                in_preparation = True
                continue

            inline = PREPARATION_INLINE_RE.match(text)
            if inline:
                in_preparation = True
                text = inline.group(1).strip()
                if not text:
                    continue

            if INGREDIENTS_RE.match(text) or CLOSING_RE.match(text):
                continue

            if in_preparation:
                steps.append(RecipeStep(ordinal=len(steps) + 1, text=text))

        return steps

    @staticmethod
    def _images(soup: BeautifulSoup) -> list[str] | None:
        images = unique(
            attr_of(img, "src") for img in soup.select('div[class*="gutenberg-wrapper"] figure img')
        )
        if not images:
            images = unique([attr_of(soup.select_one('meta[property="og:image"]'), "content")])
        return images or None
