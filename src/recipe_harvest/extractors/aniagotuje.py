"""Extractor for aniagotuje.pl.

The site publishes schema.org microdata (``itemprop`` attributes) for most
fields. Newer recipes wrap each step in a ``recipeInstructions`` block;
older ones keep steps as loose paragraphs between the ingredient list and
the share box, with photos in ``img-placeholder`` divs.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Tag

from ..models import IngredientItem, IngredientSection, RecipeRecord, RecipeStep, SourceType
from .base import SourceExtractor, attr_of, make_soup, text_of
from .text import iso_duration_to_phrase, parse_datetime, to_float, to_int, unique

RECIPE_PATH_RE = re.compile(r"^/przepis/[\w-]+$")
PAGE_RE = re.compile(r"/strona/(\d+)")
DIET_RE = re.compile(r"/([^/]+)Diet$")

DIET_NAMES = {
    "GlutenFree": "bezglutenowa",
    "Vegetarian": "wegetariańska",
    "Vegan": "wegańska",
    "LowCalorie": "niskokaloryczna",
    "LowFat": "niskotłuszczowa",
    "LowCarb": "niskowęglowodanowa",
}

NUTRITION_PROPS = {
    "calories": "calories",
    "carbohydrateContent": "carbs",
    "sugarContent": "sugar",
    "proteinContent": "protein",
    "fatContent": "fat",
}

# Containers whose paragraphs are never preparation steps on legacy pages
LEGACY_EXCLUDED = (
    ("div", "article-intro"),
    ("p", "recipe-info"),
    ("div", "copy-share-lock-con"),
    ("div", "ads-slot-article"),
)
LEGACY_SKIP_RE = re.compile(r"^(Czas|Liczba porcji|Dieta|Składniki)")
MIN_LEGACY_STEP_LENGTH = 10


class AniaGotujeExtractor(SourceExtractor):
    source_type = SourceType.ANIA_GOTUJE
    base_url = "https://aniagotuje.pl"

    def parse_category_page(self, html: str) -> list[str]:
        soup = make_soup(html)
        urls: list[str] = []
        for link in soup.select('a[href*="/przepis/"]'):
            href = attr_of(link, "href")
            if not href or href == "#":
                continue
            if RECIPE_PATH_RE.match(href):
                urls.append(self.base_url + href)
        return unique(urls)

    def get_last_page_number(self, html: str) -> int:
        soup = make_soup(html)
        pages = [1]
        for link in soup.select('ul.pagination a[href*="/strona/"]'):
            match = PAGE_RE.search(attr_of(link, "href") or "")
            if match:
                pages.append(int(match.group(1)))
        return max(pages)

    def _paginate(self, category_url: str, page: int) -> str:
        return f"{category_url.rstrip('/')}/strona/{page}"

    def parse_recipe(self, html: str, url: str) -> RecipeRecord:
        soup = make_soup(html)

        def meta(prop: str) -> str | None:
            return attr_of(soup.select_one(f'meta[itemprop="{prop}"]'), "content")

        keywords = meta("keywords")

        return RecipeRecord(
            url=url,
            name=text_of(soup.select_one('h1[itemprop="name"]')),
            author=attr_of(
                soup.select_one('div[itemprop="author"] meta[itemprop="name"]'), "content"
            ),
            published_at=parse_datetime(meta("datePublished")),
            modified_at=parse_datetime(meta("dateModified")),
            category=meta("recipeCategory"),
            cuisine=meta("recipeCuisine"),
            description=meta("description"),
            prep_time=iso_duration_to_phrase(meta("prepTime")),
            cook_time=iso_duration_to_phrase(meta("cookTime")),
            total_time=iso_duration_to_phrase(meta("totalTime")),
            servings=meta("recipeYield"),
            nutrition=self._nutrition(soup),
            ingredients=self._ingredients(soup),
            steps=self._steps(soup),
            images=unique(
                attr_of(node, "content") for node in soup.select('meta[itemprop="image"]')
            )
            or None,
            rating_value=to_float(self._prop_value(soup, "ratingValue")),
            rating_count=to_int(self._prop_value(soup, "ratingCount")),
            comment_count=to_int(meta("commentCount")),
            diet=self._diet(soup),
            keywords=unique(k.strip() for k in keywords.split(",")) or None if keywords else None,
        )

    @staticmethod
    def _prop_value(soup: BeautifulSoup, prop: str) -> str | None:
        node = soup.select_one(f'[itemprop="{prop}"]')
        if node is None:
            return None
        return attr_of(node, "content") or text_of(node)

    def _nutrition(self, soup: BeautifulSoup) -> dict[str, str] | None:
        nutrition: dict[str, str] = {}
        for prop, key in NUTRITION_PROPS.items():
            value = self._prop_value(soup, prop)
            if value:
                nutrition[key] = value
        return nutrition or None

    @staticmethod
    def _diet(soup: BeautifulSoup) -> str | None:
        href = attr_of(soup.select_one('link[itemprop="suitableForDiet"]'), "href")
        if not href:
            return None
        match = DIET_RE.search(href)
        if not match:
            return None
        return DIET_NAMES.get(match.group(1), match.group(1))

    @staticmethod
    def _ingredient_items(nodes: list[Tag]) -> list[IngredientItem]:
        items: list[IngredientItem] = []
        for li in nodes:
            name = text_of(li.select_one("span.ingredient")) or text_of(li)
            if not name:
                continue
            items.append(IngredientItem(name=name, quantity=text_of(li.select_one("span.qty"))))
        return items

    def _ingredients(self, soup: BeautifulSoup) -> list[IngredientSection]:
        container = soup.select_one("#recipeIngredients")
        if container is None:
            return []

        headers = container.select("p.ing-header")
        lists = container.select("ul.recipe-ing-list")
        if not headers:
            items = self._ingredient_items(container.select("ul li"))
            return [IngredientSection(section=None, items=items)] if items else []

        sections: list[IngredientSection] = []
        for header, ul in zip(headers, lists, strict=False):
            items = self._ingredient_items(ul.select("li"))
            if items:
                sections.append(IngredientSection(section=text_of(header), items=items))
        return sections

    def _steps(self, soup: BeautifulSoup) -> list[RecipeStep]:
        blocks = soup.select('div[itemprop="recipeInstructions"]')
        if not blocks:
            return []
        if blocks[0].select_one('meta[itemprop="position"]') is not None:
            return self._structured_steps(blocks)
        # Legacy pages keep every step as a paragraph of the first block
        return self._legacy_steps(blocks[0])

    @staticmethod
    def _structured_steps(blocks: list[Tag]) -> list[RecipeStep]:
        steps: list[RecipeStep] = []
        for index, block in enumerate(blocks, start=1):
            paragraphs = [text_of(p) for p in block.select('div[itemprop="text"] p')]
            text = "\n".join(p for p in paragraphs if p)
            if not text:
                text = text_of(block.select_one('[itemprop="text"]')) or ""
            if not text:
                continue
            position = to_int(attr_of(block.select_one('meta[itemprop="position"]'), "content"))
            steps.append(
                RecipeStep(
                    ordinal=position or index,
                    name=text_of(block.select_one('span[itemprop="name"]')),
                    text=text,
                    image=attr_of(block.select_one('img[itemprop="image"]'), "src"),
                )
            )
        return steps

    def _legacy_steps(self, container: Tag) -> list[RecipeStep]:
        steps: list[RecipeStep] = []
        for paragraph in container.find_all("p"):
            if self._is_excluded(paragraph):
                continue
            text = text_of(paragraph)
            if not text or len(text) < MIN_LEGACY_STEP_LENGTH or LEGACY_SKIP_RE.match(text):
                continue
            steps.append(
                RecipeStep(
                    ordinal=len(steps) + 1,
                    text=text,
                    image=self._following_image(paragraph),
                )
            )
        return steps

    @staticmethod
    def _is_excluded(paragraph: Tag) -> bool:
        classes = paragraph.get("class") or []
        if "recipe-info" in classes or "ing-header" in classes:
            return True
        if paragraph.find_parent(id="recipeIngredients") is not None:
            return True
        return any(
            paragraph.find_parent(tag, class_=css_class) is not None
            for tag, css_class in LEGACY_EXCLUDED
        )

    @staticmethod
    def _following_image(paragraph: Tag) -> str | None:
        for sibling in paragraph.find_next_siblings():
            if sibling.name == "p":
                return None
            if sibling.name == "div" and "img-placeholder" in (sibling.get("class") or []):
                return attr_of(sibling.find("img"), "src")
        return None
