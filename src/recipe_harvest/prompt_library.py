"""
Prompt Library for Structured Normalization
===========================================

System prompts and strict JSON Schemas for the two enrichment steps:

- Ingredient normalization: free-text quantities become a number plus a unit
  in its base form, and every ingredient gets a category and an optional flag.
- Step normalization: terse steps are rewritten into complete, explicit
  instructions without dropping any original detail.

Schemas are sent with ``strict: true``, so every property is listed in
``required`` and objects forbid additional properties.
"""

from dataclasses import dataclass, field
from typing import Any

from .models import IngredientType


# =============================================================================
# PROMPT DEFINITIONS
# =============================================================================


@dataclass(frozen=True)
class NormalizationPrompt:
    """
    A system prompt paired with the schema its response must satisfy.

    Attributes:
        name: Schema name sent in ``response_format.json_schema.name``
        system_prompt: Instructions for the model
        schema: JSON Schema of the response document
        root_key: Top-level key the parsed document must contain
    """

    name: str
    system_prompt: str
    schema: dict[str, Any] = field(repr=False)
    root_key: str

    def response_format(self) -> dict[str, Any]:
        """Build the ``response_format`` argument for chat completions."""
        return {
            "type": "json_schema",
            "json_schema": {
                "name": self.name,
                "strict": True,
                "schema": self.schema,
            },
        }


# Ingredient sections that are never sent for normalization
SECTION_DENYLIST = frozenset({"Do podania"})

# Site artefacts stripped from section headings
SECTION_NAME_ARTEFACTS = (" [ więcej ]", "[ więcej ]", "[więcej]")

INGREDIENT_TYPES = [t.value for t in IngredientType]


INGREDIENTS_SYSTEM_PROMPT = """
Twoim zadaniem jest stworzyć ustrukturyzowany JSON ze składnikami przepisu.
Składniki mogą być podzielone na sekcje. Zachowaj nazwy sekcji z wejścia.

## Nazwa składnika
Nazwa ma być prosta, tak aby można było zbudować z niej tabelę składników:
- "ser mozarella" -> "mozarella"
- "naturalne masło orzechowe" -> "masło orzechowe"
- "świeżo siekany szczypior" -> "szczypiorek"
- "tortille pszenne" -> "tortilla"
- "pół główki kapusty" -> "kapusta"
- "płynny miód" -> "miód"

## Ilość (quantity) MUSI być liczbą
- "1 łyżka" -> quantity: 1, unit: "łyżka"
- "2 łyżki" -> quantity: 2, unit: "łyżka"
- "pół łyżeczki" lub "1/2 łyżeczki" -> quantity: 0.5, unit: "łyżeczka"
- "70 ml lub więcej" -> quantity: 70, unit: "ml"
- "20-22 sztuki" -> quantity: 20 (przy zakresie użyj pierwszej wartości)
- "1 łyżka - do 30 g" -> quantity: 1, unit: "łyżka" (ignoruj dodatkowe informacje)

## Jednostka (unit) bez liczby, w mianowniku liczby pojedynczej
- łyżki -> łyżka, łyżeczki -> łyżeczka, sztuki/szt -> sztuka, szklanki -> szklanka
- szczypty -> szczypta, gramy -> gram, kilogramy -> kilogram, litry -> litr
- mililitry -> mililitr, kawałki -> kawałek, ząbki -> ząbek, główki -> główka
- pęczki -> pęczek, plasterki -> plasterek
- skróty g, kg, ml, l pozostają bez zmian

## Kategoria (type)
- "owoc" - owoce (jabłka, banany, jagody)
- "warzywo" - warzywa (marchew, pomidory, cebula)
- "mięso" - mięso i wędliny
- "ryba" - ryby i owoce morza
- "nabiał" - mleko, ser, jogurt, śmietana
- "zboże" - mąka, makaron, ryż, kasza, chleb
- "przyprawa" - przyprawy i zioła
- "tłuszcz" - oleje, oliwa, masło, margaryna
- "orzech" - orzechy i nasiona
- "napój" - woda, sok, wino
- "słodycz" - cukier, miód, czekolada
- "inny" - wszystko, co nie pasuje do powyższych

## Wymagalność (required)
- true dla składników głównych (mięso, warzywa główne, makaron)
- false dla składników opcjonalnych (przyprawy do smaku, dekoracje)

## Zamienniki (substitutes)
Lista zamienników z nazwą, ilością i jednostką. Pusta tablica, jeśli brak.
"""


STEPS_SYSTEM_PROMPT = """
Jesteś doświadczonym kucharzem i autorem przepisów kulinarnych.

Przepisz kroki przepisu tak, aby były:
1. Jasne i zrozumiałe - czytelnik nie może się niczego domyślać
2. Kompletne - każdy krok zawiera potrzebne temperatury, czasy i ilości
3. Szczegółowe - opisz dokładnie, co robić i na co zwrócić uwagę
4. Zachęcające - pisz tak, aby zachęcić do gotowania
5. Praktyczne - dodaj wskazówki tam, gdzie są potrzebne

## Zasady
- Pisz po polsku
- Każdy krok to jedna logiczna czynność
- Zbyt ogólny krok rozwiń
- Brakujące wartości (temperatura, czas) uzupełnij sensownie na podstawie kontekstu
- Nie pomijaj żadnych informacji z oryginalnych kroków
- Nie dodawaj kroków typu "podaj" czy "smacznego"

## Format odpowiedzi
Tablica kroków w JSON. Każdy krok ma pole "text".
"""


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================


def _quantity_schema(subject: str) -> dict[str, Any]:
    return {
        "name": {"type": "string", "description": f"Nazwa {subject} w podstawowej formie"},
        "quantity": {
            "type": "number",
            "description": "Ilość jako liczba (np. 1, 2, 0.5, 70)",
        },
        "unit": {
            "type": "string",
            "description": 'Jednostka w mianowniku liczby pojedynczej, np. "łyżka", "sztuka"',
        },
    }


INGREDIENTS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "ingredients": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "section": {
                        "anyOf": [{"type": "string"}, {"type": "null"}],
                        "description": "Nazwa sekcji składników",
                    },
                    "items": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                **_quantity_schema("składnika"),
                                "type": {
                                    "type": "string",
                                    "enum": INGREDIENT_TYPES,
                                    "description": "Kategoria składnika",
                                },
                                "required": {
                                    "type": "boolean",
                                    "description": "true - wymagany, false - opcjonalny",
                                },
                                "substitutes": {
                                    "type": "array",
                                    "description": "Lista zamienników składnika",
                                    "items": {
                                        "type": "object",
                                        "properties": _quantity_schema("zamiennika"),
                                        "required": ["name", "quantity", "unit"],
                                        "additionalProperties": False,
                                    },
                                },
                            },
                            "required": ["name", "quantity", "unit", "type", "required", "substitutes"],
                            "additionalProperties": False,
                        },
                    },
                },
                "required": ["section", "items"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["ingredients"],
    "additionalProperties": False,
}


STEPS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "steps": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "text": {"type": "string", "description": "Szczegółowy opis kroku przepisu"},
                },
                "required": ["text"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["steps"],
    "additionalProperties": False,
}


INGREDIENTS_PROMPT = NormalizationPrompt(
    name="ingredients_schema",
    system_prompt=INGREDIENTS_SYSTEM_PROMPT,
    schema=INGREDIENTS_SCHEMA,
    root_key="ingredients",
)

STEPS_PROMPT = NormalizationPrompt(
    name="steps_schema",
    system_prompt=STEPS_SYSTEM_PROMPT,
    schema=STEPS_SCHEMA,
    root_key="steps",
)
