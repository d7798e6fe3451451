"""Text helpers shared by the source extractors.

Durations are rendered as Polish phrases. Polish picks the noun form from
the number: 1 takes the singular, 2-4 the paucal form and everything else
the genitive plural (``1 minuta``, ``3 minuty``, ``5 minut``).
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime
from typing import Any

ISO_DURATION_RE = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$",
    re.IGNORECASE,
)

HOUR_FORMS = ("godzina", "godziny", "godzin")
MINUTE_FORMS = ("minuta", "minuty", "minut")


def plural_form(count: int, forms: tuple[str, str, str]) -> str:
    """Pick the Polish noun form for ``count``.

    Example:
        >>> plural_form(4, MINUTE_FORMS)
        'minuty'
    """
    singular, paucal, plural = forms
    if count == 1:
        return singular
    if count < 5:
        return paucal
    return plural


def parse_iso_duration(value: Any) -> tuple[int, int] | None:
    """Split an ISO-8601 duration into (hours, minutes).

    Days are folded into hours. Seconds are ignored.

    Returns:
        Tuple of hours and minutes, or None if the value is not a duration
    """
    if not value or not isinstance(value, str):
        return None
    match = ISO_DURATION_RE.match(value.strip())
    if not match:
        return None
    days = int(match.group("days") or 0)
    hours = int(match.group("hours") or 0) + days * 24
    minutes = int(match.group("minutes") or 0)
    return hours, minutes


def duration_minutes(value: Any) -> int:
    """Total minutes of an ISO-8601 duration, 0 when absent or invalid."""
    parsed = parse_iso_duration(value)
    if parsed is None:
        return 0
    hours, minutes = parsed
    return hours * 60 + minutes


def format_duration(hours: int, minutes: int, short_minutes: bool = False) -> str | None:
    """Render hours and minutes as a Polish phrase.

    Args:
        hours: Whole hours
        minutes: Remaining minutes
        short_minutes: Use the abbreviated ``min`` instead of inflected forms

    Returns:
        Phrase such as ``1 godzina 30 minut``, or None for a zero duration
    """
    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours} {plural_form(hours, HOUR_FORMS)}")
    if minutes > 0:
        unit = "min" if short_minutes else plural_form(minutes, MINUTE_FORMS)
        parts.append(f"{minutes} {unit}")
    return " ".join(parts) or None


def iso_duration_to_phrase(value: Any, short_minutes: bool = False) -> str | None:
    """Convert an ISO-8601 duration into a Polish phrase.

    Example:
        >>> iso_duration_to_phrase("PT1H30M")
        '1 godzina 30 minut'
        >>> iso_duration_to_phrase("PT0M") is None
        True
    """
    parsed = parse_iso_duration(value)
    if parsed is None:
        return None
    return format_duration(*parsed, short_minutes=short_minutes)


def minutes_to_phrase(total: int, short_minutes: bool = False) -> str | None:
    """Render a minute count as a Polish duration phrase."""
    if total <= 0:
        return None
    return format_duration(total // 60, total % 60, short_minutes=short_minutes)


def parse_datetime(value: Any, formats: Iterable[str] = ()) -> datetime | None:
    """Parse an ISO-8601 timestamp, then each of ``formats`` in turn."""
    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in formats:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def clean_text(value: Any) -> str | None:
    """Collapse whitespace. Empty and non-string values become None."""
    if not isinstance(value, str):
        return None
    cleaned = re.sub(r"\s+", " ", value).strip()
    return cleaned or None


def unique(values: Iterable[str | None]) -> list[str]:
    """Drop empty and repeated values, keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def to_int(value: str | int | None) -> int | None:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def to_float(value: str | float | None) -> float | None:
    if value is None:
        return None
    try:
        return float(str(value).strip().replace(",", "."))
    except ValueError:
        return None
