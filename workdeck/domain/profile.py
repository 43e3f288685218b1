"""
Profile field normalization.

Clients send some profile fields in more than one shape. These helpers turn
them into a single canonical form or raise InvalidInput.
"""

import math
from collections.abc import Iterable

from .exceptions import InvalidInput

MIN_HOURLY_RATE = 1.0
MAX_HOURLY_RATE = 10000.0


def normalize_skills(skills: str | Iterable[str]) -> list[str]:
    """
    Normalize skills to a list of distinct, non-empty strings.

    A string is split on commas. Order of first appearance is kept.

    Raises:
        InvalidInput: If skills is neither a string nor a list of strings
    """
    if isinstance(skills, str):
        items: Iterable[object] = skills.split(",")
    elif isinstance(skills, (list, tuple)):
        items = skills
    else:
        raise InvalidInput("Skills must be a comma-separated string or a list")

    normalized: list[str] = []
    for item in items:
        if not isinstance(item, str):
            raise InvalidInput("Each skill must be a string")
        skill = item.strip()
        if skill and skill not in normalized:
            normalized.append(skill)
    return normalized


def parse_hourly_rate(value: float | int | str) -> float:
    """
    Parse an hourly rate given as a number or numeric string.

    Raises:
        InvalidInput: If value is not numeric or outside the accepted range
    """
    if isinstance(value, bool):
        raise InvalidInput("Hourly rate must be a number")
    try:
        rate = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise InvalidInput("Hourly rate must be a number") from None
    if not math.isfinite(rate) or not MIN_HOURLY_RATE <= rate <= MAX_HOURLY_RATE:
        raise InvalidInput(f"Hourly rate must be between {MIN_HOURLY_RATE:g} and {MAX_HOURLY_RATE:g}")
    return rate


def clean_text(value: str | None) -> str | None:
    """Strip whitespace; blank strings become None."""
    if value is None:
        return None
    value = value.strip()
    return value or None
