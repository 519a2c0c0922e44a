"""Text matching and parsing helpers shared by the CV evaluators."""

from __future__ import annotations

import re
from typing import Iterable, Sequence

import pendulum
from rapidfuzz import fuzz

_AMOUNT_PATTERN = re.compile(r"(\d+(?:[.,]\d+)*)\s*([kKmM])?")
_NOTICE_PATTERN = re.compile(r"(\d+)\s*(day|week|month)s?", re.IGNORECASE)
_IMMEDIATE_TERMS = ("immediate", "immediately", "now", "available")

_MONTH_FORMATS = ("MMM YYYY", "MMMM YYYY", "MM/YYYY", "YYYY-MM", "YYYY")
_PRESENT_TERMS = {"present", "current", "now", "ongoing", "today"}


def normalize(text: str) -> str:
    return " ".join(text.lower().split())


def fuzzy_contains(corpus: Sequence[str], keyword: str, *, min_similarity: float) -> bool:
    """True when ``keyword`` appears in, or fuzzily matches, any corpus entry."""
    needle = normalize(keyword)
    if not needle:
        return False
    for text in corpus:
        if needle in text:
            return True
        if fuzz.token_set_ratio(needle, text) >= min_similarity:
            return True
    return False


def match_keywords(
    corpus: Sequence[str],
    keywords: Iterable[str],
    *,
    min_similarity: float,
) -> tuple[list[str], list[str]]:
    matched: list[str] = []
    missing: list[str] = []
    for keyword in keywords:
        if not keyword or not keyword.strip():
            continue
        if fuzzy_contains(corpus, keyword, min_similarity=min_similarity):
            matched.append(keyword.strip())
        else:
            missing.append(keyword.strip())
    return matched, missing


def parse_amount(value: str | float | int | None) -> float | None:
    """Parse "R 45 000", "45k" or "1.2m" style amounts; the first number wins."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    compact = value.replace(" ", "").replace("\u00a0", "")
    match = _AMOUNT_PATTERN.search(compact)
    if match is None:
        return None
    digits, suffix = match.groups()
    if "," in digits and "." in digits:
        digits = digits.replace(",", "")
    elif digits.count(",") == 1 and len(digits.split(",")[1]) != 3:
        digits = digits.replace(",", ".")
    else:
        digits = digits.replace(",", "")
    try:
        amount = float(digits)
    except ValueError:
        return None
    if suffix in ("k", "K"):
        amount *= 1_000
    elif suffix in ("m", "M"):
        amount *= 1_000_000
    return amount


def notice_days(availability: str | None) -> int | None:
    """Days until a candidate can start, or ``None`` when unknown."""
    if not availability or not availability.strip():
        return None
    text = availability.strip().lower()
    match = _NOTICE_PATTERN.search(text)
    if match is not None:
        count, unit = int(match.group(1)), match.group(2).lower()
        return count * {"day": 1, "week": 7, "month": 30}[unit]
    if any(term in text for term in _IMMEDIATE_TERMS):
        return 0
    return None


def parse_month(value: str | None, *, default: pendulum.DateTime | None = None) -> pendulum.DateTime | None:
    """Parse CV month strings ("Jan 2020", "2020-01", "present")."""
    if value is None or not value.strip():
        return default
    text = value.strip()
    if text.lower() in _PRESENT_TERMS:
        return default
    for fmt in _MONTH_FORMATS:
        try:
            parsed = pendulum.from_format(text, fmt, tz="UTC")
        except ValueError:
            continue
        return parsed.start_of("month")
    try:
        parsed = pendulum.parse(text, strict=False)
    except (ValueError, pendulum.parsing.exceptions.ParserError):
        return default
    if not isinstance(parsed, pendulum.DateTime):
        return default
    return parsed.in_timezone("UTC")


__all__ = [
    "fuzzy_contains",
    "match_keywords",
    "normalize",
    "notice_days",
    "parse_amount",
    "parse_month",
]
