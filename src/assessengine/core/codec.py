"""Per-format encode/decode between wire values and typed responses."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass
from typing import Any, ClassVar, Sequence, Union

from ..errors import InvalidFormatError
from ..schemas.blueprint import ItemFormat

TRUE_FALSE_DOMAIN: tuple[str, str] = ("True", "False")
LIKERT_MIN = 1
LIKERT_MAX = 5


@dataclass(frozen=True, slots=True)
class SingleChoice:
    """Exactly one option (mcq, true_false)."""

    format: ItemFormat
    choice: str


@dataclass(frozen=True, slots=True)
class MultiChoice:
    format: ClassVar[ItemFormat] = ItemFormat.MULTI_SELECT
    choices: frozenset[str]


@dataclass(frozen=True, slots=True)
class LikertRating:
    format: ClassVar[ItemFormat] = ItemFormat.LIKERT
    rating: int


@dataclass(frozen=True, slots=True)
class FreeText:
    format: ClassVar[ItemFormat] = ItemFormat.SHORT_ANSWER
    text: str


@dataclass(frozen=True, slots=True)
class Ranking:
    """Total order over every option of an sjt_rank item."""

    format: ClassVar[ItemFormat] = ItemFormat.SJT_RANK
    order: tuple[str, ...]


Response = Union[SingleChoice, MultiChoice, LikertRating, FreeText, Ranking]

WireValue = Union[str, int, list]


def decode(format: ItemFormat | str, raw: Any, options: Sequence[str] | None = None) -> Response:
    """Decode a wire value for ``format``; ``options`` enables membership checks."""

    fmt = _coerce_format(format)
    if raw is None:
        raise InvalidFormatError(fmt.value, "response is missing", raw)
    if fmt is ItemFormat.MCQ:
        return SingleChoice(fmt, _decode_choice(fmt, raw, options))
    if fmt is ItemFormat.TRUE_FALSE:
        return SingleChoice(fmt, _decode_true_false(raw))
    if fmt is ItemFormat.MULTI_SELECT:
        return MultiChoice(_decode_multi(raw, options))
    if fmt is ItemFormat.LIKERT:
        return LikertRating(_decode_likert(raw))
    if fmt is ItemFormat.SHORT_ANSWER:
        if not isinstance(raw, str):
            raise InvalidFormatError(fmt.value, "expected free text", raw)
        return FreeText(raw)
    return Ranking(_decode_ranking(raw, options))


def encode(format: ItemFormat | str, response: Response) -> WireValue:
    """Encode a typed response into its wire value."""

    fmt = _coerce_format(format)
    if response.format is not fmt:
        raise InvalidFormatError(
            fmt.value, f"cannot encode a {response.format.value} response", response
        )
    if isinstance(response, SingleChoice):
        return response.choice
    if isinstance(response, MultiChoice):
        return sorted(response.choices)
    if isinstance(response, LikertRating):
        return response.rating
    if isinstance(response, FreeText):
        return response.text
    return list(response.order)


def decode_or_none(format: ItemFormat | str, raw: Any, options: Sequence[str] | None = None) -> Response | None:
    """Decode, returning ``None`` for wire values that do not fit the format."""
    try:
        return decode(format, raw, options)
    except InvalidFormatError:
        return None


def _coerce_format(format: ItemFormat | str) -> ItemFormat:
    if isinstance(format, ItemFormat):
        return format
    try:
        return ItemFormat(format)
    except ValueError as exc:
        raise InvalidFormatError(str(format), "unknown item format", format) from exc


def _decode_choice(fmt: ItemFormat, raw: Any, options: Sequence[str] | None) -> str:
    if not isinstance(raw, str):
        raise InvalidFormatError(fmt.value, "expected a single option string", raw)
    if options is not None and raw not in options:
        raise InvalidFormatError(fmt.value, f"{raw!r} is not one of the options", raw)
    return raw


def _decode_true_false(raw: Any) -> str:
    if isinstance(raw, bool):
        return "True" if raw else "False"
    if isinstance(raw, str):
        normalized = raw.strip().lower()
        for value in TRUE_FALSE_DOMAIN:
            if normalized == value.lower():
                return value
    raise InvalidFormatError(ItemFormat.TRUE_FALSE.value, "expected True or False", raw)


def _decode_sequence(fmt: ItemFormat, raw: Any) -> list[str]:
    if isinstance(raw, str):
        # Older clients persisted list answers as JSON strings.
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidFormatError(fmt.value, "expected a list of options", raw) from exc
    if not isinstance(raw, (list, tuple, set, frozenset)):
        raise InvalidFormatError(fmt.value, "expected a list of options", raw)
    values = list(raw)
    if not all(isinstance(value, str) for value in values):
        raise InvalidFormatError(fmt.value, "options must be strings", raw)
    return values


def _decode_multi(raw: Any, options: Sequence[str] | None) -> frozenset[str]:
    fmt = ItemFormat.MULTI_SELECT
    values = _decode_sequence(fmt, raw)
    choices = frozenset(values)
    if len(choices) != len(values):
        raise InvalidFormatError(fmt.value, "duplicate selections", raw)
    if options is not None:
        unknown = choices.difference(options)
        if unknown:
            raise InvalidFormatError(fmt.value, f"unknown options {sorted(unknown)}", raw)
    return choices


def _decode_likert(raw: Any) -> int:
    fmt = ItemFormat.LIKERT
    if isinstance(raw, bool):
        raise InvalidFormatError(fmt.value, "expected an integer rating", raw)
    if isinstance(raw, str) and raw.strip().isdecimal():
        raw = int(raw.strip())
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    if not isinstance(raw, int):
        raise InvalidFormatError(fmt.value, "expected an integer rating", raw)
    if not LIKERT_MIN <= raw <= LIKERT_MAX:
        raise InvalidFormatError(fmt.value, f"rating must be between {LIKERT_MIN} and {LIKERT_MAX}", raw)
    return raw


def _decode_ranking(raw: Any, options: Sequence[str] | None) -> tuple[str, ...]:
    fmt = ItemFormat.SJT_RANK
    values = _decode_sequence(fmt, raw)
    if not values:
        raise InvalidFormatError(fmt.value, "ranking is empty", raw)
    if options is not None and Counter(values) != Counter(options):
        raise InvalidFormatError(fmt.value, "ranking must order exactly the item's options", raw)
    return tuple(values)


__all__ = [
    "FreeText",
    "LikertRating",
    "MultiChoice",
    "Ranking",
    "Response",
    "SingleChoice",
    "TRUE_FALSE_DOMAIN",
    "decode",
    "decode_or_none",
    "encode",
]
