"""Blueprint invariant checks.

Every check runs and every failure is collected, so an authoring surface can
highlight all offending fields at once. Each :class:`Violation` carries a
stable ``kind`` and a ``field`` path such as ``sections[0].items[2].options``.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import ValidationError

from ..errors import BlueprintValidationError, InvalidFormatError, Violation
from ..schemas.blueprint import (
    KEYED_FORMATS,
    OPTION_FORMATS,
    Blueprint,
    Item,
    ItemFormat,
    Section,
    SectionType,
)
from .codec import decode

DURATION_MIN = 5
DURATION_MAX = 240
SECTION_WEIGHT_MAX = 100.0
SECTION_WEIGHT_TOTAL = 100.0
SECTION_WEIGHT_TOLERANCE = 0.1
WEIGHT_SET_TOTAL = 1.0
WEIGHT_SET_TOLERANCE = 0.01
CUT_SCORE_MIN = 0.0
CUT_SCORE_MAX = 100.0
MIN_OPTIONS = 2


def validate(blueprint: Blueprint) -> list[Violation]:
    """Return every violated invariant; an empty list means the blueprint is valid."""
    violations: list[Violation] = []
    violations.extend(_check_duration(blueprint))
    if not blueprint.sections:
        violations.append(Violation("no_sections", "sections", "at least one section is required"))
    for index, section in enumerate(blueprint.sections):
        violations.extend(_check_section(section, f"sections[{index}]"))
    violations.extend(_check_weight_set(blueprint))
    violations.extend(_check_section_weight_sum(blueprint))
    violations.extend(_check_cut_scores(blueprint))
    return violations


def ensure_valid(blueprint: Blueprint) -> Blueprint:
    violations = validate(blueprint)
    if violations:
        raise BlueprintValidationError(violations)
    return blueprint


def validate_document(raw: Mapping[str, Any]) -> tuple[Blueprint | None, list[Violation]]:
    """Parse a wire document and validate it.

    Schema errors (wrong types, unknown fields, unknown section types) are
    reported as ``schema`` violations; the invariant checks only run on a
    document that parses.
    """
    try:
        blueprint = Blueprint.model_validate(raw)
    except ValidationError as exc:
        return None, [
            Violation("schema", _error_path(error["loc"]), error["msg"]) for error in exc.errors()
        ]
    return blueprint, validate(blueprint)


def _check_duration(blueprint: Blueprint) -> list[Violation]:
    if DURATION_MIN <= blueprint.duration_minutes <= DURATION_MAX:
        return []
    return [
        Violation(
            "duration_out_of_range",
            "duration_minutes",
            f"duration must be between {DURATION_MIN} and {DURATION_MAX} minutes",
        )
    ]


def _check_section(section: Section, path: str) -> list[Violation]:
    violations: list[Violation] = []
    if not 0.0 <= section.weight <= SECTION_WEIGHT_MAX:
        violations.append(
            Violation("section_weight_out_of_range", f"{path}.weight", "weight must be between 0 and 100")
        )
    if section.time_minutes < 1:
        violations.append(
            Violation("section_time_out_of_range", f"{path}.time_minutes", "time must be at least 1 minute")
        )
    if not section.items:
        violations.append(Violation("section_empty", f"{path}.items", "at least one item is required"))
    for index, item in enumerate(section.items):
        violations.extend(_check_item(item, section.type, f"{path}.items[{index}]"))
    return violations


def _check_item(item: Item, section_type: SectionType, path: str) -> list[Violation]:
    violations: list[Violation] = []
    if not item.stem.strip():
        violations.append(Violation("item_stem_empty", f"{path}.stem", "stem must not be empty"))
    if not [competency for competency in item.competencies if competency.strip()]:
        violations.append(
            Violation("item_competencies_empty", f"{path}.competencies", "at least one competency is required")
        )
    if item.max_points < 1:
        violations.append(
            Violation("item_max_points_invalid", f"{path}.max_points", "max points must be at least 1")
        )
    if item.time_seconds is not None and item.time_seconds < 1:
        violations.append(
            Violation("item_time_invalid", f"{path}.time_seconds", "time must be at least 1 second")
        )

    options_ok = True
    if item.format in OPTION_FORMATS:
        options = item.options or []
        if len(options) < MIN_OPTIONS:
            options_ok = False
            violations.append(
                Violation(
                    "item_options_missing",
                    f"{path}.options",
                    f"{item.format.value} items need at least {MIN_OPTIONS} options",
                )
            )
        if any(not option.strip() for option in options):
            options_ok = False
            violations.append(Violation("item_option_blank", f"{path}.options", "options must not be blank"))

    violations.extend(_check_answer(item, section_type, path, options_ok))
    return violations


def _check_answer(item: Item, section_type: SectionType, path: str, options_ok: bool) -> list[Violation]:
    field = f"{path}.correct_answer"
    if item.format is ItemFormat.SHORT_ANSWER:
        return []
    if item.correct_answer is None:
        if item.format in KEYED_FORMATS and section_type is not SectionType.WORK_STYLE:
            return [Violation("item_answer_missing", field, f"{item.format.value} items need a correct answer")]
        return []
    if not options_ok:
        return []
    options = None if item.format is ItemFormat.TRUE_FALSE else item.options
    try:
        decode(item.format, item.correct_answer, options)
    except InvalidFormatError as exc:
        return [Violation("item_answer_invalid", field, str(exc))]
    return []


def _check_weight_set(blueprint: Blueprint) -> list[Violation]:
    violations: list[Violation] = []
    weights = blueprint.weights.as_mapping()
    for name, value in weights.items():
        if not 0.0 <= value <= 1.0:
            violations.append(
                Violation("weight_set_component_out_of_range", f"weights.{name}", "weight must be between 0 and 1")
            )
    total = sum(weights.values())
    if abs(total - WEIGHT_SET_TOTAL) > WEIGHT_SET_TOLERANCE:
        violations.append(
            Violation("weight_set_sum", "weights", f"weights must sum to 1.0 (got {total:.3f})")
        )
    return violations


def _check_section_weight_sum(blueprint: Blueprint) -> list[Violation]:
    if not blueprint.sections:
        return []
    total = sum(section.weight for section in blueprint.sections)
    if abs(total - SECTION_WEIGHT_TOTAL) <= SECTION_WEIGHT_TOLERANCE:
        return []
    return [
        Violation("section_weight_sum", "sections", f"section weights must sum to 100 (got {total:g})")
    ]


def _check_cut_scores(blueprint: Blueprint) -> list[Violation]:
    violations: list[Violation] = []
    cut_scores = blueprint.cut_scores
    if not CUT_SCORE_MIN <= cut_scores.overall <= CUT_SCORE_MAX:
        violations.append(
            Violation("cut_score_out_of_range", "cut_scores.overall", "cut score must be between 0 and 100")
        )
    present = blueprint.section_types()
    for section_type, threshold in cut_scores.sections.items():
        field = f"cut_scores.sections.{section_type.value}"
        if not CUT_SCORE_MIN <= threshold <= CUT_SCORE_MAX:
            violations.append(Violation("cut_score_out_of_range", field, "cut score must be between 0 and 100"))
        if section_type not in present:
            violations.append(
                Violation(
                    "cut_score_section_absent",
                    field,
                    f"no {section_type.value} section exists for this cut score",
                )
            )
    return violations


def _error_path(location: tuple[Any, ...]) -> str:
    path = ""
    for part in location:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or "blueprint"


__all__ = ["ensure_valid", "validate", "validate_document"]
