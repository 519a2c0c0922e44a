from __future__ import annotations

import pytest
from pydantic import ValidationError

from assessengine.schemas import (
    Blueprint,
    CandidateRecord,
    CategoryWeights,
    ScreeningRubric,
    SectionType,
)
from assessengine.schemas.rubric import KnockoutKind


def build_section(section_type: str, weight: float) -> dict:
    return {
        "type": section_type,
        "title": section_type.title(),
        "timeMinutes": 10,
        "weight": weight,
        "items": [
            {
                "format": "true_false",
                "stem": "Statement holds.",
                "correctAnswer": "True",
                "competencies": ["reasoning"],
            }
        ],
    }


def test_blueprint_accepts_camel_case_documents():
    blueprint = Blueprint.model_validate(
        {
            "id": "bp-1",
            "title": "Analyst",
            "durationMinutes": 40,
            "sections": [build_section("skills", 60), build_section("aptitude", 40)],
            "cutScores": {"overall": 55, "sections": {"workStyle": 60, "skills": None}},
            "antiCheat": {"shuffle": False, "webcam": "off"},
        }
    )

    assert blueprint.duration_minutes == 40
    assert blueprint.cut_scores.sections == {SectionType.WORK_STYLE: 60}
    assert blueprint.anti_cheat.shuffle is False
    assert blueprint.item_count == 2
    assert blueprint.find_item("missing") is None

    dumped = blueprint.model_dump(by_alias=True)
    assert dumped["durationMinutes"] == 40
    assert "antiCheat" in dumped
    assert dumped["sections"][0]["items"][0]["correctAnswer"] == "True"


def test_unknown_blueprint_fields_are_rejected():
    with pytest.raises(ValidationError):
        Blueprint.model_validate({"id": "bp-1", "durationMinutes": 30, "proctor": "webcam"})


def test_category_weights_renormalize_over_present_sections():
    blueprint = Blueprint.model_validate(
        {"sections": [build_section("skills", 50), build_section("aptitude", 50)]}
    )

    weights = blueprint.category_weights()

    assert set(weights) == {"skills", "aptitude"}
    assert weights["skills"] == pytest.approx(0.625)
    assert weights["aptitude"] == pytest.approx(0.375)


def test_generator_documents_map_duration_and_title():
    blueprint = Blueprint.from_generator_document(
        {
            "sections": [build_section("skills", 100)],
            "meta": {"duration_min": 25, "job_title": "Data Analyst", "seniority": "junior"},
        },
        id="bp-generated",
    )

    assert blueprint.id == "bp-generated"
    assert blueprint.duration_minutes == 25
    assert blueprint.title == "Data Analyst Assessment"
    assert blueprint.meta.job_title == "Data Analyst"
    assert blueprint.meta.languages == ["en-ZA"]


@pytest.mark.parametrize(
    "weights",
    [
        {"skills": 40, "experience": 30, "achievements": 10, "education": 10, "location_auth": 5, "salary_availability": 5},
        {"skills": 0.4, "experience": 0.3, "achievements": 0.1, "education": 0.1, "location_auth": 0.05, "salary_availability": 0.05},
    ],
)
def test_screening_category_weights_accept_percentages_or_fractions(weights):
    normalized = CategoryWeights.model_validate(weights).normalized()

    assert normalized["skills"] == pytest.approx(0.4)
    assert sum(normalized.values()) == pytest.approx(1.0)


@pytest.mark.parametrize(
    "weights",
    [
        {"skills": 90},
        {"skills": 130, "experience": -30, "achievements": 0, "education": 0, "location_auth": 0, "salary_availability": 0},
        {"skills": 30, "charisma": 5},
    ],
)
def test_screening_category_weights_reject_bad_sums(weights):
    with pytest.raises(ValidationError):
        CategoryWeights.model_validate(weights)


def test_rubric_coerces_plain_text_knockouts():
    rubric = ScreeningRubric.model_validate(
        {
            "job_title": "Data Analyst",
            "seniority": "Senior",
            "knockouts": ["Driver's licence", {"kind": "location"}],
            "unknown_field": "ignored",
        }
    )

    assert rubric.knockouts[0].kind is KnockoutKind.REQUIRES
    assert rubric.knockouts[0].describe() == "Driver's licence"
    assert rubric.knockouts[1].describe() == "location"
    assert rubric.required_years() == 5.0


def test_candidate_corpus_is_lower_cased():
    candidate = CandidateRecord.model_validate(
        {
            "candidate_id": "C-9",
            "headline": "BI Developer",
            "skills": ["Power BI"],
            "experience": [{"title": "Analyst", "bullets": ["Built DAX models"]}],
            "certifications": [{"name": "PL-300"}],
        }
    )

    assert candidate.subject_id == "C-9"
    assert candidate.corpus() == ["power bi", "bi developer", "analyst", "built dax models", "pl-300"]
