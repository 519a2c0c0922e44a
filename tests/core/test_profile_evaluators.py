from __future__ import annotations

import pendulum
import pytest

from assessengine.core.evaluators.achievements import AchievementsEvaluator
from assessengine.core.evaluators.education import EducationEvaluator
from assessengine.core.evaluators.knockouts import RubricKnockouts
from assessengine.core.evaluators.location import LocationAuthEvaluator, is_authorized
from assessengine.schemas import CandidateRecord, ScreeningRubric

AS_OF = pendulum.datetime(2025, 1, 1, tz="UTC")


def build_candidate(**fields) -> CandidateRecord:
    fields.setdefault("candidate_id", "C-400")
    return CandidateRecord.model_validate(fields)


def build_rubric(**fields) -> ScreeningRubric:
    fields.setdefault("job_title", "Data Analyst")
    return ScreeningRubric.model_validate(fields)


@pytest.mark.parametrize(
    ("statement", "expected"),
    [
        ("South African citizen", True),
        ("Permanent resident", True),
        ("Requires sponsorship", False),
        ("No work permit", False),
        ("Work permit pending", False),
        ("Known to employer, permit valid", True),
        (None, None),
        ("  ", None),
    ],
)
def test_is_authorized(statement, expected):
    assert is_authorized(statement) is expected


def test_location_matches_city_then_country():
    evaluator = LocationAuthEvaluator()
    rubric = build_rubric(location={"city": "Cape Town", "country": "South Africa", "work_type": "hybrid"})

    in_city = evaluator.evaluate(
        build_candidate(contact={"city": "cape town"}, work_authorization="Citizen"), rubric
    )
    in_country = evaluator.evaluate(
        build_candidate(contact={"city": "Durban", "country": "South Africa"}, work_authorization="Citizen"),
        rubric,
    )
    abroad = evaluator.evaluate(build_candidate(contact={"city": "Lagos", "country": "Nigeria"}), rubric)

    assert in_city["score"] == pytest.approx(100.0)
    assert in_country["score"] == pytest.approx(85.0)
    assert abroad["score"] == 0.0
    assert abroad["reasons"] == ["outside the role's location", "work authorization not stated"]


def test_remote_roles_fit_any_location():
    evaluator = LocationAuthEvaluator()
    rubric = build_rubric(location={"city": "Johannesburg", "work_type": "Remote"})

    result = evaluator.evaluate(build_candidate(contact={"city": "Lagos"}), rubric)

    assert result["metadata"]["location_fit"] == 1.0


def test_education_uses_required_qualifications_when_listed():
    evaluator = EducationEvaluator()
    candidate = build_candidate(
        education=[{"institution": "UCT", "qualification": "BCom Honours Information Systems"}],
        certifications=[{"name": "Microsoft Power BI Data Analyst"}],
    )
    rubric = build_rubric(required_qualifications=["BCom Honours Information Systems", "CFA"])

    result = evaluator.evaluate(candidate, rubric)

    assert result["score"] == pytest.approx(55.0)
    assert result["metadata"]["missing_qualifications"] == ["CFA"]


def test_education_falls_back_to_the_level_ladder():
    evaluator = EducationEvaluator()
    candidate = build_candidate(
        education=[
            {"qualification": "National Senior Certificate (Matric)"},
            {"qualification": "Master of Data Science"},
        ]
    )

    result = evaluator.evaluate(candidate, build_rubric())

    assert result["score"] == 90.0


def test_education_missing_data_scores_zero():
    result = EducationEvaluator().evaluate(build_candidate(), build_rubric())

    assert result["score"] == 0.0
    assert result["reasons"] == ["no education data on the record"]


def test_achievements_reward_quantified_outcomes():
    evaluator = AchievementsEvaluator()
    candidate = build_candidate(
        achievements=[
            {"metric": "report runtime", "value": "-40%", "note": "rewrote ETL"},
            {"metric": "stakeholder praise", "value": "", "note": ""},
        ],
        experience=[{"title": "Analyst", "bullets": ["Built 12 dashboards", "Led stand-ups"]}],
    )

    result = evaluator.evaluate(candidate, build_rubric())

    assert result["metadata"]["quantified"] == 1
    assert result["metadata"]["quantified_bullets"] == 1
    assert result["score"] == pytest.approx(50.0)


def test_rubric_knockouts_record_every_triggered_rule():
    knockouts = RubricKnockouts(now_provider=lambda: AS_OF)
    rubric = build_rubric(
        must_have_skills=["SQL", "Python"],
        salary_range={"min": 30_000, "max": 45_000},
        location={"country": "South Africa"},
        knockouts=[
            {"kind": "missing_must_have"},
            {"kind": "min_years_experience", "value": 3},
            {"kind": "work_authorization", "label": "must hold a South African work permit"},
            {"kind": "location"},
            {"kind": "salary_above_max"},
            "Driver's licence",
        ],
    )
    candidate = build_candidate(
        skills=["SQL"],
        contact={"country": "Kenya"},
        experience=[{"title": "Analyst", "start_date": "2023-01", "end_date": "present"}],
        work_authorization="requires sponsorship",
        salary_expectation="R 60 000",
    )

    reasons = knockouts.check(candidate, rubric)

    assert reasons == [
        "missing must-have skills: Python",
        "2.0 years of experience, 3 required",
        "must hold a South African work permit",
        "location requirement not met (outside the role's location)",
        "salary expectation 60,000 above maximum 45,000",
        "requirement not met: Driver's licence",
    ]


def test_rubric_knockouts_pass_a_qualified_candidate():
    knockouts = RubricKnockouts(now_provider=lambda: AS_OF)
    rubric = build_rubric(
        must_have_skills=["SQL"],
        knockouts=[{"kind": "missing_must_have"}, {"kind": "work_authorization"}, "Power BI"],
    )
    candidate = build_candidate(skills=["SQL", "Power BI"], work_authorization="Citizen")

    assert knockouts.check(candidate, rubric) == []
