from __future__ import annotations

from assessengine.core.evaluators.matching import fuzzy_contains
from assessengine.core.evaluators.skills import SkillsConfig, SkillsEvaluator
from assessengine.schemas import CandidateRecord, ScreeningRubric


def build_candidate(skills: list[str], headline: str | None = None) -> CandidateRecord:
    return CandidateRecord(candidate_id="C-100", skills=skills, headline=headline)


def build_rubric(must: list[str], nice: list[str] | None = None) -> ScreeningRubric:
    return ScreeningRubric(
        job_title="Data Engineer",
        must_have_skills=must,
        nice_to_have_skills=nice or [],
    )


def test_must_and_nice_coverage_are_weighted():
    evaluator = SkillsEvaluator()
    candidate = build_candidate(["Python", "SQL", "Airflow"])
    rubric = build_rubric(["Python", "SQL", "Spark", "Kafka"], ["Airflow", "dbt"])

    result = evaluator.evaluate(candidate, rubric)

    # 0.75 * 2/4 + 0.25 * 1/2
    assert result["score"] == 50.0
    assert result["must_haves_satisfied"] == ["Python", "SQL"]
    assert result["missing_must_haves"] == ["Spark", "Kafka"]
    assert result["metadata"]["nice_hits"] == ["Airflow"]


def test_fuzzy_matching_tolerates_spelling_variants():
    corpus = ["postgre sql administration", "amazon web services"]

    assert fuzzy_contains(corpus, "PostgreSQL administration", min_similarity=85)
    assert not fuzzy_contains(corpus, "Kubernetes", min_similarity=85)


def test_stricter_similarity_rejects_loose_matches():
    loose = SkillsEvaluator(config=SkillsConfig(min_similarity=50))
    strict = SkillsEvaluator(config=SkillsConfig(min_similarity=99))
    candidate = build_candidate(["Microsoft Excel modelling"])
    rubric = build_rubric(["Excel modeling"])

    assert loose.evaluate(candidate, rubric)["score"] == 100.0
    assert strict.evaluate(candidate, rubric)["score"] == 0.0


def test_rubric_without_skills_scores_by_presence_of_data():
    evaluator = SkillsEvaluator()
    rubric = build_rubric([])

    assert evaluator.evaluate(build_candidate(["Python"]), rubric)["score"] == 100.0
    empty = evaluator.evaluate(build_candidate([]), rubric)
    assert empty["score"] == 0.0
    assert empty["reasons"] == ["no skills listed in the rubric or on the record"]


def test_missing_skills_data_scores_zero_with_a_reason():
    result = SkillsEvaluator().evaluate(build_candidate([]), build_rubric(["Python"]))

    assert result["score"] == 0.0
    assert "no skills data on the record" in result["reasons"]
