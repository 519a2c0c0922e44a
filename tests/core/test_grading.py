from __future__ import annotations

import pendulum
import pytest

from assessengine.core.grading import grade_attempt, grade_item
from assessengine.schemas import Attempt, Blueprint, Item, SectionType

STARTED = pendulum.datetime(2025, 3, 3, 9, 0, 0, tz="UTC")


def build_attempt(answers: dict) -> Attempt:
    return Attempt(
        id="att-1",
        blueprint_id="bp-analyst",
        candidate_id="cand-1",
        started_at=STARTED,
        answers=answers,
    )


def item(**fields) -> Item:
    fields.setdefault("id", "i1")
    fields.setdefault("stem", "Question")
    fields.setdefault("competencies", ["general"])
    return Item.model_validate(fields)


def test_full_marks_score_every_auto_graded_item(blueprint_document, full_marks):
    blueprint = Blueprint.model_validate(blueprint_document())

    graded = grade_attempt(build_attempt(full_marks), blueprint)

    skills = graded.section(SectionType.SKILLS)
    assert (skills.points, skills.max_points) == (4.0, 4.0)
    assert skills.pending_review == 1
    assert graded.section("aptitude").percent == pytest.approx(100.0)
    assert graded.section("work_style").percent == pytest.approx(100.0)
    assert graded.answered_count == graded.total_count == 7


def test_unanswered_items_score_zero(blueprint_document):
    blueprint = Blueprint.model_validate(blueprint_document())

    graded = grade_attempt(build_attempt({"s1": "HAVING"}), blueprint)

    assert graded.answered_count == 1
    assert graded.section("skills").points == 1.0
    assert graded.section("aptitude").points == 0.0
    assert graded.pending_review_count == 0


def test_multi_select_partial_credit_penalizes_false_picks():
    multi = item(
        format="multi_select",
        options=["SUM", "AVG", "CONCAT", "TRIM"],
        correct_answer=["SUM", "AVG"],
        max_points=2,
    )

    half = grade_item(multi, ["SUM"], section_type=SectionType.SKILLS)
    cancelled = grade_item(multi, ["SUM", "CONCAT"], section_type=SectionType.SKILLS)
    exact = grade_item(multi, ["AVG", "SUM"], section_type=SectionType.SKILLS)

    assert half.points == pytest.approx(1.0)
    assert cancelled.points == 0.0
    assert exact.points == 2.0 and exact.correct is True


def test_sjt_rank_uses_footrule_agreement():
    rank = item(
        format="sjt_rank",
        options=["Escalate", "Renegotiate", "Ignore", "Work overtime"],
        correct_answer=["Renegotiate", "Escalate", "Work overtime", "Ignore"],
    )

    one_swap = grade_item(
        rank, ["Escalate", "Renegotiate", "Work overtime", "Ignore"], section_type=SectionType.APTITUDE
    )
    reversed_order = grade_item(
        rank, ["Ignore", "Work overtime", "Escalate", "Renegotiate"], section_type=SectionType.APTITUDE
    )

    assert one_swap.points == pytest.approx(0.75)
    assert reversed_order.points == 0.0


def test_likert_keyed_closeness_and_unkeyed_agreement():
    options = ["1", "2", "3", "4", "5"]
    keyed = item(format="likert", options=options, correct_answer=4)
    unkeyed = item(format="likert", options=options)

    assert grade_item(keyed, 2, section_type=SectionType.WORK_STYLE).points == pytest.approx(0.5)
    assert grade_item(keyed, 4, section_type=SectionType.WORK_STYLE).correct is True
    assert grade_item(unkeyed, 3, section_type=SectionType.WORK_STYLE).points == pytest.approx(0.5)


def test_short_answers_wait_for_review():
    essay = item(format="short_answer")

    grade = grade_item(essay, "A window function...", section_type=SectionType.SKILLS)

    assert grade.answered and not grade.auto_graded
    assert grade.points == 0.0


def test_undecodable_saved_answer_earns_nothing():
    mcq = item(format="mcq", options=["A", "B"], correct_answer="A")

    grade = grade_item(mcq, "C", section_type=SectionType.SKILLS)

    assert grade.points == 0.0 and grade.correct is False
